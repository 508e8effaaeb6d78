"""
Unit tests for billing webhook event validation.
"""

from datetime import datetime, timezone

import pytest

from core.domain.events import CancellationEvent, OtherEvent, SubscriptionEvent
from services.billing import PayloadError, parse_event


def _subscription_data(**overrides) -> dict:
    data = {
        "id": "sub_123",
        "status": "active",
        "customer_id": "cus_456",
        "product_id": "prod_pro_monthly",
        "user_id": "3f1c2b7e-8a59-4c3e-9d0b-1e2f3a4b5c6d",
        "current_period_start": "2026-10-01T00:00:00Z",
        "current_period_end": "2026-11-01T00:00:00Z",
        "cancel_at_period_end": False,
    }
    data.update(overrides)
    return data


class TestEnvelope:
    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            "subscription.created",
            {},
            {"type": "subscription.created"},
            {"data": {}},
            {"type": 7, "data": {}},
            {"type": "subscription.created", "data": "not-an-object"},
            {"type": "subscription.created", "data": None},
        ],
    )
    def test_malformed_envelope_raises(self, payload):
        with pytest.raises(PayloadError):
            parse_event(payload)

    def test_extra_envelope_fields_are_allowed(self):
        event = parse_event(
            {"type": "order.created", "data": {"id": "ord_1"}, "timestamp": "2026-10-01"}
        )
        assert isinstance(event, OtherEvent)


class TestSubscriptionEvents:
    @pytest.mark.parametrize("event_type", ["subscription.created", "subscription.updated"])
    def test_builds_subscription_event(self, event_type):
        event = parse_event({"type": event_type, "data": _subscription_data()})

        assert isinstance(event, SubscriptionEvent)
        assert event.event_type == event_type
        assert event.subscription_id == "sub_123"
        assert event.status == "active"
        assert event.customer_id == "cus_456"
        assert event.product_id == "prod_pro_monthly"
        assert event.external_user_id == "3f1c2b7e-8a59-4c3e-9d0b-1e2f3a4b5c6d"
        assert event.current_period_start == datetime(2026, 10, 1, tzinfo=timezone.utc)
        assert event.current_period_end == datetime(2026, 11, 1, tzinfo=timezone.utc)
        assert event.cancel_at_period_end is False

    @pytest.mark.parametrize("missing", ["id", "status"])
    def test_missing_required_field_raises(self, missing):
        data = _subscription_data()
        del data[missing]
        with pytest.raises(PayloadError):
            parse_event({"type": "subscription.updated", "data": data})

    def test_optional_fields_may_be_absent(self):
        event = parse_event(
            {"type": "subscription.created", "data": {"id": "sub_1", "status": "incomplete"}}
        )
        assert isinstance(event, SubscriptionEvent)
        assert event.customer_id is None
        assert event.product_id is None
        assert event.external_user_id is None
        assert event.current_period_end is None
        assert event.cancel_at_period_end is False

    def test_empty_strings_normalised_to_none(self):
        event = parse_event(
            {"type": "subscription.created", "data": _subscription_data(product_id="", user_id="")}
        )
        assert event.product_id is None
        assert event.external_user_id is None

    def test_unknown_data_fields_are_allowed(self):
        event = parse_event(
            {
                "type": "subscription.updated",
                "data": _subscription_data(metadata={"plan": "pro"}, recurring_interval="month"),
            }
        )
        assert isinstance(event, SubscriptionEvent)

    def test_bad_period_timestamp_raises(self):
        with pytest.raises(PayloadError):
            parse_event(
                {
                    "type": "subscription.updated",
                    "data": _subscription_data(current_period_end="next tuesday"),
                }
            )


class TestCancellationEvents:
    def test_builds_cancellation_event(self):
        event = parse_event(
            {
                "type": "subscription.canceled",
                "data": {"id": "sub_123", "status": "canceled", "canceled_at": "2026-10-15T12:00:00Z"},
            }
        )
        assert isinstance(event, CancellationEvent)
        assert event.subscription_id == "sub_123"
        assert event.canceled_at == datetime(2026, 10, 15, 12, tzinfo=timezone.utc)

    def test_canceled_at_is_optional(self):
        event = parse_event(
            {"type": "subscription.canceled", "data": {"id": "sub_123", "status": "canceled"}}
        )
        assert event.canceled_at is None

    def test_requires_subscription_id(self):
        with pytest.raises(PayloadError):
            parse_event({"type": "subscription.canceled", "data": {"status": "canceled"}})


class TestOtherEvents:
    def test_order_created_is_known(self):
        event = parse_event({"type": "order.created", "data": {"id": "ord_1", "amount": 900}})
        assert event == OtherEvent(event_type="order.created", resource_id="ord_1", known=True)

    def test_unknown_type_is_acknowledged_not_rejected(self):
        event = parse_event({"type": "checkout.updated", "data": {}})
        assert event == OtherEvent(event_type="checkout.updated", resource_id=None, known=False)

    def test_revoked_is_validated_but_unknown(self):
        event = parse_event({"type": "subscription.revoked", "data": _subscription_data()})
        assert isinstance(event, OtherEvent)
        assert event.known is False
        assert event.resource_id == "sub_123"

    def test_revoked_with_bad_data_raises(self):
        with pytest.raises(PayloadError):
            parse_event({"type": "subscription.revoked", "data": {"status": "revoked"}})
