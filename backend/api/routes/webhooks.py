"""
Billing webhook endpoint.

Polar posts subscription lifecycle events here. Each request goes through
the same pipeline: rate limit, signature check, JSON decode, schema
validation, then reconciliation against the subscription store. Every
event that authenticates and validates is acknowledged with 200, including
ones that change nothing, so the provider stops retrying.
"""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_client_ip, get_webhook_rate_limiter
from api.schemas.webhooks import WebhookReceivedResponse
from core.security.signatures import verify_signature
from infrastructure.config.settings import Settings, get_settings
from infrastructure.database import (
    SqlAlchemySubscriptionRepository,
    SqlAlchemyUserRepository,
    get_db,
)
from services.billing import (
    AuthenticationError,
    ConfigurationError,
    IdentityResolver,
    PayloadError,
    PayloadTooLarge,
    PersistenceError,
    RateLimited,
    SubscriptionReconciler,
    TierResolver,
    WebhookError,
    parse_event,
)
from services.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

SIGNATURE_HEADER = "X-Polar-Signature"


def _to_http(error: WebhookError) -> HTTPException:
    """Map a webhook error onto the response the provider sees."""
    headers = None
    if isinstance(error, RateLimited):
        headers = {"Retry-After": str(error.retry_after)}
    return HTTPException(
        status_code=error.status_code,
        detail=error.public_message,
        headers=headers,
    )


def _check_rate_limit(limiter: FixedWindowRateLimiter, client_ip: str) -> None:
    decision = limiter.check(client_ip)
    if not decision.allowed:
        logger.warning(
            "Webhook rate limit exceeded",
            extra={"client_ip": client_ip},
        )
        raise RateLimited(decision.retry_after)


async def _read_body(request: Request, limit: int) -> bytes:
    # Content-Length is checked by middleware; chunked bodies are capped here
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            logger.warning("Webhook body exceeds %d bytes", limit)
            raise PayloadTooLarge(f"Body larger than {limit} bytes")
    return bytes(body)


def _authenticate(body: bytes, signature: str | None, secret: str | None) -> None:
    if not secret:
        logger.error("Webhook rejected: POLAR_WEBHOOK_SECRET not configured")
        raise ConfigurationError("Webhook signing secret not configured")
    if not signature:
        logger.warning("Webhook received without signature")
        raise AuthenticationError("Missing signature")
    if not verify_signature(body, signature, secret):
        logger.warning("Invalid webhook signature")
        raise AuthenticationError("Signature mismatch")


def _decode(body: bytes):
    try:
        return json.loads(body)
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError both derive from ValueError
        logger.warning("Invalid JSON in webhook payload: %s", type(e).__name__)
        raise PayloadError("Body is not JSON") from e


def build_reconciler(db: AsyncSession, settings: Settings) -> SubscriptionReconciler:
    """Wire the reconciler to the request's database session."""
    subscriptions = SqlAlchemySubscriptionRepository(db)
    identity = IdentityResolver(
        users=SqlAlchemyUserRepository(db),
        subscriptions=subscriptions,
        prefer_customer_id=settings.identity_prefer_customer_id,
    )
    return SubscriptionReconciler(
        subscriptions=subscriptions,
        identity=identity,
        tiers=TierResolver.from_settings(settings),
    )


@router.post("/billing", response_model=WebhookReceivedResponse)
async def handle_billing_webhook(
    request: Request,
    x_polar_signature: Annotated[str | None, Header(alias=SIGNATURE_HEADER)] = None,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    rate_limiter: FixedWindowRateLimiter = Depends(get_webhook_rate_limiter),
):
    """
    Handle Polar billing webhook events.

    - subscription.created / subscription.updated: upsert the user's record
    - subscription.canceled: mark matching records canceled
    - order.created: acknowledged, no change
    - anything else: acknowledged as unknown, no change
    """
    try:
        _check_rate_limit(rate_limiter, get_client_ip(request))

        # Signature covers the raw bytes, so read them before any parsing
        body = await _read_body(request, settings.max_body_bytes)
        _authenticate(body, x_polar_signature, settings.polar_webhook_secret)

        event = parse_event(_decode(body))
    except WebhookError as e:
        raise _to_http(e) from e

    reconciler = build_reconciler(db, settings)
    try:
        outcome = await reconciler.reconcile(event)
    except PersistenceError as e:
        logger.error(
            "Webhook persistence failed for %s",
            event.event_type,
            exc_info=True,
            extra={"event_type": event.event_type},
        )
        raise _to_http(e) from e
    except Exception:
        logger.error(
            "Webhook processing failed for %s",
            event.event_type,
            exc_info=True,
            extra={"event_type": event.event_type},
        )
        await db.rollback()
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    logger.info(
        "Webhook processed: %s -> %s",
        event.event_type,
        outcome.value,
        extra={"event_type": event.event_type},
    )
    return WebhookReceivedResponse(received=True)
