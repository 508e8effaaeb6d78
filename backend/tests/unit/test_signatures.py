"""
Unit tests for webhook signature verification.
"""

import hashlib
import hmac

import pytest

from core.security.signatures import compute_signature, verify_signature

SECRET = "whsec_unit"
BODY = b'{"type":"subscription.created","data":{"id":"sub_1","status":"active"}}'


def _reference(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class TestComputeSignature:
    def test_matches_hmac_sha256_hex(self):
        assert compute_signature(BODY, SECRET) == _reference(BODY)

    def test_is_lowercase_hex_of_sha256_length(self):
        sig = compute_signature(BODY, SECRET)
        assert len(sig) == 64
        assert sig == sig.lower()
        int(sig, 16)


class TestVerifySignature:
    def test_valid_signature_verifies(self):
        assert verify_signature(BODY, _reference(BODY), SECRET) is True

    def test_empty_body_signed_correctly_verifies(self):
        assert verify_signature(b"", _reference(b""), SECRET) is True

    def test_wrong_secret_rejected(self):
        assert verify_signature(BODY, _reference(BODY, "other"), SECRET) is False

    @pytest.mark.parametrize("index", [0, 1, 17, len(BODY) // 2, len(BODY) - 1])
    def test_single_byte_change_in_body_rejected(self, index):
        signature = _reference(BODY)
        mutated = bytearray(BODY)
        mutated[index] ^= 0x01
        assert verify_signature(bytes(mutated), signature, SECRET) is False

    def test_reformatted_json_rejected(self):
        # Same JSON value, different bytes
        pretty = b'{"type": "subscription.created", "data": {"id": "sub_1", "status": "active"}}'
        assert verify_signature(pretty, _reference(BODY), SECRET) is False

    def test_single_hex_digit_change_rejected(self):
        signature = _reference(BODY)
        flipped = ("0" if signature[0] != "0" else "1") + signature[1:]
        assert verify_signature(BODY, flipped, SECRET) is False

    @pytest.mark.parametrize("signature", [None, ""])
    def test_missing_signature_rejected(self, signature):
        assert verify_signature(BODY, signature, SECRET) is False

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_rejected(self, secret):
        assert verify_signature(BODY, _reference(BODY), secret) is False

    def test_truncated_signature_rejected(self):
        assert verify_signature(BODY, _reference(BODY)[:-2], SECRET) is False

    def test_extended_signature_rejected(self):
        assert verify_signature(BODY, _reference(BODY) + "00", SECRET) is False

    def test_non_ascii_signature_rejected_without_raising(self):
        assert verify_signature(BODY, "é" * 64, SECRET) is False

    def test_non_hex_signature_rejected(self):
        assert verify_signature(BODY, "z" * 64, SECRET) is False
