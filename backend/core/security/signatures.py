"""
HMAC-SHA256 webhook signature verification.
"""

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def compute_signature(payload: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw payload bytes under *secret*."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: str | None, secret: str | None) -> bool:
    """
    Check that *signature* is the HMAC of *payload* under *secret*.

    The comparison is constant time and fails closed: a missing or empty
    signature, an empty secret, or a signature of the wrong length is
    reported as ``False`` rather than raised.

    Args:
        payload: Exact request body bytes, before any parsing
        signature: Hex digest supplied by the provider
        secret: Shared signing secret

    Returns:
        True only if the signature matches
    """
    if not secret:
        logger.warning("Webhook signing secret not configured")
        return False
    if not signature:
        return False

    expected = compute_signature(payload, secret)

    # compare_digest raises TypeError on non-ASCII str, so compare bytes
    try:
        provided = signature.encode("ascii")
    except UnicodeEncodeError:
        return False

    return hmac.compare_digest(provided, expected.encode("ascii"))
