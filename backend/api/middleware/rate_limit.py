"""
Rate limiting for the HTTP surface.

Two limiters live here:

- ``webhook_rate_limiter``: the fixed-window limiter guarding the billing
  webhook. It is exposed through the ``get_webhook_rate_limiter`` dependency
  so tests can swap in a limiter with a fake clock.
- ``limiter``: a slowapi limiter for the operational endpoints (health
  checks), applied with ``@limiter.limit`` decorators.

Both key clients by :func:`get_client_ip`.
"""

import ipaddress
import logging
import re

from starlette.requests import Request
from slowapi import Limiter

from infrastructure.config.settings import settings
from services.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

# Simple pattern to quickly reject obviously invalid IPs before parsing
_IP_LIKE = re.compile(r"^[\d.:a-fA-F]+$")


def _is_valid_ip(value: str) -> bool:
    """Return True if *value* looks like a valid IPv4 or IPv6 address."""
    if not _IP_LIKE.match(value):
        return False
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def get_client_ip(request: Request) -> str:
    """Derive the client identity used for rate limiting.

    Order: first entry of X-Forwarded-For, then X-Real-IP, then the socket
    peer address. Header values that are not valid IP addresses are
    skipped so a crafted header cannot mint arbitrary bucket keys. Returns
    ``"unknown"`` when nothing usable is present, in which case all such
    requests share one bucket.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # X-Forwarded-For can be a comma-separated list; first entry is the client
        candidate = forwarded.split(",")[0].strip()
        if _is_valid_ip(candidate):
            return candidate
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        candidate = real_ip.strip()
        if _is_valid_ip(candidate):
            return candidate
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


# Rate limit configurations for slowapi-guarded routes
# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "health": "60/minute",
    "health_db": "30/minute",
    "default": "100/minute",
}

if settings.rate_limit_storage_uri.startswith("memory://"):
    logger.info("slowapi limiter using in-memory storage")

limiter = Limiter(
    key_func=get_client_ip,
    storage_uri=settings.rate_limit_storage_uri,
)


def get_rate_limit(endpoint: str) -> str:
    """
    Get rate limit configuration for a specific endpoint.

    Example:
        >>> get_rate_limit("health")
        "60/minute"
        >>> get_rate_limit("unknown")
        "100/minute"
    """
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])


# Process-wide webhook limiter; the lifespan task sweeps its expired buckets
webhook_rate_limiter = FixedWindowRateLimiter(
    max_requests=settings.webhook_rate_limit_max_requests,
    window_seconds=settings.webhook_rate_limit_window_seconds,
    cleanup_interval_seconds=settings.webhook_rate_limit_cleanup_seconds,
)


def get_webhook_rate_limiter() -> FixedWindowRateLimiter:
    """Dependency returning the webhook rate limiter."""
    return webhook_rate_limiter
