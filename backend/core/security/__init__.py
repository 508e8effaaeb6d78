"""
Security utilities for authenticating inbound webhooks.
"""

from .signatures import compute_signature, verify_signature

__all__ = [
    "compute_signature",
    "verify_signature",
]
