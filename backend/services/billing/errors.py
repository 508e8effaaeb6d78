"""
Webhook error taxonomy.

Each error carries the HTTP status the route answers with and a generic
message that is safe to return to the caller. Internal detail goes to the
log only.
"""


class WebhookError(Exception):
    """Base exception for webhook processing failures."""

    status_code: int = 500
    public_message: str = "Webhook processing failed"


class ConfigurationError(WebhookError):
    """Raised when the signing secret (or other required config) is missing."""

    status_code = 500
    public_message = "Webhook not configured"


class AuthenticationError(WebhookError):
    """Raised when the payload signature is missing or does not verify."""

    status_code = 401
    public_message = "Invalid signature"


class PayloadError(WebhookError):
    """Raised when the body is not JSON or fails structural validation."""

    status_code = 400
    public_message = "Invalid payload"


class RateLimited(WebhookError):
    """Raised when a client exceeds its request window."""

    status_code = 429
    public_message = "Too many requests"

    def __init__(self, retry_after: int):
        super().__init__(f"Rate limited, retry after {retry_after}s")
        self.retry_after = retry_after


class PersistenceError(WebhookError):
    """Raised when the subscription store fails unexpectedly."""

    status_code = 500
    public_message = "Processing failed"


class PayloadTooLarge(WebhookError):
    """Raised when the request body exceeds the configured size cap."""

    status_code = 413
    public_message = "Request body too large"
