"""Error taxonomy for push dispatch.

Every failure the dispatch endpoint can report is a ``DispatchError``
subclass carrying its machine-readable code and HTTP status. The API
layer renders them uniformly; nothing else in the service needs to know
about status codes.
"""

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_REQUEST = "INVALID_REQUEST"
    OFFER_NOT_FOUND = "OFFER_NOT_FOUND"
    VENUE_NOT_FOUND = "VENUE_NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    GATEWAY_INIT_FAILED = "GATEWAY_INIT_FAILED"
    DATABASE_ERROR = "DATABASE_ERROR"
    GATEWAY_QUOTA_EXCEEDED = "GATEWAY_QUOTA_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ConfigurationError(Exception):
    """Required process configuration is missing or malformed."""


class DispatchError(Exception):
    """Base for every error reported by the dispatch endpoint."""

    code = ErrorCode.INTERNAL_ERROR
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def headers(self) -> dict[str, str]:
        return {}


class Unauthorized(DispatchError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401
    default_message = "Missing authorization header"


class InvalidRequest(DispatchError):
    code = ErrorCode.INVALID_REQUEST
    status_code = 400
    default_message = "Invalid request"


class OfferNotFound(DispatchError):
    code = ErrorCode.OFFER_NOT_FOUND
    status_code = 404
    default_message = "Offer not found"


class VenueNotFound(DispatchError):
    code = ErrorCode.VENUE_NOT_FOUND
    status_code = 404
    default_message = "Venue not found"


class RateLimitExceeded(DispatchError):
    """Venue quota exhausted. ``retry_after`` is whole seconds until reset."""

    code = ErrorCode.RATE_LIMIT_EXCEEDED
    status_code = 429
    default_message = "Rate limit exceeded"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None, retry_after: int = 86400):
        super().__init__(message, details)
        self.retry_after = retry_after

    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class GatewayInitFailed(DispatchError):
    code = ErrorCode.GATEWAY_INIT_FAILED
    status_code = 500
    default_message = "Failed to initialize push notification service"


class DatabaseError(DispatchError):
    code = ErrorCode.DATABASE_ERROR
    status_code = 500
    default_message = "Database error"


class GatewayQuotaExceeded(DispatchError):
    """The push gateway rejected most of a batch for quota. No reset time is known."""

    code = ErrorCode.GATEWAY_QUOTA_EXCEEDED
    status_code = 429
    default_message = "Push notification service quota exceeded. Please try again later."
    retry_after = 60

    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class InternalError(DispatchError):
    code = ErrorCode.INTERNAL_ERROR
    status_code = 500
    default_message = "Internal server error"
