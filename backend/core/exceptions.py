"""
Domain errors raised by services and mapped to HTTP responses by the API layer.
"""

from typing import Optional


class VibeBuilderError(Exception):
    """Base class for every error a request handler may surface to a caller."""

    code = "error"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code}


class ValidationError(VibeBuilderError):
    """Malformed or missing input. The caller can fix it and resubmit."""

    code = "validation_error"
    default_message = "Invalid input"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field, "reason": self.reason}


class ForbiddenError(VibeBuilderError):
    code = "forbidden"
    default_message = "Permission denied"


class NotFoundError(VibeBuilderError):
    """Entity is absent, or hidden because the caller may not see it."""

    code = "not_found"
    default_message = "Not found"


class QuotaExceededError(VibeBuilderError):
    code = "quota_exceeded"
    default_message = "Monthly generation limit reached"

    def __init__(self, limit: int, current: int, message: Optional[str] = None):
        self.limit = limit
        self.current = current
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "limit": self.limit, "current": self.current}


class ConflictError(VibeBuilderError):
    """Uniqueness or capacity race lost; retrying with new input may succeed."""

    code = "conflict"
    default_message = "Conflict with current state"


class TransientError(VibeBuilderError):
    """Upstream dependency failed or timed out; safe to retry as-is."""

    code = "temporarily_unavailable"
    default_message = "Service temporarily unavailable, please try again"


class ConfigurationError(VibeBuilderError):
    """A required integration is not configured. Retrying will not help."""

    code = "not_configured"
    default_message = "Service is not configured"


class InternalError(VibeBuilderError):
    code = "internal_error"
    default_message = "Internal server error"
