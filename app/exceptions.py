from typing import Any, Mapping, Optional


class ServiceError(Exception):
    """Base class for errors raised by the service layer.

    Attributes:
        message: human-readable message
        details: optional mapping with extra context (field errors, ids involved)
        code: optional machine-readable error code
        http_status: suggested HTTP status code for handlers
    """

    http_status = 500
    default_message = "Service error"
    default_code = "SERVICE_ERROR"

    def __init__(self, message: Optional[str] = None, details: Optional[Mapping[str, Any]] = None, code: Optional[str] = None):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"message": self.message}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = dict(self.details)
        return payload

    def __str__(self) -> str:
        return self.message


class ServiceValidationError(ServiceError):
    """Raised when input data is invalid or a precondition for a service call is not met."""

    http_status = 400
    default_message = "Invalid input"
    default_code = "SERVICE_VALIDATION_ERROR"


class InvalidRangeError(ServiceValidationError):
    """Raised when a date range ends before it starts. No I/O happens before this is raised."""

    default_message = "end_date must not be before start_date"
    default_code = "INVALID_RANGE"


class NotFoundError(ServiceError):
    """Raised when a requested resource was not found."""

    http_status = 404
    default_message = "Not found"
    default_code = "NOT_FOUND"


class RecipeNotFoundError(NotFoundError):
    """The catalog (or the negative cache) confirmed that a recipe does not exist."""

    default_message = "Recipe not found"
    default_code = "RECIPE_NOT_FOUND"


class ForbiddenError(ServiceError):
    """Raised when a user touches a resource owned by someone else. Never retried."""

    http_status = 403
    default_message = "Forbidden"
    default_code = "FORBIDDEN"


class ConflictError(ServiceError):
    """Raised when a resource conflict occurs (duplicate slot, superseded write)."""

    http_status = 409
    default_message = "Conflict"
    default_code = "CONFLICT"


class RecipeUnavailableError(ServiceError):
    """Raised when a recipe cannot be obtained and no stored fallback exists.

    ``reason`` is one of ``transient``, ``budget_exhausted``, ``not_found`` or
    ``timeout`` so callers can tell a dead recipe id from a catalog outage.
    """

    http_status = 503
    default_message = "Recipe unavailable"
    default_code = "RECIPE_UNAVAILABLE"

    def __init__(self, message: Optional[str] = None, details: Optional[Mapping[str, Any]] = None, code: Optional[str] = None, reason: str = "transient"):
        super().__init__(message, details, code)
        self.reason = reason

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["reason"] = self.reason
        return payload
