"""Error taxonomy for calls to the backing API.

Classification happens exactly once, in ``classify_response`` (called by the
transport pipeline). Cache stores and domain facades only propagate these
errors; they never re-classify or wrap them.
"""

from typing import Any

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"
SEVERITY_CRITICAL = "critical"


class ApiError(Exception):
    """Base class for every failure surfaced by the request layer."""

    default_message = "An unknown API error occurred."
    default_code = "UNKNOWN_ERROR"
    severity = SEVERITY_ERROR
    category = "API"

    def __init__(
        self,
        message: str | None = None,
        status_code: int = 0,
        error_code: str | None = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        self.status_code = status_code
        self.error_code = error_code or self.default_code
        self.details = details
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Whether a caller-side retry could plausibly succeed.

        Transport failures, 5xx and 429 are retryable; other 4xx are not.
        """
        return self.status_code == 0 or self.status_code == 429 or self.status_code >= 500

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status_code}, code={self.error_code!r}, message={self.message!r})"


class TransportError(ApiError):
    """No response received: connection failure or timeout."""

    default_message = "A network error occurred. Please check your connection."
    default_code = "NETWORK_ERROR"
    category = "Network"


class AuthenticationError(ApiError):
    """401 after the refresh protocol was exhausted, or refresh failed."""

    default_message = "Authentication failed. Please login again."
    default_code = "UNAUTHORIZED"
    category = "Authentication"

    def __init__(self, message=None, status_code=401, error_code=None, details=None):
        super().__init__(message, status_code, error_code, details)


class ForbiddenError(ApiError):
    default_message = "You do not have permission to perform this action."
    default_code = "FORBIDDEN"
    category = "Authorization"


class ValidationError(ApiError):
    default_message = "The request was invalid."
    default_code = "BAD_REQUEST"
    severity = SEVERITY_WARNING


class UnprocessableEntityError(ValidationError):
    default_message = "The request was well-formed but could not be processed."
    default_code = "UNPROCESSABLE_ENTITY"


class NotFoundError(ApiError):
    default_message = "The requested resource was not found."
    default_code = "NOT_FOUND"
    severity = SEVERITY_WARNING


class ConflictError(ApiError):
    default_message = "There was a conflict with the current state of the resource."
    default_code = "CONFLICT"
    severity = SEVERITY_WARNING


class ServerError(ApiError):
    default_message = "An unexpected server error occurred."
    default_code = "SERVER_ERROR"
    severity = SEVERITY_CRITICAL


class UnknownError(ApiError):
    pass


class UnknownResourceError(KeyError):
    """A domain or resource kind that is not registered on the client."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


_STATUS_ERRORS: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: UnprocessableEntityError,
}


def _error_fields(body: Any) -> tuple[str | None, str | None, Any]:
    """Pull (message, code, details) out of an error body of any shape."""
    if not isinstance(body, dict):
        return None, None, None
    nested = body.get("error")
    if not isinstance(nested, dict):
        nested = {}
    message = body.get("message") or nested.get("message")
    code = body.get("errorCode") or nested.get("code")
    return message, code, body.get("details")


def classify_response(status: int, body: Any = None, fallback_message: str | None = None) -> ApiError:
    """Map an HTTP error response onto the fixed taxonomy.

    Args:
        status: HTTP status code (the primary discriminator)
        body: Decoded response body; dict fields are optional, other shapes ignored
        fallback_message: Used when the body carries no message

    Returns:
        The ApiError subclass instance for this status
    """
    message, code, details = _error_fields(body)
    message = message or fallback_message
    if status >= 500:
        return ServerError(message, status, code, details)
    error_cls = _STATUS_ERRORS.get(status, UnknownError)
    return error_cls(message, status, code, details)
