"""Custom exceptions for phasetrack.

All exceptions carry an ``ErrorKind`` tag so views can render a distinct
error state per failure class, plus the HTTP status code the failure maps to.
"""

from phasetrack.models.enums import ErrorKind


class PhaseTrackError(Exception):
    """Base exception for phasetrack.

    Attributes:
        status_code: HTTP status code associated with this failure class.
        kind: Error taxonomy tag surfaced to views.
    """

    status_code: int = 500
    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthRequiredError(PhaseTrackError):
    """The backend requires (re-)authentication.

    Raised when the tracking endpoint answers 401.
    """

    status_code: int = 401  # Unauthorized
    kind: ErrorKind = ErrorKind.AUTH_REQUIRED


class AccessDeniedError(PhaseTrackError):
    """The authenticated user may not view or modify this project."""

    status_code: int = 403  # Forbidden
    kind: ErrorKind = ErrorKind.ACCESS_DENIED


class NotFoundError(PhaseTrackError):
    """Project, phase or action does not exist (or was deleted)."""

    status_code: int = 404  # Not Found
    kind: ErrorKind = ErrorKind.NOT_FOUND


class TransportFailureError(PhaseTrackError):
    """Network, protocol or payload failure talking to the backend.

    Covers connection errors, unexpected status codes, non-JSON bodies and
    responses that don't match the expected schema.
    """

    status_code: int = 502  # Bad Gateway (upstream failure)
    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE


class ValidationFailureError(PhaseTrackError):
    """A local rule rejected the operation before any network round-trip.

    Raised e.g. when advancing with required actions still incomplete.
    """

    status_code: int = 422  # Unprocessable Entity
    kind: ErrorKind = ErrorKind.VALIDATION_FAILURE


class CatalogError(ValidationFailureError):
    """A phase catalog is empty, unordered or has duplicate keys."""


class DisposedError(PhaseTrackError):
    """The engine was disposed before an async result could be applied."""

    status_code: int = 499  # Client Closed Request (nginx convention)
    kind: ErrorKind = ErrorKind.CANCELLED


_STATUS_ERRORS: dict[int, type[PhaseTrackError]] = {
    401: AuthRequiredError,
    403: AccessDeniedError,
    404: NotFoundError,
}

_DEFAULT_MESSAGES: dict[int, str] = {
    401: "Authentication required. Please log in again.",
    403: "Access denied. You may not have permission to view this project.",
    404: "Project not found or has been deleted.",
}


def error_for_status(status_code: int, message: str | None = None) -> PhaseTrackError:
    """Classify a non-2xx HTTP status into a typed error.

    Args:
        status_code: HTTP status code of the failed response.
        message: Optional backend-supplied error message.

    Returns:
        AuthRequiredError for 401, AccessDeniedError for 403, NotFoundError
        for 404, TransportFailureError for anything else.
    """
    error_class = _STATUS_ERRORS.get(status_code, TransportFailureError)
    default = _DEFAULT_MESSAGES.get(status_code, f"Request failed: {status_code}")
    return error_class(message or default)
