"""Custom application exceptions."""

from typing import TypeVar

from clinic_queue.core.results import ErrorKind, Result, ServiceError

T = TypeVar("T")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found (or outside the caller's clinic)."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class MissingClinicContextException(ForbiddenException):
    """No clinic was selected for a clinic-scoped request."""

    def __init__(self, message: str = "Clinic context is required"):
        super().__init__(message)


class ClinicAccessDeniedException(ForbiddenException):
    """Caller holds no role in the requested clinic."""

    def __init__(self, message: str = "You do not have access to this clinic"):
        super().__init__(message)


class InsufficientRoleException(ForbiddenException):
    """Caller's clinic role is not allowed for the operation."""

    def __init__(self, message: str = "You do not have the required role for this operation"):
        super().__init__(message)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class InvalidTransitionException(ConflictException):
    """Appointment status change not allowed from the current status."""

    def __init__(self, message: str = "Invalid status transition"):
        super().__init__(message)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class UpstreamUnavailableException(AppException):
    """A downstream channel (e.g. the broadcast broker) is unreachable."""

    def __init__(self, message: str = "Upstream service unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


ERROR_KIND_EXCEPTIONS: dict[ErrorKind, type[AppException]] = {
    ErrorKind.VALIDATION: ValidationException,
    ErrorKind.NOT_FOUND: NotFoundException,
    ErrorKind.MISSING_CLINIC_CONTEXT: MissingClinicContextException,
    ErrorKind.CLINIC_ACCESS_DENIED: ClinicAccessDeniedException,
    ErrorKind.INSUFFICIENT_ROLE: InsufficientRoleException,
    ErrorKind.INVALID_TRANSITION: InvalidTransitionException,
    ErrorKind.CONFLICT: ConflictException,
    ErrorKind.UPSTREAM_UNAVAILABLE: UpstreamUnavailableException,
}


def exception_for(error: ServiceError) -> AppException:
    """Map a service error to its HTTP-facing exception."""
    exc_class = ERROR_KIND_EXCEPTIONS[error.kind]
    return exc_class(error.message)


def unwrap(result: Result[T]) -> T:
    """
    Return the value of a successful result or raise the mapped exception.

    Only the HTTP layer should call this.

    Raises:
        AppException: Subclass matching the result's error kind
    """
    if result.error is not None:
        raise exception_for(result.error)
    return result.value  # type: ignore[return-value]
