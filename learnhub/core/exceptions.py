"""Domain error taxonomy shared by every service.

Services raise these. Routers convert them with ``handle_domain_error`` so
each failure mode maps to one HTTP status.
"""

from fastapi import HTTPException, status


# ==============================================================================
# Base Errors
# ==============================================================================


class LearnHubError(Exception):
    """Base domain error."""

    def __init__(self, message: str, code: str = "learnhub_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotAuthenticatedError(LearnHubError):
    """No active session."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, "not_authenticated")


class PermissionDeniedError(LearnHubError):
    """Authenticated, but the role or ownership does not allow the action."""

    def __init__(self, message: str = "Permission denied", code: str = "permission_denied"):
        super().__init__(message, code)


class NotFoundError(LearnHubError):
    """Referenced entity is absent."""

    def __init__(self, message: str = "Not found", code: str = "not_found"):
        super().__init__(message, code)


class ConflictError(LearnHubError):
    """Write conflicts with existing state."""

    def __init__(self, message: str = "Conflict", code: str = "conflict"):
        super().__init__(message, code)


class DuplicateRequestError(ConflictError):
    """A pending access request already exists for the user and course."""

    def __init__(self, message: str = "A pending access request already exists"):
        super().__init__(message, "duplicate_request")


class InvalidStateTransitionError(ConflictError):
    """The access request is no longer pending."""

    def __init__(self, message: str = "Access request is not pending"):
        super().__init__(message, "invalid_state_transition")


class ValidationFailedError(LearnHubError):
    """Input is well-formed but violates a domain rule."""

    def __init__(self, message: str = "Validation failed", code: str = "validation_failed"):
        super().__init__(message, code)


class StorageFailureError(LearnHubError):
    """Transient backend error."""

    def __init__(
        self, message: str = "Storage temporarily unavailable", code: str = "storage_failure"
    ):
        super().__init__(message, code)


# ==============================================================================
# Error Handler
# ==============================================================================


STATUS_BY_TYPE: list[tuple[type[LearnHubError], int]] = [
    (NotAuthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ValidationFailedError, status.HTTP_400_BAD_REQUEST),
    (StorageFailureError, status.HTTP_503_SERVICE_UNAVAILABLE),
]

# Codes whose status differs from their base class
STATUS_BY_CODE: dict[str, int] = {
    "storage_upload_failed": status.HTTP_502_BAD_GATEWAY,
    "file_too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    "invalid_content_type": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
}


def status_for(error: LearnHubError) -> int:
    """Resolve the HTTP status for a domain error."""
    if error.code in STATUS_BY_CODE:
        return STATUS_BY_CODE[error.code]
    for error_type, status_code in STATUS_BY_TYPE:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def handle_domain_error(error: LearnHubError) -> HTTPException:
    """Convert a domain error to an HTTPException."""
    headers = (
        {"WWW-Authenticate": "Bearer"}
        if isinstance(error, NotAuthenticatedError)
        else None
    )
    return HTTPException(
        status_code=status_for(error),
        detail=error.message,
        headers=headers,
    )
