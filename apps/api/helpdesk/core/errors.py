"""Domain error kinds and exceptions.

Services raise these; the HTTP layer maps them to responses in one place
(see ``helpdesk.main``). Only ``StorageUnavailableError`` is retryable.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds returned by the core."""

    UNAUTHENTICATED = "Unauthenticated"
    INSUFFICIENT_ROLE = "InsufficientRole"
    CROSS_TENANT_ACCESS = "CrossTenantAccess"
    NOT_OWNER = "NotOwner"
    PROTECTED_ACCOUNT = "ProtectedAccount"
    NOT_FOUND = "NotFound"
    INVALID_STATUS = "InvalidStatus"
    INVALID_ASSIGNEE = "InvalidAssignee"
    INVALID_ENUM_VALUE = "InvalidEnumValue"
    INVALID_CURSOR = "InvalidCursor"
    QUOTA_EXCEEDED = "QuotaExceeded"
    CONFLICT = "Conflict"
    STORAGE_UNAVAILABLE = "StorageUnavailable"


class HelpdeskError(Exception):
    """Base exception for help desk domain errors."""

    kind: ErrorKind
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str | None = None):
        self.message = message or self.kind.value
        super().__init__(self.message)


class UnauthenticatedError(HelpdeskError):
    """Missing, invalid or revoked credential."""

    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401


class InsufficientRoleError(HelpdeskError):
    """Actor's role does not permit the operation."""

    kind = ErrorKind.INSUFFICIENT_ROLE
    status_code = 403


class CrossTenantAccessError(HelpdeskError):
    """Target belongs to a different organization."""

    kind = ErrorKind.CROSS_TENANT_ACCESS
    status_code = 403


class NotOwnerError(HelpdeskError):
    """Customer acting on a ticket they did not create."""

    kind = ErrorKind.NOT_OWNER
    status_code = 403


class ProtectedAccountError(HelpdeskError):
    """Root admin cannot be deleted, deactivated or demoted."""

    kind = ErrorKind.PROTECTED_ACCOUNT
    status_code = 403


class QuotaExceededError(HelpdeskError):
    """Organization is at its active user ceiling."""

    kind = ErrorKind.QUOTA_EXCEEDED
    status_code = 403


class NotFoundError(HelpdeskError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(HelpdeskError):
    """Unique value already taken (e.g. email)."""

    kind = ErrorKind.CONFLICT
    status_code = 409


class InvalidStatusError(HelpdeskError):
    kind = ErrorKind.INVALID_STATUS
    status_code = 422


class InvalidAssigneeError(HelpdeskError):
    """Assignee missing, in another org, inactive, or not staff."""

    kind = ErrorKind.INVALID_ASSIGNEE
    status_code = 422


class InvalidEnumValueError(HelpdeskError):
    kind = ErrorKind.INVALID_ENUM_VALUE
    status_code = 422


class InvalidCursorError(HelpdeskError):
    kind = ErrorKind.INVALID_CURSOR
    status_code = 400


class StorageUnavailableError(HelpdeskError):
    """Store timed out, is unreachable, or a write lost its CAS retries."""

    kind = ErrorKind.STORAGE_UNAVAILABLE
    status_code = 503
    retryable = True


ERRORS_BY_KIND: dict[ErrorKind, type[HelpdeskError]] = {
    cls.kind: cls
    for cls in (
        UnauthenticatedError,
        InsufficientRoleError,
        CrossTenantAccessError,
        NotOwnerError,
        ProtectedAccountError,
        QuotaExceededError,
        NotFoundError,
        ConflictError,
        InvalidStatusError,
        InvalidAssigneeError,
        InvalidEnumValueError,
        InvalidCursorError,
        StorageUnavailableError,
    )
}


def error_for(kind: ErrorKind, message: str | None = None) -> HelpdeskError:
    """Build the exception matching an error kind."""
    return ERRORS_BY_KIND[kind](message)
