"""
Error taxonomy for the back-office workflows.

Every error is scoped to a single workflow invocation. Remote failures carry
the backend's message verbatim; nothing here retries.
"""
from typing import Optional


class BackofficeError(Exception):
    status_code = 500
    code = "BACKOFFICE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"success": False, "message": self.message, "error": self.code}


class ValidationFailed(BackofficeError):
    """Required-field or numeric check failed before any network call."""
    status_code = 400
    code = "VALIDATION_FAILED"


class NotAuthenticated(BackofficeError):
    status_code = 401
    code = "NOT_AUTHENTICATED"


class NotAuthorized(BackofficeError):
    """Caller's role or venue does not allow the operation."""
    status_code = 403
    code = "NOT_AUTHORIZED"


class ProfileNotFound(BackofficeError):
    status_code = 404
    code = "PROFILE_NOT_FOUND"


class IdentityCreationFailed(BackofficeError):
    status_code = 400
    code = "IDENTITY_CREATION_FAILED"


class ProfileWriteFailed(BackofficeError):
    code = "PROFILE_WRITE_FAILED"

    def __init__(self, message: str, compensated: bool = False):
        super().__init__(message)
        self.compensated = compensated


class CompensationFailed(ProfileWriteFailed):
    """The rollback delete failed; ``message`` is still the profile write error."""
    code = "COMPENSATION_FAILED"

    def __init__(self, message: str, compensation_error: Optional[str] = None):
        super().__init__(message, compensated=False)
        self.compensation_error = compensation_error

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["compensation_error"] = self.compensation_error
        return payload


class VenueWriteFailed(BackofficeError):
    code = "VENUE_WRITE_FAILED"


class IdentityDeletionFailed(BackofficeError):
    code = "IDENTITY_DELETION_FAILED"


class IdentityUpdateFailed(BackofficeError):
    code = "IDENTITY_UPDATE_FAILED"


class TransportOrServerError(BackofficeError):
    code = "TRANSPORT_OR_SERVER_ERROR"
