"""Service-level error taxonomy.

Every error carries the HTTP status and the user-facing detail it maps to, so
the single exception handler registered in `ems.main` can render it without
route handlers knowing about individual failure modes.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for failures raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "The request could not be processed."

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidRequest(ServiceError):
    """Input rejected before any state was touched."""

    detail = "Invalid request parameters."


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found."


class PermissionDenied(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You are not allowed to perform this action."


class CooldownActive(ServiceError):
    """A code was sent to this address too recently."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, remaining_seconds: int):
        self.remaining_seconds = remaining_seconds
        super().__init__(f"Please wait {remaining_seconds} seconds before requesting a new code.")


class InvalidOrExpiredCode(ServiceError):
    """The only OTP failure callers outside the store ever see."""

    detail = "Invalid or expired verification code."


class CodeNotFound(InvalidOrExpiredCode):
    """No live record for the email (never issued, consumed, or expired)."""


class CodeMismatch(InvalidOrExpiredCode):
    """A live record exists but the submitted code does not match it."""


class DuplicateEmail(ServiceError):
    detail = "An account with this email already exists."


class AllocationExhausted(ServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Could not allocate a unique employee ID. Please try again."


class PersistenceError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "A storage error occurred."


class DeliveryError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Failed to send email. Please try again later."
