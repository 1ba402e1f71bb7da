"""Error taxonomy for the booking flow."""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Booking error codes."""

    VALIDATION = "VALIDATION"
    NETWORK = "NETWORK"
    BACKEND = "BACKEND"
    NOT_FOUND = "NOT_FOUND"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    UNAVAILABLE = "UNAVAILABLE"
    ALREADY_IN_PROGRESS = "ALREADY_IN_PROGRESS"


class BookingError(Exception):
    """Base booking error with code and user-safe message."""

    code: ErrorCode = ErrorCode.BACKEND
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(BookingError):
    """Raised before any network call when a precondition does not hold."""

    code = ErrorCode.VALIDATION


class NetworkError(BookingError):
    """Raised on transport failure; the operation may be retried."""

    code = ErrorCode.NETWORK
    retryable = True


class BackendError(BookingError):
    """Raised when the backend answers with a non-success status."""

    code = ErrorCode.BACKEND

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(BackendError):
    """Raised when the backend does not know the requested resource."""

    code = ErrorCode.NOT_FOUND


class VerificationFailedError(BookingError):
    """Raised when the payment proof is rejected; a new booking is required."""

    code = ErrorCode.VERIFICATION_FAILED


class UnavailableError(BookingError):
    """Raised when the checkout widget is not loaded."""

    code = ErrorCode.UNAVAILABLE


class AlreadyInProgressError(BookingError):
    """Raised when an interaction of the same kind is still pending."""

    code = ErrorCode.ALREADY_IN_PROGRESS
