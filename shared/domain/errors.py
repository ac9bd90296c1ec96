"""
Domain Errors

Every failure the booking and payment core can report to a caller. Each error
carries a stable machine code and the HTTP status the API layer answers with.
"""

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CAPACITY = "capacity"
    ALREADY_BOOKED = "already_booked"
    ALREADY_CANCELLED = "already_cancelled"
    USER_NOT_FOUND = "user_not_found"
    GATEWAY_ERROR = "gateway_error"
    REFUND_FAILED = "refund_failed"
    SIGNATURE_INVALID = "signature_invalid"
    STORE_ERROR = "store_error"
    INTERNAL_ERROR = "internal_error"


class DomainError(Exception):
    """Base class for expected, typed failures"""

    code: ErrorCode = ErrorCode.INVALID_INPUT
    http_status: int = 400

    def __init__(self, message: str, *, code: ErrorCode | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code.value}


class InvalidInputError(DomainError):
    """Missing or malformed input"""


class NotFoundError(DomainError):
    code = ErrorCode.NOT_FOUND
    http_status = 404


class ForbiddenError(DomainError):
    code = ErrorCode.FORBIDDEN
    http_status = 403


class CapacityError(DomainError):
    """Session closed or not enough spots left"""
    code = ErrorCode.CAPACITY


class DuplicateBookingError(DomainError):
    code = ErrorCode.ALREADY_BOOKED


class AlreadyCancelledError(DomainError):
    """
    Raised for a second cancellation of the same booking.

    Callers must not treat it as success: the first cancellation already
    issued whatever refund was due.
    """
    code = ErrorCode.ALREADY_CANCELLED


class GatewayError(DomainError):
    """A payment gateway call failed. Never retried inside the core."""
    code = ErrorCode.GATEWAY_ERROR
    http_status = 500


class RefundFailedError(GatewayError):
    code = ErrorCode.REFUND_FAILED


class SignatureInvalidError(DomainError):
    code = ErrorCode.SIGNATURE_INVALID
