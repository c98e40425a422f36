"""Booking error codes and their HTTP mapping."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Stable error codes returned to API clients."""

    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_PRICE = "INVALID_PRICE"
    PROPOSAL_IN_PROGRESS = "PROPOSAL_IN_PROGRESS"
    NO_RESOLVED_PRICE = "NO_RESOLVED_PRICE"
    BOOKING_NOT_PAYABLE = "BOOKING_NOT_PAYABLE"
    CONFLICT = "CONFLICT"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    PROVIDER_ERROR = "PROVIDER_ERROR"


HTTP_STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_PRICE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.PROPOSAL_IN_PROGRESS: status.HTTP_409_CONFLICT,
    ErrorCode.NO_RESOLVED_PRICE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.BOOKING_NOT_PAYABLE: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.AMOUNT_MISMATCH: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.PROVIDER_ERROR: status.HTTP_502_BAD_GATEWAY,
}


@dataclass(frozen=True)
class BookingError(Exception):
    """Base error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFound(BookingError):
    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message=f"{entity} not found")
        object.__setattr__(self, "entity_id", entity_id)


class Unauthorized(BookingError):
    """Actor is not a party to the booking or not the party allowed to act."""

    def __init__(self, message: str = "Not authorized to perform this action") -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)


class InvalidTransition(BookingError):
    def __init__(self, current: str, action: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot {action.replace('_', ' ')} a booking in status {current}",
        )
        object.__setattr__(self, "current", current)
        object.__setattr__(self, "action", action)


class InvalidPrice(BookingError):
    def __init__(self, message: str = "Price must be greater than zero") -> None:
        super().__init__(code=ErrorCode.INVALID_PRICE, message=message)


class ProposalInProgress(BookingError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PROPOSAL_IN_PROGRESS,
            message="A price proposal is already awaiting the client's response",
        )


class NoResolvedPrice(BookingError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.NO_RESOLVED_PRICE, message="Booking has no price to charge")


class BookingNotPayable(BookingError):
    def __init__(self, current: str, message: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.BOOKING_NOT_PAYABLE,
            message=message or f"Booking in status {current} cannot be paid",
        )


class Conflict(BookingError):
    """Lost a compare-and-swap race against a concurrent update."""

    def __init__(self, message: str = "Booking was modified concurrently; reload and retry") -> None:
        super().__init__(code=ErrorCode.CONFLICT, message=message)


class AmountMismatch(BookingError):
    def __init__(self, expected: str, resolved: str) -> None:
        super().__init__(
            code=ErrorCode.AMOUNT_MISMATCH,
            message=f"Amount {expected} does not match the booking price {resolved}",
        )


class ProviderError(BookingError):
    """Payment provider call failed. Safe for the caller to retry."""

    def __init__(self, message: str = "Payment provider request failed") -> None:
        super().__init__(code=ErrorCode.PROVIDER_ERROR, message=message)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
    error_code: str | None = None,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    if error_code:
        detail["code"] = error_code
    return HTTPException(status_code=code, detail=detail)


def booking_error_response(exc: BookingError, field: str | None = None) -> HTTPException:
    """Translate a BookingError raised by a service into an HTTP error."""
    field_errors = {field: exc.code.value.lower()} if field else {}
    return error_response(
        exc.message,
        field_errors,
        HTTP_STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST),
        error_code=exc.code.value,
    )
