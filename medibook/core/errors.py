"""Domain errors raised by the booking services.

Each error knows the HTTP status it maps to and a short ``kind`` string that
clients can branch on. They are routine outcomes (a taken slot, a doctor
acting on someone else's appointment) and are reported, not logged as
server faults.
"""

from fastapi import status


class BookingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    kind: str = "booking_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"


class PastDateError(ValidationError):
    kind = "past_date"

    def __init__(self, message: str = "Cannot book appointments for past dates") -> None:
        super().__init__(message)


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"


class Unauthorized(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "unauthorized"


class InvalidStateTransition(BookingError):
    status_code = status.HTTP_409_CONFLICT
    kind = "invalid_state_transition"


class SlotUnavailableError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    kind = "slot_unavailable"

    def __init__(self, message: str = "This time slot is no longer available") -> None:
        super().__init__(message)
