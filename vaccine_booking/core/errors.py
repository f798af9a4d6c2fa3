"""Failures raised by the booking core.

Every failure carries a human-readable ``message`` and the HTTP status the
application layer answers with. Route functions turn them into
``HTTPException`` through :func:`to_http_exception`.
"""

from fastapi import HTTPException, status


class BookingError(Exception):
    """Base class for every failure the booking core reports to its callers."""

    message = 'The request could not be completed.'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class Unauthenticated(BookingError):
    message = 'Authentication is required.'
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(BookingError):
    message = 'You are not allowed to perform this action.'
    status_code = status.HTTP_403_FORBIDDEN


class AlreadyBooked(BookingError):
    message = 'You already have an appointment for this time slot.'
    status_code = status.HTTP_409_CONFLICT


class SlotFull(BookingError):
    message = 'This slot is fully booked.'
    status_code = status.HTTP_409_CONFLICT


class SlotNotFound(BookingError):
    message = 'Slot not found.'
    status_code = status.HTTP_404_NOT_FOUND


class VaccineNotFound(BookingError):
    message = 'Vaccine not found.'
    status_code = status.HTTP_404_NOT_FOUND


class AppointmentNotFound(BookingError):
    message = 'Appointment not found.'
    status_code = status.HTTP_404_NOT_FOUND


class MalformedToken(BookingError):
    message = 'Invalid appointment credential.'
    status_code = status.HTTP_400_BAD_REQUEST


class Contention(BookingError):
    message = 'This slot is busy right now. Please try again.'
    status_code = status.HTTP_409_CONFLICT


class InvalidTransition(BookingError):
    message = 'This status change is not allowed.'
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidSlot(BookingError):
    message = 'Invalid slot.'
    status_code = status.HTTP_400_BAD_REQUEST


class StoreUnavailable(BookingError):
    message = 'Database unavailable. Verify DATABASE_URL and database credentials.'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def to_http_exception(error: BookingError) -> HTTPException:
    headers = {'WWW-Authenticate': 'Bearer'} if isinstance(error, Unauthenticated) else None
    return HTTPException(status_code=error.status_code, detail=error.message, headers=headers)
