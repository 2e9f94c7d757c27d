"""Booking errors raised by the store and the lifecycle.

Each error knows the HTTP status it maps to so the API layer can render all of
them through a single exception handler.
"""
from fastapi import status


class BookingError(Exception):
    """Base class for every recoverable booking failure."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Booking request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BookingValidationError(BookingError):
    """Malformed input; nothing was read or written."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid booking request"


class RoomNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Room not found"

    def __init__(self, room_id: int) -> None:
        self.room_id = room_id
        super().__init__()


class RoomAlreadyBooked(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Room already booked"


class RoomNotOccupied(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Room is not currently occupied"


class InvalidBookingCode(BookingError):
    """The supplied code does not match the live booking."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Invalid booking code"


class StoreWriteError(BookingError):
    """The rooms document could not be written; the transition was not applied."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to persist rooms"
