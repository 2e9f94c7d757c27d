"""Booking lifecycle: book, extend, release and expire a room.

``BookingService`` is the only place transitions are applied. Every operation
runs inside a store transaction, so it sees lazily expired state, and it keeps
the store lock while reprogramming the expiry timer so that the timer table
always matches what was committed.
"""
from __future__ import annotations

import logging
import secrets
from typing import Any, Callable, List, Optional

from .exceptions import BookingValidationError, InvalidBookingCode, RoomAlreadyBooked, RoomNotFound, RoomNotOccupied
from .expiry import Clock, ExpiryScheduler, now_ms
from .models import Room
from .schemas import BookingConfirmation, PublicRoom, RoomActionResult
from .store import RoomStore, find_room

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000
BOOKING_CODE_BYTES = 4


def generate_booking_code() -> str:
    """Fresh 8 character lowercase hex secret."""

    return secrets.token_hex(BOOKING_CODE_BYTES)


def _positive_minutes(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise BookingValidationError(f"{field} must be a positive integer")
    return value


def _required_text(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def _required_code(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise BookingValidationError("bookingCode required")
    return value


def _check_code(room: Room, booking_code: str) -> None:
    if not secrets.compare_digest(room.booking_code or "", booking_code):
        raise InvalidBookingCode()


class BookingService:
    def __init__(
        self,
        store: RoomStore,
        scheduler: Optional[ExpiryScheduler] = None,
        clock: Clock = now_ms,
        code_factory: Callable[[], str] = generate_booking_code,
    ) -> None:
        self.store = store
        self.scheduler = scheduler if scheduler is not None else ExpiryScheduler(clock=clock)
        self._clock = clock
        self._code_factory = code_factory
        self.store.on_expired = self._forget_timers

    def list_rooms(self) -> List[PublicRoom]:
        return [PublicRoom.from_room(room) for room in self.store.read_all()]

    def get_room(self, room_id: int) -> PublicRoom:
        with self.store.lock:
            room = self._require(self.store.read_all(), room_id)
        return PublicRoom.from_room(room)

    def book(self, room_id: int, student_name: Any, purpose: Any, duration: Any) -> BookingConfirmation:
        minutes = _positive_minutes(duration, "duration")
        name, reason = _required_text(student_name), _required_text(purpose)
        if name is None or reason is None:
            raise BookingValidationError("Invalid studentName or purpose")

        def occupy(room: Room) -> Room:
            if room.is_occupied:
                raise RoomAlreadyBooked()
            room.occupy(name, reason, self._clock() + minutes * MINUTE_MS, self._code_factory())
            return room

        with self.store.lock:
            room = self.store.with_room(room_id, occupy)
            self._schedule(room)
        logger.info("Room %s booked for %d minutes", room.id, minutes)
        return BookingConfirmation(
            message="Room booked successfully! Save your booking code.",
            room=PublicRoom.from_room(room),
            booking_code=room.booking_code,
        )

    def extend(self, room_id: int, booking_code: Any, extra_minutes: Any) -> RoomActionResult:
        code = _required_code(booking_code)
        minutes = _positive_minutes(extra_minutes, "extraMinutes")

        def prolong(room: Room) -> Room:
            if not room.is_occupied or room.end_time is None:
                raise RoomNotOccupied()
            _check_code(room, code)
            room.extend(minutes * MINUTE_MS)
            return room

        with self.store.lock:
            room = self.store.with_room(room_id, prolong)
            self._schedule(room)
        logger.info("Room %s extended by %d minutes", room.id, minutes)
        return RoomActionResult(message=f"Extended by {minutes} minutes", room=PublicRoom.from_room(room))

    def release(self, room_id: int, booking_code: Any) -> RoomActionResult:
        code = _required_code(booking_code)

        def vacate(room: Room) -> Room:
            if not room.is_occupied:
                raise RoomNotOccupied()
            _check_code(room, code)
            room.vacate()
            return room

        with self.store.lock:
            room = self.store.with_room(room_id, vacate)
            self.scheduler.cancel(room.id)
        logger.info("Room %s released", room.id)
        return RoomActionResult(message="Room released successfully", room=PublicRoom.from_room(room))

    def expire_room(self, room_id: int) -> None:
        """Timer callback for a room whose booking should have lapsed.

        The read applies lazy expiry, so a due room is already vacated and
        persisted here. A room that is still occupied was extended after the
        timer was set, or its end lies beyond one timer span, and gets a new
        timer instead.
        """
        with self.store.lock:
            room = find_room(self.store.read_all(), room_id)
            if room is None or not room.is_occupied:
                return
            logger.debug("Room %s not due yet, rescheduling its timer", room_id)
            self._schedule(room)

    def reconcile(self) -> int:
        """Rebuild the timer table from the rooms document; returns the number of timers set."""

        with self.store.lock:
            occupied = [room for room in self.store.read_all() if room.is_occupied]
            for room in occupied:
                self._schedule(room)
        logger.info("Rescheduled expiry for %d occupied rooms", len(occupied))
        return len(occupied)

    def shutdown(self) -> None:
        self.scheduler.cancel_all()

    def _schedule(self, room: Room) -> None:
        if room.end_time is not None:
            self.scheduler.schedule(room.id, room.end_time, self.expire_room)

    def _forget_timers(self, room_ids: List[int]) -> None:
        for room_id in room_ids:
            self.scheduler.cancel(room_id)

    @staticmethod
    def _require(rooms: List[Room], room_id: int) -> Room:
        room = find_room(rooms, room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room
