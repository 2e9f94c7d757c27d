"""Booking expiry: the shared due-check, lazy expiry and the per-room timer table."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .models import Room

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
ExpiryCallback = Callable[[int], None]

# longer waits are split; the callback reschedules a room that is not yet due
MAX_TIMER_DELAY = 24 * 60 * 60


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


def is_due(room: Room, now: int) -> bool:
    """Whether a room's booking has lapsed.

    Both the lazy path and the timer callback decide expiry through this
    predicate only.
    """
    return room.is_occupied and room.end_time is not None and room.end_time <= now


def expire_if_needed(rooms: Iterable[Room], now: int) -> List[int]:
    """Vacate every room whose booking has lapsed and return their ids."""

    expired: List[int] = []
    for room in rooms:
        if is_due(room, now):
            room.vacate()
            expired.append(room.id)
    if expired:
        logger.info("Bookings expired for rooms %s", expired)
    return expired


class ExpiryScheduler:
    """One cancellable one-shot timer per room id.

    Scheduling a room replaces its previous timer. Every timer carries the
    generation it was installed with; when it fires after having been replaced
    or cancelled it does nothing, so a stale timer can never act on a room.
    """

    def __init__(self, clock: Clock = now_ms, timer_factory: Callable[..., threading.Timer] = threading.Timer) -> None:
        self._clock = clock
        self._timer_factory = timer_factory
        self._timers: Dict[int, Tuple[int, threading.Timer, int]] = {}
        self._generation = 0
        self._lock = threading.Lock()

    def schedule(self, room_id: int, fires_at: int, callback: ExpiryCallback) -> None:
        delay = min(max(fires_at - self._clock(), 0) / 1000, MAX_TIMER_DELAY)
        with self._lock:
            self._cancel_locked(room_id)
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(delay, self._fire, args=(room_id, generation, callback))
            timer.daemon = True
            self._timers[room_id] = (generation, timer, fires_at)
            timer.start()
        logger.debug("Expiry timer for room %s set to fire in %.1fs", room_id, delay)

    def cancel(self, room_id: int) -> bool:
        with self._lock:
            return self._cancel_locked(room_id)

    def cancel_all(self) -> None:
        with self._lock:
            for room_id in list(self._timers):
                self._cancel_locked(room_id)

    def pending(self, room_id: int) -> Optional[int]:
        """Instant the room's timer is due to fire, or None when none is pending."""

        entry = self._timers.get(room_id)
        return entry[2] if entry else None

    def _cancel_locked(self, room_id: int) -> bool:
        entry = self._timers.pop(room_id, None)
        if entry is None:
            return False
        entry[1].cancel()
        logger.debug("Expiry timer for room %s cancelled", room_id)
        return True

    def _fire(self, room_id: int, generation: int, callback: ExpiryCallback) -> None:
        with self._lock:
            entry = self._timers.get(room_id)
            if entry is None or entry[0] != generation:
                return
            del self._timers[room_id]
        try:
            callback(room_id)
        except Exception:
            logger.exception("Expiry callback for room %s failed", room_id)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._timers

    def __len__(self) -> int:
        return len(self._timers)
