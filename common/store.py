"""Flat JSON document holding every room, with expiry-aware reads."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, TypeVar

from pydantic import ValidationError

from .exceptions import RoomNotFound, StoreWriteError
from .expiry import Clock, expire_if_needed, now_ms
from .models import Room

logger = logging.getLogger(__name__)

T = TypeVar("T")
ExpiredHook = Callable[[List[int]], None]


def find_room(rooms: Sequence[Room], room_id: int) -> Optional[Room]:
    return next((room for room in rooms if room.id == room_id), None)


class RoomStore:
    """Reads and rewrites the whole rooms document.

    Every read applies lazy expiry and persists the result before returning.
    ``lock`` is re-entrant and must be held across any read-modify-write;
    ``transaction`` and ``with_room`` do that for callers.
    """

    def __init__(self, path: Path | str, clock: Clock = now_ms, on_expired: Optional[ExpiredHook] = None) -> None:
        self.path = Path(path)
        self.lock = threading.RLock()
        self._clock = clock
        self.on_expired = on_expired

    def read_all(self) -> List[Room]:
        with self.lock:
            rooms = self._load()
            expired = expire_if_needed(rooms, self._clock())
            if expired:
                try:
                    self.write_all(rooms)
                except StoreWriteError:
                    logger.error("Could not persist expiry of rooms %s", expired)
                if self.on_expired is not None:
                    self.on_expired(expired)
            return rooms

    def write_all(self, rooms: Sequence[Room]) -> None:
        payload = json.dumps([room.to_document() for room in rooms], indent=2)
        with self.lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        handle.write(payload)
                    os.replace(tmp_name, self.path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as exc:
                logger.error("Failed to write %s: %s", self.path, exc)
                raise StoreWriteError() from exc

    @contextmanager
    def transaction(self) -> Iterator[List[Room]]:
        """Hold the lock over read-modify-write; nothing is written if the body raises."""

        with self.lock:
            rooms = self.read_all()
            yield rooms
            self.write_all(rooms)

    def with_room(self, room_id: int, fn: Callable[[Room], T]) -> T:
        with self.transaction() as rooms:
            room = find_room(rooms, room_id)
            if room is None:
                raise RoomNotFound(room_id)
            return fn(room)

    def provision(self, rooms: Sequence[Room]) -> None:
        self.write_all(rooms)
        logger.info("Provisioned %d rooms in %s", len(rooms), self.path)

    def _load(self) -> List[Room]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
            return [Room.model_validate(item) for item in data]
        except FileNotFoundError:
            logger.warning("Rooms document %s does not exist", self.path)
        except (OSError, ValueError, TypeError, ValidationError) as exc:
            logger.warning("Rooms document %s is unreadable: %s", self.path, exc)
        return []
