import os
from pathlib import Path
from typing import Generator, List

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("LOG_DIR", str(Path(__file__).resolve().parent / ".logs"))

from common.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from common.expiry import ExpiryScheduler  # noqa: E402
from common.lifecycle import BookingService  # noqa: E402
from common.models import Room  # noqa: E402
from common.store import RoomStore  # noqa: E402
from services.rooms.app import create_app  # noqa: E402

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class ManualTimer:
    """Stand-in for threading.Timer that fires only when the test says so."""

    def __init__(self, interval, function, args=None, kwargs=None) -> None:
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class ManualTimerFactory:
    def __init__(self) -> None:
        self.timers: List[ManualTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None) -> ManualTimer:
        timer = ManualTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def live(self) -> List[ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture()
def rooms_path(tmp_path: Path) -> Path:
    path = tmp_path / "rooms.json"
    RoomStore(path).provision([Room(id=room_id, name=f"Room {room_id}") for room_id in range(1, 11)])
    return path


@pytest.fixture()
def store(rooms_path: Path, clock: FakeClock) -> RoomStore:
    return RoomStore(rooms_path, clock=clock)


@pytest.fixture()
def scheduler(clock: FakeClock, timers: ManualTimerFactory) -> ExpiryScheduler:
    return ExpiryScheduler(clock=clock, timer_factory=timers)


@pytest.fixture()
def service(store: RoomStore, scheduler: ExpiryScheduler, clock: FakeClock) -> BookingService:
    return BookingService(store, scheduler=scheduler, clock=clock)


@pytest.fixture()
def rooms_client(service: BookingService) -> Generator[TestClient, None, None]:
    with TestClient(create_app(service)) as client:
        yield client
