"""Unit tests for lazy expiry and the per-room timer table."""
from common.expiry import MAX_TIMER_DELAY, ExpiryScheduler, expire_if_needed, is_due
from common.models import Room, RoomStatus

NOW = 1_700_000_000_000


def booked(room_id: int, end_time: int) -> Room:
    room = Room(id=room_id, name=f"Room {room_id}")
    room.occupy("Ada", "Study", end_time, "0a1b2c3d")
    return room


class TestIsDue:
    def test_available_room_is_never_due(self):
        assert is_due(Room(id=1, name="Room 1"), NOW) is False

    def test_due_at_exact_end_time(self):
        assert is_due(booked(1, NOW), NOW) is True

    def test_not_due_before_end_time(self):
        assert is_due(booked(1, NOW + 1), NOW) is False


class TestExpireIfNeeded:
    def test_expires_only_lapsed_rooms(self):
        rooms = [booked(1, NOW - 1), booked(2, NOW + 60_000), Room(id=3, name="Room 3")]

        expired = expire_if_needed(rooms, NOW)

        assert expired == [1]
        assert rooms[0].status is RoomStatus.AVAILABLE
        assert rooms[0].booking_code is None
        assert rooms[1].is_occupied

    def test_second_pass_changes_nothing(self):
        rooms = [booked(1, NOW - 1), booked(2, NOW + 60_000)]

        assert expire_if_needed(rooms, NOW) == [1]
        snapshot = [room.to_document() for room in rooms]
        assert expire_if_needed(rooms, NOW) == []
        assert [room.to_document() for room in rooms] == snapshot


class TestExpiryScheduler:
    def test_schedule_starts_daemon_timer_with_delay(self, scheduler, timers, clock):
        scheduler.schedule(5, clock.now + 90_000, lambda room_id: None)

        (timer,) = timers.timers
        assert timer.started
        assert timer.daemon is True
        assert timer.interval == 90
        assert scheduler.pending(5) == clock.now + 90_000
        assert 5 in scheduler

    def test_past_instant_fires_immediately(self, scheduler, timers, clock):
        scheduler.schedule(5, clock.now - 1_000, lambda room_id: None)

        assert timers.timers[0].interval == 0

    def test_rescheduling_replaces_previous_timer(self, scheduler, timers, clock):
        scheduler.schedule(5, clock.now + 1_000, lambda room_id: None)
        scheduler.schedule(5, clock.now + 2_000, lambda room_id: None)

        assert len(scheduler) == 1
        assert timers.timers[0].cancelled
        assert len(timers.live()) == 1
        assert scheduler.pending(5) == clock.now + 2_000

    def test_fire_runs_callback_and_clears_entry(self, scheduler, timers, clock):
        fired = []
        scheduler.schedule(5, clock.now + 1_000, fired.append)

        timers.timers[0].fire()

        assert fired == [5]
        assert 5 not in scheduler

    def test_superseded_timer_does_not_run_callback(self, scheduler, timers, clock):
        fired = []
        scheduler.schedule(5, clock.now + 1_000, fired.append)
        stale = timers.timers[0]
        scheduler.schedule(5, clock.now + 5_000, fired.append)

        # a timer thread that was already running when it got cancelled
        stale.function(*stale.args)

        assert fired == []
        assert scheduler.pending(5) == clock.now + 5_000

    def test_cancel(self, scheduler, timers, clock):
        scheduler.schedule(5, clock.now + 1_000, lambda room_id: None)

        assert scheduler.cancel(5) is True
        assert scheduler.cancel(5) is False
        assert timers.timers[0].cancelled
        assert len(scheduler) == 0

    def test_cancel_all(self, scheduler, timers, clock):
        for room_id in (1, 2, 3):
            scheduler.schedule(room_id, clock.now + 1_000, lambda room_id: None)

        scheduler.cancel_all()

        assert len(scheduler) == 0
        assert timers.live() == []

    def test_callback_errors_are_swallowed(self, scheduler, timers, clock, caplog):
        def explode(room_id):
            raise RuntimeError("room vanished")

        scheduler.schedule(9, clock.now, explode)
        timers.timers[0].fire()

        assert 9 not in scheduler
        assert "Expiry callback for room 9 failed" in caplog.text

    def test_real_timer_factory_is_default(self):
        import threading

        scheduler = ExpiryScheduler()
        fired = threading.Event()
        scheduler.schedule(1, 0, lambda room_id: fired.set())

        assert fired.wait(timeout=2)

    def test_delay_is_capped(self, scheduler, timers, clock):
        scheduler.schedule(5, clock.now + 10**15 * 60_000, lambda room_id: None)

        assert timers.timers[0].interval == MAX_TIMER_DELAY
        assert scheduler.pending(5) == clock.now + 10**15 * 60_000
