"""Test WallClock and SimClock."""

from datetime import datetime, timedelta, timezone

import pytest

from project_governance.core.clock import SimClock, WallClock


class TestWallClock:
    def test_now_returns_utc(self):
        clock = WallClock()
        now = clock.now()
        assert now.tzinfo is not None
        assert now.tzinfo == timezone.utc

    def test_now_is_recent(self):
        clock = WallClock()
        now = clock.now()
        diff = abs((datetime.now(timezone.utc) - now).total_seconds())
        assert diff < 1.0


class TestSimClock:
    def test_default_start(self):
        clock = SimClock()
        assert clock.now() == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_frozen_without_auto_advance(self):
        clock = SimClock()
        assert clock.now() == clock.now()

    def test_auto_advance_moves_after_each_reading(self, sim_clock):
        first = sim_clock.now()
        second = sim_clock.now()
        assert second - first == timedelta(seconds=1)

    def test_set_time_advances(self):
        clock = SimClock()
        new_time = datetime(2024, 6, 2, tzinfo=timezone.utc)
        clock.set_time(new_time)
        assert clock.now() == new_time

    def test_set_time_cannot_go_backwards(self):
        clock = SimClock(start=datetime(2024, 6, 1, tzinfo=timezone.utc))
        earlier = datetime(2024, 5, 1, tzinfo=timezone.utc)
        with pytest.raises(ValueError, match="cannot go backwards"):
            clock.set_time(earlier)

    def test_set_time_same_time_ok(self):
        clock = SimClock()
        same = clock.now()
        clock.set_time(same)  # Should not raise

    def test_advance_ms(self):
        clock = SimClock()
        clock.advance_ms(1500)
        assert clock.now() == datetime(2024, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)
