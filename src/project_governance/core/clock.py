"""Clock abstraction for event timestamps.

WallClock: real wall-clock time (services)
SimClock: deterministic simulated time (tests, replays)

The store of record never calls datetime.now() directly; it uses a clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class IClock(Protocol):
    """Clock interface used by all time-dependent code."""

    def now(self) -> datetime:
        """Current time as timezone-aware UTC datetime."""
        ...


class WallClock:
    """Real wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class SimClock:
    """Simulated clock for deterministic ordering.

    Time advances only when explicitly set, or by ``tick`` after every
    reading when ``auto_advance_ms`` is non-zero.
    """

    def __init__(
        self,
        start: datetime | None = None,
        auto_advance_ms: int = 0,
    ) -> None:
        self._time = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._auto_advance_ms = auto_advance_ms

    def now(self) -> datetime:
        current = self._time
        if self._auto_advance_ms:
            self.advance_ms(self._auto_advance_ms)
        return current

    def set_time(self, t: datetime) -> None:
        """Advance time. Must be monotonically increasing."""
        if t < self._time:
            raise ValueError(
                f"SimClock cannot go backwards: {t} < {self._time}"
            )
        self._time = t

    def advance_ms(self, ms: int) -> None:
        """Advance time by milliseconds."""
        self.set_time(self._time + timedelta(milliseconds=ms))
