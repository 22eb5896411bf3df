"""
Clock abstraction for the ledger

The withdrawal window and the governance timelock are preconditions on
"now", recomputed on every call. Handlers ask an injected provider for the
time instead of reading the system clock, so tests can step across a
24-hour boundary without waiting for it.

All times are timezone-aware UTC; payloads serialize them with a "Z"
suffix and the projections compare them directly.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class TimeProvider(Protocol):
    def now(self) -> datetime:
        """Current time as an aware UTC datetime"""
        ...


class RealTimeProvider:
    """System clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class TestTimeProvider:
    """
    Frozen clock that only moves when told to

    Example:
        >>> clock = TestTimeProvider(datetime(2025, 1, 15, tzinfo=timezone.utc))
        >>> clock.advance_hours(24)   # the next withdrawal opens a new window
    """

    __test__ = False  # not a pytest test class

    def __init__(self, initial_time: datetime | None = None) -> None:
        self._current_time = _require_aware(
            initial_time or datetime(1970, 1, 1, tzinfo=timezone.utc)
        )

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        self._current_time = _require_aware(dt)

    def advance(self, delta: timedelta) -> None:
        if delta < timedelta(0):
            raise ValueError("Ledger time never moves backwards")
        self._current_time += delta

    def advance_seconds(self, seconds: int) -> None:
        self.advance(timedelta(seconds=seconds))

    def advance_hours(self, hours: int) -> None:
        self.advance(timedelta(hours=hours))

    def advance_days(self, days: int) -> None:
        self.advance(timedelta(days=days))


def _require_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError(f"Naive datetime {dt.isoformat()} - ledger times must be UTC-aware")
    return dt.astimezone(timezone.utc)
