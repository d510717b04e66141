"""Time sources for cap windows and day boundaries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything able to report the current UTC time."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC time."""


class SystemClock:
    """Wall clock backed by :func:`datetime.now`."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        return datetime.now(tz=UTC)


class ManualClock:
    """Clock that only moves when told to; used by tests and simulations.

    The clock never goes backwards: :meth:`advance` rejects negative deltas so
    window arithmetic stays monotonic.
    """

    def __init__(self, start: datetime | None = None) -> None:
        initial = start or datetime(2024, 1, 1, tzinfo=UTC)
        if initial.tzinfo is None:
            msg = "ManualClock requires a timezone-aware start time."
            raise ValueError(msg)
        self._current = initial

    def now(self) -> datetime:
        """Return the frozen current time."""
        return self._current

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """Move the clock forward by *delta* (or ``timedelta(**kwargs)``)."""
        step = delta if delta is not None else timedelta(**kwargs)
        if step < timedelta(0):
            msg = "ManualClock cannot move backwards."
            raise ValueError(msg)
        self._current = self._current + step
        return self._current


__all__ = ["Clock", "ManualClock", "SystemClock"]
