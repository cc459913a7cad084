from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    """Source of the current time for timestamps, overdue checks and default due dates."""

    def now(self) -> dt.datetime:
        """Return the current time as an aware UTC datetime."""

    def today(self) -> dt.date:
        """Return the current calendar date in the user's time zone."""


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Wall clock. Timestamps are UTC; ``today`` follows ``tz``, or the local zone when unset."""

    tz: dt.tzinfo | None = None

    def now(self) -> dt.datetime:
        return dt.datetime.now(dt.UTC)

    def today(self) -> dt.date:
        # astimezone(None) converts to the system's local zone
        return self.now().astimezone(self.tz).date()


SYSTEM_CLOCK = SystemClock()


__all__ = ["Clock", "SystemClock", "SYSTEM_CLOCK"]
