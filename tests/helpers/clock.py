from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field


@dataclass
class FixedClock:
    current: dt.datetime = field(
        default_factory=lambda: dt.datetime(2023, 12, 1, 9, 0, tzinfo=dt.UTC)
    )

    def now(self) -> dt.datetime:
        return self.current

    def today(self) -> dt.date:
        return self.current.date()

    def advance(self, **delta: float) -> None:
        self.current += dt.timedelta(**delta)


__all__ = ["FixedClock"]
