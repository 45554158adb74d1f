"""Timestamp sources for the tick loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional


class WallClock:
    """Current UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass
class SteppedClock:
    """Deterministic clock: returns ``start`` then advances ``step_ms`` per call."""

    start: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=timezone.utc))
    step_ms: int = 1_500
    _next: Optional[datetime] = field(default=None, init=False, repr=False)

    def now(self) -> datetime:
        current = self._next or self.start
        self._next = current + timedelta(milliseconds=self.step_ms)
        return current

    def reset(self) -> None:
        self._next = None


__all__ = ["WallClock", "SteppedClock"]
