"""OHLC candle aggregation over fixed wall-clock windows."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Deque, List, Optional


@dataclass(frozen=True)
class Candle:
    open: float
    high: float
    low: float
    close: float
    start_time: datetime

    def with_price(self, price: float) -> "Candle":
        return replace(self, high=max(self.high, price), low=min(self.low, price), close=price)


class CandleAggregator:
    """Group price samples into candles of ``duration_ms`` each.

    Only closed candles enter the history; the open candle is exposed
    separately through :attr:`current`.
    """

    def __init__(self, duration_ms: int = 5_000, max_candles: int = 50) -> None:
        if duration_ms <= 0:
            raise ValueError("duration_ms must be positive")
        self.duration = timedelta(milliseconds=duration_ms)
        self.max_candles = max_candles
        self._history: Deque[Candle] = deque(maxlen=max_candles)
        self._current: Optional[Candle] = None

    @property
    def current(self) -> Optional[Candle]:
        return self._current

    @property
    def candles(self) -> List[Candle]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def update(self, price: float, timestamp: datetime) -> Candle:
        """Fold ``price`` into the open candle, rolling the window if it elapsed."""

        current = self._current
        if current is None or timestamp - current.start_time >= self.duration:
            if current is not None:
                self._history.append(current)
            self._current = Candle(open=price, high=price, low=price, close=price, start_time=timestamp)
        else:
            self._current = current.with_price(price)
        return self._current

    def reset(self) -> None:
        self._history.clear()
        self._current = None


__all__ = ["Candle", "CandleAggregator"]
