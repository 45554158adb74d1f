"""Average True Range volatility estimate."""

from __future__ import annotations

from typing import Sequence

from mmsim.market.candles import Candle


def true_range(current: Candle, previous: Candle) -> float:
    """max(high - low, |high - prev close|, |low - prev close|)."""

    return max(
        current.high - current.low,
        abs(current.high - previous.close),
        abs(current.low - previous.close),
    )


def average_true_range(candles: Sequence[Candle], length: int = 20) -> float:
    """Simple mean of the true ranges of the last ``length`` adjacent candle pairs.

    Returns 0.0 when fewer than two candles are available.
    """

    if len(candles) < 2 or length <= 0:
        return 0.0
    lookback = min(len(candles), length + 1)
    window = candles[len(candles) - lookback:]
    ranges = [true_range(window[i], window[i - 1]) for i in range(1, lookback)]
    total = 0.0
    for value in ranges:
        total += value
    return total / len(ranges)


__all__ = ["true_range", "average_true_range"]
