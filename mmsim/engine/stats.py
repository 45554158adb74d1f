"""Batch statistics utilities."""

from __future__ import annotations

import math
from typing import Dict, Iterable, Sequence

import numpy as np


def quantiles(values: Sequence[float], qs: Iterable[float] = (0.1, 0.5, 0.9)) -> Dict[str, float]:
    """Return empirical quantiles keyed by ``q`` (e.g., ``{"p10": value}``)."""

    samples = sorted(float(v) for v in values)
    if not samples:
        raise ValueError("values cannot be empty")
    n = len(samples)
    out: Dict[str, float] = {}
    for q in qs:
        if not 0.0 <= q <= 1.0:
            raise ValueError("quantile probabilities must be in [0,1]")
        idx = q * (n - 1)
        lower = int(math.floor(idx))
        upper = int(math.ceil(idx))
        if lower == upper:
            val = samples[lower]
        else:
            weight = idx - lower
            val = samples[lower] * (1 - weight) + samples[upper] * weight
        out[f"p{int(round(q * 100))}"] = val
    return out


def drawdown(series: Sequence[float]) -> float:
    """Return max drawdown of an equity curve as a (non-positive) fraction."""

    levels = np.asarray(series, dtype=float)
    if levels.size == 0:
        return 0.0
    peaks = np.maximum.accumulate(levels)
    safe_peaks = np.where(peaks > 0, peaks, 1.0)
    drawdowns = np.where(peaks > 0, (levels - peaks) / safe_peaks, 0.0)
    return float(min(drawdowns.min(), 0.0))


__all__ = ["quantiles", "drawdown"]
