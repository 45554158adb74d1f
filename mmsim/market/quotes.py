"""Volatility-adaptive, inventory-aware bid/ask quoting.

Quote construction::

    min_spread  = 2 * tick_size
    base_spread = max(min_spread, k_vol * volatility)
    imbalance   = (long_size - short_size) / max_position
    skew        = k_pos * imbalance * base_spread
    bid         = round(mid - base_spread / 2 - skew)
    ask         = round(mid + base_spread / 2 - skew)

Both quotes shift by the same ``skew``: a net long book lowers bid and ask
together to attract sellers, without changing the width of the spread.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict

from mmsim.config import AssetConfig


@dataclass(frozen=True)
class Quote:
    bid: float
    ask: float
    base_spread: float
    spread: float
    skew: float
    imbalance: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


EMPTY_QUOTE = Quote(bid=0.0, ask=0.0, base_spread=0.0, spread=0.0, skew=0.0, imbalance=0.0)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def round_price(price: float, asset: AssetConfig) -> float:
    """Round to whole units for zero-decimal assets, otherwise to the tick grid."""

    if asset.decimals == 0:
        return _round_half_up(price)
    return _round_half_up(price / asset.tick_size) * asset.tick_size


def format_price(price: float, asset: AssetConfig) -> str:
    return f"${price:,.{asset.decimals}f}"


def calculate_quotes(
    mid: float,
    volatility: float,
    long_size: float,
    short_size: float,
    asset: AssetConfig,
) -> Quote:
    min_spread = asset.tick_size * 2
    base_spread = max(min_spread, asset.k_vol * volatility)
    net_position = long_size - short_size
    imbalance = net_position / asset.max_position
    skew = asset.k_pos * imbalance * base_spread
    bid = round_price(mid - base_spread / 2 - skew, asset)
    ask = round_price(mid + base_spread / 2 - skew, asset)
    return Quote(
        bid=bid,
        ask=ask,
        base_spread=base_spread,
        spread=ask - bid,
        skew=skew,
        imbalance=imbalance,
    )


__all__ = ["Quote", "EMPTY_QUOTE", "round_price", "format_price", "calculate_quotes"]
