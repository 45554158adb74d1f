"""Geometric Brownian motion mid-price path."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List

from mmsim.config import AssetConfig
from mmsim.market.candles import Candle, CandleAggregator
from mmsim.utils.logging import get_logger
from mmsim.utils.rng import SeededRNG

LOGGER = get_logger(__name__)

REGIME_FACTORS: Dict[str, float] = {"low": 0.5, "medium": 1.0, "high": 2.0}
DEFAULT_DT = 1.5 / 86_400


class GBMPriceProcess:
    """Simulated mid price: ``dS = mu*S*dt + sigma*S*sqrt(dt)*Z``.

    ``sigma`` is the asset's base volatility scaled by the regime factor and
    ``Z`` is one normal draw from the shared :class:`SeededRNG`. The price is
    floored at one tick and every step is folded into the candle history.
    """

    def __init__(
        self,
        asset: AssetConfig,
        rng: SeededRNG,
        candles: CandleAggregator | None = None,
        regime: str = "medium",
        drift: float = 0.0,
        dt: float = DEFAULT_DT,
    ) -> None:
        self.asset = asset
        self.rng = rng
        self.candles = candles if candles is not None else CandleAggregator()
        self.dt = dt
        self.price = asset.init_price
        self.regime = "medium"
        self.drift = 0.0
        self.set_regime(regime)
        self.set_drift(drift)

    @property
    def volatility(self) -> float:
        return self.asset.base_volatility * REGIME_FACTORS[self.regime]

    def set_regime(self, regime: str) -> None:
        key = str(regime).lower()
        if key not in REGIME_FACTORS:
            LOGGER.warning("Unknown volatility regime %r; using 'medium'", regime)
            key = "medium"
        self.regime = key

    def set_drift(self, drift: float) -> None:
        try:
            value = float(drift)
        except (TypeError, ValueError):
            value = 0.0
        self.drift = value if math.isfinite(value) else 0.0

    def step(self, timestamp: datetime) -> float:
        """Advance one tick and return the new mid price."""

        price = self.price
        drift_component = self.drift * price * self.dt
        random_component = self.volatility * price * math.sqrt(self.dt) * self.rng.next_normal()
        price = max(price + (drift_component + random_component), self.asset.tick_size)
        self.price = price
        self.candles.update(price, timestamp)
        return price

    def history(self) -> List[Candle]:
        return self.candles.candles

    def reset(self) -> None:
        self.price = self.asset.init_price
        self.candles.reset()
        self.rng.reset()


__all__ = ["GBMPriceProcess", "REGIME_FACTORS", "DEFAULT_DT"]
