"""Configuration models and loaders for mmsim."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

ATR_LENGTH_MIN = 5
ATR_LENGTH_MAX = 50

Mode = Literal["simulation", "live"]
Regime = Literal["low", "medium", "high"]


class MetaParams(BaseModel):
    name: str = "base"
    description: str | None = None
    version: str | None = None


class AssetConfig(BaseModel):
    """Quoting and price-path parameters for one asset."""

    k_vol: float = Field(..., ge=0, description="Spread multiplier applied to ATR")
    k_pos: float = Field(..., ge=0, description="Inventory skew factor")
    tick_size: float = Field(..., gt=0, description="Minimum price increment")
    max_position: float = Field(..., gt=0, description="Position size that maps to full imbalance")
    init_price: float = Field(..., gt=0, description="Starting price for the simulated path")
    decimals: int = Field(2, ge=0, le=12, description="Display precision")
    coin_id: str = Field(..., description="CoinGecko identifier for live prices")
    base_volatility: float = Field(1.0, gt=0, description="Annualised volatility of the simulated path")


DEFAULT_ASSETS: Dict[str, AssetConfig] = {
    "BTC": AssetConfig(
        k_vol=0.2, k_pos=0.3, tick_size=1, max_position=0.5, init_price=95_000,
        decimals=0, coin_id="bitcoin", base_volatility=0.6,
    ),
    "ETH": AssetConfig(
        k_vol=0.25, k_pos=0.35, tick_size=0.01, max_position=5, init_price=3_300,
        decimals=2, coin_id="ethereum", base_volatility=0.8,
    ),
    "SOL": AssetConfig(
        k_vol=0.3, k_pos=0.5, tick_size=0.001, max_position=50, init_price=190,
        decimals=3, coin_id="solana", base_volatility=1.0,
    ),
    "APT": AssetConfig(
        k_vol=0.5, k_pos=0.7, tick_size=0.001, max_position=100, init_price=9.5,
        decimals=3, coin_id="aptos", base_volatility=1.2,
    ),
}


class TradingParams(BaseModel):
    """Account, fill and scheduling constants."""

    initial_balance: float = Field(1_000.0, gt=0)
    leverage: float = Field(10.0, gt=0)
    order_size_usd: float = Field(50.0, gt=0, description="Notional quoted per order")
    collapse_threshold: float = Field(100.0, ge=0, description="Balance below which offsetting inventory is netted")
    fill_probability: float = Field(0.25, ge=0, le=1)
    tick_interval_ms: int = Field(1_500, gt=0)
    live_interval_ms: int = Field(5_000, gt=0)
    candle_duration_ms: int = Field(5_000, gt=0)
    max_candles: int = Field(50, ge=2)
    max_trades: int = Field(100, ge=1)
    max_history: int = Field(1_000, ge=1)
    live_min_fetch_interval_s: float = Field(3.0, ge=0)

    @property
    def dt(self) -> float:
        """GBM time step: one simulation tick expressed in days."""

        return (self.tick_interval_ms / 1000.0) / 86_400


class SimulationParams(BaseModel):
    """Session selection: asset, mode, regime and reproducibility."""

    asset: str = "BTC"
    mode: Mode = "simulation"
    volatility_regime: Regime = "medium"
    drift: float = 0.0
    atr_length: int = 20
    seed: int = 12345

    @field_validator("atr_length", mode="before")
    @classmethod
    def clamp_length(cls, value: Any) -> int:
        return clamp_atr_length(value)

    @field_validator("drift", mode="before")
    @classmethod
    def default_drift(cls, value: Any) -> float:
        try:
            drift = float(value)
        except (TypeError, ValueError):
            return 0.0
        return drift if math.isfinite(drift) else 0.0

    @field_validator("volatility_regime", mode="before")
    @classmethod
    def default_regime(cls, value: Any) -> str:
        if isinstance(value, str) and value.lower() in ("low", "medium", "high"):
            return value.lower()
        return "medium"

    @field_validator("asset", mode="before")
    @classmethod
    def upper_asset(cls, value: Any) -> str:
        return str(value).upper()


class Config(BaseModel):
    """Top-level configuration model."""

    meta: MetaParams = Field(default_factory=MetaParams)
    simulation: SimulationParams = Field(default_factory=SimulationParams)
    trading: TradingParams = Field(default_factory=TradingParams)
    assets: Dict[str, AssetConfig] = Field(default_factory=lambda: {k: v.model_copy() for k, v in DEFAULT_ASSETS.items()})

    @model_validator(mode="after")
    def validate_asset(self) -> "Config":
        if self.simulation.asset not in self.assets:
            known = ", ".join(sorted(self.assets))
            raise ValueError(f"Unknown asset '{self.simulation.asset}'. Available: {known}")
        return self

    def asset_config(self, name: Optional[str] = None) -> AssetConfig:
        """Return a private copy of the selected (or named) asset's parameters."""

        return self.assets[(name or self.simulation.asset).upper()].model_copy()


def clamp_atr_length(value: Any, default: int = 20) -> int:
    """Coerce an ATR lookback into ``[5, 50]``; unusable input falls back to ``default``."""

    try:
        length = int(float(value))
    except (TypeError, ValueError, OverflowError):
        length = default
    return max(ATR_LENGTH_MIN, min(ATR_LENGTH_MAX, length))


def _deep_update(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_update(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_config_dict() -> Dict[str, Any]:
    """Return the default configuration as a dictionary."""

    return Config().model_dump()


def load_config(path: str | Path | None = None, overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Load configuration from YAML and merge with defaults."""

    base_dict = default_config_dict()
    if path is not None:
        with Path(path).open("r", encoding="utf-8") as handle:
            user_data = yaml.safe_load(handle) or {}
        if not isinstance(user_data, dict):
            raise ValueError(f"Config YAML {path} must map to an object")
        base_dict = _deep_update(base_dict, user_data)
    if overrides:
        base_dict = _deep_update(base_dict, overrides)
    return Config.model_validate(base_dict)


__all__ = [
    "Config",
    "MetaParams",
    "AssetConfig",
    "TradingParams",
    "SimulationParams",
    "DEFAULT_ASSETS",
    "ATR_LENGTH_MIN",
    "ATR_LENGTH_MAX",
    "ValidationError",
    "clamp_atr_length",
    "load_config",
]
