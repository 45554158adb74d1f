"""Validation helpers."""

from __future__ import annotations

from mmsim.config import Config


def assert_fraction(value: float, name: str) -> None:
    """Ensure value lies within [0, 1]."""

    if not 0 <= value <= 1:
        raise ValueError(f"{name} must lie in [0, 1], received {value}")


def validate_config(config: Config) -> None:
    """Cross-field checks that the pydantic models cannot express alone."""

    trading = config.trading
    assert_fraction(trading.fill_probability, "trading.fill_probability")
    if trading.collapse_threshold >= trading.initial_balance:
        raise ValueError("trading.collapse_threshold must be below trading.initial_balance")
    if trading.candle_duration_ms < trading.tick_interval_ms:
        raise ValueError("trading.candle_duration_ms must cover at least one tick interval")
    for name, asset in config.assets.items():
        if asset.tick_size >= asset.init_price:
            raise ValueError(f"assets.{name}.tick_size must be smaller than init_price")


__all__ = ["assert_fraction", "validate_config"]
