from pathlib import Path

import pytest
import yaml

from mmsim.config import Config, ValidationError, clamp_atr_length, load_config
from mmsim.utils.validation import assert_fraction, validate_config

BASE = Path(__file__).resolve().parents[1] / "configs" / "base.yaml"


def test_base_config_loads() -> None:
    cfg = load_config(BASE)
    validate_config(cfg)
    assert cfg.simulation.asset == "BTC"
    assert cfg.trading.leverage == 10.0
    assert set(cfg.assets) == {"BTC", "ETH", "SOL", "APT"}
    assert cfg.trading.dt == pytest.approx(1.5 / 86_400)


def test_partial_asset_override_keeps_other_fields(tmp_path: Path) -> None:
    path = tmp_path / "cfg.yaml"
    path.write_text(yaml.safe_dump({"assets": {"SOL": {"k_vol": 0.9}}}), encoding="utf-8")
    cfg = load_config(path)
    assert cfg.assets["SOL"].k_vol == 0.9
    assert cfg.assets["SOL"].tick_size == 0.001
    assert cfg.asset_config("sol").coin_id == "solana"


def test_invalid_inputs_are_clamped_or_defaulted() -> None:
    cfg = load_config(
        overrides={
            "simulation": {"atr_length": 3, "drift": "abc", "volatility_regime": "extreme", "asset": "eth"}
        }
    )
    assert cfg.simulation.atr_length == 5
    assert cfg.simulation.drift == 0.0
    assert cfg.simulation.volatility_regime == "medium"
    assert cfg.simulation.asset == "ETH"
    assert clamp_atr_length(99) == 50
    assert clamp_atr_length(None, default=17) == 17


def test_unknown_asset_rejected() -> None:
    with pytest.raises(ValidationError):
        load_config(overrides={"simulation": {"asset": "DOGE"}})


def test_asset_config_returns_private_copy() -> None:
    cfg = Config()
    copy = cfg.asset_config()
    copy.k_vol = 99.0
    assert cfg.assets["BTC"].k_vol == 0.2


def test_cross_field_validation() -> None:
    cfg = load_config(overrides={"trading": {"collapse_threshold": 5_000.0}})
    with pytest.raises(ValueError):
        validate_config(cfg)
    cfg = load_config(overrides={"trading": {"candle_duration_ms": 1_000}})
    with pytest.raises(ValueError):
        validate_config(cfg)
    with pytest.raises(ValueError):
        assert_fraction(1.5, "x")


def test_non_mapping_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)
