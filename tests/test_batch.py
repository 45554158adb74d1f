import pandas as pd
import pytest

from mmsim.config import Config
from mmsim.engine.batch import BATCH_METRICS, run_batch
from mmsim.engine.stats import drawdown, quantiles


def test_batch_reports_percentiles() -> None:
    result = run_batch(Config(), seeds=[1, 2, 3, 4, 5], ticks=60)
    assert list(result.metrics["seed"]) == [1, 2, 3, 4, 5]
    assert set(result.percentiles) == set(BATCH_METRICS)
    for values in result.percentiles.values():
        assert set(values) == {"p10", "p50", "p90"}
        assert values["p10"] <= values["p50"] <= values["p90"]
    assert (result.metrics["max_drawdown"] <= 0).all()


def test_batch_is_reproducible() -> None:
    first = run_batch(Config(), seeds=[7, 8], ticks=40)
    second = run_batch(Config(), seeds=[7, 8], ticks=40)
    pd.testing.assert_frame_equal(first.metrics, second.metrics)


def test_batch_matches_single_engine_run() -> None:
    result = run_batch(Config(), seeds=[12345], ticks=30)
    other = run_batch(Config(), seeds=[12345, 1], ticks=30)
    assert result.metrics.iloc[0]["final_mid"] == other.metrics.iloc[0]["final_mid"]


def test_batch_rejects_bad_arguments() -> None:
    with pytest.raises(ValueError):
        run_batch(Config(), seeds=[], ticks=10)
    with pytest.raises(ValueError):
        run_batch(Config(), seeds=[1], ticks=0)


def test_quantiles_and_drawdown() -> None:
    qs = quantiles([5, 1, 4, 2, 3])
    assert qs == {"p10": pytest.approx(1.4), "p50": 3.0, "p90": pytest.approx(4.6)}
    assert drawdown([100, 120, 90, 130]) == pytest.approx(-0.25)
    assert drawdown([1, 2, 3]) == 0.0
    assert drawdown([]) == 0.0
