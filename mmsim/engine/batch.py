"""Run independent seeded simulations and aggregate their outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

import pandas as pd

from mmsim.config import Config
from mmsim.engine.clock import SteppedClock
from mmsim.engine.simulation import MarketMakingSimulator
from mmsim.engine.stats import drawdown, quantiles
from mmsim.utils.logging import get_logger

LOGGER = get_logger(__name__)

BATCH_METRICS = ("final_equity", "realized_pnl", "max_drawdown")


@dataclass
class BatchResult:
    metrics: pd.DataFrame
    percentiles: Dict[str, Dict[str, float]]


def _seeded_config(config: Config, seed: int) -> Config:
    simulation = config.simulation.model_copy(update={"seed": seed, "mode": "simulation"})
    return config.model_copy(update={"simulation": simulation})


def run_batch(config: Config, seeds: Sequence[int], ticks: int) -> BatchResult:
    """Simulate ``ticks`` ticks once per seed; each run owns its own engine."""

    seeds = list(seeds)
    if not seeds:
        raise ValueError("seeds cannot be empty")
    if ticks <= 0:
        raise ValueError("ticks must be positive")
    rows: List[dict[str, float]] = []
    for seed in seeds:
        cfg = _seeded_config(config, seed)
        engine = MarketMakingSimulator(cfg, clock=SteppedClock(step_ms=cfg.trading.tick_interval_ms))
        history = engine.run(ticks)
        final = history[-1]
        rows.append(
            {
                "seed": seed,
                "final_mid": final.mid,
                "final_equity": final.equity,
                "realized_pnl": final.realized_pnl,
                "max_drawdown": drawdown([point.equity for point in history]),
                "trades": engine.ledger.trades_executed,
                "collapses": len(engine.ledger.collapses),
            }
        )
        LOGGER.debug("Seed %d finished with equity %.4f", seed, final.equity)
    metrics = pd.DataFrame(rows)
    percentiles = {name: quantiles(metrics[name].tolist()) for name in BATCH_METRICS}
    return BatchResult(metrics=metrics, percentiles=percentiles)


__all__ = ["BatchResult", "BATCH_METRICS", "run_batch"]
