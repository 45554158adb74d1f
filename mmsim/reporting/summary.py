"""Summary table generation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from mmsim.engine.stats import drawdown
from mmsim.utils.io import save_table


def summarize_history(
    history: pd.DataFrame,
    trades: Optional[int] = None,
    collapses: Optional[int] = None,
) -> pd.DataFrame:
    """Return headline metrics for a run's data-point table."""

    if history.empty:
        raise ValueError("history cannot be empty")
    start_equity = history["equity"].iloc[0]
    final_equity = history["equity"].iloc[-1]
    summary = pd.DataFrame(
        {
            "metric": [
                "ticks",
                "final_mid",
                "final_balance",
                "final_equity",
                "peak_equity",
                "equity_return",
                "max_drawdown",
                "realized_pnl",
                "unrealized_pnl",
                "mean_spread",
                "mean_atr",
                "trades",
                "collapses",
            ],
            "value": [
                int(history["tick"].iloc[-1]),
                history["mid"].iloc[-1],
                history["balance"].iloc[-1],
                final_equity,
                history["equity"].max(),
                final_equity / start_equity - 1.0 if start_equity else float("nan"),
                drawdown(history["equity"].tolist()),
                history["realized_pnl"].iloc[-1],
                history["unrealized_pnl"].iloc[-1],
                history["spread"].mean(),
                history["atr"].mean(),
                trades if trades is not None else float("nan"),
                collapses if collapses is not None else float("nan"),
            ],
        }
    )
    return summary


def export_summary(summary: pd.DataFrame, out_dir: Path, name: str = "summary") -> Path:
    save_table(summary, out_dir, name)
    return out_dir / f"{name}.csv"


__all__ = ["summarize_history", "export_summary"]
