"""Run an mmsim seed batch and persist the artifact."""

from __future__ import annotations

import argparse
import hashlib
import json
from pathlib import Path

import pandas as pd

from mmsim.config import load_config
from mmsim.engine.batch import run_batch


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run an mmsim seed batch and store the artifact.")
    parser.add_argument("config", type=Path, nargs="?", help="Path to YAML config overrides")
    parser.add_argument("--runs", type=int, default=32, help="Number of seeds")
    parser.add_argument("--start-seed", type=int, default=1, help="First seed of the batch")
    parser.add_argument("--ticks", type=int, default=500, help="Ticks per run")
    parser.add_argument(
        "--out",
        type=Path,
        default=Path("artifacts/batch"),
        help="Output directory for batch artifacts",
    )
    return parser.parse_args()


def _config_hash(payload: dict) -> str:
    blob = json.dumps(payload, sort_keys=True).encode("utf-8")
    return hashlib.sha1(blob).hexdigest()[:10]


def _print_summary(percentiles: dict[str, dict[str, float]]) -> None:
    df = pd.DataFrame(percentiles).T
    if df.empty:
        print("No percentile data available")
        return
    print(df.to_string(float_format=lambda v: f"{v:,.4f}"))


def main() -> None:
    args = _parse_args()
    config = load_config(args.config)
    result = run_batch(config, range(args.start_seed, args.start_seed + args.runs), args.ticks)
    config_dump = config.model_dump(mode="json")
    payload = {
        "percentiles": result.percentiles,
        "runs": result.metrics.to_dict(orient="records"),
        "meta": {"config": config_dump, "ticks": args.ticks, "start_seed": args.start_seed},
    }
    args.out.mkdir(parents=True, exist_ok=True)
    token = f"{_config_hash(config_dump)}_{args.start_seed}_{args.runs}"
    artifact_path = args.out / f"{token}.json"
    artifact_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Batch percentiles ({config.simulation.asset}, {args.runs} seeds x {args.ticks} ticks):")
    _print_summary(result.percentiles)
    print(f"\nArtifact saved to {artifact_path}")


if __name__ == "__main__":
    main()
