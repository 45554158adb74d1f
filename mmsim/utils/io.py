"""Input/output helpers for mmsim result directories."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from mmsim.config import Config


def ensure_directory(path: Path) -> None:
    """Create directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)


def timestamped_dir(base: Path, prefix: str) -> Path:
    """Return ``base/prefix/<UTC stamp>``, created on disk."""

    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    path = base / prefix / stamp
    ensure_directory(path)
    return path


def save_table(df: pd.DataFrame, out_dir: Path, name: str) -> Path:
    """Persist a dataframe as CSV."""

    ensure_directory(out_dir)
    path = out_dir / f"{name}.csv"
    df.to_csv(path, index=False)
    return path


def write_text(text: str, out_dir: Path, filename: str) -> Path:
    ensure_directory(out_dir)
    path = out_dir / filename
    path.write_text(text, encoding="utf-8")
    return path


def write_json(data: Any, path: Path) -> None:
    ensure_directory(path.parent)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def write_config_snapshot(config: Config, out_dir: Path, filename: str = "config_snapshot.yaml") -> None:
    """Persist configuration as YAML for reproducibility."""

    ensure_directory(out_dir)
    with (out_dir / filename).open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config.model_dump(mode="json"), handle, sort_keys=False)


__all__ = [
    "ensure_directory",
    "timestamped_dir",
    "save_table",
    "write_text",
    "write_json",
    "read_json",
    "write_config_snapshot",
]
