"""CSV and JSON renderings of a simulation run."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

import pandas as pd

from mmsim.engine.state import DATA_POINT_FIELDS, DataPoint

CSV_FLOAT_FORMAT = "%.8f"


def history_frame(points: Sequence[DataPoint]) -> pd.DataFrame:
    """Tabulate data points, one row per tick, columns in record order."""

    return pd.DataFrame([point.to_dict() for point in points], columns=DATA_POINT_FIELDS)


def history_to_csv(points: Sequence[DataPoint]) -> Optional[str]:
    """Header of field names, then one row per tick with numbers at 8 decimals."""

    if not points:
        return None
    frame = history_frame(points)
    numeric = [name for name in DATA_POINT_FIELDS if name != "timestamp"]
    frame[numeric] = frame[numeric].astype(float)
    text = frame.to_csv(index=False, float_format=CSV_FLOAT_FORMAT, lineterminator="\n")
    return text.rstrip("\n")


def payload_to_json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2)


__all__ = ["history_frame", "history_to_csv", "payload_to_json", "CSV_FLOAT_FORMAT"]
