"""File-backed store for saved simulation snapshots.

Each record lives in ``<root>/<id>.json``; ``<root>/simulation-list.json``
keeps a lightweight ``{id, asset, timestamp}`` index, one entry per id.
"""

from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from mmsim.utils.io import ensure_directory, read_json, write_json
from mmsim.utils.logging import get_logger

LOGGER = get_logger(__name__)

INDEX_NAME = "simulation-list"
_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class SimulationStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        ensure_directory(self.root)

    @property
    def index_path(self) -> Path:
        return self.root / f"{INDEX_NAME}.json"

    def _record_path(self, sim_id: str) -> Path:
        if not _SAFE_ID.match(sim_id) or sim_id == INDEX_NAME or sim_id.startswith("."):
            raise ValueError(f"Invalid simulation id {sim_id!r}")
        return self.root / f"{sim_id}.json"

    def save(self, record: Dict[str, Any]) -> str:
        """Store ``record`` under its ``id`` (or a time-based one) and index it."""

        sim_id = str(record.get("id") or f"sim-{int(time.time() * 1000)}")
        write_json(record, self._record_path(sim_id))
        index = self.list()
        if not any(entry.get("id") == sim_id for entry in index):
            index.append({"id": sim_id, "asset": record.get("asset"), "timestamp": record.get("timestamp")})
            write_json(index, self.index_path)
        LOGGER.debug("Saved simulation %s", sim_id)
        return sim_id

    def get(self, sim_id: str) -> Optional[Dict[str, Any]]:
        path = self._record_path(sim_id)
        if not path.exists():
            return None
        return read_json(path)

    def list(self) -> List[Dict[str, Any]]:
        if not self.index_path.exists():
            return []
        return list(read_json(self.index_path))


__all__ = ["SimulationStore", "INDEX_NAME"]
