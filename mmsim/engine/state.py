"""Simulation state records handed out as read-only snapshots."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class Position:
    """One side of the book; ``avg_price`` is 0 whenever ``size`` is 0."""

    size: float = 0.0
    avg_price: float = 0.0

    def add(self, price: float, size: float) -> None:
        new_size = self.size + size
        if self.size > 0:
            self.avg_price = (self.avg_price * self.size + price * size) / new_size
        else:
            self.avg_price = price
        self.size = new_size

    def reduce(self, size: float) -> None:
        self.size -= size
        if self.size <= 0:
            self.avg_price = 0.0

    def copy(self) -> "Position":
        return Position(size=self.size, avg_price=self.avg_price)


@dataclass(frozen=True)
class Trade:
    id: int
    timestamp: datetime
    side: Side
    price: float
    size: float
    margin: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "side": self.side.value,
            "price": self.price,
            "size": self.size,
            "margin": self.margin,
        }


@dataclass(frozen=True)
class Collapse:
    id: int
    timestamp: datetime
    size: float
    pnl: float

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "timestamp": self.timestamp.isoformat(), "size": self.size, "pnl": self.pnl}


@dataclass(frozen=True)
class LedgerSnapshot:
    balance: float
    long_position: Position
    short_position: Position
    realized_pnl: float
    trades_count: int
    collapses_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DataPoint:
    """Per-tick record of market, quote and account state."""

    timestamp: datetime
    tick: int
    mid: float
    bid: float
    ask: float
    spread: float
    atr: float
    balance: float
    equity: float
    unrealized_pnl: float
    realized_pnl: float
    long_size: float
    short_size: float

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record["timestamp"] = self.timestamp.isoformat()
        return record


DATA_POINT_FIELDS: List[str] = [f.name for f in fields(DataPoint)]


__all__ = [
    "Side",
    "EngineState",
    "Position",
    "Trade",
    "Collapse",
    "LedgerSnapshot",
    "DataPoint",
    "DATA_POINT_FIELDS",
]
