"""Margin account for the market maker's long and short inventory."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List, Optional

from mmsim.engine.state import Collapse, LedgerSnapshot, Position, Side, Trade
from mmsim.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LedgerInvariantError(RuntimeError):
    """Raised when position bookkeeping reaches an impossible state."""


@dataclass
class Ledger:
    """Track cash, margin, both inventory sides, and realized P&L.

    Long and short inventory are held separately rather than netted on
    entry. When cash falls under ``collapse_threshold`` while both sides are
    open, :meth:`collapse` nets the overlapping size at the two average
    prices, releasing margin and booking the difference as realized P&L.
    """

    balance: float = 1_000.0
    leverage: float = 10.0
    order_size_usd: float = 50.0
    collapse_threshold: float = 100.0
    max_trades: int = 100
    initial_balance: float = field(init=False)
    long_position: Position = field(default_factory=Position, init=False)
    short_position: Position = field(default_factory=Position, init=False)
    realized_pnl: float = field(default=0.0, init=False)
    collapses: List[Collapse] = field(default_factory=list, init=False)
    _trades: Deque[Trade] = field(init=False, repr=False)
    _next_trade_id: int = field(default=1, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.leverage <= 0:
            raise ValueError("Leverage must be positive")
        self.initial_balance = self.balance
        self._trades = deque(maxlen=self.max_trades)

    @property
    def trades(self) -> List[Trade]:
        """Recent trades, newest first."""

        return list(self._trades)

    @property
    def trades_executed(self) -> int:
        """Count of fills since the last reset, including ones evicted from :attr:`trades`."""

        return self._next_trade_id - 1

    def reset(self, initial_balance: Optional[float] = None) -> None:
        if initial_balance is not None:
            self.initial_balance = float(initial_balance)
        self.balance = self.initial_balance
        self.long_position = Position()
        self.short_position = Position()
        self.realized_pnl = 0.0
        self._trades.clear()
        self.collapses = []
        self._next_trade_id = 1

    def margin(self, size: float, price: float) -> float:
        return (size * price) / self.leverage

    def order_size(self, price: float) -> float:
        """Units purchasable with the fixed notional, capped by buying power."""

        buying_power = self.balance * self.leverage
        return min(self.order_size_usd, buying_power) / price

    def position(self, side: Side) -> Position:
        return self.long_position if side is Side.LONG else self.short_position

    def enter_position(self, side: Side | str, price: float, size: float, timestamp: datetime) -> Optional[Trade]:
        """Open or add to one side; ``None`` when the entry is not fundable."""

        side = Side(side)
        if price <= 0 or size <= 0:
            LOGGER.debug("Rejected %s entry with price=%s size=%s", side.value, price, size)
            return None
        margin = self.margin(size, price)
        if margin > self.balance:
            LOGGER.debug("Rejected %s entry: margin %.4f exceeds balance %.4f", side.value, margin, self.balance)
            return None

        self.balance -= margin
        self.position(side).add(price, size)
        trade = Trade(
            id=self._next_trade_id,
            timestamp=timestamp,
            side=side,
            price=price,
            size=size,
            margin=margin,
        )
        self._next_trade_id += 1
        self._trades.appendleft(trade)
        self._check_invariants()
        return trade

    def should_collapse(self) -> bool:
        return (
            self.balance < self.collapse_threshold
            and self.long_position.size > 0
            and self.short_position.size > 0
        )

    def collapse(self, timestamp: datetime) -> Optional[Collapse]:
        """Net matched long/short inventory at their average prices."""

        collapse_size = min(self.long_position.size, self.short_position.size)
        if collapse_size <= 0:
            return None

        long_avg = self.long_position.avg_price
        short_avg = self.short_position.avg_price
        pnl = (short_avg - long_avg) * collapse_size
        released = self.margin(collapse_size, long_avg) + self.margin(collapse_size, short_avg)

        self.long_position.reduce(collapse_size)
        self.short_position.reduce(collapse_size)
        self.balance += released + pnl
        self.realized_pnl += pnl

        event = Collapse(id=len(self.collapses) + 1, timestamp=timestamp, size=collapse_size, pnl=pnl)
        self.collapses.insert(0, event)
        self._check_invariants()
        LOGGER.info("Collapsed %.8f units, realized %.4f, balance %.4f", collapse_size, pnl, self.balance)
        return event

    def unrealized_pnl(self, price: float) -> float:
        long_pnl = self.long_position.size * (price - self.long_position.avg_price) if self.long_position.size > 0 else 0.0
        short_pnl = self.short_position.size * (self.short_position.avg_price - price) if self.short_position.size > 0 else 0.0
        return long_pnl + short_pnl

    def equity(self, price: float) -> float:
        """Cash plus margin held plus open P&L."""

        long_margin = self.margin(self.long_position.size, self.long_position.avg_price)
        short_margin = self.margin(self.short_position.size, self.short_position.avg_price)
        return self.balance + long_margin + short_margin + self.unrealized_pnl(price)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            balance=self.balance,
            long_position=self.long_position.copy(),
            short_position=self.short_position.copy(),
            realized_pnl=self.realized_pnl,
            trades_count=len(self._trades),
            collapses_count=len(self.collapses),
        )

    def _check_invariants(self) -> None:
        for name, pos in (("long", self.long_position), ("short", self.short_position)):
            if pos.size < 0:
                raise LedgerInvariantError(f"{name} position size went negative: {pos.size}")
            if pos.size == 0 and pos.avg_price != 0:
                raise LedgerInvariantError(f"{name} position is empty but carries avg price {pos.avg_price}")


__all__ = ["Ledger", "LedgerInvariantError"]
