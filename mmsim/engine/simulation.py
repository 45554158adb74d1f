"""Simulation engine orchestrating the market-making tick cycle."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from pydantic import ValidationError

from mmsim.accounting.ledger import Ledger
from mmsim.config import AssetConfig, Config, clamp_atr_length
from mmsim.data.market_data import LivePriceFeed
from mmsim.engine.clock import SteppedClock, WallClock
from mmsim.engine.events import CollapseEvent, EventBus, TickEvent, TradeEvent
from mmsim.engine.state import DataPoint, EngineState, Side, Trade
from mmsim.market.candles import Candle, CandleAggregator
from mmsim.market.price import GBMPriceProcess
from mmsim.market.quotes import EMPTY_QUOTE, Quote, calculate_quotes
from mmsim.market.volatility import average_true_range
from mmsim.reporting.export import history_to_csv, payload_to_json
from mmsim.utils.logging import get_logger
from mmsim.utils.rng import SeededRNG

LOGGER = get_logger(__name__)

UPDATABLE_ASSET_FIELDS = ("k_vol", "k_pos", "tick_size", "max_position")


class MarketMakingSimulator:
    """Drive price, quotes, fills and accounting one tick at a time.

    Each tick runs, in order: price update, ATR, collapse check, quoting,
    simulated fill, metrics, history append, event publication. The engine
    owns every piece of mutable state; listeners on :attr:`events` only
    ever receive frozen records.
    """

    def __init__(
        self,
        config: Config | None = None,
        clock: WallClock | SteppedClock | None = None,
        feed: LivePriceFeed | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.config = (config or Config()).model_copy(deep=True)
        sim = self.config.simulation
        trading = self.config.trading
        self.trading = trading
        self.mode = sim.mode
        self.asset_name = sim.asset
        self.asset: AssetConfig = self.config.asset_config()
        self.atr_length = clamp_atr_length(sim.atr_length)
        self.clock = clock or WallClock()
        self.events = events or EventBus()
        self.rng = SeededRNG(sim.seed)
        self.ledger = Ledger(
            balance=trading.initial_balance,
            leverage=trading.leverage,
            order_size_usd=trading.order_size_usd,
            collapse_threshold=trading.collapse_threshold,
            max_trades=trading.max_trades,
        )
        self.feed = feed or LivePriceFeed(
            candle_duration_ms=trading.candle_duration_ms,
            max_candles=trading.max_candles,
            min_interval=trading.live_min_fetch_interval_s,
        )
        self.price_process = self._build_price_process(sim.volatility_regime, sim.drift)
        self.history: Deque[DataPoint] = deque(maxlen=trading.max_history)
        self.tick_count = 0
        self.current_mid = 0.0
        self.current_atr = 0.0
        self.current_quote: Quote = EMPTY_QUOTE
        self._state = EngineState.IDLE
        self._task: Optional[asyncio.Task] = None

    def _build_price_process(self, regime: str = "medium", drift: float = 0.0) -> GBMPriceProcess:
        candles = CandleAggregator(self.trading.candle_duration_ms, self.trading.max_candles)
        return GBMPriceProcess(self.asset, self.rng, candles, regime=regime, drift=drift, dt=self.trading.dt)

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is EngineState.RUNNING

    @property
    def interval(self) -> float:
        """Seconds between ticks for the current mode."""

        ms = self.trading.tick_interval_ms if self.mode == "simulation" else self.trading.live_interval_ms
        return ms / 1000.0

    def candles(self) -> List[Candle]:
        return self.price_process.history() if self.mode == "simulation" else self.feed.history()

    def set_asset(self, name: str) -> bool:
        key = str(name).upper()
        if self.is_running:
            LOGGER.warning("Stop the simulation before switching asset to %s", key)
            return False
        if key not in self.config.assets:
            LOGGER.warning("Unknown asset %s", key)
            return False
        self.asset_name = key
        self.config.simulation.asset = key
        self.asset = self.config.asset_config(key)
        self.price_process = self._build_price_process(self.price_process.regime, self.price_process.drift)
        self.feed.reset()
        return True

    def set_mode(self, mode: str) -> bool:
        if mode not in ("simulation", "live"):
            LOGGER.warning("Unknown mode %r", mode)
            return False
        self.mode = mode
        self.config.simulation.mode = mode
        return True

    def set_seed(self, seed: int) -> None:
        self.rng.set_seed(seed)
        self.config.simulation.seed = self.rng.seed

    def set_atr_length(self, length: Any) -> int:
        self.atr_length = clamp_atr_length(length, default=self.atr_length)
        self.config.simulation.atr_length = self.atr_length
        return self.atr_length

    def set_volatility_regime(self, regime: str) -> None:
        self.price_process.set_regime(regime)
        self.config.simulation.volatility_regime = self.price_process.regime

    def set_drift(self, drift: Any) -> None:
        self.price_process.set_drift(drift)
        self.config.simulation.drift = self.price_process.drift

    def update_asset_config(self, **params: Any) -> bool:
        """Overwrite quoting parameters of the active asset; invalid values are ignored."""

        changes = {k: v for k, v in params.items() if k in UPDATABLE_ASSET_FIELDS and v is not None}
        try:
            updated = AssetConfig.model_validate({**self.asset.model_dump(), **changes})
        except ValidationError as exc:
            LOGGER.warning("Ignoring invalid asset parameters %s: %s", changes, exc.errors())
            return False
        self.asset = updated
        self.price_process.asset = updated
        self.config.assets[self.asset_name] = updated.model_copy()
        return True

    def reset(self, initial_balance: Optional[float] = None) -> None:
        """Stop and return every component to its initial state."""

        self.stop()
        self.tick_count = 0
        self.history.clear()
        self.current_mid = 0.0
        self.current_atr = 0.0
        self.current_quote = EMPTY_QUOTE
        self.ledger.reset(initial_balance)
        self.rng.reset()
        self.price_process.reset()
        self.feed.reset()
        if isinstance(self.clock, SteppedClock):
            self.clock.reset()
        self._state = EngineState.IDLE

    def step(self) -> DataPoint:
        """Run one simulation-mode tick synchronously."""

        if self.mode != "simulation":
            raise RuntimeError("step() drives simulated prices only; await tick() in live mode")
        timestamp = self.clock.now()
        self.tick_count += 1
        self.current_mid = self.price_process.step(timestamp)
        return self._complete_tick(timestamp)

    def run(self, ticks: int) -> List[DataPoint]:
        """Run ``ticks`` simulation ticks back to back, without the scheduler."""

        if ticks < 0:
            raise ValueError("ticks must be non-negative")
        return [self.step() for _ in range(ticks)]

    async def tick(self) -> DataPoint:
        if self.mode == "simulation":
            return self.step()
        price = await self.feed.fetch(self.asset.coin_id, timeout=self.interval)
        if price:
            self.current_mid = price
        timestamp = self.clock.now()
        self.tick_count += 1
        return self._complete_tick(timestamp)

    def _complete_tick(self, timestamp) -> DataPoint:
        self.current_atr = average_true_range(self.candles(), self.atr_length)

        if self.ledger.should_collapse():
            collapse = self.ledger.collapse(timestamp)
            if collapse is not None:
                self.events.publish(CollapseEvent(collapse))

        self.current_quote = calculate_quotes(
            self.current_mid,
            self.current_atr,
            self.ledger.long_position.size,
            self.ledger.short_position.size,
            self.asset,
        )

        trade = self._simulate_market_activity(timestamp)
        if trade is not None:
            self.events.publish(TradeEvent(trade))

        unrealized = self.ledger.unrealized_pnl(self.current_mid)
        equity = self.ledger.equity(self.current_mid)
        point = DataPoint(
            timestamp=timestamp,
            tick=self.tick_count,
            mid=self.current_mid,
            bid=self.current_quote.bid,
            ask=self.current_quote.ask,
            spread=self.current_quote.spread,
            atr=self.current_atr,
            balance=self.ledger.balance,
            equity=equity,
            unrealized_pnl=unrealized,
            realized_pnl=self.ledger.realized_pnl,
            long_size=self.ledger.long_position.size,
            short_size=self.ledger.short_position.size,
        )
        self.history.append(point)
        self.events.publish(TickEvent(point))
        return point

    def _simulate_market_activity(self, timestamp) -> Optional[Trade]:
        """Random taker flow against the current quotes.

        A market buy lifts our ask (we go short); a market sell hits our bid
        (we go long). Fills are 50-100% of the affordable order size.
        """

        # no price yet (live feed still empty)
        if self.current_mid <= 0:
            return None
        if self.rng.next() > self.trading.fill_probability:
            return None
        is_buy = self.rng.next() < 0.5
        fill_fraction = 0.5 + self.rng.next() * 0.5
        if is_buy:
            side, price = Side.SHORT, self.current_quote.ask
        else:
            side, price = Side.LONG, self.current_quote.bid
        if price <= 0:
            return None
        size = self.ledger.order_size(price) * fill_fraction
        return self.ledger.enter_position(side, price, size, timestamp)

    async def start(self) -> None:
        """Begin ticking every :attr:`interval` seconds, first tick immediately."""

        if self.is_running:
            return
        self._state = EngineState.RUNNING
        LOGGER.info("Starting %s %s session (every %.1fs)", self.asset_name, self.mode, self.interval)
        if self.mode == "live":
            price = await self.feed.fetch(self.asset.coin_id)
            if price:
                self.current_mid = price
            if not self.is_running:
                return
        self._task = asyncio.create_task(self._run_loop())

    async def _run_loop(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while self.is_running:
            try:
                await self.tick()
            except Exception:
                LOGGER.exception("Tick %d failed; stopping", self.tick_count)
                self._state = EngineState.STOPPED
                raise
            deadline += self.interval
            delay = deadline - loop.time()
            if delay < 0:
                deadline = loop.time()
                delay = 0.0
            await asyncio.sleep(delay)

    def stop(self) -> None:
        """Cancel the schedule; safe to call repeatedly."""

        if self.is_running:
            self._state = EngineState.STOPPED
            LOGGER.info("Stopped after %d ticks", self.tick_count)
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def run_for(self, seconds: float) -> List[DataPoint]:
        """Start, let the schedule run for ``seconds``, then stop.

        A tick failure ends the run early and is re-raised here.
        """

        await self.start()
        task = self._task
        try:
            if task is not None:
                await asyncio.wait({task}, timeout=seconds)
            else:
                await asyncio.sleep(seconds)
        finally:
            self.stop()
        if task is not None and task.done() and not task.cancelled() and task.exception() is not None:
            raise task.exception()
        return list(self.history)

    def export_payload(self) -> Dict[str, Any]:
        return {
            "asset": self.asset_name,
            "mode": self.mode,
            "config": self.asset.model_dump(),
            "trades": [trade.to_dict() for trade in self.ledger.trades],
            "collapses": [collapse.to_dict() for collapse in self.ledger.collapses],
            "history": [point.to_dict() for point in self.history],
            "final_state": self.ledger.snapshot().to_dict(),
        }

    def export_csv(self) -> Optional[str]:
        return history_to_csv(list(self.history))

    def export_json(self) -> str:
        return payload_to_json(self.export_payload())


__all__ = ["MarketMakingSimulator", "UPDATABLE_ASSET_FIELDS"]
