import asyncio
import threading
import time

import pytest
import requests

from mmsim.config import load_config
from mmsim.data.market_data import LivePriceFeed, fetch_spot_price
from mmsim.engine.simulation import MarketMakingSimulator
from mmsim.engine.state import EngineState


class DummyResponse:
    def __init__(self, payload: dict[str, float]) -> None:
        self._payload = payload

    def raise_for_status(self) -> None:  # pragma: no cover - simple stub
        return

    def json(self) -> dict[str, float]:
        return self._payload


class ScriptedFetcher:
    """Return queued prices (or raise queued exceptions), counting calls."""

    def __init__(self, *results, delay: float = 0.0) -> None:
        self._results = list(results)
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, coin_id: str) -> float:
        with self._lock:
            self.calls += 1
            result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if self.delay:
            time.sleep(self.delay)
        if isinstance(result, Exception):
            raise result
        return result


def test_fetch_spot_price_parses(monkeypatch):
    def fake_get(url, params, headers, timeout):  # type: ignore[override]
        assert "bitcoin" in params["ids"]
        assert params["vs_currencies"] == "usd"
        return DummyResponse({"bitcoin": {"usd": 64000}})

    monkeypatch.setattr("mmsim.data.market_data.requests.get", fake_get)
    price = fetch_spot_price()
    assert price == pytest.approx(64000.0)


def test_fetch_spot_price_uses_coin_id(monkeypatch):
    def fake_get(url, params, headers, timeout):  # type: ignore[override]
        return DummyResponse({params["ids"]: {"usd": 9.25}})

    monkeypatch.setattr("mmsim.data.market_data.requests.get", fake_get)
    assert fetch_spot_price("aptos") == pytest.approx(9.25)


def test_fetch_spot_price_raises_on_bad_payload(monkeypatch):
    def fake_get(url, params, headers, timeout):  # type: ignore[override]
        return DummyResponse({"unexpected": {"usd": 1}})

    monkeypatch.setattr("mmsim.data.market_data.requests.get", fake_get)
    with pytest.raises(ValueError):
        fetch_spot_price()


def test_fetch_spot_price_raises_on_empty_price(monkeypatch):
    def fake_get(url, params, headers, timeout):  # type: ignore[override]
        return DummyResponse({"bitcoin": {"usd": 0}})

    monkeypatch.setattr("mmsim.data.market_data.requests.get", fake_get)
    with pytest.raises(ValueError):
        fetch_spot_price()


def test_feed_rate_limits_requests() -> None:
    fetcher = ScriptedFetcher(100.0, 200.0)
    feed = LivePriceFeed(min_interval=60.0, fetcher=fetcher)

    async def scenario():
        return await feed.fetch("bitcoin"), await feed.fetch("bitcoin")

    assert asyncio.run(scenario()) == (100.0, 100.0)
    assert fetcher.calls == 1


def test_feed_keeps_last_price_on_failure() -> None:
    fetcher = ScriptedFetcher(100.0, requests.ConnectionError("down"), ValueError("empty"))
    feed = LivePriceFeed(min_interval=0.0, fetcher=fetcher)

    async def scenario():
        return [await feed.fetch("bitcoin") for _ in range(3)]

    assert asyncio.run(scenario()) == [100.0, 100.0, 100.0]
    assert fetcher.calls == 3
    assert feed.last_price == 100.0


def test_feed_shares_in_flight_request() -> None:
    fetcher = ScriptedFetcher(321.0, delay=0.05)
    feed = LivePriceFeed(min_interval=0.0, fetcher=fetcher)

    async def scenario():
        return await asyncio.gather(feed.fetch("bitcoin"), feed.fetch("bitcoin"))

    assert asyncio.run(scenario()) == [321.0, 321.0]
    assert fetcher.calls == 1


def test_feed_timeout_returns_cached_price() -> None:
    fetcher = ScriptedFetcher(500.0, delay=0.2)
    feed = LivePriceFeed(min_interval=0.0, fetcher=fetcher)

    async def scenario():
        early = await feed.fetch("bitcoin", timeout=0.01)
        loading = feed.is_loading
        await asyncio.sleep(0.4)
        return early, loading, feed.last_price

    assert asyncio.run(scenario()) == (None, True, 500.0)


def test_live_tick_uses_fetched_price() -> None:
    cfg = load_config(overrides={"simulation": {"mode": "live", "asset": "ETH"}})
    fetcher = ScriptedFetcher(3_000.0, requests.Timeout("slow"), 3_010.0)
    feed = LivePriceFeed(min_interval=0.0, fetcher=fetcher)
    engine = MarketMakingSimulator(cfg, feed=feed)

    async def scenario():
        return [await engine.tick() for _ in range(3)]

    points = asyncio.run(scenario())
    assert [point.mid for point in points] == [3_000.0, 3_000.0, 3_010.0]
    assert [point.tick for point in points] == [1, 2, 3]
    assert all(point.bid <= point.ask for point in points)


def test_live_session_runs_and_stops() -> None:
    cfg = load_config(
        overrides={
            "simulation": {"mode": "live"},
            "trading": {"live_interval_ms": 20, "live_min_fetch_interval_s": 0.0},
        }
    )
    fetcher = ScriptedFetcher(64_000.0)
    feed = LivePriceFeed(min_interval=0.0, fetcher=fetcher)
    engine = MarketMakingSimulator(cfg, feed=feed)

    history = asyncio.run(engine.run_for(0.15))

    assert history
    assert all(point.mid == 64_000.0 for point in history)
    assert engine.state is EngineState.STOPPED


def test_fetch_spot_price_rejects_non_numeric_price(monkeypatch):
    def fake_get(url, params, headers, timeout):  # type: ignore[override]
        return DummyResponse({"bitcoin": {"usd": {"nested": 1}}})

    monkeypatch.setattr("mmsim.data.market_data.requests.get", fake_get)
    with pytest.raises(ValueError):
        fetch_spot_price()


def test_feed_absorbs_non_numeric_payload(monkeypatch):
    def fake_get(url, params, headers, timeout):  # type: ignore[override]
        return DummyResponse({"bitcoin": {"usd": ["64000"]}})

    monkeypatch.setattr("mmsim.data.market_data.requests.get", fake_get)
    feed = LivePriceFeed(min_interval=0.0)

    async def scenario():
        price = await feed.fetch("bitcoin")
        return price, feed._in_flight

    price, task = asyncio.run(scenario())
    assert price is None
    assert task.done() and task.exception() is None
