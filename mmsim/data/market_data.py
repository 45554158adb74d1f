"""Market data helpers (live price fetch)."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Any, Callable, List, Optional

import requests

from mmsim.market.candles import Candle, CandleAggregator
from mmsim.utils.logging import get_logger

COINGECKO_URL = "https://api.coingecko.com/api/v3/simple/price"
HEADERS = {"Accept": "application/json"}
USER_AGENT = "mmsim/0.1"

LOGGER = get_logger(__name__)


def fetch_spot_price(asset: str = "bitcoin", currency: str = "usd", timeout: float = 10.0) -> float:
    """Fetch current spot price via CoinGecko."""

    params = {"ids": asset, "vs_currencies": currency}
    headers = dict(HEADERS, **{"User-Agent": USER_AGENT})
    response = requests.get(COINGECKO_URL, params=params, headers=headers, timeout=timeout)
    response.raise_for_status()
    data: dict[str, Any] = response.json()
    try:
        value = data[asset][currency]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Unexpected response format: {data}") from exc
    if not value:
        raise ValueError(f"Empty price for {asset}: {data}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Non-numeric price for {asset}: {value!r}") from exc


class LivePriceFeed:
    """Rate-limited, non-blocking wrapper around :func:`fetch_spot_price`.

    * Requests closer together than ``min_interval`` seconds return the
      cached price without touching the network.
    * At most one request is in flight; overlapping callers share it, and
      a caller whose ``timeout`` elapses gets the cached price while the
      request completes in the background.
    * Failures are logged and leave the cached price in place.

    Each fresh price is folded into the feed's own candle history.
    """

    def __init__(
        self,
        candle_duration_ms: int = 5_000,
        max_candles: int = 50,
        min_interval: float = 3.0,
        fetcher: Callable[[str], float] = fetch_spot_price,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.candles = CandleAggregator(candle_duration_ms, max_candles)
        self.min_interval = min_interval
        self._fetcher = fetcher
        self._clock = clock
        self.last_price: Optional[float] = None
        self._last_fetch = float("-inf")
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def is_loading(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def history(self) -> List[Candle]:
        return self.candles.candles

    async def fetch(self, coin_id: str, timeout: Optional[float] = None) -> Optional[float]:
        """Return the freshest available price for ``coin_id`` (or ``None``)."""

        if self.is_loading:
            task = self._in_flight
        else:
            now = time.monotonic()
            if now - self._last_fetch < self.min_interval:
                return self.last_price
            self._last_fetch = now
            task = asyncio.create_task(self._request(coin_id))
            self._in_flight = task
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            LOGGER.debug("Price request for %s still pending; using cached price", coin_id)
        return self.last_price

    async def _request(self, coin_id: str) -> None:
        try:
            price = await asyncio.to_thread(self._fetcher, coin_id)
        except (requests.RequestException, ValueError) as exc:
            LOGGER.warning("Live price unavailable for %s: %s", coin_id, exc)
            return
        self.last_price = price
        self.candles.update(price, self._clock())

    def reset(self) -> None:
        if self.is_loading:
            self._in_flight.cancel()
        self._in_flight = None
        self.last_price = None
        self._last_fetch = float("-inf")
        self.candles.reset()


__all__ = ["fetch_spot_price", "LivePriceFeed", "COINGECKO_URL"]
