"""Price path, candle aggregation, volatility and quoting."""

from mmsim.market.candles import Candle, CandleAggregator
from mmsim.market.price import REGIME_FACTORS, GBMPriceProcess
from mmsim.market.quotes import Quote, calculate_quotes, format_price, round_price
from mmsim.market.volatility import average_true_range, true_range

__all__ = [
    "Candle",
    "CandleAggregator",
    "GBMPriceProcess",
    "REGIME_FACTORS",
    "Quote",
    "calculate_quotes",
    "format_price",
    "round_price",
    "average_true_range",
    "true_range",
]
