"""Public spot/futures market data (klines and 24h ticker) with a DB-backed cache."""
import logging
import requests
from models.enums import AnalysisErrorKind, TradingType
from models.errors import AnalysisError
from utils.http_client import HTTPClient, APIError
from utils.rate_limiter import RateLimiter

logger = logging.getLogger("tradecycle.market_data")

# market -> (klines path, 24h ticker path)
ENDPOINTS = {
    TradingType.SPOT: ("/api/v3/klines", "/api/v3/ticker/24hr"),
    TradingType.FUTURES: ("/fapi/v1/klines", "/fapi/v1/ticker/24hr"),
}


class Candles:
    """Column view over a kline payload."""

    def __init__(self, klines):
        self.highs = [float(k[2]) for k in klines]
        self.lows = [float(k[3]) for k in klines]
        self.closes = [float(k[4]) for k in klines]
        self.volumes = [float(k[5]) for k in klines]

    def __len__(self):
        return len(self.closes)


class MarketDataClient:
    def __init__(self, base_url, market=TradingType.SPOT, cache=None, cache_ttl=60,
                 rate_limit=600, timeout=10, max_retries=2, http=None):
        self.market = TradingType(market)
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.http = http or HTTPClient(
            base_url=base_url,
            rate_limiter=RateLimiter(rate_limit),
            timeout=timeout,
            max_retries=max_retries,
        )

    def get_candles(self, symbol, interval="1h", limit=200):
        path = ENDPOINTS[self.market][0]
        klines = self._cached_get(
            f"{self.market.value}:klines:{symbol}:{interval}:{limit}",
            path, {"symbol": symbol, "interval": interval, "limit": limit}, symbol,
        )
        if not klines:
            raise AnalysisError(f"No {self.market.value} klines for {symbol}",
                                kind=AnalysisErrorKind.MARKET_DATA, symbol=symbol)
        return Candles(klines)

    def get_ticker(self, symbol):
        path = ENDPOINTS[self.market][1]
        ticker = self._cached_get(f"{self.market.value}:ticker:{symbol}", path, {"symbol": symbol}, symbol)
        if isinstance(ticker, list):
            ticker = ticker[0] if ticker else None
        if not ticker or "lastPrice" not in ticker:
            raise AnalysisError(f"No {self.market.value} ticker for {symbol}",
                                kind=AnalysisErrorKind.MARKET_DATA, symbol=symbol)
        return {
            "last_price": float(ticker["lastPrice"]),
            "change_pct": float(ticker.get("priceChangePercent", 0)),
            "volume": float(ticker.get("volume", 0)),
        }

    def _cached_get(self, key, path, params, symbol):
        if self.cache is not None:
            cached = self.cache.get_cache(key)
            if cached is not None:
                logger.debug(f"Cache hit: {key}")
                return cached

        try:
            data = self.http.get(path, params=params)
        except requests.exceptions.Timeout as e:
            raise AnalysisError(f"timeout fetching {path} for {symbol}: {e}",
                                kind=AnalysisErrorKind.TIMEOUT, symbol=symbol) from e
        except (APIError, requests.exceptions.RequestException) as e:
            raise AnalysisError(f"market data unavailable for {symbol}: {e}",
                                kind=AnalysisErrorKind.MARKET_DATA, symbol=symbol) from e

        if self.cache is not None and data:
            self.cache.set_cache(key, data, ttl_seconds=self.cache_ttl)
        return data
