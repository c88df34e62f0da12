"""EnhancedAnalyzer - layered, weighted multi-market analysis."""
import logging
from analysis import indicators as ind
from analysis.base import Analyzer
from models.analysis import AnalysisResult
from models.enums import AnalysisErrorKind, Signal, Strength, TradingType
from models.errors import AnalysisError, StrategyConstructionError

logger = logging.getLogger("tradecycle.analysis.enhanced")

LAYER_WEIGHTS = {
    "trend": 0.25,
    "momentum": 0.20,
    "volume": 0.15,
    "volatility": 0.10,
    "support_resistance": 0.15,
    "structure": 0.15,
}

SPOT_WEIGHT = 0.4
FUTURES_WEIGHT = 0.6


def _clamp(score):
    return min(10, max(0, score))


class EnhancedAnalyzer(Analyzer):
    """Score six indicator layers per market and combine them with fixed weights.

    Each layer yields 0..10 (5 is neutral). The weighted total maps to a
    signal, strength and confidence; target and stop-loss are set 2x and
    1.5x ATR away from the last price. For BOTH, spot and futures results
    are blended 40/60.
    """

    name = "enhanced"
    supports_trading_type = True

    def __init__(self, spot_data, futures_data, store=None, interval="1h", limit=200):
        if spot_data is None or futures_data is None:
            raise StrategyConstructionError("EnhancedAnalyzer needs both spot and futures market data")
        self.markets = {TradingType.SPOT: spot_data, TradingType.FUTURES: futures_data}
        self.store = store
        self.interval = interval
        self.limit = limit

    def analyze(self, symbol, trading_type=TradingType.BOTH):
        trading_type = TradingType(trading_type)

        if trading_type is TradingType.BOTH:
            try:
                spot = self.analyze_market(symbol, TradingType.SPOT)
            except AnalysisError as e:
                if e.kind is not AnalysisErrorKind.MARKET_DATA:
                    raise
                logger.warning(f"Skipping spot analysis for {symbol}: {e}", extra={"category": "AI"})
                result = self.analyze_market(symbol, TradingType.FUTURES)
            else:
                futures = self.analyze_market(symbol, TradingType.FUTURES)
                result = self.combine(spot, futures)
        else:
            result = self.analyze_market(symbol, trading_type)

        if self.store is not None:
            result.signal_id = self.store.save_signal(result)
        logger.info(
            f"Generated {result.signal.value} signal for {symbol} ({result.trading_type.value}) "
            f"with {result.confidence_pct}% confidence",
            extra={"category": "AI"},
        )
        return result

    def analyze_market(self, symbol, market):
        data = self.markets[market]
        candles = data.get_candles(symbol, self.interval, self.limit)
        ticker = data.get_ticker(symbol)
        indicators = self.compute_indicators(candles)
        return self.evaluate(symbol, market, indicators, ticker["last_price"], ticker["change_pct"])

    @staticmethod
    def compute_indicators(candles):
        closes, highs, lows, volumes = candles.closes, candles.highs, candles.lows, candles.volumes
        m = ind.macd(closes)
        bb = ind.bollinger(closes, 20, 2)
        sr = ind.support_resistance(highs, lows, closes)
        # ZeroDivisionError on a zero-priced series
        bb_width = (bb["upper"] - bb["lower"]) / bb["middle"]
        return {
            "sma_20": ind.sma(closes, 20),
            "sma_50": ind.sma(closes, 50),
            "sma_200": ind.sma(closes, 200),
            "ema_12": ind.ema(closes, 12),
            "ema_26": ind.ema(closes, 26),
            "rsi": ind.rsi(closes, 14),
            "rsi_fast": ind.rsi(closes, 7),
            "stoch_k": ind.stochastic_k(highs, lows, closes, 14),
            "macd": m["macd"],
            "macd_signal": m["signal"],
            "macd_histogram": m["histogram"],
            "bb_upper": bb["upper"],
            "bb_middle": bb["middle"],
            "bb_lower": bb["lower"],
            "bb_width": bb_width,
            "volume_ratio": ind.volume_ratio(volumes, 20),
            "obv": ind.obv(closes, volumes),
            "atr": ind.atr(highs, lows, closes, 14),
            "adx": ind.adx(highs, lows, closes, 14),
            "cci": ind.cci(highs, lows, closes, 20),
            "williams_r": ind.williams_r(highs, lows, closes, 14),
            "support_level": sr["support"],
            "resistance_level": sr["resistance"],
            "trend_strength": ind.trend_strength(closes),
            "volatility": ind.volatility(closes),
            "momentum": ind.momentum(closes),
        }

    def evaluate(self, symbol, market, indicators, price, change_24h):
        scores = {
            "trend": self._trend(indicators, price),
            "momentum": self._momentum(indicators),
            "volume": self._volume(indicators),
            "volatility": self._volatility(indicators),
            "support_resistance": self._support_resistance(indicators, price),
            "structure": self._structure(indicators, change_24h),
        }
        total = sum(scores[k] * w for k, w in LAYER_WEIGHTS.items())
        signal, strength, confidence = self.classify(total)

        target = stop = None
        atr = indicators["atr"]
        if signal.is_buy:
            target, stop = price + atr * 2, price - atr * 1.5
        elif signal.is_sell:
            target, stop = price - atr * 2, price + atr * 1.5

        return AnalysisResult(
            symbol=symbol,
            signal=signal,
            confidence=round(min(1.0, max(0.0, confidence)), 3),
            strength=strength,
            trading_type=market,
            price=price,
            score=round(total, 3),
            target_price=target,
            stop_loss_price=stop,
            indicators=dict(indicators, price_change_24h=change_24h, scores=scores),
            reasons=[f"{k}={v}" for k, v in scores.items()],
        )

    @staticmethod
    def classify(total):
        if total >= 7:
            return Signal.STRONG_BUY, Strength.VERY_STRONG, min(0.95, 0.7 + (total - 7) * 0.05)
        if total >= 5:
            return Signal.BUY, Strength.STRONG, 0.7 + (total - 5) * 0.1
        if total >= 3:
            return Signal.HOLD, Strength.MODERATE, 0.5 + (total - 3) * 0.1
        if total >= 1:
            return Signal.SELL, Strength.STRONG, 0.7 + (1 - total) * 0.1
        return Signal.STRONG_SELL, Strength.VERY_STRONG, min(0.95, 0.7 + (1 - total) * 0.05)

    @staticmethod
    def combine(spot, futures):
        """Blend spot and futures results; disagreement collapses to HOLD."""
        score = spot.score * SPOT_WEIGHT + futures.score * FUTURES_WEIGHT
        confidence = spot.confidence * SPOT_WEIGHT + futures.confidence * FUTURES_WEIGHT

        pair = {spot.signal, futures.signal}
        if spot.signal is futures.signal:
            signal, strength = spot.signal, spot.strength or Strength.MODERATE
        elif pair == {Signal.BUY, Signal.STRONG_BUY}:
            signal, strength = Signal.BUY, Strength.STRONG
        elif pair == {Signal.SELL, Signal.STRONG_SELL}:
            signal, strength = Signal.SELL, Strength.STRONG
        else:
            signal, strength = Signal.HOLD, Strength.MODERATE

        def _avg(a, b):
            values = [v for v in (a, b) if v is not None]
            return sum(values) / len(values) if values else None

        return AnalysisResult(
            symbol=futures.symbol,
            signal=signal,
            confidence=round(confidence, 3),
            strength=strength,
            trading_type=TradingType.BOTH,
            price=futures.price,
            score=round(score, 3),
            target_price=_avg(spot.target_price, futures.target_price),
            stop_loss_price=_avg(spot.stop_loss_price, futures.stop_loss_price),
            indicators={"spot_total": spot.score, "futures_total": futures.score,
                        "volatility": futures.indicators.get("volatility", 0.0)},
            reasons=[f"spot {spot.signal.value}", f"futures {futures.signal.value}"],
        )

    # --- Layers (each 0..10) ---

    @staticmethod
    def _trend(i, price):
        score = 0
        if i["sma_20"] > i["sma_50"]:
            score += 2
        if i["sma_50"] > i["sma_200"]:
            score += 2
        if price > i["sma_20"]:
            score += 1
        if price > i["sma_50"]:
            score += 1
        if i["ema_12"] > i["ema_26"]:
            score += 1
        if i["adx"] > 25:
            score += 1
        if i["adx"] > 40:
            score += 1
        return _clamp(score)

    @staticmethod
    def _momentum(i):
        score = 5
        if i["rsi"] < 30:
            score += 3
        elif i["rsi"] < 40:
            score += 1
        elif i["rsi"] > 70:
            score -= 3
        elif i["rsi"] > 60:
            score -= 1
        score += 2 if i["macd"] > i["macd_signal"] else -2
        score += 1 if i["macd_histogram"] > 0 else -1
        if i["stoch_k"] < 20:
            score += 2
        elif i["stoch_k"] > 80:
            score -= 2
        return _clamp(score)

    @staticmethod
    def _volume(i):
        score = 5
        ratio = i["volume_ratio"]
        if ratio > 2.0:
            score += 3
        elif ratio > 1.5:
            score += 2
        elif ratio > 1.2:
            score += 1
        elif ratio < 0.5:
            score -= 2
        score += 1 if i["obv"] > 0 else -1
        return _clamp(score)

    @staticmethod
    def _volatility(i):
        score = 5
        if i["bb_width"] > 0.1:
            score += 2
        elif i["bb_width"] < 0.02:
            score -= 1
        if i["atr"] > i["sma_20"] * 0.05:
            score += 1
        return _clamp(score)

    @staticmethod
    def _support_resistance(i, price):
        score = 5
        support, resistance = i["support_level"], i["resistance_level"]
        if price <= 0 or support <= 0 or resistance <= 0 or support >= resistance:
            return score
        if (price - support) / support < 0.02:
            score += 3
        elif (resistance - price) / price < 0.02:
            score -= 3
        if price <= i["bb_lower"]:
            score += 2
        elif price >= i["bb_upper"]:
            score -= 2
        return _clamp(score)

    @staticmethod
    def _structure(i, change_24h):
        score = 5
        if change_24h > 5:
            score += 3
        elif change_24h > 2:
            score += 1
        elif change_24h < -5:
            score -= 3
        elif change_24h < -2:
            score -= 1
        if i["cci"] > 100:
            score += 1
        elif i["cci"] < -100:
            score -= 1
        if i["williams_r"] < -80:
            score += 2
        elif i["williams_r"] > -20:
            score -= 2
        return _clamp(score)
