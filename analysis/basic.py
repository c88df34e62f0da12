"""BasicAnalyzer - single-market, score-based signal generation."""
import logging
from analysis import indicators as ind
from analysis.base import Analyzer
from models.analysis import AnalysisResult
from models.enums import Signal
from models.errors import StrategyConstructionError

logger = logging.getLogger("tradecycle.analysis.basic")


class BasicAnalyzer(Analyzer):
    """Score SMA trend, RSI, MACD, Bollinger position, volume and 24h momentum.

    A score of +5 or more is a BUY, -5 or less a SELL, anything in between a
    HOLD at fixed 0.3 confidence. Strength is left unset.
    """

    name = "basic"
    supports_trading_type = False

    def __init__(self, market_data, store=None, interval="1h", limit=100):
        if market_data is None:
            raise StrategyConstructionError("BasicAnalyzer needs a market data client")
        self.market_data = market_data
        self.store = store
        self.interval = interval
        self.limit = limit

    def analyze(self, symbol):
        candles = self.market_data.get_candles(symbol, self.interval, self.limit)
        ticker = self.market_data.get_ticker(symbol)

        indicators = self.compute_indicators(candles)
        result = self.score(symbol, indicators, ticker["last_price"], ticker["change_pct"])

        if self.store is not None:
            result.signal_id = self.store.save_signal(result)
        logger.info(
            f"Generated {result.signal.value} signal for {symbol} with {result.confidence_pct}% confidence",
            extra={"category": "AI"},
        )
        return result

    @staticmethod
    def compute_indicators(candles):
        m = ind.macd(candles.closes)
        bb = ind.bollinger(candles.closes, 20, 2)
        return {
            "sma_20": ind.sma(candles.closes, 20),
            "sma_50": ind.sma(candles.closes, 50),
            "rsi": ind.rsi(candles.closes, 14),
            "macd": m["macd"],
            "macd_signal": m["signal"],
            "macd_histogram": m["histogram"],
            "bb_upper": bb["upper"],
            "bb_middle": bb["middle"],
            "bb_lower": bb["lower"],
            "volume_ratio": ind.volume_ratio(candles.volumes, 20),
        }

    @staticmethod
    def score(symbol, indicators, price, change_24h):
        score = 0
        reasons = []

        if indicators["sma_20"] > indicators["sma_50"]:
            score += 2
            reasons.append("SMA20 > SMA50 (uptrend)")
        else:
            score -= 2
            reasons.append("SMA20 < SMA50 (downtrend)")

        if price > indicators["sma_20"]:
            score += 1
            reasons.append("Price above SMA20")
        else:
            score -= 1
            reasons.append("Price below SMA20")

        rsi = indicators["rsi"]
        if rsi < 30:
            score += 3
            reasons.append("RSI oversold (<30)")
        elif rsi < 40:
            score += 1
            reasons.append("RSI low (<40)")
        elif rsi > 70:
            score -= 3
            reasons.append("RSI overbought (>70)")
        elif rsi > 60:
            score -= 1
            reasons.append("RSI high (>60)")

        if indicators["macd"] > indicators["macd_signal"]:
            score += 2
            reasons.append("MACD bullish")
        else:
            score -= 2
            reasons.append("MACD bearish")

        if indicators["macd_histogram"] > 0:
            score += 1
            reasons.append("MACD histogram positive")
        else:
            score -= 1
            reasons.append("MACD histogram negative")

        if price <= indicators["bb_lower"]:
            score += 2
            reasons.append("Price at lower Bollinger band")
        elif price >= indicators["bb_upper"]:
            score -= 2
            reasons.append("Price at upper Bollinger band")

        volume_ratio = indicators["volume_ratio"]
        if volume_ratio > 1.5:
            if change_24h > 0:
                score += 2
                reasons.append("High volume + positive price change")
            else:
                score -= 2
                reasons.append("High volume + negative price change")

        if change_24h > 5:
            score += 2
            reasons.append("Strong positive momentum (>5%)")
        elif change_24h > 2:
            score += 1
            reasons.append("Moderate positive momentum (>2%)")
        elif change_24h < -5:
            score -= 2
            reasons.append("Strong negative momentum (<-5%)")
        elif change_24h < -2:
            score -= 1
            reasons.append("Moderate negative momentum (<-2%)")

        if score >= 5:
            signal = Signal.BUY
            confidence = min(score / 10, 1.0)
        elif score <= -5:
            signal = Signal.SELL
            confidence = min(abs(score) / 10, 1.0)
        else:
            signal = Signal.HOLD
            confidence = 0.3

        if confidence > 0.7:
            if (signal is Signal.BUY and rsi > 70) or (signal is Signal.SELL and rsi < 30):
                confidence *= 0.7
                reasons.append("Confidence reduced due to conflicting RSI")
            if volume_ratio < 1.2:
                confidence *= 0.8
                reasons.append("Confidence reduced due to low volume")

        return AnalysisResult(
            symbol=symbol,
            signal=signal,
            confidence=round(confidence, 3),
            price=price,
            score=score,
            indicators=dict(indicators, price_change_24h=change_24h),
            reasons=reasons,
        )
