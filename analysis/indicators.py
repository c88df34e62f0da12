"""Technical indicators over close/high/low/volume series.

All functions accept plain lists or numpy arrays and return floats. Short
series fall back to neutral values instead of raising, so a thin kline
history degrades the score rather than aborting the analysis.
"""
import numpy as np


def _arr(values):
    return np.asarray(values, dtype=float)


def sma(prices, period):
    prices = _arr(prices)
    if len(prices) < period or period <= 0:
        return 0.0
    return float(prices[-period:].mean())


def ema(prices, period):
    prices = _arr(prices)
    if len(prices) == 0:
        return 0.0
    if len(prices) < period:
        return float(prices.mean())
    k = 2 / (period + 1)
    value = prices[0]
    for price in prices[1:]:
        value = price * k + value * (1 - k)
    return float(value)


def rsi(prices, period=14):
    prices = _arr(prices)
    if len(prices) < period + 1:
        return 50.0
    changes = np.diff(prices)[-period:]
    avg_gain = changes.clip(min=0).sum() / period
    avg_loss = -changes.clip(max=0).sum() / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def macd(prices, fast=12, slow=26, signal=9):
    """MACD line, signal line (EMA of the MACD series) and histogram."""
    prices = _arr(prices)
    if len(prices) < slow:
        return {"macd": 0.0, "signal": 0.0, "histogram": 0.0}
    series = [ema(prices[:i], fast) - ema(prices[:i], slow) for i in range(slow, len(prices) + 1)]
    line = series[-1]
    signal_line = ema(series, signal)
    return {"macd": float(line), "signal": float(signal_line), "histogram": float(line - signal_line)}


def bollinger(prices, period=20, num_std=2):
    prices = _arr(prices)
    if len(prices) == 0:
        return {"upper": 0.0, "middle": 0.0, "lower": 0.0}
    if len(prices) < period:
        middle = float(prices.mean())
        return {"upper": middle, "middle": middle, "lower": middle}
    window = prices[-period:]
    middle = float(window.mean())
    std = float(window.std())
    return {"upper": middle + std * num_std, "middle": middle, "lower": middle - std * num_std}


def true_ranges(highs, lows, closes):
    highs, lows, closes = _arr(highs), _arr(lows), _arr(closes)
    prev_close = closes[:-1]
    return np.maximum.reduce([
        highs[1:] - lows[1:],
        np.abs(highs[1:] - prev_close),
        np.abs(lows[1:] - prev_close),
    ])


def atr(highs, lows, closes, period=14):
    if len(highs) < period + 1:
        return 0.0
    return float(true_ranges(highs, lows, closes)[-period:].mean())


def adx(highs, lows, closes, period=14):
    """Simplified directional index from averaged +DM/-DM over ATR."""
    highs, lows = _arr(highs), _arr(lows)
    if len(highs) < period + 1:
        return 0.0
    up = np.diff(highs)
    down = -np.diff(lows)
    plus_dm = np.where((up > down) & (up > 0), up, 0.0)[-period:].sum() / period
    minus_dm = np.where((down > up) & (down > 0), down, 0.0)[-period:].sum() / period
    average_range = atr(highs, lows, closes, period)
    if average_range == 0:
        return 0.0
    plus_di = plus_dm / average_range * 100
    minus_di = minus_dm / average_range * 100
    if plus_di + minus_di == 0:
        return 0.0
    return float(abs(plus_di - minus_di) / (plus_di + minus_di) * 100)


def stochastic_k(highs, lows, closes, period=14):
    highs, lows, closes = _arr(highs), _arr(lows), _arr(closes)
    if len(highs) < period:
        return 50.0
    highest = highs[-period:].max()
    lowest = lows[-period:].min()
    if highest == lowest:
        return 50.0
    return float((closes[-1] - lowest) / (highest - lowest) * 100)


def williams_r(highs, lows, closes, period=14):
    highs, lows, closes = _arr(highs), _arr(lows), _arr(closes)
    if len(highs) < period:
        return -50.0
    highest = highs[-period:].max()
    lowest = lows[-period:].min()
    if highest == lowest:
        return -50.0
    return float((highest - closes[-1]) / (highest - lowest) * -100)


def cci(highs, lows, closes, period=20):
    if len(highs) < period:
        return 0.0
    typical = (_arr(highs) + _arr(lows) + _arr(closes)) / 3
    window = typical[-period:]
    mean = window.mean()
    deviation = np.abs(window - mean).mean()
    if deviation == 0:
        return 0.0
    return float((typical[-1] - mean) / (0.015 * deviation))


def obv(prices, volumes):
    prices, volumes = _arr(prices), _arr(volumes)
    if len(prices) < 2:
        return 0.0
    direction = np.sign(np.diff(prices))
    return float((direction * volumes[1:]).sum())


def support_resistance(highs, lows, closes, lookback=50):
    if len(highs) == 0 or len(lows) == 0 or len(closes) == 0:
        return {"support": 0.0, "resistance": 0.0}
    resistance = float(_arr(highs)[-lookback:].max())
    support = float(_arr(lows)[-lookback:].min())
    if support <= 0 or resistance <= 0 or support >= resistance:
        avg = float(_arr(closes).mean())
        return {"support": avg * 0.95, "resistance": avg * 1.05}
    return {"support": support, "resistance": resistance}


def trend_strength(prices, window=20):
    prices = _arr(prices)
    if len(prices) < window:
        return 0.5
    recent = prices[-window:]
    avg = recent.mean()
    if avg <= 0:
        return 0.5
    slope = (recent[-1] - recent[0]) / (window - 1)
    return float(min(1.0, abs(slope / avg)))


def volatility(prices, min_points=20):
    """Sample standard deviation of simple returns."""
    prices = _arr(prices)
    if len(prices) < min_points:
        return 0.0
    prev = prices[:-1]
    valid = prev > 0
    returns = (prices[1:][valid] - prev[valid]) / prev[valid]
    if len(returns) <= 1:
        return 0.0
    return float(returns.std(ddof=1))


def momentum(prices, window=10):
    prices = _arr(prices)
    if len(prices) < window:
        return 0.0
    recent = prices[-window:]
    if recent[0] <= 0:
        return 0.0
    return float((recent[-1] - recent[0]) / recent[0])


def volume_ratio(volumes, period=20):
    volumes = _arr(volumes)
    if len(volumes) == 0:
        return 1.0
    avg = volumes[-period:].sum() / period
    if avg <= 0:
        return 1.0
    return float(volumes[-1] / avg)
