"""Enums for instruments, signals, notifications, log levels and cycle outcomes."""
from enum import Enum


class TradingType(str, Enum):
    SPOT = "SPOT"
    FUTURES = "FUTURES"
    BOTH = "BOTH"


class Signal(str, Enum):
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"

    @property
    def is_buy(self):
        return self in (Signal.BUY, Signal.STRONG_BUY)

    @property
    def is_sell(self):
        return self in (Signal.SELL, Signal.STRONG_SELL)


class Strength(str, Enum):
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"
    VERY_STRONG = "VERY_STRONG"


class Priority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self):
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.NORMAL: 1, Priority.HIGH: 2, Priority.URGENT: 3}


class NotificationType(str, Enum):
    SIGNAL = "SIGNAL"
    TRADE = "TRADE"
    ERROR = "ERROR"


class NotificationCategory(str, Enum):
    AI = "AI"
    TRADING = "TRADING"
    SYSTEM = "SYSTEM"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


CRITICAL_LOG_LEVELS = (LogLevel.ERROR.value, LogLevel.CRITICAL.value)


class AnalysisErrorKind(str, Enum):
    TIMEOUT = "TIMEOUT"
    DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
    MARKET_DATA = "MARKET_DATA"
    UNKNOWN = "UNKNOWN"


class CycleOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"
    ERRORED = "ERRORED"

    @property
    def exit_code(self):
        return 1 if self is CycleOutcome.ERRORED else 0
