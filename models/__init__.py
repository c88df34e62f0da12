"""Data models."""
from models.enums import (
    TradingType, Signal, Strength, Priority, NotificationType, NotificationCategory,
    LogLevel, AnalysisErrorKind, CycleOutcome,
)
from models.settings import OperationalSettings
from models.instruments import TradableInstrument
from models.analysis import AnalysisResult
from models.notifications import Notification
from models.trades import Trade, Position
