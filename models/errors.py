"""Exception taxonomy for the trading cycle."""
from models.enums import AnalysisErrorKind


class TradeCycleError(Exception):
    """Base class for every error raised by the orchestrator."""


class ConfigurationError(TradeCycleError):
    """Settings record absent, config file invalid or required environment missing."""


class ConnectivityError(TradeCycleError):
    """A backing store could not be reached at cycle start."""


class StrategyConstructionError(TradeCycleError):
    """An execution strategy or analyzer could not be initialized."""


class StrategyRunError(TradeCycleError):
    """The selected strategy's primary run failed."""

    def __init__(self, strategy_name, original=None):
        super().__init__(f"{strategy_name} run failed: {original}")
        self.strategy_name = strategy_name
        self.original = original


class AnalysisError(TradeCycleError):
    """Analysis of a single instrument failed, tagged with a kind."""

    def __init__(self, message, kind=AnalysisErrorKind.UNKNOWN, symbol=None):
        super().__init__(message)
        self.kind = AnalysisErrorKind(kind)
        self.symbol = symbol


class NotificationCreationError(TradeCycleError):
    """The notification sink rejected a write."""


class RetentionDeleteError(TradeCycleError):
    """A retention policy's delete failed."""

    def __init__(self, policy_name, original=None):
        super().__init__(f"Retention policy {policy_name} failed: {original}")
        self.policy_name = policy_name
        self.original = original
