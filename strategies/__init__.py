"""Execution strategies."""
from strategies.base import ExecutionStrategy, StrategyRunSummary
from strategies.basic import BasicStrategy
from strategies.enhanced import EnhancedStrategy, RiskManager
from strategies.paper import PaperBroker
