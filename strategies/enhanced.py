"""EnhancedStrategy - priority-ordered, risk-managed execution with daily limits."""
import logging
from datetime import timedelta
from models.database import utcnow
from models.errors import StrategyConstructionError
from strategies.base import ExecutionStrategy, StrategyRunSummary

logger = logging.getLogger("tradecycle.strategies.enhanced")


class RiskManager:
    """Per-trade risk checks on top of the strategy gates."""

    def __init__(self, db, max_open_positions=3, max_volatility=0.1):
        self.db = db
        self.max_open_positions = max_open_positions
        self.max_volatility = max_volatility

    def can_open(self, symbol, result):
        if self.db.get_position(symbol) is not None:
            return False, "position already open"
        if self.db.count_open_positions() >= self.max_open_positions:
            return False, f"portfolio already holds {self.max_open_positions} positions"
        volatility = result.indicators.get("volatility", 0.0) or 0.0
        if volatility > self.max_volatility:
            return False, f"volatility {volatility:.3f} above {self.max_volatility}"
        return True, ""


class EnhancedStrategy(ExecutionStrategy):
    name = "enhanced"
    cooldown = timedelta(hours=2)
    item_delay = 2.0

    def __init__(self, db, settings, analyzer, broker, limiter=None, publisher=None, risk_manager=None,
                 analysis_call=None, max_items=None):
        if settings.max_daily_trades < 1:
            raise StrategyConstructionError("max_daily_trades must be >= 1")
        if settings.max_concurrent_positions < 1:
            raise StrategyConstructionError("max_concurrent_positions must be >= 1")
        if not 0 < settings.ai_confidence_threshold <= 1:
            raise StrategyConstructionError("ai_confidence_threshold must be within (0, 1]")
        super().__init__(db, settings, analyzer, broker, limiter=limiter, publisher=publisher,
                         analysis_call=analysis_call, max_items=max_items)
        self.risk_manager = risk_manager or RiskManager(db)

    def instruments(self):
        # same working set as the signal pass, processed highest priority first
        return sorted(super().instruments(), key=lambda i: -i.ai_priority)

    def trades_today(self):
        midnight = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        return self.db.count_trades_since(midnight)

    def run(self):
        summary = StrategyRunSummary(strategy=self.name)

        today = self.trades_today()
        if today >= self.settings.max_daily_trades:
            logger.warning(f"Daily trade limit reached: {today}")
            summary.halted_reason = "daily trade limit reached"
            return summary

        instruments = self.instruments()
        if not instruments:
            logger.warning("No active trading pairs found")
            return summary

        logger.info(f"Enhanced strategy started: {len(instruments)} active trading pairs")
        for instrument in instruments:
            self.process(instrument, summary)
            self.limiter.wait()

        logger.info(
            f"Enhanced strategy completed: {len(summary.analyzed)} analyzed, "
            f"{len(summary.trades)} trades, {len(summary.errors)} errors"
        )
        return summary

    def should_execute(self, result, instrument):
        ok, reason = super().should_execute(result, instrument)
        if not ok:
            return ok, reason
        if self.trades_today() >= self.settings.max_daily_trades:
            return False, "daily trade limit reached"
        open_positions = self.db.count_open_positions()
        if open_positions >= self.settings.max_concurrent_positions:
            return False, f"maximum concurrent positions reached: {open_positions}"
        ok, reason = self.risk_manager.can_open(result.symbol, result)
        if not ok:
            return False, f"risk manager rejected trade: {reason}"
        return True, ""

    def execute(self, result, instrument):
        trade = super().execute(result, instrument)
        if trade is not None:
            self.publish_trade(trade, result)
        return trade
