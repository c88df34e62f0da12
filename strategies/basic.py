"""BasicStrategy - eligible instruments in retrieval order, shared gates, 1h cooldown."""
import logging
from datetime import timedelta
from strategies.base import ExecutionStrategy, StrategyRunSummary

logger = logging.getLogger("tradecycle.strategies.basic")


class BasicStrategy(ExecutionStrategy):
    name = "basic"
    cooldown = timedelta(hours=1)
    item_delay = 1.0

    def run(self):
        summary = StrategyRunSummary(strategy=self.name)
        instruments = self.instruments()
        if not instruments:
            logger.warning("No active trading pairs found")
            return summary

        logger.info(f"Basic strategy started: {len(instruments)} active trading pairs")
        for instrument in instruments:
            self.process(instrument, summary)
            self.limiter.wait()

        logger.info(
            f"Basic strategy completed: {len(summary.analyzed)} analyzed, "
            f"{len(summary.trades)} trades, {len(summary.errors)} errors"
        )
        return summary
