"""TradingCycle - one locked pass: gate, select, run, analyze, notify, clean up."""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from alerts.channels import build_channels
from alerts.gate import AlertGate
from analysis import AnalysisSession, make_analyzer_factories
from models.database import utcnow
from models.enums import CycleOutcome, NotificationCategory, NotificationType, Priority
from models.errors import TradeCycleError
from models.notifications import Notification
from orchestrator.analysis_loop import BoundedAnalysisLoop
from orchestrator.gate import ConfigGate
from orchestrator.retention import RetentionSweep, RetentionReport, policies_from_config
from orchestrator.runner import CycleRunner, RunReport
from orchestrator.selector import StrategySelector
from strategies.basic import BasicStrategy
from strategies.enhanced import EnhancedStrategy
from strategies.paper import PaperBroker
from utils.rate_limiter import FixedIntervalLimiter
from utils.run_lock import RunLock

logger = logging.getLogger("tradecycle.orchestrator.cycle")


@dataclass
class CycleReport:
    outcome: CycleOutcome = CycleOutcome.SUCCESS
    reason: str = ""
    strategy: Optional[str] = None
    analyzer: Optional[str] = None
    strategy_degraded: bool = False
    analyzer_degraded: bool = False
    run: Optional[RunReport] = None
    retention: Optional[RetentionReport] = None
    error: Optional[Exception] = None
    started_at: datetime = field(default_factory=utcnow)
    duration: float = 0.0

    @property
    def exit_code(self):
        return self.outcome.exit_code

    def finish(self, outcome, reason="", error=None):
        self.outcome = outcome
        self.reason = reason
        self.error = error
        return self


class TradingCycle:
    """Single sequential trading cycle.

    Collaborators default to the SQLite store and config-driven
    implementations; tests pass fakes for the factories, limiter and lock.
    """

    def __init__(self, db, config, alert_gate=None, analyzer_factories=None,
                 strategy_factories=None, limiter=None, lock=None, clock=time.monotonic):
        orch = config["orchestrator"]
        alerts = config.get("alerts", {})
        self.db = db
        self.config = config
        self.gate = ConfigGate(require_ai=orch.get("require_ai", True))
        self.alert_gate = alert_gate or AlertGate(
            db,
            channels=build_channels(config),
            notify_threshold=alerts.get("notify_threshold", 0.8),
            high_priority_threshold=alerts.get("high_priority_threshold", 0.9),
        )
        self.analyzer_factories = analyzer_factories or make_analyzer_factories(config, db)
        self.strategy_factories = strategy_factories or self._default_strategy_factories
        self.injected_limiter = limiter
        self.limiter = limiter or FixedIntervalLimiter(orch.get("item_delay_seconds", 1))
        self.lock = lock if lock is not None else RunLock(orch.get("lock_path", "data/cycle.lock"))
        self.retention = RetentionSweep(db, policies_from_config(config))
        self.max_items = orch.get("max_instruments_per_cycle", 10)
        self.slow_threshold = orch.get("slow_analysis_warning_seconds", 30)
        self.budget = orch.get("cycle_budget_seconds")
        self._clock = clock

    def _default_strategy_factories(self, settings, analysis):
        broker = PaperBroker(self.db, self.config["execution"].get("paper_balance", 1000))
        shared = {"limiter": self.injected_limiter, "analysis_call": analysis, "max_items": self.max_items}

        def enhanced():
            return EnhancedStrategy(self.db, settings, analysis.analyzer, broker,
                                    publisher=self.alert_gate, **shared)

        def basic():
            return BasicStrategy(self.db, settings, analysis.analyzer, broker, **shared)

        return enhanced, basic

    def run(self):
        report = CycleReport()
        start = self._clock()

        try:
            acquired = self.lock.acquire()
        except OSError as e:
            logger.error(f"Cannot take the cycle lock: {e}", extra={"category": "SYSTEM"})
            self._notify_failure(e)
            report.duration = self._clock() - start
            return report.finish(CycleOutcome.ERRORED, f"cycle lock unavailable: {e}", error=e)

        if not acquired:
            logger.warning("Another trading cycle is still running, skipping this invocation")
            return report.finish(CycleOutcome.SKIPPED, "another cycle is running")

        try:
            self._run_locked(report)
        except Exception as e:
            if isinstance(e, TradeCycleError):
                logger.error(f"Trading cycle failed: {e}", extra={"category": "SYSTEM"})
            else:
                logger.exception(f"Trading cycle crashed: {e}", extra={"category": "SYSTEM"})
            self._notify_failure(e)
            report.finish(CycleOutcome.ERRORED, str(e), error=e)
        finally:
            self.lock.release()
            report.duration = self._clock() - start
            if self.budget and report.duration > self.budget:
                logger.warning(f"Trading cycle took {report.duration:.1f}s, over the {self.budget}s budget")

        logger.info(f"Trading cycle finished: {report.outcome.value} in {report.duration:.1f}s")
        return report

    def _run_locked(self, report):
        logger.info("Trading cycle started", extra={"category": "SYSTEM"})
        self.db.ping()

        settings = self.db.get_settings()
        decision = self.gate.can_run(settings)
        if not decision.allowed:
            logger.info(f"Skipping execution: {decision.reason}", extra={"category": "SYSTEM"})
            return report.finish(CycleOutcome.SKIPPED, decision.reason)

        analyzer_selector = StrategySelector(*self.analyzer_factories, label="analyzer")
        analysis = AnalysisSession(analyzer_selector)
        strategy_selector = StrategySelector(
            *self.strategy_factories(settings, analysis), label="strategy"
        )
        strategy = strategy_selector.select()

        loop = BoundedAnalysisLoop(
            self.alert_gate,
            max_items=self.max_items,
            limiter=self.limiter,
            slow_threshold=self.slow_threshold,
            clock=self._clock,
        )
        runner = CycleRunner(analysis, self.db, loop)
        report.run = runner.run(strategy, settings)
        report.strategy = report.run.strategy
        report.analyzer = report.run.analyzer
        report.strategy_degraded = strategy_selector.degraded
        report.analyzer_degraded = analyzer_selector.degraded

        logger.info("Cleaning up old data")
        report.retention = self.retention.run()
        return report.finish(CycleOutcome.SUCCESS)

    def _notify_failure(self, error):
        self.alert_gate.publish(Notification(
            type=NotificationType.ERROR,
            category=NotificationCategory.SYSTEM,
            title="Trading Bot Error",
            message=f"The trading cycle encountered an error: {error}",
            priority=Priority.HIGH,
        ))
