"""BoundedAnalysisLoop - ordered, capped, rate-limited per-instrument analysis."""
import logging
import time
from dataclasses import dataclass, field
from analysis.base import SKIP_KINDS, classify_error
from utils.rate_limiter import FixedIntervalLimiter

logger = logging.getLogger("tradecycle.orchestrator.loop")


@dataclass
class LoopReport:
    analyzed: list = field(default_factory=list)
    results: list = field(default_factory=list)
    skipped: dict = field(default_factory=dict)
    failed: dict = field(default_factory=dict)
    filtered: list = field(default_factory=list)
    cap_reached: bool = False
    notifications: int = 0


class BoundedAnalysisLoop:
    """Analyze enabled instruments in retrieval order, at most ``max_items`` of them.

    Instruments excluded by the spot/futures toggles are filtered out before
    they count against the cap. Every attempted analysis, successful or not,
    counts and is followed by one limiter wait. Failures never stop the loop.
    """

    def __init__(self, alert_gate, max_items=10, limiter=None, slow_threshold=30.0,
                 clock=time.monotonic):
        if max_items < 1:
            raise ValueError("max_items must be >= 1")
        self.alert_gate = alert_gate
        self.max_items = max_items
        self.limiter = limiter or FixedIntervalLimiter(1.0)
        self.slow_threshold = slow_threshold
        self._clock = clock

    def run(self, analysis_call, instruments, settings):
        report = LoopReport()
        attempted = 0

        for instrument in instruments:
            symbol = instrument.symbol
            if not settings.allows(instrument.trading_type):
                logger.debug(f"{symbol}: {instrument.trading_type.value} trading disabled, skipping")
                report.filtered.append(symbol)
                continue

            if attempted >= self.max_items:
                logger.info(f"Reached analysis cap of {self.max_items} instruments, stopping")
                report.cap_reached = True
                break

            attempted += 1
            self._analyze_one(analysis_call, instrument, report)
            self.limiter.wait()

        logger.info(
            f"Analysis pass complete: {len(report.analyzed)} analyzed, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed, "
            f"{len(report.filtered)} filtered, {report.notifications} notifications"
        )
        return report

    def _analyze_one(self, analysis_call, instrument, report):
        symbol = instrument.symbol
        start = self._clock()
        try:
            result = analysis_call(instrument)
        except Exception as e:
            kind = classify_error(e)
            if kind in SKIP_KINDS:
                logger.warning(f"Skipping {symbol} due to {kind.value.lower()} error: {e}",
                               extra={"category": "AI"})
                report.skipped[symbol] = kind
            else:
                logger.error(f"Analysis failed for {symbol} ({kind.value}): {e}",
                             extra={"category": "AI"})
                report.failed[symbol] = kind
            return
        finally:
            elapsed = self._clock() - start
            if elapsed > self.slow_threshold:
                logger.warning(f"Analysis for {symbol} took {elapsed:.2f}s", extra={"category": "AI"})

        report.analyzed.append(symbol)
        report.results.append(result)
        if self.alert_gate.notify(result) is not None:
            report.notifications += 1
