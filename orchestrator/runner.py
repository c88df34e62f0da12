"""CycleRunner - one strategy pass followed by the bounded analysis pass."""
import logging
from dataclasses import dataclass
from typing import Optional
from models.errors import StrategyRunError
from orchestrator.analysis_loop import LoopReport

logger = logging.getLogger("tradecycle.orchestrator.runner")


@dataclass
class RunReport:
    strategy: str
    summary: object = None
    analyzer: Optional[str] = None
    loop: Optional[LoopReport] = None


class CycleRunner:
    """Run the strategy once, then hand the enabled instruments to the analysis loop.

    ``analysis`` is the cycle's shared analysis call, so instruments the
    strategy pass already analyzed are not sent to the analyzer again.
    """

    def __init__(self, analysis, registry, analysis_loop):
        self.analysis = analysis
        self.registry = registry
        self.analysis_loop = analysis_loop

    def run(self, strategy, settings):
        name = getattr(strategy, "name", type(strategy).__name__)
        logger.info(f"Running {name} strategy")
        try:
            summary = strategy.run()
        except Exception as e:
            raise StrategyRunError(name, e) from e

        report = RunReport(strategy=name, summary=summary)
        if not settings.ai_enabled:
            logger.info("AI analysis is disabled, skipping signal generation")
            return report

        report.analyzer = self.analysis.analyzer_name
        instruments = self.registry.list_enabled_instruments()
        logger.info(f"Generating signals with {report.analyzer} analyzer for {len(instruments)} enabled instruments")
        report.loop = self.analysis_loop.run(self.analysis, instruments, settings)
        return report
