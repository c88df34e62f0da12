"""Trading-cycle orchestration."""
from orchestrator.gate import ConfigGate, GateDecision
from orchestrator.selector import StrategySelector
from orchestrator.analysis_loop import BoundedAnalysisLoop, LoopReport
from orchestrator.runner import CycleRunner, RunReport
from orchestrator.retention import RetentionPolicy, RetentionSweep, RetentionReport, default_policies
from orchestrator.cycle import TradingCycle, CycleReport
from orchestrator.scheduler import CycleScheduler
