"""ConfigGate - decides whether a cycle may proceed from the live settings."""
import logging
from dataclasses import dataclass
from models.errors import ConfigurationError

logger = logging.getLogger("tradecycle.orchestrator.gate")


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: str = ""


class ConfigGate:
    def __init__(self, require_ai=True):
        self.require_ai = require_ai

    def can_run(self, settings):
        """Check, in order: settings present, emergency stop, trading enabled, AI enabled."""
        if settings is None:
            raise ConfigurationError("Trading settings record is missing; run `tradecycle setup` first")
        if settings.emergency_stop:
            return GateDecision(False, "emergency stop is active")
        if not settings.trading_enabled:
            return GateDecision(False, "trading is disabled")
        if self.require_ai and not settings.ai_enabled:
            return GateDecision(False, "AI analysis is disabled")
        return GateDecision(True)
