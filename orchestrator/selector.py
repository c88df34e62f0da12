"""StrategySelector - primary variant with soft fallback to a degraded one."""
import logging

logger = logging.getLogger("tradecycle.orchestrator.selector")


class StrategySelector:
    """Construct the enhanced variant, falling back to the basic one on any error.

    The choice is made once per selector; later ``select()`` calls return
    the same instance. Used for both execution strategies and analyzers.
    """

    def __init__(self, enhanced_factory, basic_factory, label="strategy"):
        self.enhanced_factory = enhanced_factory
        self.basic_factory = basic_factory
        self.label = label
        self.selected = None
        self.degraded = False

    def select(self):
        if self.selected is not None:
            return self.selected
        try:
            self.selected = self.enhanced_factory()
        except Exception as e:
            logger.warning(f"Enhanced {self.label} unavailable, falling back to basic: {e}")
            self.degraded = True
            self.selected = self.basic_factory()
        else:
            logger.info(f"Using enhanced {self.label}")
        return self.selected
