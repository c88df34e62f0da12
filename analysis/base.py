"""Analyzer interface, call binding and error classification."""
import logging
import requests
from models.enums import AnalysisErrorKind, Strength
from models.errors import AnalysisError

logger = logging.getLogger("tradecycle.analysis")

# Failure kinds that are logged as a skip rather than a failed analysis
SKIP_KINDS = frozenset({AnalysisErrorKind.TIMEOUT, AnalysisErrorKind.DIVISION_BY_ZERO})


class Analyzer:
    """Base class for per-symbol analyzers.

    Subclasses that accept a trading type set ``supports_trading_type`` and
    implement ``analyze(symbol, trading_type)``; the others implement
    ``analyze(symbol)``.
    """

    name = "analyzer"
    supports_trading_type = False

    def analyze(self, symbol, *args):
        raise NotImplementedError


def bind_analysis_call(analyzer):
    """Return ``call(instrument) -> AnalysisResult`` for this analyzer.

    The call shape is fixed here, once, from the analyzer's declared
    capability. Analyzers without trading-type support get
    ``strength=MODERATE`` and the instrument's trading type filled in.
    """
    if analyzer.supports_trading_type:
        def call(instrument):
            return analyzer.analyze(instrument.symbol, instrument.trading_type)
    else:
        def call(instrument):
            result = analyzer.analyze(instrument.symbol)
            return result.with_defaults(Strength.MODERATE, instrument.trading_type)

    call.analyzer_name = getattr(analyzer, "name", type(analyzer).__name__)
    return call


class AnalysisSession:
    """One cycle's analysis call, shared by the strategy and signal passes.

    The analyzer is taken from ``selector`` on first use. Each symbol is
    analyzed at most once per session; repeat calls return the stored
    result or re-raise the stored failure.
    """

    def __init__(self, selector):
        self.selector = selector
        self._call = None
        self._outcomes = {}

    @property
    def analyzer(self):
        return self.selector.select()

    @property
    def analyzer_name(self):
        return self._bound().analyzer_name

    @property
    def analyzed_symbols(self):
        return list(self._outcomes)

    def _bound(self):
        if self._call is None:
            self._call = bind_analysis_call(self.analyzer)
        return self._call

    def __call__(self, instrument):
        symbol = instrument.symbol
        if symbol not in self._outcomes:
            try:
                self._outcomes[symbol] = (self._bound()(instrument), None)
            except Exception as e:
                self._outcomes[symbol] = (None, e)
        else:
            logger.debug(f"{symbol}: reusing this cycle's analysis")

        result, error = self._outcomes[symbol]
        if error is not None:
            raise error
        return result


def classify_error(exc):
    """Map an analysis failure to an AnalysisErrorKind."""
    if isinstance(exc, AnalysisError):
        return exc.kind
    if isinstance(exc, ZeroDivisionError):
        return AnalysisErrorKind.DIVISION_BY_ZERO
    if isinstance(exc, (TimeoutError, requests.exceptions.Timeout)):
        return AnalysisErrorKind.TIMEOUT
    return AnalysisErrorKind.UNKNOWN
