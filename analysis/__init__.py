"""Per-symbol market analysis."""
from analysis.base import Analyzer, AnalysisSession, bind_analysis_call, classify_error, SKIP_KINDS
from analysis.basic import BasicAnalyzer
from analysis.enhanced import EnhancedAnalyzer
from analysis.market_data import MarketDataClient
from models.enums import TradingType


def build_market_data(config, market, cache=None):
    """Market data client for one market from the ``exchange`` config section."""
    ex = config["exchange"]
    url_key = "spot_base_url" if TradingType(market) is TradingType.SPOT else "futures_base_url"
    base_url = ex.get(url_key)
    if not base_url:
        return None
    return MarketDataClient(
        base_url,
        market=market,
        cache=cache,
        cache_ttl=ex.get("cache_ttl", 60),
        rate_limit=ex.get("rate_limit", 600),
        timeout=ex.get("timeout", 10),
        max_retries=ex.get("max_retries", 2),
    )


def make_analyzer_factories(config, db):
    """(enhanced_factory, basic_factory) for StrategySelector."""
    ex = config["exchange"]
    interval = ex.get("kline_interval", "1h")

    def enhanced():
        return EnhancedAnalyzer(
            build_market_data(config, TradingType.SPOT, db),
            build_market_data(config, TradingType.FUTURES, db),
            store=db,
            interval=interval,
            limit=ex.get("kline_limit", 200),
        )

    def basic():
        # Single-market analysis runs on futures data, spot when no futures URL is set
        data = (build_market_data(config, TradingType.FUTURES, db)
                or build_market_data(config, TradingType.SPOT, db))
        return BasicAnalyzer(data, store=db, interval=interval)

    return enhanced, basic
