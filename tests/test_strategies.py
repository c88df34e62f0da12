"""Tests for execution strategies and the paper broker."""
import pytest
from datetime import timedelta
from unittest.mock import MagicMock
from conftest import FakeAnalyzer, RecordingLimiter
from models.analysis import AnalysisResult
from models.database import utcnow
from models.enums import Signal, TradingType
from models.errors import StrategyConstructionError
from models.settings import OperationalSettings
from models.trades import Position
from strategies.basic import BasicStrategy
from strategies.enhanced import EnhancedStrategy, RiskManager
from strategies.paper import PaperBroker

SETTINGS = OperationalSettings(trading_enabled=True, max_position_size=100.0, risk_percentage=2.0)


def _result(symbol="BTCUSDT", signal=Signal.BUY, confidence=0.9, price=100.0, **kw):
    return AnalysisResult(symbol=symbol, signal=signal, confidence=confidence, price=price,
                          trading_type="FUTURES", **kw)


def _strategy(cls, db, settings=SETTINGS, analyzer=None, balance=1000, **kw):
    return cls(db, settings, analyzer or FakeAnalyzer(), PaperBroker(db, balance),
               limiter=RecordingLimiter(), **kw)


# ── PaperBroker ──────────────────────────────────────

def test_broker_opens_and_averages_position(temp_db):
    broker = PaperBroker(temp_db, 1000)
    broker.place_order("BTCUSDT", "BUY", 1.0, 100.0)
    broker.place_order("BTCUSDT", "BUY", 1.0, 200.0)
    pos = temp_db.get_position("BTCUSDT")
    assert pos.side == "LONG"
    assert pos.quantity == 2.0
    assert pos.entry_price == 150.0
    assert broker.available_balance() == 700.0


def test_broker_reduce_close_and_flip(temp_db):
    broker = PaperBroker(temp_db, 1000)
    broker.place_order("ETHUSDT", "BUY", 2.0, 100.0)
    broker.place_order("ETHUSDT", "SELL", 1.0, 110.0)
    assert temp_db.get_position("ETHUSDT").quantity == 1.0

    broker.place_order("ETHUSDT", "SELL", 1.0, 110.0)
    assert temp_db.get_position("ETHUSDT") is None

    broker.place_order("ETHUSDT", "BUY", 1.0, 100.0)
    broker.place_order("ETHUSDT", "SELL", 3.0, 90.0)
    pos = temp_db.get_position("ETHUSDT")
    assert pos.side == "SHORT"
    assert pos.quantity == 2.0
    assert pos.entry_price == 90.0


def test_broker_rejects_bad_orders(temp_db):
    broker = PaperBroker(temp_db)
    with pytest.raises(ValueError):
        broker.place_order("BTCUSDT", "BUY", 0, 100.0)
    with pytest.raises(ValueError):
        broker.place_order("BTCUSDT", "BUY", 1.0, 0)


# ── Shared gates ─────────────────────────────────────

def test_position_size(temp_db):
    strategy = _strategy(BasicStrategy, temp_db)
    # min(1000 * 2%, 100) * 0.9 / 100
    assert strategy.position_size(_result()) == pytest.approx(0.18)
    assert strategy.position_size(_result(price=0.0)) == 0.0


def test_protective_prices(temp_db):
    strategy = _strategy(BasicStrategy, temp_db)
    assert strategy.protective_prices("BUY", 100.0) == pytest.approx((95.0, 110.0))
    assert strategy.protective_prices("SELL", 100.0) == pytest.approx((105.0, 90.0))


@pytest.mark.parametrize("result,reason", [
    (_result(confidence=0.5), "below"),
    (_result(signal=Signal.HOLD), "HOLD"),
])
def test_should_execute_rejects(temp_db, result, reason):
    ok, why = _strategy(BasicStrategy, temp_db).should_execute(result, None)
    assert not ok
    assert reason in why


def test_should_execute_blocks_opposite_position(temp_db):
    temp_db.save_position(Position("BTCUSDT", "LONG", 1.0, 100.0))
    ok, why = _strategy(BasicStrategy, temp_db, balance=10_000).should_execute(
        _result(signal=Signal.SELL), None)
    assert not ok
    assert why == "opposite position exists"


def test_should_execute_cooldown(temp_db):
    signal_id = temp_db.save_signal(_result(created_at=utcnow() - timedelta(minutes=30)))
    temp_db.mark_signal_executed(signal_id, 100.0)
    ok, why = _strategy(BasicStrategy, temp_db).should_execute(_result(), None)
    assert not ok
    assert why == "recent trade executed"


def test_should_execute_insufficient_balance(temp_db):
    ok, why = _strategy(BasicStrategy, temp_db, balance=50).should_execute(_result(), None)
    assert not ok
    assert "insufficient balance" in why


def test_basic_run_trades_and_waits(temp_db):
    temp_db.add_instrument("BTCUSDT", "FUTURES")
    temp_db.add_instrument("ETHUSDT", "FUTURES")
    analyzer = FakeAnalyzer({"BTCUSDT": 0.9, "ETHUSDT": RuntimeError("bad data")})
    strategy = _strategy(BasicStrategy, temp_db, analyzer=analyzer)

    summary = strategy.run()

    assert summary.analyzed == ["BTCUSDT"]
    assert [t.symbol for t in summary.trades] == ["BTCUSDT"]
    assert "ETHUSDT" in summary.errors
    assert strategy.limiter.waits == 2


# ── EnhancedStrategy ─────────────────────────────────

@pytest.mark.parametrize("changes", [
    {"max_daily_trades": 0},
    {"max_concurrent_positions": 0},
    {"ai_confidence_threshold": 0.0},
])
def test_enhanced_validates_settings(temp_db, changes):
    settings = OperationalSettings(**dict(SETTINGS.to_dict(), **changes))
    with pytest.raises(StrategyConstructionError):
        _strategy(EnhancedStrategy, temp_db, settings=settings)


def test_enhanced_orders_by_priority_and_filters(temp_db):
    temp_db.add_instrument("LOWUSDT", "FUTURES", ai_priority=1)
    temp_db.add_instrument("SPOTUSDT", "SPOT", ai_priority=9)
    temp_db.add_instrument("HIGHUSDT", "BOTH", ai_priority=5)
    settings = OperationalSettings(**dict(SETTINGS.to_dict(), spot_trading_enabled=False))
    strategy = _strategy(EnhancedStrategy, temp_db, settings=settings)
    assert [i.symbol for i in strategy.instruments()] == ["HIGHUSDT", "LOWUSDT"]


def test_enhanced_halts_at_daily_limit(temp_db):
    temp_db.add_instrument("BTCUSDT", "FUTURES")
    settings = OperationalSettings(**dict(SETTINGS.to_dict(), max_daily_trades=1))
    PaperBroker(temp_db).place_order("ETHUSDT", "BUY", 0.1, 100.0)
    analyzer = FakeAnalyzer()

    summary = _strategy(EnhancedStrategy, temp_db, settings=settings, analyzer=analyzer).run()

    assert summary.halted_reason == "daily trade limit reached"
    assert analyzer.calls == []


def test_enhanced_publishes_trade(temp_db):
    temp_db.add_instrument("BTCUSDT", "FUTURES")
    publisher = MagicMock()
    strategy = _strategy(EnhancedStrategy, temp_db, analyzer=FakeAnalyzer({"BTCUSDT": 0.9}),
                         publisher=publisher)
    summary = strategy.run()

    assert len(summary.trades) == 1
    notification = publisher.publish.call_args[0][0]
    assert notification.title == "Trade Executed: BUY BTCUSDT"
    assert notification.data["strategy"] == "enhanced"


def test_risk_manager_limits(temp_db):
    rm = RiskManager(temp_db, max_open_positions=1, max_volatility=0.1)
    assert rm.can_open("BTCUSDT", _result())[0]
    assert not rm.can_open("BTCUSDT", _result(indicators={"volatility": 0.5}))[0]

    temp_db.save_position(Position("ETHUSDT", "LONG", 1.0, 100.0, TradingType.FUTURES))
    ok, why = rm.can_open("BTCUSDT", _result())
    assert not ok
    assert "1 positions" in why


@pytest.mark.parametrize("cls", [BasicStrategy, EnhancedStrategy])
def test_strategies_skip_disabled_trading_types(temp_db, cls):
    temp_db.add_instrument("BTCUSDT", "BOTH")
    temp_db.add_instrument("ETHUSDT", "SPOT")
    temp_db.add_instrument("XYZUSDT", "FUTURES")
    settings = OperationalSettings(**dict(SETTINGS.to_dict(), futures_trading_enabled=False))
    analyzer = FakeAnalyzer()

    summary = _strategy(cls, temp_db, settings=settings, analyzer=analyzer).run()

    assert analyzer.calls == ["BTCUSDT", "ETHUSDT"]
    assert summary.analyzed == ["BTCUSDT", "ETHUSDT"]


@pytest.mark.parametrize("cls", [BasicStrategy, EnhancedStrategy])
def test_strategies_respect_instrument_cap(temp_db, cls):
    for i in range(5):
        temp_db.add_instrument(f"SYM{i}USDT", "SPOT")
    temp_db.add_instrument("LATEUSDT", "FUTURES", ai_priority=9)
    analyzer = FakeAnalyzer()

    _strategy(cls, temp_db, analyzer=analyzer, max_items=3).run()

    assert analyzer.calls == ["SYM0USDT", "SYM1USDT", "SYM2USDT"]


def test_enhanced_prioritizes_within_capped_set(temp_db):
    temp_db.add_instrument("AAAUSDT", "BOTH", ai_priority=1)
    temp_db.add_instrument("BBBUSDT", "BOTH", ai_priority=4)
    temp_db.add_instrument("CCCUSDT", "BOTH", ai_priority=9)
    strategy = _strategy(EnhancedStrategy, temp_db, max_items=2)
    assert [i.symbol for i in strategy.instruments()] == ["BBBUSDT", "AAAUSDT"]


def test_strategy_uses_supplied_analysis_call(temp_db):
    temp_db.add_instrument("BTCUSDT", "BOTH")
    analyzer = FakeAnalyzer()
    seen = []

    def analysis_call(inst):
        seen.append(inst.symbol)
        return AnalysisResult(symbol=inst.symbol, confidence=0.5, price=100.0)

    summary = _strategy(BasicStrategy, temp_db, analyzer=analyzer, analysis_call=analysis_call).run()

    assert seen == ["BTCUSDT"]
    assert analyzer.calls == []
    assert summary.analyzed == ["BTCUSDT"]
