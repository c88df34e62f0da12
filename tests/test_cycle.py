"""Tests for the full trading cycle."""
import copy
import itertools
import logging
import pytest
import requests
from unittest.mock import MagicMock
from conftest import FakeAnalyzer, FakeLock, RecordingLimiter
from alerts.gate import AlertGate
from models.enums import CycleOutcome, NotificationType, Priority
from models.settings import OperationalSettings
from orchestrator.cycle import TradingCycle


def _cycle(db, config, analyzer, enhanced_fails=False, **kwargs):
    def enhanced():
        if enhanced_fails:
            raise RuntimeError("futures endpoint unreachable")
        return analyzer

    kwargs.setdefault("alert_gate", AlertGate(db))
    kwargs.setdefault("limiter", RecordingLimiter())
    kwargs.setdefault("lock", FakeLock())
    return TradingCycle(db, config, analyzer_factories=(enhanced, lambda: analyzer), **kwargs)


@pytest.fixture
def pairs(temp_db):
    temp_db.add_instrument("BTCUSDT", "FUTURES", ai_priority=3)
    temp_db.add_instrument("ETHUSDT", "BOTH", ai_priority=2)
    temp_db.add_instrument("XYZUSDT", "SPOT", ai_priority=1)
    return temp_db


def test_emergency_stop_skips_without_analysis(pairs, config):
    pairs.save_settings(OperationalSettings(trading_enabled=True, emergency_stop=True))
    analyzer = FakeAnalyzer()

    report = _cycle(pairs, config, analyzer).run()

    assert report.outcome is CycleOutcome.SKIPPED
    assert report.exit_code == 0
    assert "emergency stop" in report.reason
    assert analyzer.calls == []
    assert report.retention is None


def test_trading_disabled_skips(pairs, config):
    pairs.save_settings(OperationalSettings(trading_enabled=False))
    analyzer = FakeAnalyzer()

    report = _cycle(pairs, config, analyzer).run()

    assert report.outcome is CycleOutcome.SKIPPED
    assert report.exit_code == 0
    assert analyzer.calls == []
    assert pairs.list_notifications() == []


def test_end_to_end_signal_pass(pairs, config, live_settings):
    pairs.save_settings(live_settings)
    analyzer = FakeAnalyzer({
        "BTCUSDT": 0.92,
        "ETHUSDT": 0.5,
        "XYZUSDT": requests.exceptions.ConnectTimeout("timed out"),
    })
    limiter = RecordingLimiter()

    report = _cycle(pairs, config, analyzer, limiter=limiter).run()

    assert report.outcome is CycleOutcome.SUCCESS
    assert report.exit_code == 0
    assert report.strategy == "enhanced"
    assert report.analyzer == "fake"

    # each symbol reaches the analyzer once; the signal pass reuses the strategy pass results
    assert analyzer.calls == ["BTCUSDT", "ETHUSDT", "XYZUSDT"]
    loop = report.run.loop
    assert loop.analyzed == ["BTCUSDT", "ETHUSDT"]
    assert list(loop.skipped) == ["XYZUSDT"]

    signals = [n for n in pairs.list_notifications() if n.type is NotificationType.SIGNAL]
    assert len(signals) == 1
    assert signals[0].priority is Priority.HIGH
    assert signals[0].data["symbol"] == "BTCUSDT"

    # strategy pass and analysis pass each wait once per instrument
    assert limiter.waits == 6
    assert report.retention is not None and report.retention.ok


def test_strategy_pass_places_paper_trade(pairs, config, live_settings):
    pairs.save_settings(live_settings)
    report = _cycle(pairs, config, FakeAnalyzer({"BTCUSDT": 0.92})).run()

    summary = report.run.summary
    assert [t.symbol for t in summary.trades] == ["BTCUSDT"]
    assert pairs.get_position("BTCUSDT").side == "LONG"
    trades = [n for n in pairs.list_notifications() if n.type is NotificationType.TRADE]
    assert trades[0].title == "Trade Executed: BUY BTCUSDT"


def test_enhanced_analyzer_failure_logged_once(pairs, config, live_settings, caplog):
    pairs.save_settings(live_settings)
    with caplog.at_level(logging.WARNING, logger="tradecycle"):
        report = _cycle(pairs, config, FakeAnalyzer(), enhanced_fails=True).run()

    assert report.outcome is CycleOutcome.SUCCESS
    assert report.analyzer_degraded
    fallbacks = [r for r in caplog.records if "falling back" in r.getMessage()]
    assert len(fallbacks) == 1
    assert "analyzer" in fallbacks[0].getMessage()


def test_enhanced_strategy_failure_degrades(pairs, config, caplog):
    # max_daily_trades=0 makes the enhanced strategy refuse construction
    pairs.save_settings(OperationalSettings(trading_enabled=True, max_daily_trades=0))
    report = _cycle(pairs, config, FakeAnalyzer()).run()
    assert report.outcome is CycleOutcome.SUCCESS
    assert report.strategy == "basic"
    assert report.strategy_degraded


def test_missing_settings_errors_and_notifies(temp_db, config):
    report = _cycle(temp_db, config, FakeAnalyzer()).run()

    assert report.outcome is CycleOutcome.ERRORED
    assert report.exit_code == 1
    errors = temp_db.list_notifications()
    assert len(errors) == 1
    assert errors[0].title == "Trading Bot Error"
    assert errors[0].type is NotificationType.ERROR
    assert errors[0].priority is Priority.HIGH


def test_strategy_run_failure_is_fatal(pairs, config, live_settings):
    pairs.save_settings(live_settings)
    broken = MagicMock()
    broken.name = "enhanced"
    broken.run.side_effect = RuntimeError("exchange rejected order")

    cycle = _cycle(pairs, config, FakeAnalyzer(),
                   strategy_factories=lambda settings, selector: (lambda: broken, lambda: broken))
    report = cycle.run()

    assert report.outcome is CycleOutcome.ERRORED
    assert "exchange rejected order" in report.reason
    assert report.retention is None


def test_held_lock_skips(pairs, config, live_settings):
    pairs.save_settings(live_settings)
    analyzer = FakeAnalyzer()
    lock = FakeLock(available=False)

    report = _cycle(pairs, config, analyzer, lock=lock).run()

    assert report.outcome is CycleOutcome.SKIPPED
    assert report.exit_code == 0
    assert analyzer.calls == []
    assert lock.released == 0


def test_lock_released_after_failure(temp_db, config):
    lock = FakeLock()
    _cycle(temp_db, config, FakeAnalyzer(), lock=lock).run()
    assert lock.released == 1


def test_ai_disabled_runs_strategy_only(pairs, config):
    config = copy.deepcopy(config)
    config["orchestrator"]["require_ai"] = False
    pairs.save_settings(OperationalSettings(trading_enabled=True, ai_enabled=False))

    report = _cycle(pairs, config, FakeAnalyzer()).run()

    assert report.outcome is CycleOutcome.SUCCESS
    assert report.run.loop is None


def test_budget_overrun_only_warns(pairs, config, caplog):
    config = copy.deepcopy(config)
    config["orchestrator"]["cycle_budget_seconds"] = 50
    pairs.save_settings(OperationalSettings(trading_enabled=False))
    ticks = itertools.count(0, 100)

    with caplog.at_level(logging.WARNING, logger="tradecycle"):
        report = _cycle(pairs, config, FakeAnalyzer(), clock=lambda: next(ticks)).run()

    assert report.outcome is CycleOutcome.SKIPPED
    assert any("budget" in r.getMessage() for r in caplog.records)


# ── Working set across the whole cycle ───────────────

@pytest.fixture
def mixed_pairs(temp_db):
    temp_db.add_instrument("BTCUSDT", "BOTH")
    temp_db.add_instrument("ETHUSDT", "SPOT")
    temp_db.add_instrument("XYZUSDT", "FUTURES")
    return temp_db


@pytest.mark.parametrize("overrides, strategy", [
    ({}, "enhanced"),
    # max_daily_trades=0 makes the enhanced strategy refuse construction
    ({"max_daily_trades": 0}, "basic"),
])
def test_futures_disabled_cycle(mixed_pairs, config, overrides, strategy):
    mixed_pairs.save_settings(OperationalSettings(
        trading_enabled=True, ai_enabled=True, emergency_stop=False,
        spot_trading_enabled=True, futures_trading_enabled=False, **overrides,
    ))
    analyzer = FakeAnalyzer({"BTCUSDT": 0.92})

    report = _cycle(mixed_pairs, config, analyzer).run()

    assert report.outcome is CycleOutcome.SUCCESS
    assert report.exit_code == 0
    assert report.strategy == strategy
    assert analyzer.calls == ["BTCUSDT", "ETHUSDT"]
    assert report.run.summary.analyzed == ["BTCUSDT", "ETHUSDT"]
    assert report.run.loop.analyzed == ["BTCUSDT", "ETHUSDT"]
    assert report.run.loop.filtered == ["XYZUSDT"]

    signals = [n for n in mixed_pairs.list_notifications() if n.type is NotificationType.SIGNAL]
    assert len(signals) == 1
    assert signals[0].priority is Priority.HIGH
    assert signals[0].data["symbol"] == "BTCUSDT"


def test_cycle_analyzes_at_most_cap_instruments(temp_db, config, live_settings):
    for i in range(15):
        temp_db.add_instrument(f"SYM{i:02d}USDT", "BOTH")
    temp_db.save_settings(live_settings)
    analyzer = FakeAnalyzer()

    report = _cycle(temp_db, config, analyzer).run()

    first_ten = [f"SYM{i:02d}USDT" for i in range(10)]
    assert report.outcome is CycleOutcome.SUCCESS
    assert analyzer.calls == first_ten
    assert report.run.summary.analyzed == first_ten
    assert report.run.loop.analyzed == first_ten
    assert report.run.loop.cap_reached


def test_failed_analysis_is_not_retried_in_signal_pass(pairs, config, live_settings):
    pairs.save_settings(live_settings)
    analyzer = FakeAnalyzer({"XYZUSDT": requests.exceptions.ConnectTimeout("timed out")})

    report = _cycle(pairs, config, analyzer).run()

    assert analyzer.calls.count("XYZUSDT") == 1
    assert "XYZUSDT" in report.run.summary.errors
    assert list(report.run.loop.skipped) == ["XYZUSDT"]


# ── Lock failures ────────────────────────────────────

def test_unusable_lock_path_errors_and_notifies(pairs, config, live_settings, tmp_path):
    from utils.run_lock import RunLock

    pairs.save_settings(live_settings)
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    analyzer = FakeAnalyzer()

    report = _cycle(pairs, config, analyzer, lock=RunLock(str(blocker / "cycle.lock"))).run()

    assert report.outcome is CycleOutcome.ERRORED
    assert report.exit_code == 1
    assert "cycle lock unavailable" in report.reason
    assert analyzer.calls == []
    errors = [n for n in pairs.list_notifications() if n.type is NotificationType.ERROR]
    assert [n.title for n in errors] == ["Trading Bot Error"]


def test_lock_error_does_not_release(pairs, config, live_settings):
    pairs.save_settings(live_settings)
    lock = MagicMock()
    lock.acquire.side_effect = PermissionError("read-only filesystem")

    report = _cycle(pairs, config, FakeAnalyzer(), lock=lock).run()

    assert report.outcome is CycleOutcome.ERRORED
    lock.release.assert_not_called()
