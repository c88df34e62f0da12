"""Tests for enhanced/basic strategy selection."""
import logging
import pytest
from orchestrator.selector import StrategySelector


def test_prefers_enhanced():
    sel = StrategySelector(lambda: "enhanced", lambda: "basic")
    assert sel.select() == "enhanced"
    assert not sel.degraded


def test_falls_back_when_enhanced_fails(caplog):
    def broken():
        raise RuntimeError("no futures endpoint")

    sel = StrategySelector(broken, lambda: "basic", label="analyzer")
    with caplog.at_level(logging.WARNING, logger="tradecycle"):
        assert sel.select() == "basic"
    assert sel.degraded
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "falling back" in warnings[0].getMessage()
    assert "no futures endpoint" in warnings[0].getMessage()


def test_selection_is_memoized(caplog):
    calls = []

    def broken():
        calls.append("enhanced")
        raise RuntimeError("boom")

    def basic():
        calls.append("basic")
        return object()

    sel = StrategySelector(broken, basic)
    with caplog.at_level(logging.WARNING, logger="tradecycle"):
        first = sel.select()
        second = sel.select()
    assert first is second
    assert calls == ["enhanced", "basic"]
    assert sum("falling back" in r.getMessage() for r in caplog.records) == 1


def test_basic_failure_propagates():
    def broken():
        raise RuntimeError("enhanced down")

    def also_broken():
        raise ValueError("basic down")

    sel = StrategySelector(broken, also_broken)
    with pytest.raises(ValueError):
        sel.select()
