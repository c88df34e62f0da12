"""Shared test fixtures."""
import os
import sys
import pytest
import tempfile

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.analysis import AnalysisResult
from models.database import Database
from models.enums import Signal
from models.settings import OperationalSettings
from models.instruments import TradableInstrument


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    db = Database(db_path)
    db.connect()
    yield db
    db.close()
    os.unlink(db_path)
    for suffix in ("-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def config():
    from config import load_config
    return load_config()


@pytest.fixture
def live_settings():
    """Settings that let a cycle through the gate."""
    return OperationalSettings(trading_enabled=True, ai_enabled=True, emergency_stop=False)


class FakeAnalyzer:
    """Single-market analyzer returning canned results.

    ``outcomes`` maps symbol -> AnalysisResult, float confidence, or an
    exception instance to raise. Unknown symbols give a 0.5 HOLD.
    """

    name = "fake"
    supports_trading_type = False

    def __init__(self, outcomes=None):
        self.outcomes = outcomes or {}
        self.calls = []

    def analyze(self, symbol):
        self.calls.append(symbol)
        outcome = self.outcomes.get(symbol, 0.5)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, AnalysisResult):
            return outcome
        return AnalysisResult(symbol=symbol, signal=Signal.BUY if outcome > 0.5 else Signal.HOLD,
                              confidence=outcome, price=100.0)


class RecordingLimiter:
    def __init__(self):
        self.waits = 0

    def wait(self):
        self.waits += 1


class FakeLock:
    def __init__(self, available=True):
        self.available = available
        self.released = 0

    def acquire(self):
        return self.available

    def release(self):
        self.released += 1


class RecordingSink:
    """Notification sink that keeps notifications in memory, or always fails."""

    def __init__(self, fail=False):
        self.fail = fail
        self.notifications = []

    def create_notification(self, notification):
        if self.fail:
            raise RuntimeError("sink offline")
        self.notifications.append(notification)
        return len(self.notifications)


def instrument(symbol, trading_type="BOTH", priority=0):
    return TradableInstrument(symbol=symbol, trading_type=trading_type, ai_priority=priority)


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer()


@pytest.fixture
def limiter():
    return RecordingLimiter()
