"""Per-instrument analysis result."""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional
from models.enums import Signal, Strength, TradingType


@dataclass
class AnalysisResult:
    symbol: str
    signal: Signal = Signal.HOLD
    confidence: float = 0.0
    strength: Optional[Strength] = None
    trading_type: Optional[TradingType] = None
    price: float = 0.0
    score: float = 0.0
    target_price: Optional[float] = None
    stop_loss_price: Optional[float] = None
    indicators: dict = field(default_factory=dict)
    reasons: list = field(default_factory=list)
    signal_id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.signal = Signal(self.signal)
        if self.strength is not None:
            self.strength = Strength(self.strength)
        if self.trading_type is not None:
            self.trading_type = TradingType(self.trading_type)
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @property
    def confidence_pct(self):
        return round(self.confidence * 100, 1)

    def with_defaults(self, strength, trading_type):
        """Fill in strength/trading type that a basic analyzer does not produce."""
        return replace(
            self,
            strength=self.strength or strength,
            trading_type=trading_type,
        )

    def to_payload(self):
        return {
            "symbol": self.symbol,
            "signal": self.signal.value,
            "confidence": self.confidence,
            "strength": self.strength.value if self.strength else None,
            "trading_type": self.trading_type.value if self.trading_type else None,
        }
