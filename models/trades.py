"""Paper trade and open position records."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from models.enums import TradingType


@dataclass
class Trade:
    symbol: str
    side: str
    quantity: float
    price: float
    trading_type: TradingType = TradingType.FUTURES
    status: str = "FILLED"
    signal_id: Optional[int] = None
    strategy: str = ""
    notes: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None

    @property
    def notional(self):
        return self.quantity * self.price


@dataclass
class Position:
    symbol: str
    side: str  # LONG / SHORT
    quantity: float
    entry_price: float
    trading_type: TradingType = TradingType.FUTURES
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def value(self):
        return self.quantity * self.entry_price

    @classmethod
    def from_row(cls, row):
        d = dict(row)
        return cls(
            symbol=d["symbol"],
            side=d["side"],
            quantity=d["quantity"],
            entry_price=d["entry_price"],
            trading_type=TradingType(d.get("trading_type") or "FUTURES"),
            opened_at=datetime.fromisoformat(d["opened_at"]),
        )
