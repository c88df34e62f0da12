"""Tradable instruments consumed read-only by each cycle."""
from dataclasses import dataclass
from typing import Optional
from models.enums import TradingType


@dataclass(frozen=True)
class TradableInstrument:
    symbol: str
    trading_type: TradingType = TradingType.BOTH
    enabled: bool = True
    ai_priority: int = 0
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row):
        d = dict(row)
        return cls(
            symbol=d["symbol"],
            trading_type=TradingType(d.get("trading_type") or "BOTH"),
            enabled=bool(d.get("enabled", 1)),
            ai_priority=int(d.get("ai_priority") or 0),
            id=d.get("id"),
        )
