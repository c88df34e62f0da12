"""Operational settings record read once per cycle."""
from dataclasses import dataclass, asdict, fields
from models.enums import TradingType

BOOL_FIELDS = (
    "trading_enabled", "ai_enabled", "emergency_stop",
    "spot_trading_enabled", "futures_trading_enabled", "testnet_mode",
)
INT_FIELDS = ("leverage", "max_daily_trades", "max_concurrent_positions")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_setting(name, raw):
    """Convert a CLI string to the type of settings field ``name``."""
    if name not in {f.name for f in fields(OperationalSettings)}:
        raise KeyError(f"Unknown setting: {name}")
    if name in BOOL_FIELDS:
        value = str(raw).strip().lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ValueError(f"{name} expects on/off, got {raw!r}")
    if name in INT_FIELDS:
        return int(raw)
    return float(raw)


@dataclass(frozen=True)
class OperationalSettings:
    trading_enabled: bool = False
    ai_enabled: bool = True
    emergency_stop: bool = False
    spot_trading_enabled: bool = True
    futures_trading_enabled: bool = True
    testnet_mode: bool = True
    max_position_size: float = 100.0
    risk_percentage: float = 2.0
    stop_loss_percentage: float = 5.0
    take_profit_percentage: float = 10.0
    leverage: int = 10
    ai_confidence_threshold: float = 0.75
    max_daily_trades: int = 20
    max_concurrent_positions: int = 5

    def allows(self, trading_type):
        """Whether instruments of this trading type are eligible this cycle."""
        trading_type = TradingType(trading_type)
        if trading_type is TradingType.SPOT:
            return self.spot_trading_enabled
        if trading_type is TradingType.FUTURES:
            return self.futures_trading_enabled
        return True

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_row(cls, row):
        """Build from a DB row, ignoring unknown columns and coercing flags."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in dict(row).items():
            if key not in known or value is None:
                continue
            if key in BOOL_FIELDS:
                values[key] = bool(value)
            elif key in INT_FIELDS:
                values[key] = int(value)
            else:
                values[key] = float(value)
        return cls(**values)
