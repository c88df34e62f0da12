"""Paper broker: fills market orders at the analysis price and tracks positions in SQLite."""
import logging
from models.enums import TradingType
from models.trades import Trade, Position

logger = logging.getLogger("tradecycle.strategies.paper")


class PaperBroker:
    def __init__(self, db, starting_balance=1000.0):
        self.db = db
        self.starting_balance = float(starting_balance)

    def available_balance(self):
        committed = sum(p.value for p in self.db.list_positions())
        return max(0.0, self.starting_balance - committed)

    def place_order(self, symbol, side, quantity, price, trading_type=TradingType.FUTURES,
                    signal_id=None, strategy="", notes=""):
        """Fill a market order immediately and update the symbol's position."""
        if quantity <= 0:
            raise ValueError(f"Order quantity must be positive, got {quantity}")
        if price <= 0:
            raise ValueError(f"Order price must be positive, got {price}")

        trading_type = TradingType(trading_type)
        trade = Trade(
            symbol=symbol, side=side, quantity=quantity, price=price,
            trading_type=trading_type, signal_id=signal_id, strategy=strategy, notes=notes,
        )
        trade.id = self.db.save_trade(trade)
        self._apply_to_position(trade)
        logger.info(f"Paper fill: {side} {quantity:.6f} {symbol} @ {price:,.4f}", extra={"category": "TRADING"})
        return trade

    def _apply_to_position(self, trade):
        side = "LONG" if trade.side == "BUY" else "SHORT"
        current = self.db.get_position(trade.symbol)

        if current is None:
            self.db.save_position(Position(
                symbol=trade.symbol, side=side, quantity=trade.quantity,
                entry_price=trade.price, trading_type=trade.trading_type,
            ))
            return

        if current.side == side:
            qty = current.quantity + trade.quantity
            entry = (current.value + trade.notional) / qty
            self.db.save_position(Position(
                symbol=trade.symbol, side=side, quantity=qty, entry_price=entry,
                trading_type=current.trading_type, opened_at=current.opened_at,
            ))
            return

        remaining = current.quantity - trade.quantity
        if remaining > 1e-12:
            self.db.save_position(Position(
                symbol=trade.symbol, side=current.side, quantity=remaining,
                entry_price=current.entry_price, trading_type=current.trading_type,
                opened_at=current.opened_at,
            ))
        elif remaining < -1e-12:
            self.db.save_position(Position(
                symbol=trade.symbol, side=side, quantity=-remaining,
                entry_price=trade.price, trading_type=trade.trading_type,
            ))
        else:
            self.db.delete_position(trade.symbol)
