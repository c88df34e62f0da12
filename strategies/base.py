"""Execution strategy base: trade gating, position sizing and paper execution."""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional
from analysis.base import bind_analysis_call
from models.database import utcnow
from models.enums import NotificationCategory, NotificationType, Priority, Signal
from models.notifications import Notification
from utils.rate_limiter import FixedIntervalLimiter

logger = logging.getLogger("tradecycle.strategies")


@dataclass
class StrategyRunSummary:
    strategy: str
    analyzed: list = field(default_factory=list)
    trades: list = field(default_factory=list)
    skipped: dict = field(default_factory=dict)
    errors: dict = field(default_factory=dict)
    halted_reason: Optional[str] = None


class ExecutionStrategy:
    """One pass over the enabled instruments: analyze, gate, size, fill.

    Subclasses set ``name``, ``cooldown`` and ``item_delay`` and may extend
    ``should_execute``. Settings are a snapshot passed in by the caller and
    never re-read here. ``analysis_call`` lets a cycle share one analysis
    per symbol between this pass and the signal pass.
    """

    name = "base"
    cooldown = timedelta(hours=1)
    item_delay = 1.0

    def __init__(self, db, settings, analyzer, broker, limiter=None, publisher=None,
                 analysis_call=None, max_items=None):
        self.db = db
        self.settings = settings
        self.analyzer = analyzer
        self.broker = broker
        self.limiter = limiter or FixedIntervalLimiter(self.item_delay)
        self.publisher = publisher
        self.max_items = max_items
        self._analyze = analysis_call or bind_analysis_call(analyzer)

    def run(self):
        raise NotImplementedError

    def instruments(self):
        """Enabled instruments the spot/futures toggles allow, capped at ``max_items`` in retrieval order."""
        eligible = []
        for instrument in self.db.list_enabled_instruments():
            if not self.settings.allows(instrument.trading_type):
                logger.debug(f"{instrument.symbol}: {instrument.trading_type.value} trading disabled")
                continue
            if self.max_items is not None and len(eligible) >= self.max_items:
                logger.info(f"{self.name}: instrument cap of {self.max_items} reached, deferring the rest")
                break
            eligible.append(instrument)
        return eligible

    def process(self, instrument, summary):
        """Analyze one instrument and trade it if the gates pass. Errors are recorded, not raised."""
        symbol = instrument.symbol
        try:
            result = self._analyze(instrument)
            summary.analyzed.append(symbol)
            logger.info(
                f"{self.name}: {symbol} {result.signal.value} "
                f"(confidence {result.confidence_pct}%, strength "
                f"{result.strength.value if result.strength else 'n/a'})"
            )
            ok, reason = self.should_execute(result, instrument)
            if not ok:
                logger.info(f"Skipping trade for {symbol}: {reason}")
                summary.skipped[symbol] = reason
                return
            trade = self.execute(result, instrument)
            if trade is not None:
                summary.trades.append(trade)
        except Exception as e:
            logger.error(f"{self.name}: error processing {symbol}: {e}")
            summary.errors[symbol] = str(e)

    def should_execute(self, result, instrument):
        """Shared gates. Returns (ok, reason)."""
        threshold = self.settings.ai_confidence_threshold
        if result.confidence < threshold:
            return False, f"confidence {result.confidence_pct}% below {threshold * 100:.0f}%"
        if result.signal is Signal.HOLD:
            return False, "HOLD signal"
        if self.db.has_recent_executed_signal(result.symbol, utcnow() - self.cooldown):
            return False, "recent trade executed"

        position = self.db.get_position(result.symbol)
        if position is not None:
            if (position.side == "LONG" and result.signal.is_sell) or \
                    (position.side == "SHORT" and result.signal.is_buy):
                return False, "opposite position exists"

        balance = self.broker.available_balance()
        if balance < self.settings.max_position_size:
            return False, f"insufficient balance ({balance:.2f} < {self.settings.max_position_size:.2f})"
        return True, ""

    def position_size(self, result):
        """min(balance x risk%, max_position_size) x confidence / price."""
        if result.price <= 0:
            return 0.0
        balance = self.broker.available_balance()
        if balance <= 0:
            return 0.0
        risk_amount = balance * self.settings.risk_percentage / 100
        notional = min(risk_amount, self.settings.max_position_size) * result.confidence
        return notional / result.price

    def protective_prices(self, side, entry):
        """(stop_loss, take_profit) from the settings percentages."""
        sl = self.settings.stop_loss_percentage / 100
        tp = self.settings.take_profit_percentage / 100
        if side == "BUY":
            return entry * (1 - sl), entry * (1 + tp)
        return entry * (1 + sl), entry * (1 - tp)

    def execute(self, result, instrument):
        side = "BUY" if result.signal.is_buy else "SELL"
        quantity = self.position_size(result)
        if quantity <= 0:
            logger.warning(f"Invalid quantity calculated for {result.symbol}")
            return None

        stop, take = self.protective_prices(side, result.price)
        trade = self.broker.place_order(
            result.symbol, side, quantity, result.price,
            trading_type=result.trading_type or instrument.trading_type,
            signal_id=result.signal_id,
            strategy=self.name,
            notes=f"confidence {result.confidence_pct}%, SL {stop:.4f}, TP {take:.4f}",
        )
        if result.signal_id is not None:
            self.db.mark_signal_executed(result.signal_id, trade.price)
        logger.info(
            f"Trade executed: {side} {quantity:.6f} {result.symbol} @ {trade.price:,.4f}",
            extra={"category": "TRADING"},
        )
        return trade

    def publish_trade(self, trade, result):
        if self.publisher is None:
            return
        self.publisher.publish(Notification(
            type=NotificationType.TRADE,
            category=NotificationCategory.TRADING,
            title=f"Trade Executed: {trade.side} {trade.symbol}",
            message=(
                f"Executed {trade.side} order for {trade.quantity:.6f} {trade.symbol} using strategy "
                f"'{self.name}' with {result.confidence_pct}% confidence."
            ),
            priority=Priority.NORMAL,
            data={
                "symbol": trade.symbol,
                "side": trade.side,
                "quantity": trade.quantity,
                "price": trade.price,
                "strategy": self.name,
                "confidence": result.confidence,
                "signal_strength": result.strength.value if result.strength else None,
            },
        ))
