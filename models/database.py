"""SQLite store for settings, instruments, signals, notifications, logs, cache and paper trades."""
import json
import sqlite3
import logging
from dataclasses import replace, fields
from datetime import datetime, timedelta, timezone
from pathlib import Path
from models.enums import CRITICAL_LOG_LEVELS
from models.errors import ConnectivityError
from models.settings import OperationalSettings
from models.instruments import TradableInstrument
from models.notifications import Notification
from models.trades import Position

logger = logging.getLogger("tradecycle.db")

_CRITICAL_IN = ", ".join(f"'{level}'" for level in CRITICAL_LOG_LEVELS)

# record class -> (table, timestamp column, extra predicate)
AGED_RECORD_CLASSES = {
    "read_notifications": ("notifications", "created_at", "read_at IS NOT NULL"),
    "logs": ("system_logs", "created_at", f"level NOT IN ({_CRITICAL_IN})"),
    "critical_logs": ("system_logs", "created_at", f"level IN ({_CRITICAL_IN})"),
}

# record class -> (table, expiry column)
EXPIRING_RECORD_CLASSES = {
    "market_data_cache": ("market_data_cache", "expires_at"),
}

SETTINGS_COLUMNS = [f.name for f in fields(OperationalSettings)]


def utcnow():
    return datetime.now(timezone.utc)


def to_db_time(dt):
    """Normalize a datetime to the UTC ISO string stored in every table."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


class Database:
    def __init__(self, db_path="data/trading.db"):
        self.db_path = db_path
        self.conn = None

    def connect(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._create_tables()
        return self

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    def ping(self):
        """Cheap round trip used to verify the store before a cycle starts."""
        if self.conn is None:
            raise ConnectivityError(f"Database {self.db_path} is not connected")
        try:
            self.conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            raise ConnectivityError(f"Database {self.db_path} unreachable: {e}") from e

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS trading_settings (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                trading_enabled INTEGER DEFAULT 0,
                ai_enabled INTEGER DEFAULT 1,
                emergency_stop INTEGER DEFAULT 0,
                spot_trading_enabled INTEGER DEFAULT 1,
                futures_trading_enabled INTEGER DEFAULT 1,
                testnet_mode INTEGER DEFAULT 1,
                max_position_size REAL DEFAULT 100,
                risk_percentage REAL DEFAULT 2,
                stop_loss_percentage REAL DEFAULT 5,
                take_profit_percentage REAL DEFAULT 10,
                leverage INTEGER DEFAULT 10,
                ai_confidence_threshold REAL DEFAULT 0.75,
                max_daily_trades INTEGER DEFAULT 20,
                max_concurrent_positions INTEGER DEFAULT 5,
                updated_at TEXT
            );

            CREATE TABLE IF NOT EXISTS trading_pairs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                symbol TEXT NOT NULL UNIQUE,
                trading_type TEXT NOT NULL DEFAULT 'BOTH',
                enabled INTEGER DEFAULT 1,
                ai_priority INTEGER DEFAULT 0,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS ai_signals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                symbol TEXT NOT NULL,
                trading_type TEXT,
                signal TEXT NOT NULL,
                confidence REAL NOT NULL,
                strength TEXT,
                price REAL,
                score REAL,
                target_price REAL,
                stop_loss_price REAL,
                indicators_data TEXT,
                executed INTEGER DEFAULT 0,
                execution_price REAL,
                execution_time TEXT,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_signals_symbol_created
                ON ai_signals(symbol, created_at);

            CREATE TABLE IF NOT EXISTS notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                type TEXT NOT NULL,
                category TEXT NOT NULL,
                title TEXT NOT NULL,
                message TEXT,
                priority TEXT NOT NULL DEFAULT 'NORMAL',
                data TEXT,
                created_at TEXT NOT NULL,
                read_at TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_notifications_created
                ON notifications(created_at);

            CREATE TABLE IF NOT EXISTS system_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                level TEXT NOT NULL,
                category TEXT,
                message TEXT NOT NULL,
                context TEXT,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_logs_level_created
                ON system_logs(level, created_at);

            CREATE TABLE IF NOT EXISTS market_data_cache (
                cache_key TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                expires_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS trades (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                symbol TEXT NOT NULL,
                side TEXT NOT NULL,
                quantity REAL NOT NULL,
                price REAL NOT NULL,
                trading_type TEXT,
                status TEXT DEFAULT 'FILLED',
                signal_id INTEGER,
                strategy TEXT,
                notes TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS positions (
                symbol TEXT PRIMARY KEY,
                side TEXT NOT NULL,
                quantity REAL NOT NULL,
                entry_price REAL NOT NULL,
                trading_type TEXT,
                opened_at TEXT NOT NULL
            );
        """)
        self.conn.commit()

    # --- Settings ---

    def get_settings(self):
        row = self.conn.execute("SELECT * FROM trading_settings WHERE id = 1").fetchone()
        if row is None:
            return None
        return OperationalSettings.from_row(row)

    def save_settings(self, settings):
        values = settings.to_dict()
        columns = ", ".join(["id"] + SETTINGS_COLUMNS + ["updated_at"])
        placeholders = ", ".join(["?"] * (len(SETTINGS_COLUMNS) + 2))
        params = [1] + [int(v) if isinstance(v, bool) else v for v in (values[c] for c in SETTINGS_COLUMNS)]
        params.append(to_db_time(utcnow()))
        self.conn.execute(
            f"INSERT OR REPLACE INTO trading_settings ({columns}) VALUES ({placeholders})", params
        )
        self.conn.commit()

    def update_settings(self, **changes):
        unknown = set(changes) - set(SETTINGS_COLUMNS)
        if unknown:
            raise KeyError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")
        current = self.get_settings() or OperationalSettings()
        updated = replace(current, **changes)
        self.save_settings(updated)
        return updated

    def ensure_default_settings(self):
        settings = self.get_settings()
        if settings is None:
            settings = OperationalSettings()
            self.save_settings(settings)
            logger.info("Created default trading settings (trading disabled)")
        return settings

    # --- Instruments ---

    def add_instrument(self, symbol, trading_type="BOTH", enabled=True, ai_priority=0):
        cur = self.conn.execute("""
            INSERT INTO trading_pairs (symbol, trading_type, enabled, ai_priority, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (symbol.upper(), str(getattr(trading_type, "value", trading_type)),
              int(enabled), ai_priority, to_db_time(utcnow())))
        self.conn.commit()
        return cur.lastrowid

    def set_instrument_enabled(self, symbol, enabled):
        cur = self.conn.execute(
            "UPDATE trading_pairs SET enabled = ? WHERE symbol = ?", (int(enabled), symbol.upper())
        )
        self.conn.commit()
        return cur.rowcount > 0

    def list_instruments(self):
        rows = self.conn.execute("SELECT * FROM trading_pairs ORDER BY id ASC").fetchall()
        return [TradableInstrument.from_row(r) for r in rows]

    def list_enabled_instruments(self):
        rows = self.conn.execute(
            "SELECT * FROM trading_pairs WHERE enabled = 1 ORDER BY id ASC"
        ).fetchall()
        return [TradableInstrument.from_row(r) for r in rows]

    # --- Signals ---

    def save_signal(self, result):
        payload = result.to_payload()
        cur = self.conn.execute("""
            INSERT INTO ai_signals
            (symbol, trading_type, signal, confidence, strength, price, score,
             target_price, stop_loss_price, indicators_data, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            payload["symbol"], payload["trading_type"], payload["signal"], payload["confidence"],
            payload["strength"], result.price, result.score, result.target_price,
            result.stop_loss_price, json.dumps(result.indicators, default=float),
            to_db_time(result.created_at),
        ))
        self.conn.commit()
        return cur.lastrowid

    def mark_signal_executed(self, signal_id, execution_price):
        self.conn.execute("""
            UPDATE ai_signals SET executed = 1, execution_price = ?, execution_time = ?
            WHERE id = ?
        """, (execution_price, to_db_time(utcnow()), signal_id))
        self.conn.commit()

    def has_recent_executed_signal(self, symbol, since):
        row = self.conn.execute("""
            SELECT COUNT(*) AS cnt FROM ai_signals
            WHERE symbol = ? AND executed = 1 AND created_at > ?
        """, (symbol, to_db_time(since))).fetchone()
        return row["cnt"] > 0

    def get_recent_signals(self, limit=20):
        rows = self.conn.execute(
            "SELECT * FROM ai_signals ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [dict(r) for r in rows]

    # --- Notifications ---

    def create_notification(self, notification):
        cur = self.conn.execute("""
            INSERT INTO notifications
            (type, category, title, message, priority, data, created_at, read_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            notification.type.value, notification.category.value, notification.title,
            notification.message, notification.priority.value,
            json.dumps(notification.data) if notification.data else None,
            to_db_time(notification.created_at),
            to_db_time(notification.read_at) if notification.read_at else None,
        ))
        self.conn.commit()
        return cur.lastrowid

    def list_notifications(self, limit=50, unread_only=False):
        query = "SELECT * FROM notifications"
        if unread_only:
            query += " WHERE read_at IS NULL"
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        rows = self.conn.execute(query, (limit,)).fetchall()
        return [Notification.from_row(r) for r in rows]

    def mark_notification_read(self, notification_id, read_at=None):
        cur = self.conn.execute(
            "UPDATE notifications SET read_at = ? WHERE id = ?",
            (to_db_time(read_at or utcnow()), notification_id),
        )
        self.conn.commit()
        return cur.rowcount > 0

    # --- System Logs ---

    def append_log(self, level, category, message, context=None, created_at=None):
        self.conn.execute("""
            INSERT INTO system_logs (level, category, message, context, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (
            level, category, message,
            json.dumps(context, default=str) if context else None,
            to_db_time(created_at or utcnow()),
        ))
        self.conn.commit()

    def get_recent_logs(self, limit=50, level=None):
        query = "SELECT * FROM system_logs"
        params = []
        if level:
            query += " WHERE level = ?"
            params.append(level)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)
        return [dict(r) for r in self.conn.execute(query, params).fetchall()]

    # --- Market Data Cache ---

    def get_cache(self, cache_key, now=None):
        row = self.conn.execute("""
            SELECT data FROM market_data_cache WHERE cache_key = ? AND expires_at >= ?
        """, (cache_key, to_db_time(now or utcnow()))).fetchone()
        if row is None:
            return None
        return json.loads(row["data"])

    def set_cache(self, cache_key, value, ttl_seconds=60, now=None):
        now = now or utcnow()
        self.conn.execute("""
            INSERT OR REPLACE INTO market_data_cache (cache_key, data, created_at, expires_at)
            VALUES (?, ?, ?, ?)
        """, (cache_key, json.dumps(value), to_db_time(now),
              to_db_time(now + timedelta(seconds=ttl_seconds))))
        self.conn.commit()

    # --- Paper Trades & Positions ---

    def save_trade(self, trade):
        cur = self.conn.execute("""
            INSERT INTO trades
            (symbol, side, quantity, price, trading_type, status, signal_id, strategy, notes, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            trade.symbol, trade.side, trade.quantity, trade.price, trade.trading_type.value,
            trade.status, trade.signal_id, trade.strategy, trade.notes, to_db_time(trade.created_at),
        ))
        self.conn.commit()
        return cur.lastrowid

    def count_trades_since(self, since):
        row = self.conn.execute(
            "SELECT COUNT(*) AS cnt FROM trades WHERE created_at >= ?", (to_db_time(since),)
        ).fetchone()
        return row["cnt"]

    def get_position(self, symbol):
        row = self.conn.execute("SELECT * FROM positions WHERE symbol = ?", (symbol,)).fetchone()
        return Position.from_row(row) if row else None

    def save_position(self, position):
        self.conn.execute("""
            INSERT OR REPLACE INTO positions (symbol, side, quantity, entry_price, trading_type, opened_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (position.symbol, position.side, position.quantity, position.entry_price,
              position.trading_type.value, to_db_time(position.opened_at)))
        self.conn.commit()

    def delete_position(self, symbol):
        self.conn.execute("DELETE FROM positions WHERE symbol = ?", (symbol,))
        self.conn.commit()

    def list_positions(self):
        rows = self.conn.execute("SELECT * FROM positions ORDER BY opened_at ASC").fetchall()
        return [Position.from_row(r) for r in rows]

    def count_open_positions(self):
        return self.conn.execute("SELECT COUNT(*) AS cnt FROM positions").fetchone()["cnt"]

    # --- Retention ---

    def delete_expired(self, record_class, now=None):
        if record_class not in EXPIRING_RECORD_CLASSES:
            raise ValueError(f"Unknown expiring record class: {record_class}")
        table, column = EXPIRING_RECORD_CLASSES[record_class]
        cur = self.conn.execute(
            f"DELETE FROM {table} WHERE {column} < ?", (to_db_time(now or utcnow()),)
        )
        self.conn.commit()
        return cur.rowcount

    def delete_older_than(self, record_class, age, now=None):
        if record_class not in AGED_RECORD_CLASSES:
            raise ValueError(f"Unknown record class: {record_class}")
        table, column, predicate = AGED_RECORD_CLASSES[record_class]
        cutoff = (now or utcnow()) - age
        cur = self.conn.execute(
            f"DELETE FROM {table} WHERE {predicate} AND {column} < ?", (to_db_time(cutoff),)
        )
        self.conn.commit()
        return cur.rowcount
