"""Utility modules for the trading cycle."""
from utils.logger import setup_logging, DatabaseLogHandler
from utils.formatters import format_usd, format_pct, format_flag, format_timestamp, time_ago
from utils.rate_limiter import RateLimiter, FixedIntervalLimiter
from utils.http_client import HTTPClient, APIError
from utils.run_lock import RunLock
