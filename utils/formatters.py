"""Formatting utilities for display."""
from datetime import datetime, timezone


def format_usd(value):
    """Format USD value with commas and 2 decimals."""
    if value is None:
        return "N/A"
    return f"${float(value):,.2f}"


def format_pct(value, decimals=1):
    """Format a 0..1 ratio as a percentage: 0.853 -> '85.3%'."""
    if value is None:
        return "N/A"
    return f"{float(value) * 100:.{decimals}f}%"


def format_flag(value):
    """Render a boolean setting with rich color markup."""
    return "[green]ON[/green]" if value else "[red]OFF[/red]"


def format_timestamp(ts):
    """Format a datetime to human-readable string."""
    if ts is None:
        return "N/A"
    if isinstance(ts, str):
        return ts
    return ts.strftime("%Y-%m-%d %H:%M UTC")


def time_ago(dt):
    """Return human-readable time since dt. E.g., '3h ago', '2d ago'."""
    if dt is None:
        return "N/A"
    now = datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    seconds = int((now - dt).total_seconds())

    if seconds < 60:
        return f"{seconds}s ago"
    elif seconds < 3600:
        return f"{seconds // 60}m ago"
    elif seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
