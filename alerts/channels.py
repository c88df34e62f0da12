"""Notification delivery channels."""
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger("tradecycle.alerts.channels")


@runtime_checkable
class AlertChannel(Protocol):
    def send(self, notification) -> None: ...


class ConsoleChannel:
    """Print notifications to terminal with rich formatting."""

    PRIORITY_STYLES = {
        "URGENT": "bold white on red",
        "HIGH": "bold yellow",
        "NORMAL": "bold blue",
        "LOW": "dim",
    }

    def __init__(self, console=None):
        self._console = console

    def send(self, notification):
        from rich.console import Console
        from rich.markup import escape
        console = self._console or Console()

        prio = notification.priority.value
        style = self.PRIORITY_STYLES.get(prio, "")
        console.print(f"[{style}]{escape(f'[{prio}]')} {escape(notification.title)}[/]: {escape(notification.message)}")


class FileChannel:
    """Append notifications to a JSON lines log file."""

    def __init__(self, log_path="data/notifications.jsonl"):
        self.log_path = log_path

    def send(self, notification):
        entry = {
            "timestamp": notification.created_at.isoformat(),
            "id": notification.id,
            "type": notification.type.value,
            "category": notification.category.value,
            "priority": notification.priority.value,
            "title": notification.title,
            "message": notification.message,
            "data": notification.data,
        }
        try:
            Path(self.log_path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            logger.warning(f"Failed to write notification to file: {e}")


def build_channels(config, console=None):
    """Delivery channels from the ``alerts.channels`` and ``telegram`` config sections."""
    channels = []
    ch_cfg = config.get("alerts", {}).get("channels", {}) or {}
    if ch_cfg.get("console"):
        channels.append(ConsoleChannel(console))
    if ch_cfg.get("file"):
        channels.append(FileChannel(ch_cfg["file"]))

    tg = config.get("telegram", {}) or {}
    if tg.get("enabled") and tg.get("bot_token") and tg.get("chat_id"):
        from notifications.telegram_bot import TelegramBot
        from alerts.telegram_channel import TelegramChannel
        bot = TelegramBot(tg["bot_token"], tg["chat_id"])
        channels.append(TelegramChannel(bot, tg.get("min_priority", "HIGH")))
    return channels
