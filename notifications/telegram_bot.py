"""Telegram Bot API client for trading notifications.

Uses raw HTTP POST via requests.
"""
import logging
import requests

logger = logging.getLogger("tradecycle.telegram")

TELEGRAM_API = "https://api.telegram.org/bot{token}"

_PRIORITY_EMOJI = {
    "URGENT": "\U0001f6a8",
    "HIGH": "❗",
    "NORMAL": "ℹ️",
    "LOW": "•",
}


class TelegramBot:
    """Thin wrapper around Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, session=None):
        self.bot_token = bot_token
        self.chat_id = str(chat_id)
        self.base_url = TELEGRAM_API.format(token=bot_token)
        self.session = session or requests

    # ── core API ─────────────────────────────────────

    def send_message(self, text: str, chat_id: str = None,
                     parse_mode: str = "Markdown") -> dict:
        """Send a text message. Returns Telegram API response dict."""
        url = f"{self.base_url}/sendMessage"
        payload = {
            "chat_id": chat_id or self.chat_id,
            "text": text,
            "parse_mode": parse_mode,
        }
        try:
            resp = self.session.post(url, json=payload, timeout=30)
            resp.raise_for_status()
            data = resp.json()
            if not data.get("ok"):
                logger.warning("Telegram API error: %s", data.get("description"))
            return data
        except requests.RequestException as e:
            logger.error("Telegram send failed: %s", e)
            raise

    # ── high-level sends ─────────────────────────────

    def send_notification(self, notification) -> dict:
        """Format and send a Notification."""
        return self.send_message(self.format_notification(notification))

    # ── formatters ───────────────────────────────────

    @staticmethod
    def format_notification(n) -> str:
        """Format a Notification into Telegram Markdown."""
        emoji = _PRIORITY_EMOJI.get(n.priority.value, "")
        lines = [
            f"{emoji} *{n.title}*",
            n.message,
        ]
        data = n.data or {}
        if data.get("target_price") or data.get("stop_loss_price"):
            lines.append("")
            if data.get("target_price"):
                lines.append(f"Target: {data['target_price']:,.4f}")
            if data.get("stop_loss_price"):
                lines.append(f"Stop: {data['stop_loss_price']:,.4f}")
        lines.append(f"_{n.type.value} / {n.category.value} / {n.priority.value}_")
        return "\n".join(lines)
