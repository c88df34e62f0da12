"""Telegram notification channel, implements AlertChannel protocol."""
import logging
from models.enums import Priority

logger = logging.getLogger("tradecycle.alerts.telegram")


class TelegramChannel:
    """Send notifications via Telegram when their priority meets a threshold.

    Implements the AlertChannel protocol: send(self, notification) -> None.
    """

    def __init__(self, bot, min_priority="HIGH"):
        self.bot = bot
        self.min_priority = Priority(min_priority)

    def send(self, notification) -> None:
        if notification.priority.rank < self.min_priority.rank:
            return
        try:
            self.bot.send_notification(notification)
        except Exception as e:
            logger.warning("Telegram notification failed: %s", e)
