"""AlertGate - turns high-confidence analysis results into notifications."""
import logging
from models.enums import NotificationCategory, NotificationType, Priority
from models.errors import NotificationCreationError
from models.notifications import Notification

logger = logging.getLogger("tradecycle.alerts.gate")


class AlertGate:
    """Create and dispatch notifications.

    ``notify(result)`` creates a SIGNAL/AI notification when confidence is
    strictly above ``notify_threshold``; HIGH priority when also strictly
    above ``high_priority_threshold``, NORMAL otherwise. Every created
    notification is sent to each channel. Sink and channel failures are
    logged and never raised.
    """

    def __init__(self, sink, channels=None, notify_threshold=0.8, high_priority_threshold=0.9):
        self.sink = sink
        self.channels = channels or []
        self.notify_threshold = notify_threshold
        self.high_priority_threshold = high_priority_threshold

    def notify(self, result):
        if result.confidence <= self.notify_threshold:
            return None
        return self.publish(self.signal_notification(result))

    def signal_notification(self, result):
        priority = Priority.HIGH if result.confidence > self.high_priority_threshold else Priority.NORMAL
        signal = result.signal.value
        strength = result.strength.value if result.strength else "UNRATED"
        data = result.to_payload()
        if result.target_price is not None:
            data["target_price"] = result.target_price
        if result.stop_loss_price is not None:
            data["stop_loss_price"] = result.stop_loss_price
        return Notification(
            type=NotificationType.SIGNAL,
            category=NotificationCategory.AI,
            title=f"High Confidence Signal: {signal} {result.symbol}",
            message=(
                f"AI generated a {strength} {signal} signal for {result.symbol} "
                f"with {result.confidence_pct}% confidence."
            ),
            priority=priority,
            data=data,
        )

    def publish(self, notification):
        """Persist then dispatch. Returns the new id, or None when the sink rejected it."""
        try:
            notification.id = self._create(notification)
        except NotificationCreationError as e:
            logger.error(f"Failed to create notification '{notification.title}': {e}")
            return None

        logger.info(f"Notification created: [{notification.priority.value}] {notification.title}")
        self._dispatch(notification)
        return notification.id

    def _create(self, notification):
        try:
            return self.sink.create_notification(notification)
        except Exception as e:
            raise NotificationCreationError(str(e)) from e

    def _dispatch(self, notification):
        for channel in self.channels:
            try:
                channel.send(notification)
            except Exception as e:
                logger.warning(f"Channel {type(channel).__name__} failed: {e}")
