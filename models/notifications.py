"""Notification records created by the alert gate and strategies."""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from models.enums import NotificationType, NotificationCategory, Priority


@dataclass
class Notification:
    type: NotificationType = NotificationType.SIGNAL
    category: NotificationCategory = NotificationCategory.AI
    title: str = ""
    message: str = ""
    priority: Priority = Priority.NORMAL
    data: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read_at: Optional[datetime] = None
    id: Optional[int] = None

    def __post_init__(self):
        self.type = NotificationType(self.type)
        self.category = NotificationCategory(self.category)
        self.priority = Priority(self.priority)

    @property
    def is_read(self):
        return self.read_at is not None

    @classmethod
    def from_row(cls, row):
        d = dict(row)
        read_at = d.get("read_at")
        return cls(
            type=d["type"],
            category=d["category"],
            title=d.get("title") or "",
            message=d.get("message") or "",
            priority=d.get("priority") or Priority.NORMAL,
            data=json.loads(d["data"]) if d.get("data") else {},
            created_at=datetime.fromisoformat(d["created_at"]),
            read_at=datetime.fromisoformat(read_at) if read_at else None,
            id=d.get("id"),
        )
