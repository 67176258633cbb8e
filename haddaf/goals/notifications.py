"""Notification dispatch contract and the in-app inbox implementation.

Dispatch is fire-and-forget: callers invoke it after the goal change is
persisted and a failure here never undoes that change.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from haddaf.goals.metrics import MetricType, metric_label
from haddaf.goals.models import utcnow

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    goal_achieved = "goal_achieved"
    goal_removed = "goal_removed"


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    type: NotificationType
    title: str
    message: str
    metric: MetricType | None = None
    created_at: datetime = Field(default_factory=utcnow)
    is_read: bool = False


class NotificationFeed(BaseModel):
    owner_id: str
    unread_count: int = 0
    notifications: list[Notification] = Field(default_factory=list)


class NotificationDispatch(ABC):
    @abstractmethod
    async def notify_goal_achieved(self, owner_id: str, metric: MetricType, target_count: int) -> None:
        pass

    @abstractmethod
    async def notify_goal_removed(self, owner_id: str, metric: MetricType) -> None:
        pass


def goal_achieved_notification(owner_id: str, metric: MetricType, target_count: int) -> Notification:
    return Notification(
        owner_id=owner_id,
        type=NotificationType.goal_achieved,
        title="Goal reached!",
        message=f"You hit {target_count} {metric_label(metric)} in one video.",
        metric=metric,
    )


def goal_removed_notification(owner_id: str, metric: MetricType) -> Notification:
    return Notification(
        owner_id=owner_id,
        type=NotificationType.goal_removed,
        title="Goal removed",
        message=f"Your {metric_label(metric)} goal was removed.",
        metric=metric,
    )


class NotificationInbox:
    """In-memory per-player notification list."""

    def __init__(self) -> None:
        self._items: dict[str, Notification] = {}

    def add(self, notification: Notification) -> Notification:
        self._items[notification.id] = notification
        return notification

    def list_for_owner(self, owner_id: str) -> list[Notification]:
        items = [n for n in self._items.values() if n.owner_id == owner_id]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    def unread_count(self, owner_id: str) -> int:
        return sum(1 for n in self.list_for_owner(owner_id) if not n.is_read)

    def feed(self, owner_id: str) -> NotificationFeed:
        items = self.list_for_owner(owner_id)
        return NotificationFeed(
            owner_id=owner_id,
            unread_count=sum(1 for n in items if not n.is_read),
            notifications=items,
        )

    def mark_as_read(self, owner_id: str, notification_id: str) -> bool:
        item = self._items.get(notification_id)
        if item is None or item.owner_id != owner_id:
            return False
        self._items[notification_id] = item.model_copy(update={"is_read": True})
        return True

    def mark_all_as_read(self, owner_id: str) -> int:
        updated = 0
        for item in self.list_for_owner(owner_id):
            if not item.is_read:
                self._items[item.id] = item.model_copy(update={"is_read": True})
                updated += 1
        return updated

    def delete(self, owner_id: str, notification_id: str) -> bool:
        item = self._items.get(notification_id)
        if item is None or item.owner_id != owner_id:
            return False
        del self._items[notification_id]
        return True


class InAppNotificationDispatch(NotificationDispatch):
    """Writes goal notifications into an inbox, honouring per-player opt-outs."""

    def __init__(self, inbox: NotificationInbox, enabled: bool = True):
        self.inbox = inbox
        self.enabled = enabled
        self._muted: set[str] = set()

    def set_goal_notifications(self, owner_id: str, enabled: bool) -> None:
        if enabled:
            self._muted.discard(owner_id)
        else:
            self._muted.add(owner_id)

    def should_send(self, owner_id: str) -> bool:
        return self.enabled and owner_id not in self._muted

    async def notify_goal_achieved(self, owner_id: str, metric: MetricType, target_count: int) -> None:
        if not self.should_send(owner_id):
            logger.info("Goal notifications disabled for %s", owner_id)
            return
        self.inbox.add(goal_achieved_notification(owner_id, metric, target_count))
        logger.info("Goal achieved notification sent to %s (%s)", owner_id, metric.value)

    async def notify_goal_removed(self, owner_id: str, metric: MetricType) -> None:
        if not self.should_send(owner_id):
            return
        self.inbox.add(goal_removed_notification(owner_id, metric))
        logger.info("Goal removed notification sent to %s (%s)", owner_id, metric.value)
