"""Tests for the in-app notification dispatch and inbox."""

from __future__ import annotations

from datetime import timedelta

from haddaf.goals.metrics import MetricType
from haddaf.goals.notifications import (
    InAppNotificationDispatch,
    Notification,
    NotificationType,
    goal_achieved_notification,
    goal_removed_notification,
)
from tests.conftest import T0


class TestMessages:
    def test_achieved_text(self):
        n = goal_achieved_notification("player-1", MetricType.shoot, 3)
        assert n.type == NotificationType.goal_achieved
        assert n.title == "Goal reached!"
        assert n.message == "You hit 3 Shoot in one video."
        assert n.is_read is False

    def test_removed_text(self):
        n = goal_removed_notification("player-1", MetricType.pass_)
        assert n.type == NotificationType.goal_removed
        assert n.message == "Your Pass goal was removed."


class TestDispatch:
    async def test_achieved_lands_in_inbox(self, notifier, inbox):
        await notifier.notify_goal_achieved("player-1", MetricType.dribble, 2)
        items = inbox.list_for_owner("player-1")
        assert len(items) == 1
        assert items[0].metric == MetricType.dribble

    async def test_player_opt_out(self, notifier, inbox):
        notifier.set_goal_notifications("player-1", False)
        await notifier.notify_goal_achieved("player-1", MetricType.dribble, 2)
        await notifier.notify_goal_removed("player-1", MetricType.dribble)
        assert inbox.list_for_owner("player-1") == []

        notifier.set_goal_notifications("player-1", True)
        await notifier.notify_goal_achieved("player-1", MetricType.dribble, 2)
        assert len(inbox.list_for_owner("player-1")) == 1

    async def test_globally_disabled(self, inbox):
        dispatch = InAppNotificationDispatch(inbox, enabled=False)
        await dispatch.notify_goal_achieved("player-1", MetricType.shoot, 1)
        assert inbox.list_for_owner("player-1") == []


class TestInbox:
    def _add(self, inbox, owner_id="player-1", minutes=0):
        return inbox.add(
            Notification(
                owner_id=owner_id,
                type=NotificationType.goal_achieved,
                title="t",
                message="m",
                created_at=T0 + timedelta(minutes=minutes),
            )
        )

    def test_newest_first(self, inbox):
        old = self._add(inbox, minutes=0)
        new = self._add(inbox, minutes=5)
        assert [n.id for n in inbox.list_for_owner("player-1")] == [new.id, old.id]

    def test_unread_count_and_mark_read(self, inbox):
        first = self._add(inbox)
        self._add(inbox, minutes=1)
        assert inbox.unread_count("player-1") == 2

        assert inbox.mark_as_read("player-1", first.id) is True
        assert inbox.unread_count("player-1") == 1

    def test_mark_all_read(self, inbox):
        self._add(inbox)
        self._add(inbox, minutes=1)
        self._add(inbox, owner_id="player-2")
        assert inbox.mark_all_as_read("player-1") == 2
        assert inbox.unread_count("player-1") == 0
        assert inbox.unread_count("player-2") == 1

    def test_other_owner_cannot_touch(self, inbox):
        item = self._add(inbox)
        assert inbox.mark_as_read("player-2", item.id) is False
        assert inbox.delete("player-2", item.id) is False
        assert inbox.unread_count("player-1") == 1

    def test_delete(self, inbox):
        item = self._add(inbox)
        assert inbox.delete("player-1", item.id) is True
        assert inbox.list_for_owner("player-1") == []
        assert inbox.delete("player-1", item.id) is False

    def test_feed(self, inbox):
        self._add(inbox)
        feed = inbox.feed("player-1")
        assert feed.unread_count == 1
        assert len(feed.notifications) == 1
