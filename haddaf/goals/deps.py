"""FastAPI dependency providers — override via app.dependency_overrides."""

from __future__ import annotations

from fastapi import Depends

from haddaf.config import settings
from haddaf.db import get_sessionmaker
from haddaf.goals.notifications import InAppNotificationDispatch, NotificationDispatch, NotificationInbox
from haddaf.goals.repository import GoalRepository, InMemoryGoalRepository
from haddaf.goals.service import GoalService
from haddaf.goals.sql_repository import SqlGoalRepository

_repository: GoalRepository | None = None
_inbox = NotificationInbox()
_notifier = InAppNotificationDispatch(_inbox, enabled=settings.notifications_enabled)


def build_repository(goal_store: str) -> GoalRepository:
    if goal_store == "memory":
        return InMemoryGoalRepository()
    if goal_store == "sql":
        return SqlGoalRepository(get_sessionmaker())
    raise ValueError(f"Unknown goal_store: {goal_store}")


def get_repository() -> GoalRepository:
    global _repository
    if _repository is None:
        _repository = build_repository(settings.goal_store)
    return _repository


def get_inbox() -> NotificationInbox:
    return _inbox


def get_notifier() -> NotificationDispatch:
    return _notifier


def get_goal_service(
    repository: GoalRepository = Depends(get_repository),
    notifier: NotificationDispatch = Depends(get_notifier),
) -> GoalService:
    return GoalService(repository, notifier)
