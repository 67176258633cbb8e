"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from haddaf.db import make_engine, make_sessionmaker
from haddaf.goals.deps import get_inbox, get_notifier, get_repository
from haddaf.goals.errors import StorageError
from haddaf.goals.metrics import MetricType
from haddaf.goals.models import GoalStatus, PlayerGoal
from haddaf.goals.notifications import InAppNotificationDispatch, NotificationInbox
from haddaf.goals.repository import InMemoryGoalRepository
from haddaf.goals.service import GoalService
from haddaf.goals.sql_repository import SqlGoalRepository
from haddaf.main import app

T0 = datetime(2026, 2, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Deterministic clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FailingDispatch(InAppNotificationDispatch):
    """Dispatch whose every send blows up."""

    async def notify_goal_achieved(self, owner_id, metric, target_count):
        raise RuntimeError("push gateway down")

    async def notify_goal_removed(self, owner_id, metric):
        raise RuntimeError("push gateway down")


class FlakyGoalRepository(InMemoryGoalRepository):
    """In-memory repository that cannot store achievements for one metric."""

    def __init__(self, failing_metric: MetricType, clock=None):
        super().__init__(clock=clock)
        self.failing_metric = failing_metric

    async def mark_achieved(self, goal):
        if goal.metric == self.failing_metric:
            raise StorageError(f"write of goal {goal.id} timed out")
        return await super().mark_achieved(goal)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def repository(clock):
    return InMemoryGoalRepository(clock=clock)


@pytest.fixture()
async def sql_repository(tmp_path, clock):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'goals.db'}")
    yield SqlGoalRepository(make_sessionmaker(engine), clock=clock)
    await engine.dispose()


@pytest.fixture(params=["memory", "sql"])
async def any_repository(request, tmp_path, clock):
    """Runs a test against both repository implementations."""
    if request.param == "memory":
        yield InMemoryGoalRepository(clock=clock)
        return
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'goals.db'}")
    yield SqlGoalRepository(make_sessionmaker(engine), clock=clock)
    await engine.dispose()


@pytest.fixture()
def inbox():
    return NotificationInbox()


@pytest.fixture()
def notifier(inbox):
    return InAppNotificationDispatch(inbox)


@pytest.fixture()
def service(repository, notifier):
    return GoalService(repository, notifier)


@pytest.fixture()
def override_deps(repository, inbox, notifier):
    """Point the FastAPI dependencies at per-test in-memory collaborators."""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_inbox] = lambda: inbox
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield repository
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_deps):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_goal(
    metric: MetricType = MetricType.shoot,
    target_count: int = 3,
    owner_id: str = "player-1",
    status: GoalStatus = GoalStatus.active,
    achieved_at: datetime | None = None,
    **overrides,
) -> PlayerGoal:
    """Helper to build a PlayerGoal; achieved goals default achieved_at to T0."""
    if status == GoalStatus.achieved and achieved_at is None:
        achieved_at = T0
    return PlayerGoal(
        owner_id=owner_id,
        metric=metric,
        target_count=target_count,
        status=status,
        achieved_at=achieved_at,
        **overrides,
    )
