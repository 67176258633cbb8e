"""GoalRepository contract, snapshot fan-out and the in-memory store."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import AsyncGenerator, Awaitable, Callable

from haddaf.goals.errors import DuplicateActiveGoalError
from haddaf.goals.models import GoalStatus, PlayerGoal, utcnow

logger = logging.getLogger(__name__)

Snapshot = list[PlayerGoal]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class GoalRepository(ABC):
    @abstractmethod
    async def save(self, goal: PlayerGoal) -> PlayerGoal:
        """Upsert by id and return the stored goal with bookkeeping timestamps set."""

    @abstractmethod
    async def mark_achieved(self, goal: PlayerGoal) -> PlayerGoal | None:
        """Store an achieved goal only if the stored copy is still active.

        Returns the stored goal when this call made the transition, None when
        the goal is gone or was already achieved (achieved_at is left alone).
        """

    @abstractmethod
    async def delete(self, goal_id: str) -> None:
        """Remove a goal. Unknown ids are ignored."""

    @abstractmethod
    async def get(self, goal_id: str) -> PlayerGoal | None:
        pass

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> Snapshot:
        """Every goal of a player, oldest first."""

    @abstractmethod
    def subscribe(self, owner_id: str) -> AsyncGenerator[Snapshot, None]:
        """Current snapshot, then a full snapshot after every change. Close to cancel."""


def stamp(goal: PlayerGoal, previous: PlayerGoal | None, now: datetime) -> PlayerGoal:
    created_at = goal.created_at
    if created_at is None and previous is not None:
        created_at = previous.created_at
    return goal.replace(created_at=created_at or now, updated_at=now)


def _sort_key(goal: PlayerGoal) -> tuple[datetime, str]:
    return (goal.created_at or _EPOCH, goal.id)


def _put_latest(queue: asyncio.Queue, snapshot: Snapshot) -> None:
    # Size-1 queue: a pending stale snapshot is replaced, never merged
    if queue.full():
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
    queue.put_nowait(snapshot)


class SnapshotHub:
    """Per-owner fan-out of full goal snapshots to live subscribers."""

    def __init__(self) -> None:
        self._subscribers: dict[str, set[asyncio.Queue]] = {}

    def has_subscribers(self, owner_id: str) -> bool:
        return bool(self._subscribers.get(owner_id))

    def subscriber_count(self, owner_id: str) -> int:
        return len(self._subscribers.get(owner_id, ()))

    def publish(self, owner_id: str, snapshot: Snapshot) -> None:
        for queue in list(self._subscribers.get(owner_id, ())):
            _put_latest(queue, list(snapshot))

    async def stream(
        self,
        owner_id: str,
        load: Callable[[str], Awaitable[Snapshot]],
    ) -> AsyncGenerator[Snapshot, None]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._subscribers.setdefault(owner_id, set()).add(queue)
        logger.debug("Snapshot subscriber added for %s", owner_id)
        try:
            yield await load(owner_id)
            while True:
                yield await queue.get()
        finally:
            subscribers = self._subscribers.get(owner_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[owner_id]
            logger.debug("Snapshot subscriber removed for %s", owner_id)


class InMemoryGoalRepository(GoalRepository):
    """Dict-backed store with the same contract as the SQL repository."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._goals: dict[str, PlayerGoal] = {}
        self._clock = clock
        self.hub = SnapshotHub()

    async def save(self, goal: PlayerGoal) -> PlayerGoal:
        if goal.status == GoalStatus.active:
            for other in self._goals.values():
                if (
                    other.id != goal.id
                    and other.owner_id == goal.owner_id
                    and other.metric == goal.metric
                    and other.status == GoalStatus.active
                ):
                    raise DuplicateActiveGoalError(goal.owner_id, goal.metric.value)

        stored = stamp(goal, self._goals.get(goal.id), self._clock())
        self._goals[stored.id] = stored
        await self._publish(stored.owner_id)
        return stored

    async def mark_achieved(self, goal: PlayerGoal) -> PlayerGoal | None:
        current = self._goals.get(goal.id)
        if current is None or current.status != GoalStatus.active:
            return None
        stored = current.replace(
            status=GoalStatus.achieved,
            achieved_at=goal.achieved_at,
            updated_at=self._clock(),
        )
        self._goals[stored.id] = stored
        await self._publish(stored.owner_id)
        return stored

    async def delete(self, goal_id: str) -> None:
        removed = self._goals.pop(goal_id, None)
        if removed is not None:
            await self._publish(removed.owner_id)

    async def get(self, goal_id: str) -> PlayerGoal | None:
        return self._goals.get(goal_id)

    async def list_for_owner(self, owner_id: str) -> Snapshot:
        goals = [g for g in self._goals.values() if g.owner_id == owner_id]
        return sorted(goals, key=_sort_key)

    def subscribe(self, owner_id: str) -> AsyncGenerator[Snapshot, None]:
        return self.hub.stream(owner_id, self.list_for_owner)

    async def _publish(self, owner_id: str) -> None:
        if self.hub.has_subscribers(owner_id):
            self.hub.publish(owner_id, await self.list_for_owner(owner_id))
