"""Live per-player goal view fed by a repository subscription."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from haddaf.goals.evaluator import selectable_metrics
from haddaf.goals.metrics import MetricType
from haddaf.goals.models import PlayerGoal
from haddaf.goals.repository import GoalRepository

logger = logging.getLogger(__name__)


class GoalTracker:
    """Holds the latest goal snapshot of one player.

    At most one subscription runs per tracker: ``start`` cancels the previous
    one before subscribing again. Each snapshot replaces ``goals`` wholesale.
    """

    def __init__(self, repository: GoalRepository):
        self._repository = repository
        self._task: asyncio.Task | None = None
        self._snapshot_event = asyncio.Event()
        self.owner_id: str | None = None
        self.goals: list[PlayerGoal] = []
        self.is_loading = False
        self.last_error: Exception | None = None

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def selectable_metrics(self) -> list[MetricType]:
        return selectable_metrics(self.goals)

    async def start(self, owner_id: str) -> None:
        await self.stop()
        self.owner_id = owner_id
        self.goals = []
        self.is_loading = True
        self.last_error = None
        self._snapshot_event.clear()
        self._task = asyncio.create_task(self._consume(owner_id))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self.is_loading = False

    async def wait_for_snapshot(self, timeout: float = 1.0) -> list[PlayerGoal]:
        await asyncio.wait_for(self._snapshot_event.wait(), timeout)
        self._snapshot_event.clear()
        return self.goals

    async def _consume(self, owner_id: str) -> None:
        stream = self._repository.subscribe(owner_id)
        try:
            async for snapshot in stream:
                self.goals = list(snapshot)
                self.is_loading = False
                self._snapshot_event.set()
        except Exception as exc:
            # Surfaced through last_error; the caller restarts by calling start() again
            logger.exception("Goal subscription for %s failed", owner_id)
            self.last_error = exc
            self.is_loading = False
        finally:
            await stream.aclose()
