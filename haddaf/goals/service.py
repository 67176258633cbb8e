"""Goal application service — wires the evaluator to its collaborators.

One instance per app, injected with a repository and a notification
dispatch. The evaluator stays pure; persistence and notifications happen here.
"""

from __future__ import annotations

import logging

from haddaf.goals import evaluator
from haddaf.goals.errors import DuplicateActiveGoalError, GoalNotFoundError, StorageError
from haddaf.goals.metrics import MetricType
from haddaf.goals.models import (
    EvaluationOutcome,
    EvaluationResult,
    GoalBoard,
    GoalStatus,
    PerformanceObservation,
    PlayerGoal,
)
from haddaf.goals.notifications import NotificationDispatch
from haddaf.goals.repository import GoalRepository

logger = logging.getLogger(__name__)


class GoalService:
    def __init__(self, repository: GoalRepository, notifier: NotificationDispatch):
        self.repository = repository
        self.notifier = notifier

    async def list_goals(self, owner_id: str) -> list[PlayerGoal]:
        return await self.repository.list_for_owner(owner_id)

    async def board(self, owner_id: str) -> GoalBoard:
        goals = await self.repository.list_for_owner(owner_id)
        return GoalBoard(
            owner_id=owner_id,
            goals=goals,
            selectable_metrics=evaluator.selectable_metrics(goals),
        )

    async def get_goal(self, owner_id: str, goal_id: str) -> PlayerGoal:
        goal = await self.repository.get(goal_id)
        # Someone else's goal is reported exactly like a missing one
        if goal is None or goal.owner_id != owner_id:
            raise GoalNotFoundError(goal_id)
        return goal

    async def set_goal(self, owner_id: str, metric: MetricType, target_count: int) -> PlayerGoal:
        """Create a new active goal for a metric.

        An achieved goal for the same metric is dismissed first; an active one
        blocks the request.
        """
        goal = evaluator.new_goal(owner_id, metric, target_count)

        existing = [g for g in await self.repository.list_for_owner(owner_id) if g.metric == metric]
        if any(g.status == GoalStatus.active for g in existing):
            raise DuplicateActiveGoalError(owner_id, metric.value)
        for old in existing:
            await self.repository.delete(old.id)
            logger.info("Replaced achieved %s goal %s for %s", metric.value, old.id, owner_id)
            await self._notify_removed(owner_id, metric)

        saved = await self.repository.save(goal)
        logger.info("Goal %s set for %s: %s x%d", saved.id, owner_id, metric.value, target_count)
        return saved

    async def update_target(self, owner_id: str, goal_id: str, target_count: int) -> PlayerGoal:
        goal = await self.get_goal(owner_id, goal_id)
        updated = evaluator.set_target(goal, target_count)
        return await self.repository.save(updated)

    async def dismiss_goal(self, owner_id: str, goal_id: str) -> None:
        goal = await self.get_goal(owner_id, goal_id)
        await self.repository.delete(goal.id)
        logger.info("Goal %s dismissed by %s", goal.id, owner_id)
        await self._notify_removed(owner_id, goal.metric)

    async def record_performance(
        self,
        owner_id: str,
        observation: PerformanceObservation,
    ) -> list[EvaluationResult]:
        """Evaluate a processed video against the player's active goals.

        Each achievement is written with a compare-and-set and notified right
        after its own write, so overlapping observations notify once and keep
        the first achieved_at. A failed write does not stop the other goals;
        the first StorageError is raised once every goal has been handled.
        """
        goals = await self.repository.list_for_owner(owner_id)

        results: list[EvaluationResult] = []
        failures: list[StorageError] = []
        for result in evaluator.evaluate_observation(goals, observation):
            if not result.achieved:
                results.append(result)
                continue

            try:
                stored = await self.repository.mark_achieved(result.goal)
            except StorageError as exc:
                logger.error("Could not store achievement of goal %s: %s", result.goal.id, exc)
                failures.append(exc)
                continue

            if stored is None:
                # Achieved (or dismissed) by an overlapping observation
                current = await self.repository.get(result.goal.id)
                if current is not None:
                    results.append(EvaluationResult(outcome=EvaluationOutcome.unchanged, goal=current))
                continue

            logger.info("Goal %s achieved by %s (%s)", stored.id, owner_id, stored.metric.value)
            results.append(EvaluationResult(outcome=EvaluationOutcome.achieved, goal=stored))
            await self._notify_achieved(owner_id, stored)

        if failures:
            raise failures[0]
        return results

    async def _notify_achieved(self, owner_id: str, goal: PlayerGoal) -> None:
        try:
            await self.notifier.notify_goal_achieved(owner_id, goal.metric, goal.target_count)
        except Exception:
            logger.exception("Goal achieved notification failed for %s", owner_id)

    async def _notify_removed(self, owner_id: str, metric: MetricType) -> None:
        try:
            await self.notifier.notify_goal_removed(owner_id, metric)
        except Exception:
            logger.exception("Goal removed notification failed for %s", owner_id)
