"""Goal state machine — pure stateless functions, no I/O.

States: active -> achieved (one way). Callers persist the returned goal and
fire notifications based on the result tag; nothing here has side effects.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from haddaf.goals.errors import InvalidTransitionError, OutOfRangeError
from haddaf.goals.metrics import MetricType, list_metrics
from haddaf.goals.models import (
    TARGET_MAX,
    TARGET_MIN,
    EvaluationOutcome,
    EvaluationResult,
    GoalStatus,
    PerformanceObservation,
    PlayerGoal,
)


def validate_target(target_count: int) -> int:
    if not TARGET_MIN <= target_count <= TARGET_MAX:
        raise OutOfRangeError("target_count", target_count, TARGET_MIN, TARGET_MAX)
    return target_count


def new_goal(owner_id: str, metric: MetricType, target_count: int) -> PlayerGoal:
    """Build a fresh active goal. Timestamps are left for the repository."""
    validate_target(target_count)
    return PlayerGoal(owner_id=owner_id, metric=metric, target_count=target_count)


def evaluate(goal: PlayerGoal, observed_count: int, observed_at: datetime) -> EvaluationResult:
    """Compare one observed count against a goal.

    - achieved goals are returned unchanged (achieved_at is never moved)
    - observed_count >= target_count achieves the goal, stamped with observed_at
    - a zero target is met by a zero count
    """
    if observed_count < 0:
        raise OutOfRangeError("observed_count", observed_count, 0)

    if goal.status != GoalStatus.active:
        return EvaluationResult(outcome=EvaluationOutcome.unchanged, goal=goal)

    if observed_count >= goal.target_count:
        achieved = goal.replace(status=GoalStatus.achieved, achieved_at=observed_at)
        return EvaluationResult(outcome=EvaluationOutcome.achieved, goal=achieved)

    return EvaluationResult(outcome=EvaluationOutcome.unchanged, goal=goal)


def set_target(goal: PlayerGoal, new_target: int) -> PlayerGoal:
    """Edit the target of an active goal. Achieved goals must be dismissed, not edited."""
    if goal.status != GoalStatus.active:
        raise InvalidTransitionError(goal.id, goal.status.value, "edit target of")
    validate_target(new_target)
    return goal.replace(target_count=new_target)


def selectable_metrics(existing_goals: Iterable[PlayerGoal]) -> list[MetricType]:
    """Metrics with no active goal, in enum order."""
    blocked = {g.metric for g in existing_goals if g.status == GoalStatus.active}
    return [m for m in list_metrics() if m not in blocked]


def evaluate_observation(
    goals: Iterable[PlayerGoal],
    observation: PerformanceObservation,
) -> list[EvaluationResult]:
    """Evaluate every active goal against the matching count of one video."""
    results: list[EvaluationResult] = []
    for goal in goals:
        if goal.status != GoalStatus.active:
            continue
        count = observation.count_for(goal.metric)
        results.append(evaluate(goal, count, observation.observed_at))
    return results
