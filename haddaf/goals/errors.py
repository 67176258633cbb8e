"""Goal tracking error taxonomy."""

from __future__ import annotations


class GoalError(Exception):
    """Base for every error raised by the goal tracking package."""


class GoalValidationError(GoalError):
    """A rejected operation; the caller keeps the prior value."""


class OutOfRangeError(GoalValidationError):
    def __init__(self, field: str, value: int, low: int | None = None, high: int | None = None):
        self.field = field
        self.value = value
        self.low = low
        self.high = high
        if high is None:
            bounds = f">= {low}"
        else:
            bounds = f"in [{low}, {high}]"
        super().__init__(f"{field} must be {bounds}, got {value}")


class InvalidTransitionError(GoalValidationError):
    def __init__(self, goal_id: str, status: str, operation: str):
        self.goal_id = goal_id
        self.status = status
        self.operation = operation
        super().__init__(f"Cannot {operation} goal {goal_id} in status '{status}'")


class DuplicateActiveGoalError(GoalValidationError):
    def __init__(self, owner_id: str, metric: str):
        self.owner_id = owner_id
        self.metric = metric
        super().__init__(f"Player {owner_id} already has an active {metric} goal")


class GoalNotFoundError(GoalError):
    def __init__(self, goal_id: str):
        self.goal_id = goal_id
        super().__init__(f"Goal not found: {goal_id}")


class StorageError(GoalError):
    """Opaque persistence failure; the underlying error is chained as __cause__."""
