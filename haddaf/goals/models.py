"""Goal tracking contract — Pydantic v2 models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from haddaf.goals.metrics import MetricType

TARGET_MIN = 0
TARGET_MAX = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoalStatus(str, Enum):
    active = "active"
    achieved = "achieved"


class PlayerGoal(BaseModel):
    """One player's per-video target for one metric.

    Frozen: every state change produces a new value. ``achieved_at`` is set
    exactly when ``status`` is achieved.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    metric: MetricType
    target_count: int = Field(ge=TARGET_MIN, le=TARGET_MAX)
    status: GoalStatus = GoalStatus.active
    achieved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _achieved_at_matches_status(self) -> PlayerGoal:
        if self.status == GoalStatus.active and self.achieved_at is not None:
            raise ValueError("active goal cannot carry achieved_at")
        if self.status == GoalStatus.achieved and self.achieved_at is None:
            raise ValueError("achieved goal requires achieved_at")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == GoalStatus.active

    def replace(self, **changes: Any) -> PlayerGoal:
        """Validated copy (``model_copy`` skips validation)."""
        data = self.model_dump()
        data.update(changes)
        return PlayerGoal.model_validate(data)


class PerformanceObservation(BaseModel):
    """Per-metric action counts detected in one processed video."""

    model_config = ConfigDict(populate_by_name=True)

    dribble: int = Field(default=0, ge=0)
    pass_: int = Field(default=0, ge=0, alias="pass")
    shoot: int = Field(default=0, ge=0)
    observed_at: datetime = Field(default_factory=utcnow)
    video_id: str | None = None

    def count_for(self, metric: MetricType) -> int:
        if metric is MetricType.dribble:
            return self.dribble
        if metric is MetricType.pass_:
            return self.pass_
        if metric is MetricType.shoot:
            return self.shoot
        raise ValueError(f"Unhandled metric: {metric!r}")


class EvaluationOutcome(str, Enum):
    unchanged = "unchanged"
    achieved = "achieved"


class EvaluationResult(BaseModel):
    outcome: EvaluationOutcome
    goal: PlayerGoal

    @property
    def achieved(self) -> bool:
        return self.outcome == EvaluationOutcome.achieved


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class GoalCreate(BaseModel):
    metric: MetricType
    # Range is enforced by the evaluator so every caller gets the same error
    target_count: int


class GoalTargetUpdate(BaseModel):
    target_count: int


class MetricInfo(BaseModel):
    metric: MetricType
    label: str
    icon: str


class GoalBoard(BaseModel):
    owner_id: str
    goals: list[PlayerGoal] = Field(default_factory=list)
    selectable_metrics: list[MetricType] = Field(default_factory=list)
