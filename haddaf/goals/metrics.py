"""Trackable football skills and their display metadata."""

from __future__ import annotations

from enum import Enum


class MetricType(str, Enum):
    dribble = "dribble"
    pass_ = "pass"
    shoot = "shoot"

    @property
    def label(self) -> str:
        return metric_label(self)

    @property
    def icon(self) -> str:
        return metric_icon(self)


def metric_label(metric: MetricType) -> str:
    if metric is MetricType.dribble:
        return "Dribble"
    if metric is MetricType.pass_:
        return "Pass"
    if metric is MetricType.shoot:
        return "Shoot"
    raise ValueError(f"Unhandled metric: {metric!r}")


def metric_icon(metric: MetricType) -> str:
    if metric is MetricType.dribble:
        return "figure.soccer"
    if metric is MetricType.pass_:
        return "arrow.up.forward"
    if metric is MetricType.shoot:
        return "circle.circle.fill"
    raise ValueError(f"Unhandled metric: {metric!r}")


def list_metrics() -> list[MetricType]:
    return list(MetricType)
