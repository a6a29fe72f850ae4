"""Backlog monitoring and alerting."""

from doc_pipeline.monitoring.alarm import (
    AlarmMonitor,
    AlarmPolicy,
    AlarmState,
    AlarmTransition,
    Comparator,
    QueueDepthSampler,
    Statistic,
    TreatMissingData,
    aggregate,
)

__all__ = [
    "AlarmMonitor",
    "AlarmPolicy",
    "AlarmState",
    "AlarmTransition",
    "Comparator",
    "QueueDepthSampler",
    "Statistic",
    "TreatMissingData",
    "aggregate",
]
