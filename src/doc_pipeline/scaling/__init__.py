"""
Worker pool autoscaling.

Components:
    policy.py     - ScalingStep, ScalingPolicy (bounds and step rules)
    autoscaler.py - Autoscaler (samples queue depth, applies policy)
    runtime.py    - WorkerRuntime protocol, InProcessWorkerPool, EcsServiceRuntime
"""

from doc_pipeline.scaling.autoscaler import Autoscaler
from doc_pipeline.scaling.policy import DEFAULT_STEPS, ScalingPolicy, ScalingStep
from doc_pipeline.scaling.runtime import (
    EcsServiceRuntime,
    InProcessWorkerPool,
    WorkerRuntime,
)

__all__ = [
    "Autoscaler",
    "DEFAULT_STEPS",
    "ScalingPolicy",
    "ScalingStep",
    "EcsServiceRuntime",
    "InProcessWorkerPool",
    "WorkerRuntime",
]
