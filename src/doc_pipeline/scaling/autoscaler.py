"""
Autoscaler: sizes the worker pool from queue depth.

Samples the queue's approximate depth once per sampling period, applies the
step policy and resizes the runtime when the desired count changes.
"""

import asyncio
import logging
from typing import Optional

from core.logging import (
    generate_cycle_id,
    get_logger,
    log_exception,
    log_with_context,
    set_log_context,
)
from doc_pipeline.clients.base import JobQueue
from doc_pipeline.metrics import update_queue_depth, update_worker_capacity
from doc_pipeline.scaling.policy import ScalingPolicy, ScalingStep
from doc_pipeline.scaling.runtime import WorkerRuntime

logger = get_logger(__name__)


class Autoscaler:
    """
    Queue-depth driven autoscaler.

    Usage:
        >>> autoscaler = Autoscaler(policy, queue, runtime, queue_name="jobs")
        >>> await autoscaler.run()
    """

    def __init__(
        self,
        policy: ScalingPolicy,
        queue: JobQueue,
        runtime: WorkerRuntime,
        sampling_period_seconds: float = 60.0,
        queue_name: str = "jobs",
        max_cycles: Optional[int] = None,
    ):
        self.policy = policy
        self.queue = queue
        self.runtime = runtime
        self.sampling_period_seconds = sampling_period_seconds
        self.queue_name = queue_name
        self.max_cycles = max_cycles

        self._capacity: Optional[int] = None
        self._pending_step: Optional[ScalingStep] = None
        self._streak = 0
        self._cycles = 0
        self._running = False
        self._stop_event = asyncio.Event()

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    def evaluate(self, current: int, depth: Optional[float]) -> int:
        """
        Fold one sample into the policy state and return the desired capacity.

        The result is always within [min_capacity, max_capacity]. A missing
        sample resets the streak and keeps capacity unchanged.
        """
        if depth is None:
            self._pending_step = None
            self._streak = 0
            return self.policy.clamp(current)

        step = self.policy.step_for(depth)
        if step is None:
            self._pending_step = None
            self._streak = 0
            return self.policy.clamp(current)

        if step == self._pending_step:
            self._streak += 1
        else:
            self._pending_step = step
            self._streak = 1

        if self._streak < self.policy.evaluation_periods:
            return self.policy.clamp(current)

        self._streak = 0
        self._pending_step = None
        return self.policy.clamp(current + step.change)

    async def step(self) -> int:
        """Take one sample and resize the runtime if needed. Returns the capacity."""
        set_log_context(cycle_id=generate_cycle_id())
        if self._capacity is None:
            initial = await self.runtime.current_capacity()
            self._capacity = self.policy.clamp(initial)
            if self._capacity != initial:
                await self.runtime.set_capacity(self._capacity)

        depth: Optional[int]
        try:
            depth = await asyncio.to_thread(self.queue.approximate_depth)
        except Exception as e:
            log_exception(
                logger,
                e,
                "Queue depth sample failed - keeping capacity",
                level=logging.WARNING,
                include_traceback=False,
            )
            depth = None
        else:
            update_queue_depth(self.queue_name, depth)

        desired = self.evaluate(self._capacity, depth)
        if desired != self._capacity:
            log_with_context(
                logger,
                logging.INFO,
                "Scaling worker pool",
                queue_depth=depth,
                current_capacity=self._capacity,
                desired_capacity=desired,
            )
            await self.runtime.set_capacity(desired)
            self._capacity = desired

        update_worker_capacity(self.runtime.name, self._capacity)
        return self._capacity

    async def run(self) -> None:
        """Sample every sampling period until stop() or max_cycles."""
        self._running = True
        self._stop_event.clear()
        try:
            while self._running:
                if self.max_cycles is not None and self._cycles >= self.max_cycles:
                    return
                self._cycles += 1
                try:
                    await self.step()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    log_exception(logger, e, "Autoscaler cycle failed")

                if self.max_cycles is not None and self._cycles >= self.max_cycles:
                    return
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(), timeout=self.sampling_period_seconds
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
        self._stop_event.set()
