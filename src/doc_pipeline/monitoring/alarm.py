"""
Queue backlog alarm.

Evaluates one datapoint per period (the period statistic of queue-depth
samples) against a threshold. The alarm enters ALARM when the last
evaluation_periods datapoints all breach, and alerts are sent only on the
transition into ALARM (and, when enabled, on recovery to OK).
"""

import asyncio
import logging
import os
import statistics
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, List, Mapping, Optional, Sequence

from core.errors import ConfigurationError
from core.logging import get_logger, log_exception, log_with_context
from doc_pipeline.clients.base import AlertChannel, JobQueue
from doc_pipeline.metrics import update_alarm_state

logger = get_logger(__name__)


class AlarmState(str, Enum):
    OK = "OK"
    ALARM = "ALARM"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


_STATE_GAUGE_VALUES = {
    AlarmState.OK: 0,
    AlarmState.ALARM: 1,
    AlarmState.INSUFFICIENT_DATA: 2,
}


class Comparator(str, Enum):
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqualToThreshold"
    GREATER_THAN = "GreaterThanThreshold"
    LESS_THAN = "LessThanThreshold"
    LESS_THAN_OR_EQUAL = "LessThanOrEqualToThreshold"

    def breaches(self, value: float, threshold: float) -> bool:
        if self is Comparator.GREATER_THAN_OR_EQUAL:
            return value >= threshold
        if self is Comparator.GREATER_THAN:
            return value > threshold
        if self is Comparator.LESS_THAN:
            return value < threshold
        return value <= threshold


class Statistic(str, Enum):
    MAXIMUM = "Maximum"
    MINIMUM = "Minimum"
    AVERAGE = "Average"
    SUM = "Sum"
    SAMPLE_COUNT = "SampleCount"


class TreatMissingData(str, Enum):
    NOT_BREACHING = "notBreaching"
    BREACHING = "breaching"
    IGNORE = "ignore"


def aggregate(samples: Sequence[float], statistic: Statistic) -> Optional[float]:
    """Reduce one period's samples to a datapoint. No samples -> None."""
    if not samples:
        return None
    if statistic is Statistic.MAXIMUM:
        return float(max(samples))
    if statistic is Statistic.MINIMUM:
        return float(min(samples))
    if statistic is Statistic.AVERAGE:
        return float(statistics.fmean(samples))
    if statistic is Statistic.SUM:
        return float(sum(samples))
    return float(len(samples))


@dataclass
class AlarmPolicy:
    """Alarm definition on the queue's visible message count."""

    name: str = "queue-backlog"
    metric: str = "ApproximateNumberOfMessagesVisible"
    period_seconds: int = 60
    statistic: Statistic = Statistic.MAXIMUM
    threshold: float = 5
    evaluation_periods: int = 2
    comparator: Comparator = Comparator.GREATER_THAN_OR_EQUAL
    treat_missing_data: TreatMissingData = TreatMissingData.NOT_BREACHING
    alert_on_recovery: bool = False

    def __post_init__(self) -> None:
        if self.period_seconds <= 0:
            raise ConfigurationError("period_seconds must be positive")
        if self.evaluation_periods < 1:
            raise ConfigurationError("evaluation_periods must be at least 1")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AlarmPolicy":
        """
        Load from environment variables.

        Optional environment variables (with defaults):
            ALARM_THRESHOLD: 5
            ALARM_EVALUATION_PERIODS: 2
            ALARM_PERIOD_SECONDS: 60
            ALARM_TREAT_MISSING_DATA: notBreaching
        """
        env = os.environ if env is None else env
        try:
            return cls(
                threshold=float(env.get("ALARM_THRESHOLD", "5")),
                evaluation_periods=int(env.get("ALARM_EVALUATION_PERIODS", "2")),
                period_seconds=int(env.get("ALARM_PERIOD_SECONDS", "60")),
                treat_missing_data=TreatMissingData(
                    env.get("ALARM_TREAT_MISSING_DATA", "notBreaching")
                ),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid alarm configuration: {e}") from e


@dataclass(frozen=True)
class AlarmTransition:
    previous: AlarmState
    current: AlarmState
    datapoints: List[Optional[float]]
    timestamp: datetime


class AlarmMonitor:
    """
    Stateful evaluator of an AlarmPolicy.

    Feed one datapoint per period with observe(); process_period() also
    aggregates raw samples and sends alerts.

    Example:
        >>> monitor = AlarmMonitor(AlarmPolicy(threshold=5, evaluation_periods=2))
        >>> for value in [3, 3, 6, 6]:
        ...     _ = monitor.observe(value)
        >>> monitor.state.value
        'ALARM'
    """

    def __init__(self, policy: AlarmPolicy, channel: Optional[AlertChannel] = None):
        self.policy = policy
        self.channel = channel
        self.state = AlarmState.INSUFFICIENT_DATA
        self._window: Deque[Optional[float]] = deque(maxlen=policy.evaluation_periods)
        update_alarm_state(policy.name, _STATE_GAUGE_VALUES[self.state])

    def observe(self, datapoint: Optional[float]) -> Optional[AlarmTransition]:
        """
        Add the datapoint for one period and re-evaluate.

        Returns:
            The transition when the state changed, otherwise None
        """
        self._window.append(datapoint)
        window = list(self._window)
        # Periods before the first observation count as missing
        window = [None] * (self.policy.evaluation_periods - len(window)) + window

        new_state = self._evaluate(window)
        previous = self.state
        self.state = new_state
        update_alarm_state(self.policy.name, _STATE_GAUGE_VALUES[new_state])

        log_with_context(
            logger,
            logging.DEBUG,
            "Alarm evaluated",
            datapoint=datapoint,
            alarm_state=new_state.value,
        )

        if new_state == previous:
            return None
        return AlarmTransition(
            previous=previous,
            current=new_state,
            datapoints=window,
            timestamp=datetime.now(timezone.utc),
        )

    def _evaluate(self, window: List[Optional[float]]) -> AlarmState:
        breaching: List[bool] = []
        for value in window:
            if value is None:
                if self.policy.treat_missing_data is TreatMissingData.IGNORE:
                    continue
                breaching.append(
                    self.policy.treat_missing_data is TreatMissingData.BREACHING
                )
            else:
                breaching.append(
                    self.policy.comparator.breaches(value, self.policy.threshold)
                )

        if not breaching:
            # Only ignored missing data: keep the current state
            return self.state
        return AlarmState.ALARM if all(breaching) else AlarmState.OK

    def should_alert(self, transition: Optional[AlarmTransition]) -> bool:
        if transition is None:
            return False
        if transition.current is AlarmState.ALARM:
            return True
        return (
            self.policy.alert_on_recovery
            and transition.current is AlarmState.OK
            and transition.previous is AlarmState.ALARM
        )

    def format_alert(self, transition: AlarmTransition) -> tuple:
        subject = f"{self.policy.name} is {transition.current.value}"
        message = (
            f"Alarm {self.policy.name} changed from {transition.previous.value} "
            f"to {transition.current.value} at {transition.timestamp.isoformat()}.\n"
            f"Metric {self.policy.metric} ({self.policy.statistic.value}, "
            f"{self.policy.period_seconds}s) {self.policy.comparator.value} "
            f"{self.policy.threshold:g} for {self.policy.evaluation_periods} period(s).\n"
            f"Recent datapoints: {transition.datapoints}"
        )
        return subject, message

    async def process_period(self, samples: Sequence[float]) -> Optional[AlarmTransition]:
        """Aggregate one period of samples, evaluate and alert on transitions."""
        datapoint = aggregate(samples, self.policy.statistic)
        transition = self.observe(datapoint)
        if self.should_alert(transition) and self.channel is not None:
            subject, message = self.format_alert(transition)
            try:
                await asyncio.to_thread(self.channel.publish, subject, message)
            except Exception as e:
                log_exception(logger, e, "Failed to publish alarm notification")
            else:
                log_with_context(
                    logger,
                    logging.WARNING,
                    "Alarm notification sent",
                    alarm_state=transition.current.value,
                )
        return transition


class QueueDepthSampler:
    """
    Runs an AlarmMonitor against a live queue.

    Samples approximate depth every sample_interval_seconds and closes a
    period every policy.period_seconds.
    """

    def __init__(
        self,
        monitor: AlarmMonitor,
        queue: JobQueue,
        sample_interval_seconds: float = 10.0,
        max_periods: Optional[int] = None,
    ):
        self.monitor = monitor
        self.queue = queue
        self.sample_interval_seconds = sample_interval_seconds
        self.max_periods = max_periods
        self._running = False
        self._stop_event = asyncio.Event()

    async def run(self) -> None:
        self._running = True
        self._stop_event.clear()
        periods = 0
        loop = asyncio.get_running_loop()
        try:
            while self._running:
                if self.max_periods is not None and periods >= self.max_periods:
                    return
                period_end = loop.time() + self.monitor.policy.period_seconds
                samples: List[float] = []
                while self._running and loop.time() < period_end:
                    try:
                        samples.append(
                            float(await asyncio.to_thread(self.queue.approximate_depth))
                        )
                    except Exception as e:
                        log_exception(
                            logger,
                            e,
                            "Queue depth sample failed",
                            level=logging.WARNING,
                            include_traceback=False,
                        )
                    remaining = period_end - loop.time()
                    if remaining <= 0:
                        break
                    try:
                        await asyncio.wait_for(
                            self._stop_event.wait(),
                            timeout=min(self.sample_interval_seconds, remaining),
                        )
                    except asyncio.TimeoutError:
                        pass
                if not self._running:
                    return
                await self.monitor.process_period(samples)
                periods += 1
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
        self._stop_event.set()
