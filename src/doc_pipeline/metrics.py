"""
Prometheus metrics for the document pipeline.

Provides instrumentation for:
- Message consumption, deletion and dead-lettering
- Per-stage processing errors by category
- Processing time histograms
- Queue depth, worker capacity and alarm state
- Seeder and compliance outcomes
"""

from prometheus_client import Counter, Gauge, Histogram

# Message consumption metrics
messages_received_total = Counter(
    "docpipe_messages_received_total",
    "Total number of job messages received from the queue",
    ["queue"],
)

messages_processed_total = Counter(
    "docpipe_messages_processed_total",
    "Total number of job messages processed",
    ["queue", "status"],  # status: success, error, skipped
)

messages_deleted_total = Counter(
    "docpipe_messages_deleted_total",
    "Total number of job messages acknowledged (deleted)",
    ["queue"],
)

messages_dead_lettered_total = Counter(
    "docpipe_messages_dead_lettered_total",
    "Total number of job messages moved to the dead-letter queue",
    ["queue"],
)

receive_errors_total = Counter(
    "docpipe_receive_errors_total",
    "Total number of failed queue receive calls",
    ["queue"],
)

# Error tracking by stage and category
processing_errors_total = Counter(
    "docpipe_processing_errors_total",
    "Total number of processing errors by pipeline stage and category",
    ["stage", "error_category"],
)

# Processing time metrics
message_processing_duration_seconds = Histogram(
    "docpipe_message_processing_duration_seconds",
    "Time spent processing individual job messages",
    ["queue"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

stage_duration_seconds = Histogram(
    "docpipe_stage_duration_seconds",
    "Time spent in each processing stage",
    ["stage"],  # stage: fetch, extraction, scoring, persistence
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Scaling and monitoring
queue_depth = Gauge(
    "docpipe_queue_depth",
    "Approximate number of visible messages in the job queue",
    ["queue"],
)

worker_capacity = Gauge(
    "docpipe_worker_capacity",
    "Desired number of worker instances",
    ["runtime"],
)

alarm_state = Gauge(
    "docpipe_alarm_state",
    "Alarm state (0=OK, 1=ALARM, 2=INSUFFICIENT_DATA)",
    ["alarm"],
)

# Lifecycle and compliance
seed_events_total = Counter(
    "docpipe_seed_events_total",
    "Total number of lifecycle events handled by the seeder",
    ["request_type", "status"],
)

compliance_violations_total = Counter(
    "docpipe_compliance_violations_total",
    "Total number of blocking compliance violations found",
)


def record_message_processed(queue: str, status: str) -> None:
    """Record the outcome of one job message."""
    messages_processed_total.labels(queue=queue, status=status).inc()


def record_processing_error(stage: str, error_category: str) -> None:
    """Record a processing error for a pipeline stage."""
    processing_errors_total.labels(stage=stage, error_category=error_category).inc()


def update_queue_depth(queue: str, depth: int) -> None:
    """Update the observed queue depth gauge."""
    queue_depth.labels(queue=queue).set(depth)


def update_worker_capacity(runtime: str, capacity: int) -> None:
    """Update the desired worker capacity gauge."""
    worker_capacity.labels(runtime=runtime).set(capacity)


def update_alarm_state(alarm: str, state_value: int) -> None:
    """Update the alarm state gauge."""
    alarm_state.labels(alarm=alarm).set(state_value)


def record_seed_event(request_type: str, success: bool) -> None:
    """Record a seeder lifecycle event outcome."""
    status = "success" if success else "error"
    seed_events_total.labels(request_type=request_type, status=status).inc()
