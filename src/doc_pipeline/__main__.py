"""
Entry point for running document pipeline components.

Usage:
    # Run one document worker
    python -m doc_pipeline worker

    # Run an in-process pool sized by the autoscaler
    python -m doc_pipeline worker --autoscale

    # Scale an ECS service running the worker container
    python -m doc_pipeline scale --cluster docs --service doc-worker

    # Watch queue backlog and alert on ALARM
    python -m doc_pipeline monitor

    # Apply a lifecycle event to the result table
    python -m doc_pipeline seed --event event.json

    # Tag and validate a resource tree
    python -m doc_pipeline validate resources.yaml --environment dev --prefix stu20-dev

Configuration is read from environment variables; see WorkerConfig,
ScalingPolicy and AlarmPolicy.
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from prometheus_client import start_http_server

from core.errors import ComplianceError, ConfigurationError, PipelineError
from core.logging import get_logger, set_log_context, setup_logging

logger = get_logger(__name__)

# Set by signal handlers, checked by components to finish current work before exiting
_shutdown_event: Optional[asyncio.Event] = None


def get_shutdown_event() -> asyncio.Event:
    """Get or create the shutdown event."""
    global _shutdown_event
    if _shutdown_event is None:
        _shutdown_event = asyncio.Event()
    return _shutdown_event


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="doc_pipeline",
        description="Run document pipeline components",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=int(os.getenv("METRICS_PORT", "8000")),
        help="Port for Prometheus metrics server, 0 to disable (default: 8000)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    worker = sub.add_parser("worker", help="Consume and process job messages")
    worker.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of in-process workers (ignored with --autoscale)",
    )
    worker.add_argument(
        "--autoscale",
        action="store_true",
        help="Size the in-process pool from queue depth",
    )

    scale = sub.add_parser("scale", help="Scale an ECS worker service from queue depth")
    scale.add_argument("--cluster", default=os.getenv("ECS_CLUSTER"))
    scale.add_argument("--service", default=os.getenv("ECS_SERVICE"))

    sub.add_parser("monitor", help="Evaluate the queue backlog alarm")

    seed = sub.add_parser("seed", help="Apply a lifecycle event to the result table")
    seed.add_argument("--event", required=True, help="Path to a lifecycle event JSON file")

    validate = sub.add_parser("validate", help="Tag and validate a resource tree")
    validate.add_argument("graph", help="Path to a resource tree YAML file")
    validate.add_argument("--environment", default=os.getenv("ENVIRONMENT"))
    validate.add_argument("--prefix", default=os.getenv("PREFIX"))

    return parser.parse_args(argv)


async def _stop_on_shutdown(stop) -> None:
    """Wait for the shutdown signal, then call stop()."""
    await get_shutdown_event().wait()
    logger.info("Shutdown signal received, stopping after current work...")
    result = stop()
    if asyncio.iscoroutine(result):
        await result


async def _run_with_watcher(main_coro, stop) -> None:
    watcher_task = asyncio.create_task(_stop_on_shutdown(stop))
    try:
        await main_coro
    finally:
        watcher_task.cancel()
        try:
            await watcher_task
        except asyncio.CancelledError:
            pass


async def run_workers(count: int, autoscale: bool) -> None:
    """Run document workers in this process, optionally autoscaled."""
    from doc_pipeline.clients import SqsQueue
    from doc_pipeline.config import WorkerConfig
    from doc_pipeline.consumer import queue_name_from_url
    from doc_pipeline.scaling import Autoscaler, InProcessWorkerPool, ScalingPolicy
    from doc_pipeline.workers import DocumentWorker

    config = WorkerConfig.from_env()
    set_log_context(stage="worker")

    if count == 1 and not autoscale:
        worker = DocumentWorker.from_config(config, worker_id=os.getenv("WORKER_ID"))
        await _run_with_watcher(worker.start(), worker.stop)
        return

    pool = InProcessWorkerPool(
        lambda worker_id: DocumentWorker.from_config(config, worker_id=worker_id)
    )
    if not autoscale:
        await pool.set_capacity(count)
        try:
            await get_shutdown_event().wait()
        finally:
            await pool.shutdown()
        return

    autoscaler = Autoscaler(
        policy=ScalingPolicy.from_env(),
        queue=SqsQueue(config.queue_url, region=config.region),
        runtime=pool,
        sampling_period_seconds=float(os.getenv("SCALING_PERIOD_SECONDS", "60")),
        queue_name=queue_name_from_url(config.queue_url),
    )
    try:
        await _run_with_watcher(autoscaler.run(), autoscaler.stop)
    finally:
        await pool.shutdown()


async def run_scaler(cluster: Optional[str], service: Optional[str]) -> None:
    """Scale an ECS service from queue depth."""
    from doc_pipeline.clients import SqsQueue
    from doc_pipeline.consumer import queue_name_from_url
    from doc_pipeline.scaling import Autoscaler, EcsServiceRuntime, ScalingPolicy

    queue_url = os.getenv("QUEUE_URL")
    region = os.getenv("REGION") or os.getenv("AWS_REGION")
    required = {"QUEUE_URL": queue_url, "ECS_CLUSTER": cluster, "ECS_SERVICE": service}
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigurationError(
            "Missing required environment variable(s): " + ", ".join(missing),
            context={"missing": missing},
        )

    set_log_context(stage="scaler")
    autoscaler = Autoscaler(
        policy=ScalingPolicy.from_env(),
        queue=SqsQueue(queue_url, region=region),
        runtime=EcsServiceRuntime(cluster, service, region=region),
        sampling_period_seconds=float(os.getenv("SCALING_PERIOD_SECONDS", "60")),
        queue_name=queue_name_from_url(queue_url),
    )
    await _run_with_watcher(autoscaler.run(), autoscaler.stop)


async def run_monitor() -> None:
    """Evaluate the backlog alarm against the live queue."""
    from doc_pipeline.clients import SnsAlertChannel, SqsQueue
    from doc_pipeline.monitoring import AlarmMonitor, AlarmPolicy, QueueDepthSampler

    queue_url = os.getenv("QUEUE_URL")
    if not queue_url:
        raise ConfigurationError("Missing required environment variable(s): QUEUE_URL")
    region = os.getenv("REGION") or os.getenv("AWS_REGION")
    topic_arn = os.getenv("ALARM_TOPIC_ARN")

    set_log_context(stage="monitor")
    channel = SnsAlertChannel(topic_arn, region=region) if topic_arn else None
    if channel is None:
        logger.warning("ALARM_TOPIC_ARN not set, alarm transitions will only be logged")

    sampler = QueueDepthSampler(
        AlarmMonitor(AlarmPolicy.from_env(), channel=channel),
        SqsQueue(queue_url, region=region),
        sample_interval_seconds=float(os.getenv("ALARM_SAMPLE_SECONDS", "10")),
    )
    await _run_with_watcher(sampler.run(), sampler.stop)


def run_seed(event_path: str) -> int:
    from doc_pipeline.clients import DynamoResultTable
    from doc_pipeline.seeder import handle_lifecycle_event

    table_name = os.getenv("TABLE_NAME")
    if not table_name:
        raise ConfigurationError("TABLE_NAME environment variable not set")
    region = os.getenv("REGION") or os.getenv("AWS_REGION")

    with open(event_path, encoding="utf-8") as f:
        event = json.load(f)
    response = handle_lifecycle_event(event, DynamoResultTable(table_name, region=region))
    print(json.dumps(response.to_cloudformation()))
    return 0


def run_validate(graph_path: str, environment: Optional[str], prefix: Optional[str]) -> int:
    from doc_pipeline.graph import load_graph, standard_visitors, validate_graph

    root = load_graph(Path(graph_path))
    try:
        validate_graph(root, standard_visitors(environment, prefix))
    except ComplianceError as e:
        for violation in e.violations:
            print(f"ERROR {violation}", file=sys.stderr)
        return 1

    node_count = sum(1 for _ in root.walk())
    print(f"{node_count} resource(s) validated, no compliance violations")
    return 0


def setup_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """Set up signal handlers for graceful shutdown.

    First SIGINT/SIGTERM sets the shutdown event: workers finish their
    current message and exit. A second signal cancels all tasks.
    """

    def handle_signal(sig):
        logger.info(f"Received signal {sig.name}, initiating graceful shutdown...")
        shutdown_event = get_shutdown_event()
        if not shutdown_event.is_set():
            shutdown_event.set()
        else:
            logger.warning("Received second signal, forcing immediate shutdown...")
            for task in asyncio.all_tasks(loop):
                task.cancel()

    # Signal handlers are not supported on Windows
    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


def main(argv=None) -> int:
    """Main entry point."""
    global logger
    args = parse_args(argv)

    # JSON_LOGS=false for human-readable logs during local development
    json_logs = os.getenv("JSON_LOGS", "true").lower() in ("true", "1", "yes")
    log_to_file = os.getenv("LOG_TO_FILE", "true").lower() in ("true", "1", "yes")
    log_dir = Path(args.log_dir or os.getenv("LOG_DIR", "logs"))

    setup_logging(
        name="doc_pipeline",
        stage=args.command,
        domain="docs",
        log_dir=log_dir,
        json_format=json_logs,
        console_level=getattr(logging, args.log_level),
        worker_id=os.getenv("WORKER_ID"),
        log_to_file=log_to_file,
    )
    logger = get_logger(__name__)

    try:
        if args.command == "seed":
            return run_seed(args.event)
        if args.command == "validate":
            return run_validate(args.graph, args.environment, args.prefix)
    except PipelineError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    if args.metrics_port:
        logger.info(f"Starting metrics server on port {args.metrics_port}")
        start_http_server(args.metrics_port)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    setup_signal_handlers(loop)

    try:
        if args.command == "worker":
            loop.run_until_complete(run_workers(args.workers, args.autoscale))
        elif args.command == "scale":
            loop.run_until_complete(run_scaler(args.cluster, args.service))
        else:
            loop.run_until_complete(run_monitor())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    except PipelineError as e:
        logger.error(f"Fatal error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        loop.close()
        logger.info("Pipeline shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
