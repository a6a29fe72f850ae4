"""
Document worker.

Consumes job messages and runs each through the DocumentProcessor:
1. Long-polls the job queue for one message
2. Fetches, extracts, scores and persists the document
3. Deletes the message only when processing succeeded
4. Dead-letters messages that exhausted max_receive_count, when configured

Any number of workers may run against the same queue; they share no state
beyond the queue and the result table.
"""

import asyncio
import logging
from typing import Optional

from core.logging import get_logger, log_with_context, set_log_context
from doc_pipeline.clients.base import JobQueue
from doc_pipeline.config import WorkerConfig
from doc_pipeline.consumer import BaseQueueConsumer
from doc_pipeline.processor import DocumentProcessor
from doc_pipeline.schemas.messages import JobMessage

logger = get_logger(__name__)


class DocumentWorker:
    """
    Long-running document processing worker.

    Usage:
        >>> config = WorkerConfig.from_env()
        >>> worker = DocumentWorker.from_config(config)
        >>> await worker.start()
        >>> # Worker runs until stopped
        >>> await worker.stop()
    """

    def __init__(
        self,
        config: WorkerConfig,
        queue: JobQueue,
        processor: DocumentProcessor,
        dead_letter_queue: Optional[JobQueue] = None,
        worker_id: Optional[str] = None,
        max_polls: Optional[int] = None,
    ):
        """
        Initialize document worker.

        Args:
            config: Worker configuration
            queue: Job queue to consume
            processor: Processor run for every job
            dead_letter_queue: Queue for exhausted messages (None = retry forever)
            worker_id: Identifier used in logs
            max_polls: Optional limit on receive calls, for testing
        """
        self.config = config
        self.processor = processor
        self.worker_id = worker_id or "worker-0"

        self._consumer = BaseQueueConsumer(
            queue=queue,
            message_handler=self._handle_job,
            queue_url=config.queue_url,
            wait_time_seconds=config.wait_time_seconds,
            poll_interval_seconds=config.poll_interval_seconds,
            visibility_timeout_seconds=config.visibility_timeout_seconds,
            max_receive_count=config.max_receive_count,
            dead_letter_queue=dead_letter_queue,
            failure_handler=processor.record_failure if dead_letter_queue else None,
            default_bucket=config.document_bucket,
            max_polls=max_polls,
        )

        log_with_context(
            logger,
            logging.INFO,
            "Initialized document worker",
            queue_url=config.queue_url,
            table=config.table_name,
        )

    @classmethod
    def from_config(
        cls,
        config: WorkerConfig,
        worker_id: Optional[str] = None,
        max_polls: Optional[int] = None,
    ) -> "DocumentWorker":
        """Build a worker wired to the AWS services named in config."""
        from doc_pipeline.clients import (
            ComprehendScorer,
            DynamoResultTable,
            S3BlobStore,
            SqsQueue,
            TextractExtractor,
        )

        processor = DocumentProcessor(
            blobs=S3BlobStore(default_bucket=config.document_bucket, region=config.region),
            extractor=TextractExtractor(region=config.region),
            scorer=ComprehendScorer(region=config.region),
            table=DynamoResultTable(config.table_name, region=config.region),
        )
        dead_letter_queue = (
            SqsQueue(config.dead_letter_queue_url, region=config.region)
            if config.dead_letter_queue_url
            else None
        )
        return cls(
            config=config,
            queue=SqsQueue(config.queue_url, region=config.region),
            processor=processor,
            dead_letter_queue=dead_letter_queue,
            worker_id=worker_id,
            max_polls=max_polls,
        )

    async def start(self) -> None:
        """Run until stop() is called, the task is cancelled, or max_polls is reached."""
        set_log_context(worker_id=self.worker_id)
        log_with_context(logger, logging.INFO, "Starting document worker")
        try:
            await self._consumer.start()
        except asyncio.CancelledError:
            logger.info("Document worker cancelled, shutting down")
            raise

    async def stop(self) -> None:
        """Finish the in-flight message, then exit. Safe to call multiple times."""
        await self._consumer.stop()

    async def _handle_job(self, message: JobMessage) -> None:
        await self.processor.process(message)

    @property
    def is_running(self) -> bool:
        return self._consumer.is_running
