"""
Queue consumer with delete-on-success semantics.

Provides async queue consumption with:
- Long-poll receive of one message at a time
- Delete only after the handler succeeds (at-least-once processing)
- Fixed pause between polls
- Error classification for logs and metrics
- Optional dead-letter routing after max_receive_count attempts
- Graceful shutdown handling
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from core.errors import ErrorCategory, PipelineError, ValidationError, classify_exception
from core.logging import MessageLogContext, get_logger, log_exception, log_with_context
from doc_pipeline.clients.base import JobQueue
from doc_pipeline.metrics import (
    message_processing_duration_seconds,
    messages_dead_lettered_total,
    messages_deleted_total,
    messages_received_total,
    receive_errors_total,
    record_message_processed,
)
from doc_pipeline.schemas.messages import JobMessage, receive_count_of

logger = get_logger(__name__)

MessageHandler = Callable[[JobMessage], Awaitable[Any]]
FailureHandler = Callable[[JobMessage, Exception], Awaitable[Any]]


def queue_name_from_url(queue_url: str) -> str:
    """Last path segment of a queue URL, used as a metric label."""
    return queue_url.rstrip("/").rsplit("/", 1)[-1] or queue_url


class BaseQueueConsumer:
    """
    Async queue consumer calling a handler for each job message.

    A message is deleted only when the handler returns normally. When the
    handler raises, the message stays on the queue and is redelivered after
    its visibility timeout. Handler, receive and delete errors never stop the
    loop.

    Usage:
        >>> async def handle(message: JobMessage):
        ...     await processor.process(message)
        >>>
        >>> consumer = BaseQueueConsumer(queue, handle, queue_url=config.queue_url)
        >>> await consumer.start()
        >>> # Consumer runs until stopped
        >>> await consumer.stop()
    """

    def __init__(
        self,
        queue: JobQueue,
        message_handler: MessageHandler,
        queue_url: str = "",
        wait_time_seconds: int = 10,
        poll_interval_seconds: float = 5.0,
        visibility_timeout_seconds: Optional[int] = None,
        max_receive_count: int = 5,
        dead_letter_queue: Optional[JobQueue] = None,
        failure_handler: Optional[FailureHandler] = None,
        default_bucket: Optional[str] = None,
        max_polls: Optional[int] = None,
    ):
        """
        Initialize queue consumer.

        Args:
            queue: Queue to consume from
            message_handler: Async callback processing one JobMessage
            queue_url: Queue URL, for logs and metric labels
            wait_time_seconds: Long-poll wait per receive
            poll_interval_seconds: Pause between polls
            visibility_timeout_seconds: Override of the queue's visibility timeout
            max_receive_count: Attempts before a failing message is dead-lettered
            dead_letter_queue: Optional queue for exhausted messages (None = retry forever)
            failure_handler: Optional callback run before deleting a dead-lettered message
            default_bucket: Bucket assumed for messages that omit one
            max_polls: Optional limit on receive calls (None = unlimited).
                       Useful for testing.
        """
        self.queue = queue
        self.message_handler = message_handler
        self.queue_url = queue_url
        self.queue_name = queue_name_from_url(queue_url) if queue_url else "jobs"
        self.wait_time_seconds = wait_time_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.visibility_timeout_seconds = visibility_timeout_seconds
        self.max_receive_count = max_receive_count
        self.dead_letter_queue = dead_letter_queue
        self.failure_handler = failure_handler
        self.default_bucket = default_bucket

        self.max_polls = max_polls
        self._poll_count = 0
        self._running = False
        self._stop_event = asyncio.Event()

        log_with_context(
            logger,
            logging.INFO,
            "Initialized queue consumer",
            queue_url=queue_url,
            max_polls=max_polls,
        )

    async def start(self) -> None:
        """
        Run the consumption loop until stop() is called or max_polls is reached.

        Raises:
            asyncio.CancelledError: If the task running the loop is cancelled
        """
        if self._running:
            logger.warning("Consumer already running, ignoring duplicate start call")
            return

        self._running = True
        self._stop_event.clear()
        log_with_context(
            logger,
            logging.INFO,
            "Starting queue consumption loop",
            queue_url=self.queue_url,
            max_polls=self.max_polls,
        )

        try:
            await self._consume_loop()
        except asyncio.CancelledError:
            logger.info("Consumer loop cancelled, shutting down")
            raise
        finally:
            self._running = False

    async def stop(self) -> None:
        """
        Request the loop to exit after the in-flight message.

        Safe to call multiple times.
        """
        if not self._running:
            logger.debug("Consumer not running or already stopped")
            return

        logger.info("Stopping queue consumer")
        self._running = False
        self._stop_event.set()

    async def _consume_loop(self) -> None:
        while self._running:
            if self.max_polls is not None and self._poll_count >= self.max_polls:
                log_with_context(
                    logger,
                    logging.INFO,
                    "Reached max_polls limit, stopping consumer",
                    max_polls=self.max_polls,
                    polls=self._poll_count,
                )
                return

            try:
                await self.poll_once()
            except asyncio.CancelledError:
                logger.info("Consumption loop cancelled")
                raise
            except Exception as e:
                log_exception(
                    logger,
                    e,
                    "Error in consumption loop",
                    queue_url=self.queue_url,
                )

            if not self._running:
                return
            if self.max_polls is not None and self._poll_count >= self.max_polls:
                continue
            await self._pause()

    async def _pause(self) -> None:
        """Sleep for the poll interval, waking early on stop()."""
        if self.poll_interval_seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(
                self._stop_event.wait(), timeout=self.poll_interval_seconds
            )
        except asyncio.TimeoutError:
            pass

    async def poll_once(self) -> int:
        """
        Receive and handle at most one message.

        Returns:
            Number of messages received

        Raises:
            Exception: If the receive call fails
        """
        self._poll_count += 1
        try:
            messages = await asyncio.to_thread(
                self.queue.receive,
                1,
                self.wait_time_seconds,
                self.visibility_timeout_seconds,
            )
        except Exception:
            receive_errors_total.labels(queue=self.queue_name).inc()
            raise

        for raw in messages:
            messages_received_total.labels(queue=self.queue_name).inc()
            await self._process_message(raw)
        return len(messages)

    async def _process_message(self, raw: Dict[str, Any]) -> None:
        try:
            message = JobMessage.from_sqs(raw, default_bucket=self.default_bucket)
        except ValidationError as e:
            await self._handle_unparseable(raw, e)
            return

        if message is None:
            log_with_context(
                logger,
                logging.INFO,
                "Deleting storage test event",
                message_id=raw.get("MessageId"),
            )
            await self._delete(raw.get("ReceiptHandle", ""))
            record_message_processed(self.queue_name, "skipped")
            return

        with MessageLogContext(
            message_id=message.message_id,
            document_key=message.document_key,
            receive_count=message.receive_count,
        ):
            log_with_context(logger, logging.DEBUG, "Processing message")
            start_time = time.perf_counter()

            try:
                await self.message_handler(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                duration = time.perf_counter() - start_time
                message_processing_duration_seconds.labels(
                    queue=self.queue_name
                ).observe(duration)
                record_message_processed(self.queue_name, "error")
                await self._handle_processing_error(message, e, duration)
                return

            duration = time.perf_counter() - start_time
            message_processing_duration_seconds.labels(queue=self.queue_name).observe(
                duration
            )
            record_message_processed(self.queue_name, "success")

            if message.extra_jobs and not await self._enqueue_extra_jobs(message):
                return
            await self._delete(message.receipt_handle)
            log_with_context(
                logger,
                logging.DEBUG,
                "Message processed successfully",
                duration_ms=round(duration * 1000, 2),
            )

    async def _handle_processing_error(
        self, message: JobMessage, error: Exception, duration: float
    ) -> None:
        """
        Log a failed attempt and apply the dead-letter policy.

        Every category is left on the queue for redelivery. Once the message
        has been received max_receive_count times it is dead-lettered when a
        dead-letter queue is configured.
        """
        error_category = _category_of(error)
        common_context = {
            "error_category": error_category.value,
            "classified_as": type(error).__name__,
            "duration_ms": round(duration * 1000, 2),
        }

        exhausted = message.receive_count >= self.max_receive_count
        if exhausted and self.dead_letter_queue is not None:
            await self._dead_letter(message, error, error_category)
            return

        if exhausted:
            log_exception(
                logger,
                error,
                "Message exceeded max receive count and no dead-letter queue is "
                "configured - will keep retrying",
                include_traceback=False,
                **common_context,
            )
        elif error_category == ErrorCategory.PERMANENT:
            log_exception(
                logger,
                error,
                "Permanent error processing message - will retry until dead-lettered",
                include_traceback=False,
                **common_context,
            )
        else:
            log_exception(
                logger,
                error,
                "Error processing message - will retry after visibility timeout",
                level=logging.WARNING,
                include_traceback=False,
                **common_context,
            )

    async def _dead_letter(
        self, message: JobMessage, error: Exception, error_category: ErrorCategory
    ) -> None:
        """Record the failure, forward to the dead-letter queue, then delete."""
        payload = {
            "originalBody": message.body,
            "messageId": message.message_id,
            "documentKey": message.document_key,
            "bucket": message.bucket,
            "receiveCount": message.receive_count,
            "errorCategory": error_category.value,
            "errorType": type(error).__name__,
            "errorMessage": str(error)[:1000],
            "failedAt": datetime.now(timezone.utc).isoformat(),
        }

        try:
            if self.failure_handler is not None:
                await self.failure_handler(message, error)
            await asyncio.to_thread(self.dead_letter_queue.send, json.dumps(payload))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_exception(
                logger,
                e,
                "Dead-lettering failed - message left on queue",
            )
            return

        messages_dead_lettered_total.labels(queue=self.queue_name).inc()
        log_exception(
            logger,
            error,
            "Message dead-lettered after max receive count",
            include_traceback=False,
            error_category=error_category.value,
            status="dead_lettered",
        )
        await self._delete(message.receipt_handle)

    async def _handle_unparseable(self, raw: Dict[str, Any], error: PipelineError) -> None:
        """Malformed bodies follow the same dead-letter policy, without a result record."""
        receive_count = receive_count_of(raw)
        record_message_processed(self.queue_name, "error")

        with MessageLogContext(message_id=raw.get("MessageId"), receive_count=receive_count):
            if receive_count >= self.max_receive_count and self.dead_letter_queue is not None:
                payload = {
                    "originalBody": raw.get("Body", ""),
                    "messageId": raw.get("MessageId"),
                    "receiveCount": receive_count,
                    "errorCategory": error.category.value,
                    "errorType": type(error).__name__,
                    "errorMessage": str(error)[:1000],
                    "failedAt": datetime.now(timezone.utc).isoformat(),
                }
                try:
                    await asyncio.to_thread(
                        self.dead_letter_queue.send, json.dumps(payload)
                    )
                except Exception as e:
                    log_exception(logger, e, "Dead-lettering failed - message left on queue")
                    return
                messages_dead_lettered_total.labels(queue=self.queue_name).inc()
                await self._delete(raw.get("ReceiptHandle", ""))
                return

            log_exception(
                logger,
                error,
                "Unparseable message - will retry until dead-lettered",
                include_traceback=False,
            )

    async def _enqueue_extra_jobs(self, message: JobMessage) -> bool:
        """
        Re-enqueue the remaining documents of a multi-record storage event.

        On failure the source message is kept, so redelivery repeats the
        whole batch. Result writes are upserts, so repeats are harmless.
        """
        try:
            for job in message.extra_jobs:
                if job.bucket is None and self.default_bucket:
                    job = job.model_copy(update={"bucket": self.default_bucket})
                await asyncio.to_thread(self.queue.send, job.to_json())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_exception(
                logger,
                e,
                "Failed to enqueue remaining event records - message left on queue",
                level=logging.WARNING,
                include_traceback=False,
            )
            return False

        log_with_context(
            logger,
            logging.INFO,
            "Enqueued remaining event records as separate jobs",
            extra_jobs=len(message.extra_jobs),
        )
        return True

    async def _delete(self, receipt_handle: str) -> bool:
        """Delete a message. Failures are logged, never raised."""
        try:
            await asyncio.to_thread(self.queue.delete, receipt_handle)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_exception(
                logger,
                e,
                "Failed to delete message - it will be redelivered",
                level=logging.WARNING,
                include_traceback=False,
            )
            return False
        messages_deleted_total.labels(queue=self.queue_name).inc()
        return True

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def poll_count(self) -> int:
        return self._poll_count


def _category_of(error: Exception) -> ErrorCategory:
    if isinstance(error, PipelineError):
        return error.category
    return classify_exception(error)


__all__ = ["BaseQueueConsumer", "queue_name_from_url"]
