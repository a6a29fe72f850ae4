"""
Notifier: turns blob storage ObjectCreated events into job messages.

Each matching object yields exactly one queue message with body
{"documentKey": ..., "bucket": ...}. Keys that do not end with the
configured suffix are dropped.
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import unquote_plus

from core.errors import ConfigurationError
from core.logging import get_logger, log_with_context
from doc_pipeline.clients.base import JobQueue
from doc_pipeline.clients.queue import SqsQueue
from doc_pipeline.schemas.messages import S3_TEST_EVENT, JobMessageBody

logger = get_logger(__name__)


class Notifier:
    """
    Enqueue one job per uploaded document.

    Args:
        queue: Queue to send job messages to
        suffix: Key suffix filter, case-sensitive (default ".pdf")
    """

    def __init__(self, queue: JobQueue, suffix: str = ".pdf"):
        self.queue = queue
        self.suffix = suffix

    def matches(self, key: str) -> bool:
        return key.endswith(self.suffix)

    def handle_event(self, event: Dict[str, Any]) -> List[str]:
        """
        Process one S3 event notification.

        Returns:
            Message ids of enqueued jobs, one per matching object
        """
        if event.get("Event") == S3_TEST_EVENT:
            logger.info("Ignoring storage test event")
            return []

        message_ids = []
        for record in event.get("Records", []):
            body = self._job_for_record(record)
            if body is None:
                continue
            message_id = self.queue.send(body.to_json())
            message_ids.append(message_id)
            log_with_context(
                logger,
                logging.INFO,
                "Enqueued document job",
                document_key=body.document_key,
                bucket=body.bucket,
                message_id=message_id,
            )
        return message_ids

    def _job_for_record(self, record: Dict[str, Any]) -> Optional[JobMessageBody]:
        if not str(record.get("eventName", "")).startswith("ObjectCreated"):
            return None

        s3 = record.get("s3") or {}
        obj = s3.get("object") or {}
        raw_key = obj.get("key")
        if not raw_key:
            return None

        key = unquote_plus(raw_key)
        if not self.matches(key):
            log_with_context(
                logger,
                logging.DEBUG,
                "Skipping object without matching suffix",
                document_key=key,
            )
            return None

        event_time = record.get("eventTime")
        return JobMessageBody(
            document_key=key,
            bucket=(s3.get("bucket") or {}).get("name"),
            event_time=datetime.fromisoformat(event_time.replace("Z", "+00:00"))
            if event_time
            else None,
            size=obj.get("size"),
        )


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Lambda entrypoint subscribed to bucket ObjectCreated notifications."""
    queue_url = os.environ.get("QUEUE_URL")
    if not queue_url:
        raise ConfigurationError("Missing required environment variable(s): QUEUE_URL")

    region = os.environ.get("REGION") or os.environ.get("AWS_REGION")
    notifier = Notifier(
        SqsQueue(queue_url, region=region),
        suffix=os.environ.get("DOCUMENT_SUFFIX", ".pdf"),
    )
    message_ids = notifier.handle_event(event)
    return {"enqueued": len(message_ids), "messageIds": message_ids}
