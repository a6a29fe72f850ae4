"""SQS queue adapter."""

import logging
from typing import Any, Dict, List, Optional

import boto3

from core.logging import get_logger, log_with_context

logger = get_logger(__name__)

# SQS hard limits
MAX_WAIT_TIME_SECONDS = 20
MAX_MESSAGES_PER_RECEIVE = 10


class SqsQueue:
    """
    JobQueue backed by an SQS queue.

    Usage:
        >>> queue = SqsQueue(queue_url, region="us-east-1")
        >>> for raw in queue.receive(max_messages=1, wait_time_seconds=10):
        ...     queue.delete(raw["ReceiptHandle"])
    """

    def __init__(self, queue_url: str, region: Optional[str] = None, client: Any = None):
        self.queue_url = queue_url
        self._client = client or boto3.client("sqs", region_name=region)

    def receive(
        self,
        max_messages: int = 1,
        wait_time_seconds: int = 10,
        visibility_timeout: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "QueueUrl": self.queue_url,
            "MaxNumberOfMessages": max(1, min(max_messages, MAX_MESSAGES_PER_RECEIVE)),
            "WaitTimeSeconds": max(0, min(wait_time_seconds, MAX_WAIT_TIME_SECONDS)),
            "AttributeNames": ["ApproximateReceiveCount", "SentTimestamp"],
        }
        if visibility_timeout is not None:
            params["VisibilityTimeout"] = visibility_timeout

        response = self._client.receive_message(**params)
        return response.get("Messages", [])

    def delete(self, receipt_handle: str) -> None:
        self._client.delete_message(
            QueueUrl=self.queue_url, ReceiptHandle=receipt_handle
        )

    def send(self, body: str, attributes: Optional[Dict[str, str]] = None) -> str:
        params: Dict[str, Any] = {"QueueUrl": self.queue_url, "MessageBody": body}
        if attributes:
            params["MessageAttributes"] = {
                name: {"DataType": "String", "StringValue": str(value)}
                for name, value in attributes.items()
            }
        response = self._client.send_message(**params)
        message_id = response.get("MessageId", "")
        log_with_context(
            logger,
            logging.DEBUG,
            "Message sent",
            queue_url=self.queue_url,
            message_id=message_id,
        )
        return message_id

    def approximate_depth(self) -> int:
        response = self._client.get_queue_attributes(
            QueueUrl=self.queue_url,
            AttributeNames=["ApproximateNumberOfMessages"],
        )
        return int(response.get("Attributes", {}).get("ApproximateNumberOfMessages", 0))
