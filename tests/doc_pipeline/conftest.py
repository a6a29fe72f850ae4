"""
Pytest fixtures for document pipeline tests.

Provides in-memory fakes for:
- The job queue (at-least-once, redelivers anything not deleted)
- The result table (upsert by jobId)
- Blob storage, text extraction, sentiment scoring
- The alert channel
"""

import itertools
import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

from doc_pipeline.clients.base import Document
from doc_pipeline.config import WorkerConfig
from doc_pipeline.schemas.records import ResultRecord, SentimentResult


def make_client_error(code: str, status: int = 400, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError with the given AWS error code."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} raised in test"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakeQueue:
    """
    In-memory queue with immediate redelivery.

    Every receive returns the oldest undeleted message and increments its
    receive count, as if the visibility timeout had already expired.
    """

    def __init__(self, name: str = "jobs"):
        self.name = name
        self._ids = itertools.count(1)
        self.messages: List[Dict[str, Any]] = []
        self.deleted: List[str] = []
        self.sent: List[str] = []
        self.receive_calls = 0
        self.fail_receives = 0
        self.fail_deletes = 0
        self.depth_samples: Optional[List[Optional[int]]] = None

    def push(self, body: str) -> str:
        message_id = f"{self.name}-msg-{next(self._ids)}"
        self.messages.append({"id": message_id, "body": body, "receive_count": 0})
        return message_id

    def push_job(self, key: str, bucket: Optional[str] = "docs-in") -> str:
        payload: Dict[str, Any] = {"documentKey": key}
        if bucket is not None:
            payload["bucket"] = bucket
        return self.push(json.dumps(payload))

    def receive(
        self,
        max_messages: int = 1,
        wait_time_seconds: int = 10,
        visibility_timeout: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        self.receive_calls += 1
        if self.fail_receives:
            self.fail_receives -= 1
            raise make_client_error("ServiceUnavailable", 503, "ReceiveMessage")

        result = []
        for message in self.messages[:max_messages]:
            message["receive_count"] += 1
            result.append(
                {
                    "MessageId": message["id"],
                    "ReceiptHandle": f"{message['id']}#{message['receive_count']}",
                    "Body": message["body"],
                    "Attributes": {
                        "ApproximateReceiveCount": str(message["receive_count"])
                    },
                }
            )
        return result

    def delete(self, receipt_handle: str) -> None:
        if self.fail_deletes:
            self.fail_deletes -= 1
            raise make_client_error("InternalError", 500, "DeleteMessage")
        message_id = receipt_handle.split("#", 1)[0]
        self.messages = [m for m in self.messages if m["id"] != message_id]
        self.deleted.append(message_id)

    def send(self, body: str, attributes: Optional[Dict[str, str]] = None) -> str:
        self.sent.append(body)
        return self.push(body)

    def approximate_depth(self) -> int:
        if self.depth_samples is not None:
            value = self.depth_samples.pop(0)
            if value is None:
                raise make_client_error("ServiceUnavailable", 503, "GetQueueAttributes")
            return value
        return len(self.messages)


class FakeTable:
    """In-memory result table keyed by jobId."""

    def __init__(self):
        self.items: Dict[str, Dict[str, Any]] = {}
        self.put_calls = 0
        self.fail_puts = 0
        self.error: Exception = make_client_error(
            "ProvisionedThroughputExceededException", 400, "PutItem"
        )

    def put(self, record: ResultRecord) -> None:
        self.put_calls += 1
        if self.fail_puts:
            self.fail_puts -= 1
            raise self.error
        self.items[record.job_id] = record.to_item()

    def get(self, job_id: str) -> Optional[ResultRecord]:
        item = self.items.get(job_id)
        return ResultRecord.from_item(item) if item is not None else None


class FakeBlobStore:
    def __init__(self, documents: Optional[Dict[str, bytes]] = None):
        self.documents = dict(documents or {})
        self.fetches: List[str] = []

    def get_document(self, bucket: Optional[str], key: str) -> Document:
        self.fetches.append(key)
        if key not in self.documents:
            raise make_client_error("NoSuchKey", 404, "GetObject")
        return Document(bucket=bucket, key=key, content=self.documents[key])


class FakeExtractor:
    """Returns the document bytes decoded as text, after fail_times errors."""

    def __init__(self, fail_times: int = 0, error: Optional[Exception] = None):
        self.fail_times = fail_times
        self.error = error or make_client_error("ThrottlingException", 400, "DetectDocumentText")
        self.calls = 0

    def extract_text(self, document: Document) -> str:
        self.calls += 1
        if self.fail_times:
            self.fail_times -= 1
            raise self.error
        return document.content.decode("utf-8")


class FakeScorer:
    def __init__(self, label: str = "POSITIVE", fail_times: int = 0):
        self.label = label
        self.fail_times = fail_times
        self.texts: List[str] = []

    def score(self, text: str) -> SentimentResult:
        self.texts.append(text)
        if self.fail_times:
            self.fail_times -= 1
            raise make_client_error("InternalServerException", 500, "DetectSentiment")
        return SentimentResult(
            label=self.label,
            scores={"Positive": 0.9, "Negative": 0.02, "Neutral": 0.07, "Mixed": 0.01},
        )


class FakeChannel:
    def __init__(self):
        self.published: List[tuple] = []

    def publish(self, subject: str, message: str) -> None:
        self.published.append((subject, message))


@pytest.fixture
def client_error():
    return make_client_error


@pytest.fixture
def queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture
def dead_letter_queue() -> FakeQueue:
    return FakeQueue(name="jobs-dlq")


@pytest.fixture
def table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def blobs() -> FakeBlobStore:
    return FakeBlobStore(
        {
            "uploads/report.pdf": b"Quarterly results exceeded expectations.",
            "uploads/blank.pdf": b"",
        }
    )


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def worker_config() -> WorkerConfig:
    return WorkerConfig(
        queue_url="https://sqs.us-east-1.amazonaws.com/123456789012/jobs",
        table_name="results",
        region="us-east-1",
        document_bucket="docs-in",
        wait_time_seconds=0,
        poll_interval_seconds=0,
        max_receive_count=3,
    )


@pytest.fixture
def fakes() -> SimpleNamespace:
    """Fake classes, for tests that need non-default instances."""
    return SimpleNamespace(
        Queue=FakeQueue,
        Table=FakeTable,
        BlobStore=FakeBlobStore,
        Extractor=FakeExtractor,
        Scorer=FakeScorer,
        Channel=FakeChannel,
    )
