"""
Protocols for the external collaborators of the pipeline.

Provides:
- JobQueue: at-least-once queue with visibility timeout
- ResultTable: key-value result store with upsert semantics
- BlobStore: document storage
- TextExtractor / SentimentScorer: AI service wrappers
- AlertChannel: operator notification

Implementations are synchronous; async callers run them through
asyncio.to_thread. Tests substitute in-memory fakes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from doc_pipeline.schemas.records import ResultRecord, SentimentResult


@dataclass(frozen=True)
class Document:
    """Content and metadata of one stored document."""

    bucket: Optional[str]
    key: str
    content: bytes
    etag: Optional[str] = None
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)


@runtime_checkable
class JobQueue(Protocol):
    """
    Protocol for queue operations.

    Messages are delivered at least once. A received message is hidden for
    the visibility timeout and redelivered unless deleted.
    """

    def receive(
        self,
        max_messages: int = 1,
        wait_time_seconds: int = 10,
        visibility_timeout: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Long-poll for messages.

        Returns:
            Raw message dicts with MessageId, ReceiptHandle, Body and
            Attributes.ApproximateReceiveCount
        """
        ...

    def delete(self, receipt_handle: str) -> None:
        """Acknowledge a message so it is never redelivered."""
        ...

    def send(self, body: str, attributes: Optional[Dict[str, str]] = None) -> str:
        """Enqueue a message body; returns the message id."""
        ...

    def approximate_depth(self) -> int:
        """Approximate number of visible messages."""
        ...


@runtime_checkable
class ResultTable(Protocol):
    """Protocol for the result table. put() overwrites any record with the same jobId."""

    def put(self, record: ResultRecord) -> None:
        ...

    def get(self, job_id: str) -> Optional[ResultRecord]:
        ...


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for document reads."""

    def get_document(self, bucket: Optional[str], key: str) -> Document:
        ...


@runtime_checkable
class TextExtractor(Protocol):
    """Protocol for text extraction from document bytes."""

    def extract_text(self, document: Document) -> str:
        ...


@runtime_checkable
class SentimentScorer(Protocol):
    """Protocol for sentiment scoring of plain text."""

    def score(self, text: str) -> SentimentResult:
        ...


@runtime_checkable
class AlertChannel(Protocol):
    """Protocol for operator notifications."""

    def publish(self, subject: str, message: str) -> None:
        ...
