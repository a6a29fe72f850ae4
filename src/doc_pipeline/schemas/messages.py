"""
Job message schemas.

Contains Pydantic models for the message body the Notifier produces and for
job messages as the worker receives them from the queue.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from core.errors import ValidationError

S3_TEST_EVENT = "s3:TestEvent"


class JobMessageBody(BaseModel):
    """Schema for the queue message body produced for one uploaded document.

    Attributes:
        document_key: Storage key of the uploaded document
        bucket: Bucket holding the document
        event_time: Upload time reported by blob storage
        size: Object size in bytes, when known

    Example:
        >>> body = JobMessageBody(document_key="uploads/report.pdf", bucket="docs-in")
        >>> body.model_dump_json(by_alias=True, exclude_none=True)
        '{"documentKey":"uploads/report.pdf","bucket":"docs-in"}'
    """

    model_config = ConfigDict(populate_by_name=True)

    document_key: str = Field(
        ...,
        alias="documentKey",
        description="Storage key of the uploaded document",
        min_length=1,
    )
    bucket: Optional[str] = Field(
        default=None,
        description="Bucket holding the document",
    )
    event_time: Optional[datetime] = Field(
        default=None,
        alias="eventTime",
        description="Upload time reported by blob storage",
    )
    size: Optional[int] = Field(
        default=None,
        description="Object size in bytes",
        ge=0,
    )

    @field_validator("document_key")
    @classmethod
    def validate_document_key(cls, v: str) -> str:
        """Ensure the key is not empty or whitespace-only."""
        if not v or not v.strip():
            raise ValueError("documentKey cannot be empty or whitespace")
        return v

    @field_serializer("event_time")
    def serialize_timestamp(self, timestamp: Optional[datetime]) -> Optional[str]:
        """Serialize datetime to ISO 8601 format."""
        return timestamp.isoformat() if timestamp else None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class JobMessage(BaseModel):
    """A job message as received from the queue.

    The same document_key may arrive in more than one message when the queue
    redelivers; receive_count tracks delivery attempts of this message.

    Attributes:
        document_key: Storage key of the referenced document
        bucket: Bucket holding the document (None when the body omits it)
        message_id: Queue-assigned message identifier
        receipt_handle: Handle required to delete this delivery
        receive_count: Approximate number of deliveries, starting at 1
        body: Raw message body, kept for dead-lettering
        extra_jobs: Further ObjectCreated records of a raw S3 event body,
            re-enqueued as their own jobs before this message is deleted
    """

    document_key: str = Field(..., min_length=1)
    bucket: Optional[str] = None
    message_id: str = Field(..., min_length=1)
    receipt_handle: str = Field(..., min_length=1)
    receive_count: int = Field(default=1, ge=1)
    body: str = ""
    extra_jobs: List[JobMessageBody] = Field(default_factory=list)

    @classmethod
    def from_sqs(
        cls,
        raw: Dict[str, Any],
        default_bucket: Optional[str] = None,
    ) -> Optional["JobMessage"]:
        """Build a JobMessage from a boto3 receive_message entry.

        Accepts both the JobMessageBody format and a raw S3 event notification
        body. Returns None for S3 test events, which carry no job.

        Raises:
            ValidationError: If the body is not a recognizable job message
        """
        message_id = raw.get("MessageId", "")
        body = raw.get("Body", "")
        receive_count = receive_count_of(raw)

        try:
            payload = json.loads(body)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValidationError(
                "Message body is not valid JSON",
                cause=e,
                context={"message_id": message_id},
            ) from e

        if not isinstance(payload, dict):
            raise ValidationError(
                "Message body must be a JSON object",
                context={"message_id": message_id},
            )

        if payload.get("Event") == S3_TEST_EVENT:
            return None

        if "Records" in payload:
            jobs = _jobs_from_s3_event(payload["Records"], message_id)
        else:
            try:
                jobs = [JobMessageBody.model_validate(payload)]
            except ValueError as e:
                raise ValidationError(
                    "Message body does not match the job schema",
                    cause=e,
                    context={"message_id": message_id},
                ) from e

        first, extra = jobs[0], jobs[1:]
        try:
            return cls(
                document_key=first.document_key,
                bucket=first.bucket or default_bucket,
                message_id=message_id,
                receipt_handle=raw.get("ReceiptHandle", ""),
                receive_count=receive_count,
                body=body,
                extra_jobs=extra,
            )
        except ValueError as e:
            raise ValidationError(
                "Message envelope is incomplete",
                cause=e,
                context={"message_id": message_id},
            ) from e


def receive_count_of(raw: Dict[str, Any]) -> int:
    """ApproximateReceiveCount of a received message, 1 when absent or unreadable."""
    attributes = raw.get("Attributes")
    if not isinstance(attributes, dict):
        return 1
    try:
        return max(int(attributes.get("ApproximateReceiveCount", "1")), 1)
    except (TypeError, ValueError):
        return 1


def _jobs_from_s3_event(records: Any, message_id: str) -> List[JobMessageBody]:
    """One job per ObjectCreated record, in record order."""
    if not isinstance(records, list):
        raise ValidationError(
            "S3 event Records must be a list",
            context={"message_id": message_id},
        )

    jobs = []
    for record in records:
        if not isinstance(record, dict):
            raise ValidationError(
                "S3 event record must be a JSON object",
                context={"message_id": message_id},
            )
        if not str(record.get("eventName", "")).startswith("ObjectCreated"):
            continue
        s3 = record.get("s3")
        s3 = s3 if isinstance(s3, dict) else {}
        obj = s3.get("object")
        bucket = s3.get("bucket")
        key = obj.get("key") if isinstance(obj, dict) else None
        bucket_name = bucket.get("name") if isinstance(bucket, dict) else None
        if not key or not isinstance(key, str):
            continue
        try:
            # S3 notifications URL-encode object keys
            jobs.append(JobMessageBody(document_key=unquote_plus(key), bucket=bucket_name))
        except ValueError as e:
            raise ValidationError(
                "S3 event record does not describe a document",
                cause=e,
                context={"message_id": message_id},
            ) from e

    if not jobs:
        raise ValidationError(
            "S3 event contains no ObjectCreated record",
            context={"message_id": message_id},
        )
    return jobs
