"""
Result record schema.

One record per job, keyed by jobId. Records are upserted by the processor
and the bootstrap seeder and never deleted.
"""

import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ResultStatus(str, Enum):
    """Status of a result record."""

    SEED_DATA = "SEED_DATA"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class SentimentResult(BaseModel):
    """Sentiment label and per-label confidence scores."""

    label: str = Field(..., description="Dominant sentiment, e.g. POSITIVE")
    scores: Dict[str, float] = Field(
        default_factory=dict,
        description="Confidence per label (Positive, Negative, Neutral, Mixed)",
    )


class ResultRecord(BaseModel):
    """Schema for a result table item.

    Attributes:
        job_id: Partition key, derived deterministically from the job identity
        status: SEED_DATA, PROCESSED or FAILED
        timestamp: Time of the write (ISO 8601 on the wire)
        document_key: Source document key, for processed and failed jobs
        extracted_text: Text extracted from the document
        sentiment: Sentiment result for the extracted text
        details: Free-form detail string

    Example:
        >>> record = ResultRecord(job_id="seed-item-Seed", status=ResultStatus.SEED_DATA)
        >>> record.to_item()["status"]
        'SEED_DATA'
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    job_id: str = Field(..., alias="jobId", min_length=1)
    status: ResultStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    document_key: Optional[str] = Field(default=None, alias="documentKey")
    extracted_text: Optional[str] = Field(default=None, alias="extractedText")
    sentiment: Optional[SentimentResult] = None
    details: Optional[str] = None

    @field_validator("job_id")
    @classmethod
    def validate_job_id(cls, v: str) -> str:
        """Ensure the key is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("jobId cannot be empty or whitespace")
        return v

    @field_validator("details")
    @classmethod
    def truncate_details(cls, v: Optional[str]) -> Optional[str]:
        """Truncate details to prevent oversized items."""
        if v and len(v) > 1000:
            return v[:997] + "..."
        return v

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        """Serialize datetime to ISO 8601 format."""
        return timestamp.isoformat()

    @field_serializer("status")
    def serialize_status(self, status: ResultStatus) -> str:
        return status.value

    def to_item(self) -> Dict[str, Any]:
        """Return the table item with wire field names, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ResultRecord":
        return cls.model_validate(item)


def document_job_id(bucket: Optional[str], document_key: str) -> str:
    """Derive the stable jobId of a document.

    The same (bucket, key) always yields the same jobId, so redelivered
    messages for one document converge on one record.
    """
    identity = f"{bucket or ''}/{document_key}"
    digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()
    return f"doc-{digest[:32]}"
