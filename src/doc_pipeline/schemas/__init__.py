"""
Pipeline schemas.

Pydantic models for queue messages, result records and lifecycle events.

Schemas:
    messages.py   - JobMessageBody (producer side), JobMessage (as received)
    records.py    - ResultRecord, ResultStatus, SentimentResult
    lifecycle.py  - LifecycleEvent, LifecycleResponse

Design Decisions:
    - Pydantic for validation and JSON serialization
    - camelCase on the wire, snake_case in Python
    - Datetime fields as ISO 8601 strings
"""

from doc_pipeline.schemas.lifecycle import (
    LifecycleEvent,
    LifecycleResponse,
    RequestType,
    SeedProperties,
)
from doc_pipeline.schemas.messages import JobMessage, JobMessageBody
from doc_pipeline.schemas.records import (
    ResultRecord,
    ResultStatus,
    SentimentResult,
    document_job_id,
)

__all__ = [
    "JobMessage",
    "JobMessageBody",
    "LifecycleEvent",
    "LifecycleResponse",
    "RequestType",
    "ResultRecord",
    "ResultStatus",
    "SeedProperties",
    "SentimentResult",
    "document_job_id",
]
