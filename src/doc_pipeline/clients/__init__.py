"""
AWS service adapters.

Thin synchronous boto3 wrappers implementing the protocols in base.py.
"""

from doc_pipeline.clients.base import (
    AlertChannel,
    BlobStore,
    Document,
    JobQueue,
    ResultTable,
    SentimentScorer,
    TextExtractor,
)
from doc_pipeline.clients.blobs import S3BlobStore
from doc_pipeline.clients.comprehend import ComprehendScorer, truncate_utf8
from doc_pipeline.clients.notifications import SnsAlertChannel
from doc_pipeline.clients.queue import SqsQueue
from doc_pipeline.clients.table import DynamoResultTable
from doc_pipeline.clients.textract import TextractExtractor

__all__ = [
    "AlertChannel",
    "BlobStore",
    "Document",
    "JobQueue",
    "ResultTable",
    "SentimentScorer",
    "TextExtractor",
    "S3BlobStore",
    "ComprehendScorer",
    "truncate_utf8",
    "SnsAlertChannel",
    "SqsQueue",
    "DynamoResultTable",
    "TextractExtractor",
]
