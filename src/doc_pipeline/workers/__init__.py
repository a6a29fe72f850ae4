"""Pipeline workers."""

from doc_pipeline.workers.document_worker import DocumentWorker

__all__ = ["DocumentWorker"]
