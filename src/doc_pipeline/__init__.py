"""
Event-driven document processing pipeline.

Documents uploaded to blob storage are enqueued as jobs, processed by an
autoscaled worker pool (text extraction and sentiment scoring) and
persisted idempotently to a result table.
"""

__version__ = "0.1.0"
