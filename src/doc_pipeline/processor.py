"""
Document processor.

Runs one job through the pipeline stages:
1. fetch        - read the document from blob storage
2. extraction   - extract text
3. scoring      - sentiment of the extracted text
4. persistence  - upsert one PROCESSED record keyed by jobId

Each stage logs to its own logger channel and raises its own PipelineError
subclass, so the caller can leave the message undeleted for redelivery.
The jobId depends only on the document identity, so reprocessing a
redelivered message overwrites the same record.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from core.errors import (
    DocumentFetchError,
    ExtractionError,
    PersistenceError,
    PipelineError,
    ScoringError,
    wrap_exception,
)
from core.logging import get_logger, log_exception, log_with_context
from doc_pipeline.clients.base import (
    BlobStore,
    Document,
    ResultTable,
    SentimentScorer,
    TextExtractor,
)
from doc_pipeline.metrics import record_processing_error, stage_duration_seconds
from doc_pipeline.schemas.messages import JobMessage
from doc_pipeline.schemas.records import (
    ResultRecord,
    ResultStatus,
    SentimentResult,
    document_job_id,
)

logger = get_logger(__name__)

T = TypeVar("T")

STAGE_FETCH = "fetch"
STAGE_EXTRACTION = "extraction"
STAGE_SCORING = "scoring"
STAGE_PERSISTENCE = "persistence"

_STAGE_ERRORS = {
    STAGE_FETCH: DocumentFetchError,
    STAGE_EXTRACTION: ExtractionError,
    STAGE_SCORING: ScoringError,
    STAGE_PERSISTENCE: PersistenceError,
}


def compute_job_id(message: JobMessage) -> str:
    """Deterministic jobId for the document a message references."""
    return document_job_id(message.bucket, message.document_key)


class DocumentProcessor:
    """
    Process job messages into result records.

    Blocking service calls run in the default thread pool.

    Usage:
        >>> processor = DocumentProcessor(blobs, extractor, scorer, table)
        >>> record = await processor.process(message)
    """

    def __init__(
        self,
        blobs: BlobStore,
        extractor: TextExtractor,
        scorer: SentimentScorer,
        table: ResultTable,
    ):
        self.blobs = blobs
        self.extractor = extractor
        self.scorer = scorer
        self.table = table

    async def process(self, message: JobMessage) -> ResultRecord:
        """
        Run all stages for one message.

        Returns:
            The PROCESSED record that was written

        Raises:
            DocumentFetchError, ExtractionError, ScoringError, PersistenceError
        """
        job_id = compute_job_id(message)

        document: Document = await self._run_stage(
            STAGE_FETCH,
            job_id,
            self.blobs.get_document,
            message.bucket,
            message.document_key,
        )

        text: str = await self._run_stage(
            STAGE_EXTRACTION, job_id, self.extractor.extract_text, document
        )

        sentiment: Optional[SentimentResult] = None
        if text.strip():
            sentiment = await self._run_stage(
                STAGE_SCORING, job_id, self.scorer.score, text
            )
        else:
            log_with_context(
                _stage_logger(STAGE_SCORING),
                logging.INFO,
                "No text extracted, skipping sentiment",
                job_id=job_id,
            )

        record = ResultRecord(
            job_id=job_id,
            status=ResultStatus.PROCESSED,
            document_key=message.document_key,
            extracted_text=text,
            sentiment=sentiment,
        )
        await self._run_stage(STAGE_PERSISTENCE, job_id, self.table.put, record)

        log_with_context(
            logger,
            logging.INFO,
            "Document processed",
            job_id=job_id,
            status=record.status.value,
        )
        return record

    async def record_failure(self, message: JobMessage, error: Exception) -> ResultRecord:
        """
        Upsert a FAILED record for a job that exhausted its attempts.

        Raises:
            PersistenceError: If the record cannot be written
        """
        job_id = compute_job_id(message)
        category = getattr(error, "category", None)
        details = f"{type(error).__name__}: {error}"
        if category is not None:
            details = f"[{category.value}] {details}"

        record = ResultRecord(
            job_id=job_id,
            status=ResultStatus.FAILED,
            document_key=message.document_key,
            details=details,
        )
        await self._run_stage(STAGE_PERSISTENCE, job_id, self.table.put, record)
        return record

    async def _run_stage(
        self,
        stage: str,
        job_id: str,
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        """Run a blocking stage call, translating failures to the stage's error type."""
        stage_logger = _stage_logger(stage)
        start_time = time.perf_counter()
        try:
            return await asyncio.to_thread(func, *args)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = _as_stage_error(stage, e, job_id)
            record_processing_error(stage, error.category.value)
            log_exception(
                stage_logger,
                error,
                f"{stage.capitalize()} stage failed",
                level=logging.WARNING,
                include_traceback=not isinstance(e, PipelineError),
                job_id=job_id,
                processing_stage=stage,
            )
            if error is e:
                raise
            raise error from e
        finally:
            stage_duration_seconds.labels(stage=stage).observe(
                time.perf_counter() - start_time
            )


def _stage_logger(stage: str) -> logging.Logger:
    return get_logger(f"{__name__}.{stage}")


def _as_stage_error(stage: str, exc: Exception, job_id: str) -> PipelineError:
    error_class = _STAGE_ERRORS[stage]
    if isinstance(exc, error_class):
        exc.context.setdefault("job_id", job_id)
        return exc
    if isinstance(exc, PipelineError):
        # Keep the original category under the stage's error type
        return error_class(
            exc.message,
            cause=exc,
            context={**exc.context, "job_id": job_id},
            category=exc.category,
        )
    return wrap_exception(exc, default_class=error_class, context={"job_id": job_id})
