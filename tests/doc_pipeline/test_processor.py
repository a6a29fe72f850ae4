"""Tests for the document processor."""

import logging

import pytest

from core.errors import (
    DocumentFetchError,
    ErrorCategory,
    ExtractionError,
    PersistenceError,
    ScoringError,
)
from doc_pipeline.processor import DocumentProcessor, compute_job_id
from doc_pipeline.schemas.messages import JobMessage
from doc_pipeline.schemas.records import ResultStatus, document_job_id


def make_message(key="uploads/report.pdf", bucket="docs-in", receive_count=1):
    return JobMessage(
        document_key=key,
        bucket=bucket,
        message_id=f"m-{receive_count}",
        receipt_handle=f"rh-{receive_count}",
        receive_count=receive_count,
    )


@pytest.fixture
def processor(blobs, extractor, scorer, table):
    return DocumentProcessor(blobs, extractor, scorer, table)


class TestComputeJobId:
    def test_same_document_same_job_id(self):
        first = make_message(receive_count=1)
        second = make_message(receive_count=2)

        assert compute_job_id(first) == compute_job_id(second)

    def test_bucket_is_part_of_identity(self):
        assert compute_job_id(make_message(bucket="a")) != compute_job_id(
            make_message(bucket="b")
        )

    def test_format(self):
        job_id = document_job_id("docs-in", "uploads/report.pdf")

        assert job_id.startswith("doc-")
        assert len(job_id) == len("doc-") + 32


@pytest.mark.asyncio
class TestDocumentProcessor:
    async def test_process_writes_processed_record(self, processor, table, scorer):
        record = await processor.process(make_message())

        assert record.status == ResultStatus.PROCESSED
        stored = table.get(record.job_id)
        assert stored is not None
        assert stored.extracted_text == "Quarterly results exceeded expectations."
        assert stored.sentiment.label == "POSITIVE"
        assert stored.document_key == "uploads/report.pdf"
        assert scorer.texts == ["Quarterly results exceeded expectations."]

    async def test_reprocessing_converges_on_one_record(self, processor, table):
        first = await processor.process(make_message(receive_count=1))
        second = await processor.process(make_message(receive_count=2))

        assert first.job_id == second.job_id
        assert len(table.items) == 1
        assert table.put_calls == 2

        stored = table.items[first.job_id]
        expected = second.to_item()
        for field in ("jobId", "status", "extractedText", "sentiment", "documentKey"):
            assert stored[field] == expected[field]

    async def test_empty_text_skips_scoring(self, processor, table, scorer):
        record = await processor.process(make_message(key="uploads/blank.pdf"))

        assert scorer.texts == []
        assert record.sentiment is None
        assert "sentiment" not in table.items[record.job_id]
        assert table.items[record.job_id]["extractedText"] == ""

    async def test_missing_document_raises_fetch_error(self, processor, table):
        with pytest.raises(DocumentFetchError) as exc_info:
            await processor.process(make_message(key="uploads/missing.pdf"))

        assert exc_info.value.category == ErrorCategory.PERMANENT
        assert table.items == {}

    async def test_extraction_failure_is_transient(self, blobs, scorer, table, fakes):
        processor = DocumentProcessor(blobs, fakes.Extractor(fail_times=1), scorer, table)

        with pytest.raises(ExtractionError) as exc_info:
            await processor.process(make_message())

        assert exc_info.value.category == ErrorCategory.TRANSIENT
        assert "job_id" in exc_info.value.context
        assert table.items == {}

    async def test_scoring_failure_raises_scoring_error(self, blobs, extractor, table, fakes):
        processor = DocumentProcessor(blobs, extractor, fakes.Scorer(fail_times=1), table)

        with pytest.raises(ScoringError):
            await processor.process(make_message())

        assert table.items == {}

    async def test_persistence_failure_raises_persistence_error(self, processor, table):
        table.fail_puts = 1

        with pytest.raises(PersistenceError) as exc_info:
            await processor.process(make_message())

        assert exc_info.value.category == ErrorCategory.TRANSIENT

    async def test_retry_until_success(self, blobs, scorer, table, fakes):
        processor = DocumentProcessor(blobs, fakes.Extractor(fail_times=2), scorer, table)
        message = make_message()

        for _ in range(2):
            with pytest.raises(ExtractionError):
                await processor.process(message)

        record = await processor.process(message)

        assert list(table.items) == [record.job_id]
        assert table.items[record.job_id]["status"] == "PROCESSED"

    async def test_stage_failure_logged_on_stage_logger(self, blobs, scorer, table, fakes, caplog):
        processor = DocumentProcessor(blobs, fakes.Extractor(fail_times=1), scorer, table)

        with caplog.at_level(logging.WARNING):
            with pytest.raises(ExtractionError):
                await processor.process(make_message())

        assert any(
            r.name == "doc_pipeline.processor.extraction" for r in caplog.records
        )

    async def test_record_failure_writes_failed_record(self, processor, table):
        message = make_message()
        error = ExtractionError("bad document", category=ErrorCategory.PERMANENT)

        record = await processor.record_failure(message, error)

        assert record.job_id == compute_job_id(message)
        stored = table.items[record.job_id]
        assert stored["status"] == "FAILED"
        assert "permanent" in stored["details"]
        assert "bad document" in stored["details"]
