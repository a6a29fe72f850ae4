"""Tests for the upload notifier."""

import json
from unittest.mock import patch

import pytest

from core.errors import ConfigurationError
from doc_pipeline import notifier as notifier_module
from doc_pipeline.notifier import Notifier


def s3_event(*keys, event_name="ObjectCreated:Put", bucket="docs-in"):
    return {
        "Records": [
            {
                "eventName": event_name,
                "eventTime": "2024-01-15T10:30:00.000Z",
                "s3": {"bucket": {"name": bucket}, "object": {"key": key, "size": 1024}},
            }
            for key in keys
        ]
    }


class TestNotifier:
    def test_one_message_per_matching_object(self, queue):
        notifier = Notifier(queue)

        message_ids = notifier.handle_event(s3_event("uploads/a.pdf", "uploads/b.pdf"))

        assert len(message_ids) == 2
        bodies = [json.loads(body) for body in queue.sent]
        assert [b["documentKey"] for b in bodies] == ["uploads/a.pdf", "uploads/b.pdf"]
        assert all(b["bucket"] == "docs-in" for b in bodies)
        assert bodies[0]["size"] == 1024
        assert bodies[0]["eventTime"].startswith("2024-01-15T10:30:00")

    def test_suffix_filter(self, queue):
        notifier = Notifier(queue)

        message_ids = notifier.handle_event(
            s3_event("uploads/a.pdf", "uploads/b.txt", "uploads/c.PDF")
        )

        assert len(message_ids) == 1
        assert json.loads(queue.sent[0])["documentKey"] == "uploads/a.pdf"

    def test_custom_suffix(self, queue):
        notifier = Notifier(queue, suffix=".png")

        assert notifier.matches("scan.png")
        assert not notifier.matches("scan.pdf")

    def test_keys_are_url_decoded(self, queue):
        Notifier(queue).handle_event(s3_event("uploads/annual+report%282024%29.pdf"))

        assert json.loads(queue.sent[0])["documentKey"] == "uploads/annual report(2024).pdf"

    def test_ignores_non_create_events(self, queue):
        message_ids = Notifier(queue).handle_event(
            s3_event("uploads/a.pdf", event_name="ObjectRemoved:Delete")
        )

        assert message_ids == []
        assert queue.sent == []

    def test_test_event(self, queue):
        message_ids = Notifier(queue).handle_event(
            {"Service": "Amazon S3", "Event": "s3:TestEvent", "Bucket": "docs-in"}
        )

        assert message_ids == []
        assert queue.sent == []


class TestHandler:
    def test_missing_queue_url(self, monkeypatch):
        monkeypatch.delenv("QUEUE_URL", raising=False)

        with pytest.raises(ConfigurationError, match="QUEUE_URL"):
            notifier_module.handler(s3_event("a.pdf"))

    def test_enqueues_with_configured_queue(self, monkeypatch, queue):
        monkeypatch.setenv("QUEUE_URL", "https://sqs/123/jobs")
        monkeypatch.setenv("DOCUMENT_SUFFIX", ".pdf")

        with patch.object(notifier_module, "SqsQueue", return_value=queue) as sqs_queue:
            result = notifier_module.handler(s3_event("a.pdf", "b.txt"))

        sqs_queue.assert_called_once()
        assert sqs_queue.call_args.args[0] == "https://sqs/123/jobs"
        assert result["enqueued"] == 1
        assert len(result["messageIds"]) == 1
