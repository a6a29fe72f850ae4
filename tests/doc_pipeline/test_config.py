"""Tests for WorkerConfig."""

import pytest

from core.errors import ConfigurationError
from doc_pipeline.config import WorkerConfig

BASE_ENV = {
    "QUEUE_URL": "https://sqs.us-east-1.amazonaws.com/123456789012/jobs",
    "TABLE_NAME": "results",
    "REGION": "us-east-1",
}


class TestFromEnv:
    def test_required_values(self):
        config = WorkerConfig.from_env(BASE_ENV)

        assert config.queue_url == BASE_ENV["QUEUE_URL"]
        assert config.table_name == "results"
        assert config.region == "us-east-1"
        assert config.document_suffix == ".pdf"
        assert config.max_receive_count == 5
        assert config.dead_letter_queue_url is None
        assert config.visibility_timeout_seconds is None

    def test_all_missing_variables_named(self):
        with pytest.raises(ConfigurationError) as exc_info:
            WorkerConfig.from_env({})

        message = str(exc_info.value)
        for name in ("QUEUE_URL", "TABLE_NAME", "REGION"):
            assert name in message
        assert exc_info.value.context["missing"] == ["QUEUE_URL", "TABLE_NAME", "REGION"]

    def test_blank_value_counts_as_missing(self):
        env = {**BASE_ENV, "TABLE_NAME": "   "}

        with pytest.raises(ConfigurationError, match="TABLE_NAME"):
            WorkerConfig.from_env(env)

    def test_aws_region_fallback(self):
        env = {k: v for k, v in BASE_ENV.items() if k != "REGION"}
        env["AWS_REGION"] = "eu-west-1"

        assert WorkerConfig.from_env(env).region == "eu-west-1"

    def test_optional_values(self):
        env = {
            **BASE_ENV,
            "DOCUMENT_BUCKET": "docs-in",
            "DOCUMENT_SUFFIX": ".PDF",
            "WAIT_TIME_SECONDS": "20",
            "POLL_INTERVAL_SECONDS": "0.5",
            "VISIBILITY_TIMEOUT_SECONDS": "120",
            "MAX_RECEIVE_COUNT": "3",
            "DEAD_LETTER_QUEUE_URL": "https://sqs/123/jobs-dlq",
        }

        config = WorkerConfig.from_env(env)

        assert config.document_bucket == "docs-in"
        assert config.document_suffix == ".PDF"
        assert config.wait_time_seconds == 20
        assert config.poll_interval_seconds == 0.5
        assert config.visibility_timeout_seconds == 120
        assert config.max_receive_count == 3
        assert config.dead_letter_queue_url == "https://sqs/123/jobs-dlq"

    def test_malformed_integer(self):
        with pytest.raises(ConfigurationError, match="MAX_RECEIVE_COUNT"):
            WorkerConfig.from_env({**BASE_ENV, "MAX_RECEIVE_COUNT": "three"})

    def test_wait_time_out_of_range(self):
        with pytest.raises(ConfigurationError, match="wait_time_seconds"):
            WorkerConfig.from_env({**BASE_ENV, "WAIT_TIME_SECONDS": "30"})

    def test_reads_process_environment_by_default(self, monkeypatch):
        for name, value in BASE_ENV.items():
            monkeypatch.setenv(name, value)

        assert WorkerConfig.from_env().table_name == "results"


def test_max_receive_count_must_be_positive():
    with pytest.raises(ConfigurationError):
        WorkerConfig(queue_url="q", table_name="t", region="r", max_receive_count=0)
