"""Log formatters for JSON and console output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from core.logging.context import get_log_context, get_message_context


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Message tracking
        "job_id",
        "message_id",
        "document_key",
        "bucket",
        "receive_count",
        "queue_url",
        # Outcome
        "duration_ms",
        "error_category",
        "error_message",
        "classified_as",
        "processing_stage",
        "status",
        # Scaling and monitoring
        "queue_depth",
        "current_capacity",
        "desired_capacity",
        "alarm_state",
        "datapoint",
        # Lifecycle and graph
        "request_type",
        "logical_resource_id",
        "physical_resource_id",
        "node_path",
        "tag_key",
        "violations",
        # Misc
        "table",
        "operation",
        "polls",
        "max_polls",
    ]

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Inject context variables
        ctx = get_log_context()
        for key in ("domain", "stage", "cycle_id", "worker_id"):
            if ctx[key]:
                log_entry[key] = ctx[key]
        log_entry.update(get_message_context())

        # Add source location for DEBUG/ERROR
        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Includes context when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
        ]

        if ctx["domain"]:
            parts.append(f"[{ctx['domain']}]")
        if ctx["stage"]:
            parts.append(f"[{ctx['stage']}]")

        prefix = " - ".join(parts)

        message_id = get_message_context().get("message_id")
        if message_id:
            line = f"{prefix} - [{message_id[:8]}] {record.getMessage()}"
        else:
            line = f"{prefix} - {record.getMessage()}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
