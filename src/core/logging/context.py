"""Context variables injected into every log record."""

from contextvars import ContextVar
from typing import Dict, Optional

_domain: ContextVar[Optional[str]] = ContextVar("log_domain", default=None)
_stage: ContextVar[Optional[str]] = ContextVar("log_stage", default=None)
_cycle_id: ContextVar[Optional[str]] = ContextVar("log_cycle_id", default=None)
_worker_id: ContextVar[Optional[str]] = ContextVar("log_worker_id", default=None)

# Queue message context, set per message by MessageLogContext
_message_id: ContextVar[Optional[str]] = ContextVar("log_message_id", default=None)
_document_key: ContextVar[Optional[str]] = ContextVar(
    "log_document_key", default=None
)
_receive_count: ContextVar[Optional[int]] = ContextVar(
    "log_receive_count", default=None
)

_PIPELINE_VARS = {
    "domain": _domain,
    "stage": _stage,
    "cycle_id": _cycle_id,
    "worker_id": _worker_id,
}

_MESSAGE_VARS = {
    "message_id": _message_id,
    "document_key": _document_key,
    "receive_count": _receive_count,
}


def set_log_context(
    domain: Optional[str] = None,
    stage: Optional[str] = None,
    cycle_id: Optional[str] = None,
    worker_id: Optional[str] = None,
) -> None:
    """Set pipeline context variables. Only non-None values are applied."""
    values = {
        "domain": domain,
        "stage": stage,
        "cycle_id": cycle_id,
        "worker_id": worker_id,
    }
    for name, value in values.items():
        if value is not None:
            _PIPELINE_VARS[name].set(value)


def get_log_context() -> Dict[str, Optional[str]]:
    """Return current pipeline context values."""
    return {name: var.get() for name, var in _PIPELINE_VARS.items()}


def clear_log_context() -> None:
    """Reset pipeline and message context to empty."""
    for var in _PIPELINE_VARS.values():
        var.set(None)
    for var in _MESSAGE_VARS.values():
        var.set(None)


def get_message_context() -> Dict[str, object]:
    """Return current queue message context, omitting unset values."""
    ctx = {}
    for name, var in _MESSAGE_VARS.items():
        value = var.get()
        if value is not None:
            ctx[name] = value
    return ctx


class MessageLogContext:
    """
    Context manager that tags all logs with queue message identifiers.

    Example:
        with MessageLogContext(message_id=msg.message_id, document_key=msg.document_key):
            logger.info("Processing")  # includes message_id and document_key
    """

    def __init__(
        self,
        message_id: Optional[str] = None,
        document_key: Optional[str] = None,
        receive_count: Optional[int] = None,
    ):
        self._values = {
            "message_id": message_id,
            "document_key": document_key,
            "receive_count": receive_count,
        }
        self._tokens = []

    def __enter__(self) -> "MessageLogContext":
        for name, value in self._values.items():
            self._tokens.append((_MESSAGE_VARS[name], _MESSAGE_VARS[name].set(value)))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
