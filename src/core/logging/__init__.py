"""
Structured logging module.

Provides JSON logging with context propagation for pipeline stages
and queue messages.
"""

from core.logging.context import (
    MessageLogContext,
    clear_log_context,
    get_log_context,
    get_message_context,
    set_log_context,
)
from core.logging.setup import generate_cycle_id, get_logger, setup_logging
from core.logging.utilities import log_exception, log_with_context

__all__ = [
    "MessageLogContext",
    "clear_log_context",
    "get_log_context",
    "get_message_context",
    "set_log_context",
    "generate_cycle_id",
    "get_logger",
    "setup_logging",
    "log_exception",
    "log_with_context",
]
