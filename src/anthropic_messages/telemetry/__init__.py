"""
Telemetry - structured logging.
"""

from anthropic_messages.telemetry.logger import (
    AiLibLogger,
    JsonFormatter,
    LogContext,
    LogLevel,
    SensitiveDataMasker,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)

__all__ = [
    "AiLibLogger",
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "SensitiveDataMasker",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "set_log_context",
]
