"""Structured event logging for sheetdesk.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from sheetdesk.logging.events import (
    EventLevel,
    EventType,
    SheetdeskEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    redact_context,
    set_log_dir,
)
from sheetdesk.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "SheetdeskEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "redact_context",
    "set_log_dir",
]
