"""Tests for the structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

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
from sheetdesk.logging.sink import EVENTS_FILENAME, EventSink


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def sink(log_dir: Path) -> EventSink:
    return EventSink(log_dir)


def _lines(log_dir: Path) -> list[dict]:
    path = log_dir / EVENTS_FILENAME
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestSheetdeskEvent:
    def test_event_defaults(self) -> None:
        evt = SheetdeskEvent(
            level=EventLevel.info,
            event_type=EventType.sheet_added,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "sheet_added"
        assert evt.context == {}
        assert evt.error_code is None

    def test_all_event_types_exist(self) -> None:
        expected = {
            "sheet_added", "sheet_activated", "cell_committed", "edit_cancelled",
            "import_started", "import_file_rejected", "import_file_failed",
            "import_completed", "import_discarded", "assistant_reply", "store_disposed",
        }
        assert {e.value for e in EventType} == expected


# ---------------------------------------------------------------------------
# B) Redaction
# ---------------------------------------------------------------------------


class TestRedaction:
    def test_sensitive_keys(self) -> None:
        ctx = redact_context({"api_key": "abc", "nested": {"password": "p"}, "ok": 1})
        assert ctx == {"api_key": "[REDACTED]", "nested": {"password": "[REDACTED]"}, "ok": 1}

    def test_long_strings_truncated(self) -> None:
        ctx = redact_context({"text": "x" * 300, "items": ["y" * 300]})
        assert ctx["text"].endswith("...[truncated]")
        assert len(ctx["text"]) == 256 + len("...[truncated]")
        assert ctx["items"][0].endswith("...[truncated]")


# ---------------------------------------------------------------------------
# C) Sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_creates_directory(self, sink, log_dir) -> None:
        assert log_dir.is_dir()

    def test_write_and_read_newest_first(self, sink) -> None:
        for i in range(3):
            sink.write(
                SheetdeskEvent(
                    level=EventLevel.info,
                    event_type=EventType.sheet_added,
                    message=f"e{i}",
                    context={"sheet_id": str(i)},
                )
            )
        assert [e["message"] for e in sink.read()] == ["e2", "e1", "e0"]
        assert [e["message"] for e in sink.read(limit=1)] == ["e2"]

    def test_filters(self, sink) -> None:
        sink.write(SheetdeskEvent(level=EventLevel.info, event_type=EventType.sheet_added,
                                  context={"sheet_id": "1"}))
        sink.write(SheetdeskEvent(level=EventLevel.warning, event_type=EventType.import_file_failed,
                                  context={"filename": "a.csv"}))
        assert len(sink.read(level="warning")) == 1
        assert len(sink.read(event_type="sheet_added")) == 1
        assert len(sink.read(sheet_id="1")) == 1
        assert sink.read(sheet_id="2") == []

    def test_skips_bad_lines(self, sink, log_dir) -> None:
        (log_dir / EVENTS_FILENAME).write_text('not json\n\n{"message": "ok"}\n')
        assert sink.read() == [{"message": "ok"}]

    def test_tail_bound(self, log_dir) -> None:
        sink = EventSink(log_dir, tail_bytes=400)
        for i in range(50):
            sink.write(SheetdeskEvent(level=EventLevel.info, event_type=EventType.store_disposed,
                                      message=f"e{i}"))
        events = sink.read(limit=2000)
        assert 0 < len(events) < 50
        assert events[0]["message"] == "e49"

    def test_missing_file(self, sink) -> None:
        assert sink.read() == []


# ---------------------------------------------------------------------------
# D) Emit helpers
# ---------------------------------------------------------------------------


class TestEmit:
    def test_no_sink_is_noop(self, log_dir) -> None:
        emit_info(EventType.sheet_added, "nothing", {"sheet_id": "1"})
        assert _lines(log_dir) == []

    def test_levels_and_error_code(self, log_dir) -> None:
        set_log_dir(log_dir)
        emit_info(EventType.sheet_added, "i", {"sheet_id": "1"})
        emit_warning(EventType.import_file_rejected, "w", {"filename": "x"}, error_code="unsupported_file_type")
        emit_error(EventType.import_discarded, "e")
        lines = _lines(log_dir)
        assert [l["level"] for l in lines] == ["info", "warning", "error"]
        assert lines[1]["error_code"] == "unsupported_file_type"

    def test_missing_attribution_downgrades(self, log_dir) -> None:
        set_log_dir(log_dir)
        emit_info(EventType.cell_committed, "no context")
        [line] = _lines(log_dir)
        assert line["level"] == "warning"
        assert line["context"]["_missing_attribution"] == ["addr", "sheet_id"]

    def test_context_redacted_on_write(self, log_dir) -> None:
        set_log_dir(log_dir)
        emit_info(EventType.assistant_reply, "r", {"token": "secret"})
        assert _lines(log_dir)[0]["context"]["token"] == "[REDACTED]"

    def test_emit_never_raises(self, log_dir, capsys) -> None:
        class Broken:
            def write(self, event):
                raise OSError("disk full")

        import sheetdesk.logging.events as events

        set_log_dir(log_dir)
        events._sink = Broken()
        events._last_stderr_ts = -1e9
        emit(SheetdeskEvent(level=EventLevel.info, event_type=EventType.store_disposed))
        assert "[sheetdesk] logging failed" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# E) Integration with the store
# ---------------------------------------------------------------------------


class TestStoreEvents:
    def test_store_operations_are_logged(self, log_dir) -> None:
        from sheetdesk.store import WorkbookStore

        set_log_dir(log_dir)
        store = WorkbookStore()
        store.add_sheet()
        store.begin_edit(0, 0)
        store.commit()
        store.dispose()
        types = [l["event_type"] for l in _lines(log_dir)]
        assert types == ["sheet_added", "cell_committed", "store_disposed"]
        committed = _lines(log_dir)[1]
        assert committed["context"] == {"sheet_id": "2", "addr": "A1"}
