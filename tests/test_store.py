"""Tests for the workbook store and command dispatch."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sheetdesk.config import DEFAULT_CONFIG
from sheetdesk.errors import NoActiveEditSession, UnknownSheet
from sheetdesk.models import ParsedFile, ParsedTable
from sheetdesk.store import (
    AddSheet,
    BeginEdit,
    Commit,
    ImportMerge,
    Select,
    UpdateText,
    WorkbookStore,
    parse_command,
)


@pytest.fixture
def store() -> WorkbookStore:
    return WorkbookStore()


def _titles(store: WorkbookStore) -> list[str]:
    return [n.title for n in store.drain_notifications()]


# ────────────────────────────────────────────────────────────────
# Sheets
# ────────────────────────────────────────────────────────────────


class TestSheets:
    def test_add_sheet_notifies(self, store) -> None:
        sid = store.add_sheet()
        notices = store.drain_notifications()
        assert sid == "2"
        assert [(n.title, n.description) for n in notices] == [("New sheet added", "Created Sheet2")]
        assert store.active_sheet.id == "2"

    def test_set_active_clears_selection(self, store) -> None:
        store.add_sheet()
        store.select(3, 3)
        store.set_active("1")
        assert store.state_summary()["editor"] == {"kind": "idle"}

    def test_set_active_unknown(self, store) -> None:
        with pytest.raises(UnknownSheet):
            store.set_active("42")

    def test_edit_persists_across_switch(self, store) -> None:
        store.begin_edit(0, 0)
        store.update_text("hello")
        store.commit()
        store.add_sheet()
        store.set_active("1")
        assert store.active_sheet.grid.read(0, 0).value == "hello"


# ────────────────────────────────────────────────────────────────
# Editing
# ────────────────────────────────────────────────────────────────


class TestEditing:
    def test_commit_round_trip(self, store) -> None:
        store.begin_edit(1, 2)
        store.update_text("v")
        sheet = store.commit()
        assert sheet.grid.read(1, 2).value == "v"
        assert store.active_sheet is sheet
        notices = store.drain_notifications()
        assert [(n.title, n.description) for n in notices] == [("Cell updated", "Cell C2 updated.")]

    def test_commit_without_session(self, store) -> None:
        with pytest.raises(NoActiveEditSession):
            store.commit()

    def test_cancel_leaves_grid(self, store) -> None:
        before = store.active_sheet
        store.begin_edit(0, 0)
        store.update_text("nope")
        store.cancel()
        assert store.active_sheet is before
        assert store.state_summary()["editor"] == {"kind": "selected", "row": 0, "col": 0}

    def test_commit_cell_edit_requires_matching_session(self, store) -> None:
        with pytest.raises(NoActiveEditSession):
            store.commit_cell_edit(0, 0, "x")
        store.begin_edit(1, 1)
        with pytest.raises(NoActiveEditSession, match="A1"):
            store.commit_cell_edit(0, 0, "x")

    def test_commit_cell_edit(self, store) -> None:
        store.begin_edit(0, 0)
        sheet = store.commit_cell_edit(0, 0, "done")
        assert sheet.grid.read(0, 0).value == "done"

    def test_commit_leaves_other_sheets_alone(self, store) -> None:
        store.add_sheet()
        other = store.collection.get("1")
        store.begin_edit(0, 0)
        store.commit()
        assert store.collection.get("1") is other


# ────────────────────────────────────────────────────────────────
# Import merge
# ────────────────────────────────────────────────────────────────


class TestImportMerge:
    def test_notice_only_when_sheets_added(self, store) -> None:
        assert store.import_merge([]) == []
        assert store.drain_notifications() == []

        parsed = ParsedFile(source_name="a.csv", tables=[ParsedTable(name="Sheet1", rows=[["x"]])])
        assert store.import_merge([parsed]) == ["2"]
        notices = store.drain_notifications()
        assert [(n.title, n.description) for n in notices] == [
            ("Data imported successfully", "Added 1 new sheet(s)."),
        ]
        assert store.active_sheet.id == "1"

    def test_activate_imported_sheet_config(self) -> None:
        store = WorkbookStore({**DEFAULT_CONFIG, "activate_imported_sheet": True})
        store.select(0, 0)
        parsed = ParsedFile(source_name="a.csv", tables=[ParsedTable(name="Sheet1", rows=[["x"]])])
        store.import_merge([parsed])
        assert store.active_sheet.name == "a.csv-Sheet1"
        assert store.controller.selection is None


# ────────────────────────────────────────────────────────────────
# Commands
# ────────────────────────────────────────────────────────────────


class TestDispatch:
    def test_edit_via_commands(self, store) -> None:
        store.dispatch(Select(row=0, col=0))
        store.dispatch(BeginEdit(row=0, col=0))
        store.dispatch(UpdateText(text="cmd"))
        result = store.dispatch(Commit())
        assert result["ok"] is True
        assert result["editor"] == {"kind": "selected", "row": 0, "col": 0}
        assert store.active_sheet.grid.read(0, 0).value == "cmd"

    def test_add_sheet_command(self, store) -> None:
        result = store.dispatch(AddSheet(name="Extra"))
        assert result["sheet_id"] == "2"
        assert result["active_sheet_id"] == "2"

    def test_import_command(self, store) -> None:
        cmd = ImportMerge(files=[ParsedFile(source_name="f.csv", tables=[ParsedTable(name="Sheet1")])])
        assert store.dispatch(cmd)["sheet_ids"] == ["2"]

    def test_parse_command(self) -> None:
        cmd = parse_command({"type": "begin_edit", "row": 2, "col": 1})
        assert isinstance(cmd, BeginEdit)
        assert (cmd.row, cmd.col) == (2, 1)

    @pytest.mark.parametrize(
        "data",
        [{"type": "explode"}, {"type": "select", "row": -1, "col": 0}, {"row": 1}],
    )
    def test_parse_bad_command(self, data) -> None:
        with pytest.raises(ValidationError):
            parse_command(data)


# ────────────────────────────────────────────────────────────────
# Lifecycle
# ────────────────────────────────────────────────────────────────


class TestLifecycle:
    def test_token_current_until_dispose(self, store) -> None:
        token = store.begin_async()
        assert store.is_current(token)
        store.dispose()
        assert not store.is_current(token)
        assert store.disposed

    def test_token_survives_other_work(self, store) -> None:
        token = store.begin_async()
        store.add_sheet()
        store.import_merge([])
        assert store.begin_async() == token
        assert store.is_current(token)

    def test_disposed_store_rejects_operations(self, store) -> None:
        store.dispose()
        with pytest.raises(ValueError, match="disposed"):
            store.add_sheet()
        with pytest.raises(ValueError, match="disposed"):
            store.begin_async()

    def test_dispose_is_idempotent(self, store) -> None:
        store.dispose()
        gen = store.generation
        store.dispose()
        assert store.generation == gen
