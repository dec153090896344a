"""Shared service layer for the sheetdesk UI.

This module wraps one :class:`WorkbookStore` and one
:class:`AssistantSession` so that both the FastAPI server and the CLI can
share the same logic.  Every public method returns plain data.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sheetdesk import __version__
from sheetdesk.addressing import column_label, make_addr
from sheetdesk.assistant import AssistantSession, quick_actions
from sheetdesk.config import load_config
from sheetdesk.grid import format_scalar
from sheetdesk.ingest import UploadedFile, ingest_uploads
from sheetdesk.logging.events import set_log_dir
from sheetdesk.logging.sink import EventSink
from sheetdesk.models import Sheet
from sheetdesk.store import Command, WorkbookStore


class EditorService:
    """In-memory editor session.

    Parameters
    ----------
    directory : Path | None
        Directory holding ``sheetdesk.yaml``; event logs go to
        ``<directory>/logs``.  ``None`` runs with defaults and no event log.
    """

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = directory.resolve() if directory is not None else None
        self.config = load_config(self.directory)

        self.log_dir: Path | None = None
        if self.directory is not None and self.config["logging_enabled"]:
            self.log_dir = self.directory / "logs"
            set_log_dir(
                self.log_dir,
                fsync=self.config["logging_fsync"],
                tail_bytes=self.config["logging_tail_bytes"],
            )
        else:
            set_log_dir(None)

        self.store = WorkbookStore(self.config)
        self.assistant = AssistantSession(delay_secs=float(self.config["assistant_delay_secs"]))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sheet_summary(self, sheet: Sheet) -> dict[str, Any]:
        n_rows, n_cols = sheet.grid.display_shape(self.config["min_rows"], self.config["min_cols"])
        stored_rows, stored_cols = sheet.grid.stored_shape
        return {
            "id": sheet.id,
            "name": sheet.name,
            "n_rows": n_rows,
            "n_cols": n_cols,
            "stored_rows": stored_rows,
            "stored_cols": stored_cols,
        }

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_state(self) -> dict[str, Any]:
        """Everything the front end needs to render chrome around the grid."""
        return {
            "version": __version__,
            "sheets": self.list_sheets(),
            **self.store.state_summary(),
            "assistant_pending": self.assistant.pending,
        }

    def list_sheets(self) -> list[dict[str, Any]]:
        return [self._sheet_summary(s) for s in self.store.collection.sheets]

    def add_sheet(self, name: str | None = None) -> dict[str, Any]:
        sheet_id = self.store.add_sheet(name)
        return {"ok": True, **self._sheet_summary(self.store.collection.get(sheet_id))}

    def set_active(self, sheet_id: str) -> dict[str, Any]:
        sheet = self.store.set_active(sheet_id)
        return {"ok": True, **self._sheet_summary(sheet)}

    def get_sheet_viewport(
        self,
        sheet_id: str | None = None,
        r0: int = 0,
        c0: int = 0,
        rows: int = 50,
        cols: int = 26,
    ) -> dict[str, Any]:
        """Return a window of the padded grid for rendering.

        Returns dict with:
          - cells: row-major list of rows, each a list of
            {addr, row, col, display, raw, style?}
          - col_labels: letter labels for the window's columns
          - n_rows, n_cols: padded sheet dimensions
        """
        if r0 < 0 or c0 < 0:
            raise ValueError("Viewport origin must be >= 0")
        sheet = self.store.collection.get(sheet_id) if sheet_id else self.store.active_sheet
        padded = sheet.grid.view(self.config["min_rows"], self.config["min_cols"])
        n_rows = len(padded)
        n_cols = len(padded[0]) if padded else 0
        r1 = min(r0 + rows, n_rows)
        c1 = min(c0 + cols, n_cols)

        out_rows: list[list[dict[str, Any]]] = []
        for r in range(r0, r1):
            out_row = []
            for c in range(c0, c1):
                cell = padded[r][c]
                entry: dict[str, Any] = {
                    "addr": make_addr(r, c),
                    "row": r,
                    "col": c,
                    "display": format_scalar(cell.value),
                    "raw": cell.formula or format_scalar(cell.value),
                }
                if cell.style:
                    entry["style"] = {k: v.model_dump() for k, v in cell.style.items()}
                out_row.append(entry)
            out_rows.append(out_row)

        return {
            "sheet_id": sheet.id,
            "sheet": sheet.name,
            "n_rows": n_rows,
            "n_cols": n_cols,
            "r0": r0,
            "c0": c0,
            "col_labels": [column_label(c) for c in range(c0, c1)],
            "cells": out_rows,
        }

    # ------------------------------------------------------------------
    # Selection / editing
    # ------------------------------------------------------------------

    def select(self, row: int, col: int) -> dict[str, Any]:
        self.store.select(row, col)
        return {"ok": True, **self.store.state_summary()}

    def begin_edit(self, row: int, col: int) -> dict[str, Any]:
        self.store.begin_edit(row, col)
        return {"ok": True, **self.store.state_summary()}

    def update_text(self, text: str) -> dict[str, Any]:
        self.store.update_text(text)
        return {"ok": True, **self.store.state_summary()}

    def commit_edit(self, text: str | None = None) -> dict[str, Any]:
        """Commit the open session, optionally replacing its text first."""
        session = self.store.controller.editing
        if text is not None and session is not None:
            self.store.commit_cell_edit(session.row, session.col, text)
        else:
            self.store.commit()
        return {"ok": True, **self.store.state_summary()}

    def cancel_edit(self) -> dict[str, Any]:
        self.store.cancel()
        return {"ok": True, **self.store.state_summary()}

    def dispatch(self, command: Command) -> dict[str, Any]:
        return self.store.dispatch(command)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def import_uploads(
        self, uploads: list[UploadedFile], *, from_chat: bool = False
    ) -> dict[str, Any]:
        """Run the ingest pipeline over a batch of uploads."""
        if from_chat:
            self.assistant.record_upload([u.filename for u in uploads])
        self.store.notify("Files uploaded", f"Processing {len(uploads)} file(s)...")
        result = await ingest_uploads(self.store, uploads)
        return {"ok": True, **result.to_dict(), "sheets": self.list_sheets()}

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def get_notifications(self, drain: bool = True) -> list[dict[str, Any]]:
        notices = self.store.drain_notifications() if drain else list(self.store.notifications)
        return [n.model_dump() for n in notices]

    # ------------------------------------------------------------------
    # Assistant
    # ------------------------------------------------------------------

    def get_messages(self) -> dict[str, Any]:
        return {
            "messages": [m.model_dump() for m in self.assistant.messages],
            "pending": self.assistant.pending,
            "quick_actions": quick_actions(),
        }

    async def send_message(self, text: str) -> dict[str, Any]:
        """Send *text* to the assistant with the active sheet's scalars."""
        matrix = self.store.active_sheet.grid.to_scalars()
        reply = await self.assistant.send(text, matrix)
        return {
            "ok": reply is not None,
            "reply": reply.model_dump() if reply is not None else None,
        }

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def tail_events(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        sheet_id: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        if self.log_dir is None:
            return []
        return EventSink(self.log_dir).read(
            level=level, event_type=event_type, sheet_id=sheet_id, limit=limit
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Dispose the store and assistant; in-flight results are dropped."""
        self.assistant.dispose()
        self.store.dispose()
