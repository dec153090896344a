"""Ordered set of sheets plus the active-sheet pointer."""

from __future__ import annotations

from typing import Iterable

from sheetdesk.errors import UnknownSheet
from sheetdesk.grid import SheetGrid
from sheetdesk.merge import build_import_sheets
from sheetdesk.models import ParsedFile, Sheet

DEFAULT_SHEET_ID = "1"
DEFAULT_SHEET_NAME = "Sheet1"


class SheetCollection:
    """Sheets in creation/import order and the id of the active one.

    The collection is never empty and ``active_sheet_id`` always names a
    member.  Sheets are never removed, renamed or reordered.  Updating a
    sheet replaces its :class:`Sheet` object and the outer tuple; every
    other sheet object is kept.
    """

    def __init__(self) -> None:
        self._next_id = int(DEFAULT_SHEET_ID)
        first = Sheet(id=self._new_id(), name=DEFAULT_SHEET_NAME)
        self._sheets: tuple[Sheet, ...] = (first,)
        self._active_id = first.id

    def _new_id(self) -> str:
        sheet_id = str(self._next_id)
        self._next_id += 1
        return sheet_id

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def sheets(self) -> tuple[Sheet, ...]:
        return self._sheets

    @property
    def active_sheet_id(self) -> str:
        return self._active_id

    @property
    def active(self) -> Sheet:
        return self.get(self._active_id)

    def ids(self) -> list[str]:
        return [s.id for s in self._sheets]

    def get(self, sheet_id: str) -> Sheet:
        """Return the sheet with *sheet_id*, raising UnknownSheet if missing."""
        for s in self._sheets:
            if s.id == sheet_id:
                return s
        raise UnknownSheet(sheet_id, self.ids())

    def __len__(self) -> int:
        return len(self._sheets)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_sheet(self, name: str | None = None) -> str:
        """Append a blank sheet, make it active and return its id.

        The default name is ``Sheet{N+1}`` where N is the current count.
        """
        sheet = Sheet(id=self._new_id(), name=name or f"Sheet{len(self._sheets) + 1}")
        self._sheets = self._sheets + (sheet,)
        self._active_id = sheet.id
        return sheet.id

    def set_active(self, sheet_id: str) -> Sheet:
        """Point the active-sheet id at *sheet_id*."""
        sheet = self.get(sheet_id)
        self._active_id = sheet_id
        return sheet

    def replace_grid(self, sheet_id: str, grid: SheetGrid) -> Sheet:
        """Swap in a new grid for one sheet."""
        current = self.get(sheet_id)
        if current.grid is grid:
            return current
        updated = current.model_copy(update={"grid": grid})
        self._sheets = tuple(updated if s.id == sheet_id else s for s in self._sheets)
        return updated

    def import_merge(
        self,
        files: Iterable[ParsedFile],
        *,
        activate_first: bool = False,
    ) -> list[str]:
        """Append one sheet per parsed table and return the new ids.

        The active sheet is left unchanged unless *activate_first* is set
        and at least one sheet was created.
        """
        new_sheets = build_import_sheets(files, self._new_id)
        if new_sheets:
            self._sheets = self._sheets + tuple(new_sheets)
            if activate_first:
                self._active_id = new_sheets[0].id
        return [s.id for s in new_sheets]
