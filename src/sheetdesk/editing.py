"""Selection and cell-editing state machine.

States::

    Idle --select--> Selected(r, c) --begin_edit--> Editing(r, c, text)
                          ^                              |
                          +------- commit / cancel ------+

``select`` from any state discards an in-flight edit without writing it.
At most one :class:`Editing` state exists per controller, and the store
owns exactly one controller, so at most one edit session exists overall.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from sheetdesk.errors import NoActiveEditSession
from sheetdesk.grid import Cell, SheetGrid, edit_text


class Idle(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["idle"] = "idle"


class Selected(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["selected"] = "selected"
    row: int
    col: int


class Editing(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["editing"] = "editing"
    row: int
    col: int
    pending_text: str = ""


EditorState = Idle | Selected | Editing


def parse_commit_value(text: str) -> str:
    """Value stored by an interactive commit: the raw text, never coerced."""
    return text


class SelectionEditingController:
    """Owns the selection and the (single) edit session for one store."""

    def __init__(self) -> None:
        self._state: EditorState = Idle()

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def selection(self) -> tuple[int, int] | None:
        """Selected (row, col), also while editing; None when idle."""
        if isinstance(self._state, Idle):
            return None
        return self._state.row, self._state.col

    @property
    def editing(self) -> Editing | None:
        return self._state if isinstance(self._state, Editing) else None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def select(self, row: int, col: int) -> Selected:
        """Select a cell.  Any in-flight edit is discarded, not committed."""
        if row < 0 or col < 0:
            raise ValueError(f"Cell coordinates must be >= 0, got ({row}, {col})")
        self._state = Selected(row=row, col=col)
        return self._state

    def begin_edit(self, row: int, col: int, grid: SheetGrid) -> Editing:
        """Open an edit session on (row, col) seeded from the current cell.

        If (row, col) is not the selected cell it is selected first, which
        drops any session open on another cell.
        """
        current = self._state
        if not (
            isinstance(current, Selected) and (current.row, current.col) == (row, col)
        ):
            self.select(row, col)
        self._state = Editing(row=row, col=col, pending_text=edit_text(grid.read(row, col)))
        return self._state

    def update_text(self, text: str) -> Editing:
        session = self._require_session()
        self._state = Editing(row=session.row, col=session.col, pending_text=text)
        return self._state

    def commit(self, grid: SheetGrid) -> SheetGrid:
        """Write the pending text into *grid* and return the new grid.

        The whole cell is replaced, so an existing formula or style on the
        target cell does not survive the commit.
        """
        session = self._require_session()
        new_grid = grid.write(
            session.row, session.col, Cell(value=parse_commit_value(session.pending_text))
        )
        self._state = Selected(row=session.row, col=session.col)
        return new_grid

    def cancel(self) -> Selected:
        session = self._require_session()
        self._state = Selected(row=session.row, col=session.col)
        return self._state

    def clear(self) -> None:
        """Drop selection and any edit session."""
        self._state = Idle()

    def _require_session(self) -> Editing:
        if not isinstance(self._state, Editing):
            raise NoActiveEditSession()
        return self._state
