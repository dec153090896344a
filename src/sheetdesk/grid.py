"""Cell values and the immutable per-sheet cell matrix.

A :class:`SheetGrid` is a tuple of row tuples.  Writes return a new grid
that shares every untouched row object with the original; only the
written row and the outer tuple are rebuilt.  The front end detects
changes by identity, so a re-render is limited to rows that actually
changed.

Display padding (at least ``MIN_ROWS`` x ``MIN_COLS``) is applied on read
by :meth:`SheetGrid.view` and never stored.
"""

from __future__ import annotations

import math
from typing import Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict

MIN_ROWS = 50
MIN_COLS = 26

Scalar = Union[str, float]


# ────────────────────────────────────────────────────────────────
# Style values (closed set of variants)
# ────────────────────────────────────────────────────────────────


class ColorStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["color"] = "color"
    color: str


class WeightStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["weight"] = "weight"
    weight: Literal["normal", "bold"]


class AlignStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["align"] = "align"
    align: Literal["left", "center", "right"]


StyleValue = ColorStyle | WeightStyle | AlignStyle


# ────────────────────────────────────────────────────────────────
# Cell
# ────────────────────────────────────────────────────────────────


class Cell(BaseModel):
    """One grid cell.  ``formula`` is edit-source text only, never evaluated."""

    model_config = ConfigDict(frozen=True)

    value: Scalar = ""
    formula: str | None = None
    style: dict[str, StyleValue] | None = None


EMPTY_CELL = Cell()


def format_scalar(value: Scalar) -> str:
    """Render a scalar the way the grid displays it.

    Integral numbers drop the trailing ``.0``; infinities render as
    ``Infinity``/``-Infinity``.
    """
    if isinstance(value, str):
        return value
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if math.isnan(value):
        return "NaN"
    if value == int(value):
        return str(int(value))
    return repr(value)


def edit_text(cell: Cell) -> str:
    """Initial text of an edit session: the formula if present, else the value."""
    if cell.formula:
        return cell.formula
    return format_scalar(cell.value)


def _check_coords(row: int, col: int) -> None:
    if row < 0 or col < 0:
        raise ValueError(f"Cell coordinates must be >= 0, got ({row}, {col})")


# ────────────────────────────────────────────────────────────────
# SheetGrid
# ────────────────────────────────────────────────────────────────


class SheetGrid:
    """Dense, immutable cell matrix with structural-sharing writes.

    Parameters
    ----------
    rows : iterable of iterables of Cell
        Initial stored rows.  Rows may have different lengths.
    """

    __slots__ = ("_rows",)

    def __init__(self, rows: Iterable[Iterable[Cell]] = ()) -> None:
        self._rows: tuple[tuple[Cell, ...], ...] = tuple(tuple(r) for r in rows)

    @classmethod
    def _wrap(cls, rows: tuple[tuple[Cell, ...], ...]) -> SheetGrid:
        grid = cls.__new__(cls)
        grid._rows = rows
        return grid

    @classmethod
    def from_scalars(cls, matrix: Iterable[Iterable[Scalar]]) -> SheetGrid:
        """Build a grid holding ``Cell(value=scalar)`` for every scalar."""
        return cls._wrap(
            tuple(tuple(Cell(value=v) for v in row) for row in matrix)
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def rows(self) -> tuple[tuple[Cell, ...], ...]:
        """The stored rows (shared, immutable)."""
        return self._rows

    @property
    def stored_shape(self) -> tuple[int, int]:
        """(row count, widest row length) of the stored extent."""
        width = max((len(r) for r in self._rows), default=0)
        return len(self._rows), width

    def display_shape(
        self, min_rows: int = MIN_ROWS, min_cols: int = MIN_COLS
    ) -> tuple[int, int]:
        """Shape reported to the presentation layer, padded to the minimums."""
        n_rows, n_cols = self.stored_shape
        return max(n_rows, min_rows), max(n_cols, min_cols)

    def read(self, row: int, col: int) -> Cell:
        """Return the cell at (row, col); unset cells read as the empty cell."""
        _check_coords(row, col)
        if row >= len(self._rows):
            return EMPTY_CELL
        stored = self._rows[row]
        if col >= len(stored):
            return EMPTY_CELL
        return stored[col]

    def view(
        self, min_rows: int = MIN_ROWS, min_cols: int = MIN_COLS
    ) -> list[list[Cell]]:
        """Return the padded matrix shown to the user.

        The result has exactly ``max(r, min_rows) x max(c, min_cols)`` cells,
        where ``r x c`` is the stored extent.  Storage is not touched.
        """
        n_rows, n_cols = self.display_shape(min_rows, min_cols)
        out: list[list[Cell]] = []
        for r in range(n_rows):
            stored = self._rows[r] if r < len(self._rows) else ()
            out.append(list(stored) + [EMPTY_CELL] * (n_cols - len(stored)))
        return out

    def to_scalars(self) -> list[list[Scalar]]:
        """Stored extent as a plain scalar matrix."""
        return [[c.value for c in row] for row in self._rows]

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def write(self, row: int, col: int, cell: Cell) -> SheetGrid:
        """Return a new grid with *cell* at (row, col).

        Storage grows to exactly ``max(n_rows, row + 1)`` rows and the
        written row to exactly ``max(len, col + 1)`` cells.  Every other row
        object is shared with ``self``.
        """
        _check_coords(row, col)
        rows = list(self._rows)
        if row >= len(rows):
            rows.extend(() for _ in range(row + 1 - len(rows)))
        target = rows[row]
        if col < len(target):
            rows[row] = target[:col] + (cell,) + target[col + 1:]
        else:
            rows[row] = target + (EMPTY_CELL,) * (col - len(target)) + (cell,)
        return SheetGrid._wrap(tuple(rows))

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SheetGrid):
            return NotImplemented
        return self._rows == other._rows

    def __repr__(self) -> str:
        n_rows, n_cols = self.stored_shape
        return f"SheetGrid(stored={n_rows}x{n_cols})"
