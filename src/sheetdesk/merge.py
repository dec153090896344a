"""Conversion of parsed import payloads into new sheets."""

from __future__ import annotations

from typing import Callable, Iterable

from sheetdesk.grid import SheetGrid
from sheetdesk.models import ParsedFile, Sheet


def import_sheet_name(source_name: str, table_name: str) -> str:
    """Name of the sheet created for one imported table."""
    return f"{source_name}-{table_name}"


def build_import_sheets(
    files: Iterable[ParsedFile],
    new_id: Callable[[], str],
) -> list[Sheet]:
    """Create one sheet per table, in file-then-table order.

    Args:
        files: Successfully parsed files.
        new_id: Factory returning a fresh, never-reused sheet id.

    Returns:
        The new sheets.  Cells carry only ``value`` (no formula, no style).
    """
    sheets: list[Sheet] = []
    for parsed in files:
        for table in parsed.tables:
            sheets.append(
                Sheet(
                    id=new_id(),
                    name=import_sheet_name(parsed.source_name, table.name),
                    grid=SheetGrid.from_scalars(table.rows),
                )
            )
    return sheets
