"""Column letter labels and A1-style cell addresses.

Column labels are bijective base-26 numerals: ``A..Z`` then ``AA..AZ``,
``BA..`` and so on.  Rows in addresses are 1-based.
"""

from __future__ import annotations

import re

_ADDR_RE = re.compile(r"^([A-Z]+)([1-9]\d*)$")
_LABEL_RE = re.compile(r"^[A-Z]+$")


def column_label(index: int) -> str:
    """Convert a 0-based column index to its letter label.  0=A, 25=Z, 26=AA."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}")
    label = ""
    while index >= 0:
        label = chr(65 + index % 26) + label
        # The -1 keeps the mapping bijective ("A" vs "AA").
        index = index // 26 - 1
    return label


def column_index(label: str) -> int:
    """Convert column letter(s) to a 0-based index.  A=0, Z=25, AA=26."""
    letters = label.upper()
    if not _LABEL_RE.match(letters):
        raise ValueError(f"Invalid column label: {label!r}")
    idx = 0
    for ch in letters:
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def make_addr(row: int, col: int) -> str:
    """Build a cell address from 0-based row/col.  (0, 0) -> 'A1'."""
    if row < 0:
        raise ValueError(f"Row index must be >= 0, got {row}")
    return f"{column_label(col)}{row + 1}"


def parse_addr(addr: str) -> tuple[int, int]:
    """Parse 'A1' -> (row_0based, col_0based).

    Raises ValueError on bad address.
    """
    m = _ADDR_RE.match(addr.strip().upper())
    if not m:
        raise ValueError(f"Invalid cell address: {addr!r}")
    return int(m.group(2)) - 1, column_index(m.group(1))
