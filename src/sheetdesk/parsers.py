"""File-parsing collaborators for uploads.

Delimited text (``.csv``/``.tsv``) is split line by line with no quoting
rules: a field is trimmed, loses at most one leading and one trailing
double quote, and becomes a number when it starts with a numeric literal.

Binary spreadsheets (``.xlsx``/``.xls``) are not decoded.  The placeholder
parser answers every such upload with a fixed demo table so the rest of the
import path can be exercised end to end.
"""

from __future__ import annotations

import math
import re
from pathlib import PurePath
from typing import Literal

from sheetdesk.errors import ParseFailure, UnsupportedFileType
from sheetdesk.grid import Scalar
from sheetdesk.models import ParsedFile, ParsedTable

DELIMITED_EXTENSIONS = (".csv", ".tsv")
SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")
ACCEPTED_EXTENSIONS = DELIMITED_EXTENSIONS + SPREADSHEET_EXTENSIONS

DEFAULT_TABLE_NAME = "Sheet1"

# Leading numeric literal, as accepted by a browser's parseFloat().
_NUMERIC_PREFIX_RE = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)",
    re.ASCII,
)

SAMPLE_WORKBOOK_ROWS: list[list[Scalar]] = [
    ["Name", "Age", "City", "Salary"],
    ["John Doe", 30.0, "New York", 50000.0],
    ["Jane Smith", 25.0, "Los Angeles", 60000.0],
    ["Bob Johnson", 35.0, "Chicago", 55000.0],
    ["Alice Brown", 28.0, "Houston", 52000.0],
]


# ────────────────────────────────────────────────────────────────
# Field coercion
# ────────────────────────────────────────────────────────────────


def parse_number_prefix(text: str) -> float:
    """Parse the numeric literal at the start of *text*; NaN if there is none.

    ``"30"`` -> 30.0, ``"07"`` -> 7.0, ``"12abc"`` -> 12.0, ``"1e3"`` ->
    1000.0, ``"Infinity"`` -> inf, ``"NaN"`` -> nan, ``""`` -> nan.
    """
    m = _NUMERIC_PREFIX_RE.match(text.lstrip())
    if not m:
        return math.nan
    token = m.group(0)
    if token.endswith("Infinity"):
        return -math.inf if token.startswith("-") else math.inf
    return float(token)


def strip_quotes(text: str) -> str:
    """Remove at most one leading and one trailing ``"``, each independently."""
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text


def coerce_field(raw: str) -> Scalar:
    """Convert one raw delimited field into a scalar.

    Quoting does not protect a field from numeric coercion: ``'"07"'``
    becomes ``7.0``.
    """
    text = strip_quotes(raw.strip())
    num = parse_number_prefix(text)
    if math.isnan(num):
        return text
    return num


def delimiter_for(filename: str) -> str:
    """Tab for ``.tsv`` files, comma otherwise."""
    return "\t" if filename.lower().endswith(".tsv") else ","


# ────────────────────────────────────────────────────────────────
# Parsers
# ────────────────────────────────────────────────────────────────


def parse_delimited_text(text: str, delimiter: str = ",") -> list[list[Scalar]]:
    """Split *text* into coerced rows; lines blank after trimming are dropped."""
    rows: list[list[Scalar]] = []
    for line in text.split("\n"):
        if not line.strip():
            continue
        rows.append([coerce_field(field) for field in line.split(delimiter)])
    return rows


def parse_delimited(data: bytes, filename: str) -> ParsedFile:
    """Parse CSV/TSV bytes into a single-table :class:`ParsedFile`.

    Raises:
        ParseFailure: If the bytes are not valid UTF-8 text.
    """
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseFailure(filename, f"not valid UTF-8 text ({exc.reason})") from exc
    rows = parse_delimited_text(text, delimiter_for(filename))
    return ParsedFile(
        source_name=filename,
        tables=[ParsedTable(name=DEFAULT_TABLE_NAME, rows=rows)],
    )


def parse_spreadsheet_binary(data: bytes, filename: str) -> ParsedFile:
    """Placeholder for ``.xlsx``/``.xls`` uploads.

    The bytes are not decoded; every non-empty upload yields the fixed
    demo table.
    """
    if not data:
        raise ParseFailure(filename, "file is empty")
    return ParsedFile(
        source_name=filename,
        tables=[
            ParsedTable(
                name=DEFAULT_TABLE_NAME,
                rows=[list(r) for r in SAMPLE_WORKBOOK_ROWS],
            )
        ],
    )


def classify_upload(filename: str) -> Literal["delimited", "spreadsheet"]:
    """Return the parser family for *filename*.

    Raises:
        UnsupportedFileType: If the extension is not accepted.
    """
    suffix = PurePath(filename).suffix.lower()
    if suffix in DELIMITED_EXTENSIONS:
        return "delimited"
    if suffix in SPREADSHEET_EXTENSIONS:
        return "spreadsheet"
    raise UnsupportedFileType(filename)


def parse_upload(data: bytes, filename: str) -> ParsedFile:
    """Dispatch *data* to the parser matching the file extension."""
    if classify_upload(filename) == "delimited":
        return parse_delimited(data, filename)
    return parse_spreadsheet_binary(data, filename)
