"""Sheets, parsed import payloads and user-facing notifications."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from sheetdesk.grid import Scalar, SheetGrid


class Sheet(BaseModel):
    """One named grid within a collection.  ``id`` is never reused."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    id: str
    name: str
    grid: SheetGrid = Field(default_factory=SheetGrid)


class ParsedTable(BaseModel):
    name: str
    rows: list[list[Scalar]] = []


class ParsedFile(BaseModel):
    """Output of a file-parsing collaborator: named tables of scalars."""

    source_name: str
    tables: list[ParsedTable] = []


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class Notification(BaseModel):
    """A discrete, user-facing notice (success or failure)."""

    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"
    ts: str = Field(default_factory=_utc_now)
