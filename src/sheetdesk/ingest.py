"""Batch upload pipeline: read, classify and parse files, then merge.

Every file in a batch resolves on its own.  Unsupported extensions are
rejected before any read; read or parse failures only drop that file.
Once every file has resolved, the successes are merged into the store in
upload order with a single :meth:`WorkbookStore.import_merge` call (even
when nothing succeeded).  If the store was disposed while reads were in
flight, nothing is applied.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Literal

from sheetdesk.errors import ParseFailure, UnsupportedFileType
from sheetdesk.logging.events import (
    PARSE_FAILURE,
    READ_FAILURE,
    STALE_GENERATION,
    UNSUPPORTED_FILE_TYPE,
    EventType,
    emit_error,
    emit_info,
    emit_warning,
)
from sheetdesk.models import ParsedFile
from sheetdesk.parsers import classify_upload, parse_upload
from sheetdesk.store import WorkbookStore


@dataclass
class UploadedFile:
    """A file offered for import; ``read`` is the asynchronous byte source."""

    filename: str
    read: Callable[[], Awaitable[bytes]]

    @classmethod
    def from_bytes(cls, filename: str, data: bytes) -> UploadedFile:
        async def _read() -> bytes:
            return data

        return cls(filename=filename, read=_read)


@dataclass
class FileOutcome:
    filename: str
    status: Literal["parsed", "rejected", "failed"]
    parsed: ParsedFile | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {"filename": self.filename, "status": self.status}
        if self.parsed is not None:
            out["tables"] = [t.name for t in self.parsed.tables]
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class IngestResult:
    outcomes: list[FileOutcome] = field(default_factory=list)
    sheet_ids: list[str] = field(default_factory=list)
    applied: bool = True

    def to_dict(self) -> dict[str, object]:
        return {
            "applied": self.applied,
            "sheet_ids": list(self.sheet_ids),
            "files": [o.to_dict() for o in self.outcomes],
        }


async def _ingest_one(upload: UploadedFile, max_bytes: int) -> FileOutcome:
    try:
        classify_upload(upload.filename)
    except UnsupportedFileType as exc:
        return FileOutcome(upload.filename, "rejected", error=str(exc))

    try:
        data = await upload.read()
        if len(data) > max_bytes:
            raise ParseFailure(
                upload.filename, f"file too large (max {max_bytes // (1024 * 1024)} MB)"
            )
        parsed = parse_upload(data, upload.filename)
    except ParseFailure as exc:
        return FileOutcome(upload.filename, "failed", error=exc.reason, error_code=PARSE_FAILURE)
    except Exception as exc:
        # Per-file isolation: a broken read or parser only drops this file.
        return FileOutcome(
            upload.filename, "failed",
            error=str(exc) or type(exc).__name__, error_code=READ_FAILURE,
        )
    return FileOutcome(upload.filename, "parsed", parsed=parsed)


def _report(store: WorkbookStore, outcome: FileOutcome) -> None:
    if outcome.status == "parsed":
        store.notify("File processed successfully", f"{outcome.filename} has been loaded.")
    elif outcome.status == "rejected":
        store.notify("Unsupported file type", outcome.error or "", variant="destructive")
        emit_warning(
            EventType.import_file_rejected,
            f"Rejected {outcome.filename}",
            {"filename": outcome.filename},
            error_code=UNSUPPORTED_FILE_TYPE,
        )
    else:
        store.notify(
            "Error processing file",
            f"Failed to process {outcome.filename}. Please check the file format.",
            variant="destructive",
        )
        context = {"filename": outcome.filename, "reason": outcome.error}
        if outcome.error_code == READ_FAILURE:
            emit_error(
                EventType.import_file_failed,
                f"Failed to read {outcome.filename}: {outcome.error}",
                context,
                error_code=READ_FAILURE,
            )
        else:
            emit_warning(
                EventType.import_file_failed,
                f"Failed to parse {outcome.filename}: {outcome.error}",
                context,
                error_code=PARSE_FAILURE,
            )


async def ingest_uploads(store: WorkbookStore, uploads: list[UploadedFile]) -> IngestResult:
    """Parse a batch of uploads and merge the successes into *store*.

    Returns:
        Per-file outcomes, the ids of the sheets created, and whether the
        results were applied (False when the store was disposed meanwhile).
    """
    token = store.begin_async()
    max_bytes = int(store.config.get("max_upload_bytes", 50 * 1024 * 1024))
    emit_info(
        EventType.import_started,
        f"Processing {len(uploads)} file(s)",
        {"filenames": [u.filename for u in uploads]},
    )

    outcomes = list(await asyncio.gather(*(_ingest_one(u, max_bytes) for u in uploads)))

    if not store.is_current(token):
        emit_warning(
            EventType.import_discarded,
            "Store disposed before import finished; results dropped",
            {"filenames": [o.filename for o in outcomes]},
            error_code=STALE_GENERATION,
        )
        return IngestResult(outcomes=outcomes, applied=False)

    for outcome in outcomes:
        _report(store, outcome)
    sheet_ids = store.import_merge([o.parsed for o in outcomes if o.parsed is not None])
    return IngestResult(outcomes=outcomes, sheet_ids=sheet_ids)
