"""Error types raised by the sheet store, import pipeline and assistant."""

from __future__ import annotations


class SheetdeskError(Exception):
    """Base class for all sheetdesk errors."""

    code = "sheetdesk_error"


class UnsupportedFileType(SheetdeskError):
    """Upload whose extension is not one of the accepted formats.

    Attributes:
        filename: Name of the rejected file.
    """

    code = "unsupported_file_type"

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(
            f"File {filename} is not supported. "
            "Please use Excel (.xlsx, .xls) or CSV files."
        )


class ParseFailure(SheetdeskError):
    """A file with an accepted extension whose bytes could not be decoded.

    Attributes:
        filename: Name of the failing file.
        reason: Human-readable description of what went wrong.
    """

    code = "parse_failure"

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"Failed to process {filename}: {reason}")


class UnknownSheet(SheetdeskError):
    """Reference to a sheet id that is not in the collection."""

    code = "unknown_sheet"

    def __init__(self, sheet_id: str, available: list[str] | None = None) -> None:
        self.sheet_id = sheet_id
        self.available = available or []
        msg = f"Sheet {sheet_id!r} not found"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg)


class NoActiveEditSession(SheetdeskError):
    """Edit command issued while no cell (or a different cell) is being edited."""

    code = "no_active_edit_session"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "No cell is being edited")


class AssistantBusy(SheetdeskError):
    """A message was sent while the previous reply is still pending."""

    code = "assistant_busy"

    def __init__(self) -> None:
        super().__init__("The assistant is still answering the previous message")
