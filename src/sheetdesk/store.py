"""The editor store: sheets, selection/edit state and notifications.

One :class:`WorkbookStore` is constructed per editor session and passed to
every operation.  User-interface events are expressed as commands
(:class:`Select`, :class:`BeginEdit`, :class:`Commit`, ...) and applied
synchronously through :meth:`WorkbookStore.dispatch`, so the state machine
does not depend on any particular front end.

Asynchronous work (file ingestion, assistant replies) takes a generation
token with :meth:`WorkbookStore.begin_async` and checks it with
:meth:`WorkbookStore.is_current` before applying results; a disposed store
rejects every outstanding token.
"""

from __future__ import annotations

from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from sheetdesk.addressing import make_addr
from sheetdesk.collection import SheetCollection
from sheetdesk.config import load_config
from sheetdesk.editing import Editing, SelectionEditingController
from sheetdesk.errors import NoActiveEditSession
from sheetdesk.logging.events import EventType, emit_info
from sheetdesk.models import Notification, ParsedFile, Sheet


# ────────────────────────────────────────────────────────────────
# Commands
# ────────────────────────────────────────────────────────────────


class Select(BaseModel):
    type: Literal["select"] = "select"
    row: int = Field(ge=0)
    col: int = Field(ge=0)


class BeginEdit(BaseModel):
    type: Literal["begin_edit"] = "begin_edit"
    row: int = Field(ge=0)
    col: int = Field(ge=0)


class UpdateText(BaseModel):
    type: Literal["update_text"] = "update_text"
    text: str


class Commit(BaseModel):
    type: Literal["commit"] = "commit"


class Cancel(BaseModel):
    type: Literal["cancel"] = "cancel"


class AddSheet(BaseModel):
    type: Literal["add_sheet"] = "add_sheet"
    name: str | None = None


class SetActive(BaseModel):
    type: Literal["set_active"] = "set_active"
    sheet_id: str


class ImportMerge(BaseModel):
    type: Literal["import_merge"] = "import_merge"
    files: list[ParsedFile] = []


Command = Annotated[
    Union[Select, BeginEdit, UpdateText, Commit, Cancel, AddSheet, SetActive, ImportMerge],
    Field(discriminator="type"),
]

_COMMAND_ADAPTER: TypeAdapter[Command] = TypeAdapter(Command)


def parse_command(data: Any) -> Command:
    """Validate a JSON-like mapping into a command.

    Raises:
        pydantic.ValidationError: If *data* is not a known command.
    """
    return _COMMAND_ADAPTER.validate_python(data)


# ────────────────────────────────────────────────────────────────
# Store
# ────────────────────────────────────────────────────────────────


class WorkbookStore:
    """Explicitly owned editor state.

    Parameters
    ----------
    config : dict | None
        Merged configuration (see :func:`sheetdesk.config.load_config`).
        Defaults are used when omitted.
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config: dict[str, Any] = config if config is not None else load_config()
        self.collection = SheetCollection()
        self.controller = SelectionEditingController()
        self.notifications: list[Notification] = []
        self._generation = 0
        self._disposed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def generation(self) -> int:
        return self._generation

    def begin_async(self) -> int:
        """Token for asynchronous work started now."""
        self._check_live()
        return self._generation

    def is_current(self, token: int) -> bool:
        """True if results for *token* may still be applied."""
        return not self._disposed and token == self._generation

    def dispose(self) -> None:
        """Tear the store down; outstanding async results are dropped."""
        if self._disposed:
            return
        self._disposed = True
        self._generation += 1
        self.controller.clear()
        emit_info(EventType.store_disposed, "Store disposed", {"generation": self._generation})

    def _check_live(self) -> None:
        if self._disposed:
            raise ValueError("Store has been disposed")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notify(
        self,
        title: str,
        description: str = "",
        variant: Literal["default", "destructive"] = "default",
    ) -> Notification:
        notice = Notification(title=title, description=description, variant=variant)
        self.notifications.append(notice)
        return notice

    def drain_notifications(self) -> list[Notification]:
        """Return and clear pending notifications."""
        pending, self.notifications = self.notifications, []
        return pending

    # ------------------------------------------------------------------
    # Sheet operations
    # ------------------------------------------------------------------

    @property
    def active_sheet(self) -> Sheet:
        return self.collection.active

    def add_sheet(self, name: str | None = None) -> str:
        self._check_live()
        sheet_id = self.collection.add_sheet(name)
        self.controller.clear()
        sheet = self.collection.get(sheet_id)
        self.notify("New sheet added", f"Created {sheet.name}")
        emit_info(
            EventType.sheet_added,
            f"Added sheet {sheet.name!r}",
            {"sheet_id": sheet_id, "name": sheet.name},
        )
        return sheet_id

    def set_active(self, sheet_id: str) -> Sheet:
        """Activate *sheet_id*; selection and any edit session are cleared."""
        self._check_live()
        sheet = self.collection.set_active(sheet_id)
        self.controller.clear()
        emit_info(EventType.sheet_activated, f"Activated sheet {sheet.name!r}", {"sheet_id": sheet_id})
        return sheet

    def import_merge(self, files: Iterable[ParsedFile]) -> list[str]:
        """Append a sheet per parsed table; see :meth:`SheetCollection.import_merge`."""
        self._check_live()
        previous_active = self.collection.active_sheet_id
        new_ids = self.collection.import_merge(
            list(files),
            activate_first=bool(self.config.get("activate_imported_sheet", False)),
        )
        if self.collection.active_sheet_id != previous_active:
            self.controller.clear()
        if new_ids:
            self.notify("Data imported successfully", f"Added {len(new_ids)} new sheet(s).")
        emit_info(
            EventType.import_completed,
            f"Imported {len(new_ids)} sheet(s)",
            {"sheet_ids": new_ids},
        )
        return new_ids

    # ------------------------------------------------------------------
    # Selection / editing
    # ------------------------------------------------------------------

    def select(self, row: int, col: int) -> None:
        self._check_live()
        self.controller.select(row, col)

    def begin_edit(self, row: int, col: int) -> Editing:
        self._check_live()
        return self.controller.begin_edit(row, col, self.active_sheet.grid)

    def update_text(self, text: str) -> Editing:
        self._check_live()
        return self.controller.update_text(text)

    def commit(self) -> Sheet:
        """Commit the open edit session into the active sheet."""
        self._check_live()
        session = self.controller.editing
        if session is None:
            raise NoActiveEditSession()
        sheet = self.active_sheet
        new_grid = self.controller.commit(sheet.grid)
        updated = self.collection.replace_grid(sheet.id, new_grid)
        addr = make_addr(session.row, session.col)
        self.notify("Cell updated", f"Cell {addr} updated.")
        emit_info(
            EventType.cell_committed,
            f"Committed {addr}",
            {"sheet_id": sheet.id, "addr": addr},
        )
        return updated

    def cancel(self) -> None:
        self._check_live()
        session = self.controller.editing
        self.controller.cancel()
        if session is not None:
            emit_info(
                EventType.edit_cancelled,
                "Edit cancelled",
                {"sheet_id": self.collection.active_sheet_id, "addr": make_addr(session.row, session.col)},
            )

    def commit_cell_edit(self, row: int, col: int, text: str) -> Sheet:
        """Commit *text* into (row, col) of the active sheet.

        Requires an edit session opened on (row, col) with :meth:`begin_edit`.
        """
        session = self.controller.editing
        if session is None or (session.row, session.col) != (row, col):
            raise NoActiveEditSession(
                f"No edit session open on {make_addr(row, col)}"
            )
        self.update_text(text)
        return self.commit()

    # ------------------------------------------------------------------
    # Command dispatch
    # ------------------------------------------------------------------

    def dispatch(self, command: Command) -> dict[str, Any]:
        """Apply one command synchronously and return a summary dict."""
        if isinstance(command, Select):
            self.select(command.row, command.col)
        elif isinstance(command, BeginEdit):
            self.begin_edit(command.row, command.col)
        elif isinstance(command, UpdateText):
            self.update_text(command.text)
        elif isinstance(command, Commit):
            self.commit()
        elif isinstance(command, Cancel):
            self.cancel()
        elif isinstance(command, AddSheet):
            return {"ok": True, "sheet_id": self.add_sheet(command.name), **self.state_summary()}
        elif isinstance(command, SetActive):
            self.set_active(command.sheet_id)
        elif isinstance(command, ImportMerge):
            return {"ok": True, "sheet_ids": self.import_merge(command.files), **self.state_summary()}
        else:
            raise ValueError(f"Unknown command: {command!r}")
        return {"ok": True, **self.state_summary()}

    def state_summary(self) -> dict[str, Any]:
        """Active sheet id and editor state, as plain data."""
        return {
            "active_sheet_id": self.collection.active_sheet_id,
            "editor": self.controller.state.model_dump(),
        }
