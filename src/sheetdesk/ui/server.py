"""FastAPI server for the sheetdesk browser UI.

Routes are thin wrappers over the shared :class:`EditorService`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Body, FastAPI, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field

from sheetdesk.errors import AssistantBusy, NoActiveEditSession, SheetdeskError, UnknownSheet
from sheetdesk.ingest import UploadedFile
from sheetdesk.store import parse_command
from sheetdesk.ui.service import EditorService

# The singleton service is set at startup by ``create_app()``.
_service: EditorService | None = None


def create_app(directory: Path | None = None) -> FastAPI:
    """Create the FastAPI application for an editor session.

    Args:
        directory: Directory holding ``sheetdesk.yaml`` and ``logs/``.

    Returns:
        Configured FastAPI instance.
    """
    global _service
    _service = EditorService(directory)
    service = _service

    from sheetdesk import __version__

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        service.close()

    app = FastAPI(title="sheetdesk", version=__version__, lifespan=lifespan)

    # Register routes
    app.include_router(_api_router())

    return app


def _svc() -> EditorService:
    """Get the singleton service, raising if not initialised."""
    if _service is None:
        raise HTTPException(500, "Service not initialised")
    return _service


def _http_error(exc: Exception) -> HTTPException:
    """Status code for a service-layer error."""
    if isinstance(exc, UnknownSheet):
        return HTTPException(404, str(exc))
    if isinstance(exc, (NoActiveEditSession, AssistantBusy)):
        return HTTPException(409, str(exc))
    return HTTPException(400, str(exc))


# ---------------------------------------------------------------------------
# Request/response models
# ---------------------------------------------------------------------------


class AddSheetRequest(BaseModel):
    name: str | None = None


class SetActiveRequest(BaseModel):
    sheet_id: str


class CellRequest(BaseModel):
    row: int = Field(ge=0)
    col: int = Field(ge=0)


class TextRequest(BaseModel):
    text: str


class CommitRequest(BaseModel):
    text: str | None = None


class MessageRequest(BaseModel):
    text: str


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


def _api_router() -> APIRouter:
    router = APIRouter(prefix="/api")

    # -- State --

    @router.get("/state")
    async def get_state() -> dict[str, Any]:
        return _svc().get_state()

    # -- Sheets --

    @router.get("/sheets")
    async def list_sheets() -> list[dict[str, Any]]:
        return _svc().list_sheets()

    @router.post("/sheets")
    async def add_sheet(req: AddSheetRequest | None = None) -> dict[str, Any]:
        try:
            return _svc().add_sheet(req.name if req else None)
        except ValueError as exc:
            raise _http_error(exc)

    @router.post("/sheets/active")
    async def set_active(req: SetActiveRequest) -> dict[str, Any]:
        try:
            return _svc().set_active(req.sheet_id)
        except (SheetdeskError, ValueError) as exc:
            raise _http_error(exc)

    @router.get("/sheet")
    async def get_sheet(
        sheet_id: str | None = Query(None),
        r0: int = Query(0, ge=0),
        c0: int = Query(0, ge=0),
        rows: int = Query(50, ge=1, le=500),
        cols: int = Query(26, ge=1, le=200),
    ) -> dict[str, Any]:
        try:
            return _svc().get_sheet_viewport(sheet_id, r0, c0, rows, cols)
        except (SheetdeskError, ValueError) as exc:
            raise _http_error(exc)

    # -- Selection / editing --

    @router.post("/select")
    async def select(req: CellRequest) -> dict[str, Any]:
        try:
            return _svc().select(req.row, req.col)
        except ValueError as exc:
            raise _http_error(exc)

    @router.post("/edit/begin")
    async def begin_edit(req: CellRequest) -> dict[str, Any]:
        try:
            return _svc().begin_edit(req.row, req.col)
        except ValueError as exc:
            raise _http_error(exc)

    @router.post("/edit/text")
    async def update_text(req: TextRequest) -> dict[str, Any]:
        try:
            return _svc().update_text(req.text)
        except (SheetdeskError, ValueError) as exc:
            raise _http_error(exc)

    @router.post("/edit/commit")
    async def commit_edit(req: CommitRequest | None = None) -> dict[str, Any]:
        try:
            return _svc().commit_edit(req.text if req else None)
        except (SheetdeskError, ValueError) as exc:
            raise _http_error(exc)

    @router.post("/edit/cancel")
    async def cancel_edit() -> dict[str, Any]:
        try:
            return _svc().cancel_edit()
        except ValueError as exc:
            raise _http_error(exc)

    @router.post("/commands")
    async def dispatch(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        try:
            return _svc().dispatch(parse_command(payload))
        except (SheetdeskError, ValueError) as exc:
            raise _http_error(exc)

    # -- Import --

    @router.post("/import")
    async def import_files(
        files: list[UploadFile] = File(...),
        from_chat: bool = Form(False),
    ) -> dict[str, Any]:
        uploads = [UploadedFile(filename=f.filename or "", read=f.read) for f in files]
        try:
            return await _svc().import_uploads(uploads, from_chat=from_chat)
        except ValueError as exc:
            raise _http_error(exc)

    # -- Notifications --

    @router.get("/notifications")
    async def get_notifications(drain: bool = Query(True)) -> list[dict[str, Any]]:
        return _svc().get_notifications(drain=drain)

    # -- Assistant --

    @router.get("/assistant/messages")
    async def get_messages() -> dict[str, Any]:
        return _svc().get_messages()

    @router.post("/assistant/messages")
    async def send_message(req: MessageRequest) -> dict[str, Any]:
        try:
            return await _svc().send_message(req.text)
        except (SheetdeskError, ValueError) as exc:
            raise _http_error(exc)

    # -- Event logs --

    @router.get("/events")
    async def get_events(
        level: str | None = Query(None),
        event_type: str | None = Query(None),
        sheet_id: str | None = Query(None),
        limit: int = Query(200, ge=1, le=2000),
    ) -> list[dict[str, Any]]:
        return _svc().tail_events(
            level=level, event_type=event_type, sheet_id=sheet_id, limit=limit
        )

    return router
