import json
import logging
import secrets
from typing import Any, Literal

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field, ValidationError

from .config import settings
from .drag import DragSource
from .models import Metadata
from .registry import BlockRegistry, UnknownBlockTypeError
from .session import EditorSession
from .storage import build_save_target

logger = logging.getLogger(__name__)

app = FastAPI(title="Newsletter Studio")

registry = BlockRegistry.default()

# Session store: maps session id -> live editor session, least recently used first
_sessions: dict[str, EditorSession] = {}


class SessionNotFound(KeyError):
    pass


def _get_session(session_id: str) -> EditorSession:
    session = _sessions.pop(session_id, None)
    if session is None:
        raise SessionNotFound(session_id)
    _sessions[session_id] = session
    return session


def _evict_sessions(keep: int) -> None:
    while len(_sessions) > keep:
        session_id = next(iter(_sessions))
        del _sessions[session_id]
        logger.info(f"Evicted idle session {session_id}")


def _state(session_id: str, session: EditorSession) -> dict:
    return {
        "session_id": session_id,
        "document": session.document.model_dump(mode="json"),
        "selected_id": session.selected_id,
        "has_changes": session.has_changes,
        "drag_phase": session.drag_phase.value,
    }


@app.exception_handler(SessionNotFound)
async def session_not_found(request: Request, exc: SessionNotFound):
    return JSONResponse(status_code=404, content={"error": "Session not found"})


@app.exception_handler(UnknownBlockTypeError)
async def unknown_block_type(request: Request, exc: UnknownBlockTypeError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(ValidationError)
async def invalid_payload(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"error": "Invalid payload", "detail": json.loads(exc.json())})


@app.get("/health")
async def health():
    return {"status": "ok", "sessions": len(_sessions)}


@app.get("/api/palette")
async def palette():
    return {
        group: [d.model_dump(include={"type", "label", "description", "icon"}) for d in definitions]
        for group, definitions in registry.palette().items()
    }


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    content: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


@app.post("/api/sessions", status_code=201)
async def create_session(req: CreateSessionRequest):
    metadata = Metadata.model_validate(req.metadata)
    session = EditorSession.from_schema(req.content, metadata, registry=registry, config=settings)
    session_id = secrets.token_urlsafe(16)
    _evict_sessions(settings.max_sessions - 1)
    _sessions[session_id] = session
    logger.info(f"Opened session {session_id} with {len(session.document.blocks)} blocks")
    return _state(session_id, session)


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str):
    return _state(session_id, _get_session(session_id))


@app.delete("/api/sessions/{session_id}")
async def close_session(session_id: str):
    _get_session(session_id)
    del _sessions[session_id]
    logger.info(f"Closed session {session_id}")
    return {"ok": True}


# ---------------------------------------------------------------------------
# Block commands
# ---------------------------------------------------------------------------

class AddBlockRequest(BaseModel):
    type: str


class ContentRequest(BaseModel):
    content: dict[str, Any]


class StyleRequest(BaseModel):
    style: dict[str, Any]


class MoveRequest(BaseModel):
    direction: Literal["up", "down"]


class ReorderRequest(BaseModel):
    target_id: str


@app.post("/api/sessions/{session_id}/blocks")
async def add_block(session_id: str, req: AddBlockRequest):
    session = _get_session(session_id)
    session.add(req.type)
    return _state(session_id, session)


@app.put("/api/sessions/{session_id}/blocks/{block_id}/content")
async def update_block(session_id: str, block_id: str, req: ContentRequest):
    session = _get_session(session_id)
    session.update(block_id, req.content)
    return _state(session_id, session)


@app.patch("/api/sessions/{session_id}/blocks/{block_id}/style")
async def update_block_style(session_id: str, block_id: str, req: StyleRequest):
    session = _get_session(session_id)
    session.update_style(block_id, req.style)
    return _state(session_id, session)


@app.delete("/api/sessions/{session_id}/blocks/{block_id}")
async def delete_block(session_id: str, block_id: str):
    session = _get_session(session_id)
    session.delete(block_id)
    return _state(session_id, session)


@app.post("/api/sessions/{session_id}/blocks/{block_id}/duplicate")
async def duplicate_block(session_id: str, block_id: str):
    session = _get_session(session_id)
    session.duplicate(block_id)
    return _state(session_id, session)


@app.post("/api/sessions/{session_id}/blocks/{block_id}/move")
async def move_block(session_id: str, block_id: str, req: MoveRequest):
    session = _get_session(session_id)
    session.move(block_id, req.direction)
    return _state(session_id, session)


@app.post("/api/sessions/{session_id}/blocks/{block_id}/reorder")
async def reorder_block(session_id: str, block_id: str, req: ReorderRequest):
    session = _get_session(session_id)
    session.reorder(block_id, req.target_id)
    return _state(session_id, session)


@app.patch("/api/sessions/{session_id}/global-styles")
async def update_global_styles(session_id: str, req: dict[str, Any]):
    session = _get_session(session_id)
    session.update_global_styles(req)
    return _state(session_id, session)


class SelectRequest(BaseModel):
    block_id: str | None = None


@app.post("/api/sessions/{session_id}/select")
async def select_block(session_id: str, req: SelectRequest):
    session = _get_session(session_id)
    if req.block_id is None:
        session.deselect()
    else:
        session.select(req.block_id)
    return _state(session_id, session)


@app.post("/api/sessions/{session_id}/revert")
async def revert(session_id: str):
    session = _get_session(session_id)
    session.revert()
    return _state(session_id, session)


# ---------------------------------------------------------------------------
# Drag and drop
# ---------------------------------------------------------------------------

class DragStartRequest(BaseModel):
    kind: Literal["block", "palette"]
    ref: str
    x: float
    y: float


class DragMoveRequest(BaseModel):
    x: float
    y: float


class DragEndRequest(BaseModel):
    target: str | None = None


@app.post("/api/sessions/{session_id}/drag/start")
async def drag_start(session_id: str, req: DragStartRequest):
    session = _get_session(session_id)
    session.drag_start(DragSource(kind=req.kind, ref=req.ref), req.x, req.y)
    return _state(session_id, session)


@app.post("/api/sessions/{session_id}/drag/move")
async def drag_move(session_id: str, req: DragMoveRequest):
    session = _get_session(session_id)
    session.drag_move(req.x, req.y)
    return _state(session_id, session)


@app.post("/api/sessions/{session_id}/drag/end")
async def drag_end(session_id: str, req: DragEndRequest):
    session = _get_session(session_id)
    session.drag_end(req.target)
    return _state(session_id, session)


@app.post("/api/sessions/{session_id}/drag/cancel")
async def drag_cancel(session_id: str):
    session = _get_session(session_id)
    session.drag_cancel()
    return _state(session_id, session)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@app.get("/api/sessions/{session_id}/preview", response_class=HTMLResponse)
async def preview(session_id: str):
    return HTMLResponse(_get_session(session_id).preview())


@app.get("/api/sessions/{session_id}/export", response_class=HTMLResponse)
async def export_html(session_id: str):
    session = _get_session(session_id)
    metadata = session.document.metadata
    filename = f"newsletter-{metadata.sequence_number}.html"
    return HTMLResponse(
        session.compile(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/sessions/{session_id}/schema")
async def export_schema(session_id: str):
    return _get_session(session_id).schema().model_dump(mode="json")


@app.post("/api/sessions/{session_id}/save")
async def save(session_id: str):
    session = _get_session(session_id)
    result = await session.save(build_save_target(settings))
    if not result.ok:
        return JSONResponse(status_code=502, content=result.model_dump())
    return result.model_dump()
