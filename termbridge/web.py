# termbridge/web.py
import logging
import uuid
from typing import Optional

import httpx
import uvicorn
from fastapi import APIRouter, FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from .config import load_settings
from .context import AppContext
from .files import FileOperations, NotFound
from .judge0 import Judge0Error, Judge0NotConfigured
from .pty_process import SpawnFailure
from .sandbox import (DEFAULT_PROJECT, DirectoryNotFound, OutsideSandbox, ProjectNotFound,
                      SandboxError, require_directory)
from .session import TerminalSession
from .utils import DEFAULT_COLS, DEFAULT_ROWS, configure_logging, parse_dimension

logger = logging.getLogger(__name__)

TERMINAL_PATH = "/term"
# WebSocket close code for "internal error"
WS_INTERNAL_ERROR = 1011

router = APIRouter()


class PathBody(BaseModel):
    path: Optional[str] = None
    project: Optional[str] = None


class FileBody(PathBody):
    content: Optional[str] = None


class Judge0Body(BaseModel):
    source: Optional[str] = None
    language_id: Optional[int] = None
    stdin: Optional[str] = None


def _context(conn) -> AppContext:
    return conn.app.state.context


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _file_error(route: str, e: Exception) -> JSONResponse:
    if isinstance(e, NotFound):
        return _error(404, str(e))
    if isinstance(e, OutsideSandbox):
        logger.warning("%s rejected: path outside workspace", route)
        return _error(400, str(e))
    if isinstance(e, (ProjectNotFound, DirectoryNotFound)):
        return _error(404, str(e))
    if isinstance(e, SandboxError):
        return _error(400, str(e))
    logger.error("%s error: %s", route, e)
    return _error(400, getattr(e, "strerror", None) or str(e))


# ---------------- File APIs ----------------

@router.get("/api/files")
async def list_files(request: Request, path: str = ".", project: Optional[str] = None):
    try:
        return FileOperations(_context(request).workspace).list_dir(path, project)
    except (SandboxError, OSError) as e:
        return _file_error("GET /api/files", e)


@router.get("/api/file")
async def read_file(request: Request, path: Optional[str] = None, project: Optional[str] = None):
    if not path:
        return _error(400, "path required")
    try:
        return FileOperations(_context(request).workspace).read_file(path, project)
    except (SandboxError, OSError, UnicodeDecodeError) as e:
        return _file_error("GET /api/file", e)


@router.post("/api/file")
async def write_file(request: Request, body: FileBody):
    if not body.path:
        return _error(400, "path required")
    try:
        return FileOperations(_context(request).workspace).write_file(body.path, body.content, body.project)
    except (SandboxError, OSError) as e:
        return _file_error("POST /api/file", e)


@router.post("/api/mkdir")
async def make_dir(request: Request, body: PathBody):
    if not body.path:
        return _error(400, "path required")
    try:
        return FileOperations(_context(request).workspace).make_dir(body.path, body.project)
    except (SandboxError, OSError) as e:
        return _file_error("POST /api/mkdir", e)


@router.post("/api/delete")
async def delete_path(request: Request, body: PathBody):
    if not body.path:
        return _error(400, "path required")
    try:
        return FileOperations(_context(request).workspace).delete(body.path, body.project)
    except (SandboxError, OSError) as e:
        return _file_error("POST /api/delete", e)


@router.get("/api/root")
async def workspace_root(request: Request):
    return {"root": str(_context(request).workspace.root)}


# ---------------- Judge0 ----------------

@router.post("/api/run-judge0")
async def run_judge0(request: Request, body: Judge0Body):
    if not body.source or body.language_id is None:
        return _error(400, "source and language_id required")
    client = _context(request).judge0
    try:
        return await client.run(body.source, body.language_id, body.stdin)
    except Judge0NotConfigured as e:
        return _error(501, str(e))
    except Judge0Error as e:
        return _error(502, str(e), details=e.details)
    except httpx.HTTPError as e:
        logger.error("/api/run-judge0 error: %s", e)
        return _error(500, str(e) or type(e).__name__)


# ---------------- Terminal WS ----------------

async def _reject(ws: WebSocket, reason: str, code: int = 1000):
    """Send one diagnostic frame and hang up."""
    try:
        await ws.send_text(reason)
        await ws.close(code=code)
    except Exception:
        pass


@router.websocket(TERMINAL_PATH)
async def terminal_ws(ws: WebSocket):
    """
    Open a shell in the workspace directory named by the `path` query parameter
    (and `project`, when project scoping is on) and bridge it to this websocket.
    Text frames of the form {"type":"resize","cols":N,"rows":M} resize the pty;
    every other frame is keyboard input.
    """
    ctx = _context(ws)
    await ws.accept()
    connection_id = uuid.uuid4().hex
    params = ws.query_params
    rel_path = params.get("path") or "."
    project = params.get("project") or DEFAULT_PROJECT
    cols = parse_dimension(params.get("cols"), DEFAULT_COLS)
    rows = parse_dimension(params.get("rows"), DEFAULT_ROWS)

    try:
        cwd = require_directory(ctx.workspace.resolve(rel_path, project), rel_path)
        session = TerminalSession.open(
            connection_id, cwd, cols=cols, rows=rows,
            shell=ctx.settings.shell, term_name=ctx.settings.term_name,
        )
    except SandboxError as e:
        logger.warning("Terminal rejected (id=%s): %s", connection_id, type(e).__name__)
        await _reject(ws, str(e))
        return
    except SpawnFailure as e:
        logger.error("Terminal spawn failed (id=%s): %s", connection_id, e)
        await _reject(ws, f"Failed to start terminal: {e}", code=WS_INTERNAL_ERROR)
        return

    ctx.registry.add(session)
    try:
        await session.run(ws)
    finally:
        ctx.registry.remove(connection_id)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    if context is None:
        context = AppContext.from_settings(load_settings())
    app = FastAPI(title="termbridge")
    app.state.context = context
    app.include_router(router)
    static_dir = context.settings.static_dir
    if static_dir is not None and static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    return app


def run():
    settings = load_settings()
    configure_logging(settings.logs_dir)
    context = AppContext.from_settings(settings)
    logger.info("Server running on http://%s:%s", settings.host, settings.port)
    logger.info("Workspace root: %s", context.workspace.root)
    uvicorn.run(create_app(context), host=settings.host, port=settings.port)
