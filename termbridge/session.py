# termbridge/session.py
import asyncio
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from .config import default_shell
from .protocol import ControlFrame, Resize, decode_frame
from .pty_process import PtyProcess
from .utils import DEFAULT_COLS, DEFAULT_ROWS

logger = logging.getLogger(__name__)

# which side ended the session
CLOSED_BY_CONNECTION = "connection"
CLOSED_BY_PROCESS = "process"


class TerminalSession:
    """One WebSocket connection paired with one shell running in a pty.

    A single coroutine (run) owns the process: it waits on whichever comes first,
    pty output or an inbound frame, so teardown happens in one place.
    """

    def __init__(self, connection_id: str, process: PtyProcess, cwd: Path,
                 cols: int = DEFAULT_COLS, rows: int = DEFAULT_ROWS):
        self.connection_id = connection_id
        self.process = process
        self.cwd = cwd
        self.cols = cols
        self.rows = rows
        self.created_at = datetime.now()
        self.closed_by: Optional[str] = None
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.reaper: Optional[asyncio.Future] = None

    @classmethod
    def open(cls, connection_id: str, cwd: Path, cols: int = DEFAULT_COLS, rows: int = DEFAULT_ROWS,
             env: Optional[Dict[str, str]] = None, shell: Optional[str] = None,
             term_name: str = "xterm-color") -> "TerminalSession":
        """Spawn a shell rooted at cwd. Raises SpawnFailure if it cannot be started."""
        child_env = dict(os.environ if env is None else env)
        child_env["TERM"] = term_name
        child_env["PWD"] = str(cwd)
        process = PtyProcess.spawn([shell or default_shell()], cwd, child_env, cols, rows)
        logger.info("Terminal started at: %s (id=%s, pid=%s)", cwd, connection_id, process.pid)
        return cls(connection_id, process, cwd, cols, rows)

    @property
    def closed(self) -> bool:
        return self._closed

    def handle_frame(self, text: Optional[str] = None, data: Optional[bytes] = None) -> ControlFrame:
        frame = decode_frame(text, data)
        if isinstance(frame, Resize):
            self.cols, self.rows = frame.cols, frame.rows
            try:
                self.process.resize(frame.cols, frame.rows)
            except OSError:
                # child already gone
                pass
            return frame
        try:
            self.process.write(frame.data)
        except OSError:
            pass
        return frame

    async def _send(self, ws: WebSocket, data: bytes):
        try:
            await ws.send_bytes(data)
        except Exception:
            # websocket may be closed concurrently
            pass

    async def run(self, ws: WebSocket):
        """Pump data both ways until either side goes away, then tear down."""
        loop = asyncio.get_running_loop()
        self._loop = loop
        output: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue()

        def _read_pty():
            """Called by the event loop when the master fd is readable."""
            try:
                data = self.process.read()
            except OSError:
                data = b""
            if not data:
                # EOF from child
                loop.remove_reader(self.process.fd)
                output.put_nowait(None)
                return
            output.put_nowait(data)

        loop.add_reader(self.process.fd, _read_pty)

        closed_by = CLOSED_BY_CONNECTION
        receiver = None
        pump = None
        try:
            while True:
                if receiver is None:
                    receiver = asyncio.ensure_future(ws.receive())
                if pump is None:
                    pump = asyncio.ensure_future(output.get())
                done, _ = await asyncio.wait({receiver, pump}, return_when=asyncio.FIRST_COMPLETED)

                if pump in done:
                    chunk = pump.result()
                    pump = None
                    if chunk is None:
                        closed_by = CLOSED_BY_PROCESS
                        break
                    await self._send(ws, chunk)

                if receiver in done:
                    msg = receiver.result()
                    receiver = None
                    if msg["type"] == "websocket.disconnect":
                        break
                    if msg["type"] == "websocket.receive":
                        self.handle_frame(msg.get("text"), msg.get("bytes"))
        except WebSocketDisconnect:
            pass
        finally:
            for task in (receiver, pump):
                if task is not None:
                    task.cancel()
            await self.close(ws, closed_by)

    def _log_reaped(self, fut: asyncio.Future):
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("Reaping pid=%s failed (id=%s): %s", self.process.pid, self.connection_id, exc)
        else:
            logger.debug("pid=%s exited with %s (id=%s)", self.process.pid, fut.result(), self.connection_id)

    async def close(self, ws: Optional[WebSocket] = None, closed_by: str = CLOSED_BY_CONNECTION) -> bool:
        """Tear the session down once; later calls return False and do nothing."""
        if self._closed:
            return False
        self._closed = True
        self.closed_by = closed_by

        if self._loop is not None:
            try:
                self._loop.remove_reader(self.process.fd)
            except (ValueError, OSError):
                pass

        if closed_by == CLOSED_BY_CONNECTION:
            self.process.terminate()
        self.process.close_fd()
        self.reaper = asyncio.get_running_loop().run_in_executor(None, self.process.reap)
        self.reaper.add_done_callback(self._log_reaped)

        if closed_by == CLOSED_BY_PROCESS and ws is not None:
            try:
                await ws.close()
            except Exception:
                # peer may have gone at the same moment
                pass

        logger.info("Terminal closed by %s (id=%s, pid=%s, cwd=%s)",
                    closed_by, self.connection_id, self.process.pid, self.cwd)
        return True
