# termbridge/pty_process.py
import errno
import fcntl
import logging
import os
import pty
import shutil
import signal
import struct
import termios
from pathlib import Path
from typing import Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)

READ_SIZE = 4096
# terminal hang-up, what closing a real terminal window sends
TERMINATE_SIGNAL = signal.SIGHUP
REAP_TIMEOUT = 5.0


class SpawnFailure(Exception):
    pass


def _set_winsize(fd: int, cols: int, rows: int):
    # TIOCSWINSZ expects (rows, cols, xpix, ypix)
    winsize = struct.pack("HHHH", rows, cols, 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


class PtyProcess:
    """A child process attached to the slave end of a pseudo-terminal.

    The parent keeps the master fd: reads from it return the child's output,
    writes become the child's keyboard input.
    """

    def __init__(self, pid: int, fd: int):
        self.pid = pid
        self.fd = fd
        self._fd_closed = False

    @classmethod
    def spawn(cls, argv: List[str], cwd: Path, env: Dict[str, str], cols: int, rows: int) -> "PtyProcess":
        if not argv or shutil.which(argv[0], path=env.get("PATH")) is None:
            raise SpawnFailure(f"shell not found: {argv[0] if argv else ''}")
        try:
            pid, master_fd = pty.fork()
        except OSError as e:
            raise SpawnFailure(f"unable to fork pty: {e}") from e

        if pid == 0:
            # child process: become the shell, never return into the server
            try:
                _set_winsize(pty.STDIN_FILENO, cols, rows)
                os.chdir(cwd)
                os.execvpe(argv[0], argv, env)
            finally:
                os._exit(127)

        return cls(pid, master_fd)

    def read(self, size: int = READ_SIZE) -> bytes:
        """Read available output; b'' once the child side has hung up."""
        try:
            return os.read(self.fd, size)
        except OSError as e:
            # Linux reports EIO on the master after the slave closes
            if e.errno in (errno.EIO, errno.EBADF):
                return b""
            raise

    def write(self, data: bytes):
        view = memoryview(data)
        while view:
            written = os.write(self.fd, view)
            view = view[written:]

    def resize(self, cols: int, rows: int):
        _set_winsize(self.fd, cols, rows)

    def close_fd(self):
        if self._fd_closed:
            return
        self._fd_closed = True
        try:
            os.close(self.fd)
        except OSError:
            pass

    def terminate(self):
        """Hang up the child; failures are ignored since it may already be gone."""
        try:
            psutil.Process(self.pid).send_signal(TERMINATE_SIGNAL)
        except psutil.Error:
            pass

    def reap(self, timeout: float = REAP_TIMEOUT) -> Optional[int]:
        """Wait for the child to exit (killing it after timeout) and return its exit code."""
        try:
            proc = psutil.Process(self.pid)
            try:
                return proc.wait(timeout=timeout)
            except psutil.TimeoutExpired:
                logger.warning("pid=%s ignored hang-up, killing", self.pid)
                proc.kill()
                return proc.wait(timeout=timeout)
        except psutil.Error:
            return None
        except ChildProcessError:
            return None
