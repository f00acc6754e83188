# termbridge/registry.py
import threading
from typing import Dict, Optional

from .session import TerminalSession


class SessionRegistry:
    """Live terminal sessions keyed by connection id, safe to share between threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, TerminalSession] = {}

    def add(self, session: TerminalSession):
        with self._lock:
            if session.connection_id in self._sessions:
                raise KeyError(f"session already registered: {session.connection_id}")
            self._sessions[session.connection_id] = session

    def remove(self, connection_id: str) -> Optional[TerminalSession]:
        with self._lock:
            return self._sessions.pop(connection_id, None)

    def __contains__(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
