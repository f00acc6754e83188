# termbridge/context.py
from dataclasses import dataclass, field
from typing import Optional

from .config import Settings
from .judge0 import Judge0Client
from .registry import SessionRegistry
from .sandbox import Workspace


@dataclass
class AppContext:
    """Process-wide state, built once at startup and handed to the web layer."""

    settings: Settings
    workspace: Workspace
    registry: SessionRegistry = field(default_factory=SessionRegistry)
    judge0: Optional[Judge0Client] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        return cls(
            settings=settings,
            workspace=Workspace(settings.workspace_root, project_scoped=settings.project_scoped),
            judge0=Judge0Client(settings),
        )
