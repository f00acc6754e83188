# termbridge/files.py
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from .sandbox import SandboxError, Workspace
from .utils import to_workspace_posix


class NotFound(SandboxError):
    pass


class FileOperations:
    """Workspace file CRUD; every path goes through the workspace's sandbox first."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    def _rel(self, target: Path, project: Optional[str]) -> str:
        return to_workspace_posix(target, self.workspace.base_for(project))

    # ---------- Read ----------
    def list_dir(self, path: Optional[str], project: Optional[str] = None) -> Dict:
        target = self.workspace.resolve(path, project)
        if not target.is_dir():
            raise NotFound("Directory not found")
        entries = sorted(target.iterdir(), key=lambda p: p.name.lower())
        items: List[Dict] = [{"name": e.name, "isDir": e.is_dir()} for e in entries]
        return {"path": self._rel(target, project), "items": items}

    def read_file(self, path: str, project: Optional[str] = None) -> Dict:
        target = self.workspace.resolve(path, project)
        if not target.is_file():
            raise NotFound("Not found")
        return {"path": self._rel(target, project), "content": target.read_text(encoding="utf-8")}

    # ---------- Write ----------
    def write_file(self, path: str, content: Optional[str], project: Optional[str] = None) -> Dict:
        target = self.workspace.resolve(path, project)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content or "", encoding="utf-8")
        return {"ok": True, "path": self._rel(target, project)}

    def make_dir(self, path: str, project: Optional[str] = None) -> Dict:
        target = self.workspace.resolve(path, project)
        target.mkdir(parents=True, exist_ok=True)
        return {"ok": True, "path": self._rel(target, project)}

    def delete(self, path: str, project: Optional[str] = None) -> Dict:
        target = self.workspace.resolve(path, project)
        if target == self.workspace.base_for(project):
            raise SandboxError("Refusing to delete the workspace root")
        if not target.exists():
            raise NotFound("Not found")
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
        return {"ok": True}
