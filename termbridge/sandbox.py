# termbridge/sandbox.py
import logging
import os
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_PROJECT = "default"
# leading characters stripped so "/etc/passwd" means "<root>/etc/passwd"
LEADING_SEPARATORS = "/\\"


class SandboxError(Exception):
    pass


class OutsideSandbox(SandboxError):
    def __init__(self, message: str = "Path outside workspace root is not allowed"):
        super().__init__(message)


class ProjectNotFound(SandboxError):
    def __init__(self, project: str):
        self.project = project
        super().__init__(f"Project '{project}' not found.")


class DirectoryNotFound(SandboxError):
    def __init__(self, requested: str):
        self.requested = requested
        super().__init__(f"Path '{requested}' not found.")


def _canonical(path: str, follow_symlinks: bool) -> str:
    if follow_symlinks:
        return os.path.realpath(path)
    return os.path.normpath(os.path.abspath(path))


def _is_within(candidate: str, root: str) -> bool:
    if candidate == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return candidate.startswith(prefix)


def resolve(root: Union[str, Path], candidate: Optional[str], follow_symlinks: bool = True) -> Path:
    """Confine an untrusted workspace-relative path to root.

    An empty candidate means the root itself. Leading separators are stripped, so an
    absolute-looking candidate is taken relative to root rather than to the filesystem
    root. The joined path is canonicalised (``..`` and ``.`` collapsed and, unless
    follow_symlinks is False, symlinks resolved) and must equal root or sit below it,
    otherwise OutsideSandbox is raised. root is expected to be canonical already.
    """
    root_str = os.fspath(root)
    rel = str(candidate or ".").lstrip(LEADING_SEPARATORS) or "."
    if "\x00" in rel:
        raise OutsideSandbox()
    resolved = _canonical(os.path.join(root_str, rel), follow_symlinks)
    if not _is_within(resolved, root_str):
        raise OutsideSandbox()
    return Path(resolved)


def project_root(root: Union[str, Path], project: Optional[str]) -> Path:
    """Root directory of a named project; the name is reduced to its base component."""
    name = os.path.basename(str(project or DEFAULT_PROJECT).replace("\\", "/").rstrip("/"))
    if name in ("", ".", "..") or "\x00" in name:
        raise OutsideSandbox()
    return Path(os.path.join(os.fspath(root), name))


def resolve_project(root: Union[str, Path], project: Optional[str], candidate: Optional[str],
                    follow_symlinks: bool = True) -> Path:
    """Like resolve(), but contained to <root>/<project>, which must already exist."""
    proj = project_root(root, project)
    if not proj.is_dir():
        raise ProjectNotFound(proj.name)
    proj_canonical = _canonical(os.fspath(proj), follow_symlinks)
    if not _is_within(proj_canonical, os.fspath(root)) or proj_canonical == os.fspath(root):
        # project directory is a symlink leading out of the workspace
        raise OutsideSandbox()
    return resolve(proj_canonical, candidate, follow_symlinks=follow_symlinks)


def require_directory(path: Path, requested: Optional[str]) -> Path:
    """Existence check used before a session is rooted at path."""
    if not path.is_dir():
        raise DirectoryNotFound(requested or ".")
    return path


class Workspace:
    """The workspace root plus path resolution bound to it."""

    def __init__(self, root: Union[str, Path], project_scoped: bool = False):
        root = Path(root).expanduser()
        if not root.exists():
            root.mkdir(parents=True, exist_ok=True)
            logger.info("Created workspace root: %s", root)
        self.root = Path(os.path.realpath(root))
        self.project_scoped = project_scoped

    def resolve(self, candidate: Optional[str], project: Optional[str] = None) -> Path:
        if self.project_scoped:
            return resolve_project(self.root, project, candidate)
        return resolve(self.root, candidate)

    def base_for(self, project: Optional[str] = None) -> Path:
        """Directory that relative paths handed back to clients are measured from."""
        if self.project_scoped:
            return resolve_project(self.root, project, ".")
        return self.root
