# termbridge/config.py
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_WORKSPACE_DIR = "workspace"
DEFAULT_STATIC_DIR = "public"
LOGS_DIR = "logs"
TRUTHY = ("1", "true", "yes", "on")


def default_shell() -> str:
    """Shell launched for every terminal session on this platform."""
    if sys.platform == "win32":
        return "powershell.exe"
    return os.environ.get("SHELL") or "bash"


@dataclass
class Settings:
    workspace_root: Path = field(default_factory=lambda: Path.cwd() / DEFAULT_WORKSPACE_DIR)
    host: str = "127.0.0.1"
    port: int = 3000
    shell: str = field(default_factory=default_shell)
    term_name: str = "xterm-color"
    project_scoped: bool = False
    static_dir: Optional[Path] = field(default_factory=lambda: Path.cwd() / DEFAULT_STATIC_DIR)
    logs_dir: str = LOGS_DIR
    judge0_url: Optional[str] = None
    judge0_key: Optional[str] = None
    judge0_key_header: str = "X-Auth-Token"
    judge0_host_header: Optional[str] = None
    judge0_host_value: Optional[str] = None


def load_settings() -> Settings:
    """Build Settings from the environment, reading a .env file first if present."""
    load_dotenv()
    env = os.environ
    settings = Settings()
    if env.get("WORKSPACE_ROOT"):
        settings.workspace_root = Path(env["WORKSPACE_ROOT"]).expanduser()
    settings.host = env.get("HOST", settings.host)
    settings.port = int(env.get("PORT", settings.port))
    settings.shell = env.get("TERM_SHELL") or settings.shell
    settings.term_name = env.get("TERM_NAME", settings.term_name)
    settings.project_scoped = env.get("PROJECT_SCOPED", "").strip().lower() in TRUTHY
    if env.get("STATIC_DIR"):
        settings.static_dir = Path(env["STATIC_DIR"])
    settings.logs_dir = env.get("LOGS_DIR", settings.logs_dir)
    settings.judge0_url = env.get("JUDGE0_URL") or None
    settings.judge0_key = env.get("JUDGE0_KEY") or None
    settings.judge0_key_header = env.get("JUDGE0_KEY_HEADER") or settings.judge0_key_header
    settings.judge0_host_header = env.get("JUDGE0_HOST_HEADER") or None
    settings.judge0_host_value = env.get("JUDGE0_HOST_VALUE") or None
    return settings
