# termbridge/utils.py
import logging
import sys
from pathlib import Path
from typing import Any, Optional

LOG_FILE_NAME = "server.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

DEFAULT_COLS = 80
DEFAULT_ROWS = 24
# TIOCSWINSZ packs dimensions as unsigned shorts
MAX_DIMENSION = 0xFFFF


def configure_logging(logs_dir: str = "logs", level: int = logging.INFO):
    """Log to <logs_dir>/server.log and to stderr."""
    Path(logs_dir).mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger()
    logger.setLevel(level)
    # remove existing handlers
    for h in list(logger.handlers):
        logger.removeHandler(h)
    formatter = logging.Formatter(LOG_FORMAT)
    fh = logging.FileHandler(Path(logs_dir) / LOG_FILE_NAME)
    fh.setLevel(level)
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    sh = logging.StreamHandler(stream=sys.stderr)
    sh.setFormatter(formatter)
    logger.addHandler(sh)


def to_workspace_posix(p: Path, root: Path) -> str:
    """Return POSIX-style path relative to root, '.' for the root itself."""
    rel = Path(p).relative_to(root).as_posix()
    return "." if rel in ("", ".") else rel


def parse_dimension(value: Optional[Any], default: int) -> int:
    """Coerce a terminal dimension; missing, non-numeric or out-of-range values give default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        # OverflowError: JSON 1e400 / Infinity decode to float("inf")
        return default
    if n <= 0 or n > MAX_DIMENSION:
        return default
    return n
