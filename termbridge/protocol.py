# termbridge/protocol.py
"""In-band control frames sent by the browser terminal.

Every inbound WebSocket frame decodes to exactly one of:

* ``Resize`` -- a JSON object ``{"type": "resize", "cols": N, "rows": M}``
* ``RawInput`` -- anything else, forwarded to the shell byte for byte
"""
import json
from dataclasses import dataclass
from typing import Optional, Union

from .utils import DEFAULT_COLS, DEFAULT_ROWS, parse_dimension

RESIZE = "resize"


@dataclass(frozen=True)
class Resize:
    cols: int = DEFAULT_COLS
    rows: int = DEFAULT_ROWS


@dataclass(frozen=True)
class RawInput:
    data: bytes


ControlFrame = Union[Resize, RawInput]


def _parse_resize(text: str) -> Optional[Resize]:
    if not text.lstrip().startswith("{"):
        return None
    try:
        obj = json.loads(text)
    except ValueError:
        return None
    if not isinstance(obj, dict) or obj.get("type") != RESIZE:
        return None
    return Resize(
        cols=parse_dimension(obj.get("cols"), DEFAULT_COLS),
        rows=parse_dimension(obj.get("rows"), DEFAULT_ROWS),
    )


def decode_frame(text: Optional[str] = None, data: Optional[bytes] = None) -> ControlFrame:
    """Decode one WebSocket frame (text or binary) into a control frame."""
    if text is not None:
        return _parse_resize(text) or RawInput(text.encode("utf-8"))
    raw = data or b""
    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError:
        return RawInput(raw)
    return _parse_resize(decoded) or RawInput(raw)
