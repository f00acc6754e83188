# termbridge/judge0.py
"""Thin proxy to a Judge0 code-execution service.

Judge0 takes and returns base64 text when ``base64_encoded=true``; callers of
this module deal in plain strings only.
"""
import base64
import logging
from typing import Any, Dict, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/submissions?base64_encoded=true&wait=true"
REQUEST_TIMEOUT = 30.0


class Judge0NotConfigured(Exception):
    pass


class Judge0Error(Exception):
    def __init__(self, status_code: int, details: str = ""):
        self.status_code = status_code
        self.details = details
        super().__init__(f"Judge0 {status_code}")


def _b64(s: Optional[str]) -> str:
    return base64.b64encode((s or "").encode("utf-8")).decode("ascii")


def _unb64(s: Optional[str]) -> Optional[str]:
    if not s:
        return None
    return base64.b64decode(s).decode("utf-8", errors="replace")


class Judge0Client:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.settings.judge0_url)

    def _headers(self) -> Dict[str, str]:
        s = self.settings
        headers = {"Content-Type": "application/json"}
        if s.judge0_key:
            headers[s.judge0_key_header] = s.judge0_key
        if s.judge0_host_header and s.judge0_host_value:
            headers[s.judge0_host_header] = s.judge0_host_value
        return headers

    async def run(self, source: str, language_id: int, stdin: Optional[str] = None) -> Dict[str, Any]:
        if not self.configured:
            raise Judge0NotConfigured("Judge0 not configured")

        payload: Dict[str, Any] = {"source_code": _b64(source), "language_id": int(language_id)}
        if stdin:
            payload["stdin"] = _b64(stdin)
        url = self.settings.judge0_url.rstrip("/") + SUBMIT_PATH

        async with httpx.AsyncClient(transport=self._transport, timeout=REQUEST_TIMEOUT) as client:
            r = await client.post(url, headers=self._headers(), json=payload)
        if r.is_error:
            logger.warning("Judge0 returned %s", r.status_code)
            raise Judge0Error(r.status_code, r.text)

        body = r.json()
        return {
            "raw": body,
            "stdout": _unb64(body.get("stdout")),
            "stderr": _unb64(body.get("stderr")),
            "compile_output": _unb64(body.get("compile_output")),
            "status": body.get("status"),
            "time": body.get("time"),
            "memory": body.get("memory"),
        }
