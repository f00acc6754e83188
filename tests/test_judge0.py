import base64
import json

import httpx
import pytest

from termbridge.judge0 import Judge0Client, Judge0Error, Judge0NotConfigured


def _b64(s):
    return base64.b64encode(s.encode()).decode()


def _transport(captured, status_code=200, body=None):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        if body is None:
            return httpx.Response(status_code, text="upstream exploded")
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


UPSTREAM_OK = {
    "stdout": _b64("hello\n"),
    "stderr": None,
    "compile_output": "",
    "status": {"id": 3, "description": "Accepted"},
    "time": "0.01",
    "memory": 1024,
}


@pytest.fixture
def judge0_settings(settings):
    settings.judge0_url = "https://judge0.example.com/"
    settings.judge0_key = "secret"
    settings.judge0_host_header = "X-RapidAPI-Host"
    settings.judge0_host_value = "judge0.example.com"
    return settings


@pytest.mark.asyncio
async def test_run_encodes_request_and_decodes_response(judge0_settings):
    captured = []
    client = Judge0Client(judge0_settings, transport=_transport(captured, body=UPSTREAM_OK))

    result = await client.run("print('hello')", 71, stdin="42")

    request = captured[0]
    assert str(request.url) == "https://judge0.example.com/submissions?base64_encoded=true&wait=true"
    assert request.headers["X-Auth-Token"] == "secret"
    assert request.headers["X-RapidAPI-Host"] == "judge0.example.com"
    sent = json.loads(request.content)
    assert sent == {"source_code": _b64("print('hello')"), "language_id": 71, "stdin": _b64("42")}

    assert result["stdout"] == "hello\n"
    assert result["stderr"] is None
    assert result["compile_output"] is None
    assert result["status"] == {"id": 3, "description": "Accepted"}
    assert result["raw"] == UPSTREAM_OK


@pytest.mark.asyncio
async def test_stdin_omitted_when_empty(settings):
    settings.judge0_url = "http://judge0"
    captured = []
    client = Judge0Client(settings, transport=_transport(captured, body=UPSTREAM_OK))
    await client.run("x", "62")
    sent = json.loads(captured[0].content)
    assert "stdin" not in sent
    assert sent["language_id"] == 62
    assert "X-Auth-Token" not in captured[0].headers


@pytest.mark.asyncio
async def test_upstream_error(judge0_settings):
    client = Judge0Client(judge0_settings, transport=_transport([], status_code=429))
    with pytest.raises(Judge0Error) as exc_info:
        await client.run("x", 71)
    assert exc_info.value.status_code == 429
    assert exc_info.value.details == "upstream exploded"


@pytest.mark.asyncio
async def test_not_configured(settings):
    with pytest.raises(Judge0NotConfigured):
        await Judge0Client(settings).run("x", 71)


class TestJudge0Route:
    def test_requires_source_and_language(self, client):
        r = client.post("/api/run-judge0", json={"source": "x"})
        assert r.status_code == 400
        assert r.json() == {"error": "source and language_id required"}

    def test_not_configured(self, client):
        r = client.post("/api/run-judge0", json={"source": "x", "language_id": 71})
        assert r.status_code == 501
        assert r.json() == {"error": "Judge0 not configured"}

    def test_success(self, client, context, judge0_settings):
        context.judge0 = Judge0Client(judge0_settings, transport=_transport([], body=UPSTREAM_OK))
        r = client.post("/api/run-judge0", json={"source": "print('hello')", "language_id": 71})
        assert r.status_code == 200
        assert r.json()["stdout"] == "hello\n"

    def test_upstream_failure(self, client, context, judge0_settings):
        context.judge0 = Judge0Client(judge0_settings, transport=_transport([], status_code=500))
        r = client.post("/api/run-judge0", json={"source": "x", "language_id": 71})
        assert r.status_code == 502
        assert r.json() == {"error": "Judge0 500", "details": "upstream exploded"}

    def test_transport_failure(self, client, context, judge0_settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        context.judge0 = Judge0Client(judge0_settings, transport=httpx.MockTransport(handler))
        r = client.post("/api/run-judge0", json={"source": "x", "language_id": 71})
        assert r.status_code == 500
        assert "connection refused" in r.json()["error"]
