"""Tests for the MCP tools and their HTTP helper."""
from __future__ import annotations

import json

import httpx
import pytest

from gsn_mcp import server


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_api_request_get():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "ok"})

    result = server.api_request("GET", "/health", client=_client(handler))
    assert result == {"status": "ok"}
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/health"


def test_api_request_post_sends_json():
    def handler(request):
        return httpx.Response(200, json={"echo": json.loads(request.content)})

    result = server.api_request("POST", "/diagram/validate", client=_client(handler), json={"elements": []})
    assert result == {"echo": {"elements": []}}


def test_api_request_raises_on_error_status():
    def handler(request):
        return httpx.Response(422, json={"detail": "bad diagram"})

    with pytest.raises(Exception, match="API error: bad diagram"):
        server.api_request("POST", "/diagram/validate", client=_client(handler), json={})


def test_api_request_rejects_unknown_method():
    with pytest.raises(ValueError):
        server.api_request("DELETE", "/health", client=_client(lambda r: httpx.Response(200, json={})))


def test_validate_tool_forwards_diagram(monkeypatch):
    calls = []

    def fake_request(method, endpoint, **kwargs):
        calls.append((method, endpoint, kwargs))
        return {"success": True}

    monkeypatch.setattr(server, "api_request", fake_request)
    out = server.gsn_validate(json.dumps({"elements": [], "relations": []}))
    assert json.loads(out) == {"success": True}
    assert calls == [("POST", "/diagram/validate", {"json": {"elements": [], "relations": []}})]


def test_auto_layout_tool_includes_modules(monkeypatch):
    calls = []
    monkeypatch.setattr(server, "api_request", lambda method, endpoint, **kw: calls.append(kw) or {"success": True})

    server.gsn_auto_layout('{"elements": []}')
    server.gsn_auto_layout('{"elements": []}', modules_json='{"sub": {"elements": []}}')
    assert calls[0] == {"json": {"diagram": {"elements": []}}}
    assert calls[1] == {"json": {"diagram": {"elements": []}, "modules": {"sub": {"elements": []}}}}


def test_tools_reject_bad_json():
    with pytest.raises(ValueError, match="diagram_json"):
        server.gsn_validate("{oops")


def test_list_kinds_tool(monkeypatch):
    monkeypatch.setattr(server, "api_request", lambda method, endpoint, **kw: {"elements": ["Goal"], "relations": []})
    assert json.loads(server.gsn_list_kinds())["elements"] == ["Goal"]
