"""Tests for allowlisted outbound HTTP requests."""

import json

import httpx
import pytest

from renderops_server.actions import ActionParams
from renderops_server.actions.http_actions import http_request, is_url_allowed


class TestAllowlist:
    @pytest.mark.parametrize("url,allowed", [
        ("https://api.example.com/v1/hook", True),
        ("https://API.EXAMPLE.COM/x", True),
        ("https://evil.example.com/", False),
        ("https://hooks.test/a", True),
        ("https://a.b.hooks.test/a", True),
        ("https://nothooks.test/a", False),
        ("ftp://api.example.com/file", False),
        ("not a url", False),
    ])
    def test_configured_domains(self, url, allowed):
        assert is_url_allowed(url) is allowed

    def test_empty_allowlist_blocks_everything(self):
        assert not is_url_allowed("https://api.example.com", allowed_domains=[])


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpRequest:
    @pytest.mark.asyncio
    async def test_post_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["user"] = request.headers["X-Request-User"]
            seen["agent"] = request.headers["User-Agent"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"ok": True})

        params = ActionParams(url="https://api.example.com/hook", method="post", body={"a": 1})
        async with client_for(handler) as client:
            result = await http_request(params, "user-1", client=client)

        assert result.success
        assert result.data["status"] == 201
        assert result.data["statusText"] == "Created"
        assert result.data["body"] == {"ok": True}
        assert seen == {"method": "POST", "user": "user-1", "agent": "RenderOps/1.0", "body": {"a": 1}}

    @pytest.mark.asyncio
    async def test_get_drops_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.content == b""
            return httpx.Response(200, text="pong")

        params = ActionParams(url="https://api.example.com/ping", body={"ignored": True})
        async with client_for(handler) as client:
            result = await http_request(params, "user-1", client=client)
        assert result.data["body"] == "pong"

    @pytest.mark.asyncio
    async def test_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"detail": "missing"})

        async with client_for(handler) as client:
            result = await http_request(ActionParams(url="https://api.example.com/x"), "user-1", client=client)
        assert result.to_dict() == {
            "success": False,
            "data": {"detail": "missing"},
            "error": "HTTP 404: Not Found",
        }

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with client_for(handler) as client:
            result = await http_request(ActionParams(url="https://api.example.com/x"), "user-1", client=client)
        assert result.error == "Request timed out after 30 seconds"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params,error", [
        (ActionParams(), "URL is required"),
        (ActionParams(url="https://internal.local/x"),
         "URL domain is not in the allowlist. Contact administrator to add it."),
        (ActionParams(url="https://api.example.com/x", method="TRACE"),
         "Invalid HTTP method. Allowed methods: GET, POST, PUT, PATCH, DELETE"),
    ])
    async def test_rejected_before_sending(self, params, error):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("request should not be sent")

        async with client_for(handler) as client:
            result = await http_request(params, "user-1", client=client)
        assert result.error == error
