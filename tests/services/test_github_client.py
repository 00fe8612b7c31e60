"""Tests for the GitHub contents client."""

import base64
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from src.errors import (
    ForbiddenError,
    InvalidRequestError,
    ParseError,
    RegistryFileNotFoundError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from src.services.github_client import GITHUB_API_URL, fetch_registry_file

FLAGS_JSON = '[{"key": "old_ui", "state": "enabled"}]'


def _response(status_code, json=None, text=None):
    request = httpx.Request("GET", GITHUB_API_URL)
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


def _file_body(content: bytes, encoding: str = "base64"):
    return {
        "type": "file",
        "encoding": encoding,
        "content": base64.b64encode(content).decode("ascii"),
    }


class TestFetchRegistryFile:
    """Tests for fetch_registry_file."""

    @pytest.mark.asyncio
    async def test_decodes_content(self):
        mock_get = AsyncMock(return_value=_response(200, json=_file_body(FLAGS_JSON.encode())))
        with patch.object(httpx.AsyncClient, "get", mock_get):
            text = await fetch_registry_file("acme", "webapp", "config/flags.json", ref="main", token="ghp_x")

        assert text == FLAGS_JSON
        (url,) = mock_get.await_args.args
        kwargs = mock_get.await_args.kwargs
        assert url == f"{GITHUB_API_URL}/repos/acme/webapp/contents/config/flags.json"
        assert kwargs["params"] == {"ref": "main"}
        assert kwargs["headers"]["Authorization"] == "Bearer ghp_x"

    @pytest.mark.asyncio
    async def test_no_ref_no_token(self):
        mock_get = AsyncMock(return_value=_response(200, json=_file_body(b"[]")))
        with patch.object(httpx.AsyncClient, "get", mock_get):
            await fetch_registry_file("acme", "webapp", "/flags.json")
        kwargs = mock_get.await_args.kwargs
        assert kwargs["params"] is None
        assert "Authorization" not in kwargs["headers"]
        assert mock_get.await_args.args[0].endswith("/contents/flags.json")

    @pytest.mark.asyncio
    async def test_not_found(self):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=_response(404, json={}))):
            with pytest.raises(RegistryFileNotFoundError) as exc_info:
                await fetch_registry_file("acme", "webapp", "missing.json", ref="dev")
        error = exc_info.value
        assert error.code == "E-2001"
        assert error.message == "File not found: missing.json in acme/webapp (ref: dev)"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_forbidden(self, status):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=_response(status, json={}))):
            with pytest.raises(ForbiddenError) as exc_info:
                await fetch_registry_file("acme", "webapp", "flags.json")
        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"status": status}

    @pytest.mark.asyncio
    async def test_other_error_status(self):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=_response(500, text="oops"))):
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await fetch_registry_file("acme", "webapp", "flags.json")
        assert exc_info.value.code == "E-2005"

    @pytest.mark.asyncio
    async def test_directory(self):
        body = [{"name": "flags.json", "type": "file"}]
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=_response(200, json=body))):
            with pytest.raises(InvalidRequestError) as exc_info:
                await fetch_registry_file("acme", "webapp", "config")
        assert exc_info.value.code == "E-2004"
        assert "dir" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unsupported_encoding(self):
        body = {"type": "file", "encoding": "none", "content": ""}
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=_response(200, json=body))):
            with pytest.raises(ParseError):
                await fetch_registry_file("acme", "webapp", "flags.json")

    @pytest.mark.asyncio
    async def test_undecodable_content(self):
        body = _file_body(b"\xff\xfe\xfa")
        with patch.object(httpx.AsyncClient, "get", AsyncMock(return_value=_response(200, json=body))):
            with pytest.raises(ParseError):
                await fetch_registry_file("acme", "webapp", "flags.json")

    @pytest.mark.asyncio
    async def test_timeout(self):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(side_effect=httpx.ConnectTimeout("slow"))):
            with pytest.raises(UpstreamTimeoutError):
                await fetch_registry_file("acme", "webapp", "flags.json", timeout=2.0)

    @pytest.mark.asyncio
    async def test_transport_error(self):
        with patch.object(httpx.AsyncClient, "get", AsyncMock(side_effect=httpx.ConnectError("dns failure"))):
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await fetch_registry_file("acme", "webapp", "flags.json")
        assert exc_info.value.code == "E-2005"
        assert "dns failure" in exc_info.value.message
