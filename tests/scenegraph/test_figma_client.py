"""Tests for scenegraph.integrations.figma_client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from scenegraph.integrations.figma_client import FigmaClient, FigmaClientError


@pytest.fixture
def client():
    """Create a FigmaClient with a test token."""
    return FigmaClient(token="test-figma-token-123")


def _response(status_code, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.text = text
    return resp


def _fake_get(responses):
    """Stand-in for FigmaClient._get answering by path (exceptions are raised)."""
    async def _get(path, params=None):
        value = responses[path]
        if isinstance(value, Exception):
            raise value
        return value
    return AsyncMock(side_effect=_get)


# ---------------------------------------------------------------------------
# Tests: Constructor & token validation
# ---------------------------------------------------------------------------


class TestFigmaClientInit:

    def test_creates_with_explicit_token(self):
        client = FigmaClient(token="my-token")
        assert client._token == "my-token"

    def test_reads_token_from_env(self, monkeypatch):
        monkeypatch.setenv("FIGMA_TOKEN", "env-token-abc")
        client = FigmaClient()
        assert client._token == "env-token-abc"

    def test_raises_without_token(self, monkeypatch):
        monkeypatch.delenv("FIGMA_TOKEN", raising=False)
        with pytest.raises(FigmaClientError, match="FIGMA_TOKEN"):
            FigmaClient()


# ---------------------------------------------------------------------------
# Tests: HTTP layer (mocked httpx client)
# ---------------------------------------------------------------------------


class TestGetFileNodes:

    @pytest.mark.asyncio
    async def test_returns_nodes(self, client, sample_nodes_response):
        mock_http = MagicMock()
        mock_http.get = AsyncMock(return_value=_response(200, sample_nodes_response))
        with patch.object(client, "_http", return_value=mock_http):
            result = await client.get_file_nodes("FILE123", ["1:1", "1:5"])

        assert "1:1" in result["nodes"]
        mock_http.get.assert_called_once_with(
            "/v1/files/FILE123/nodes",
            params={"ids": "1:1,1:5", "geometry": "paths"},
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,match", [
        (403, "403 Forbidden"),
        (404, "not found"),
        (429, "rate limit"),
        (500, "Figma API error 500: boom"),
    ])
    async def test_http_errors(self, client, status, match):
        mock_http = MagicMock()
        mock_http.get = AsyncMock(return_value=_response(status, text="boom"))
        with patch.object(client, "_http", return_value=mock_http):
            with pytest.raises(FigmaClientError, match=match) as exc_info:
                await client.get_file_nodes("FILE123", ["1:1"])

        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_timeout(self, client):
        mock_http = MagicMock()
        mock_http.get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with patch.object(client, "_http", return_value=mock_http):
            with pytest.raises(FigmaClientError, match="timed out") as exc_info:
                await client.get_file_variables("FILE123")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_connection_error(self, client):
        mock_http = MagicMock()
        mock_http.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch.object(client, "_http", return_value=mock_http):
            with pytest.raises(FigmaClientError, match="Could not reach"):
                await client.get_file_variables("FILE123")


# ---------------------------------------------------------------------------
# Tests: load_host
# ---------------------------------------------------------------------------


class TestLoadHost:

    @pytest.mark.asyncio
    async def test_builds_host_with_variables(
        self, client, sample_nodes_response, sample_variables_response
    ):
        fake = _fake_get({
            "/v1/files/FILE123/nodes": sample_nodes_response,
            "/v1/files/FILE123/variables/local": sample_variables_response,
        })
        with patch.object(client, "_get", fake):
            host = await client.load_host("FILE123", ["1:1"])

        assert [r.id for r in host.roots] == ["1:1"]
        assert host.variables["VariableID:1:10"] == "Text/Primary"
        assert fake.await_count == 2

    @pytest.mark.asyncio
    async def test_variables_failure_is_tolerated(self, client, sample_nodes_response):
        fake = _fake_get({
            "/v1/files/FILE123/nodes": sample_nodes_response,
            "/v1/files/FILE123/variables/local": FigmaClientError("forbidden", status_code=403),
        })
        with patch.object(client, "_get", fake):
            host = await client.load_host("FILE123", ["1:1"])

        assert [r.id for r in host.roots] == ["1:1"]
        assert host.variables == {}

    @pytest.mark.asyncio
    async def test_nodes_failure_propagates(self, client, sample_variables_response):
        fake = _fake_get({
            "/v1/files/FILE123/nodes": FigmaClientError("missing", status_code=404),
            "/v1/files/FILE123/variables/local": sample_variables_response,
        })
        with patch.object(client, "_get", fake):
            with pytest.raises(FigmaClientError, match="missing"):
                await client.load_host("FILE123", ["1:1"])


class TestClose:

    @pytest.mark.asyncio
    async def test_close_without_client(self, client):
        await client.close()
        assert client._client is None

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, client):
        async with client as c:
            http = c._http()
            assert not http.is_closed

        assert http.is_closed
        assert client._client is None
