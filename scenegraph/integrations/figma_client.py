"""Figma REST host adapter.

Loads the selected node trees (and, where the plan allows it, the file's
local variables) over the Figma REST API and serves them as a
``DocumentHost``.

Environment:
    FIGMA_TOKEN: Personal Access Token with file_content:read

Usage:
    async with FigmaClient() as client:
        host = await client.load_host("6kGd851qaAX4TiL44vpIrO", ["16650:538"])
    nodes = host.select()
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from ..settings import FIGMA_HTTP_TIMEOUT
from .host import DocumentHost

logger = logging.getLogger("scenegraph.integrations.figma")

FIGMA_API_BASE = "https://api.figma.com"

_STATUS_MESSAGES = {
    403: "Figma API returned 403 Forbidden. Check that FIGMA_TOKEN is valid and can read {path}",
    404: "Figma file or node not found: {path}",
    429: "Figma API rate limit exceeded. Retry later.",
}
_DEFAULT_STATUS_MESSAGE = "Figma API error {status}: {body}"


class FigmaClientError(Exception):
    """A Figma REST call failed (bad status, timeout or transport error)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FigmaClient:
    """Async client for the two endpoints a conversion reads.

    Args:
        token: Figma PAT. Defaults to the FIGMA_TOKEN env var.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, token: Optional[str] = None, timeout: float = FIGMA_HTTP_TIMEOUT):
        self._token = token or os.getenv("FIGMA_TOKEN", "")
        if not self._token:
            raise FigmaClientError("No Figma token: set FIGMA_TOKEN or pass token= to FigmaClient()")
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "FigmaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _http(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=FIGMA_API_BASE,
                headers={"X-FIGMA-TOKEN": self._token},
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        try:
            resp = await self._http().get(path, params=params)
        except httpx.TimeoutException as e:
            raise FigmaClientError(f"Figma API timed out after {self._timeout}s: {path}") from e
        except httpx.TransportError as e:
            raise FigmaClientError(f"Could not reach Figma API ({e}): {path}") from e

        if resp.status_code != 200:
            template = _STATUS_MESSAGES.get(resp.status_code, _DEFAULT_STATUS_MESSAGE)
            raise FigmaClientError(
                template.format(path=path, status=resp.status_code, body=resp.text[:200]),
                status_code=resp.status_code,
            )
        return resp.json()

    async def get_file_nodes(self, file_key: str, node_ids: List[str]) -> Dict[str, Any]:
        """GET /v1/files/:key/nodes, with vector paths for icon detection."""
        data = await self._get(
            f"/v1/files/{file_key}/nodes",
            params={"ids": ",".join(node_ids), "geometry": "paths"},
        )
        logger.info(
            f"get_file_nodes: file={file_key}, requested={len(node_ids)}, "
            f"returned={len(data.get('nodes') or {})}"
        )
        return data

    async def get_file_variables(self, file_key: str) -> Dict[str, Any]:
        """GET /v1/files/:key/variables/local."""
        data = await self._get(f"/v1/files/{file_key}/variables/local")
        logger.info(
            f"get_file_variables: file={file_key}, "
            f"variables={len(data.get('meta', {}).get('variables') or {})}"
        )
        return data

    async def load_host(self, file_key: str, node_ids: List[str]) -> DocumentHost:
        """Fetch nodes and variables concurrently and wrap them as a host."""
        nodes_resp, vars_resp = await asyncio.gather(
            self.get_file_nodes(file_key, node_ids),
            self._variables_or_none(file_key),
        )
        return DocumentHost.from_rest_responses(nodes_resp, vars_resp)

    async def _variables_or_none(self, file_key: str) -> Optional[Dict[str, Any]]:
        # Enterprise-only endpoint; without it names fall back to variable ids
        try:
            return await self.get_file_variables(file_key)
        except FigmaClientError as e:
            logger.warning(f"load_host: variables unavailable for {file_key}: {e}")
            return None
