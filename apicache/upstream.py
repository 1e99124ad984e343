"""Async HTTP client for the proxied upstream API using httpx.

Every outcome is reduced to a status code and an optional JSON body so the
result can be cached as-is, including upstream errors.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from apicache.config import Config, get_config
from apicache.utils.logger import log_error, log_request


@dataclass
class UpstreamResponse:
    """Status and decoded body of an upstream call."""
    status: int
    data: Any = None


def _decode_body(response: httpx.Response) -> Any:
    """Return the JSON body, falling back to text, or None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class UpstreamClient:
    """Async upstream API client with connection pooling."""

    def __init__(self, config: Optional[Config] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize async client with configuration."""
        self.config = config or get_config()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Context manager entry - creates HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.config.upstream_base_url,
            headers=self._headers(),
            timeout=httpx.Timeout(self.config.upstream_timeout),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> Dict[str, str]:
        """Generate authorization headers.

        Returns:
            Headers dictionary with the upstream API key
        """
        return {
            self.config.upstream_api_key_header: self.config.upstream_api_key,
            "Accept": "application/json",
        }

    async def request(self, method: str, target: str) -> UpstreamResponse:
        """Forward a request to the upstream API.

        Args:
            method: HTTP method
            target: Path and sanitized query string, e.g. ``/recipes?query=pasta``

        Returns:
            UpstreamResponse with the upstream status and body, or status 500
            and no body when no response was received
        """
        if not self._client:
            raise RuntimeError("UpstreamClient not initialized - use 'async with' context")

        log_request("OUT", method, f"{self.config.upstream_base_url}{target}")

        try:
            resp = await self._client.request(method, target)
        except httpx.HTTPError as e:
            log_error("Upstream request failed", method=method, target=target, error=str(e))
            return UpstreamResponse(status=500, data=None)

        return UpstreamResponse(status=resp.status_code, data=_decode_body(resp))
