"""
Replicate API Client (server-side)

Thin httpx wrapper over the provider's HTTP API. Holds the only copy of the
API key. Non-2xx responses raise UpstreamError with the provider's status
code so the retry wrapper and the boundary's status mapping can act on it.

API Documentation: https://replicate.com/docs/reference/http
"""

import logging
from typing import Any, Optional

import httpx

from core.config import Config, get_config
from core.errors import AuthError, UpstreamError

logger = logging.getLogger(__name__)


class ReplicateClient:
    """
    Client for the Replicate HTTP API.

    Usage:
        client = ReplicateClient()
        version = await client.get_latest_version("google", "veo-3")
        prediction = await client.create_prediction(version, {"prompt": "..."})
        await client.close()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config()
        self.base_url = self.config.api.replicate_api_base.rstrip("/")
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.api.request_timeout)
        return self._http_client

    async def close(self):
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        if not self.config.has_api_key():
            raise AuthError(
                "Replicate API key not configured. Please set REPLICATE_API_KEY in your "
                ".env file with your actual API key from https://replicate.com/account/api-tokens",
                status_code=500,
            )
        return {
            "Authorization": f"Bearer {self.config.api.replicate_api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        client = await self._get_client()
        response = await client.request(
            method,
            f"{self.base_url}{path}",
            json=json,
            headers=self._headers(),
        )

        if response.is_error:
            raise UpstreamError(response.status_code, _detail_of(response))

        if not response.content:
            return {}
        return response.json()

    async def get_latest_version(self, owner: str, name: str) -> str:
        """Resolve the current version id of "owner/name"."""
        data = await self._request("GET", f"/models/{owner}/{name}")
        latest = (data or {}).get("latest_version") or {}
        version = latest.get("id")
        if not version:
            raise UpstreamError(404, f"Model {owner}/{name} not found or has no versions")
        return version

    async def create_prediction(self, version: str, input_params: dict[str, Any]) -> dict:
        logger.info(f"Creating prediction for version {version[:12]}")
        return await self._request(
            "POST",
            "/predictions",
            json={"version": version, "input": input_params},
        )

    async def get_prediction(self, prediction_id: str) -> dict:
        return await self._request("GET", f"/predictions/{prediction_id}")

    async def cancel_prediction(self, prediction_id: str) -> dict:
        return await self._request("POST", f"/predictions/{prediction_id}/cancel")


def _detail_of(response: httpx.Response) -> str:
    """Best human-readable message from a provider error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(payload, dict):
        for key in ("detail", "title", "error"):
            if payload.get(key):
                return str(payload[key])
    return f"HTTP {response.status_code}"
