"""
Predictions Client

Talks to the boundary proxy (never to the provider directly, the API key
lives server-side):
- POST /predictions               create a prediction
- GET  /predictions/{id}          current status
- POST /predictions/{id}/cancel   cancel

Every response is shape-checked and normalized through parse_prediction.
Failures are re-raised with context and the original error chained as
__cause__ for diagnostics.
"""

import logging
from typing import Any, Optional

import httpx

from core.config import Config, get_config
from core.errors import CancellationError, PollingError, SubmissionError

from .predictions import Prediction, parse_prediction

logger = logging.getLogger(__name__)


class BoundaryResponseError(Exception):
    """Non-2xx response from the boundary proxy."""

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)


def _error_from_response(response: httpx.Response) -> BoundaryResponseError:
    """Prefer the boundary's {"error": ...} payload, else a generic HTTP message."""
    message = None
    try:
        payload = response.json()
        if isinstance(payload, dict) and payload.get("error"):
            message = str(payload["error"])
    except ValueError:
        pass

    if not message:
        message = f"HTTP {response.status_code}: {response.reason_phrase}"
    return BoundaryResponseError(message, response.status_code)


class PredictionsClient:
    """
    Async client for the boundary proxy.

    Usage:
        client = PredictionsClient()

        prediction = await client.create_prediction(
            "google/veo-3",
            {"prompt": "A golden retriever running through a field", "duration": 5},
        )
        current = await client.get_prediction(prediction.id)
        await client.cancel_prediction(prediction.id)

        await client.close()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config()
        self.base_url = (base_url or self.config.proxy.base_url).rstrip("/")
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.proxy.request_timeout)
        return self._http_client

    async def close(self):
        """Close the HTTP client if we created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        client = await self._get_client()
        response = await client.request(method, f"{self.base_url}{path}", **kwargs)
        if response.is_error:
            raise _error_from_response(response)
        return response.json()

    async def create_prediction(self, model_id: str, parameters: dict[str, Any]) -> Prediction:
        """
        Start a generation job.

        Raises:
            SubmissionError: "Failed to start video generation: <cause>"
        """
        try:
            data = await self._request(
                "POST",
                "/predictions",
                json={"modelId": model_id, "parameters": parameters},
            )
            prediction = parse_prediction(data)
        except Exception as e:
            raise SubmissionError(str(e), status_code=getattr(e, "status_code", None)) from e

        logger.info(f"Prediction created: {prediction.id} (model={model_id}, status={prediction.status})")
        return prediction

    async def get_prediction(self, prediction_id: str) -> Prediction:
        """
        Fetch the current state of a prediction.

        Raises:
            PollingError: "Failed to poll generation status: <cause>"
        """
        try:
            data = await self._request("GET", f"/predictions/{prediction_id}")
            return parse_prediction(data)
        except Exception as e:
            raise PollingError(str(e), status_code=getattr(e, "status_code", None)) from e

    async def cancel_prediction(self, prediction_id: str) -> None:
        """
        Ask the boundary to cancel a prediction. Safe to call more than once.

        Raises:
            CancellationError: "Failed to cancel generation: <cause>"
        """
        try:
            await self._request("POST", f"/predictions/{prediction_id}/cancel")
        except Exception as e:
            raise CancellationError(str(e), status_code=getattr(e, "status_code", None)) from e

        logger.info(f"Cancel requested for prediction {prediction_id}")
