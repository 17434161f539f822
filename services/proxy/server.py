"""
Boundary Proxy Server

FastAPI server between the browser/CLI and the upstream provider. Holds the
API key, validates requests, retries transient upstream failures and maps
everything else onto the error taxonomy:
- POST /api/predictions              - Create a prediction
- GET  /api/predictions/{id}         - Current prediction status
- POST /api/predictions/{id}/cancel  - Cancel a prediction
- GET  /api/models                   - Model catalog
- GET  /api/health                   - Health check

Errors are returned as {"error": str, "statusCode": int}.

Usage:
    python -m uvicorn services.proxy.server:app --host 127.0.0.1 --port 8765

    # Or via main.py
    python main.py server
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from core.config import Config, get_config
from core.errors import (
    RequestError,
    UnknownError,
    UpstreamError,
    VideoTesterError,
    error_for_status,
)
from core.retry import with_retry
from services.video_generation.catalog import get_all_models
from services.video_generation.predictions import parse_prediction

from .replicate_client import ReplicateClient

logger = logging.getLogger(__name__)

_PRIMITIVES = (str, int, float, bool)


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, _PRIMITIVES)


def validate_prediction_request(body: Any) -> tuple[str, dict[str, Any]]:
    """
    Check a create-prediction body before any upstream call.

    Returns:
        (model_id, parameters)

    Raises:
        RequestError: 400 for anything malformed
    """
    if not isinstance(body, dict):
        raise RequestError("Request body must be a JSON object")

    model_id = body.get("modelId")
    parameters = body.get("parameters")

    if not isinstance(model_id, str) or not model_id.strip():
        raise RequestError("Missing modelId or parameters")
    owner, _, name = model_id.partition("/")
    if not owner or not name:
        raise RequestError('Invalid model ID format. Expected "owner/model"')

    if not isinstance(parameters, dict):
        raise RequestError("parameters must be an object")

    for key, value in parameters.items():
        if _is_primitive(value):
            continue
        if isinstance(value, list) and all(_is_primitive(item) for item in value):
            continue
        raise RequestError(
            f"Invalid value for parameter '{key}': expected a primitive or an array of primitives"
        )

    return model_id, parameters


def to_boundary_error(error: Exception) -> VideoTesterError:
    """Classify any failure into the taxonomy with a user-facing message."""
    if isinstance(error, VideoTesterError):
        return error
    if isinstance(error, UpstreamError):
        return error_for_status(error.status_code, error.message)
    if isinstance(error, httpx.RequestError):
        return UnknownError(f"Upstream connection failed: {type(error).__name__}")
    return UnknownError(str(error) or "Unexpected proxy error")


router = APIRouter(prefix="/api")


def _upstream(request: Request) -> ReplicateClient:
    return request.app.state.upstream


@router.post("/predictions", status_code=201)
async def create_prediction(request: Request):
    """Resolve the model's latest version, then create the prediction (both retried)."""
    try:
        body = await request.json()
    except ValueError:
        raise RequestError("Request body must be valid JSON")

    model_id, parameters = validate_prediction_request(body)
    owner, _, name = model_id.partition("/")

    upstream = _upstream(request)
    retry = request.app.state.config.retry
    sleep = request.app.state.sleep

    try:
        version = await with_retry(
            lambda: upstream.get_latest_version(owner, name),
            retry.max_retries,
            retry.initial_delay,
            sleep=sleep,
        )
        raw = await with_retry(
            lambda: upstream.create_prediction(version, parameters),
            retry.max_retries,
            retry.initial_delay,
            sleep=sleep,
        )
        prediction = parse_prediction(raw)
    except Exception as e:
        error = to_boundary_error(e)
        logger.error(f"Error creating prediction for {model_id}: {e}")
        raise error from e

    logger.info(f"Prediction {prediction.id} created for {model_id}")
    return prediction.to_dict()


@router.get("/predictions/{prediction_id}")
async def get_prediction(prediction_id: str, request: Request):
    """Current status. Not retried: the client's poll loop already repeats."""
    if not prediction_id.strip():
        raise RequestError("Missing or invalid prediction ID")

    try:
        raw = await _upstream(request).get_prediction(prediction_id)
        prediction = parse_prediction(raw)
    except Exception as e:
        error = to_boundary_error(e)
        logger.error(f"Error getting prediction {prediction_id}: {e}")
        raise error from e

    return prediction.to_dict()


@router.post("/predictions/{prediction_id}/cancel")
async def cancel_prediction(prediction_id: str, request: Request):
    """Cancel is idempotent upstream, so it is not retried either."""
    if not prediction_id.strip():
        raise RequestError("Missing prediction ID")

    try:
        await _upstream(request).cancel_prediction(prediction_id)
    except Exception as e:
        error = to_boundary_error(e)
        logger.error(f"Error canceling prediction {prediction_id}: {e}")
        raise error from e

    logger.info(f"Prediction {prediction_id} cancel requested")
    return {"success": True}


@router.get("/models")
async def list_models():
    return {"models": [model.to_dict() for model in get_all_models()]}


@router.get("/health")
async def health(request: Request):
    """Health check endpoint."""
    config: Config = request.app.state.config
    return {
        "status": "healthy",
        "api_key_configured": config.has_api_key(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def _handle_error(request: Request, error: VideoTesterError) -> JSONResponse:
    return JSONResponse(error.to_dict(), status_code=error.status_code)


def create_app(
    config: Optional[Config] = None,
    upstream: Optional[ReplicateClient] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        config: Settings (defaults to get_config())
        upstream: Provider client; injected in tests
        sleep: Backoff sleep used by the retry wrapper
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting proxy server...")
        for issue in config.validate():
            logger.warning(f"Configuration issue: {issue}")
        yield
        logger.info("Shutting down proxy server...")
        await app.state.upstream.close()

    app = FastAPI(
        title="Video Generation Proxy",
        description="Server-side proxy for video generation predictions",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.upstream = upstream or ReplicateClient(config=config)
    app.state.sleep = sleep

    app.add_exception_handler(VideoTesterError, _handle_error)
    app.include_router(router)
    return app


app = create_app()
