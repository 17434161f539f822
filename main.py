#!/usr/bin/env python3
"""
Video Generation Tester - Main Entry Point

Runs the boundary proxy or drives generations against it from the terminal.

Usage:
    # Start the proxy server (holds REPLICATE_API_KEY)
    python main.py server

    # List catalog models
    python main.py models

    # Generate a video and follow it to completion
    python main.py generate google/veo-3 --param prompt="A lighthouse in a storm" --param duration=5

    # Check or cancel a prediction
    python main.py status <prediction-id>
    python main.py cancel <prediction-id>
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("videotester")


def parse_param(raw: str) -> tuple[str, str]:
    """Split key=value. Values stay strings until the model schema is known."""
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {raw!r}")
    return key, value


def coerce_parameters(model, raw: dict[str, str]) -> dict[str, Any]:
    """
    Decode JSON literals only for number, boolean and select parameters.

    String parameters and keys the model does not declare are passed as typed,
    so a prompt of "123" or "true" stays a string.
    """
    from services.video_generation.catalog import ParameterType

    values: dict[str, Any] = {}
    for key, value in raw.items():
        parameter = model.get_parameter(key) if model is not None else None
        if parameter is None or parameter.type == ParameterType.STRING:
            values[key] = value
            continue
        try:
            values[key] = json.loads(value)
        except ValueError:
            values[key] = value
    return values


def start_server(host: str, port: int):
    """Start the boundary proxy server."""
    import uvicorn

    logger.info(f"Proxy server running at http://{host}:{port}/api")
    uvicorn.run("services.proxy.server:app", host=host, port=port, log_level="info")


def list_models():
    from services.video_generation.catalog import get_all_models
    from services.video_generation.formatting import format_cost

    for model in get_all_models():
        print(
            f"{model.id:32} {model.name:22} "
            f"{format_cost(model.pricing.estimated_cost)} {model.pricing.unit.value}"
        )


async def generate_video(model_id: str, raw_parameters: dict[str, str]) -> bool:
    """
    Submit one generation and follow it until it finishes.

    Returns:
        True if the video completed
    """
    from cli.display import RegistryPrinter
    from core.errors import VideoTesterError
    from services.video_generation import GenerationOrchestrator, GenerationStatus, get_model_by_id
    from services.video_generation.error_messages import classify_error

    model = get_model_by_id(model_id)
    parameters = coerce_parameters(model, raw_parameters)
    if model is not None:
        parameters = {**model.default_values(), **parameters}

    orchestrator = GenerationOrchestrator()
    printer = RegistryPrinter()
    orchestrator.registry.subscribe(printer)

    try:
        final = await orchestrator.run(model_id, parameters)
    except VideoTesterError as e:
        for error in getattr(e, "errors", []):
            print(f"  • {error.error}")
        print(classify_error(e))
        return False
    finally:
        await orchestrator.aclose()

    print(printer.summary(orchestrator.registry.get()))
    return final is not None and final.status == GenerationStatus.COMPLETED


async def show_status(prediction_id: str) -> bool:
    from core.errors import VideoTesterError
    from services.video_generation import PredictionsClient
    from services.video_generation.error_messages import classify_error

    client = PredictionsClient()
    try:
        prediction = await client.get_prediction(prediction_id)
    except VideoTesterError as e:
        print(classify_error(e))
        return False
    finally:
        await client.close()

    print(f"Prediction: {prediction.id}")
    print(f"Status: {prediction.status}")
    if prediction.video_url:
        print(f"Video: {prediction.video_url}")
    if prediction.error:
        print(f"Error: {classify_error(prediction.error)}")
    return True


async def cancel_prediction(prediction_id: str) -> bool:
    from core.errors import VideoTesterError
    from services.video_generation import PredictionsClient
    from services.video_generation.error_messages import classify_error

    client = PredictionsClient()
    try:
        await client.cancel_prediction(prediction_id)
    except VideoTesterError as e:
        print(classify_error(e))
        return False
    finally:
        await client.close()

    print(f"Cancel requested for {prediction_id}")
    return True


def main():
    from core.config import get_config

    config = get_config()

    parser = argparse.ArgumentParser(
        description="Video Generation Tester - launch and track text/image-to-video jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start the proxy
    python main.py server

    # Generate a video
    python main.py generate google/veo-3 --param prompt="Neon city at night" --param duration=8

    # Check a prediction
    python main.py status abc123xyz
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start the proxy server")
    server_parser.add_argument("--host", default=config.proxy.host, help="Host to bind")
    server_parser.add_argument("--port", type=int, default=config.proxy.port, help="Port to bind")

    # Models command
    subparsers.add_parser("models", help="List available models")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate a video")
    gen_parser.add_argument("model_id", help='Model ID in "owner/name" form')
    gen_parser.add_argument(
        "--param",
        "-p",
        action="append",
        type=parse_param,
        default=[],
        help="Model parameter as key=value (repeatable)",
    )

    # Status command
    status_parser = subparsers.add_parser("status", help="Show prediction status")
    status_parser.add_argument("prediction_id", help="Prediction ID")

    # Cancel command
    cancel_parser = subparsers.add_parser("cancel", help="Cancel a prediction")
    cancel_parser.add_argument("prediction_id", help="Prediction ID")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "server":
        start_server(host=args.host, port=args.port)

    elif args.command == "models":
        list_models()

    elif args.command == "generate":
        ok = asyncio.run(generate_video(args.model_id, dict(args.param)))
        sys.exit(0 if ok else 1)

    elif args.command == "status":
        sys.exit(0 if asyncio.run(show_status(args.prediction_id)) else 1)

    elif args.command == "cancel":
        sys.exit(0 if asyncio.run(cancel_prediction(args.prediction_id)) else 1)


if __name__ == "__main__":
    main()
