"""
Generation Orchestrator Tests

End-to-end lifecycle against a scripted predictions client:
1. Happy path: queued -> processing -> completed with URL, end time and cost
2. Pre-flight rejections (unknown model, validation, concurrency gate)
3. Submission and polling failures
4. Polling timeout -> stalled -> refresh
5. Cancellation

Run with:
    python -m pytest tests/test_orchestrator.py -v
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import Config, PollingConfig
from core.errors import (
    ConcurrencyLimitError,
    NotFoundError,
    PollingError,
    SubmissionError,
    ValidationError,
)
from services.video_generation.error_messages import (
    POLLING_TIMEOUT_MESSAGE,
    RATE_LIMIT_MESSAGE,
)
from services.video_generation.orchestrator import GenerationOrchestrator, map_status
from services.video_generation.poller import StatusPoller
from services.video_generation.predictions import parse_prediction
from services.video_generation.registry import (
    Generation,
    GenerationRegistry,
    GenerationStatus,
)

VIDEO_URL = "https://replicate.delivery/abc/output.mp4"
PARAMS = {"prompt": "A golden retriever running through a field", "duration": 5}


def prediction(status: str, **extra):
    return parse_prediction({"id": "pred-1", "status": status, **extra})


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeClock:
    """Advances one second per reading."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


def make_client(created=None, polled=()):
    client = MagicMock()
    client.create_prediction = AsyncMock(return_value=created or prediction("starting"))
    client.get_prediction = AsyncMock(side_effect=list(polled))
    client.cancel_prediction = AsyncMock(return_value=None)
    client.close = AsyncMock()
    return client


def make_orchestrator(client, registry=None, max_attempts=10, max_concurrent=5):
    config = Config(
        polling=PollingConfig(initial_delay=2.0, interval=3.0, max_attempts=max_attempts),
        max_concurrent_generations=max_concurrent,
    )
    poller = StatusPoller(client, config=config, sleep=FakeSleep())
    return GenerationOrchestrator(
        client=client,
        registry=registry or GenerationRegistry(),
        poller=poller,
        config=config,
        clock=FakeClock(),
    )


class TestStatusMap:

    @pytest.mark.parametrize("remote,local", [
        ("starting", GenerationStatus.QUEUED),
        ("processing", GenerationStatus.PROCESSING),
        ("succeeded", GenerationStatus.COMPLETED),
        ("failed", GenerationStatus.ERROR),
        ("canceled", GenerationStatus.CANCELED),
        ("something-new", GenerationStatus.PROCESSING),
    ])
    def test_map_status(self, remote, local):
        assert map_status(remote) == local


class TestHappyPath:

    @pytest.mark.asyncio
    async def test_generation_completes(self):
        client = make_client(polled=[
            prediction("processing"),
            prediction("succeeded", output=VIDEO_URL),
        ])
        orchestrator = make_orchestrator(client)
        history = []
        orchestrator.registry.subscribe(
            lambda state: history.append(state.items[0].status) if state.items else None
        )

        generation = await orchestrator.start_generation("google/veo-3", PARAMS)

        assert generation.status == GenerationStatus.QUEUED
        assert generation.prediction_id == "pred-1"
        assert generation.start_time is not None
        assert orchestrator.registry.active_count == 1

        final = await orchestrator.wait(generation.id)

        assert final.status == GenerationStatus.COMPLETED
        assert final.video_url == VIDEO_URL
        assert final.end_time is not None and final.end_time > final.start_time
        assert final.cost == pytest.approx(0.75)
        assert final.error is None
        assert orchestrator.registry.active_count == 0
        assert GenerationStatus.PROCESSING in history
        assert history[-1] == GenerationStatus.COMPLETED

        client.create_prediction.assert_awaited_once_with("google/veo-3", PARAMS)

    @pytest.mark.asyncio
    async def test_run_returns_final_record(self):
        client = make_client(polled=[prediction("succeeded", output=[VIDEO_URL])])
        orchestrator = make_orchestrator(client)

        final = await orchestrator.run("ltx-video/ltx-video", {"prompt": "waves"})

        assert final.status == GenerationStatus.COMPLETED
        assert final.video_url == VIDEO_URL
        assert final.cost == pytest.approx(0.09)

    @pytest.mark.asyncio
    async def test_remote_failure(self):
        client = make_client(polled=[prediction("failed", error="NSFW content detected")])
        orchestrator = make_orchestrator(client)

        final = await orchestrator.run("google/veo-3", PARAMS)

        assert final.status == GenerationStatus.ERROR
        assert final.error == "NSFW content detected"
        assert final.end_time is not None
        assert final.video_url is None


class TestPreflight:

    @pytest.mark.asyncio
    async def test_unknown_model(self):
        client = make_client()
        orchestrator = make_orchestrator(client)

        with pytest.raises(NotFoundError):
            await orchestrator.start_generation("nobody/nothing", PARAMS)

        client.create_prediction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_validation_never_touches_network(self):
        client = make_client()
        orchestrator = make_orchestrator(client)

        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.start_generation("google/veo-3", {"prompt": "", "duration": 120})

        assert [e.parameter for e in exc_info.value.errors] == ["prompt", "duration"]
        assert orchestrator.registry.items == ()
        client.create_prediction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrency_gate(self):
        registry = GenerationRegistry()
        registry.add(Generation(id="a", model_id="google/veo-3", status=GenerationStatus.QUEUED))
        registry.add(Generation(id="b", model_id="google/veo-3", status=GenerationStatus.PROCESSING))
        registry.add(Generation(id="c", model_id="google/veo-3", status=GenerationStatus.STALLED))
        client = make_client()
        orchestrator = make_orchestrator(client, registry=registry, max_concurrent=2)

        with pytest.raises(ConcurrencyLimitError) as exc_info:
            await orchestrator.start_generation("google/veo-3", PARAMS)

        assert exc_info.value.active == 2
        assert len(registry.items) == 3
        client.create_prediction.assert_not_awaited()


class TestFailures:

    @pytest.mark.asyncio
    async def test_submission_failure_is_recorded_and_raised(self):
        client = make_client()
        client.create_prediction.side_effect = SubmissionError("Rate limit exceeded", status_code=429)
        orchestrator = make_orchestrator(client)

        with pytest.raises(SubmissionError):
            await orchestrator.start_generation("google/veo-3", PARAMS)

        (generation,) = orchestrator.registry.items
        assert generation.status == GenerationStatus.ERROR
        assert generation.error == RATE_LIMIT_MESSAGE
        assert generation.end_time is not None
        assert generation.prediction_id is None
        assert orchestrator.registry.active_count == 0

    @pytest.mark.asyncio
    async def test_polling_failure_marks_error(self):
        client = make_client(polled=[
            prediction("processing"),
            PollingError("HTTP 500: Internal Server Error", status_code=500),
        ])
        orchestrator = make_orchestrator(client)

        final = await orchestrator.run("google/veo-3", PARAMS)

        assert final.status == GenerationStatus.ERROR
        assert final.error.startswith("Failed to poll generation status")
        assert final.end_time is not None


class TestStalled:

    @pytest.mark.asyncio
    async def test_timeout_stalls_then_refresh_recovers(self):
        client = make_client(polled=[prediction("processing")] * 2)
        orchestrator = make_orchestrator(client, max_attempts=2)

        final = await orchestrator.run("google/veo-3", PARAMS)

        assert final.status == GenerationStatus.STALLED
        assert final.error == POLLING_TIMEOUT_MESSAGE
        assert final.end_time is None
        assert orchestrator.registry.active_count == 0

        orchestrator.registry.clear_completed()
        assert orchestrator.registry.find(final.id) is not None

        client.get_prediction.side_effect = [prediction("succeeded", output=VIDEO_URL)]
        refreshed = await orchestrator.refresh(final.id)

        assert refreshed.status == GenerationStatus.COMPLETED
        assert refreshed.video_url == VIDEO_URL
        assert refreshed.error is None

    @pytest.mark.asyncio
    async def test_refresh_resumes_polling(self):
        client = make_client(polled=[prediction("processing")])
        orchestrator = make_orchestrator(client, max_attempts=1)

        final = await orchestrator.run("google/veo-3", PARAMS)
        assert final.status == GenerationStatus.STALLED

        client.get_prediction.side_effect = [
            prediction("processing"),
            prediction("succeeded", output=VIDEO_URL),
        ]
        refreshed = await orchestrator.refresh(final.id)
        assert refreshed.status == GenerationStatus.PROCESSING

        done = await orchestrator.wait(final.id)
        assert done.status == GenerationStatus.COMPLETED


class TestCancel:

    @pytest.mark.asyncio
    async def test_cancel_submitted_generation(self):
        client = make_client(polled=[
            prediction("processing"),
            prediction("canceled"),
        ])
        orchestrator = make_orchestrator(client)

        generation = await orchestrator.start_generation("google/veo-3", PARAMS)
        await orchestrator.cancel(generation.id)
        final = await orchestrator.wait(generation.id)

        client.cancel_prediction.assert_awaited_once_with("pred-1")
        assert final.status == GenerationStatus.CANCELED
        assert final.end_time is not None

    @pytest.mark.asyncio
    async def test_cancel_before_submission_is_local(self):
        registry = GenerationRegistry()
        registry.add(Generation(id="a", model_id="google/veo-3", status=GenerationStatus.QUEUED))
        client = make_client()
        orchestrator = make_orchestrator(client, registry=registry)

        await orchestrator.cancel("a")

        assert registry.find("a").status == GenerationStatus.CANCELED
        client.cancel_prediction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_while_submit_in_flight(self):
        release = asyncio.Event()
        client = make_client()

        async def slow_create(model_id, parameters):
            await release.wait()
            return prediction("starting")

        client.create_prediction = AsyncMock(side_effect=slow_create)
        orchestrator = make_orchestrator(client)

        submit = asyncio.create_task(orchestrator.start_generation("google/veo-3", PARAMS))
        while not orchestrator.registry.items:
            await asyncio.sleep(0)

        (pending,) = orchestrator.registry.items
        await orchestrator.cancel(pending.id)
        assert orchestrator.registry.find(pending.id).status == GenerationStatus.CANCELED

        release.set()
        result = await submit

        client.cancel_prediction.assert_awaited_once_with("pred-1")
        client.get_prediction.assert_not_awaited()
        assert result.status == GenerationStatus.CANCELED
        assert result.prediction_id == "pred-1"
        assert pending.id not in orchestrator._tasks
        assert orchestrator.registry.active_count == 0

    @pytest.mark.asyncio
    async def test_removed_while_submit_in_flight(self):
        release = asyncio.Event()
        client = make_client()

        async def slow_create(model_id, parameters):
            await release.wait()
            return prediction("starting")

        client.create_prediction = AsyncMock(side_effect=slow_create)
        orchestrator = make_orchestrator(client)

        submit = asyncio.create_task(orchestrator.start_generation("google/veo-3", PARAMS))
        while not orchestrator.registry.items:
            await asyncio.sleep(0)

        orchestrator.registry.clear_all()
        release.set()
        result = await submit

        client.cancel_prediction.assert_awaited_once_with("pred-1")
        assert result.status == GenerationStatus.CANCELED
        assert orchestrator.registry.items == ()

    @pytest.mark.asyncio
    async def test_cancel_unknown_generation(self):
        orchestrator = make_orchestrator(make_client())
        with pytest.raises(NotFoundError):
            await orchestrator.cancel("missing")


class TestShutdown:

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self):
        client = make_client()
        orchestrator = make_orchestrator(client)

        await orchestrator.aclose()

        client.close.assert_awaited_once()
