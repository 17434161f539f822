"""
Status Poller Tests

Run with:
    python -m pytest tests/test_poller.py -v
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import PollingError, PollingTimeoutError
from services.video_generation.poller import StatusPoller
from services.video_generation.predictions import parse_prediction


def prediction(status: str, **extra):
    return parse_prediction({"id": "pred-1", "status": status, **extra})


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_poller(responses, max_attempts=400):
    client = MagicMock()
    client.get_prediction = AsyncMock(side_effect=responses)
    sleep = FakeSleep()
    poller = StatusPoller(
        client,
        initial_delay=2.0,
        interval=3.0,
        max_attempts=max_attempts,
        sleep=sleep,
    )
    return poller, client, sleep


class TestStatusPoller:

    @pytest.mark.asyncio
    async def test_reports_every_snapshot_in_order(self):
        poller, client, sleep = make_poller([
            prediction("starting"),
            prediction("processing"),
            prediction("succeeded", output="https://cdn.example/video.mp4"),
        ])
        seen = []

        final = await poller.poll("pred-1", lambda p: seen.append(p.status))

        assert seen == ["starting", "processing", "succeeded"]
        assert final.video_url == "https://cdn.example/video.mp4"
        assert client.get_prediction.await_count == 3
        assert sleep.delays == [2.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_stops_on_failed(self):
        poller, client, _ = make_poller([prediction("failed", error="NSFW content detected")])

        final = await poller.poll("pred-1", lambda p: None)

        assert final.status == "failed"
        assert final.error == "NSFW content detected"
        assert client.get_prediction.await_count == 1

    @pytest.mark.asyncio
    async def test_times_out_after_max_attempts(self):
        poller, client, sleep = make_poller([prediction("processing")] * 3, max_attempts=3)
        seen = []

        with pytest.raises(PollingTimeoutError) as exc_info:
            await poller.poll("pred-1", lambda p: seen.append(p.status))

        assert exc_info.value.attempts == 3
        assert "Polling timeout" in exc_info.value.message
        assert client.get_prediction.await_count == 3
        assert len(seen) == 3

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self):
        poller, _, _ = make_poller([PollingError("HTTP 500: Internal Server Error", status_code=500)])

        with pytest.raises(PollingError):
            await poller.poll("pred-1", lambda p: None)

    @pytest.mark.asyncio
    async def test_callback_failure_becomes_polling_error(self):
        poller, _, _ = make_poller([prediction("processing")])

        def broken(p):
            raise RuntimeError("display gone")

        with pytest.raises(PollingError) as exc_info:
            await poller.poll("pred-1", broken)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
