"""
Generation Orchestrator

The seam the display layer calls. Runs one generation through its lifecycle:

    validate -> admission gate -> registry insert -> submit -> poll -> terminal update

Each submitted job gets its own asyncio task running the poll loop. The
registry is the only place generation state lives; the poller only sees the
remote prediction id and a callback.

Usage:
    orchestrator = GenerationOrchestrator()
    orchestrator.registry.subscribe(render)

    generation = await orchestrator.start_generation(
        "google/veo-3", {"prompt": "A lighthouse in a storm", "duration": 5}
    )
    final = await orchestrator.wait(generation.id)
"""

import asyncio
import dataclasses
import logging
import time
from typing import Any, Callable, Optional
from uuid import uuid4

from core.config import Config, get_config
from core.errors import (
    ConcurrencyLimitError,
    NotFoundError,
    PollingError,
    PollingTimeoutError,
)

from .catalog import Model, estimate_cost, get_model_by_id
from .client import PredictionsClient
from .error_messages import classify_error
from .poller import StatusPoller
from .predictions import Prediction, PredictionStatus
from .registry import Generation, GenerationRegistry, GenerationStatus
from .validation import validate_all_parameters

logger = logging.getLogger(__name__)

# Remote prediction status -> local generation status
STATUS_MAP = {
    PredictionStatus.STARTING.value: GenerationStatus.QUEUED,
    PredictionStatus.PROCESSING.value: GenerationStatus.PROCESSING,
    PredictionStatus.SUCCEEDED.value: GenerationStatus.COMPLETED,
    PredictionStatus.FAILED.value: GenerationStatus.ERROR,
    PredictionStatus.CANCELED.value: GenerationStatus.CANCELED,
}


def map_status(remote_status: str) -> GenerationStatus:
    """Unknown remote statuses are treated as still processing."""
    return STATUS_MAP.get(remote_status, GenerationStatus.PROCESSING)


class GenerationOrchestrator:
    """Coordinates submission, polling and registry updates for every job."""

    def __init__(
        self,
        client: Optional[PredictionsClient] = None,
        registry: Optional[GenerationRegistry] = None,
        poller: Optional[StatusPoller] = None,
        config: Optional[Config] = None,
        model_lookup: Callable[[str], Optional[Model]] = get_model_by_id,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or get_config()
        self.client = client or PredictionsClient(config=self.config)
        self.registry = registry if registry is not None else GenerationRegistry()
        self.poller = poller or StatusPoller(self.client, config=self.config)
        self.max_concurrent = self.config.max_concurrent_generations
        self._model_lookup = model_lookup
        self._clock = clock
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Starting jobs
    # ------------------------------------------------------------------

    async def start_generation(self, model_id: str, parameters: dict[str, Any]) -> Generation:
        """
        Validate, submit and begin tracking a generation.

        Returns:
            The registry record right after submission (queued, with a
            prediction id). Polling continues in the background. A job
            canceled while the submit was in flight is canceled remotely
            and never polled.

        Raises:
            NotFoundError: model_id is not in the catalog
            ValidationError: parameters fail the model schema (nothing is sent)
            ConcurrencyLimitError: too many active generations
            SubmissionError: the boundary rejected or failed the request
        """
        model = self._model_lookup(model_id)
        if model is None:
            raise NotFoundError(f"Model {model_id} not found")

        validate_all_parameters(parameters, model.parameters).raise_for_errors()

        active = self.registry.active_count
        if active >= self.max_concurrent:
            raise ConcurrencyLimitError(active, self.max_concurrent)

        generation = Generation(
            id=str(uuid4()),
            model_id=model_id,
            parameters=dict(parameters),
            status=GenerationStatus.QUEUED,
            start_time=self._clock(),
        )
        self.registry.add(generation)

        try:
            prediction = await self.client.create_prediction(model_id, parameters)
        except Exception as e:
            logger.error(f"Submission failed for generation {generation.id}: {e}")
            self.registry.update(
                generation.id,
                status=GenerationStatus.ERROR,
                error=classify_error(e),
                end_time=self._clock(),
            )
            raise

        current = self.registry.find(generation.id)
        if current is None or current.status == GenerationStatus.CANCELED:
            # Canceled or removed while the submit was in flight
            logger.info(f"Generation {generation.id} canceled during submit, canceling {prediction.id}")
            self.registry.update(generation.id, prediction_id=prediction.id)
            await self.client.cancel_prediction(prediction.id)
            return self.registry.find(generation.id) or dataclasses.replace(
                generation, status=GenerationStatus.CANCELED, prediction_id=prediction.id
            )

        self.registry.update(generation.id, prediction_id=prediction.id)
        self._apply_prediction(generation.id, prediction)
        self._schedule_tracking(generation.id, prediction.id)

        return self.registry.find(generation.id)

    async def run(self, model_id: str, parameters: dict[str, Any]) -> Generation:
        """Start a generation and wait until its tracking finishes."""
        generation = await self.start_generation(model_id, parameters)
        return await self.wait(generation.id)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def _schedule_tracking(self, generation_id: str, prediction_id: str) -> None:
        task = asyncio.create_task(self._track(generation_id, prediction_id))
        self._tasks[generation_id] = task
        task.add_done_callback(lambda _: self._forget_task(generation_id, task))

    def _forget_task(self, generation_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(generation_id) is task:
            del self._tasks[generation_id]

    async def _track(self, generation_id: str, prediction_id: str) -> None:
        """Poll loop for one job. Failures land in the registry, not the caller."""
        try:
            await self.poller.poll(
                prediction_id,
                lambda prediction: self._apply_prediction(generation_id, prediction),
            )
        except PollingTimeoutError as e:
            logger.warning(f"Generation {generation_id} stalled: {e}")
            self.registry.update(
                generation_id,
                status=GenerationStatus.STALLED,
                error=classify_error(e),
            )
        except PollingError as e:
            logger.error(f"Polling failed for generation {generation_id}: {e}")
            self.registry.update(
                generation_id,
                status=GenerationStatus.ERROR,
                error=classify_error(e),
                end_time=self._clock(),
            )

    def _apply_prediction(self, generation_id: str, prediction: Prediction) -> None:
        """Map one observed Prediction onto the registry record."""
        generation = self.registry.find(generation_id)
        if generation is None:
            # Removed from the display while still polling
            return

        status = map_status(prediction.status)
        changes: dict[str, Any] = {"status": status}

        if status == GenerationStatus.COMPLETED:
            changes["video_url"] = prediction.video_url
            changes["end_time"] = self._clock()
            changes["cost"] = self._cost_for(generation)
            changes["error"] = None
        elif status == GenerationStatus.ERROR:
            changes["error"] = classify_error(prediction.error or "Generation failed")
            changes["end_time"] = self._clock()
        elif status == GenerationStatus.CANCELED:
            changes["end_time"] = self._clock()

        if generation.status != status:
            logger.info(f"Generation {generation_id}: {generation.status.value} -> {status.value}")

        self.registry.update(generation_id, **changes)

    def _cost_for(self, generation: Generation) -> Optional[float]:
        model = self._model_lookup(generation.model_id)
        if model is None:
            return None
        return round(estimate_cost(model, generation.parameters), 4)

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def _require(self, generation_id: str) -> Generation:
        generation = self.registry.find(generation_id)
        if generation is None:
            raise NotFoundError(f"Generation {generation_id} not found")
        return generation

    async def cancel(self, generation_id: str) -> None:
        """
        Request cancellation of a generation.

        The poll loop is left running; it sees "canceled" on its next fetch.
        """
        generation = self._require(generation_id)
        if generation.prediction_id is None:
            self.registry.update(
                generation_id,
                status=GenerationStatus.CANCELED,
                end_time=self._clock(),
            )
            return

        await self.client.cancel_prediction(generation.prediction_id)

    async def refresh(self, generation_id: str) -> Generation:
        """
        Fetch the remote status once and apply it.

        A stalled job that turns out to be still running gets its poll loop
        back.
        """
        generation = self._require(generation_id)
        if generation.prediction_id is None:
            return generation

        prediction = await self.client.get_prediction(generation.prediction_id)
        self._apply_prediction(generation_id, prediction)

        if not prediction.is_terminal and generation_id not in self._tasks:
            logger.info(f"Resuming polling for generation {generation_id}")
            self._schedule_tracking(generation_id, generation.prediction_id)

        return self.registry.find(generation_id)

    async def wait(self, generation_id: str) -> Optional[Generation]:
        """Wait for the poll loop of one generation, then return its record."""
        task = self._tasks.get(generation_id)
        if task is not None:
            await task
        return self.registry.find(generation_id)

    async def wait_all(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks)

    async def aclose(self) -> None:
        """Stop every poll loop and release the HTTP client."""
        for task in list(self._tasks.values()):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()
        await self.client.close()
