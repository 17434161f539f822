"""
Status Poller

Polls one prediction at a fixed cadence until it reaches a terminal status.

Fixed interval rather than exponential: generation takes tens of seconds
to a few minutes, and a regular cadence keeps the display responsive. The
attempt cap bounds the work spent on a job stuck server-side.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.config import Config, get_config
from core.errors import PollingError, PollingTimeoutError

from .client import PredictionsClient
from .predictions import Prediction

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Prediction], None]


class StatusPoller:
    """
    Drives the status loop for a single prediction id.

    The poller only knows the remote id and a callback; it never holds the
    local Generation record.

    Usage:
        poller = StatusPoller(client)
        final = await poller.poll(prediction.id, on_update=lambda p: print(p.status))
    """

    def __init__(
        self,
        client: PredictionsClient,
        config: Optional[Config] = None,
        initial_delay: Optional[float] = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        polling = (config or get_config()).polling
        self.client = client
        self.initial_delay = polling.initial_delay if initial_delay is None else initial_delay
        self.interval = polling.interval if interval is None else interval
        self.max_attempts = polling.max_attempts if max_attempts is None else max_attempts
        self._sleep = sleep

    async def poll(self, prediction_id: str, on_update: UpdateCallback) -> Prediction:
        """
        Poll until terminal, reporting every observation.

        Args:
            prediction_id: Remote id returned at submission
            on_update: Called synchronously with each fetched snapshot,
                intermediate ones included, in fetch order

        Returns:
            The terminal Prediction (succeeded, failed or canceled)

        Raises:
            PollingError: the boundary failed or returned an invalid shape
            PollingTimeoutError: max_attempts fetches without a terminal status
        """
        # Give the provider time to register the job before the first fetch
        await self._sleep(self.initial_delay)

        attempts = 0
        while attempts < self.max_attempts:
            prediction = await self.client.get_prediction(prediction_id)

            try:
                on_update(prediction)
            except Exception as e:
                raise PollingError(str(e)) from e

            if prediction.is_terminal:
                logger.info(f"Prediction {prediction_id} finished: {prediction.status}")
                return prediction

            await self._sleep(self.interval)
            attempts += 1

        logger.warning(f"Prediction {prediction_id} still not terminal after {attempts} attempts")
        raise PollingTimeoutError(self.max_attempts)
