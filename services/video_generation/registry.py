"""
Generation Registry

Single source of truth for every generation in the session. The display
renders from it and the orchestrator writes to it.

Each mutation commits a brand-new RegistryState; snapshots handed out
earlier never change under their holders. The active count is derived
from the items, never stored on its own.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    """Local lifecycle status of a generation."""
    IDLE = "idle"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELED = "canceled"
    STALLED = "stalled"  # polling gave up; the job may still finish remotely


ACTIVE_STATUSES = frozenset({GenerationStatus.QUEUED, GenerationStatus.PROCESSING})
FINISHED_STATUSES = frozenset({
    GenerationStatus.COMPLETED,
    GenerationStatus.ERROR,
    GenerationStatus.CANCELED,
})

# Fields that identify a generation and cannot be changed by update()
_IMMUTABLE_FIELDS = ("id", "model_id")


@dataclass(frozen=True)
class Generation:
    """One user-initiated video generation and its tracked state."""
    id: str
    model_id: str
    parameters: dict[str, Any] = field(default_factory=dict)
    status: GenerationStatus = GenerationStatus.IDLE
    video_url: Optional[str] = None
    error: Optional[str] = None
    start_time: Optional[float] = None  # epoch seconds
    end_time: Optional[float] = None
    cost: Optional[float] = None  # USD
    prediction_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def elapsed_seconds(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return max(0.0, self.end_time - self.start_time)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "model_id": self.model_id,
            "parameters": dict(self.parameters),
            "status": self.status.value,
            "video_url": self.video_url,
            "error": self.error,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "cost": self.cost,
            "prediction_id": self.prediction_id,
        }


@dataclass(frozen=True)
class RegistryState:
    """Immutable snapshot of the registry."""
    items: tuple[Generation, ...] = ()

    @property
    def active_count(self) -> int:
        return sum(1 for gen in self.items if gen.status in ACTIVE_STATUSES)

    @property
    def session_cost(self) -> float:
        return sum(gen.cost for gen in self.items if gen.cost is not None)

    def find(self, generation_id: str) -> Optional[Generation]:
        for gen in self.items:
            if gen.id == generation_id:
                return gen
        return None

    def find_by_prediction(self, prediction_id: str) -> Optional[Generation]:
        for gen in self.items:
            if gen.prediction_id == prediction_id:
                return gen
        return None


Listener = Callable[[RegistryState], None]


class GenerationRegistry:
    """
    Holds the ordered collection of generations.

    Usage:
        registry = GenerationRegistry()
        unsubscribe = registry.subscribe(lambda state: render(state))

        registry.add(Generation(id="gen-1", model_id="google/veo-3", status=GenerationStatus.QUEUED))
        registry.update("gen-1", status=GenerationStatus.PROCESSING)
        print(registry.active_count)

    Instances are independent; create one per display or per test.
    """

    def __init__(self, items: tuple[Generation, ...] = ()):
        self._state = RegistryState(items=tuple(items))
        self._listeners: list[Listener] = []

    def get(self) -> RegistryState:
        """Current snapshot. Do not hold it across an await and expect it current."""
        return self._state

    @property
    def items(self) -> tuple[Generation, ...]:
        return self._state.items

    @property
    def active_count(self) -> int:
        return self._state.active_count

    def find(self, generation_id: str) -> Optional[Generation]:
        return self._state.find(generation_id)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with each new snapshot, in commit order.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, items: tuple[Generation, ...]) -> RegistryState:
        self._state = RegistryState(items=items)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.warning(f"Registry listener failed: {e}")
        return self._state

    def add(self, generation: Generation) -> RegistryState:
        return self._commit(self._state.items + (generation,))

    def update(self, generation_id: str, **changes: Any) -> RegistryState:
        """
        Merge field changes into one generation.

        Unknown ids are ignored. `id` and `model_id` cannot be changed.
        """
        for name in _IMMUTABLE_FIELDS:
            if name in changes:
                raise ValueError(f"Cannot update '{name}' of a generation")

        if self._state.find(generation_id) is None:
            return self._state

        items = tuple(
            dataclasses.replace(gen, **changes) if gen.id == generation_id else gen
            for gen in self._state.items
        )
        return self._commit(items)

    def remove(self, generation_id: str) -> RegistryState:
        return self._commit(tuple(gen for gen in self._state.items if gen.id != generation_id))

    def clear_completed(self) -> RegistryState:
        """Drop completed, errored and canceled generations. Stalled ones stay."""
        return self._commit(
            tuple(gen for gen in self._state.items if gen.status not in FINISHED_STATUSES)
        )

    def clear_all(self) -> RegistryState:
        return self._commit(())
