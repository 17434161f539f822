"""
Model Catalog

Static description of the video models reachable through the Replicate proxy:
capabilities, parameter schema, pricing and performance hints.

Loaded once at import time and never mutated. Everything here is frozen so
callers can share entries freely.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

Primitive = Union[str, int, float, bool]


class ParameterType(str, Enum):
    """Declared type of a model parameter."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"


class PricingUnit(str, Enum):
    PER_SECOND = "per second"
    PER_VIDEO = "per video"


@dataclass(frozen=True)
class ParameterOption:
    value: Union[str, int, float]
    label: str


@dataclass(frozen=True)
class Parameter:
    """
    One input accepted by a model.

    A select parameter must declare at least one option, and its default
    (when set) must be one of the option values.
    """
    name: str
    type: ParameterType
    description: str = ""
    default: Optional[Primitive] = None
    required: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    options: tuple[ParameterOption, ...] = ()

    def __post_init__(self):
        if self.type == ParameterType.SELECT:
            if not self.options:
                raise ValueError(f"Select parameter '{self.name}' needs at least one option")
            if self.default is not None and self.default not in self.option_values:
                raise ValueError(
                    f"Default {self.default!r} of '{self.name}' is not one of its options"
                )

    @property
    def option_values(self) -> list:
        return [option.value for option in self.options]


@dataclass(frozen=True)
class Capabilities:
    text_to_video: bool = True
    image_to_video: bool = False
    audio: bool = False
    timestamp_control: bool = False


@dataclass(frozen=True)
class Pricing:
    estimated_cost: float  # USD per unit
    unit: PricingUnit = PricingUnit.PER_SECOND


@dataclass(frozen=True)
class Performance:
    avg_generation_time: int  # seconds
    max_duration: int  # seconds of output video
    resolutions: tuple[str, ...] = ("1080p",)
    frame_rates: tuple[int, ...] = (30,)


@dataclass(frozen=True)
class Model:
    """Catalog entry. `id` is the provider's "owner/name" identifier."""
    id: str
    name: str
    description: str
    capabilities: Capabilities
    parameters: tuple[Parameter, ...]
    pricing: Pricing
    performance: Performance
    version: str = "latest"

    @property
    def owner(self) -> str:
        return self.id.split("/", 1)[0]

    def get_parameter(self, name: str) -> Optional[Parameter]:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def default_values(self) -> dict[str, Any]:
        """Parameter defaults, skipping those without one."""
        return {p.name: p.default for p in self.parameters if p.default is not None}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "description": self.description,
            "capabilities": {
                "textToVideo": self.capabilities.text_to_video,
                "imageToVideo": self.capabilities.image_to_video,
                "audio": self.capabilities.audio,
                "timestampControl": self.capabilities.timestamp_control,
            },
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type.value,
                    "description": p.description,
                    "default": p.default,
                    "required": p.required,
                    "min": p.min,
                    "max": p.max,
                    "options": [{"value": o.value, "label": o.label} for o in p.options],
                }
                for p in self.parameters
            ],
            "pricing": {
                "estimatedCost": self.pricing.estimated_cost,
                "unit": self.pricing.unit.value,
            },
            "performance": {
                "avgGenerationTime": self.performance.avg_generation_time,
                "maxDuration": self.performance.max_duration,
                "resolutions": list(self.performance.resolutions),
                "frameRates": list(self.performance.frame_rates),
            },
        }


def _prompt(description: str = "Text prompt") -> Parameter:
    return Parameter(
        name="prompt",
        type=ParameterType.STRING,
        description=description,
        default="",
        required=True,
    )


def _duration(default: int, maximum: int) -> Parameter:
    return Parameter(
        name="duration",
        type=ParameterType.NUMBER,
        description="Video duration in seconds",
        default=default,
        min=1,
        max=maximum,
    )


def _aspect_ratio(labels: bool = True) -> Parameter:
    values = [("16:9", "Landscape"), ("9:16", "Portrait"), ("1:1", "Square")]
    return Parameter(
        name="aspect_ratio",
        type=ParameterType.SELECT,
        description="Video aspect ratio",
        default="16:9",
        options=tuple(
            ParameterOption(value, f"{value} ({label})" if labels else value)
            for value, label in values
        ),
    )


AVAILABLE_MODELS: tuple[Model, ...] = (
    Model(
        id="google/veo-3",
        name="Google Veo 3.1",
        description="High-quality text-to-video generation with advanced temporal coherence",
        capabilities=Capabilities(timestamp_control=True),
        parameters=(
            _prompt("Text prompt describing the video to generate"),
            _duration(5, 60),
            _aspect_ratio(),
        ),
        pricing=Pricing(0.15),
        performance=Performance(120, 60),
    ),
    Model(
        id="kling-ai/kling-2.5-turbo-pro",
        name="Kling 2.5 Turbo Pro",
        description="Fast premium text-to-video with high fidelity and smooth motion",
        capabilities=Capabilities(image_to_video=True, timestamp_control=True),
        parameters=(
            _prompt("Text prompt describing the video"),
            _duration(5, 10),
            _aspect_ratio(labels=False),
        ),
        pricing=Pricing(0.12),
        performance=Performance(90, 10, frame_rates=(24, 30)),
    ),
    Model(
        id="wan-video/wan-2.5-t2v",
        name="Wan 2.5 T2V",
        description="High-quality text-to-video generation with excellent detail",
        capabilities=Capabilities(),
        parameters=(_prompt(), _duration(5, 8)),
        pricing=Pricing(0.10),
        performance=Performance(100, 8),
    ),
    Model(
        id="hailuo-ai/hailuo-2.3",
        name="Hailuo 2.3",
        description="Fast text-to-video generation with good quality",
        capabilities=Capabilities(),
        parameters=(_prompt(), _duration(5, 10)),
        pricing=Pricing(0.08),
        performance=Performance(80, 10, ("720p", "1080p"), (24, 30)),
    ),
    Model(
        id="pixverse/pixverse-v4",
        name="PixVerse v4",
        description="Versatile text-to-video model with good motion control",
        capabilities=Capabilities(image_to_video=True),
        parameters=(_prompt(), _duration(4, 6)),
        pricing=Pricing(0.09),
        performance=Performance(70, 6, ("720p", "1080p"), (24, 30)),
    ),
    Model(
        id="seedance/seedance-1-pro",
        name="Seedance 1 Pro",
        description="Professional-grade text-to-video with advanced features",
        capabilities=Capabilities(timestamp_control=True),
        parameters=(_prompt(), _duration(5, 10)),
        pricing=Pricing(0.11),
        performance=Performance(95, 10),
    ),
    Model(
        id="wan-video/wan-2.2-fast",
        name="Wan 2.2 Fast",
        description="Speed-optimized text-to-video for fast iterations",
        capabilities=Capabilities(),
        parameters=(_prompt(), _duration(4, 6)),
        pricing=Pricing(0.05),
        performance=Performance(45, 6, ("720p", "1080p"), (24, 30)),
    ),
    Model(
        id="google/veo-3-fast",
        name="Veo 3 Fast",
        description="Fast version of Veo 3 for quick iterations",
        capabilities=Capabilities(),
        parameters=(_prompt(), _duration(4, 8)),
        pricing=Pricing(0.07),
        performance=Performance(60, 8, ("720p", "1080p"), (24, 30)),
    ),
    Model(
        id="ltx-video/ltx-video",
        name="LTX-Video",
        description="Cost-effective text-to-video model for development and testing",
        capabilities=Capabilities(),
        parameters=(_prompt(), _duration(3, 5)),
        pricing=Pricing(0.03),
        performance=Performance(40, 5, ("720p",), (24,)),
    ),
    Model(
        id="minimax/video-01",
        name="Minimax video-01",
        description="Balanced text-to-video model with good quality and reasonable speed",
        capabilities=Capabilities(),
        parameters=(_prompt(), _duration(5, 10)),
        pricing=Pricing(0.06),
        performance=Performance(75, 10, ("720p", "1080p"), (24, 30)),
    ),
)

_MODELS_BY_ID = {model.id: model for model in AVAILABLE_MODELS}


def get_model_by_id(model_id: str) -> Optional[Model]:
    """Look up a model, returning None for unknown or since-removed ids."""
    return _MODELS_BY_ID.get(model_id)


def get_models_by_capability(capability: str) -> list[Model]:
    """Models whose capability flag (e.g. "image_to_video") is set."""
    return [model for model in AVAILABLE_MODELS if getattr(model.capabilities, capability, False)]


def get_all_models() -> list[Model]:
    return list(AVAILABLE_MODELS)


def estimate_cost(model: Model, parameters: Optional[dict] = None) -> float:
    """
    Estimate the USD cost of one generation.

    Per-second pricing multiplies by the requested duration, falling back to
    the model's default duration when none (or a non-number) was given.
    """
    if model.pricing.unit == PricingUnit.PER_VIDEO:
        return model.pricing.estimated_cost

    duration = (parameters or {}).get("duration")
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        duration_param = model.get_parameter("duration")
        duration = duration_param.default if duration_param and duration_param.default else 1
    return model.pricing.estimated_cost * float(duration)
