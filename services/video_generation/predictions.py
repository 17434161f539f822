"""
Prediction wire schema.

The canonical job record exchanged between the boundary proxy and the
orchestrator. Responses are checked for the minimum shape (string id and
status) before anything else is trusted, then optional fields are normalized
to "" or None so downstream code never branches on missing keys.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.errors import InvalidResponseError


class PredictionStatus(str, Enum):
    """Status of a prediction as reported by the provider."""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = frozenset({
    PredictionStatus.SUCCEEDED.value,
    PredictionStatus.FAILED.value,
    PredictionStatus.CANCELED.value,
})


class PredictionMetrics(BaseModel):
    model_config = ConfigDict(extra="ignore")

    predict_time: Optional[float] = None
    total_time: Optional[float] = None


class PredictionUrls(BaseModel):
    model_config = ConfigDict(extra="ignore")

    get: str = ""
    cancel: str = ""
    stream: Optional[str] = None

    @field_validator("get", "cancel", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or ""


class Prediction(BaseModel):
    """One remote generation job."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    input: dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    error: Optional[str] = None
    logs: Optional[str] = None
    metrics: Optional[PredictionMetrics] = None
    created_at: str = ""
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    version: str = ""
    urls: PredictionUrls = Field(default_factory=PredictionUrls)

    @field_validator("output", "error", "logs", "started_at", "completed_at", mode="before")
    @classmethod
    def _falsy_to_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("error", mode="before")
    @classmethod
    def _stringify_error(cls, value: Any) -> Any:
        # Providers occasionally send structured errors
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @field_validator("input", "urls", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any) -> Any:
        return value if value is not None else {}

    @field_validator("created_at", "version", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or ""

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def video_url(self) -> Optional[str]:
        """First URL found in the output, if any."""
        return extract_video_url(self.output)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


def extract_video_url(output: Any) -> Optional[str]:
    """
    Pull a video URL out of a provider output.

    Models return a bare URL, a list of URLs, or a mapping such as
    {"video": url}.
    """
    if isinstance(output, str):
        return output or None
    if isinstance(output, (list, tuple)):
        for item in output:
            url = extract_video_url(item)
            if url:
                return url
        return None
    if isinstance(output, dict):
        for key in ("video", "url", "output"):
            url = extract_video_url(output.get(key))
            if url:
                return url
        for value in output.values():
            url = extract_video_url(value)
            if url:
                return url
    return None


def parse_prediction(data: Any) -> Prediction:
    """
    Validate and normalize a raw Prediction payload.

    Raises:
        InvalidResponseError: payload is not an object with string id and status,
            or its optional fields have unusable types
    """
    if not isinstance(data, dict):
        raise InvalidResponseError()
    if not isinstance(data.get("id"), str) or not isinstance(data.get("status"), str):
        raise InvalidResponseError()

    try:
        return Prediction.model_validate(data)
    except ValueError as e:
        raise InvalidResponseError(f"Invalid API response: {e}") from e
