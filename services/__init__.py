"""
Video Generation Tester Services

- video_generation: catalog, validation, submission, polling, registry
- proxy: FastAPI boundary that holds the provider key
"""

from .video_generation import (
    GenerationOrchestrator,
    GenerationRegistry,
    GenerationStatus,
    PredictionsClient,
)

__all__ = [
    "GenerationOrchestrator",
    "GenerationRegistry",
    "GenerationStatus",
    "PredictionsClient",
]
