"""
Video Generation Service

Generation lifecycle orchestration against the boundary proxy:
- Catalog and parameter validation (pre-flight)
- Prediction submission and status polling
- Registry of in-flight and finished generations
- User-facing error messages
"""

from .catalog import Model, Parameter, ParameterType, get_model_by_id, get_all_models
from .client import PredictionsClient
from .error_messages import classify_error
from .orchestrator import GenerationOrchestrator
from .poller import StatusPoller
from .predictions import Prediction, PredictionStatus, parse_prediction
from .registry import Generation, GenerationRegistry, GenerationStatus, RegistryState
from .validation import validate_parameter, validate_all_parameters

__all__ = [
    "Model",
    "Parameter",
    "ParameterType",
    "get_model_by_id",
    "get_all_models",
    "PredictionsClient",
    "classify_error",
    "GenerationOrchestrator",
    "StatusPoller",
    "Prediction",
    "PredictionStatus",
    "parse_prediction",
    "Generation",
    "GenerationRegistry",
    "GenerationStatus",
    "RegistryState",
    "validate_parameter",
    "validate_all_parameters",
]
