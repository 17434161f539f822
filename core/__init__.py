"""
Video Generation Tester Core Components

Provides foundational infrastructure shared by the orchestrator and the proxy:
- Configuration loaded from the environment
- Error taxonomy with HTTP status mapping
- Retry with exponential backoff for transient upstream failures
"""

from .config import Config, get_config
from .errors import VideoTesterError, error_for_status
from .retry import with_retry, is_transient_error

__all__ = [
    "Config",
    "get_config",
    "VideoTesterError",
    "error_for_status",
    "with_retry",
    "is_transient_error",
]
