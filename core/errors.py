"""
Error taxonomy shared by the orchestrator and the boundary proxy.

Categories:
- ValidationError: local pre-flight parameter problems (never sent over the wire)
- RequestError: malformed request rejected at the boundary
- AuthError: credential missing or invalid
- RateLimitError: upstream throttling
- TransientUpstreamError: 502/503/504 from the provider (retried at the boundary)
- NotFoundError: unknown model or prediction id
- PollingTimeoutError: polling budget exhausted before a terminal state
- UnknownError: fallback

Client-side wrappers (SubmissionError, PollingError, CancellationError) add
context to whatever went wrong and keep the original error as __cause__.
"""

from typing import Optional

TRANSIENT_STATUS_CODES = frozenset({502, 503, 504})


class VideoTesterError(Exception):
    """Base class for every error raised by this project."""

    category = "unknown"
    default_status = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        super().__init__(message)

    def to_dict(self) -> dict:
        """JSON error payload returned by the boundary."""
        return {"error": self.message, "statusCode": self.status_code}


class ValidationError(VideoTesterError):
    """Parameter values failed validation against the model schema."""

    category = "validation"
    default_status = 400

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = list(errors or [])
        super().__init__(message)


class RequestError(VideoTesterError):
    category = "request"
    default_status = 400


class AuthError(VideoTesterError):
    category = "auth"
    default_status = 401


class RateLimitError(VideoTesterError):
    category = "rate_limit"
    default_status = 429


class TransientUpstreamError(VideoTesterError):
    category = "transient"
    default_status = 503


class NotFoundError(VideoTesterError):
    category = "not_found"
    default_status = 404


class UnknownError(VideoTesterError):
    category = "unknown"


class ConcurrencyLimitError(VideoTesterError):
    """Raised by the admission gate when too many generations are active."""

    category = "concurrency"
    default_status = 429

    def __init__(self, active: int, limit: int):
        self.active = active
        self.limit = limit
        super().__init__(
            f"Too many active generations ({active}/{limit}). "
            "Wait for one to finish before starting another."
        )


class UpstreamError(Exception):
    """Raw non-2xx response from the upstream provider API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Upstream error {status_code}: {message}")


class InvalidResponseError(VideoTesterError):
    """Boundary response did not carry the minimum Prediction shape."""

    def __init__(self, message: str = "Invalid API response: missing required fields"):
        super().__init__(message, status_code=502)


class SubmissionError(VideoTesterError):
    """Creating a prediction failed. Wraps the root cause."""

    prefix = "Failed to start video generation"

    def __init__(self, cause_message: str, status_code: Optional[int] = None):
        self.cause_message = cause_message
        super().__init__(f"{self.prefix}: {cause_message}", status_code=status_code)


class PollingError(SubmissionError):
    prefix = "Failed to poll generation status"


class CancellationError(SubmissionError):
    prefix = "Failed to cancel generation"


class PollingTimeoutError(PollingError):
    """Polling budget exhausted without reaching a terminal status."""

    category = "timeout"
    default_status = 504

    def __init__(self, attempts: int):
        self.attempts = attempts
        self.cause_message = f"Polling timeout: Generation did not complete within {attempts} attempts"
        VideoTesterError.__init__(self, self.cause_message)


def error_for_status(status_code: int, message: str) -> VideoTesterError:
    """
    Map an upstream HTTP status onto the taxonomy with a user-facing message.

    401 -> AuthError, 429 -> RateLimitError, 502/503/504 -> TransientUpstreamError,
    404 -> NotFoundError, other 4xx keep their code, anything else becomes 500.
    """
    if status_code == 401:
        return AuthError("Invalid API key. Check the REPLICATE_API_KEY configured on the server.")
    if status_code == 429:
        return RateLimitError("Rate limit exceeded. Please wait before starting another generation.")
    if status_code in TRANSIENT_STATUS_CODES:
        return TransientUpstreamError(
            "Upstream provider temporarily unavailable. Please try again in a moment.",
            status_code=status_code,
        )
    if status_code == 404:
        return NotFoundError(message)
    if 400 <= status_code < 500:
        return RequestError(message, status_code=status_code)
    return UnknownError(message, status_code=500)
