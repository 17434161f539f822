"""
User-facing error messages.

Turns raw error text (or exceptions) into one short, actionable sentence.
Rules are checked in order; the rarer, more specific signals come first so a
network failure is never reported as a generic timeout.
"""

from typing import Optional, Union

GENERIC_MESSAGE = "An unexpected error occurred. Please try again."
POLLING_TIMEOUT_MESSAGE = (
    "Video generation is taking longer than expected. "
    "The job may still complete; check its status again shortly."
)
NETWORK_MESSAGE = "Network error: unable to reach the server. Check your connection and try again."
AUTH_MESSAGE = "Invalid or missing API key. Check your Replicate API key configuration."
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment before starting another generation."
TIMEOUT_MESSAGE = "The request took too long to complete. Please try again."

MAX_PASSTHROUGH_LENGTH = 200

_NETWORK_SIGNALS = ("network", "fetch", "connection", "failed to fetch")
_AUTH_SIGNALS = ("api key", "authentication", "unauthorized", "401")
_RATE_LIMIT_SIGNALS = ("rate limit", "too many requests", "429", "quota")
_SPECIFIC_SIGNALS = ("invalid", "validation", "required", "missing")
_TIMEOUT_SIGNALS = ("timeout", "timed out")


def _message_of(error: Union[BaseException, str, object]) -> str:
    if isinstance(error, str):
        return error
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)


def classify_error(error: Optional[Union[BaseException, str, object]]) -> str:
    """
    Map an error to the sentence shown to the user.

    Args:
        error: Exception, plain message, or None

    Returns:
        A category message, or the original message when it is already
        specific (validation problems) or short enough to show as-is.
    """
    if error is None:
        return GENERIC_MESSAGE

    message = _message_of(error)
    lowered = message.lower()

    if "polling timeout" in lowered:
        return POLLING_TIMEOUT_MESSAGE
    if any(signal in lowered for signal in _NETWORK_SIGNALS):
        return NETWORK_MESSAGE
    if any(signal in lowered for signal in _AUTH_SIGNALS):
        return AUTH_MESSAGE
    if any(signal in lowered for signal in _RATE_LIMIT_SIGNALS):
        return RATE_LIMIT_MESSAGE
    if any(signal in lowered for signal in _SPECIFIC_SIGNALS):
        return message
    if any(signal in lowered for signal in _TIMEOUT_SIGNALS):
        return TIMEOUT_MESSAGE

    if message and len(message) < MAX_PASSTHROUGH_LENGTH:
        return message
    return GENERIC_MESSAGE
