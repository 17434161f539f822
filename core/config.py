"""
Configuration management for the video generation tester.

Centralizes all configuration including:
- Upstream provider credentials and endpoints (server-side only)
- Boundary proxy location
- Polling cadence and retry budget
- Concurrency gate
"""

import os
from dataclasses import dataclass, field
from typing import Optional

# Values copied from .env templates that should count as "not configured"
PLACEHOLDER_KEYS = ("your_replicate_api_key", "your_api_key")


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass
class APIConfig:
    """Upstream provider configuration. Never sent to the browser."""

    replicate_api_key: str = field(
        default_factory=lambda: os.getenv("REPLICATE_API_KEY") or os.getenv("REPLICATE_API_TOKEN", "")
    )
    replicate_api_base: str = field(
        default_factory=lambda: os.getenv("REPLICATE_API_BASE", "https://api.replicate.com/v1")
    )
    request_timeout: float = field(default_factory=lambda: _env_float("REPLICATE_TIMEOUT", 60.0))


@dataclass
class ProxyConfig:
    """Where the boundary proxy listens and how clients reach it."""
    host: str = field(default_factory=lambda: os.getenv("VIDEO_TESTER_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _env_int("VIDEO_TESTER_PORT", 8765))
    base_url: str = field(
        default_factory=lambda: os.getenv("VIDEO_TESTER_PROXY_URL", "http://127.0.0.1:8765/api")
    )
    request_timeout: float = 30.0


@dataclass
class PollingConfig:
    """Status polling cadence (seconds)."""
    initial_delay: float = field(default_factory=lambda: _env_float("POLL_INITIAL_DELAY", 2.0))
    interval: float = field(default_factory=lambda: _env_float("POLL_INTERVAL", 3.0))
    max_attempts: int = field(default_factory=lambda: _env_int("POLL_MAX_ATTEMPTS", 400))


@dataclass
class RetryConfig:
    """Backoff for transient upstream failures (boundary -> provider hop only)."""
    max_retries: int = 3
    initial_delay: float = 1.0  # 1s, 2s, 4s


@dataclass
class Config:
    """Main configuration class."""

    api: APIConfig = field(default_factory=APIConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    # Advisory admission gate, checked before submit
    max_concurrent_generations: int = field(
        default_factory=lambda: _env_int("MAX_CONCURRENT_GENERATIONS", 5)
    )

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls()

    def has_api_key(self) -> bool:
        """True when a real (non-placeholder) upstream key is configured."""
        key = (self.api.replicate_api_key or "").strip()
        if not key:
            return False
        return not any(placeholder in key for placeholder in PLACEHOLDER_KEYS)

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.has_api_key():
            issues.append("REPLICATE_API_KEY not configured (needed by the proxy server)")

        if self.polling.max_attempts < 1:
            issues.append("POLL_MAX_ATTEMPTS must be at least 1")

        if self.max_concurrent_generations < 1:
            issues.append("MAX_CONCURRENT_GENERATIONS must be at least 1")

        return issues


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    _config = Config.from_env()
    return _config
