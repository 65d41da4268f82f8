"""
Service configuration.

Values come from the environment (optionally seeded from a .env file) so the
same code runs against the hosted store, a local emulator, or tests.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .env import load_env

DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_CACHE_MAX_SIZE = 50
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_COLLECTION = "jobs"
DEFAULT_REQUEST_TIMEOUT = 15.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class ServiceConfig:
    """Tunables for the cache, retry policy and remote store."""

    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    cache_max_size: int = DEFAULT_CACHE_MAX_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    collection: str = DEFAULT_COLLECTION
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    project_id: Optional[str] = None
    api_key: Optional[str] = None

    def __post_init__(self):
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.cache_max_size < 1:
            raise ValueError("cache_max_size must be at least 1")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds cannot be negative")

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "ServiceConfig":
        """
        Build configuration from environment variables.

        Args:
            load_dotenv_file: Load ./.env first (existing variables win)

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        if load_dotenv_file:
            load_env()

        log_dir = os.getenv("JOBBOARD_LOG_DIR")
        return cls(
            cache_ttl_seconds=_env_float("JOBBOARD_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
            cache_max_size=_env_int("JOBBOARD_CACHE_MAX_SIZE", DEFAULT_CACHE_MAX_SIZE),
            max_retries=_env_int("JOBBOARD_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            retry_delay_seconds=_env_float("JOBBOARD_RETRY_DELAY_SECONDS", DEFAULT_RETRY_DELAY_SECONDS),
            collection=os.getenv("JOBBOARD_COLLECTION") or DEFAULT_COLLECTION,
            log_level=os.getenv("JOBBOARD_LOG_LEVEL") or "INFO",
            log_dir=Path(log_dir) if log_dir else None,
            request_timeout=_env_float("JOBBOARD_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            project_id=os.getenv("FIREBASE_PROJECT_ID"),
            api_key=os.getenv("FIREBASE_API_KEY"),
        )
