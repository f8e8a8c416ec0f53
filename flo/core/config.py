"""Configuration dataclasses for the Flo client.

Environment variables override defaults; nothing is read from disk.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_API_URL = "https://startup-flo-backend.onrender.com"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class ApiConfig:
    """Backend connection settings."""
    base_url: str = DEFAULT_API_URL
    timeout: float = 15.0
    headers: dict = field(
        default_factory=lambda: {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )

    @classmethod
    def from_env(cls):
        return cls(
            base_url=os.environ.get("FLO_API_URL", DEFAULT_API_URL).rstrip("/"),
            timeout=_env_float("FLO_API_TIMEOUT", 15.0),
        )


@dataclass
class CacheConfig:
    """Time-to-live tiers, in seconds.

    Short TTL is for frequently mutated collections (transactions,
    activities, assignments); long TTL for slowly changing reference data
    (categories, stages, pipelines).
    """
    short_ttl: float = 5 * 60
    long_ttl: float = 15 * 60

    @classmethod
    def from_env(cls):
        return cls(
            short_ttl=_env_float("FLO_CACHE_SHORT_TTL", 5 * 60),
            long_ttl=_env_float("FLO_CACHE_LONG_TTL", 15 * 60),
        )


@dataclass
class StorageConfig:
    """Location of the persistent key-value database."""
    db_path: Path = field(default_factory=lambda: Path.home() / ".flo" / "state.db")

    @classmethod
    def from_env(cls):
        raw = os.environ.get("FLO_STATE_DB", "")
        return cls(db_path=Path(raw).expanduser()) if raw else cls()


@dataclass
class AppConfig:
    """Top-level config composing all sub-configs."""
    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_env(cls):
        """Create config from environment variables."""
        return cls(
            api=ApiConfig.from_env(),
            cache=CacheConfig.from_env(),
            storage=StorageConfig.from_env(),
        )
