"""
Runtime settings

Environment variables use the COSMWASM_GUARD_ prefix.
Example: COSMWASM_GUARD_LOG_LEVEL=DEBUG, COSMWASM_GUARD_CACHE_DIR=/tmp/guard-cache
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cosmwasm_guard.detector.registry import DEFAULT_PARALLEL_THRESHOLD

DEFAULT_CACHE_DIR = ".cosmwasm-guard-cache"


class Settings(BaseSettings):
    """Process-level settings (logging, cache, detector fan-out)"""

    model_config = SettingsConfigDict(
        env_prefix="COSMWASM_GUARD_",
        extra="ignore",
    )

    # Logging
    log_level: str = "WARNING"
    log_format: Literal["console", "json"] = "console"

    # Incremental cache
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    cache_enabled: bool = True

    # Detector execution: fan out to threads at this many selected detectors (0 disables)
    parallel_threshold: int = Field(default=DEFAULT_PARALLEL_THRESHOLD, ge=0)


def get_settings() -> Settings:
    """Read settings from the current environment"""
    return Settings()
