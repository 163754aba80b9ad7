"""
Project configuration (.cosmwasm-guard.toml)

    [global]
    severity_threshold = "low"      # high | medium | low | info(rmational)
    output_format = "text"          # text | json | sarif

    [detectors.unsafe-unwrap]
    enabled = false
    severity = "low"                # overrides the detector's severity

    [suppressions]
    files = ["tests/**"]            # glob patterns of files whose findings are dropped
"""

import fnmatch
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cosmwasm_guard.errors import ConfigError, GuardError
from cosmwasm_guard.finding import Severity
from cosmwasm_guard.observability import get_logger

logger = get_logger(__name__)

CONFIG_FILE_NAME = ".cosmwasm-guard.toml"

DEFAULT_TOML = """\
# cosmwasm-guard configuration

[global]
# Minimum severity to report: "high", "medium", "low", "informational"
severity_threshold = "low"
# Output format: "text", "json", "sarif"
output_format = "text"

# Per-detector overrides
# [detectors.unsafe-unwrap]
# enabled = false

# [detectors.missing-addr-validate]
# severity = "low"

[suppressions]
# Glob patterns for files to skip entirely
files = ["tests/**", "examples/**"]
"""


def _check_severity(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        Severity.parse(value)
    except GuardError as e:
        raise ValueError(e.message) from e
    return value


class GlobalConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    severity_threshold: str = "low"
    output_format: Literal["text", "json", "sarif"] = "text"

    @field_validator("severity_threshold")
    @classmethod
    def validate_threshold(cls, value: str) -> str:
        return _check_severity(value)


class DetectorConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool | None = None
    severity: str | None = None

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, value: str | None) -> str | None:
        return _check_severity(value)


class SuppressionConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    files: list[str] = Field(default_factory=list)


class ProjectConfig(BaseModel):
    """Validated contents of .cosmwasm-guard.toml; a missing file means defaults"""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    detectors: dict[str, DetectorConfig] = Field(default_factory=dict)
    suppressions: SuppressionConfig = Field(default_factory=SuppressionConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> "ProjectConfig":
        """
        Load a config file.

        Raises:
            ConfigError: If the file is unreadable, not TOML, or fails validation
        """
        path = Path(path) if path is not None else Path(CONFIG_FILE_NAME)
        if not path.exists():
            return cls()

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read config: {e}", path=str(path)) from e

        config = cls.from_toml(text, source=str(path))
        logger.debug("config_loaded", path=str(path), detectors=len(config.detectors))
        return config

    @classmethod
    def from_toml(cls, text: str, source: str = "<string>") -> "ProjectConfig":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML: {e}", path=source) from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e.errors()[0]['msg']}", path=source) from e

    @staticmethod
    def default_toml() -> str:
        return DEFAULT_TOML

    # ============================================================
    # Queries
    # ============================================================

    def is_detector_enabled(self, name: str) -> bool:
        detector = self.detectors.get(name)
        if detector is None or detector.enabled is None:
            return True
        return detector.enabled

    @property
    def severity_threshold(self) -> Severity:
        return Severity.parse(self.global_.severity_threshold)

    def severity_override(self, name: str) -> Severity | None:
        detector = self.detectors.get(name)
        if detector is None or detector.severity is None:
            return None
        return Severity.parse(detector.severity)

    def is_file_excluded(self, file_path: str) -> bool:
        """Glob match against the path as given, or any of its trailing sub-paths"""
        path = Path(file_path).as_posix()
        return any(
            fnmatch.fnmatchcase(path, pattern) or fnmatch.fnmatchcase(path, f"*/{pattern}")
            for pattern in self.suppressions.files
        )
