"""
Configuration

- settings: process-level runtime settings (pydantic-settings, env vars)
- project: .cosmwasm-guard.toml
- suppression: inline ignore comments and finding filters
"""

from .project import CONFIG_FILE_NAME, DetectorConfig, GlobalConfig, ProjectConfig, SuppressionConfig
from .settings import Settings, get_settings
from .suppression import (
    apply_severity_overrides,
    apply_suppressions,
    extract_suppression_comment,
    parse_inline_suppressions,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DetectorConfig",
    "GlobalConfig",
    "ProjectConfig",
    "Settings",
    "SuppressionConfig",
    "apply_severity_overrides",
    "apply_suppressions",
    "extract_suppression_comment",
    "get_settings",
    "parse_inline_suppressions",
]
