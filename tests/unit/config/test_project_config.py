"""
Project config and runtime settings tests
"""

import pytest

from cosmwasm_guard.config import CONFIG_FILE_NAME, ProjectConfig, Settings
from cosmwasm_guard.errors import ConfigError
from cosmwasm_guard.finding import Severity


class TestProjectConfig:
    """.cosmwasm-guard.toml loading and queries"""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = ProjectConfig.load(tmp_path / CONFIG_FILE_NAME)

        assert config.severity_threshold == Severity.LOW
        assert config.global_.output_format == "text"
        assert config.is_detector_enabled("anything")
        assert config.detectors == {}

    def test_default_toml_is_valid(self):
        config = ProjectConfig.from_toml(ProjectConfig.default_toml())

        assert config.severity_threshold == Severity.LOW
        assert config.suppressions.files == ["tests/**", "examples/**"]

    def test_detector_sections(self):
        config = ProjectConfig.from_toml(
            """
[global]
severity_threshold = "medium"
output_format = "json"

[detectors.missing-access-control]
enabled = false

[detectors.unsafe-unwrap]
severity = "info"
"""
        )

        assert config.severity_threshold == Severity.MEDIUM
        assert config.global_.output_format == "json"
        assert not config.is_detector_enabled("missing-access-control")
        assert config.is_detector_enabled("unsafe-unwrap")
        assert config.severity_override("unsafe-unwrap") == Severity.INFORMATIONAL
        assert config.severity_override("missing-access-control") is None

    def test_load_from_file(self, tmp_path):
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text('[detectors.unsafe-unwrap]\nenabled = false\n', encoding="utf-8")

        assert not ProjectConfig.load(path).is_detector_enabled("unsafe-unwrap")

    @pytest.mark.parametrize(
        "text",
        [
            "[global\n",
            '[global]\nseverity_threshold = "critical"\n',
            '[global]\noutput_format = "xml"\n',
            '[detectors.x]\nseverity = "urgent"\n',
        ],
    )
    def test_invalid_config(self, text):
        with pytest.raises(ConfigError) as exc_info:
            ProjectConfig.from_toml(text, source="bad.toml")

        assert exc_info.value.code == "CONFIG_ERROR"
        assert exc_info.value.context["path"] == "bad.toml"

    @pytest.mark.parametrize(
        "file,excluded",
        [
            ("tests/helpers.rs", True),
            ("/work/crate/tests/helpers.rs", True),
            ("src/contract.rs", False),
            ("examples/demo/main.rs", True),
        ],
    )
    def test_file_exclusion(self, file, excluded):
        config = ProjectConfig.from_toml('[suppressions]\nfiles = ["tests/**", "examples/**"]\n')

        assert config.is_file_excluded(file) is excluded


class TestSeverity:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("high", Severity.HIGH),
            ("Medium", Severity.MEDIUM),
            (" low ", Severity.LOW),
            ("info", Severity.INFORMATIONAL),
            ("Informational", Severity.INFORMATIONAL),
        ],
    )
    def test_parse(self, text, expected):
        assert Severity.parse(text) == expected

    def test_parse_rejects_unknown(self):
        with pytest.raises(ConfigError):
            Severity.parse("critical")

    def test_order(self):
        assert [s.rank for s in Severity] == [0, 1, 2, 3]
        assert Severity.HIGH.is_at_least(Severity.LOW)
        assert not Severity.LOW.is_at_least(Severity.MEDIUM)


class TestSettings:
    """Environment-driven runtime settings"""

    def test_defaults(self, monkeypatch):
        for var in ("LOG_LEVEL", "LOG_FORMAT", "CACHE_DIR", "CACHE_ENABLED", "PARALLEL_THRESHOLD"):
            monkeypatch.delenv(f"COSMWASM_GUARD_{var}", raising=False)

        settings = Settings()

        assert settings.log_level == "WARNING"
        assert settings.cache_enabled is True
        assert settings.parallel_threshold == 4

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("COSMWASM_GUARD_CACHE_ENABLED", "false")
        monkeypatch.setenv("COSMWASM_GUARD_PARALLEL_THRESHOLD", "0")
        monkeypatch.setenv("COSMWASM_GUARD_LOG_FORMAT", "json")

        settings = Settings()

        assert settings.cache_enabled is False
        assert settings.parallel_threshold == 0
        assert settings.log_format == "json"
