"""
Pipeline tests: config, suppressions and severity post-processing
"""

import pytest

from cosmwasm_guard.cache import CacheManager
from cosmwasm_guard.config import ProjectConfig
from cosmwasm_guard.finding import Severity
from cosmwasm_guard.pipeline import analyze_path, select_detectors

UNWRAPS_RS = """\
pub fn first(value: Option<u64>) -> u64 {
    value.unwrap()
}

pub fn second(value: Option<u64>) -> u64 {
    // cosmwasm-guard-ignore: unsafe-unwrap
    value.unwrap()
}

pub fn third(value: Option<u64>) -> u64 {
    // cosmwasm-guard-ignore
    value.expect("set")
}

pub fn fourth(value: Option<u64>) -> u64 {
    // cosmwasm-guard-ignore: unbounded-iteration
    value.unwrap()
}
"""

HELPERS_RS = """\
pub fn helper(value: Option<u64>) -> u64 {
    value.unwrap()
}
"""


@pytest.fixture
def crate(write_crate):
    return write_crate({"src/lib.rs": UNWRAPS_RS, "src/tests/helpers.rs": HELPERS_RS})


def unwrap_lines(report) -> list[tuple[str, int]]:
    return [(f.locations[0].file.rsplit("/", 1)[-1], f.locations[0].start_line) for f in report.findings]


class TestSuppressions:
    """Inline comments and file globs"""

    def test_inline_comments(self, crate):
        config = ProjectConfig.from_toml("[suppressions]\nfiles = []\n")

        report = analyze_path(crate, config=config)

        # line 7 (named) and line 12 (bare) are suppressed; line 17 names another detector
        assert sorted(unwrap_lines(report)) == [("helpers.rs", 2), ("lib.rs", 2), ("lib.rs", 17)]

    def test_file_glob(self, crate):
        config = ProjectConfig.from_toml('[suppressions]\nfiles = ["tests/**"]\n')

        report = analyze_path(crate, config=config)

        assert all(not f.locations[0].file.endswith("helpers.rs") for f in report.findings)
        assert report.total_findings == 2

    def test_disabled_detector(self, crate):
        config = ProjectConfig.from_toml("[detectors.unsafe-unwrap]\nenabled = false\n")

        report = analyze_path(crate, config=config)

        assert report.findings == []
        assert len(report.files_analyzed) == 2


class TestSeverity:
    """Overrides and thresholds"""

    def test_override_then_threshold(self, crate):
        config = ProjectConfig.from_toml(
            '[global]\nseverity_threshold = "high"\n\n[detectors.unsafe-unwrap]\nseverity = "high"\n'
        )

        report = analyze_path(crate, config=config)

        assert report.total_findings == 3
        assert {f.severity for f in report.findings} == {Severity.HIGH}
        assert report.findings_by_severity.high == 3

    def test_explicit_threshold_wins(self, crate):
        config = ProjectConfig.from_toml('[global]\nseverity_threshold = "high"\n')

        report = analyze_path(crate, config=config, min_severity=Severity.LOW)

        assert report.total_findings == 3

    def test_findings_ordered_by_severity(self, tmp_path, vulnerable_source):
        path = tmp_path / "contract.rs"
        path.write_text(vulnerable_source, encoding="utf-8")

        report = analyze_path(path)

        ranks = [f.severity.rank for f in report.findings]
        assert ranks == sorted(ranks)
        assert report.findings[0].severity == Severity.HIGH


class TestSelection:
    """Detector selection and the cache path"""

    def test_select_detectors(self):
        config = ProjectConfig.from_toml("[detectors.unsafe-unwrap]\nenabled = false\n")

        names = [d.name for d in select_detectors(config, exclude=["arithmetic-overflow"])]

        assert "unsafe-unwrap" not in names
        assert "arithmetic-overflow" not in names
        assert len(names) == 8

    def test_select_only(self):
        names = [d.name for d in select_detectors(ProjectConfig(), only=["storage-key-collision"])]

        assert names == ["storage-key-collision"]

    def test_cached_run_matches_uncached(self, crate, tmp_path):
        config = ProjectConfig()
        uncached = analyze_path(crate, config=config)

        cache_dir = tmp_path / "cache"
        analyze_path(crate, config=config, cache=CacheManager.open(cache_dir))
        cached = analyze_path(crate, config=config, cache=CacheManager.open(cache_dir))

        assert cached.to_dict() == uncached.to_dict()

    def test_snippets_attached(self, crate):
        report = analyze_path(crate)

        assert all(f.locations[0].snippet for f in report.findings)
        assert "value.unwrap()" in report.findings[0].locations[0].snippet
