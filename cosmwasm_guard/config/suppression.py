"""
Inline suppressions and config-driven filtering

    // cosmwasm-guard-ignore                      suppress every detector on the next line
    // cosmwasm-guard-ignore: unsafe-unwrap, ...  suppress the listed detectors on the next line

All functions here are post-processing over a finished Finding list.
"""

from collections.abc import Mapping

from cosmwasm_guard.finding import Finding

from .project import ProjectConfig

SUPPRESSION_MARKER = "cosmwasm-guard-ignore"
WILDCARD = "*"

InlineSuppressions = dict[tuple[str, int], list[str]]


def extract_suppression_comment(line: str) -> list[str] | None:
    """
    Parse one source line.

    Returns None if the line is not a suppression comment, otherwise the listed
    detector names ([WILDCARD] for the bare form).
    """
    stripped = line.strip()
    if not stripped.startswith("//"):
        return None
    comment = stripped[2:].strip()
    if not comment.startswith(SUPPRESSION_MARKER):
        return None

    rest = comment[len(SUPPRESSION_MARKER) :].strip()
    if not rest:
        return [WILDCARD]
    if not rest.startswith(":"):
        return None
    names = [name.strip() for name in rest[1:].split(",") if name.strip()]
    return names or [WILDCARD]


def parse_inline_suppressions(source_map: Mapping[str, str]) -> InlineSuppressions:
    """Map (file, target line) -> suppressed detector names; a comment targets the next line"""
    suppressions: InlineSuppressions = {}
    for file, source in source_map.items():
        for idx, line in enumerate(source.splitlines()):
            names = extract_suppression_comment(line)
            if names is not None:
                # idx is 0-based; the next line is idx + 2 in 1-based numbering
                suppressions[(file, idx + 2)] = names
    return suppressions


def is_suppressed(finding: Finding, inline: InlineSuppressions) -> bool:
    for loc in finding.locations:
        names = inline.get((loc.file, loc.start_line))
        if names and (WILDCARD in names or finding.detector_name in names):
            return True
    return False


def apply_suppressions(
    findings: list[Finding],
    config: ProjectConfig,
    inline: InlineSuppressions,
) -> list[Finding]:
    """Drop findings from disabled detectors, excluded files or inline-suppressed lines"""
    return [
        f
        for f in findings
        if config.is_detector_enabled(f.detector_name)
        and not any(config.is_file_excluded(loc.file) for loc in f.locations)
        and not is_suppressed(f, inline)
    ]


def apply_severity_overrides(findings: list[Finding], config: ProjectConfig) -> list[Finding]:
    """Replace severities configured under [detectors.<name>], keeping order"""
    result = []
    for finding in findings:
        override = config.severity_override(finding.detector_name)
        result.append(finding.with_severity(override) if override is not None else finding)
    return result
