"""
Analysis pipeline

crate analysis -> detectors -> snippets -> severity overrides ->
suppressions -> severity threshold -> report.

Config, suppressions and thresholds are applied to the detector output; the
engine itself never sees them.
"""

from pathlib import Path

from cosmwasm_guard.cache import CacheManager
from cosmwasm_guard.config import ProjectConfig, apply_severity_overrides, apply_suppressions, parse_inline_suppressions
from cosmwasm_guard.contract.crate_analyzer import CrateAnalysis, analyze_crate
from cosmwasm_guard.detector import AnalysisContext, Detector, DetectorRegistry
from cosmwasm_guard.detectors import all_detectors
from cosmwasm_guard.finding import Finding, Severity
from cosmwasm_guard.observability import get_logger
from cosmwasm_guard.report import AnalysisReport

logger = get_logger(__name__)


def select_detectors(
    config: ProjectConfig,
    only: list[str] | None = None,
    exclude: list[str] | None = None,
) -> list[Detector]:
    """Built-in detectors enabled in config, narrowed by --detectors / --exclude"""
    selected = [d for d in all_detectors() if config.is_detector_enabled(d.name)]
    if only:
        selected = [d for d in selected if d.name in only]
    if exclude:
        selected = [d for d in selected if d.name not in exclude]
    return selected


def attach_snippets(findings: list[Finding], ctx: AnalysisContext) -> None:
    for finding in findings:
        for loc in finding.locations:
            if loc.snippet is None:
                loc.snippet = ctx.snippet(loc.file, loc.start_line, loc.end_line)


def run_detectors(
    analysis: CrateAnalysis,
    detectors: list[Detector],
    parallel_threshold: int | None = None,
) -> list[Finding]:
    registry = DetectorRegistry(parallel_threshold=parallel_threshold)
    registry.register_all(detectors)
    ctx = AnalysisContext(analysis.contract, analysis.ir, analysis.source_map)
    findings = registry.run_all(ctx)
    attach_snippets(findings, ctx)
    return findings


def analyze_path(
    path: str | Path,
    config: ProjectConfig | None = None,
    detectors: list[Detector] | None = None,
    min_severity: Severity | None = None,
    cache: CacheManager | None = None,
    parallel_threshold: int | None = None,
) -> AnalysisReport:
    """
    Run the full analysis over a file or crate directory.

    Args:
        path: `.rs` file or crate directory
        config: Project config (defaults when None)
        detectors: Detectors to run (config-enabled built-ins when None)
        min_severity: Report threshold (config threshold when None)
        cache: Incremental cache (no caching when None)
        parallel_threshold: Detector fan-out threshold (settings when None)

    Returns:
        Report with findings ordered by severity
    """
    config = config or ProjectConfig()
    if detectors is None:
        detectors = select_detectors(config)
    if min_severity is None:
        min_severity = config.severity_threshold

    analysis = analyze_crate(path, cache=cache)
    findings = run_detectors(analysis, detectors, parallel_threshold)

    findings = apply_severity_overrides(findings, config)
    findings.sort(key=lambda f: f.severity.rank)
    findings = apply_suppressions(findings, config, parse_inline_suppressions(analysis.source_map))
    findings = DetectorRegistry.filter_by_severity(findings, min_severity)

    logger.info("analysis_complete", path=str(path), detectors=len(detectors), findings=len(findings))
    return AnalysisReport.from_findings(analysis.files, findings)
