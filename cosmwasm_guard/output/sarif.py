"""
SARIF 2.1.0 renderer (GitHub Code Scanning)

Report columns are already 1-based and are emitted unchanged.
"""

import json
from typing import Any

from cosmwasm_guard import __version__
from cosmwasm_guard.detector import Detector
from cosmwasm_guard.finding import Finding, Severity, SourceLocation
from cosmwasm_guard.report import AnalysisReport

SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/sarif-2.1/schema/sarif-schema-2.1.0.json"
SARIF_VERSION = "2.1.0"
TOOL_NAME = "cosmwasm-guard"
INFORMATION_URI = "https://github.com/safestackai/cosmwasm-guard"


def severity_to_sarif_level(severity: Severity) -> str:
    match severity:
        case Severity.HIGH:
            return "error"
        case Severity.MEDIUM:
            return "warning"
        case Severity.LOW | Severity.INFORMATIONAL:
            return "note"


def _region(loc: SourceLocation) -> dict[str, int]:
    return {
        "startLine": loc.start_line,
        "startColumn": loc.start_col,
        "endLine": loc.end_line,
        "endColumn": loc.end_col,
    }


def _rules(findings: list[Finding], detectors: list[Detector]) -> list[dict[str, Any]]:
    """One rule per reporting detector, in first-appearance order"""
    descriptions = {d.name: d.description for d in detectors}
    rules: dict[str, dict[str, Any]] = {}
    for finding in findings:
        if finding.detector_name in rules:
            continue
        rules[finding.detector_name] = {
            "id": finding.detector_name,
            "shortDescription": {"text": descriptions.get(finding.detector_name, finding.detector_name)},
            "defaultConfiguration": {"level": severity_to_sarif_level(finding.severity)},
        }
    return list(rules.values())


def _result(finding: Finding) -> dict[str, Any]:
    result: dict[str, Any] = {
        "ruleId": finding.detector_name,
        "level": severity_to_sarif_level(finding.severity),
        "message": {"text": finding.description},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": loc.file},
                    "region": _region(loc),
                }
            }
            for loc in finding.locations
        ],
    }
    if finding.fix is not None:
        result["fixes"] = [
            {
                "description": {"text": finding.fix.description},
                "artifactChanges": [
                    {
                        "artifactLocation": {"uri": finding.fix.location.file},
                        "replacements": [
                            {
                                "deletedRegion": _region(finding.fix.location),
                                "insertedContent": {"text": finding.fix.replacement_text},
                            }
                        ],
                    }
                ],
            }
        ]
    return result


def build_sarif(report: AnalysisReport, detectors: list[Detector] | None = None) -> dict[str, Any]:
    """
    Build the SARIF log for a report.

    Args:
        report: Analysis report
        detectors: Detector metadata for rule descriptions (defaults to the built-ins)
    """
    if detectors is None:
        from cosmwasm_guard.detectors import all_detectors

        detectors = all_detectors()

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": TOOL_NAME,
                        "version": __version__,
                        "informationUri": INFORMATION_URI,
                        "rules": _rules(report.findings, detectors),
                    }
                },
                "results": [_result(f) for f in report.findings],
            }
        ],
    }


def render_sarif(report: AnalysisReport, detectors: list[Detector] | None = None) -> str:
    return json.dumps(build_sarif(report, detectors), indent=2, ensure_ascii=False)
