"""
Analysis report

Findings plus per-severity counts, as consumed by every output format.
"""

from dataclasses import dataclass, field
from typing import Any

from cosmwasm_guard import __version__
from cosmwasm_guard.finding import Finding, Severity


@dataclass
class SeverityCounts:
    high: int = 0
    medium: int = 0
    low: int = 0
    informational: int = 0

    @classmethod
    def from_findings(cls, findings: list[Finding]) -> "SeverityCounts":
        counts = cls()
        for finding in findings:
            match finding.severity:
                case Severity.HIGH:
                    counts.high += 1
                case Severity.MEDIUM:
                    counts.medium += 1
                case Severity.LOW:
                    counts.low += 1
                case Severity.INFORMATIONAL:
                    counts.informational += 1
        return counts

    def to_dict(self) -> dict[str, int]:
        return {
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "informational": self.informational,
        }


@dataclass
class AnalysisReport:
    files_analyzed: list[str]
    findings: list[Finding]
    total_findings: int = 0
    findings_by_severity: SeverityCounts = field(default_factory=SeverityCounts)
    tool_version: str = __version__

    @classmethod
    def from_findings(cls, files: list[str], findings: list[Finding]) -> "AnalysisReport":
        return cls(
            files_analyzed=list(files),
            findings=list(findings),
            total_findings=len(findings),
            findings_by_severity=SeverityCounts.from_findings(findings),
        )

    @property
    def has_findings(self) -> bool:
        return self.total_findings > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool_version": self.tool_version,
            "files_analyzed": self.files_analyzed,
            "total_findings": self.total_findings,
            "findings_by_severity": self.findings_by_severity.to_dict(),
            "findings": [f.to_dict() for f in self.findings],
        }
