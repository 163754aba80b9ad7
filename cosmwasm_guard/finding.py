"""
Finding model

Severity has a fixed total order (High < Medium < Low < Informational by
rank, High most severe). Sorting and threshold filtering depend on it.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from cosmwasm_guard.errors import ConfigError
from cosmwasm_guard.span import SourceSpan


class Severity(str, Enum):
    """Finding severity; declaration order is the severity order"""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFORMATIONAL = "Informational"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Parse "high", "Medium", "info", "informational", ..."""
        key = value.strip().lower()
        for severity in cls:
            if key == severity.value.lower():
                return severity
        if key == "info":
            return cls.INFORMATIONAL
        raise ConfigError(f"Unknown severity: {value!r}", allowed="high, medium, low, info")

    def is_at_least(self, threshold: "Severity") -> bool:
        """True if this severity is as severe as `threshold` or more"""
        return self.rank <= threshold.rank


_SEVERITY_RANK = {severity: rank for rank, severity in enumerate(Severity)}


class Confidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass
class SourceLocation:
    """A reported location; lines and columns are 1-indexed"""

    file: str
    start_line: int
    end_line: int
    start_col: int = 1
    end_col: int = 1
    snippet: str | None = None

    @classmethod
    def from_span(cls, span: SourceSpan) -> "SourceLocation":
        return cls(
            file=span.file,
            start_line=span.start_line,
            end_line=span.end_line,
            start_col=span.start_col,
            end_col=span.end_col,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "start_col": self.start_col,
            "end_col": self.end_col,
            "snippet": self.snippet,
        }


@dataclass
class FixSuggestion:
    description: str
    replacement_text: str
    location: SourceLocation

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "replacement_text": self.replacement_text,
            "location": self.location.to_dict(),
        }


@dataclass
class Finding:
    """One reported issue"""

    detector_name: str
    title: str
    description: str
    severity: Severity
    confidence: Confidence
    locations: list[SourceLocation] = field(default_factory=list)
    recommendation: str | None = None
    fix: FixSuggestion | None = None

    @property
    def primary_location(self) -> SourceLocation | None:
        return self.locations[0] if self.locations else None

    def with_severity(self, severity: Severity) -> "Finding":
        return replace(self, severity=severity)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "detector_name": self.detector_name,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "confidence": self.confidence.value,
            "locations": [loc.to_dict() for loc in self.locations],
            "recommendation": self.recommendation,
        }
        if self.fix is not None:
            data["fix"] = self.fix.to_dict()
        return data
