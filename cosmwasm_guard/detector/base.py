"""
Detector plugin contract

A detector is a read-only rule over an AnalysisContext. It may be invoked
concurrently with other detectors on the same context and must not mutate it.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from cosmwasm_guard.finding import Confidence, Finding, FixSuggestion, Severity, SourceLocation
from cosmwasm_guard.span import SourceSpan

if TYPE_CHECKING:
    from .context import AnalysisContext


class Detector(ABC):
    """
    Base class for detectors.

    Subclasses set the class attributes and implement `detect`.

    Example:
        ```python
        class NoopDetector(Detector):
            name = "noop"
            description = "Never reports anything"

            def detect(self, ctx):
                return []
        ```
    """

    name: str = ""
    description: str = ""
    severity: Severity = Severity.MEDIUM
    confidence: Confidence = Confidence.MEDIUM

    @abstractmethod
    def detect(self, ctx: "AnalysisContext") -> list[Finding]:
        """Run the rule and return its findings"""

    def finding(
        self,
        title: str,
        description: str,
        span: SourceSpan,
        recommendation: str | None = None,
        severity: Severity | None = None,
        confidence: Confidence | None = None,
        fix: FixSuggestion | None = None,
    ) -> Finding:
        """Build a Finding attributed to this detector, at one location"""
        return Finding(
            detector_name=self.name,
            title=title,
            description=description,
            severity=severity or self.severity,
            confidence=confidence or self.confidence,
            locations=[SourceLocation.from_span(span)],
            recommendation=recommendation,
            fix=fix,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
