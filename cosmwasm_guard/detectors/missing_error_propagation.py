"""
missing-error-propagation

`let _ = fallible_call();` drops a Result without looking at it.
"""

from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, FixSuggestion, Severity, SourceLocation

DISCARDED_VALUE_KINDS = frozenset({"call_expression", "try_expression"})


class MissingErrorPropagation(Detector):
    name = "missing-error-propagation"
    description = "Detects Result values silently discarded with `let _ = ...`"
    severity = Severity.LOW
    confidence = Confidence.HIGH

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for _file, tree in ctx.raw_syntax_trees():
            for node in tree.find_all({"let_declaration"}):
                pattern = node.child_by_field("pattern")
                value = node.child_by_field("value")
                if pattern is None or value is None or pattern.text != "_":
                    continue
                if value.kind not in DISCARDED_VALUE_KINDS:
                    continue
                findings.append(
                    self.finding(
                        title="Silently discarded Result value",
                        description=(
                            "`let _ = ...` discards the result of a call. If it returns a Result, "
                            "errors are silently ignored."
                        ),
                        span=node.span,
                        recommendation="Handle the error with `?` or explicitly ignore with `.ok()`.",
                        fix=FixSuggestion(
                            description="Add `.ok()` to explicitly acknowledge the discarded Result",
                            replacement_text="let _ = /* expr */.ok();",
                            location=SourceLocation.from_span(node.span),
                        ),
                    )
                )
        return findings
