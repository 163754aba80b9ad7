"""
unsafe-unwrap

`.unwrap()` / `.expect()` in contract code panics and aborts the transaction
with an opaque error. Test modules are exempt.
"""

from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity

from .common import iter_method_calls

PANICKING_METHODS = frozenset({"unwrap", "expect"})


class UnsafeUnwrap(Detector):
    name = "unsafe-unwrap"
    description = "Detects .unwrap() and .expect() calls in non-test contract code"
    severity = Severity.MEDIUM
    confidence = Confidence.HIGH

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for _file, tree in ctx.raw_syntax_trees():
            for _call, method in iter_method_calls(tree.root, skip_tests=True):
                if method.text not in PANICKING_METHODS:
                    continue
                findings.append(
                    self.finding(
                        title=f"Unsafe .{method.text}() call",
                        description=(
                            f"Calling `.{method.text}()` panics on error, aborting the transaction "
                            "without a meaningful error message."
                        ),
                        span=method.span,
                        recommendation="Replace `.unwrap()` with `?` or handle the error explicitly.",
                    )
                )
        return findings
