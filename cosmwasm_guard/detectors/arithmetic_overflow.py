"""
arithmetic-overflow

Wrapping / overflowing arithmetic and `.neg()` on integer types silently
wrap instead of failing (CWA-2024-002).
"""

from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity

from .common import iter_method_calls

WRAPPING_METHODS = frozenset(
    {
        "neg",
        "wrapping_add",
        "wrapping_sub",
        "wrapping_mul",
        "overflowing_add",
        "overflowing_sub",
        "overflowing_mul",
    }
)


def checked_alternative(method: str) -> str:
    """wrapping_add -> checked_add, neg -> checked_neg"""
    for prefix in ("wrapping_", "overflowing_"):
        if method.startswith(prefix):
            return "checked_" + method[len(prefix) :]
    return "checked_" + method


class ArithmeticOverflow(Detector):
    name = "arithmetic-overflow"
    description = "Detects unchecked arithmetic that can silently wrap (wrapping_*, overflowing_*, neg)"
    severity = Severity.HIGH
    confidence = Confidence.MEDIUM

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for _file, tree in ctx.raw_syntax_trees():
            for _call, method in iter_method_calls(tree.root):
                if method.text not in WRAPPING_METHODS:
                    continue
                findings.append(
                    self.finding(
                        title=f"Potential arithmetic overflow via .{method.text}()",
                        description=(
                            f"`.{method.text}()` wraps around on overflow instead of returning an error. "
                            "See CWA-2024-002 for the impact on signed integer types."
                        ),
                        span=method.span,
                        recommendation=(
                            f"Use checked arithmetic (e.g. `.{checked_alternative(method.text)}()`) instead."
                        ),
                    )
                )
        return findings
