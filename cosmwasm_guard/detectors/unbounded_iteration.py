"""
unbounded-iteration

Storage `range` / `range_raw` iterators consumed without a `.take(n)` bound.
"""

from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity

from .common import iter_method_calls, method_chain

RANGE_METHODS = frozenset({"range", "range_raw"})
TERMINAL_METHODS = frozenset({"collect", "for_each", "count", "sum", "fold", "last", "max", "min"})


class UnboundedIteration(Detector):
    name = "unbounded-iteration"
    description = "Detects storage iteration without .take() bounds (potential DoS via gas exhaustion)"
    severity = Severity.MEDIUM
    confidence = Confidence.HIGH

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for _file, tree in ctx.raw_syntax_trees():
            for call, method in iter_method_calls(tree.root):
                if method.text not in TERMINAL_METHODS:
                    continue
                chain = method_chain(call)
                if RANGE_METHODS.isdisjoint(chain) or "take" in chain:
                    continue
                findings.append(
                    self.finding(
                        title="Unbounded iteration over storage Map",
                        description=(
                            f"A storage iterator is consumed with `.{method.text}()` without a `.take()` limit. "
                            "As the map grows, this can exceed the block gas limit and make the "
                            "operation permanently unusable."
                        ),
                        span=method.span,
                        recommendation=(
                            "Add a `.take(limit)` call before consuming the iterator, with a sensible "
                            "maximum (e.g. `.take(30)`)."
                        ),
                    )
                )
        return findings
