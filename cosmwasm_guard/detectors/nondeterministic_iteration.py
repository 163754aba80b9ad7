"""
nondeterministic-iteration

Iterating a `HashMap` yields entries in a per-process random order; validators
that disagree on that order disagree on the resulting state.

A receiver counts as a HashMap when it is a parameter typed `HashMap<..>`, a
`let` bound to a `HashMap` annotation or a `HashMap::..` constructor, or a path
that itself names `HashMap`.
"""

from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity
from cosmwasm_guard.parsing import SyntaxNode

from .common import method_call_parts, path_segments

ITER_METHODS = frozenset({"iter", "keys", "values", "into_iter", "drain"})
HASHMAP = "HashMap"


def _binding_name(node: SyntaxNode) -> str | None:
    pattern = node.child_by_field("pattern")
    if pattern is None:
        return None
    if pattern.kind == "mut_pattern":
        pattern = pattern.first_named("identifier")
    if pattern is None or pattern.kind != "identifier":
        return None
    return pattern.text


def _declares_hashmap(node: SyntaxNode) -> bool:
    if HASHMAP in path_segments(node.child_by_field("type")):
        return True
    if node.kind != "let_declaration":
        return False
    value = node.child_by_field("value")
    return value is not None and value.kind == "call_expression" and HASHMAP in path_segments(
        value.child_by_field("function")
    )


class _HashMapIterSearch:
    """Single pre-order pass: bindings are recorded before the code that uses them"""

    def __init__(self):
        self.hashmap_vars: set[str] = set()
        self.hits: list[SyntaxNode] = []

    def run(self, root: SyntaxNode) -> list[SyntaxNode]:
        for node in root.walk():
            match node.kind:
                case "parameter" | "let_declaration":
                    name = _binding_name(node)
                    if name is not None and _declares_hashmap(node):
                        self.hashmap_vars.add(name)
                case "call_expression":
                    parts = method_call_parts(node)
                    if parts is None:
                        continue
                    method, receiver = parts
                    if method.text in ITER_METHODS and self.is_hashmap(receiver):
                        self.hits.append(method)
        return self.hits

    def is_hashmap(self, expr: SyntaxNode | None) -> bool:
        while expr is not None:
            match expr.kind:
                case "identifier":
                    return expr.text in self.hashmap_vars or HASHMAP in expr.text
                case "scoped_identifier":
                    segments = path_segments(expr)
                    return HASHMAP in segments or (bool(segments) and segments[-1] in self.hashmap_vars)
                case "reference_expression":
                    expr = expr.child_by_field("value")
                case "parenthesized_expression":
                    expr = expr.first_named()
                case "call_expression":
                    parts = method_call_parts(expr)
                    expr = parts[1] if parts is not None else None
                case _:
                    return False
        return False


class NondeterministicIteration(Detector):
    name = "nondeterministic-iteration"
    description = "Detects iteration over HashMap with nondeterministic ordering"
    severity = Severity.MEDIUM
    confidence = Confidence.MEDIUM

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for _file, tree in ctx.raw_syntax_trees():
            for method in _HashMapIterSearch().run(tree.root):
                findings.append(
                    self.finding(
                        title="Nondeterministic iteration over HashMap",
                        description=(
                            "Iterating over a HashMap produces nondeterministic order. "
                            "In CosmWasm, this can cause consensus failures across validators."
                        ),
                        span=method.span,
                        recommendation="Use `BTreeMap` instead, or collect into a Vec and sort.",
                    )
                )
        return findings
