"""
missing-access-control

Execute entry points that never look at `info.sender`, directly or in a
helper they hand `info` to.
"""

from cosmwasm_guard.contract.models import ContractInfo, EntryPointKind
from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity
from cosmwasm_guard.parsing import SyntaxNode, compact_text

from .common import entry_point_function, macro_name

SENDER_CHECK_MACROS = frozenset({"ensure", "ensure_eq", "ensure_ne", "require", "assert_eq", "assert_ne"})


class MissingAccessControl(Detector):
    name = "missing-access-control"
    description = "Detects execute handlers that modify state without checking info.sender"
    severity = Severity.HIGH
    confidence = Confidence.MEDIUM

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for entry_point in ctx.contract.entry_points:
            if entry_point.kind != EntryPointKind.EXECUTE:
                continue
            func = entry_point_function(ctx.contract, entry_point)
            if func is None or func.body is None:
                continue
            if references_sender(func.body, ctx.contract, {func.name}):
                continue
            findings.append(
                self.finding(
                    title=f"Missing access control in execute handler `{entry_point.name}`",
                    description=(
                        f"The execute handler `{entry_point.name}` never checks `info.sender`. "
                        "Any address may be able to call privileged operations."
                    ),
                    span=entry_point.span,
                    recommendation="Add an authorization check: `if info.sender != config.owner { return Err(...); }`",
                )
            )
        return findings


def references_sender(body: SyntaxNode, contract: ContractInfo, visited: set[str]) -> bool:
    """
    True when `body` reads `info.sender`, asserts on it through a macro, or
    passes `info` to a crate function that does. `visited` guards recursion.
    """
    for node in body.walk():
        match node.kind:
            case "field_expression":
                value = node.child_by_field("value")
                field = node.child_by_field("field")
                if value is not None and field is not None and value.text == "info" and field.text == "sender":
                    return True
            case "macro_invocation":
                if macro_name(node) in SENDER_CHECK_MACROS and "info" in node.text and "sender" in node.text:
                    return True
            case "call_expression":
                callee = _passes_info_to(node)
                if callee is None or callee in visited:
                    continue
                visited.add(callee)
                helper = contract.get_function(callee)
                if helper is not None and helper.body is not None and references_sender(helper.body, contract, visited):
                    return True
    return False


def _passes_info_to(node: SyntaxNode) -> str | None:
    """Callee name of a plain `helper(.., info, ..)` call, else None"""
    function = node.child_by_field("function")
    if function is None or function.kind not in ("identifier", "scoped_identifier"):
        return None
    arguments = node.child_by_field("arguments")
    if arguments is None:
        return None
    if not any(arg.kind == "identifier" and arg.text == "info" for arg in arguments.named_children):
        return None
    return compact_text(function).split("::")[-1]
