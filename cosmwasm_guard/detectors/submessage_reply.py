"""
submessage-reply-unvalidated

Reply entry points that never read a reply's `id`, so every submessage reply
takes the same path.
"""

from cosmwasm_guard.contract.models import EntryPointKind
from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity
from cosmwasm_guard.parsing import SyntaxNode

from .common import entry_point_function


def reads_reply_id(body: SyntaxNode) -> bool:
    """True when `body` reads any `.id` field (`msg.id`, `reply.id`, `match msg.id`)"""
    for node in body.walk():
        if node.kind != "field_expression":
            continue
        field = node.child_by_field("field")
        if field is not None and field.text == "id":
            return True
    return False


class SubmessageReplyUnvalidated(Detector):
    name = "submessage-reply-unvalidated"
    description = "Detects reply handlers that don't validate submessage ID"
    severity = Severity.HIGH
    confidence = Confidence.MEDIUM

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for entry_point in ctx.contract.entry_points:
            if entry_point.kind != EntryPointKind.REPLY:
                continue
            func = entry_point_function(ctx.contract, entry_point)
            if func is None or func.body is None or reads_reply_id(func.body):
                continue
            findings.append(
                self.finding(
                    title=f"Reply handler `{entry_point.name}` doesn't validate msg.id",
                    description=(
                        f"Reply handler `{entry_point.name}` does not check `msg.id` to identify which "
                        "submessage it is responding to. This can cause the handler to process the wrong reply."
                    ),
                    span=entry_point.span,
                    recommendation=(
                        "Add `match msg.id { REPLY_ID => ..., id => Err(...) }` to validate the submessage ID."
                    ),
                )
            )
        return findings
