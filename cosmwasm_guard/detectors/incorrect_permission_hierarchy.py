"""
incorrect-permission-hierarchy

Execute entry points that write admin-like storage (config, admin, owner,
governance) without ever loading it, so the caller is never compared against
the stored admin.
"""

from cosmwasm_guard.contract.models import EntryPointKind
from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity
from cosmwasm_guard.parsing import SyntaxNode

from .common import entry_point_function, method_call_parts, path_segments

ADMIN_STORAGE_PATTERNS = ("config", "admin", "owner", "governance")
WRITE_METHODS = frozenset({"save", "update"})
READ_METHODS = frozenset({"load", "may_load"})


def admin_item_name(receiver: SyntaxNode | None) -> str | None:
    """Storage item name when `receiver` is a path naming admin-like storage"""
    if receiver is None or receiver.kind not in ("identifier", "scoped_identifier"):
        return None
    segments = path_segments(receiver)
    if not segments:
        return None
    name = segments[-1]
    lower = name.lower()
    return name if any(pattern in lower for pattern in ADMIN_STORAGE_PATTERNS) else None


class IncorrectPermissionHierarchy(Detector):
    name = "incorrect-permission-hierarchy"
    description = "Detects admin storage writes without verifying caller against stored admin"
    severity = Severity.MEDIUM
    confidence = Confidence.MEDIUM

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        for entry_point in ctx.contract.entry_points:
            if entry_point.kind != EntryPointKind.EXECUTE:
                continue
            func = entry_point_function(ctx.contract, entry_point)
            if func is None or func.body is None:
                continue

            written: list[str] = []
            loads_admin = False
            for node in func.body.walk():
                parts = method_call_parts(node)
                if parts is None:
                    continue
                method, receiver = parts
                item = admin_item_name(receiver)
                if item is None:
                    continue
                if method.text in WRITE_METHODS:
                    written.append(item)
                elif method.text in READ_METHODS:
                    loads_admin = True

            if not written or loads_admin:
                continue
            findings.append(
                self.finding(
                    title=f"Admin storage write without ownership verification in `{entry_point.name}`",
                    description=(
                        f"Execute handler `{entry_point.name}` writes to admin storage ({', '.join(written)}) "
                        "without loading and verifying the current admin/owner. Any caller could overwrite "
                        "the admin configuration."
                    ),
                    span=entry_point.span,
                    recommendation="Load the current admin/config and verify `info.sender` matches before updating.",
                )
            )
        return findings
