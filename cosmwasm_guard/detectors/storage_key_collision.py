"""
storage-key-collision

Two state items declared with the same storage key string overwrite each
other's data.
"""

from cosmwasm_guard.contract.models import StateItem
from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity


class StorageKeyCollision(Detector):
    name = "storage-key-collision"
    description = "Detects duplicate storage key strings across state items"
    severity = Severity.HIGH
    confidence = Confidence.HIGH

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        findings = []
        first_by_key: dict[str, StateItem] = {}

        for item in ctx.contract.state_items:
            if item.storage_key is None:
                continue
            first = first_by_key.setdefault(item.storage_key, item)
            if first is item:
                continue
            findings.append(
                self.finding(
                    title=f'Storage key collision: `{first.name}` and `{item.name}` share key "{item.storage_key}"',
                    description=(
                        f'State items `{first.name}` and `{item.name}` both use storage key "{item.storage_key}". '
                        "Writes to one silently overwrite the other."
                    ),
                    span=item.span,
                    recommendation="Use unique storage key strings for each state item.",
                )
            )
        return findings
