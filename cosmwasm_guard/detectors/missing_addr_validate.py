"""
missing-addr-validate

String fields with address-like names in message enums that never reach
`addr_validate` / `addr_canonicalize` in any function's IR.
"""

from cosmwasm_guard.detector import AnalysisContext, Detector
from cosmwasm_guard.finding import Confidence, Finding, Severity
from cosmwasm_guard.ir import AddrValidate, Assign, FieldAccess, Instruction, Literal, MethodCall, Operand, SsaVar, Var
from cosmwasm_guard.ir import instruction_def

ADDRESS_PATTERNS = (
    "addr",
    "address",
    "sender",
    "recipient",
    "owner",
    "admin",
    "operator",
    "minter",
    "beneficiary",
    "delegate",
    "guardian",
)

# Temporaries are followed back through this many definitions
_MAX_RESOLVE_DEPTH = 4


def is_address_field_name(name: str) -> bool:
    lower = name.lower()
    return any(pattern in lower for pattern in ADDRESS_PATTERNS)


class MissingAddrValidate(Detector):
    name = "missing-addr-validate"
    description = "Detects string addresses in message types not validated with addr_validate()"
    severity = Severity.MEDIUM
    confidence = Confidence.MEDIUM

    def detect(self, ctx: AnalysisContext) -> list[Finding]:
        validated = self._validated_names(ctx)
        findings = []

        for msg_enum in ctx.contract.message_enums:
            for variant in msg_enum.variants:
                for field in variant.fields:
                    if field.type_name != "String" or not is_address_field_name(field.name):
                        continue
                    if field.name in validated:
                        continue
                    findings.append(
                        self.finding(
                            title=f"Unvalidated address: `{field.name}` in {msg_enum.name}::{variant.name}",
                            description=(
                                f"Field `{field.name}` of type String in {msg_enum.name}::{variant.name} "
                                "looks like an address but is never passed to addr_validate(). Unvalidated "
                                "addresses can cause funds to be sent to invalid or unreachable addresses."
                            ),
                            span=msg_enum.span,
                            recommendation=f"Validate the address with `deps.api.addr_validate(&{field.name})?;`",
                        )
                    )

        return findings

    def _validated_names(self, ctx: AnalysisContext) -> set[str]:
        """Names (variables or fields) that flow into an address validation anywhere in the crate"""
        names: set[str] = set()
        for func in ctx.ir.functions:
            definitions = {
                var: inst for _, inst in func.iter_instructions() if (var := instruction_def(inst)) is not None
            }
            for inst in func.find_instructions(AddrValidate):
                _collect_names(inst.address, definitions, names, _MAX_RESOLVE_DEPTH)
        return names


def _collect_names(operand: Operand, definitions: dict[SsaVar, Instruction], names: set[str], depth: int) -> None:
    match operand:
        case Var(var=var):
            names.add(var.name)
            if depth > 0:
                _collect_from_definition(definitions.get(var), definitions, names, depth - 1)
        case FieldAccess(base=base, field=field):
            names.add(field)
            _collect_names(base, definitions, names, depth)
        case Literal():
            pass


def _collect_from_definition(
    inst: Instruction | None, definitions: dict[SsaVar, Instruction], names: set[str], depth: int
) -> None:
    """`addr_validate(msg.owner.as_str())` reaches `owner` through the MethodCall temp"""
    match inst:
        case MethodCall(receiver=receiver):
            _collect_names(receiver, definitions, names, depth)
        case Assign(value=value):
            _collect_names(value, definitions, names, depth)


