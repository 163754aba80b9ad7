"""
IR Instructions

Normalized, SSA-form operations produced by the IR builder.

Operand = Var | Literal | FieldAccess
Instruction = one of 16 frozen dataclasses, grouped as:
- core: Assign, BinaryOp, UnaryOp, Phi
- calls: Call, MethodCall
- contract-specific: StorageLoad, StorageStore, AddrValidate, SendMsg, CheckSender
- control flow: Branch, Jump, Return
- error handling: ResultUnwrap, ErrorReturn

Each instruction defines at most one SsaVar. Consumers dispatch with `match`
over the closed union (see cfg.instruction_def / cfg.instruction_uses).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union, assert_never


@dataclass(frozen=True)
class SsaVar:
    """SSA variable: each (name, version) pair is assigned exactly once"""

    name: str
    version: int

    def __str__(self) -> str:
        return f"{self.name}_{self.version}"


# ============================================================
# Operators
# ============================================================


class BinaryOperator(str, Enum):
    ADD = "Add"
    SUB = "Sub"
    MUL = "Mul"
    DIV = "Div"
    MOD = "Mod"
    EQ = "Eq"
    NE = "Ne"
    LT = "Lt"
    LE = "Le"
    GT = "Gt"
    GE = "Ge"
    AND = "And"
    OR = "Or"
    BIT_AND = "BitAnd"
    BIT_OR = "BitOr"
    BIT_XOR = "BitXor"
    SHL = "Shl"
    SHR = "Shr"
    UNKNOWN = "Unknown"


# Source token -> operator; compound assignments strip the trailing "="
BINARY_OPERATOR_TOKENS: dict[str, BinaryOperator] = {
    "+": BinaryOperator.ADD,
    "-": BinaryOperator.SUB,
    "*": BinaryOperator.MUL,
    "/": BinaryOperator.DIV,
    "%": BinaryOperator.MOD,
    "==": BinaryOperator.EQ,
    "!=": BinaryOperator.NE,
    "<": BinaryOperator.LT,
    "<=": BinaryOperator.LE,
    ">": BinaryOperator.GT,
    ">=": BinaryOperator.GE,
    "&&": BinaryOperator.AND,
    "||": BinaryOperator.OR,
    "&": BinaryOperator.BIT_AND,
    "|": BinaryOperator.BIT_OR,
    "^": BinaryOperator.BIT_XOR,
    "<<": BinaryOperator.SHL,
    ">>": BinaryOperator.SHR,
}


class UnaryOperator(str, Enum):
    NOT = "Not"
    NEG = "Neg"
    DEREF = "Deref"
    REF = "Ref"
    UNKNOWN = "Unknown"


UNARY_OPERATOR_TOKENS: dict[str, UnaryOperator] = {
    "!": UnaryOperator.NOT,
    "-": UnaryOperator.NEG,
    "*": UnaryOperator.DEREF,
    "&": UnaryOperator.REF,
}


# ============================================================
# Operands
# ============================================================


class LiteralKind(str, Enum):
    INT = "Int"
    UINT = "Uint"
    STRING = "String"
    BOOL = "Bool"
    UNIT = "Unit"


@dataclass(frozen=True)
class Var:
    var: SsaVar


@dataclass(frozen=True)
class Literal:
    kind: LiteralKind
    value: int | str | bool | None = None

    @classmethod
    def unit(cls) -> "Literal":
        return cls(LiteralKind.UNIT)

    @classmethod
    def string(cls, value: str) -> "Literal":
        return cls(LiteralKind.STRING, value)


@dataclass(frozen=True)
class FieldAccess:
    base: "Operand"
    field: str


Operand = Union[Var, Literal, FieldAccess]

UNIT = Literal.unit()


# ============================================================
# Instructions
# ============================================================


@dataclass(frozen=True)
class Assign:
    dest: SsaVar
    value: Operand


@dataclass(frozen=True)
class BinaryOp:
    dest: SsaVar
    op: BinaryOperator
    left: Operand
    right: Operand


@dataclass(frozen=True)
class UnaryOp:
    dest: SsaVar
    op: UnaryOperator
    operand: Operand


@dataclass(frozen=True)
class Phi:
    dest: SsaVar
    sources: tuple[tuple[SsaVar, int], ...] = ()


@dataclass(frozen=True)
class Call:
    dest: SsaVar | None
    func: str
    args: tuple[Operand, ...] = ()


@dataclass(frozen=True)
class MethodCall:
    dest: SsaVar | None
    receiver: Operand
    method: str
    args: tuple[Operand, ...] = ()


@dataclass(frozen=True)
class StorageLoad:
    dest: SsaVar
    storage_item: str
    key: Operand | None = None


@dataclass(frozen=True)
class StorageStore:
    storage_item: str
    key: Operand | None
    value: Operand


@dataclass(frozen=True)
class AddrValidate:
    dest: SsaVar
    address: Operand


@dataclass(frozen=True)
class SendMsg:
    msg_type: str
    fields: tuple[tuple[str, Operand], ...] = ()


@dataclass(frozen=True)
class CheckSender:
    sender_var: Operand
    expected: Operand


@dataclass(frozen=True)
class Branch:
    condition: Operand
    true_block: int
    false_block: int


@dataclass(frozen=True)
class Jump:
    target: int


@dataclass(frozen=True)
class Return:
    value: Operand | None = None


@dataclass(frozen=True)
class ResultUnwrap:
    dest: SsaVar
    value: Operand


@dataclass(frozen=True)
class ErrorReturn:
    error: Operand


Instruction = Union[
    Assign,
    BinaryOp,
    UnaryOp,
    Phi,
    Call,
    MethodCall,
    StorageLoad,
    StorageStore,
    AddrValidate,
    SendMsg,
    CheckSender,
    Branch,
    Jump,
    Return,
    ResultUnwrap,
    ErrorReturn,
]


# ============================================================
# Rendering
# ============================================================


def format_operand(operand: Operand) -> str:
    match operand:
        case Var(var=var):
            return str(var)
        case Literal(kind=LiteralKind.UNIT):
            return "()"
        case Literal(kind=LiteralKind.STRING, value=value):
            return f'"{value}"'
        case Literal(kind=LiteralKind.BOOL, value=value):
            return "true" if value else "false"
        case Literal(value=value):
            return str(value)
        case FieldAccess(base=base, field=field):
            return f"{format_operand(base)}.{field}"
        case _:
            assert_never(operand)


def _args(args: tuple[Operand, ...]) -> str:
    return ", ".join(format_operand(a) for a in args)


def _dest(dest: SsaVar | None) -> str:
    return f"{dest} = " if dest is not None else ""


def format_instruction(inst: Instruction) -> str:
    """One-line textual form, e.g. `_t0_0 = add(x_0, 1)`"""
    match inst:
        case Assign(dest=dest, value=value):
            return f"{dest} = {format_operand(value)}"
        case BinaryOp(dest=dest, op=op, left=left, right=right):
            return f"{dest} = {op.value.lower()}({format_operand(left)}, {format_operand(right)})"
        case UnaryOp(dest=dest, op=op, operand=operand):
            return f"{dest} = {op.value.lower()}({format_operand(operand)})"
        case Phi(dest=dest, sources=sources):
            return f"{dest} = phi({', '.join(f'{v}@bb{b}' for v, b in sources)})"
        case Call(dest=dest, func=func, args=args):
            return f"{_dest(dest)}call {func}({_args(args)})"
        case MethodCall(dest=dest, receiver=receiver, method=method, args=args):
            return f"{_dest(dest)}{format_operand(receiver)}.{method}({_args(args)})"
        case StorageLoad(dest=dest, storage_item=item, key=key):
            key_text = format_operand(key) if key is not None else ""
            return f"{dest} = load {item}[{key_text}]"
        case StorageStore(storage_item=item, key=key, value=value):
            key_text = format_operand(key) if key is not None else ""
            return f"store {item}[{key_text}] = {format_operand(value)}"
        case AddrValidate(dest=dest, address=address):
            return f"{dest} = addr_validate({format_operand(address)})"
        case SendMsg(msg_type=msg_type, fields=fields):
            return f"send {msg_type} {{{', '.join(f'{k}: {format_operand(v)}' for k, v in fields)}}}"
        case CheckSender(sender_var=sender, expected=expected):
            return f"check_sender({format_operand(sender)}, {format_operand(expected)})"
        case Branch(condition=condition, true_block=true_block, false_block=false_block):
            return f"branch {format_operand(condition)} ? bb{true_block} : bb{false_block}"
        case Jump(target=target):
            return f"jump bb{target}"
        case Return(value=value):
            return "return" if value is None else f"return {format_operand(value)}"
        case ResultUnwrap(dest=dest, value=value):
            return f"{dest} = {format_operand(value)}?"
        case ErrorReturn(error=error):
            return f"error_return {format_operand(error)}"
        case _:
            assert_never(inst)
