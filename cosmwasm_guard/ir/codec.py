"""
IR serialization

Converts FunctionIr to and from plain dict/list structures for the cache's
msgpack artifacts. Integer literal values are stored as strings because they
may exceed msgpack's 64-bit integer range.
"""

from typing import Any, assert_never

from cosmwasm_guard.span import SourceSpan

from .cfg import BasicBlock, Cfg
from .instruction import (
    AddrValidate,
    Assign,
    BinaryOp,
    BinaryOperator,
    Branch,
    Call,
    CheckSender,
    ErrorReturn,
    FieldAccess,
    Instruction,
    Jump,
    Literal,
    LiteralKind,
    MethodCall,
    Operand,
    Phi,
    ResultUnwrap,
    Return,
    SendMsg,
    SsaVar,
    StorageLoad,
    StorageStore,
    UnaryOp,
    UnaryOperator,
    Var,
)
from .types import FunctionIr


class CodecError(ValueError):
    """Malformed serialized IR"""


# ============================================================
# Variables and operands
# ============================================================


def encode_var(var: SsaVar | None) -> list[Any] | None:
    return None if var is None else [var.name, var.version]


def decode_var(data: list[Any] | None) -> SsaVar | None:
    return None if data is None else SsaVar(name=data[0], version=data[1])


def _var(data: list[Any]) -> SsaVar:
    var = decode_var(data)
    if var is None:
        raise CodecError("missing variable")
    return var


def encode_operand(operand: Operand | None) -> dict[str, Any] | None:
    match operand:
        case None:
            return None
        case Var(var=var):
            return {"t": "var", "var": encode_var(var)}
        case Literal(kind=kind, value=value):
            if kind in (LiteralKind.INT, LiteralKind.UINT):
                value = str(value)
            return {"t": "lit", "kind": kind.value, "value": value}
        case FieldAccess(base=base, field=field):
            return {"t": "field", "base": encode_operand(base), "field": field}
        case _:
            assert_never(operand)


def decode_operand(data: dict[str, Any] | None) -> Operand | None:
    if data is None:
        return None
    match data.get("t"):
        case "var":
            return Var(_var(data["var"]))
        case "lit":
            kind = LiteralKind(data["kind"])
            value = data["value"]
            if kind in (LiteralKind.INT, LiteralKind.UINT):
                value = int(value)
            return Literal(kind, value)
        case "field":
            return FieldAccess(base=_operand(data["base"]), field=data["field"])
        case other:
            raise CodecError(f"unknown operand tag: {other!r}")


def _operand(data: dict[str, Any]) -> Operand:
    operand = decode_operand(data)
    if operand is None:
        raise CodecError("missing operand")
    return operand


def _operands(items: list[dict[str, Any]]) -> tuple[Operand, ...]:
    return tuple(_operand(item) for item in items)


# ============================================================
# Instructions
# ============================================================


def encode_instruction(inst: Instruction) -> dict[str, Any]:
    match inst:
        case Assign(dest=dest, value=value):
            return {"op": "Assign", "dest": encode_var(dest), "value": encode_operand(value)}
        case BinaryOp(dest=dest, op=op, left=left, right=right):
            return {
                "op": "BinaryOp",
                "dest": encode_var(dest),
                "operator": op.value,
                "left": encode_operand(left),
                "right": encode_operand(right),
            }
        case UnaryOp(dest=dest, op=op, operand=operand):
            return {"op": "UnaryOp", "dest": encode_var(dest), "operator": op.value, "operand": encode_operand(operand)}
        case Phi(dest=dest, sources=sources):
            return {"op": "Phi", "dest": encode_var(dest), "sources": [[encode_var(v), b] for v, b in sources]}
        case Call(dest=dest, func=func, args=args):
            return {"op": "Call", "dest": encode_var(dest), "func": func, "args": [encode_operand(a) for a in args]}
        case MethodCall(dest=dest, receiver=receiver, method=method, args=args):
            return {
                "op": "MethodCall",
                "dest": encode_var(dest),
                "receiver": encode_operand(receiver),
                "method": method,
                "args": [encode_operand(a) for a in args],
            }
        case StorageLoad(dest=dest, storage_item=item, key=key):
            return {"op": "StorageLoad", "dest": encode_var(dest), "item": item, "key": encode_operand(key)}
        case StorageStore(storage_item=item, key=key, value=value):
            return {"op": "StorageStore", "item": item, "key": encode_operand(key), "value": encode_operand(value)}
        case AddrValidate(dest=dest, address=address):
            return {"op": "AddrValidate", "dest": encode_var(dest), "address": encode_operand(address)}
        case SendMsg(msg_type=msg_type, fields=fields):
            return {"op": "SendMsg", "msg_type": msg_type, "fields": [[k, encode_operand(v)] for k, v in fields]}
        case CheckSender(sender_var=sender, expected=expected):
            return {"op": "CheckSender", "sender": encode_operand(sender), "expected": encode_operand(expected)}
        case Branch(condition=condition, true_block=true_block, false_block=false_block):
            return {"op": "Branch", "condition": encode_operand(condition), "true": true_block, "false": false_block}
        case Jump(target=target):
            return {"op": "Jump", "target": target}
        case Return(value=value):
            return {"op": "Return", "value": encode_operand(value)}
        case ResultUnwrap(dest=dest, value=value):
            return {"op": "ResultUnwrap", "dest": encode_var(dest), "value": encode_operand(value)}
        case ErrorReturn(error=error):
            return {"op": "ErrorReturn", "error": encode_operand(error)}
        case _:
            assert_never(inst)


def decode_instruction(data: dict[str, Any]) -> Instruction:
    match data.get("op"):
        case "Assign":
            return Assign(dest=_var(data["dest"]), value=_operand(data["value"]))
        case "BinaryOp":
            return BinaryOp(
                dest=_var(data["dest"]),
                op=BinaryOperator(data["operator"]),
                left=_operand(data["left"]),
                right=_operand(data["right"]),
            )
        case "UnaryOp":
            return UnaryOp(
                dest=_var(data["dest"]), op=UnaryOperator(data["operator"]), operand=_operand(data["operand"])
            )
        case "Phi":
            return Phi(dest=_var(data["dest"]), sources=tuple((_var(v), b) for v, b in data["sources"]))
        case "Call":
            return Call(dest=decode_var(data["dest"]), func=data["func"], args=_operands(data["args"]))
        case "MethodCall":
            return MethodCall(
                dest=decode_var(data["dest"]),
                receiver=_operand(data["receiver"]),
                method=data["method"],
                args=_operands(data["args"]),
            )
        case "StorageLoad":
            return StorageLoad(dest=_var(data["dest"]), storage_item=data["item"], key=decode_operand(data["key"]))
        case "StorageStore":
            return StorageStore(
                storage_item=data["item"], key=decode_operand(data["key"]), value=_operand(data["value"])
            )
        case "AddrValidate":
            return AddrValidate(dest=_var(data["dest"]), address=_operand(data["address"]))
        case "SendMsg":
            return SendMsg(msg_type=data["msg_type"], fields=tuple((k, _operand(v)) for k, v in data["fields"]))
        case "CheckSender":
            return CheckSender(sender_var=_operand(data["sender"]), expected=_operand(data["expected"]))
        case "Branch":
            return Branch(condition=_operand(data["condition"]), true_block=data["true"], false_block=data["false"])
        case "Jump":
            return Jump(target=data["target"])
        case "Return":
            return Return(value=decode_operand(data["value"]))
        case "ResultUnwrap":
            return ResultUnwrap(dest=_var(data["dest"]), value=_operand(data["value"]))
        case "ErrorReturn":
            return ErrorReturn(error=_operand(data["error"]))
        case other:
            raise CodecError(f"unknown instruction: {other!r}")


# ============================================================
# Functions
# ============================================================


def encode_function(func: FunctionIr) -> dict[str, Any]:
    return {
        "name": func.name,
        "params": [encode_var(p) for p in func.params],
        "is_entry_point": func.is_entry_point,
        "source_span": func.source_span.to_dict(),
        "cfg": {
            "function_name": func.cfg.function_name,
            "entry_block": func.cfg.entry_block,
            "exit_blocks": list(func.cfg.exit_blocks),
            "blocks": [
                {
                    "id": block.id,
                    "instructions": [encode_instruction(i) for i in block.instructions],
                    "successors": list(block.successors),
                    "predecessors": list(block.predecessors),
                }
                for block in func.cfg.blocks
            ],
        },
    }


def decode_function(data: dict[str, Any]) -> FunctionIr:
    cfg_data = data["cfg"]
    cfg = Cfg(
        function_name=cfg_data["function_name"],
        blocks=[
            BasicBlock(
                id=block["id"],
                instructions=[decode_instruction(i) for i in block["instructions"]],
                successors=list(block["successors"]),
                predecessors=list(block["predecessors"]),
            )
            for block in cfg_data["blocks"]
        ],
        entry_block=cfg_data["entry_block"],
        exit_blocks=list(cfg_data["exit_blocks"]),
    )
    return FunctionIr(
        name=data["name"],
        params=[_var(p) for p in data["params"]],
        cfg=cfg,
        is_entry_point=data["is_entry_point"],
        source_span=SourceSpan.from_dict(data["source_span"]),
    )
