"""
SSA intermediate representation

instruction -> cfg -> types, built by IrBuilder and persisted through codec.
"""

from .builder import TEMP_PREFIX, IrBuilder, is_type_or_variant
from .cfg import BasicBlock, BlockId, Cfg, DefUse, instruction_def, instruction_uses, operand_vars
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
    format_instruction,
)
from .types import ContractIr, FunctionIr

__all__ = [
    "TEMP_PREFIX",
    "AddrValidate",
    "Assign",
    "BasicBlock",
    "BinaryOp",
    "BinaryOperator",
    "BlockId",
    "Branch",
    "Call",
    "Cfg",
    "CheckSender",
    "ContractIr",
    "DefUse",
    "ErrorReturn",
    "FieldAccess",
    "FunctionIr",
    "Instruction",
    "IrBuilder",
    "Jump",
    "Literal",
    "LiteralKind",
    "MethodCall",
    "Operand",
    "Phi",
    "ResultUnwrap",
    "Return",
    "SendMsg",
    "SsaVar",
    "StorageLoad",
    "StorageStore",
    "UnaryOp",
    "UnaryOperator",
    "Var",
    "format_instruction",
    "instruction_def",
    "instruction_uses",
    "is_type_or_variant",
    "operand_vars",
]
