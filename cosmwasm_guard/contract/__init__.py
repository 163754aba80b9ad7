"""
Contract declarations

Models and the per-file visitor. The crate-level aggregator lives in
`cosmwasm_guard.contract.crate_analyzer` (it depends on the IR and cache
packages, which depend on these models).
"""

from .models import (
    ContractInfo,
    EntryPoint,
    EntryPointKind,
    FieldInfo,
    FunctionInfo,
    MessageEnum,
    MessageKind,
    MessageVariant,
    ParamInfo,
    StateItem,
    StorageKind,
)
from .visitor import ContractVisitor

__all__ = [
    "ContractInfo",
    "ContractVisitor",
    "EntryPoint",
    "EntryPointKind",
    "FieldInfo",
    "FunctionInfo",
    "MessageEnum",
    "MessageKind",
    "MessageVariant",
    "ParamInfo",
    "StateItem",
    "StorageKind",
]
