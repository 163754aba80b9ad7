"""
Function and contract IR containers
"""

from dataclasses import dataclass, field

from cosmwasm_guard.span import SourceSpan

from .cfg import Cfg
from .instruction import Instruction, SsaVar


@dataclass
class FunctionIr:
    """
    IR for a single function.

    `is_entry_point` is reconciled after the whole crate is merged, since a
    per-file build cannot see entry points declared in sibling files.
    """

    name: str
    params: list[SsaVar]
    cfg: Cfg
    is_entry_point: bool
    source_span: SourceSpan

    def iter_instructions(self):
        """Yield (block_id, instruction) pairs in block order"""
        for block in self.cfg.blocks:
            for inst in block.instructions:
                yield block.id, inst

    def find_instructions(self, *types: type) -> list[Instruction]:
        return [inst for _, inst in self.iter_instructions() if isinstance(inst, types)]


@dataclass
class ContractIr:
    """IR for an entire contract"""

    functions: list[FunctionIr] = field(default_factory=list)
    entry_points: list[str] = field(default_factory=list)

    def get_function(self, name: str) -> FunctionIr | None:
        for func in self.functions:
            if func.name == name:
                return func
        return None

    def entry_point_functions(self) -> list[FunctionIr]:
        return [f for f in self.functions if f.is_entry_point]

    def reconcile_entry_points(self, entry_point_names: list[str]) -> None:
        """Recompute entry-point flags against the crate-wide entry-point list"""
        self.entry_points = list(entry_point_names)
        names = set(entry_point_names)
        for func in self.functions:
            func.is_entry_point = func.name in names
