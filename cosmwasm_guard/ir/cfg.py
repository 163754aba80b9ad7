"""
Control Flow Graph

BasicBlock, Cfg and the read-only graph queries used by detectors:
defined/used variables, def-use chains and reverse postorder.
"""

from dataclasses import dataclass, field
from typing import assert_never

from .instruction import (
    AddrValidate,
    Assign,
    BinaryOp,
    Branch,
    Call,
    CheckSender,
    ErrorReturn,
    FieldAccess,
    Instruction,
    Jump,
    Literal,
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
    Var,
    format_instruction,
)

BlockId = int


@dataclass
class BasicBlock:
    """Straight-line instruction sequence; append-only while the CFG is built"""

    id: BlockId
    instructions: list[Instruction] = field(default_factory=list)
    successors: list[BlockId] = field(default_factory=list)
    predecessors: list[BlockId] = field(default_factory=list)

    def has_return(self) -> bool:
        return any(isinstance(inst, Return) for inst in self.instructions)


@dataclass
class DefUse:
    """Where one SSA variable is defined and every (block, index) reading it"""

    def_block: BlockId
    def_instruction_idx: int
    uses: list[tuple[BlockId, int]] = field(default_factory=list)


@dataclass
class Cfg:
    """Control flow graph for a single function. Block 0 is the entry block."""

    function_name: str
    blocks: list[BasicBlock] = field(default_factory=list)
    entry_block: BlockId = 0
    exit_blocks: list[BlockId] = field(default_factory=list)

    # ============================================================
    # Construction
    # ============================================================

    def add_block(self) -> BlockId:
        block_id = len(self.blocks)
        self.blocks.append(BasicBlock(id=block_id))
        return block_id

    def add_edge(self, source: BlockId, target: BlockId) -> None:
        """Add source -> target; duplicate edges are ignored"""
        if target not in self.blocks[source].successors:
            self.blocks[source].successors.append(target)
        if source not in self.blocks[target].predecessors:
            self.blocks[target].predecessors.append(source)

    def compute_exit_blocks(self) -> list[BlockId]:
        """Blocks with no successors or containing a Return"""
        self.exit_blocks = [b.id for b in self.blocks if not b.successors or b.has_return()]
        return self.exit_blocks

    # ============================================================
    # Queries
    # ============================================================

    def instructions(self):
        """Yield (block_id, index, instruction) in block order"""
        for block in self.blocks:
            for idx, inst in enumerate(block.instructions):
                yield block.id, idx, inst

    def defined_vars(self) -> set[SsaVar]:
        return {var for _, _, inst in self.instructions() if (var := instruction_def(inst)) is not None}

    def used_vars(self) -> set[SsaVar]:
        return {var for _, _, inst in self.instructions() for var in instruction_uses(inst)}

    def def_use_chains(self) -> dict[SsaVar, DefUse]:
        """
        Map each defined variable to its uses.

        Uses of variables with no definition (parameters, forward-referenced
        names) are dropped.
        """
        chains: dict[SsaVar, DefUse] = {}

        for block_id, idx, inst in self.instructions():
            var = instruction_def(inst)
            if var is not None:
                chains[var] = DefUse(def_block=block_id, def_instruction_idx=idx)

        for block_id, idx, inst in self.instructions():
            for var in instruction_uses(inst):
                chain = chains.get(var)
                if chain is not None:
                    chain.uses.append((block_id, idx))

        return chains

    def reverse_postorder(self) -> list[BlockId]:
        """Blocks reachable from the entry, in reverse postorder"""
        if not self.blocks:
            return []

        visited: set[BlockId] = set()
        postorder: list[BlockId] = []
        # Iterative DFS: (block, next successor index)
        stack: list[tuple[BlockId, int]] = [(self.entry_block, 0)]
        visited.add(self.entry_block)

        while stack:
            block_id, succ_idx = stack[-1]
            successors = self.blocks[block_id].successors
            if succ_idx < len(successors):
                stack[-1] = (block_id, succ_idx + 1)
                succ = successors[succ_idx]
                if succ not in visited and succ < len(self.blocks):
                    visited.add(succ)
                    stack.append((succ, 0))
            else:
                stack.pop()
                postorder.append(block_id)

        postorder.reverse()
        return postorder

    def reachable_blocks(self) -> set[BlockId]:
        return set(self.reverse_postorder())

    def dump(self) -> str:
        lines = []
        for block in self.blocks:
            marker = " (exit)" if block.id in self.exit_blocks else ""
            lines.append(f"bb{block.id}{marker}: -> {', '.join(f'bb{s}' for s in block.successors) or '-'}")
            lines.extend(f"    {format_instruction(inst)}" for inst in block.instructions)
        return "\n".join(lines)


# ============================================================
# Per-instruction def/use extraction
# ============================================================


def instruction_def(inst: Instruction) -> SsaVar | None:
    """The variable an instruction defines, if any"""
    match inst:
        case (
            Assign(dest=dest)
            | BinaryOp(dest=dest)
            | UnaryOp(dest=dest)
            | Phi(dest=dest)
            | StorageLoad(dest=dest)
            | AddrValidate(dest=dest)
            | ResultUnwrap(dest=dest)
            | Call(dest=dest)
            | MethodCall(dest=dest)
        ):
            return dest
        case StorageStore() | SendMsg() | CheckSender() | Branch() | Jump() | Return() | ErrorReturn():
            return None
        case _:
            assert_never(inst)


def instruction_uses(inst: Instruction) -> list[SsaVar]:
    """Every variable an instruction reads, recursing through field accesses"""
    match inst:
        case Assign(value=value) | UnaryOp(operand=value) | AddrValidate(address=value):
            return operand_vars(value)
        case ResultUnwrap(value=value) | ErrorReturn(error=value):
            return operand_vars(value)
        case BinaryOp(left=left, right=right) | CheckSender(sender_var=left, expected=right):
            return operand_vars(left) + operand_vars(right)
        case Phi(sources=sources):
            return [var for var, _ in sources]
        case Call(args=args):
            return [var for arg in args for var in operand_vars(arg)]
        case MethodCall(receiver=receiver, args=args):
            return operand_vars(receiver) + [var for arg in args for var in operand_vars(arg)]
        case StorageLoad(key=key):
            return operand_vars(key) if key is not None else []
        case StorageStore(key=key, value=value):
            return (operand_vars(key) if key is not None else []) + operand_vars(value)
        case SendMsg(fields=fields):
            return [var for _, op in fields for var in operand_vars(op)]
        case Branch(condition=condition):
            return operand_vars(condition)
        case Return(value=value):
            return operand_vars(value) if value is not None else []
        case Jump():
            return []
        case _:
            assert_never(inst)


def operand_vars(operand: Operand) -> list[SsaVar]:
    match operand:
        case Var(var=var):
            return [var]
        case FieldAccess(base=base):
            return operand_vars(base)
        case Literal():
            return []
        case _:
            assert_never(operand)
