"""
Cfg graph query tests
"""

from cosmwasm_guard.ir import (
    Assign,
    BinaryOp,
    BinaryOperator,
    Cfg,
    FieldAccess,
    Literal,
    LiteralKind,
    Return,
    SsaVar,
    Var,
    instruction_uses,
)

X0 = SsaVar("x", 0)
Y0 = SsaVar("y", 0)
P0 = SsaVar("param", 0)


def diamond() -> Cfg:
    """0 -> {1, 2} -> 3"""
    cfg = Cfg(function_name="diamond")
    for _ in range(4):
        cfg.add_block()
    cfg.add_edge(0, 1)
    cfg.add_edge(0, 2)
    cfg.add_edge(1, 3)
    cfg.add_edge(2, 3)
    return cfg


class TestConstruction:
    """add_block / add_edge / exit blocks"""

    def test_block_ids_are_sequential(self):
        cfg = Cfg(function_name="f")

        assert [cfg.add_block() for _ in range(3)] == [0, 1, 2]
        assert cfg.entry_block == 0

    def test_duplicate_edges_ignored(self):
        cfg = diamond()
        cfg.add_edge(0, 1)

        assert cfg.blocks[0].successors == [1, 2]
        assert cfg.blocks[1].predecessors == [0]
        assert cfg.blocks[3].predecessors == [1, 2]

    def test_exit_blocks(self):
        cfg = diamond()
        cfg.blocks[1].instructions.append(Return(value=None))

        assert cfg.compute_exit_blocks() == [1, 3]


class TestQueries:
    """Def/use and traversal order"""

    def test_reverse_postorder(self):
        cfg = diamond()
        order = cfg.reverse_postorder()

        assert order[0] == 0
        assert order[-1] == 3
        assert set(order) == {0, 1, 2, 3}

    def test_unreachable_block_excluded(self):
        cfg = diamond()
        cfg.add_block()

        assert 4 not in cfg.reverse_postorder()
        assert cfg.reachable_blocks() == {0, 1, 2, 3}

    def test_empty_cfg(self):
        assert Cfg(function_name="empty").reverse_postorder() == []

    def test_def_use_chains(self):
        cfg = diamond()
        cfg.blocks[0].instructions.append(Assign(dest=X0, value=Var(P0)))
        cfg.blocks[1].instructions.append(
            BinaryOp(dest=Y0, op=BinaryOperator.ADD, left=Var(X0), right=Literal(LiteralKind.UINT, 1))
        )
        cfg.blocks[3].instructions.append(Return(value=FieldAccess(base=Var(X0), field="owner")))

        chains = cfg.def_use_chains()

        assert set(chains) == {X0, Y0}
        assert (chains[X0].def_block, chains[X0].def_instruction_idx) == (0, 0)
        assert chains[X0].uses == [(1, 0), (3, 0)]
        assert chains[Y0].uses == []
        # param has uses but no definition
        assert P0 not in chains
        assert cfg.defined_vars() == {X0, Y0}
        assert cfg.used_vars() == {P0, X0}

    def test_uses_recurse_through_field_access(self):
        inst = Return(value=FieldAccess(base=FieldAccess(base=Var(X0), field="a"), field="b"))

        assert instruction_uses(inst) == [X0]

    def test_dump(self):
        cfg = diamond()
        cfg.blocks[0].instructions.append(Assign(dest=X0, value=Literal(LiteralKind.BOOL, True)))
        cfg.compute_exit_blocks()

        text = cfg.dump()

        assert "bb0: -> bb1, bb2" in text
        assert "x_0 = true" in text
        assert "bb3 (exit): -> -" in text
