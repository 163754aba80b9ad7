"""
IrBuilder tests: SSA form, CFG shape and method-call idioms
"""

from collections import Counter

import pytest

from cosmwasm_guard.contract import ContractVisitor
from cosmwasm_guard.ir import (
    AddrValidate,
    Assign,
    BinaryOp,
    BinaryOperator,
    Branch,
    Call,
    ContractIr,
    FieldAccess,
    FunctionIr,
    IrBuilder,
    Jump,
    Literal,
    LiteralKind,
    MethodCall,
    ResultUnwrap,
    Return,
    SsaVar,
    StorageLoad,
    StorageStore,
    Var,
    instruction_def,
    is_type_or_variant,
)
from cosmwasm_guard.parsing import parse_source


def build_contract(source: str) -> ContractIr:
    return IrBuilder.build_contract(ContractVisitor.extract(parse_source(source, "test.rs")))


def build(source: str) -> FunctionIr:
    return build_contract(source).functions[0]


def instructions(func: FunctionIr) -> list:
    return [inst for _, inst in func.iter_instructions()]


class TestSsaForm:
    """Versioning and SSA uniqueness"""

    def test_unique_definitions(self, vulnerable_source, safe_source):
        """No (name, version) is defined twice in any function"""
        for source in (vulnerable_source, safe_source):
            for func in build_contract(source).functions:
                defs = Counter(
                    var for _, inst in func.iter_instructions() if (var := instruction_def(inst)) is not None
                )
                assert all(count == 1 for count in defs.values()), func.cfg.dump()

    def test_variable_round_trip(self):
        func = build("fn f() { let count = 5; let result = count; }")

        assert instructions(func) == [
            Assign(dest=SsaVar("count", 0), value=Literal(LiteralKind.UINT, 5)),
            Assign(dest=SsaVar("result", 0), value=Var(SsaVar("count", 0))),
        ]

    def test_params_are_version_zero(self):
        func = build("fn f(a: u64, b: u64) -> u64 { a + b }")

        assert func.params == [SsaVar("a", 0), SsaVar("b", 0)]
        assert instructions(func) == [
            BinaryOp(
                dest=SsaVar("_t0", 0),
                op=BinaryOperator.ADD,
                left=Var(SsaVar("a", 0)),
                right=Var(SsaVar("b", 0)),
            )
        ]

    def test_shadowing_reads_previous_version(self):
        """`let x = x + 1` reads the old x before minting the new one"""
        func = build("fn f(x: u64) { let x = x + 1; }")

        add, assign = instructions(func)
        assert add.left == Var(SsaVar("x", 0))
        assert assign.dest == SsaVar("x", 1)

    def test_compound_assignment_mints_version(self):
        func = build("fn f(mut x: u64) { x += 2; }")

        (inst,) = instructions(func)
        assert inst == BinaryOp(
            dest=SsaVar("x", 1),
            op=BinaryOperator.ADD,
            left=Var(SsaVar("x", 0)),
            right=Literal(LiteralKind.UINT, 2),
        )

    def test_plain_assignment_mints_version(self):
        func = build("fn f(mut total: u64) { total = 7; }")

        assert instructions(func) == [Assign(dest=SsaVar("total", 1), value=Literal(LiteralKind.UINT, 7))]


class TestClassification:
    """Type/variant markers never become SSA variables"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Response::new", True),
            ("x", False),
            ("CONFIG", False),
            ("MAX_ITEMS_2", False),
            ("Response", True),
            ("Uint128", True),
        ],
    )
    def test_is_type_or_variant(self, name, expected):
        assert is_type_or_variant(name, {}) is expected

    def test_tracked_local_wins(self):
        assert is_type_or_variant("Foo", {"Foo": 1}) is False

    def test_no_type_pollution(self):
        func = build("fn f() { let x = Response::new(); let y = ContractError::Unauthorized; }")

        names = {v.name for v in func.cfg.defined_vars() | func.cfg.used_vars()}
        assert not any("Response" in name or "ContractError" in name for name in names)
        assert instructions(func)[0] == Call(dest=SsaVar("_t0", 0), func="Response::new", args=())
        assert instructions(func)[-1] == Assign(
            dest=SsaVar("y", 0), value=Literal(LiteralKind.STRING, "ContractError::Unauthorized")
        )


class TestControlFlow:
    """CFG shape for if / match / return / ?"""

    def test_entry_block_is_zero(self):
        func = build("fn f(x: bool) -> u32 { if x { 1 } else { 2 } }")

        assert func.cfg.entry_block == 0
        assert func.cfg.blocks

    def test_branch_shape(self):
        func = build("fn f(x: bool) -> u32 { if x { 1 } else { 2 } }")
        cfg = func.cfg

        assert len(cfg.blocks) >= 4
        branch = cfg.blocks[0].instructions[-1]
        assert isinstance(branch, Branch)
        assert branch.condition == Var(SsaVar("x", 0))
        assert sorted(cfg.blocks[0].successors) == sorted([branch.true_block, branch.false_block])

    def test_missing_else_still_gets_block(self):
        func = build("fn f(x: bool) { if x { g(); } }")
        cfg = func.cfg

        then_block, else_block = cfg.blocks[0].successors
        assert cfg.blocks[else_block].instructions == [Jump(target=3)]
        assert cfg.blocks[then_block].successors == [3]

    def test_exit_blocks(self):
        func = build("fn f(x: bool) -> u32 { if x { return 1; } 2 }")
        cfg = func.cfg

        then_block = cfg.blocks[0].successors[0]
        assert any(isinstance(inst, Return) for inst in cfg.blocks[then_block].instructions)
        merge_blocks = [b.id for b in cfg.blocks if not b.successors]
        assert sorted(cfg.exit_blocks) == sorted({then_block, *merge_blocks})
        assert len(cfg.exit_blocks) == 2

    def test_match_overapproximation(self):
        func = build("fn f(x: u8) -> u8 { match x { 0 => 1, 1 => 2, _ => 3 } }")
        cfg = func.cfg

        assert len(cfg.blocks) >= 3 + 2
        arm_blocks = cfg.blocks[0].successors
        assert len(arm_blocks) == 3
        assert set(arm_blocks) <= cfg.reachable_blocks()

        # Nominal terminator: the entry jumps to merge without an edge
        entry_jump = cfg.blocks[0].instructions[-1]
        assert isinstance(entry_jump, Jump)
        assert entry_jump.target not in cfg.blocks[0].successors
        for arm in arm_blocks:
            assert cfg.blocks[arm].successors == [entry_jump.target]

    def test_else_if_nests(self):
        func = build("fn f(x: u8) { if x == 0 { a(); } else if x == 1 { b(); } else { c(); } }")

        branches = func.find_instructions(Branch)
        assert len(branches) == 2
        assert len(func.cfg.blocks) == 7

    def test_try_has_no_early_exit_edge(self):
        func = build("fn f() -> Result<u8, E> { let a = g()?; Ok(a) }")

        assert len(func.cfg.blocks) == 1
        assert func.cfg.exit_blocks == [0]
        call, unwrap, assign, _ok = instructions(func)
        assert isinstance(unwrap, ResultUnwrap)
        assert unwrap.value == Var(call.dest)
        assert assign == Assign(dest=SsaVar("a", 0), value=Var(unwrap.dest))

    def test_return_does_not_stop_lowering(self):
        func = build("fn f() -> u8 { return 1; g(); }")

        kinds = [type(inst) for inst in instructions(func)]
        assert kinds == [Return, Call]
        assert func.cfg.exit_blocks == [0]


class TestMethodIdioms:
    """Recognized CosmWasm method calls"""

    def test_addr_validate(self):
        func = build("fn f(deps: DepsMut, owner: String) { let a = deps.api.addr_validate(&owner)?; }")

        (validate,) = func.find_instructions(AddrValidate)
        assert validate.address == Var(SsaVar("owner", 0))

    def test_storage_store_item(self):
        func = build("fn f(deps: DepsMut, config: Config) { CONFIG.save(deps.storage, &config)?; }")

        (store,) = func.find_instructions(StorageStore)
        assert store.storage_item == "CONFIG"
        assert store.key is None
        assert store.value == Var(SsaVar("config", 0))

    def test_storage_store_map(self):
        func = build(
            "fn f(deps: DepsMut, addr: String, amount: u128) { BALANCES.save(deps.storage, &addr, &amount)?; }"
        )

        (store,) = func.find_instructions(StorageStore)
        assert store.storage_item == "BALANCES"
        assert store.key == Var(SsaVar("addr", 0))
        assert store.value == Var(SsaVar("amount", 0))

    def test_storage_load(self):
        func = build("fn f(deps: Deps, addr: String) { let b = BALANCES.may_load(deps.storage, &addr)?; }")

        (load,) = func.find_instructions(StorageLoad)
        assert load.storage_item == "BALANCES"
        assert load.key == Var(SsaVar("addr", 0))

    def test_item_load_has_no_key(self):
        func = build("fn f(deps: Deps) { let c = CONFIG.load(deps.storage)?; }")

        (load,) = func.find_instructions(StorageLoad)
        assert load.key is None
        assert load.storage_item == "CONFIG"

    def test_range_is_method_call(self):
        func = build("fn f(deps: Deps) { let it = BALANCES.range(deps.storage, None, None, Order::Ascending); }")

        (call,) = func.find_instructions(MethodCall)
        assert call.method == "range"
        assert call.receiver == Var(SsaVar("BALANCES", 0))
        assert call.args[0] == FieldAccess(base=Var(SsaVar("deps", 0)), field="storage")

    def test_generic_method_call(self):
        func = build("fn f(v: Vec<u8>) { let n = v.iter().collect::<Vec<_>>(); }")

        methods = [inst.method for inst in func.find_instructions(MethodCall)]
        assert methods == ["iter", "collect"]

    def test_macro(self):
        func = build('fn f(a: u8) { ensure!(a > 0, "zero"); }')

        (call,) = func.find_instructions(Call)
        assert call.func == "macro!ensure"


class TestFallbacks:
    """Unsupported syntax and literal edge cases"""

    def test_struct_expression_placeholder(self):
        func = build("fn f(o: String) { let c = Config { owner: o }; }")

        placeholder, assign = instructions(func)
        assert placeholder == Assign(dest=SsaVar("_t0", 0), value=Literal(LiteralKind.UNIT))
        assert assign == Assign(dest=SsaVar("c", 0), value=Var(SsaVar("_t0", 0)))

    def test_integer_literal_forms(self):
        func = build("fn f() { let a = 1_000u128; let b = 0xff; let c = 340282366920938463463374607431768211456; }")

        a, b, c = instructions(func)
        assert a.value == Literal(LiteralKind.UINT, 1000)
        assert b.value == Literal(LiteralKind.UINT, 255)
        assert c.value == Literal(LiteralKind.UNIT)

    def test_bool_and_string_literals(self):
        func = build('fn f() { let a = true; let b = "hi"; }')

        a, b = instructions(func)
        assert a.value == Literal(LiteralKind.BOOL, True)
        assert b.value == Literal(LiteralKind.STRING, "hi")

    def test_entry_point_flag(self, vulnerable_source):
        ir = build_contract(vulnerable_source)

        assert ir.entry_points == ["instantiate", "execute"]
        assert [f.name for f in ir.entry_point_functions()] == ["instantiate", "execute"]

    def test_deep_nesting_keeps_partial_ir(self):
        """Nesting past the interpreter's recursion limit is logged, not raised"""
        source = "fn deep() -> u64 { " + "1 + " * 3000 + "1 }\n\nfn after() { let a = 1; }\n"

        ir = build_contract(source)

        assert [f.name for f in ir.functions] == ["deep", "after"]
        assert instructions(ir.functions[1]) == [Assign(dest=SsaVar("a", 0), value=Literal(LiteralKind.UINT, 1))]
