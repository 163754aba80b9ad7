"""
IR Builder

Lowers a function body (tree-sitter Rust syntax) into an SSA-form CFG.

Lowering rules:
- Reading a name yields its latest version; `let`, `x = ...` and `x op= ...`
  mint a new version. Temporaries are named `_t<n>`.
- Paths are classified as variables or type/variant markers so that
  `Response::new()` or `ContractError::Unauthorized {}` never create SSA vars.
- `if` builds then/else/merge blocks; `match` fans out one block per arm into
  a shared merge block.
- `?` emits ResultUnwrap without materializing the implicit early-exit edge.
- Anything unrecognized becomes `Assign(tmp, ())` and never fails the function;
  neither does expression nesting deeper than the Python stack allows.
"""

import re

from cosmwasm_guard.contract.models import ContractInfo, FunctionInfo
from cosmwasm_guard.observability import get_logger
from cosmwasm_guard.parsing import SyntaxNode, compact_text, string_literal_value

from .cfg import BlockId, Cfg
from .instruction import (
    BINARY_OPERATOR_TOKENS,
    UNARY_OPERATOR_TOKENS,
    UNIT,
    AddrValidate,
    Assign,
    BinaryOp,
    BinaryOperator,
    Branch,
    Call,
    FieldAccess,
    Instruction,
    Jump,
    Literal,
    LiteralKind,
    MethodCall,
    Operand,
    ResultUnwrap,
    Return,
    SsaVar,
    StorageLoad,
    StorageStore,
    UnaryOp,
    UnaryOperator,
    Var,
)
from .types import ContractIr, FunctionIr

logger = get_logger(__name__)

TEMP_PREFIX = "_t"

U128_MAX = 2**128 - 1

_INT_SUFFIX = re.compile(r"(?:[iu](?:8|16|32|64|128|size))$")

ADDR_VALIDATE_METHODS = frozenset({"addr_validate", "addr_canonicalize"})
STORAGE_STORE_METHODS = frozenset({"save", "update"})
STORAGE_LOAD_METHODS = frozenset({"load", "may_load"})

# Statement-level items inside a body carry no executable code of their own
_SKIPPED_STATEMENTS = frozenset({"use_declaration", "empty_statement", "macro_definition", "inner_attribute_item"})


def is_type_or_variant(name: str, known_vars: dict[str, int]) -> bool:
    """
    Classify a single path.

    Priority: multi-segment path -> marker; tracked local -> variable;
    ALL_CAPS constant -> variable; Uppercase start -> marker; else variable.
    """
    if "::" in name:
        return True
    if name in known_vars:
        return False
    if all(c in "ABCDEFGHIJKLMNOPQRSTUVWXYZ_0123456789" for c in name):
        return False
    return name[:1].isascii() and name[:1].isupper()


class IrBuilder:
    """
    Per-function lowering state.

    Use the class methods; an instance lives for exactly one function build.

    Example:
        ```python
        ir = IrBuilder.build_contract(contract_info)
        ir.get_function("execute").cfg.exit_blocks
        ```
    """

    def __init__(self, function_name: str):
        self.cfg = Cfg(function_name=function_name)
        self.current_block: BlockId = self.cfg.add_block()
        self.var_counter: dict[str, int] = {}
        self.temp_counter = 0

    # ============================================================
    # Entry points
    # ============================================================

    @classmethod
    def build_contract(cls, contract: ContractInfo) -> ContractIr:
        """Build IR for every function that has a body"""
        entry_point_names = contract.entry_point_names
        ir = ContractIr(entry_points=list(entry_point_names))

        for func in contract.functions:
            if func.body is not None:
                ir.functions.append(cls.build_function(func, func.body, func.name in entry_point_names))

        return ir

    @classmethod
    def build_function(cls, func: FunctionInfo, body: SyntaxNode, is_entry_point: bool) -> FunctionIr:
        """Build IR for a single function from its body block"""
        builder = cls(func.name)
        params = [builder.new_ssa_var(p.name) for p in func.params]

        try:
            builder.lower_block(body)
        except RecursionError:
            # Pathologically nested expressions keep the blocks lowered so far
            logger.warning("ir_lowering_too_deep", function=func.name, file=func.span.file)
        builder.cfg.compute_exit_blocks()

        return FunctionIr(
            name=func.name,
            params=params,
            cfg=builder.cfg,
            is_entry_point=is_entry_point,
            source_span=func.span,
        )

    # ============================================================
    # State
    # ============================================================

    def new_ssa_var(self, name: str) -> SsaVar:
        version = self.var_counter.get(name, 0)
        self.var_counter[name] = version + 1
        return SsaVar(name=name, version=version)

    def new_temp(self) -> SsaVar:
        name = f"{TEMP_PREFIX}{self.temp_counter}"
        self.temp_counter += 1
        return self.new_ssa_var(name)

    def new_block(self) -> BlockId:
        return self.cfg.add_block()

    def emit(self, inst: Instruction) -> None:
        self.cfg.blocks[self.current_block].instructions.append(inst)

    def read_var(self, name: str) -> Var:
        """Latest version of `name`, minting a version-0 placeholder if unseen"""
        if name in self.var_counter:
            return Var(SsaVar(name=name, version=self.var_counter[name] - 1))
        return Var(self.new_ssa_var(name))

    def placeholder(self) -> Operand:
        temp = self.new_temp()
        self.emit(Assign(dest=temp, value=UNIT))
        return Var(temp)

    # ============================================================
    # Statements
    # ============================================================

    def lower_block(self, block: SyntaxNode) -> Operand:
        """Lower every statement; the value is the trailing expression's"""
        last: Operand = UNIT
        for stmt in block.named_children:
            match stmt.kind:
                case "let_declaration":
                    self.lower_let(stmt)
                    last = UNIT
                case "expression_statement":
                    expr = stmt.first_named()
                    if expr is not None:
                        self.lower_expr(expr)
                    last = UNIT
                case kind if kind.endswith("_item") or kind in _SKIPPED_STATEMENTS:
                    last = UNIT
                case _:
                    last = self.lower_expr(stmt)
        return last

    def lower_let(self, node: SyntaxNode) -> None:
        pattern = node.child_by_field("pattern")
        if pattern is not None and pattern.kind == "identifier":
            name = pattern.text
        else:
            name = f"_pat{self.temp_counter}"

        value_node = node.child_by_field("value")
        if value_node is None:
            self.new_ssa_var(name)
            return

        # Initializer first: `let x = x + 1` reads the previous x
        value = self.lower_expr(value_node)
        self.emit(Assign(dest=self.new_ssa_var(name), value=value))

    # ============================================================
    # Expressions
    # ============================================================

    def lower_expr(self, node: SyntaxNode) -> Operand:
        match node.kind:
            case "integer_literal" | "string_literal" | "raw_string_literal" | "boolean_literal":
                return self.lower_literal(node)
            case "unit_expression":
                return UNIT
            case "identifier" | "self":
                return self.lower_path(node.text)
            case "scoped_identifier":
                return self.lower_path(compact_text(node))
            case "binary_expression":
                return self.lower_binary(node)
            case "compound_assignment_expr":
                return self.lower_compound_assignment(node)
            case "assignment_expression":
                return self.lower_assignment(node)
            case "unary_expression":
                return self.lower_unary(node)
            case "reference_expression":
                value = node.child_by_field("value")
                return self.lower_expr(value) if value is not None else UNIT
            case "parenthesized_expression":
                inner = node.first_named()
                return self.lower_expr(inner) if inner is not None else UNIT
            case "call_expression":
                return self.lower_call(node)
            case "field_expression":
                return self.lower_field(node)
            case "if_expression":
                return self.lower_if(node)
            case "match_expression":
                return self.lower_match(node)
            case "block":
                return self.lower_block(node)
            case "return_expression":
                return self.lower_return(node)
            case "try_expression":
                return self.lower_try(node)
            case "macro_invocation":
                return self.lower_macro(node)
            case _:
                logger.debug("unsupported_syntax", kind=node.kind, function=self.cfg.function_name)
                return self.placeholder()

    def lower_literal(self, node: SyntaxNode) -> Operand:
        match node.kind:
            case "boolean_literal":
                return Literal(LiteralKind.BOOL, node.text == "true")
            case "integer_literal":
                digits = _INT_SUFFIX.sub("", node.text.replace("_", ""))
                try:
                    value = int(digits, 0)
                except ValueError:
                    try:
                        value = int(digits, 10)
                    except ValueError:
                        return UNIT
                return Literal(LiteralKind.UINT, value) if value <= U128_MAX else UNIT
            case _:
                text = string_literal_value(node)
                return Literal.string(text) if text is not None else UNIT

    def lower_path(self, name: str) -> Operand:
        if is_type_or_variant(name, self.var_counter):
            return Literal.string(name)
        return self.read_var(name)

    def lower_binary(self, node: SyntaxNode) -> Operand:
        left = self.lower_operand_field(node, "left")
        right = self.lower_operand_field(node, "right")
        operator = node.child_by_field("operator")
        op = BINARY_OPERATOR_TOKENS.get(operator.text if operator else "", BinaryOperator.UNKNOWN)

        dest = self.new_temp()
        self.emit(BinaryOp(dest=dest, op=op, left=left, right=right))
        return Var(dest)

    def lower_compound_assignment(self, node: SyntaxNode) -> Operand:
        """`x += e` reads x, then mints a new version of x for the result"""
        target = node.child_by_field("left")
        operator = node.child_by_field("operator")
        op = BINARY_OPERATOR_TOKENS.get(operator.text.rstrip("=") if operator else "", BinaryOperator.UNKNOWN)

        current = self.lower_expr(target) if target is not None else UNIT
        right = self.lower_operand_field(node, "right")

        if target is not None and target.kind == "identifier":
            dest = self.new_ssa_var(target.text)
        else:
            dest = self.new_temp()
        self.emit(BinaryOp(dest=dest, op=op, left=current, right=right))
        return UNIT

    def lower_assignment(self, node: SyntaxNode) -> Operand:
        target = node.child_by_field("left")
        value = self.lower_operand_field(node, "right")

        if target is not None and target.kind == "identifier":
            dest = self.new_ssa_var(target.text)
        else:
            dest = self.new_temp()
        self.emit(Assign(dest=dest, value=value))
        return UNIT

    def lower_unary(self, node: SyntaxNode) -> Operand:
        token = next((c.text for c in node.children if not c.named), "")
        inner = node.first_named()
        operand = self.lower_expr(inner) if inner is not None else UNIT

        dest = self.new_temp()
        self.emit(UnaryOp(dest=dest, op=UNARY_OPERATOR_TOKENS.get(token, UnaryOperator.UNKNOWN), operand=operand))
        return Var(dest)

    def lower_call(self, node: SyntaxNode) -> Operand:
        function = node.child_by_field("function")
        arguments = node.child_by_field("arguments")
        arg_nodes = arguments.named_children if arguments is not None else []

        if function is not None and function.kind == "generic_function":
            inner = function.child_by_field("function")
            if inner is not None and inner.kind == "field_expression":
                function = inner
            else:
                function = inner or function

        if function is not None and function.kind == "field_expression":
            field = function.child_by_field("field")
            return self.lower_method_call(function.child_by_field("value"), field.text if field else "", arg_nodes)

        if function is not None and function.kind in ("identifier", "scoped_identifier"):
            func_name = compact_text(function)
        else:
            func_name = "unknown"

        args = tuple(self.lower_expr(a) for a in arg_nodes)
        dest = self.new_temp()
        self.emit(Call(dest=dest, func=func_name, args=args))
        return Var(dest)

    def lower_method_call(self, receiver_node: SyntaxNode | None, method: str, arg_nodes: list[SyntaxNode]) -> Operand:
        receiver = self.lower_expr(receiver_node) if receiver_node is not None else UNIT
        args = [self.lower_expr(a) for a in arg_nodes]

        if method in ADDR_VALIDATE_METHODS:
            dest = self.new_temp()
            self.emit(AddrValidate(dest=dest, address=args[0] if args else UNIT))
            return Var(dest)

        if method in STORAGE_STORE_METHODS and isinstance(receiver, Var):
            # ITEM.save(storage, &value) / MAP.save(storage, key, &value)
            if len(args) >= 3:
                key, value = args[1], args[2]
            elif len(args) == 2:
                key, value = None, args[1]
            else:
                key, value = None, UNIT
            self.emit(StorageStore(storage_item=receiver.var.name, key=key, value=value))
            return UNIT

        if method in STORAGE_LOAD_METHODS and isinstance(receiver, Var):
            dest = self.new_temp()
            self.emit(
                StorageLoad(dest=dest, storage_item=receiver.var.name, key=args[1] if len(args) > 1 else None)
            )
            return Var(dest)

        # range / range_raw and generic method calls
        dest = self.new_temp()
        self.emit(MethodCall(dest=dest, receiver=receiver, method=method, args=tuple(args)))
        return Var(dest)

    def lower_field(self, node: SyntaxNode) -> Operand:
        base = self.lower_operand_field(node, "value")
        field = node.child_by_field("field")
        name = field.text if field is not None else ""
        if field is not None and field.kind == "integer_literal":
            name = f"_{name}"
        return FieldAccess(base=base, field=name)

    def lower_if(self, node: SyntaxNode) -> Operand:
        condition_node = node.child_by_field("condition")
        if condition_node is not None and condition_node.kind == "let_condition":
            condition_node = condition_node.child_by_field("value")
        condition = self.lower_expr(condition_node) if condition_node is not None else UNIT

        then_block = self.new_block()
        else_block = self.new_block()
        merge_block = self.new_block()

        self.emit(Branch(condition=condition, true_block=then_block, false_block=else_block))
        self.cfg.add_edge(self.current_block, then_block)
        self.cfg.add_edge(self.current_block, else_block)

        self.current_block = then_block
        consequence = node.child_by_field("consequence")
        if consequence is not None:
            self.lower_block(consequence)
        self.emit(Jump(target=merge_block))
        self.cfg.add_edge(self.current_block, merge_block)

        # A missing else arm still gets its (empty) block
        self.current_block = else_block
        alternative = node.child_by_field("alternative")
        if alternative is not None:
            inner = alternative.first_named("block", "if_expression")
            if inner is not None:
                self.lower_expr(inner)
        self.emit(Jump(target=merge_block))
        self.cfg.add_edge(self.current_block, merge_block)

        self.current_block = merge_block
        return UNIT

    def lower_match(self, node: SyntaxNode) -> Operand:
        """
        Conservative fan-out: entry -> one block per arm -> shared merge.

        The scrutinee is lowered but not modeled as a dispatch condition. The
        entry block's Jump to merge is a nominal terminator with no edge.
        """
        self.lower_operand_field(node, "value")
        entry_block = self.current_block
        merge_block = self.new_block()

        body = node.child_by_field("body")
        arms = [a for a in body.named_children if a.kind == "match_arm"] if body is not None else []
        for arm in arms:
            arm_block = self.new_block()
            self.cfg.add_edge(entry_block, arm_block)

            self.current_block = arm_block
            value = arm.child_by_field("value")
            if value is not None:
                self.lower_expr(value)
            self.emit(Jump(target=merge_block))
            self.cfg.add_edge(self.current_block, merge_block)

        logger.debug("match_dispatch_unmodeled", function=self.cfg.function_name, arms=len(arms))

        self.current_block = entry_block
        self.emit(Jump(target=merge_block))

        self.current_block = merge_block
        return UNIT

    def lower_return(self, node: SyntaxNode) -> Operand:
        inner = node.first_named()
        value = self.lower_expr(inner) if inner is not None else None
        self.emit(Return(value=value))
        return UNIT

    def lower_try(self, node: SyntaxNode) -> Operand:
        inner = node.first_named()
        value = self.lower_expr(inner) if inner is not None else UNIT
        dest = self.new_temp()
        self.emit(ResultUnwrap(dest=dest, value=value))
        return Var(dest)

    def lower_macro(self, node: SyntaxNode) -> Operand:
        name = compact_text(node.child_by_field("macro")).split("::")[-1]
        dest = self.new_temp()
        self.emit(Call(dest=dest, func=f"macro!{name}"))
        return Var(dest)

    def lower_operand_field(self, node: SyntaxNode, field: str) -> Operand:
        child = node.child_by_field(field)
        return self.lower_expr(child) if child is not None else UNIT
