"""
Contract Visitor

One pass over a file's syntax tree that extracts:
- entry points (functions marked `#[entry_point]`)
- message enums (`*Msg` / `*Message`)
- storage constants (`Item`, `Map`, `IndexedMap`)
- every function, including impl methods and functions nested in modules
"""

from collections.abc import Iterator

from cosmwasm_guard.observability import get_logger
from cosmwasm_guard.parsing import COMMENT_KINDS, SyntaxNode, SyntaxTree, compact_text, string_literal_value

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

logger = get_logger(__name__)

ENTRY_POINT_ATTRIBUTES = frozenset({"entry_point", "cosmwasm_std::entry_point"})

ENTRY_POINT_NAMES = {
    "instantiate": EntryPointKind.INSTANTIATE,
    "execute": EntryPointKind.EXECUTE,
    "query": EntryPointKind.QUERY,
    "migrate": EntryPointKind.MIGRATE,
    "sudo": EntryPointKind.SUDO,
    "reply": EntryPointKind.REPLY,
}

# Checked in order against parameter types
ENTRY_POINT_PARAM_TYPES = [
    ("InstantiateMsg", EntryPointKind.INSTANTIATE),
    ("ExecuteMsg", EntryPointKind.EXECUTE),
    ("QueryMsg", EntryPointKind.QUERY),
    ("MigrateMsg", EntryPointKind.MIGRATE),
    ("SudoMsg", EntryPointKind.SUDO),
]

STORAGE_TYPES = {
    "Item": StorageKind.ITEM,
    "Map": StorageKind.MAP,
    "IndexedMap": StorageKind.INDEXED_MAP,
}


def is_entry_point_attribute(attribute: str) -> bool:
    """`attribute` is the compacted text inside `#[...]`"""
    if attribute in ENTRY_POINT_ATTRIBUTES:
        return True
    return attribute.startswith("cfg_attr(") and "entry_point" in attribute


def infer_entry_point_kind(name: str) -> EntryPointKind:
    return ENTRY_POINT_NAMES.get(name, EntryPointKind.UNKNOWN)


def infer_entry_point_kind_from_params(params: list[ParamInfo]) -> EntryPointKind:
    for param in params:
        for marker, kind in ENTRY_POINT_PARAM_TYPES:
            if marker in param.type_name:
                return kind
        if param.type_name == "Reply" or param.type_name.endswith("::Reply"):
            return EntryPointKind.REPLY
    return EntryPointKind.UNKNOWN


def infer_message_kind(enum_name: str) -> MessageKind:
    for marker, kind in (
        ("Instantiate", MessageKind.INSTANTIATE),
        ("Execute", MessageKind.EXECUTE),
        ("Query", MessageKind.QUERY),
        ("Migrate", MessageKind.MIGRATE),
    ):
        if marker in enum_name:
            return kind
    return MessageKind.UNKNOWN


class ContractVisitor:
    """
    Extracts declarations from one syntax tree.

    Functions receive a per-file ordinal in traversal order. Attributes of
    enclosing `mod` and `impl` items are inherited by the functions inside
    them, so `#[cfg(test)] mod tests { ... }` marks every test helper.

    Example:
        ```python
        tree = parse_source(source, "src/contract.rs")
        info = ContractVisitor.extract(tree)
        info.entry_points[0].kind  # EntryPointKind.EXECUTE
        ```
    """

    def __init__(self, file: str):
        self.file = file
        self.entry_points: list[EntryPoint] = []
        self.message_enums: list[MessageEnum] = []
        self.state_items: list[StateItem] = []
        self.functions: list[FunctionInfo] = []
        self._ordinal = 0

    @classmethod
    def extract(cls, tree: SyntaxTree) -> ContractInfo:
        """Visit a tree and return a single-file ContractInfo"""
        visitor = cls(tree.file)
        visitor.visit(tree.root, [])

        logger.debug(
            "declarations_extracted",
            file=tree.file,
            entry_points=len(visitor.entry_points),
            message_enums=len(visitor.message_enums),
            state_items=len(visitor.state_items),
            functions=len(visitor.functions),
        )

        return ContractInfo(
            crate_path=tree.file,
            source_files=[tree.file],
            entry_points=visitor.entry_points,
            message_enums=visitor.message_enums,
            state_items=visitor.state_items,
            functions=visitor.functions,
            raw_syntax_trees=[(tree.file, tree)],
        )

    # ============================================================
    # Traversal
    # ============================================================

    def visit(self, node: SyntaxNode, inherited: list[str]) -> None:
        """
        Visit the children of `node`, pairing outer attributes with the next item.

        Descends with an explicit stack so deeply nested expressions cannot
        exhaust the Python stack; order matches a recursive pre-order walk.
        """
        # Each frame: remaining children, inherited attributes, pending attributes
        stack: list[tuple[Iterator[SyntaxNode], list[str], list[str]]] = [(iter(node.children), inherited, [])]
        while stack:
            children, frame_inherited, pending = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                continue
            if child.kind == "attribute_item":
                pending.append(attribute_text(child))
                continue
            if child.kind in COMMENT_KINDS:
                continue

            attributes = frame_inherited + pending
            pending.clear()

            match child.kind:
                case "function_item":
                    self.visit_function(child, attributes)
                case "enum_item":
                    self.visit_enum(child)
                case "const_item":
                    self.visit_const(child)
                case "impl_item" | "mod_item":
                    body = child.child_by_field("body")
                    if body is not None:
                        stack.append((iter(body.children), attributes, []))
                case _:
                    if child.children:
                        stack.append((iter(child.children), frame_inherited, []))

    def visit_function(self, node: SyntaxNode, attributes: list[str]) -> None:
        name_node = node.child_by_field("name")
        if name_node is None:
            return

        name = name_node.text
        span = name_node.span
        params = _extract_params(node.child_by_field("parameters"))
        return_type_node = node.child_by_field("return_type")
        body = node.child_by_field("body")

        if any(is_entry_point_attribute(attr) for attr in attributes):
            kind = infer_entry_point_kind(name)
            if kind == EntryPointKind.UNKNOWN:
                kind = infer_entry_point_kind_from_params(params)
            self.entry_points.append(
                EntryPoint(
                    name=name,
                    kind=kind,
                    params=params,
                    span=span,
                    has_mutable_state_access=any("DepsMut" in p.type_name for p in params),
                )
            )

        self.functions.append(
            FunctionInfo(
                name=name,
                params=params,
                return_type=compact_text(return_type_node) if return_type_node is not None else None,
                span=span,
                ordinal=self._ordinal,
                body=body,
                attributes=list(attributes),
            )
        )
        self._ordinal += 1

        # Nested function items
        if body is not None:
            self.visit(body, [a for a in attributes if not is_entry_point_attribute(a)])

    def visit_enum(self, node: SyntaxNode) -> None:
        name_node = node.child_by_field("name")
        if name_node is None:
            return
        name = name_node.text
        if not (name.endswith("Msg") or name.endswith("Message")):
            return

        variants: list[MessageVariant] = []
        body = node.child_by_field("body")
        for variant in body.named_children if body is not None else []:
            if variant.kind != "enum_variant":
                continue
            variant_name = variant.child_by_field("name")
            variants.append(
                MessageVariant(
                    name=variant_name.text if variant_name is not None else "",
                    fields=_extract_variant_fields(variant.child_by_field("body")),
                )
            )

        self.message_enums.append(
            MessageEnum(name=name, kind=infer_message_kind(name), variants=variants, span=name_node.span)
        )

    def visit_const(self, node: SyntaxNode) -> None:
        name_node = node.child_by_field("name")
        type_node = node.child_by_field("type")
        if name_node is None or type_node is None or type_node.kind != "generic_type":
            return

        base = compact_text(type_node.child_by_field("type")).split("::")[-1]
        storage_kind = STORAGE_TYPES.get(base)
        if storage_kind is None:
            return

        type_args = type_node.child_by_field("type_arguments")
        args = [
            compact_text(arg)
            for arg in (type_args.named_children if type_args is not None else [])
            if arg.kind != "lifetime"
        ]

        if storage_kind == StorageKind.ITEM:
            key_type, value_type = None, args[0] if args else ""
        else:
            key_type = args[0] if args else None
            value_type = args[1] if len(args) > 1 else ""

        self.state_items.append(
            StateItem(
                name=name_node.text,
                storage_kind=storage_kind,
                key_type=key_type,
                value_type=value_type,
                storage_key=_extract_storage_key(node.child_by_field("value")),
                span=name_node.span,
            )
        )


# ============================================================
# Helpers
# ============================================================


def attribute_text(node: SyntaxNode) -> str:
    """`#[cosmwasm_std::entry_point]` -> `cosmwasm_std::entry_point`"""
    inner = node.first_named("attribute")
    return compact_text(inner if inner is not None else node)


def _extract_params(parameters: SyntaxNode | None) -> list[ParamInfo]:
    if parameters is None:
        return []
    params = []
    for param in parameters.named_children:
        if param.kind != "parameter":
            continue
        pattern = param.child_by_field("pattern")
        name = pattern.text if pattern is not None and pattern.kind == "identifier" else compact_text(pattern)
        params.append(ParamInfo(name=name or "_", type_name=compact_text(param.child_by_field("type"))))
    return params


def _extract_variant_fields(body: SyntaxNode | None) -> list[FieldInfo]:
    if body is None:
        return []
    if body.kind == "field_declaration_list":
        return [
            FieldInfo(
                name=compact_text(decl.child_by_field("name")),
                type_name=compact_text(decl.child_by_field("type")),
            )
            for decl in body.named_children
            if decl.kind == "field_declaration"
        ]
    if body.kind == "ordered_field_declaration_list":
        return [
            FieldInfo(name=f"_{i}", type_name=compact_text(ty))
            for i, ty in enumerate(body.children_by_field("type"))
        ]
    return []


def _extract_storage_key(value: SyntaxNode | None) -> str | None:
    """`Item::new("config")` -> "config" (first string literal argument)"""
    if value is None or value.kind != "call_expression":
        return None
    arguments = value.child_by_field("arguments")
    for arg in arguments.named_children if arguments is not None else []:
        literal = string_literal_value(arg)
        if literal is not None:
            return literal
    return None
