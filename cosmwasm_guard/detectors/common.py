"""
Syntax helpers shared by the built-in detectors
"""

from collections.abc import Iterator

from cosmwasm_guard.contract.models import ContractInfo, EntryPoint, FunctionInfo
from cosmwasm_guard.contract.visitor import attribute_text
from cosmwasm_guard.parsing import COMMENT_KINDS, SyntaxNode, compact_text

TEST_CFG_MARKERS = ("cfg(test)", "cfg(all(test", "cfg(any(test")


def is_test_attribute(attribute: str) -> bool:
    return attribute.startswith(TEST_CFG_MARKERS)


def walk_non_test(root: SyntaxNode) -> Iterator[SyntaxNode]:
    """Pre-order walk that skips items marked `#[cfg(test)]` (and their subtrees)"""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node

        kept: list[SyntaxNode] = []
        skip_next = False
        for child in node.children:
            if child.kind == "attribute_item":
                skip_next = skip_next or is_test_attribute(attribute_text(child))
                continue
            if child.kind in COMMENT_KINDS:
                continue
            if skip_next:
                skip_next = False
                continue
            kept.append(child)
        stack.extend(reversed(kept))


def method_call_parts(node: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode | None] | None:
    """
    For `recv.method(args)` (optionally `recv.method::<T>(args)`), return the
    method name node and the receiver node. None for anything else.
    """
    if node.kind != "call_expression":
        return None
    function = node.child_by_field("function")
    if function is not None and function.kind == "generic_function":
        function = function.child_by_field("function")
    if function is None or function.kind != "field_expression":
        return None
    field = function.child_by_field("field")
    if field is None:
        return None
    return field, function.child_by_field("value")


def method_chain(node: SyntaxNode) -> list[str]:
    """`A.range(..).take(n).collect()` -> ["range", "take", "collect"]"""
    methods: list[str] = []
    current: SyntaxNode | None = node
    while current is not None:
        parts = method_call_parts(current)
        if parts is None:
            break
        field, receiver = parts
        methods.append(field.text)
        current = receiver
    methods.reverse()
    return methods


def iter_method_calls(root: SyntaxNode, skip_tests: bool = False) -> Iterator[tuple[SyntaxNode, SyntaxNode]]:
    """Yield (call node, method name node) for every method call under `root`"""
    nodes = walk_non_test(root) if skip_tests else root.walk()
    for node in nodes:
        parts = method_call_parts(node)
        if parts is not None:
            yield node, parts[0]


def macro_name(node: SyntaxNode) -> str:
    return compact_text(node.child_by_field("macro")).split("::")[-1]


def entry_point_function(contract: ContractInfo, entry_point: EntryPoint) -> FunctionInfo | None:
    """The function declaring `entry_point`; same-named functions elsewhere lose to the exact span"""
    for func in contract.functions:
        if func.name == entry_point.name and func.span == entry_point.span:
            return func
    return contract.get_function(entry_point.name)


def path_segments(node: SyntaxNode | None) -> list[str]:
    """`std::collections::HashMap<K, V>` -> ["std", "collections", "HashMap"]"""
    while node is not None and node.kind == "reference_type":
        node = node.child_by_field("type")
    text = compact_text(node)
    return [segment for segment in text.split("<", 1)[0].split("::") if segment]
