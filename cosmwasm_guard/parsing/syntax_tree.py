"""
Immutable syntax tree over tree-sitter

tree-sitter nodes borrow the parser's tree and are not meant to be shared
across threads. The provider converts them once into plain SyntaxNode values:
every node carries its own text and SourceSpan, so detectors can read the tree
concurrently without any shared position bookkeeping.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Node, TreeCursor

from cosmwasm_guard.errors import ParsingError
from cosmwasm_guard.observability import get_logger
from cosmwasm_guard.span import SourceSpan

from .parser_registry import get_registry
from .source_file import SourceFile

logger = get_logger(__name__)

COMMENT_KINDS = frozenset({"line_comment", "block_comment"})


@dataclass(frozen=True, eq=False)
class SyntaxNode:
    """
    One syntax node.

    Attributes:
        kind: Grammar node type (e.g. "function_item", "call_expression")
        text: Exact source text covered by the node
        span: Source location (1-indexed)
        field: Field name under the parent, if any (e.g. "body", "condition")
        named: False for anonymous tokens such as "(" or "+"
        children: Child nodes in source order
    """

    kind: str
    text: str
    span: SourceSpan
    field: str | None = None
    named: bool = True
    children: tuple["SyntaxNode", ...] = ()

    def child_by_field(self, name: str) -> "SyntaxNode | None":
        for child in self.children:
            if child.field == name:
                return child
        return None

    def children_by_field(self, name: str) -> list["SyntaxNode"]:
        return [child for child in self.children if child.field == name]

    @property
    def named_children(self) -> list["SyntaxNode"]:
        """Named children, comments excluded"""
        return [c for c in self.children if c.named and c.kind not in COMMENT_KINDS]

    def first_named(self, *kinds: str) -> "SyntaxNode | None":
        for child in self.named_children:
            if not kinds or child.kind in kinds:
                return child
        return None

    def walk(self) -> Iterator["SyntaxNode"]:
        """Pre-order traversal (self first)"""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, kinds: str | Iterable[str]) -> list["SyntaxNode"]:
        """All descendants (self included) whose kind matches"""
        wanted = {kinds} if isinstance(kinds, str) else set(kinds)
        return [n for n in self.walk() if n.kind in wanted]

    @property
    def start_line(self) -> int:
        return self.span.start_line

    def __repr__(self) -> str:
        return f"SyntaxNode(kind={self.kind!r}, span={self.span}, children={len(self.children)})"


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed file: path, full source text and root node"""

    file: str
    source: str
    root: SyntaxNode = field(repr=False)

    def walk(self) -> Iterator[SyntaxNode]:
        return self.root.walk()

    def find_all(self, kinds: str | Iterable[str]) -> list[SyntaxNode]:
        return self.root.find_all(kinds)


# ============================================================
# Conversion
# ============================================================


class _Converter:
    """
    Conversion of a tree-sitter cursor into SyntaxNodes.

    Iterative, so deeply nested expressions do not exhaust the Python stack.
    tree-sitter columns count bytes; spans count characters.
    """

    def __init__(self, file: str, source: bytes):
        self.file = file
        self.source = source
        self.lines = source.split(b"\n")
        self.first_error: tuple[int, int] | None = None

    def column(self, row: int, byte_col: int) -> int:
        """1-based character column for a tree-sitter (row, byte column) point"""
        if row >= len(self.lines):
            return byte_col + 1
        line = self.lines[row]
        if line.isascii():
            return byte_col + 1
        return len(line[:byte_col].decode("utf-8", errors="replace")) + 1

    def convert(self, cursor: TreeCursor) -> SyntaxNode:
        # Each frame: tree-sitter node, its field name, converted children so far
        frames: list[tuple[Node, str | None, list[SyntaxNode]]] = [self.enter(cursor.node, None)]
        descended = cursor.goto_first_child()

        while True:
            if descended:
                frames.append(self.enter(cursor.node, cursor.field_name))
                descended = cursor.goto_first_child()
                continue

            node, field_name, children = frames.pop()
            converted = self.build(node, field_name, children)
            if not frames:
                return converted
            frames[-1][2].append(converted)

            if cursor.goto_next_sibling():
                frames.append(self.enter(cursor.node, cursor.field_name))
                descended = cursor.goto_first_child()
            else:
                cursor.goto_parent()

    def enter(self, node: Node, field_name: str | None) -> tuple[Node, str | None, list[SyntaxNode]]:
        if self.first_error is None and (node.is_error or node.is_missing):
            row, byte_col = node.start_point
            self.first_error = (row + 1, self.column(row, byte_col))
        return node, field_name, []

    def build(self, node: Node, field_name: str | None, children: list[SyntaxNode]) -> SyntaxNode:
        start_row, start_byte_col = node.start_point
        end_row, end_byte_col = node.end_point

        return SyntaxNode(
            kind=node.type,
            text=self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace"),
            span=SourceSpan(
                file=self.file,
                start_line=start_row + 1,
                start_col=self.column(start_row, start_byte_col),
                end_line=end_row + 1,
                end_col=self.column(end_row, end_byte_col),
            ),
            field=field_name,
            named=node.is_named,
            children=tuple(children),
        )


def parse_source(text: str, file: str = "<memory>") -> SyntaxTree:
    """
    Parse Rust source text into an immutable SyntaxTree.

    Raises:
        ParsingError: If the grammar is unavailable or the text has syntax errors
    """
    parser = get_registry().get_parser("rust")
    if parser is None:
        raise ParsingError("Rust grammar is not available", file)

    source_bytes = text.encode("utf-8")
    ts_tree = parser.parse(source_bytes)

    converter = _Converter(file, source_bytes)
    root = converter.convert(ts_tree.walk())

    if converter.first_error is not None or ts_tree.root_node.has_error:
        line, column = converter.first_error or (None, None)
        logger.debug("parse_failed", file=file, line=line, column=column)
        raise ParsingError("Syntax error", file, line=line, column=column)

    return SyntaxTree(file=file, source=text, root=root)


def parse_file(path: str | Path) -> SyntaxTree:
    """
    Read and parse one source file.

    Raises:
        SourceFileError: If the file cannot be read
        ParsingError: If the file cannot be parsed
    """
    source = SourceFile.from_file(path)
    return parse_source(source.content, source.file_path)


# ============================================================
# Helpers
# ============================================================


def compact_text(node: SyntaxNode | None) -> str:
    """Node text with all whitespace removed (type names, paths)"""
    if node is None:
        return ""
    return "".join(node.text.split())


def string_literal_value(node: SyntaxNode) -> str | None:
    """Content of a string or raw string literal, escapes kept verbatim"""
    if node.kind == "string_literal":
        return "".join(c.text for c in node.children if c.kind in ("string_content", "escape_sequence"))
    if node.kind == "raw_string_literal":
        content = node.first_named("string_content")
        return content.text if content is not None else ""
    return None
