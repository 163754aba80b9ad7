"""
Syntax provider

Parses Rust source into immutable, self-contained syntax trees.
"""

from .parser_registry import ParserRegistry, get_registry
from .source_file import SourceFile
from .syntax_tree import (
    COMMENT_KINDS,
    SyntaxNode,
    SyntaxTree,
    compact_text,
    parse_file,
    parse_source,
    string_literal_value,
)

__all__ = [
    "COMMENT_KINDS",
    "ParserRegistry",
    "SourceFile",
    "SyntaxNode",
    "SyntaxTree",
    "compact_text",
    "get_registry",
    "parse_file",
    "parse_source",
    "string_literal_value",
]
