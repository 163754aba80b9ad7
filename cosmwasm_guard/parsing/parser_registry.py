"""
Parser Registry for Tree-sitter

Owns the tree-sitter parsers used by the syntax provider. Only Rust is
registered; aliases map file-extension style names onto it.
"""

import threading
from pathlib import Path

try:
    from tree_sitter import Parser
    from tree_sitter_language_pack import get_language
except ImportError as e:
    raise ImportError(
        "tree-sitter-language-pack is required. " "Install with: pip install tree-sitter tree-sitter-language-pack"
    ) from e

from cosmwasm_guard.observability import get_logger

logger = get_logger(__name__)


class ParserRegistry:
    """
    Registry for language parsers.

    tree-sitter Parser objects are not safe to share between threads, so
    parsers are cached per thread.
    """

    def __init__(self):
        self._languages: dict[str, object] = {}
        self._local = threading.local()
        self._setup_languages()

    def _register_language(self, name: str, aliases: list[str] | None = None) -> None:
        """
        Register a language and its aliases.

        Args:
            name: Language name (e.g., "rust")
            aliases: Optional list of aliases (e.g., ["rs"] for rust)
        """
        try:
            lang = get_language(name)
        except Exception as e:
            logger.warning("parser_load_failed", language=name, error=str(e))
            return

        self._languages[name] = lang
        for alias in aliases or []:
            self._languages[alias] = lang
        logger.debug("parser_loaded", language=name, aliases=aliases or [])

    def _setup_languages(self):
        """Setup Tree-sitter languages"""
        self._register_language("rust", ["rs"])

    def get_parser(self, language: str) -> Parser | None:
        """
        Get parser for the specified language.

        Returns:
            Parser instance or None if language not supported
        """
        language = language.lower()

        parsers: dict[str, Parser] = getattr(self._local, "parsers", None) or {}
        self._local.parsers = parsers

        if language in parsers:
            return parsers[language]

        lang = self._languages.get(language)
        if not lang:
            return None

        parser = Parser(lang)
        parsers[language] = parser
        return parser

    def detect_language(self, file_path: str | Path) -> str | None:
        """Detect language from file extension"""
        ext = Path(file_path).suffix.lower()
        return {".rs": "rust"}.get(ext)

    def supports_language(self, language: str) -> bool:
        """Check if language is supported"""
        return language.lower() in self._languages


# Global registry instance
_registry: ParserRegistry | None = None


def get_registry() -> ParserRegistry:
    """Get global parser registry instance"""
    global _registry
    if _registry is None:
        _registry = ParserRegistry()
    return _registry
