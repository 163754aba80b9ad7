"""
Source File representation
"""

from dataclasses import dataclass
from pathlib import Path

from cosmwasm_guard.errors import SourceFileError


@dataclass
class SourceFile:
    """
    Represents a source code file.

    Attributes:
        file_path: Path as given by the caller (used verbatim in spans)
        content: File content as string
        language: Programming language
        encoding: File encoding (default: utf-8)
    """

    file_path: str
    content: str
    language: str = "rust"
    encoding: str = "utf-8"

    @classmethod
    def from_file(cls, file_path: str | Path, encoding: str = "utf-8") -> "SourceFile":
        """
        Load source file from disk.

        Raises:
            SourceFileError: If the file cannot be read or decoded
        """
        path = Path(file_path)
        try:
            content = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFileError(f"Failed to read source file: {e}", str(path)) from e

        from .parser_registry import get_registry

        language = get_registry().detect_language(path) or "rust"
        return cls(file_path=str(path), content=content, language=language, encoding=encoding)

    @classmethod
    def from_content(cls, file_path: str, content: str, language: str = "rust") -> "SourceFile":
        """Create source file from in-memory content"""
        return cls(file_path=file_path, content=content, language=language)

    @property
    def line_count(self) -> int:
        """Number of lines in the file"""
        return self.content.count("\n") + 1

    def get_line(self, line: int) -> str | None:
        """Get a single line (1-indexed)"""
        lines = self.content.splitlines()
        if 1 <= line <= len(lines):
            return lines[line - 1]
        return None
