"""
Source locations

SourceSpan is self-contained (file + 1-based line/column) so that syntax nodes,
declarations and findings never depend on shared position bookkeeping.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourceSpan:
    """Source code location (1-indexed lines and columns)"""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "start_line": self.start_line,
            "start_col": self.start_col,
            "end_line": self.end_line,
            "end_col": self.end_col,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceSpan":
        return cls(
            file=data["file"],
            start_line=data["start_line"],
            start_col=data["start_col"],
            end_line=data["end_line"],
            end_col=data["end_col"],
        )

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"
