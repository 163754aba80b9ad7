"""
Analysis context

Read-only view handed to detectors: merged declarations, merged IR and the
source text of every analyzed file. Lives for one analysis call.
"""

from collections.abc import Mapping
from types import MappingProxyType

from cosmwasm_guard.contract.models import ContractInfo
from cosmwasm_guard.ir.types import ContractIr
from cosmwasm_guard.parsing import SyntaxTree


class AnalysisContext:
    def __init__(self, contract: ContractInfo, ir: ContractIr, source_files: Mapping[str, str]):
        self.contract = contract
        self.ir = ir
        self._source_files = MappingProxyType(dict(source_files))
        self._lines: dict[str, list[str]] = {file: text.splitlines() for file, text in source_files.items()}

    @property
    def files(self) -> list[str]:
        return list(self._source_files)

    def raw_syntax_trees(self) -> list[tuple[str, SyntaxTree]]:
        return list(self.contract.raw_syntax_trees)

    def source_code(self, file: str) -> str | None:
        return self._source_files.get(file)

    def get_line(self, file: str, line: int) -> str | None:
        """One source line (1-indexed)"""
        lines = self._lines.get(file)
        if lines is None or not 1 <= line <= len(lines):
            return None
        return lines[line - 1]

    def snippet(self, file: str, start_line: int, end_line: int) -> str | None:
        """Lines start..end inclusive (1-indexed), clamped to the file"""
        lines = self._lines.get(file)
        if lines is None:
            return None
        start = max(start_line - 1, 0)
        if start >= len(lines):
            return None
        return "\n".join(lines[start : min(end_line, len(lines))])
