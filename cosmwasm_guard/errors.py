"""
Error hierarchy for cosmwasm-guard

Hard errors only. Degraded conditions (cache misses, unreadable artifacts,
unrecognized syntax) are absorbed where they happen and never raised.

Hierarchy:
- GuardError (base)
  - SourceFileError (file could not be read)
  - ParsingError (file could not be parsed)
  - DiscoveryError (no source files under the analyzed path)
  - ConfigError (invalid project configuration)
"""

from typing import Any


class GuardError(Exception):
    """Base exception for all cosmwasm-guard errors.

    Carries an error code for programmatic handling and a context dict that is
    rendered into the message.

    Example:
        raise GuardError(code="PARSE_ERROR", message="Failed to parse", file="src/contract.rs")
    """

    def __init__(self, code: str, message: str, **context: Any) -> None:
        self.code = code
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx_str})"
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r}, {ctx_str})"


# ==============================================================================
# Per-file errors
# ==============================================================================


class SourceFileError(GuardError):
    """A source file could not be read."""

    def __init__(self, message: str, file_path: str, **context: Any) -> None:
        super().__init__(code="SOURCE_FILE_ERROR", message=message, file=file_path, **context)
        self.file_path = file_path


class ParsingError(GuardError):
    """A source file could not be parsed into a syntax tree."""

    def __init__(
        self,
        message: str,
        file_path: str,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        context: dict[str, Any] = {}
        if line is not None:
            context["line"] = line
        if column is not None:
            context["column"] = column
        super().__init__(code="PARSE_ERROR", message=message, file=file_path, **context)
        self.file_path = file_path
        self.line = line
        self.column = column


# ==============================================================================
# Crate / configuration errors
# ==============================================================================


class DiscoveryError(GuardError):
    """No analyzable source files were found."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(code="DISCOVERY_ERROR", message=message, path=path)
        self.path = path


class ConfigError(GuardError):
    """Invalid project configuration."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(code="CONFIG_ERROR", message=message, **context)
