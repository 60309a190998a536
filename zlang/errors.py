"""Structured error objects for the Z compiler.

Every error is machine-readable: a kind, a message and, where the error
points into source text, a Span. Each pipeline stage raises the first error
it meets as a CompileError subclass; rendering is left to the caller.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    LEXICAL_ERROR = "lexical_error"
    SYNTAX_ERROR = "syntax_error"
    NAME_ERROR = "name_error"
    TYPE_ERROR = "type_error"
    CODEGEN_ERROR = "codegen_error"
    TOOLCHAIN_ERROR = "toolchain_error"


@dataclass(frozen=True)
class Span:
    """Half-open range [start, end) of offsets into the source text.

    Offsets count code points of the decoded source, so they differ from
    UTF-8 byte offsets once non-ASCII text precedes them.
    """
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid span [{self.start}, {self.end})")

    def __len__(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"

    def join(self, other: Span) -> Span:
        return Span(min(self.start, other.start), max(self.end, other.end))

    def line_col(self, source: str) -> tuple[int, int]:
        """1-based (line, column) of the span start within source."""
        prefix = source[:self.start]
        line = prefix.count("\n") + 1
        column = self.start - (prefix.rfind("\n") + 1) + 1
        return line, column


@dataclass
class ZError:
    kind: ErrorKind
    message: str
    span: Optional[Span] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, source: Optional[str] = None, filename: str = "<stdin>") -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.span:
            d["span"] = {"start": self.span.start, "end": self.span.end}
            if source is not None:
                line, column = self.span.line_col(source)
                d["location"] = {"file": filename, "line": line, "column": column}
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2, source: Optional[str] = None, filename: str = "<stdin>") -> str:
        return json.dumps(self.to_dict(source, filename), indent=indent)

    def render(self, source: Optional[str] = None, filename: str = "<stdin>") -> str:
        if self.span and source is not None:
            line, column = self.span.line_col(source)
            return f"{filename}:{line}:{column}: {self.kind.value}: {self.message}"
        if self.span:
            return f"{filename}@{self.span.start}: {self.kind.value}: {self.message}"
        return f"{filename}: {self.kind.value}: {self.message}"

    def __str__(self) -> str:
        loc = f" at {self.span}" if self.span else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


class CompileError(Exception):
    """Exception wrapping the ZError that stopped the pipeline."""

    kind = ErrorKind.TYPE_ERROR

    def __init__(self, message: str, span: Optional[Span] = None,
                 details: Optional[dict] = None):
        self.error = ZError(kind=self.kind, message=message, span=span, details=details or {})
        super().__init__(str(self.error))

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def span(self) -> Optional[Span]:
        return self.error.span

    def to_json(self, indent: int = 2, source: Optional[str] = None, filename: str = "<stdin>") -> str:
        return self.error.to_json(indent=indent, source=source, filename=filename)


class LexicalError(CompileError):
    kind = ErrorKind.LEXICAL_ERROR


class ZSyntaxError(CompileError):
    kind = ErrorKind.SYNTAX_ERROR


class ZNameError(CompileError):
    kind = ErrorKind.NAME_ERROR


class ZTypeError(CompileError):
    kind = ErrorKind.TYPE_ERROR


class CodegenError(CompileError):
    kind = ErrorKind.CODEGEN_ERROR


class ToolchainError(CompileError):
    kind = ErrorKind.TOOLCHAIN_ERROR


# ---------------------------------------------------------------------------
# Constructors for the common diagnostics
# ---------------------------------------------------------------------------

def type_mismatch(expected: str, actual: str, span: Optional[Span] = None,
                  context: str = "") -> ZTypeError:
    prefix = f"{context}: " if context else ""
    return ZTypeError(
        f"{prefix}expected type '{expected}', found '{actual}'",
        span,
        details={"expected_type": expected, "actual_type": actual},
    )


def undefined_name(name: str, span: Optional[Span] = None) -> ZNameError:
    return ZNameError(f"Undefined name '{name}'", span, details={"name": name})
