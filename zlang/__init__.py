"""zlang — ahead-of-time compiler for the Z language"""

__version__ = "0.1.0"

from zlang.errors import (
    CompileError, LexicalError, ZSyntaxError, ZNameError, ZTypeError,
    CodegenError, ToolchainError, Span,
)
from zlang.pipeline import check_source, compile_source, compile_file, run_file

__all__ = [
    "__version__",
    "CompileError", "LexicalError", "ZSyntaxError", "ZNameError", "ZTypeError",
    "CodegenError", "ToolchainError", "Span",
    "check_source", "compile_source", "compile_file", "run_file",
]
