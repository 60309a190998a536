"""Compilation driver: source -> C -> native executable.

Stages run strictly in order (lex, parse, check, emit, annotate, then the
external toolchain); the first failing stage raises its CompileError.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from zlang.lexer import tokenize
from zlang.parser import parse_tokens
from zlang.pass1_check import check
from zlang.pass2_emit import emit
from zlang.optimizer import annotate, normalize_tier
from zlang.toolchain import Toolchain, ExecutionResult, ProgramExitError
from zlang.ast_nodes import Program

logger = logging.getLogger(__name__)


@dataclass
class StageTimings:
    stages: dict[str, float] = field(default_factory=dict)

    @contextmanager
    def measure(self, stage: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.stages[stage] = time.perf_counter() - start
            logger.info("%s: %.2f ms", stage, self.stages[stage] * 1000)

    @property
    def total(self) -> float:
        return sum(self.stages.values())


def check_source(source: str, filename: str = "<stdin>",
                 timings: Optional[StageTimings] = None) -> Program:
    """Run the front end (lex, parse, check) and return the typed program."""
    timings = timings or StageTimings()
    with timings.measure("lex"):
        tokens = tokenize(source, filename)
    with timings.measure("parse"):
        program = parse_tokens(tokens, filename)
    with timings.measure("check"):
        return check(program)


def compile_source(source: str, filename: str = "<stdin>", tier: int = 3,
                   timings: Optional[StageTimings] = None) -> str:
    """Compile Z source text to annotated C source."""
    timings = timings or StageTimings()
    program = check_source(source, filename, timings)
    with timings.measure("emit"):
        c_source = emit(program)
    with timings.measure("optimize"):
        return annotate(c_source, normalize_tier(tier))


def compile_file(input_path: Path, output_path: Optional[Path] = None, tier: int = 3,
                 toolchain: Optional[Toolchain] = None, emit_c: Optional[Path] = None) -> Path:
    """Compile a .z file to a native executable; returns the executable path.

    The output defaults to the input path without its extension.
    """
    input_path = Path(input_path)
    output_path = Path(output_path) if output_path is not None else input_path.with_suffix("")
    if output_path == input_path:
        output_path = input_path.with_name(input_path.name + ".out")

    timings = StageTimings()
    source = input_path.read_text(encoding="utf-8")
    c_source = compile_source(source, str(input_path), tier, timings)
    if emit_c is not None:
        Path(emit_c).write_text(c_source, encoding="utf-8")
        logger.info("wrote C source to %s", emit_c)

    owned = toolchain is None
    toolchain = toolchain or Toolchain()
    try:
        with timings.measure("cc"):
            obj = toolchain.compile_to_object(c_source, tier)
        with timings.measure("link"):
            result = toolchain.link([obj], output_path)
    finally:
        if owned:
            toolchain.close()

    logger.info("compiled %s -> %s in %.2f ms", input_path, result, timings.total * 1000)
    return result


def run_file(input_path: Path, toolchain: Optional[Toolchain] = None, tier: int = 3) -> ExecutionResult:
    """Compile a .z file to a temporary executable and run it.

    Raises ProgramExitError (a ToolchainError) when the program exits with a
    non-zero status; the captured result is attached to the error.
    """
    input_path = Path(input_path)
    owned = toolchain is None
    toolchain = toolchain or Toolchain()
    try:
        exe = compile_file(
            input_path, toolchain.workdir / (input_path.stem or "program"), tier, toolchain,
        )
        timings = StageTimings()
        with timings.measure("run"):
            result = toolchain.execute(exe)
    finally:
        if owned:
            toolchain.close()

    if result.returncode != 0:
        raise ProgramExitError(result, exe)
    return result
