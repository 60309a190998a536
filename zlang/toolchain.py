"""External C toolchain adapter.

Turns generated C into object files and executables with whatever C compiler
is available (gcc, then clang, then cc), and runs the result. All scratch
files live in a private temporary directory owned by the Toolchain instance.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from zlang.errors import ToolchainError
from zlang.optimizer import MAX_TIER, normalize_tier

logger = logging.getLogger(__name__)

COMPILER_CANDIDATES = ("gcc", "clang", "cc")


@dataclass
class ExecutionResult:
    stdout: bytes
    returncode: int


class ProgramExitError(ToolchainError):
    """A compiled program exited with a non-zero status."""

    def __init__(self, result: ExecutionResult, path: Path):
        super().__init__(
            f"Program {path.name} exited with status {result.returncode}",
            details={"returncode": result.returncode},
        )
        self.result = result


def find_compiler(preferred: str = "") -> str:
    """Locate a C compiler executable.

    A preferred name or path is used when it resolves; otherwise the first
    of gcc, clang, cc found on PATH.
    """
    candidates = (preferred,) if preferred else COMPILER_CANDIDATES
    for name in candidates:
        path = shutil.which(name)
        if path:
            return path
    if preferred:
        raise ToolchainError(f"C compiler '{preferred}' not found", details={"compiler": preferred})
    raise ToolchainError(
        "No C compiler found (tried gcc, clang, cc)",
        details={"candidates": list(COMPILER_CANDIDATES)},
    )


class Toolchain:
    """Compiles, links and runs generated C through an external compiler."""

    def __init__(self, compiler: str = "", cflags: Optional[Sequence[str]] = None,
                 march_native: bool = False):
        self._preferred = compiler
        self._compiler: Optional[str] = None
        self.cflags = list(cflags or [])
        self.march_native = march_native
        self._tmpdir: Optional[tempfile.TemporaryDirectory] = None
        self._units = 0

    # -------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------

    @property
    def compiler(self) -> str:
        if self._compiler is None:
            self._compiler = find_compiler(self._preferred)
            logger.debug("using C compiler %s", self._compiler)
        return self._compiler

    @property
    def workdir(self) -> Path:
        if self._tmpdir is None:
            self._tmpdir = tempfile.TemporaryDirectory(prefix="zlang-")
        return Path(self._tmpdir.name)

    def close(self) -> None:
        if self._tmpdir is not None:
            self._tmpdir.cleanup()
            self._tmpdir = None

    def __enter__(self) -> Toolchain:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------

    def optimization_flags(self, tier: int) -> list[str]:
        tier = normalize_tier(tier)
        flags = [f"-O{tier}"]
        if tier == MAX_TIER and self.march_native:
            flags.append("-march=native")
        return flags

    def compile_to_object(self, source: str, tier: int) -> Path:
        """Compile one C translation unit to an object file."""
        self._units += 1
        c_path = self.workdir / f"unit{self._units}.c"
        obj_path = c_path.with_suffix(".o")
        c_path.write_text(source, encoding="utf-8")
        cmd = [
            self.compiler, *self.optimization_flags(tier), "-std=c11",
            *self.cflags, "-c", str(c_path), "-o", str(obj_path),
        ]
        self._run(cmd, "C compilation")
        return obj_path

    def link(self, objects: Sequence[Path], output_path: Path) -> Path:
        """Link object files into an executable."""
        output_path = Path(output_path)
        if output_path.parent != Path(""):
            output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [self.compiler, *(str(o) for o in objects), "-o", str(output_path), *self.cflags, "-lm"]
        self._run(cmd, "Linking")
        return output_path

    def execute(self, path: Path) -> ExecutionResult:
        """Run an executable, capturing stdout; stderr passes through."""
        path = Path(path)
        logger.debug("executing %s", path)
        try:
            proc = subprocess.run([str(path.resolve())], stdout=subprocess.PIPE)
        except OSError as exc:
            raise ToolchainError(f"Cannot execute {path}: {exc}") from exc
        return ExecutionResult(stdout=proc.stdout, returncode=proc.returncode)

    def _run(self, cmd: list[str], what: str) -> None:
        logger.debug("running: %s", " ".join(cmd))
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            error_msg = (e.stderr or e.stdout or "").strip()
            raise ToolchainError(
                f"{what} failed with status {e.returncode}:\n{error_msg}",
                details={"command": cmd, "returncode": e.returncode},
            ) from e
        except OSError as exc:
            raise ToolchainError(f"{what} could not start {cmd[0]}: {exc}") from exc
