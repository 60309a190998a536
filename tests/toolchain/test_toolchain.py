"""Toolchain Tests — TOOL-001 through TOOL-004.

TOOL-001/002 replace subprocess and PATH lookups with fakes. TOOL-003/004
drive a real C compiler and are skipped when none is installed.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from zlang import toolchain as toolchain_mod
from zlang.errors import ErrorKind, ToolchainError
from zlang.pipeline import compile_file, run_file
from zlang.toolchain import ExecutionResult, ProgramExitError, Toolchain, find_compiler

HAS_CC = any(shutil.which(name) for name in ("gcc", "clang", "cc"))
requires_cc = pytest.mark.skipif(not HAS_CC, reason="no C compiler on PATH")


class _Recorder:
    """Stands in for subprocess.run, recording commands."""

    def __init__(self, returncode=0, stderr=""):
        self.commands = []
        self.returncode = returncode
        self.stderr = stderr

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if self.returncode != 0 and kwargs.get("check"):
            raise subprocess.CalledProcessError(self.returncode, cmd, output="", stderr=self.stderr)
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr=self.stderr)


class TestTOOL001:
    """TOOL-001: Compiler discovery.
    Pass Criteria: gcc, clang, cc are tried in order; a configured compiler must exist.
    Priority: P0
    """

    def test_first_available(self, monkeypatch):
        """priority_p0: clang is used when gcc is missing."""
        found = {"clang": "/usr/bin/clang", "cc": "/usr/bin/cc"}
        monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: found.get(name))
        assert find_compiler() == "/usr/bin/clang"

    def test_none_available(self, monkeypatch):
        """priority_p0: No compiler is a toolchain error."""
        monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: None)
        with pytest.raises(ToolchainError) as exc:
            find_compiler()
        assert exc.value.error.kind == ErrorKind.TOOLCHAIN_ERROR
        assert exc.value.message == "No C compiler found (tried gcc, clang, cc)"

    def test_preferred_missing(self, monkeypatch):
        """priority_p1: A configured compiler that does not resolve is reported by name."""
        monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: None)
        with pytest.raises(ToolchainError) as exc:
            find_compiler("tcc")
        assert exc.value.message == "C compiler 'tcc' not found"


class TestTOOL002:
    """TOOL-002: Command lines.
    Pass Criteria: -O<tier>, -std=c11 and user cflags reach the compiler; linking adds -lm; failures carry stderr.
    Priority: P0
    """

    @pytest.fixture
    def fake(self, monkeypatch):
        monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
        recorder = _Recorder()
        monkeypatch.setattr(toolchain_mod.subprocess, "run", recorder)
        return recorder

    def test_compile_command(self, fake):
        """priority_p0: The object compile uses the tier and the configured flags."""
        with Toolchain(cflags=["-Wall"]) as tc:
            obj = tc.compile_to_object("int main(void) { return 0; }\n", 2)
            assert obj.suffix == ".o"
            assert obj.with_suffix(".c").read_text() == "int main(void) { return 0; }\n"
        cmd = fake.commands[0]
        assert cmd[0] == "/usr/bin/gcc"
        assert cmd[1:4] == ["-O2", "-std=c11", "-Wall"]
        assert "-c" in cmd

    def test_march_native_only_at_max_tier(self, fake):
        """priority_p1: -march=native is added at tier 3 when enabled."""
        tc = Toolchain(march_native=True)
        assert tc.optimization_flags(3) == ["-O3", "-march=native"]
        assert tc.optimization_flags(1) == ["-O1"]
        assert Toolchain().optimization_flags(3) == ["-O3"]

    def test_out_of_range_tier(self, fake):
        """priority_p1: Unknown tiers compile at the maximum tier."""
        assert Toolchain().optimization_flags(9) == ["-O3"]

    def test_link_command(self, fake, tmp_path):
        """priority_p0: Linking names the output and the math library."""
        out = tmp_path / "bin" / "prog"
        with Toolchain() as tc:
            assert tc.link([tmp_path / "a.o"], out) == out
        cmd = fake.commands[0]
        assert cmd[-1] == "-lm"
        assert cmd[cmd.index("-o") + 1] == str(out)
        assert out.parent.is_dir()

    def test_compile_failure(self, monkeypatch):
        """priority_p0: A failing compiler becomes a ToolchainError with its diagnostics."""
        monkeypatch.setattr(toolchain_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(toolchain_mod.subprocess, "run", _Recorder(1, "unit1.c:1: error: boom"))
        with Toolchain() as tc, pytest.raises(ToolchainError) as exc:
            tc.compile_to_object("garbage", 0)
        assert exc.value.message.startswith("C compilation failed with status 1:")
        assert "boom" in exc.value.message
        assert exc.value.error.details["returncode"] == 1

    def test_workdir_removed_on_close(self, fake):
        """priority_p1: Scratch files live only as long as the toolchain."""
        tc = Toolchain()
        workdir = tc.workdir
        assert workdir.is_dir()
        tc.close()
        assert not workdir.exists()

    def test_program_exit_error(self):
        """priority_p1: A non-zero exit keeps the captured result."""
        result = ExecutionResult(stdout=b"partial\n", returncode=3)
        err = ProgramExitError(result, Path("/tmp/prog"))
        assert isinstance(err, ToolchainError)
        assert err.result is result
        assert err.message == "Program prog exited with status 3"


@requires_cc
class TestTOOL003:
    """TOOL-003: Generated C builds and runs.
    Pass Criteria: programs compile with the system compiler and print the expected output.
    Priority: P0
    """

    def _run(self, tmp_path, source, tier=3):
        path = tmp_path / "prog.z"
        path.write_text(source)
        return run_file(path, tier=tier).stdout.decode()

    def test_hello(self, tmp_path):
        """priority_p0: print of a string."""
        assert self._run(tmp_path, 'print("Hello, Z!");') == "Hello, Z!\n"

    def test_arithmetic_scenario(self, tmp_path):
        """priority_p0: let x = 1 + 2 evaluates to 3."""
        assert self._run(tmp_path, "let x = 1 + 2; print(x);") == "3\n"

    def test_string_scenario(self, tmp_path):
        """priority_p0: "a" + "b" prints ab."""
        assert self._run(tmp_path, 'let s = "a" + "b"; print(s);') == "ab\n"

    @pytest.mark.parametrize("tier", [0, 1, 2, 3])
    def test_recursion_every_tier(self, tmp_path, tier):
        """priority_p0: Recursive fib gives the same answer at every tier."""
        source = """
            fn fib(n: int) -> int {
                if n < 2 { return n; }
                fib(n - 1) + fib(n - 2)
            }
            fn main() { print(fib(15)); }
        """
        assert self._run(tmp_path, source, tier) == "610\n"

    def test_loops_and_concat(self, tmp_path):
        """priority_p1: while, for and mixed concatenation."""
        source = """
            let total = 0;
            let i = 0;
            while i < 5 { total = total + i; i = i + 1; }
            for v in [10, 20] { total = total + v; }
            print("total=" + total);
            print(true + "!");
        """
        assert self._run(tmp_path, source) == "total=40\ntrue!\n"

    def test_structs_and_lambdas(self, tmp_path):
        """priority_p1: Struct values, if expressions and lifted lambdas."""
        source = """
            struct Point { x: int, y: int }
            fn manhattan(p: Point) -> int {
                let ax = if p.x < 0 { 0 - p.x } else { p.x };
                let ay = if p.y < 0 { 0 - p.y } else { p.y };
                ax + ay
            }
            fn apply(f: fn(int) -> int, v: int) -> int { f(v) }
            print(manhattan(Point(3, 0 - 4)));
            print(apply(fn(x) => x * x, 7));
        """
        assert self._run(tmp_path, source) == "7\n49\n"

    def test_strings_compare_by_content(self, tmp_path):
        """priority_p1: Equal strings built differently compare equal."""
        source = 'let a = "ab"; let b = "a" + "b"; let c = "x" + 1; print(a == b); print(c == "x1");'
        assert self._run(tmp_path, source) == "true\ntrue\n"

    def test_exit_status(self, tmp_path):
        """priority_p1: An int main sets the exit status."""
        path = tmp_path / "status.z"
        path.write_text("fn main() -> int { print(1); 4 }")
        with pytest.raises(ProgramExitError) as exc:
            run_file(path)
        assert exc.value.result.returncode == 4
        assert exc.value.result.stdout == b"1\n"


@requires_cc
class TestTOOL004:
    """TOOL-004: compile_file output paths.
    Pass Criteria: the executable defaults to the input path without its extension; --emit-c writes the C.
    Priority: P1
    """

    def test_default_output(self, tmp_path):
        """priority_p1: hello.z compiles to hello."""
        path = tmp_path / "hello.z"
        path.write_text('print("hi");')
        binary = compile_file(path)
        assert binary == tmp_path / "hello"
        assert binary.exists()

    def test_explicit_output_and_c(self, tmp_path):
        """priority_p1: Explicit output and a copy of the C source."""
        path = tmp_path / "prog.z"
        path.write_text("print(2);")
        c_path = tmp_path / "prog.c"
        binary = compile_file(path, tmp_path / "out" / "prog", tier=1, emit_c=c_path)
        assert binary.exists()
        assert c_path.read_text().startswith("// Z Language code with optimization level 1")
