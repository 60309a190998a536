"""zlang CLI — Command-line interface for the Z compiler.

Commands:
  zc compile <file.z> [-o OUT] [-O N] [--emit-c PATH]  — Produce a native executable
  zc run <file.z>                                      — Compile to a temp binary and run it
  zc check <file.z>                                    — Front end only (lex, parse, check)
  zc emit <file.z> [-O N]                              — Print the generated C source

Common options: --format text|json, -v/--verbose (repeatable), --config PATH
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from zlang import __version__
from zlang.config import ZConfig, ConfigError, load_config
from zlang.errors import CompileError
from zlang.pipeline import check_source, compile_source, compile_file, run_file
from zlang.toolchain import Toolchain, ProgramExitError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _report_error(args: argparse.Namespace, error: CompileError,
                  source: Optional[str] = None) -> int:
    filename = getattr(args, "file", "<stdin>")
    if args.format == "json":
        print(json.dumps(error.error.to_dict(source, filename), indent=2))
    else:
        print(error.error.render(source, filename), file=sys.stderr)
    return 1


def _report_message(args: argparse.Namespace, message: str) -> int:
    if args.format == "json":
        print(json.dumps({"error": message}))
    else:
        print(f"zc: error: {message}", file=sys.stderr)
    return 1


def _read_source(args: argparse.Namespace) -> Optional[str]:
    if not os.path.exists(args.file):
        return None
    with open(args.file, "r", encoding="utf-8") as f:
        return f.read()


def _toolchain(config: ZConfig) -> Toolchain:
    return Toolchain(compiler=config.compiler, cflags=config.cflags, march_native=config.march_native)


def _tier(args: argparse.Namespace, config: ZConfig) -> int:
    return args.opt_level if args.opt_level is not None else config.opt_level


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_check(args: argparse.Namespace, config: ZConfig) -> int:
    """Run the front end only: lex, parse and type check."""
    source = _read_source(args)
    if source is None:
        return _report_message(args, f"File not found: {args.file}")
    try:
        program = check_source(source, args.file)
    except CompileError as e:
        return _report_error(args, e, source)

    if args.format == "json":
        print(json.dumps({"status": "ok", "file": args.file, "statements": len(program.statements)}))
    else:
        print(f"{args.file}: ok")
    return 0


def cmd_emit(args: argparse.Namespace, config: ZConfig) -> int:
    """Print the annotated C translation unit."""
    source = _read_source(args)
    if source is None:
        return _report_message(args, f"File not found: {args.file}")
    try:
        c_source = compile_source(source, args.file, _tier(args, config))
    except CompileError as e:
        return _report_error(args, e, source)

    if args.format == "json":
        print(json.dumps({"status": "ok", "file": args.file, "c_source": c_source}))
    else:
        sys.stdout.write(c_source)
    return 0


def cmd_compile(args: argparse.Namespace, config: ZConfig) -> int:
    """Compile a Z source file to a native executable."""
    source = _read_source(args)
    if source is None:
        return _report_message(args, f"File not found: {args.file}")

    output = Path(args.output) if args.output else None
    emit_c = Path(args.emit_c) if args.emit_c else None
    if emit_c is None and config.keep_c:
        emit_c = (output or Path(args.file).with_suffix("")).with_suffix(".c")

    try:
        with _toolchain(config) as toolchain:
            binary = compile_file(Path(args.file), output, _tier(args, config), toolchain, emit_c)
    except CompileError as e:
        return _report_error(args, e, source)

    if args.format == "json":
        print(json.dumps({"status": "compiled", "binary": str(binary)}))
    else:
        print(f"compiled {args.file} -> {binary}")
    return 0


def cmd_run(args: argparse.Namespace, config: ZConfig) -> int:
    """Compile to a temporary executable, run it and exit with its status."""
    source = _read_source(args)
    if source is None:
        return _report_message(args, f"File not found: {args.file}")

    try:
        with _toolchain(config) as toolchain:
            result = run_file(Path(args.file), toolchain, _tier(args, config))
    except ProgramExitError as e:
        sys.stdout.write(e.result.stdout.decode("utf-8", errors="replace"))
        logger.info("program exited with status %d", e.result.returncode)
        return e.result.returncode
    except CompileError as e:
        return _report_error(args, e, source)

    sys.stdout.write(result.stdout.decode("utf-8", errors="replace"))
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _configure_logging(verbosity: int, config: ZConfig) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = config.logging_level()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    common.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log stage progress (-v) or debug detail (-vv)")
    common.add_argument("--config", default=None, help="Config file (default: nearest .zrc.yml)")

    parser = argparse.ArgumentParser(
        prog="zc",
        description="zc — ahead-of-time compiler for the Z language",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # compile
    p_compile = subparsers.add_parser("compile", parents=[common], help="Compile Z source to a native executable")
    p_compile.add_argument("file", help="Z source file (.z)")
    p_compile.add_argument("-o", "--output", help="Output executable path (default: input without extension)")
    p_compile.add_argument("-O", dest="opt_level", type=int, choices=[0, 1, 2, 3], default=None,
                           help="Optimization tier (default: config opt_level, 3)")
    p_compile.add_argument("--emit-c", dest="emit_c", default=None, help="Also write the generated C here")
    p_compile.set_defaults(func=cmd_compile)

    # run
    p_run = subparsers.add_parser("run", parents=[common], help="Compile and run, exiting with the program's status")
    p_run.add_argument("file", help="Z source file (.z)")
    p_run.add_argument("-O", dest="opt_level", type=int, choices=[0, 1, 2, 3], default=None,
                       help="Optimization tier")
    p_run.set_defaults(func=cmd_run)

    # check
    p_check = subparsers.add_parser("check", parents=[common], help="Lex, parse and type check only")
    p_check.add_argument("file", help="Z source file (.z)")
    p_check.set_defaults(func=cmd_check, opt_level=None)

    # emit
    p_emit = subparsers.add_parser("emit", parents=[common], help="Print the generated C source")
    p_emit.add_argument("file", help="Z source file (.z)")
    p_emit.add_argument("-O", dest="opt_level", type=int, choices=[0, 1, 2, 3], default=None,
                        help="Optimization tier")
    p_emit.set_defaults(func=cmd_emit)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.config:
            config = load_config(args.config)
        else:
            config = load_config(start_dir=os.path.dirname(os.path.abspath(args.file)))
    except ConfigError as e:
        return _report_message(args, str(e))

    _configure_logging(args.verbose, config)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
