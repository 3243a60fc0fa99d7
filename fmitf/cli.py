"""Command-line options of the verification tool and error reporting helpers."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, TextIO

from .errors import SpannedError

DEFAULT_TIMEOUT = 30


class Mode(Enum):
    """Processing mode; each mode includes all previous stages."""

    AST = "ast"
    CFG = "cfg"
    OPTIMIZE = "optimize"
    SCGRAPH = "scgraph"
    VERIFY = "verify"

    def __str__(self) -> str:
        return self.value


@dataclass
class CliOptions:
    input: Path
    mode: Mode = Mode.VERIFY
    output: Optional[Path] = None
    output_dir: Optional[Path] = None
    verbose: bool = False
    show_spans: bool = False
    dot: bool = False
    quiet: bool = False
    timeout: int = DEFAULT_TIMEOUT
    no_optimize: bool = False

    def validate(self) -> None:
        """Raise ValueError if the options do not fit together."""
        if self.mode is Mode.VERIFY:
            if self.output is not None and self.output_dir is not None:
                raise ValueError(
                    "Cannot specify both --output and --output-dir for verify mode. "
                    "Use --output-dir for Boogie files."
                )
        elif self.output_dir is not None:
            raise ValueError("--output-dir is only valid for verify mode")

        if self.dot and self.mode not in (Mode.CFG, Mode.OPTIMIZE, Mode.SCGRAPH):
            raise ValueError("--dot flag is only valid for cfg, optimize, and scgraph modes")

        if self.timeout != DEFAULT_TIMEOUT and self.mode is not Mode.VERIFY:
            raise ValueError("--timeout is only valid for verify mode")

        if self.no_optimize and self.mode not in (Mode.OPTIMIZE, Mode.SCGRAPH, Mode.VERIFY):
            raise ValueError(
                "--no-optimize is only valid for optimize, scgraph, and verify modes"
            )

        if self.quiet and self.verbose:
            raise ValueError("Cannot use both --quiet and --verbose flags")


def _timeout(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timeout: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"timeout must not be negative: {value}")
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fmitf",
        description="A chopped transaction serializability verification tool",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument("input", type=Path, help="Input source file")
    parser.add_argument(
        "-m",
        "--mode",
        type=Mode,
        choices=list(Mode),
        default=Mode.VERIFY,
        help="Processing mode - each mode includes all previous stages",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file for ast/cfg/scgraph modes, or output directory for verify mode",
    )
    parser.add_argument(
        "--output-dir", type=Path, help="Output directory for Boogie files (verify mode only)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--show-spans", action="store_true", help="Show source spans in output")
    parser.add_argument(
        "--dot", action="store_true", help="Generate DOT output (for cfg and scgraph modes)"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Quiet mode - minimal output")
    parser.add_argument(
        "--timeout",
        type=_timeout,
        default=DEFAULT_TIMEOUT,
        help="Verification timeout in seconds (verify mode only)",
    )
    parser.add_argument("--no-optimize", action="store_true", help="Skip optimization passes")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> CliOptions:
    """Parse command-line arguments; exits with a usage message on bad syntax."""
    args = _parser().parse_args(argv)
    return CliOptions(
        input=args.input,
        mode=args.mode,
        output=args.output,
        output_dir=args.output_dir,
        verbose=args.verbose,
        show_spans=args.show_spans,
        dot=args.dot,
        quiet=args.quiet,
        timeout=args.timeout,
        no_optimize=args.no_optimize,
    )


def print_spanned_error(
    spanned_error: SpannedError, source_code: str, stream: Optional[TextIO] = None
) -> None:
    """Write an error, and the source line it points at, to ``stream`` (stderr by default)."""
    out = sys.stderr if stream is None else stream
    span = spanned_error.span
    if span is None:
        print(f"Error: {spanned_error.error!r}", file=out)
        return

    print(
        f"Error: {spanned_error.error!r} at line {span.line}, column {span.column}",
        file=out,
    )
    lines = source_code.splitlines()
    index = max(span.line - 1, 0)
    if index < len(lines):
        print(f"  |\n{span.line} | {lines[index]}", file=out)
        print(f"  | {' ' * span.column}^", file=out)