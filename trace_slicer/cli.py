#!/usr/bin/env python3
"""trace_slicer/cli.py — command-line entry point.

Usage examples
--------------
    # Slice two pointers and print the tab-separated listings
    trace-slicer app.sexp run.log --pt1 1042 --pt2 977

    # Same, as JSON written to a file, with match-level debug logging
    python -m trace_slicer app.sexp run.log --pt1 1042 --pt2 977 \\
        --format json -o slice.json -vv

Exit codes
----------
    0   Success.
    1   The log violates a slicing contract (bad start record, unexpected
        instruction, unwinding return).
    2   Infrastructure failure (missing or malformed input file).
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from trace_slicer import __version__
from trace_slicer.assembler import render_json, render_text
from trace_slicer.config import OUTPUT_FORMATS, SlicerConfig
from trace_slicer.errors import ErrorCategory, SlicerError
from trace_slicer.log_reader import load_log
from trace_slicer.program_reader import load_program
from trace_slicer.slicer import TraceSlicer

_log = logging.getLogger("trace_slicer")

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``trace_slicer`` logger.

    0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("trace_slicer")
    root.setLevel(level)
    # one CLI handler per process, even when main() runs repeatedly
    for old in [h for h in root.handlers if getattr(h, "_cli_handler", False)]:
        root.removeHandler(old)
    handler._cli_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """``None`` or ``"-"`` → stdout; otherwise open *dest* for writing."""
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trace-slicer",
        description="Slice the provenance of two pointers out of an execution log.",
    )
    parser.add_argument("program", help="program representation (S-expression file)")
    parser.add_argument("log", help="execution log")
    parser.add_argument("--pt1", type=int, required=True,
                        help="record id of the first pointer")
    parser.add_argument("--pt2", type=int, required=True,
                        help="record id of the second pointer")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, default="text",
                        help="output format (default: text)")
    parser.add_argument("-o", "--output", default=None,
                        help="write output to this file instead of stdout")
    parser.add_argument("--keep-duplicates", action="store_true",
                        help="list the convergence record twice in the merged view")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="increase log verbosity (-v, -vv)")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    return parser


# ===========================================================================
# Main
# ===========================================================================

def run(config: SlicerConfig) -> int:
    for label, path in (("program", config.program_path), ("log", config.log_path)):
        if not path.exists():
            _log.error("%s not found: %s", label, path)
            return EXIT_INFRA

    # nothing is written unless the whole slice renders
    buf = io.StringIO()
    try:
        program = load_program(config.program_path)
        log = load_log(config.log_path)
        result = TraceSlicer(program, log).run(config.first_start, config.second_start)
        if config.output_format == "json":
            render_json(result, program, buf, dedupe=config.dedupe_merged)
        else:
            render_text(result, program, buf, dedupe=config.dedupe_merged)
    except SlicerError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA if exc.category is ErrorCategory.INPUT else EXIT_ERROR

    try:
        out = _open_output(config.output)
    except OSError as exc:
        _log.error("cannot open output %s: %s", config.output, exc)
        return EXIT_INFRA
    try:
        out.write(buf.getvalue())
    finally:
        if out is not sys.stdout:
            out.close()
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return run(SlicerConfig.from_args(args))


if __name__ == "__main__":
    sys.exit(main())
