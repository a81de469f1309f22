"""Run options for the trace slicer."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

OUTPUT_FORMATS = ("text", "json")


@dataclass(frozen=True)
class SlicerConfig:
    """Everything one ``trace-slicer`` invocation needs.

    Attributes
    ----------
    program_path, log_path : Path
        Program representation and execution log.
    first_start, second_start : int
        Record positions anchoring ptr1 and ptr2.
    output_format : str
        ``"text"`` or ``"json"``.
    output : str | None
        Destination path; ``None`` or ``"-"`` means stdout.
    dedupe_merged : bool
        Drop the second copy of the convergence record from the merged view.
    verbosity : int
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """

    program_path: Path
    log_path: Path
    first_start: int
    second_start: int
    output_format: str = "text"
    output: Optional[str] = None
    dedupe_merged: bool = True
    verbosity: int = 0

    def __post_init__(self) -> None:
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"unknown output format {self.output_format!r}")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "SlicerConfig":
        return cls(
            program_path=Path(args.program).expanduser(),
            log_path=Path(args.log).expanduser(),
            first_start=args.pt1,
            second_start=args.pt2,
            output_format=args.format,
            output=args.output,
            dedupe_merged=not args.keep_duplicates,
            verbosity=args.verbose,
        )
