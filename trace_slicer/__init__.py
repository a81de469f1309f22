"""
trace_slicer — Backward Provenance Slicing of Pointer Execution Logs
====================================================================

Given an execution log recorded by a dynamic pointer-alias analysis and the
program it was recorded from, the slicer walks the log backward from two
chosen records and reconstructs, for each of the two pointers, the chain of
runtime events that explains the value it held: loads back to the stores
that wrote them, parameters back to call sites, call results back to
returns, until each chain reaches an allocation, a global, an opaque
callee, or the record where the two chains meet.

Core modules
------------
log_records
    Typed records of the execution log.
log_reader
    Text log parser (``parsimonious`` grammar) and :class:`ExecutionLog`.
program
    Program representation service and construct classification.
program_reader
    S-expression program loader (``sexpdata``).
tracker
    Per-pointer :class:`TraceState` and the per-run :class:`DualTracker`.
resolver
    Decides what a trace chases after each match.
slicer
    The backward record-dispatch engine.
assembler
    Per-pointer and merged listings.

Quick start
-----------
>>> from trace_slicer import parse_program, parse_log, slice_trace
>>> program = parse_program('(module m (function f (inst 1 10 alloca "%x" ptr ())))')
>>> result = slice_trace(program, parse_log("toplevel 1 0x10"), 1, 1)
>>> result.traces
([(1, 1)], [(1, 1)])
"""

from __future__ import annotations

import logging
from typing import List

from trace_slicer.assembler import TraceRow, merge_traces, render_json, render_text
from trace_slicer.config import SlicerConfig
from trace_slicer.errors import (
    ContractError,
    ErrorCode,
    InputError,
    SlicerError,
)
from trace_slicer.log_reader import ExecutionLog, LogSource, load_log, parse_log
from trace_slicer.log_records import (
    AddrTakenDecl,
    AddrTakenPointTo,
    CallInstruction,
    LogRecord,
    RecordKind,
    ReturnInstruction,
    TopLevelPointTo,
)
from trace_slicer.program import ConstructKind, Program, ProgramService, ProgramValue
from trace_slicer.program_reader import load_program, parse_program
from trace_slicer.slicer import SliceResult, TraceSlicer, slice_trace
from trace_slicer.tracker import Action, DualTracker, Termination, TraceState

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__: List[str] = [
    "Action",
    "AddrTakenDecl",
    "AddrTakenPointTo",
    "CallInstruction",
    "ConstructKind",
    "ContractError",
    "DualTracker",
    "ErrorCode",
    "ExecutionLog",
    "InputError",
    "LogRecord",
    "LogSource",
    "Program",
    "ProgramService",
    "ProgramValue",
    "RecordKind",
    "ReturnInstruction",
    "SliceResult",
    "SlicerConfig",
    "SlicerError",
    "Termination",
    "TopLevelPointTo",
    "TraceRow",
    "TraceSlicer",
    "TraceState",
    "load_log",
    "load_program",
    "merge_traces",
    "parse_log",
    "parse_program",
    "render_json",
    "render_text",
    "slice_trace",
    "__version__",
]
