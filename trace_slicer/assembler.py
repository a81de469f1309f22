"""
trace_slicer.assembler
======================

Turns a :class:`~trace_slicer.slicer.SliceResult` into listings.

Both traces are already in descending record order. The merged view
interleaves them by always taking the larger head; the convergence record
is the only one the two traces can share, and ``dedupe=True`` keeps the
first pointer's copy of it.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, List, Sequence, TextIO

from trace_slicer.program import ProgramService
from trace_slicer.slicer import SliceResult
from trace_slicer.tracker import NUM_POINTERS, TraceEntry

HEADER = "RecID\tPtr\tValueID\tFunc:  Inst/Arg"


@dataclass(frozen=True)
class TraceRow:
    record_id: int
    label: int
    value_id: int

    @property
    def pointer(self) -> str:
        return f"ptr{self.label + 1}"


def merge_traces(
    first: Sequence[TraceEntry],
    second: Sequence[TraceEntry],
    dedupe: bool = False,
) -> Iterator[TraceRow]:
    """Interleave two descending traces into one descending sequence."""
    traces = (first, second)
    index = [0, 0]
    last_record = None
    while True:
        label = -1
        for i in range(NUM_POINTERS):
            if index[i] < len(traces[i]) and (
                label == -1 or traces[i][index[i]][0] > traces[label][index[label]][0]
            ):
                label = i
        if label == -1:
            break
        record_id, value_id = traces[label][index[label]]
        index[label] += 1
        if dedupe and record_id == last_record:
            continue
        last_record = record_id
        yield TraceRow(record_id, label, value_id)


def trace_rows(result: SliceResult, label: int) -> List[TraceRow]:
    return [TraceRow(rid, label, vid) for rid, vid in result.states[label].trace]


def format_row(row: TraceRow, program: ProgramService) -> str:
    description = program.describe(program.value(row.value_id))
    return f"{row.record_id}\t{row.pointer}\t{row.value_id}\t{description}"


def render_text(
    result: SliceResult, program: ProgramService, out: TextIO, dedupe: bool = True
) -> None:
    """Write the per-pointer listings and the merged listing."""
    out.write(HEADER + "\n\n")
    for label in range(NUM_POINTERS):
        out.write(f"ptr{label + 1}: \n")
        for row in trace_rows(result, label):
            out.write(format_row(row, program) + "\n")
        out.write("\n")

    out.write("Merged: \n")
    for row in merge_traces(*result.traces, dedupe=dedupe):
        out.write(format_row(row, program) + "\n")


def _row_dict(row: TraceRow, program: ProgramService) -> Dict[str, Any]:
    d = asdict(row)
    d["pointer"] = row.pointer
    d["description"] = program.describe(program.value(row.value_id))
    return d


def to_json(result: SliceResult, program: ProgramService, dedupe: bool = True) -> Dict[str, Any]:
    doc: Dict[str, Any] = {}
    for label, state in enumerate(result.states):
        key = f"ptr{label + 1}"
        doc[key] = [_row_dict(r, program) for r in trace_rows(result, label)]
        doc.setdefault("status", {})[key] = {
            "start": state.start_record_id,
            "end": state.end,
            "termination": state.termination.value,
        }
    doc["merged"] = [
        _row_dict(r, program) for r in merge_traces(*result.traces, dedupe=dedupe)
    ]
    doc["records_processed"] = result.records_processed
    return doc


def render_json(
    result: SliceResult, program: ProgramService, out: TextIO, dedupe: bool = True
) -> None:
    json.dump(to_json(result, program, dedupe), out, indent=2)
    out.write("\n")
