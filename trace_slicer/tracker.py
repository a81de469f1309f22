"""
trace_slicer.tracker
====================

Per-pointer tracking state and the per-run context that owns it.

A :class:`TraceState` records what one tracked pointer is waiting for while
the log is walked backward: which record kind (``action``), which value or
address, and the matches found so far (``trace``). A :class:`DualTracker`
owns exactly two of them together with the shared backward position counter;
a fresh tracker is created for every slicing run.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple

from trace_slicer.log_records import RecordKind

NUM_POINTERS = 2

TraceEntry = Tuple[int, int]  # (record id, value id)


class Action(enum.Enum):
    """The record kind a trace state currently expects to match."""

    TOP_LEVEL_POINT_TO = RecordKind.TOP_LEVEL_POINT_TO.value
    ADDR_TAKEN_POINT_TO = RecordKind.ADDR_TAKEN_POINT_TO.value
    CALL_INSTRUCTION = RecordKind.CALL_INSTRUCTION.value
    RETURN_INSTRUCTION = RecordKind.RETURN_INSTRUCTION.value


class Termination(enum.Enum):
    """Why a trace state stopped."""

    OPEN = "open"                   # still tracking, or log exhausted
    ROOT = "root"                   # stack allocation or global
    UNCLASSIFIED = "unclassified"   # unknown defining construct
    OPAQUE_CALLEE = "opaque-callee" # call without a logged return
    CONVERGED = "converged"         # both pointers matched one record


@dataclass
class TraceState:
    """Tracking state of one pointer.

    Attributes
    ----------
    start_record_id : int
        Position at which tracking becomes active.
    action : Action
        Record kind expected next.
    value_id : int | None
        Value being chased when ``action`` is TOP_LEVEL_POINT_TO.
    value_id_candidates : set[int]
        Values pending disambiguation after a select or phi.
    address : int | None
        Address being chased (stores), or staged for disambiguation.
    arg_no : int | None
        Formal argument ordinal being chased across a call.
    trace : list[tuple[int, int]]
        ``(record id, value id)`` matches, strictly decreasing record ids.
    end : bool
        Terminal flag; never cleared once set.
    """

    start_record_id: int
    action: Action = Action.TOP_LEVEL_POINT_TO
    value_id: Optional[int] = None
    value_id_candidates: Set[int] = field(default_factory=set)
    address: Optional[int] = None
    arg_no: Optional[int] = None
    trace: List[TraceEntry] = field(default_factory=list)
    end: bool = False
    termination: Termination = Termination.OPEN

    def append(self, record_id: int, value_id: int) -> None:
        if self.trace and record_id >= self.trace[-1][0]:
            raise ValueError(
                f"trace must decrease: {record_id} after {self.trace[-1][0]}"
            )
        self.trace.append((record_id, value_id))

    def finish(self, reason: Termination) -> None:
        if not self.end:
            self.end = True
            self.termination = reason

    @property
    def awaiting_candidate(self) -> bool:
        return bool(self.value_id_candidates)


class DualTracker:
    """Both trace states plus the shared backward position counter.

    ``position`` is the position of the record being dispatched; it starts
    at the record count and drops by one per record.
    """

    def __init__(self, first_start: int, second_start: int, num_records: int) -> None:
        self.states: Tuple[TraceState, TraceState] = (
            TraceState(start_record_id=first_start),
            TraceState(start_record_id=second_start),
        )
        self.position = num_records
        self.records_processed = 0

    def __getitem__(self, label: int) -> TraceState:
        return self.states[label]

    def __iter__(self) -> Iterator[TraceState]:
        return iter(self.states)

    def labels(self) -> range:
        return range(NUM_POINTERS)

    def advance(self) -> None:
        """Step the counter past the record just dispatched."""
        self.position -= 1
        self.records_processed += 1

    def is_live(self, label: int) -> bool:
        state = self.states[label]
        return self.position <= state.start_record_id and not state.end

    @property
    def all_ended(self) -> bool:
        return all(state.end for state in self.states)

    def converge(self) -> None:
        # overrides a terminal reached while resolving the shared record
        for state in self.states:
            state.end = True
            state.termination = Termination.CONVERGED
