"""
trace_slicer.slicer
===================

The backward record-dispatch engine.

:class:`TraceSlicer` walks a log from its last record to its first and
routes every record to the handler for its kind. Each handler checks which
of the two tracked pointers is live and waiting for that kind of record,
extends the matching traces, and asks the resolver what to chase next. When
both pointers match the very same record their provenance has merged and
tracking stops.

Usage example
-------------
::

    from trace_slicer.log_reader import load_log
    from trace_slicer.program_reader import load_program
    from trace_slicer.slicer import TraceSlicer

    result = TraceSlicer(load_program("app.sexp"), load_log("run.log")).run(42, 57)
    print(result.traces[0])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from trace_slicer.errors import (
    InvalidStartError,
    NonPointerStartError,
    StartRecordError,
    UnexpectedInstructionError,
    UnsupportedUnwindError,
)
from trace_slicer.log_reader import LogSource
from trace_slicer.log_records import (
    AddrTakenDecl,
    AddrTakenPointTo,
    CallInstruction,
    LogRecord,
    RecordKind,
    ReturnInstruction,
    TopLevelPointTo,
)
from trace_slicer.program import Opcode, ProgramService
from trace_slicer.resolver import track_source_pointer
from trace_slicer.tracker import Action, DualTracker, TraceEntry, TraceState, Termination

_log = logging.getLogger(__name__)


@dataclass
class SliceResult:
    """Outcome of one slicing run."""

    states: Tuple[TraceState, TraceState]
    records_processed: int
    num_records: int

    @property
    def traces(self) -> Tuple[List[TraceEntry], List[TraceEntry]]:
        return (self.states[0].trace, self.states[1].trace)

    @property
    def converged(self) -> bool:
        return all(s.termination is Termination.CONVERGED for s in self.states)

    @property
    def exhausted(self) -> bool:
        """True when the whole log was walked."""
        return self.records_processed == self.num_records


class TraceSlicer:
    """Slices the provenance of two pointers out of an execution log.

    Parameters
    ----------
    program
        Resolves the log's value and instruction ids; only read.
    log
        The execution log; only read.
    """

    def __init__(self, program: ProgramService, log: LogSource) -> None:
        self.program = program
        self.log = log
        self._handlers: Dict[RecordKind, Callable[[DualTracker, LogRecord], None]] = {
            RecordKind.ADDR_TAKEN_DECL: self._process_addr_taken_decl,
            RecordKind.TOP_LEVEL_POINT_TO: self._process_top_level_point_to,
            RecordKind.ADDR_TAKEN_POINT_TO: self._process_addr_taken_point_to,
            RecordKind.CALL_INSTRUCTION: self._process_call_instruction,
            RecordKind.RETURN_INSTRUCTION: self._process_return_instruction,
        }

    # -- driver ---------------------------------------------------------------

    def run(self, first_start: int, second_start: int) -> SliceResult:
        """Slice both pointers, starting at the given record positions."""
        num_records = len(self.log)
        for label, start in enumerate((first_start, second_start)):
            if not 1 <= start <= num_records:
                raise InvalidStartError(label, start, num_records)

        tracker = DualTracker(first_start, second_start, num_records)
        _log.info("Slicing %d records from ptr1@%d, ptr2@%d",
                  num_records, first_start, second_start)
        while tracker.position >= 1 and not tracker.all_ended:
            record = self.log[tracker.position]
            self._handlers[record.kind](tracker, record)
            tracker.advance()

        _log.info(
            "Processed %d of %d records; ptr1 %s with %d matches, ptr2 %s with %d matches",
            tracker.records_processed, num_records,
            tracker[0].termination.value, len(tracker[0].trace),
            tracker[1].termination.value, len(tracker[1].trace),
        )
        return SliceResult(
            states=tracker.states,
            records_processed=tracker.records_processed,
            num_records=num_records,
        )

    # -- helpers --------------------------------------------------------------

    def _check_not_start(self, tracker: DualTracker, record: LogRecord) -> None:
        # a start must be anchored on a TopLevelPointTo record
        for label in tracker.labels():
            if tracker[label].start_record_id == tracker.position:
                raise StartRecordError(label, tracker.position, record.kind.value)

    def _match(
        self, tracker: DualTracker, label: int, value_id: int,
        action: Optional[Action] = None,
    ) -> None:
        state = tracker[label]
        if action is not None:
            # an adopted operand must name a program value
            self.program.value(value_id)
        state.append(tracker.position, value_id)
        if action is not None:
            state.action = action
            state.value_id = value_id
        _log.debug("record %d: ptr%d matches value %d",
                   tracker.position, label + 1, value_id)

    @staticmethod
    def _settle(tracker: DualTracker, num_matches: int) -> None:
        # If two sliced traces meet, we stop tracking
        if num_matches == 2:
            _log.info("Slices converge at record %d", tracker.position)
            tracker.converge()

    # -- record handlers ------------------------------------------------------

    def _process_addr_taken_decl(self, tracker: DualTracker, record: AddrTakenDecl) -> None:
        self._check_not_start(tracker, record)

    def _process_top_level_point_to(
        self, tracker: DualTracker, record: TopLevelPointTo
    ) -> None:
        num_matches = 0
        for label in tracker.labels():
            state = tracker[label]
            if state.start_record_id == tracker.position:
                value = self.program.value(record.pointer_value_id)
                if not self.program.is_pointer(value):
                    raise NonPointerStartError(
                        label, tracker.position, record.pointer_value_id
                    )
                state.value_id = record.pointer_value_id
            if not tracker.is_live(label) or state.action is not Action.TOP_LEVEL_POINT_TO:
                continue

            if state.awaiting_candidate:
                # select/phi: the first operand seen pointing at the staged
                # address is the one that produced the value
                if (record.pointee_address != state.address
                        or record.pointer_value_id not in state.value_id_candidates):
                    continue
                state.value_id_candidates.clear()
                state.value_id = record.pointer_value_id
            elif record.pointer_value_id != state.value_id:
                continue

            num_matches += 1
            self._match(tracker, label, state.value_id)
            track_source_pointer(state, record, tracker.position, self.program)
        self._settle(tracker, num_matches)

    def _process_addr_taken_point_to(
        self, tracker: DualTracker, record: AddrTakenPointTo
    ) -> None:
        self._check_not_start(tracker, record)
        store = self.program.instruction(record.instruction_id)
        if store.opcode is not Opcode.STORE or len(store.operands) < 2:
            raise UnexpectedInstructionError(
                tracker.position,
                f"instruction {record.instruction_id} is not a (value, pointer) store",
            )

        num_matches = 0
        for label in tracker.labels():
            state = tracker[label]
            if not tracker.is_live(label) or state.action is not Action.ADDR_TAKEN_POINT_TO:
                continue
            if record.pointer_address != state.address:
                continue
            num_matches += 1
            self._match(tracker, label, store.operands[0], Action.TOP_LEVEL_POINT_TO)
        self._settle(tracker, num_matches)

    def _process_call_instruction(
        self, tracker: DualTracker, record: CallInstruction
    ) -> None:
        self._check_not_start(tracker, record)
        call = self.program.instruction(record.instruction_id)
        if call.opcode not in (Opcode.CALL, Opcode.INVOKE):
            raise UnexpectedInstructionError(
                tracker.position,
                f"instruction {record.instruction_id} is not a call site",
            )

        num_matches = 0
        for label in tracker.labels():
            state = tracker[label]
            if not tracker.is_live(label):
                continue
            if state.action is Action.RETURN_INSTRUCTION:
                # this callee is an external function, the trace ends
                state.finish(Termination.OPAQUE_CALLEE)
                continue
            if state.action is not Action.CALL_INSTRUCTION:
                continue
            if state.arg_no is None or state.arg_no >= len(call.operands):
                raise UnexpectedInstructionError(
                    tracker.position,
                    f"call instruction {record.instruction_id} has no argument "
                    f"{state.arg_no}",
                )
            num_matches += 1
            self._match(
                tracker, label, call.operands[state.arg_no], Action.TOP_LEVEL_POINT_TO
            )
        self._settle(tracker, num_matches)

    def _process_return_instruction(
        self, tracker: DualTracker, record: ReturnInstruction
    ) -> None:
        self._check_not_start(tracker, record)
        ret = self.program.instruction(record.instruction_id)
        if ret.opcode not in (Opcode.RET, Opcode.RESUME):
            raise UnexpectedInstructionError(
                tracker.position,
                f"instruction {record.instruction_id} is not a return",
            )

        num_matches = 0
        for label in tracker.labels():
            state = tracker[label]
            if not tracker.is_live(label) or state.action is not Action.RETURN_INSTRUCTION:
                continue
            if ret.opcode is Opcode.RESUME:
                raise UnsupportedUnwindError(tracker.position, record.instruction_id)
            if not ret.operands:
                raise UnexpectedInstructionError(
                    tracker.position,
                    f"return instruction {record.instruction_id} returns no value",
                )
            num_matches += 1
            self._match(tracker, label, ret.operands[0], Action.TOP_LEVEL_POINT_TO)
        self._settle(tracker, num_matches)


def slice_trace(
    program: ProgramService, log: LogSource, first_start: int, second_start: int
) -> SliceResult:
    """Convenience wrapper around :meth:`TraceSlicer.run`."""
    return TraceSlicer(program, log).run(first_start, second_start)
