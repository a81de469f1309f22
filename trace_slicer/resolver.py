"""
trace_slicer.resolver
=====================

Source-pointer resolution: after a trace state adopts a new value, decide
what the slice has to look for next by inspecting the value's defining
construct.

=====================  =================================================
defining construct     next target
=====================  =================================================
load                   the store that wrote the loaded-from address
indexed access         the base pointer operand
type reinterpretation  the source operand
select / phi           whichever operand next points to the same address
formal parameter       the actual argument at the caller's call site
call / invoke result   the callee's return
alloca / global        nothing: the slice reached its root
anything else          nothing: unclassified root, reported as a warning
=====================  =================================================
"""

from __future__ import annotations

import logging

from trace_slicer.errors import UnexpectedInstructionError
from trace_slicer.log_records import TopLevelPointTo
from trace_slicer.program import ConstructKind, ProgramService
from trace_slicer.tracker import Action, TraceState, Termination

_log = logging.getLogger(__name__)


def track_source_pointer(
    state: TraceState,
    record: TopLevelPointTo,
    position: int,
    program: ProgramService,
) -> None:
    """Set the next target of *state*, which just matched *record*."""
    value = program.value(state.value_id)
    kind = program.construct_kind(value)

    if kind is ConstructKind.LOAD:
        if record.loaded_from is None:
            raise UnexpectedInstructionError(
                position,
                f"value {state.value_id} is a load but the record has no "
                f"loaded-from address",
            )
        state.address = record.loaded_from
        state.action = Action.ADDR_TAKEN_POINT_TO
    elif kind in (ConstructKind.INDEXED_ACCESS, ConstructKind.TYPE_REINTERPRETATION):
        state.value_id = value.operands[0]
    elif kind is ConstructKind.CONDITIONAL_SELECT:
        # operands are (condition, true value, false value)
        state.value_id_candidates.update(value.operands[1:3])
        state.address = record.pointee_address
    elif kind is ConstructKind.MERGE:
        state.value_id_candidates.update(value.operands)
        state.address = record.pointee_address
    elif kind is ConstructKind.FORMAL_PARAMETER:
        state.action = Action.CALL_INSTRUCTION
        state.arg_no = value.arg_no
    elif kind is ConstructKind.CALL_RESULT:
        state.action = Action.RETURN_INSTRUCTION
    elif kind in (ConstructKind.STACK_ALLOCATION, ConstructKind.GLOBAL_DEFINITION):
        state.finish(Termination.ROOT)
    elif kind is ConstructKind.UNCLASSIFIED:
        _log.warning("Unknown instruction '%s'", program.describe(value))
        state.finish(Termination.UNCLASSIFIED)
    else:  # pragma: no cover - ConstructKind is closed
        raise AssertionError(f"unhandled construct kind {kind}")

    _log.debug(
        "record %d: value %d is %s -> %s", position, value.value_id,
        kind.value, "end" if state.end else state.action.value,
    )
