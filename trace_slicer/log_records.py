"""
trace_slicer.log_records
========================

Typed records of a pointer-provenance execution log.

Each record is an immutable dataclass; :class:`RecordKind` tags the variant
so that consumers can dispatch without ``isinstance`` chains.

Record kinds
------------
ADDR_TAKEN_DECL
    An address-taken object came into existence (``Address`` .. ``+Bound``).
TOP_LEVEL_POINT_TO
    Value ``PointerValueID`` now holds a pointer to ``PointeeAddress``;
    when the value is a load, ``LoadedFromAddress`` is where it was read.
ADDR_TAKEN_POINT_TO
    A store instruction wrote a pointer into memory at ``PointerAddress``.
CALL_INSTRUCTION
    A call or invoke site was executed.
RETURN_INSTRUCTION
    A return point was executed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union


class RecordKind(enum.Enum):
    """Kind tag of a log record."""

    ADDR_TAKEN_DECL = "AddrTakenDecl"
    TOP_LEVEL_POINT_TO = "TopLevelPointTo"
    ADDR_TAKEN_POINT_TO = "AddrTakenPointTo"
    CALL_INSTRUCTION = "CallInstruction"
    RETURN_INSTRUCTION = "ReturnInstruction"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AddrTakenDecl:
    address: int
    bound: int = 0
    allocated_by: Optional[int] = None

    kind = RecordKind.ADDR_TAKEN_DECL


@dataclass(frozen=True)
class TopLevelPointTo:
    pointer_value_id: int
    pointee_address: int
    loaded_from: Optional[int] = None

    kind = RecordKind.TOP_LEVEL_POINT_TO


@dataclass(frozen=True)
class AddrTakenPointTo:
    instruction_id: int
    pointer_address: int
    pointee_address: Optional[int] = None

    kind = RecordKind.ADDR_TAKEN_POINT_TO


@dataclass(frozen=True)
class CallInstruction:
    instruction_id: int

    kind = RecordKind.CALL_INSTRUCTION


@dataclass(frozen=True)
class ReturnInstruction:
    instruction_id: int

    kind = RecordKind.RETURN_INSTRUCTION


LogRecord = Union[
    AddrTakenDecl,
    TopLevelPointTo,
    AddrTakenPointTo,
    CallInstruction,
    ReturnInstruction,
]
