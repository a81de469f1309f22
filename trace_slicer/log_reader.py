"""
trace_slicer.log_reader
=======================

Reads a textual pointer-provenance log into an :class:`ExecutionLog`.

Log format
----------
One record per line; blank lines and ``#`` comments are ignored. Numbers
are decimal or ``0x``-prefixed hexadecimal::

    decl     <address> [<bound> [<allocated-by-ins-id>]]
    toplevel <pointer-value-id> <pointee-address> [<loaded-from-address>]
    store    <ins-id> <pointer-address> [<pointee-address>]
    call     <ins-id>
    return   <ins-id>

The k-th record of the file (ignoring blank and comment lines) has
position ``k``; positions run from 1 to ``len(log)``.

Usage example
-------------
::

    from trace_slicer.log_reader import load_log

    log = load_log("run.log")
    for position, record in log.iter_backward():
        print(position, record.kind)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from trace_slicer.errors import LogFormatError
from trace_slicer.log_records import (
    AddrTakenDecl,
    AddrTakenPointTo,
    CallInstruction,
    LogRecord,
    ReturnInstruction,
    TopLevelPointTo,
)

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  LOG SOURCE CONTRACT
# ═══════════════════════════════════════════════════════════════════

@runtime_checkable
class LogSource(Protocol):
    """What the slicer needs from a log: a count and positional access."""

    def __len__(self) -> int: ...

    def __getitem__(self, position: int) -> LogRecord: ...


class ExecutionLog:
    """An ordered, randomly addressable sequence of log records.

    Positions are 1-based: ``log[1]`` is the first record, ``log[len(log)]``
    the last.
    """

    def __init__(self, records: Iterable[LogRecord] = ()) -> None:
        self._records: List[LogRecord] = list(records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, position: int) -> LogRecord:
        if not 1 <= position <= len(self._records):
            raise IndexError(
                f"record position {position} outside 1..{len(self._records)}"
            )
        return self._records[position - 1]

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(self._records)

    def iter_backward(self) -> Iterator[Tuple[int, LogRecord]]:
        """Yield ``(position, record)`` from the last record to the first."""
        for position in range(len(self._records), 0, -1):
            yield position, self._records[position - 1]

    def __repr__(self) -> str:
        return f"ExecutionLog({len(self._records)} records)"


# ═══════════════════════════════════════════════════════════════════
#  GRAMMAR (Parsimonious PEG, one line at a time)
# ═══════════════════════════════════════════════════════════════════

LOG_LINE_GRAMMAR = Grammar(r'''
    line        = _ entry? _ comment?

    entry       = decl_rec / toplevel_rec / store_rec / call_rec / return_rec

    decl_rec     = "decl" opt_number opt_number opt_number
    toplevel_rec = "toplevel" __ number __ number opt_number
    store_rec    = "store" __ number __ number opt_number
    call_rec     = "call" __ number
    return_rec   = "return" __ number

    opt_number  = (__ number)?
    number      = hex / dec
    hex         = ~"0[xX][0-9a-fA-F]+"
    dec         = ~"[0-9]+"

    comment     = ~"#.*"
    __          = ~"[ \t]+"
    _           = ~"[ \t]*"
''')


class _RecordBuilder(NodeVisitor):
    """Turns a parsed log line into a record, or ``None`` for blank lines."""

    grammar = LOG_LINE_GRAMMAR

    def generic_visit(self, node: Node, visited_children: List[Any]) -> Any:
        return visited_children or node

    def visit_line(self, node: Node, visited_children: List[Any]) -> Optional[LogRecord]:
        _, entry, _, _ = visited_children
        if isinstance(entry, list):
            return entry[0]
        return None

    def visit_entry(self, node: Node, visited_children: List[Any]) -> LogRecord:
        return visited_children[0]

    def visit_decl_rec(self, node: Node, visited_children: List[Any]) -> AddrTakenDecl:
        _, address, bound, allocated_by = visited_children
        if address is None:
            raise ValueError("decl record needs an address")
        return AddrTakenDecl(
            address=address,
            bound=bound if bound is not None else 0,
            allocated_by=allocated_by,
        )

    def visit_toplevel_rec(self, node: Node, visited_children: List[Any]) -> TopLevelPointTo:
        _, _, value_id, _, pointee, loaded_from = visited_children
        return TopLevelPointTo(
            pointer_value_id=value_id,
            pointee_address=pointee,
            loaded_from=loaded_from,
        )

    def visit_store_rec(self, node: Node, visited_children: List[Any]) -> AddrTakenPointTo:
        _, _, ins_id, _, pointer, pointee = visited_children
        return AddrTakenPointTo(
            instruction_id=ins_id,
            pointer_address=pointer,
            pointee_address=pointee,
        )

    def visit_call_rec(self, node: Node, visited_children: List[Any]) -> CallInstruction:
        return CallInstruction(instruction_id=visited_children[2])

    def visit_return_rec(self, node: Node, visited_children: List[Any]) -> ReturnInstruction:
        return ReturnInstruction(instruction_id=visited_children[2])

    def visit_opt_number(self, node: Node, visited_children: List[Any]) -> Optional[int]:
        # (__ number)? → [[ws, number]] when present
        if isinstance(visited_children, list) and visited_children:
            return visited_children[0][1]
        return None

    def visit_number(self, node: Node, visited_children: List[Any]) -> int:
        text = node.text
        if text[:2].lower() == "0x":
            return int(text, 16)
        return int(text)


_BUILDER = _RecordBuilder()


# ═══════════════════════════════════════════════════════════════════
#  PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def parse_record(line: str, lineno: int = 0) -> Optional[LogRecord]:
    """Parse one log line; returns ``None`` for blank and comment lines."""
    try:
        return _BUILDER.parse(line.rstrip("\r\n"))
    except ParseError as exc:
        raise LogFormatError(
            f"cannot parse {line.strip()!r} (column {exc.column()})", lineno
        ) from exc
    except VisitationError as exc:
        raise LogFormatError(f"invalid record {line.strip()!r}", lineno) from exc


def parse_log(text: str) -> ExecutionLog:
    """Parse the whole text of a log."""
    records: List[LogRecord] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        record = parse_record(line, lineno)
        if record is not None:
            records.append(record)
    _log.debug("Parsed %d log records", len(records))
    return ExecutionLog(records)


def load_log(path: Union[str, Path]) -> ExecutionLog:
    """Read and parse a log file."""
    p = Path(path)
    _log.info("Loading log: %s", p)
    return parse_log(p.read_text(encoding="utf-8"))
