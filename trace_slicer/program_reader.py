"""trace_slicer/program_reader.py – S-expression → :class:`Program` loader.

Surface syntax
--------------
::

    (module "example"
      (global 1 "@g" ptr)
      (const  2 "null" ptr)
      (function "main"
        (arg  3 0 "%p" ptr)
        (inst 4 100 alloca "%x" ptr ())
        (inst 5 101 load   "%y" ptr (4))
        (inst 6 102 store  ""   void (5 4))))

Names may be strings or bare symbols; types are bare symbols or strings
(``ptr``, ``i8*``, ``i32``, ``void``). Every list is dispatched on its head
symbol; anything unexpected is a :class:`ProgramFormatError`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Tuple, Union

import sexpdata
from sexpdata import Symbol

from trace_slicer.errors import ProgramFormatError
from trace_slicer.program import Program

_log = logging.getLogger(__name__)

Sexp = Any  # Union[list, Symbol, str, int]


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _sym_name(s: Sexp) -> str:
    if isinstance(s, Symbol):
        return str(s)
    raise ProgramFormatError(f"expected symbol, got {type(s).__name__}: {s!r}")


def _text(s: Sexp) -> str:
    """A name or type: a string or a bare symbol."""
    if isinstance(s, (Symbol, str)):
        return str(s)
    raise ProgramFormatError(f"expected name, got {type(s).__name__}: {s!r}")


def _int(s: Sexp, what: str) -> int:
    if isinstance(s, bool) or not isinstance(s, int):
        raise ProgramFormatError(f"expected integer {what}, got {s!r}")
    return s


def _expect_list(s: Sexp, *, min_len: int = 0) -> list:
    if not isinstance(s, list):
        raise ProgramFormatError(f"expected list, got {type(s).__name__}: {s!r}")
    if len(s) < min_len:
        raise ProgramFormatError(
            f"list too short: expected at least {min_len} elements, "
            f"got {len(s)}: {s!r}"
        )
    return s


def _head(s: list) -> str:
    if not s:
        raise ProgramFormatError("unexpected empty list")
    return _sym_name(s[0])


def _operands(s: Sexp) -> Tuple[int, ...]:
    # sexpdata may hand back an empty list as None when nil-mapping is on
    if s is None:
        return ()
    return tuple(_int(op, "operand") for op in _expect_list(s))


# ═══════════════════════════════════════════════════════════════════════
#  Form parsers
# ═══════════════════════════════════════════════════════════════════════

def _parse_global(program: Program, form: list) -> None:
    # (global VID NAME TYPE)
    _expect_list(form, min_len=4)
    program.add_global(_int(form[1], "value id"), _text(form[2]), _text(form[3]))


def _parse_const(program: Program, form: list) -> None:
    # (const VID NAME TYPE)
    _expect_list(form, min_len=4)
    program.add_constant(_int(form[1], "value id"), _text(form[2]), _text(form[3]))


def _parse_arg(program: Program, function: str, form: list) -> None:
    # (arg VID ORDINAL NAME TYPE)
    _expect_list(form, min_len=5)
    program.add_argument(
        _int(form[1], "value id"),
        function,
        _int(form[2], "argument ordinal"),
        name=_text(form[3]),
        type=_text(form[4]),
    )


def _parse_inst(program: Program, function: str, form: list) -> None:
    # (inst VID INS-ID OPCODE NAME TYPE (OPERANDS...))
    _expect_list(form, min_len=6)
    program.add_instruction(
        _int(form[1], "value id"),
        _int(form[2], "instruction id"),
        function,
        _sym_name(form[3]),
        operands=_operands(form[6]) if len(form) > 6 else (),
        name=_text(form[4]),
        type=_text(form[5]),
    )


def _parse_function(program: Program, form: list) -> None:
    _expect_list(form, min_len=2)
    name = _text(form[1])
    for item in form[2:]:
        item = _expect_list(item, min_len=1)
        tag = _head(item)
        if tag == "arg":
            _parse_arg(program, name, item)
        elif tag == "inst":
            _parse_inst(program, name, item)
        else:
            raise ProgramFormatError(f"unexpected ({tag} ...) in function {name}")


def _parse_module(raw: Sexp) -> Program:
    form = _expect_list(raw, min_len=1)
    if _head(form) != "module":
        raise ProgramFormatError(f"expected (module ...), got ({_head(form)} ...)")
    rest = form[1:]
    name = ""
    if rest and not isinstance(rest[0], list):
        name = _text(rest[0])
        rest = rest[1:]

    program = Program(name)
    for item in rest:
        item = _expect_list(item, min_len=1)
        tag = _head(item)
        if tag == "global":
            _parse_global(program, item)
        elif tag == "const":
            _parse_const(program, item)
        elif tag == "function":
            _parse_function(program, item)
        else:
            raise ProgramFormatError(f"unexpected ({tag} ...) in module")
    return program


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def parse_program(text: str) -> Program:
    """Parse a program representation from S-expression text.

    >>> parse_program('(module m (global 1 "@g" ptr))').value(1).name
    '@g'
    """
    # disable nil/true/false auto-mapping so that () stays a list
    try:
        raw = sexpdata.loads(text, nil=None, true=None, false=None)
    except Exception as exc:
        raise ProgramFormatError(f"S-expression syntax error: {exc}") from exc
    program = _parse_module(raw)
    _log.debug("Parsed %r", program)
    return program


def load_program(path: Union[str, Path]) -> Program:
    """Read and parse a program representation file."""
    p = Path(path)
    _log.info("Loading program: %s", p)
    return parse_program(p.read_text(encoding="utf-8"))
