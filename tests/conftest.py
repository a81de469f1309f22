# tests/conftest.py
"""
Shared programs, logs and builders for the trace slicer tests.

Value ids are grouped per scenario so that the programs can be combined
into one module without clashes:

  20-29  load chain        (main: alloca, store, load, bitcast)
  30-49  call boundary     (main calls callee(%obj); callee returns a GEP)
  50-59  opaque callee     (main calls an external function)
  60-69  select            (select between %x and a bitcast of %z)
  70-79  phi
  80-89  unclassified      (inttoptr, integers)
"""

from pathlib import Path
from typing import Tuple

import pytest

from trace_slicer.log_reader import ExecutionLog, parse_log
from trace_slicer.program import Program
from trace_slicer.slicer import SliceResult, TraceSlicer


# ── Program builders ────────────────────────────────────────────

def add_load_chain(p: Program) -> Program:
    p.add_instruction(20, 100, "main", "alloca", (), name="%slot")
    p.add_instruction(21, 101, "main", "alloca", (), name="%obj")
    p.add_instruction(22, 102, "main", "store", (21, 20), type="void")
    p.add_instruction(23, 103, "main", "load", (20,), name="%p")
    p.add_instruction(24, 104, "main", "bitcast", (23,), name="%q")
    return p


def add_call_boundary(p: Program) -> Program:
    p.add_constant(32, "8", type="i64")
    p.add_instruction(30, 300, "main", "alloca", (), name="%obj")
    p.add_instruction(31, 301, "main", "call", (30,), name="%r")
    p.add_argument(40, "callee", 0, name="%a")
    p.add_instruction(41, 400, "callee", "getelementptr", (40, 32), name="%f")
    p.add_instruction(42, 401, "callee", "ret", (41,), type="void")
    p.add_instruction(43, 402, "callee", "resume", (), type="void")
    return p


def add_opaque_callee(p: Program) -> Program:
    p.add_instruction(50, 500, "main", "call", (), name="%e")
    return p


def add_select(p: Program) -> Program:
    p.add_argument(61, "main", 0, name="%c", type="i1")
    p.add_instruction(62, 600, "main", "alloca", (), name="%x")
    p.add_instruction(64, 601, "main", "alloca", (), name="%z")
    p.add_instruction(63, 602, "main", "bitcast", (64,), name="%y")
    p.add_instruction(60, 603, "main", "select", (61, 62, 63), name="%s")
    return p


def add_phi(p: Program) -> Program:
    p.add_instruction(71, 700, "main", "alloca", (), name="%m1")
    p.add_instruction(72, 701, "main", "alloca", (), name="%m2")
    p.add_instruction(70, 702, "main", "phi", (71, 72), name="%m")
    return p


def add_unclassified(p: Program) -> Program:
    p.add_constant(81, "4096", type="i64")
    p.add_instruction(80, 800, "main", "inttoptr", (81,), name="%u")
    p.add_instruction(82, 801, "main", "add", (81, 81), name="%n", type="i64")
    return p


def make_program() -> Program:
    """One program holding every scenario."""
    p = Program("scenarios")
    p.add_global(1, "@g")
    for add in (add_load_chain, add_call_boundary, add_opaque_callee,
                add_select, add_phi, add_unclassified):
        add(p)
    return p


def run_slice(program: Program, log_text: str, pt1: int, pt2: int) -> SliceResult:
    return TraceSlicer(program, parse_log(log_text)).run(pt1, pt2)


# ── Logs ────────────────────────────────────────────────────────

LOAD_CHAIN_LOG = """\
decl 0x1000 8 100
toplevel 20 0x1000
decl 0x2000 16 101
toplevel 21 0x2000
store 102 0x1000 0x2000
toplevel 23 0x2000 0x1000
toplevel 24 0x2000
"""

CALL_BOUNDARY_LOG = """\
toplevel 30 0x3000
call 301
toplevel 40 0x3000
toplevel 41 0x3008
return 401
toplevel 31 0x3008
"""

SELECT_LOG = """\
toplevel 62 0x9
toplevel 64 0x9
toplevel 63 0x5
toplevel 63 0x9
toplevel 62 0x7
toplevel 60 0x9
"""

PHI_LOG = """\
toplevel 71 0xA
toplevel 72 0xB
toplevel 70 0xA
"""


# ── Program text (S-expression form of the load chain) ──────────

LOAD_CHAIN_PROGRAM = """\
(module "load-chain"
  (global 1 "@g" ptr)
  (function "main"
    (inst 20 100 alloca "%slot" ptr ())
    (inst 21 101 alloca "%obj" ptr ())
    (inst 22 102 store "" void (21 20))
    (inst 23 103 load "%p" ptr (20))
    (inst 24 104 bitcast "%q" ptr (23))))
"""


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def program() -> Program:
    return make_program()


@pytest.fixture
def load_chain_files(tmp_path: Path) -> Tuple[Path, Path]:
    prog = tmp_path / "app.sexp"
    log = tmp_path / "run.log"
    prog.write_text(LOAD_CHAIN_PROGRAM, encoding="utf-8")
    log.write_text(LOAD_CHAIN_LOG, encoding="utf-8")
    return prog, log
