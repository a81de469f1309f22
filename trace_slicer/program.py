"""
trace_slicer.program
====================

In-memory program representation: the values and instructions a log's ids
refer to.

Every program value has a stable *value id*; instructions additionally carry
an *instruction id* (the id used by ``store``/``call``/``return`` log
records). The :class:`Program` service resolves ids in both directions and
classifies a value's defining construct into a closed set of
:class:`ConstructKind` members, which is all the slicer needs to decide what
to chase next.

Operand layout
--------------
Instruction operands are value ids, ordered the way the IR orders them:

=================  ===========================================
opcode             operands
=================  ===========================================
``load``           ``(address)``
``store``          ``(stored-value address)``
``getelementptr``  ``(base index ...)``
``bitcast``        ``(source)``
``select``         ``(condition true-value false-value)``
``phi``            ``(incoming ...)``
``call/invoke``    ``(argument ...)``
``ret``            ``(returned-value)`` or ``()``
``alloca``         ``()``
=================  ===========================================
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Protocol, Tuple, runtime_checkable

from trace_slicer.errors import ProgramFormatError, UnknownValueError


class Opcode(enum.Enum):
    ALLOCA = "alloca"
    LOAD = "load"
    STORE = "store"
    GETELEMENTPTR = "getelementptr"
    BITCAST = "bitcast"
    SELECT = "select"
    PHI = "phi"
    CALL = "call"
    INVOKE = "invoke"
    RET = "ret"
    RESUME = "resume"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: str) -> "Opcode":
        """Map an opcode mnemonic to a member; unknown mnemonics are OTHER."""
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER


class ValueCategory(enum.Enum):
    GLOBAL = "global"
    CONSTANT = "const"
    ARGUMENT = "arg"
    INSTRUCTION = "inst"


class ConstructKind(enum.Enum):
    """Classification of the construct that defines a pointer value."""

    LOAD = "load"
    INDEXED_ACCESS = "indexed-access"
    TYPE_REINTERPRETATION = "type-reinterpretation"
    CONDITIONAL_SELECT = "conditional-select"
    MERGE = "merge"
    FORMAL_PARAMETER = "formal-parameter"
    CALL_RESULT = "call-result"
    STACK_ALLOCATION = "stack-allocation"
    GLOBAL_DEFINITION = "global-definition"
    UNCLASSIFIED = "unclassified"


_OPCODE_CONSTRUCTS: Dict[Opcode, ConstructKind] = {
    Opcode.LOAD: ConstructKind.LOAD,
    Opcode.GETELEMENTPTR: ConstructKind.INDEXED_ACCESS,
    Opcode.BITCAST: ConstructKind.TYPE_REINTERPRETATION,
    Opcode.SELECT: ConstructKind.CONDITIONAL_SELECT,
    Opcode.PHI: ConstructKind.MERGE,
    Opcode.CALL: ConstructKind.CALL_RESULT,
    Opcode.INVOKE: ConstructKind.CALL_RESULT,
    Opcode.ALLOCA: ConstructKind.STACK_ALLOCATION,
}


@dataclass(frozen=True)
class ProgramValue:
    """A global, constant, formal argument or instruction.

    Attributes
    ----------
    value_id : int
        Stable value identifier.
    category : ValueCategory
    name : str
        Display name (``%x``, ``@g``); empty for unnamed instructions.
    type : str
        Type spelling; pointer types are ``ptr`` or end in ``*``.
    function : str | None
        Enclosing function for arguments and instructions.
    opcode : Opcode | None
        For instructions only.
    mnemonic : str
        Opcode spelling as written in the program file.
    ins_id : int | None
        Instruction identifier, for instructions only.
    operands : tuple[int, ...]
        Operand value ids (see module docstring for the layout).
    arg_no : int | None
        Ordinal of a formal argument.
    """

    value_id: int
    category: ValueCategory
    name: str = ""
    type: str = ""
    function: Optional[str] = None
    opcode: Optional[Opcode] = None
    mnemonic: str = ""
    ins_id: Optional[int] = None
    operands: Tuple[int, ...] = ()
    arg_no: Optional[int] = None

    @property
    def is_instruction(self) -> bool:
        return self.category is ValueCategory.INSTRUCTION


@runtime_checkable
class ProgramService(Protocol):
    """What the slicer needs from a program representation."""

    def value(self, value_id: int) -> ProgramValue: ...

    def value_id(self, value: ProgramValue) -> int: ...

    def instruction(self, ins_id: int) -> ProgramValue: ...

    def construct_kind(self, value: ProgramValue) -> ConstructKind: ...

    def is_pointer(self, value: ProgramValue) -> bool: ...

    def describe(self, value: ProgramValue) -> str: ...


class Program:
    """Id-indexed program representation; read-only once built."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._values: Dict[int, ProgramValue] = {}
        self._instructions: Dict[int, ProgramValue] = {}

    # -- construction --------------------------------------------------------

    def add(self, value: ProgramValue) -> ProgramValue:
        if value.value_id in self._values:
            raise ProgramFormatError(f"duplicate value id {value.value_id}")
        if value.is_instruction:
            if value.ins_id is None:
                raise ProgramFormatError(
                    f"instruction value {value.value_id} has no instruction id"
                )
            if value.ins_id in self._instructions:
                raise ProgramFormatError(f"duplicate instruction id {value.ins_id}")
            self._instructions[value.ins_id] = value
        self._values[value.value_id] = value
        return value

    def add_global(self, value_id: int, name: str, type: str = "ptr") -> ProgramValue:
        return self.add(ProgramValue(value_id, ValueCategory.GLOBAL, name, type))

    def add_constant(self, value_id: int, name: str, type: str = "ptr") -> ProgramValue:
        return self.add(ProgramValue(value_id, ValueCategory.CONSTANT, name, type))

    def add_argument(
        self, value_id: int, function: str, arg_no: int, name: str = "", type: str = "ptr"
    ) -> ProgramValue:
        return self.add(ProgramValue(
            value_id, ValueCategory.ARGUMENT, name, type,
            function=function, arg_no=arg_no,
        ))

    def add_instruction(
        self,
        value_id: int,
        ins_id: int,
        function: str,
        opcode: str,
        operands: Tuple[int, ...] = (),
        name: str = "",
        type: str = "ptr",
    ) -> ProgramValue:
        return self.add(ProgramValue(
            value_id, ValueCategory.INSTRUCTION, name, type,
            function=function,
            opcode=Opcode.from_name(opcode),
            mnemonic=opcode,
            ins_id=ins_id,
            operands=tuple(operands),
        ))

    # -- lookups -------------------------------------------------------------

    def value(self, value_id: int) -> ProgramValue:
        try:
            return self._values[value_id]
        except KeyError:
            raise UnknownValueError("value", value_id) from None

    def value_id(self, value: ProgramValue) -> int:
        if self._values.get(value.value_id) != value:
            raise UnknownValueError("value", value.value_id)
        return value.value_id

    def instruction(self, ins_id: int) -> ProgramValue:
        try:
            return self._instructions[ins_id]
        except KeyError:
            raise UnknownValueError("instruction", ins_id) from None

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[ProgramValue]:
        return iter(self._values.values())

    # -- classification ------------------------------------------------------

    def construct_kind(self, value: ProgramValue) -> ConstructKind:
        if value.category is ValueCategory.ARGUMENT:
            return ConstructKind.FORMAL_PARAMETER
        if value.category is ValueCategory.GLOBAL:
            return ConstructKind.GLOBAL_DEFINITION
        if value.category is ValueCategory.INSTRUCTION:
            kind = _OPCODE_CONSTRUCTS.get(value.opcode, ConstructKind.UNCLASSIFIED)
            # indexed access and reinterpretation need their source operand
            if kind in (ConstructKind.INDEXED_ACCESS,
                        ConstructKind.TYPE_REINTERPRETATION) and not value.operands:
                return ConstructKind.UNCLASSIFIED
            if kind is ConstructKind.CONDITIONAL_SELECT and len(value.operands) != 3:
                return ConstructKind.UNCLASSIFIED
            return kind
        return ConstructKind.UNCLASSIFIED

    def is_pointer(self, value: ProgramValue) -> bool:
        return value.type == "ptr" or value.type.endswith("*")

    # -- display -------------------------------------------------------------

    def describe(self, value: ProgramValue) -> str:
        """Human-readable ``function:  instruction`` rendering of *value*."""
        if value.category is ValueCategory.ARGUMENT:
            return f"{value.function}:  {value.type} {value.name}".rstrip()
        if value.category is not ValueCategory.INSTRUCTION:
            return f"{value.type} {value.name}".strip()
        ops = ", ".join(self._operand_name(op) for op in value.operands)
        text = f"{value.mnemonic} {ops}".rstrip()
        if value.name:
            text = f"{value.name} = {text}"
        return f"{value.function}:  {text}"

    def _operand_name(self, value_id: int) -> str:
        v = self._values.get(value_id)
        if v is None or not v.name:
            return f"<{value_id}>"
        return v.name

    def __repr__(self) -> str:
        return (f"Program({self.name!r}, {len(self._values)} values, "
                f"{len(self._instructions)} instructions)")
