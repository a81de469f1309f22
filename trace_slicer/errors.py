# trace_slicer/errors.py
"""
Error types for the trace slicer.

Every fatal condition of a slicing run is raised as a subclass of
:class:`SlicerError`. A fatal error aborts the whole slice: no partial
listing is produced and nothing is retried.

Error hierarchy
───────────────
    SlicerError (base)
    ├── InputError
    │   ├── LogFormatError        - malformed log text
    │   ├── ProgramFormatError    - malformed program S-expression
    │   └── UnknownValueError     - id not known to the program
    └── ContractError
        ├── InvalidStartError     - start position outside 1..N
        ├── StartRecordError      - start anchored on a non-TopLevelPointTo record
        ├── NonPointerStartError  - anchor value is not pointer-typed
        ├── UnexpectedInstructionError
        └── UnsupportedUnwindError

Error codes follow ``SLICE-NNNN``:
  - 1000-1999: input errors
  - 2000-2999: slicing contract violations
  - 9000: unclassified slicer error
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional


@unique
class ErrorCategory(Enum):
    """Broad classification used to pick the CLI exit code."""

    INPUT = "input"
    CONTRACT = "contract"
    INTERNAL = "internal"


class ErrorCode:
    """A ``PREFIX-NNNN`` error code."""

    __slots__ = ("prefix", "number", "category")

    def __init__(self, prefix: str, number: int, category: ErrorCategory) -> None:
        self.prefix = prefix
        self.number = number
        self.category = category

    @property
    def code(self) -> str:
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.category.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class SlicerErrorCodes:
    """Predefined error codes."""

    INPUT = ErrorCode("SLICE", 1000, ErrorCategory.INPUT)
    LOG_FORMAT = ErrorCode("SLICE", 1001, ErrorCategory.INPUT)
    PROGRAM_FORMAT = ErrorCode("SLICE", 1002, ErrorCategory.INPUT)
    UNKNOWN_VALUE = ErrorCode("SLICE", 1003, ErrorCategory.INPUT)

    CONTRACT = ErrorCode("SLICE", 2000, ErrorCategory.CONTRACT)
    INVALID_START = ErrorCode("SLICE", 2001, ErrorCategory.CONTRACT)
    START_RECORD = ErrorCode("SLICE", 2002, ErrorCategory.CONTRACT)
    NON_POINTER_START = ErrorCode("SLICE", 2003, ErrorCategory.CONTRACT)
    UNEXPECTED_INSTRUCTION = ErrorCode("SLICE", 2004, ErrorCategory.CONTRACT)
    UNSUPPORTED_UNWIND = ErrorCode("SLICE", 2005, ErrorCategory.CONTRACT)

    INTERNAL = ErrorCode("SLICE", 9000, ErrorCategory.INTERNAL)


class SlicerError(Exception):
    """Base exception for all trace slicer errors."""

    default_code: ErrorCode = SlicerErrorCodes.INTERNAL

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    @property
    def category(self) -> ErrorCategory:
        return self.code.category

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# ───────────────────────────────────────────────────────────────────────────────
# INPUT ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class InputError(SlicerError):
    """The log or the program representation could not be read."""

    default_code = SlicerErrorCodes.INPUT


class LogFormatError(InputError):
    """A log line does not match the record grammar."""

    default_code = SlicerErrorCodes.LOG_FORMAT

    def __init__(self, message: str, line: int = 0) -> None:
        if line:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class ProgramFormatError(InputError):
    """The program S-expression is malformed."""

    default_code = SlicerErrorCodes.PROGRAM_FORMAT


class UnknownValueError(InputError, KeyError):
    """A value or instruction id is not defined by the program."""

    default_code = SlicerErrorCodes.UNKNOWN_VALUE

    def __init__(self, kind: str, ident: int) -> None:
        super().__init__(f"unknown {kind} id {ident}")
        self.kind = kind
        self.ident = ident


# ───────────────────────────────────────────────────────────────────────────────
# CONTRACT VIOLATIONS
# ───────────────────────────────────────────────────────────────────────────────

class ContractError(SlicerError):
    """The log and program disagree with what the slicer requires."""

    default_code = SlicerErrorCodes.CONTRACT


class InvalidStartError(ContractError):
    default_code = SlicerErrorCodes.INVALID_START

    def __init__(self, label: int, start: int, num_records: int) -> None:
        super().__init__(
            f"ptr{label + 1} start record {start} is outside 1..{num_records}"
        )
        self.label = label
        self.start = start


class StartRecordError(ContractError):
    """Starting record must be a TopLevelPointTo record."""

    default_code = SlicerErrorCodes.START_RECORD

    def __init__(self, label: int, position: int, kind: str) -> None:
        super().__init__(
            f"ptr{label + 1} starts at record {position}, which is a {kind} "
            f"record; a start must be a TopLevelPointTo record"
        )
        self.label = label
        self.position = position


class NonPointerStartError(ContractError):
    default_code = SlicerErrorCodes.NON_POINTER_START

    def __init__(self, label: int, position: int, value_id: int) -> None:
        super().__init__(
            f"ptr{label + 1} start record {position} holds value {value_id}, "
            f"which is not pointer-typed"
        )
        self.label = label
        self.value_id = value_id


class UnexpectedInstructionError(ContractError):
    default_code = SlicerErrorCodes.UNEXPECTED_INSTRUCTION

    def __init__(self, position: int, message: str) -> None:
        super().__init__(f"record {position}: {message}")
        self.position = position


class UnsupportedUnwindError(ContractError):
    """Slicing through an exception-resume return is not supported."""

    default_code = SlicerErrorCodes.UNSUPPORTED_UNWIND

    def __init__(self, position: int, ins_id: int) -> None:
        super().__init__(
            f"record {position}: instruction {ins_id} resumes unwinding; "
            f"exception returns cannot be sliced"
        )
        self.position = position
