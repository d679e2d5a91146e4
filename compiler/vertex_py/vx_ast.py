#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from decimal import MAX_EMAX, MIN_EMIN, Context, Decimal
from enum import Enum
from typing import Optional, Tuple, Union


# Overflow and underflow are untrapped so huge exponents give inf and tiny ones 0.0.
_EXPONENT_CONTEXT = Context(Emax=MAX_EMAX, Emin=MIN_EMIN, traps=[])
_EXPONENT_CLAMP = 10 ** 6


# ==========================
# AST definitions
# ==========================


@dataclass(frozen=True)
class Span:
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    start_offset: int = field(default=0, compare=False)
    end_offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Node:
    span: Optional[Span] = field(default=None, repr=False, compare=False, kw_only=True)


# --- types ---

class DataType(Node):
    pass


class TypeModifier(Enum):
    NONE = ""
    NULLABLE = "?"
    ARRAY = "[]"
    NON_NULL = "!"


@dataclass(frozen=True)
class ScalarType(DataType):
    name: str  # e.g. "int", "MyStruct", etc.
    modifier: TypeModifier = TypeModifier.NONE
    array_size: Optional[int] = None  # only for ARRAY; None means variable length

    @property
    def is_nullable(self) -> bool:
        return self.modifier is TypeModifier.NULLABLE

    @property
    def is_non_null(self) -> bool:
        return self.modifier is TypeModifier.NON_NULL

    @property
    def is_array(self) -> bool:
        return self.modifier is TypeModifier.ARRAY


@dataclass(frozen=True)
class TupleType(DataType):
    elements: Tuple[DataType, ...]


@dataclass(frozen=True)
class MapType(DataType):
    key: DataType
    value: DataType


# --- expressions ---

class Expr(Node):
    pass


@dataclass(frozen=True)
class ParenExpr(Expr):
    inner: Expr


@dataclass(frozen=True)
class IntLiteral(Expr):
    value: int


@dataclass(frozen=True)
class FloatLiteral(Expr):
    value: float


@dataclass(frozen=True)
class ExponentLiteral(Expr):
    """Scientific notation, e.g. `1.5e-3`: mantissa times ten to the exponent."""
    mantissa: Union[IntLiteral, FloatLiteral]
    exponent: int

    @property
    def value(self) -> float:
        # Past the clamp the result is already 0.0 or inf as a float.
        exponent = max(-_EXPONENT_CLAMP, min(_EXPONENT_CLAMP, self.exponent))
        return float(Decimal(repr(self.mantissa.value)).scaleb(exponent, _EXPONENT_CONTEXT))


@dataclass(frozen=True)
class StringLiteral(Expr):
    value: str  # decoded
    delimiter: str = '"'


@dataclass(frozen=True)
class BoolLiteral(Expr):
    value: bool


@dataclass(frozen=True)
class FuncCall(Expr):
    callee: str
    args: Tuple[Expr, ...]
    is_serial: bool = False
    is_extern: bool = False


@dataclass(frozen=True)
class InnerVar(Expr):
    path: Tuple[str, ...]  # at least two segments


@dataclass(frozen=True)
class VarRef(Expr):
    name: str


# --- declarations ---

@dataclass(frozen=True)
class Arg(Node):
    name: str
    type: DataType


@dataclass(frozen=True)
class Struct(Node):
    name: str
    fields: Tuple[Arg, ...]
    is_export: bool = False


@dataclass(frozen=True)
class Assignment(Node):
    target: Optional[str]  # None for a bare expression statement
    value: Expr


FunctionItem = Union["Struct", "Function", "Assignment"]


@dataclass(frozen=True)
class Function(Node):
    name: str
    params: Tuple[Arg, ...]
    returns: Tuple[Arg, ...]
    body: Tuple[FunctionItem, ...]
    is_export: bool = False
    is_serial: bool = False

    @property
    def functions(self) -> Tuple["Function", ...]:
        return tuple(item for item in self.body if isinstance(item, Function))

    @property
    def structs(self) -> Tuple[Struct, ...]:
        return tuple(item for item in self.body if isinstance(item, Struct))

    @property
    def statements(self) -> Tuple[Assignment, ...]:
        return tuple(item for item in self.body if isinstance(item, Assignment))


ModuleItem = Union["Function", "Struct", "Module"]


@dataclass(frozen=True)
class Module(Node):
    name: str
    body: Tuple[ModuleItem, ...]
    is_export: bool = False

    @property
    def modules(self) -> Tuple["Module", ...]:
        return tuple(item for item in self.body if isinstance(item, Module))

    @property
    def functions(self) -> Tuple[Function, ...]:
        return tuple(item for item in self.body if isinstance(item, Function))

    @property
    def structs(self) -> Tuple[Struct, ...]:
        return tuple(item for item in self.body if isinstance(item, Struct))


@dataclass(frozen=True)
class Program(Node):
    modules: Tuple[Module, ...]
    filename: Optional[str] = field(default=None, repr=False, compare=False, kw_only=True)
