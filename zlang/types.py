"""Z Type System.

Primitive types: int, float, bool, string, void
Composite types: [T] arrays, fn(T, ...) -> R function types, named structs
Type environment with scoping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


# ---------------------------------------------------------------------------
# Type Representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ZType:
    """Base type."""
    def __str__(self) -> str:
        return "unknown"

    def is_assignable_from(self, other: ZType) -> bool:
        return self == other


@dataclass(frozen=True)
class PrimitiveType(ZType):
    name: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType(ZType):
    element: ZType = field(default_factory=ZType)

    def __str__(self) -> str:
        return f"[{self.element}]"

    def is_assignable_from(self, other: ZType) -> bool:
        return isinstance(other, ArrayType) and self.element.is_assignable_from(other.element)


@dataclass(frozen=True)
class FunctionType(ZType):
    params: tuple[ZType, ...] = ()
    return_type: ZType = field(default_factory=ZType)

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        return f"fn({params}) -> {self.return_type}"

    def is_assignable_from(self, other: ZType) -> bool:
        if not isinstance(other, FunctionType) or len(self.params) != len(other.params):
            return False
        return self.return_type.is_assignable_from(other.return_type) and all(
            a.is_assignable_from(b) for a, b in zip(self.params, other.params)
        )


@dataclass(frozen=True)
class StructType(ZType):
    name: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class InferredType(ZType):
    """Placeholder for a type the checker has not determined yet."""

    def __str__(self) -> str:
        return "_"


# ---------------------------------------------------------------------------
# Built-in Types
# ---------------------------------------------------------------------------

INT = PrimitiveType("int")
FLOAT = PrimitiveType("float")
BOOL = PrimitiveType("bool")
STRING = PrimitiveType("string")
VOID = PrimitiveType("void")
INFERRED = InferredType()

BUILTIN_TYPES: dict[str, ZType] = {
    "int": INT,
    "float": FLOAT,
    "bool": BOOL,
    "string": STRING,
    "void": VOID,
}

NUMERIC_TYPES = (INT, FLOAT)


def is_numeric(typ: ZType) -> bool:
    return typ in NUMERIC_TYPES


def promote_numeric(left: ZType, right: ZType) -> ZType:
    """Result of mixing two numeric types: float if either is float."""
    if left == FLOAT or right == FLOAT:
        return FLOAT
    return INT


def contains_inferred(typ: ZType) -> bool:
    if isinstance(typ, InferredType):
        return True
    if isinstance(typ, ArrayType):
        return contains_inferred(typ.element)
    if isinstance(typ, FunctionType):
        return contains_inferred(typ.return_type) or any(contains_inferred(p) for p in typ.params)
    return False


# ---------------------------------------------------------------------------
# Type Environment
# ---------------------------------------------------------------------------

class TypeEnvironment:
    """Scoped variable environment for type checking.

    Each scope maps names to types; lookups walk outwards through parents so
    the innermost binding shadows outer ones.
    """

    def __init__(self, parent: Optional[TypeEnvironment] = None):
        self.parent = parent
        self._variables: dict[str, ZType] = {}

    def define_variable(self, name: str, typ: ZType) -> None:
        self._variables[name] = typ

    def lookup_variable(self, name: str) -> Optional[ZType]:
        if name in self._variables:
            return self._variables[name]
        if self.parent:
            return self.parent.lookup_variable(name)
        return None

    def is_local(self, name: str) -> bool:
        return name in self._variables

    def child_scope(self) -> TypeEnvironment:
        return TypeEnvironment(parent=self)
