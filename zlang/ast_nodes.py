"""Z AST Node definitions.

Top-level constructs: fn, struct, import, plus ordinary statements.
Expressions include if/block expressions and lambdas. Every node carries the
Span it was parsed from; expressions also carry the type assigned by the
checker (INFERRED until then).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from zlang.errors import Span
from zlang.types import ZType, INFERRED, VOID


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass
class Expr:
    span: Optional[Span] = None
    ty: ZType = INFERRED


@dataclass
class Literal(Expr):
    """Base class for literal values."""


@dataclass
class IntLiteral(Literal):
    value: int = 0


@dataclass
class FloatLiteral(Literal):
    value: float = 0.0


@dataclass
class BoolLiteral(Literal):
    value: bool = False


@dataclass
class StringLiteral(Literal):
    value: str = ""


@dataclass
class NullLiteral(Literal):
    pass


@dataclass
class Identifier(Expr):
    name: str = ""


@dataclass
class BinaryOp(Expr):
    op: str = ""
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)


@dataclass
class UnaryOp(Expr):
    op: str = ""
    operand: Expr = field(default_factory=Expr)


@dataclass
class CallExpr(Expr):
    callee: Expr = field(default_factory=Expr)
    args: list[Expr] = field(default_factory=list)


@dataclass
class IndexExpr(Expr):
    base: Expr = field(default_factory=Expr)
    index: Expr = field(default_factory=Expr)


@dataclass
class FieldAccess(Expr):
    obj: Expr = field(default_factory=Expr)
    field_name: str = ""


@dataclass
class ArrayLiteral(Expr):
    elements: list[Expr] = field(default_factory=list)


@dataclass
class IfExpr(Expr):
    condition: Expr = field(default_factory=Expr)
    then_branch: Expr = field(default_factory=Expr)
    else_branch: Optional[Expr] = None


@dataclass
class BlockExpr(Expr):
    statements: list[Statement] = field(default_factory=list)


@dataclass
class LambdaParam:
    name: str
    type_annotation: Optional[ZType] = None
    span: Optional[Span] = None


@dataclass
class LambdaExpr(Expr):
    """Anonymous function:  fn(x: int, y) => x + y"""
    params: list[LambdaParam] = field(default_factory=list)
    body: Expr = field(default_factory=Expr)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass
class Statement:
    span: Optional[Span] = None


@dataclass
class ExprStmt(Statement):
    expr: Expr = field(default_factory=Expr)
    # False for a trailing expression with no ';' (the value of its block)
    terminated: bool = True


@dataclass
class LetStmt(Statement):
    name: str = ""
    type_annotation: Optional[ZType] = None
    value: Optional[Expr] = None


@dataclass
class AssignStmt(Statement):
    target: Expr = field(default_factory=Expr)
    value: Expr = field(default_factory=Expr)


@dataclass
class ReturnStmt(Statement):
    value: Optional[Expr] = None


@dataclass
class BlockStmt(Statement):
    statements: list[Statement] = field(default_factory=list)


@dataclass
class WhileStmt(Statement):
    condition: Expr = field(default_factory=Expr)
    body: BlockStmt = field(default_factory=BlockStmt)


@dataclass
class ForStmt(Statement):
    """for x in collection { ... }"""
    var_name: str = ""
    iterable: Expr = field(default_factory=Expr)
    body: BlockStmt = field(default_factory=BlockStmt)


@dataclass
class Param:
    name: str
    type_annotation: ZType
    span: Optional[Span] = None


@dataclass
class FunctionDecl(Statement):
    name: str = ""
    params: list[Param] = field(default_factory=list)
    return_type: ZType = VOID
    body: BlockStmt = field(default_factory=BlockStmt)


@dataclass
class FieldDef:
    name: str
    type_annotation: ZType
    span: Optional[Span] = None


@dataclass
class StructDecl(Statement):
    name: str = ""
    fields: list[FieldDef] = field(default_factory=list)


@dataclass
class ImportStmt(Statement):
    """import std.io"""
    path: str = ""


# ---------------------------------------------------------------------------
# Program (root node)
# ---------------------------------------------------------------------------

@dataclass
class Program:
    statements: list[Statement] = field(default_factory=list)
    filename: str = "<stdin>"


def tail_expression(statements: list[Statement]) -> Optional[Expr]:
    """The value expression of a statement list: a final unterminated ExprStmt."""
    if statements and isinstance(statements[-1], ExprStmt) and not statements[-1].terminated:
        return statements[-1].expr
    return None
