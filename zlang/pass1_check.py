"""Z Pass 1 — Check.

Name resolution + type inference + type checking. Runs in two passes over
the program: the first registers every top-level function and struct so
that forward and mutually recursive references resolve; the second checks
statements in program order against a chain of scopes.

The input tree is never mutated. The checker returns a rebuilt tree in which
every expression carries its resolved type. The first error aborts the run.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from zlang.ast_nodes import (
    Program, Statement, ExprStmt, LetStmt, AssignStmt, ReturnStmt,
    WhileStmt, ForStmt, BlockStmt, FunctionDecl, StructDecl, ImportStmt,
    Expr, IntLiteral, FloatLiteral, BoolLiteral, StringLiteral, NullLiteral,
    Identifier, BinaryOp, UnaryOp, CallExpr, IndexExpr, FieldAccess,
    ArrayLiteral, IfExpr, BlockExpr, LambdaExpr,
)
from zlang.errors import Span, ZNameError, ZTypeError, type_mismatch, undefined_name
from zlang.types import (
    ZType, ArrayType, FunctionType, StructType,
    INT, FLOAT, BOOL, STRING, VOID,
    TypeEnvironment, is_numeric, promote_numeric,
)

logger = logging.getLogger(__name__)

ARITHMETIC_OPS = ("+", "-", "*", "/", "%")
EQUALITY_OPS = ("==", "!=")
COMPARISON_OPS = ("<", "<=", ">", ">=")
LOGICAL_OPS = ("&&", "||")

BUILTIN_FUNCTIONS = ("print", "len")
PRINTABLE_TYPES = (INT, FLOAT, BOOL, STRING)


class TypeChecker:
    """Type checks a Z program."""

    def __init__(self) -> None:
        self.global_env = TypeEnvironment()
        self.env = self.global_env
        self.functions: dict[str, FunctionType] = {}
        self.structs: dict[str, list[tuple[str, ZType]]] = {}
        self._current_return_type: Optional[ZType] = None
        self._in_lambda = False

    def check_program(self, program: Program) -> Program:
        logger.debug("checking %s (%d top-level statements)", program.filename, len(program.statements))
        self._register_declarations(program)
        statements = [self._check_top_level(stmt) for stmt in program.statements]
        logger.debug(
            "checked %s: %d functions, %d structs",
            program.filename, len(self.functions), len(self.structs),
        )
        return replace(program, statements=statements)

    # -------------------------------------------------------------------
    # Declaration pass
    # -------------------------------------------------------------------

    def _register_declarations(self, program: Program) -> None:
        """Register all struct and function declarations."""
        declared: set[str] = set()
        for stmt in program.statements:
            if not isinstance(stmt, (FunctionDecl, StructDecl)):
                continue
            if stmt.name in BUILTIN_FUNCTIONS:
                raise ZTypeError(f"'{stmt.name}' is a builtin and cannot be redefined", stmt.span)
            if stmt.name in declared:
                raise ZTypeError(f"Duplicate definition of '{stmt.name}'", stmt.span)
            declared.add(stmt.name)
            if isinstance(stmt, StructDecl):
                self.structs[stmt.name] = []

        for stmt in program.statements:
            if isinstance(stmt, StructDecl):
                self._register_struct(stmt)
        for stmt in program.statements:
            if isinstance(stmt, StructDecl):
                self._check_struct_cycle(stmt.name, [], stmt.span)
        for stmt in program.statements:
            if isinstance(stmt, FunctionDecl):
                self._register_func(stmt)

    def _register_struct(self, struct: StructDecl) -> None:
        fields: list[tuple[str, ZType]] = []
        seen: set[str] = set()
        for f in struct.fields:
            if f.name in seen:
                raise ZTypeError(f"Duplicate field '{f.name}' in struct '{struct.name}'", f.span)
            seen.add(f.name)
            ftype = self._resolve_type(f.type_annotation, f.span)
            if ftype == VOID:
                raise ZTypeError(f"Field '{f.name}' of struct '{struct.name}' cannot have type void", f.span)
            fields.append((f.name, ftype))
        self.structs[struct.name] = fields

    def _check_struct_cycle(self, name: str, path: list[str], span: Optional[Span]) -> None:
        """Reject structs that contain themselves by value."""
        if name in path:
            cycle = " -> ".join(path[path.index(name):] + [name])
            raise ZTypeError(f"Recursive struct contains itself by value: {cycle}", span)
        for _, ftype in self.structs[name]:
            if isinstance(ftype, StructType):
                self._check_struct_cycle(ftype.name, path + [name], span)

    def _register_func(self, func: FunctionDecl) -> None:
        param_types: list[ZType] = []
        seen: set[str] = set()
        for p in func.params:
            if p.name in seen:
                raise ZTypeError(f"Duplicate parameter '{p.name}' in function '{func.name}'", p.span)
            seen.add(p.name)
            ptype = self._resolve_type(p.type_annotation, p.span)
            if ptype == VOID:
                raise ZTypeError(f"Parameter '{p.name}' cannot have type void", p.span)
            param_types.append(ptype)
        ret_type = self._resolve_type(func.return_type, func.span)

        if func.name == "main" and (param_types or ret_type not in (VOID, INT)):
            raise ZTypeError("'main' must take no parameters and return void or int", func.span)

        self.functions[func.name] = FunctionType(tuple(param_types), ret_type)

    def _resolve_type(self, typ: ZType, span: Optional[Span]) -> ZType:
        """Validate that every struct named inside typ is declared."""
        if isinstance(typ, StructType):
            if typ.name not in self.structs:
                raise ZTypeError(f"Unknown type '{typ.name}'", span, details={"name": typ.name})
        elif isinstance(typ, ArrayType):
            element = self._resolve_type(typ.element, span)
            if element == VOID:
                raise ZTypeError("Array element type cannot be void", span)
        elif isinstance(typ, FunctionType):
            for p in typ.params:
                if self._resolve_type(p, span) == VOID:
                    raise ZTypeError("Function parameter type cannot be void", span)
            self._resolve_type(typ.return_type, span)
        return typ

    # -------------------------------------------------------------------
    # Checking pass
    # -------------------------------------------------------------------

    def _check_top_level(self, stmt: Statement) -> Statement:
        if isinstance(stmt, FunctionDecl):
            return self._check_function(stmt)
        if isinstance(stmt, StructDecl):
            return stmt
        return self._check_statement(stmt)

    def _check_function(self, func: FunctionDecl) -> FunctionDecl:
        ftype = self.functions[func.name]
        # Only parameters are visible inside a function body
        env = TypeEnvironment()
        for p, ptype in zip(func.params, ftype.params):
            env.define_variable(p.name, ptype)

        saved_env, saved_ret = self.env, self._current_return_type
        self.env, self._current_return_type = env, ftype.return_type
        try:
            expected = ftype.return_type if ftype.return_type != VOID else None
            body = self._check_block(func.body, expected_tail=expected)
        finally:
            self.env, self._current_return_type = saved_env, saved_ret

        if ftype.return_type != VOID and not self._block_returns(body.statements):
            raise ZTypeError(
                f"Function '{func.name}' must return a value of type '{ftype.return_type}'",
                func.span,
            )
        return replace(func, body=body)

    def _check_block(self, block: BlockStmt, expected_tail: Optional[ZType] = None) -> BlockStmt:
        """Check the statements of a function body in the current scope."""
        statements = self._check_statement_list(block.statements, expected_tail)
        tail = statements[-1] if statements else None
        if expected_tail is not None and isinstance(tail, ExprStmt) and not tail.terminated:
            if not self._diverges(tail.expr):
                self._require(expected_tail, tail.expr.ty, tail.expr.span, "implicit return")
        return replace(block, statements=statements)

    def _check_statement_list(self, statements: list[Statement],
                              expected_tail: Optional[ZType] = None) -> list[Statement]:
        checked: list[Statement] = []
        for i, stmt in enumerate(statements):
            is_tail = i == len(statements) - 1 and isinstance(stmt, ExprStmt) and not stmt.terminated
            if is_tail:
                checked.append(replace(stmt, expr=self._check_expr(stmt.expr, expected_tail)))
            else:
                checked.append(self._check_statement(stmt))
        return checked

    def _check_scoped_block(self, block: BlockStmt) -> BlockStmt:
        saved = self.env
        self.env = self.env.child_scope()
        try:
            return replace(block, statements=self._check_statement_list(block.statements))
        finally:
            self.env = saved

    def _block_returns(self, statements: list[Statement]) -> bool:
        """True when every path through statements ends in a return or tail value."""
        if not statements:
            return False
        last = statements[-1]
        if isinstance(last, ReturnStmt):
            return True
        if isinstance(last, ExprStmt):
            if not last.terminated:
                return True
            return self._expr_returns(last.expr)
        return False

    def _expr_returns(self, expr: Expr) -> bool:
        if isinstance(expr, BlockExpr):
            return self._block_returns(expr.statements)
        if isinstance(expr, IfExpr) and expr.else_branch is not None:
            return self._expr_returns(expr.then_branch) and self._expr_returns(expr.else_branch)
        return False

    def _diverges(self, expr: Expr) -> bool:
        """True when evaluating expr always executes a return statement."""
        if isinstance(expr, BlockExpr):
            if not expr.statements:
                return False
            last = expr.statements[-1]
            return isinstance(last, ReturnStmt) or (
                isinstance(last, ExprStmt) and self._diverges(last.expr)
            )
        if isinstance(expr, IfExpr) and expr.else_branch is not None:
            return self._diverges(expr.then_branch) and self._diverges(expr.else_branch)
        return False

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _check_statement(self, stmt: Statement) -> Statement:
        if isinstance(stmt, LetStmt):
            return self._check_let(stmt)
        if isinstance(stmt, AssignStmt):
            return self._check_assign(stmt)
        if isinstance(stmt, ReturnStmt):
            return self._check_return(stmt)
        if isinstance(stmt, ExprStmt):
            return replace(stmt, expr=self._check_expr(stmt.expr))
        if isinstance(stmt, WhileStmt):
            return self._check_while(stmt)
        if isinstance(stmt, ForStmt):
            return self._check_for(stmt)
        if isinstance(stmt, BlockStmt):
            return self._check_scoped_block(stmt)
        if isinstance(stmt, ImportStmt):
            return stmt  # module resolution is not performed
        if isinstance(stmt, FunctionDecl):
            raise ZTypeError(
                f"Function '{stmt.name}' must be declared at the top level", stmt.span,
            )
        if isinstance(stmt, StructDecl):
            raise ZTypeError(
                f"Struct '{stmt.name}' must be declared at the top level", stmt.span,
            )
        raise ZTypeError(f"Unsupported statement {type(stmt).__name__}", stmt.span)

    def _check_let(self, stmt: LetStmt) -> LetStmt:
        declared: Optional[ZType] = None
        if stmt.type_annotation is not None:
            declared = self._resolve_type(stmt.type_annotation, stmt.span)
            if declared == VOID:
                raise ZTypeError(f"Variable '{stmt.name}' cannot have type void", stmt.span)

        if stmt.value is None:
            if declared is None:
                raise ZTypeError(
                    f"Cannot infer type for variable '{stmt.name}' without annotation or initializer",
                    stmt.span,
                )
            self.env.define_variable(stmt.name, declared)
            return stmt

        value = self._check_expr(stmt.value, declared)
        if declared is not None:
            self._require(declared, value.ty, value.span, f"variable '{stmt.name}'")
        elif value.ty == VOID:
            raise ZTypeError(
                f"Cannot bind variable '{stmt.name}' to an expression of type void", value.span,
            )
        self.env.define_variable(stmt.name, declared or value.ty)
        return replace(stmt, value=value)

    def _check_assign(self, stmt: AssignStmt) -> AssignStmt:
        if isinstance(stmt.target, Identifier) and self.env.lookup_variable(stmt.target.name) is None:
            if stmt.target.name in self.functions:
                raise ZTypeError(f"Cannot assign to function '{stmt.target.name}'", stmt.target.span)
            raise undefined_name(stmt.target.name, stmt.target.span)
        target = self._check_expr(stmt.target)
        value = self._check_expr(stmt.value, target.ty)
        self._require(target.ty, value.ty, value.span, "assignment")
        return replace(stmt, target=target, value=value)

    def _check_return(self, stmt: ReturnStmt) -> ReturnStmt:
        if self._current_return_type is None:
            if self._in_lambda:
                raise ZTypeError("'return' is not allowed inside a lambda body", stmt.span)
            raise ZTypeError("'return' outside of a function", stmt.span)
        expected = self._current_return_type
        if stmt.value is None:
            if expected != VOID:
                raise type_mismatch(str(expected), "void", stmt.span, "return")
            return stmt
        value = self._check_expr(stmt.value, expected)
        self._require(expected, value.ty, value.span, "return")
        return replace(stmt, value=value)

    def _check_while(self, stmt: WhileStmt) -> WhileStmt:
        condition = self._check_condition(stmt.condition, "while")
        body = self._check_scoped_block(stmt.body)
        return replace(stmt, condition=condition, body=body)

    def _check_for(self, stmt: ForStmt) -> ForStmt:
        iterable = self._check_expr(stmt.iterable)
        if not isinstance(iterable.ty, ArrayType):
            raise ZTypeError(f"Cannot iterate over a value of type '{iterable.ty}'", iterable.span)
        saved = self.env
        self.env = self.env.child_scope()
        try:
            self.env.define_variable(stmt.var_name, iterable.ty.element)
            body = self._check_scoped_block(stmt.body)
        finally:
            self.env = saved
        return replace(stmt, iterable=iterable, body=body)

    def _check_condition(self, condition: Expr, context: str) -> Expr:
        checked = self._check_expr(condition, BOOL)
        self._require(BOOL, checked.ty, checked.span, f"{context} condition")
        return checked

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _check_expr(self, expr: Expr, expected: Optional[ZType] = None) -> Expr:
        if isinstance(expr, IntLiteral):
            return replace(expr, ty=INT)
        if isinstance(expr, FloatLiteral):
            return replace(expr, ty=FLOAT)
        if isinstance(expr, BoolLiteral):
            return replace(expr, ty=BOOL)
        if isinstance(expr, StringLiteral):
            return replace(expr, ty=STRING)
        if isinstance(expr, NullLiteral):
            return replace(expr, ty=VOID)
        if isinstance(expr, Identifier):
            return replace(expr, ty=self._lookup(expr.name, expr.span))
        if isinstance(expr, BinaryOp):
            return self._check_binary(expr)
        if isinstance(expr, UnaryOp):
            return self._check_unary(expr)
        if isinstance(expr, CallExpr):
            return self._check_call(expr)
        if isinstance(expr, IndexExpr):
            return self._check_index(expr)
        if isinstance(expr, FieldAccess):
            return self._check_field_access(expr)
        if isinstance(expr, ArrayLiteral):
            return self._check_array(expr, expected)
        if isinstance(expr, IfExpr):
            return self._check_if(expr, expected)
        if isinstance(expr, BlockExpr):
            return self._check_block_expr(expr, expected)
        if isinstance(expr, LambdaExpr):
            return self._check_lambda(expr, expected)
        raise ZTypeError(f"Unsupported expression {type(expr).__name__}", expr.span)

    def _lookup(self, name: str, span: Optional[Span]) -> ZType:
        typ = self.env.lookup_variable(name)
        if typ is not None:
            return typ
        if name in self.functions:
            return self.functions[name]
        if name in BUILTIN_FUNCTIONS:
            raise ZTypeError(f"Builtin '{name}' can only be called", span)
        raise undefined_name(name, span)

    def _check_binary(self, expr: BinaryOp) -> BinaryOp:
        left = self._check_expr(expr.left)
        right = self._check_expr(expr.right)
        lt, rt = left.ty, right.ty
        op = expr.op
        result: Optional[ZType] = None

        if op in ARITHMETIC_OPS:
            if op == "+" and STRING in (lt, rt):
                if lt in PRINTABLE_TYPES and rt in PRINTABLE_TYPES:
                    result = STRING
            elif is_numeric(lt) and is_numeric(rt):
                result = promote_numeric(lt, rt)
        elif op in EQUALITY_OPS:
            result = BOOL
        elif op in COMPARISON_OPS:
            if is_numeric(lt) and is_numeric(rt):
                result = BOOL
        elif op in LOGICAL_OPS:
            if lt == BOOL and rt == BOOL:
                result = BOOL

        if result is None:
            raise ZTypeError(
                f"Operator '{op}' cannot be applied to '{lt}' and '{rt}'",
                expr.span,
                details={"operator": op, "left_type": str(lt), "right_type": str(rt)},
            )
        return replace(expr, left=left, right=right, ty=result)

    def _check_unary(self, expr: UnaryOp) -> UnaryOp:
        operand = self._check_expr(expr.operand)
        if expr.op == "-" and is_numeric(operand.ty):
            return replace(expr, operand=operand, ty=operand.ty)
        if expr.op == "!" and operand.ty == BOOL:
            return replace(expr, operand=operand, ty=BOOL)
        raise ZTypeError(
            f"Operator '{expr.op}' cannot be applied to '{operand.ty}'", expr.span,
        )

    def _check_call(self, expr: CallExpr) -> CallExpr:
        callee = expr.callee
        if isinstance(callee, Identifier) and self.env.lookup_variable(callee.name) is None:
            if callee.name in self.structs:
                return self._check_construct(expr, callee)
            if callee.name == "print":
                return self._check_print(expr, callee)
            if callee.name == "len":
                return self._check_len(expr, callee)

        checked_callee = self._check_expr(callee)
        ftype = checked_callee.ty
        if not isinstance(ftype, FunctionType):
            raise ZTypeError(f"Cannot call a value of type '{ftype}'", callee.span)
        args = self._check_args(expr, ftype.params, "call")
        return replace(expr, callee=checked_callee, args=args, ty=ftype.return_type)

    def _check_args(self, expr: CallExpr, param_types: tuple[ZType, ...], what: str) -> list[Expr]:
        if len(expr.args) != len(param_types):
            raise ZTypeError(
                f"{what.capitalize()} expects {len(param_types)} argument(s), got {len(expr.args)}",
                expr.span,
                details={"expected": len(param_types), "actual": len(expr.args)},
            )
        args: list[Expr] = []
        for i, (arg, ptype) in enumerate(zip(expr.args, param_types)):
            checked = self._check_expr(arg, ptype)
            self._require(ptype, checked.ty, checked.span, f"argument {i + 1} of {what}")
            args.append(checked)
        return args

    def _check_construct(self, expr: CallExpr, callee: Identifier) -> CallExpr:
        fields = self.structs[callee.name]
        struct_type = StructType(callee.name)
        args = self._check_args(expr, tuple(t for _, t in fields), f"struct '{callee.name}'")
        ctor = replace(callee, ty=FunctionType(tuple(t for _, t in fields), struct_type))
        return replace(expr, callee=ctor, args=args, ty=struct_type)

    def _check_print(self, expr: CallExpr, callee: Identifier) -> CallExpr:
        if len(expr.args) != 1:
            raise ZTypeError(f"'print' expects 1 argument, got {len(expr.args)}", expr.span)
        arg = self._check_expr(expr.args[0])
        if arg.ty not in PRINTABLE_TYPES:
            raise ZTypeError(f"Cannot print a value of type '{arg.ty}'", arg.span)
        return replace(expr, callee=replace(callee, ty=FunctionType((arg.ty,), VOID)), args=[arg], ty=VOID)

    def _check_len(self, expr: CallExpr, callee: Identifier) -> CallExpr:
        if len(expr.args) != 1:
            raise ZTypeError(f"'len' expects 1 argument, got {len(expr.args)}", expr.span)
        arg = self._check_expr(expr.args[0])
        if not isinstance(arg.ty, ArrayType):
            raise ZTypeError(f"'len' expects an array, found '{arg.ty}'", arg.span)
        return replace(expr, callee=replace(callee, ty=FunctionType((arg.ty,), INT)), args=[arg], ty=INT)

    def _check_index(self, expr: IndexExpr) -> IndexExpr:
        base = self._check_expr(expr.base)
        if not isinstance(base.ty, ArrayType):
            raise ZTypeError(f"Cannot index a value of type '{base.ty}'", base.span)
        index = self._check_expr(expr.index, INT)
        self._require(INT, index.ty, index.span, "array index")
        return replace(expr, base=base, index=index, ty=base.ty.element)

    def _check_field_access(self, expr: FieldAccess) -> FieldAccess:
        obj = self._check_expr(expr.obj)
        if not isinstance(obj.ty, StructType):
            raise ZTypeError(f"Cannot access field '{expr.field_name}' on type '{obj.ty}'", expr.span)
        for name, ftype in self.structs[obj.ty.name]:
            if name == expr.field_name:
                return replace(expr, obj=obj, ty=ftype)
        raise ZNameError(
            f"Struct '{obj.ty.name}' has no field '{expr.field_name}'",
            expr.span,
            details={"struct": obj.ty.name, "field": expr.field_name},
        )

    def _check_array(self, expr: ArrayLiteral, expected: Optional[ZType]) -> ArrayLiteral:
        elem_expected = expected.element if isinstance(expected, ArrayType) else None
        if not expr.elements:
            if elem_expected is None:
                raise ZTypeError("Cannot infer the element type of an empty array literal", expr.span)
            return replace(expr, ty=ArrayType(elem_expected))

        first = self._check_expr(expr.elements[0], elem_expected)
        elem_type = elem_expected or first.ty
        if elem_type == VOID:
            raise ZTypeError("Array elements cannot have type void", first.span)
        elements = [first]
        for element in expr.elements[1:]:
            elements.append(self._check_expr(element, elem_type))
        for element in elements:
            self._require(elem_type, element.ty, element.span, "array element")
        return replace(expr, elements=elements, ty=ArrayType(elem_type))

    def _check_if(self, expr: IfExpr, expected: Optional[ZType]) -> IfExpr:
        condition = self._check_condition(expr.condition, "if")
        then_branch = self._check_expr(expr.then_branch, expected)
        if expr.else_branch is None:
            return replace(expr, condition=condition, then_branch=then_branch, ty=VOID)

        else_branch = self._check_expr(expr.else_branch, expected)
        tt, et = then_branch.ty, else_branch.ty
        if tt == et:
            result = tt
        elif self._diverges(then_branch):
            result = et
        elif self._diverges(else_branch):
            result = tt
        elif is_numeric(tt) and is_numeric(et):
            result = promote_numeric(tt, et)
        else:
            raise ZTypeError(
                f"If branches have incompatible types '{tt}' and '{et}'",
                expr.span,
                details={"then_type": str(tt), "else_type": str(et)},
            )
        return replace(expr, condition=condition, then_branch=then_branch,
                       else_branch=else_branch, ty=result)

    def _check_block_expr(self, expr: BlockExpr, expected: Optional[ZType]) -> BlockExpr:
        saved = self.env
        self.env = self.env.child_scope()
        try:
            statements = self._check_statement_list(expr.statements, expected)
        finally:
            self.env = saved
        tail = statements[-1] if statements else None
        if isinstance(tail, ExprStmt) and not tail.terminated:
            return replace(expr, statements=statements, ty=tail.expr.ty)
        return replace(expr, statements=statements, ty=VOID)

    def _check_lambda(self, expr: LambdaExpr, expected: Optional[ZType]) -> LambdaExpr:
        hint = expected if isinstance(expected, FunctionType) and len(expected.params) == len(expr.params) else None
        param_types: list[ZType] = []
        env = self.env.child_scope()
        for i, p in enumerate(expr.params):
            if p.type_annotation is not None:
                ptype = self._resolve_type(p.type_annotation, p.span)
            elif hint is not None:
                ptype = hint.params[i]
            else:
                raise ZTypeError(f"Cannot infer type of lambda parameter '{p.name}'", p.span)
            if ptype == VOID:
                raise ZTypeError(f"Parameter '{p.name}' cannot have type void", p.span)
            env.define_variable(p.name, ptype)
            param_types.append(ptype)

        saved = (self.env, self._current_return_type, self._in_lambda)
        self.env, self._current_return_type, self._in_lambda = env, None, True
        try:
            body = self._check_expr(expr.body, hint.return_type if hint else None)
        finally:
            self.env, self._current_return_type, self._in_lambda = saved

        return replace(expr, body=body, ty=FunctionType(tuple(param_types), body.ty))

    # -------------------------------------------------------------------
    # Compatibility
    # -------------------------------------------------------------------

    def _require(self, expected: ZType, actual: ZType, span: Optional[Span], context: str) -> None:
        if not expected.is_assignable_from(actual):
            raise type_mismatch(str(expected), str(actual), span, context)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def check(program: Program) -> Program:
    """Check a Z program; returns the tree with every expression typed."""
    return TypeChecker().check_program(program)
