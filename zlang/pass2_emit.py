"""Z Pass 2 — Emit.

Checked AST -> one self-contained C11 translation unit. The C toolchain does
all machine-level optimization; this pass only lowers constructs.

Layout of the output:
  runtime preamble
  type declarations (struct forward typedefs, array and function-pointer
  typedefs, struct definitions in dependency order)
  prototypes for user functions and lifted lambdas
  lambda and function definitions
  int main(void): top-level statements, then z_main() when declared
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from zlang.ast_nodes import (
    Program, Statement, ExprStmt, LetStmt, AssignStmt, ReturnStmt,
    WhileStmt, ForStmt, BlockStmt, FunctionDecl, StructDecl, ImportStmt,
    Expr, IntLiteral, FloatLiteral, BoolLiteral, StringLiteral, NullLiteral,
    Identifier, BinaryOp, UnaryOp, CallExpr, IndexExpr, FieldAccess,
    ArrayLiteral, IfExpr, BlockExpr, LambdaExpr, tail_expression,
)
from zlang.errors import CodegenError
from zlang.runtime import RUNTIME_NAMES, RUNTIME_PREAMBLE, PRINT_HELPERS, concat_helper
from zlang.types import (
    ZType, PrimitiveType, ArrayType, FunctionType, StructType,
    INT, FLOAT, BOOL, STRING, VOID, is_numeric,
)

logger = logging.getLogger(__name__)

INDENT = "    "

PRIMITIVE_C_TYPES: dict[ZType, str] = {
    INT: "int64_t",
    FLOAT: "double",
    BOOL: "bool",
    STRING: "const char *",
    VOID: "void",
}

C_KEYWORDS = frozenset("""
    auto break case char const continue default do double else enum extern
    float for goto if inline int long register restrict return short signed
    sizeof static struct switch typedef union unsigned void volatile while
    _Alignas _Alignof _Atomic _Bool _Complex _Generic _Imaginary _Noreturn
    _Static_assert _Thread_local
""".split())

# Names the generated code or its headers rely on
C_RESERVED = C_KEYWORDS | frozenset("""
    bool true false int64_t size_t main errno stdin stdout stderr
    printf fprintf snprintf fputs malloc free exit memcpy strlen strcmp fmod
    likely unlikely fpclassify isfinite isinf isnan isnormal signbit
    isgreater isgreaterequal isless islessequal islessgreater isunordered
""".split()) | RUNTIME_NAMES


def _is_macro_like(name: str) -> bool:
    """ALL_CAPS identifiers may collide with header macros (EOF, NULL, NAN, ...)."""
    return len(name) > 1 and name[0].isupper() and all(
        c.isupper() or c.isdigit() or c == "_" for c in name
    )


def c_name(name: str) -> str:
    """Map a Z identifier to a C identifier that cannot clash with C or the runtime."""
    if name in C_RESERVED or name.startswith(("z_", "Z_")) or _is_macro_like(name):
        return name + "_"
    return name


def c_string(value: str) -> str:
    """Render a Python string as a C string literal (UTF-8, octal escapes)."""
    out = ['"']
    for byte in value.encode("utf-8"):
        ch = chr(byte)
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "?":
            out.append("\\?")  # no trigraphs
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif 0x20 <= byte < 0x7F:
            out.append(ch)
        else:
            out.append(f"\\{byte:03o}")
    out.append('"')
    return "".join(out)


def _pointer_to(c_type: str) -> str:
    return c_type + ("*" if c_type.endswith("*") else " *")


def _decl(c_type: str, name: str) -> str:
    if c_type.endswith("*"):
        return f"{c_type}{name}"
    return f"{c_type} {name}"


def _single_expression(branch: Expr) -> Optional[Expr]:
    """The one expression a branch reduces to, or None if it needs statements."""
    if isinstance(branch, BlockExpr):
        if len(branch.statements) != 1:
            return None
        tail = tail_expression(branch.statements)
        return _single_expression(tail) if tail is not None else None
    return branch


class CGenerator:
    """Emits C source from a checked Z program."""

    def __init__(self) -> None:
        self.indent_level = 0
        self._lines: list[str] = []

        self.functions: dict[str, FunctionDecl] = {}
        self.structs: dict[str, StructDecl] = {}

        self._type_names: dict[ZType, str] = {}
        self._typedefs: list[str] = []
        self._fn_type_count = 0

        self._prototypes: list[str] = []
        self._lambda_prototypes: list[str] = []
        self._lambda_defs: list[str] = []
        self._lambda_count = 0

        # Per-function naming state
        self._scopes: list[dict[str, str]] = [{}]
        self._used_names: set[str] = set()
        self._name_count = 0
        self._in_lambda = False
        # Z names bound in the functions enclosing a lifted lambda
        self._enclosing: list[set[str]] = []

    # -------------------------------------------------------------------
    # Line output
    # -------------------------------------------------------------------

    def _emit(self, line: str) -> None:
        self._lines.append(INDENT * self.indent_level + line)

    def _indent(self) -> None:
        self.indent_level += 1

    def _dedent(self) -> None:
        self.indent_level -= 1

    # -------------------------------------------------------------------
    # Program
    # -------------------------------------------------------------------

    def generate(self, program: Program) -> str:
        logger.debug("emitting C for %s", program.filename)
        for stmt in program.statements:
            if isinstance(stmt, FunctionDecl):
                self.functions[stmt.name] = stmt
            elif isinstance(stmt, StructDecl):
                self.structs[stmt.name] = stmt

        function_defs: list[str] = []
        for stmt in program.statements:
            if isinstance(stmt, FunctionDecl):
                function_defs.append(self._emit_function(stmt))
        main_def = self._emit_main(program)
        struct_defs = [self._emit_struct(s) for s in self._struct_order()]

        self._check_collisions()

        sections: list[str] = [RUNTIME_PREAMBLE.rstrip("\n")]
        type_decls = [f"typedef struct {self._struct_c_name(n)} {self._struct_c_name(n)};" for n in self.structs]
        type_decls += self._typedefs
        if type_decls:
            sections.append("// Types\n" + "\n".join(type_decls))
        if struct_defs:
            sections.append("\n\n".join(struct_defs))
        prototypes = self._prototypes + self._lambda_prototypes
        if prototypes:
            sections.append("// Prototypes\n" + "\n".join(prototypes))
        sections.extend(self._lambda_defs)
        sections.extend(function_defs)
        sections.append(main_def)

        logger.debug(
            "emitted %d functions, %d lambdas, %d typedefs",
            len(function_defs), self._lambda_count, len(self._typedefs),
        )
        return "\n\n".join(sections) + "\n"

    def _check_collisions(self) -> None:
        generated = set(self._type_names.values())
        generated.update(f"z_lambda_{i}" for i in range(self._lambda_count))
        generated.update(RUNTIME_NAMES)
        declared: dict[str, FunctionDecl | StructDecl] = {**self.functions, **self.structs}
        for name, decl in declared.items():
            # Functions and structs share the z_ prefix with generated names
            if f"z_{name}" in generated:
                raise CodegenError(
                    f"Name '{name}' collides with a generated C identifier", decl.span,
                )

    # -------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------

    @staticmethod
    def _struct_c_name(name: str) -> str:
        return f"z_{name}"

    @staticmethod
    def _function_c_name(name: str) -> str:
        return f"z_{name}"

    def _c_type(self, typ: ZType) -> str:
        if isinstance(typ, PrimitiveType) and typ in PRIMITIVE_C_TYPES:
            return PRIMITIVE_C_TYPES[typ]
        if isinstance(typ, StructType):
            return self._struct_c_name(typ.name)
        if isinstance(typ, (ArrayType, FunctionType)):
            return self._register_type(typ)
        raise CodegenError(f"Type '{typ}' has no C representation (was the program checked?)")

    def _register_type(self, typ: ArrayType | FunctionType) -> str:
        if typ in self._type_names:
            return self._type_names[typ]
        if isinstance(typ, ArrayType):
            elem = self._c_type(typ.element)
            name = f"z_array_{self._type_tag(typ.element)}"
            line = f"typedef struct {{ int64_t len; {_pointer_to(elem)}data; }} {name};"
        else:
            ret = self._c_type(typ.return_type)
            params = ", ".join(self._c_type(p) for p in typ.params) or "void"
            name = f"z_fn_{self._fn_type_count}"
            self._fn_type_count += 1
            line = f"typedef {ret} (*{name})({params});"
        self._type_names[typ] = name
        self._typedefs.append(line)
        return name

    def _type_tag(self, typ: ZType) -> str:
        if isinstance(typ, PrimitiveType):
            return typ.name
        if isinstance(typ, StructType):
            return typ.name
        return self._c_type(typ)[len("z_"):]

    @staticmethod
    def _zero_value(typ: ZType) -> str:
        if typ == INT:
            return "0"
        if typ == FLOAT:
            return "0.0"
        if typ == BOOL:
            return "false"
        if typ == STRING:
            return '""'
        if isinstance(typ, FunctionType):
            return "NULL"
        return "{0}"

    def _struct_order(self) -> list[StructDecl]:
        """Struct definitions ordered so that by-value members come first."""
        ordered: list[StructDecl] = []
        done: set[str] = set()

        def visit(name: str) -> None:
            if name in done:
                return
            done.add(name)
            for f in self.structs[name].fields:
                if isinstance(f.type_annotation, StructType):
                    visit(f.type_annotation.name)
            ordered.append(self.structs[name])

        for name in self.structs:
            visit(name)
        return ordered

    def _emit_struct(self, struct: StructDecl) -> str:
        lines = [f"struct {self._struct_c_name(struct.name)} {{"]
        for f in struct.fields:
            lines.append(f"{INDENT}{_decl(self._c_type(f.type_annotation), c_name(f.name))};")
        if not struct.fields:
            lines.append(f"{INDENT}char z_unused;")
        lines.append("};")
        return "\n".join(lines)

    # -------------------------------------------------------------------
    # Scopes and local names
    # -------------------------------------------------------------------

    def _reset_function_state(self) -> None:
        self._lines = []
        self.indent_level = 0
        self._scopes = [{}]
        self._used_names = set()

    def _push_scope(self) -> None:
        self._scopes.append({})

    def _pop_scope(self) -> None:
        self._scopes.pop()

    def _fresh(self, base: str = "") -> str:
        name = f"z_{self._name_count}_{base}" if base else f"z_{self._name_count}"
        self._name_count += 1
        return name

    def _declare_local(self, name: str) -> str:
        """Allocate a C name for a new binding; every local in a function is unique."""
        cname = c_name(name)
        if cname in self._used_names:
            cname = self._fresh(cname)
        self._used_names.add(cname)
        return cname

    def _bind(self, name: str, cname: str) -> None:
        self._scopes[-1][name] = cname

    def _lookup_local(self, name: str) -> Optional[str]:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def _is_captured(self, name: str) -> bool:
        return self._in_lambda and any(name in names for names in self._enclosing)

    # -------------------------------------------------------------------
    # Functions
    # -------------------------------------------------------------------

    def _signature(self, name: str, ret: ZType, params: list[str]) -> str:
        return _decl(self._c_type(ret), f"{name}({', '.join(params) or 'void'})")

    def _emit_function(self, func: FunctionDecl) -> str:
        self._reset_function_state()
        params: list[str] = []
        for p in func.params:
            cname = self._declare_local(p.name)
            self._bind(p.name, cname)
            params.append(_decl(self._c_type(p.type_annotation), cname))
        signature = self._signature(self._function_c_name(func.name), func.return_type, params)
        self._prototypes.append(signature + ";")

        self._emit(signature + " {")
        self._indent()
        self._emit_body(func.body.statements, returns_value=func.return_type != VOID)
        self._dedent()
        self._emit("}")
        return "\n".join(self._lines)

    def _emit_body(self, statements: list[Statement], returns_value: bool) -> None:
        tail = tail_expression(statements)
        body = statements[:-1] if tail is not None else statements
        for stmt in body:
            self._emit_statement(stmt)
        if tail is None:
            return
        if returns_value:
            self._lower_value(tail, self._return_sink)
        else:
            self._emit_expr_stmt(tail)

    def _return_sink(self, value: str) -> None:
        self._emit(f"return {value};")

    def _emit_main(self, program: Program) -> str:
        self._reset_function_state()
        self._emit("int main(void) {")
        self._indent()
        for stmt in program.statements:
            if isinstance(stmt, (FunctionDecl, StructDecl)):
                continue
            self._emit_statement(stmt)
        user_main = self.functions.get("main")
        if user_main is not None and user_main.return_type == INT:
            self._emit(f"return (int){self._function_c_name('main')}();")
        else:
            if user_main is not None:
                self._emit(f"{self._function_c_name('main')}();")
            self._emit("return 0;")
        self._dedent()
        self._emit("}")
        return "\n".join(self._lines)

    def _lift_lambda(self, expr: LambdaExpr) -> str:
        ftype = expr.ty
        if not isinstance(ftype, FunctionType):
            raise CodegenError("Lambda was not type checked", expr.span)
        name = f"z_lambda_{self._lambda_count}"
        self._lambda_count += 1

        saved = (self._lines, self.indent_level, self._scopes, self._used_names, self._in_lambda)
        self._enclosing.append({n for scope in self._scopes for n in scope})
        self._reset_function_state()
        self._in_lambda = True
        try:
            params: list[str] = []
            for p, ptype in zip(expr.params, ftype.params):
                cname = self._declare_local(p.name)
                self._bind(p.name, cname)
                params.append(_decl(self._c_type(ptype), cname))
            signature = "static " + self._signature(name, ftype.return_type, params)
            self._lambda_prototypes.append(signature + ";")
            self._emit(signature + " {")
            self._indent()
            if ftype.return_type == VOID:
                self._emit_expr_stmt(expr.body)
            else:
                self._lower_value(expr.body, self._return_sink)
            self._dedent()
            self._emit("}")
            self._lambda_defs.append("\n".join(self._lines))
        finally:
            self._lines, self.indent_level, self._scopes, self._used_names, self._in_lambda = saved
            self._enclosing.pop()
        return name

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _emit_statement(self, stmt: Statement) -> None:
        if isinstance(stmt, LetStmt):
            self._emit_let(stmt)
        elif isinstance(stmt, AssignStmt):
            self._emit_assign(stmt)
        elif isinstance(stmt, ReturnStmt):
            self._emit_return(stmt)
        elif isinstance(stmt, ExprStmt):
            self._emit_expr_stmt(stmt.expr)
        elif isinstance(stmt, WhileStmt):
            self._emit_while(stmt)
        elif isinstance(stmt, ForStmt):
            self._emit_for(stmt)
        elif isinstance(stmt, BlockStmt):
            self._emit("{")
            self._emit_scoped(stmt.statements)
            self._emit("}")
        elif isinstance(stmt, ImportStmt):
            self._emit(f"// import {stmt.path}")
        else:
            raise CodegenError(f"Cannot lower {type(stmt).__name__} here", stmt.span)

    def _emit_scoped(self, statements: list[Statement]) -> None:
        self._indent()
        self._push_scope()
        for stmt in statements:
            self._emit_statement(stmt)
        self._pop_scope()
        self._dedent()

    def _emit_let(self, stmt: LetStmt) -> None:
        typ = stmt.type_annotation or (stmt.value.ty if stmt.value is not None else VOID)
        c_type = self._c_type(typ)
        cname = self._declare_local(stmt.name)
        if stmt.value is None:
            self._emit(f"{_decl(c_type, cname)} = {self._zero_value(typ)};")
        elif isinstance(stmt.value, (IfExpr, BlockExpr)):
            self._emit(f"{_decl(c_type, cname)};")
            self._lower_value(stmt.value, lambda v: self._emit(f"{cname} = {v};"))
        else:
            self._emit(f"{_decl(c_type, cname)} = {self._expr(stmt.value)};")
        # The binding is visible only after its initializer
        self._bind(stmt.name, cname)

    def _emit_assign(self, stmt: AssignStmt) -> None:
        target = self._expr(stmt.target)
        self._lower_value(stmt.value, lambda v: self._emit(f"{target} = {v};"))

    def _emit_return(self, stmt: ReturnStmt) -> None:
        if stmt.value is None:
            self._emit("return;")
        elif stmt.value.ty == VOID:
            self._emit_expr_stmt(stmt.value)
            self._emit("return;")
        else:
            self._lower_value(stmt.value, self._return_sink)

    def _emit_while(self, stmt: WhileStmt) -> None:
        self._emit(f"while ({self._expr(stmt.condition, wrap=False)}) {{")
        self._emit_scoped(stmt.body.statements)
        self._emit("}")

    def _emit_for(self, stmt: ForStmt) -> None:
        array_type = stmt.iterable.ty
        if not isinstance(array_type, ArrayType):
            raise CodegenError("for loop over a non-array value", stmt.iterable.span)
        items = self._fresh()
        index = self._fresh()
        self._emit("{")
        self._indent()
        self._emit(f"{self._c_type(array_type)} {items} = {self._expr(stmt.iterable)};")
        self._emit(f"for (int64_t {index} = 0; {index} < {items}.len; {index}++) {{")
        self._indent()
        self._push_scope()
        var = self._declare_local(stmt.var_name)
        self._emit(f"{_decl(self._c_type(array_type.element), var)} = {items}.data[{index}];")
        self._bind(stmt.var_name, var)
        for s in stmt.body.statements:
            self._emit_statement(s)
        self._pop_scope()
        self._dedent()
        self._emit("}")
        self._dedent()
        self._emit("}")

    def _emit_expr_stmt(self, expr: Expr) -> None:
        if isinstance(expr, IfExpr):
            self._lower_if(expr, None)
        elif isinstance(expr, BlockExpr):
            self._emit("{")
            self._lower_branch(expr, None)
            self._emit("}")
        else:
            self._emit(f"{self._expr(expr, wrap=False)};")

    # -------------------------------------------------------------------
    # Value-producing if / block in statement context
    # -------------------------------------------------------------------

    def _lower_value(self, expr: Expr, sink: Callable[[str], None]) -> None:
        """Lower expr so that its value is handed to sink as a C expression."""
        if isinstance(expr, IfExpr):
            self._lower_if(expr, sink)
        elif isinstance(expr, BlockExpr):
            self._emit("{")
            self._lower_branch(expr, sink)
            self._emit("}")
        else:
            sink(self._expr(expr))

    def _lower_if(self, expr: IfExpr, sink: Optional[Callable[[str], None]]) -> None:
        self._emit(f"if ({self._expr(expr.condition, wrap=False)}) {{")
        self._lower_branch(expr.then_branch, sink)
        branch = expr.else_branch
        while isinstance(branch, IfExpr):
            self._emit(f"}} else if ({self._expr(branch.condition, wrap=False)}) {{")
            self._lower_branch(branch.then_branch, sink)
            branch = branch.else_branch
        if branch is not None:
            self._emit("} else {")
            self._lower_branch(branch, sink)
        self._emit("}")

    def _lower_branch(self, branch: Expr, sink: Optional[Callable[[str], None]]) -> None:
        self._indent()
        self._push_scope()
        if isinstance(branch, BlockExpr):
            tail = tail_expression(branch.statements)
            body = branch.statements[:-1] if tail is not None else branch.statements
            for stmt in body:
                self._emit_statement(stmt)
            if tail is not None:
                if sink is not None and tail.ty != VOID:
                    self._lower_value(tail, sink)
                else:
                    self._emit_expr_stmt(tail)
        elif sink is not None:
            self._lower_value(branch, sink)
        else:
            self._emit_expr_stmt(branch)
        self._pop_scope()
        self._dedent()

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _expr(self, expr: Expr, wrap: bool = True) -> str:
        if isinstance(expr, IntLiteral):
            # -9223372036854775808 is not a valid C constant expression of type int64_t
            return "INT64_MIN" if expr.value == -(2 ** 63) else str(expr.value)
        if isinstance(expr, FloatLiteral):
            return "HUGE_VAL" if math.isinf(expr.value) else repr(expr.value)
        if isinstance(expr, BoolLiteral):
            return "true" if expr.value else "false"
        if isinstance(expr, StringLiteral):
            return c_string(expr.value)
        if isinstance(expr, NullLiteral):
            return "NULL"
        if isinstance(expr, Identifier):
            return self._identifier(expr)
        if isinstance(expr, BinaryOp):
            return self._binary(expr, wrap)
        if isinstance(expr, UnaryOp):
            text = f"{expr.op}{self._expr(expr.operand)}"
            return f"({text})" if wrap else text
        if isinstance(expr, CallExpr):
            return self._call(expr)
        if isinstance(expr, IndexExpr):
            return f"{self._expr(expr.base)}.data[{self._expr(expr.index, wrap=False)}]"
        if isinstance(expr, FieldAccess):
            return f"{self._expr(expr.obj)}.{c_name(expr.field_name)}"
        if isinstance(expr, ArrayLiteral):
            return self._array_literal(expr)
        if isinstance(expr, IfExpr):
            return self._ternary(expr)
        if isinstance(expr, BlockExpr):
            inner = _single_expression(expr)
            if inner is None:
                raise CodegenError("Cannot lower a multi-statement block in expression position", expr.span)
            return self._expr(inner, wrap)
        if isinstance(expr, LambdaExpr):
            return self._lift_lambda(expr)
        raise CodegenError(f"Cannot lower {type(expr).__name__}", expr.span)

    def _identifier(self, expr: Identifier) -> str:
        local = self._lookup_local(expr.name)
        if local is not None:
            return local
        if expr.name in self.functions and not self._is_captured(expr.name):
            return self._function_c_name(expr.name)
        if self._in_lambda:
            raise CodegenError(
                f"Lambda captures local variable '{expr.name}'; closures are not supported",
                expr.span,
            )
        raise CodegenError(f"Unresolved name '{expr.name}'", expr.span)

    def _fold_string(self, expr: Expr) -> Optional[str]:
        if isinstance(expr, StringLiteral):
            return expr.value
        if isinstance(expr, BinaryOp) and expr.op == "+" and expr.ty == STRING:
            left = self._fold_string(expr.left)
            right = self._fold_string(expr.right)
            if left is not None and right is not None:
                return left + right
        return None

    def _binary(self, expr: BinaryOp, wrap: bool) -> str:
        op = expr.op
        lt, rt = expr.left.ty, expr.right.ty

        if op == "+" and expr.ty == STRING:
            folded = self._fold_string(expr)
            if folded is not None:
                return c_string(folded)
            helper = concat_helper(str(lt), str(rt))
            return f"{helper}({self._expr(expr.left, wrap=False)}, {self._expr(expr.right, wrap=False)})"

        left, right = self._expr(expr.left), self._expr(expr.right)
        if op == "%" and FLOAT in (lt, rt):
            return f"fmod({left}, {right})"

        if op in ("==", "!="):
            if lt == STRING and rt == STRING:
                text = f"strcmp({left}, {right}) {op} 0"
                return f"({text})" if wrap else text
            comparable = (is_numeric(lt) and is_numeric(rt)) or (
                lt == rt and (lt == BOOL or isinstance(lt, FunctionType))
            )
            if not comparable:
                raise CodegenError(
                    f"Cannot compare values of type '{lt}' and '{rt}'",
                    expr.span,
                    details={"left_type": str(lt), "right_type": str(rt)},
                )

        text = f"{left} {op} {right}"
        return f"({text})" if wrap else text

    def _call(self, expr: CallExpr) -> str:
        callee = expr.callee
        if (
            isinstance(callee, Identifier)
            and self._lookup_local(callee.name) is None
            and not self._is_captured(callee.name)
        ):
            name = callee.name
            if name in self.structs:
                return self._construct(expr, name)
            if name == "print":
                arg = expr.args[0]
                return f"{PRINT_HELPERS[str(arg.ty)]}({self._expr(arg, wrap=False)})"
            if name == "len":
                return f"{self._expr(expr.args[0])}.len"
        args = ", ".join(self._expr(a, wrap=False) for a in expr.args)
        return f"{self._expr(callee)}({args})"

    def _construct(self, expr: CallExpr, name: str) -> str:
        c_type = self._struct_c_name(name)
        if not expr.args:
            return f"(({c_type}){{0}})"
        args = ", ".join(self._expr(a, wrap=False) for a in expr.args)
        return f"(({c_type}){{{args}}})"

    def _array_literal(self, expr: ArrayLiteral) -> str:
        array_type = expr.ty
        if not isinstance(array_type, ArrayType):
            raise CodegenError("Array literal was not type checked", expr.span)
        c_type = self._c_type(array_type)
        elem = self._c_type(array_type.element)
        if not expr.elements:
            return f"(({c_type}){{0, NULL}})"
        n = len(expr.elements)
        items = ", ".join(self._expr(e, wrap=False) for e in expr.elements)
        data = f"({_pointer_to(elem)})z_memdup(({elem}[]){{{items}}}, sizeof({elem}) * {n})"
        return f"(({c_type}){{{n}, {data}}})"

    def _ternary(self, expr: IfExpr) -> str:
        if expr.else_branch is None:
            raise CodegenError("An if without else has no value", expr.span)
        then_value = _single_expression(expr.then_branch)
        else_value = _single_expression(expr.else_branch)
        if then_value is None or else_value is None:
            raise CodegenError(
                "Cannot lower an if expression with multi-statement branches in this position",
                expr.span,
            )
        cond = self._expr(expr.condition)
        return f"({cond} ? {self._expr(then_value)} : {self._expr(else_value)})"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def emit(program: Program) -> str:
    """Run Pass 2: lower a checked program to C source."""
    return CGenerator().generate(program)
