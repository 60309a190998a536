"""Z Type Checker Tests — CHECK-001 through CHECK-009.

Each test parses and checks a short program; the checker either returns the
typed tree or raises the first ZTypeError / ZNameError it meets.
"""

import pytest

from zlang.parser import parse
from zlang.pass1_check import check
from zlang.ast_nodes import ExprStmt, LetStmt, FunctionDecl
from zlang.errors import ErrorKind, Span, ZNameError, ZTypeError
from zlang.types import INT, FLOAT, BOOL, STRING, VOID, ArrayType, FunctionType, StructType


def _check(source: str):
    return check(parse(source))


def _let_type(source: str, index: int = -1):
    stmt = _check(source).statements[index]
    assert isinstance(stmt, LetStmt)
    return stmt.value.ty


class TestCHECK001:
    """CHECK-001: Literal and let inference.
    Pass Criteria: unannotated lets take the initializer's type; annotations must match exactly.
    Priority: P0
    """

    def test_int_arithmetic(self):
        """priority_p0: let x = 1 + 2 is int."""
        assert _let_type("let x = 1 + 2;") == INT

    def test_string_concat_of_literals(self):
        """priority_p0: let s = "a" + "b" is string."""
        assert _let_type('let s = "a" + "b";') == STRING

    def test_float_annotation_rejects_int(self):
        """priority_p0: let y: float = 5 is a type error, with no implicit widening."""
        with pytest.raises(ZTypeError) as exc:
            _check("let y: float = 5;")
        assert exc.value.error.kind == ErrorKind.TYPE_ERROR
        assert exc.value.message == "variable 'y': expected type 'float', found 'int'"
        assert exc.value.span == Span(15, 16)
        assert exc.value.error.details == {"expected_type": "float", "actual_type": "int"}

    def test_annotation_without_initializer(self):
        """priority_p1: let a: [int]; declares an array variable."""
        program = _check("let a: [int]; let n = len(a);")
        assert program.statements[1].value.ty == INT

    def test_no_annotation_no_initializer(self):
        """priority_p0: let x; cannot be typed."""
        with pytest.raises(ZTypeError) as exc:
            _check("let x;")
        assert "Cannot infer type" in exc.value.message

    def test_void_initializer(self):
        """priority_p1: Binding the result of print is rejected."""
        with pytest.raises(ZTypeError):
            _check('let v = print("x");')

    def test_input_tree_untouched(self):
        """priority_p0: The checker returns a new tree and leaves its input alone."""
        program = parse("let x = 1 + 2;")
        checked = check(program)
        assert checked.statements[0].value.ty == INT
        assert program.statements[0].value.ty != INT


class TestCHECK002:
    """CHECK-002: Operators.
    Pass Criteria: int/float arithmetic promotes to float; comparisons yield bool; logic needs bool.
    Priority: P0
    """

    def test_numeric_promotion(self):
        """priority_p0: int op float is float."""
        assert _let_type("let x = 1 + 2.5;") == FLOAT
        assert _let_type("let x = 2.0 * 3;") == FLOAT
        assert _let_type("let x = 7 % 2;") == INT

    def test_comparison(self):
        """priority_p0: Numeric comparisons produce bool."""
        assert _let_type("let b = 1 < 2.0;") == BOOL

    def test_string_comparison_rejected(self):
        """priority_p1: Ordering is only defined on numbers."""
        with pytest.raises(ZTypeError) as exc:
            _check('let b = "a" < "b";')
        assert exc.value.message == "Operator '<' cannot be applied to 'string' and 'string'"

    def test_equality(self):
        """priority_p0: Equality produces bool."""
        assert _let_type('let b = "a" == "b";') == BOOL

    def test_logical(self):
        """priority_p0: && and || need bool operands."""
        assert _let_type("let b = true && !false;") == BOOL
        with pytest.raises(ZTypeError):
            _check("let b = true && 1;")

    def test_concat_with_numbers(self):
        """priority_p0: string + int and float + string are strings."""
        assert _let_type('let s = "n=" + 1;') == STRING
        assert _let_type('let s = 1.5 + "!";') == STRING

    def test_concat_with_array_rejected(self):
        """priority_p1: Only printable values concatenate with strings."""
        with pytest.raises(ZTypeError):
            _check('let s = "a" + [1];')

    def test_arithmetic_on_bool_rejected(self):
        """priority_p1: true + 1 has no meaning."""
        with pytest.raises(ZTypeError) as exc:
            _check("let x = true + 1;")
        assert exc.value.error.details["operator"] == "+"

    def test_unary(self):
        """priority_p1: Negation on numbers, not on bool."""
        assert _let_type("let x = -2.5;") == FLOAT
        with pytest.raises(ZTypeError):
            _check("let x = -true;")
        with pytest.raises(ZTypeError):
            _check("let x = !1;")


class TestCHECK003:
    """CHECK-003: Name resolution.
    Pass Criteria: undefined names raise ZNameError at the use site; scopes nest and end.
    Priority: P0
    """

    def test_undefined_name(self):
        """priority_p0: let a = b; names the missing variable."""
        with pytest.raises(ZNameError) as exc:
            _check("let a = b;")
        assert exc.value.error.kind == ErrorKind.NAME_ERROR
        assert exc.value.message == "Undefined name 'b'"
        assert exc.value.span == Span(8, 9)

    def test_block_scope_ends(self):
        """priority_p0: A variable declared in a block is gone after it."""
        with pytest.raises(ZNameError):
            _check("{ let inner = 1; } let x = inner;")

    def test_shadowing(self):
        """priority_p1: An inner let may shadow an outer one with a new type."""
        program = _check('let x = 1; { let x = "s"; print(x); } let y = x + 1;')
        assert program.statements[-1].value.ty == INT

    def test_self_reference_in_initializer(self):
        """priority_p1: The binding is not visible inside its own initializer."""
        with pytest.raises(ZNameError):
            _check("let x = x + 1;")

    def test_assign_undefined(self):
        """priority_p0: Assigning an undeclared name is a name error."""
        with pytest.raises(ZNameError):
            _check("y = 3;")

    def test_assign_type_mismatch(self):
        """priority_p0: Assignments keep the variable's type."""
        with pytest.raises(ZTypeError) as exc:
            _check('let x = 1; x = "s";')
        assert exc.value.message.startswith("assignment:")

    def test_top_level_lets_invisible_in_functions(self):
        """priority_p1: Function bodies see only their parameters and other functions."""
        with pytest.raises(ZNameError):
            _check("let g = 1; fn f() -> int { g }")

    def test_builtin_as_value(self):
        """priority_p2: print cannot be used without calling it."""
        with pytest.raises(ZTypeError):
            _check("let p = print;")


class TestCHECK004:
    """CHECK-004: Functions.
    Pass Criteria: forward references resolve; arity and argument types are enforced; non-void bodies return.
    Priority: P0
    """

    def test_forward_and_recursive_calls(self):
        """priority_p0: Functions can call functions declared later, and themselves."""
        program = _check("""
            fn main() { print(fib(10)); }
            fn fib(n: int) -> int {
                if n < 2 { return n; }
                fib(n - 1) + fib(n - 2)
            }
        """)
        assert isinstance(program.statements[0], FunctionDecl)

    def test_arity(self):
        """priority_p0: Too many arguments."""
        with pytest.raises(ZTypeError) as exc:
            _check("fn f(a: int) { } f(1, 2);")
        assert exc.value.message == "Call expects 1 argument(s), got 2"

    def test_argument_type(self):
        """priority_p0: Argument types must match parameters."""
        with pytest.raises(ZTypeError) as exc:
            _check('fn f(a: int) { } f("x");')
        assert exc.value.message == "argument 1 of call: expected type 'int', found 'string'"

    def test_return_type(self):
        """priority_p0: return values must match the declared type."""
        with pytest.raises(ZTypeError):
            _check("fn f() -> int { return 1.5; }")

    def test_implicit_return(self):
        """priority_p0: A tail expression is the function's value and is checked."""
        _check("fn f() -> int { 1 + 2 }")
        with pytest.raises(ZTypeError) as exc:
            _check("fn f() -> int { true }")
        assert exc.value.message.startswith("implicit return:")

    def test_missing_return(self):
        """priority_p0: Non-void functions must produce a value on every path."""
        with pytest.raises(ZTypeError) as exc:
            _check("fn f() -> int { let a = 1; }")
        assert exc.value.message == "Function 'f' must return a value of type 'int'"

    def test_if_else_returning_on_both_paths(self):
        """priority_p1: An if/else that returns in both branches satisfies the return check."""
        _check("fn f(a: bool) -> int { if a { return 1; } else { return 2; } }")

    def test_if_with_one_returning_branch(self):
        """priority_p1: A branch that always returns takes the other branch's type."""
        _check("fn f(a: bool) -> int { if a { return 1; } else { 2 } }")

    def test_return_outside_function(self):
        """priority_p1: Top-level return is an error."""
        with pytest.raises(ZTypeError) as exc:
            _check("return 1;")
        assert exc.value.message == "'return' outside of a function"

    def test_duplicate_function(self):
        """priority_p1: Two functions with one name."""
        with pytest.raises(ZTypeError) as exc:
            _check("fn f() { } fn f() { }")
        assert exc.value.message == "Duplicate definition of 'f'"

    def test_builtin_redefinition(self):
        """priority_p1: print cannot be redefined."""
        with pytest.raises(ZTypeError):
            _check("fn print(s: string) { }")

    def test_main_signature(self):
        """priority_p1: main takes nothing and returns void or int."""
        _check("fn main() -> int { 0 }")
        with pytest.raises(ZTypeError):
            _check("fn main(a: int) { }")
        with pytest.raises(ZTypeError):
            _check("fn main() -> string { \"x\" }")

    def test_function_as_value(self):
        """priority_p1: A function name has a function type."""
        ty = _let_type("fn inc(a: int) -> int { a + 1 } let f = inc;")
        assert ty == FunctionType((INT,), INT)

    def test_nested_function_rejected(self):
        """priority_p2: Functions are top-level only."""
        with pytest.raises(ZTypeError):
            _check("fn outer() { fn inner() { } }")


class TestCHECK005:
    """CHECK-005: Control flow conditions.
    Pass Criteria: while and if conditions must be bool; for iterates arrays only.
    Priority: P0
    """

    def test_while_condition(self):
        """priority_p0: while 1 { } is rejected."""
        with pytest.raises(ZTypeError) as exc:
            _check("while 1 { }")
        assert exc.value.message == "while condition: expected type 'bool', found 'int'"

    def test_if_condition(self):
        """priority_p0: if "s" { } is rejected."""
        with pytest.raises(ZTypeError):
            _check('if "s" { }')

    def test_infinite_loop(self):
        """priority_p0: while true { } checks."""
        _check("while true { }")

    def test_for_loop_variable_type(self):
        """priority_p1: The loop variable has the element type."""
        _check("for x in [1.5, 2.5] { let y: float = x; }")

    def test_for_over_non_array(self):
        """priority_p1: Iterating an int is rejected."""
        with pytest.raises(ZTypeError):
            _check("for x in 10 { }")


class TestCHECK006:
    """CHECK-006: If and block expressions.
    Pass Criteria: if-else branches agree (int/float promote); if without else is void; blocks take their tail type.
    Priority: P0
    """

    def test_if_value(self):
        """priority_p0: if c { 1 } else { 2 } is int."""
        assert _let_type("let c = true; let x = if c { 1 } else { 2 };") == INT

    def test_if_value_promotes(self):
        """priority_p1: Mixed int/float branches give float."""
        assert _let_type("let x = if true { 1 } else { 2.5 };") == FLOAT

    def test_if_incompatible_branches(self):
        """priority_p0: Branch types must agree."""
        with pytest.raises(ZTypeError) as exc:
            _check('let x = if true { 1 } else { "s" };')
        assert exc.value.message == "If branches have incompatible types 'int' and 'string'"

    def test_if_without_else_is_void(self):
        """priority_p1: if without else cannot be bound."""
        with pytest.raises(ZTypeError):
            _check("let x = if true { 1 };")

    def test_block_value(self):
        """priority_p1: A block's value is its tail expression."""
        assert _let_type("let x = { let a = 2; a * 3 };") == INT


class TestCHECK007:
    """CHECK-007: Arrays and structs.
    Pass Criteria: array literals are homogeneous; struct construction, field access and indexing are typed.
    Priority: P1
    """

    def test_array_literal(self):
        """priority_p1: [1, 2, 3] is [int]."""
        assert _let_type("let a = [1, 2, 3];") == ArrayType(INT)

    def test_heterogeneous_array(self):
        """priority_p1: Mixed element types are rejected."""
        with pytest.raises(ZTypeError):
            _check('let a = [1, "two"];')

    def test_empty_array_needs_annotation(self):
        """priority_p1: [] alone cannot be typed, but can with an annotation."""
        with pytest.raises(ZTypeError):
            _check("let a = [];")
        assert _let_type("let a: [string] = [];") == ArrayType(STRING)

    def test_indexing(self):
        """priority_p1: a[0] has the element type; the index must be int."""
        assert _let_type("let a = [1.5]; let x = a[0];") == FLOAT
        with pytest.raises(ZTypeError):
            _check("let a = [1]; let x = a[true];")

    def test_struct_construction_and_fields(self):
        """priority_p1: Point(1.0, 2.0).x is float."""
        program = _check("struct Point { x: float, y: float } let p = Point(1.0, 2.0); let x = p.x;")
        assert program.statements[1].value.ty == StructType("Point")
        assert program.statements[2].value.ty == FLOAT

    def test_struct_field_assignment(self):
        """priority_p1: Fields are assignable with their own type."""
        _check("struct P { x: int } let p = P(1); p.x = 2;")
        with pytest.raises(ZTypeError):
            _check("struct P { x: int } let p = P(1); p.x = 2.0;")

    def test_unknown_field(self):
        """priority_p1: Missing fields are name errors."""
        with pytest.raises(ZNameError) as exc:
            _check("struct P { x: int } let p = P(1); let z = p.z;")
        assert exc.value.message == "Struct 'P' has no field 'z'"

    def test_unknown_type(self):
        """priority_p1: Annotations must name declared structs."""
        with pytest.raises(ZTypeError) as exc:
            _check("let q: Quux = 1;")
        assert exc.value.message == "Unknown type 'Quux'"

    def test_recursive_struct(self):
        """priority_p2: Structs cannot contain themselves by value."""
        with pytest.raises(ZTypeError) as exc:
            _check("struct A { b: B } struct B { a: A }")
        assert "A -> B -> A" in exc.value.message


class TestCHECK008:
    """CHECK-008: Lambdas.
    Pass Criteria: parameter types come from annotations or the expected function type.
    Priority: P1
    """

    def test_annotated_lambda(self):
        """priority_p1: fn(x: int) => x * 2 is fn(int) -> int."""
        assert _let_type("let f = fn(x: int) => x * 2;") == FunctionType((INT,), INT)

    def test_lambda_inferred_from_annotation(self):
        """priority_p1: The let annotation supplies the parameter types."""
        ty = _let_type("let f: fn(int, int) -> int = fn(a, b) => a + b;")
        assert ty == FunctionType((INT, INT), INT)

    def test_lambda_argument(self):
        """priority_p1: A lambda passed to a function takes the parameter's type."""
        _check("fn apply(f: fn(int) -> int, v: int) -> int { f(v) } let r = apply(fn(x) => x + 1, 2);")

    def test_uninferable_lambda_parameter(self):
        """priority_p1: An unannotated parameter with no context is rejected."""
        with pytest.raises(ZTypeError) as exc:
            _check("let f = fn(x) => x;")
        assert exc.value.message == "Cannot infer type of lambda parameter 'x'"


class TestCHECK009:
    """CHECK-009: Builtins.
    Pass Criteria: print takes one printable value; len takes one array.
    Priority: P1
    """

    def test_print(self):
        """priority_p1: print accepts all printable types."""
        program = _check('print(1); print(2.5); print(true); print("s");')
        assert all(isinstance(s, ExprStmt) and s.expr.ty == VOID for s in program.statements)

    def test_print_array_rejected(self):
        """priority_p1: Arrays are not printable."""
        with pytest.raises(ZTypeError):
            _check("print([1]);")

    def test_len(self):
        """priority_p1: len returns int and needs an array."""
        assert _let_type('let n = len(["a", "b"]);') == INT
        with pytest.raises(ZTypeError):
            _check('let n = len("abc");')
