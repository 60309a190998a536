"""Property-Based Tests for the Z front end.

Laws checked over generated programs:

  1. Span fidelity: every token's lexeme is the source slice its span names,
     and token spans are ordered and disjoint.
  2. Determinism: parsing and checking the same text twice give equal trees.
  3. Idempotence: checking an already checked tree changes nothing.
  4. Numeric promotion: int op int is int; any float operand makes float.
  5. Concatenation: string + printable (either side) is string.
  6. Name errors point at the offending identifier.
  7. String literals decode to exactly the text that was escaped into them.
"""

from __future__ import annotations

import pytest

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st
    HAS_HYPOTHESIS = True
except ImportError:
    HAS_HYPOTHESIS = False
    given = settings = st = None  # type: ignore

from zlang.lexer import KEYWORDS, TokenType, tokenize
from zlang.parser import parse
from zlang.pass1_check import check
from zlang.pass2_emit import emit
from zlang.errors import Span, ZNameError
from zlang.types import INT, FLOAT, STRING


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r", "\0": "\\0"}


def _z_string(text: str) -> str:
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in text) + '"'


# ---------------------------------------------------------------------------
# Hypothesis strategies — only defined when hypothesis is available
# ---------------------------------------------------------------------------

if HAS_HYPOTHESIS:
    identifiers = st.from_regex(r"[a-z_][a-z0-9_]{0,8}", fullmatch=True).filter(
        lambda s: s not in KEYWORDS and s not in ("print", "len")
    )

    int_literals = st.integers(min_value=0, max_value=10_000).map(str)
    float_literals = st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False).map(
        lambda f: f"{f:.3f}"
    )

    @st.composite
    def token_soup(draw):
        """Whitespace- and comment-separated valid token lexemes."""
        fragments = st.one_of(
            identifiers,
            int_literals,
            float_literals,
            st.sampled_from(["==", "!=", "<=", ">=", "&&", "||", "->", "=>",
                             "+", "-", "*", "/", "%", "=", "<", ">", "!",
                             "(", ")", "{", "}", "[", "]", ";", ",", ".", ":",
                             "fn", "let", "while", "return", "true"]),
            st.text(alphabet="abc xyz", max_size=6).map(_z_string),
        )
        separators = st.sampled_from([" ", "\n", "\t ", " // note\n", " /* c */ "])
        parts = draw(st.lists(fragments, max_size=25))
        seps = draw(st.lists(separators, min_size=len(parts), max_size=len(parts)))
        return "".join(p + s for p, s in zip(parts, seps))

    arithmetic = st.recursive(
        int_literals,
        lambda inner: st.tuples(inner, st.sampled_from(["+", "-", "*"]), inner).map(
            lambda t: f"({t[0]} {t[1]} {t[2]})"
        ),
        max_leaves=12,
    )

    printable_literals = st.one_of(
        int_literals,
        float_literals,
        st.sampled_from(["true", "false"]),
        st.text(alphabet="xyz!?", max_size=5).map(_z_string),
    )


@pytest.mark.skipif(not HAS_HYPOTHESIS, reason="hypothesis not installed")
class TestLexerLaws:

    @given(token_soup())
    @settings(max_examples=200)
    def test_spans_are_faithful(self, source):
        tokens = tokenize(source)
        for tok in tokens:
            assert tok.lexeme == source[tok.span.start:tok.span.end]
        assert tokens[-1].type == TokenType.EOF
        assert tokens[-1].span == Span(len(source), len(source))

    @given(token_soup())
    @settings(max_examples=200)
    def test_spans_are_ordered_and_disjoint(self, source):
        tokens = tokenize(source)
        for prev, cur in zip(tokens, tokens[1:]):
            assert prev.span.end <= cur.span.start

    @given(st.text(max_size=20))
    @settings(max_examples=200)
    def test_string_literals_decode_to_their_text(self, text):
        program = parse(f"let s = {_z_string(text)};")
        assert program.statements[0].value.value == text


@pytest.mark.skipif(not HAS_HYPOTHESIS, reason="hypothesis not installed")
class TestCheckerLaws:

    @given(arithmetic)
    @settings(max_examples=150)
    def test_parse_and_check_are_deterministic(self, expr):
        source = f"let x = {expr};"
        assert check(parse(source)) == check(parse(source))

    @given(arithmetic)
    @settings(max_examples=150)
    def test_check_is_idempotent(self, expr):
        checked = check(parse(f"let x = {expr}; print(x);"))
        assert check(checked) == checked

    @given(arithmetic)
    @settings(max_examples=150)
    def test_integer_arithmetic_is_int(self, expr):
        program = check(parse(f"let x = {expr};"))
        assert program.statements[0].value.ty == INT

    @given(st.one_of(int_literals, float_literals), st.sampled_from(["+", "-", "*", "/"]),
           st.one_of(int_literals, float_literals))
    @settings(max_examples=200)
    def test_numeric_promotion(self, left, op, right):
        program = check(parse(f"let x = {left} {op} {right};"))
        expected = FLOAT if "." in left or "." in right else INT
        assert program.statements[0].value.ty == expected

    @given(printable_literals, st.booleans())
    @settings(max_examples=200)
    def test_concatenation_is_string(self, literal, string_first):
        expr = f'"s" + {literal}' if string_first else f'{literal} + "s"'
        program = check(parse(f"let x = {expr};"))
        assert program.statements[0].value.ty == STRING

    @given(identifiers)
    @settings(max_examples=150)
    def test_undefined_name_span(self, name):
        source = f"let defined_value = 1;\nlet y = {name} + 1;"
        with pytest.raises(ZNameError) as exc:
            check(parse(source))
        start = source.index(f"= {name}") + 2
        assert exc.value.span == Span(start, start + len(name))


@pytest.mark.skipif(not HAS_HYPOTHESIS, reason="hypothesis not installed")
class TestEmitterLaws:

    @given(st.integers(min_value=0, max_value=2 ** 63 - 1))
    @settings(max_examples=100)
    def test_integer_literals_survive_lowering(self, value):
        c = emit(check(parse(f"let x = {value};")))
        assert f"int64_t x = {value};" in c

    @given(arithmetic)
    @settings(max_examples=100)
    def test_emit_is_deterministic(self, expr):
        program = check(parse(f"let x = {expr}; print(x);"))
        assert emit(program) == emit(program)
