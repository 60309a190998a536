"""Z Lexer: tokenizer with source spans.

Produces a stream of tokens from Z source code. Whitespace and comments are
dropped; every emitted token keeps the exact source slice it was read from.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from zlang.errors import LexicalError, Span


class TokenType(Enum):
    # Keywords
    FN = auto()
    LET = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    IN = auto()
    RETURN = auto()
    STRUCT = auto()
    ENUM = auto()
    MATCH = auto()
    IMPORT = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    # Literals
    INT_LIT = auto()
    FLOAT_LIT = auto()
    STRING_LIT = auto()

    # Identifier
    IDENT = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    ASSIGN = auto()
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    ARROW = auto()
    FAT_ARROW = auto()

    # Delimiters
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    SEMICOLON = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()

    # Special
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "fn": TokenType.FN,
    "let": TokenType.LET,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "return": TokenType.RETURN,
    "struct": TokenType.STRUCT,
    "enum": TokenType.ENUM,
    "match": TokenType.MATCH,
    "import": TokenType.IMPORT,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

# Longest spellings first so that "==" wins over "=" and "->" over "-".
OPERATORS: tuple[tuple[str, TokenType], ...] = (
    ("==", TokenType.EQ),
    ("!=", TokenType.NEQ),
    ("<=", TokenType.LTE),
    (">=", TokenType.GTE),
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    ("->", TokenType.ARROW),
    ("=>", TokenType.FAT_ARROW),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("%", TokenType.PERCENT),
    ("=", TokenType.ASSIGN),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("!", TokenType.NOT),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    ("{", TokenType.LBRACE),
    ("}", TokenType.RBRACE),
    ("[", TokenType.LBRACKET),
    ("]", TokenType.RBRACKET),
    (";", TokenType.SEMICOLON),
    (",", TokenType.COMMA),
    (".", TokenType.DOT),
    (":", TokenType.COLON),
)

STRING_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    '"': '"',
}

# Human-readable names used in parser diagnostics.
TOKEN_DESCRIPTIONS: dict[TokenType, str] = {
    TokenType.IDENT: "identifier",
    TokenType.INT_LIT: "integer literal",
    TokenType.FLOAT_LIT: "float literal",
    TokenType.STRING_LIT: "string literal",
    TokenType.EOF: "end of file",
}
TOKEN_DESCRIPTIONS.update({tt: f"'{kw}'" for kw, tt in KEYWORDS.items()})
TOKEN_DESCRIPTIONS.update({tt: f"'{op}'" for op, tt in OPERATORS})


def describe(tt: TokenType) -> str:
    return TOKEN_DESCRIPTIONS.get(tt, tt.name)


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch != "" and ("a" <= ch <= "z" or "A" <= ch <= "Z" or ch == "_")


def _is_ident_char(ch: str) -> bool:
    return _is_ident_start(ch) or _is_digit(ch)


@dataclass(frozen=True)
class Token:
    type: TokenType
    lexeme: str
    span: Span

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.lexeme!r}, {self.span})"


class Lexer:
    """Tokenizer for Z source code."""

    def __init__(self, source: str, filename: str = "<stdin>"):
        self.source = source
        self.filename = filename
        self.pos = 0

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return ""

    def _skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in (" ", "\t", "\r", "\n"):
                self.pos += 1
            elif ch == "/" and self._peek(1) == "/":
                while self.pos < len(self.source) and self.source[self.pos] != "\n":
                    self.pos += 1
            elif ch == "/" and self._peek(1) == "*":
                start = self.pos
                end = self.source.find("*/", self.pos + 2)
                if end < 0:
                    raise LexicalError(
                        "Unterminated block comment",
                        Span(start, len(self.source)),
                    )
                self.pos = end + 2
            else:
                break

    def _token(self, tt: TokenType, start: int) -> Token:
        return Token(tt, self.source[start:self.pos], Span(start, self.pos))

    def _read_string(self) -> Token:
        start = self.pos
        self.pos += 1  # opening quote
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == '"':
                self.pos += 1
                return self._token(TokenType.STRING_LIT, start)
            if ch == "\\":
                esc = self._peek(1)
                if esc not in STRING_ESCAPES:
                    raise LexicalError(
                        f"Invalid escape sequence '\\{esc}' in string literal",
                        Span(self.pos, min(self.pos + 2, len(self.source))),
                    )
                self.pos += 2
            elif ch == "\n":
                break
            else:
                self.pos += 1
        raise LexicalError("Unterminated string literal", Span(start, self.pos))

    def _read_number(self) -> Token:
        start = self.pos
        while _is_digit(self._peek()):
            self.pos += 1
        if self._peek() == "." and _is_digit(self._peek(1)):
            self.pos += 1
            while _is_digit(self._peek()):
                self.pos += 1
            return self._token(TokenType.FLOAT_LIT, start)
        return self._token(TokenType.INT_LIT, start)

    def _read_identifier(self) -> Token:
        start = self.pos
        while _is_ident_char(self._peek()):
            self.pos += 1
        tok = self._token(TokenType.IDENT, start)
        keyword = KEYWORDS.get(tok.lexeme)
        if keyword is not None:
            return Token(keyword, tok.lexeme, tok.span)
        return tok

    def _read_operator(self) -> Token:
        start = self.pos
        for spelling, tt in OPERATORS:
            if self.source.startswith(spelling, self.pos):
                self.pos += len(spelling)
                return self._token(tt, start)
        # Lone '&' / '|' and anything else outside the token table
        raise LexicalError(
            f"Invalid token '{self.source[start]}'",
            Span(start, start + 1),
        )

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break

            ch = self.source[self.pos]
            if ch == '"':
                tokens.append(self._read_string())
            elif _is_digit(ch):
                tokens.append(self._read_number())
            elif _is_ident_start(ch):
                tokens.append(self._read_identifier())
            else:
                tokens.append(self._read_operator())

        tokens.append(Token(TokenType.EOF, "", Span(len(self.source), len(self.source))))
        return tokens


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience function to tokenize Z source code."""
    return Lexer(source, filename).tokenize()
