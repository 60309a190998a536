"""Z Parser: recursive descent with one token of lookahead.

Parses a token stream into an AST. Statements:
  let name [: T] [= expr];
  fn name(a: T, ...) [-> R] { ... }
  struct Name { field: T, ... }
  import a.b.c;
  return [expr];
  while cond { ... }
  for x in expr { ... }
  if cond { ... } else { ... }
  { ... }
  target = expr;
  expr;

A trailing expression without ';' just before '}' is the value of the
enclosing block.
"""

from __future__ import annotations

from typing import Optional

from zlang.lexer import Token, TokenType, STRING_ESCAPES, describe, tokenize
from zlang.ast_nodes import (
    Program, Statement, ExprStmt, LetStmt, AssignStmt, ReturnStmt,
    WhileStmt, ForStmt, BlockStmt, FunctionDecl, StructDecl, ImportStmt,
    Param, FieldDef, LambdaParam,
    Expr, IntLiteral, FloatLiteral, BoolLiteral, StringLiteral, NullLiteral,
    Identifier, BinaryOp, UnaryOp, CallExpr, IndexExpr, FieldAccess,
    ArrayLiteral, IfExpr, BlockExpr, LambdaExpr,
)
from zlang.errors import Span, ZSyntaxError
from zlang.types import (
    ZType, ArrayType, FunctionType, StructType, BUILTIN_TYPES, VOID,
)

INT64_MAX = 2 ** 63 - 1
INT64_MIN = -(2 ** 63)

BINARY_LEVELS: tuple[tuple[TokenType, ...], ...] = (
    (TokenType.OR,),
    (TokenType.AND,),
    (TokenType.EQ, TokenType.NEQ),
    (TokenType.LT, TokenType.LTE, TokenType.GT, TokenType.GTE),
    (TokenType.PLUS, TokenType.MINUS),
    (TokenType.STAR, TokenType.SLASH, TokenType.PERCENT),
)


def _decode_string(lexeme: str) -> str:
    body = lexeme[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\":
            out.append(STRING_ESCAPES[body[i + 1]])
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


class Parser:
    """Recursive-descent parser for Z."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>"):
        self.tokens = tokens
        self.pos = 0
        self.filename = filename
        self._prev_end = 0

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self) -> TokenType:
        return self._current().type

    def _peek_next(self) -> TokenType:
        if self.pos + 1 < len(self.tokens):
            return self.tokens[self.pos + 1].type
        return TokenType.EOF

    def _start(self) -> int:
        return self._current().span.start

    def _span_from(self, start: int) -> Span:
        return Span(start, max(start, self._prev_end))

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        self._prev_end = tok.span.end
        return tok

    def _error(self, message: str, tok: Optional[Token] = None) -> ZSyntaxError:
        tok = tok or self._current()
        return ZSyntaxError(message, tok.span, details={"found": tok.type.name})

    @staticmethod
    def _found(tok: Token) -> str:
        if tok.type == TokenType.EOF:
            return "end of file"
        return f"'{tok.lexeme}'"

    def _expect(self, tt: TokenType) -> Token:
        tok = self._current()
        if tok.type != tt:
            raise self._error(f"Expected {describe(tt)}, found {self._found(tok)}", tok)
        return self._advance()

    def _match(self, tt: TokenType) -> Optional[Token]:
        if self._peek() == tt:
            return self._advance()
        return None

    # -------------------------------------------------------------------
    # Top-level
    # -------------------------------------------------------------------

    def parse(self) -> Program:
        stmts: list[Statement] = []
        while self._peek() != TokenType.EOF:
            stmts.append(self._parse_statement(closer=TokenType.EOF))
        return Program(statements=stmts, filename=self.filename)

    # -------------------------------------------------------------------
    # Types:  int | float | bool | string | void | Name | [T] | fn(T, ...) -> R
    # -------------------------------------------------------------------

    def _parse_type(self) -> ZType:
        tt = self._peek()
        if tt == TokenType.IDENT:
            name = self._advance().lexeme
            return BUILTIN_TYPES.get(name) or StructType(name)
        if tt == TokenType.LBRACKET:
            self._advance()
            element = self._parse_type()
            self._expect(TokenType.RBRACKET)
            return ArrayType(element)
        if tt == TokenType.FN:
            self._advance()
            self._expect(TokenType.LPAREN)
            params: list[ZType] = []
            if self._peek() != TokenType.RPAREN:
                params.append(self._parse_type())
                while self._match(TokenType.COMMA):
                    params.append(self._parse_type())
            self._expect(TokenType.RPAREN)
            self._expect(TokenType.ARROW)
            return FunctionType(tuple(params), self._parse_type())
        raise self._error(f"Expected type, found {self._found(self._current())}")

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _parse_statement(self, closer: TokenType) -> Statement:
        tt = self._peek()

        if tt == TokenType.LET:
            return self._parse_let()
        elif tt == TokenType.FN and self._peek_next() == TokenType.IDENT:
            return self._parse_function()
        elif tt == TokenType.RETURN:
            return self._parse_return(closer)
        elif tt == TokenType.WHILE:
            return self._parse_while()
        elif tt == TokenType.FOR:
            return self._parse_for()
        elif tt == TokenType.STRUCT:
            return self._parse_struct()
        elif tt == TokenType.IMPORT:
            return self._parse_import()
        elif tt in (TokenType.IF, TokenType.LBRACE):
            return self._parse_block_like_stmt(closer)
        else:
            return self._parse_expr_or_assign_stmt(closer)

    def _parse_block_stmt(self) -> BlockStmt:
        start = self._start()
        self._expect(TokenType.LBRACE)
        stmts: list[Statement] = []
        while self._peek() not in (TokenType.RBRACE, TokenType.EOF):
            stmts.append(self._parse_statement(closer=TokenType.RBRACE))
        self._expect(TokenType.RBRACE)
        return BlockStmt(statements=stmts, span=self._span_from(start))

    def _parse_let(self) -> LetStmt:
        start = self._start()
        self._expect(TokenType.LET)
        name = self._expect(TokenType.IDENT).lexeme
        type_ann: Optional[ZType] = None
        if self._match(TokenType.COLON):
            type_ann = self._parse_type()
        value: Optional[Expr] = None
        if self._match(TokenType.ASSIGN):
            value = self._parse_expression()
        self._expect(TokenType.SEMICOLON)
        return LetStmt(name=name, type_annotation=type_ann, value=value, span=self._span_from(start))

    def _parse_function(self) -> FunctionDecl:
        start = self._start()
        self._expect(TokenType.FN)
        name = self._expect(TokenType.IDENT).lexeme
        self._expect(TokenType.LPAREN)
        params: list[Param] = []
        if self._peek() != TokenType.RPAREN:
            params.append(self._parse_param())
            while self._match(TokenType.COMMA):
                params.append(self._parse_param())
        self._expect(TokenType.RPAREN)
        return_type: ZType = VOID
        if self._match(TokenType.ARROW):
            return_type = self._parse_type()
        body = self._parse_block_stmt()
        return FunctionDecl(
            name=name, params=params, return_type=return_type, body=body,
            span=self._span_from(start),
        )

    def _parse_param(self) -> Param:
        start = self._start()
        name = self._expect(TokenType.IDENT).lexeme
        self._expect(TokenType.COLON)
        type_ann = self._parse_type()
        return Param(name=name, type_annotation=type_ann, span=self._span_from(start))

    def _parse_return(self, closer: TokenType) -> ReturnStmt:
        start = self._start()
        self._expect(TokenType.RETURN)
        value: Optional[Expr] = None
        if self._peek() not in (TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
            value = self._parse_expression()
        if self._peek() != closer or closer == TokenType.EOF:
            self._expect(TokenType.SEMICOLON)
        return ReturnStmt(value=value, span=self._span_from(start))

    def _parse_while(self) -> WhileStmt:
        start = self._start()
        self._expect(TokenType.WHILE)
        condition = self._parse_expression()
        body = self._parse_block_stmt()
        self._match(TokenType.SEMICOLON)
        return WhileStmt(condition=condition, body=body, span=self._span_from(start))

    def _parse_for(self) -> ForStmt:
        """Parse: for x in expr { body }"""
        start = self._start()
        self._expect(TokenType.FOR)
        var_name = self._expect(TokenType.IDENT).lexeme
        self._expect(TokenType.IN)
        iterable = self._parse_expression()
        body = self._parse_block_stmt()
        self._match(TokenType.SEMICOLON)
        return ForStmt(var_name=var_name, iterable=iterable, body=body, span=self._span_from(start))

    def _parse_struct(self) -> StructDecl:
        start = self._start()
        self._expect(TokenType.STRUCT)
        name = self._expect(TokenType.IDENT).lexeme
        self._expect(TokenType.LBRACE)
        fields: list[FieldDef] = []
        while self._peek() != TokenType.RBRACE:
            field_start = self._start()
            field_name = self._expect(TokenType.IDENT).lexeme
            self._expect(TokenType.COLON)
            field_type = self._parse_type()
            fields.append(FieldDef(
                name=field_name, type_annotation=field_type, span=self._span_from(field_start),
            ))
            self._match(TokenType.COMMA)  # separators optional
        self._expect(TokenType.RBRACE)
        self._match(TokenType.SEMICOLON)
        return StructDecl(name=name, fields=fields, span=self._span_from(start))

    def _parse_import(self) -> ImportStmt:
        start = self._start()
        self._expect(TokenType.IMPORT)
        parts = [self._expect(TokenType.IDENT).lexeme]
        while self._match(TokenType.DOT):
            parts.append(self._expect(TokenType.IDENT).lexeme)
        self._expect(TokenType.SEMICOLON)
        return ImportStmt(path=".".join(parts), span=self._span_from(start))

    def _parse_block_like_stmt(self, closer: TokenType) -> ExprStmt:
        """An if or block in statement position ends at its closing brace."""
        start = self._start()
        expr = self._parse_if_expr() if self._peek() == TokenType.IF else self._parse_block_expr()
        if self._match(TokenType.SEMICOLON):
            return ExprStmt(expr=expr, terminated=True, span=self._span_from(start))
        terminated = not (closer == TokenType.RBRACE and self._peek() == TokenType.RBRACE)
        return ExprStmt(expr=expr, terminated=terminated, span=self._span_from(start))

    def _parse_expr_or_assign_stmt(self, closer: TokenType) -> Statement:
        start = self._start()
        expr = self._parse_expression()

        if self._match(TokenType.ASSIGN):
            if not isinstance(expr, (Identifier, FieldAccess, IndexExpr)):
                raise ZSyntaxError("Invalid assignment target", expr.span)
            value = self._parse_expression()
            self._expect(TokenType.SEMICOLON)
            return AssignStmt(target=expr, value=value, span=self._span_from(start))

        if self._match(TokenType.SEMICOLON):
            return ExprStmt(expr=expr, terminated=True, span=self._span_from(start))
        if closer == TokenType.RBRACE and self._peek() == TokenType.RBRACE:
            return ExprStmt(expr=expr, terminated=False, span=self._span_from(start))
        raise self._error(f"Expected ';' after expression, found {self._found(self._current())}")

    # -------------------------------------------------------------------
    # Expressions (precedence climbing)
    # -------------------------------------------------------------------

    def _parse_expression(self) -> Expr:
        return self._parse_binary(0)

    def _parse_binary(self, level: int) -> Expr:
        if level == len(BINARY_LEVELS):
            return self._parse_unary()
        left = self._parse_binary(level + 1)
        while self._peek() in BINARY_LEVELS[level]:
            op = self._advance().lexeme
            right = self._parse_binary(level + 1)
            left = BinaryOp(op=op, left=left, right=right, span=left.span.join(right.span))
        return left

    def _parse_unary(self) -> Expr:
        if self._peek() in (TokenType.MINUS, TokenType.NOT):
            start = self._start()
            op = self._advance().lexeme
            if op == "-" and self._peek() == TokenType.INT_LIT and int(self._current().lexeme) == -INT64_MIN:
                # Only a negated literal can reach the 64-bit minimum
                self._advance()
                return IntLiteral(value=INT64_MIN, span=self._span_from(start))
            operand = self._parse_unary()
            return UnaryOp(op=op, operand=operand, span=self._span_from(start))
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        expr = self._parse_primary()
        start = expr.span.start
        while True:
            if self._match(TokenType.LPAREN):
                args: list[Expr] = []
                if self._peek() != TokenType.RPAREN:
                    args.append(self._parse_expression())
                    while self._match(TokenType.COMMA):
                        args.append(self._parse_expression())
                self._expect(TokenType.RPAREN)
                expr = CallExpr(callee=expr, args=args, span=self._span_from(start))
            elif self._match(TokenType.LBRACKET):
                index = self._parse_expression()
                self._expect(TokenType.RBRACKET)
                expr = IndexExpr(base=expr, index=index, span=self._span_from(start))
            elif self._match(TokenType.DOT):
                field_name = self._expect(TokenType.IDENT).lexeme
                expr = FieldAccess(obj=expr, field_name=field_name, span=self._span_from(start))
            else:
                break
        return expr

    def _parse_primary(self) -> Expr:
        tt = self._peek()
        start = self._start()

        if tt == TokenType.INT_LIT:
            tok = self._advance()
            value = int(tok.lexeme)
            if value > INT64_MAX:
                raise ZSyntaxError(
                    f"Integer literal {tok.lexeme} does not fit in a 64-bit signed integer",
                    tok.span,
                )
            return IntLiteral(value=value, span=tok.span)

        if tt == TokenType.FLOAT_LIT:
            tok = self._advance()
            return FloatLiteral(value=float(tok.lexeme), span=tok.span)

        if tt == TokenType.STRING_LIT:
            tok = self._advance()
            return StringLiteral(value=_decode_string(tok.lexeme), span=tok.span)

        if tt in (TokenType.TRUE, TokenType.FALSE):
            tok = self._advance()
            return BoolLiteral(value=tt == TokenType.TRUE, span=tok.span)

        if tt == TokenType.NULL:
            return NullLiteral(span=self._advance().span)

        if tt == TokenType.IDENT:
            tok = self._advance()
            return Identifier(name=tok.lexeme, span=tok.span)

        if tt == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN)
            return expr

        if tt == TokenType.LBRACKET:
            self._advance()
            elements: list[Expr] = []
            while self._peek() != TokenType.RBRACKET:
                elements.append(self._parse_expression())
                if not self._match(TokenType.COMMA):
                    break
            self._expect(TokenType.RBRACKET)
            return ArrayLiteral(elements=elements, span=self._span_from(start))

        if tt == TokenType.IF:
            return self._parse_if_expr()

        if tt == TokenType.LBRACE:
            return self._parse_block_expr()

        if tt == TokenType.FN:
            return self._parse_lambda_expr()

        raise self._error(f"Expected expression, found {self._found(self._current())}")

    def _parse_if_expr(self) -> IfExpr:
        start = self._start()
        self._expect(TokenType.IF)
        condition = self._parse_expression()
        then_branch = self._parse_block_expr()
        else_branch: Optional[Expr] = None
        if self._match(TokenType.ELSE):
            if self._peek() == TokenType.IF:
                else_branch = self._parse_if_expr()
            else:
                else_branch = self._parse_block_expr()
        return IfExpr(
            condition=condition, then_branch=then_branch, else_branch=else_branch,
            span=self._span_from(start),
        )

    def _parse_block_expr(self) -> BlockExpr:
        block = self._parse_block_stmt()
        return BlockExpr(statements=block.statements, span=block.span)

    def _parse_lambda_expr(self) -> LambdaExpr:
        """Parse: fn(x: int, y) => expr"""
        start = self._start()
        self._expect(TokenType.FN)
        self._expect(TokenType.LPAREN)
        params: list[LambdaParam] = []
        while self._peek() != TokenType.RPAREN:
            param_start = self._start()
            name = self._expect(TokenType.IDENT).lexeme
            type_ann: Optional[ZType] = None
            if self._match(TokenType.COLON):
                type_ann = self._parse_type()
            params.append(LambdaParam(name=name, type_annotation=type_ann, span=self._span_from(param_start)))
            if not self._match(TokenType.COMMA):
                break
        self._expect(TokenType.RPAREN)
        self._expect(TokenType.FAT_ARROW)
        body = self._parse_expression()
        return LambdaExpr(params=params, body=body, span=self._span_from(start))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_tokens(tokens: list[Token], filename: str = "<stdin>") -> Program:
    return Parser(tokens, filename).parse()


def parse(source: str, filename: str = "<stdin>") -> Program:
    """Parse Z source code into an AST."""
    tokens = tokenize(source, filename)
    return parse_tokens(tokens, filename)
