#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator, List, NoReturn, Optional, Set, Tuple, TypeVar, Union

from vx_ast import (
    Span, Program, Module, ModuleItem, Function, FunctionItem, Struct, Arg, Assignment, DataType, ScalarType,
    TypeModifier, TupleType, MapType, Expr, ParenExpr, IntLiteral, FloatLiteral, ExponentLiteral, StringLiteral,
    BoolLiteral, FuncCall, InnerVar, VarRef)
from vx_context import CompilationContext
from vx_errors import (
    ParseError, LexicalError, DelimiterMismatchError, StructuralError, TrailingContentError, RecursionLimitError)
from vx_lexer import TokenKind, Token, Lexer, TokenStream
from vx_string_escape import EscapeDecodeError, decode_string_token

T = TypeVar("T")

_TOKEN_DESCRIPTIONS = {
    TokenKind.EOF: "end-of-file",
    TokenKind.NEWLINE: "end-of-line",
    TokenKind.IDENT: "identifier",
    TokenKind.INT: "integer literal",
    TokenKind.FLOAT: "float literal",
    TokenKind.ENOTATION: "exponent literal",
    TokenKind.STRING: "string literal",
    TokenKind.LBRACE: "'{'",
    TokenKind.RBRACE: "'}'",
    TokenKind.LPAREN: "'('",
    TokenKind.RPAREN: "')'",
    TokenKind.LBRACKET: "'['",
    TokenKind.RBRACKET: "']'",
    TokenKind.COMMA: "','",
    TokenKind.COLON: "':'",
    TokenKind.EQ: "'='",
    TokenKind.DOT: "'.'",
    TokenKind.QUESTION: "'?'",
    TokenKind.BANG: "'!'",
}


def describe_token_kind(kind: TokenKind) -> str:
    return _TOKEN_DESCRIPTIONS[kind]


# ==========================
# Parser
# ==========================

class Parser:
    """
    Ordered-choice recursive-descent parser.

    Every rule either returns a node or raises a ParseError with the cursor at the
    failure point; `_attempt` rewinds the cursor so the next alternative starts from
    the same token. Each failed expectation is recorded, and the error finally
    reported is the one at the furthest token reached, listing every alternative
    that was expected there.
    """

    def __init__(self, tokens: Union[List[Token], TokenStream], filename: Optional[str] = None,
                 context: Optional[CompilationContext] = None) -> None:
        self.tokens = tokens if isinstance(tokens, TokenStream) else TokenStream.from_tokens(tokens)
        self.index = 0
        self.filename = filename
        self.context = context or CompilationContext.default()
        self.depth = 0
        self._furthest_index = -1
        self._furthest_expected: Set[str] = set()
        self._furthest_error: Optional[ParseError] = None

    @classmethod
    def from_source(cls, source: str, filename: Optional[str] = None,
                    context: Optional[CompilationContext] = None) -> "Parser":
        context = context or CompilationContext.default()
        lexer = Lexer(source, filename or "<input>", context.grammar_revision)
        return cls(TokenStream(lexer), filename or "<input>", context)

    # --- token utilities ---

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _last(self) -> Token:
        return self.tokens[self.index - 1 if self.index > 0 else 0]

    def _at_end(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _advance(self) -> Token:
        tok = self._peek()
        if not self._at_end():
            self.index += 1
        return tok

    def _check(self, kind: TokenKind) -> bool:
        return self._peek().kind is kind

    def _check_keyword(self, word: str) -> bool:
        tok = self._peek()
        return tok.kind is TokenKind.IDENT and tok.text == word

    def _match(self, kind: TokenKind, expected: Optional[str] = None) -> bool:
        if self._check(kind):
            self._advance()
            return True
        self._record(expected or describe_token_kind(kind))
        return False

    def _match_keyword(self, word: str) -> bool:
        if self._check_keyword(word):
            self._advance()
            return True
        self._record(f"'{word}'")
        return False

    def _expect(self, kind: TokenKind, msg: str, expected: Optional[str] = None) -> Token:
        if not self._check(kind):
            self._fail(msg, expected or describe_token_kind(kind))
        return self._advance()

    def _expect_keyword(self, word: str, msg: str) -> Token:
        if not self._check_keyword(word):
            self._fail(msg, f"'{word}'")
        return self._advance()

    def _expect_closing(self, kind: TokenKind, opening: Token, msg: str) -> Token:
        if not self._check(kind):
            self._fail(
                f"{msg} opened at {opening.line}:{opening.column}",
                describe_token_kind(kind),
                DelimiterMismatchError,
                opening_line=opening.line,
                opening_column=opening.column,
                opening_offset=opening.offset,
            )
        return self._advance()

    def _end_line(self, msg: str) -> None:
        if self.context.newlines_significant:
            self._expect(TokenKind.NEWLINE, msg)

    def _optional_end_line(self) -> None:
        if self.context.newlines_significant:
            self._match(TokenKind.NEWLINE)

    # --- failure bookkeeping ---

    def _record(self, expected: str, error: Optional[ParseError] = None) -> None:
        if self.index > self._furthest_index:
            self._furthest_index = self.index
            self._furthest_expected = {expected}
            self._furthest_error = error
        elif self.index == self._furthest_index:
            self._furthest_expected.add(expected)
            if error is not None:
                self._furthest_error = error

    def _fail(self, msg: str, expected: str, error_cls=StructuralError, **extra) -> NoReturn:
        tok = self._peek()
        err = error_cls(f"{msg}, got {tok!r} instead", self.filename, tok.line, tok.column, tok.offset,
                        [expected], **extra)
        self._record(expected, err)
        raise err

    def _furthest_failure(self) -> ParseError:
        tok = self.tokens[self._furthest_index]
        expected = sorted(self._furthest_expected)
        err = self._furthest_error
        if err is None:
            return StructuralError(f"[PAR-0001] expected {' or '.join(expected)}, got {tok!r} instead",
                                   self.filename, tok.line, tok.column, tok.offset, expected)
        message = err.message
        if len(expected) > 1:
            message = f"{message} (expected one of: {', '.join(expected)})"
        return replace(err, message=message, expected=expected)

    def _attempt(self, rule: Callable[[], T]) -> Optional[T]:
        saved = self.index
        try:
            return rule()
        except ParseError as e:
            if not e.backtrackable:
                raise
            self.index = saved
            return None

    def _parse_choice(self, *rules: Callable[[], T]) -> Optional[T]:
        for rule in rules:
            node = self._attempt(rule)
            if node is not None:
                return node
        return None

    @contextmanager
    def _nested(self, what: str) -> Iterator[None]:
        if self.depth >= self.context.max_nesting_depth:
            tok = self._peek()
            raise RecursionLimitError(
                f"[PAR-0900] {what} nested deeper than {self.context.max_nesting_depth} levels",
                self.filename, tok.line, tok.column, tok.offset,
            )
        self.depth += 1
        try:
            yield
        finally:
            self.depth -= 1

    # --- spans ---

    def _span_start(self) -> Span:
        here = self._peek()
        return Span(here.line, here.column, here.line, here.column, here.offset, here.offset)

    def _extend_span(self, start: Span) -> Span:
        here = self._last()
        return Span(
            start.start_line,
            start.start_column,
            here.end_line,
            here.end_column,
            start.start_offset,
            here.end_offset,
        )

    # --- entry point ---

    def parse_program(self) -> Program:
        # SOI ~ EndLine? ~ Module* ~ EOI
        start = self._span_start()
        self._optional_end_line()
        modules: List[Module] = []
        while True:
            module = self._attempt(self.parse_module)
            if module is None:
                break
            modules.append(module)

        if not self._at_end():
            self.tokens.drain()
            raise self._trailing_content_failure()

        eof = self._peek()
        span = Span(start.start_line, start.start_column, eof.line, eof.column, start.start_offset, eof.offset)
        return Program(tuple(modules), span=span, filename=self.filename)

    def _trailing_content_failure(self) -> ParseError:
        self._record("end-of-file")
        if self._furthest_index > self.index:
            return self._furthest_failure()
        tok = self._peek()
        expected = sorted(self._furthest_expected)
        return TrailingContentError(
            f"[PAR-0010] unexpected {tok!r} after the last module (expected {' or '.join(expected)})",
            self.filename, tok.line, tok.column, tok.offset, expected,
        )

    def parse_fragment(self, rule: Callable[[], T]) -> T:
        """
        Run a single rule (e.g. `parser.parse_fragment(parser.parse_expr)`) and
        require it to consume the whole input.
        """
        self._optional_end_line()
        node = self._attempt(rule)
        if node is not None:
            self._optional_end_line()
            if self._at_end():
                return node
            self._record("end-of-file")
        self.tokens.drain()
        raise self._furthest_failure()

    # --- declarations ---

    def parse_module(self) -> Module:
        # Identifier "=" export? "mod" "{" EndLine? (Function | Struct | Module)* "}" EndLine?
        start = self._span_start()
        name_tok = self._expect(TokenKind.IDENT, "[PAR-0020] expected module name")
        self._expect(TokenKind.EQ, "[PAR-0021] expected '=' after module name")
        is_export = self._match_keyword("export")
        self._expect_keyword("mod", "[PAR-0022] expected 'mod'")

        with self._nested("module"):
            opening = self._expect(TokenKind.LBRACE, "[PAR-0023] expected '{' after 'mod'")
            self._optional_end_line()
            body: List[ModuleItem] = []
            while True:
                item = self._parse_choice(self.parse_function, self.parse_struct, self.parse_module)
                if item is None:
                    break
                body.append(item)
            self._expect_closing(TokenKind.RBRACE, opening, "[PAR-0024] expected '}' to close module body")

        span = self._extend_span(start)
        self._optional_end_line()
        return Module(name_tok.text, tuple(body), is_export, span=span)

    def parse_function(self) -> Function:
        # Identifier "=" export? serial? "function" "{" EndLine?
        #     Params EndLine Return EndLine (Struct | Function | Assignment)* "}" EndLine
        start = self._span_start()
        name_tok = self._expect(TokenKind.IDENT, "[PAR-0030] expected function name")
        self._expect(TokenKind.EQ, "[PAR-0031] expected '=' after function name")
        is_export = self._match_keyword("export")
        is_serial = self._match_keyword("serial")
        self._expect_keyword("function", "[PAR-0032] expected 'function'")

        with self._nested("function"):
            opening = self._expect(TokenKind.LBRACE, "[PAR-0033] expected '{' after 'function'")
            self._optional_end_line()
            params = self._parse_arg_section("params", "[PAR-0034] expected 'params' section")
            self._end_line("[PAR-0035] expected end-of-line after params")
            returns = self._parse_arg_section("return", "[PAR-0036] expected 'return' section")
            self._end_line("[PAR-0037] expected end-of-line after return")
            body: List[FunctionItem] = []
            while True:
                item = self._parse_choice(self.parse_struct, self.parse_function, self.parse_assignment)
                if item is None:
                    break
                body.append(item)
            self._expect_closing(TokenKind.RBRACE, opening, "[PAR-0038] expected '}' to close function body")

        span = self._extend_span(start)
        self._end_line("[PAR-0039] expected end-of-line after function")
        return Function(name_tok.text, params, returns, tuple(body), is_export, is_serial, span=span)

    def parse_struct(self) -> Struct:
        # Identifier "=" export? "struct" "{" EndLine? (Arg EndLine)* "}" EndLine
        start = self._span_start()
        name_tok = self._expect(TokenKind.IDENT, "[PAR-0045] expected struct name")
        self._expect(TokenKind.EQ, "[PAR-0046] expected '=' after struct name")
        is_export = self._match_keyword("export")
        self._expect_keyword("struct", "[PAR-0047] expected 'struct'")

        with self._nested("struct"):
            opening = self._expect(TokenKind.LBRACE, "[PAR-0048] expected '{' after 'struct'")
            self._optional_end_line()
            fields: List[Arg] = []
            while True:
                field = self._attempt(self._parse_struct_field)
                if field is None:
                    break
                fields.append(field)
            self._expect_closing(TokenKind.RBRACE, opening, "[PAR-0049] expected '}' to close struct body")

        span = self._extend_span(start)
        self._end_line("[PAR-0057] expected end-of-line after struct")
        return Struct(name_tok.text, tuple(fields), is_export, span=span)

    def _parse_struct_field(self) -> Arg:
        arg = self._parse_arg()
        self._end_line("[PAR-0056] expected end-of-line after struct field")
        return arg

    def _parse_arg_section(self, keyword: str, msg: str) -> Tuple[Arg, ...]:
        # "params" | "return"  "=" "(" ArgList? ")"
        self._expect_keyword(keyword, msg)
        self._expect(TokenKind.EQ, f"[PAR-0040] expected '=' after '{keyword}'")
        opening = self._expect(TokenKind.LPAREN, f"[PAR-0041] expected '(' to start {keyword} list")
        args = self._attempt(self._parse_arg_list) or []
        self._expect_closing(TokenKind.RPAREN, opening, f"[PAR-0042] expected ')' to close {keyword} list")
        return tuple(args)

    def _parse_arg_list(self) -> List[Arg]:
        args = [self._parse_arg()]
        while self._match(TokenKind.COMMA):
            args.append(self._parse_arg())
        return args

    def _parse_arg(self) -> Arg:
        start = self._span_start()
        name_tok = self._expect(TokenKind.IDENT, "[PAR-0043] expected argument name")
        self._expect(TokenKind.COLON, "[PAR-0044] expected ':' after argument name")
        data_type = self.parse_data_type()
        return Arg(name_tok.text, data_type, span=self._extend_span(start))

    def parse_assignment(self) -> Assignment:
        # (Identifier "=")? Expr EndLine
        start = self._span_start()
        saved = self.index
        target: Optional[str] = None
        name_tok = self._peek()
        if self._match(TokenKind.IDENT) and self._match(TokenKind.EQ):
            target = name_tok.text
        else:
            self.index = saved
        value = self.parse_expr()
        span = self._extend_span(start)
        self._end_line("[PAR-0090] expected end-of-line after statement")
        return Assignment(target, value, span=span)

    # --- types ---

    def parse_data_type(self) -> DataType:
        # "(" DataType ("," DataType)* ")"
        #   | "{" DataType ":" DataType "}"
        #   | Identifier ("?" | "[" digits? "]" | "!")?
        start = self._span_start()

        if self._check(TokenKind.LPAREN):
            opening = self._advance()
            with self._nested("tuple type"):
                elements = [self.parse_data_type()]
                while self._match(TokenKind.COMMA):
                    elements.append(self.parse_data_type())
                self._expect_closing(TokenKind.RPAREN, opening, "[PAR-0051] expected ')' to close tuple type")
            return TupleType(tuple(elements), span=self._extend_span(start))

        if self._check(TokenKind.LBRACE):
            opening = self._advance()
            with self._nested("map type"):
                key = self.parse_data_type()
                self._expect(TokenKind.COLON, "[PAR-0052] expected ':' between map key and value types")
                value = self.parse_data_type()
                self._expect_closing(TokenKind.RBRACE, opening, "[PAR-0053] expected '}' to close map type")
            return MapType(key, value, span=self._extend_span(start))

        name_tok = self._expect(TokenKind.IDENT, "[PAR-0050] expected type name", "type")
        modifier = TypeModifier.NONE
        array_size: Optional[int] = None
        if self._match(TokenKind.QUESTION):
            modifier = TypeModifier.NULLABLE
        elif self._match(TokenKind.BANG):
            modifier = TypeModifier.NON_NULL
        elif self._match(TokenKind.LBRACKET):
            opening = self._last()
            if self._check(TokenKind.INT):
                size_tok = self._peek()
                if not size_tok.text.isdigit():
                    self._fail("[PAR-0054] array size must be an unsigned integer", "array size")
                self._advance()
                array_size = int(size_tok.text)
            else:
                self._record("array size")
            self._expect_closing(TokenKind.RBRACKET, opening, "[PAR-0055] expected ']' to close array type")
            modifier = TypeModifier.ARRAY
        return ScalarType(name_tok.text, modifier, array_size, span=self._extend_span(start))

    # --- expressions ---

    def parse_expr(self) -> Expr:
        # ordered choice:
        #   "(" Expr ")" | ENotation | Float | Int | String | Bool | FuncCall | InnerVar | Identifier
        start = self._span_start()
        tok = self._peek()

        if tok.kind is TokenKind.LPAREN:
            opening = self._advance()
            with self._nested("parenthesized expression"):
                inner = self.parse_expr()
                self._expect_closing(TokenKind.RPAREN, opening,
                                     "[PAR-0061] expected ')' to close parenthesized expression")
            return ParenExpr(inner, span=self._extend_span(start))

        if tok.kind is TokenKind.ENOTATION:
            self._advance()
            return self._exponent_literal(tok, self._extend_span(start))

        if tok.kind is TokenKind.FLOAT:
            self._advance()
            return FloatLiteral(float(tok.text), span=self._extend_span(start))

        if tok.kind is TokenKind.INT:
            self._advance()
            return IntLiteral(int(tok.text), span=self._extend_span(start))

        if tok.kind is TokenKind.STRING:
            self._advance()
            return StringLiteral(self._decode_string(tok), tok.text[0], span=self._extend_span(start))

        if tok.kind is TokenKind.IDENT:
            if tok.text in ("true", "false"):
                self._advance()
                return BoolLiteral(tok.text == "true", span=self._extend_span(start))
            call = self._attempt(self._parse_func_call)
            if call is not None:
                return call
            return self._parse_variable()

        self._fail("[PAR-0060] expected expression", "expression")

    def _exponent_literal(self, tok: Token, span: Span) -> ExponentLiteral:
        mantissa_text, _, exponent_text = tok.text.lower().partition("e")
        if "." in mantissa_text:
            mantissa: Union[IntLiteral, FloatLiteral] = FloatLiteral(float(mantissa_text))
        else:
            mantissa = IntLiteral(int(mantissa_text))
        return ExponentLiteral(mantissa, int(exponent_text), span=span)

    def _decode_string(self, tok: Token) -> str:
        try:
            return decode_string_token(tok.text)
        except EscapeDecodeError as e:
            raise LexicalError(f"[LEX-0059] invalid string literal: {e.code} {e.details}".rstrip(),
                               self.filename, tok.line, tok.column, tok.offset) from e

    def _parse_func_call(self) -> FuncCall:
        # serial? extern? Identifier "(" ExprList? ")"
        start = self._span_start()
        is_serial = self._match_keyword("serial")
        is_extern = self.context.newlines_significant and self._match_keyword("extern")
        callee = self._expect(TokenKind.IDENT, "[PAR-0070] expected function name in call")
        opening = self._expect(TokenKind.LPAREN, "[PAR-0071] expected '(' after function name")
        with self._nested("call"):
            args = self._attempt(self._parse_expr_list) or []
            self._expect_closing(TokenKind.RPAREN, opening, "[PAR-0072] expected ')' to close argument list")
        return FuncCall(callee.text, tuple(args), is_serial, is_extern, span=self._extend_span(start))

    def _parse_expr_list(self) -> List[Expr]:
        exprs = [self.parse_expr()]
        while self._match(TokenKind.COMMA):
            exprs.append(self.parse_expr())
        return exprs

    def _parse_variable(self) -> Expr:
        # InnerVar = Identifier ("." Identifier)+, else a bare Identifier
        start = self._span_start()
        first = self._expect(TokenKind.IDENT, "[PAR-0080] expected variable name")
        path = [first.text]
        while True:
            saved = self.index
            if not self._match(TokenKind.DOT):
                break
            segment = self._peek()
            if not self._match(TokenKind.IDENT):
                self.index = saved
                break
            path.append(segment.text)
        if len(path) == 1:
            return VarRef(first.text, span=self._extend_span(start))
        return InnerVar(tuple(path), span=self._extend_span(start))
