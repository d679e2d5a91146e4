#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, List, Optional

from vx_context import GrammarRevision
from vx_errors import LexerError, LexicalError, UnterminatedStringError


# ==========================
# Tokens and lexer
# ==========================

class TokenKind(Enum):
    # Special
    EOF = auto()
    NEWLINE = auto()  # one or more line breaks (EndLine), canonical revision only

    IDENT = auto()  # identifier or contextual keyword, e.g. x, Main, struct
    INT = auto()  # integer literal, e.g. 42, -7, +3
    FLOAT = auto()  # float literal, e.g. 1.5, .5, 5.
    ENOTATION = auto()  # scientific notation, e.g. 1e10, -2.5E-3
    STRING = auto()  # string literal, e.g. "hi", 'hi', `hi`

    # Punctuation
    LBRACE = auto()  # {
    RBRACE = auto()  # }
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    COMMA = auto()  # ,
    COLON = auto()  # :
    EQ = auto()  # =
    DOT = auto()  # .
    QUESTION = auto()  # ?
    BANG = auto()  # !


PUNCTUATION = {
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
    "=": TokenKind.EQ,
    ".": TokenKind.DOT,
    "?": TokenKind.QUESTION,
    "!": TokenKind.BANG,
}

STRING_DELIMITERS = ('"', "'", "`")
SIMPLE_ESCAPES = ("\\", "/", "b", "f", "n", "r", "t") + STRING_DELIMITERS

ASCII_LETTERS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
DIGITS = "0123456789"
HEX_CHARS = "0123456789abcdefABCDEF"
NEWLINE_CHARS = ("\r", "\n")

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


@dataclass
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int
    offset: int = 0
    end_line: int = 0
    end_column: int = 0

    @property
    def end_offset(self) -> int:
        return self.offset + len(self.text)

    def __repr__(self) -> str:
        if self.kind is TokenKind.EOF:
            return "end-of-file"
        if self.kind is TokenKind.NEWLINE:
            return "end-of-line"
        return f"{self.text!r}"


class Lexer:
    def __init__(self, source: str, filename: str = "<input>",
                 revision: GrammarRevision = GrammarRevision.CANONICAL) -> None:
        self.source = source
        self.filename = filename
        self.revision = revision
        self.length = len(source)
        self.index = 0
        self.line = 1
        self.column = 1

    @classmethod
    def from_source(cls, source: str, revision: GrammarRevision = GrammarRevision.CANONICAL) -> "Lexer":
        return cls(source, revision=revision)

    # --- low-level char utilities ---

    def _at_end(self) -> bool:
        return self.index >= self.length

    def _peek(self, ahead: int = 0) -> str:
        if self.index + ahead >= self.length:
            return "\0"
        return self.source[self.index + ahead]

    def _advance(self) -> str:
        c = self._peek()
        if not self._at_end():
            self.index += 1
            if c == "\n" or (c == "\r" and self._peek() != "\n"):
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return c

    def _error(self, message: str, line: Optional[int] = None, column: Optional[int] = None,
               offset: Optional[int] = None) -> LexicalError:
        return LexicalError(
            message,
            self.filename,
            self.line if line is None else line,
            self.column if column is None else column,
            self.index if offset is None else offset,
        )

    # --- main API ---

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            tok = self.next_token()
            tokens.append(tok)
            if tok.kind is TokenKind.EOF:
                break
        return tokens

    def next_token(self) -> Token:
        self._skip_ws_and_comments()
        start_line, start_col, start = self.line, self.column, self.index

        if self._at_end():
            return Token(TokenKind.EOF, "", start_line, start_col, start, start_line, start_col)

        c = self._peek()

        if c in NEWLINE_CHARS:
            # collapse a run of line breaks, blank lines and comment-only lines
            while self._peek() in NEWLINE_CHARS:
                self._advance()
                self._skip_ws_and_comments()
            return self._token(TokenKind.NEWLINE, start, start_line, start_col)

        if c in ASCII_LETTERS:
            self._advance()
            while self._peek() in ASCII_LETTERS or self._peek() in DIGITS or self._peek() == "_":
                self._advance()
            return self._token(TokenKind.IDENT, start, start_line, start_col)

        if self._starts_number():
            kind = self._read_number(start_line, start_col)
            return self._token(kind, start, start_line, start_col)

        if c in STRING_DELIMITERS:
            self._read_string_literal(c, start_line, start_col)
            return self._token(TokenKind.STRING, start, start_line, start_col)

        kind = PUNCTUATION.get(c)
        if kind is not None:
            self._advance()
            return self._token(kind, start, start_line, start_col)

        raise self._error(f"[LEX-0040] unexpected character {c!r} at {start_line}:{start_col}",
                          start_line, start_col, start)

    def _token(self, kind: TokenKind, start: int, line: int, column: int) -> Token:
        return Token(kind, self.source[start:self.index], line, column, start, self.line, self.column)

    # --- numbers ---

    def _starts_number(self) -> bool:
        i = 0
        if self._peek() in ("+", "-"):
            i = 1
        if self._peek(i) in DIGITS:
            return True
        return self._peek(i) == "." and self._peek(i + 1) in DIGITS

    def _read_digits(self) -> str:
        digits: List[str] = []
        while not self._at_end() and self._peek() in DIGITS:
            digits.append(self._advance())
        return "".join(digits)

    def _read_number(self, start_line: int, start_col: int) -> TokenKind:
        start = self.index
        if self._peek() in ("+", "-"):
            self._advance()
        int_part = self._read_digits()

        kind = TokenKind.INT
        if self._peek() == ".":
            # digits.digits?  or  digits?.digits
            if int_part or self._peek(1) in DIGITS:
                self._advance()  # '.'
                self._read_digits()
                kind = TokenKind.FLOAT
        mantissa_kind, mantissa_end = kind, self.index

        if self._peek() in ("e", "E"):
            self._advance()
            exponent_start = self.index
            if self._peek() in ("+", "-"):
                self._advance()
            if self._at_end() or self._peek() not in DIGITS:
                raise self._error(f"[LEX-0063] expected exponent digits after '{self.source[start:self.index]}'")
            self._read_digits()
            kind = TokenKind.ENOTATION

        nxt = self._peek()
        if not self._at_end():
            if nxt == ".":
                raise self._error(f"[LEX-0062] unexpected '.' after numeric literal '{self.source[start:self.index]}'")
            if nxt in ASCII_LETTERS or nxt in DIGITS or nxt == "_" or nxt.isalpha():
                raise self._error(f"[LEX-0061] invalid character '{nxt}' after numeric literal")

        mantissa = self.source[start:mantissa_end]
        if mantissa_kind is TokenKind.INT:
            if not INT64_MIN <= int(mantissa) <= INT64_MAX:
                raise self._error(f"[LEX-0060] integer literal '{mantissa}' exceeds 64-bit signed range",
                                  start_line, start_col, start)
        elif math.isinf(float(mantissa)):
            raise self._error(f"[LEX-0064] float literal '{mantissa}' is too large for a 64-bit float",
                              start_line, start_col, start)

        if kind is TokenKind.ENOTATION:
            exponent = self.source[exponent_start:self.index]
            if not INT64_MIN <= int(exponent) <= INT64_MAX:
                raise self._error(f"[LEX-0065] exponent '{exponent}' exceeds 64-bit signed range",
                                  start_line, start_col, start)
        return kind

    # --- strings ---

    def _read_string_literal(self, delimiter: str, start_line: int, start_col: int) -> None:
        start = self.index
        self._advance()  # opening delimiter
        while True:
            if self._at_end():
                raise UnterminatedStringError(
                    f"[LEX-0010] unterminated string literal, expected closing {delimiter}",
                    self.filename, self.line, self.column, self.index,
                    opening_line=start_line, opening_column=start_col, opening_offset=start,
                )
            ch = self._peek()
            if ch == "\\":
                self._read_valid_char_escape(delimiter, start_line, start_col, start)
                continue
            self._advance()
            if ch == delimiter:
                break

    def _read_valid_char_escape(self, delimiter: str, start_line: int, start_col: int, start: int) -> None:
        self._advance()  # '\'
        if self._at_end():
            raise UnterminatedStringError(
                f"[LEX-0010] unterminated string literal, expected closing {delimiter}",
                self.filename, self.line, self.column, self.index,
                opening_line=start_line, opening_column=start_col, opening_offset=start,
            )
        esc = self._peek()
        if esc in SIMPLE_ESCAPES:
            self._advance()
            return

        if esc == "u":  # unicode escape of the form \uXXXX
            self._advance()
            for _ in range(4):  # expect exactly four hex digits
                if self._at_end() or self._peek() not in HEX_CHARS:
                    raise self._error("[LEX-0051] invalid unicode escape sequence (\\u), expected four hex digits")
                self._advance()
            value = int(self.source[self.index - 4:self.index], 16)
            if 0xD800 <= value <= 0xDFFF:
                raise self._error(f"[LEX-0054] unicode escape \\u{value:04X} is a surrogate, not a scalar value")
            return

        raise self._error(f"[LEX-0059] unknown escape sequence \\{esc}")

    # --- whitespace and comments ---

    def _skip_ws_and_comments(self) -> None:
        skip_newlines = self.revision is GrammarRevision.LEGACY
        while not self._at_end():
            c = self._peek()
            if c in (" ", "\t"):
                self._advance()
                continue
            if skip_newlines and c in NEWLINE_CHARS:
                self._advance()
                continue
            if c == "#":
                # line comment, the line break itself is kept
                while not self._at_end() and self._peek() not in NEWLINE_CHARS:
                    self._advance()
                continue
            break


class TokenStream:
    """
    Buffered, lazily scanned token sequence.

    The parser addresses tokens by index and rewinds freely when an ordered-choice
    alternative fails; tokens are scanned once, on first access. A lexing failure is
    remembered and re-raised whenever a token at or past that point is requested.
    """

    def __init__(self, lexer: Optional[Lexer] = None, tokens: Iterable[Token] = ()) -> None:
        self._lexer = lexer
        self._tokens: List[Token] = list(tokens)
        self._error: Optional[LexerError] = None

    @classmethod
    def from_tokens(cls, tokens: Iterable[Token]) -> "TokenStream":
        return cls(None, tokens)

    @property
    def _complete(self) -> bool:
        return bool(self._tokens) and self._tokens[-1].kind is TokenKind.EOF

    def _fill(self, index: int) -> None:
        while len(self._tokens) <= index and not self._complete:
            if self._error is not None:
                raise self._error
            if self._lexer is None:
                raise IndexError(f"token stream ended without end-of-file token at index {index}")
            try:
                self._tokens.append(self._lexer.next_token())
            except LexerError as e:
                self._error = e
                raise

    def __getitem__(self, index: int) -> Token:
        self._fill(index)
        if index >= len(self._tokens):
            return self._tokens[-1]
        return self._tokens[index]

    def drain(self) -> None:
        """Scan to end-of-file, raising the first lexing error in the remaining input."""
        while not self._complete:
            self._fill(len(self._tokens))

    def scanned(self) -> List[Token]:
        return list(self._tokens)
