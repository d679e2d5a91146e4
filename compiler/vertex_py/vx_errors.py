#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
Syntax error taxonomy shared by the lexer, the parser and the driver.

Every failure is reported as a single terminal exception; messages carry a
diagnostic code such as `[LEX-0010]` or `[PAR-0020]` (see vx_diagnostics).
"""

import re
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional

_CODE_RE = re.compile(r"\[([A-Z]{3}-\d{4})\]")


@dataclass
class ParseError(Exception):
    message: str
    filename: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    offset: Optional[int] = None
    expected: List[str] = field(default_factory=list)

    # Whether an ordered-choice alternative may recover from this error by backtracking.
    backtrackable: ClassVar[bool] = True

    def __str__(self) -> str:
        return self.format()

    @property
    def code(self) -> Optional[str]:
        m = _CODE_RE.search(self.message)
        return m.group(1) if m else None

    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += self.filename
        if self.line is not None:
            loc += f":{self.line}" if loc else f"{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        if loc:
            loc += ": "
        return f"{loc}{self.message}"


@dataclass
class LexerError(ParseError):
    """Failure to scan a token; never recovered from by backtracking."""
    backtrackable: ClassVar[bool] = False


@dataclass
class LexicalError(LexerError):
    pass


@dataclass
class DelimiterMismatchError(ParseError):
    opening_line: Optional[int] = None
    opening_column: Optional[int] = None
    opening_offset: Optional[int] = None


@dataclass
class UnterminatedStringError(LexerError, DelimiterMismatchError):
    pass


@dataclass
class StructuralError(ParseError):
    pass


@dataclass
class TrailingContentError(ParseError):
    pass


@dataclass
class RecursionLimitError(ParseError):
    backtrackable: ClassVar[bool] = False
