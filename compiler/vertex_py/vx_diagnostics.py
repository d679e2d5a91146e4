#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import List, Optional

from vx_errors import ParseError, DelimiterMismatchError


DIAGNOSTIC_CODE_FAMILIES = {
    "LEX": [
        "LEX-0010",
        "LEX-0040",
        "LEX-0051",
        "LEX-0054",
        "LEX-0059",
        "LEX-0060",
        "LEX-0061",
        "LEX-0062",
        "LEX-0063",
        "LEX-0064",
        "LEX-0065",
    ],
    "PAR": [
        "PAR-0001",  # generic furthest-failure report, no rule-specific message at that token
        "PAR-0010",
        "PAR-0020",
        "PAR-0021",
        "PAR-0022",
        "PAR-0023",
        "PAR-0024",
        "PAR-0030",
        "PAR-0031",
        "PAR-0032",
        "PAR-0033",
        "PAR-0034",
        "PAR-0035",
        "PAR-0036",
        "PAR-0037",
        "PAR-0038",
        "PAR-0039",
        "PAR-0040",
        "PAR-0041",
        "PAR-0042",
        "PAR-0043",
        "PAR-0044",
        "PAR-0045",
        "PAR-0046",
        "PAR-0047",
        "PAR-0048",
        "PAR-0049",
        "PAR-0050",
        "PAR-0051",
        "PAR-0052",
        "PAR-0053",
        "PAR-0054",
        "PAR-0055",
        "PAR-0056",
        "PAR-0057",
        "PAR-0060",
        "PAR-0061",
        "PAR-0070",
        "PAR-0071",
        "PAR-0072",
        "PAR-0080",
        "PAR-0090",
        "PAR-0900",
    ],
    "DRV": [
        "DRV-0010",
        "DRV-0020",
    ],
}


@dataclass
class Diagnostic:
    kind: str  # "error" or "warning"
    message: str
    filename: Optional[str] = None  # file path

    # Primary location (start of the span)
    line: Optional[int] = None
    column: Optional[int] = None

    # Optional end of span (exclusive)
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    # Secondary location, e.g. where an unclosed delimiter was opened
    related_line: Optional[int] = None
    related_column: Optional[int] = None

    # Return the one-line header; snippets are rendered by format_with_snippet
    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += f"{self.filename}"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        if loc:
            loc += ": "
        return f"{loc}{self.kind}: {self.message}"


def diag_from_error(error: ParseError, kind: str = "error") -> Diagnostic:
    diag = Diagnostic(
        kind=kind,
        message=f"syntax: {error.message}",
        filename=error.filename,
        line=error.line,
        column=error.column,
    )
    if isinstance(error, DelimiterMismatchError):
        diag.related_line = error.opening_line
        diag.related_column = error.opening_column
    return diag


def _caret_line(width: int, src_line: str, start_col: int, end_col: int) -> str:
    caret_width = max(1, end_col - start_col)
    # Spaces: same gutter, then (start_col-1) spaces before carets; tabs kept so carets line up
    lead = "".join(c if c == "\t" else " " for c in src_line[:start_col - 1])
    return " " * width + " | " + lead + "^" * caret_width


def format_with_snippet(diag: Diagnostic, source_lines: List[str]) -> str:
    """
    Render a diagnostic as its header line followed by the offending source line
    and a caret marker, e.g.

        demo.vx:3:11: error: syntax: [PAR-0090] expected end-of-line after statement, got '2' instead
            3 |     x = 1 2
              |           ^
    """
    out = [diag.format()]

    if diag.line is None:
        return "\n".join(out)

    line_idx = diag.line - 1
    if not (0 <= line_idx < len(source_lines)):
        return "\n".join(out)

    src_line = source_lines[line_idx]

    # Pretty "N | ..." formatting (calculate width so multi-digit line numbers align)
    width = max(5, len(str(diag.line)))
    out.append(f"{diag.line:>{width}} | " + src_line)

    if diag.column is None:
        return "\n".join(out)

    start_col = max(1, diag.column)
    if diag.end_line is None or diag.end_column is None:
        end_col = start_col
    elif diag.end_line == diag.line:
        end_col = max(start_col, diag.end_column)
    else:
        end_col = len(src_line) + 1
    out.append(_caret_line(width, src_line, start_col, end_col))

    if diag.related_line is not None and diag.related_column is not None:
        out.append(" " * width + f" = note: opened at {diag.related_line}:{diag.related_column}")

    return "\n".join(out)
