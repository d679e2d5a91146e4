#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from vx_ast import Program, Node
from vx_context import CompilationContext
from vx_diagnostics import Diagnostic, diag_from_error, format_with_snippet
from vx_errors import ParseError, RecursionLimitError
from vx_logger import log_debug, log_error, log_info, log_stage
from vx_parser import Parser


FRAGMENT_RULES = {
    "module": "parse_module",
    "function": "parse_function",
    "struct": "parse_struct",
    "assignment": "parse_assignment",
    "data_type": "parse_data_type",
    "expr": "parse_expr",
}


def _recursion_limit_error(filename: Optional[str]) -> RecursionLimitError:
    return RecursionLimitError("[PAR-0900] input nested too deeply to parse", filename)


def parse(text: str, filename: Optional[str] = None, context: Optional[CompilationContext] = None) -> Program:
    """
    Parse a whole source unit.

    Returns the Program on success; raises a ParseError subclass describing the
    furthest failure otherwise.
    """
    parser = Parser.from_source(text, filename, context)
    try:
        return parser.parse_program()
    except RecursionError as e:
        raise _recursion_limit_error(parser.filename) from e


def parse_fragment(text: str, rule: str, filename: Optional[str] = None,
                   context: Optional[CompilationContext] = None) -> Node:
    """
    Parse text as a single grammar rule (see FRAGMENT_RULES), e.g.
    `parse_fragment("f(1, x.y)", "expr")`. The rule must consume the whole input.
    """
    if rule not in FRAGMENT_RULES:
        raise ValueError(f"unknown grammar rule '{rule}', expected one of: {', '.join(FRAGMENT_RULES)}")
    parser = Parser.from_source(text, filename, context)
    rule_method = getattr(parser, FRAGMENT_RULES[rule])
    try:
        return parser.parse_fragment(rule_method)
    except RecursionError as e:
        raise _recursion_limit_error(parser.filename) from e


@dataclass
class ParseResult:
    """
    Front-end result for one source unit.

    Contains:
      - the parsed program (None when parsing failed)
      - the compilation context used
      - the source text, kept for diagnostics snippets
      - diagnostics (at most one syntax error; parsing stops at the first failure)
    """
    program: Optional[Program] = None
    context: CompilationContext = field(default_factory=CompilationContext.default)
    source: Optional[str] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.diagnostics)

    def format_diagnostics(self) -> str:
        lines = self.source.splitlines() if self.source is not None else []
        return "\n".join(format_with_snippet(d, lines) for d in self.diagnostics)


class VertexDriver:
    """
    Front-end driver:
      - read file
      - lex and parse (lexing happens on demand inside the parser)
      - turn failures into diagnostics

    Entry points:
      - parse_source(text, filename): parse an in-memory source unit.
      - parse_file(path): read and parse a file; results are cached by path.
    """

    def __init__(self, context: CompilationContext | None = None):
        self.context = context or CompilationContext.default()
        # Programs successfully parsed from files (by resolved path).
        self.program_cache: Dict[Path, Program] = {}

    # --- Public API ---

    def parse_source(self, text: str, filename: str = "<input>") -> ParseResult:
        result = ParseResult(context=self.context, source=text)

        log_stage(self.context, "Parsing", filename)
        log_debug(self.context, f"Grammar revision: {self.context.grammar_revision.value}, "
                                f"max nesting depth: {self.context.max_nesting_depth}")
        try:
            result.program = parse(text, filename, self.context)
        except ParseError as e:
            diag = diag_from_error(e)
            result.diagnostics.append(diag)
            log_error(self.context, diag.format())
            return result

        modules = result.program.modules
        log_info(self.context, f"Parsed {len(modules)} top-level module(s) from {filename}"
                               + (f": {', '.join(m.name for m in modules)}" if modules else ""))
        return result

    def parse_file(self, path: Union[str, Path]) -> ParseResult:
        path = Path(path)
        key = path.resolve()
        if key in self.program_cache:
            log_debug(self.context, f"'{path}' already parsed (cache hit)")
            return ParseResult(program=self.program_cache[key], context=self.context)

        try:
            text = self._read_source(path)
        except FileNotFoundError as e:
            return self._driver_error(f"file: [DRV-0010] {e}")
        except (OSError, UnicodeDecodeError) as e:
            return self._driver_error(f"input: [DRV-0020] cannot read '{path}': {e}")

        result = self.parse_source(text, filename=str(path))
        if result.program is not None:
            self.program_cache[key] = result.program
        return result

    # --- Internal helpers ---

    def _read_source(self, path: Path) -> str:
        if not path.exists():
            raise FileNotFoundError(f"Vertex source file not found: {path}")
        log_debug(self.context, f"Reading {path}")
        return path.read_text(encoding="utf-8")

    def _driver_error(self, message: str) -> ParseResult:
        diag = Diagnostic(kind="error", message=message)
        log_error(self.context, diag.format())
        return ParseResult(context=self.context, diagnostics=[diag])
