#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from textwrap import dedent

import pytest

from vx_context import CompilationContext
from vx_driver import parse, parse_fragment
from vx_errors import (
    DelimiterMismatchError, LexicalError, ParseError, RecursionLimitError, StructuralError, TrailingContentError)
from vx_lexer import Lexer
from vx_parser import Parser


def parse_error(src: str, context: CompilationContext | None = None) -> ParseError:
    with pytest.raises(ParseError) as excinfo:
        parse(dedent(src), "main.vx", context)
    return excinfo.value


def test_top_level_statement_is_rejected():
    err = parse_error("x = 1\n")

    assert isinstance(err, (StructuralError, TrailingContentError))
    assert err.code == "PAR-0022"
    assert (err.line, err.column) == (1, 5)


def test_trailing_content_after_last_module():
    err = parse_error(
        """\
        M = mod {
        }
        }
        """
    )

    assert isinstance(err, TrailingContentError)
    assert err.code == "PAR-0010"
    assert (err.line, err.column) == (3, 1)
    assert err.filename == "main.vx"


def test_furthest_failure_lists_every_expected_alternative():
    err = parse_error("M = {\n}\n")

    assert err.code == "PAR-0022"
    assert err.expected == ["'export'", "'mod'"]
    assert "(expected one of: 'export', 'mod')" in err.message
    assert "got '{' instead" in err.message


def test_furthest_failure_wins_over_earlier_alternatives():
    err = parse_error(
        """\
        M = mod {
            F = function {
                params = ()
                return = ()
                x = 1 2
            }
        }
        """
    )

    assert isinstance(err, StructuralError)
    assert err.code == "PAR-0090"
    assert (err.line, err.column) == (5, 15)
    assert err.format() == "main.vx:5:15: [PAR-0090] expected end-of-line after statement, got '2' instead"


def test_missing_return_section():
    err = parse_error(
        """\
        M = mod {
            F = function {
                params = ()
            }
        }
        """
    )
    assert err.code == "PAR-0036"
    assert (err.line, err.column) == (4, 5)


def test_unclosed_struct_reports_opening_brace():
    err = parse_error(
        """\
        M = mod {
            S = struct {
                a: int
        """
    )

    assert isinstance(err, DelimiterMismatchError)
    assert err.code == "PAR-0049"
    assert (err.opening_line, err.opening_column) == (2, 16)
    assert "opened at 2:16" in err.message
    assert (err.line, err.column) == (4, 1)


def test_function_needs_line_break_after_closing_brace():
    err = parse_error(
        """\
        M = mod {
            F = function {
                params = ()
                return = ()
            } G = function {
                params = ()
                return = ()
            }
        }
        """
    )
    assert err.code == "PAR-0039"


def test_lexical_error_anywhere_takes_precedence():
    err = parse_error(
        """\
        M = mod {
            F = function {
                params = ()
                return = ()
                x = "a"b"
            }
        }
        """
    )

    assert isinstance(err, DelimiterMismatchError)
    assert err.code == "LEX-0010"
    assert (err.opening_line, err.opening_column) == (5, 17)


def test_lexical_error_before_any_module():
    err = parse_error("M = mod {\n x = 1.2.3\n}\n")
    assert isinstance(err, LexicalError)
    assert err.code == "LEX-0062"


def test_deeply_nested_modules_hit_recursion_limit():
    depth = 10_000
    src = "".join(f"M{i} = mod {{\n" for i in range(depth)) + "}\n" * depth

    err = parse_error(src)

    assert isinstance(err, RecursionLimitError)
    assert err.code == "PAR-0900"
    assert err.line == 101


def test_deeply_nested_expressions_hit_recursion_limit():
    with pytest.raises(RecursionLimitError):
        parse_fragment("(" * 10_000 + "1" + ")" * 10_000, "expr")


def test_nesting_limit_is_configurable():
    src = "(" * 5 + "1" + ")" * 5
    ctx = CompilationContext(max_nesting_depth=3)

    with pytest.raises(RecursionLimitError) as excinfo:
        parse_fragment(src, "expr", context=ctx)
    assert "nested deeper than 3 levels" in excinfo.value.message

    assert parse_fragment(src, "expr", context=CompilationContext(max_nesting_depth=5)) is not None


def test_native_recursion_error_becomes_recursion_limit_error():
    ctx = CompilationContext(max_nesting_depth=1_000_000)

    with pytest.raises(RecursionLimitError) as excinfo:
        parse_fragment("(" * 10_000 + "1" + ")" * 10_000, "expr", context=ctx)
    assert excinfo.value.code == "PAR-0900"


def test_errors_are_deterministic():
    src = "M = mod {\n S = struct {\n a int\n }\n}\n"

    with pytest.raises(ParseError) as first:
        parse(src)
    with pytest.raises(ParseError) as second:
        parse(src)

    assert first.value == second.value
    assert str(first.value) == str(second.value)


def test_default_filename_in_errors():
    with pytest.raises(ParseError) as excinfo:
        parse("}")
    assert excinfo.value.filename == "<input>"
    assert str(excinfo.value).startswith("<input>:1:1: [PAR-0010]")


def test_unknown_fragment_rule():
    with pytest.raises(ValueError):
        parse_fragment("x", "statement")


def test_parser_over_pre_lexed_tokens():
    tokens = Lexer.from_source("M = mod {\n}\n").tokenize()
    prog = Parser(tokens, "pre.vx").parse_program()

    assert [m.name for m in prog.modules] == ["M"]
    assert prog.filename == "pre.vx"
