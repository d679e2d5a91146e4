#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import math

import pytest

from vx_ast import (
    BoolLiteral, ExponentLiteral, FloatLiteral, FuncCall, InnerVar, IntLiteral, ParenExpr, StringLiteral, VarRef)
from vx_driver import parse_fragment
from vx_errors import DelimiterMismatchError, StructuralError, UnterminatedStringError


def parse_expr(src: str):
    return parse_fragment(src, "expr")


@pytest.mark.parametrize(
    "src, expected",
    [
        ("42", IntLiteral(42)),
        ("-7", IntLiteral(-7)),
        ("+3", IntLiteral(3)),
        ("1.5", FloatLiteral(1.5)),
        (".5", FloatLiteral(0.5)),
        ("5.", FloatLiteral(5.0)),
        ("-0.25", FloatLiteral(-0.25)),
        ("true", BoolLiteral(True)),
        ("false", BoolLiteral(False)),
        ("'hi'", StringLiteral("hi", "'")),
        ('"hi"', StringLiteral("hi", '"')),
    ],
)
def test_literals(src, expected):
    assert parse_expr(src) == expected


def test_exponent_literals():
    node = parse_expr("1e3")
    assert node == ExponentLiteral(IntLiteral(1), 3)
    assert node.value == 1000.0

    node = parse_expr("-2.5E-3")
    assert node == ExponentLiteral(FloatLiteral(-2.5), -3)
    assert node.value == -0.0025

    assert parse_expr(".5e+2") == ExponentLiteral(FloatLiteral(0.5), 2)


def test_exponent_literal_values_saturate():
    assert parse_expr("1e400").value == math.inf
    assert parse_expr("-2.5e9223372036854775807").value == -math.inf
    assert parse_expr("1e-400").value == 0.0
    assert parse_expr("7e-9223372036854775808").value == 0.0
    assert parse_expr("0e9223372036854775807").value == 0.0
    assert parse_expr("1.5e308").value == 1.5e308


def test_bool_needs_a_word_boundary():
    assert parse_expr("trueish") == VarRef("trueish")
    assert parse_expr("false_") == VarRef("false_")


def test_string_escapes_are_decoded():
    assert parse_expr("`a\\nb`") == StringLiteral("a\nb", "`")
    assert parse_expr('"a\\"b"') == StringLiteral('a"b', '"')
    assert parse_expr('"\\u0041\\t"') == StringLiteral("A\t", '"')


def test_unescaped_delimiter_ends_the_string():
    with pytest.raises(DelimiterMismatchError) as excinfo:
        parse_expr('"a"b"')

    err = excinfo.value
    assert isinstance(err, UnterminatedStringError)
    assert (err.opening_line, err.opening_column) == (1, 5)


def test_function_calls():
    assert parse_expr("f()") == FuncCall("f", ())
    assert parse_expr("f(1, x.y, g(2))") == FuncCall(
        "f",
        (IntLiteral(1), InnerVar(("x", "y")), FuncCall("g", (IntLiteral(2),))),
    )


def test_call_modifiers():
    assert parse_expr("serial f(1)") == FuncCall("f", (IntLiteral(1),), is_serial=True)
    assert parse_expr("extern f()") == FuncCall("f", (), is_extern=True)
    assert parse_expr("serial extern f()") == FuncCall("f", (), is_serial=True, is_extern=True)


def test_call_without_parentheses_is_a_variable():
    assert parse_expr("serial") == VarRef("serial")
    assert parse_expr("extern") == VarRef("extern")


def test_inner_variables():
    assert parse_expr("a.b") == InnerVar(("a", "b"))
    assert parse_expr("a.b.c.d") == InnerVar(("a", "b", "c", "d"))
    assert parse_expr("a") == VarRef("a")


def test_dangling_dot_is_an_error():
    with pytest.raises(StructuralError) as excinfo:
        parse_expr("a.")

    err = excinfo.value
    assert err.code == "PAR-0001"
    assert err.column == 3
    assert err.expected == ["identifier"]


def test_parenthesized_expressions_nest():
    assert parse_expr("(((1)))") == ParenExpr(ParenExpr(ParenExpr(IntLiteral(1))))
    assert parse_expr("f((a), (g()))") == FuncCall("f", (ParenExpr(VarRef("a")), ParenExpr(FuncCall("g", ()))))


def test_trailing_comma_in_arguments_is_rejected():
    with pytest.raises(StructuralError) as excinfo:
        parse_expr("f(1,)")

    err = excinfo.value
    assert err.code == "PAR-0060"
    assert err.column == 5


def test_unclosed_call_reports_opening_paren():
    with pytest.raises(DelimiterMismatchError) as excinfo:
        parse_expr("outer(inner(1)")

    err = excinfo.value
    assert err.code == "PAR-0072"
    assert (err.opening_line, err.opening_column) == (1, 6)


def test_call_spans_cover_modifiers_and_arguments():
    node = parse_expr("serial f(a, 1)")

    assert (node.span.start_column, node.span.end_column) == (1, 15)
    assert [(a.span.start_column, a.span.end_column) for a in node.args] == [(10, 11), (13, 14)]
