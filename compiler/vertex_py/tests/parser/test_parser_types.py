#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from vx_ast import MapType, ScalarType, TupleType, TypeModifier
from vx_driver import parse_fragment
from vx_errors import DelimiterMismatchError, ParseError, StructuralError


def parse_type(src: str):
    return parse_fragment(src, "data_type")


def test_scalar_types_and_modifiers():
    assert parse_type("int") == ScalarType("int")
    assert parse_type("int?") == ScalarType("int", TypeModifier.NULLABLE)
    assert parse_type("int!") == ScalarType("int", TypeModifier.NON_NULL)
    assert parse_type("int[]") == ScalarType("int", TypeModifier.ARRAY)
    assert parse_type("int[16]") == ScalarType("int", TypeModifier.ARRAY, 16)
    assert parse_type("Point[0]") == ScalarType("Point", TypeModifier.ARRAY, 0)


def test_scalar_type_flags():
    t = parse_type("str?")
    assert t.is_nullable and not t.is_array and not t.is_non_null

    t = parse_type("str[2]")
    assert t.is_array and t.array_size == 2


def test_tuple_types():
    assert parse_type("(int)") == TupleType((ScalarType("int"),))
    assert parse_type("(int, str?, bool[])") == TupleType((
        ScalarType("int"),
        ScalarType("str", TypeModifier.NULLABLE),
        ScalarType("bool", TypeModifier.ARRAY),
    ))


def test_map_types_nest():
    assert parse_type("{str: (int, float[])}") == MapType(
        ScalarType("str"),
        TupleType((ScalarType("int"), ScalarType("float", TypeModifier.ARRAY))),
    )
    assert parse_type("{{str: int}: (a, {b: c!})}") == MapType(
        MapType(ScalarType("str"), ScalarType("int")),
        TupleType((ScalarType("a"), MapType(ScalarType("b"), ScalarType("c", TypeModifier.NON_NULL)))),
    )


def test_only_one_modifier_per_scalar():
    with pytest.raises(StructuralError) as excinfo:
        parse_type("int??")

    err = excinfo.value
    assert err.code == "PAR-0001"
    assert err.column == 5


def test_modifiers_do_not_attach_to_tuples_or_maps():
    for src in ("(int)?", "{a: b}[]", "(int)!"):
        with pytest.raises(ParseError):
            parse_type(src)


def test_array_size_must_be_unsigned():
    for src in ("int[-1]", "int[+3]"):
        with pytest.raises(StructuralError) as excinfo:
            parse_type(src)
        assert excinfo.value.code == "PAR-0054"


def test_array_size_must_be_an_integer():
    with pytest.raises(DelimiterMismatchError) as excinfo:
        parse_type("int[1.5]")
    assert excinfo.value.code == "PAR-0055"


def test_unclosed_tuple_reports_opening_paren():
    with pytest.raises(DelimiterMismatchError) as excinfo:
        parse_type("(int, (str, bool)")

    err = excinfo.value
    assert err.code == "PAR-0051"
    assert (err.opening_line, err.opening_column) == (1, 1)
    assert err.opening_offset == 0


def test_map_requires_colon():
    with pytest.raises(StructuralError) as excinfo:
        parse_type("{str int}")
    assert excinfo.value.code == "PAR-0052"


def test_type_spans():
    t = parse_type("{str: int[3]}")

    assert (t.span.start_line, t.span.start_column, t.span.end_line, t.span.end_column) == (1, 1, 1, 14)
    assert (t.value.span.start_column, t.value.span.end_column) == (7, 13)
    assert (t.span.start_offset, t.span.end_offset) == (0, 13)
