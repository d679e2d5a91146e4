#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
Render an AST back into canonical-revision Vertex source.

Output is normalized: four-space indentation, one declaration or statement
per line, `export`/`serial`/`extern` modifiers in grammar order. Parsing the
rendered text yields an AST equal to the input (spans aside).
"""

import math
from decimal import Decimal
from typing import List

from vx_ast import (
    Program, Module, Function, Struct, Arg, Assignment, DataType, ScalarType, TypeModifier, TupleType, MapType,
    Expr, ParenExpr, IntLiteral, FloatLiteral, ExponentLiteral, StringLiteral, BoolLiteral, FuncCall, InnerVar,
    VarRef, Node)
from vx_string_escape import encode_string_literal

INDENT = "    "


def render_program(program: Program) -> str:
    lines: List[str] = []
    for module in program.modules:
        lines.extend(_module_lines(module, 0))
    return "".join(line + "\n" for line in lines)


def render_module(module: Module) -> str:
    return "".join(line + "\n" for line in _module_lines(module, 0))


def render_function(function: Function) -> str:
    return "".join(line + "\n" for line in _function_lines(function, 0))


def render_struct(struct: Struct) -> str:
    return "".join(line + "\n" for line in _struct_lines(struct, 0))


def render_type(data_type: DataType) -> str:
    if isinstance(data_type, ScalarType):
        if data_type.modifier is TypeModifier.ARRAY:
            size = "" if data_type.array_size is None else str(data_type.array_size)
            return f"{data_type.name}[{size}]"
        return data_type.name + data_type.modifier.value
    if isinstance(data_type, TupleType):
        return "(" + ", ".join(render_type(t) for t in data_type.elements) + ")"
    if isinstance(data_type, MapType):
        return "{" + render_type(data_type.key) + ": " + render_type(data_type.value) + "}"
    raise TypeError(f"cannot render data type {type(data_type).__name__}")


def render_expr(expr: Expr) -> str:
    if isinstance(expr, ParenExpr):
        return f"({render_expr(expr.inner)})"
    if isinstance(expr, ExponentLiteral):
        return f"{render_expr(expr.mantissa)}e{expr.exponent}"
    if isinstance(expr, FloatLiteral):
        return _float_text(expr.value)
    if isinstance(expr, BoolLiteral):
        return "true" if expr.value else "false"
    if isinstance(expr, IntLiteral):
        return str(expr.value)
    if isinstance(expr, StringLiteral):
        return encode_string_literal(expr.value, expr.delimiter)
    if isinstance(expr, FuncCall):
        prefix = ("serial " if expr.is_serial else "") + ("extern " if expr.is_extern else "")
        return f"{prefix}{expr.callee}(" + ", ".join(render_expr(a) for a in expr.args) + ")"
    if isinstance(expr, InnerVar):
        return ".".join(expr.path)
    if isinstance(expr, VarRef):
        return expr.name
    raise TypeError(f"cannot render expression {type(expr).__name__}")


def render(node: Node) -> str:
    """Render any declaration, statement, type or expression node."""
    if isinstance(node, Program):
        return render_program(node)
    if isinstance(node, Module):
        return render_module(node)
    if isinstance(node, Function):
        return render_function(node)
    if isinstance(node, Struct):
        return render_struct(node)
    if isinstance(node, Assignment):
        return _assignment_line(node) + "\n"
    if isinstance(node, Arg):
        return _arg_text(node)
    if isinstance(node, DataType):
        return render_type(node)
    return render_expr(node)


# --- helpers ---

def _float_text(value: float) -> str:
    # Positional notation only: an exponent would lex as an exponent literal.
    if math.isinf(value) or math.isnan(value):
        raise ValueError(f"float literal {value!r} has no source form")
    text = format(Decimal(repr(value)), "f")
    if "." not in text:
        text += ".0"
    return text


def _arg_text(arg: Arg) -> str:
    return f"{arg.name}: {render_type(arg.type)}"


def _assignment_line(stmt: Assignment) -> str:
    if stmt.target is None:
        return render_expr(stmt.value)
    return f"{stmt.target} = {render_expr(stmt.value)}"


def _header(name: str, is_export: bool, keyword: str) -> str:
    return f"{name} = " + ("export " if is_export else "") + f"{keyword} {{"


def _module_lines(module: Module, depth: int) -> List[str]:
    ind = INDENT * depth
    lines = [ind + _header(module.name, module.is_export, "mod")]
    for item in module.body:
        lines.extend(_item_lines(item, depth + 1))
    lines.append(ind + "}")
    return lines


def _function_lines(function: Function, depth: int) -> List[str]:
    ind = INDENT * depth
    inner = INDENT * (depth + 1)
    keyword = ("serial " if function.is_serial else "") + "function"
    lines = [
        ind + _header(function.name, function.is_export, keyword),
        inner + "params = (" + ", ".join(_arg_text(a) for a in function.params) + ")",
        inner + "return = (" + ", ".join(_arg_text(a) for a in function.returns) + ")",
    ]
    for item in function.body:
        lines.extend(_item_lines(item, depth + 1))
    lines.append(ind + "}")
    return lines


def _struct_lines(struct: Struct, depth: int) -> List[str]:
    ind = INDENT * depth
    lines = [ind + _header(struct.name, struct.is_export, "struct")]
    lines.extend(INDENT * (depth + 1) + _arg_text(f) for f in struct.fields)
    lines.append(ind + "}")
    return lines


def _item_lines(item: Node, depth: int) -> List[str]:
    if isinstance(item, Module):
        return _module_lines(item, depth)
    if isinstance(item, Function):
        return _function_lines(item, depth)
    if isinstance(item, Struct):
        return _struct_lines(item, depth)
    if isinstance(item, Assignment):
        return [INDENT * depth + _assignment_line(item)]
    raise TypeError(f"cannot render body item {type(item).__name__}")
