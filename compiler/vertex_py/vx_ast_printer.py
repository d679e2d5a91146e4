#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import is_dataclass, fields
from enum import Enum
from typing import List, Any

from vx_ast import Span, Node, Program


def _format_span(span: Span | None) -> str:
    if span is None:
        return ""
    return f" @{span.start_line}:{span.start_column}-{span.end_line}:{span.end_column}"


def _is_child(value: Any) -> bool:
    if isinstance(value, Node):
        return True
    return isinstance(value, tuple) and any(isinstance(elem, Node) for elem in value)


def _format_scalar(value: Any) -> str:
    if isinstance(value, Enum):
        return value.name
    return repr(value)


def format_node(node: Any, indent: int = 0) -> List[str]:
    """
    Generic, reflection-based AST pretty-printer.

    - Shows the node class name.
    - Prints simple scalar fields inline (excluding `span`); enums by member name,
      None and empty tuples omitted.
    - Recursively prints child Node / tuple-of-Node fields on new indented lines.
    - Appends a concise span annotation like `@1:1-7:1` when available.
    """
    ind = "  " * indent

    # Sequences: print each element at same indentation
    if isinstance(node, (list, tuple)):
        lines: List[str] = []
        for elem in node:
            lines.extend(format_node(elem, indent))
        return lines

    if isinstance(node, Node) and is_dataclass(node):
        data_fields = [f for f in fields(node) if f.name not in ("span", "filename")]
        simple_parts = []
        child_fields = []

        for f in data_fields:
            value = getattr(node, f.name)
            if _is_child(value):
                child_fields.append((f.name, value))
            elif value is not None and value != ():
                simple_parts.append((f.name, value))

        # Header: ClassName(field1=..., field2=...) @line:col-line:col
        header = node.__class__.__name__
        if simple_parts:
            inner = ", ".join(f"{name}={_format_scalar(value)}" for name, value in simple_parts)
            header = f"{header}({inner})"
        header += _format_span(node.span)

        lines = [ind + header]

        for name, value in child_fields:
            lines.append(ind + "  " + f"{name}:")
            if isinstance(value, tuple):
                for elem in value:
                    lines.extend(format_node(elem, indent + 2))
            else:
                lines.extend(format_node(value, indent + 2))

        return lines

    return [ind + repr(node)]


def format_program(program: Program) -> str:
    """
    Convenience: pretty-print a whole Program as a string.
    """
    return "\n".join(format_node(program, indent=0))
