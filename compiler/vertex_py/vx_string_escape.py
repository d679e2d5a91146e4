#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""
String escape helpers shared by the parser and the source printer.

The lexer keeps string token text verbatim, delimiters and escape sequences
included (e.g. `"a\\nb"`). This module decodes that lexeme to the literal's
value and encodes a value back to a lexeme for a chosen delimiter.
"""

from dataclasses import dataclass


_HEX_CHARS = "0123456789abcdefABCDEF"
_DELIMITERS = ('"', "'", "`")
_SIMPLE_ESCAPES = {
    "\\": "\\",
    "/": "/",
    '"': '"',
    "'": "'",
    "`": "`",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}
_ENCODE_ESCAPES = {
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


@dataclass(frozen=True)
class EscapeDecodeError(ValueError):
    code: str
    details: str = ""


def decode_string_token(lexeme: str) -> str:
    """
    Decode a string token to its value.

    Input is the complete lexeme, opening and closing delimiter included.
    """
    if len(lexeme) < 2 or lexeme[0] not in _DELIMITERS or lexeme[-1] != lexeme[0]:
        raise EscapeDecodeError("unbalanced_delimiters", lexeme[:1])
    text = lexeme[1:-1]
    out = []
    i = 0

    while i < len(text):
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        i += 1
        if i >= len(text):
            raise EscapeDecodeError("dangling_backslash")

        esc = text[i]

        if esc in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[esc])
            i += 1
            continue

        if esc == "u":
            digits = text[i + 1:i + 5]
            if len(digits) != 4 or any(c not in _HEX_CHARS for c in digits):
                raise EscapeDecodeError("invalid_unicode_escape", "\\u")
            value = int(digits, 16)
            if 0xD800 <= value <= 0xDFFF:
                raise EscapeDecodeError("unicode_surrogate", "\\u" + digits)
            out.append(chr(value))
            i += 5
            continue

        raise EscapeDecodeError("unknown_escape", f"\\{esc}")

    return "".join(out)


def encode_string_literal(value: str, delimiter: str = '"') -> str:
    """
    Encode a value into a string lexeme (delimiters included) that decodes back to it.
    """
    if delimiter not in _DELIMITERS:
        raise ValueError(f"invalid string delimiter {delimiter!r}")
    parts = [delimiter]
    for ch in value:
        if ch == delimiter:
            parts.append("\\" + ch)
        elif ch in _ENCODE_ESCAPES:
            parts.append(_ENCODE_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(ch)
    parts.append(delimiter)
    return "".join(parts)
