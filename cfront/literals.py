"""Character, string and numeric literals."""

from __future__ import annotations

import re
import struct
from typing import NamedTuple

from .source import SourceFile, Token, TokenKind, error_at, error_tok
from .typesys import (
    Type,
    array_of,
    ty_char,
    ty_double,
    ty_float,
    ty_int,
    ty_ldouble,
    ty_long,
    ty_uint,
    ty_ulong,
    ty_ushort,
)
from .unicode import decode_utf8

_HEX_DIGITS = "0123456789abcdefABCDEF"
_DIGITS_FOR_BASE = {
    2: "01",
    8: "01234567",
    10: "0123456789",
    16: _HEX_DIGITS,
}

_KEYWORDS = frozenset({
    "return", "if", "else", "for", "while", "int", "sizeof", "char", "struct",
    "union", "short", "long", "void", "typedef", "_Bool", "enum", "static", "goto",
    "break", "continue", "switch", "case", "default", "extern", "_Alignof", "_Alignas", "do",
    "signed", "unsigned", "const", "volatile", "auto", "register", "restrict", "__restrict",
    "__restrict__", "_Noreturn", "float", "double", "typeof", "asm", "_Thread_local",
    "__thread", "_Atomic", "__attribute__",
})

_SIMPLE_ESCAPES = {
    ord("a"): 7,
    ord("b"): 8,
    ord("t"): 9,
    ord("n"): 10,
    ord("v"): 11,
    ord("f"): 12,
    ord("r"): 13,
    ord("e"): 27,  # GNU extension: ASCII escape
}

_LL_UNSIGNED = frozenset({"LLU", "LLu", "llU", "llu", "ULL", "Ull", "uLL", "ull"})

_HEX_FLOAT = re.compile(
    r"0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)(?:[pP][+-]?[0-9]+)?"
)
_DEC_FLOAT = re.compile(r"(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class StringLiteral(NamedTuple):
    """Encoded contents (terminator included), array type and end offset."""

    data: bytes
    ty: Type
    end: int


class CharLiteral(NamedTuple):
    """Value of a character literal and the offset just past its closing quote."""

    value: int
    end: int


def _byte(data: bytes, pos: int) -> int:
    return data[pos] if 0 <= pos < len(data) else 0


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _decode(file: SourceFile, pos: int) -> tuple[int, int]:
    try:
        return decode_utf8(file.contents, pos)
    except UnicodeDecodeError:
        error_at(file, pos, "invalid UTF-8 sequence")


def from_hex(c: int) -> int:
    """Value of the hexadecimal digit whose character code is ``c``."""
    if ord("0") <= c <= ord("9"):
        return c - ord("0")
    if ord("a") <= c <= ord("f"):
        return c - ord("a") + 10
    return c - ord("A") + 10


def _is_octal(c: int) -> bool:
    return ord("0") <= c <= ord("7")


def _is_xdigit(c: int) -> bool:
    return 0 < c < 128 and chr(c) in _HEX_DIGITS


def read_escaped_char(file: SourceFile, pos: int) -> tuple[int, int]:
    """Read the escape sequence after a backslash; return (value, next offset)."""
    data = file.contents
    c = _byte(data, pos)

    if _is_octal(c):
        value = c - ord("0")
        pos += 1
        for _ in range(2):
            c = _byte(data, pos)
            if not _is_octal(c):
                break
            value = (value << 3) + (c - ord("0"))
            pos += 1
        return value, pos

    if c == ord("x"):
        pos += 1
        if not _is_xdigit(_byte(data, pos)):
            error_at(file, pos, "invalid hex escape sequence")
        value = 0
        while _is_xdigit(_byte(data, pos)):
            value = (value << 4) + from_hex(data[pos])
            pos += 1
        return _to_int32(value), pos

    if c in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[c], pos + 1
    return (c - 256 if c >= 128 else c), pos + 1


def string_literal_end(file: SourceFile, pos: int) -> int:
    """Offset of the double quote closing a literal whose body starts at ``pos``."""
    data = file.contents
    start = pos
    while True:
        c = _byte(data, pos)
        if c == ord('"'):
            return pos
        if c in (ord("\n"), 0):
            error_at(file, start, "unclosed string literal")
        if c == ord("\\"):
            pos += 1
        pos += 1


def read_string_literal(file: SourceFile, quote: int) -> StringLiteral:
    """Read a narrow string literal whose opening quote is at ``quote``."""
    data = file.contents
    end = string_literal_end(file, quote + 1)
    buf = bytearray()
    pos = quote + 1
    while pos < end:
        if data[pos] == ord("\\"):
            value, pos = read_escaped_char(file, pos + 1)
            buf.append(value & 0xFF)
        else:
            buf.append(data[pos])
            pos += 1
    buf.append(0)
    return StringLiteral(bytes(buf), array_of(ty_char, len(buf)), end + 1)


def read_utf16_string_literal(file: SourceFile, quote: int) -> StringLiteral:
    """Read a string literal and encode it as UTF-16 code units."""
    data = file.contents
    end = string_literal_end(file, quote + 1)
    units: list[int] = []
    pos = quote + 1
    while pos < end:
        if data[pos] == ord("\\"):
            value, pos = read_escaped_char(file, pos + 1)
            units.append(value & 0xFFFF)
            continue
        c, pos = _decode(file, pos)
        if c < 0x10000:
            units.append(c)
        else:
            c -= 0x10000
            units.append(0xD800 + ((c >> 10) & 0x3FF))
            units.append(0xDC00 + (c & 0x3FF))
    units.append(0)
    encoded = struct.pack(f"<{len(units)}H", *units)
    return StringLiteral(encoded, array_of(ty_ushort, len(units)), end + 1)


def read_utf32_string_literal(file: SourceFile, quote: int, elem_ty: Type) -> StringLiteral:
    """Read a string literal and encode it as 32-bit code points of ``elem_ty``."""
    data = file.contents
    end = string_literal_end(file, quote + 1)
    units: list[int] = []
    pos = quote + 1
    while pos < end:
        if data[pos] == ord("\\"):
            value, pos = read_escaped_char(file, pos + 1)
            units.append(value & 0xFFFFFFFF)
        else:
            c, pos = _decode(file, pos)
            units.append(c)
    units.append(0)
    encoded = struct.pack(f"<{len(units)}I", *units)
    return StringLiteral(encoded, array_of(elem_ty, len(units)), end + 1)


def read_char_literal(file: SourceFile, start: int, quote: int) -> CharLiteral:
    """Read a character literal; ``start`` is where its token begins."""
    data = file.contents
    pos = quote + 1
    if _byte(data, pos) == 0:
        error_at(file, start, "unclosed char literal")

    if data[pos] == ord("\\"):
        value, pos = read_escaped_char(file, pos + 1)
    else:
        value, pos = _decode(file, pos)
        value = _to_int32(value)

    close = data.find(b"'", pos)
    nul = data.find(b"\0", pos)
    if close < 0 or 0 <= nul < close:
        error_at(file, pos, "unclosed char literal")
    return CharLiteral(value, close + 1)


def is_keyword(text: str) -> bool:
    """True if ``text`` is a reserved word."""
    return text in _KEYWORDS


def _strtoul(text: str, pos: int, base: int) -> tuple[int, int]:
    digits = _DIGITS_FOR_BASE[base]
    if (
        base == 16
        and text[pos:pos + 2].lower() == "0x"
        and pos + 2 < len(text)
        and text[pos + 2] in _HEX_DIGITS
    ):
        pos += 2
    start = pos
    while pos < len(text) and text[pos] in digits:
        pos += 1
    if pos == start:
        return 0, start
    value = min(int(text[start:pos], base), (1 << 64) - 1)
    if value >= 1 << 63:
        value -= 1 << 64
    return value, pos


def convert_pp_int(tok: Token) -> bool:
    """Turn a pp-number into an integer constant; False if it is not one."""
    text = tok.text()
    size = len(text)

    base = 10
    pos = 0
    prefix = text[:2].lower()
    if prefix == "0x" and size > 2 and text[2] in _HEX_DIGITS:
        pos, base = 2, 16
    elif prefix == "0b" and size > 2 and text[2] in "01":
        pos, base = 2, 2
    elif text.startswith("0"):
        base = 8

    val, pos = _strtoul(text, pos, base)

    rest = text[pos:]
    is_long = is_unsigned = False
    if rest[:3] in _LL_UNSIGNED:
        pos += 3
        is_long = is_unsigned = True
    elif rest[:2].lower() in ("lu", "ul"):
        pos += 2
        is_long = is_unsigned = True
    elif rest[:2] in ("LL", "ll"):
        pos += 2
        is_long = True
    elif rest[:1] in ("L", "l"):
        pos += 1
        is_long = True
    elif rest[:1] in ("U", "u"):
        pos += 1
        is_unsigned = True

    if pos != size:
        return False

    if base == 10:
        if is_long and is_unsigned:
            ty = ty_ulong
        elif is_long:
            ty = ty_long
        elif is_unsigned:
            ty = ty_ulong if val >> 32 else ty_uint
        else:
            ty = ty_long if val >> 31 else ty_int
    else:
        if is_long and is_unsigned:
            ty = ty_ulong
        elif is_long:
            ty = ty_ulong if val >> 63 else ty_long
        elif is_unsigned:
            ty = ty_ulong if val >> 32 else ty_uint
        elif val >> 63:
            ty = ty_ulong
        elif val >> 32:
            ty = ty_long
        elif val >> 31:
            ty = ty_uint
        else:
            ty = ty_int

    tok.kind = TokenKind.NUM
    tok.val = val
    tok.ty = ty
    return True


def _strtold(text: str) -> tuple[float, int]:
    match = _HEX_FLOAT.match(text)
    if match is not None:
        try:
            return float.fromhex(match.group()), match.end()
        except OverflowError:
            return float("inf"), match.end()
    match = _DEC_FLOAT.match(text)
    if match is not None:
        return float(match.group()), match.end()
    return 0.0, 0


def convert_pp_number(tok: Token) -> None:
    """Turn a pp-number into an integer or floating constant, or raise."""
    if convert_pp_int(tok):
        return

    text = tok.text()
    val, end = _strtold(text)
    suffix = text[end:end + 1]
    if suffix in ("f", "F"):
        ty = ty_float
        end += 1
    elif suffix in ("l", "L"):
        ty = ty_ldouble
        end += 1
    else:
        ty = ty_double

    if end != len(text):
        error_tok(tok, "invalid numeric constant")

    tok.kind = TokenKind.NUM
    tok.fval = val
    tok.ty = ty