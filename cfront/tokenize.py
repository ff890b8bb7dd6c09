"""Splitting C source text into tokens."""

from __future__ import annotations

import os
import re
import string
import sys

from .literals import (
    StringLiteral,
    convert_pp_number,
    is_keyword,
    read_char_literal,
    read_string_literal,
    read_utf16_string_literal,
    read_utf32_string_literal,
)
from .source import SourceFile, Token, TokenKind, error_at
from .typesys import Type, ty_int, ty_uint, ty_ushort
from .unicode import decode_utf8, encode_utf8, is_ident1, is_ident2

_PUNCTUATORS: tuple[bytes, ...] = tuple(
    op.encode("ascii")
    for op in (
        "<<=", ">>=", "...", "==", "!=", "<=", ">=", "->", "+=", "-=", "*=", "/=",
        "++", "--", "%=", "&=", "|=", "^=", "&&", "||", "<<", ">>", "##",
    )
)
_PUNCT_BYTES = frozenset(string.punctuation.encode("ascii"))
_SPACE_BYTES = frozenset(b" \t\n\v\f\r")
_BOM = b"\xef\xbb\xbf"
_UNIVERSAL_CHAR = re.compile(rb"\\(?:u([0-9a-fA-F]{4})|U([0-9a-fA-F]{8})|.)", re.DOTALL)

_input_files: list[SourceFile] = []


def _byte(data: bytes, pos: int) -> int:
    return data[pos] if 0 <= pos < len(data) else 0


def _is_digit(c: int) -> bool:
    return ord("0") <= c <= ord("9")


def _is_alnum(c: int) -> bool:
    return 0 < c < 128 and chr(c).isalnum()


def read_punct(data: bytes, pos: int) -> int:
    """Length of the punctuator at ``pos``, or 0 if there is none."""
    for op in _PUNCTUATORS:
        if data.startswith(op, pos):
            return len(op)
    return 1 if _byte(data, pos) in _PUNCT_BYTES else 0


def read_ident(data: bytes, pos: int) -> int:
    """Length in bytes of the identifier at ``pos``, or 0 if there is none.

    Raises UnicodeDecodeError on malformed UTF-8.
    """
    c, nxt = decode_utf8(data, pos)
    if not is_ident1(c):
        return 0
    end = nxt
    while True:
        c, nxt = decode_utf8(data, end)
        if not is_ident2(c):
            return end - pos
        end = nxt


class _Lexer:
    """Tokenizer state for one file."""

    def __init__(self, file: SourceFile) -> None:
        self.file = file
        self.data = file.contents
        self.at_bol = True
        self.has_space = False
        self.tokens: list[Token] = []

    def _emit(self, kind: TokenKind, start: int, end: int, **fields: object) -> Token:
        tok = Token(
            kind,
            self.file,
            start,
            end - start,
            at_bol=self.at_bol,
            has_space=self.has_space,
            **fields,
        )
        self.tokens.append(tok)
        self.at_bol = self.has_space = False
        return tok

    def _string(self, start: int, lit: StringLiteral) -> int:
        self._emit(TokenKind.STR, start, lit.end, ty=lit.ty, data=lit.data)
        return lit.end

    def _char(self, start: int, quote: int, ty: Type, kind: str) -> int:
        lit = read_char_literal(self.file, start, quote)
        value = lit.value
        if kind == "plain":
            value &= 0xFF
            if value >= 0x80:
                value -= 0x100
        elif kind == "utf16":
            value &= 0xFFFF
        self._emit(TokenKind.NUM, start, lit.end, val=value, ty=ty)
        return lit.end

    def _pp_number(self, start: int) -> int:
        data = self.data
        pos = start + 1
        while True:
            c = _byte(data, pos)
            if c in b"eEpP" and _byte(data, pos + 1) in b"+-":
                pos += 2
            elif _is_alnum(c) or c == ord("."):
                pos += 1
            else:
                break
        self._emit(TokenKind.PP_NUM, start, pos)
        return pos

    def _step(self, pos: int) -> int:
        data = self.data
        file = self.file
        c = data[pos]

        if data.startswith(b"//", pos):
            end = data.find(b"\n", pos + 2)
            self.has_space = True
            return len(data) if end < 0 else end

        if data.startswith(b"/*", pos):
            end = data.find(b"*/", pos + 2)
            if end < 0:
                error_at(file, pos, "unclosed block comment")
            self.has_space = True
            return end + 2

        if c == ord("\n"):
            self.at_bol = True
            self.has_space = False
            return pos + 1

        if c in _SPACE_BYTES:
            self.has_space = True
            return pos + 1

        if _is_digit(c) or (c == ord(".") and _is_digit(_byte(data, pos + 1))):
            return self._pp_number(pos)

        if c == ord('"'):
            return self._string(pos, read_string_literal(file, pos))
        if data.startswith(b'u8"', pos):
            return self._string(pos, read_string_literal(file, pos + 2))
        if data.startswith(b'u"', pos):
            return self._string(pos, read_utf16_string_literal(file, pos + 1))
        if data.startswith(b'L"', pos):
            return self._string(pos, read_utf32_string_literal(file, pos + 1, ty_int))
        if data.startswith(b'U"', pos):
            return self._string(pos, read_utf32_string_literal(file, pos + 1, ty_uint))

        if c == ord("'"):
            return self._char(pos, pos, ty_int, "plain")
        if data.startswith(b"u'", pos):
            return self._char(pos, pos + 1, ty_ushort, "utf16")
        if data.startswith(b"L'", pos):
            return self._char(pos, pos + 1, ty_int, "wide")
        if data.startswith(b"U'", pos):
            return self._char(pos, pos + 1, ty_uint, "utf32")

        try:
            ident_len = read_ident(data, pos)
        except UnicodeDecodeError as exc:
            error_at(file, exc.start, "invalid UTF-8 sequence")
        if ident_len:
            self._emit(TokenKind.IDENT, pos, pos + ident_len)
            return pos + ident_len

        punct_len = read_punct(data, pos)
        if punct_len:
            self._emit(TokenKind.PUNCT, pos, pos + punct_len)
            return pos + punct_len

        error_at(file, pos, "invalid token")

    def run(self) -> Token:
        data = self.data
        pos = 0
        while pos < len(data) and data[pos] != 0:
            pos = self._step(pos)
        self._emit(TokenKind.EOF, pos, pos)

        for tok, following in zip(self.tokens, self.tokens[1:]):
            tok.next = following

        line = 1
        last = 0
        for tok in self.tokens:
            line += data.count(b"\n", last, tok.loc)
            last = tok.loc
            tok.line_no = line
        return self.tokens[0]


def tokenize(file: SourceFile) -> Token:
    """Tokenize ``file`` and return the first token; the list ends with EOF."""
    return _Lexer(file).run()


def convert_pp_tokens(tok: Token) -> None:
    """Mark keywords and turn pp-numbers into numeric constants, up to EOF."""
    for t in tok:
        if t.kind is TokenKind.EOF:
            break
        if is_keyword(t.text()):
            t.kind = TokenKind.KEYWORD
        elif t.kind is TokenKind.PP_NUM:
            convert_pp_number(t)


def tokenize_string_literal(tok: Token, basety: Type) -> Token:
    """Re-read a plain string token with ``basety`` elements; return the new token."""
    if basety.size == 2:
        lit = read_utf16_string_literal(tok.file, tok.loc)
    else:
        lit = read_utf32_string_literal(tok.file, tok.loc, basety)
    return Token(
        TokenKind.STR,
        tok.file,
        tok.loc,
        lit.end - tok.loc,
        next=tok.next,
        ty=lit.ty,
        data=lit.data,
        filename=tok.filename,
        line_no=tok.line_no,
        line_delta=tok.line_delta,
        at_bol=tok.at_bol,
        has_space=tok.has_space,
    )


def read_file(path: str | os.PathLike[str]) -> bytes | None:
    """Contents of ``path`` ("-" for stdin) ending in a newline, or None."""
    if str(path) == "-":
        contents = sys.stdin.buffer.read()
    else:
        try:
            with open(path, "rb") as fh:
                contents = fh.read()
        except OSError:
            return None
    if not contents.endswith(b"\n"):
        contents += b"\n"
    return contents


def canonicalize_newline(data: bytes) -> bytes:
    """Replace \\r\\n and lone \\r with \\n."""
    return data.replace(b"\r\n", b"\n").replace(b"\r", b"\n")


def remove_backslash_newline(data: bytes) -> bytes:
    """Join lines ending in a backslash, keeping the number of newlines."""
    pieces = data.split(b"\n")
    out = bytearray()
    pending = 0
    for piece in pieces[:-1]:
        if piece.endswith(b"\\"):
            out += piece[:-1]
            pending += 1
        else:
            out += piece
            out += b"\n" * (pending + 1)
            pending = 0
    out += pieces[-1]
    out += b"\n" * pending
    return bytes(out)


def _universal_replacement(match: re.Match[bytes]) -> bytes:
    digits = match.group(1) or match.group(2)
    if digits:
        c = int(digits, 16)
        if c:
            return encode_utf8(c)
    return match.group(0)


def convert_universal_chars(data: bytes) -> bytes:
    """Replace \\u and \\U escapes with the UTF-8 bytes they name."""
    return _UNIVERSAL_CHAR.sub(_universal_replacement, data)


def tokenize_file(path: str | os.PathLike[str]) -> Token | None:
    """Read, normalise and tokenize ``path``; None if it cannot be read."""
    contents = read_file(path)
    if contents is None:
        return None
    if contents.startswith(_BOM):
        contents = contents[len(_BOM):]

    contents = canonicalize_newline(contents)
    contents = remove_backslash_newline(contents)
    contents = convert_universal_chars(contents)

    file = SourceFile(str(path), len(_input_files) + 1, contents)
    _input_files.append(file)
    return tokenize(file)


def get_input_files() -> list[SourceFile]:
    """All files read by tokenize_file so far, in order."""
    return list(_input_files)