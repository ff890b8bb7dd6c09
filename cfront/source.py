"""Source files, tokens and compiler diagnostics."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from typing import Any, Iterator, NoReturn

from .unicode import display_width


class TokenKind(enum.Enum):
    """Kinds of token produced by the tokenizer."""

    IDENT = enum.auto()
    PUNCT = enum.auto()
    KEYWORD = enum.auto()
    STR = enum.auto()
    NUM = enum.auto()
    PP_NUM = enum.auto()
    EOF = enum.auto()


class CompileError(Exception):
    """A diagnostic that stops compilation."""

    def __init__(self, message: str, report: str | None = None) -> None:
        super().__init__(report if report is not None else message)
        self.message = message
        self.report = report if report is not None else message

    def __str__(self) -> str:
        return self.report


@dataclass(eq=False)
class SourceFile:
    """One input file and its (normalised) contents."""

    name: str
    file_no: int
    contents: bytes
    display_name: str | None = None
    line_delta: int = 0

    def __post_init__(self) -> None:
        if self.display_name is None:
            self.display_name = self.name

    def line_of(self, loc: int) -> int:
        """1-based line number of byte offset ``loc``."""
        return self.contents.count(b"\n", 0, loc) + 1


@dataclass(eq=False, repr=False)
class Token:
    """A token; tokens form a singly linked list through ``next``."""

    kind: TokenKind
    file: SourceFile
    loc: int
    length: int
    next: Token | None = None
    val: int = 0
    fval: float = 0.0
    ty: Any = None
    data: bytes | None = None
    filename: str | None = None
    line_no: int = 0
    line_delta: int = 0
    at_bol: bool = False
    has_space: bool = False
    hideset: Any = None
    origin: Token | None = None

    def __post_init__(self) -> None:
        if self.filename is None:
            self.filename = self.file.display_name

    def _raw(self) -> bytes:
        return self.file.contents[self.loc:self.loc + self.length]

    def text(self) -> str:
        """The token's spelling in the source."""
        return self._raw().decode("utf-8", errors="replace")

    def equal(self, op: str) -> bool:
        """True if the token is spelled exactly ``op``."""
        return self._raw() == op.encode("utf-8")

    def skip(self, op: str) -> Token | None:
        """Require the token to be ``op`` and return the one after it."""
        if not self.equal(op):
            error_tok(self, f"expected '{op}'")
        return self.next

    def consume(self, op: str) -> tuple[bool, Token]:
        """Return (matched, rest): rest is the next token if matched, else self."""
        if self.equal(op) and self.next is not None:
            return True, self.next
        return False, self

    def __iter__(self) -> Iterator[Token]:
        tok: Token | None = self
        while tok is not None:
            yield tok
            tok = tok.next

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text()!r}, line={self.line_no})"


def format_error(file: SourceFile, line_no: int, loc: int, message: str) -> str:
    """Render a message pointing at ``loc`` with a caret under the source line."""
    data = file.contents
    loc = max(0, min(loc, len(data)))
    line_start = data.rfind(b"\n", 0, loc) + 1
    ends = [i for i in (data.find(b"\n", loc), data.find(b"\0", loc)) if i >= 0]
    line_end = min(ends, default=len(data))

    prefix = f"{file.name}:{line_no}: "
    indent = len(prefix.encode("utf-8"))
    try:
        column = display_width(data[line_start:], loc - line_start)
    except UnicodeDecodeError:
        column = loc - line_start

    line = data[line_start:line_end].decode("utf-8", errors="replace")
    return f"{prefix}{line}\n{' ' * (indent + column)}^ {message}"


def error_at(file: SourceFile, loc: int, message: str) -> NoReturn:
    """Raise a CompileError pointing at byte offset ``loc`` of ``file``."""
    raise CompileError(message, format_error(file, file.line_of(loc), loc, message))


def error_tok(tok: Token, message: str) -> NoReturn:
    """Raise a CompileError pointing at ``tok``."""
    raise CompileError(message, format_error(tok.file, tok.line_no, tok.loc, message))


def warn_tok(tok: Token, message: str) -> str:
    """Write a warning pointing at ``tok`` to stderr and return its text."""
    report = format_error(tok.file, tok.line_no, tok.loc, message)
    print(report, file=sys.stderr)
    return report