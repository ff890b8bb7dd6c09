import pytest

from cfront.source import (
    CompileError,
    SourceFile,
    Token,
    TokenKind,
    error_at,
    error_tok,
    format_error,
    warn_tok,
)
from cfront.unicode import display_width


def _chain(file, spans):
    """Link tokens for (kind, text) pairs found in order in file contents."""
    tokens = []
    pos = 0
    for kind, text in spans:
        raw = text.encode("utf-8")
        loc = file.contents.index(raw, pos) if raw else len(file.contents)
        tokens.append(
            Token(kind, file, loc, len(raw), line_no=file.line_of(loc))
        )
        pos = loc + len(raw)
    for current, following in zip(tokens, tokens[1:]):
        current.next = following
    return tokens


@pytest.fixture
def expr_file():
    return SourceFile("t.c", 1, b"a + b\n")


@pytest.fixture
def expr_tokens(expr_file):
    return _chain(
        expr_file,
        [
            (TokenKind.IDENT, "a"),
            (TokenKind.PUNCT, "+"),
            (TokenKind.IDENT, "b"),
            (TokenKind.EOF, ""),
        ],
    )


def test_display_name_defaults_to_name():
    f = SourceFile("dir/file.c", 3, b"x\n")
    assert f.display_name == "dir/file.c"
    tok = Token(TokenKind.IDENT, f, 0, 1)
    assert tok.filename == f.display_name


def test_line_of_each_line_start():
    contents = b"one\ntwo\nthree\n"
    f = SourceFile("t.c", 1, contents)
    starts = [0] + [i + 1 for i, b in enumerate(contents[:-1]) if b == ord("\n")]
    for number, start in enumerate(starts, start=1):
        assert f.line_of(start) == number


def test_text_and_equal(expr_tokens):
    plus = expr_tokens[1]
    assert plus.text() == "+"
    assert plus.equal("+")
    assert not plus.equal("++")
    assert not plus.equal("")


def test_text_of_utf8_identifier():
    f = SourceFile("u.c", 1, "int π;\n".encode("utf-8"))
    loc = f.contents.index("π".encode("utf-8"))
    tok = Token(TokenKind.IDENT, f, loc, len("π".encode("utf-8")))
    assert tok.text() == "π"
    assert tok.equal("π")


def test_iteration_follows_links(expr_tokens):
    head = expr_tokens[0]
    assert [t.text() for t in head] == ["a", "+", "b", ""]
    assert [t.kind for t in head][-1] is TokenKind.EOF


def test_skip_returns_next(expr_tokens):
    a, plus, b, _ = expr_tokens
    assert plus.skip("+") is b


def test_skip_mismatch_raises(expr_tokens):
    with pytest.raises(CompileError) as info:
        expr_tokens[0].skip(")")
    assert info.value.message == "expected ')'"
    assert "^ expected ')'" in str(info.value)


def test_consume(expr_tokens):
    a, plus, b, _ = expr_tokens
    assert plus.consume("+") == (True, b)
    assert plus.consume("-") == (False, plus)


def test_format_error_layout():
    f = SourceFile("t.c", 1, b"int x = y + 1;\nreturn;\n")
    loc = f.contents.index(b"y")
    report = format_error(f, 1, loc, "undefined variable")
    first, second = report.split("\n")
    prefix = "t.c:1: "
    assert first == prefix + "int x = y + 1;"
    assert second.index("^") == first.index("y", len(prefix))
    assert second.endswith("^ undefined variable")


def test_format_error_wide_characters():
    contents = "日本語 x\n".encode("utf-8")
    f = SourceFile("w.c", 1, contents)
    loc = contents.index(b"x")
    report = format_error(f, 1, loc, "here")
    second = report.split("\n")[1]
    assert second.index("^") == len("w.c:1: ") + display_width(contents, loc)


def test_error_at_reports_line_number():
    f = SourceFile("t.c", 1, b"a\nb\nc\n")
    loc = f.contents.index(b"c")
    with pytest.raises(CompileError) as info:
        error_at(f, loc, "bad")
    report = str(info.value)
    assert report.startswith("t.c:3: c\n")
    assert report.endswith("^ bad")


def test_error_tok_uses_token_line(expr_tokens):
    with pytest.raises(CompileError) as info:
        error_tok(expr_tokens[2], "oops")
    assert info.value.report == format_error(
        expr_tokens[2].file, expr_tokens[2].line_no, expr_tokens[2].loc, "oops"
    )


def test_warn_tok_writes_to_stderr(expr_tokens, capsys):
    report = warn_tok(expr_tokens[0], "careful")
    captured = capsys.readouterr()
    assert captured.err == report + "\n"
    assert report.endswith("^ careful")


def test_compile_error_without_report():
    err = CompileError("boom")
    assert str(err) == "boom"
    assert err.report == err.message