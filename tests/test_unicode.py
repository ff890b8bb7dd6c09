import pytest

from cfront.unicode import (
    char_width,
    decode_utf8,
    display_width,
    encode_utf8,
    is_ident1,
    is_ident2,
)


@pytest.mark.parametrize(
    "text, escaped",
    [
        ("αβγ", [0x03B1, 0x03B2, 0x03B3]),
        ("日本語", [0x65E5, 0x672C, 0x8A9E]),
        ("🌮", [0x1F32E]),
    ],
)
def test_encode_matches_universal_escapes(text, escaped):
    assert b"".join(encode_utf8(c) for c in escaped) == text.encode("utf-8")


@pytest.mark.parametrize(
    "char, code",
    [("a", 97), ("β", 946), ("あ", 12354), ("🍣", 127843)],
)
def test_decode_known_code_points(char, code):
    data = char.encode("utf-8")
    value, end = decode_utf8(data, 0)
    assert value == code
    assert end == len(data)


@pytest.mark.parametrize("code", [0, 0x41, 0x7F, 0x80, 0x7FF, 0x800, 0xFFFF, 0x10000, 0x10FFFF])
def test_encode_decode_round_trip(code):
    encoded = encode_utf8(code)
    assert decode_utf8(encoded, 0) == (code, len(encoded))


def test_encode_agrees_with_python_codec():
    for code in (0x24, 0xBE, 0x3C0, 0x3042, 0x1F363):
        assert encode_utf8(code) == chr(code).encode("utf-8")


def test_decode_sequence_advances_through_text():
    data = "aβ🍣".encode("utf-8")
    pos = 0
    decoded = []
    while pos < len(data):
        c, pos = decode_utf8(data, pos)
        decoded.append(c)
    assert decoded == [ord("a"), 946, 127843]


def test_decode_past_end_is_nul():
    assert decode_utf8(b"ab", 2) == (0, 3)


def test_decode_rejects_stray_continuation_byte():
    with pytest.raises(UnicodeDecodeError) as info:
        decode_utf8(b"x\x80", 1)
    assert info.value.start == 1


def test_decode_rejects_bad_continuation():
    with pytest.raises(UnicodeDecodeError):
        decode_utf8(b"\xe3\x41\x82", 0)


def test_decode_rejects_truncated_sequence():
    with pytest.raises(UnicodeDecodeError):
        decode_utf8("あ".encode("utf-8")[:2], 0)


@pytest.mark.parametrize("char", ["π", "あ", "β", "¾", "$", "_", "z", "Q"])
def test_identifier_start_characters(char):
    assert is_ident1(ord(char))
    assert is_ident2(ord(char))


@pytest.mark.parametrize("code", [0x27D8, 0x3000, ord("0"), ord(" "), ord("+")])
def test_rejected_identifier_start_characters(code):
    assert not is_ident1(code)


@pytest.mark.parametrize("code", [ord("0"), ord("9"), 0x0300, 0x20D0, 0xFE2F])
def test_identifier_continuation_only(code):
    assert not is_ident1(code)
    assert is_ident2(code)


def test_identifier_continuation_rejects_space():
    assert not is_ident2(0x3000)
    assert not is_ident2(ord("-"))


@pytest.mark.parametrize(
    "code, width",
    [(ord("a"), 1), (0x3042, 2), (0x0300, 0), (0x0A, 0), (0x65E5, 2), (0x1F363, 2)],
)
def test_char_width(code, width):
    assert char_width(code) == width


def test_display_width_of_mixed_text():
    data = "日本語 x".encode("utf-8")
    assert display_width(data, len(data)) == 8


def test_display_width_counts_only_prefix():
    data = "ab日本".encode("utf-8")
    assert display_width(data, 2) == 2
    assert display_width(data, 0) == 0