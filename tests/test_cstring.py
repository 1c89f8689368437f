import pytest
from hypothesis import given, strategies as st

from xvkit.cstring import (
    atoi,
    memcmp,
    memmove,
    memset,
    safestrcpy,
    strchr,
    strcmp,
    strlen,
    strncmp,
    strncpy,
)

no_nul = st.binary().filter(lambda b: b"\0" not in b)


def test_memset_fills_prefix():
    buf = bytearray(b"abcdef")
    assert memset(buf, ord("z") + 256, 4) == bytearray(b"z" * 4 + b"ef")


def test_memset_too_long_raises():
    with pytest.raises(ValueError):
        memset(bytearray(3), 0, 4)


def test_memcmp_sign():
    assert memcmp(b"abc", b"abd", 3) < 0
    assert memcmp(b"abd", b"abc", 3) > 0
    assert not memcmp(b"abcx", b"abcy", 3)


def test_memcmp_is_unsigned():
    assert memcmp(b"\xff", b"\x01", 1) > 0


def test_memcmp_difference():
    assert memcmp(b"a", b"b", 1) == -1


def test_memmove_overlap_forward():
    assert memmove(bytearray(b"abcdef"), 2, 0, 4) == bytearray(b"ababcd")


def test_memmove_overlap_backward():
    assert memmove(bytearray(b"abcdef"), 0, 2, 4) == bytearray(b"cdefef")


def test_memmove_out_of_range():
    with pytest.raises(ValueError):
        memmove(bytearray(4), 2, 0, 3)


@given(no_nul, st.binary())
def test_strlen_stops_at_nul(s, tail):
    assert strlen(s + b"\0" + tail) == len(s)
    assert strlen(s) == len(s)


@given(no_nul, no_nul)
def test_strcmp_antisymmetric(a, b):
    x, y = strcmp(a, b), strcmp(b, a)
    assert (x > 0) == (y < 0)
    assert (x == 0) == (a == b)


@given(no_nul, st.binary())
def test_strcmp_ignores_after_nul(s, tail):
    assert not strcmp(s, s + b"\0" + tail)


def test_strcmp_prefix_is_smaller():
    assert strcmp(b"ab", b"abc") < 0


def test_strncmp_limit():
    assert not strncmp(b"abcx", b"abcy", 3)
    assert strncmp(b"abcx", b"abcy", 4) < 0


def test_strncpy_pads_with_nul():
    dst = bytearray(b"XXXXXXXX")
    assert strncpy(dst, b"hi", 5) == bytearray(b"hi\0\0\0XXX")


def test_strncpy_truncates_without_nul():
    dst = bytearray(b"XXXXXXXX")
    strncpy(dst, b"hello", 3)
    assert dst[:3] == b"hello"[:3]
    assert dst[3:] == b"XXXXXXXX"[3:]


def test_safestrcpy_terminates():
    dst = bytearray(b"XXXXXXXX")
    safestrcpy(dst, b"hello", 4)
    assert dst[:4] == b"hello"[:3] + b"\0"
    assert dst[4:] == b"XXXXXXXX"[4:]


def test_safestrcpy_nonpositive_leaves_buffer():
    dst = bytearray(b"XXXX")
    assert safestrcpy(dst, b"hello", 0) == bytearray(b"XXXX")


def test_strchr_finds_first():
    assert strchr(b"hello", ord("l")) == b"hello".index(b"l")


def test_strchr_stops_at_nul():
    assert strchr(b"ab\0c", ord("c")) is None
    assert strchr(b"abc", 0) is None


@given(st.integers(min_value=0, max_value=2**31 - 1))
def test_atoi_reads_leading_digits(n):
    assert atoi(str(n).encode() + b"x9") == n
    assert atoi(str(n)) == n


def test_atoi_no_digits():
    assert atoi(b" 42") == atoi(b"-5") == atoi(b"")
    assert not atoi(b"abc")