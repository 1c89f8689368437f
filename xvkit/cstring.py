"""NUL-terminated string and raw memory helpers over bytes-like buffers."""

from __future__ import annotations

from itertools import islice


def _cstr(s: bytes) -> bytes:
    """The bytes of s before its first NUL, or all of s if there is none."""
    end = s.find(b"\0")
    return bytes(s) if end < 0 else bytes(s[:end])


def _check_room(buf: bytes, n: int) -> None:
    if n > len(buf):
        raise ValueError(f"{n} bytes do not fit in a buffer of {len(buf)}")


def memset(dst: bytearray, c: int, n: int) -> bytearray:
    """Fill the first n bytes of dst with the low byte of c."""
    _check_room(dst, n)
    if n > 0:
        dst[:n] = bytes([c & 0xFF]) * n
    return dst


def memcmp(a: bytes, b: bytes, n: int) -> int:
    """Difference of the first unequal bytes within n, or 0."""
    _check_room(a, n)
    _check_room(b, n)
    for x, y in zip(a[:n], b[:n]):
        if x != y:
            return x - y
    return 0


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy n bytes from offset src to offset dst in buf; overlap is safe."""
    if n <= 0:
        return buf
    if min(dst, src) < 0 or max(dst, src) + n > len(buf):
        raise ValueError("memmove range outside buffer")
    buf[dst : dst + n] = buf[src : src + n]
    return buf


def strlen(s: bytes) -> int:
    """Number of bytes before the first NUL."""
    return len(_cstr(s))


def strcmp(p: bytes, q: bytes) -> int:
    """Compare two NUL-terminated strings as unsigned bytes."""
    return strncmp(p, q, max(len(p), len(q)) + 1)


def strncmp(p: bytes, q: bytes, n: int) -> int:
    """Compare at most n bytes of two NUL-terminated strings."""
    for x, y in islice(zip(_cstr(p) + b"\0", _cstr(q) + b"\0"), max(n, 0)):
        if x != y or x == 0:
            return x - y
    return 0


def strncpy(dst: bytearray, src: bytes, n: int) -> bytearray:
    """Copy src into dst, NUL-padding to exactly n bytes; may leave no NUL."""
    if n <= 0:
        return dst
    _check_room(dst, n)
    dst[:n] = (_cstr(src) + bytes(n))[:n]
    return dst


def safestrcpy(dst: bytearray, src: bytes, n: int) -> bytearray:
    """Copy at most n-1 bytes of src into dst and always NUL-terminate."""
    if n <= 0:
        return dst
    copied = _cstr(src)[: n - 1] + b"\0"
    _check_room(dst, len(copied))
    dst[: len(copied)] = copied
    return dst


def strchr(s: bytes, c: int) -> int | None:
    """Index of the first byte c before the terminating NUL, or None."""
    index = _cstr(s).find(bytes([c & 0xFF]))
    return None if index < 0 else index


def atoi(s: bytes | str) -> int:
    """Value of the leading decimal digits, 0 if none, wrapped to a C int."""
    if isinstance(s, str):
        s = s.encode("latin-1")
    n = 0
    for ch in s:
        if not 0x30 <= ch <= 0x39:
            break
        n = n * 10 + ch - 0x30
    n &= 0xFFFFFFFF
    return n - (1 << 32) if n >= 1 << 31 else n