"""Count lines, words and bytes."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import BinaryIO

BUFSIZE = 512

# A NUL byte also ends a word.
_SEPARATORS = frozenset(b" \r\t\n\v\0")


@dataclass(frozen=True)
class Counts:
    """Line, word and byte counts of one input."""

    lines: int = 0
    words: int = 0
    chars: int = 0

    def format(self, name: str) -> str:
        """The report line for an input called name."""
        return f"{self.lines} {self.words} {self.chars} {name}"


def count(stream: BinaryIO) -> Counts:
    """Count a binary stream until end of file."""
    lines = words = chars = 0
    in_word = False
    for chunk in iter(lambda: stream.read(BUFSIZE), b""):
        chars += len(chunk)
        lines += chunk.count(b"\n")
        for byte in chunk:
            if byte in _SEPARATORS:
                in_word = False
            elif not in_word:
                words += 1
                in_word = True
    return Counts(lines, words, chars)


def _report(stream: BinaryIO, name: str) -> int:
    try:
        counts = count(stream)
    except OSError:
        print("wc: read error")
        return 1
    print(counts.format(name))
    return 0


def main(argv=None) -> int:
    """Report counts for each named file, or for standard input."""
    names = sys.argv[1:] if argv is None else list(argv)
    if not names:
        return _report(sys.stdin.buffer, "")
    for name in names:
        try:
            stream = open(name, "rb")
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        with stream:
            status = _report(stream, name)
        if status:
            return status
    return 0