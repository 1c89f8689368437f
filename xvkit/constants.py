"""System parameters, trap and system call numbers, and small kernel records."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass
from enum import IntEnum, IntFlag

UINT_MASK = 0xFFFFFFFF

NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000


class Trap(IntEnum):
    """Processor exceptions and kernel-chosen trap vectors."""

    DIVIDE = 0
    DEBUG = 1
    NMI = 2
    BRKPT = 3
    OFLOW = 4
    BOUND = 5
    ILLOP = 6
    DEVICE = 7
    DBLFLT = 8
    TSS = 10
    SEGNP = 11
    STACK = 12
    GPFLT = 13
    PGFLT = 14
    FPERR = 16
    ALIGN = 17
    MCHK = 18
    SIMDERR = 19
    IRQ0 = 32
    SYSCALL = 64
    DEFAULT = 500


class Irq(IntEnum):
    """Hardware interrupt request lines, relative to Trap.IRQ0."""

    TIMER = 0
    KBD = 1
    COM1 = 4
    IDE = 14
    ERROR = 19
    SPURIOUS = 31


class SyscallNumber(IntEnum):
    """System call numbers as passed in %eax."""

    FORK = 1
    EXIT = 2
    WAIT = 3
    PIPE = 4
    READ = 5
    KILL = 6
    EXEC = 7
    FSTAT = 8
    CHDIR = 9
    DUP = 10
    GETPID = 11
    SBRK = 12
    SLEEP = 13
    UPTIME = 14
    OPEN = 15
    WRITE = 16
    MKNOD = 17
    UNLINK = 18
    LINK = 19
    MKDIR = 20
    CLOSE = 21
    WCUPA = 22


class OpenFlag(IntFlag):
    """Mode bits accepted by open."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200


class FileType(IntEnum):
    """Kinds of inode."""

    DIR = 1
    FILE = 2
    DEV = 3


_STAT = struct.Struct("<hxxiIhxxI")


@dataclass(frozen=True)
class Stat:
    """File status as returned by fstat, in its in-memory layout."""

    type: int
    dev: int
    ino: int
    nlink: int
    size: int

    SIZE = _STAT.size

    def pack(self) -> bytes:
        """Encode in the little-endian i386 struct layout."""
        try:
            return _STAT.pack(self.type, self.dev, self.ino, self.nlink, self.size)
        except struct.error as exc:
            raise ValueError(f"stat field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "Stat":
        """Decode a record produced by pack."""
        if len(data) != _STAT.size:
            raise ValueError(f"stat record must be {_STAT.size} bytes, got {len(data)}")
        return cls(*_STAT.unpack(bytes(data)))


@dataclass(frozen=True)
class RtcDate:
    """A wall-clock reading from the real-time clock."""

    second: int
    minute: int
    hour: int
    day: int
    month: int
    year: int

    def as_tuple(self) -> tuple[int, int, int, int, int, int]:
        """Fields in declaration order: second, minute, hour, day, month, year."""
        return astuple(self)