"""Fetching system call arguments from user memory and dispatching calls."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Callable, TextIO

from xvkit.constants import UINT_MASK, SyscallNumber

WCUPA_VALUE = 1871


class SyscallError(Exception):
    """Raised when a system call argument is invalid."""


@dataclass
class TrapFrame:
    """Registers saved on entry to the kernel."""

    edi: int = 0
    esi: int = 0
    ebp: int = 0
    oesp: int = 0
    ebx: int = 0
    edx: int = 0
    ecx: int = 0
    eax: int = 0
    gs: int = 0
    fs: int = 0
    es: int = 0
    ds: int = 0
    trapno: int = 0
    err: int = 0
    eip: int = 0
    cs: int = 0
    eflags: int = 0
    esp: int = 0
    ss: int = 0


@dataclass
class Process:
    """A process as seen by the system call layer: its user memory and trap frame."""

    pid: int
    name: str = ""
    memory: bytearray = field(default_factory=bytearray)
    tf: TrapFrame = field(default_factory=TrapFrame)
    killed: bool = False

    @property
    def sz(self) -> int:
        """Size of the process's user memory in bytes."""
        return len(self.memory)

    def fetch_int(self, addr: int) -> int:
        """The 32-bit signed integer at user address addr."""
        if addr < 0 or addr >= self.sz or addr + 4 > self.sz:
            raise SyscallError(f"int at {addr:#x} outside process memory")
        return int.from_bytes(self.memory[addr : addr + 4], "little", signed=True)

    def fetch_str(self, addr: int) -> bytes:
        """The NUL-terminated string at user address addr, without the NUL."""
        if addr < 0 or addr >= self.sz:
            raise SyscallError(f"string at {addr:#x} outside process memory")
        end = self.memory.find(b"\0", addr)
        if end < 0:
            raise SyscallError(f"string at {addr:#x} is not terminated")
        return bytes(self.memory[addr:end])

    def arg_int(self, n: int) -> int:
        """The nth 32-bit argument on the user stack."""
        return self.fetch_int((self.tf.esp + 4 + 4 * n) & UINT_MASK)

    def arg_ptr(self, n: int, size: int) -> int:
        """The nth argument as the address of size bytes inside process memory."""
        addr = self.arg_int(n) & UINT_MASK
        if size < 0 or addr >= self.sz or addr + size > self.sz:
            raise SyscallError(f"buffer at {addr:#x} of {size} bytes outside process memory")
        return addr

    def arg_str(self, n: int) -> bytes:
        """The nth argument as a NUL-terminated string."""
        return self.fetch_str(self.arg_int(n) & UINT_MASK)


Handler = Callable[[Process], int]


class SyscallTable:
    """Maps system call numbers to handlers and runs them on a trap frame."""

    def __init__(self, console: TextIO | None = None) -> None:
        self._handlers: dict[int, Handler] = {}
        self._console = console

    def register(self, number: int, handler: Handler) -> None:
        """Install handler for a positive system call number."""
        if number <= 0:
            raise ValueError(f"system call number must be positive, got {number}")
        self._handlers[int(number)] = handler

    def dispatch(self, proc: Process) -> int:
        """Run the call named by proc.tf.eax and store its result back in eax."""
        eax = proc.tf.eax & UINT_MASK
        num = eax - (1 << 32) if eax >= 1 << 31 else eax
        handler = self._handlers.get(num) if num > 0 else None
        if handler is None:
            print(
                f"{proc.pid} {proc.name}: unknown sys call {num}",
                file=self._console or sys.stdout,
            )
            result = -1
        else:
            try:
                result = handler(proc)
            except SyscallError:
                result = -1
        proc.tf.eax = result & UINT_MASK
        return proc.tf.eax


def _sys_getpid(proc: Process) -> int:
    return proc.pid


def default_table() -> SyscallTable:
    """A table with the calls that need nothing beyond the calling process."""
    table = SyscallTable()
    table.register(SyscallNumber.WCUPA, lambda _proc: WCUPA_VALUE)
    table.register(SyscallNumber.GETPID, _sys_getpid)
    return table