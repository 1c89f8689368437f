"""Reading and writing ELF32 file and program headers."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass

ELF_MAGIC = 0x464C457F

ELF_PROG_LOAD = 1

ELF_PROG_FLAG_EXEC = 1
ELF_PROG_FLAG_WRITE = 2
ELF_PROG_FLAG_READ = 4

_ELFHDR = struct.Struct("<I12sHHIIIIIHHHHHH")
_PROGHDR = struct.Struct("<8I")

ELFHDR_SIZE = _ELFHDR.size
PROGHDR_SIZE = _PROGHDR.size


class ElfError(ValueError):
    """Raised for malformed or truncated ELF data."""


@dataclass(frozen=True)
class ElfHeader:
    """The ELF file header."""

    magic: int = ELF_MAGIC
    elf: bytes = bytes(12)
    type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = 0
    phentsize: int = 0
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    @classmethod
    def parse(cls, data: bytes) -> "ElfHeader":
        """Read the header at the start of data and check its magic."""
        if len(data) < ELFHDR_SIZE:
            raise ElfError(f"ELF header needs {ELFHDR_SIZE} bytes, got {len(data)}")
        header = cls(*_ELFHDR.unpack_from(data, 0))
        if header.magic != ELF_MAGIC:
            raise ElfError(f"bad ELF magic {header.magic:#x}")
        return header

    def pack(self) -> bytes:
        """Encode the header in little-endian layout."""
        if len(self.elf) != 12:
            raise ElfError("ident field must be 12 bytes")
        try:
            return _ELFHDR.pack(*astuple(self))
        except struct.error as exc:
            raise ElfError(f"header field out of range: {exc}") from exc


@dataclass(frozen=True)
class ProgramHeader:
    """An ELF program segment header."""

    type: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: int = 0
    align: int = 0

    @classmethod
    def parse(cls, data: bytes, offset: int) -> "ProgramHeader":
        """Read the program header at the given byte offset."""
        if offset < 0 or offset + PROGHDR_SIZE > len(data):
            raise ElfError(f"program header at {offset} runs past end of data")
        return cls(*_PROGHDR.unpack_from(data, offset))

    def pack(self) -> bytes:
        """Encode the program header in little-endian layout."""
        try:
            return _PROGHDR.pack(*astuple(self))
        except struct.error as exc:
            raise ElfError(f"program header field out of range: {exc}") from exc

    def is_loadable(self) -> bool:
        """True for segments that are to be loaded into memory."""
        return self.type == ELF_PROG_LOAD


def program_headers(data: bytes) -> list[ProgramHeader]:
    """All program headers named by the file header of an ELF image."""
    header = ElfHeader.parse(data)
    return [
        ProgramHeader.parse(data, header.phoff + i * PROGHDR_SIZE)
        for i in range(header.phnum)
    ]