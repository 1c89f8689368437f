"""x86 paging arithmetic, memory layout and segment/gate descriptors."""

from __future__ import annotations

from dataclasses import dataclass, fields

from xvkit.constants import UINT_MASK

FL_IF = 0x00000200

CR0_PE = 0x00000001
CR0_WP = 0x00010000
CR0_PG = 0x80000000
CR4_PSE = 0x00000010

SEG_KCODE = 1
SEG_KDATA = 2
SEG_UCODE = 3
SEG_UDATA = 4
SEG_TSS = 5
NSEGS = 6

DPL_USER = 0x3

STA_X = 0x8
STA_W = 0x2
STA_R = 0x2

STS_T32A = 0x9
STS_IG32 = 0xE
STS_TG32 = 0xF

NPDENTRIES = 1024
NPTENTRIES = 1024
PGSIZE = 4096
PTXSHIFT = 12
PDXSHIFT = 22

PTE_P = 0x001
PTE_W = 0x002
PTE_U = 0x004
PTE_PS = 0x080

EXTMEM = 0x100000
PHYSTOP = 0xE000000
DEVSPACE = 0xFE000000
KERNBASE = 0x80000000
KERNLINK = KERNBASE + EXTMEM


def _u32(value: int) -> int:
    return value & UINT_MASK


def pdx(va: int) -> int:
    """Page directory index of a virtual address."""
    return (_u32(va) >> PDXSHIFT) & 0x3FF


def ptx(va: int) -> int:
    """Page table index of a virtual address."""
    return (_u32(va) >> PTXSHIFT) & 0x3FF


def pgaddr(d: int, t: int, o: int) -> int:
    """Build a virtual address from directory index, table index and offset."""
    return _u32(d << PDXSHIFT | t << PTXSHIFT | o)


def pg_round_up(sz: int) -> int:
    """Round up to a page boundary, wrapping at 32 bits."""
    return _u32(sz + PGSIZE - 1) & ~(PGSIZE - 1)


def pg_round_down(a: int) -> int:
    """Round down to a page boundary."""
    return _u32(a) & ~(PGSIZE - 1)


def pte_addr(pte: int) -> int:
    """Physical address held in a page table entry."""
    return _u32(pte) & ~0xFFF


def pte_flags(pte: int) -> int:
    """Flag bits of a page table entry."""
    return _u32(pte) & 0xFFF


def v2p(a: int) -> int:
    """Kernel virtual address to physical address."""
    return _u32(a - KERNBASE)


def p2v(a: int) -> int:
    """Physical address to kernel virtual address."""
    return _u32(a + KERNBASE)


_SEG_WIDTHS = {
    "lim_15_0": 16,
    "base_15_0": 16,
    "base_23_16": 8,
    "type": 4,
    "s": 1,
    "dpl": 2,
    "p": 1,
    "lim_19_16": 4,
    "avl": 1,
    "rsv1": 1,
    "db": 1,
    "g": 1,
    "base_31_24": 8,
}

_GATE_WIDTHS = {
    "off_15_0": 16,
    "cs": 16,
    "args": 5,
    "rsv1": 3,
    "type": 4,
    "s": 1,
    "dpl": 2,
    "p": 1,
    "off_31_16": 16,
}


def _check_widths(record: object, widths: dict[str, int]) -> None:
    for name, width in widths.items():
        value = getattr(record, name)
        if not 0 <= value < (1 << width):
            raise ValueError(f"{name}={value} does not fit in {width} bits")


def _pack_bits(record: object) -> bytes:
    value = 0
    shift = 0
    for field in fields(record):
        width = field.metadata["bits"]
        value |= getattr(record, field.name) << shift
        shift += width
    return value.to_bytes(8, "little")


def _unpack_bits(cls, data: bytes):
    if len(data) != 8:
        raise ValueError(f"descriptor must be 8 bytes, got {len(data)}")
    value = int.from_bytes(bytes(data), "little")
    kwargs = {}
    for field in fields(cls):
        width = field.metadata["bits"]
        kwargs[field.name] = value & ((1 << width) - 1)
        value >>= width
    return cls(**kwargs)


def _bits(width: int):
    from dataclasses import field

    return field(default=0, metadata={"bits": width})


@dataclass(frozen=True)
class SegmentDescriptor:
    """A GDT segment descriptor, field for field."""

    lim_15_0: int = _bits(16)
    base_15_0: int = _bits(16)
    base_23_16: int = _bits(8)
    type: int = _bits(4)
    s: int = _bits(1)
    dpl: int = _bits(2)
    p: int = _bits(1)
    lim_19_16: int = _bits(4)
    avl: int = _bits(1)
    rsv1: int = _bits(1)
    db: int = _bits(1)
    g: int = _bits(1)
    base_31_24: int = _bits(8)

    def __post_init__(self) -> None:
        _check_widths(self, _SEG_WIDTHS)

    @classmethod
    def normal(cls, type_: int, base: int, limit: int, dpl: int) -> "SegmentDescriptor":
        """A 32-bit segment with a limit in 4096-byte units."""
        base, limit = _u32(base), _u32(limit)
        return cls(
            lim_15_0=(limit >> 12) & 0xFFFF,
            base_15_0=base & 0xFFFF,
            base_23_16=(base >> 16) & 0xFF,
            type=type_,
            s=1,
            dpl=dpl,
            p=1,
            lim_19_16=limit >> 28,
            db=1,
            g=1,
            base_31_24=base >> 24,
        )

    @classmethod
    def seg16(cls, type_: int, base: int, limit: int, dpl: int) -> "SegmentDescriptor":
        """A segment with a byte-granular limit and the 16-bit default size."""
        base, limit = _u32(base), _u32(limit)
        return cls(
            lim_15_0=limit & 0xFFFF,
            base_15_0=base & 0xFFFF,
            base_23_16=(base >> 16) & 0xFF,
            type=type_,
            s=1,
            dpl=dpl,
            p=1,
            lim_19_16=(limit >> 16) & 0xF,
            db=0,
            g=1,
            base_31_24=base >> 24,
        )

    def pack(self) -> bytes:
        """The 8 descriptor bytes as the processor reads them."""
        return _pack_bits(self)

    @classmethod
    def unpack(cls, data: bytes) -> "SegmentDescriptor":
        """Decode 8 descriptor bytes."""
        return _unpack_bits(cls, data)


@dataclass(frozen=True)
class GateDescriptor:
    """An IDT interrupt or trap gate."""

    off_15_0: int = _bits(16)
    cs: int = _bits(16)
    args: int = _bits(5)
    rsv1: int = _bits(3)
    type: int = _bits(4)
    s: int = _bits(1)
    dpl: int = _bits(2)
    p: int = _bits(1)
    off_31_16: int = _bits(16)

    def __post_init__(self) -> None:
        _check_widths(self, _GATE_WIDTHS)

    @classmethod
    def make(cls, is_trap: bool, selector: int, offset: int, dpl: int) -> "GateDescriptor":
        """A present gate; trap gates leave FL_IF alone, interrupt gates clear it."""
        offset = _u32(offset)
        return cls(
            off_15_0=offset & 0xFFFF,
            cs=selector,
            args=0,
            rsv1=0,
            type=STS_TG32 if is_trap else STS_IG32,
            s=0,
            dpl=dpl,
            p=1,
            off_31_16=offset >> 16,
        )

    def pack(self) -> bytes:
        """The 8 gate bytes as the processor reads them."""
        return _pack_bits(self)

    @classmethod
    def unpack(cls, data: bytes) -> "GateDescriptor":
        """Decode 8 gate bytes."""
        return _unpack_bits(cls, data)