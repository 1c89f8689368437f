import pytest
from hypothesis import given, strategies as st

from xvkit.mmu import (
    DEVSPACE,
    DPL_USER,
    KERNBASE,
    PGSIZE,
    PHYSTOP,
    SEG_KCODE,
    STA_R,
    STA_W,
    STA_X,
    STS_IG32,
    STS_T32A,
    STS_TG32,
    GateDescriptor,
    SegmentDescriptor,
    p2v,
    pdx,
    pg_round_down,
    pg_round_up,
    pgaddr,
    pte_addr,
    pte_flags,
    ptx,
    v2p,
)

u32 = st.integers(min_value=0, max_value=2**32 - 1)


@given(u32)
def test_address_split_round_trip(va):
    assert pgaddr(pdx(va), ptx(va), va % PGSIZE) == va


@given(st.integers(min_value=0, max_value=2**32 - PGSIZE))
def test_round_up_bounds(sz):
    up = pg_round_up(sz)
    assert up % PGSIZE == 0
    assert sz <= up < sz + PGSIZE


@given(u32)
def test_round_down_bounds(a):
    down = pg_round_down(a)
    assert down % PGSIZE == 0
    assert down <= a < down + PGSIZE


@given(u32)
def test_pte_split(pte):
    assert pte_addr(pte) | pte_flags(pte) == pte
    assert pte_addr(pte) & pte_flags(pte) == 0


@given(u32)
def test_v2p_inverts_p2v(a):
    assert v2p(p2v(a)) == a


def test_kernel_base_maps_to_zero():
    assert v2p(KERNBASE) == 0
    assert p2v(0) == KERNBASE
    assert p2v(PHYSTOP) <= DEVSPACE


def test_kernel_code_segment_bytes():
    seg = SegmentDescriptor.normal(STA_X | STA_R, 0, 0xFFFFFFFF, 0)
    assert seg.pack() == bytes([0xFF, 0xFF, 0, 0, 0, 0x9A, 0xCF, 0])


def test_normal_segment_matches_assembler_layout():
    data = SegmentDescriptor.normal(STA_W, 0, 0xFFFFFFFF, 0).pack()
    assert data[5] == 0x90 | STA_W
    assert data[6] == 0xC0 | 0xF


def test_user_segment_privilege():
    seg = SegmentDescriptor.normal(STA_W, 0, 0xFFFFFFFF, DPL_USER)
    assert seg.dpl == DPL_USER
    assert SegmentDescriptor.unpack(seg.pack()) == seg


@given(u32, st.integers(min_value=0, max_value=2**20 - 1))
def test_seg16_keeps_base_and_limit(base, limit):
    seg = SegmentDescriptor.seg16(STS_T32A, base, limit, 0)
    assert seg.base_15_0 | seg.base_23_16 << 16 | seg.base_31_24 << 24 == base
    assert seg.lim_15_0 | seg.lim_19_16 << 16 == limit
    assert seg.db == 0
    assert SegmentDescriptor.unpack(seg.pack()) == seg


def test_segment_field_overflow_raises():
    with pytest.raises(ValueError):
        SegmentDescriptor(lim_15_0=1 << 16)


def test_segment_unpack_wrong_length():
    with pytest.raises(ValueError):
        SegmentDescriptor.unpack(b"\x00" * 7)


def test_trap_gate_for_syscalls():
    gate = GateDescriptor.make(True, SEG_KCODE << 3, 0x80105A2C, DPL_USER)
    assert gate.type == STS_TG32
    assert gate.off_15_0 | gate.off_31_16 << 16 == 0x80105A2C
    assert gate.cs == SEG_KCODE << 3
    assert gate.p == 1 and gate.s == 0


def test_interrupt_gate_type():
    gate = GateDescriptor.make(False, SEG_KCODE << 3, 0, 0)
    assert gate.type == STS_IG32


@given(st.booleans(), st.integers(min_value=0, max_value=0xFFFF), u32, st.integers(0, 3))
def test_gate_round_trip(is_trap, sel, off, dpl):
    gate = GateDescriptor.make(is_trap, sel, off, dpl)
    assert GateDescriptor.unpack(gate.pack()) == gate


def test_gate_unpack_wrong_length():
    with pytest.raises(ValueError):
        GateDescriptor.unpack(b"\x00" * 9)