"""Two-level x86 page tables kept in a simulated physical memory."""

from __future__ import annotations

import struct

from xvkit.constants import UINT_MASK
from xvkit.mmu import (
    DEVSPACE,
    EXTMEM,
    KERNBASE,
    KERNLINK,
    NPDENTRIES,
    PGSIZE,
    PHYSTOP,
    PTE_P,
    PTE_U,
    PTE_W,
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

DEFAULT_BASE = 0x400000
DEFAULT_KERNEL_DATA = 0x200000

_WORD = struct.Struct("<I")
_ZERO_PAGE = bytes(PGSIZE)


def _u32(value: int) -> int:
    return value & UINT_MASK


class VmPanic(RuntimeError):
    """An inconsistency in the page tables that halts the kernel."""


class PhysicalMemory:
    """A pool of physical pages handed out one page at a time.

    The pool covers [base, base + npages * PGSIZE). The kernel's read-only
    image ends and its data begins at kernel_data, below the pool.
    """

    def __init__(
        self,
        npages: int,
        base: int = DEFAULT_BASE,
        kernel_data: int = DEFAULT_KERNEL_DATA,
    ) -> None:
        if npages <= 0:
            raise ValueError("physical memory needs at least one page")
        if base % PGSIZE or kernel_data % PGSIZE:
            raise ValueError("base and kernel_data must be page aligned")
        if not EXTMEM < kernel_data <= base:
            raise ValueError("kernel data must lie above EXTMEM and below the pool")
        if base + npages * PGSIZE > PHYSTOP:
            raise ValueError("physical memory reaches past PHYSTOP")
        self.base = base
        self.end = base + npages * PGSIZE
        self.kernel_data = kernel_data
        self._data = bytearray(npages * PGSIZE)
        self._free = list(range(base, self.end, PGSIZE))
        self._free_set = set(self._free)

    def alloc_page(self) -> int | None:
        """Physical address of a free page, or None when none is left."""
        if not self._free:
            return None
        pa = self._free.pop()
        self._free_set.discard(pa)
        return pa

    def free_page(self, pa: int) -> None:
        """Return a page obtained from alloc_page."""
        if pa % PGSIZE or not self.base <= pa < self.end:
            raise VmPanic("kfree")
        if pa in self._free_set:
            raise VmPanic("kfree: page already free")
        self._free.append(pa)
        self._free_set.add(pa)

    def free_count(self) -> int:
        """Number of pages still free."""
        return len(self._free)

    def _offset(self, pa: int, n: int) -> int:
        if n < 0 or pa < self.base or pa + n > self.end:
            raise ValueError(f"physical range {pa:#x}+{n} outside memory")
        return pa - self.base

    def read(self, pa: int, n: int) -> bytes:
        """n bytes starting at physical address pa."""
        offset = self._offset(pa, n)
        return bytes(self._data[offset : offset + n])

    def write(self, pa: int, data: bytes) -> None:
        """Store data starting at physical address pa."""
        offset = self._offset(pa, len(data))
        self._data[offset : offset + len(data)] = data

    def _word(self, pa: int) -> int:
        return _WORD.unpack_from(self._data, self._offset(pa, 4))[0]

    def _set_word(self, pa: int, value: int) -> None:
        _WORD.pack_into(self._data, self._offset(pa, 4), value)

    def _zero_page(self, pa: int) -> None:
        self.write(pa, _ZERO_PAGE)


def _kernel_map(memory: PhysicalMemory) -> list[tuple[int, int, int, int]]:
    """(virtual start, physical start, physical end, permissions) of the kernel."""
    data = memory.kernel_data
    return [
        (KERNBASE, 0, EXTMEM, PTE_W),  # I/O space
        (KERNLINK, v2p(KERNLINK), data, 0),  # kernel text and read-only data
        (p2v(data), data, PHYSTOP, PTE_W),  # kernel data and free memory
        (DEVSPACE, DEVSPACE, 0, PTE_W),  # memory-mapped devices
    ]


class PageDirectory:
    """A page directory and its page tables, stored in physical memory."""

    def __init__(self, memory: PhysicalMemory, pa: int) -> None:
        self.memory = memory
        self.pa: int | None = pa

    def _root(self) -> int:
        if self.pa is None:
            raise VmPanic("freevm: no pgdir")
        return self.pa

    def walk(self, va: int, alloc: bool) -> int | None:
        """Physical address of the PTE for va, creating its page table if alloc."""
        mem = self.memory
        pde_pa = self._root() + 4 * pdx(va)
        pde = mem._word(pde_pa)
        if pde & PTE_P:
            pgtab = pte_addr(pde)
        else:
            if not alloc:
                return None
            pgtab = mem.alloc_page()
            if pgtab is None:
                return None
            mem._zero_page(pgtab)
            mem._set_word(pde_pa, pgtab | PTE_P | PTE_W | PTE_U)
        return pgtab + 4 * ptx(va)

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map the pages covering [va, va+size) to physical memory from pa.

        Raises MemoryError when a page table cannot be allocated.
        """
        if size <= 0:
            raise ValueError("mapping size must be positive")
        mem = self.memory
        a = pg_round_down(va)
        last = pg_round_down(_u32(va + size - 1))
        pa = _u32(pa)
        pte: int | None = None
        while True:
            if pte is None or ptx(a) == 0:
                pte = self.walk(a, True)
                if pte is None:
                    raise MemoryError("no memory for a page table")
            else:
                pte += 4
            if mem._word(pte) & PTE_P:
                raise VmPanic("remap")
            mem._set_word(pte, pa | perm | PTE_P)
            if a == last:
                break
            a = _u32(a + PGSIZE)
            pa = _u32(pa + PGSIZE)

    def init_uvm(self, init: bytes) -> None:
        """Load init, which must be smaller than a page, at address 0."""
        if len(init) >= PGSIZE:
            raise VmPanic("inituvm: more than a page")
        mem = self.memory.alloc_page()
        if mem is None:
            raise MemoryError("inituvm: out of memory")
        self.memory._zero_page(mem)
        self.map_pages(0, PGSIZE, mem, PTE_W | PTE_U)
        self.memory.write(mem, init)

    def alloc_uvm(self, oldsz: int, newsz: int) -> int:
        """Grow user memory from oldsz to newsz with zeroed pages; return the new size."""
        if newsz >= KERNBASE:
            raise ValueError("user memory would reach kernel space")
        if newsz < oldsz:
            return oldsz
        a = pg_round_up(oldsz)
        while a < newsz:
            mem = self.memory.alloc_page()
            if mem is None:
                self.dealloc_uvm(newsz, oldsz)
                raise MemoryError("allocuvm out of memory")
            self.memory._zero_page(mem)
            try:
                self.map_pages(a, PGSIZE, mem, PTE_W | PTE_U)
            except MemoryError:
                self.dealloc_uvm(newsz, oldsz)
                self.memory.free_page(mem)
                raise MemoryError("allocuvm out of memory (2)") from None
            a += PGSIZE
        return newsz

    def dealloc_uvm(self, oldsz: int, newsz: int) -> int:
        """Free user pages to shrink from oldsz to newsz; return the new size."""
        if newsz >= oldsz:
            return oldsz
        mem = self.memory
        a = pg_round_up(newsz)
        while a < oldsz:
            pte = self.walk(a, False)
            if pte is None:
                a = _u32(pgaddr(pdx(a) + 1, 0, 0) - PGSIZE)
            else:
                entry = mem._word(pte)
                if entry & PTE_P:
                    pa = pte_addr(entry)
                    if pa == 0:
                        raise VmPanic("kfree")
                    mem.free_page(pa)
                    mem._set_word(pte, 0)
            a += PGSIZE
        return newsz

    def free(self) -> None:
        """Free all user pages, every page table and the directory itself."""
        root = self._root()
        mem = self.memory
        self.dealloc_uvm(KERNBASE, 0)
        for i in range(NPDENTRIES):
            pde = mem._word(root + 4 * i)
            if pde & PTE_P:
                mem.free_page(pte_addr(pde))
        mem.free_page(root)
        self.pa = None

    def clear_pte_u(self, uva: int) -> None:
        """Make the page at uva inaccessible to user code."""
        pte = self.walk(uva, False)
        if pte is None:
            raise VmPanic("clearpteu")
        self.memory._set_word(pte, self.memory._word(pte) & ~PTE_U & UINT_MASK)

    def copy(self, sz: int) -> "PageDirectory":
        """A new directory holding a private copy of the first sz bytes of user memory."""
        mem = self.memory
        child = setup_kvm(mem)
        for i in range(0, sz, PGSIZE):
            pte = self.walk(i, False)
            if pte is None:
                raise VmPanic("copyuvm: pte should exist")
            entry = mem._word(pte)
            if not entry & PTE_P:
                raise VmPanic("copyuvm: page not present")
            page = mem.alloc_page()
            if page is None:
                child.free()
                raise MemoryError("copyuvm: out of memory")
            mem.write(page, mem.read(pte_addr(entry), PGSIZE))
            try:
                child.map_pages(i, PGSIZE, page, pte_flags(entry))
            except MemoryError:
                mem.free_page(page)
                child.free()
                raise
        return child

    def uva2ka(self, uva: int) -> int | None:
        """Kernel virtual address of the user page at uva, or None if not a user page."""
        pte = self.walk(uva, False)
        if pte is None:
            return None
        entry = self.memory._word(pte)
        if not entry & PTE_P or not entry & PTE_U:
            return None
        return p2v(pte_addr(entry))

    def _user_chunks(self, va: int, n: int):
        va = _u32(va)
        while n > 0:
            va0 = pg_round_down(va)
            ka = self.uva2ka(va0)
            if ka is None:
                raise ValueError(f"user address {va:#x} is not mapped")
            k = min(PGSIZE - (va - va0), n)
            yield v2p(ka) + (va - va0), k
            n -= k
            va = va0 + PGSIZE

    def copy_out(self, va: int, data: bytes) -> None:
        """Write data to user memory starting at va."""
        done = 0
        for pa, k in self._user_chunks(va, len(data)):
            self.memory.write(pa, data[done : done + k])
            done += k

    def read_user(self, va: int, n: int) -> bytes:
        """Read n bytes of user memory starting at va."""
        return b"".join(self.memory.read(pa, k) for pa, k in self._user_chunks(va, n))


def setup_kvm(memory: PhysicalMemory) -> PageDirectory:
    """A new page directory holding the kernel's mappings."""
    root = memory.alloc_page()
    if root is None:
        raise MemoryError("setupkvm: out of memory")
    memory._zero_page(root)
    if p2v(PHYSTOP) > DEVSPACE:
        raise VmPanic("PHYSTOP too high")
    pgdir = PageDirectory(memory, root)
    for virt, phys_start, phys_end, perm in _kernel_map(memory):
        try:
            pgdir.map_pages(virt, _u32(phys_end - phys_start), phys_start, perm)
        except MemoryError:
            pgdir.free()
            raise
    return pgdir