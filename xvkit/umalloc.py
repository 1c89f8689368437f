"""A first-fit free-list allocator over a growable address range."""

from __future__ import annotations

from bisect import bisect_left, insort

HEADER_SIZE = 8
MIN_UNITS = 4096

# The list head sits below every real block and never holds memory.
_BASE = -1


class Heap:
    """Allocator that grows its region in steps of at least MIN_UNITS headers.

    Addresses are plain integers. Each block carries a header of
    HEADER_SIZE bytes in front of the address handed out.
    """

    def __init__(self, start: int = 0, limit: int | None = None) -> None:
        if start < 0:
            raise ValueError("heap start must not be negative")
        if limit is not None and limit < start:
            raise ValueError("heap limit lies below its start")
        self._brk = start
        self._limit = limit
        self._addrs = [_BASE]
        self._sizes = {_BASE: 0}
        self._freep = _BASE
        self._allocated: dict[int, int] = {}

    def _next(self, addr: int) -> int:
        index = bisect_left(self._addrs, addr)
        return self._addrs[(index + 1) % len(self._addrs)]

    def _sbrk(self, nbytes: int) -> int | None:
        if self._limit is not None and self._brk + nbytes > self._limit:
            return None
        old = self._brk
        self._brk += nbytes
        return old

    def _morecore(self, nunits: int) -> int | None:
        nunits = max(nunits, MIN_UNITS)
        block = self._sbrk(nunits * HEADER_SIZE)
        if block is None:
            return None
        self._allocated[block] = nunits
        self.free(block + HEADER_SIZE)
        return self._freep

    def malloc(self, nbytes: int) -> int | None:
        """Address of a new block of at least nbytes, or None when out of memory."""
        if nbytes < 0:
            raise ValueError("cannot allocate a negative size")
        nunits = (nbytes + HEADER_SIZE - 1) // HEADER_SIZE + 1
        prev = self._freep
        while True:
            block = self._next(prev)
            size = self._sizes[block]
            if size >= nunits:
                if size == nunits:
                    self._addrs.remove(block)
                    del self._sizes[block]
                else:
                    self._sizes[block] = size - nunits
                    block += (size - nunits) * HEADER_SIZE
                self._allocated[block] = nunits
                self._freep = prev
                return block + HEADER_SIZE
            if block == self._freep:
                block = self._morecore(nunits)
                if block is None:
                    return None
            prev = block

    def free(self, addr: int) -> None:
        """Return a block to the free list, merging it with free neighbours."""
        block = addr - HEADER_SIZE
        size = self._allocated.pop(block, None)
        if size is None:
            raise ValueError(f"address {addr} was not allocated by this heap")
        index = bisect_left(self._addrs, block) - 1
        prev = self._addrs[index]
        following = self._addrs[(index + 1) % len(self._addrs)]
        if following != _BASE and block + size * HEADER_SIZE == following:
            size += self._sizes.pop(following)
            self._addrs.remove(following)
        if prev != _BASE and prev + self._sizes[prev] * HEADER_SIZE == block:
            self._sizes[prev] += size
        else:
            insort(self._addrs, block)
            self._sizes[block] = size
        self._freep = prev

    def free_blocks(self) -> list[tuple[int, int]]:
        """Free blocks as (header address, size in bytes), in address order."""
        return [(addr, self._sizes[addr] * HEADER_SIZE) for addr in self._addrs[1:]]