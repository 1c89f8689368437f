"""Spin locks held by a thread and sleep locks held by a process id."""

from __future__ import annotations

import threading
import traceback


class LockError(RuntimeError):
    """Raised on acquiring a held lock again or releasing one not held."""


class SpinLock:
    """Mutual exclusion lock owned by the thread that acquired it."""

    def __init__(self, name: str = "lock") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._owner: int | None = None
        self._pcs: tuple[traceback.FrameSummary, ...] = ()

    @property
    def locked(self) -> bool:
        """Whether any thread holds the lock."""
        return self._lock.locked()

    @property
    def owner(self) -> int | None:
        """Identifier of the holding thread, for debugging."""
        return self._owner

    @property
    def pcs(self) -> tuple[traceback.FrameSummary, ...]:
        """Up to ten frames of the call stack that took the lock."""
        return self._pcs

    def acquire(self) -> None:
        """Wait until the lock is free and take it."""
        if self.holding():
            raise LockError(f"acquire: {self.name} already held")
        self._lock.acquire()
        self._owner = threading.get_ident()
        self._pcs = tuple(traceback.extract_stack(limit=11)[:-1])

    def release(self) -> None:
        """Give the lock up; only its holder may."""
        if not self.holding():
            raise LockError(f"release: {self.name} not held")
        self._pcs = ()
        self._owner = None
        self._lock.release()

    def holding(self) -> bool:
        """Whether the calling thread holds the lock."""
        return self._lock.locked() and self._owner == threading.get_ident()

    def __enter__(self) -> "SpinLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class SleepLock:
    """Long-term lock taken on behalf of a process; waiters sleep."""

    def __init__(self, name: str = "sleep lock") -> None:
        self.name = name
        self._cond = threading.Condition()
        self._locked = False
        self._pid = 0

    @property
    def locked(self) -> bool:
        """Whether the lock is held."""
        return self._locked

    @property
    def pid(self) -> int:
        """Process holding the lock, 0 when free."""
        return self._pid

    def acquire(self, pid: int) -> None:
        """Sleep until the lock is free, then hold it for pid."""
        with self._cond:
            self._cond.wait_for(lambda: not self._locked)
            self._locked = True
            self._pid = pid

    def release(self) -> None:
        """Free the lock and wake every waiter."""
        with self._cond:
            self._locked = False
            self._pid = 0
            self._cond.notify_all()

    def holding(self, pid: int) -> bool:
        """Whether the lock is held by pid."""
        with self._cond:
            return self._locked and self._pid == pid