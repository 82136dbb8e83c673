"""Per-key in-process locks used to serialize customer payment allocation."""

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock
from uuid import UUID


class CustomerLockRegistry:
    """Hands out one lock per customer.

    Allocating a payment reads the customer's eligible invoices and then
    writes ledger rows against them. Two allocations for the same customer
    must not interleave, otherwise both would spend the same collectible due.

    A customer's lock is dropped once nobody holds or waits on it, so the
    registry only tracks customers with an allocation in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._users: dict[str, int] = {}
        self._guard = Lock()

    def _acquire_entry(self, key: str) -> Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _release_entry(self, key: str) -> None:
        with self._guard:
            users = self._users.get(key, 0) - 1
            if users > 0:
                self._users[key] = users
            else:
                self._users.pop(key, None)
                self._locks.pop(key, None)

    @contextmanager
    def hold(self, customer_id: UUID | str) -> Iterator[None]:
        """Block until the customer's lock is free, then hold it for the block."""
        key = str(customer_id)
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)

    def is_locked(self, customer_id: UUID | str) -> bool:
        with self._guard:
            lock = self._locks.get(str(customer_id))
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def reset(self) -> None:
        """Drop all tracked locks (useful for testing)."""
        with self._guard:
            self._locks.clear()
            self._users.clear()


customer_locks = CustomerLockRegistry()
