"""Per-key critical sections.

Cart reconciliation is serialized per customer, stock decrements per product
and payment completion per order. Each key gets its own re-entrant lock, so
work on different keys never waits on each other. A key's lock lives only
while some thread holds or waits for it.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.holders = 0


class KeyedLock:
    """A family of locks addressed by string key."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._guard = threading.Lock()
        self._locks: dict[str, _KeyLock] = {}

    def _acquire_entry(self, key: str) -> _KeyLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.holders += 1
            return entry

    def _release_entry(self, key: str, entry: _KeyLock) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key) -> Iterator[None]:
        """Run the enclosed block while holding the lock for `key`."""
        key = str(key)
        entry = self._acquire_entry(key)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(key, entry)

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        return len(self._locks)


# Shared lock families
cart_reconciliation_locks = KeyedLock("cart-reconciliation")
product_stock_locks = KeyedLock("product-stock")
order_payment_locks = KeyedLock("order-payment")
