"""
store/keyed.py -- Thread-safe in-memory keyed container.

Pattern: Repository. KeyedStore maps a unique key to a record and exposes the
same four-operation contract for every record type (users, todo items):

    get_all()        snapshot list of every record
    add(record)      False if the key exists, else insert  -> True
    update(record)   False if the key is absent, else replace wholesale -> True
    delete(record)   False if the key is absent, else remove -> True

True always means the mutation happened; False always means nothing changed.

Concurrency:
  Every operation runs under a per-store RLock, so a sequence of operations on
  one key is linearizable and get_all() never observes a half-applied write.
  The lock is re-entrant so subclasses can compose several operations into one
  atomic step (see TodoStore.create).

  Records are expected to be frozen dataclasses. The store hands out the same
  objects it holds; immutability is what keeps callers from editing stored
  state behind the lock.

No durability: contents live as long as the process.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class KeyedStore(Generic[K, V]):
    """Generic keyed container with existence-based success/failure semantics.

    Usage:
        users = KeyedStore(key=lambda u: u.username)
        users.add(user)          # True
        users.add(user)          # False -- key already present
        users.get("alice")       # User or None
    """

    def __init__(self, key: Callable[[V], K]) -> None:
        self._key = key
        self._items: dict[K, V] = {}
        self._lock = threading.RLock()

    def get_all(self) -> list[V]:
        """Return a snapshot of all records. Order carries no meaning."""
        with self._lock:
            return list(self._items.values())

    def get(self, key: K) -> V | None:
        """Return the record stored under key, or None."""
        with self._lock:
            return self._items.get(key)

    def add(self, record: V) -> bool:
        """Insert record. Returns False without mutation if its key exists."""
        key = self._key(record)
        with self._lock:
            if key in self._items:
                return False
            self._items[key] = record
            return True

    def update(self, record: V) -> bool:
        """Replace the stored record with the same key.

        Returns True on success, False without mutation if the key is absent.
        """
        key = self._key(record)
        with self._lock:
            if key not in self._items:
                return False
            self._items[key] = record
            return True

    def delete(self, record: V) -> bool:
        """Remove the record with record's key. Returns False if absent."""
        key = self._key(record)
        with self._lock:
            if key not in self._items:
                return False
            del self._items[key]
            return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
