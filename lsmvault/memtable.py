"""In-memory table that buffers writes before they are flushed to disk.

Keys are kept in key order and map to the offset of their value in the value
log. A bloom filter in front of the map answers most misses without a lookup.
"""

from __future__ import annotations

import dataclasses
import secrets
import string
import threading
from datetime import datetime, timezone

from sortedcontainers import SortedDict

from .bloom import BloomFilter
from .errors import ErrorKind, KeyNotFoundError
from .records import Entry, SkipMapValue

_AVG_ENTRY_SIZE = 100
# value offset (u32) + created at (u64) + tombstone (u8)
_ENTRY_OVERHEAD = 4 + 8 + 1
_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 5


def _new_filter(capacity: int, false_positive_rate: float) -> BloomFilter:
    return BloomFilter(false_positive_rate, capacity // _AVG_ENTRY_SIZE)


class MemTable:
    """Ordered key to value-offset map with a size budget in bytes."""

    def __init__(self, capacity: int, false_positive_rate: float) -> None:
        if not false_positive_rate >= 0.0:
            raise ValueError("False positive rate can not be les than or equal to zero")
        if capacity <= 0:
            raise ValueError("Capacity should be greater than 0")
        now = datetime.now(timezone.utc)
        self.capacity = capacity
        self.false_positive_rate = float(false_positive_rate)
        self.entries: SortedDict = SortedDict()
        self.bloom_filter = _new_filter(capacity, false_positive_rate)
        self.size = 0
        self.created_at = now
        self.read_only = False
        self.most_recent_entry = Entry(b"", 0, now, False)
        self._lock = threading.RLock()

    def insert(self, entry: Entry) -> None:
        """Store ``entry`` and grow the table's size by its encoded length."""
        key = bytes(entry.key)
        with self._lock:
            if not self.bloom_filter.contains(key):
                self.bloom_filter.set(key)
            self.entries[key] = SkipMapValue(
                entry.val_offset, entry.created_at, entry.is_tombstone
            )
            if entry.val_offset > self.most_recent_entry.val_offset:
                self.most_recent_entry = dataclasses.replace(entry)
            self.size += len(key) + _ENTRY_OVERHEAD

    def get(self, key: bytes) -> SkipMapValue | None:
        """Return the value stored for ``key``, or None."""
        wanted = bytes(key)
        with self._lock:
            if not self.bloom_filter.contains(wanted):
                return None
            value = self.entries.get(wanted)
            return None if value is None else dataclasses.replace(value)

    def update(self, entry: Entry) -> None:
        """Overwrite the value of a key already in the table."""
        key = bytes(entry.key)
        with self._lock:
            if not self.bloom_filter.contains(key):
                raise KeyNotFoundError(ErrorKind.KEY_NOT_FOUND_IN_MEMTABLE)
            self.entries[key] = SkipMapValue(
                entry.val_offset, entry.created_at, entry.is_tombstone
            )

    def delete(self, entry: Entry) -> None:
        """Overwrite a key already in the table, stamped with the current time."""
        key = bytes(entry.key)
        with self._lock:
            if not self.bloom_filter.contains(key):
                raise KeyNotFoundError(ErrorKind.KEY_NOT_FOUND_IN_MEMTABLE)
            self.entries[key] = SkipMapValue(
                entry.val_offset, datetime.now(timezone.utc), entry.is_tombstone
            )

    def most_recent_offset(self) -> int:
        """Return the largest value offset inserted so far."""
        return self.most_recent_entry.val_offset

    @staticmethod
    def generate_table_id() -> bytes:
        """Return a random five-character alphanumeric identifier."""
        return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH)).encode()

    def is_full(self, key_len: int) -> bool:
        """Return True if an entry with a key of ``key_len`` bytes would fill the table."""
        return self.size + key_len + _ENTRY_OVERHEAD >= self.capacity

    def mark_readonly(self) -> None:
        self.read_only = True

    @staticmethod
    def is_entry_within_range(key: bytes, start: bytes, end: bytes) -> bool:
        """Return True if ``key`` is not below ``start`` or not above ``end``."""
        key = bytes(key)
        return key >= bytes(start) or key <= bytes(end)

    def clear(self) -> None:
        """Drop every entry and start over with an empty filter."""
        with self._lock:
            self.entries.clear()
            self.size = 0
            self.bloom_filter = _new_filter(self.capacity, self.false_positive_rate)

    def copy(self) -> MemTable:
        """Return a table sharing this one's entries and filter bits."""
        clone = MemTable.__new__(MemTable)
        with self._lock:
            clone.capacity = self.capacity
            clone.false_positive_rate = self.false_positive_rate
            clone.entries = self.entries
            clone.bloom_filter = self.bloom_filter.copy()
            clone.size = self.size
            clone.created_at = self.created_at
            clone.read_only = self.read_only
            clone.most_recent_entry = dataclasses.replace(self.most_recent_entry)
        clone._lock = self._lock
        return clone

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return (
            f"MemTable(capacity={self.capacity}, size={self.size}, "
            f"entries={len(self.entries)}, read_only={self.read_only})"
        )