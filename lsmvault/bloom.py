"""Bloom filter used to rule out sstables that cannot hold a key.

Bit positions come from SipHash-1-3 with zero keys over the key's bytes
followed by the hash function's number, as 8 little-endian bytes.
"""

from __future__ import annotations

import math
import os
import struct
import threading
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from .auxfiles import FilterFileNode
from .errors import ErrorKind, StoreError
from .files import FileType

FILTER_FILE_NAME = "filter"

_U32_MAX = 0xFFFF_FFFF
_U64_MASK = 0xFFFF_FFFF_FFFF_FFFF
_LN2 = math.log(2.0)
_U64 = struct.Struct("<Q")
_META = struct.Struct("<IId")


def _sip_round(v0: int, v1: int, v2: int, v3: int) -> tuple[int, int, int, int]:
    m = _U64_MASK
    v0 = (v0 + v1) & m
    v1 = ((v1 << 13) | (v1 >> 51)) & m
    v1 ^= v0
    v0 = ((v0 << 32) | (v0 >> 32)) & m
    v2 = (v2 + v3) & m
    v3 = ((v3 << 16) | (v3 >> 48)) & m
    v3 ^= v2
    v0 = (v0 + v3) & m
    v3 = ((v3 << 21) | (v3 >> 43)) & m
    v3 ^= v0
    v2 = (v2 + v1) & m
    v1 = ((v1 << 17) | (v1 >> 47)) & m
    v1 ^= v2
    v2 = ((v2 << 32) | (v2 >> 32)) & m
    return v0, v1, v2, v3


def _siphash13(data: bytes) -> int:
    """SipHash-1-3 of ``data`` with both keys zero."""
    v0 = 0x736F6D6570736575
    v1 = 0x646F72616E646F6D
    v2 = 0x6C7967656E657261
    v3 = 0x7465646279746573
    length = len(data)
    whole = length - (length & 7)
    words = [word for (word,) in _U64.iter_unpack(data[:whole])]
    words.append(((length & 0xFF) << 56) | int.from_bytes(data[whole:], "little"))
    for word in words:
        v3 ^= word
        v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
        v0 ^= word
    v2 ^= 0xFF
    for _ in range(3):
        v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
    return v0 ^ v1 ^ v2 ^ v3


def _key_bytes(key: Any) -> bytes:
    """Encode a key as the byte stream that is hashed."""
    if isinstance(key, bool):
        return b"\x01" if key else b"\x00"
    if isinstance(key, int):
        return _U64.pack(key & _U64_MASK)
    if isinstance(key, (bytes, bytearray, memoryview)):
        raw = bytes(key)
        return _U64.pack(len(raw)) + raw
    if isinstance(key, str):
        return key.encode("utf-8") + b"\xff"
    if isinstance(key, (tuple, list)):
        return _U64.pack(len(key)) + b"".join(_key_bytes(item) for item in key)
    raise TypeError(f"unsupported bloom filter key type: {type(key).__name__}")


def _saturate_u32(value: float) -> int:
    if math.isnan(value) or value <= 0:
        return 0
    if value >= _U32_MAX:
        return _U32_MAX
    return int(value)


def _calculate_no_of_bits(no_of_elements: int, false_positive_rate: float) -> int:
    ln_rate = math.log(false_positive_rate) if false_positive_rate > 0 else -math.inf
    ratio = no_of_elements * ln_rate / (_LN2 * _LN2)
    if math.isnan(ratio):
        return 0
    if math.isinf(ratio):
        return _saturate_u32(-ratio)
    return _saturate_u32(-math.ceil(ratio))


def _calculate_no_of_hash_function(no_of_bits: int, no_of_elements: int) -> int:
    if no_of_elements:
        per_element = no_of_bits / no_of_elements
    else:
        per_element = math.inf if no_of_bits else math.nan
    return _saturate_u32(per_element * math.ceil(_LN2))


class _Bits:
    """A fixed-length bit array with its own lock."""

    __slots__ = ("data", "length", "lock")

    def __init__(self, length: int) -> None:
        self.length = length
        self.data = bytearray((length + 7) // 8)
        self.lock = threading.Lock()

    def set(self, index: int) -> None:
        self.data[index >> 3] |= 1 << (index & 7)

    def get(self, index: int) -> bool:
        return bool(self.data[index >> 3] & (1 << (index & 7)))

    def reset(self) -> None:
        self.data[:] = bytes(len(self.data))


class BloomFilter:
    """Probabilistic set membership test for the keys of an sstable.

    The bit array is not written to disk; only the number of hash functions,
    the element count and the false positive rate are. The bits are rebuilt
    from the table's entries on recovery.
    """

    def __init__(self, false_positive_rate: float, no_of_elements: int) -> None:
        if not false_positive_rate >= 0.0:
            raise ValueError("False positive rate can not be less than or equal to zero")
        if no_of_elements <= 0:
            raise ValueError("No of elements should be greater than 0")
        no_of_bits = _calculate_no_of_bits(no_of_elements, false_positive_rate)
        self.no_of_hash_func = _calculate_no_of_hash_function(no_of_bits, no_of_elements)
        self.false_positive_rate = float(false_positive_rate)
        self.sst_dir: Path | None = None
        self.file_path: Path | None = None
        self._bits = _Bits(no_of_bits)
        self._count = 0
        self._count_lock = threading.Lock()

    @classmethod
    def _from_state(
        cls, false_positive_rate: float, no_of_hash_func: int, bits: _Bits, count: int
    ) -> BloomFilter:
        bloom = cls.__new__(cls)
        bloom.no_of_hash_func = no_of_hash_func
        bloom.false_positive_rate = false_positive_rate
        bloom.sst_dir = None
        bloom.file_path = None
        bloom._bits = bits
        bloom._count = count
        bloom._count_lock = threading.Lock()
        return bloom

    def _indexes(self, key: Any) -> Iterator[int]:
        prefix = _key_bytes(key)
        length = self._bits.length
        for seed in range(self.no_of_hash_func):
            yield _siphash13(prefix + _U64.pack(seed)) % length

    def set(self, key: Any) -> None:
        """Add ``key`` to the filter."""
        bits = self._bits
        with bits.lock:
            for index in self._indexes(key):
                bits.set(index)
        with self._count_lock:
            self._count = (self._count + 1) & _U32_MAX

    def contains(self, key: Any) -> bool:
        """Return False if ``key`` was certainly never added."""
        bits = self._bits
        with bits.lock:
            return all(bits.get(index) for index in self._indexes(key))

    def write(self, directory: str | os.PathLike) -> None:
        """Append the filter's metadata to its file in ``directory``."""
        file_path = Path(directory) / f"{FILTER_FILE_NAME}.db"
        filter_file = FilterFileNode(file_path, FileType.FILTER)
        with filter_file.node as node:
            node.write_all(self.serialize())
        self.file_path = file_path

    def build_filter_from_entries(self, entries: Mapping | Iterable) -> None:
        """Add every key of ``entries`` to the filter."""
        for key in entries:
            self.set(key)

    def recover_meta(self) -> None:
        """Reload metadata from ``file_path`` and start from an empty bit array."""
        if self.file_path is None:
            raise StoreError(ErrorKind.FILTER_FILE_PATH_NOT_PROVIDED)
        false_positive_rate, no_of_hash_func, no_of_elements = FilterFileNode.recover(
            self.file_path
        )
        self.false_positive_rate = false_positive_rate
        self.no_of_hash_func = no_of_hash_func
        with self._count_lock:
            self._count = no_of_elements
        self._bits = _Bits(_calculate_no_of_bits(no_of_elements, false_positive_rate))

    def serialize(self) -> bytes:
        """Encode hash function count, element count and false positive rate."""
        return _META.pack(
            self.no_of_hash_func & _U32_MAX,
            self.num_elements() & _U32_MAX,
            self.false_positive_rate,
        )

    def set_sstable_path(self, path: str | os.PathLike) -> None:
        self.sst_dir = Path(path)

    def clear(self) -> BloomFilter:
        """Zero this filter's bits and return an empty filter of the same shape."""
        bits = self._bits
        with bits.lock:
            bits.reset()
            length = bits.length
        return self._from_state(
            self.false_positive_rate, self.no_of_hash_func, _Bits(length), 0
        )

    def copy(self) -> BloomFilter:
        """Return a copy that shares this filter's bit array."""
        clone = self._from_state(
            self.false_positive_rate, self.no_of_hash_func, self._bits, self.num_elements()
        )
        clone.sst_dir = self.sst_dir
        clone.file_path = self.file_path
        return clone

    def num_elements(self) -> int:
        with self._count_lock:
            return self._count

    def num_bits(self) -> int:
        return self._bits.length

    def num_of_hash_functions(self) -> int:
        return self.no_of_hash_func

    def __repr__(self) -> str:
        return (
            f"BloomFilter(false_positive_rate={self.false_positive_rate!r}, "
            f"no_of_hash_func={self.no_of_hash_func}, bits={self.num_bits()}, "
            f"elements={self.num_elements()})"
        )