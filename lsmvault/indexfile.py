"""The sstable index file.

Each index record is laid out little-endian as::

    key length (u32) | key | block offset (u32)

The key of a record is the last key of the data block starting at the offset.
"""

from __future__ import annotations

import os
import struct

from .errors import UnexpectedEOFError
from .files import FileNode, FileType, _read_required
from .records import RangeOffset

_U32 = struct.Struct("<I")


def _read_index_record(node: FileNode) -> tuple[bytes, int] | None:
    """Read one index record at the current position, or None at end of file."""
    head = node.read(_U32.size)
    if not head:
        return None
    if len(head) < _U32.size:
        raise UnexpectedEOFError(path=node.file_path)
    (key_len,) = _U32.unpack(head)
    key = _read_required(node, key_len)
    (offset,) = _U32.unpack(_read_required(node, _U32.size))
    return key, offset


class IndexFileNode:
    """An sstable index file."""

    def __init__(self, path: str | os.PathLike, file_type: FileType) -> None:
        self.node = FileNode(path, file_type)

    def _records(self):
        self.node.seek(0)
        while (record := _read_index_record(self.node)) is not None:
            yield record

    def get_from_index(self, searched_key: bytes) -> int | None:
        """Return the offset of the first block whose last key is not below ``searched_key``."""
        wanted = bytes(searched_key)
        with self.node.lock:
            for key, offset in self._records():
                if key >= wanted:
                    return offset
        return None

    def get_block_range(self, start_key: bytes, end_key: bytes) -> RangeOffset:
        """Return the block offsets that bound the keys from ``start_key`` to ``end_key``."""
        start = bytes(start_key)
        end = bytes(end_key)
        range_offset = RangeOffset(0, 0)
        with self.node.lock:
            for key, offset in self._records():
                if key > start:
                    range_offset.end_offset = offset
                    if key > end:
                        break
                else:
                    range_offset.start_offset = offset
        return range_offset