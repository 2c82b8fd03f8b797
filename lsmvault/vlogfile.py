"""The value log file and its record format.

Each record is laid out little-endian as::

    key length (u32) | value length (u32) | created at, ms (u64) | tombstone (u8) | key | value
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field
from datetime import datetime

from .errors import UnexpectedEOFError
from .files import FileNode, FileType, _read_required
from .records import datetime_to_milliseconds, milliseconds_to_datetime

_U32 = struct.Struct("<I")
_HEADER_REST = struct.Struct("<IQB")
_HEADER = struct.Struct("<IIQB")


@dataclass
class ValueLogEntry:
    """A key and value as stored in the value log."""

    key: bytes
    value: bytes
    created_at: datetime
    is_tombstone: bool = False
    ksize: int = field(init=False)
    vsize: int = field(init=False)

    def __post_init__(self) -> None:
        self.key = bytes(self.key)
        self.value = bytes(self.value)
        self.ksize = len(self.key)
        self.vsize = len(self.value)

    def to_bytes(self) -> bytes:
        """Encode the entry in the value log record format."""
        header = _HEADER.pack(
            self.ksize,
            self.vsize,
            datetime_to_milliseconds(self.created_at),
            1 if self.is_tombstone else 0,
        )
        return header + self.key + self.value


def _read_vlog_record(node: FileNode) -> tuple[ValueLogEntry, int] | None:
    """Read one record at the current position, or None at end of file."""
    head = node.read(_U32.size)
    if not head:
        return None
    if len(head) < _U32.size:
        raise UnexpectedEOFError(path=node.file_path)
    (key_len,) = _U32.unpack(head)
    val_len, created_ms, tombstone = _HEADER_REST.unpack(
        _read_required(node, _HEADER_REST.size)
    )
    key = _read_required(node, key_len)
    value = _read_required(node, val_len)
    entry = ValueLogEntry(key, value, milliseconds_to_datetime(created_ms), tombstone == 1)
    return entry, _HEADER.size + key_len + val_len


class VLogFileNode:
    """The append-only value log file."""

    def __init__(self, path: str | os.PathLike, file_type: FileType) -> None:
        self.node = FileNode(path, file_type)

    def get(self, start_offset: int) -> tuple[bytes, bool] | None:
        """Return ``(value, is_tombstone)`` of the record at ``start_offset``."""
        with self.node.lock:
            self.node.seek(start_offset)
            record = _read_vlog_record(self.node)
        if record is None:
            return None
        entry, _ = record
        return entry.value, entry.is_tombstone

    def recover(self, start_offset: int) -> list[ValueLogEntry]:
        """Read every record from ``start_offset`` to the end of the log."""
        entries: list[ValueLogEntry] = []
        with self.node.lock:
            self.node.seek(start_offset)
            while (record := _read_vlog_record(self.node)) is not None:
                entries.append(record[0])
        return entries

    def read_chunk_to_garbage_collect(
        self, bytes_to_collect: int, offset: int
    ) -> tuple[list[ValueLogEntry], int]:
        """Read whole records from ``offset`` until about ``bytes_to_collect`` bytes.

        Returns the entries and the number of bytes read.
        """
        entries: list[ValueLogEntry] = []
        total = 0
        with self.node.lock:
            self.node.seek(offset)
            while (record := _read_vlog_record(self.node)) is not None:
                entry, consumed = record
                total += consumed
                entries.append(entry)
                if total >= bytes_to_collect:
                    break
        return entries, total