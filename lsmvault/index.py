"""In-memory sstable index that is written to and searched in an index file."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path

from .errors import SerializationError
from .indexfile import IndexFileNode

_U32 = struct.Struct("<I")


@dataclass
class IndexEntry:
    """The last key of a data block and the block's start offset."""

    key_len: int
    key: bytes
    block_handle: int

    def __post_init__(self) -> None:
        self.key = bytes(self.key)


class Index:
    """Collects index entries and writes them to an index file."""

    def __init__(self, path: str | os.PathLike, file: IndexFileNode) -> None:
        self.path = Path(path)
        self.file = file
        self.entries: list[IndexEntry] = []

    def insert(self, key_len: int, key: bytes, offset: int) -> None:
        self.entries.append(IndexEntry(key_len, key, offset))

    def write_to_file(self) -> None:
        """Append every entry to the index file."""
        for entry in self.entries:
            self.file.node.write_all(self.serialize_entry(entry))

    def serialize_entry(self, entry: IndexEntry) -> bytes:
        """Encode one entry in the index record format."""
        try:
            return _U32.pack(entry.key_len) + entry.key + _U32.pack(entry.block_handle)
        except struct.error as exc:
            raise SerializationError(detail="Invalid entry size", cause=exc) from exc

    def get(self, searched_key: bytes) -> int | None:
        """Return the offset of the block that may hold ``searched_key``."""
        return self.file.get_from_index(searched_key)