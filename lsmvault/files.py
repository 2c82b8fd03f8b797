"""File handles for the engine's on-disk files and the sstable data file format.

A data file is a sequence of records, each laid out little-endian as::

    key length (u32) | key | value offset (u32) | created at, ms (u64) | tombstone (u8)
"""

from __future__ import annotations

import enum
import os
import shutil
import struct
import threading
from pathlib import Path
from typing import BinaryIO

from sortedcontainers import SortedDict

from .errors import ErrorKind, FileIOError, UnexpectedEOFError
from .records import Entry, RangeOffset, SkipMapValue, milliseconds_to_datetime

_U32 = struct.Struct("<I")
_DATA_TAIL = struct.Struct("<IQB")


class FileType(enum.Enum):
    """The role a file plays in the store."""

    INDEX = "index"
    DATA = "data"
    VALUE_LOG = "value_log"
    FILTER = "filter"
    META = "meta"
    SUMMARY = "summary"


class FileNode:
    """A file opened for reading and appending, guarded by a lock."""

    def __init__(self, path: str | os.PathLike, file_type: FileType) -> None:
        self.file_path = Path(path)
        self.file_type = file_type
        self.lock = threading.RLock()
        self.file: BinaryIO = self.create(self.file_path)

    @staticmethod
    def create(path: str | os.PathLike) -> BinaryIO:
        """Open ``path`` for reading and appending, creating it if missing."""
        try:
            return open(path, "a+b")
        except OSError as exc:
            raise FileIOError(ErrorKind.FILE_CREATION, path=Path(path), cause=exc) from exc

    @staticmethod
    def create_dir_all(path: str | os.PathLike) -> None:
        """Create ``path`` and any missing parents."""
        directory = Path(path)
        if directory.exists():
            return
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileIOError(ErrorKind.DIR_CREATION, path=directory, cause=exc) from exc

    @staticmethod
    def open(path: str | os.PathLike) -> BinaryIO:
        """Open an existing file read-only."""
        try:
            return open(path, "rb")
        except OSError as exc:
            raise FileIOError(ErrorKind.FILE_OPEN, path=Path(path), cause=exc) from exc

    def metadata(self) -> os.stat_result:
        with self.lock:
            try:
                self.file.flush()
                return os.fstat(self.file.fileno())
            except (OSError, ValueError) as exc:
                raise FileIOError(
                    ErrorKind.GET_FILE_METADATA, path=self.file_path, cause=exc
                ) from exc

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes from the current position."""
        with self.lock:
            try:
                return self.file.read(size)
            except (OSError, ValueError) as exc:
                raise FileIOError(ErrorKind.FILE_READ, path=self.file_path, cause=exc) from exc

    def write_all(self, data: bytes) -> None:
        """Append ``data`` to the end of the file."""
        with self.lock:
            try:
                self.file.write(data)
                self.file.flush()
            except (OSError, ValueError) as exc:
                raise FileIOError(ErrorKind.FILE_WRITE, path=self.file_path, cause=exc) from exc

    def sync_all(self) -> None:
        with self.lock:
            try:
                self.file.flush()
                os.fsync(self.file.fileno())
            except (OSError, ValueError) as exc:
                raise FileIOError(ErrorKind.FILE_SYNC, path=self.file_path, cause=exc) from exc

    def flush(self) -> None:
        with self.lock:
            try:
                self.file.flush()
            except (OSError, ValueError) as exc:
                raise FileIOError(ErrorKind.FILE_SYNC, path=self.file_path, cause=exc) from exc

    def seek(self, offset: int) -> int:
        """Move the read position to ``offset`` from the start; return it."""
        with self.lock:
            try:
                return self.file.seek(offset)
            except (OSError, ValueError) as exc:
                raise FileIOError(ErrorKind.FILE_SEEK, path=self.file_path, cause=exc) from exc

    def clear(self) -> None:
        """Truncate the file to zero length."""
        with self.lock:
            try:
                self.file.flush()
                self.file.truncate(0)
            except (OSError, ValueError) as exc:
                raise FileIOError(ErrorKind.FILE_CLEAR, path=self.file_path, cause=exc) from exc

    def remove_dir_all(self) -> None:
        """Remove the directory at this node's path and everything under it."""
        try:
            shutil.rmtree(self.file_path)
        except OSError as exc:
            raise FileIOError(ErrorKind.DIR_DELETE, path=self.file_path, cause=exc) from exc

    def size(self) -> int:
        return self.metadata().st_size

    def is_empty(self) -> bool:
        return self.size() == 0

    def close(self) -> None:
        with self.lock:
            self.file.close()

    def __enter__(self) -> FileNode:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _read_required(node: FileNode, size: int) -> bytes:
    """Read a field that must be present in full."""
    data = node.read(size)
    if not data or len(data) < size:
        raise UnexpectedEOFError(path=node.file_path)
    return data


def _read_data_record(node: FileNode) -> tuple[Entry, int] | None:
    """Read one data record at the current position, or None at end of file."""
    head = node.read(_U32.size)
    if not head:
        return None
    if len(head) < _U32.size:
        raise UnexpectedEOFError(path=node.file_path)
    (key_len,) = _U32.unpack(head)
    key = _read_required(node, key_len)
    val_offset, created_ms, tombstone = _DATA_TAIL.unpack(
        _read_required(node, _DATA_TAIL.size)
    )
    entry = Entry(key, val_offset, milliseconds_to_datetime(created_ms), tombstone == 1)
    return entry, _U32.size + key_len + _DATA_TAIL.size


class DataFileNode:
    """An sstable data file."""

    def __init__(self, path: str | os.PathLike, file_type: FileType) -> None:
        self.node = FileNode(path, file_type)

    def load_entries(self) -> tuple[SortedDict, int]:
        """Load every record, keyed and ordered by key, with the bytes read."""
        entries: SortedDict = SortedDict()
        total = 0
        with self.node.lock:
            self.node.seek(0)
            while (record := _read_data_record(self.node)) is not None:
                entry, consumed = record
                total += consumed
                entries[entry.key] = SkipMapValue(
                    entry.val_offset, entry.created_at, entry.is_tombstone
                )
        return entries, total

    def find_entry(self, offset: int, searched_key: bytes):
        """Scan from ``offset`` for ``searched_key``.

        Returns ``(val_offset, created_at, is_tombstone)`` or None.
        """
        wanted = bytes(searched_key)
        with self.node.lock:
            self.node.seek(offset)
            while (record := _read_data_record(self.node)) is not None:
                entry, _ = record
                if entry.key == wanted:
                    return entry.val_offset, entry.created_at, entry.is_tombstone
        return None

    def load_entries_within_range(self, range_offset: RangeOffset) -> list[Entry]:
        """Read records from the range's start until its end offset is reached."""
        entries: list[Entry] = []
        total = 0
        with self.node.lock:
            self.node.seek(range_offset.start_offset)
            while (record := _read_data_record(self.node)) is not None:
                entry, consumed = record
                total += consumed
                entries.append(entry)
                if total >= range_offset.end_offset:
                    break
        return entries