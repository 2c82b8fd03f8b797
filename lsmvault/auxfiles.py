"""Small fixed-layout files: bloom filter metadata, store metadata and sstable summary."""

from __future__ import annotations

import os
import struct
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterator

from .errors import ErrorKind, FileIOError, UnexpectedEOFError
from .files import FileNode, FileType
from .records import milliseconds_to_datetime

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_F64 = struct.Struct("<d")


@contextmanager
def _open_for_recovery(path: str | os.PathLike) -> Iterator[BinaryIO]:
    file_path = Path(path)
    try:
        file = FileNode.open(file_path)
    except FileIOError as exc:
        raise FileIOError(ErrorKind.FILTER_FILE_OPEN, path=file_path, cause=exc.cause) from exc
    with file:
        yield file


def _read_exact(file: BinaryIO, size: int, path: Path) -> bytes:
    try:
        data = file.read(size)
    except OSError as exc:
        raise FileIOError(ErrorKind.FILE_READ, path=path, cause=exc) from exc
    if len(data) < size:
        raise UnexpectedEOFError(path=path)
    return data


def _read_struct(file: BinaryIO, layout: struct.Struct, path: Path):
    return layout.unpack(_read_exact(file, layout.size, path))[0]


class FilterFileNode:
    """The file holding a bloom filter's metadata."""

    def __init__(self, path: str | os.PathLike, file_type: FileType) -> None:
        self.node = FileNode(path, file_type)

    @staticmethod
    def recover(path: str | os.PathLike) -> tuple[float, int, int]:
        """Return ``(false_positive_rate, no_of_hash_func, no_of_elements)``."""
        file_path = Path(path)
        with _open_for_recovery(file_path) as file:
            no_of_hash_func = _read_struct(file, _U32, file_path)
            no_of_elements = _read_struct(file, _U32, file_path)
            false_positive_rate = _read_struct(file, _F64, file_path)
        return false_positive_rate, no_of_hash_func, no_of_elements


class MetaFileNode:
    """The file holding the store's value log offsets and dates."""

    def __init__(self, path: str | os.PathLike, file_type: FileType) -> None:
        self.node = FileNode(path, file_type)

    @staticmethod
    def recover(path: str | os.PathLike) -> tuple[int, int, datetime, datetime]:
        """Return ``(head, tail, created_at, last_modified)``."""
        file_path = Path(path)
        with _open_for_recovery(file_path) as file:
            head = _read_struct(file, _U32, file_path)
            tail = _read_struct(file, _U32, file_path)
            created_ms = _read_struct(file, _U64, file_path)
            modified_ms = _read_struct(file, _U64, file_path)
        return (
            head,
            tail,
            milliseconds_to_datetime(created_ms),
            milliseconds_to_datetime(modified_ms),
        )


class SummaryFileNode:
    """The file holding an sstable's smallest and biggest keys."""

    def __init__(self, path: str | os.PathLike, file_type: FileType) -> None:
        self.node = FileNode(path, file_type)

    @staticmethod
    def recover(path: str | os.PathLike) -> tuple[bytes, bytes]:
        """Return ``(smallest_key, biggest_key)``."""
        file_path = Path(path)
        with _open_for_recovery(file_path) as file:
            smallest_len = _read_struct(file, _U32, file_path)
            biggest_len = _read_struct(file, _U32, file_path)
            smallest_key = _read_exact(file, smallest_len, file_path)
            biggest_key = _read_exact(file, biggest_len, file_path)
        return smallest_key, biggest_key