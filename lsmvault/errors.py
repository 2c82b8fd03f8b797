"""Error types raised by the storage engine."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any


class ErrorKind(enum.Enum):
    """Every failure the engine can report, with its message template.

    Templates may refer to ``{path}``, ``{cause}`` and ``{detail}``; when the
    detail is a mapping its items are available by name as well.
    """

    FILE_SYNC = "Failed to sync writes to file"
    FILE_CREATION = "Failed to create file: `{path}`: {cause}"
    FILE_SEEK = "File seek error"
    DIR_DELETE = "Directory deletion error"
    FILTER_FILE_PATH_NOT_PROVIDED = "Filter file path not provided"
    FILTER_FILE_OPEN = "Filter file open error: path `{path}`"
    FILE_DELETE = "File deletion error"
    FILE_OPEN = "Failed to open file"
    GET_FILE_METADATA = "Failed to get file metadata"
    TRY_FILE_PATH_EXIST = "Failed to check if file path exist"
    DIR_CREATION = "Failed to create directory"
    FILE_CLEAR = "Failed to clear file: `{path}`: {cause}"
    FILE_READ = "Failed to read file `{path}`: {cause}"
    FILE_WRITE = "Failed to write to file `{path}`: {cause}"
    DIR_OPEN = "Failed to open directory `{path}`: {cause}"
    UNEXPECTED_EOF = "File read ended unexpectedly"
    GC_ATTEMPT_TO_REMOVE_UNSYNCED_ENTRIES = (
        "GC error: attempting to remove unsynced entries from disk"
    )
    CONDITIONS_TO_INSERT_TO_BUCKET_NOT_MET = (
        "Failed to insert sstable to bucket because no insertion condition was met"
    )
    FLUSH_TO_DISK = "Error occured while flushing to disk"
    INSERT_TO_MEMTABLE_FAILED = (
        "Error occured while inserting entry to memtable value  "
        "Key: `{key}` Value: `{value_offset}`"
    )
    MEMTABLE_RECOVERY = "Error while recovering memtable from value log"
    INVALID_UUID_PARSE_STRING = (
        "Invalid string provided to be parsed to UUID `{input_string}`: {cause}"
    )
    INVALID_SSTABLE_DIRECTORY = "Invalid sstable directory error: `{input_string}`"
    COMPACTION_FAILED = "Compaction failed reason : {cause}"
    COMPACTION_PARTIALLY_FAILED = "Compaction partially failed failed reason: {cause}"
    KEY_NOT_FOUND_IN_ANY_SSTABLE = "No SSTable contains the searched key"
    KEY_FOUND_AS_TOMBSTONE_IN_SSTABLE = "Key found as tombstone in sstable"
    KEY_FOUND_AS_TOMBSTONE_IN_MEMTABLE = "Key found as tombstone in memtable"
    KEY_FOUND_AS_TOMBSTONE_IN_VALUE_LOG = "Key found as tombstone in value log"
    KEY_NOT_FOUND_IN_MEMTABLE = "Memtable does not contains the searched key"
    KEY_NOT_FOUND_IN_VALUE_LOG = "Key does not exist in value log"
    KEY_NOT_FOUND = "Key not found, reason: "
    NOT_FOUND_IN_DB = "Key not found"
    TOMBSTONE_CHECK_FAILED = "Tombstone check failed {detail}"
    BLOCK_IS_FULL = "Block is full"
    FILTER_NOT_PROVIDED_FOR_FLUSH = "Filter not provided, needed to flush table to disk"
    KEY_MAX_SIZE_EXCEEDED = "Key size too large, key must not exceed 65536 bytes"
    KEY_SIZE_NONE = "Key cannot be empty"
    VALUE_SIZE_NONE = "Value cannot be empty"
    VAL_MAX_SIZE_EXCEEDED = "Value too large, value must not exceed 2^32 bytes"
    FILTER_NOT_FOUND = "Filter not found"
    BIGGEST_KEY_INDEX = "Error finding biggest key in memtable (None was returned)"
    LOWEST_KEY_INDEX = "Error finding lowest key in memtable (None was returned)"
    TABLE_SUMMARY_IS_NONE = "SSTable summary field is None"
    KEY_NOT_FOUND_BY_ANY_BLOOM_FILTER = "All bloom filters return false for all sstables"
    FAILED_TO_INSERT_TO_BUCKET = "Failed to insert to a bucket, reason `{detail}`"
    GC_FAILED_TO_PUNCH_HOLE = "Error punching hole in file, reason `{cause}`"
    GC_UNSUPPORTED_PLATFORM = "Unsuported OS for garbage collection, err message `{detail}`"
    RANGE_SCAN = "Range scan error `{cause}`"
    FLUSH_SIGNAL_CHANNEL_OVERFLOW = (
        "Flush signal channel was overloaded with signals, please check all "
        "signal consumers or try again later"
    )
    GC_UPDATE_CHANNEL_OVERFLOW = (
        "GC update channel was overloaded with data, please check all  consumers"
    )
    FLUSH_SIGNAL_CHANNEL_CLOSED = "Flush signal channel has been closed"
    SERIALIZATION = "Serializartion error: {detail} "
    COMPACTION_CLEANUP_PARTIAL = (
        "Partial failure, sstable merge was successful but obsolete sstables not deleted  "
    )
    COMPACTION_CLEANUP = (
        "Compaction cleanup failed but sstable merge was successful : {cause} "
    )
    CANNOT_REMOVE_OBSOLETE_SST = (
        "Cannot remove obsolete sstables from disk because not every merged "
        "sstable was written to disk"
    )
    MERGE_SST_CONTAINS_ZERO_ENTRIES = "Error, merged sstables has empty entries"
    TASK_JOIN = "Tokio join tasks error"
    ENTRIES_CANNOT_BE_EMPTY_DURING_FLUSH = "Entries cannot be empty during flush"

    @property
    def template(self) -> str:
        return self.value


class _Fields(dict):
    def __missing__(self, key: str) -> str:
        return ""


class StoreError(Exception):
    """Base error of the engine, carrying an :class:`ErrorKind`."""

    default_kind: ErrorKind | None = None

    def __init__(
        self,
        kind: ErrorKind | None = None,
        detail: Any = None,
        path: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        if kind is None:
            kind = self.default_kind
        if not isinstance(kind, ErrorKind):
            raise TypeError(f"{type(self).__name__} requires an ErrorKind")
        self.kind = kind
        self.detail = detail
        self.path = path
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
        super().__init__(self._render())

    def _render(self) -> str:
        fields = _Fields(
            path="" if self.path is None else str(self.path),
            cause="" if self.cause is None else str(self.cause),
            detail="" if self.detail is None else str(self.detail),
        )
        if isinstance(self.detail, Mapping):
            fields.update({str(k): v for k, v in self.detail.items()})
        return self.kind.template.format_map(fields)


class FileIOError(StoreError):
    """A file or directory operation failed."""


class UnexpectedEOFError(StoreError):
    """A record on disk ended before it was complete."""

    default_kind = ErrorKind.UNEXPECTED_EOF


class KeyNotFoundError(StoreError):
    """The searched key does not exist or has been deleted."""

    default_kind = ErrorKind.NOT_FOUND_IN_DB


class SerializationError(StoreError):
    """A record could not be encoded."""

    default_kind = ErrorKind.SERIALIZATION