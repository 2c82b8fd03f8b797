"""Plain records shared by the memtable, data files and the index."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


def milliseconds_to_datetime(ms: int) -> datetime:
    """Convert milliseconds since the Unix epoch to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=int(ms))


def datetime_to_milliseconds(dt: datetime) -> int:
    """Convert a datetime to whole milliseconds since the Unix epoch.

    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // _MILLISECOND


def _to_milliseconds(ttl: timedelta | float | int) -> int:
    if isinstance(ttl, timedelta):
        return ttl // _MILLISECOND
    return int(ttl * 1000)


@dataclass(order=True)
class Entry:
    """A key pointing at a value offset in the value log."""

    key: bytes
    val_offset: int
    created_at: datetime
    is_tombstone: bool = False

    def __post_init__(self) -> None:
        self.key = bytes(self.key)

    def has_expired(self, ttl: timedelta | float | int) -> bool:
        """Return True once more than ``ttl`` has passed since creation.

        ``ttl`` is a timedelta or a number of seconds.
        """
        now_ms = datetime_to_milliseconds(datetime.now(timezone.utc))
        created_ms = datetime_to_milliseconds(self.created_at)
        return now_ms > created_ms + _to_milliseconds(ttl)


@dataclass
class SkipMapValue:
    """The value stored against a key in a memtable."""

    val_offset: int
    created_at: datetime
    is_tombstone: bool = False


@dataclass
class UserEntry:
    """A value handed back to a caller on retrieval."""

    val: bytes
    created_at: datetime


@dataclass
class RangeOffset:
    """Block offsets bounding a range query in a data file."""

    start_offset: int = 0
    end_offset: int = 0