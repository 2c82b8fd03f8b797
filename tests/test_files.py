import struct

import pytest

from lsmvault.errors import ErrorKind, FileIOError, UnexpectedEOFError
from lsmvault.files import DataFileNode, FileNode, FileType
from lsmvault.records import RangeOffset, milliseconds_to_datetime

CREATED_MS = 1_700_000_000_000


def encode(key, val_offset, created_ms=CREATED_MS, tombstone=False):
    return (
        struct.pack("<I", len(key))
        + key
        + struct.pack("<IQB", val_offset, created_ms, 1 if tombstone else 0)
    )


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "data.db"


def test_write_and_read_back(tmp_path):
    with FileNode(tmp_path / "f.bin", FileType.DATA) as node:
        node.write_all(b"hello")
        node.write_all(b"world")
        assert node.seek(0) == 0
        assert node.read(5) == b"hello"
        assert node.read(100) == b"world"
        assert node.read(10) == b""


def test_size_and_clear(tmp_path):
    with FileNode(tmp_path / "f.bin", FileType.META) as node:
        assert node.is_empty()
        node.write_all(b"abc")
        assert node.size() == 3
        node.clear()
        assert node.is_empty()
        node.write_all(b"xy")
        node.seek(0)
        assert node.read(10) == b"xy"


def test_context_manager_closes(tmp_path):
    node = FileNode(tmp_path / "f.bin", FileType.INDEX)
    with node:
        node.write_all(b"1")
    assert node.file.closed


def test_open_missing_raises(tmp_path):
    with pytest.raises(FileIOError) as info:
        FileNode.open(tmp_path / "missing.bin")
    assert info.value.kind is ErrorKind.FILE_OPEN


def test_create_in_missing_directory_raises(tmp_path):
    with pytest.raises(FileIOError) as info:
        FileNode(tmp_path / "no" / "such" / "f.bin", FileType.DATA)
    assert info.value.kind is ErrorKind.FILE_CREATION


def test_create_dir_all(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    FileNode.create_dir_all(target)
    assert target.is_dir()
    FileNode.create_dir_all(target)
    assert target.is_dir()


def test_remove_dir_all_on_file_raises(tmp_path):
    with FileNode(tmp_path / "f.bin", FileType.DATA) as node:
        with pytest.raises(FileIOError) as info:
            node.remove_dir_all()
    assert info.value.kind is ErrorKind.DIR_DELETE


def test_load_entries_round_trip(data_path):
    data = DataFileNode(data_path, FileType.DATA)
    data.node.write_all(encode(b"beta", 20))
    data.node.write_all(encode(b"alpha", 10, tombstone=True))
    entries, total = data.load_entries()
    assert list(entries.keys()) == [b"alpha", b"beta"]
    assert entries[b"alpha"].val_offset == 10
    assert entries[b"alpha"].is_tombstone is True
    assert entries[b"beta"].is_tombstone is False
    assert entries[b"beta"].created_at == milliseconds_to_datetime(CREATED_MS)
    assert total == data_path.stat().st_size


def test_load_entries_empty_file(data_path):
    data = DataFileNode(data_path, FileType.DATA)
    entries, total = data.load_entries()
    assert len(entries) == 0
    assert total == 0


def test_load_entries_truncated_raises(data_path):
    data = DataFileNode(data_path, FileType.DATA)
    data.node.write_all(encode(b"key", 1)[:-3])
    with pytest.raises(UnexpectedEOFError):
        data.load_entries()


def test_find_entry(data_path):
    data = DataFileNode(data_path, FileType.DATA)
    first = encode(b"k1", 5)
    data.node.write_all(first)
    data.node.write_all(encode(b"k2", 7, tombstone=True))
    assert data.find_entry(0, b"k2") == (7, milliseconds_to_datetime(CREATED_MS), True)
    assert data.find_entry(0, b"k1") == (5, milliseconds_to_datetime(CREATED_MS), False)
    assert data.find_entry(0, b"absent") is None
    assert data.find_entry(len(first), b"k1") is None


def test_load_entries_within_range(data_path):
    data = DataFileNode(data_path, FileType.DATA)
    records = [encode(b"a", 1), encode(b"b", 2), encode(b"c", 3)]
    for record in records:
        data.node.write_all(record)

    first_only = data.load_entries_within_range(RangeOffset(0, len(records[0])))
    assert [e.key for e in first_only] == [b"a"]

    tail = data.load_entries_within_range(RangeOffset(len(records[0]), 10_000))
    assert [e.key for e in tail] == [b"b", b"c"]
    assert [e.val_offset for e in tail] == [2, 3]