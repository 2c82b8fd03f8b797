import struct

import pytest

from lsmvault.errors import UnexpectedEOFError
from lsmvault.meta import Meta
from lsmvault.records import datetime_to_milliseconds, milliseconds_to_datetime


def _truncate_to_ms(dt):
    return milliseconds_to_datetime(datetime_to_milliseconds(dt))


def test_new_creates_directory_and_file(tmp_path):
    directory = tmp_path / "store" / "meta"
    meta = Meta(directory)
    assert directory.is_dir()
    assert meta.path == directory / "meta.bin"
    assert meta.path.exists()
    assert (meta.v_log_head, meta.v_log_tail) == (0, 0)
    assert meta.created_at <= meta.last_modified


def test_serialize_pinned_bytes(tmp_path):
    meta = Meta(tmp_path)
    meta.v_log_head = 1
    meta.v_log_tail = 2
    meta.created_at = milliseconds_to_datetime(0)
    meta.last_modified = milliseconds_to_datetime(0)
    assert meta.serialize() == b"\x01\x00\x00\x00\x02\x00\x00\x00" + bytes(16)


def test_serialize_layout(tmp_path):
    meta = Meta(tmp_path)
    meta.v_log_head = 300
    meta.v_log_tail = 40
    data = meta.serialize()
    assert len(data) == 24
    head, tail, created, modified = struct.unpack("<IIQQ", data)
    assert (head, tail) == (300, 40)
    assert created == datetime_to_milliseconds(meta.created_at)
    assert modified == datetime_to_milliseconds(meta.last_modified)


def test_write_and_recover_round_trip(tmp_path):
    meta = Meta(tmp_path)
    meta.v_log_head = 1234
    meta.v_log_tail = 56
    meta.update_last_modified()
    meta.write()

    restored = Meta(tmp_path)
    restored.recover()
    assert restored.v_log_head == 1234
    assert restored.v_log_tail == 56
    assert restored.created_at == _truncate_to_ms(meta.created_at)
    assert restored.last_modified == _truncate_to_ms(meta.last_modified)


def test_write_replaces_previous_contents(tmp_path):
    meta = Meta(tmp_path)
    meta.v_log_head = 10
    meta.write()
    meta.v_log_head = 20
    meta.write()
    assert meta.path.stat().st_size == 24
    meta.recover()
    assert meta.v_log_head == 20


def test_head_and_tail_are_stored_as_u32(tmp_path):
    meta = Meta(tmp_path)
    meta.v_log_head = 2**32 + 5
    meta.v_log_tail = 2**32 + 7
    meta.write()
    meta.recover()
    assert (meta.v_log_head, meta.v_log_tail) == (5, 7)


def test_recover_from_empty_file_raises(tmp_path):
    meta = Meta(tmp_path)
    with pytest.raises(UnexpectedEOFError):
        meta.recover()


def test_update_last_modified_moves_forward(tmp_path):
    meta = Meta(tmp_path)
    before = meta.last_modified
    meta.update_last_modified()
    assert meta.last_modified >= before
    assert meta.created_at == before