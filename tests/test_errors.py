import pytest

from lsmvault.errors import (
    ErrorKind,
    FileIOError,
    KeyNotFoundError,
    SerializationError,
    StoreError,
    UnexpectedEOFError,
)


def test_plain_kind_message():
    err = StoreError(ErrorKind.BLOCK_IS_FULL)
    assert str(err) == "Block is full"
    assert err.kind is ErrorKind.BLOCK_IS_FULL


def test_path_and_cause_in_message():
    cause = OSError("boom")
    err = FileIOError(ErrorKind.FILE_READ, path="/tmp/data.db", cause=cause)
    assert str(err) == "Failed to read file `/tmp/data.db`: boom"
    assert err.__cause__ is cause
    assert err.path == "/tmp/data.db"


def test_filter_file_open_message():
    err = FileIOError(ErrorKind.FILTER_FILE_OPEN, path="dir/filter.db")
    assert str(err) == "Filter file open error: path `dir/filter.db`"


def test_mapping_detail_is_expanded():
    err = StoreError(
        ErrorKind.INSERT_TO_MEMTABLE_FAILED, detail={"key": "k1", "value_offset": 7}
    )
    assert "Key: `k1`" in str(err)
    assert "Value: `7`" in str(err)


def test_unexpected_eof_default_kind():
    err = UnexpectedEOFError()
    assert err.kind is ErrorKind.UNEXPECTED_EOF
    assert str(err) == "File read ended unexpectedly"
    assert isinstance(err, StoreError)


def test_key_not_found_default_kind():
    err = KeyNotFoundError()
    assert err.kind is ErrorKind.NOT_FOUND_IN_DB
    assert str(err) == "Key not found"


def test_key_not_found_custom_kind():
    err = KeyNotFoundError(ErrorKind.KEY_NOT_FOUND_IN_MEMTABLE)
    assert str(err) == "Memtable does not contains the searched key"


def test_serialization_detail():
    err = SerializationError(detail="Invalid entry size")
    assert str(err) == "Serializartion error: Invalid entry size "


def test_kind_required_for_base_classes():
    with pytest.raises(TypeError):
        FileIOError()
    with pytest.raises(TypeError):
        StoreError("not a kind")


def test_errors_can_be_raised_and_caught_as_base():
    err = UnexpectedEOFError()
    assert str(err) == "File read ended unexpectedly"
    with pytest.raises(StoreError, match="File read ended unexpectedly") as info:
        raise err
    assert info.value is err
    assert info.value.kind is ErrorKind.UNEXPECTED_EOF