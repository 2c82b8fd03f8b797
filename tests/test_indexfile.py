import pytest

from lsmvault.errors import UnexpectedEOFError
from lsmvault.files import FileType
from lsmvault.index import Index
from lsmvault.indexfile import IndexFileNode
from lsmvault.records import RangeOffset


@pytest.fixture
def index_node(tmp_path):
    node = IndexFileNode(tmp_path / "index.db", FileType.INDEX)
    yield node
    node.node.close()


@pytest.fixture
def filled(index_node, tmp_path):
    index = Index(tmp_path / "index.db", index_node)
    for key, offset in [(b"b", 10), (b"d", 20), (b"f", 30), (b"h", 40)]:
        index.insert(len(key), key, offset)
    index.write_to_file()
    return index_node


@pytest.mark.parametrize(
    "key, expected",
    [(b"a", 10), (b"b", 10), (b"c", 20), (b"d", 20), (b"h", 40), (b"z", None)],
)
def test_get_from_index(filled, key, expected):
    assert filled.get_from_index(key) == expected


def test_get_from_empty_index_returns_none(index_node):
    assert index_node.get_from_index(b"anything") is None


def test_get_block_range_inside(filled):
    assert filled.get_block_range(b"c", b"e") == RangeOffset(10, 30)


def test_get_block_range_past_end(filled):
    result = filled.get_block_range(b"c", b"z")
    assert result == RangeOffset(10, 40)


def test_get_block_range_empty_file(index_node):
    assert index_node.get_block_range(b"a", b"z") == RangeOffset(0, 0)


def test_truncated_record_raises(index_node):
    index_node.node.write_all(b"\x05\x00\x00\x00ab")
    with pytest.raises(UnexpectedEOFError):
        index_node.get_from_index(b"a")


def test_truncated_offset_raises(index_node):
    index_node.node.write_all(b"\x01\x00\x00\x00a\x01")
    with pytest.raises(UnexpectedEOFError):
        index_node.get_block_range(b"a", b"b")