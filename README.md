# lsmvault

Pure-Python pieces of the storage layer of a log-structured merge-tree
key-value store:

- `lsmvault.memtable.MemTable`: an in-memory write buffer kept in key order.
  Each key maps to a value-log offset. The table has its own bloom filter and
  a size budget in bytes (`is_full`).
- `lsmvault.bloom.BloomFilter`: a probabilistic membership filter.
  `write(directory)` stores its metadata in `filter.db`, which holds the hash
  function count, the element count and the false positive rate.
  `recover_meta()` reads that metadata back. The bit array itself is rebuilt
  with `build_filter_from_entries`.
- `lsmvault.records`: the plain records `Entry`, `SkipMapValue`, `UserEntry`
  and `RangeOffset`, plus millisecond and datetime conversion helpers.
- `lsmvault.files`: `FileNode`, a locked file handle opened for reading and
  appending, and `DataFileNode`, which reads the records of an SSTable data
  file (`load_entries`, `find_entry`, `load_entries_within_range`).
- `lsmvault.vlogfile`: `ValueLogEntry`, which encodes itself with
  `to_bytes()`, and `VLogFileNode`, which reads value-log records with `get`,
  `recover` and `read_chunk_to_garbage_collect`.
- `lsmvault.index.Index` and `lsmvault.indexfile.IndexFileNode`: write the
  block index and search it (`get_from_index`, `get_block_range`).
- `lsmvault.auxfiles`: reads back filter, meta and summary files
  (`FilterFileNode.recover`, `MetaFileNode.recover`,
  `SummaryFileNode.recover`).
- `lsmvault.meta.Meta`: the store's value-log head and tail with its
  creation and modification times, kept in `meta.bin`.

All on-disk formats are little-endian with fixed layouts. Failures raise
`lsmvault.errors.StoreError` or one of its subclasses (`FileIOError`,
`UnexpectedEOFError`, `KeyNotFoundError`, `SerializationError`). Each error
carries an `ErrorKind`.

## Installation

```
pip install lsmvault
```

## Example

```python
from datetime import datetime, timezone

from lsmvault.memtable import MemTable
from lsmvault.records import Entry

table = MemTable(51200, 1e-4)
entry = Entry(b"user:1", 400, datetime.now(timezone.utc), False)
table.insert(entry)

value = table.get(b"user:1")
print(value.val_offset)          # 400
print(table.most_recent_offset())  # 400
```

To build an index file and search it:

```python
from lsmvault.files import FileType
from lsmvault.index import Index
from lsmvault.indexfile import IndexFileNode

node = IndexFileNode("index.db", FileType.INDEX)
index = Index("index.db", node)
index.insert(3, b"abc", 0)
index.insert(3, b"xyz", 128)
index.write_to_file()
print(index.get(b"m"))  # 128: the first block whose last key is >= b"m"
```

## What it does not do

This package is a set of building blocks, not a complete store. It has no
database object that ties the pieces together, and no command or server.
It does not flush memtables into SSTables or write data or summary files.
It has no compaction and no garbage collector: `read_chunk_to_garbage_collect`
only reads the records that a collector would examine.

## Running the tests

```
pip install -e ".[test]"
pytest
```