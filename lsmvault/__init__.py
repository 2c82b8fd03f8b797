"""Storage building blocks for a log-structured merge-tree key-value store."""

__version__ = "0.1.0"

__all__ = [
    "auxfiles",
    "bloom",
    "errors",
    "files",
    "index",
    "indexfile",
    "memtable",
    "meta",
    "records",
    "vlogfile",
]