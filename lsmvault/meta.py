"""Store metadata: value log head and tail with creation and modification dates."""

from __future__ import annotations

import os
import struct
from datetime import datetime, timezone
from pathlib import Path

from .auxfiles import MetaFileNode
from .files import FileNode, FileType
from .records import datetime_to_milliseconds

META_FILE_NAME = "meta"

_U32_MASK = 0xFFFF_FFFF
_U64_MASK = 0xFFFF_FFFF_FFFF_FFFF
_LAYOUT = struct.Struct("<IIQQ")


class Meta:
    """Metadata of a store, kept in a file inside its directory."""

    def __init__(self, directory: str | os.PathLike) -> None:
        now = datetime.now(timezone.utc)
        FileNode.create_dir_all(directory)
        self.path = Path(directory) / f"{META_FILE_NAME}.bin"
        self.file = MetaFileNode(self.path, FileType.META)
        self.v_log_head = 0
        self.v_log_tail = 0
        self.created_at = now
        self.last_modified = now

    def write(self) -> None:
        """Replace the file's contents with the current metadata."""
        data = self.serialize()
        self.file.node.clear()
        self.file.node.write_all(data)

    def update_last_modified(self) -> None:
        self.last_modified = datetime.now(timezone.utc)

    def recover(self) -> None:
        """Load the metadata stored in the file."""
        head, tail, created_at, last_modified = MetaFileNode.recover(self.path)
        self.v_log_head = head
        self.v_log_tail = tail
        self.created_at = created_at
        self.last_modified = last_modified

    def serialize(self) -> bytes:
        """Encode head, tail, creation and modification times (ms)."""
        return _LAYOUT.pack(
            self.v_log_head & _U32_MASK,
            self.v_log_tail & _U32_MASK,
            datetime_to_milliseconds(self.created_at) & _U64_MASK,
            datetime_to_milliseconds(self.last_modified) & _U64_MASK,
        )