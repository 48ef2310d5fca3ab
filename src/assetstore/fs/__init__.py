"""
File system utilities for the asset workspace.

Provides:
- Identifier generation (ids.py)
- Sharded directory layout (layout.py)
- Awaitable file primitives (files.py)
- Archive pack/unpack (archive_zip.py)
"""

from .ids import IdGenerator, create_id, is_valid_id
from .layout import AssetKind, WorkspaceLayout, sanitize_extension, shard
from .files import copy_file, mkdir_recursive, read_text, remove_tree, write_file
from .archive_zip import ArchiveResult, pack, unpack

__all__ = [
    "IdGenerator",
    "create_id",
    "is_valid_id",
    "AssetKind",
    "WorkspaceLayout",
    "sanitize_extension",
    "shard",
    "copy_file",
    "mkdir_recursive",
    "read_text",
    "remove_tree",
    "write_file",
    "ArchiveResult",
    "pack",
    "unpack",
]
