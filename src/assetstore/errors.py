"""
Typed failures surfaced by every store entry point.

- FormatError: bad destination extension, unparseable descriptor, unsafe archive entry
- AssetNotFoundError: archive, descriptor or asset file missing
- AssetIOError: copy/write/pack/unpack failure
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class AssetStoreError(Exception):
    """Base class for store failures."""

    def __init__(self, message: str, *, path: Optional[Path | str] = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class FormatError(AssetStoreError):
    pass


class AssetNotFoundError(AssetStoreError):
    pass


class AssetIOError(AssetStoreError):
    pass


def translate_os_error(exc: OSError, path: Path | str) -> AssetStoreError:
    """Map an OSError raised while touching `path` onto the store's error kinds."""
    if isinstance(exc, FileNotFoundError):
        missing = exc.filename or path
        return AssetNotFoundError(f"not found: {missing}", path=missing)
    return AssetIOError(f"I/O failure on {path}: {exc}", path=path)
