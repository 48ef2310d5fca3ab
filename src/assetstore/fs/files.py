"""
Awaitable filesystem primitives.

Blocking work runs in worker threads via asyncio.to_thread so that many asset
pipelines can be pending at once without stalling the event loop.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path

from ..errors import FormatError, translate_os_error


def atomic_write_bytes(final_path: Path, content: bytes) -> None:
    final_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path_str = tempfile.mkstemp(
        dir=str(final_path.parent),
        prefix=f".{final_path.name}.",
        suffix=".tmp",
    )
    tmp_path = Path(tmp_path_str)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, final_path)
    finally:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass


def _copy(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)


def _remove_tree(path: Path) -> bool:
    if not path.exists():
        return False
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink()
    return True


async def mkdir_recursive(path: Path) -> None:
    path = Path(path)
    try:
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
    except OSError as exc:
        raise translate_os_error(exc, path) from exc


async def remove_tree(path: Path) -> bool:
    """
    Recursively delete a directory (or a single file).

    Returns:
        True if something was removed, False if the path did not exist.
    """
    path = Path(path)
    try:
        return await asyncio.to_thread(_remove_tree, path)
    except OSError as exc:
        raise translate_os_error(exc, path) from exc


async def copy_file(src: Path, dst: Path) -> Path:
    """Copy `src` to `dst`, creating parent directories of `dst`."""
    src, dst = Path(src), Path(dst)
    try:
        await asyncio.to_thread(_copy, src, dst)
    except OSError as exc:
        raise translate_os_error(exc, src if not src.exists() else dst) from exc
    return dst


async def write_file(data: bytes | str, dst: Path) -> Path:
    """Write bytes or UTF-8 text to `dst` (temp file + atomic replace)."""
    dst = Path(dst)
    content = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    try:
        await asyncio.to_thread(atomic_write_bytes, dst, content)
    except OSError as exc:
        raise translate_os_error(exc, dst) from exc
    return dst


async def read_text(path: Path) -> str:
    path = Path(path)
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError(f"not UTF-8 text: {path}", path=path) from exc
    except OSError as exc:
        raise translate_os_error(exc, path) from exc
