"""
Archive utilities for packing and unpacking project and object archives.

Project archive: <workspace_dir_name>/project.json plus the sharded asset tree.
Object archive:  object/object.json plus the sharded asset tree.
"""

from __future__ import annotations

import asyncio
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterable, NamedTuple, Optional

from ..errors import AssetIOError, AssetNotFoundError, FormatError, translate_os_error


class ArchiveResult(NamedTuple):
    """Result of an archive operation."""
    path: Path
    files: int
    bytes: int


def _collect_files(source_dir: Path, exclude: frozenset[str]) -> list[tuple[Path, PurePosixPath]]:
    files: list[tuple[Path, PurePosixPath]] = []
    for f in sorted(source_dir.rglob("*")):
        if not f.is_file():
            continue
        rel = PurePosixPath(f.relative_to(source_dir).as_posix())
        if rel.parts[0] in exclude:
            continue
        if f.name.startswith(".") and f.suffix == ".tmp":
            continue
        files.append((f, rel))
    return files


def pack_sync(
    source_dir: Path,
    dest_path: Path,
    base: Optional[str] = None,
    exclude: Iterable[str] = (),
) -> ArchiveResult:
    """
    Pack a directory tree into a zip archive.

    Args:
        source_dir: Directory whose contents are archived.
        dest_path: Archive file to create (parent directories are created).
        base: Entry prefix inside the archive; defaults to the source directory name.
            Pass "" to store entries at the archive root.
        exclude: Top-level names under `source_dir` to leave out.

    Returns:
        ArchiveResult with archive path and statistics.

    Raises:
        AssetNotFoundError: If the source directory doesn't exist.
        AssetIOError: If the archive cannot be written.
    """
    source_dir = Path(source_dir)
    dest_path = Path(dest_path)
    if not source_dir.is_dir():
        raise AssetNotFoundError(f"nothing to pack, directory missing: {source_dir}", path=source_dir)

    prefix = PurePosixPath(source_dir.name if base is None else base)
    files = _collect_files(source_dir, frozenset(exclude))

    bytes_archived = 0
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = dest_path.with_name(f".{dest_path.name}.tmp")
    try:
        with zipfile.ZipFile(tmp_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for file_path, rel in files:
                zf.write(file_path, str(prefix / rel) if str(prefix) not in ("", ".") else str(rel))
                bytes_archived += file_path.stat().st_size
        tmp_path.replace(dest_path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise AssetIOError(f"failed to pack {source_dir} into {dest_path}: {exc}", path=dest_path) from exc

    return ArchiveResult(path=dest_path, files=len(files), bytes=bytes_archived)


def _safe_target(dest_dir: Path, name: str, root: Optional[str]) -> Path:
    member = PurePosixPath(name.replace("\\", "/"))
    if member.is_absolute() or ".." in member.parts or (member.parts and ":" in member.parts[0]):
        raise FormatError(f"archive entry escapes destination: {name!r}", path=dest_dir)
    if root is not None and (not member.parts or member.parts[0] != root):
        raise FormatError(f"archive entry outside {root}/: {name!r}", path=dest_dir)
    return dest_dir.joinpath(*member.parts)


def unpack_sync(archive_path: Path, dest_dir: Path, root: Optional[str] = None) -> ArchiveResult:
    """
    Extract a zip archive into a directory.

    Args:
        archive_path: The archive to extract.
        dest_dir: Target directory (created if needed).
        root: When set, every entry must live under this top-level directory.

    Returns:
        ArchiveResult with the destination directory and statistics.

    Raises:
        AssetNotFoundError: If the archive doesn't exist.
        FormatError: If an entry would be written outside `dest_dir`, or outside
            `root` when one is given. Nothing is extracted in that case.
        AssetIOError: If the archive is corrupt or extraction fails.
    """
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)
    if not archive_path.is_file():
        raise AssetNotFoundError(f"archive not found: {archive_path}", path=archive_path)

    files = 0
    bytes_extracted = 0
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()
            targets = [(info, _safe_target(dest_dir, info.filename, root)) for info in members]
            dest_dir.mkdir(parents=True, exist_ok=True)
            for info, target in targets:
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as dst:
                    while True:
                        chunk = src.read(65536)
                        if not chunk:
                            break
                        dst.write(chunk)
                files += 1
                bytes_extracted += info.file_size
    except zipfile.BadZipFile as exc:
        raise AssetIOError(f"corrupt archive {archive_path}: {exc}", path=archive_path) from exc
    except OSError as exc:
        raise translate_os_error(exc, archive_path) from exc

    return ArchiveResult(path=dest_dir, files=files, bytes=bytes_extracted)


async def pack(
    source_dir: Path,
    dest_path: Path,
    base: Optional[str] = None,
    exclude: Iterable[str] = (),
) -> ArchiveResult:
    return await asyncio.to_thread(pack_sync, source_dir, dest_path, base, tuple(exclude))


async def unpack(archive_path: Path, dest_dir: Path, root: Optional[str] = None) -> ArchiveResult:
    return await asyncio.to_thread(unpack_sync, archive_path, dest_dir, root)
