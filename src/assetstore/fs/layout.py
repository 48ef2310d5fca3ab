"""
Sharded directory layout for workspace, export and resource trees.

Directory structure (for any root):
    <root>/<id[0:2]>/<id[2:4]>/image/<id><ext>
    <root>/<id[0:2]>/<id[2:4]>/thumb/<id><ext>
    <root>/<id[0:2]>/<id[2:4]>/sound/<id><ext>

The same scheme is used for the workspace, scoped export/import directories
and the shared resource library, so an asset can always be located from its
identifier alone.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import NamedTuple

from ..settings.models import StoreSettings


SHARD_WIDTH = 2
SHARD_DEPTH = 2

DEFAULT_PICTURE_EXT = ".png"
DEFAULT_SOUND_EXT = ".mp3"

_EXT_PATTERN = re.compile(r"^\.[a-z0-9]{1,10}$")


class AssetKind(str, Enum):
    """Asset subtree inside a shard bucket."""
    IMAGE = "image"
    THUMB = "thumb"
    SOUND = "sound"


class ScopedPaths(NamedTuple):
    """Paths for one scoped export/import directory."""
    root: Path        # <export_root>/<scope_id>/
    payload: Path     # <export_root>/<scope_id>/object/


def shard(asset_id: str) -> PurePosixPath:
    """
    Map an identifier to its bucket directory.

    Args:
        asset_id: The asset identifier.

    Returns:
        Relative path <id[0:2]>/<id[2:4]>.

    Raises:
        ValueError: If the identifier is too short to shard.
    """
    needed = SHARD_WIDTH * SHARD_DEPTH
    if not asset_id or len(asset_id) < needed:
        raise ValueError(f"identifier must have at least {needed} characters, got {asset_id!r}")
    parts = [asset_id[i * SHARD_WIDTH:(i + 1) * SHARD_WIDTH] for i in range(SHARD_DEPTH)]
    return PurePosixPath(*parts)


def sanitize_extension(ext: str | None, default: str) -> str:
    """
    Normalise a file extension to a leading-dot lowercase form.

    Args:
        ext: Extension with or without leading dot (may be None).
        default: Extension used when `ext` is empty or not a plain extension.

    Returns:
        Extension such as '.png'.
    """
    if not ext:
        return default
    candidate = "." + str(ext).strip().lstrip(".").lower()
    if not _EXT_PATTERN.match(candidate):
        return default
    return candidate


def asset_dir(root: Path, asset_id: str, kind: AssetKind) -> Path:
    return Path(root) / shard(asset_id) / kind.value


def asset_path(root: Path, asset_id: str, kind: AssetKind, ext: str) -> Path:
    return asset_dir(root, asset_id, kind) / f"{asset_id}{ext}"


def normalize_ref(fileurl: str) -> str:
    """Convert backslashes to forward slashes."""
    return fileurl.replace("\\", "/")


class WorkspaceLayout:
    """
    Resolves workspace, export and resource locations from store settings.
    """

    def __init__(self, settings: StoreSettings):
        self._settings = settings
        self._app_root = Path(settings.app_root).resolve()
        self._resource_root = Path(settings.resource_root)
        if not self._resource_root.is_absolute():
            self._resource_root = (self._app_root / self._resource_root).resolve()
        self._default_pictures = frozenset(normalize_ref(p) for p in settings.default_picture_paths)
        self._default_sounds = frozenset(normalize_ref(p) for p in settings.default_sound_paths)

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def app_root(self) -> Path:
        return self._app_root

    @property
    def workspace_root(self) -> Path:
        return self._app_root / self._settings.workspace_dir_name

    @property
    def export_root(self) -> Path:
        return self._app_root / self._settings.export_dir_name

    @property
    def resource_root(self) -> Path:
        return self._resource_root

    @property
    def project_descriptor_path(self) -> Path:
        return self.workspace_root / "project.json"

    def workspace_path(self, asset_id: str, kind: AssetKind, ext: str) -> Path:
        return asset_path(self.workspace_root, asset_id, kind, ext)

    def resource_path(self, asset_id: str, kind: AssetKind, ext: str) -> Path:
        return asset_path(self._resource_root, asset_id, kind, ext)

    def scoped_paths(self, scope_id: str) -> ScopedPaths:
        root = self.export_root / scope_id
        return ScopedPaths(root=root, payload=root / "object")

    def is_default_picture(self, fileurl: str | None) -> bool:
        return self._matches_default(fileurl, self._default_pictures)

    def is_default_sound(self, fileurl: str | None) -> bool:
        return self._matches_default(fileurl, self._default_sounds)

    def is_default_asset(self, fileurl: str | None) -> bool:
        return self.is_default_picture(fileurl) or self.is_default_sound(fileurl)

    @staticmethod
    def _matches_default(fileurl: str | None, defaults: frozenset[str]) -> bool:
        if not fileurl:
            return False
        ref = normalize_ref(fileurl)
        if ref in defaults:
            return True
        return any(ref.endswith("/" + d.lstrip("./")) for d in defaults)

    def list_asset_files(self, root: Path, kind: AssetKind) -> list[Path]:
        """
        List all asset files of one kind under a sharded root.

        Args:
            root: Workspace, export or resource root.
            kind: The asset subtree to list.

        Returns:
            Sorted list of file paths.
        """
        root = Path(root)
        if not root.exists():
            return []
        pattern = "/".join(["*"] * SHARD_DEPTH) + f"/{kind.value}/*"
        return sorted(p for p in root.glob(pattern) if p.is_file())
