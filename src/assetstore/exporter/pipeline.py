"""
Asset export pipeline.

Copies the workspace files behind an object bundle into a target directory
under newly minted identifiers, so an exported bundle never shares
identifiers with the workspace it came from. References of exported assets
are rewritten relative to the parent of the target directory, e.g.
    object/<shard>/image/<new id><ext>
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import FormatError
from ..fanout import gather_settled
from ..fs.files import copy_file
from ..fs.ids import create_id, is_valid_id
from ..fs.layout import (
    DEFAULT_PICTURE_EXT,
    DEFAULT_SOUND_EXT,
    AssetKind,
    WorkspaceLayout,
    asset_path,
    sanitize_extension,
)
from ..project.models import ObjectBundle, Picture, Sound


logger = logging.getLogger(__name__)


class AssetExporter:
    def __init__(self, layout: WorkspaceLayout):
        self._layout = layout

    @staticmethod
    def _archive_ref(target_dir: Path, asset_id: str, kind: AssetKind, ext: str) -> str:
        """Reference to a copied asset relative to the parent of `target_dir`."""
        return asset_path(Path(Path(target_dir).name), asset_id, kind, ext).as_posix()

    @staticmethod
    def _source_id(filename: str | None, what: str) -> str:
        if not filename or not is_valid_id(filename):
            raise FormatError(f"{what} has no usable filename: {filename!r}")
        return filename

    async def export_picture(self, picture: Picture, target_dir: Path) -> Picture:
        """
        Copy a picture (image and thumbnail) to `target_dir` under a new identifier.

        Default library pictures are returned unchanged.
        """
        if self._layout.is_default_picture(picture.fileurl):
            return picture

        file_id = self._source_id(picture.filename, f"picture {picture.name!r}")
        ext = sanitize_extension(picture.ext, DEFAULT_PICTURE_EXT)
        new_id = create_id()

        await copy_file(
            self._layout.workspace_path(file_id, AssetKind.IMAGE, ext),
            asset_path(target_dir, new_id, AssetKind.IMAGE, ext),
        )
        await copy_file(
            self._layout.workspace_path(file_id, AssetKind.THUMB, ext),
            asset_path(target_dir, new_id, AssetKind.THUMB, ext),
        )

        logger.debug("exported picture %s as %s", file_id, new_id)
        picture.filename = new_id
        picture.fileurl = self._archive_ref(target_dir, new_id, AssetKind.IMAGE, ext)
        return picture

    async def export_sound(self, sound: Sound, target_dir: Path) -> Sound:
        if self._layout.is_default_sound(sound.fileurl):
            return sound

        file_id = self._source_id(sound.filename, f"sound {sound.name!r}")
        ext = sanitize_extension(sound.ext, DEFAULT_SOUND_EXT)
        new_id = create_id()

        await copy_file(
            self._layout.workspace_path(file_id, AssetKind.SOUND, ext),
            asset_path(target_dir, new_id, AssetKind.SOUND, ext),
        )

        logger.debug("exported sound %s as %s", file_id, new_id)
        sound.filename = new_id
        sound.fileurl = self._archive_ref(target_dir, new_id, AssetKind.SOUND, ext)
        if sound.path:
            sound.path = sound.fileurl
        return sound

    async def export_assets_of(self, bundle: ObjectBundle, target_dir: Path) -> ObjectBundle:
        """
        Copy every non-default asset of every object in the bundle.

        All copies run concurrently; the first failure is raised once every copy has settled.

        Args:
            bundle: Object bundle whose asset filenames are rewritten in place.
            target_dir: Directory receiving the sharded asset tree.

        Returns:
            The same bundle.
        """
        target_dir = Path(target_dir)
        tasks = []
        for obj in bundle.objects:
            if obj.sprite is None:
                continue
            tasks.extend(self.export_sound(s, target_dir) for s in obj.sprite.sounds)
            tasks.extend(self.export_picture(p, target_dir) for p in obj.sprite.pictures)
        await gather_settled(tasks)
        return bundle
