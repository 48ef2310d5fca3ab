"""
Asset import pipeline.

Every imported asset gets a freshly minted identifier and is materialized into
the workspace under the sharded layout:
    <workspace>/<shard>/image/<id><ext>   (pictures)
    <workspace>/<shard>/thumb/<id><ext>   (picture thumbnails)
    <workspace>/<shard>/sound/<id><ext>   (sounds)

Steps for one asset run in order (copy, then thumbnail/metadata). Independent
assets of a collection run concurrently; once all of them have finished, the
first failure is raised and the remaining results are discarded.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..errors import FormatError
from ..fanout import gather_settled
from ..fs.files import copy_file, write_file
from ..fs.ids import create_id, is_valid_id
from ..fs.layout import (
    DEFAULT_PICTURE_EXT,
    DEFAULT_SOUND_EXT,
    AssetKind,
    WorkspaceLayout,
    asset_path,
    sanitize_extension,
)
from ..media.derive import audio_duration, create_thumbnail, image_dimensions
from ..project.models import ObjectBundle, Picture, ResourceObject, Sound, SpriteObject


logger = logging.getLogger(__name__)

CANVAS_EDIT_MODE = "edit"
CANVAS_EXT = ".png"


def generate_hash() -> str:
    """Short random logical id for freshly constructed asset records."""
    return uuid.uuid4().hex[:8]


@dataclass
class CanvasPayload:
    """
    A bitmap produced by the in-app painter.

    When `mode` is "edit" and `prev_filename` is set, the existing asset with
    that identifier is overwritten instead of minting a new one.
    """
    image: bytes
    prev_filename: Optional[str] = None
    mode: Optional[str] = None

    def reuses_identifier(self) -> bool:
        return bool(self.prev_filename) and self.mode == CANVAS_EDIT_MODE


class AssetImporter:
    """
    Copies pictures and sounds into the workspace under new identities.

    Usage:
        importer = AssetImporter(layout)
        pictures = await importer.import_pictures([Path("cat.png"), Path("dog.png")])
    """

    def __init__(self, layout: WorkspaceLayout):
        self._layout = layout
        self._slots = asyncio.Semaphore(layout.settings.max_concurrent_assets)

    @property
    def layout(self) -> WorkspaceLayout:
        return self._layout

    # ------------------------------------------------------------------
    # External files
    # ------------------------------------------------------------------

    async def import_picture(
        self,
        path: Path | str,
        thumbnail_path: Optional[Path | str] = None,
    ) -> Picture:
        """
        Import one image file into the workspace.

        Args:
            path: Source image file.
            thumbnail_path: Existing thumbnail to copy; synthesized from the image if None.

        Returns:
            A new user Picture whose fileurl points into the workspace.
        """
        async with self._slots:
            return await self._import_picture(Path(path), Path(thumbnail_path) if thumbnail_path else None)

    async def _import_picture(self, source: Path, thumbnail: Optional[Path]) -> Picture:
        ext = sanitize_extension(source.suffix, DEFAULT_PICTURE_EXT)
        new_id = create_id()
        image_path = self._layout.workspace_path(new_id, AssetKind.IMAGE, ext)
        thumb_path = self._layout.workspace_path(new_id, AssetKind.THUMB, ext)

        await copy_file(source, image_path)
        if thumbnail is not None:
            await copy_file(thumbnail, thumb_path)
        else:
            data = await asyncio.to_thread(create_thumbnail, image_path, self._layout.settings.thumbnail_size)
            await write_file(data, thumb_path)
        dimension = await asyncio.to_thread(image_dimensions, image_path)

        logger.debug("imported picture %s as %s", source, new_id)
        return Picture(
            uid=generate_hash(),
            id=generate_hash(),
            type="user",
            name=source.stem,
            filename=new_id,
            fileurl=image_path.as_posix(),
            ext=ext,
            dimension=dimension,
        )

    async def import_pictures(self, paths: Iterable[Path | str]) -> list[Picture]:
        """Import several images; thumbnails are always synthesized."""
        return await gather_settled(self.import_picture(p) for p in paths)

    async def import_sound(self, path: Path | str) -> Sound:
        """
        Import one sound file into the workspace.

        The display name is the source file stem; callers rename as needed.
        """
        async with self._slots:
            return await self._import_sound(Path(path))

    async def _import_sound(self, source: Path) -> Sound:
        ext = sanitize_extension(source.suffix, DEFAULT_SOUND_EXT)
        new_id = create_id()
        sound_path = self._layout.workspace_path(new_id, AssetKind.SOUND, ext)

        await copy_file(source, sound_path)
        duration = await asyncio.to_thread(audio_duration, sound_path)

        logger.debug("imported sound %s as %s", source, new_id)
        return Sound(
            uid=generate_hash(),
            type="user",
            name=source.stem,
            filename=new_id,
            ext=ext,
            fileurl=sound_path.as_posix(),
            path=sound_path.as_posix(),
            duration=duration,
        )

    async def import_sounds(self, paths: Iterable[Path | str]) -> list[Sound]:
        return await gather_settled(self.import_sound(p) for p in paths)

    # ------------------------------------------------------------------
    # Resource library
    # ------------------------------------------------------------------

    def _require_id(self, value: Optional[str], what: str) -> str:
        if not value or not is_valid_id(value):
            raise FormatError(f"{what} has no usable filename: {value!r}")
        return value

    async def import_picture_from_resource(self, picture: Picture) -> Picture:
        asset_id = self._require_id(picture.filename, f"picture {picture.name!r}")
        ext = sanitize_extension(picture.ext, DEFAULT_PICTURE_EXT)
        image = self._layout.resource_path(asset_id, AssetKind.IMAGE, ext)
        thumb = self._layout.resource_path(asset_id, AssetKind.THUMB, ext)

        imported = await self.import_picture(image, thumb if thumb.exists() else None)

        picture.filename = imported.filename
        picture.fileurl = imported.fileurl
        picture.ext = imported.ext
        if picture.dimension is None:
            picture.dimension = imported.dimension
        return picture

    async def import_pictures_from_resource(self, pictures: Iterable[Picture]) -> list[Picture]:
        return await gather_settled(self.import_picture_from_resource(p) for p in pictures)

    async def import_sound_from_resource(self, sound: Sound) -> Sound:
        asset_id = self._require_id(sound.filename, f"sound {sound.name!r}")
        ext = sanitize_extension(sound.ext, DEFAULT_SOUND_EXT)
        imported = await self.import_sound(self._layout.resource_path(asset_id, AssetKind.SOUND, ext))

        sound.filename = imported.filename
        sound.fileurl = imported.fileurl
        sound.ext = imported.ext
        sound.path = imported.path
        if sound.duration is None:
            sound.duration = imported.duration
        return sound

    async def import_sounds_from_resource(self, sounds: Iterable[Sound]) -> list[Sound]:
        return await gather_settled(self.import_sound_from_resource(s) for s in sounds)

    async def import_object_from_resource(self, obj: ResourceObject) -> ResourceObject:
        """
        Copy every picture and sound of a library object into the workspace.

        Default library assets are deliberately copied here too; the object's
        selected picture is re-pointed at the imported record.
        """
        obj.pictures = await self.import_pictures_from_resource(obj.pictures)
        obj.sounds = await self.import_sounds_from_resource(obj.sounds)
        obj.sync_selected_picture()
        return obj

    async def import_objects_from_resource(self, objects: Iterable[ResourceObject]) -> list[ResourceObject]:
        return await gather_settled(self.import_object_from_resource(o) for o in objects)

    # ------------------------------------------------------------------
    # Canvas edits
    # ------------------------------------------------------------------

    async def import_picture_from_canvas(self, payload: CanvasPayload) -> Picture:
        """
        Store a bitmap drawn in the painter.

        Returns:
            A Picture whose fileurl carries a ?t= suffix so cached previews refresh.
        """
        if payload.reuses_identifier():
            picture_id = self._require_id(payload.prev_filename, "edited picture")
        else:
            picture_id = create_id()

        image_path = self._layout.workspace_path(picture_id, AssetKind.IMAGE, CANVAS_EXT)
        thumb_path = self._layout.workspace_path(picture_id, AssetKind.THUMB, CANVAS_EXT)

        thumbnail = await asyncio.to_thread(create_thumbnail, payload.image, self._layout.settings.thumbnail_size)
        await gather_settled(
            [write_file(payload.image, image_path), write_file(thumbnail, thumb_path)]
        )
        dimension = await asyncio.to_thread(image_dimensions, image_path)

        return Picture(
            type="user",
            name=picture_id,
            filename=picture_id,
            fileurl=f"{image_path.as_posix()}?t={time.perf_counter()}",
            ext=CANVAS_EXT,
            dimension=dimension,
        )

    # ------------------------------------------------------------------
    # Unpacked object archives
    # ------------------------------------------------------------------

    async def import_bundle_assets(self, bundle: ObjectBundle, unpacked_root: Path) -> ObjectBundle:
        """
        Import the assets of an unpacked object archive into the workspace.

        Args:
            bundle: Parsed object.json; mutated in place.
            unpacked_root: Directory holding object.json and the sharded asset tree.

        Returns:
            The same bundle with pictures and sounds replaced by workspace copies.
        """
        await gather_settled(self._import_object_assets(obj, Path(unpacked_root)) for obj in bundle.objects)
        return bundle

    async def _import_object_assets(self, obj: SpriteObject, root: Path) -> SpriteObject:
        if obj.sprite is None:
            return obj
        pictures = await gather_settled(self._import_bundled_picture(obj, p, root) for p in obj.sprite.pictures)
        sounds = await gather_settled(self._import_bundled_sound(s, root) for s in obj.sprite.sounds)
        obj.sprite.pictures = pictures
        obj.sprite.sounds = sounds
        return obj

    async def _import_bundled_picture(self, obj: SpriteObject, picture: Picture, root: Path) -> Picture:
        selected = obj.selected_picture_id is not None and picture.id == obj.selected_picture_id

        if self._layout.is_default_picture(picture.fileurl):
            if selected:
                obj.selected_picture = picture
            return picture

        asset_id = self._require_id(picture.filename, f"picture {picture.name!r}")
        ext = sanitize_extension(picture.ext, DEFAULT_PICTURE_EXT)
        image = asset_path(root, asset_id, AssetKind.IMAGE, ext)
        thumb = asset_path(root, asset_id, AssetKind.THUMB, ext)

        imported = await self.import_picture(image, thumb if thumb.exists() else None)
        imported.name = picture.name
        imported.id = picture.id

        if selected:
            obj.selected_picture = imported
            obj.selected_picture_id = imported.id
        return imported

    async def _import_bundled_sound(self, sound: Sound, root: Path) -> Sound:
        if self._layout.is_default_sound(sound.fileurl):
            return sound

        asset_id = self._require_id(sound.filename, f"sound {sound.name!r}")
        ext = sanitize_extension(sound.ext, DEFAULT_SOUND_EXT)
        imported = await self.import_sound(asset_path(root, asset_id, AssetKind.SOUND, ext))
        imported.name = sound.name
        imported.id = sound.id
        return imported
