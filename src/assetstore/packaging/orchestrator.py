"""
Project and object packaging.

Project archive (<name>.ent):
    <workspace_dir_name>/project.json
    <workspace_dir_name>/<shard>/{image,thumb,sound}/<id><ext>

Object archive (<objectName>.eo):
    object/object.json
    object/<shard>/{image,thumb,sound}/<id><ext>

Loading unpacks into the application root (so the archive's top-level
directory becomes the workspace; entries outside it are rejected) and rewrites
references to internal form.
Saving rewrites references to external form and packs the workspace.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from ..errors import AssetNotFoundError, FormatError
from ..exporter.pipeline import AssetExporter
from ..fanout import gather_settled
from ..fs.archive_zip import pack, unpack
from ..fs.files import copy_file, read_text, write_file
from ..fs.layout import WorkspaceLayout
from ..importer.pipeline import AssetImporter, CanvasPayload
from ..lifecycle.workspace import Workspace
from ..project.legacy import LegacyConverter, ProjectFormat, classify_project
from ..project.models import (
    ObjectBundle,
    Picture,
    Project,
    ResourceObject,
    Sound,
    dump_json,
    parse_bundle,
    parse_json_document,
    project_from_dict,
)
from ..project.rewrite import PathRewriter, ReplaceStrategy
from ..settings.models import StoreSettings


logger = logging.getLogger(__name__)

OBJECT_DESCRIPTOR = "object.json"
OBJECT_ARCHIVE_BASE = "object"

_UNSAFE_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def safe_archive_name(name: Optional[str], fallback: str = "object") -> str:
    """
    Make an object name usable as an archive filename.

    Args:
        name: The object's display name.
        fallback: Used when nothing usable remains.

    Returns:
        Name with path separators and reserved characters replaced by '_'.
    """
    cleaned = _UNSAFE_NAME_CHARS.sub("_", (name or "").strip()).strip(" .")
    return cleaned or fallback


class ProjectPackager:
    """
    Loads and saves projects and moves single objects in and out of archives.

    Usage:
        packager = ProjectPackager(settings)
        project = await packager.load_project(Path("game.ent"))
        ...
        await packager.save_project(project, Path("game.ent"))
    """

    def __init__(
        self,
        settings: StoreSettings,
        *,
        legacy_converter: Optional[LegacyConverter] = None,
    ):
        self._settings = settings
        self._layout = WorkspaceLayout(settings)
        self._workspace = Workspace(self._layout)
        self._rewriter = PathRewriter(self._layout)
        self._importer = AssetImporter(self._layout)
        self._exporter = AssetExporter(self._layout)
        self._legacy_converter = legacy_converter

    @property
    def layout(self) -> WorkspaceLayout:
        return self._layout

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    @property
    def rewriter(self) -> PathRewriter:
        return self._rewriter

    @property
    def importer(self) -> AssetImporter:
        return self._importer

    @property
    def exporter(self) -> AssetExporter:
        return self._exporter

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def load_project(self, archive_path: Path | str) -> Project:
        """
        Open a project archive.

        The workspace is reset, the archive unpacked into it, the descriptor
        parsed (converting legacy saves) and every asset reference rewritten to
        internal form.

        Args:
            archive_path: The project archive.

        Returns:
            The project with `saved_path` set to `archive_path`.

        Raises:
            AssetNotFoundError: If the archive or its project.json is missing.
            FormatError: If project.json cannot be parsed, a legacy save has no
                converter, or an archive entry lies outside the workspace directory.
            AssetIOError: If unpacking fails.
        """
        archive = Path(archive_path)
        if not archive.is_file():
            raise AssetNotFoundError(f"project archive not found: {archive}", path=archive)

        async with self._workspace.exclusive():
            await self._workspace.reset_unlocked()
            await unpack(archive, self._layout.app_root, root=self._settings.workspace_dir_name)
            text = await read_text(self._layout.project_descriptor_path)

        raw = parse_json_document(text, source="project.json")
        if classify_project(raw) == ProjectFormat.LEGACY_MARKUP:
            if self._legacy_converter is None:
                raise FormatError("legacy markup project requires a converter", path=archive)
            logger.info("converting legacy project %s", archive)
            raw = await self._legacy_converter(raw)

        project = project_from_dict(raw)
        self._rewriter.change_project_path(project, ReplaceStrategy.FROM_EXTERNAL)
        project.saved_path = str(archive_path)

        logger.info("loaded project %s (%d objects)", archive, len(project.objects))
        return project

    async def save_project(self, project: Project, destination_path: Path | str) -> Path:
        """
        Pack the workspace and the project descriptor into an archive.

        The workspace is left in place so the project stays open; the
        in-memory project keeps internal references after the save.

        Raises:
            FormatError: If `destination_path` lacks the project extension.
            AssetIOError: If writing or packing fails.
        """
        destination = Path(destination_path)
        if destination.suffix.lower() != self._settings.project_extension:
            raise FormatError(
                f"{self._settings.project_extension} only accepted, got {destination.name!r}",
                path=destination,
            )

        async with self._workspace.exclusive():
            self._rewriter.change_project_path(project, ReplaceStrategy.TO_EXTERNAL)
            try:
                await write_file(dump_json(project), self._layout.project_descriptor_path)
                await pack(
                    self._layout.workspace_root,
                    destination,
                    base=self._settings.workspace_dir_name,
                )
            finally:
                self._rewriter.change_project_path(project, ReplaceStrategy.FROM_EXTERNAL)

        project.saved_path = str(destination_path)
        logger.info("saved project to %s", destination)
        return destination

    async def reset_workspace(self) -> None:
        await self._workspace.reset()

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def _object_destination(self, destination_path: Path | str, bundle: ObjectBundle) -> Path:
        destination = Path(destination_path)
        ext = self._settings.object_extension
        if destination.is_dir():
            return destination / f"{safe_archive_name(bundle.name)}{ext}"
        if destination.suffix.lower() != ext:
            raise FormatError(f"{ext} only accepted, got {destination.name!r}", path=destination)
        return destination

    async def export_object(self, destination_path: Path | str, bundle: ObjectBundle) -> Path:
        """
        Write one object and copies of its assets to an object archive.

        The caller's bundle is not modified. The scoped export directory is
        removed whether or not packing succeeds.

        Args:
            destination_path: Archive path, or an existing directory that
                receives <objectName><object_extension>.
            bundle: The object payload.

        Returns:
            Path of the written archive.
        """
        destination = self._object_destination(destination_path, bundle)
        exported = bundle.model_copy(deep=True)
        self._rewriter.change_project_path(exported, ReplaceStrategy.TO_EXTERNAL_DELETE_URL)

        async with self._workspace.scoped_directory() as scope:
            await self._exporter.export_assets_of(exported, scope.payload)
            for obj in exported.objects:
                obj.sync_selected_picture()
            await write_file(dump_json(exported), scope.payload / OBJECT_DESCRIPTOR)
            await pack(scope.payload, destination, base=OBJECT_ARCHIVE_BASE)

        logger.info("exported object %r to %s", exported.name, destination)
        return destination

    async def import_object(self, archive_path: Path | str) -> ObjectBundle:
        """
        Read an object archive and copy its assets into the workspace.

        Returns:
            The object bundle with fresh asset identifiers and internal references.
        """
        async with self._workspace.scoped_directory() as scope:
            await unpack(Path(archive_path), scope.root, root=OBJECT_ARCHIVE_BASE)
            bundle = parse_bundle(await read_text(scope.payload / OBJECT_DESCRIPTOR))
            await self._importer.import_bundle_assets(bundle, scope.payload)
            self._rewriter.change_project_path(bundle, ReplaceStrategy.FROM_EXTERNAL)

        logger.info("imported object %r from %s", bundle.name, archive_path)
        return bundle

    async def import_objects(self, archive_paths: Iterable[Path | str]) -> list[ObjectBundle]:
        return await gather_settled(self.import_object(p) for p in archive_paths)

    async def import_objects_from_resource(self, objects: Iterable[ResourceObject]) -> list[ResourceObject]:
        return await self._importer.import_objects_from_resource(objects)

    # ------------------------------------------------------------------
    # Single assets
    # ------------------------------------------------------------------

    async def import_picture_to_temp(
        self,
        path: Path | str,
        thumbnail_path: Optional[Path | str] = None,
    ) -> Picture:
        return await self._importer.import_picture(path, thumbnail_path)

    async def import_pictures_to_temp(self, paths: Iterable[Path | str]) -> list[Picture]:
        return await self._importer.import_pictures(paths)

    async def import_picture_from_canvas(self, payload: CanvasPayload) -> Picture:
        return await self._importer.import_picture_from_canvas(payload)

    async def import_sound_to_temp(self, path: Path | str) -> Sound:
        return await self._importer.import_sound(path)

    async def import_sounds_to_temp(self, paths: Iterable[Path | str]) -> list[Sound]:
        return await self._importer.import_sounds(paths)

    # ------------------------------------------------------------------
    # Plain file helpers
    # ------------------------------------------------------------------

    async def download_file(self, src_path: Path | str, target_path: Path | str) -> Path:
        """Copy a workspace file out to a user-chosen location."""
        return await copy_file(Path(src_path), Path(target_path))

    async def write_file(self, data: bytes | str, target_path: Path | str) -> Path:
        return await write_file(data, Path(target_path))
