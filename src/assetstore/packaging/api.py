"""
API routes for project/object packaging and asset import.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, NoReturn, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..errors import AssetNotFoundError, AssetStoreError, FormatError
from ..importer.pipeline import CanvasPayload
from ..project.models import bundle_from_dict, project_from_dict, resource_object_from_dict, to_dict
from .orchestrator import ProjectPackager


def _raise_http(exc: AssetStoreError) -> NoReturn:
    if isinstance(exc, FormatError):
        status = 400
    elif isinstance(exc, AssetNotFoundError):
        status = 404
    else:
        status = 500
    raise HTTPException(status_code=status, detail=str(exc)) from exc


def _decode_base64(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"{field} is not valid base64") from exc


class LoadProjectIn(BaseModel):
    path: str = Field(min_length=1)


class SaveProjectIn(BaseModel):
    destination: str = Field(min_length=1)
    project: dict[str, Any]


class SavedOut(BaseModel):
    success: bool
    saved_path: str


class WorkspaceOut(BaseModel):
    exists: bool
    image_count: int
    thumb_count: int
    sound_count: int


class ExportObjectIn(BaseModel):
    destination: str = Field(min_length=1)
    bundle: dict[str, Any]


class ExportObjectOut(BaseModel):
    success: bool
    archive_path: str


class PathsIn(BaseModel):
    paths: list[str] = Field(min_length=1)


class PictureIn(BaseModel):
    path: str = Field(min_length=1)
    thumbnail_path: Optional[str] = None


class ResourceObjectsIn(BaseModel):
    objects: list[dict[str, Any]]


class CanvasIn(BaseModel):
    image_base64: str = Field(min_length=1)
    prev_filename: Optional[str] = None
    mode: Optional[str] = None


class DownloadFileIn(BaseModel):
    src: str = Field(min_length=1)
    target: str = Field(min_length=1)


class WriteFileIn(BaseModel):
    target: str = Field(min_length=1)
    text: Optional[str] = None
    data_base64: Optional[str] = None


class FileOut(BaseModel):
    success: bool
    path: str


def create_packaging_router(*, packager: ProjectPackager) -> APIRouter:
    """
    Create the project/object packaging router.

    Args:
        packager: The packager bound to this process's workspace.

    Returns:
        FastAPI router with project and object endpoints.
    """
    router = APIRouter(prefix="/api", tags=["packaging"])

    @router.post("/projects/load")
    async def load_project(body: LoadProjectIn) -> dict[str, Any]:
        try:
            project = await packager.load_project(body.path)
        except AssetStoreError as exc:
            _raise_http(exc)
        return to_dict(project)

    @router.post("/projects/save", response_model=SavedOut)
    async def save_project(body: SaveProjectIn) -> SavedOut:
        try:
            project = project_from_dict(body.project)
            saved = await packager.save_project(project, body.destination)
        except AssetStoreError as exc:
            _raise_http(exc)
        return SavedOut(success=True, saved_path=str(saved))

    @router.post("/projects/reset")
    async def reset_workspace() -> dict[str, bool]:
        try:
            await packager.reset_workspace()
        except AssetStoreError as exc:
            _raise_http(exc)
        return {"success": True}

    @router.get("/projects/workspace", response_model=WorkspaceOut)
    async def workspace_info() -> WorkspaceOut:
        info = packager.workspace.info()
        return WorkspaceOut(**info._asdict())

    @router.post("/objects/export", response_model=ExportObjectOut)
    async def export_object(body: ExportObjectIn) -> ExportObjectOut:
        try:
            bundle = bundle_from_dict(body.bundle)
            archive = await packager.export_object(body.destination, bundle)
        except AssetStoreError as exc:
            _raise_http(exc)
        return ExportObjectOut(success=True, archive_path=str(archive))

    @router.post("/objects/import")
    async def import_objects(body: PathsIn) -> list[dict[str, Any]]:
        try:
            bundles = await packager.import_objects(body.paths)
        except AssetStoreError as exc:
            _raise_http(exc)
        return [to_dict(b) for b in bundles]

    @router.post("/objects/from-resource")
    async def import_objects_from_resource(body: ResourceObjectsIn) -> list[dict[str, Any]]:
        try:
            objects = [resource_object_from_dict(o) for o in body.objects]
            imported = await packager.import_objects_from_resource(objects)
        except AssetStoreError as exc:
            _raise_http(exc)
        return [to_dict(o) for o in imported]

    return router


def create_assets_router(*, packager: ProjectPackager) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["assets"])

    @router.post("/assets/picture")
    async def import_picture(body: PictureIn) -> dict[str, Any]:
        try:
            picture = await packager.import_picture_to_temp(body.path, body.thumbnail_path)
        except AssetStoreError as exc:
            _raise_http(exc)
        return to_dict(picture)

    @router.post("/assets/pictures")
    async def import_pictures(body: PathsIn) -> list[dict[str, Any]]:
        try:
            pictures = await packager.import_pictures_to_temp(body.paths)
        except AssetStoreError as exc:
            _raise_http(exc)
        return [to_dict(p) for p in pictures]

    @router.post("/assets/sounds")
    async def import_sounds(body: PathsIn) -> list[dict[str, Any]]:
        try:
            sounds = await packager.import_sounds_to_temp(body.paths)
        except AssetStoreError as exc:
            _raise_http(exc)
        return [to_dict(s) for s in sounds]

    @router.post("/assets/canvas")
    async def import_canvas(body: CanvasIn) -> dict[str, Any]:
        payload = CanvasPayload(
            image=_decode_base64(body.image_base64, "image_base64"),
            prev_filename=body.prev_filename,
            mode=body.mode,
        )
        try:
            picture = await packager.import_picture_from_canvas(payload)
        except AssetStoreError as exc:
            _raise_http(exc)
        return to_dict(picture)

    @router.post("/files/download", response_model=FileOut)
    async def download_file(body: DownloadFileIn) -> FileOut:
        try:
            path = await packager.download_file(body.src, body.target)
        except AssetStoreError as exc:
            _raise_http(exc)
        return FileOut(success=True, path=str(path))

    @router.post("/files/write", response_model=FileOut)
    async def write_file(body: WriteFileIn) -> FileOut:
        if body.data_base64 is not None:
            data: bytes | str = _decode_base64(body.data_base64, "data_base64")
        elif body.text is not None:
            data = body.text
        else:
            raise HTTPException(status_code=400, detail="text or data_base64 is required")
        try:
            path = await packager.write_file(data, body.target)
        except AssetStoreError as exc:
            _raise_http(exc)
        return FileOut(success=True, path=str(path))

    return router
