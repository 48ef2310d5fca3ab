from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from .models import StoreSettings
from .store import SettingsStore


class ThumbnailSizeIn(BaseModel):
    thumbnail_size: int = Field(ge=8, le=1024)


class MaxConcurrentAssetsIn(BaseModel):
    max_concurrent_assets: int = Field(ge=1, le=256)


class SettingsOut(BaseModel):
    app_root: str
    workspace_dir_name: str
    export_dir_name: str
    resource_root: str
    project_extension: str
    object_extension: str
    default_picture_paths: list[str]
    default_sound_paths: list[str]
    thumbnail_size: int
    max_concurrent_assets: int


def _public_settings(settings: StoreSettings) -> SettingsOut:
    data = settings.to_persist_dict()
    data.pop("version", None)
    return SettingsOut(**data)


def create_settings_router(*, store: SettingsStore, settings: StoreSettings) -> APIRouter:
    """
    Create the settings router.

    Changes are persisted through `store` and applied to the live `settings`
    shared with the packager. A new `max_concurrent_assets` takes effect on
    the next start.
    """
    router = APIRouter(prefix="/api/settings", tags=["settings"])

    @router.get("", response_model=SettingsOut)
    def get_settings() -> SettingsOut:
        return _public_settings(settings)

    def _apply(key: str, value: int) -> SettingsOut:
        try:
            persisted = store.set_value(key=key, value=value)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        setattr(settings, key, getattr(persisted, key))
        return _public_settings(settings)

    @router.post("/thumbnail-size", response_model=SettingsOut)
    def set_thumbnail_size(body: ThumbnailSizeIn) -> SettingsOut:
        return _apply("thumbnail_size", body.thumbnail_size)

    @router.post("/max-concurrent-assets", response_model=SettingsOut)
    def set_max_concurrent_assets(body: MaxConcurrentAssetsIn) -> SettingsOut:
        return _apply("max_concurrent_assets", body.max_concurrent_assets)

    return router
