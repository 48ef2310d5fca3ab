from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


DEFAULT_APP_ROOT = "data"
DEFAULT_WORKSPACE_DIR_NAME = "temp"
DEFAULT_EXPORT_DIR_NAME = "import"
DEFAULT_RESOURCE_ROOT = "resources/uploads"
DEFAULT_PROJECT_EXTENSION = ".ent"
DEFAULT_OBJECT_EXTENSION = ".eo"
DEFAULT_THUMBNAIL_SIZE = 96
DEFAULT_MAX_CONCURRENT_ASSETS = 16

DEFAULT_PICTURE_PATHS = (
    "lib/entry-js/images/_1x1.png",
    "lib/entry-js/images/media/bg.png",
)
DEFAULT_SOUND_PATHS = (
    "lib/entry-js/images/media/bark.mp3",
)


def _str_or_default(value: Any, default: str) -> str:
    text = str(value or "").strip()
    return text or default


def _extension_or_default(value: Any, default: str) -> str:
    text = _str_or_default(value, default)
    if not text.startswith("."):
        text = "." + text
    return text.lower()


def _positive_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def _str_tuple(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return default
    return tuple(str(v) for v in value if str(v).strip())


@dataclass
class StoreSettings:
    app_root: str = DEFAULT_APP_ROOT
    workspace_dir_name: str = DEFAULT_WORKSPACE_DIR_NAME
    export_dir_name: str = DEFAULT_EXPORT_DIR_NAME
    resource_root: str = DEFAULT_RESOURCE_ROOT
    project_extension: str = DEFAULT_PROJECT_EXTENSION
    object_extension: str = DEFAULT_OBJECT_EXTENSION
    default_picture_paths: tuple[str, ...] = field(default_factory=lambda: DEFAULT_PICTURE_PATHS)
    default_sound_paths: tuple[str, ...] = field(default_factory=lambda: DEFAULT_SOUND_PATHS)
    thumbnail_size: int = DEFAULT_THUMBNAIL_SIZE
    max_concurrent_assets: int = DEFAULT_MAX_CONCURRENT_ASSETS

    def set_max_concurrent_assets(self, value: int) -> None:
        if value < 1:
            raise ValueError("max_concurrent_assets must be >= 1")
        self.max_concurrent_assets = value

    def set_thumbnail_size(self, value: int) -> None:
        if value < 1:
            raise ValueError("thumbnail_size must be >= 1")
        self.thumbnail_size = value

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "version": 1,
            "app_root": self.app_root,
            "workspace_dir_name": self.workspace_dir_name,
            "export_dir_name": self.export_dir_name,
            "resource_root": self.resource_root,
            "project_extension": self.project_extension,
            "object_extension": self.object_extension,
            "default_picture_paths": list(self.default_picture_paths),
            "default_sound_paths": list(self.default_sound_paths),
            "thumbnail_size": self.thumbnail_size,
            "max_concurrent_assets": self.max_concurrent_assets,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "StoreSettings":
        return cls(
            app_root=_str_or_default(data.get("app_root"), DEFAULT_APP_ROOT),
            workspace_dir_name=_str_or_default(data.get("workspace_dir_name"), DEFAULT_WORKSPACE_DIR_NAME),
            export_dir_name=_str_or_default(data.get("export_dir_name"), DEFAULT_EXPORT_DIR_NAME),
            resource_root=_str_or_default(data.get("resource_root"), DEFAULT_RESOURCE_ROOT),
            project_extension=_extension_or_default(data.get("project_extension"), DEFAULT_PROJECT_EXTENSION),
            object_extension=_extension_or_default(data.get("object_extension"), DEFAULT_OBJECT_EXTENSION),
            default_picture_paths=_str_tuple(data.get("default_picture_paths"), DEFAULT_PICTURE_PATHS),
            default_sound_paths=_str_tuple(data.get("default_sound_paths"), DEFAULT_SOUND_PATHS),
            thumbnail_size=_positive_int(data.get("thumbnail_size"), DEFAULT_THUMBNAIL_SIZE),
            max_concurrent_assets=_positive_int(
                data.get("max_concurrent_assets"), DEFAULT_MAX_CONCURRENT_ASSETS
            ),
        )
