"""
Project graph models.

Objects own a sprite with pictures and sounds. Every model keeps unknown keys
so descriptors survive a load/save round trip untouched apart from the asset
references this package rewrites.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ..errors import FormatError


class _GraphModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Dimension(_GraphModel):
    width: Union[int, float]
    height: Union[int, float]


class Asset(_GraphModel):
    id: Optional[str] = None
    uid: Optional[str] = Field(default=None, alias="_id")
    name: Optional[str] = None
    type: Optional[str] = None
    filename: Optional[str] = None
    fileurl: Optional[str] = None
    ext: Optional[str] = Field(default=None, validation_alias=AliasChoices("ext", "extension"))


class Picture(Asset):
    dimension: Optional[Dimension] = None


class Sound(Asset):
    duration: Optional[float] = None
    path: Optional[str] = None


class Sprite(_GraphModel):
    pictures: list[Picture] = Field(default_factory=list)
    sounds: list[Sound] = Field(default_factory=list)


class SpriteObject(_GraphModel):
    id: Optional[str] = None
    name: Optional[str] = None
    script: Any = None
    sprite: Optional[Sprite] = None
    selected_picture_id: Optional[str] = Field(default=None, alias="selectedPictureId")
    selected_picture: Optional[Picture] = Field(default=None, alias="selectedPicture")

    def sync_selected_picture(self) -> None:
        """Point `selected_picture` at the sprite picture named by `selected_picture_id`."""
        if self.sprite is None or self.selected_picture_id is None:
            return
        for picture in self.sprite.pictures:
            if picture.id == self.selected_picture_id:
                self.selected_picture = picture
                return


class Project(_GraphModel):
    objects: list[SpriteObject] = Field(default_factory=list)
    saved_path: Optional[str] = Field(default=None, alias="savedPath")


class ObjectBundle(_GraphModel):
    """Descriptor stored as object.json inside an object archive."""
    objects: list[SpriteObject] = Field(default_factory=list)

    @property
    def name(self) -> str:
        if self.objects and self.objects[0].name:
            return self.objects[0].name
        return "object"


class ResourceObject(_GraphModel):
    """Resource-library entry with its pictures and sounds at the top level."""
    id: Optional[str] = None
    name: Optional[str] = None
    pictures: list[Picture] = Field(default_factory=list)
    sounds: list[Sound] = Field(default_factory=list)
    selected_picture_id: Optional[str] = Field(default=None, alias="selectedPictureId")
    selected_picture: Optional[Picture] = Field(default=None, alias="selectedPicture")

    def sync_selected_picture(self) -> None:
        if self.selected_picture_id is None:
            return
        for picture in self.pictures:
            if picture.id == self.selected_picture_id:
                self.selected_picture = picture
                return


def to_dict(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True, mode="json")


def dump_json(model: BaseModel) -> str:
    return model.model_dump_json(by_alias=True, exclude_none=True)


def parse_json_document(text: str, *, source: str = "descriptor") -> dict[str, Any]:
    """
    Decode a JSON descriptor into a dict.

    Raises:
        FormatError: If the text is not a JSON object.
    """
    try:
        raw = json.loads(text)
    except ValueError as exc:
        raise FormatError(f"{source} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise FormatError(f"{source} must be a JSON object, got {type(raw).__name__}")
    return raw


def project_from_dict(raw: dict[str, Any]) -> Project:
    try:
        return Project.model_validate(raw)
    except ValidationError as exc:
        raise FormatError(f"invalid project descriptor: {exc}") from exc


def bundle_from_dict(raw: dict[str, Any]) -> ObjectBundle:
    try:
        return ObjectBundle.model_validate(raw)
    except ValidationError as exc:
        raise FormatError(f"invalid object descriptor: {exc}") from exc


def resource_object_from_dict(raw: dict[str, Any]) -> ResourceObject:
    try:
        return ResourceObject.model_validate(raw)
    except ValidationError as exc:
        raise FormatError(f"invalid resource object descriptor: {exc}") from exc


def parse_project(text: str) -> Project:
    return project_from_dict(parse_json_document(text, source="project.json"))


def parse_bundle(text: str) -> ObjectBundle:
    return bundle_from_dict(parse_json_document(text, source="object.json"))
