"""
Project graph: models, save-format classification and reference rewriting.
"""

from .legacy import LegacyConverter, ProjectFormat, classify_project
from .models import (
    Dimension,
    ObjectBundle,
    Picture,
    Project,
    ResourceObject,
    Sound,
    Sprite,
    SpriteObject,
)
from .rewrite import PathRewriter, ReplaceStrategy

__all__ = [
    "LegacyConverter",
    "ProjectFormat",
    "classify_project",
    "Dimension",
    "ObjectBundle",
    "Picture",
    "Project",
    "ResourceObject",
    "Sound",
    "Sprite",
    "SpriteObject",
    "PathRewriter",
    "ReplaceStrategy",
]
