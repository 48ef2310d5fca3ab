"""
Asset reference rewriting between workspace (internal) and portable (external) forms.

Internal form: absolute posix path inside the workspace root
    /.../<app_root>/temp/ab/cd/image/abcd....png
External form: archive-relative path rooted at the workspace directory name
    temp/ab/cd/image/abcd....png

Default library references are left untouched by every strategy.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Optional, TypeVar

from ..fs.layout import WorkspaceLayout, normalize_ref
from .models import Asset, ObjectBundle, Project, Sound, SpriteObject


_FILE_SCHEME = re.compile(r"^file:/*", re.IGNORECASE)
_SLASHED_DRIVE = re.compile(r"^/+(?=[A-Za-z]:)")
_DRIVE = re.compile(r"^[A-Za-z]:")

GraphT = TypeVar("GraphT", Project, ObjectBundle)


def _strip_file_scheme(ref: str) -> str:
    """file:///x/y -> /x/y, file:///C:/x -> C:/x"""
    if not ref.lower().startswith("file:"):
        return ref
    return _SLASHED_DRIVE.sub("", _FILE_SCHEME.sub("/", ref))


class ReplaceStrategy(str, Enum):
    """Direction of an asset reference rewrite."""
    TO_EXTERNAL = "to_external"
    TO_EXTERNAL_DELETE_URL = "to_external_delete_url"
    FROM_EXTERNAL = "from_external"


class PathRewriter:
    """
    Rewrites asset references for one workspace layout.

    Usage:
        rewriter = PathRewriter(layout)
        rewriter.change_project_path(project, ReplaceStrategy.TO_EXTERNAL)
    """

    def __init__(self, layout: WorkspaceLayout):
        self._layout = layout
        self._workspace_name = layout.settings.workspace_dir_name.strip("/")
        self._workspace_prefix = layout.workspace_root.as_posix().rstrip("/")
        self._app_prefix = layout.app_root.as_posix().rstrip("/")

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def rewrite(self, strategy: ReplaceStrategy, fileurl: str) -> str:
        if self._layout.is_default_asset(fileurl):
            return fileurl
        if strategy == ReplaceStrategy.TO_EXTERNAL:
            return self.to_external(fileurl)
        if strategy == ReplaceStrategy.TO_EXTERNAL_DELETE_URL:
            return self.to_external_delete_url(fileurl)
        if strategy == ReplaceStrategy.FROM_EXTERNAL:
            return self.from_external(fileurl)
        raise ValueError(f"unknown replace strategy: {strategy!r}")

    def to_external(self, fileurl: str) -> str:
        ref = _strip_file_scheme(normalize_ref(fileurl))
        if not ref.startswith(self._workspace_prefix + "/"):
            return fileurl
        relative = ref[len(self._workspace_prefix) + 1:].split("?", 1)[0]
        return f"{self._workspace_name}/{relative}"

    def to_external_delete_url(self, fileurl: str) -> str:
        ref = _strip_file_scheme(normalize_ref(self.to_external(fileurl)))
        if ref.startswith(self._app_prefix + "/"):
            ref = ref[len(self._app_prefix) + 1:]
        ref = _DRIVE.sub("", ref)
        return ref.lstrip("/")

    def from_external(self, fileurl: str) -> str:
        ref = normalize_ref(fileurl)
        if ref.startswith("./"):
            ref = ref[2:]
        if not ref.startswith(self._workspace_name + "/"):
            return fileurl
        return f"{self._workspace_prefix}/{ref[len(self._workspace_name) + 1:]}"

    # ------------------------------------------------------------------
    # Graph walk
    # ------------------------------------------------------------------

    def _rewrite_asset(self, asset: Optional[Asset], strategy: ReplaceStrategy) -> None:
        if asset is None or not asset.fileurl:
            return
        asset.fileurl = self.rewrite(strategy, asset.fileurl)
        if isinstance(asset, Sound) and asset.path:
            asset.path = self.rewrite(strategy, asset.path)

    def change_objects_path(
        self,
        objects: Iterable[SpriteObject],
        strategy: ReplaceStrategy,
    ) -> Iterable[SpriteObject]:
        """
        Rewrite every picture and sound reference of the given objects in place.

        Objects without a sprite and assets without a fileurl are skipped.

        Returns:
            The same iterable that was passed in.
        """
        for obj in objects:
            if obj.sprite is None:
                continue
            visited: set[int] = set()
            for picture in obj.sprite.pictures:
                self._rewrite_asset(picture, strategy)
                visited.add(id(picture))
            for sound in obj.sprite.sounds:
                self._rewrite_asset(sound, strategy)
            if obj.selected_picture is not None and id(obj.selected_picture) not in visited:
                self._rewrite_asset(obj.selected_picture, strategy)
        return objects

    def change_project_path(self, graph: GraphT, strategy: ReplaceStrategy) -> GraphT:
        """Rewrite a project or object bundle in place and return the same instance."""
        self.change_objects_path(graph.objects, strategy)
        return graph
