"""
Workspace lifecycle: reset, exclusive access, scoped scratch directories.

The workspace holds the materialized assets of the single open project. It is
reset before every project load so assets of one project never leak into the
next. Load, save and reset run under one exclusive lock.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, NamedTuple

from ..errors import AssetStoreError
from ..fs.files import mkdir_recursive, remove_tree
from ..fs.ids import create_id
from ..fs.layout import AssetKind, ScopedPaths, WorkspaceLayout


logger = logging.getLogger(__name__)


class WorkspaceInfo(NamedTuple):
    """Snapshot of the workspace contents."""
    exists: bool
    image_count: int
    thumb_count: int
    sound_count: int


class Workspace:
    """
    Owns the transient workspace directory of the open project.

    Usage:
        workspace = Workspace(layout)
        async with workspace.exclusive():
            await workspace.reset_unlocked()
            ...
    """

    def __init__(self, layout: WorkspaceLayout):
        self._layout = layout
        self._lock = asyncio.Lock()

    @property
    def layout(self) -> WorkspaceLayout:
        return self._layout

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator["Workspace"]:
        """Hold exclusive access to the workspace for a load, save or reset."""
        async with self._lock:
            yield self

    async def reset_unlocked(self) -> None:
        """Delete and recreate the workspace; caller must hold `exclusive()`."""
        root = self._layout.workspace_root
        removed = await remove_tree(root)
        await mkdir_recursive(root)
        logger.info("workspace reset (%s): %s", "cleared" if removed else "created", root)

    async def reset(self) -> None:
        """
        Recursively delete the workspace and recreate it empty.

        Waits for any in-progress load or save to finish first.
        """
        async with self.exclusive():
            await self.reset_unlocked()

    @asynccontextmanager
    async def scoped_directory(self) -> AsyncIterator[ScopedPaths]:
        """
        Provide a fresh scratch directory for one object export or import.

        The directory is removed on every exit path. A failed removal is logged
        and does not mask the outcome of the body.
        """
        paths = self._layout.scoped_paths(create_id())
        await mkdir_recursive(paths.payload)
        try:
            yield paths
        finally:
            try:
                await asyncio.shield(remove_tree(paths.root))
            except AssetStoreError as exc:
                logger.warning("failed to remove scoped directory %s: %s", paths.root, exc)

    def info(self) -> WorkspaceInfo:
        root = self._layout.workspace_root
        return WorkspaceInfo(
            exists=root.exists(),
            image_count=len(self._layout.list_asset_files(root, AssetKind.IMAGE)),
            thumb_count=len(self._layout.list_asset_files(root, AssetKind.THUMB)),
            sound_count=len(self._layout.list_asset_files(root, AssetKind.SOUND)),
        )
