"""
Project/object packaging: load, save, export and import archives.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .orchestrator import ProjectPackager, safe_archive_name

if TYPE_CHECKING:
    from fastapi import APIRouter  # pragma: no cover


def create_packaging_router(*, packager: ProjectPackager) -> "APIRouter":
    """
    Lazily import FastAPI router to keep non-web imports lightweight.
    """
    from .api import create_packaging_router as _create_packaging_router

    return _create_packaging_router(packager=packager)


def create_assets_router(*, packager: ProjectPackager) -> "APIRouter":
    from .api import create_assets_router as _create_assets_router

    return _create_assets_router(packager=packager)


__all__ = [
    "ProjectPackager",
    "safe_archive_name",
    "create_packaging_router",
    "create_assets_router",
]
