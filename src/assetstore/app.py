from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI

from .packaging import ProjectPackager, create_assets_router, create_packaging_router
from .settings.api import create_settings_router
from .settings.store import SettingsStore


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def create_app(*, config_path: Path | None = None) -> FastAPI:
    repo_root = _repo_root()
    config_path = config_path or (repo_root / "data" / "config.json")

    store = SettingsStore(path=config_path)
    settings = store.load()
    if not Path(settings.app_root).is_absolute():
        settings.app_root = str(repo_root / settings.app_root)

    packager = ProjectPackager(settings)

    app = FastAPI(title="sprite-asset-store")
    app.include_router(create_settings_router(store=store, settings=settings))
    app.include_router(create_packaging_router(packager=packager))
    app.include_router(create_assets_router(packager=packager))

    app.state.settings_store = store
    app.state.settings = settings
    app.state.packager = packager
    app.state.repo_root = repo_root
    return app


app = create_app()
