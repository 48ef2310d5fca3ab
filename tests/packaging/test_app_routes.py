import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from fastapi import HTTPException

from src.assetstore import packaging
from src.assetstore.app import create_app
from src.assetstore.errors import AssetIOError, AssetNotFoundError, FormatError
from src.assetstore.packaging.api import ExportObjectIn, ResourceObjectsIn, SaveProjectIn, _raise_http
from src.assetstore.settings.models import StoreSettings


def _endpoint(app, path: str):
    for route in app.routes:
        if route.path == path:
            return route.endpoint
    raise AssertionError(f"route not registered: {path}")


class TestAppWiring(unittest.TestCase):
    def test_routes_are_registered(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            app = create_app(config_path=Path(tmpdir) / "config.json")

        paths = {route.path for route in app.routes}
        for expected in (
            "/api/settings",
            "/api/settings/thumbnail-size",
            "/api/projects/load",
            "/api/projects/save",
            "/api/projects/reset",
            "/api/projects/workspace",
            "/api/objects/export",
            "/api/objects/import",
            "/api/objects/from-resource",
            "/api/assets/picture",
            "/api/assets/pictures",
            "/api/assets/sounds",
            "/api/assets/canvas",
            "/api/files/download",
            "/api/files/write",
        ):
            self.assertIn(expected, paths)

    def test_relative_app_root_is_anchored_to_repo(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Path(tmpdir) / "config.json"
            config.write_text(json.dumps({"app_root": "data/store", "thumbnail_size": 32}), encoding="utf-8")
            app = create_app(config_path=config)

        self.assertTrue(Path(app.state.settings.app_root).is_absolute())
        self.assertEqual(app.state.settings.thumbnail_size, 32)
        self.assertEqual(app.state.packager.layout.app_root, Path(app.state.settings.app_root).resolve())

    def test_package_level_router_factories(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            packager = packaging.ProjectPackager(StoreSettings(app_root=tmpdir))
            projects = packaging.create_packaging_router(packager=packager)
            assets = packaging.create_assets_router(packager=packager)

        self.assertIn("/api/projects/load", {route.path for route in projects.routes})
        self.assertIn("/api/assets/picture", {route.path for route in assets.routes})
        self.assertNotIn("/api/assets/picture", {route.path for route in projects.routes})


class TestErrorMapping(unittest.TestCase):
    def test_status_codes(self) -> None:
        for exc, status in (
            (FormatError("bad"), 400),
            (AssetNotFoundError("gone"), 404),
            (AssetIOError("disk"), 500),
        ):
            with self.assertRaises(HTTPException) as ctx:
                _raise_http(exc)
            self.assertEqual(ctx.exception.status_code, status)
            self.assertIs(ctx.exception.__cause__, exc)

    def test_malformed_descriptors_are_bad_requests(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            app = create_app(config_path=Path(tmpdir) / "config.json")
            save = _endpoint(app, "/api/projects/save")
            export = _endpoint(app, "/api/objects/export")
            from_resource = _endpoint(app, "/api/objects/from-resource")

            for call in (
                lambda: save(SaveProjectIn(destination=str(Path(tmpdir) / "game.ent"), project={"objects": "nope"})),
                lambda: export(ExportObjectIn(destination=str(Path(tmpdir) / "cat.eo"), bundle={"objects": [{"sprite": 5}]})),
                lambda: from_resource(ResourceObjectsIn(objects=[{"pictures": "none"}])),
            ):
                with self.assertRaises(HTTPException) as ctx:
                    asyncio.run(call())
                self.assertEqual(ctx.exception.status_code, 400)
                self.assertIsInstance(ctx.exception.__cause__, FormatError)

            self.assertFalse((Path(tmpdir) / "game.ent").exists())
            self.assertFalse((Path(tmpdir) / "cat.eo").exists())


if __name__ == "__main__":
    unittest.main()
