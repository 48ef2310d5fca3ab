import json
import tempfile
import unittest
from pathlib import Path

from src.assetstore.settings.models import StoreSettings
from src.assetstore.settings.store import SettingsStore


class TestStoreSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = StoreSettings()
        self.assertEqual(settings.workspace_dir_name, "temp")
        self.assertEqual(settings.project_extension, ".ent")
        self.assertEqual(settings.object_extension, ".eo")
        self.assertIn("lib/entry-js/images/_1x1.png", settings.default_picture_paths)

    def test_persist_round_trip(self) -> None:
        settings = StoreSettings(app_root="/srv/app", thumbnail_size=64, max_concurrent_assets=4)
        restored = StoreSettings.from_persist_dict(settings.to_persist_dict())
        self.assertEqual(restored, settings)

    def test_tolerant_parsing(self) -> None:
        restored = StoreSettings.from_persist_dict(
            {
                "app_root": "  ",
                "project_extension": "PRJ",
                "thumbnail_size": "abc",
                "max_concurrent_assets": 0,
                "default_sound_paths": "not-a-list",
            }
        )
        self.assertEqual(restored.app_root, "data")
        self.assertEqual(restored.project_extension, ".prj")
        self.assertEqual(restored.thumbnail_size, 96)
        self.assertEqual(restored.max_concurrent_assets, 16)
        self.assertEqual(restored.default_sound_paths, ("lib/entry-js/images/media/bark.mp3",))

    def test_max_concurrent_assets_must_be_positive(self) -> None:
        settings = StoreSettings()
        with self.assertRaises(ValueError):
            settings.set_max_concurrent_assets(0)
        settings.set_max_concurrent_assets(3)
        self.assertEqual(settings.max_concurrent_assets, 3)


class TestSettingsStore(unittest.TestCase):
    def test_missing_file_yields_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SettingsStore(path=Path(tmpdir) / "config.json")
            self.assertEqual(store.load(), StoreSettings())

    def test_invalid_file_yields_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("[not, json", encoding="utf-8")
            self.assertEqual(SettingsStore(path=path).load(), StoreSettings())

    def test_save_and_update(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "config.json"
            store = SettingsStore(path=path)

            store.save(StoreSettings(app_root="/srv/app"))
            updated = store.set_value(key="thumbnail_size", value=48)

            self.assertEqual(updated.thumbnail_size, 48)
            raw = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(raw["version"], 1)
            self.assertEqual(raw["app_root"], "/srv/app")
            self.assertEqual(raw["thumbnail_size"], 48)
            self.assertFalse(path.with_suffix(".json.tmp").exists())

    def test_unknown_key_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SettingsStore(path=Path(tmpdir) / "config.json")
            with self.assertRaises(KeyError):
                store.set_value(key="download_root", value="x")

    def test_invalid_bounded_values_are_not_written(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            store = SettingsStore(path=path)
            store.save(StoreSettings(thumbnail_size=64, max_concurrent_assets=4))
            before = path.read_bytes()

            with self.assertRaises(ValueError):
                store.set_value(key="max_concurrent_assets", value=0)
            with self.assertRaises(ValueError):
                store.set_value(key="thumbnail_size", value=0)

            self.assertEqual(path.read_bytes(), before)
            self.assertEqual(store.set_value(key="max_concurrent_assets", value=2).max_concurrent_assets, 2)

    def test_other_values_are_normalized(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SettingsStore(path=Path(tmpdir) / "config.json")
            updated = store.set_value(key="project_extension", value="PRJ")

            self.assertEqual(updated.project_extension, ".prj")
            self.assertEqual(store.load().project_extension, ".prj")
            with self.assertRaises(KeyError):
                store.set_value(key="version", value=2)

    def test_unreadable_file_is_logged(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("[1, 2]", encoding="utf-8")
            with self.assertLogs("src.assetstore.settings.store", level="WARNING"):
                self.assertEqual(SettingsStore(path=path).load(), StoreSettings())

    def test_mutator_must_return_settings(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SettingsStore(path=Path(tmpdir) / "config.json")
            with self.assertRaises(TypeError):
                store.update(mutator=lambda settings: None)


if __name__ == "__main__":
    unittest.main()
