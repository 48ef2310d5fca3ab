import asyncio
import json
import tempfile
import unittest
import wave
import zipfile
from pathlib import Path
from typing import Any

from PIL import Image

from src.assetstore.errors import AssetNotFoundError, FormatError
from src.assetstore.fs.layout import AssetKind
from src.assetstore.packaging.orchestrator import ProjectPackager, safe_archive_name
from src.assetstore.project.models import ObjectBundle, Picture, Project, Sprite, SpriteObject, parse_bundle
from src.assetstore.settings.models import StoreSettings


DEFAULT_PICTURE = "lib/entry-js/images/_1x1.png"


def _write_png(path: Path, color: str = "red") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (40, 30), color).save(path, format="PNG")
    return path


def _write_wav(path: Path, seconds: float = 0.5, rate: int = 8000) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(b"\x00\x00" * int(rate * seconds))
    return path


def _write_project_archive(path: Path, descriptor: dict[str, Any]) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("temp/project.json", json.dumps(descriptor))
    return path


class _PackagerCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name).resolve()
        self.settings = StoreSettings(app_root=str(self.tmp / "app"), thumbnail_size=16)
        self.packager = ProjectPackager(self.settings)
        self.layout = self.packager.layout

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _sources(self, pictures: int, sounds: int) -> tuple[list[Path], list[Path]]:
        colors = ["red", "green", "blue", "yellow", "black"]
        pics = [_write_png(self.tmp / "src" / f"pic{i}.png", colors[i % len(colors)]) for i in range(pictures)]
        snds = [_write_wav(self.tmp / "src" / f"snd{i}.wav") for i in range(sounds)]
        return pics, snds

    async def _sprite_object(self, pictures: int, sounds: int, name: str = "Cat") -> SpriteObject:
        pic_paths, snd_paths = self._sources(pictures, sounds)
        imported_pictures = await self.packager.import_pictures_to_temp(pic_paths)
        imported_sounds = await self.packager.import_sounds_to_temp(snd_paths)
        obj = SpriteObject(
            id="obj1",
            name=name,
            script="[[]]",
            sprite=Sprite(pictures=imported_pictures, sounds=imported_sounds),
            selected_picture_id=imported_pictures[-1].id if imported_pictures else None,
        )
        obj.sync_selected_picture()
        return obj


class TestProjectSaveLoad(_PackagerCase):
    def test_save_then_load_restores_references(self) -> None:
        destination = self.tmp / "out" / "game.ent"

        async def run_test() -> tuple[Project, Project]:
            obj = await self._sprite_object(pictures=2, sounds=1)
            obj.sprite.pictures.append(Picture(id="blank", name="blank", fileurl=DEFAULT_PICTURE))
            project = Project(objects=[obj, SpriteObject(id="txt", name="Label", script="[]")])
            await self.packager.save_project(project, destination)
            saved = project.model_copy(deep=True)
            await self.packager.reset_workspace()
            self.assertEqual(self.packager.workspace.info().image_count, 0)
            loaded = await self.packager.load_project(destination)
            return saved, loaded

        saved, loaded = asyncio.run(run_test())

        self.assertTrue(destination.is_file())
        self.assertEqual(saved.saved_path, str(destination))
        self.assertEqual(loaded.saved_path, str(destination))
        self.assertEqual(
            [p.fileurl for p in loaded.objects[0].sprite.pictures],
            [p.fileurl for p in saved.objects[0].sprite.pictures],
        )
        self.assertEqual(loaded.objects[0].sprite.pictures[2].fileurl, DEFAULT_PICTURE)
        for picture in loaded.objects[0].sprite.pictures[:2]:
            self.assertTrue(Path(picture.fileurl).is_file())
        self.assertTrue(Path(loaded.objects[0].sprite.sounds[0].fileurl).is_file())

        info = self.packager.workspace.info()
        self.assertEqual((info.image_count, info.thumb_count, info.sound_count), (2, 2, 1))

    def test_saved_archive_holds_external_references(self) -> None:
        destination = self.tmp / "game.ent"

        async def run_test() -> Project:
            obj = await self._sprite_object(pictures=1, sounds=0)
            project = Project(objects=[obj])
            await self.packager.save_project(project, destination)
            return project

        project = asyncio.run(run_test())

        with zipfile.ZipFile(destination) as zf:
            names = zf.namelist()
            descriptor = json.loads(zf.read("temp/project.json"))
        picture = descriptor["objects"][0]["sprite"]["pictures"][0]
        self.assertTrue(picture["fileurl"].startswith("temp/"))
        self.assertIn(picture["fileurl"], names)
        self.assertEqual(descriptor["objects"][0]["selectedPicture"]["fileurl"], picture["fileurl"])

        in_memory = project.objects[0].sprite.pictures[0].fileurl
        self.assertTrue(in_memory.startswith(self.layout.workspace_root.as_posix()))

    def test_wrong_extension_writes_nothing(self) -> None:
        destination = self.tmp / "game.zip"
        project = Project(objects=[])

        with self.assertRaises(FormatError):
            asyncio.run(self.packager.save_project(project, destination))

        self.assertFalse(destination.exists())
        self.assertIsNone(project.saved_path)

    def test_missing_archive_keeps_workspace(self) -> None:
        marker = self.layout.workspace_root / "keep.txt"
        marker.parent.mkdir(parents=True)
        marker.write_text("x", encoding="utf-8")

        with self.assertRaises(AssetNotFoundError):
            asyncio.run(self.packager.load_project(self.tmp / "nope.ent"))

        self.assertTrue(marker.exists())

    def test_load_resets_previous_workspace(self) -> None:
        stale = self.layout.workspace_path("stale001", AssetKind.IMAGE, ".png")
        _write_png(stale)
        archive = _write_project_archive(self.tmp / "empty.ent", {"objects": []})

        project = asyncio.run(self.packager.load_project(archive))

        self.assertEqual(project.objects, [])
        self.assertFalse(stale.exists())

    def test_archive_without_descriptor(self) -> None:
        archive = self.tmp / "broken.ent"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("temp/readme.txt", "no descriptor here")

        with self.assertRaises(AssetNotFoundError):
            asyncio.run(self.packager.load_project(archive))

    def test_unparseable_descriptor(self) -> None:
        archive = self.tmp / "garbage.ent"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("temp/project.json", "{not json")

        with self.assertRaises(FormatError):
            asyncio.run(self.packager.load_project(archive))

    def test_entries_outside_workspace_are_rejected(self) -> None:
        resource = self.layout.resource_path("abcd0001", AssetKind.IMAGE, ".png")
        resource.parent.mkdir(parents=True)
        resource.write_bytes(b"library original")
        config = self.layout.app_root / "config.json"

        archive = self.tmp / "hostile.ent"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("temp/project.json", json.dumps({"objects": []}))
            zf.writestr("resources/uploads/ab/cd/image/abcd0001.png", b"clobbered")
            zf.writestr("config.json", "{}")
            zf.writestr("import/scope01/object/object.json", "{}")

        with self.assertRaises(FormatError):
            asyncio.run(self.packager.load_project(archive))

        self.assertEqual(resource.read_bytes(), b"library original")
        self.assertFalse(config.exists())
        self.assertFalse(self.layout.export_root.exists())
        self.assertFalse(self.layout.project_descriptor_path.exists())


class TestLegacyProjects(_PackagerCase):
    def _legacy_archive(self) -> Path:
        return _write_project_archive(
            self.tmp / "old.ent",
            {"objects": [{"id": "o1", "name": "Cat", "script": "<xml><block type='when_run'/></xml>"}]},
        )

    def test_legacy_without_converter_is_rejected(self) -> None:
        with self.assertRaises(FormatError):
            asyncio.run(self.packager.load_project(self._legacy_archive()))

    def test_legacy_is_converted_before_use(self) -> None:
        calls: list[dict[str, Any]] = []

        async def converter(raw: dict[str, Any]) -> dict[str, Any]:
            calls.append(raw)
            for obj in raw["objects"]:
                obj["script"] = "[[{\"type\": \"when_run\"}]]"
            return raw

        packager = ProjectPackager(self.settings, legacy_converter=converter)
        project = asyncio.run(packager.load_project(self._legacy_archive()))

        self.assertEqual(len(calls), 1)
        self.assertEqual(project.objects[0].script, "[[{\"type\": \"when_run\"}]]")

    def test_current_projects_skip_converter(self) -> None:
        async def converter(raw: dict[str, Any]) -> dict[str, Any]:
            raise AssertionError("converter must not run")

        archive = _write_project_archive(self.tmp / "new.ent", {"objects": [{"id": "o1", "script": "[]"}]})
        packager = ProjectPackager(self.settings, legacy_converter=converter)

        project = asyncio.run(packager.load_project(archive))

        self.assertEqual(project.objects[0].id, "o1")


class TestObjectExportImport(_PackagerCase):
    def test_export_is_self_contained_with_new_identifiers(self) -> None:
        out_dir = self.tmp / "exports"
        out_dir.mkdir()

        async def run_test() -> tuple[ObjectBundle, Path]:
            obj = await self._sprite_object(pictures=3, sounds=2, name="Cat/Dog")
            bundle = ObjectBundle(objects=[obj])
            archive = await self.packager.export_object(out_dir, bundle)
            return bundle, archive

        bundle, archive = asyncio.run(run_test())

        self.assertEqual(archive, out_dir / "Cat_Dog.eo")
        with zipfile.ZipFile(archive) as zf:
            names = set(zf.namelist())
            descriptor_text = zf.read("object/object.json").decode("utf-8")
        exported = parse_bundle(descriptor_text)

        original = bundle.objects[0].sprite
        copy = exported.objects[0].sprite
        original_ids = {p.filename for p in original.pictures} | {s.filename for s in original.sounds}
        exported_picture_ids = {p.filename for p in copy.pictures}
        exported_sound_ids = {s.filename for s in copy.sounds}

        self.assertEqual(len(exported_picture_ids), 3)
        self.assertEqual(len(exported_sound_ids), 2)
        self.assertFalse((exported_picture_ids | exported_sound_ids) & original_ids)
        for old_id in original_ids:
            self.assertNotIn(old_id, descriptor_text)

        selected = exported.objects[0].selected_picture
        self.assertEqual(selected.id, exported.objects[0].selected_picture_id)
        self.assertEqual(selected.filename, copy.pictures[-1].filename)
        self.assertEqual(selected.fileurl, copy.pictures[-1].fileurl)

        for picture in copy.pictures:
            shard = f"{picture.filename[0:2]}/{picture.filename[2:4]}"
            self.assertEqual(picture.fileurl, f"object/{shard}/image/{picture.filename}.png")
            self.assertIn(f"object/{shard}/image/{picture.filename}.png", names)
            self.assertIn(f"object/{shard}/thumb/{picture.filename}.png", names)
            self.assertFalse(picture.fileurl.startswith("/"))
        for sound in copy.sounds:
            shard = f"{sound.filename[0:2]}/{sound.filename[2:4]}"
            self.assertIn(f"object/{shard}/sound/{sound.filename}.wav", names)
            self.assertEqual(sound.fileurl, f"object/{shard}/sound/{sound.filename}.wav")
            self.assertEqual(sound.path, sound.fileurl)

        # caller's bundle is untouched
        self.assertTrue(original.pictures[0].fileurl.startswith(self.layout.workspace_root.as_posix()))
        self.assertEqual(list(self.layout.export_root.iterdir()), [])

    def test_export_rejects_wrong_extension(self) -> None:
        bundle = ObjectBundle(objects=[SpriteObject(id="o1", name="Cat")])
        with self.assertRaises(FormatError):
            asyncio.run(self.packager.export_object(self.tmp / "cat.zip", bundle))
        self.assertFalse((self.tmp / "cat.zip").exists())

    def test_failed_export_removes_scoped_directory(self) -> None:
        destination = self.tmp / "cat.eo"

        async def run_test() -> None:
            obj = await self._sprite_object(pictures=2, sounds=0)
            missing = obj.sprite.pictures[0]
            self.layout.workspace_path(missing.filename, AssetKind.IMAGE, ".png").unlink()
            await self.packager.export_object(destination, ObjectBundle(objects=[obj]))

        with self.assertRaises(AssetNotFoundError):
            asyncio.run(run_test())

        self.assertFalse(destination.exists())
        self.assertEqual(list(self.layout.export_root.iterdir()), [])

    def test_import_restores_assets_and_selection(self) -> None:
        archive = self.tmp / "cat.eo"

        async def run_test() -> tuple[ObjectBundle, ObjectBundle]:
            obj = await self._sprite_object(pictures=2, sounds=1)
            obj.sprite.pictures.append(Picture(id="blank", name="blank", fileurl=DEFAULT_PICTURE))
            source = ObjectBundle(objects=[obj])
            await self.packager.export_object(archive, source)
            [imported] = await self.packager.import_objects([archive])
            return source, imported

        source, imported = asyncio.run(run_test())

        obj = imported.objects[0]
        self.assertEqual(obj.name, "Cat")
        pictures = obj.sprite.pictures
        self.assertEqual([p.id for p in pictures], [p.id for p in source.objects[0].sprite.pictures])

        workspace_prefix = self.layout.workspace_root.as_posix() + "/"
        for picture in pictures[:2]:
            self.assertTrue(picture.fileurl.startswith(workspace_prefix))
            self.assertTrue(Path(picture.fileurl).is_file())
        self.assertEqual(pictures[2].fileurl, DEFAULT_PICTURE)

        source_ids = {p.filename for p in source.objects[0].sprite.pictures}
        self.assertFalse({p.filename for p in pictures[:2]} & source_ids)

        self.assertEqual(obj.selected_picture_id, source.objects[0].selected_picture_id)
        self.assertIs(obj.selected_picture, pictures[1])
        self.assertTrue(Path(obj.sprite.sounds[0].fileurl).is_file())

        info = self.packager.workspace.info()
        self.assertEqual((info.image_count, info.sound_count), (4, 2))
        self.assertEqual(list(self.layout.export_root.iterdir()), [])

    def test_import_missing_archive(self) -> None:
        with self.assertRaises(AssetNotFoundError):
            asyncio.run(self.packager.import_object(self.tmp / "nothing.eo"))
        self.assertEqual(list(self.layout.export_root.iterdir()), [])


class TestFileHelpers(_PackagerCase):
    def test_write_and_download(self) -> None:
        async def run_test() -> None:
            written = await self.packager.write_file("hello", self.tmp / "a" / "note.txt")
            copied = await self.packager.download_file(written, self.tmp / "b" / "note.txt")
            self.assertEqual(copied.read_text(encoding="utf-8"), "hello")

        asyncio.run(run_test())

    def test_download_missing_source(self) -> None:
        with self.assertRaises(AssetNotFoundError):
            asyncio.run(self.packager.download_file(self.tmp / "nope.png", self.tmp / "out.png"))


class TestSafeArchiveName(unittest.TestCase):
    def test_names(self) -> None:
        self.assertEqual(safe_archive_name("Cat"), "Cat")
        self.assertEqual(safe_archive_name("a/b\\c:d"), "a_b_c_d")
        self.assertEqual(safe_archive_name("  "), "object")
        self.assertEqual(safe_archive_name(None), "object")


if __name__ == "__main__":
    unittest.main()
