"""Tests for the import pipeline"""

from pathlib import Path

import pytest

from bardic_forge.audio.converter import ConversionResult
from bardic_forge.audio.importer import (
    DEFAULT_ALBUM,
    DEFAULT_ARTIST,
    ImportProgress,
    LibraryImporter,
    filter_mp3_files,
    get_import_info,
    import_files,
)
from bardic_forge.audio.metadata import AudioMetadata
from bardic_forge.core.exceptions import MetadataError
from bardic_forge.library.identity import compute_id, compute_id_with_suffix
from bardic_forge.library.models import Song


class FakeTags:
    """In-memory stand-in for the file tag functions"""

    def __init__(self):
        self.metadata: dict[str, AudioMetadata] = {}
        self.ids: dict[str, str] = {}
        self.written: list[tuple[str, str]] = []
        self.write_succeeds = True

    def read_metadata(self, path: Path) -> AudioMetadata:
        if path.name not in self.metadata:
            raise MetadataError("Unrecognized audio format")
        return self.metadata[path.name]

    def read_id(self, path: Path) -> str | None:
        return self.ids.get(path.name)

    def write_id(self, path: Path, song_id: str) -> bool:
        self.written.append((path.name, song_id))
        return self.write_succeeds

    def importer(self, database, **options) -> LibraryImporter:
        return LibraryImporter(
            database,
            metadata_reader=self.read_metadata,
            id_reader=self.read_id,
            id_writer=self.write_id,
            **options,
        )


@pytest.fixture
def fake_tags():
    return FakeTags()


@pytest.fixture
def inbox(temp_dir):
    folder = temp_dir / "inbox"
    folder.mkdir()
    return folder


def make_file(folder: Path, name: str, size: int = 1000) -> Path:
    path = folder / name
    path.write_bytes(b"\x00" * size)
    return path


class TestImportNewFiles:
    """Test importing files the library has not seen"""

    def test_imports_mp3(self, database, fake_tags, inbox):
        path = make_file(inbox, "tavern.mp3", 2048)
        fake_tags.metadata["tavern.mp3"] = AudioMetadata(
            title="Tavern Song", artist="Minstrels", album="Ale", genre="Folk",
            year=1999, track_number=2, duration=215, bitrate=256000, sample_rate=44100,
        )

        results = fake_tags.importer(database).import_files([path])

        expected_id = compute_id(215, 2048, "Tavern Song")
        assert (results.total, results.imported, results.skipped, results.failed) == (1, 1, 0, 0)
        assert results.imported_songs[0].id == expected_id
        assert fake_tags.written == [("tavern.mp3", expected_id)]

        song = database.get_song_by_id(expected_id)
        assert song.title == "Tavern Song"
        assert song.year == 1999
        assert song.file_size == 2048
        assert song.file_path == str(path.resolve())
        assert song.original_file_path is None
        assert song.bitrate == 256000

    def test_defaults_for_missing_tags(self, database, fake_tags, inbox):
        path = make_file(inbox, "Untitled Track.mp3")
        fake_tags.metadata["Untitled Track.mp3"] = AudioMetadata()

        fake_tags.importer(database).import_files([path])

        song = database.get_all_songs()[0]
        assert song.title == "Untitled Track"
        assert song.artist == DEFAULT_ARTIST
        assert song.album == DEFAULT_ALBUM
        assert song.duration == 0
        assert song.id == compute_id(0, 1000, "Untitled Track")

    def test_uppercase_extension(self, database, fake_tags, inbox):
        path = make_file(inbox, "LOUD.MP3")
        fake_tags.metadata["LOUD.MP3"] = AudioMetadata(title="Loud")
        assert fake_tags.importer(database).import_files([path]).imported == 1

    def test_write_tags_disabled(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="A")

        results = fake_tags.importer(database, write_tags=False).import_files([path])

        assert results.imported == 1
        assert fake_tags.written == []

    def test_tag_write_failure_is_not_fatal(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="A")
        fake_tags.write_succeeds = False

        assert fake_tags.importer(database).import_files([path]).imported == 1


class TestImportDeduplication:
    """Test skip-vs-insert decisions"""

    def test_same_content_skipped(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="Song", duration=100)
        importer = fake_tags.importer(database)

        importer.import_files([path])
        results = importer.import_files([path])

        assert results.skipped == 1
        assert results.imported == 0
        assert database.song_count() == 1

    def test_title_case_and_padding_ignored(self, database, fake_tags, inbox):
        first = make_file(inbox, "a.mp3")
        second = make_file(inbox, "b.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="Epic Battle Theme", duration=100)
        fake_tags.metadata["b.mp3"] = AudioMetadata(title="  epic battle theme ", duration=100)

        results = fake_tags.importer(database).import_files([first, second])

        assert (results.imported, results.skipped) == (1, 1)

    def test_existing_tag_reused(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        tag_id = "f" * 32
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="Retitled", duration=100)
        fake_tags.ids["a.mp3"] = tag_id

        results = fake_tags.importer(database).import_files([path])

        assert results.imported_songs[0].id == tag_id
        assert fake_tags.written == []

    def test_tagged_file_already_in_library_skipped(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3", 5000)
        tag_id = "e" * 32
        database.add_song(Song(id=tag_id, title="Original", file_size=4000, file_path="/old.mp3"))
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="Edited Title", duration=100)
        fake_tags.ids["a.mp3"] = tag_id

        results = fake_tags.importer(database).import_files([path])

        assert results.skipped == 1
        assert database.song_count() == 1

    def test_invalid_tag_ignored(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="Song", duration=100)
        fake_tags.ids["a.mp3"] = "not-a-bardic-id"

        results = fake_tags.importer(database).import_files([path])

        assert results.imported_songs[0].id == compute_id(100, 1000, "Song")

    def test_hash_collision_gets_suffix(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="Song", duration=100)
        base_id = compute_id(100, 1000, "Song")
        database.add_song(Song(id=base_id, title="Different Song", duration=100, file_size=1000, file_path="/x.mp3"))

        results = fake_tags.importer(database).import_files([path])

        assert results.imported == 1
        assert results.imported_songs[0].id == compute_id_with_suffix(100, 1000, "Song", 1)
        assert fake_tags.written == [("a.mp3", base_id + "_1")]

    def test_collision_then_same_content_skipped(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="Song", duration=100)
        base_id = compute_id(100, 1000, "Song")
        database.add_song(Song(id=base_id, title="Different Song", duration=100, file_size=1000, file_path="/x.mp3"))
        importer = fake_tags.importer(database)

        importer.import_files([path])
        results = importer.import_files([path])

        assert results.skipped == 1
        assert database.song_count() == 2


class TestImportFailures:
    """Test per-file failures"""

    def test_missing_file(self, database, fake_tags, inbox):
        results = fake_tags.importer(database).import_files([inbox / "gone.mp3"])

        assert results.failed == 1
        assert results.errors[0].error == "File not found"
        assert results.errors[0].file == "gone.mp3"

    def test_non_mp3_rejected_without_conversion(self, database, fake_tags, inbox):
        path = make_file(inbox, "song.flac")
        results = fake_tags.importer(database).import_files([path])

        assert results.failed == 1
        assert results.errors[0].error == "Only MP3 files are supported"

    def test_failure_does_not_stop_batch(self, database, fake_tags, inbox):
        broken = make_file(inbox, "broken.mp3")
        good = make_file(inbox, "good.mp3")
        fake_tags.metadata["good.mp3"] = AudioMetadata(title="Good")

        results = fake_tags.importer(database).import_files([broken, inbox / "gone.mp3", good])

        assert (results.total, results.imported, results.failed) == (3, 1, 2)
        assert [e.file for e in results.errors] == ["broken.mp3", "gone.mp3"]
        assert results.errors[0].path == str(broken)

    def test_unexpected_error_does_not_stop_batch(self, database, fake_tags, inbox):
        bad = make_file(inbox, "bad.mp3")
        good = make_file(inbox, "good.mp3")
        fake_tags.metadata["good.mp3"] = AudioMetadata(title="Good")

        def read_metadata(path):
            if path.name == "bad.mp3":
                raise ValueError("corrupt frame")
            return fake_tags.read_metadata(path)

        importer = LibraryImporter(
            database,
            metadata_reader=read_metadata,
            id_reader=fake_tags.read_id,
            id_writer=fake_tags.write_id,
        )
        results = importer.import_files([bad, good])

        assert (results.imported, results.failed) == (1, 1)
        assert results.errors[0].file == "bad.mp3"
        assert "corrupt frame" in results.errors[0].error

    def test_convert_requires_directory(self, database):
        with pytest.raises(ValueError):
            LibraryImporter(database, convert=True)


class TestImportConversion:
    """Test transcoding before import"""

    def test_converted_before_import(self, database, fake_tags, inbox, temp_dir):
        source = make_file(inbox, "song.flac", 9000)
        converted_dir = temp_dir / "converted"
        calls = []

        def fake_convert(input_path, output_path, bitrate):
            calls.append((input_path, output_path, bitrate))
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(b"\x00" * 3000)
            return ConversionResult(success=True, input_path=input_path, output_path=output_path)

        fake_tags.metadata["song.mp3"] = AudioMetadata(title="Song", duration=60)
        importer = LibraryImporter(
            database,
            convert=True,
            converted_directory=converted_dir,
            bitrate=320,
            metadata_reader=fake_tags.read_metadata,
            id_reader=fake_tags.read_id,
            id_writer=fake_tags.write_id,
            converter=fake_convert,
        )

        results = importer.import_files([source])

        assert calls == [(source, converted_dir / "song.mp3", 320)]
        song = results.imported_songs[0]
        assert song.file_path == str((converted_dir / "song.mp3").resolve())
        assert song.original_file_path == str(source.resolve())
        assert song.original_format == "flac"
        assert song.file_size == 3000
        assert song.id == compute_id(60, 3000, "Song")

    def test_conversion_failure(self, database, fake_tags, inbox, temp_dir):
        source = make_file(inbox, "song.wav")

        def failing_convert(input_path, output_path, bitrate):
            return ConversionResult(False, input_path, output_path, error="ffmpeg exploded")

        importer = LibraryImporter(
            database,
            convert=True,
            converted_directory=temp_dir / "converted",
            converter=failing_convert,
        )
        results = importer.import_files([source])

        assert results.failed == 1
        assert "ffmpeg exploded" in results.errors[0].error

    def converting_importer(self, database, fake_tags, converted_dir):
        def copy_convert(input_path, output_path, bitrate):
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(input_path.read_bytes())
            return ConversionResult(success=True, input_path=input_path, output_path=output_path)

        return LibraryImporter(
            database,
            convert=True,
            converted_directory=converted_dir,
            metadata_reader=fake_tags.read_metadata,
            id_reader=fake_tags.read_id,
            id_writer=fake_tags.write_id,
            converter=copy_convert,
        )

    def test_same_stem_gets_separate_output(self, database, fake_tags, inbox, temp_dir):
        (inbox / "a").mkdir()
        (inbox / "b").mkdir()
        first = make_file(inbox / "a", "song.flac", 100)
        second = make_file(inbox / "b", "song.flac", 200)
        converted_dir = temp_dir / "converted"
        fake_tags.metadata["song.mp3"] = AudioMetadata(title="Track from A", duration=60)
        fake_tags.metadata["song_1.mp3"] = AudioMetadata(title="Track from B", duration=60)

        importer = self.converting_importer(database, fake_tags, converted_dir)
        results = importer.import_files([first, second])

        assert results.imported == 2
        paths = {song.file_path for song in results.imported_songs}
        assert paths == {
            str((converted_dir / "song.mp3").resolve()),
            str((converted_dir / "song_1.mp3").resolve()),
        }
        for song in results.imported_songs:
            assert Path(song.file_path).stat().st_size == song.file_size

    def test_converted_duplicate_removed(self, database, fake_tags, inbox, temp_dir):
        source = make_file(inbox, "song.flac", 100)
        converted_dir = temp_dir / "converted"
        fake_tags.metadata["song.mp3"] = AudioMetadata(title="Song", duration=60)
        fake_tags.metadata["song_1.mp3"] = AudioMetadata(title="Song", duration=60)

        importer = self.converting_importer(database, fake_tags, converted_dir)
        importer.import_files([source])
        results = importer.import_files([source])

        assert results.skipped == 1
        assert sorted(p.name for p in converted_dir.iterdir()) == ["song.mp3"]


class TestImportHelpers:
    """Test progress events and pre-import helpers"""

    def test_progress_events(self, database, fake_tags, inbox):
        paths = [make_file(inbox, "a.mp3"), make_file(inbox, "b.mp3")]
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="A")
        events: list[ImportProgress] = []

        fake_tags.importer(database).import_files(paths, events.append)

        assert [(e.current, e.status, e.file) for e in events] == [
            (1, "processing", "a.mp3"),
            (2, "processing", "b.mp3"),
            (2, "complete", None),
        ]
        assert events[-1].results.imported == 1
        assert events[-1].results.failed == 1

    def test_import_single(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="A")
        results = fake_tags.importer(database).import_single(path)
        assert (results.total, results.imported) == (1, 1)

    def test_module_level_import_files(self, database, fake_tags, inbox):
        path = make_file(inbox, "a.mp3")
        fake_tags.metadata["a.mp3"] = AudioMetadata(title="A")

        results = import_files(
            database,
            [path],
            metadata_reader=fake_tags.read_metadata,
            id_reader=fake_tags.read_id,
            id_writer=fake_tags.write_id,
        )
        assert results.imported == 1

    def test_filter_mp3_files(self):
        paths = [Path("a.mp3"), Path("b.MP3"), Path("c.flac"), Path("mp3")]
        assert filter_mp3_files(paths) == [Path("a.mp3"), Path("b.MP3")]

    def test_get_import_info(self):
        info = get_import_info(["a.mp3", "b.wav", "c.ogg"])
        assert info.total == 3
        assert info.mp3_files == 1
        assert info.unsupported_files == 2
        assert info.can_import
        assert info.files == [Path("a.mp3")]

    def test_get_import_info_nothing_importable(self):
        assert not get_import_info([Path("a.wav")]).can_import
