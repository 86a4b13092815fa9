"""
Import pipeline: audio files in, library rows out.

For each file:
    1. Check it exists and is an MP3 (or transcode it first when
       conversion is enabled)
    2. Read metadata
    3. Take the file size from the filesystem
    4. Reuse the BARDIC_ID tag if the file carries a valid one, otherwise
       compute the id and write it back into the file (best effort)
    5. Look the id up in the library:
         - not present: insert
         - present, same song: skip as duplicate
         - present, different song (hash collision): try <id>_1, <id>_2...
    6. Insert with defaults for missing fields

A failure affects only the file it happened on; the batch always runs to
the end and reports per-file errors in ImportResults.

Usage:
    from bardic_forge.audio.importer import LibraryImporter

    importer = LibraryImporter(database)
    results = importer.import_files(paths)
    print(f"{results.imported} imported, {results.skipped} skipped")
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from bardic_forge.audio.converter import ConversionResult, convert_to_mp3, generate_unique_output_path
from bardic_forge.audio.metadata import AudioMetadata, read_bardic_id, read_metadata, write_bardic_id
from bardic_forge.audio.scanner import AUDIO_EXTENSIONS
from bardic_forge.core.config import DEFAULT_BITRATE
from bardic_forge.core.database import Database
from bardic_forge.core.exceptions import BardicError, ImportFileError
from bardic_forge.core.logger import (
    format_imported_message,
    format_skipped_message,
    get_logger,
    log_import_failure,
)
from bardic_forge.library.identity import compute_id, compute_id_with_suffix, is_valid_id
from bardic_forge.library.models import Song

logger = get_logger(__name__)


DEFAULT_ARTIST = "Unknown Artist"
DEFAULT_ALBUM = "Unknown Album"
MP3_EXTENSION = ".mp3"

# Collision suffixes tried before giving up on a file
MAX_COLLISION_SUFFIX = 1000


@dataclass(frozen=True)
class ImportFailure:
    """A file that could not be imported and why."""
    file: str
    path: str
    error: str


@dataclass
class ImportResults:
    """
    Outcome of an import batch.

    Attributes:
        total: Number of paths given.
        imported: Files inserted into the library.
        skipped: Files already in the library.
        failed: Files that raised an error.
        errors: One ImportFailure per failed file.
        imported_songs: The Song rows that were inserted.
    """
    total: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[ImportFailure] = field(default_factory=list)
    imported_songs: list[Song] = field(default_factory=list)


@dataclass(frozen=True)
class ImportProgress:
    """
    Progress event sent to the progress callback.

    status is "processing" before each file and "complete" once at the
    end, when results is also set.
    """
    current: int
    total: int
    status: str
    file: str | None = None
    results: ImportResults | None = None


@dataclass(frozen=True)
class ImportInfo:
    """Pre-import summary of a list of paths."""
    total: int
    mp3_files: int
    unsupported_files: int
    can_import: bool
    files: list[Path]


def filter_mp3_files(paths: Iterable[Path]) -> list[Path]:
    """Keep only paths with a .mp3 extension (case-insensitive)."""
    return [Path(p) for p in paths if Path(p).suffix.lower() == MP3_EXTENSION]


def get_import_info(paths: Iterable[Path]) -> ImportInfo:
    """Summarize what an import of these paths would attempt, without importing."""
    paths = [Path(p) for p in paths]
    mp3_files = filter_mp3_files(paths)
    return ImportInfo(
        total=len(paths),
        mp3_files=len(mp3_files),
        unsupported_files=len(paths) - len(mp3_files),
        can_import=len(mp3_files) > 0,
        files=mp3_files,
    )


def _same_content(song: Song, duration: int, file_size: int, title: str) -> bool:
    return (
        song.duration == duration
        and song.file_size == file_size
        and song.title.strip().lower() == title.strip().lower()
    )


class LibraryImporter:
    """
    Imports audio files into a library Database.

    The tag and metadata functions are injectable so the pipeline can run
    against fakes in tests.

    Args:
        database: Target library.
        write_tags: Write the BARDIC_ID frame into files that lack one.
        convert: Transcode non-MP3 audio before import.
        converted_directory: Where transcoded MP3s are written.
                             Required when convert is True.
        bitrate: Transcoding bitrate in kbps.
        metadata_reader: Replaces read_metadata().
        id_reader: Replaces read_bardic_id().
        id_writer: Replaces write_bardic_id().
        converter: Replaces convert_to_mp3().
    """

    def __init__(
        self,
        database: Database,
        write_tags: bool = True,
        convert: bool = False,
        converted_directory: Path | None = None,
        bitrate: int = DEFAULT_BITRATE,
        metadata_reader: Callable[[Path], AudioMetadata] = read_metadata,
        id_reader: Callable[[Path], str | None] = read_bardic_id,
        id_writer: Callable[[Path, str], bool] = write_bardic_id,
        converter: Callable[..., ConversionResult] = convert_to_mp3,
    ) -> None:
        if convert and converted_directory is None:
            raise ValueError("converted_directory is required when convert is enabled")

        self.database = database
        self.write_tags = write_tags
        self.convert = convert
        self.converted_directory = converted_directory
        self.bitrate = bitrate
        self._read_metadata = metadata_reader
        self._read_id = id_reader
        self._write_id = id_writer
        self._convert = converter

    def import_files(
        self,
        paths: Iterable[Path],
        progress_callback: Callable[[ImportProgress], None] | None = None
    ) -> ImportResults:
        """
        Import a batch of files.

        Args:
            paths: Files to import (folders must be expanded beforehand,
                   see scanner.get_audio_files).
            progress_callback: Receives ImportProgress events.

        Returns:
            ImportResults for the whole batch. Never raises for per-file
            problems.
        """
        paths = [Path(p) for p in paths]
        results = ImportResults(total=len(paths))

        for index, path in enumerate(paths, start=1):
            if progress_callback:
                progress_callback(ImportProgress(
                    current=index,
                    total=len(paths),
                    status="processing",
                    file=path.name,
                ))

            try:
                song = self._import_file(path)
            except BardicError as e:
                results.failed += 1
                results.errors.append(ImportFailure(file=path.name, path=str(path), error=e.message))
                log_import_failure(logger, path.name, str(path), e.message)
                continue
            except OSError as e:
                results.failed += 1
                results.errors.append(ImportFailure(file=path.name, path=str(path), error=str(e)))
                log_import_failure(logger, path.name, str(path), str(e))
                continue
            except Exception as e:
                results.failed += 1
                results.errors.append(ImportFailure(file=path.name, path=str(path), error=str(e)))
                log_import_failure(logger, path.name, str(path), f"Unexpected error: {e}")
                continue

            if song is None:
                results.skipped += 1
            else:
                results.imported += 1
                results.imported_songs.append(song)

        if progress_callback:
            progress_callback(ImportProgress(
                current=len(paths),
                total=len(paths),
                status="complete",
                results=results,
            ))

        logger.debug(
            f"Import finished: {results.imported} imported, "
            f"{results.skipped} skipped, {results.failed} failed"
        )
        return results

    def import_single(self, path: Path) -> ImportResults:
        """Import one file; the result has total == 1."""
        return self.import_files([path])

    # =========================================================================
    # Per-file pipeline
    # =========================================================================

    def _import_file(self, path: Path) -> Song | None:
        """
        Import one file.

        Returns:
            The inserted Song, or None if the file was already in the library.

        Raises:
            ImportFileError, MetadataError, ConversionError, DatabaseError
        """
        if not path.is_file():
            raise ImportFileError("File not found", details={"file_path": str(path)})

        original_path: Path | None = None
        extension = path.suffix.lower()

        if extension != MP3_EXTENSION:
            if not (self.convert and extension in AUDIO_EXTENSIONS):
                raise ImportFileError(
                    "Only MP3 files are supported",
                    details={"file_path": str(path), "extension": extension}
                )
            original_path = path
            path = self._convert_file(path)

        metadata = self._read_metadata(path)
        file_size = path.stat().st_size
        title = metadata.title or path.stem
        duration = metadata.duration or 0

        song_id = self._existing_tag_id(path)
        if song_id is not None:
            if self.database.get_song_by_id(song_id) is not None:
                self._skip(title, path if original_path else None)
                return None
        else:
            song_id = self._resolve_new_id(duration, file_size, title)
            if song_id is None:
                self._skip(title, path if original_path else None)
                return None
            if self.write_tags and not self._write_id(path, song_id):
                logger.warning(f"Failed to write Bardic ID to file: {path}")

        song = Song(
            id=song_id,
            title=title,
            artist=metadata.artist or DEFAULT_ARTIST,
            album=metadata.album or DEFAULT_ALBUM,
            genre=metadata.genre or "",
            duration=duration,
            file_size=file_size,
            track_number=metadata.track_number,
            year=metadata.year,
            file_path=str(path.resolve()),
            original_file_path=str(original_path.resolve()) if original_path else None,
            original_format=original_path.suffix.lower().lstrip(".") if original_path else None,
            bitrate=metadata.bitrate,
            sample_rate=metadata.sample_rate,
        )
        self.database.add_song(song)

        logger.info(format_imported_message(song.title, song.artist))
        return song

    def _skip(self, title: str, converted_path: Path | None) -> None:
        """Log a duplicate and delete the MP3 transcoded for it, if any."""
        logger.info(format_skipped_message(title))
        if converted_path is not None:
            logger.debug(f"Removing converted duplicate {converted_path}")
            converted_path.unlink(missing_ok=True)

    def _convert_file(self, path: Path) -> Path:
        """Transcode to a free name in converted_directory (<stem>.mp3, <stem>_1.mp3...)."""
        output_path = generate_unique_output_path(path, self.converted_directory)
        logger.debug(f"Converting {path.name} to {output_path}")
        result = self._convert(path, output_path, self.bitrate)
        if not result.success:
            raise ImportFileError(
                f"Conversion failed: {result.error}",
                details={"file_path": str(path)}
            )
        return result.output_path

    def _existing_tag_id(self, path: Path) -> str | None:
        """Return the file's BARDIC_ID tag if it is valid, else None."""
        tag_id = self._read_id(path)
        if tag_id is None:
            return None
        if not is_valid_id(tag_id):
            logger.warning(f"Ignoring invalid Bardic ID tag in {path.name}: {tag_id!r}")
            return None
        return tag_id

    def _resolve_new_id(self, duration: int, file_size: int, title: str) -> str | None:
        """
        Find the id for a song whose file carries no tag.

        Returns:
            A free id (the base id, or a suffixed one after a hash
            collision), or None if the same song is already stored.

        Raises:
            ImportFileError: If every suffix up to MAX_COLLISION_SUFFIX is taken.
        """
        song_id = compute_id(duration, file_size, title)
        for suffix in range(MAX_COLLISION_SUFFIX + 1):
            if suffix:
                song_id = compute_id_with_suffix(duration, file_size, title, suffix)

            existing = self.database.get_song_by_id(song_id)
            if existing is None:
                if suffix:
                    logger.warning(f"Bardic ID collision for '{title}', using {song_id}")
                return song_id
            if _same_content(existing, duration, file_size, title):
                return None

        raise ImportFileError(
            "Could not find a free Bardic ID",
            details={"title": title, "file_size": file_size, "duration": duration}
        )


def import_files(
    database: Database,
    paths: Iterable[Path],
    progress_callback: Callable[[ImportProgress], None] | None = None,
    **importer_options
) -> ImportResults:
    """Convenience wrapper: LibraryImporter(database, **options).import_files(paths)."""
    importer = LibraryImporter(database, **importer_options)
    return importer.import_files(paths, progress_callback)
