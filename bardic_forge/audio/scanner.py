"""
Audio file discovery.

Finds audio files by extension in folders (optionally recursive) and in
mixed lists of files and folders as given on the command line.
"""

from pathlib import Path
from typing import Iterable

from bardic_forge.core.exceptions import ScanError
from bardic_forge.core.logger import get_logger

logger = get_logger(__name__)


AUDIO_EXTENSIONS = (".mp3", ".flac", ".wav", ".ogg", ".m4a", ".aac", ".wma")


def _has_audio_extension(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTENSIONS


def scan_folder(folder: Path, recursive: bool = True) -> list[Path]:
    """
    List the audio files inside a folder.

    Entries are visited in name order so results are stable across runs.

    Args:
        folder: Folder to scan.
        recursive: Descend into subfolders.

    Raises:
        ScanError: If the folder does not exist or cannot be listed.
    """
    if not folder.is_dir():
        raise ScanError(
            f"Folder does not exist: {folder}",
            details={"folder": str(folder)}
        )

    try:
        entries = sorted(folder.iterdir())
    except OSError as e:
        raise ScanError(
            f"Cannot read folder {folder}: {e}",
            details={"folder": str(folder), "original_error": str(e)}
        ) from e

    audio_files: list[Path] = []
    for entry in entries:
        if entry.is_dir():
            if recursive:
                audio_files.extend(scan_folder(entry, recursive))
        elif entry.is_file() and _has_audio_extension(entry):
            audio_files.append(entry)

    return audio_files


def is_audio_file(path: Path) -> bool:
    """True if path is an existing regular file with an audio extension."""
    try:
        return path.is_file() and _has_audio_extension(path)
    except OSError:
        return False


def get_audio_files(paths: Iterable[Path], recursive: bool = True) -> list[Path]:
    """
    Collect audio files from a mix of files and folders.

    Paths that cannot be read are logged and skipped. The result keeps the
    order of first appearance and contains no duplicates.
    """
    audio_files: list[Path] = []

    for path in paths:
        path = Path(path)
        try:
            if path.is_dir():
                audio_files.extend(scan_folder(path, recursive))
            elif is_audio_file(path):
                audio_files.append(path)
            elif not path.exists():
                logger.warning(f"Path not found, skipping: {path}")
        except ScanError as e:
            logger.error(f"Error processing path {path}: {e.message}")

    return list(dict.fromkeys(audio_files))


def count_audio_files(folder: Path, recursive: bool = True) -> int:
    """Number of audio files in a folder, 0 if it cannot be scanned."""
    try:
        return len(scan_folder(folder, recursive))
    except ScanError as e:
        logger.error(f"Error counting audio files: {e.message}")
        return 0
