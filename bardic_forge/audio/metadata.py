"""
Audio metadata reading and ID3 tag writing for bardic-forge.

Reading works on every format mutagen understands (MP3, FLAC, OGG, M4A,
WAV...) through mutagen's "easy" tag interface. Writing is ID3v2 only,
since the library stores MP3 files exclusively.

ID3 Frame Mapping:
    Song Field      -> ID3 Frame
    -------------   ---------
    title           -> TIT2
    artist          -> TPE1
    album           -> TALB
    genre           -> TCON
    track_number    -> TRCK
    year            -> TDRC
    Bardic ID       -> TXXX:BARDIC_ID

The Bardic ID frame lets a re-imported file keep its identity even if its
title tag was edited after the first import.

Usage:
    from bardic_forge.audio.metadata import read_metadata, read_bardic_id

    metadata = read_metadata(Path("/music/song.mp3"))
    existing_id = read_bardic_id(Path("/music/song.mp3"))
"""

import math
import re
from dataclasses import dataclass
from pathlib import Path

import mutagen
from mutagen import MutagenError
from mutagen.id3 import ID3, ID3NoHeaderError, TALB, TCON, TDRC, TIT2, TPE1, TRCK, TXXX
from mutagen.mp3 import MP3

from bardic_forge.core.exceptions import MetadataError
from bardic_forge.core.logger import get_logger
from bardic_forge.library.models import SongUpdate

logger = get_logger(__name__)


BARDIC_ID_TAG = "BARDIC_ID"

_YEAR_RE = re.compile(r"\d{4}")
_NUMBER_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class AudioMetadata:
    """
    Metadata extracted from an audio file.

    Text fields are "" when the tag is missing; numeric fields are None,
    except duration which is 0 when unknown.

    Attributes:
        duration: Length in whole seconds, rounded half-up.
        bitrate: Bits per second, if the format reports it.
        sample_rate: Hz, if the format reports it.
        format: Lowercase file extension without the dot (e.g. "mp3").
    """
    title: str = ""
    artist: str = ""
    album: str = ""
    year: int | None = None
    genre: str = ""
    track_number: int | None = None
    duration: int = 0
    bitrate: int | None = None
    sample_rate: int | None = None
    format: str = ""


def round_duration(seconds: float | None) -> int:
    """Round a duration to whole seconds, halves going up (3.5 -> 4)."""
    if not seconds or seconds < 0:
        return 0
    return int(math.floor(seconds + 0.5))


def _first(tags, key: str) -> str:
    if tags is None:
        return ""
    values = tags.get(key)
    if not values:
        return ""
    return str(values[0]).strip()


def _parse_year(value: str) -> int | None:
    match = _YEAR_RE.search(value)
    return int(match.group()) if match else None


def _parse_track_number(value: str) -> int | None:
    # "3/12" -> 3
    match = _NUMBER_RE.match(value.strip())
    return int(match.group()) if match else None


def read_metadata(file_path: Path) -> AudioMetadata:
    """
    Extract title, artist, album and audio properties from a file.

    Args:
        file_path: Path to any audio file mutagen can open.

    Returns:
        AudioMetadata with missing fields left empty.

    Raises:
        MetadataError: If the file cannot be opened or is not audio.
    """
    try:
        audio = mutagen.File(file_path, easy=True)
    except (MutagenError, OSError) as e:
        raise MetadataError(
            f"Failed to read metadata: {e}",
            details={"file_path": str(file_path), "original_error": str(e)}
        ) from e

    if audio is None:
        raise MetadataError(
            "Unrecognized audio format",
            details={"file_path": str(file_path)}
        )

    tags = audio.tags
    info = audio.info

    genres = tags.get("genre", []) if tags is not None else []

    return AudioMetadata(
        title=_first(tags, "title"),
        artist=_first(tags, "artist"),
        album=_first(tags, "album"),
        year=_parse_year(_first(tags, "date")),
        genre=", ".join(str(genre) for genre in genres if str(genre).strip()),
        track_number=_parse_track_number(_first(tags, "tracknumber")),
        duration=round_duration(getattr(info, "length", 0)),
        bitrate=getattr(info, "bitrate", None) or None,
        sample_rate=getattr(info, "sample_rate", None) or None,
        format=file_path.suffix.lower().lstrip("."),
    )


def read_bardic_id(file_path: Path) -> str | None:
    """
    Read the BARDIC_ID frame from an MP3.

    Returns:
        The stored id, or None if the file has no ID3 header, no such
        frame, or cannot be read. The value is not validated here.
    """
    try:
        tags = ID3(file_path)
    except ID3NoHeaderError:
        return None
    except (MutagenError, OSError) as e:
        logger.debug(f"Could not read ID3 tags from {file_path.name}: {e}")
        return None

    frame = tags.get(f"TXXX:{BARDIC_ID_TAG}")
    if frame is None or not frame.text:
        return None
    return str(frame.text[0]).strip() or None


def _load_mp3_tags(file_path: Path) -> MP3:
    """Open an MP3 with an ID3 tag container, creating one if missing."""
    try:
        audio = MP3(file_path, ID3=ID3)
        if audio.tags is None:
            audio.add_tags()
    except ID3NoHeaderError:
        audio = MP3(file_path)
        audio.add_tags()
    return audio


def write_bardic_id(file_path: Path, song_id: str) -> bool:
    """
    Store the Bardic ID in the file's TXXX:BARDIC_ID frame.

    Any previous BARDIC_ID frame is replaced; every other frame is kept.

    Returns:
        True on success, False on any failure. Never raises: a file that
        cannot be tagged is still importable.
    """
    try:
        audio = _load_mp3_tags(file_path)
        audio.tags.delall(f"TXXX:{BARDIC_ID_TAG}")
        audio.tags.add(TXXX(encoding=3, desc=BARDIC_ID_TAG, text=[song_id]))
        audio.save()
        return True
    except (MutagenError, OSError, ValueError) as e:
        logger.warning(f"Could not write Bardic ID to {file_path.name}: {e}")
        return False


def write_metadata(file_path: Path, update: SongUpdate) -> None:
    """
    Write the set fields of a SongUpdate into the file's ID3 tags.

    Fields left as None are not touched. file_path on the update is ignored.

    Raises:
        MetadataError: If the file cannot be opened or saved.
    """
    frames = []
    if update.title is not None:
        frames.append(TIT2(encoding=3, text=update.title))
    if update.artist is not None:
        frames.append(TPE1(encoding=3, text=update.artist))
    if update.album is not None:
        frames.append(TALB(encoding=3, text=update.album))
    if update.genre is not None:
        frames.append(TCON(encoding=3, text=update.genre))
    if update.track_number is not None:
        frames.append(TRCK(encoding=3, text=str(update.track_number)))
    if update.year is not None:
        frames.append(TDRC(encoding=3, text=str(update.year)))

    if not frames:
        return

    try:
        audio = _load_mp3_tags(file_path)
        for frame in frames:
            audio.tags.setall(frame.FrameID, [frame])
        audio.save()
    except (MutagenError, OSError) as e:
        raise MetadataError(
            f"Failed to write metadata: {e}",
            details={"file_path": str(file_path), "original_error": str(e)}
        ) from e

    logger.debug(f"Wrote {len(frames)} tag(s) to {file_path.name}")


def has_id3v2_tags(file_path: Path) -> bool:
    """Return True if the file starts with an ID3v2 header."""
    try:
        with open(file_path, "rb") as f:
            return f.read(3) == b"ID3"
    except OSError:
        return False


def format_duration(seconds: int | float | None) -> str:
    """
    Format seconds as M:SS.

    Example:
        >>> format_duration(215)
        '3:35'
    """
    total = int(seconds or 0)
    if total < 0:
        total = 0
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"
