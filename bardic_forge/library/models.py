"""
Data models for the music library.

This module defines the dataclasses shared by the store, the importer and
the duplicate engine:

    Song:             One library entry (a row of the songs table)
    SongUpdate:       Typed partial update for an existing song
    MatchType:        Classification of a pairwise comparison
    DuplicateVerdict: Result of comparing two songs
    DuplicateMember:  A non-seed song inside a DuplicateGroup
    DuplicateGroup:   Seed song plus the songs that matched it
    RankedDuplicate:  A candidate returned by find_duplicates_for_song()

Verdicts and groups are computed on demand and never persisted.
"""

import sqlite3
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Mapping


@dataclass
class Song:
    """
    A song stored in the library.

    Attributes:
        id: Bardic ID, 32 lowercase hex chars with an optional "_N" suffix.
            Derived from (duration, file_size, normalized title).
        title: Track title.
        artist: Artist name as tagged (may contain a "feat." credit).
        album: Album name.
        genre: Genre text, "" when absent.
        duration: Length in whole seconds, 0 if unknown.
        file_size: Size of the imported file in bytes.
        track_number: Position on the album, if tagged.
        year: Release year, if tagged.
        file_path: Absolute path of the MP3 the library plays.
        original_file_path: Source path when the file was transcoded on import.
        original_format: Source extension (e.g. "flac") when transcoded.
        bitrate: Bitrate in bits per second, if known.
        sample_rate: Sample rate in Hz, if known.
        date_added: ISO timestamp of insertion.
        date_modified: ISO timestamp of the last update.
    """
    id: str
    title: str
    artist: str = ""
    album: str = ""
    genre: str = ""
    duration: int = 0
    file_size: int = 0
    track_number: int | None = None
    year: int | None = None
    file_path: str = ""
    original_file_path: str | None = None
    original_format: str | None = None
    bitrate: int | None = None
    sample_rate: int | None = None
    date_added: str | None = None
    date_modified: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row | Mapping[str, Any]) -> "Song":
        """
        Build a Song from a songs table row.

        The table uses song_id as primary key column; everything else maps
        1:1 onto the dataclass fields. NULL text columns become "".
        """
        data = dict(row)
        return cls(
            id=data["song_id"],
            title=data.get("title") or "",
            artist=data.get("artist") or "",
            album=data.get("album") or "",
            genre=data.get("genre") or "",
            duration=data.get("duration") or 0,
            file_size=data.get("file_size") or 0,
            track_number=data.get("track_number"),
            year=data.get("year"),
            file_path=data.get("file_path") or "",
            original_file_path=data.get("original_file_path"),
            original_format=data.get("original_format"),
            bitrate=data.get("bitrate"),
            sample_rate=data.get("sample_rate"),
            date_added=data.get("date_added"),
            date_modified=data.get("date_modified"),
        )

    def to_row(self) -> dict[str, Any]:
        """Return a dict keyed by songs table column names."""
        row = {f.name: getattr(self, f.name) for f in fields(self)}
        row["song_id"] = row.pop("id")
        return row


@dataclass
class SongUpdate:
    """
    Partial update for a song.

    Only fields that are not None are written. Used both for the store
    (Database.update_song) and for tag writing (write_metadata).
    """
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    genre: str | None = None
    track_number: int | None = None
    year: int | None = None
    file_path: str | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the fields that are set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.changes()


class MatchType(str, Enum):
    """
    How two songs matched.

    Values:
        EXACT: Title and artist both normalize to identical strings.
        PARTIAL_EXACT: Exactly one of title/artist is identical.
        HIGH_SIMILARITY: Both scores are at least 0.9.
        FUZZY: Anything else.
    """
    EXACT = "exact"
    PARTIAL_EXACT = "partial_exact"
    HIGH_SIMILARITY = "high_similarity"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class DuplicateVerdict:
    """
    Result of comparing two songs.

    Attributes:
        title_similarity: Dice score of the normalized titles.
        artist_similarity: Dice score of the normalized artists.
        overall_similarity: 0.6 * title + 0.4 * artist.
        is_duplicate: overall_similarity >= threshold.
        match_type: Classification of the pair.
        has_featuring: Set by the advanced comparison only; True when either
                       title carried a featuring credit.
    """
    title_similarity: float
    artist_similarity: float
    overall_similarity: float
    is_duplicate: bool
    match_type: MatchType
    has_featuring: bool | None = None


@dataclass(frozen=True)
class DuplicateMember:
    """A non-seed song in a group with its score against the seed."""
    song: Any
    similarity: float
    match_type: MatchType


@dataclass
class DuplicateGroup:
    """
    A seed song and every later song that matched it.

    The seed has no score of its own. A group returned by
    find_duplicate_groups() always holds at least one member.
    """
    seed: Any
    members: list[DuplicateMember] = field(default_factory=list)

    @property
    def songs(self) -> list[Any]:
        """Seed first, then members in input order."""
        return [self.seed] + [member.song for member in self.members]

    @property
    def count(self) -> int:
        return 1 + len(self.members)

    @property
    def title(self) -> str:
        return song_field(self.seed, "title")

    @property
    def artist(self) -> str:
        return song_field(self.seed, "artist")


@dataclass(frozen=True)
class RankedDuplicate:
    """A candidate song and its verdict against a target song."""
    song: Any
    verdict: DuplicateVerdict

    @property
    def similarity(self) -> float:
        return self.verdict.overall_similarity


def song_field(song: Any, name: str) -> str:
    """
    Read a text field from a Song-like object or a mapping.

    Missing fields and None both come back as "".
    """
    if isinstance(song, Mapping):
        value = song.get(name)
    else:
        value = getattr(song, name, None)
    return "" if value is None else str(value)


def song_key(song: Any) -> Any:
    """Return the id of a Song-like object or mapping, or None."""
    if isinstance(song, Mapping):
        return song.get("id", song.get("song_id"))
    return getattr(song, "id", None)
