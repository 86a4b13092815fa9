"""
Content-derived song identity.

A Bardic ID is the first 32 hex characters of
SHA-256("{duration}|{file_size}|{normalized title}"), where the title is
trimmed and lowercased. The same file content always produces the same id,
so re-importing a file is idempotent and the id survives file moves.

Truncation keeps 128 bits. When two different songs land on the same id,
the importer disambiguates with a numeric suffix: "<id>_1", "<id>_2", ...

Example:
    >>> compute_id(215, 5_000_000, "  Tavern Song ")
    '...32 hex chars...'
    >>> compute_id_with_suffix(215, 5_000_000, "Tavern Song", 2)
    '..._2'
"""

import hashlib
import re
from dataclasses import dataclass

from bardic_forge.core.exceptions import InvalidIdFormatError


ID_LENGTH = 32

ID_PATTERN = re.compile(r"[a-f0-9]{32}(?:_([0-9]+))?")


@dataclass(frozen=True)
class ParsedId:
    """A Bardic ID split into its base hash and collision suffix (0 if none)."""
    base_id: str
    suffix: int


def _format_number(value: int | float) -> str:
    # 215.0 and 215 must hash identically
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def identity_key(duration: int | float, file_size: int | float, title: str | None) -> str:
    """Build the string that gets hashed: "{duration}|{file_size}|{title}"."""
    normalized_title = (title or "").strip().lower()
    return f"{_format_number(duration)}|{_format_number(file_size)}|{normalized_title}"


def compute_id(duration: int | float, file_size: int | float, title: str | None) -> str:
    """
    Compute the Bardic ID for a song.

    Args:
        duration: Length in seconds (0 when unknown).
        file_size: File size in bytes.
        title: Song title. Only leading/trailing whitespace and case are
               normalized here; inner punctuation and spacing count.

    Returns:
        32 lowercase hex characters.
    """
    key = identity_key(duration, file_size, title)
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:ID_LENGTH]


def compute_id_with_suffix(
    duration: int | float,
    file_size: int | float,
    title: str | None,
    suffix: int = 0
) -> str:
    """
    Compute a Bardic ID with a collision suffix.

    Args:
        suffix: 0 returns the plain id, N > 0 returns "<id>_N".

    Raises:
        ValueError: If suffix is negative.
    """
    if suffix < 0:
        raise ValueError(f"Collision suffix must be >= 0, got {suffix}")

    base_id = compute_id(duration, file_size, title)
    if suffix == 0:
        return base_id
    return f"{base_id}_{suffix}"


def is_valid_id(song_id: object) -> bool:
    """Return True if song_id is a well-formed Bardic ID. Never raises."""
    if not isinstance(song_id, str):
        return False
    return ID_PATTERN.fullmatch(song_id) is not None


def parse_id(song_id: str) -> ParsedId:
    """
    Split a Bardic ID into base id and suffix.

    Raises:
        InvalidIdFormatError: If song_id is not a valid Bardic ID.

    Example:
        >>> parse_id("0123456789abcdef0123456789abcdef_3")
        ParsedId(base_id='0123456789abcdef0123456789abcdef', suffix=3)
    """
    match = ID_PATTERN.fullmatch(song_id) if isinstance(song_id, str) else None
    if match is None:
        raise InvalidIdFormatError(
            f"Invalid Bardic ID format: {song_id!r}",
            details={"song_id": song_id}
        )

    suffix = match.group(1)
    return ParsedId(
        base_id=song_id[:ID_LENGTH],
        suffix=int(suffix) if suffix is not None else 0,
    )
