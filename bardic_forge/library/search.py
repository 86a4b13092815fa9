"""
Fuzzy song search.

Used by the search command when a plain substring search finds nothing,
so typos like "bohemain rapsody" still find the song.

Scores come from rapidfuzz on a 0-100 scale, computed against
"title artist album" for each song.
"""

from typing import Iterable

from rapidfuzz import fuzz, process

from bardic_forge.library.models import Song


DEFAULT_LIMIT = 10
DEFAULT_SCORE_CUTOFF = 60.0


def _search_text(song: Song) -> str:
    return " ".join(part for part in (song.title, song.artist, song.album) if part).lower()


def fuzzy_search(
    songs: Iterable[Song],
    query: str,
    limit: int = DEFAULT_LIMIT,
    score_cutoff: float = DEFAULT_SCORE_CUTOFF
) -> list[tuple[Song, float]]:
    """
    Rank songs by fuzzy similarity to a query.

    Args:
        songs: Candidates.
        query: Free text typed by the user.
        limit: Maximum number of results.
        score_cutoff: Minimum rapidfuzz score (0-100) to keep a song.

    Returns:
        (song, score) pairs, best first. Empty if the query is blank.
    """
    query = query.strip().lower()
    if not query:
        return []

    songs = list(songs)
    choices = [_search_text(song) for song in songs]

    matches = process.extract(
        query,
        choices,
        scorer=fuzz.WRatio,
        limit=limit,
        score_cutoff=score_cutoff,
    )
    return [(songs[index], score) for _, score, index in matches]
