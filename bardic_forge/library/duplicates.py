"""
Fuzzy duplicate detection.

Two songs are compared on title and artist:

    overall = 0.6 * similarity(title) + 0.4 * similarity(artist)

and count as duplicates when overall >= threshold (inclusive).

Grouping is greedy and seed-only:
    - Songs are visited in input order.
    - Each song not yet in a group becomes a seed and is compared against
      every later song not yet in a group.
    - Matches join the seed's group and are consumed.
    - Groups with no matches are dropped.

Consequences worth knowing:
    - The result depends on input order.
    - Matches are never transitive through a non-seed member: if A~B and
      B~C but not A~C, C is not placed in A's group (it may still seed its
      own group later).

Songs may be Song instances, any object with title/artist attributes, or
mappings with "title"/"artist" keys. None is treated as "".
"""

from dataclasses import dataclass
from typing import Any, Iterable

from bardic_forge.library.featuring import parse_featuring
from bardic_forge.library.models import (
    DuplicateGroup,
    DuplicateMember,
    DuplicateVerdict,
    MatchType,
    RankedDuplicate,
    song_field,
    song_key,
)
from bardic_forge.library.similarity import dice_coefficient, normalize


DEFAULT_THRESHOLD = 0.8
TITLE_WEIGHT = 0.6
ARTIST_WEIGHT = 0.4
HIGH_SIMILARITY = 0.9


@dataclass(frozen=True)
class _Prepared:
    """Per-song normalized fields, computed once before pairwise loops."""
    title: str
    artist: str
    has_featuring: bool


def _prepare(song: Any, advanced: bool) -> _Prepared:
    title = song_field(song, "title")
    has_featuring = False
    if advanced:
        info = parse_featuring(title)
        title = info.main_part
        has_featuring = info.has_featuring
    return _Prepared(
        title=normalize(title),
        artist=normalize(song_field(song, "artist")),
        has_featuring=has_featuring,
    )


def _score(first: str, second: str) -> float:
    if first == second:
        return 1.0
    return dice_coefficient(first, second)


def classify(title_similarity: float, artist_similarity: float) -> MatchType:
    """
    Classify a pair from its two component scores.

    Checked in order: exact, partial_exact, high_similarity, fuzzy.
    """
    title_exact = title_similarity == 1.0
    artist_exact = artist_similarity == 1.0

    if title_exact and artist_exact:
        return MatchType.EXACT
    if title_exact or artist_exact:
        return MatchType.PARTIAL_EXACT
    if title_similarity >= HIGH_SIMILARITY and artist_similarity >= HIGH_SIMILARITY:
        return MatchType.HIGH_SIMILARITY
    return MatchType.FUZZY


def _verdict(
    first: _Prepared,
    second: _Prepared,
    threshold: float,
    advanced: bool
) -> DuplicateVerdict:
    title_similarity = _score(first.title, second.title)
    artist_similarity = _score(first.artist, second.artist)
    overall = TITLE_WEIGHT * title_similarity + ARTIST_WEIGHT * artist_similarity

    return DuplicateVerdict(
        title_similarity=title_similarity,
        artist_similarity=artist_similarity,
        overall_similarity=overall,
        is_duplicate=overall >= threshold,
        match_type=classify(title_similarity, artist_similarity),
        has_featuring=(first.has_featuring or second.has_featuring) if advanced else None,
    )


def compare(first: Any, second: Any, threshold: float = DEFAULT_THRESHOLD) -> DuplicateVerdict:
    """
    Compare two songs on title and artist.

    Args:
        first: Song-like object or mapping.
        second: Song-like object or mapping.
        threshold: Minimum overall similarity for is_duplicate (inclusive).

    Returns:
        DuplicateVerdict with component scores and classification.

    Example:
        >>> compare({"title": "Hello", "artist": "Adele"},
        ...         {"title": "hello!", "artist": "ADELE"}).match_type
        <MatchType.EXACT: 'exact'>
    """
    return _verdict(_prepare(first, False), _prepare(second, False), threshold, False)


def compare_advanced(
    first: Any,
    second: Any,
    threshold: float = DEFAULT_THRESHOLD
) -> DuplicateVerdict:
    """
    Compare two songs, ignoring featuring credits in the titles.

    Each title goes through parse_featuring() and only its main part is
    scored, so "Song (feat. X)" and "Song" have title similarity 1.0.
    The verdict's has_featuring is True if either title had a credit.
    """
    return _verdict(_prepare(first, True), _prepare(second, True), threshold, True)


def find_duplicate_groups(
    songs: Iterable[Any],
    threshold: float = DEFAULT_THRESHOLD,
    advanced: bool = False
) -> list[DuplicateGroup]:
    """
    Partition songs into duplicate groups.

    Args:
        songs: Songs in the order that decides seeds.
        threshold: Minimum overall similarity to join a seed's group.
        advanced: Use compare_advanced() semantics.

    Returns:
        Groups in seed order. Every group has at least two songs and no
        song appears in more than one group.
    """
    songs = list(songs)
    prepared = [_prepare(song, advanced) for song in songs]
    consumed: set[int] = set()
    groups: list[DuplicateGroup] = []

    for i, seed in enumerate(songs):
        if i in consumed:
            continue

        group = DuplicateGroup(seed=seed)
        for j in range(i + 1, len(songs)):
            if j in consumed:
                continue

            verdict = _verdict(prepared[i], prepared[j], threshold, advanced)
            if verdict.is_duplicate:
                group.members.append(DuplicateMember(
                    song=songs[j],
                    similarity=verdict.overall_similarity,
                    match_type=verdict.match_type,
                ))
                consumed.add(j)

        if group.members:
            consumed.add(i)
            groups.append(group)

    return groups


def find_duplicates_for_song(
    target: Any,
    all_songs: Iterable[Any],
    threshold: float = DEFAULT_THRESHOLD,
    advanced: bool = False
) -> list[RankedDuplicate]:
    """
    Rank the songs that duplicate a single target.

    The target itself (matched by id) is excluded. Results are sorted by
    overall similarity, highest first; ties keep input order.
    """
    target_id = song_key(target)
    target_prepared = _prepare(target, advanced)

    matches: list[RankedDuplicate] = []
    for candidate in all_songs:
        candidate_id = song_key(candidate)
        if target_id is not None and candidate_id == target_id:
            continue

        verdict = _verdict(target_prepared, _prepare(candidate, advanced), threshold, advanced)
        if verdict.is_duplicate:
            matches.append(RankedDuplicate(song=candidate, verdict=verdict))

    matches.sort(key=lambda match: match.similarity, reverse=True)
    return matches
