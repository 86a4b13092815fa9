"""
Featuring-artist credit parsing.

Recognizes the usual ways a guest artist is credited in a title:

    "Song (feat. Artist)"     "Song (ft Artist)"
    "Song feat. Artist"       "Song ft. Artist"
    "Song featuring Artist"

Patterns are case-insensitive and tried in that priority order; the first
one that matches wins.
"""

import re
from dataclasses import dataclass


FEATURING_PATTERNS = (
    re.compile(r"\(feat\.?\s+([^)]+)\)", re.IGNORECASE),
    re.compile(r"\(ft\.?\s+([^)]+)\)", re.IGNORECASE),
    re.compile(r"\s+feat\.?\s+(.+)$", re.IGNORECASE),
    re.compile(r"\s+ft\.?\s+(.+)$", re.IGNORECASE),
    re.compile(r"\s+featuring\s+(.+)$", re.IGNORECASE),
)


@dataclass(frozen=True)
class FeaturingInfo:
    """
    Result of parse_featuring().

    Attributes:
        has_featuring: True if a featuring credit was found.
        main_part: Input with the credit removed (trimmed), or the input
                   unchanged when there is no credit.
        featuring_part: The credited artist(s), "" if none.
    """
    has_featuring: bool
    main_part: str
    featuring_part: str = ""


def parse_featuring(text: str | None) -> FeaturingInfo:
    """
    Split a featuring credit off a title.

    Example:
        >>> parse_featuring("Song (feat. X)")
        FeaturingInfo(has_featuring=True, main_part='Song', featuring_part='X')
        >>> parse_featuring("Plain Song")
        FeaturingInfo(has_featuring=False, main_part='Plain Song', featuring_part='')
    """
    text = text or ""

    for pattern in FEATURING_PATTERNS:
        match = pattern.search(text)
        if match:
            main_part = pattern.sub("", text, count=1).strip()
            return FeaturingInfo(
                has_featuring=True,
                main_part=main_part,
                featuring_part=match.group(1).strip(),
            )

    return FeaturingInfo(has_featuring=False, main_part=text)
