"""
String normalization and similarity scoring.

Similarity is the Sørensen-Dice coefficient over adjacent-character
bigrams, counted as a multiset:

    dice = 2 * |bigrams(a) ∩ bigrams(b)| / (|bigrams(a)| + |bigrams(b)|)

Inputs are normalized first (lowercase, punctuation stripped, whitespace
collapsed) and whitespace is removed before bigramming, so word spacing
does not influence the score.

All functions are total: None and empty strings are valid inputs.
"""

import re
from collections import Counter


# ASCII word characters only: accented letters are stripped
_PUNCTUATION_RE = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """
    Normalize a title or artist for comparison.

    Steps, in order: lowercase, trim, remove every character that is neither
    an ASCII word character nor whitespace, collapse whitespace runs to one space.

    Example:
        >>> normalize("  Don't  Stop-Me ")
        'dont stopme'
    """
    if not text:
        return ""

    result = text.lower().strip()
    result = _PUNCTUATION_RE.sub("", result)
    result = _WHITESPACE_RE.sub(" ", result)
    return result


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_coefficient(first: str, second: str) -> float:
    """
    Dice coefficient of two already-normalized strings.

    Whitespace is dropped before bigramming. Equal strings score 1.0;
    otherwise a string shorter than 2 characters scores 0.0.
    """
    first = _WHITESPACE_RE.sub("", first)
    second = _WHITESPACE_RE.sub("", second)

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = _bigrams(first)
    second_bigrams = _bigrams(second)
    intersection = sum((first_bigrams & second_bigrams).values())

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def similarity(first: str | None, second: str | None) -> float:
    """
    Similarity of two raw strings in [0, 1].

    Both strings are normalized; identical normalized strings (including
    two empty ones) score exactly 1.0. Symmetric in its arguments.
    """
    norm_first = normalize(first)
    norm_second = normalize(second)

    if norm_first == norm_second:
        return 1.0

    return dice_coefficient(norm_first, norm_second)
