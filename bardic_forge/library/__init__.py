"""
Library module for bardic-forge: song identity and duplicate detection.

Pure functions with no I/O:
    - identity: Content-derived Bardic IDs
    - similarity: Normalization and Dice similarity
    - featuring: "feat." credit parsing
    - duplicates: Pairwise comparison and greedy grouping
    - models: Song, SongUpdate and the duplicate result types
"""

from bardic_forge.library.duplicates import (
    compare,
    compare_advanced,
    find_duplicate_groups,
    find_duplicates_for_song,
)
from bardic_forge.library.featuring import FeaturingInfo, parse_featuring
from bardic_forge.library.identity import (
    ParsedId,
    compute_id,
    compute_id_with_suffix,
    is_valid_id,
    parse_id,
)
from bardic_forge.library.models import (
    DuplicateGroup,
    DuplicateMember,
    DuplicateVerdict,
    MatchType,
    RankedDuplicate,
    Song,
    SongUpdate,
)
from bardic_forge.library.similarity import normalize, similarity

__all__ = [
    # Identity
    "compute_id",
    "compute_id_with_suffix",
    "is_valid_id",
    "parse_id",
    "ParsedId",
    # Text
    "normalize",
    "similarity",
    "parse_featuring",
    "FeaturingInfo",
    # Duplicates
    "compare",
    "compare_advanced",
    "find_duplicate_groups",
    "find_duplicates_for_song",
    # Models
    "Song",
    "SongUpdate",
    "MatchType",
    "DuplicateVerdict",
    "DuplicateMember",
    "DuplicateGroup",
    "RankedDuplicate",
]
