"""Tests for the duplicate comparator and grouping engine"""

from dataclasses import replace

import pytest

from bardic_forge.library.duplicates import (
    classify,
    compare,
    compare_advanced,
    find_duplicate_groups,
    find_duplicates_for_song,
)
from bardic_forge.library.models import DuplicateGroup, MatchType, Song


def song(title, artist="", song_id=None):
    return Song(id=song_id or title, title=title, artist=artist)


class TestCompare:
    """Test pairwise comparison"""

    def test_exact_match(self):
        verdict = compare({"title": "Song A", "artist": "X"}, {"title": "Song A", "artist": "X"})
        assert verdict.match_type == MatchType.EXACT
        assert verdict.overall_similarity == 1.0
        assert verdict.is_duplicate
        assert verdict.has_featuring is None

    def test_exact_after_normalization(self):
        verdict = compare(song("Hello", "Adele"), song("hello!", "ADELE"))
        assert verdict.match_type == MatchType.EXACT

    def test_threshold_is_inclusive(self):
        # title 1.0, single-letter artists score 0.0 -> overall 0.6
        verdict = compare(song("Same", "X"), song("Same", "Y"), threshold=0.6)
        assert verdict.overall_similarity == pytest.approx(0.6)
        assert verdict.is_duplicate

    def test_below_threshold(self):
        verdict = compare(song("Same", "X"), song("Same", "Y"))
        assert not verdict.is_duplicate

    def test_partial_exact(self):
        verdict = compare(song("Same", "X"), song("Same", "Y"))
        assert verdict.title_similarity == 1.0
        assert verdict.artist_similarity == 0.0
        assert verdict.match_type == MatchType.PARTIAL_EXACT

    def test_high_similarity(self):
        verdict = compare(
            song("abcdefghijklmnopqrstu", "zyxwvutsrqponmlkjihgf"),
            song("abcdefghijklmnopqrstv", "zyxwvutsrqponmlkjihge"),
        )
        assert verdict.title_similarity == pytest.approx(0.95)
        assert verdict.artist_similarity == pytest.approx(0.95)
        assert verdict.match_type == MatchType.HIGH_SIMILARITY
        assert verdict.is_duplicate

    def test_fuzzy(self):
        verdict = compare(song("Tavern Song", "Minstrels"), song("Dragon's Lair", "Composer"))
        assert verdict.match_type == MatchType.FUZZY
        assert not verdict.is_duplicate

    def test_weights(self):
        verdict = compare(song("night", "abc"), song("nacht", "abc"))
        assert verdict.overall_similarity == pytest.approx(0.6 * 0.25 + 0.4 * 1.0)

    def test_missing_fields_are_empty(self):
        verdict = compare({"title": "Song"}, {"title": "Song", "artist": None})
        assert verdict.match_type == MatchType.EXACT

    def test_symmetric(self):
        first, second = song("Tavern Song", "Minstrels"), song("Tavern Songs", "Minstrel")
        assert compare(first, second) == compare(second, first)


class TestClassify:
    """Test match type ordering"""

    @pytest.mark.parametrize("title,artist,expected", [
        (1.0, 1.0, MatchType.EXACT),
        (1.0, 0.0, MatchType.PARTIAL_EXACT),
        (0.95, 1.0, MatchType.PARTIAL_EXACT),
        (0.9, 0.9, MatchType.HIGH_SIMILARITY),
        (0.9, 0.89, MatchType.FUZZY),
        (0.0, 0.0, MatchType.FUZZY),
    ])
    def test_classify(self, title, artist, expected):
        assert classify(title, artist) == expected

    def test_match_type_values(self):
        assert MatchType.PARTIAL_EXACT.value == "partial_exact"
        assert MatchType.HIGH_SIMILARITY == "high_similarity"


class TestCompareAdvanced:
    """Test featuring-aware comparison"""

    def test_featuring_removed_from_title(self):
        verdict = compare_advanced({"title": "Hero (feat. Bob)"}, {"title": "Hero"})
        assert verdict.title_similarity == 1.0
        assert verdict.has_featuring is True

    def test_no_featuring(self):
        verdict = compare_advanced(song("Hero", "Bob"), song("Hero", "Bob"))
        assert verdict.has_featuring is False
        assert verdict.match_type == MatchType.EXACT

    def test_basic_compare_sees_credit(self):
        verdict = compare({"title": "Hero (feat. Bob)"}, {"title": "Hero"})
        assert verdict.title_similarity < 1.0


class TestFindDuplicateGroups:
    """Test greedy grouping"""

    def test_scenario(self):
        songs = [
            song("Tavern Song", "Medieval Minstrels", "1"),
            song("tavern song", "medieval minstrels", "2"),
            song("Dragon's Lair", "Epic Composer", "3"),
        ]
        groups = find_duplicate_groups(songs)

        assert len(groups) == 1
        assert groups[0].songs == songs[:2]
        assert groups[0].count == 2
        assert groups[0].members[0].similarity == 1.0
        assert groups[0].members[0].match_type == MatchType.EXACT

    def test_empty(self):
        assert find_duplicate_groups([]) == []

    def test_no_duplicates(self):
        songs = [song("Alpha", "One"), song("Zulu", "Two")]
        assert find_duplicate_groups(songs) == []

    def test_groups_have_two_or_more_songs_and_are_disjoint(self, sample_songs):
        songs = sample_songs + [replace(s) for s in sample_songs]
        groups = find_duplicate_groups(songs)

        assert all(group.count >= 2 for group in groups)
        seen = set()
        for group in groups:
            for member in group.songs:
                assert id(member) not in seen
                seen.add(id(member))

    def test_seed_only_matching(self):
        # A~B and B~C match, A~C does not
        a = song("abcdefgh", "X", "a")
        b = song("abcdefxy", "X", "b")
        c = song("zbcdefxy", "X", "c")
        assert compare(a, b).is_duplicate
        assert compare(b, c).is_duplicate
        assert not compare(a, c).is_duplicate

        groups = find_duplicate_groups([a, b, c])
        assert [group.songs for group in groups] == [[a, b]]

        groups = find_duplicate_groups([b, a, c])
        assert [group.songs for group in groups] == [[b, a, c]]

    def test_group_properties(self):
        group = DuplicateGroup(seed=song("Seed", "Artist"))
        assert group.count == 1
        assert group.title == "Seed"
        assert group.artist == "Artist"

    def test_advanced_groups_featuring_variants(self):
        songs = [song("Hero (feat. Bob)", "The Bards"), song("Hero", "The Bards")]
        assert find_duplicate_groups(songs, threshold=1.0) == []
        groups = find_duplicate_groups(songs, threshold=1.0, advanced=True)
        assert len(groups) == 1

    def test_mappings(self):
        songs = [{"title": "Song", "artist": "A"}, {"title": "song", "artist": "a"}]
        groups = find_duplicate_groups(songs)
        assert groups[0].songs == songs


class TestFindDuplicatesForSong:
    """Test single-song duplicate queries"""

    def test_excludes_target_and_sorts_descending(self):
        target = song("Tavern Song", "Minstrels", "t")
        near = song("Tavern Songs", "Minstrels", "near")
        exact = song("tavern song", "minstrels", "exact")
        other = song("Dragon's Lair", "Composer", "other")

        matches = find_duplicates_for_song(target, [target, near, other, exact])

        assert [m.song for m in matches] == [exact, near]
        assert matches[0].similarity == 1.0
        assert matches[0].similarity >= matches[1].similarity

    def test_ties_keep_input_order(self):
        target = song("Song", "A", "t")
        first = song("song", "a", "1")
        second = song("SONG", "A", "2")
        matches = find_duplicates_for_song(target, [first, second])
        assert [m.song for m in matches] == [first, second]

    def test_copy_with_different_id_is_reported(self):
        target = song("Song", "A", "t")
        twin = song("Song", "A", "twin")
        assert [m.song for m in find_duplicates_for_song(target, [twin])] == [twin]

    def test_mapping_target_excluded_by_song_id(self):
        target = {"song_id": "t", "title": "Song", "artist": "A"}
        assert find_duplicates_for_song(target, [target]) == []

    def test_advanced(self):
        target = song("Hero (feat. Bob)", "Bards", "t")
        candidate = song("Hero", "Bards", "c")
        matches = find_duplicates_for_song(target, [candidate], threshold=1.0, advanced=True)
        assert len(matches) == 1
        assert matches[0].verdict.has_featuring is True
