"""Tests for fuzzy song search"""

from bardic_forge.library.search import fuzzy_search


class TestFuzzySearch:
    """Test rapidfuzz-backed search"""

    def test_typo_finds_song(self, sample_songs):
        results = fuzzy_search(sample_songs, "dragons liar")
        assert results
        assert results[0][0].title == "Dragon's Lair"

    def test_scores_sorted(self, sample_songs):
        results = fuzzy_search(sample_songs, "tavern", score_cutoff=0)
        scores = [score for _, score in results]
        assert scores == sorted(scores, reverse=True)
        assert all(0 <= score <= 100 for score in scores)

    def test_limit(self, sample_songs):
        assert len(fuzzy_search(sample_songs, "song", limit=1, score_cutoff=0)) == 1

    def test_blank_query(self, sample_songs):
        assert fuzzy_search(sample_songs, "   ") == []

    def test_no_songs(self):
        assert fuzzy_search([], "anything") == []

    def test_cutoff_filters(self, sample_songs):
        assert fuzzy_search(sample_songs, "zzzzqqqq", score_cutoff=90) == []
