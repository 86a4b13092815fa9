"""Tests for normalization and Dice similarity"""

import pytest

from bardic_forge.library.similarity import dice_coefficient, normalize, similarity


class TestNormalize:
    """Test string normalization"""

    def test_empty(self):
        assert normalize("") == ""
        assert normalize(None) == ""

    def test_lowercase_trim_punctuation_whitespace(self):
        assert normalize("  Don't  Stop-Me ") == "dont stopme"

    def test_accented_letters_stripped(self):
        assert normalize("Héllo Wörld!") == "hllo wrld"
        assert normalize("Beyoncé") == "beyonc"

    def test_accented_letter_scored_as_missing(self):
        assert similarity("Café", "Cafe") == pytest.approx(0.8)

    def test_underscore_is_word_character(self):
        assert normalize("snake_case") == "snake_case"

    def test_punctuation_removed_after_trim(self):
        # trimming happens before punctuation removal, so a space left
        # behind by removed punctuation is kept (collapsed to one)
        assert normalize("hello !") == "hello "


class TestSimilarity:
    """Test the Dice coefficient scorer"""

    @pytest.mark.parametrize("text", ["", "a", "Tavern Song", "Dragon's Lair", "   "])
    def test_identity(self, text):
        assert similarity(text, text) == 1.0

    def test_none_and_empty(self):
        assert similarity(None, "") == 1.0
        assert similarity(None, None) == 1.0

    def test_normalized_equal(self):
        assert similarity("Hello", "hello!") == 1.0

    @pytest.mark.parametrize("first,second", [
        ("night", "nacht"),
        ("Tavern Song", "Dragon's Lair"),
        ("abc", ""),
        ("healed", "sealed"),
    ])
    def test_symmetry(self, first, second):
        assert similarity(first, second) == similarity(second, first)

    def test_known_value(self):
        # ni ig gh ht / na ac ch ht -> one shared bigram
        assert similarity("night", "nacht") == pytest.approx(0.25)

    def test_bigram_multiset(self):
        # aa aa / aa -> one shared occurrence
        assert dice_coefficient("aaa", "aa") == pytest.approx(2 * 1 / 3)

    def test_short_strings(self):
        assert similarity("a", "b") == 0.0
        assert similarity("a", "ab") == 0.0
        assert similarity("", "abc") == 0.0

    def test_whitespace_ignored_for_bigrams(self):
        assert similarity("abc def", "abcdef") == 1.0

    def test_range(self):
        score = similarity("Tavern Song", "Tavern Songs")
        assert 0.0 < score < 1.0
