"""Tests for library data models"""

from bardic_forge.library.models import Song, SongUpdate, song_field, song_key


class TestSong:
    """Test Song row mapping"""

    def test_row_round_trip(self):
        song = Song(id="a" * 32, title="Hero", artist="Bards", duration=180, year=2020)
        row = song.to_row()

        assert row["song_id"] == "a" * 32
        assert "id" not in row
        assert Song.from_row(row) == song

    def test_from_row_nulls(self):
        song = Song.from_row({"song_id": "b" * 32, "title": "T", "artist": None, "duration": None})
        assert song.artist == ""
        assert song.album == ""
        assert song.duration == 0
        assert song.year is None


class TestSongUpdate:
    """Test partial updates"""

    def test_changes_only_set_fields(self):
        update = SongUpdate(title="New", year=0)
        assert update.changes() == {"title": "New", "year": 0}
        assert not update.is_empty()

    def test_empty(self):
        assert SongUpdate().is_empty()
        assert SongUpdate(artist="").changes() == {"artist": ""}


class TestFieldAccess:
    """Test reading fields from songs and mappings"""

    def test_song_field(self):
        assert song_field(Song(id="x", title="T", artist="A"), "artist") == "A"
        assert song_field({"title": None}, "title") == ""
        assert song_field({}, "artist") == ""
        assert song_field(object(), "title") == ""

    def test_song_key(self):
        assert song_key(Song(id="x", title="T")) == "x"
        assert song_key({"song_id": "y"}) == "y"
        assert song_key({"id": "z", "song_id": "y"}) == "z"
        assert song_key({}) is None
