"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from bardic_forge.core.database import Database
from bardic_forge.library.identity import compute_id
from bardic_forge.library.models import Song


def make_song(title, artist="", duration=200, file_size=4_000_000, **fields):
    """Build a Song whose id is computed from its content."""
    return Song(
        id=fields.pop("id", None) or compute_id(duration, file_size, title),
        title=title,
        artist=artist,
        duration=duration,
        file_size=file_size,
        file_path=fields.pop("file_path", f"/music/{title}.mp3"),
        **fields,
    )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def database(temp_dir):
    """Fresh library database in a temporary directory"""
    db = Database(temp_dir / "library.db")
    yield db
    db.close()


@pytest.fixture
def sample_songs():
    """A small library with one obvious duplicate pair"""
    return [
        make_song("Tavern Song", "Medieval Minstrels", album="Ale & Lutes", genre="Folk"),
        make_song("tavern song", "medieval minstrels", file_size=4_100_000, album="Ale & Lutes"),
        make_song("Dragon's Lair", "Epic Composer", duration=310, album="Quest", genre="Soundtrack"),
        make_song("Hero (feat. Bob)", "The Bards", duration=180, album="Ballads", genre="Folk"),
    ]


@pytest.fixture
def config_file(temp_dir):
    """Minimal config.yaml pointing at a library inside temp_dir"""
    path = temp_dir / "config.yaml"
    path.write_text(
        f'library:\n  directory: "{temp_dir / "library"}"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def song_factory():
    """make_song as a fixture"""
    return make_song
