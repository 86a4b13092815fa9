"""
bardic-forge: A music library manager with fuzzy duplicate detection.

Imports MP3 files (transcoding other formats on request), gives every song
a content-derived identity, finds duplicates by title/artist similarity and
organizes songs into playlists.

Architecture:
    library/    - Pure core: Bardic IDs, similarity, featuring parser,
                  duplicate comparison and grouping
    audio/      - File scanning, tag I/O (mutagen), ffmpeg transcoding,
                  and the import pipeline
    core/       - Configuration, SQLite database, logging, exceptions,
                  progress bars
    cli.py      - Command-line interface

Usage:
    Command Line:
        bardic import ~/Music/inbox
        bardic duplicates --threshold 0.85 --advanced
        bardic playlist create "Road Trip"

    Python API:
        from bardic_forge import load_config, Database, setup_logging
        from bardic_forge.audio import LibraryImporter, get_audio_files
        from bardic_forge.library import find_duplicate_groups

        config = load_config()
        setup_logging(config.library.directory)
        database = Database(config.database_path)

        importer = LibraryImporter(database)
        importer.import_files(get_audio_files([Path("~/Music").expanduser()]))

        for group in find_duplicate_groups(database.get_all_songs()):
            print(group.title, group.count)

Dependencies:
    - mutagen: Audio metadata and ID3 tags
    - rich-click: CLI framework with colors
    - rich: Progress bars and tables
    - tqdm: Log output that does not break progress bars
    - pyyaml: Configuration file parsing
    - rapidfuzz: Fuzzy ranking for song search
"""

__version__ = "0.1.0"
__author__ = "bardic-forge"
__license__ = "MIT"

# Convenience imports for common usage
from bardic_forge.core import (
    BardicError,
    Config,
    ConfigError,
    Database,
    DatabaseError,
    get_logger,
    load_config,
    setup_logging,
)
from bardic_forge.library import Song, compute_id, find_duplicate_groups

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "Database",
    "setup_logging",
    "get_logger",
    # Exceptions
    "BardicError",
    "ConfigError",
    "DatabaseError",
    # Library
    "Song",
    "compute_id",
    "find_duplicate_groups",
]
