"""
Thread-safe SQLite library database for bardic-forge.

Each song is stored once in `songs`, keyed by its Bardic ID, and linked to
playlists through `playlist_songs`.

Schema:
    songs:           One row per song_id (metadata + file location)
    playlists:       Playlist metadata (playlist_id, playlist_name, timestamps)
    playlist_songs:  Junction table (playlist_id, song_id, position)
    settings:        Key/value application settings

Usage:
    db = Database(config.database_path)

    db.add_song(song)
    for song in db.get_all_songs(artist="adele"):
        print(song.title)

    playlist_id = db.create_playlist("Road Trip")
    db.add_song_to_playlist(playlist_id, song.id)
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from bardic_forge.core.exceptions import DatabaseError
from bardic_forge.library.models import Song, SongUpdate


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS songs (
    song_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    artist TEXT,
    album TEXT,
    genre TEXT,
    duration INTEGER DEFAULT 0,
    file_size INTEGER DEFAULT 0,
    track_number INTEGER,
    year INTEGER,

    -- File location
    file_path TEXT NOT NULL,
    original_file_path TEXT,
    original_format TEXT,

    -- Audio properties
    bitrate INTEGER,
    sample_rate INTEGER,

    date_added TEXT,
    date_modified TEXT
);

CREATE TABLE IF NOT EXISTS playlists (
    playlist_id INTEGER PRIMARY KEY AUTOINCREMENT,
    playlist_name TEXT NOT NULL,
    date_created TEXT,
    date_modified TEXT
);

CREATE TABLE IF NOT EXISTS playlist_songs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    playlist_id INTEGER NOT NULL,
    song_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    date_added TEXT,
    FOREIGN KEY (playlist_id) REFERENCES playlists(playlist_id) ON DELETE CASCADE,
    FOREIGN KEY (song_id) REFERENCES songs(song_id) ON DELETE CASCADE,
    UNIQUE(playlist_id, song_id)
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_songs_title ON songs(title);
CREATE INDEX IF NOT EXISTS idx_songs_artist ON songs(artist);
CREATE INDEX IF NOT EXISTS idx_songs_album ON songs(album);
CREATE INDEX IF NOT EXISTS idx_playlist_songs_playlist ON playlist_songs(playlist_id);
CREATE INDEX IF NOT EXISTS idx_playlist_songs_song ON playlist_songs(song_id);
"""

_SONG_COLUMNS = (
    "song_id", "title", "artist", "album", "genre", "duration", "file_size",
    "track_number", "year", "file_path", "original_file_path", "original_format",
    "bitrate", "sample_rate", "date_added", "date_modified",
)


class Database:
    """
    Thread-safe SQLite library database.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing, and every
    sqlite3.Error is re-raised as DatabaseError.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        sqlite3 errors raised inside the block are rolled back and wrapped
        in DatabaseError.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield self._conn
        except sqlite3.Error as e:
            self._conn.rollback()
            raise DatabaseError(
                f"Database operation failed: {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __del__(self) -> None:
        """Ensure connection is closed on garbage collection."""
        if hasattr(self, '_conn') and self._conn is not None:
            try:
                self._conn.close()
            except Exception:
                pass

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()

            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise DatabaseError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    def _now_iso(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _touch_playlist(self, conn: sqlite3.Connection, playlist_id: int) -> None:
        conn.execute(
            "UPDATE playlists SET date_modified = ? WHERE playlist_id = ?",
            (self._now_iso(), playlist_id)
        )

    # =========================================================================
    # Song Operations
    # =========================================================================

    def get_all_songs(
        self,
        artist: str | None = None,
        album: str | None = None,
        genre: str | None = None
    ) -> list[Song]:
        """
        Get every song, optionally filtered.

        Filters are case-insensitive substring matches (SQL LIKE) and are
        combined with AND. Results are ordered by title.
        """
        clauses = []
        params: list[Any] = []
        for column, value in (("artist", artist), ("album", album), ("genre", genre)):
            if value:
                clauses.append(f"{column} LIKE ?")
                params.append(f"%{value}%")

        query = "SELECT * FROM songs"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY title COLLATE NOCASE"

        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(query, params)
                return [Song.from_row(row) for row in cursor.fetchall()]

    def get_song_by_id(self, song_id: str) -> Song | None:
        """Get a song by its Bardic ID."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT * FROM songs WHERE song_id = ?", (song_id,))
                row = cursor.fetchone()
                return Song.from_row(row) if row else None

    def add_song(self, song: Song) -> None:
        """
        Insert a new song.

        date_added and date_modified are set to now when missing.

        Raises:
            DatabaseError: If a song with the same id already exists.
        """
        row = song.to_row()
        now = self._now_iso()
        row["date_added"] = row.get("date_added") or now
        row["date_modified"] = row.get("date_modified") or now

        placeholders = ", ".join("?" for _ in _SONG_COLUMNS)
        with self._lock:
            with self._get_connection() as conn:
                try:
                    conn.execute(
                        f"INSERT INTO songs ({', '.join(_SONG_COLUMNS)}) VALUES ({placeholders})",
                        tuple(row[column] for column in _SONG_COLUMNS)
                    )
                except sqlite3.IntegrityError as e:
                    conn.rollback()
                    raise DatabaseError(
                        f"Song already exists: {song.id}",
                        details={"song_id": song.id, "original_error": str(e)}
                    ) from e
                conn.commit()

    def update_song(self, song_id: str, update: SongUpdate) -> int:
        """
        Apply a partial update to a song.

        Only fields set on the SongUpdate are written; date_modified is
        always bumped when at least one field changes.

        Returns:
            Number of rows changed (0 if the song does not exist or the
            update is empty).
        """
        changes = update.changes()
        if not changes:
            return 0

        changes["date_modified"] = self._now_iso()
        assignments = ", ".join(f"{column} = ?" for column in changes)

        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    f"UPDATE songs SET {assignments} WHERE song_id = ?",
                    (*changes.values(), song_id)
                )
                conn.commit()
                return cursor.rowcount

    def delete_song(self, song_id: str) -> bool:
        """Delete a song (and its playlist links). Returns True if it existed."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM songs WHERE song_id = ?", (song_id,))
                conn.commit()
                return cursor.rowcount > 0

    def search_songs(self, query: str) -> list[Song]:
        """Search title, artist and album (case-insensitive substring)."""
        pattern = f"%{query}%"
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT * FROM songs
                    WHERE title LIKE ? OR artist LIKE ? OR album LIKE ?
                    ORDER BY title COLLATE NOCASE
                """, (pattern, pattern, pattern))
                return [Song.from_row(row) for row in cursor.fetchall()]

    def find_exact_duplicates(self) -> list[dict[str, Any]]:
        """
        Find songs sharing the same title and artist, ignoring case.

        Returns:
            One dict per group: {"title", "artist", "count", "song_ids"},
            most populated groups first.
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT LOWER(title) AS title, LOWER(artist) AS artist,
                           COUNT(*) AS count, GROUP_CONCAT(song_id) AS song_ids
                    FROM songs
                    GROUP BY LOWER(title), LOWER(artist)
                    HAVING COUNT(*) > 1
                    ORDER BY count DESC, title
                """)
                groups = []
                for row in cursor.fetchall():
                    group = dict(row)
                    group["song_ids"] = group["song_ids"].split(",")
                    groups.append(group)
                return groups

    def song_count(self) -> int:
        with self._lock:
            with self._get_connection() as conn:
                return conn.execute("SELECT COUNT(*) FROM songs").fetchone()[0]

    # =========================================================================
    # Playlist Operations
    # =========================================================================

    def get_all_playlists(self) -> list[dict[str, Any]]:
        """Get every playlist with its song count, ordered by name."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT p.playlist_id, p.playlist_name, p.date_created, p.date_modified,
                           COUNT(ps.song_id) AS song_count
                    FROM playlists p
                    LEFT JOIN playlist_songs ps ON ps.playlist_id = p.playlist_id
                    GROUP BY p.playlist_id
                    ORDER BY p.playlist_name COLLATE NOCASE
                """)
                return [dict(row) for row in cursor.fetchall()]

    def get_playlist_by_id(self, playlist_id: int) -> dict[str, Any] | None:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT * FROM playlists WHERE playlist_id = ?", (playlist_id,)
                )
                row = cursor.fetchone()
                return dict(row) if row else None

    def create_playlist(self, name: str) -> int:
        """Create a playlist and return its id."""
        now = self._now_iso()
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "INSERT INTO playlists (playlist_name, date_created, date_modified) VALUES (?, ?, ?)",
                    (name, now, now)
                )
                conn.commit()
                return cursor.lastrowid

    def rename_playlist(self, playlist_id: int, name: str) -> bool:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "UPDATE playlists SET playlist_name = ?, date_modified = ? WHERE playlist_id = ?",
                    (name, self._now_iso(), playlist_id)
                )
                conn.commit()
                return cursor.rowcount > 0

    def delete_playlist(self, playlist_id: int) -> bool:
        """Delete a playlist. Its song links are removed by cascade."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM playlists WHERE playlist_id = ?", (playlist_id,)
                )
                conn.commit()
                return cursor.rowcount > 0

    def add_song_to_playlist(self, playlist_id: int, song_id: str) -> int:
        """
        Append a song at the end of a playlist.

        Returns:
            The position assigned (max position + 1, starting at 1).

        Raises:
            DatabaseError: If the playlist or song does not exist, or the
                           song is already in the playlist.
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT COALESCE(MAX(position), 0) FROM playlist_songs WHERE playlist_id = ?",
                    (playlist_id,)
                )
                position = cursor.fetchone()[0] + 1

                try:
                    conn.execute("""
                        INSERT INTO playlist_songs (playlist_id, song_id, position, date_added)
                        VALUES (?, ?, ?, ?)
                    """, (playlist_id, song_id, position, self._now_iso()))
                except sqlite3.IntegrityError as e:
                    conn.rollback()
                    raise DatabaseError(
                        f"Cannot add song {song_id} to playlist {playlist_id}: {e}",
                        details={"playlist_id": playlist_id, "song_id": song_id}
                    ) from e

                self._touch_playlist(conn, playlist_id)
                conn.commit()
                return position

    def remove_song_from_playlist(self, playlist_id: int, song_id: str) -> bool:
        """
        Remove a song from a playlist and shift later songs up by one.

        Returns:
            True if the song was in the playlist.
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT position FROM playlist_songs WHERE playlist_id = ? AND song_id = ?",
                    (playlist_id, song_id)
                )
                row = cursor.fetchone()
                if row is None:
                    return False

                conn.execute(
                    "DELETE FROM playlist_songs WHERE playlist_id = ? AND song_id = ?",
                    (playlist_id, song_id)
                )
                conn.execute(
                    "UPDATE playlist_songs SET position = position - 1 WHERE playlist_id = ? AND position > ?",
                    (playlist_id, row["position"])
                )
                self._touch_playlist(conn, playlist_id)
                conn.commit()
                return True

    def get_playlist_songs(self, playlist_id: int) -> list[Song]:
        """Get the songs of a playlist ordered by position."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT s.* FROM songs s
                    JOIN playlist_songs ps ON ps.song_id = s.song_id
                    WHERE ps.playlist_id = ?
                    ORDER BY ps.position
                """, (playlist_id,))
                return [Song.from_row(row) for row in cursor.fetchall()]

    # =========================================================================
    # Settings
    # =========================================================================

    def get_setting(self, key: str) -> str | None:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
                row = cursor.fetchone()
                return row[0] if row else None

    def set_setting(self, key: str, value: str) -> None:
        with self._lock:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO settings (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """, (key, value))
                conn.commit()

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, int]:
        """
        Library statistics.

        Returns:
            Dict with songs, playlists, playlist_entries, total_duration
            (seconds) and total_size (bytes).
        """
        with self._lock:
            with self._get_connection() as conn:
                songs_row = conn.execute("""
                    SELECT COUNT(*), COALESCE(SUM(duration), 0), COALESCE(SUM(file_size), 0)
                    FROM songs
                """).fetchone()
                playlists = conn.execute("SELECT COUNT(*) FROM playlists").fetchone()[0]
                entries = conn.execute("SELECT COUNT(*) FROM playlist_songs").fetchone()[0]

                return {
                    "songs": songs_row[0],
                    "playlists": playlists,
                    "playlist_entries": entries,
                    "total_duration": songs_row[1],
                    "total_size": songs_row[2],
                }
