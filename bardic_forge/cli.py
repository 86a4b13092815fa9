"""
Command-line interface for bardic-forge.

This module implements the CLI using Click, providing all commands
for managing the music library. rich-click is used for the output colors.

Commands:
    bardic import <paths...>            Import files and folders
    bardic duplicates                   List fuzzy duplicate groups
    bardic duplicates --exact           List exact title/artist duplicates
    bardic similar <song-id>            Songs that duplicate one song
    bardic search <query>               Search title, artist, album
    bardic songs                        List songs (filter by artist/album/genre)
    bardic edit <song-id> ...           Change a song's metadata
    bardic delete <song-id>             Remove a song from the library
    bardic playlist <subcommand>        Manage playlists
    bardic convert <input> <output>     Transcode audio to MP3
    bardic id <file>                    Show a file's Bardic ID
    bardic stats                        Library statistics

Options:
    --config <path>                     Use a config file other than ./config.yaml

Usage:
    # Import a folder recursively, transcoding non-MP3 files
    bardic import ~/Music/inbox --convert

    # Stricter duplicate detection ignoring "feat." credits
    bardic duplicates --threshold 0.9 --advanced

    # Build a playlist
    bardic playlist create "Road Trip"
    bardic playlist add 1 0123456789abcdef0123456789abcdef

Exit Codes:
    0   Success
    1   Configuration error or unexpected error
    2   Database error
    4   Other bardic-forge error (song not found, conversion failed...)
    130 Interrupted by user
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Optional

import rich_click as click
from click.exceptions import Exit
from rich.console import Console
from rich.table import Table

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.COMMAND_GROUPS = {
    "cli": [
        {
            "name": "Library",
            "commands": ["import", "songs", "search", "edit", "delete", "stats"],
        },
        {
            "name": "Duplicates",
            "commands": ["duplicates", "similar"],
        },
        {
            "name": "Playlists",
            "commands": ["playlist"],
        },
        {
            "name": "Files",
            "commands": ["convert", "id"],
        },
    ],
}

from bardic_forge import __version__
from bardic_forge.audio.converter import (
    ConversionJob,
    ConversionResult,
    convert_batch,
    generate_output_path,
    generate_unique_output_path,
)
from bardic_forge.audio.importer import ImportResults, LibraryImporter
from bardic_forge.audio.metadata import (
    format_duration,
    read_bardic_id,
    read_metadata,
    write_metadata,
)
from bardic_forge.audio.scanner import get_audio_files
from bardic_forge.core import (
    BardicError,
    Config,
    ConfigError,
    Database,
    DatabaseError,
    MetadataError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from bardic_forge.core.config import VALID_BITRATES
from bardic_forge.core.progress import ConversionProgressBar, ImportProgressBar
from bardic_forge.library import (
    Song,
    SongUpdate,
    compute_id,
    find_duplicate_groups,
    find_duplicates_for_song,
    is_valid_id,
)
from bardic_forge.library.search import fuzzy_search

logger = get_logger(__name__)

console = Console()


@dataclass
class AppContext:
    """
    State shared by all commands through the click context.

    The config and database are opened lazily by library_session() so that
    --help and --version work without a config file.
    """
    config_path: Path | None = None
    config: Config | None = None
    database: Database | None = None

    def load(self) -> Config:
        if self.config is None:
            self.config = load_config(self.config_path)
        return self.config

    def open_database(self) -> Database:
        config = self.load()
        if self.database is None:
            config.library.directory.mkdir(parents=True, exist_ok=True)
            self.database = Database(config.database_path)
        return self.database

    def close(self) -> None:
        if self.database is not None:
            self.database.close()
            self.database = None


@contextmanager
def library_session(app: AppContext, needs_library: bool = True) -> Generator[AppContext, None, None]:
    """
    Run a command body with config, logging and database set up.

    Maps errors to exit codes:
        ConfigError -> 1, DatabaseError -> 2, other BardicError -> 4,
        KeyboardInterrupt -> 130, anything unexpected -> 1.

    Args:
        app: The shared AppContext.
        needs_library: Load the config, start file logging and open the
                       database before running the body.
    """
    try:
        if needs_library:
            config = app.load()
            config.library.directory.mkdir(parents=True, exist_ok=True)
            setup_logging(config.library.directory)
            app.open_database()
        yield app

    except (click.ClickException, click.Abort, Exit):
        raise

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        logger.error(f"Database error: {e.message}", exc_info=True)
        sys.exit(2)

    except BardicError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        app.close()
        shutdown_logging()


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], version: bool) -> None:
    """
    bardic-forge: A music library with fuzzy duplicate detection.

    Imports MP3 files (and transcodes other formats on request), gives each
    song a content-derived Bardic ID, finds duplicates by title and artist
    similarity, and organizes songs into playlists.

    \b
    BASIC USAGE:
        bardic import ~/Music/inbox            # Import a folder
        bardic duplicates                      # Find likely duplicates
        bardic playlist create "Road Trip"     # Start a playlist
    """
    if version:
        click.echo(f"bardic-forge {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    ctx.obj = AppContext(config_path=config_path)


# =============================================================================
# Output helpers
# =============================================================================

def _songs_table(songs: list[Song], title: str | None = None) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Artist")
    table.add_column("Album")
    table.add_column("Time", justify="right")
    for song in songs:
        table.add_row(song.id, song.title, song.artist, song.album, format_duration(song.duration))
    return table


def _require_song(database: Database, song_id: str) -> Song:
    song = database.get_song_by_id(song_id)
    if song is None:
        raise BardicError(f"Song not found: {song_id}", details={"song_id": song_id})
    return song


def _require_playlist(database: Database, playlist_id: int) -> dict:
    playlist = database.get_playlist_by_id(playlist_id)
    if playlist is None:
        raise BardicError(f"Playlist not found: {playlist_id}", details={"playlist_id": playlist_id})
    return playlist


def _merge_results(total: ImportResults, single: ImportResults) -> None:
    total.imported += single.imported
    total.skipped += single.skipped
    total.failed += single.failed
    total.errors.extend(single.errors)
    total.imported_songs.extend(single.imported_songs)


# =============================================================================
# Library commands
# =============================================================================

@cli.command("import")
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option(
    "--convert/--no-convert",
    default=None,
    help="Transcode non-MP3 audio to MP3 before importing (default from config)"
)
@click.option(
    "--no-recursive",
    is_flag=True,
    help="Do not descend into subfolders"
)
@click.pass_obj
def import_command(app: AppContext, paths: tuple[Path, ...], convert: Optional[bool], no_recursive: bool) -> None:
    """Import audio files and folders into the library."""
    with library_session(app):
        config = app.config
        recursive = config.importing.recursive and not no_recursive
        convert = config.importing.convert if convert is None else convert

        files = get_audio_files(paths, recursive=recursive)
        if not files:
            logger.warning("No audio files found")
            return

        logger.info(f"Importing {len(files)} file(s)")

        importer = LibraryImporter(
            app.database,
            write_tags=config.importing.write_tags,
            convert=convert,
            converted_directory=config.library.converted_directory,
            bitrate=config.conversion.bitrate,
        )

        results = ImportResults(total=len(files))
        with ImportProgressBar(total=len(files)) as progress:
            for path in files:
                single = importer.import_single(path)
                _merge_results(results, single)
                progress.update(success=single.imported > 0, skipped=single.skipped > 0)

        logger.info(
            f"Import complete: {results.imported} imported, "
            f"{results.skipped} skipped, {results.failed} failed"
        )
        for failure in results.errors:
            click.echo(f"  {failure.file}: {failure.error}", err=True)


@cli.command("songs")
@click.option("--artist", default=None, help="Filter by artist (substring)")
@click.option("--album", default=None, help="Filter by album (substring)")
@click.option("--genre", default=None, help="Filter by genre (substring)")
@click.pass_obj
def songs_command(app: AppContext, artist: Optional[str], album: Optional[str], genre: Optional[str]) -> None:
    """List songs in the library."""
    with library_session(app):
        songs = app.database.get_all_songs(artist=artist, album=album, genre=genre)
        if not songs:
            click.echo("No songs found.")
            return
        console.print(_songs_table(songs, title=f"{len(songs)} song(s)"))


@cli.command("search")
@click.argument("query")
@click.pass_obj
def search_command(app: AppContext, query: str) -> None:
    """Search titles, artists and albums. Falls back to fuzzy matching."""
    with library_session(app):
        songs = app.database.search_songs(query)
        if songs:
            console.print(_songs_table(songs, title=f"Results for '{query}'"))
            return

        matches = fuzzy_search(app.database.get_all_songs(), query)
        if not matches:
            click.echo(f"No songs match '{query}'.")
            return

        console.print(_songs_table(
            [song for song, _ in matches],
            title=f"Closest matches for '{query}'"
        ))


@cli.command("edit")
@click.argument("song_id")
@click.option("--title", default=None)
@click.option("--artist", default=None)
@click.option("--album", default=None)
@click.option("--genre", default=None)
@click.option("--track", "track_number", type=int, default=None)
@click.option("--year", type=int, default=None)
@click.option(
    "--no-write-tags",
    is_flag=True,
    help="Only update the library, leave the file's tags alone"
)
@click.pass_obj
def edit_command(
    app: AppContext,
    song_id: str,
    title: Optional[str],
    artist: Optional[str],
    album: Optional[str],
    genre: Optional[str],
    track_number: Optional[int],
    year: Optional[int],
    no_write_tags: bool
) -> None:
    """Change a song's metadata in the library and in its file."""
    update = SongUpdate(
        title=title,
        artist=artist,
        album=album,
        genre=genre,
        track_number=track_number,
        year=year,
    )
    if update.is_empty():
        raise click.UsageError("Nothing to change: pass at least one of --title, --artist, ...")

    with library_session(app):
        song = _require_song(app.database, song_id)
        app.database.update_song(song_id, update)
        logger.info(f"Updated {song.title} ({song_id})")

        if not no_write_tags and song.file_path:
            try:
                write_metadata(Path(song.file_path), update)
            except MetadataError as e:
                logger.warning(f"Library updated but tags were not written: {e.message}")


@cli.command("delete")
@click.argument("song_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def delete_command(app: AppContext, song_id: str, yes: bool) -> None:
    """Remove a song from the library (the file is kept)."""
    with library_session(app):
        song = _require_song(app.database, song_id)
        if not yes and not click.confirm(f"Delete '{song.title}' by {song.artist}?"):
            return
        app.database.delete_song(song_id)
        logger.info(f"Deleted {song.title} ({song_id})")


@cli.command("stats")
@click.pass_obj
def stats_command(app: AppContext) -> None:
    """Show library statistics."""
    with library_session(app):
        stats = app.database.get_stats()
        size_mb = stats["total_size"] / (1024 * 1024)

        logger.info("=" * 60)
        logger.info("LIBRARY STATISTICS")
        logger.info("=" * 60)
        logger.info(f"Songs:             {stats['songs']}")
        logger.info(f"Total time:        {format_duration(stats['total_duration'])}")
        logger.info(f"Total size:        {size_mb:.1f} MB")
        logger.info(f"Playlists:         {stats['playlists']}")
        logger.info(f"Playlist entries:  {stats['playlist_entries']}")
        logger.info("=" * 60)


# =============================================================================
# Duplicate commands
# =============================================================================

@cli.command("duplicates")
@click.option(
    "--threshold",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Minimum similarity, 0-1 (default from config)"
)
@click.option(
    "--advanced/--basic",
    default=None,
    help="Ignore featuring credits in titles (default from config)"
)
@click.option(
    "--exact",
    is_flag=True,
    help="Only songs with identical title and artist (case-insensitive)"
)
@click.pass_obj
def duplicates_command(app: AppContext, threshold: Optional[float], advanced: Optional[bool], exact: bool) -> None:
    """Find groups of likely duplicate songs."""
    with library_session(app):
        if exact:
            groups = app.database.find_exact_duplicates()
            if not groups:
                click.echo("No exact duplicates found.")
                return
            for group in groups:
                click.echo(f"{group['title']} - {group['artist']} ({group['count']} copies)")
                for song_id in group["song_ids"]:
                    click.echo(f"    {song_id}")
            return

        config = app.config
        threshold = config.duplicates.threshold if threshold is None else threshold
        advanced = config.duplicates.advanced if advanced is None else advanced

        songs = app.database.get_all_songs()
        groups = find_duplicate_groups(songs, threshold=threshold, advanced=advanced)
        logger.debug(f"{len(groups)} group(s) among {len(songs)} songs at threshold {threshold}")

        if not groups:
            click.echo("No duplicates found.")
            return

        for number, group in enumerate(groups, start=1):
            table = Table(title=f"#{number}  {group.title} - {group.artist}  ({group.count} songs)")
            table.add_column("ID", style="dim", no_wrap=True)
            table.add_column("Title", style="bold")
            table.add_column("Artist")
            table.add_column("Similarity", justify="right")
            table.add_column("Match")
            seed = group.seed
            table.add_row(seed.id, seed.title, seed.artist, "seed", "")
            for member in group.members:
                table.add_row(
                    member.song.id,
                    member.song.title,
                    member.song.artist,
                    f"{member.similarity:.0%}",
                    member.match_type.value,
                )
            console.print(table)


@cli.command("similar")
@click.argument("song_id")
@click.option(
    "--threshold",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Minimum similarity, 0-1 (default from config)"
)
@click.option(
    "--advanced/--basic",
    default=None,
    help="Ignore featuring credits in titles (default from config)"
)
@click.pass_obj
def similar_command(app: AppContext, song_id: str, threshold: Optional[float], advanced: Optional[bool]) -> None:
    """List songs that duplicate SONG_ID, best match first."""
    with library_session(app):
        config = app.config
        threshold = config.duplicates.threshold if threshold is None else threshold
        advanced = config.duplicates.advanced if advanced is None else advanced

        target = _require_song(app.database, song_id)
        matches = find_duplicates_for_song(
            target,
            app.database.get_all_songs(),
            threshold=threshold,
            advanced=advanced,
        )
        if not matches:
            click.echo(f"No duplicates of '{target.title}' found.")
            return

        table = Table(title=f"Duplicates of {target.title} - {target.artist}")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Title", style="bold")
        table.add_column("Artist")
        table.add_column("Similarity", justify="right")
        table.add_column("Match")
        for match in matches:
            table.add_row(
                match.song.id,
                match.song.title,
                match.song.artist,
                f"{match.similarity:.0%}",
                match.verdict.match_type.value,
            )
        console.print(table)


# =============================================================================
# Playlist commands
# =============================================================================

@cli.group("playlist")
def playlist_group() -> None:
    """Create, edit and show playlists."""


@playlist_group.command("list")
@click.pass_obj
def playlist_list(app: AppContext) -> None:
    """List all playlists."""
    with library_session(app):
        playlists = app.database.get_all_playlists()
        if not playlists:
            click.echo("No playlists yet.")
            return
        table = Table()
        table.add_column("ID", justify="right")
        table.add_column("Name", style="bold")
        table.add_column("Songs", justify="right")
        for playlist in playlists:
            table.add_row(
                str(playlist["playlist_id"]),
                playlist["playlist_name"],
                str(playlist["song_count"]),
            )
        console.print(table)


@playlist_group.command("create")
@click.argument("name")
@click.pass_obj
def playlist_create(app: AppContext, name: str) -> None:
    """Create a playlist named NAME."""
    with library_session(app):
        playlist_id = app.database.create_playlist(name)
        logger.info(f"Created playlist '{name}' (id {playlist_id})")


@playlist_group.command("rename")
@click.argument("playlist_id", type=int)
@click.argument("name")
@click.pass_obj
def playlist_rename(app: AppContext, playlist_id: int, name: str) -> None:
    """Rename a playlist."""
    with library_session(app):
        _require_playlist(app.database, playlist_id)
        app.database.rename_playlist(playlist_id, name)
        logger.info(f"Renamed playlist {playlist_id} to '{name}'")


@playlist_group.command("delete")
@click.argument("playlist_id", type=int)
@click.pass_obj
def playlist_delete(app: AppContext, playlist_id: int) -> None:
    """Delete a playlist (its songs stay in the library)."""
    with library_session(app):
        playlist = _require_playlist(app.database, playlist_id)
        app.database.delete_playlist(playlist_id)
        logger.info(f"Deleted playlist '{playlist['playlist_name']}'")


@playlist_group.command("add")
@click.argument("playlist_id", type=int)
@click.argument("song_ids", nargs=-1, required=True)
@click.pass_obj
def playlist_add(app: AppContext, playlist_id: int, song_ids: tuple[str, ...]) -> None:
    """Append songs to the end of a playlist, skipping ones already in it."""
    with library_session(app):
        playlist = _require_playlist(app.database, playlist_id)
        songs = [_require_song(app.database, song_id) for song_id in song_ids]
        present = {song.id for song in app.database.get_playlist_songs(playlist_id)}

        for song in songs:
            if song.id in present:
                logger.warning(f"'{song.title}' is already in '{playlist['playlist_name']}', skipped")
                continue
            position = app.database.add_song_to_playlist(playlist_id, song.id)
            present.add(song.id)
            logger.info(f"Added '{song.title}' to '{playlist['playlist_name']}' at position {position}")


@playlist_group.command("remove")
@click.argument("playlist_id", type=int)
@click.argument("song_id")
@click.pass_obj
def playlist_remove(app: AppContext, playlist_id: int, song_id: str) -> None:
    """Remove a song from a playlist."""
    with library_session(app):
        playlist = _require_playlist(app.database, playlist_id)
        if app.database.remove_song_from_playlist(playlist_id, song_id):
            logger.info(f"Removed {song_id} from '{playlist['playlist_name']}'")
        else:
            logger.warning(f"{song_id} is not in '{playlist['playlist_name']}'")


@playlist_group.command("show")
@click.argument("playlist_id", type=int)
@click.pass_obj
def playlist_show(app: AppContext, playlist_id: int) -> None:
    """Show the songs of a playlist in order."""
    with library_session(app):
        playlist = _require_playlist(app.database, playlist_id)
        songs = app.database.get_playlist_songs(playlist_id)
        console.print(_songs_table(songs, title=playlist["playlist_name"]))


# =============================================================================
# File commands
# =============================================================================

@cli.command("convert")
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.argument("output_path", type=click.Path(path_type=Path))
@click.option(
    "--bitrate",
    type=click.Choice([str(b) for b in VALID_BITRATES]),
    default=None,
    help="MP3 bitrate in kbps (default from config)"
)
@click.pass_obj
def convert_command(app: AppContext, input_path: Path, output_path: Path, bitrate: Optional[str]) -> None:
    """
    Transcode audio to MP3.

    INPUT_PATH may be a file or a folder. With a folder, every non-MP3
    audio file inside it is converted into the OUTPUT_PATH folder.
    """
    with library_session(app):
        rate = int(bitrate) if bitrate else app.config.conversion.bitrate

        if input_path.is_dir():
            sources = [p for p in get_audio_files([input_path]) if p.suffix.lower() != ".mp3"]
            jobs = []
            planned: set[Path] = set()
            for source in sources:
                target = generate_unique_output_path(source, output_path, planned)
                planned.add(target)
                jobs.append(ConversionJob(source, target))
        elif output_path.suffix.lower() == ".mp3":
            jobs = [ConversionJob(input_path, output_path)]
        else:
            jobs = [ConversionJob(input_path, generate_output_path(input_path, output_path))]

        if not jobs:
            logger.warning("Nothing to convert")
            return

        with ConversionProgressBar(total=len(jobs)) as progress:
            def on_result(result: ConversionResult) -> None:
                progress.update(success=result.success)

            results = convert_batch(jobs, bitrate=rate, on_result=on_result)

        converted = sum(1 for r in results if r.success)
        logger.info(f"Converted {converted}/{len(results)} file(s) at {rate} kbps")


@cli.command("id")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def id_command(app: AppContext, file_path: Path) -> None:
    """Show the Bardic ID stored in a file and the one computed from it."""
    with library_session(app, needs_library=False):
        metadata = read_metadata(file_path)
        title = metadata.title or file_path.stem
        computed = compute_id(metadata.duration, file_path.stat().st_size, title)
        stored = read_bardic_id(file_path)

        click.echo(f"File:      {file_path}")
        click.echo(f"Title:     {title}")
        click.echo(f"Duration:  {format_duration(metadata.duration)}")
        if stored is None:
            click.echo("Stored ID: (none)")
        else:
            validity = "valid" if is_valid_id(stored) else "INVALID"
            click.echo(f"Stored ID: {stored} ({validity})")
        click.echo(f"Computed:  {computed}")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `bardic` from the command line.
    It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
