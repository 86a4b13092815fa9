"""
Exception classes for bardic-forge.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary for logging.

Exception Hierarchy:
    BardicError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite library database issues
        InvalidIdFormatError - Malformed Bardic ID strings
        MetadataError - Tag reading/writing issues
        ImportFileError - A single file could not be imported
        ScanError - Folder scanning issues
        ConversionError - ffmpeg transcoding issues

Note:
    The similarity, featuring and grouping functions in bardic_forge.library
    never raise. Only parse_id() raises, and only InvalidIdFormatError.
"""


class BardicError(Exception):
    """
    Base exception for all bardic-forge errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every library error with a single
    except clause.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (file path, song id...).

    Example:
        try:
            importer.import_files(paths)
        except BardicError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'file_path': Audio file involved in the error
                     - 'song_id': Bardic ID involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(BardicError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required 'library' section missing
        - Invalid field values (threshold outside [0, 1], unknown bitrate)
    """
    pass


class DatabaseError(BardicError):
    """
    Raised when there's an issue with the SQLite library database.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - Parent directory of the database file does not exist
        - Schema version mismatch
        - Inserting a song whose id already exists
        - Linking a song to a playlist that does not exist
    """
    pass


class InvalidIdFormatError(BardicError, ValueError):
    """
    Raised by parse_id() when a string is not a valid Bardic ID.

    A valid id is 32 lowercase hex characters, optionally followed
    by '_' and one or more digits (collision suffix).

    Example:
        raise InvalidIdFormatError(
            "Invalid Bardic ID format",
            details={'song_id': 'not-hex'}
        )
    """
    pass


class MetadataError(BardicError):
    """
    Raised when audio metadata cannot be read or written.

    This is a NON-CRITICAL error during import: only the affected
    file fails, the batch continues.

    Common causes:
        - File is not a recognised audio format
        - File is corrupted or truncated
        - Permission denied on write
    """
    pass


class ImportFileError(BardicError):
    """
    Raised when a single file cannot be imported.

    The importer catches this per file and records it in the
    ImportResults errors list; it never stops the batch.

    Common causes:
        - File not found
        - Unsupported extension (only MP3 is imported directly)
        - Store insert failed
    """
    pass


class ScanError(BardicError):
    """
    Raised when a folder cannot be scanned for audio files.

    Common causes:
        - Folder does not exist
        - Permission denied while listing
    """
    pass


class ConversionError(BardicError):
    """
    Raised when ffmpeg/ffprobe fails.

    Common causes:
        - ffmpeg binary not installed or not on PATH
        - Input file is not decodable
        - Output directory not writable
    """
    pass
