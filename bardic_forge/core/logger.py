"""
Logging configuration for bardic-forge.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - import_failures.log: Files that could not be imported, with the reason

Everything printed to screen is also saved to file, then filtered into
specialized files.

Log File Locations:
    All log files are created in <library directory>/logs.
    Each run gets its own timestamped files.

Usage:
    from bardic_forge.core.logger import setup_logging, get_logger

    setup_logging(library_dir)  # Call once at startup
    logger = get_logger(__name__)

    logger.info("Starting import")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
IMPORT_FAILURES_FILENAME = "import_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name on console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Standard logging to stderr interferes with in-place progress updates.
    This handler uses tqdm.write(), which prints above any active bar.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class ImportFailedFileHandler(logging.Handler):
    """
    Handler that captures import failures for the import report file.

    Writes entries to import_failures.log in a simple, human-readable format:

        01 - Tavern Song.flac
        /music/inbox/01 - Tavern Song.flac
        Only MP3 files are supported

    The handler looks for specific extra fields in log records:
        - 'import_failed_file': File name
        - 'import_failed_path': Full path
        - 'import_failed_error': Failure reason

    Only records containing these fields are written to the report.

    Usage:
        log_import_failure(logger, "song.flac", "/music/song.flac", "File not found")
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "import_failed_file"):
            return

        if self.report_file is None:
            return

        try:
            file_name = getattr(record, "import_failed_file", "Unknown")
            path = getattr(record, "import_failed_path", "")
            error = getattr(record, "import_failed_error", "")

            self.report_file.write(f"{file_name}\n")
            self.report_file.write(f"{path}\n")
            self.report_file.write(f"{error}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(library_dir: Path) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        library_dir: Library directory. Logs are stored in a 'logs' subdirectory.

    Behavior:
        1. Create library_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG
        3. Console handler (TqdmLoggingHandler), level INFO, colored
        4. Full log file handler, level DEBUG
        5. Error log file handler, filtered to ERROR+
        6. Import failures report handler

    Thread Safety:
        This function is NOT thread-safe. Call it once from the main thread.
    """
    logs_dir = library_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = logs_dir / f"{LOG_FULL_FILENAME}_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = logs_dir / f"{LOG_ERRORS_FILENAME}_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    import_failures_path = logs_dir / f"{IMPORT_FAILURES_FILENAME}_{timestamp}.log"
    import_handler = ImportFailedFileHandler(import_failures_path)
    import_handler.open()
    root_logger.addHandler(import_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called propagate to an
        unconfigured root logger. Always call setup_logging() first during
        application startup.
    """
    return logging.getLogger(name)


def format_imported_message(title: str, artist: str) -> str:
    """Format an 'Imported' message with colors."""
    return f"{Colors.GREEN}Imported{Colors.RESET}: {title} by {artist}"


def format_skipped_message(title: str) -> str:
    """Format a 'Skipping duplicate' message with colors."""
    return f"{Colors.YELLOW}Skipping duplicate{Colors.RESET}: {title}"


def log_import_failure(
    logger: logging.Logger,
    file_name: str,
    path: str,
    error_message: str
) -> None:
    """
    Log a file whose import failed.

    Attaches the extra fields ImportFailedFileHandler looks for, so the
    failure also lands in import_failures.log.

    Example:
        log_import_failure(
            logger,
            file_name="song.flac",
            path="/music/song.flac",
            error_message="Only MP3 files are supported"
        )
    """
    logger.error(
        f"Failed to import {file_name}: {error_message}",
        extra={
            "import_failed_file": file_name,
            "import_failed_path": path,
            "import_failed_error": error_message,
        }
    )


def shutdown_logging() -> None:
    """
    Properly shut down the logging system.

    Flushes and closes every handler on the root logger, then removes them.
    Typically called in a finally block at CLI exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
