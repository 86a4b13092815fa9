"""
Core module for bardic-forge.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - database: Thread-safe SQLite library database
    - logger: Logging system with multiple outputs
    - progress: Rich progress bars for long-running commands

Usage:
    from bardic_forge.core import (
        Config, load_config,
        Database,
        setup_logging, get_logger,
        BardicError, ConfigError, DatabaseError
    )
"""

from bardic_forge.core.exceptions import (
    BardicError,
    ConfigError,
    ConversionError,
    DatabaseError,
    ImportFileError,
    InvalidIdFormatError,
    MetadataError,
    ScanError,
)
from bardic_forge.core.config import (
    Config,
    ConversionConfig,
    DuplicatesConfig,
    ImportConfig,
    LibraryConfig,
    load_config,
)
from bardic_forge.core.database import Database
from bardic_forge.core.logger import (
    get_logger,
    log_import_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "LibraryConfig",
    "ImportConfig",
    "DuplicatesConfig",
    "ConversionConfig",
    "load_config",
    # Database
    "Database",
    # Exceptions
    "BardicError",
    "ConfigError",
    "DatabaseError",
    "InvalidIdFormatError",
    "MetadataError",
    "ImportFileError",
    "ScanError",
    "ConversionError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_import_failure",
    "shutdown_logging",
]
