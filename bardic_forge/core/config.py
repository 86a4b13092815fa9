"""
Configuration management for bardic-forge.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Library directory (SQLite database and logs live here)
    - Directory for files transcoded to MP3 during import
    - Import behavior (recursive scanning, tag writing, conversion)
    - Duplicate detection threshold and comparison mode
    - Default transcoding bitrate

Configuration File Location:
    By default config.yaml is read from the current working directory.
    The CLI accepts --config to point somewhere else.

Example config.yaml:
    library:
      directory: "~/.config/bardic_forge"
      converted_directory: null   # Optional, defaults to {directory}/converted

    import:
      recursive: true
      write_tags: true
      convert: false

    duplicates:
      threshold: 0.8
      advanced: false

    convert:
      bitrate: 256
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from bardic_forge.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_THRESHOLD = 0.8
DEFAULT_BITRATE = 256
VALID_BITRATES = (128, 192, 256, 320)


@dataclass(frozen=True)
class LibraryConfig:
    """
    Library storage configuration.

    Attributes:
        directory: Absolute path holding library.db and the logs/ folder.
                   Path expansion is performed (~ is expanded to home directory).
        converted_directory: Where non-MP3 files are transcoded to before import.
                   Defaults to {directory}/converted if not specified.
    """
    directory: Path
    converted_directory: Path


@dataclass(frozen=True)
class ImportConfig:
    """
    Import behavior configuration.

    Attributes:
        recursive: Scan folders recursively. Default: True.
        write_tags: Write the BARDIC_ID frame back into imported files. Default: True.
        convert: Transcode non-MP3 audio to MP3 before importing. Default: False.
    """
    recursive: bool
    write_tags: bool
    convert: bool


@dataclass(frozen=True)
class DuplicatesConfig:
    """
    Duplicate detection configuration.

    Attributes:
        threshold: Minimum overall similarity (inclusive) for two songs
                   to count as duplicates. Range [0, 1]. Default: 0.8.
        advanced: Strip "feat." credits from titles before comparing. Default: False.
    """
    threshold: float
    advanced: bool


@dataclass(frozen=True)
class ConversionConfig:
    """
    Transcoding configuration.

    Attributes:
        bitrate: Target MP3 bitrate in kbps. One of 128, 192, 256, 320.
    """
    bitrate: int


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    This is the main configuration object that aggregates all configuration
    sections. It is created by load_config() and should be treated as
    immutable (frozen dataclass).

    Example:
        config = load_config()
        print(f"Library at: {config.library.directory}")
        print(f"Duplicate threshold: {config.duplicates.threshold}")
    """
    library: LibraryConfig
    importing: ImportConfig
    duplicates: DuplicatesConfig
    conversion: ConversionConfig

    @property
    def database_path(self) -> Path:
        """Path of the SQLite library database."""
        return self.library.directory / "library.db"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing the library section, or contains invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. Read and parse YAML content
        3. Validate structure (library section exists)
        4. Parse each section, applying defaults for optional ones
        5. Create and return frozen Config object

    Thread Safety:
        This function is NOT thread-safe. It should be called once at
        application startup.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    _validate_config(raw_config)

    return Config(
        library=_parse_library_config(raw_config["library"]),
        importing=_parse_import_config(raw_config.get("import")),
        duplicates=_parse_duplicates_config(raw_config.get("duplicates")),
        conversion=_parse_conversion_config(raw_config.get("convert")),
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Validate the raw configuration dictionary structure.

    Args:
        raw_config: Dictionary parsed from config.yaml.

    Raises:
        ConfigError: If the library section is missing, or any present
                     section is not a dictionary.
    """
    if "library" not in raw_config:
        raise ConfigError(
            "Missing required section: 'library'",
            details={"missing_section": "library"}
        )

    for section in ("library", "import", "duplicates", "convert"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    if raw_config["library"] is None:
        raise ConfigError(
            "Section 'library' must be a dictionary",
            details={"section": "library"}
        )


def _parse_library_config(library_section: dict[str, Any]) -> LibraryConfig:
    """
    Parse and validate the library configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (the CLI does that at startup).

    Raises:
        ConfigError: If directory is missing or empty.
    """
    directory = library_section.get("directory", "")

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'library.directory' must be a non-empty string",
            details={"field": "library.directory"}
        )

    path = Path(directory.strip()).expanduser().resolve()

    converted_raw = library_section.get("converted_directory")
    if converted_raw is not None:
        if not isinstance(converted_raw, str) or not converted_raw.strip():
            raise ConfigError(
                "'library.converted_directory' must be a non-empty string",
                details={"field": "library.converted_directory"}
            )
        converted_path = Path(converted_raw.strip()).expanduser().resolve()
    else:
        converted_path = path / "converted"

    return LibraryConfig(directory=path, converted_directory=converted_path)


def _parse_bool(section: dict[str, Any], key: str, prefix: str, default: bool) -> bool:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(
            f"'{prefix}.{key}' must be true or false",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return value


def _parse_import_config(import_section: dict[str, Any] | None) -> ImportConfig:
    """
    Parse the import section, applying defaults if it is missing.

    Defaults: recursive=True, write_tags=True, convert=False.
    """
    section = import_section or {}
    return ImportConfig(
        recursive=_parse_bool(section, "recursive", "import", True),
        write_tags=_parse_bool(section, "write_tags", "import", True),
        convert=_parse_bool(section, "convert", "import", False),
    )


def _parse_duplicates_config(duplicates_section: dict[str, Any] | None) -> DuplicatesConfig:
    """
    Parse the duplicates section, applying defaults if it is missing.

    Raises:
        ConfigError: If threshold is not a number in [0, 1].
    """
    section = duplicates_section or {}

    threshold = section.get("threshold", DEFAULT_THRESHOLD)
    # bool is an int subclass; reject it explicitly
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ConfigError(
            "'duplicates.threshold' must be a number",
            details={"field": "duplicates.threshold", "value": threshold}
        )
    if not 0.0 <= threshold <= 1.0:
        raise ConfigError(
            "'duplicates.threshold' must be between 0 and 1",
            details={"field": "duplicates.threshold", "value": threshold}
        )

    return DuplicatesConfig(
        threshold=float(threshold),
        advanced=_parse_bool(section, "advanced", "duplicates", False),
    )


def _parse_conversion_config(convert_section: dict[str, Any] | None) -> ConversionConfig:
    """
    Parse the convert section, applying defaults if it is missing.

    Raises:
        ConfigError: If bitrate is not one of VALID_BITRATES.
    """
    section = convert_section or {}
    bitrate = section.get("bitrate", DEFAULT_BITRATE)

    if isinstance(bitrate, bool) or bitrate not in VALID_BITRATES:
        raise ConfigError(
            f"'convert.bitrate' must be one of {', '.join(str(b) for b in VALID_BITRATES)}",
            details={"field": "convert.bitrate", "value": bitrate}
        )

    return ConversionConfig(bitrate=bitrate)
