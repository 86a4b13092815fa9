"""Tests for configuration loading"""

from dataclasses import FrozenInstanceError

import pytest

from bardic_forge.core.config import (
    DEFAULT_BITRATE,
    DEFAULT_THRESHOLD,
    load_config,
)
from bardic_forge.core.exceptions import ConfigError


def write_config(temp_dir, text):
    path = temp_dir / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test load_config() with valid files"""

    def test_minimal_config_defaults(self, temp_dir, config_file):
        config = load_config(config_file)

        assert config.library.directory == (temp_dir / "library").resolve()
        assert config.library.converted_directory == config.library.directory / "converted"
        assert config.database_path == config.library.directory / "library.db"
        assert config.importing.recursive is True
        assert config.importing.write_tags is True
        assert config.importing.convert is False
        assert config.duplicates.threshold == DEFAULT_THRESHOLD
        assert config.duplicates.advanced is False
        assert config.conversion.bitrate == DEFAULT_BITRATE

    def test_full_config(self, temp_dir):
        path = write_config(temp_dir, f"""
library:
  directory: "{temp_dir / 'lib'}"
  converted_directory: "{temp_dir / 'mp3'}"
import:
  recursive: false
  write_tags: false
  convert: true
duplicates:
  threshold: 0.9
  advanced: true
convert:
  bitrate: 320
""")
        config = load_config(path)

        assert config.library.converted_directory == (temp_dir / "mp3").resolve()
        assert config.importing.recursive is False
        assert config.importing.write_tags is False
        assert config.importing.convert is True
        assert config.duplicates.threshold == 0.9
        assert config.duplicates.advanced is True
        assert config.conversion.bitrate == 320

    def test_integer_threshold(self, temp_dir):
        path = write_config(temp_dir, f'library:\n  directory: "{temp_dir}"\nduplicates:\n  threshold: 1\n')
        assert load_config(path).duplicates.threshold == 1.0

    def test_tilde_expanded(self, temp_dir):
        path = write_config(temp_dir, 'library:\n  directory: "~/music"\n')
        assert "~" not in str(load_config(path).library.directory)

    def test_default_path_is_cwd(self, temp_dir, config_file, monkeypatch):
        monkeypatch.chdir(temp_dir)
        assert load_config().library.directory == (temp_dir / "library").resolve()

    def test_config_is_frozen(self, config_file):
        config = load_config(config_file)
        with pytest.raises(FrozenInstanceError):
            config.duplicates.threshold = 0.1


class TestLoadConfigErrors:
    """Test load_config() validation errors"""

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "nope.yaml")

    def test_invalid_yaml(self, temp_dir):
        path = write_config(temp_dir, "library: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_dictionary(self, temp_dir):
        path = write_config(temp_dir, "- just\n- a list\n")
        with pytest.raises(ConfigError, match="dictionary"):
            load_config(path)

    def test_missing_library_section(self, temp_dir):
        path = write_config(temp_dir, "duplicates:\n  threshold: 0.5\n")
        with pytest.raises(ConfigError, match="library"):
            load_config(path)

    @pytest.mark.parametrize("body", [
        "library:\n",
        "library: 5\n",
        "library:\n  directory: ''\n",
        "library:\n  directory: 42\n",
    ])
    def test_bad_library_section(self, temp_dir, body):
        with pytest.raises(ConfigError):
            load_config(write_config(temp_dir, body))

    @pytest.mark.parametrize("section", [
        "import:\n  recursive: 'yes'\n",
        "duplicates:\n  threshold: high\n",
        "duplicates:\n  threshold: true\n",
        "duplicates:\n  threshold: 1.5\n",
        "duplicates:\n  threshold: -0.1\n",
        "convert:\n  bitrate: 160\n",
        "convert: []\n",
    ])
    def test_bad_optional_sections(self, temp_dir, section):
        path = write_config(temp_dir, f'library:\n  directory: "{temp_dir}"\n{section}')
        with pytest.raises(ConfigError):
            load_config(path)
