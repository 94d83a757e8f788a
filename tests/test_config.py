"""
Unit tests for settings loading and validation.

Tests strict validation and error handling for the settings file.
"""

import os
import tempfile
from unittest.mock import patch

import pytest
import yaml

from cushare.config.loader import (
    CONFIG_ENV,
    Settings,
    load_default_settings,
    load_settings,
)


class TestSettingsLoading:
    """Test settings loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_settings_load_correctly(self):
        """Test that a valid settings file loads correctly."""
        config_data = {
            "paths": ["~/.claude/projects", "/var/log/claude"],
            "timezone": "Europe/Berlin",
            "project": "my-app",
            "token_limit": 880000,
        }

        config_path = self._write_config(config_data)
        settings = load_settings(config_path)

        assert settings.paths == ("~/.claude/projects", "/var/log/claude")
        assert settings.timezone == "Europe/Berlin"
        assert settings.project == "my-app"
        assert settings.token_limit == 880000

    def test_partial_settings_use_defaults(self):
        """Test that omitted keys keep their defaults."""
        config_path = self._write_config({"timezone": "UTC"})
        settings = load_settings(config_path)

        assert settings == Settings(timezone="UTC")

    def test_single_path_string(self):
        """Test that a single path may be given as a string."""
        config_path = self._write_config({"paths": "/logs"})
        assert load_settings(config_path).paths == ("/logs",)

    def test_empty_file_returns_defaults(self):
        """Test that an empty settings file is allowed."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("")

        assert load_settings(config_path) == Settings()

    def test_missing_file_raises_error(self):
        """Test that missing settings file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Settings file not found"):
            load_settings("/nonexistent/config.yaml")

    def test_invalid_yaml_raises_error(self):
        """Test that invalid YAML raises YAMLError."""
        config_path = os.path.join(self.temp_dir, "invalid.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("paths: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_settings(config_path)

    def test_non_mapping_raises_error(self):
        """Test that a list at the top level is rejected."""
        config_path = self._write_config(["a", "b"])

        with pytest.raises(ValueError, match="must contain a mapping"):
            load_settings(config_path)

    def test_unknown_keys_raise_error(self):
        """Test that unknown keys are rejected."""
        config_path = self._write_config({"timezone": "UTC", "concurrency": 10})

        with pytest.raises(ValueError, match="Unknown settings keys"):
            load_settings(config_path)

    def test_invalid_paths_raise_error(self):
        """Test that non-string paths are rejected."""
        config_path = self._write_config({"paths": ["/ok", 42]})

        with pytest.raises(ValueError, match="'paths' must be a list of strings"):
            load_settings(config_path)

    def test_non_string_timezone_raises_error(self):
        """Test that a numeric timezone is rejected."""
        config_path = self._write_config({"timezone": 5})

        with pytest.raises(ValueError, match="'timezone' must be a string"):
            load_settings(config_path)

    @pytest.mark.parametrize("token_limit", [0, -100, "many", True])
    def test_invalid_token_limit_raises_error(self, token_limit):
        """Test that only positive integer token limits are accepted."""
        config_path = self._write_config({"token_limit": token_limit})

        with pytest.raises(ValueError, match="'token_limit' must be a positive integer"):
            load_settings(config_path)

    def test_settings_validates_token_limit(self):
        """Test that Settings itself rejects a non-positive limit."""
        with pytest.raises(ValueError, match="token_limit must be > 0"):
            Settings(token_limit=0)


class TestDefaultSettings:
    """Test settings resolution from the environment."""

    def test_env_path_used(self, tmp_path):
        """Test that $CUSHARE_CONFIG points at the settings file."""
        config_path = tmp_path / "settings.yaml"
        config_path.write_text("project: env-project\n", encoding="utf-8")

        with patch.dict(os.environ, {CONFIG_ENV: str(config_path)}):
            settings = load_default_settings()

        assert settings.project == "env-project"

    def test_missing_env_path_raises_error(self, tmp_path):
        """Test that a missing file named by the environment is an error."""
        with patch.dict(os.environ, {CONFIG_ENV: str(tmp_path / "missing.yaml")}):
            with pytest.raises(FileNotFoundError):
                load_default_settings()

    def test_no_settings_file(self, tmp_path):
        """Test that defaults are returned when no file exists."""
        with patch.dict(os.environ, {CONFIG_ENV: ""}), \
                patch("cushare.config.loader.DEFAULT_CONFIG_PATH", tmp_path / "none.yaml"):
            assert load_default_settings() == Settings()
