"""
Configuration management and loading.

Handles the optional settings file and its environment override.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

CONFIG_ENV = "CUSHARE_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "cushare" / "config.yaml"


@dataclass(frozen=True)
class Settings:
    """User defaults for the CLI. Command-line flags take precedence."""
    paths: Tuple[str, ...] = ()
    timezone: Optional[str] = None
    project: Optional[str] = None
    token_limit: Optional[int] = None

    def __post_init__(self):
        """Validate token limit is positive."""
        if self.token_limit is not None and self.token_limit <= 0:
            raise ValueError("token_limit must be > 0")


def load_settings(path: str) -> Settings:
    """Load and validate settings from a YAML file.

    Validation is strict: unknown keys and wrong types are rejected rather
    than silently ignored.

    Args:
        path: Path to YAML settings file

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If settings file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If settings are invalid
    """
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in settings file {path}: {e}")

    if not raw_config:
        return Settings()

    if not isinstance(raw_config, dict):
        raise ValueError("Settings file must contain a mapping")

    allowed_keys = {'paths', 'timezone', 'project', 'token_limit'}
    unknown_keys = set(raw_config.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown settings keys: {unknown_keys}")

    return Settings(
        paths=_parse_paths(raw_config),
        timezone=_optional_string(raw_config, 'timezone'),
        project=_optional_string(raw_config, 'project'),
        token_limit=_parse_token_limit(raw_config),
    )


def load_default_settings() -> Settings:
    """Load settings from $CUSHARE_CONFIG or the default location.

    A missing default file is not an error; a missing file named by the
    environment variable is.
    """
    env_path = os.environ.get(CONFIG_ENV, "").strip()
    if env_path:
        return load_settings(env_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_settings(str(DEFAULT_CONFIG_PATH))
    return Settings()


def _parse_paths(data: Dict) -> Tuple[str, ...]:
    paths = data.get('paths', [])
    if paths is None:
        return ()
    if isinstance(paths, str):
        paths = [paths]
    if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
        raise ValueError("'paths' must be a list of strings")
    return tuple(paths)


def _optional_string(data: Dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _parse_token_limit(data: Dict) -> Optional[int]:
    value = data.get('token_limit')
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError("'token_limit' must be a positive integer")
    return value
