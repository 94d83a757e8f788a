"""
Log file discovery.

Resolves the Claude config directories from the environment and finds the
JSONL usage logs beneath them.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

CLAUDE_PATHS_ENV = "CLAUDE_PATHS"
CLAUDE_CONFIG_DIR_ENV = "CLAUDE_CONFIG_DIR"

LOG_SUFFIXES = (".jsonl", ".log")
IGNORED_DIRS = {"node_modules", "dist", "build"}


def _split_paths(value: str) -> List[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


def get_claude_paths() -> List[str]:
    """Return the Claude config directories to search.

    CLAUDE_PATHS takes precedence, then CLAUDE_CONFIG_DIR (both comma
    separated); otherwise the new and legacy default locations.
    """
    custom_paths = os.environ.get(CLAUDE_PATHS_ENV, "").strip()
    if custom_paths:
        return _split_paths(custom_paths)

    config_dirs = os.environ.get(CLAUDE_CONFIG_DIR_ENV, "").strip()
    if config_dirs:
        return _split_paths(config_dirs)

    home = Path.home()
    return [
        str(home / ".config" / "claude"),
        str(home / ".claude"),
    ]


def get_default_log_paths() -> List[str]:
    return [str(Path(p) / "projects") for p in get_claude_paths()]


def _scan_directory(directory: Path) -> Iterable[Path]:
    for candidate in directory.rglob("*.jsonl"):
        if IGNORED_DIRS.intersection(candidate.relative_to(directory).parts):
            continue
        if candidate.is_file():
            yield candidate


def discover_log_files(search_paths: Optional[List[str]] = None) -> List[str]:
    """Find usage log files.

    Explicit paths may be log files or directories. Without explicit paths
    each Claude config directory and its projects/ subdirectory is searched.
    Directories are searched recursively for *.jsonl files. Paths that are
    missing or unreadable are logged and skipped.

    Args:
        search_paths: Optional files or directories to search

    Returns:
        Sorted, de-duplicated list of file paths
    """
    if search_paths:
        base_paths = list(search_paths)
    else:
        base_paths = []
        for claude_path in get_claude_paths():
            base_paths.append(claude_path)
            base_paths.append(str(Path(claude_path) / "projects"))

    found = {}
    for base in base_paths:
        path = Path(base).expanduser()
        if not os.path.exists(path):
            logger.debug("Skipping missing path %s", path)
            continue
        if not os.access(path, os.R_OK):
            logger.warning("Skipping unreadable path %s", path)
            continue

        if path.is_file():
            if path.name.endswith(LOG_SUFFIXES):
                found.setdefault(str(path.resolve()), str(path))
            continue

        try:
            for log_file in _scan_directory(path):
                found.setdefault(str(log_file.resolve()), str(log_file))
        except OSError as e:
            logger.warning("Failed to search for log files in directory %s: %s", path, e)
            continue

    return sorted(found.values())
