"""
Streaming reader for usage log files.

Reads JSONL files line by line, normalizes each record and applies the
time-window and project filters. Events are yielded lazily in file order.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from pydantic import ValidationError

from cushare.core.normalizer import normalize_event
from .models import NormalizedEvent, RawEvent

logger = logging.getLogger(__name__)

# Per-file circuit breaker against corrupt files
MAX_PARSE_ERRORS = 100


class ParseErrorLimitExceeded(Exception):
    """Raised when a single file produces more than MAX_PARSE_ERRORS errors."""
    def __init__(self, message: str, path: str, errors: int):
        super().__init__(message)
        self.path = path
        self.errors = errors


@dataclass(frozen=True)
class ParseOptions:
    """Filters applied while reading log files."""
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    project_filter: Optional[str] = None
    timezone: Optional[str] = None


@dataclass
class StreamStats:
    """Line accounting for one file."""
    total_lines: int = 0
    valid_events: int = 0
    skipped_lines: int = 0
    errors: int = 0


def within_window(timestamp: datetime, options: ParseOptions) -> bool:
    if options.since is not None and timestamp < options.since:
        return False
    if options.until is not None and timestamp > options.until:
        return False
    return True


def matches_project(project: Optional[str], project_filter: Optional[str]) -> bool:
    if not project_filter:
        return True
    if not project:
        return False
    return project_filter.lower() in project.lower()


class EventStream:
    """Lazy, single-pass sequence of the valid events in one log file.

    Iterating reads the file one line at a time. ``stats`` is updated as
    lines are consumed and is final once iteration ends.
    """

    def __init__(self, path: str, options: Optional[ParseOptions] = None):
        """Initialize the stream.

        Args:
            path: Path to a JSONL log file
            options: Time-window and project filters
        """
        self.path = path
        self.options = options or ParseOptions()
        self.stats = StreamStats()
        self._consumed = False

    def __iter__(self) -> Iterator[NormalizedEvent]:
        if self._consumed:
            raise RuntimeError(f"Event stream for {self.path} was already consumed")
        self._consumed = True
        return self._read()

    def _read(self) -> Iterator[NormalizedEvent]:
        stats = self.stats
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                stats.total_lines += 1

                if not line.strip():
                    stats.skipped_lines += 1
                    continue

                try:
                    raw = RawEvent.model_validate(json.loads(line))
                except (json.JSONDecodeError, ValidationError) as e:
                    stats.errors += 1
                    if stats.errors > MAX_PARSE_ERRORS:
                        raise ParseErrorLimitExceeded(
                            f"Too many parsing errors ({stats.errors}) in {self.path}. "
                            f"Last error: {e}",
                            path=self.path,
                            errors=stats.errors,
                        )
                    continue

                event = normalize_event(raw)
                if event is None:
                    stats.skipped_lines += 1
                    continue

                if not within_window(event.timestamp, self.options):
                    stats.skipped_lines += 1
                    continue

                if not matches_project(event.project, self.options.project_filter):
                    stats.skipped_lines += 1
                    continue

                stats.valid_events += 1
                yield event

        logger.debug(
            "Read %s: %d lines, %d events, %d skipped, %d errors",
            self.path, stats.total_lines, stats.valid_events,
            stats.skipped_lines, stats.errors,
        )


def stream_events(path: str, options: Optional[ParseOptions] = None) -> EventStream:
    """Create a lazy event stream over one log file.

    Args:
        path: Path to a JSONL log file
        options: Time-window and project filters

    Returns:
        EventStream; iterate it to read the file
    """
    return EventStream(path, options)
