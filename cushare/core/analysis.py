"""
Usage analysis entry point.

Ties discovery, streaming and aggregation together. Each file is read in
turn; a file that fails is reported and skipped, but a run that finds no
files or no events at all is an error.
"""

import logging
from typing import List, Optional

from .aggregator import AggregationOptions, ReportResult, aggregate_events
from cushare.logs.discovery import discover_log_files
from cushare.logs.models import NormalizedEvent
from cushare.logs.reader import ParseErrorLimitExceeded, ParseOptions, stream_events

logger = logging.getLogger(__name__)


class UsageAnalysisError(Exception):
    """Base class for run-level failures."""


class NoLogFilesFound(UsageAnalysisError):
    """Raised when discovery yields no log files."""


class NoValidEvents(UsageAnalysisError):
    """Raised when no valid events were parsed from any file."""


def collect_events(
    file_paths: Optional[List[str]] = None,
    parse_options: Optional[ParseOptions] = None,
) -> List[NormalizedEvent]:
    """Read every discovered log file into one list of events.

    Args:
        file_paths: Optional explicit files or directories
        parse_options: Time-window and project filters

    Returns:
        All valid events, in file order

    Raises:
        NoLogFilesFound: If discovery finds no files
        NoValidEvents: If no file yields a valid event
    """
    log_files = discover_log_files(file_paths)
    if not log_files:
        raise NoLogFilesFound("No log files found")

    all_events: List[NormalizedEvent] = []
    for file_path in log_files:
        stream = stream_events(file_path, parse_options)
        try:
            for event in stream:
                all_events.append(event)
        except (ParseErrorLimitExceeded, OSError) as e:
            logger.warning("Failed to parse %s: %s", file_path, e)
            continue

    logger.info("Collected %d events from %d files", len(all_events), len(log_files))

    if not all_events:
        raise NoValidEvents("No valid events found in log files")
    return all_events


def analyze_usage(
    file_paths: Optional[List[str]] = None,
    parse_options: Optional[ParseOptions] = None,
    aggregation_options: Optional[AggregationOptions] = None,
) -> ReportResult:
    """Discover, read and aggregate usage logs.

    Args:
        file_paths: Optional explicit files or directories
        parse_options: Time-window and project filters
        aggregation_options: Grouping and report metadata

    Returns:
        SingleReport or GroupedReports

    Raises:
        NoLogFilesFound: If discovery finds no files
        NoValidEvents: If no file yields a valid event
    """
    events = collect_events(file_paths, parse_options)
    return aggregate_events(events, aggregation_options)
