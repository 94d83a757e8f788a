"""
Usage aggregation.

Computes per-model and total statistics (tokens, prompts, duration, cost
and shares) over a set of events, optionally split into calendar days or
months.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .duration import estimate_durations
from .pricing import calculate_cost
from .timezones import local_timezone_name, resolve_timezone
from cushare.logs.models import EventWithInferredDuration, ModelBucket, NormalizedEvent


class Grouping(Enum):
    """How events are split into reports."""
    ALL_TIME = "all-time"
    DAY = "day"
    MONTH = "month"
    TODAY = "today"


@dataclass(frozen=True)
class ReportWindow:
    """Time window a report covers."""
    since: Optional[str]
    until: Optional[str]
    tz: str


@dataclass(frozen=True)
class UsageTotals:
    tokens: int
    prompts: int
    duration_ms: float


@dataclass(frozen=True)
class ModelStats:
    """Statistics for one model bucket.

    Percentages are shares of the report totals, 0 when the total is 0.
    """
    tokens: int
    tokens_in: int
    tokens_out: int
    prompts: int
    duration_ms: float
    pct_tokens: float
    pct_prompts: float
    pct_time: float
    cost_usd: float
    cost_input: float
    cost_output: float


@dataclass(frozen=True)
class UsageReport:
    """Aggregation result for one grouping key."""
    window: ReportWindow
    grouping: Grouping
    totals: UsageTotals
    models: Dict[ModelBucket, ModelStats]

    @property
    def total_cost(self) -> float:
        return sum(stats.cost_usd for stats in self.models.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window": {
                "since": self.window.since,
                "until": self.window.until,
                "tz": self.window.tz,
            },
            "grouping": self.grouping.value,
            "totals": {
                "tokens": self.totals.tokens,
                "prompts": self.totals.prompts,
                "duration_ms": self.totals.duration_ms,
            },
            "models": {
                bucket.value: asdict(stats)
                for bucket, stats in self.models.items()
            },
        }


@dataclass(frozen=True)
class SingleReport:
    """One report over every event."""
    report: UsageReport

    def to_dict(self) -> Dict[str, Any]:
        return self.report.to_dict()


@dataclass(frozen=True)
class GroupedReports:
    """Reports keyed by calendar day (YYYY-MM-DD) or month (YYYY-MM)."""
    reports: Dict[str, UsageReport]

    def to_dict(self) -> Dict[str, Any]:
        return {key: report.to_dict() for key, report in self.reports.items()}


ReportResult = Union[SingleReport, GroupedReports]


@dataclass(frozen=True)
class AggregationOptions:
    """Options for aggregate_events."""
    group_by: Optional[Grouping] = None
    timezone: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None


@dataclass
class _BucketAccumulator:
    tokens: int = 0
    tokens_in: int = 0
    tokens_out: int = 0
    prompts: int = 0
    duration_ms: float = 0
    cost_input: float = 0.0
    cost_output: float = 0.0

    def add(self, event: EventWithInferredDuration) -> None:
        self.tokens += event.tokens_total
        self.tokens_in += event.tokens_in
        self.tokens_out += event.tokens_out
        self.prompts += 1
        self.duration_ms += event.inferred_duration_ms
        self.cost_input += calculate_cost(event.model_name, event.tokens_in, 0)
        self.cost_output += calculate_cost(event.model_name, 0, event.tokens_out)


def _percent(part: float, total: float) -> float:
    return (part / total) * 100 if total > 0 else 0.0


def aggregate_events(
    events: List[NormalizedEvent],
    options: Optional[AggregationOptions] = None,
) -> ReportResult:
    """Aggregate usage events into one report or a set of grouped reports.

    Durations are inferred over the full event set before any grouping, so
    sessions spanning a day boundary are estimated consistently.

    Args:
        events: Normalized events, any order
        options: Grouping, timezone and window metadata

    Returns:
        SingleReport for all-time aggregation, GroupedReports for day,
        month and today grouping
    """
    options = options or AggregationOptions()
    events_with_duration = estimate_durations(events)

    if options.group_by in (Grouping.DAY, Grouping.MONTH, Grouping.TODAY):
        return GroupedReports(_aggregate_by_time_group(events_with_duration, options))

    return SingleReport(_build_report(events_with_duration, options, Grouping.ALL_TIME))


def _build_report(
    events: List[EventWithInferredDuration],
    options: AggregationOptions,
    grouping: Grouping,
) -> UsageReport:
    buckets = {bucket: _BucketAccumulator() for bucket in ModelBucket}

    for event in events:
        buckets[event.model].add(event)

    total_tokens = sum(acc.tokens for acc in buckets.values())
    total_prompts = sum(acc.prompts for acc in buckets.values())
    total_duration = sum(acc.duration_ms for acc in buckets.values())

    models = {
        bucket: ModelStats(
            tokens=acc.tokens,
            tokens_in=acc.tokens_in,
            tokens_out=acc.tokens_out,
            prompts=acc.prompts,
            duration_ms=acc.duration_ms,
            pct_tokens=_percent(acc.tokens, total_tokens),
            pct_prompts=_percent(acc.prompts, total_prompts),
            pct_time=_percent(acc.duration_ms, total_duration),
            cost_usd=acc.cost_input + acc.cost_output,
            cost_input=acc.cost_input,
            cost_output=acc.cost_output,
        )
        for bucket, acc in buckets.items()
    }

    return UsageReport(
        window=ReportWindow(
            since=options.since.isoformat() if options.since else None,
            until=options.until.isoformat() if options.until else None,
            tz=options.timezone or local_timezone_name(),
        ),
        grouping=grouping,
        totals=UsageTotals(
            tokens=total_tokens,
            prompts=total_prompts,
            duration_ms=total_duration,
        ),
        models=models,
    )


def _aggregate_by_time_group(
    events: List[EventWithInferredDuration],
    options: AggregationOptions,
) -> Dict[str, UsageReport]:
    tz = resolve_timezone(options.timezone)

    groups: Dict[str, List[EventWithInferredDuration]] = {}
    for event in events:
        group_key = get_time_group_key(event.timestamp, options.group_by, tz)
        groups.setdefault(group_key, []).append(event)

    return {
        group_key: _build_report(groups[group_key], options, options.group_by)
        for group_key in sorted(groups)
    }


def get_time_group_key(timestamp: datetime, group_by: Grouping, tz: tzinfo) -> str:
    """Calendar key of a timestamp in the given timezone.

    Raises:
        ValueError: If group_by is not a calendar grouping
    """
    local = timestamp.astimezone(tz)

    if group_by in (Grouping.DAY, Grouping.TODAY):
        return local.strftime("%Y-%m-%d")
    if group_by == Grouping.MONTH:
        return local.strftime("%Y-%m")

    raise ValueError(f"Unsupported groupBy: {group_by}")
