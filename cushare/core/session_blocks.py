"""
Session block tracking.

Usage is accounted in fixed 5-hour blocks. A block starts at the first
event that falls outside the open block and is never extended; the last
block stays active until its end time passes. The today report combines
the blocks with the current burn rate and a projection to block end.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .duration import estimate_durations
from .pricing import calculate_cost
from .timezones import local_timezone_name, resolve_timezone
from cushare.logs.models import NormalizedEvent

BLOCK_DURATION = timedelta(hours=5)
DEFAULT_TOKEN_LIMIT = 500_000
DEFAULT_BURN_RATE_WINDOW_MINUTES = 10


@dataclass
class TokenCounts:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0


@dataclass
class SessionBlock:
    """One 5-hour accounting window of activity."""
    id: str
    start_time: datetime
    end_time: datetime
    is_active: bool = True
    events: List[NormalizedEvent] = field(default_factory=list)
    token_counts: TokenCounts = field(default_factory=TokenCounts)
    models: List[str] = field(default_factory=list)
    cost_usd: float = 0.0

    @classmethod
    def starting_at(cls, start_time: datetime) -> "SessionBlock":
        return cls(
            id=start_time.isoformat(),
            start_time=start_time,
            end_time=start_time + BLOCK_DURATION,
        )

    def add(self, event: NormalizedEvent) -> None:
        self.events.append(event)
        self.token_counts.input_tokens += event.tokens_in
        self.token_counts.output_tokens += event.tokens_out
        self.token_counts.cache_creation_tokens += event.cache_creation_tokens
        self.token_counts.cache_read_tokens += event.cache_read_tokens
        self.token_counts.total_tokens += event.tokens_total
        self.cost_usd += calculate_cost(event.model_name, event.tokens_in, event.tokens_out)

        if event.model_name not in self.models:
            self.models.append(event.model_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "is_active": self.is_active,
            "event_count": len(self.events),
            "token_counts": asdict(self.token_counts),
            "models": list(self.models),
            "cost_usd": self.cost_usd,
        }


@dataclass(frozen=True)
class ActiveSession:
    """Live status of the block that is still open."""
    block_id: str
    start_time: datetime
    time_remaining: str
    tokens_used: int
    burn_rate: float  # tokens per minute
    token_limit: int
    usage_percent: float
    projected_total: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat()
        return data


@dataclass(frozen=True)
class TodayModelUsage:
    tokens: int
    tokens_in: int
    tokens_out: int
    prompts: int
    cost_usd: float
    cost_input: float
    cost_output: float


@dataclass(frozen=True)
class TodayTotals:
    tokens: int
    prompts: int
    duration_ms: float


@dataclass(frozen=True)
class TodayUsageReport:
    """Usage for the current calendar day with live session tracking."""
    date: str
    timezone: str
    total_usage: TodayTotals
    completed_blocks: List[SessionBlock]
    models: Dict[str, TodayModelUsage]
    active_session: Optional[ActiveSession] = None

    @property
    def total_cost(self) -> float:
        return sum(stats.cost_usd for stats in self.models.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "timezone": self.timezone,
            "total_usage": asdict(self.total_usage),
            "active_session": self.active_session.to_dict() if self.active_session else None,
            "completed_blocks": [block.to_dict() for block in self.completed_blocks],
            "models": {name: asdict(stats) for name, stats in self.models.items()},
        }


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def group_events_into_blocks(
    events: List[NormalizedEvent],
    now: Optional[datetime] = None,
) -> List[SessionBlock]:
    """Partition events into consecutive 5-hour session blocks.

    A new block starts when no block is open or an event lands at or after
    the open block's end time; the open block is closed first. Blocks are
    anchored at the triggering event, not at any wall-clock boundary.

    Args:
        events: Events in any order
        now: Current time, used to decide whether the last block is active

    Returns:
        Blocks in chronological order
    """
    if not events:
        return []

    blocks: List[SessionBlock] = []
    current: Optional[SessionBlock] = None

    for event in sorted(events, key=lambda e: e.timestamp):
        if current is None or event.timestamp >= current.end_time:
            if current is not None:
                current.is_active = False
                blocks.append(current)
            current = SessionBlock.starting_at(event.timestamp)

        current.add(event)

    current.is_active = _now(now) < current.end_time
    blocks.append(current)
    return blocks


def calculate_burn_rate(
    events: List[NormalizedEvent],
    now: Optional[datetime] = None,
    window_minutes: int = DEFAULT_BURN_RATE_WINDOW_MINUTES,
) -> float:
    """Tokens per minute over the trailing window ending now."""
    if not events:
        return 0.0

    cutoff = _now(now) - timedelta(minutes=window_minutes)
    recent_tokens = [e.tokens_total for e in events if e.timestamp >= cutoff]
    if not recent_tokens:
        return 0.0
    return sum(recent_tokens) / window_minutes


def format_time_remaining(end_time: datetime, now: Optional[datetime] = None) -> str:
    """Render the time left in a block as "2h 15m" or "15m"."""
    remaining = end_time - _now(now)
    if remaining <= timedelta(0):
        return "0m"

    total_minutes = int(remaining.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def detect_token_limit(blocks: List[SessionBlock]) -> int:
    """Highest block total seen so far, or DEFAULT_TOKEN_LIMIT without blocks."""
    if not blocks:
        return DEFAULT_TOKEN_LIMIT
    return max(block.token_counts.total_tokens for block in blocks)


def _model_usage(events: List[NormalizedEvent]) -> Dict[str, TodayModelUsage]:
    totals: Dict[str, Dict[str, float]] = {}
    for event in events:
        stats = totals.setdefault(event.model.value, {
            "tokens": 0, "tokens_in": 0, "tokens_out": 0, "prompts": 0,
            "cost_input": 0.0, "cost_output": 0.0,
        })
        stats["tokens"] += event.tokens_total
        stats["tokens_in"] += event.tokens_in
        stats["tokens_out"] += event.tokens_out
        stats["prompts"] += 1
        stats["cost_input"] += calculate_cost(event.model_name, event.tokens_in, 0)
        stats["cost_output"] += calculate_cost(event.model_name, 0, event.tokens_out)

    return {
        name: TodayModelUsage(
            tokens=stats["tokens"],
            tokens_in=stats["tokens_in"],
            tokens_out=stats["tokens_out"],
            prompts=stats["prompts"],
            cost_usd=stats["cost_input"] + stats["cost_output"],
            cost_input=stats["cost_input"],
            cost_output=stats["cost_output"],
        )
        for name, stats in totals.items()
    }


def _active_session(
    block: SessionBlock,
    token_limit: int,
    now: datetime,
) -> ActiveSession:
    burn_rate = calculate_burn_rate(block.events, now=now)
    tokens_used = block.token_counts.total_tokens
    usage_percent = (tokens_used / token_limit) * 100 if token_limit > 0 else 0.0

    # A block can still be flagged active a moment after its end time
    remaining_minutes = max(0.0, (block.end_time - now).total_seconds() / 60)

    return ActiveSession(
        block_id=block.id,
        start_time=block.start_time,
        time_remaining=format_time_remaining(block.end_time, now=now),
        tokens_used=tokens_used,
        burn_rate=burn_rate,
        token_limit=token_limit,
        usage_percent=usage_percent,
        projected_total=tokens_used + burn_rate * remaining_minutes,
    )


def generate_today_report(
    events: List[NormalizedEvent],
    timezone_name: Optional[str] = None,
    token_limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> TodayUsageReport:
    """Build the usage report for the current calendar day.

    Args:
        events: Events from all log files; only today's are used
        timezone_name: Timezone defining "today" (host timezone if None)
        token_limit: Block token limit; auto-detected when not given
        now: Current time

    Returns:
        TodayUsageReport
    """
    now = _now(now)
    tz = resolve_timezone(timezone_name)
    today = now.astimezone(tz).strftime("%Y-%m-%d")

    today_events = [
        event for event in events
        if event.timestamp.astimezone(tz).strftime("%Y-%m-%d") == today
    ]

    blocks = group_events_into_blocks(today_events, now=now)
    active_block = next((block for block in blocks if block.is_active), None)
    completed_blocks = [block for block in blocks if not block.is_active]

    total_duration = sum(e.inferred_duration_ms for e in estimate_durations(today_events))
    effective_limit = token_limit or detect_token_limit(blocks)

    return TodayUsageReport(
        date=today,
        timezone=timezone_name or local_timezone_name(),
        total_usage=TodayTotals(
            tokens=sum(e.tokens_total for e in today_events),
            prompts=len(today_events),
            duration_ms=total_duration,
        ),
        completed_blocks=completed_blocks,
        models=_model_usage(today_events),
        active_session=(
            _active_session(active_block, effective_limit, now)
            if active_block is not None else None
        ),
    )
