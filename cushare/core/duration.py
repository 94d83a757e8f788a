"""
Duration estimation.

Per-call durations are often missing from the logs. They are inferred from
the gap to the next event in the same session, capped so that idle time
does not count as usage.
"""

from typing import Dict, List

from .timezones import epoch_ms
from cushare.logs.models import EventWithInferredDuration, NormalizedEvent

MAX_INFERRED_DURATION_MS = 120_000  # 2 minutes
SESSION_GROUPING_WINDOW_MS = 10 * 60 * 1000  # 10 minutes
DEFAULT_LAST_EVENT_DURATION_MS = 30_000  # 30 seconds


def infer_session_key(event: NormalizedEvent) -> str:
    """Approximate a session from project and a 10-minute time bucket."""
    project_key = event.project or "unknown"
    time_window = epoch_ms(event.timestamp) // SESSION_GROUPING_WINDOW_MS
    return f"{project_key}:{time_window}"


def estimate_durations(events: List[NormalizedEvent]) -> List[EventWithInferredDuration]:
    """Attach an inferred duration to every event.

    Events are grouped by session id, or by project and 10-minute bucket
    when no session id is present. Within a group an explicit duration is
    kept as-is; otherwise the gap to the next event is used, capped at
    MAX_INFERRED_DURATION_MS. The last event of a group gets
    DEFAULT_LAST_EVENT_DURATION_MS.

    Args:
        events: Normalized events in any order

    Returns:
        One EventWithInferredDuration per input event, grouped by session
        (not in input order)
    """
    sorted_events = sorted(events, key=lambda e: e.timestamp)

    session_groups: Dict[str, List[NormalizedEvent]] = {}
    for event in sorted_events:
        group_key = event.session_id or infer_session_key(event)
        session_groups.setdefault(group_key, []).append(event)

    results = []
    for group_events in session_groups.values():
        for i, current in enumerate(group_events):
            if current.duration_ms is not None:
                inferred = current.duration_ms
            elif i + 1 < len(group_events):
                gap = epoch_ms(group_events[i + 1].timestamp) - epoch_ms(current.timestamp)
                inferred = min(gap, MAX_INFERRED_DURATION_MS)
            else:
                inferred = min(DEFAULT_LAST_EVENT_DURATION_MS, MAX_INFERRED_DURATION_MS)

            results.append(EventWithInferredDuration.from_event(current, inferred))

    return results
