"""
Unit tests for duration estimation.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from cushare.core.duration import (
    DEFAULT_LAST_EVENT_DURATION_MS,
    MAX_INFERRED_DURATION_MS,
    estimate_durations,
    infer_session_key,
)
from cushare.logs.models import ModelBucket, NormalizedEvent

BASE_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def _event(
    offset_seconds: float,
    session_id: Optional[str] = "s1",
    duration_ms: Optional[float] = None,
    project: Optional[str] = None,
) -> NormalizedEvent:
    return NormalizedEvent(
        timestamp=BASE_TIME + timedelta(seconds=offset_seconds),
        model=ModelBucket.SONNET,
        model_name="claude-sonnet-4",
        tokens_in=10,
        tokens_out=10,
        duration_ms=duration_ms,
        session_id=session_id,
        project=project,
    )


def _by_time(results):
    return sorted(results, key=lambda e: e.timestamp)


class TestEstimateDurations:
    """Test gap-based duration inference."""

    def test_empty(self):
        """Verify no events yields no results."""
        assert estimate_durations([]) == []

    def test_count_preserved(self):
        """Every input event gets exactly one result."""
        events = [_event(0), _event(5, session_id=None), _event(30, session_id="s2")]
        assert len(estimate_durations(events)) == len(events)

    def test_gap_to_next_event(self):
        """Verify the gap is used and capped, and the last event gets the default."""
        results = _by_time(estimate_durations([_event(210), _event(0), _event(10)]))

        assert [e.inferred_duration_ms for e in results] == [
            10_000,
            MAX_INFERRED_DURATION_MS,
            DEFAULT_LAST_EVENT_DURATION_MS,
        ]

    def test_explicit_duration_kept(self):
        """Explicit durations are used verbatim, even above the cap."""
        results = _by_time(estimate_durations([_event(0, duration_ms=500_000), _event(10)]))

        assert results[0].inferred_duration_ms == 500_000
        assert results[0].duration_ms == 500_000

    def test_sessions_are_independent(self):
        """Gaps are only measured within one session."""
        results = _by_time(estimate_durations([_event(0, session_id="a"), _event(10, session_id="b")]))

        assert all(e.inferred_duration_ms == DEFAULT_LAST_EVENT_DURATION_MS for e in results)

    def test_inferred_session_without_id(self):
        """Events without a session id group by project and 10-minute bucket."""
        results = _by_time(estimate_durations([
            _event(0, session_id=None, project="app"),
            _event(20, session_id=None, project="app"),
            _event(20, session_id=None, project="other"),
        ]))

        app_events = [e for e in results if e.project == "app"]
        assert [e.inferred_duration_ms for e in app_events] == [20_000, DEFAULT_LAST_EVENT_DURATION_MS]

    def test_inferred_durations_never_exceed_cap(self):
        """Without explicit durations nothing exceeds the cap."""
        events = [_event(i * 600) for i in range(5)]
        results = estimate_durations(events)
        assert all(e.inferred_duration_ms <= MAX_INFERRED_DURATION_MS for e in results)


class TestInferSessionKey:
    """Test fallback session keys."""

    def test_unknown_project(self):
        """Missing projects share the 'unknown' prefix."""
        assert infer_session_key(_event(0, session_id=None)).startswith("unknown:")

    def test_ten_minute_buckets(self):
        """Events in different 10-minute buckets get different keys."""
        first = infer_session_key(_event(0, project="app"))
        same = infer_session_key(_event(60, project="app"))
        later = infer_session_key(_event(601, project="app"))

        assert first == same
        assert first != later
