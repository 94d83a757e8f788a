"""
Unit tests for report rendering.
"""

import csv
import io
import json
from datetime import datetime, timezone

import pytest
from rich.console import Console

from cushare.cli.formatting import (
    CSV_HEADERS,
    format_csv,
    format_currency,
    format_duration,
    format_json,
    format_number,
    format_today_json,
    print_report,
    print_today_report,
)
from cushare.core.aggregator import AggregationOptions, Grouping, aggregate_events
from cushare.core.session_blocks import generate_today_report
from cushare.logs.models import ModelBucket, NormalizedEvent


def _event(day: int, hour: int, model: ModelBucket, model_name: str, tokens: int, duration_ms: float):
    return NormalizedEvent(
        timestamp=datetime(2024, 1, day, hour, 0, tzinfo=timezone.utc),
        model=model,
        model_name=model_name,
        tokens_in=tokens // 2,
        tokens_out=tokens - tokens // 2,
        duration_ms=duration_ms,
        session_id=f"{day}-{hour}",
    )


@pytest.fixture
def events():
    return [
        _event(15, 10, ModelBucket.OPUS, "claude-opus-4-1", 3000, 15000),
        _event(15, 11, ModelBucket.SONNET, "claude-sonnet-4", 1500, 8000),
        _event(16, 9, ModelBucket.SONNET, "claude-sonnet-4", 1000, 5000),
    ]


def _render(callback) -> str:
    console = Console(file=io.StringIO(), width=120, color_system=None)
    callback(console)
    return console.file.getvalue()


class TestHelpers:
    """Test value formatting helpers."""

    @pytest.mark.parametrize("duration_ms,expected", [
        (0, "00:00"),
        (59999, "00:00"),
        (60000, "00:01"),
        (3660000, "01:01"),
        (7380000, "02:03"),
    ])
    def test_format_duration(self, duration_ms, expected):
        """Durations render as zero-padded hh:mm with minutes floored."""
        assert format_duration(duration_ms) == expected

    def test_format_number(self):
        assert format_number(1234567) == "1,234,567"
        assert format_number(0) == "0"

    def test_format_currency(self):
        assert format_currency(1234.5) == "$1,234.50"

    def test_format_currency_keeps_sign(self):
        """Negative amounts are not shown as positive."""
        assert format_currency(-1234.5) == "-$1,234.50"
        assert format_currency(0) == "$0.00"


class TestMachineFormats:
    """Test CSV and JSON output."""

    def test_json_single_report(self, events):
        """Verify JSON output parses and keeps bucket names."""
        result = aggregate_events(events, AggregationOptions(timezone="UTC"))

        data = json.loads(format_json(result))

        assert data["totals"]["tokens"] == 5500
        assert data["models"]["Sonnet"]["tokens"] == 2500

    def test_json_grouped(self, events):
        """Grouped JSON is keyed by calendar day."""
        result = aggregate_events(events, AggregationOptions(group_by=Grouping.DAY, timezone="UTC"))

        data = json.loads(format_json(result))

        assert list(data) == ["2024-01-15", "2024-01-16"]

    def test_csv_single_report(self, events):
        """One row per bucket, labelled with the grouping."""
        result = aggregate_events(events, AggregationOptions(timezone="UTC"))

        rows = list(csv.reader(io.StringIO(format_csv(result))))

        assert rows[0] == CSV_HEADERS
        assert len(rows) == 4
        assert rows[1] == ["all-time", "Opus", "3000", "54.5", "1", "33.3", "15000", "53.6", "00:00"]
        assert rows[2][:4] == ["all-time", "Sonnet", "2500", "45.5"]

    def test_csv_grouped(self, events):
        """Grouped CSV repeats the bucket rows for every group."""
        result = aggregate_events(events, AggregationOptions(group_by=Grouping.DAY, timezone="UTC"))

        rows = list(csv.reader(io.StringIO(format_csv(result))))

        assert len(rows) == 1 + 2 * 3
        assert [row[0] for row in rows[1:]] == ["2024-01-15"] * 3 + ["2024-01-16"] * 3


class TestTableOutput:
    """Test rich table rendering."""

    def test_single_report_table(self, events):
        """Verify the table and plan share footer."""
        result = aggregate_events(events, AggregationOptions(timezone="UTC"))

        output = _render(lambda console: print_report(console, result))

        assert "Tokens %" in output
        assert "Opus" in output
        assert "Plan share: Opus 54.5%, Sonnet 45.5% (by tokens)." in output
        assert "API Value:" in output

    def test_grouped_headers(self, events):
        """Every group gets its own header."""
        result = aggregate_events(events, AggregationOptions(group_by=Grouping.MONTH, timezone="UTC"))

        output = _render(lambda console: print_report(console, result))

        assert "=== 2024-01 ===" in output

    def test_no_api_value_for_unpriced_models(self):
        """The API value line is omitted when nothing is priced."""
        events = [_event(15, 10, ModelBucket.OTHER, "local-model", 100, 1000)]
        result = aggregate_events(events, AggregationOptions(timezone="UTC"))

        output = _render(lambda console: print_report(console, result))

        assert "API Value" not in output


class TestTodayOutput:
    """Test the today report rendering."""

    def test_active_session(self, events):
        """Verify totals, session status and model breakdown."""
        report = generate_today_report(
            events,
            timezone_name="UTC",
            token_limit=4000,
            now=datetime(2024, 1, 15, 11, 5, tzinfo=timezone.utc),
        )

        output = _render(lambda console: print_today_report(console, report))

        assert "Today's Usage Report (2024-01-15)" in output
        assert "Tokens: 4,500" in output
        assert "Active Session (Critical Usage)" in output
        assert "Token Limit: 4,000" in output
        assert "Model Usage Breakdown:" in output
        assert "Total API Value:" in output

    def test_no_active_session(self, events):
        """Verify the idle message."""
        report = generate_today_report(
            events,
            timezone_name="UTC",
            now=datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc),
        )

        output = _render(lambda console: print_today_report(console, report))

        assert "No Active Session" in output
        assert "Completed Blocks Today: 1" in output

    def test_today_json(self, events):
        """Verify today JSON output parses."""
        report = generate_today_report(
            events,
            timezone_name="UTC",
            now=datetime(2024, 1, 16, 9, 30, tzinfo=timezone.utc),
        )

        data = json.loads(format_today_json(report))

        assert data["date"] == "2024-01-16"
        assert data["total_usage"]["tokens"] == 1000
        assert data["active_session"]["tokens_used"] == 1000
