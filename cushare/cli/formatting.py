"""
Report rendering for the CLI.

Tables and the today view are printed with rich; CSV and JSON are returned
as strings so they can be piped.
"""

import csv
import io
import json
from datetime import datetime, tzinfo
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cushare.core.aggregator import GroupedReports, ReportResult, UsageReport
from cushare.core.session_blocks import TodayUsageReport
from cushare.core.timezones import resolve_timezone
from cushare.logs.models import ModelBucket

CSV_HEADERS = [
    'Group',
    'Model',
    'Tokens',
    'Tokens %',
    'Prompts',
    'Prompts %',
    'Duration (ms)',
    'Duration %',
    'Duration (formatted)',
]


def format_duration(duration_ms: float) -> str:
    """Format a duration as zero-padded hh:mm."""
    total_minutes = int(duration_ms // 60000)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def format_number(num: float) -> str:
    """Format a count with thousands separators."""
    return f"{round(num):,}"


def format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"


def format_json(result: ReportResult) -> str:
    return json.dumps(result.to_dict(), indent=2)


def format_today_json(report: TodayUsageReport) -> str:
    return json.dumps(report.to_dict(), indent=2)


def format_csv(result: ReportResult) -> str:
    """Render one row per group and model bucket."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    if isinstance(result, GroupedReports):
        for group_key, report in result.reports.items():
            _write_report_rows(writer, report, group_key)
    else:
        _write_report_rows(writer, result.report, result.report.grouping.value)

    return buffer.getvalue().rstrip("\n")


def _write_report_rows(writer, report: UsageReport, group_key: str) -> None:
    for bucket in ModelBucket:
        stats = report.models[bucket]
        writer.writerow([
            group_key,
            bucket.value,
            stats.tokens,
            f"{stats.pct_tokens:.1f}",
            stats.prompts,
            f"{stats.pct_prompts:.1f}",
            round(stats.duration_ms),
            f"{stats.pct_time:.1f}",
            format_duration(stats.duration_ms),
        ])


def build_usage_table(report: UsageReport) -> Table:
    """Build the per-model share table for one report."""
    table = Table(header_style="cyan")
    table.add_column("Model")
    table.add_column("Tokens %", justify="right")
    table.add_column("Prompts %", justify="right")
    table.add_column("Time %", justify="right")
    table.add_column("Totals (tokens/prompts/time hh:mm)", justify="right")

    for bucket in ModelBucket:
        stats = report.models[bucket]
        totals_cell = (
            f"{format_number(stats.tokens)} / {format_number(stats.prompts)} / "
            f"{format_duration(stats.duration_ms)}"
        )
        table.add_row(
            bucket.value,
            f"{stats.pct_tokens:.1f}%",
            f"{stats.pct_prompts:.1f}%",
            f"{stats.pct_time:.1f}%",
            totals_cell,
        )
    return table


def print_usage_report(console: Console, report: UsageReport) -> None:
    console.print(build_usage_table(report))

    opus_pct = report.models[ModelBucket.OPUS].pct_tokens
    sonnet_pct = report.models[ModelBucket.SONNET].pct_tokens
    console.print(f"Plan share: Opus {opus_pct:.1f}%, Sonnet {sonnet_pct:.1f}% (by tokens).")

    total_cost = report.total_cost
    if total_cost > 0:
        cost_input = sum(stats.cost_input for stats in report.models.values())
        cost_output = sum(stats.cost_output for stats in report.models.values())
        console.print(
            f"\n[bold]API Value:[/bold] {format_currency(total_cost)} "
            f"(Input: {format_currency(cost_input)}, Output: {format_currency(cost_output)})"
        )


def print_report(console: Console, result: ReportResult) -> None:
    """Print a single report or one table per group."""
    if isinstance(result, GroupedReports):
        for group_key, report in result.reports.items():
            console.print(f"\n[bold]=== {group_key} ===[/bold]")
            print_usage_report(console, report)
    else:
        print_usage_report(console, result.report)


def _display_timezone(name: str) -> tzinfo:
    try:
        return resolve_timezone(name)
    except ValueError:
        return resolve_timezone(None)


def _clock(moment: datetime, tz: tzinfo) -> str:
    return moment.astimezone(tz).strftime("%H:%M:%S")


def _usage_level(usage_percent: float):
    if usage_percent >= 90:
        return "red", "Critical", "█"
    if usage_percent >= 75:
        return "dark_orange", "High", "▓"
    if usage_percent >= 50:
        return "yellow", "Medium", "▒"
    return "green", "Good", "░"


def _bar(percent: float, length: int, fill_char: str, empty_char: str = "░") -> str:
    filled = max(0, min(length, round(percent / 100 * length)))
    return fill_char * filled + empty_char * (length - filled)


def print_today_report(console: Console, report: TodayUsageReport) -> None:
    """Print today's totals, the live session and the model breakdown."""
    tz = _display_timezone(report.timezone)
    lines: List[str] = []

    console.print(f"\n[bold]Today's Usage Report ({report.date})[/bold]")
    console.print("═" * 50)

    lines.append("\nDaily Totals:")
    lines.append(f"   Tokens: {format_number(report.total_usage.tokens)}")
    lines.append(f"   Prompts: {format_number(report.total_usage.prompts)}")
    lines.append(f"   Duration: {format_duration(report.total_usage.duration_ms)}")
    console.print("\n".join(lines), markup=False, highlight=False)

    session = report.active_session
    if session is not None:
        color, status, fill_char = _usage_level(session.usage_percent)
        console.print(f"\n[{color}]● Active Session ({status} Usage)[/{color}]")

        lines = [
            f"   ├─ Block Started: {_clock(session.start_time, tz)}",
            f"   ├─ Time Remaining: {session.time_remaining}",
            f"   ├─ Burn Rate: {format_number(session.burn_rate)} tokens/min",
            f"   ├─ Token Limit: {format_number(session.token_limit)}",
            f"   ├─ Tokens Remaining: {format_number(session.token_limit - session.tokens_used)}",
        ]
        if session.projected_total:
            warning = "⚠ " if session.projected_total > session.token_limit else ""
            lines.append(f"   ├─ {warning}Projected Total: {format_number(session.projected_total)} tokens")
        lines.append(
            f"   └─ Usage: [{_bar(session.usage_percent, 40, fill_char)}] {session.usage_percent:.1f}%"
        )
        console.print("\n".join(lines), markup=False, highlight=False)
    else:
        console.print("\n[dim]No Active Session[/dim]")
        console.print("   Start using Claude Code to begin a new 5-hour session block.")

    if report.completed_blocks:
        lines = [f"\nCompleted Blocks Today: {len(report.completed_blocks)}"]
        for block in report.completed_blocks:
            span_ms = (block.events[-1].timestamp - block.start_time).total_seconds() * 1000
            lines.append(
                f"   {_clock(block.start_time, tz)}: "
                f"{format_number(block.token_counts.total_tokens)} tokens ({format_duration(span_ms)})"
            )
        console.print("\n".join(lines), markup=False, highlight=False)

    models = sorted(
        ((name, stats) for name, stats in report.models.items() if stats.tokens > 0),
        key=lambda item: item[1].tokens,
        reverse=True,
    )
    if not models:
        return

    console.print("\n[bold]Model Usage Breakdown:[/bold]")
    for name, stats in models:
        share = stats.tokens / report.total_usage.tokens * 100 if report.total_usage.tokens else 0.0
        lines = [
            f"\n   {name}",
            f"   ├─ Tokens: {format_number(stats.tokens)} ({share:.1f}%)",
            f"   │  ├─ Input: {format_number(stats.tokens_in)}",
            f"   │  └─ Output: {format_number(stats.tokens_out)}",
            f"   ├─ Prompts: {format_number(stats.prompts)}",
            f"   └─ Share: [{_bar(share, 20, '█')}] {share:.1f}%",
        ]
        if stats.cost_usd > 0:
            lines.append(f"      API Value: {format_currency(stats.cost_usd)}")
            lines.append(f"      ├─ Input cost: {format_currency(stats.cost_input)}")
            lines.append(f"      └─ Output cost: {format_currency(stats.cost_output)}")
        console.print("\n".join(lines), markup=False, highlight=False)

    total_cost = report.total_cost
    if len(models) > 1 and total_cost > 0:
        cost_input = sum(stats.cost_input for stats in report.models.values())
        cost_output = sum(stats.cost_output for stats in report.models.values())
        console.print(f"\n[bold]Total API Value:[/bold] {escape(format_currency(total_cost))}")
        console.print(
            f"   ├─ Input costs: {format_currency(cost_input)}\n"
            f"   └─ Output costs: {format_currency(cost_output)}\n"
            f"   (What this usage would cost with API pricing)",
            markup=False, highlight=False,
        )
