"""
CLI interface for cushare.

Reports how Claude Code usage splits between model families.
"""

import logging
import sys
from datetime import datetime
from typing import List, Optional

import typer
import yaml
from rich.console import Console

from cushare.cli.formatting import (
    format_csv,
    format_json,
    format_today_json,
    print_report,
    print_today_report,
)
from cushare.config.loader import Settings, load_default_settings, load_settings
from cushare.core.aggregator import AggregationOptions, Grouping
from cushare.core.analysis import UsageAnalysisError, analyze_usage, collect_events
from cushare.core.session_blocks import generate_today_report
from cushare.core.timezones import parse_date_option, resolve_timezone
from cushare.logging_config import setup_logging
from cushare.logs.reader import ParseOptions

logger = logging.getLogger(__name__)

app = typer.Typer(help="Claude Code usage share by model family.")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

SINCE_HELP = "Start date (ISO format or YYYY-MM-DD)"
UNTIL_HELP = "End date (ISO format or YYYY-MM-DD)"

TZ_OPTION = typer.Option(None, "--tz", help="Timezone for date filtering and grouping (default: local)")
PATH_OPTION = typer.Option(None, "--path", "-p", help="Custom log file or directory (can be repeated)")
PROJECT_OPTION = typer.Option(None, "--project", help="Filter by project name/path substring")
JSON_OPTION = typer.Option(False, "--json", help="Output JSON instead of table")
CSV_OPTION = typer.Option(False, "--csv", help="Output CSV instead of table")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to settings YAML file")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")

# Raised by settings loading, date parsing and analysis; reported and exit 1
USER_ERRORS = (UsageAnalysisError, ValueError, FileNotFoundError, yaml.YAMLError)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """cushare CLI."""
    if ctx.invoked_subcommand is None:
        console.print("cushare - Use --help to see available commands")


def _load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return load_settings(config_path)
    return load_default_settings()


def _search_paths(path: Optional[List[str]], settings: Settings) -> Optional[List[str]]:
    if path:
        return list(path)
    if settings.paths:
        return list(settings.paths)
    return None


def _parse_window(
    since: Optional[str],
    until: Optional[str],
    tz_name: Optional[str],
):
    tz = resolve_timezone(tz_name)
    since_dt: Optional[datetime] = parse_date_option(since, tz) if since else None
    until_dt: Optional[datetime] = parse_date_option(until, tz) if until else None
    if since_dt and until_dt and since_dt > until_dt:
        raise ValueError("--since must not be after --until")
    return since_dt, until_dt


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/] {error}")
    sys.exit(EXIT_CODE_FAIL)


def _run_report(
    group_by: Grouping,
    since: Optional[str],
    until: Optional[str],
    tz: Optional[str],
    path: Optional[List[str]],
    project: Optional[str],
    as_json: bool,
    as_csv: bool,
    config: Optional[str],
    verbose: bool,
) -> None:
    """Shared body of the all-time, daily and monthly commands."""
    setup_logging(logging.DEBUG if verbose else None)

    try:
        if as_json and as_csv:
            raise ValueError("--json and --csv cannot be used together")

        settings = _load_settings(config)
        tz_name = tz or settings.timezone
        since_dt, until_dt = _parse_window(since, until, tz_name)

        parse_options = ParseOptions(
            since=since_dt,
            until=until_dt,
            project_filter=project or settings.project,
            timezone=tz_name,
        )
        aggregation_options = AggregationOptions(
            group_by=group_by,
            timezone=tz_name,
            since=since_dt,
            until=until_dt,
        )

        logger.info("Analyzing Claude usage logs")
        result = analyze_usage(
            _search_paths(path, settings),
            parse_options,
            aggregation_options,
        )
    except USER_ERRORS as e:
        _fail(e)

    if as_json:
        typer.echo(format_json(result))
    elif as_csv:
        typer.echo(format_csv(result))
    else:
        print_report(console, result)
    sys.exit(EXIT_CODE_PASS)


@app.command("all-time")
def all_time(
    since: Optional[str] = typer.Option(None, "--since", help=SINCE_HELP),
    until: Optional[str] = typer.Option(None, "--until", help=UNTIL_HELP),
    tz: Optional[str] = TZ_OPTION,
    path: Optional[List[str]] = PATH_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
    as_csv: bool = CSV_OPTION,
    config: Optional[str] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show all-time usage statistics."""
    _run_report(Grouping.ALL_TIME, since, until, tz, path, project, as_json, as_csv, config, verbose)


@app.command()
def daily(
    since: str = typer.Option(..., "--since", help=SINCE_HELP),
    until: str = typer.Option(..., "--until", help=UNTIL_HELP),
    tz: Optional[str] = TZ_OPTION,
    path: Optional[List[str]] = PATH_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
    as_csv: bool = CSV_OPTION,
    config: Optional[str] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show daily usage statistics."""
    _run_report(Grouping.DAY, since, until, tz, path, project, as_json, as_csv, config, verbose)


@app.command()
def monthly(
    since: Optional[str] = typer.Option(None, "--since", help=SINCE_HELP),
    until: Optional[str] = typer.Option(None, "--until", help=UNTIL_HELP),
    tz: Optional[str] = TZ_OPTION,
    path: Optional[List[str]] = PATH_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    as_json: bool = JSON_OPTION,
    as_csv: bool = CSV_OPTION,
    config: Optional[str] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show monthly usage statistics."""
    _run_report(Grouping.MONTH, since, until, tz, path, project, as_json, as_csv, config, verbose)


@app.command()
def today(
    tz: Optional[str] = TZ_OPTION,
    path: Optional[List[str]] = PATH_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    token_limit: Optional[int] = typer.Option(
        None,
        "--token-limit",
        "-t",
        min=1,
        help="Token limit per 5-hour session block (default: highest block seen)"
    ),
    as_json: bool = JSON_OPTION,
    config: Optional[str] = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Show today's usage with live session tracking.

    Usage is split into 5-hour session blocks; the active block reports its
    burn rate and projected total against the token limit.
    """
    setup_logging(logging.DEBUG if verbose else None)

    try:
        settings = _load_settings(config)
        tz_name = tz or settings.timezone
        resolve_timezone(tz_name)

        logger.info("Analyzing today's Claude usage")
        events = collect_events(
            _search_paths(path, settings),
            ParseOptions(project_filter=project or settings.project, timezone=tz_name),
        )
        report = generate_today_report(
            events,
            timezone_name=tz_name,
            token_limit=token_limit or settings.token_limit,
        )
    except USER_ERRORS as e:
        _fail(e)

    if as_json:
        typer.echo(format_today_json(report))
    else:
        print_today_report(console, report)
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()
