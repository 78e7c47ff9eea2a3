#!/usr/bin/env python3
"""
CLI for Order Stats

Commands:
    run      - Run one metric and print the result
    metrics  - List registered metrics
    ranges   - Print the named date ranges resolved for now

Usage:
    python cli.py run order_earnings --range this_month
    python cli.py run gateway_sales --range last_year --output formatted
    python cli.py run order_count --start 2024-01-01 --end 2024-03-31
    python cli.py run most_valuable_customers --filter number=5 --json
    python cli.py ranges
"""

import click
import json
import sys


def get_app_context():
    """Get Flask app context for database access."""
    from app import create_app
    app = create_app({"AUTO_CREATE_TABLES": False})
    return app.app_context()


def parse_filters(filters) -> dict:
    """
    Parse repeated --filter key=value options.

    Raises:
        click.BadParameter: If an item has no '='
    """
    parsed = {}
    for item in filters:
        key, sep, value = item.partition('=')
        key = key.strip()
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {item!r}", param_hint="--filter")
        parsed[key] = value.strip()
    return parsed


@click.group()
@click.version_option(version="1.0.0", prog_name="stats-cli")
def cli():
    """Order Stats CLI - Run store reports from the command line."""
    pass


@cli.command("run")
@click.argument("metric")
@click.option("--range", "range_id", default=None, help="Named date range (e.g. this_month)")
@click.option("--start", default=None, help="Start date (YYYY-MM-DD or ISO datetime)")
@click.option("--end", default=None, help="End date (YYYY-MM-DD or ISO datetime)")
@click.option("--output", type=click.Choice(["raw", "formatted"]), default="raw", help="Output format")
@click.option("--function", "function", default=None, help="Aggregate function (SUM, AVG, COUNT, ...)")
@click.option("--filter", "filters", multiple=True, help="Extra query var as key=value (repeatable)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def run(metric, range_id, start, end, output, function, filters, output_json):
    """
    Run one metric.

    METRIC: Registered metric name (see `metrics`)
    """
    from services.stats import METRIC_REGISTRY, run_metric
    from routes.stats import serialize_value

    if metric not in METRIC_REGISTRY:
        click.secho(f"Unknown metric: {metric}", fg="red")
        click.echo("Run `stats-cli metrics` for the list.")
        sys.exit(1)

    query = parse_filters(filters)
    for key, value in (("range", range_id), ("start", start), ("end", end), ("function", function)):
        if value:
            query[key] = value
    query["output"] = output

    with get_app_context():
        try:
            value = run_metric(metric, query)
        except ValueError as e:
            click.secho(f"Error: {e}", fg="red")
            sys.exit(1)

    value = serialize_value(value)

    if output_json:
        click.echo(json.dumps({"metric": metric, "value": value}, indent=2, default=str))
        return

    if isinstance(value, list):
        click.secho(f"{metric} ({len(value)} rows)", bold=True)
        for row in value:
            click.echo("  " + "  ".join(f"{k}={v}" for k, v in row.items()))
    else:
        click.echo(f"{metric}: {value}")


@cli.command("metrics")
def metrics():
    """List registered metrics."""
    from services.stats import list_metrics

    for item in list_metrics():
        click.echo(f"{item['metric']:<28} {item['description']}")


@cli.command("ranges")
@click.option("--week-start", type=click.IntRange(0, 6), default=None, help="First weekday (0=Monday)")
def ranges(week_start):
    """Print the named date ranges resolved for now."""
    from config import Config
    from constants import resolve_date_ranges

    if week_start is None:
        week_start = Config.STATS_WEEK_START

    for range_id, bounds in resolve_date_ranges(week_start=week_start).items():
        click.echo(f"{range_id:<14} {bounds['start']:%Y-%m-%d %H:%M:%S}  ->  {bounds['end']:%Y-%m-%d %H:%M:%S}")


if __name__ == "__main__":
    cli()
