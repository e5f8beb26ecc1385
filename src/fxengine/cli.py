#!/usr/bin/env python3
"""
FX Fixing Engine Command Line Interface

A CLI over the fixing analytics pipeline providing:
- Per-day analytics, regime and confidence output
- Regime segment listing for chart overlays
- Commentary request payloads for a single date

Usage:
    fxengine analyze --series fixings.csv --manual manual.csv --window 90d
    fxengine segments --series fixings.csv --output json
    fxengine summary --series fixings.csv --manual manual.csv --date 2024-03-01
"""

from __future__ import annotations

import json
import sys
from datetime import date

import click
import yaml

from .config import PipelineConfig
from .data.fixings import (
    ManualAnnotation,
    load_annotations,
    load_series,
    parse_window,
)
from .analytics.series import SeriesPoint
from .pipeline import (
    PipelineResult,
    SeriesMode,
    build_commentary_request,
    build_comparison_request,
    run_window,
)


class EngineCLI:
    """Fixing engine CLI helper class."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    def load(
        self,
        series_path: str,
        manual_path: str | None,
    ) -> tuple[list[SeriesPoint], list[ManualAnnotation]]:
        """Load the official series and optional manual fixings."""
        points = load_series(series_path)
        annotations = load_annotations(manual_path) if manual_path else []
        return points, annotations

    def run(
        self,
        series_path: str,
        manual_path: str | None,
        pair: str | None,
        window: str | None,
        mode: str,
    ) -> PipelineResult:
        """Load inputs and run the pipeline over the requested window."""
        config = self.config
        if window is not None:
            config = config.model_copy(update={"window": parse_window(window)})

        points, annotations = self.load(series_path, manual_path)
        return run_window(points, annotations, config, mode=SeriesMode(mode), pair=pair)


def _run_or_exit(ctx: click.Context, **kwargs) -> PipelineResult:
    engine: EngineCLI = ctx.obj["cli"]
    try:
        return engine.run(**kwargs)
    except (FileNotFoundError, ValueError) as e:
        click.secho(f"Error loading data: {e}", fg="red")
        sys.exit(1)


def series_options(func):
    """Shared options for commands that run the pipeline."""
    func = click.option(
        "--mode", "-m",
        type=click.Choice([m.value for m in SeriesMode], case_sensitive=False),
        default=SeriesMode.OFFICIAL.value,
        help="Series to analyse (effective applies manual overrides)",
        show_default=True,
    )(func)
    func = click.option(
        "--window", "-w",
        type=click.Choice(["15d", "30d", "90d", "365d", "all"], case_sensitive=False),
        default=None,
        help="History window (defaults to the configured window)",
    )(func)
    func = click.option(
        "--pair", "-p",
        default=None,
        help="Currency pair code, e.g. SSPUSD (defaults to the configured pair)",
    )(func)
    func = click.option(
        "--manual", "-M",
        "manual_path",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="CSV or JSON file of manual fixings",
    )(func)
    func = click.option(
        "--series", "-s",
        "series_path",
        type=click.Path(exists=True, dir_okay=False),
        required=True,
        help="CSV or JSON file of official fixings (date, mid)",
    )(func)
    return func


# Create CLI group
@click.group()
@click.version_option(version="1.0.0", prog_name="fxengine")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML configuration file",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose (debug) logging",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """
    FX Fixing Engine CLI

    Deterministic analytics, regime classification and confidence scoring
    for a daily FX fixing series.

    \b
    Examples:
        # Analyse the last 90 days
        fxengine analyze --series fixings.csv

        # Apply manual overrides and export JSON
        fxengine analyze -s fixings.csv -M manual.csv --mode effective --output json

        # Commentary payload for a date
        fxengine summary -s fixings.csv -M manual.csv --date 2024-03-01
    """
    try:
        config = PipelineConfig.from_yaml(config_path) if config_path else PipelineConfig()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        click.secho(f"Error loading config: {e}", fg="red")
        sys.exit(1)

    if verbose:
        config.logging.level = "DEBUG"
    config.logging.configure()

    ctx.ensure_object(dict)
    ctx.obj["cli"] = EngineCLI(config)


@cli.command()
@series_options
@click.option(
    "--output", "-o",
    type=click.Choice(["text", "json", "csv"], case_sensitive=False),
    default="text",
    help="Output format",
    show_default=True,
)
@click.pass_context
def analyze(
    ctx: click.Context,
    series_path: str,
    manual_path: str | None,
    pair: str | None,
    window: str | None,
    mode: str,
    output: str,
) -> None:
    """
    Run the analytics pipeline over a fixing series.

    \b
    Examples:
        fxengine analyze --series fixings.csv --window 30d
        fxengine analyze --series fixings.csv --output csv > analytics.csv
    """
    result = _run_or_exit(
        ctx,
        series_path=series_path,
        manual_path=manual_path,
        pair=pair,
        window=window,
        mode=mode,
    )

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))

    elif output == "csv":
        click.echo(result.to_dataframe().to_csv(index=False), nl=False)

    else:  # text
        click.echo(result.generate_report())


@cli.command()
@series_options
@click.option(
    "--output", "-o",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format",
    show_default=True,
)
@click.pass_context
def segments(
    ctx: click.Context,
    series_path: str,
    manual_path: str | None,
    pair: str | None,
    window: str | None,
    mode: str,
    output: str,
) -> None:
    """List contiguous regime segments."""
    result = _run_or_exit(
        ctx,
        series_path=series_path,
        manual_path=manual_path,
        pair=pair,
        window=window,
        mode=mode,
    )

    if output == "json":
        click.echo(json.dumps(result.to_dict()["segments"], indent=2))
        return

    if not result.segments:
        click.echo("No fixings in the selected window.")
        return

    click.echo(f"{'FROM':<12}{'TO':<12}{'DAYS':>5}  REGIME")
    click.echo("-" * 45)
    for s in result.segments:
        click.echo(
            f"{result.points[s.from_idx].date.isoformat():<12}"
            f"{result.points[s.to_idx].date.isoformat():<12}"
            f"{s.length:>5}  {s.label}"
        )


@cli.command()
@series_options
@click.option(
    "--date", "-d",
    "on_date",
    default=None,
    help="Date (YYYY-MM-DD); defaults to the latest fixing",
)
@click.option(
    "--kind", "-k",
    type=click.Choice(["point_summary", "official_vs_manual"], case_sensitive=False),
    default="point_summary",
    help="Payload kind",
    show_default=True,
)
@click.pass_context
def summary(
    ctx: click.Context,
    series_path: str,
    manual_path: str | None,
    pair: str | None,
    window: str | None,
    mode: str,
    on_date: str | None,
    kind: str,
) -> None:
    """
    Print the commentary request payload for one date.

    The payload is what an external summariser would receive; no request
    is sent.
    """
    result = _run_or_exit(
        ctx,
        series_path=series_path,
        manual_path=manual_path,
        pair=pair,
        window=window,
        mode=mode,
    )

    if result.is_empty:
        click.secho("Error: No fixings in the selected window.", fg="red")
        sys.exit(1)

    if on_date is None:
        idx = len(result) - 1
    else:
        try:
            idx = result.index_of(date.fromisoformat(on_date))
        except ValueError:
            click.secho(f"Error: Invalid date '{on_date}' (expected YYYY-MM-DD)", fg="red")
            sys.exit(1)
        if idx is None:
            click.secho(f"Error: No fixing on {on_date} in the selected window.", fg="red")
            sys.exit(1)

    if kind == "official_vs_manual":
        request = build_comparison_request(result, idx)
        if request is None:
            click.secho(f"Error: No manual fixing on {result.points[idx].date}.", fg="red")
            sys.exit(1)
    else:
        request = build_commentary_request(result, idx)

    click.echo(json.dumps(
        {"request": request.model_dump(), "cache_key": request.stable_key()},
        indent=2,
        ensure_ascii=False,
    ))


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
