"""
delivery-kpi — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load the rule set and the JSON exports.
  4. Classify / score / aggregate.
  5. Print an ASCII report (or JSON with ``--json``) to stdout.

Install and run::

    pip install -e .
    delivery-kpi --help
    delivery-kpi validate-config
    delivery-kpi validate-rules --rules config/rules.json
    delivery-kpi dashboard --tasks tasks.json --rounds rounds.json --depot Rungis
    delivery-kpi forecast --rounds rounds.json
    delivery-kpi compare --tasks tasks.json --rounds rounds.json --depot Rungis --depot Vitry
    delivery-kpi score-round --tasks tasks.json --rounds rounds.json --round "R12 Matin"
    delivery-kpi quality --tasks tasks.json --depot Rungis
    delivery-kpi deviations --tasks tasks.json --rounds rounds.json
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Callable, Optional

import typer

app = typer.Typer(
    name="delivery-kpi",
    help="Last-mile delivery KPIs — rule-based classification and dashboards.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from delivery_kpi.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from delivery_kpi.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_or_exit(loader: Callable[[Path], Any], path: Optional[str], what: str) -> Any:
    """Run a file loader, turning load errors into ``[ERROR]`` + exit 1."""
    if not path:
        return []
    try:
        return loader(Path(path))
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"[ERROR] Invalid {what} file: {exc}", err=True)
        raise typer.Exit(code=1)


def _load_rules_or_exit(config, rules_path: Optional[str]):
    from delivery_kpi.rules.loader import load_rule_set

    return _load_or_exit(load_rule_set, rules_path or config.rules.rules_file, "rules")


def _classifier(rules):
    from delivery_kpi.classification.hubs import HubClassifier

    return HubClassifier(depot_rules=rules.depot_rules, carrier_rules=rules.carrier_rules)


def _parse_scope_or_exit(start: Optional[str], end: Optional[str]):
    from delivery_kpi.models.stats import TimeScope

    try:
        start_day = date.fromisoformat(start) if start else None
        end_day = date.fromisoformat(end) if end else None
    except ValueError as exc:
        typer.echo(f"[ERROR] Invalid date format: {exc}", err=True)
        raise typer.Exit(code=1)

    if start_day and end_day and end_day < start_day:
        typer.echo("[ERROR] --end must not be before --start.", err=True)
        raise typer.Exit(code=1)
    return TimeScope(start=start_day, end=end_day)


def _hub_selection_or_exit(
    depot: Optional[str], store: Optional[str], category: Optional[str]
):
    """(dimension, value) from the mutually exclusive hub filter options."""
    from delivery_kpi.taxonomy.delivery_taxonomy import FilterDimension

    selected = [
        (dim, value)
        for dim, value in (
            (FilterDimension.DEPOT, depot),
            (FilterDimension.STORE, store),
            (FilterDimension.CATEGORY, category),
        )
        if value
    ]
    if len(selected) > 1:
        typer.echo("[ERROR] Use at most one of --depot, --store, --category.", err=True)
        raise typer.Exit(code=1)
    return selected[0] if selected else (FilterDimension.ALL, None)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Rules file:       {config.rules.rules_file}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Log file:         {config.logging.log_file or '-'}")
    typer.echo(f"  N/A label:        {config.reporting.na_label}")
    typer.echo(f"  Decimals:         {config.reporting.decimals}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config is valid.")


@app.command("validate-rules")
def validate_rules(
    rules_path: Optional[str] = typer.Option(
        None,
        "--rules",
        help="Rule set JSON file. Uses [rules] rules_file from config if omitted.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Load a rule set and print its rules in precedence order.

    Exits with code 1 if the file is missing or malformed.
    """
    from delivery_kpi.reporting.formatters import format_rule_set

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    rules = _load_rules_or_exit(config, rules_path)
    typer.echo(format_rule_set(rules))
    typer.echo("")
    typer.echo("[OK] Rule set is valid.")


@app.command("dashboard")
def dashboard(
    tasks_path: str = typer.Option(..., "--tasks", help="Tasks JSON export."),
    rounds_path: str = typer.Option(..., "--rounds", help="Rounds JSON export."),
    rules_path: Optional[str] = typer.Option(None, "--rules", help="Rule set JSON file."),
    nps_path: Optional[str] = typer.Option(None, "--nps", help="NPS batches JSON export."),
    comments_path: Optional[str] = typer.Option(
        None, "--comments", help="Categorised comments JSON export."
    ),
    verbatims_path: Optional[str] = typer.Option(
        None, "--verbatims", help="Processed verbatims JSON export."
    ),
    depot: Optional[str] = typer.Option(None, "--depot", help="Only hubs of this depot."),
    store: Optional[str] = typer.Option(None, "--store", help="Only this hub name."),
    category: Optional[str] = typer.Option(
        None, "--category", help="Only hubs of this category (depot / magasin / autre)."
    ),
    start: Optional[str] = typer.Option(None, "--start", help="First day (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Last day (ISO date)."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compute dashboard KPIs for a hub selection and a day range.

    At most one of --depot / --store / --category may be given.
    """
    from delivery_kpi.aggregation.dashboard import build_dashboard_report
    from delivery_kpi.reporting.formatters import format_dashboard_report
    from delivery_kpi.rules.loader import (
        load_comments,
        load_nps_data,
        load_processed_verbatims,
        load_rounds,
        load_tasks,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    dimension, value = _hub_selection_or_exit(depot, store, category)

    scope = _parse_scope_or_exit(start, end)
    rules = _load_rules_or_exit(config, rules_path)
    tasks = _load_or_exit(load_tasks, tasks_path, "tasks")
    rounds = _load_or_exit(load_rounds, rounds_path, "rounds")
    nps_data = _load_or_exit(load_nps_data, nps_path, "NPS")
    comments = _load_or_exit(load_comments, comments_path, "comments")
    verbatims = _load_or_exit(load_processed_verbatims, verbatims_path, "verbatims")

    report = build_dashboard_report(
        tasks, rounds, comments, nps_data, verbatims,
        dimension, value, scope,
        classifier=_classifier(rules),
        top_n_drivers=config.reporting.top_n_drivers,
    )

    if as_json:
        _echo_json(report.model_dump(mode="json"))
        return

    title = f"{dimension.value} = {value}" if value else "All hubs"
    typer.echo(format_dashboard_report(
        report, title, config.reporting.decimals, config.reporting.na_label,
    ))


@app.command("forecast")
def forecast(
    rounds_path: str = typer.Option(..., "--rounds", help="Rounds JSON export."),
    rules_path: Optional[str] = typer.Option(None, "--rules", help="Rule set JSON file."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Count rounds per depot and carrier by Matin / Soir and BU / Classique."""
    from delivery_kpi.classification.forecast import classify
    from delivery_kpi.reporting.formatters import format_forecast
    from delivery_kpi.rules.loader import load_rounds

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    rules = _load_rules_or_exit(config, rules_path)
    rounds = _load_or_exit(load_rounds, rounds_path, "rounds")

    report = classify(rounds, list(rules.forecast_rules), classifier=_classifier(rules))

    if as_json:
        _echo_json(report.model_dump(mode="json"))
        return
    typer.echo(format_forecast(report))


@app.command("compare")
def compare(
    tasks_path: str = typer.Option(..., "--tasks", help="Tasks JSON export."),
    rounds_path: str = typer.Option(..., "--rounds", help="Rounds JSON export."),
    depots: Optional[list[str]] = typer.Option(
        None,
        "--depot",
        help="Depot to compare (repeatable). All depots found in the data if omitted.",
    ),
    rules_path: Optional[str] = typer.Option(None, "--rules", help="Rule set JSON file."),
    nps_path: Optional[str] = typer.Option(None, "--nps", help="NPS batches JSON export."),
    start: Optional[str] = typer.Option(None, "--start", help="First day (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Last day (ISO date)."),
    as_json: bool = typer.Option(False, "--json", help="Print the leaderboards as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Rank depots against each other on the headline KPIs."""
    from delivery_kpi.aggregation.comparison import compare_depots, kpi_leaderboard
    from delivery_kpi.reporting.formatters import format_leaderboards
    from delivery_kpi.rules.loader import load_nps_data, load_rounds, load_tasks

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    scope = _parse_scope_or_exit(start, end)
    rules = _load_rules_or_exit(config, rules_path)
    tasks = _load_or_exit(load_tasks, tasks_path, "tasks")
    rounds = _load_or_exit(load_rounds, rounds_path, "rounds")
    nps_data = _load_or_exit(load_nps_data, nps_path, "NPS")

    classifier = _classifier(rules)
    selected = depots or classifier.available_depots([*tasks, *rounds])
    if not selected:
        typer.echo("[ERROR] No depot to compare: no hub matches a depot rule.", err=True)
        raise typer.Exit(code=1)

    comparisons = compare_depots(
        selected, tasks, rounds, nps_data=nps_data, time_scope=scope, classifier=classifier,
    )
    boards = kpi_leaderboard(comparisons)

    if as_json:
        _echo_json([b.model_dump(mode="json") for b in boards])
        return
    typer.echo(format_leaderboards(boards, config.reporting.decimals, config.reporting.na_label))


@app.command("score-round")
def score_round_cmd(
    tasks_path: str = typer.Option(..., "--tasks", help="Tasks JSON export."),
    rounds_path: str = typer.Option(..., "--rounds", help="Rounds JSON export."),
    round_name: str = typer.Option(..., "--round", help="Round name to score."),
    on_date: Optional[str] = typer.Option(
        None, "--date", help="Only the round on this day (ISO date)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the stats as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Score every round named --round: durations, rating, punctuality, capacity."""
    from delivery_kpi.reporting.formatters import format_round_stats
    from delivery_kpi.rules.loader import load_rounds, load_tasks
    from delivery_kpi.scoring.rounds import index_tasks_by_round, round_key, score_round
    from delivery_kpi.utils.time_utils import day_key

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    day = _parse_scope_or_exit(on_date, on_date).start
    tasks = _load_or_exit(load_tasks, tasks_path, "tasks")
    rounds = _load_or_exit(load_rounds, rounds_path, "rounds")

    matched = [
        r for r in rounds
        if r.name == round_name and (day is None or day_key(r.date) == day)
    ]
    if not matched:
        typer.echo(f"[ERROR] No round named '{round_name}' found.", err=True)
        raise typer.Exit(code=1)

    by_round = index_tasks_by_round(tasks)
    results = [
        score_round(r, by_round.get(round_key(r.name, r.hub_name, r.date), []))
        for r in matched
    ]

    if as_json:
        _echo_json([s.model_dump(mode="json") for s in results])
        return
    for stats in results:
        typer.echo(format_round_stats(
            stats, config.reporting.decimals, config.reporting.na_label,
        ))


@app.command("quality")
def quality(
    tasks_path: str = typer.Option(..., "--tasks", help="Tasks JSON export."),
    rules_path: Optional[str] = typer.Option(None, "--rules", help="Rule set JSON file."),
    depot: Optional[str] = typer.Option(None, "--depot", help="Only hubs of this depot."),
    store: Optional[str] = typer.Option(None, "--store", help="Only this hub name."),
    category: Optional[str] = typer.Option(
        None, "--category", help="Only hubs of this category (depot / magasin / autre)."
    ),
    start: Optional[str] = typer.Option(None, "--start", help="First day (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Last day (ISO date)."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Customer ratings and alerts per depot, carrier and driver."""
    from delivery_kpi.aggregation.quality import build_quality_report
    from delivery_kpi.reporting.formatters import format_quality
    from delivery_kpi.rules.loader import load_tasks

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    dimension, value = _hub_selection_or_exit(depot, store, category)
    scope = _parse_scope_or_exit(start, end)
    rules = _load_rules_or_exit(config, rules_path)
    tasks = _load_or_exit(load_tasks, tasks_path, "tasks")

    report = build_quality_report(tasks, dimension, value, scope, classifier=_classifier(rules))

    if as_json:
        _echo_json(report.model_dump(mode="json"))
        return
    typer.echo(format_quality(report, config.reporting.decimals, config.reporting.na_label))


@app.command("deviations")
def deviations(
    tasks_path: str = typer.Option(..., "--tasks", help="Tasks JSON export."),
    rounds_path: str = typer.Option(..., "--rounds", help="Rounds JSON export."),
    rules_path: Optional[str] = typer.Option(None, "--rules", help="Rule set JSON file."),
    depot: Optional[str] = typer.Option(None, "--depot", help="Only hubs of this depot."),
    store: Optional[str] = typer.Option(None, "--store", help="Only this hub name."),
    category: Optional[str] = typer.Option(
        None, "--category", help="Only hubs of this category (depot / magasin / autre)."
    ),
    start: Optional[str] = typer.Option(None, "--start", help="First day (ISO date)."),
    end: Optional[str] = typer.Option(None, "--end", help="Last day (ISO date)."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Realized vs planned punctuality, overweight and duration per round group."""
    from delivery_kpi.aggregation.deviation import analyze_deviations
    from delivery_kpi.reporting.formatters import format_deviations
    from delivery_kpi.rules.loader import load_rounds, load_tasks

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    dimension, value = _hub_selection_or_exit(depot, store, category)
    scope = _parse_scope_or_exit(start, end)
    rules = _load_rules_or_exit(config, rules_path)
    tasks = _load_or_exit(load_tasks, tasks_path, "tasks")
    rounds = _load_or_exit(load_rounds, rounds_path, "rounds")

    report = analyze_deviations(
        rounds, tasks, dimension, value, scope, classifier=_classifier(rules),
    )

    if as_json:
        _echo_json(report.model_dump(mode="json"))
        return
    typer.echo(format_deviations(report, config.reporting.decimals, config.reporting.na_label))


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
