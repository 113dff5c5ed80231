"""
CLI commands for backtesting stored rankings and learning composite parameters.

Examples:
    leaguerank backtest -l demo-dynasty -s 2024 --segment DYN_SF_inseason
    leaguerank learn --segment DYN_SF_inseason -l demo-dynasty
"""

import asyncio
from pathlib import Path

import typer
from rich.table import Table

from ..backtest.evaluator import TARGETS
from ..database.repositories import STATUS_APPLIED
from ..engine.params import LearnedParams
from .common import console, load_services, setup_logging


def backtest(
    league_id: str = typer.Option(..., "--league-id", "-l", help="League to evaluate"),
    season: str = typer.Option(..., "--season", "-s", help="Season of the stored snapshots"),
    segment: str = typer.Option(
        ..., "--segment", help="Segment key the results count towards (e.g. DYN_SF_inseason)"
    ),
    max_week: int | None = typer.Option(None, "--max-week", help="Last week to evaluate"),
    target: list[str] = typer.Option(
        [], "--target", "-t", help=f"Targets to evaluate (default: {', '.join(TARGETS)})"
    ),
    fixture: Path | None = typer.Option(None, "--fixture", "-f", help="League fixture"),
):
    """Evaluate every stored week against what happened afterwards."""
    setup_logging()
    unknown = [t for t in target if t not in TARGETS]
    if unknown:
        console.print(f"❌ Unknown target(s): {', '.join(unknown)}", style="red")
        console.print(f"Valid options: {', '.join(TARGETS)}")
        raise typer.Exit(1)

    services = load_services(fixture)
    results = asyncio.run(
        services.evaluator.run_sweep(
            league_id, season, segment, max_week=max_week, targets=tuple(target) or TARGETS
        )
    )
    if not results:
        console.print("😞 Nothing to evaluate: no stored weeks with outcome data.", style="yellow")
        return

    table = Table(title=f"Backtest · league {league_id} · {season}")
    table.add_column("Week", justify="right")
    table.add_column("Target")
    table.add_column("Teams", justify="right")
    table.add_column("Brier", justify="right")
    table.add_column("ECE", justify="right")
    table.add_column("NDCG", justify="right")
    table.add_column("Spearman", justify="right")
    for r in results:
        table.add_row(
            str(r.week_evaluated),
            r.target_type,
            str(r.n_teams),
            f"{r.brier_score:.4f}",
            f"{r.ece:.4f}",
            f"{r.ndcg:.4f}",
            f"{r.spearman:+.4f}",
        )
    console.print(table)

    summary = services.backtests.aggregate(segment, season)
    if not summary.empty:
        console.print("\n📊 Averages by target:")
        console.print(summary.to_string())


def _params_row(label: str, params: LearnedParams) -> list[str]:
    return [label, *(f"{value:.3f}" for value in params.as_dict().values())]


def learn(
    segment: str = typer.Option(..., "--segment", help="Segment key (e.g. DYN_SF_inseason)"),
    league_id: str | None = typer.Option(
        None, "--league-id", "-l", help="League whose stored weeks are re-scored per candidate"
    ),
    force: bool = typer.Option(False, "--force", help="Run even if this week's cycle already ran"),
    fixture: Path | None = typer.Option(None, "--fixture", "-f", help="League fixture"),
):
    """Run one parameter learning cycle for a segment."""
    setup_logging()
    services = load_services(fixture)
    outcome = asyncio.run(services.learner.run_cycle(segment, league_id=league_id, force=force))
    if outcome is None:
        console.print(
            f"ℹ️  Learning for {segment} already ran this week. Use --force to run again.",
            style="yellow",
        )
        return

    style = "green" if outcome.status == STATUS_APPLIED else "yellow"
    console.print(f"Learning cycle for {segment}: {outcome.status}", style=style)
    console.print(
        f"   Evidence: {outcome.sample_size} results · method: {outcome.method or 'n/a'} · "
        f"candidates: {outcome.candidates_evaluated}"
    )
    if outcome.baseline_score is not None:
        console.print(
            f"   Baseline score: {outcome.baseline_score:.4f} · best: {outcome.learned_score:.4f}"
        )

    table = Table()
    table.add_column("")
    for name in outcome.current.as_dict():
        table.add_column(name, justify="right")
    table.add_row(*_params_row("current", outcome.current))
    table.add_row(*_params_row("learned", outcome.learned))
    console.print(table)
    for note in outcome.notes:
        console.print(f"   • {note}")
