"""
CLI commands for computing rankings and inspecting weight profiles.

Examples:
    leaguerank init-db
    leaguerank rank --fixture data/fixtures/sample_league.json
    leaguerank rank -f data/fixtures/sample_league.json -l demo-dynasty -w 6 --no-persist
    leaguerank weights --learned
"""

import asyncio
from pathlib import Path

import typer
from rich.table import Table

from ..database.init_db import create_database
from ..engine.phase import LeagueFormat, Phase, league_class, segment_key
from ..engine.records import RankingResult
from ..exceptions import RankingEngineError
from .common import console, load_services, setup_logging


def init_db():
    """Create the snapshot, backtest and learned-parameter tables."""
    typer.echo("Initializing database...")
    try:
        create_database()
        typer.echo("✅ Database initialized successfully!")
    except Exception as e:
        typer.echo(f"❌ Database initialization failed: {e}")
        raise typer.Exit(1) from e


def _ranking_table(result: RankingResult) -> Table:
    title = (
        f"League {result.league_id} · {result.season} week {result.week} · "
        f"{result.segment_key} · weights {result.weight_version}"
    )
    table = Table(title=title)
    table.add_column("Rank", justify="right", style="bold")
    table.add_column("Team")
    table.add_column("Composite", justify="right")
    table.add_column("Record", justify="center")
    table.add_column("Win", justify="right")
    table.add_column("Power", justify="right")
    table.add_column("Luck", justify="right")
    table.add_column("Market", justify="right")
    table.add_column("Skill", justify="right")
    table.add_column("Move", justify="right")
    table.add_column("Confidence", justify="center")

    for team in result.teams:
        if team.rank_delta is None:
            move = "new"
        elif team.rank_delta > 0:
            move = f"[green]+{team.rank_delta}[/green]"
        elif team.rank_delta < 0:
            move = f"[red]{team.rank_delta}[/red]"
        else:
            move = "="
        if team.anti_gaming.capped:
            move += " [yellow](capped)[/yellow]"

        record = f"{team.wins}-{team.losses}" + (f"-{team.ties}" if team.ties else "")
        table.add_row(
            str(team.rank),
            team.display_name,
            str(team.composite),
            record,
            str(team.scores.win),
            str(team.scores.power),
            str(team.scores.luck),
            str(team.scores.market),
            str(team.scores.skill),
            move,
            team.data_quality.rating,
        )
    return table


def rank(
    fixture: Path | None = typer.Option(
        None, "--fixture", "-f", help="JSON/YAML league fixture to rank from"
    ),
    league_ids: list[str] = typer.Option(
        [], "--league-id", "-l", help="Leagues to rank (default: every league in the source)"
    ),
    week: int | None = typer.Option(None, "--week", "-w", help="Override the current week"),
    no_persist: bool = typer.Option(False, "--no-persist", help="Do not store snapshots"),
):
    """Compute composite power rankings for one or more leagues."""
    setup_logging()
    try:
        services = load_services(fixture)
    except (OSError, ValueError, KeyError, TypeError) as e:
        console.print(f"❌ Could not load league data: {e}", style="red")
        raise typer.Exit(1) from e

    ids = league_ids or sorted(services.source.leagues)
    if not ids:
        console.print("😞 No leagues to rank. Pass --fixture or set LEAGUE_FIXTURE.", style="yellow")
        raise typer.Exit(1)

    outcomes = asyncio.run(services.engine.rank_leagues(ids, week=week, persist=not no_persist))

    failed = False
    for league_id, outcome in outcomes.items():
        if isinstance(outcome, Exception):
            failed = True
            console.print(f"❌ League {league_id}: {outcome}", style="red")
            continue
        console.print(_ranking_table(outcome))
        if outcome.cold_start:
            console.print("ℹ️  No previous week stored: rankings are unconstrained.")
        if outcome.missing_sources:
            console.print(
                f"⚠️  Degraded inputs: {', '.join(outcome.missing_sources)}", style="yellow"
            )

    if failed:
        raise typer.Exit(1)


def weights(
    learned: bool = typer.Option(
        False, "--learned", help="Apply the active learned parameters of each segment"
    ),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the weight cache"),
):
    """Show the resolved weight profile for every phase and league format."""
    setup_logging()
    services = load_services()
    try:
        config = services.weights.refresh() if refresh else services.weights.config()
    except RankingEngineError as e:
        console.print(f"❌ Could not resolve weights: {e}", style="red")
        raise typer.Exit(1) from e

    table = Table(title=f"Composite weights · version {config.version}")
    table.add_column("Phase")
    table.add_column("Format")
    for name in ("win", "power", "luck", "market", "skill", "draft_gain", "future_capital"):
        table.add_column(name, justify="right")
    table.add_column("total", justify="right", style="bold")

    for phase in Phase:
        for fmt in LeagueFormat:
            is_dynasty = fmt == LeagueFormat.DYNASTY
            params = None
            if learned:
                # Learned parameters are stored per superflex/1QB class; show the SF one
                cls = league_class(is_dynasty, True)
                params = services.params.active(segment_key(cls, phase), cls)
            profile = services.weights.resolve(phase, is_dynasty, params)
            values = profile.model_dump()
            table.add_row(
                phase.value,
                fmt.value,
                *(f"{values[name]:.3f}" for name in values),
                f"{profile.total:.3f}",
            )
    console.print(table)
