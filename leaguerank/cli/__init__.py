"""CLI interface for the league ranking engine."""

import typer

from .evaluation import backtest, learn
from .rankings import init_db, rank, weights

main = typer.Typer(help="League ranking engine CLI")

main.command(name="init-db")(init_db)
main.command()(rank)
main.command()(weights)
main.command()(backtest)
main.command()(learn)
