"""Upstream data contracts and provider implementations."""

from .base import (
    DemandIndexProvider,
    InjuryFeed,
    LeagueDataSource,
    TradeHistoryProvider,
    ValuationProvider,
)
from .fetch import FetchOutcome, FetchPolicy, fetch_with_fallback, fetch_with_retry
from .memory import InMemoryLeagueSource, LeagueFixture, load_fixture

__all__ = [
    "DemandIndexProvider",
    "FetchOutcome",
    "FetchPolicy",
    "InMemoryLeagueSource",
    "InjuryFeed",
    "LeagueDataSource",
    "LeagueFixture",
    "TradeHistoryProvider",
    "ValuationProvider",
    "fetch_with_fallback",
    "fetch_with_retry",
    "load_fixture",
]
