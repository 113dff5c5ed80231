"""Wiring of the engine, evaluator and learner from settings.

The API and the CLI both build their collaborators here, so a deployment
changes storage or upstream sources in one place.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import sessionmaker

from .backtest.evaluator import BacktestEvaluator
from .config.settings import Settings
from .database.connection import create_session_factory
from .database.init_db import create_database
from .database.repositories import BacktestRepository, LearnedParamsRepository
from .database.snapshot_store import SqlSnapshotStore
from .engine.ranking import RankingEngine, utc_now
from .engine.weights import WeightResolver
from .learning.learner import ParameterLearner
from .providers.fetch import FetchPolicy
from .providers.memory import InMemoryLeagueSource, load_fixture

logger = logging.getLogger(__name__)


@dataclass
class Services:
    engine: RankingEngine
    evaluator: BacktestEvaluator
    learner: ParameterLearner
    snapshots: SqlSnapshotStore
    backtests: BacktestRepository
    params: LearnedParamsRepository
    weights: WeightResolver
    source: InMemoryLeagueSource


def build_services(
    settings: Settings,
    source: InMemoryLeagueSource | None = None,
    session_factory: sessionmaker | None = None,
    weights: WeightResolver | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    """Build every service for one process.

    Args:
        settings: Application settings
        source: Upstream provider; defaults to the configured fixture (or empty)
        session_factory: Database sessions; defaults to settings.database_url
        weights: Weight resolver; defaults to settings.weight_config_source
        clock: Current time for ranking runs
    """
    if session_factory is None:
        session_factory = create_session_factory(settings.database_url, settings.database_echo)
        create_database(session_factory.kw["bind"])

    if source is None:
        if settings.league_fixture:
            source = load_fixture(settings.league_fixture)
        else:
            logger.warning("No league fixture configured; upstream source is empty")
            source = InMemoryLeagueSource()

    weights = weights or WeightResolver.from_settings(settings)
    policy = FetchPolicy.from_settings(settings)

    snapshots = SqlSnapshotStore(session_factory)
    backtests = BacktestRepository(session_factory)
    params = LearnedParamsRepository(session_factory)

    engine = RankingEngine(
        league_source=source,
        valuations=source,
        trades=source,
        injuries=source,
        demand=source,
        snapshots=snapshots,
        weights=weights,
        params=params,
        policy=policy,
        clock=clock,
        min_demand_sample=settings.min_demand_sample,
    )
    evaluator = BacktestEvaluator(
        snapshots=snapshots,
        league_source=source,
        results=backtests,
        weights=weights,
        policy=policy,
        min_teams=settings.backtest_min_teams,
        horizon_weeks=settings.backtest_horizon_weeks,
        season_end_week=settings.season_end_week,
    )
    learner = ParameterLearner(
        results=backtests,
        params=params,
        evaluator=evaluator,
        min_results=settings.learning_min_results,
        max_results=settings.learning_max_results,
        max_movement=settings.learning_max_weekly_movement,
        improvement_margin=settings.learning_improvement_margin,
    )
    return Services(
        engine=engine,
        evaluator=evaluator,
        learner=learner,
        snapshots=snapshots,
        backtests=backtests,
        params=params,
        weights=weights,
        source=source,
    )
