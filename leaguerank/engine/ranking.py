"""Ranking run orchestration.

One run for one league week:
1. Gather upstream inputs concurrently (bounded timeouts and retries)
2. Resolve phase, league segment, learned params and weight profile
3. Score every team and compute composites
4. Apply anti-gaming constraints against the previous week
5. Persist all snapshots for the week in one batched write

Upstream gaps never fail a run. Missing feeds fall back to neutral defaults
and surface as data-quality caveats. Only a league that cannot be resolved at
all raises LeagueNotFoundError.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

from ..database.repositories import LearnedParamsRepository
from ..database.snapshot_store import SnapshotStore
from ..exceptions import InsufficientSampleError, LeagueNotFoundError, MissingUpstreamDataError
from ..locks import KeyedLocks
from ..providers.base import (
    DemandIndexProvider,
    InjuryFeed,
    LeagueDataSource,
    TradeHistoryProvider,
    ValuationProvider,
)
from ..providers.contracts import InjuryReport, LeagueInputs, ValuationSnapshot
from ..providers.fetch import FetchPolicy, fetch_with_fallback, fetch_with_retry
from .anti_gaming import AntiGamingInput, apply_anti_gaming
from .identity import resolve_manager_identity
from .phase import Phase, league_segment
from .records import RankingResult, TeamScoreRecord
from .scoring import score_league
from .weights import WeightConfig, WeightResolver

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class RankingEngine:
    """Produces ranked TeamScoreRecords for a league week.

    Args:
        league_source: League settings, rosters, scores, bracket and draft
        valuations: Player market values
        trades: Completed trade history
        injuries: Injury designations
        demand: League demand index per position
        snapshots: Snapshot store for previous/current weeks
        weights: Weight resolver
        params: Learned parameter repository
        policy: Timeout/retry policy for every upstream call
        clock: Returns the current time (injectable for tests)
    """

    def __init__(
        self,
        league_source: LeagueDataSource,
        valuations: ValuationProvider,
        trades: TradeHistoryProvider,
        injuries: InjuryFeed,
        demand: DemandIndexProvider,
        snapshots: SnapshotStore,
        weights: WeightResolver,
        params: LearnedParamsRepository,
        policy: FetchPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
        min_demand_sample: int = 30,
    ):
        self.league_source = league_source
        self.valuations = valuations
        self.trades = trades
        self.injuries = injuries
        self.demand = demand
        self.snapshots = snapshots
        self.weights = weights
        self.params = params
        self.policy = policy or FetchPolicy()
        self.clock = clock
        self.min_demand_sample = min_demand_sample
        self._write_locks = KeyedLocks()

    async def gather_inputs(self, league_id: str, week: int | None = None) -> LeagueInputs:
        """Fetch everything a ranking run needs for one league.

        Raises:
            LeagueNotFoundError: league settings or rosters cannot be resolved
        """
        try:
            league = await fetch_with_retry(
                "league", lambda: self.league_source.get_league(league_id), self.policy
            )
            rosters = await fetch_with_retry(
                "rosters", lambda: self.league_source.get_rosters(league_id), self.policy
            )
        except MissingUpstreamDataError as e:
            raise LeagueNotFoundError(f"League {league_id} could not be loaded: {e}") from e

        if league is None:
            raise LeagueNotFoundError(f"League {league_id} not found")
        if week is not None:
            league = replace(league, week=week)

        policy = self.policy
        phase, _, _ = league_segment(league)
        through_week = max(league.week, 0)

        matchups, valuations, trades, demand, bracket, picks, synced = await asyncio.gather(
            fetch_with_fallback(
                "matchups",
                lambda: self.league_source.get_matchups(league_id, through_week),
                [],
                policy,
            ),
            fetch_with_fallback(
                "valuations", lambda: self.valuations.get_values(league), ValuationSnapshot(), policy
            ),
            fetch_with_fallback("trades", lambda: self.trades.get_trades(league_id), [], policy),
            fetch_with_fallback("demand", lambda: self.demand.get_demand(league_id), {}, policy),
            fetch_with_fallback(
                "bracket",
                lambda: self._bracket_if_needed(league_id, phase),
                [],
                policy,
            ),
            fetch_with_fallback(
                "draft", lambda: self.league_source.get_draft_picks(league_id), [], policy
            ),
            fetch_with_fallback(
                "league_sync", lambda: self.league_source.get_last_synced(league_id), None, policy
            ),
        )

        player_ids = sorted({p for r in rosters for p in r.players if p and p != "0"})
        injuries = await fetch_with_fallback(
            "injuries", lambda: self.injuries.get_injuries(player_ids), InjuryReport(), policy
        )

        outcomes = {
            "matchups": matchups,
            "valuations": valuations,
            "trades": trades,
            "demand": demand,
            "bracket": bracket,
            "draft": picks,
            "injuries": injuries,
        }
        missing = [name for name, outcome in outcomes.items() if not outcome.ok]
        if missing:
            logger.warning(f"League {league_id}: degraded inputs, missing {', '.join(missing)}")

        return LeagueInputs(
            league=league,
            rosters=rosters,
            matchups=matchups.value,
            valuations=valuations.value,
            injuries=injuries.value,
            trades=trades.value,
            demand=demand.value,
            bracket=bracket.value,
            draft_picks=picks.value,
            synced_at=synced.value,
            missing_sources=missing,
        )

    async def _bracket_if_needed(self, league_id: str, phase: Phase):
        if phase != Phase.POST_SEASON:
            return []
        return await self.league_source.get_playoff_bracket(league_id)

    def rank_inputs(self, inputs: LeagueInputs, config: WeightConfig | None = None) -> RankingResult:
        """Score, order and constrain a gathered league. No I/O besides reads.

        `config` is the already loaded weight document; when omitted it is read
        from the resolver (which may load it synchronously on a cache miss).
        """
        league = inputs.league
        if not inputs.rosters:
            raise InsufficientSampleError(f"League {league.league_id} has no rosters")

        now = self.clock()
        phase, league_cls, seg_key = league_segment(league)
        params = self.params.active(seg_key, league_cls)
        config = config or self.weights.config()
        profile = self.weights.resolve(phase, league.is_dynasty, params, config=config)

        scored = score_league(inputs, phase, profile, params, now, self.min_demand_sample)
        previous = self.snapshots.previous(league.league_id, league.season, league.week)

        results = apply_anti_gaming(
            [AntiGamingInput(t.roster.roster_id, t.composite, t.metrics) for t in scored],
            previous,
        )
        by_roster = {t.roster.roster_id: t for t in scored}

        teams = []
        for result in results:
            team = by_roster[result.roster_id]
            roster = team.roster
            prev = previous.get(roster.roster_id)
            prev_rank = prev.rank if prev else None
            teams.append(
                TeamScoreRecord(
                    roster_id=roster.roster_id,
                    owner_id=roster.owner_id,
                    display_name=resolve_manager_identity(roster),
                    scores=team.scores,
                    composite=team.composite,
                    rank=result.adjusted_rank,
                    composite_rank=result.original_rank,
                    prev_rank=prev_rank,
                    rank_delta=prev_rank - result.adjusted_rank if prev_rank is not None else None,
                    wins=roster.wins,
                    losses=roster.losses,
                    ties=roster.ties,
                    points_for=roster.points_for,
                    points_against=roster.points_against,
                    expected_wins=round(team.expected_wins, 2),
                    luck_delta=round(team.luck_delta, 2),
                    metrics=team.metrics,
                    anti_gaming=result,
                    data_quality=team.data_quality,
                )
            )
        teams.sort(key=lambda t: t.rank)

        return RankingResult(
            league_id=league.league_id,
            season=league.season,
            week=league.week,
            phase=phase,
            segment_key=seg_key,
            weight_version=config.version,
            learned_params=params,
            cold_start=not previous,
            teams=tuple(teams),
            computed_at=now,
            missing_sources=tuple(inputs.missing_sources),
        )

    async def rank_league(
        self, league_id: str, week: int | None = None, persist: bool = True
    ) -> RankingResult:
        inputs = await self.gather_inputs(league_id, week)
        config = await self.weights.aconfig()
        result = self.rank_inputs(inputs, config)

        if persist:
            key = (result.league_id, result.season, result.week)
            async with self._write_locks.hold(key):
                self.snapshots.upsert(
                    result.league_id,
                    result.season,
                    result.week,
                    list(result.teams),
                    segment_key=result.segment_key,
                )

        logger.info(
            f"Ranked league {league_id} week {result.week} ({result.segment_key}, "
            f"{len(result.teams)} teams, cold_start={result.cold_start})"
        )
        return result

    async def rank_leagues(
        self, league_ids: list[str], week: int | None = None, persist: bool = True
    ) -> dict[str, RankingResult | Exception]:
        """Rank several leagues concurrently. One failure never affects the others."""
        outcomes = await asyncio.gather(
            *(self.rank_league(league_id, week, persist) for league_id in league_ids),
            return_exceptions=True,
        )
        results: dict[str, RankingResult | Exception] = {}
        for league_id, outcome in zip(league_ids, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Ranking failed for league {league_id}: {outcome}")
            results[league_id] = outcome
        return results
