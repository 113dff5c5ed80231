"""Backtest evaluator: how well did a stored week's rankings predict what followed?

Three prediction targets are supported:

- win_pct_3w: composite/100 against head-to-head win rate over the next weeks
- playoff_qual: rank-implied probability against finishing in the top half
- championship_finish: rank-implied finish against the normalized final rank

Passing candidate parameters re-scores the stored sub-scores under the
adjusted weight profile, which is how the parameter learner compares
candidates without re-fetching upstream data.
"""

import logging
from collections import defaultdict

from ..database.repositories import BacktestRepository
from ..database.snapshot_store import SnapshotStore
from ..engine.composite import compute_composite
from ..engine.params import LearnedParams
from ..engine.phase import Phase, split_segment_key
from ..engine.records import BacktestResult, StoredSnapshot, TeamBacktestDetail
from ..engine.weights import WeightConfig, WeightResolver
from ..exceptions import InsufficientSampleError, MissingUpstreamDataError, RankingEngineError
from ..providers.base import LeagueDataSource
from ..providers.contracts import WeeklyMatchup
from ..providers.fetch import FetchPolicy, fetch_with_retry
from .metrics import calculate_metrics_suite

logger = logging.getLogger(__name__)

WIN_PCT_3W = "win_pct_3w"
PLAYOFF_QUAL = "playoff_qual"
CHAMPIONSHIP_FINISH = "championship_finish"
TARGETS = (WIN_PCT_3W, PLAYOFF_QUAL, CHAMPIONSHIP_FINISH)


def future_win_rates(
    matchups: list[WeeklyMatchup], after_week: int, horizon: int
) -> dict[int, float] | None:
    """Head-to-head win rate per roster over weeks (after_week, after_week + horizon].

    Ties count half. Returns None when no game in the window was played.
    """
    games: dict[tuple[int, int], list[WeeklyMatchup]] = defaultdict(list)
    for m in matchups:
        if after_week < m.week <= after_week + horizon and m.matchup_id is not None:
            games[(m.week, m.matchup_id)].append(m)

    outcomes: dict[int, list[float]] = defaultdict(list)
    for pair in games.values():
        if len(pair) != 2:
            continue
        a, b = pair
        if not a.points and not b.points:
            continue
        if a.points == b.points:
            outcomes[a.roster_id].append(0.5)
            outcomes[b.roster_id].append(0.5)
        else:
            outcomes[a.roster_id].append(1.0 if a.points > b.points else 0.0)
            outcomes[b.roster_id].append(1.0 if b.points > a.points else 0.0)

    if not outcomes:
        return None
    return {rid: sum(v) / len(v) for rid, v in outcomes.items()}


class BacktestEvaluator:
    """Evaluates stored rankings against realized outcomes.

    Args:
        snapshots: Stored weekly rankings
        league_source: Source of later weekly matchups
        results: Repository for persisting results (optional)
        weights: Weight resolver used when re-scoring with candidate params
        policy: Timeout/retry policy for matchup fetches
        min_teams: Minimum snapshots for a meaningful evaluation
        horizon_weeks: Look-ahead window for win_pct_3w
        season_end_week: First week treated as season-end evidence
    """

    def __init__(
        self,
        snapshots: SnapshotStore,
        league_source: LeagueDataSource,
        results: BacktestRepository | None,
        weights: WeightResolver,
        policy: FetchPolicy | None = None,
        min_teams: int = 4,
        horizon_weeks: int = 3,
        season_end_week: int = 14,
    ):
        self.snapshots = snapshots
        self.league_source = league_source
        self.results = results
        self.weights = weights
        self.policy = policy or FetchPolicy()
        self.min_teams = min_teams
        self.horizon_weeks = horizon_weeks
        self.season_end_week = season_end_week

    def _recomputed_composites(
        self,
        snaps: list[StoredSnapshot],
        segment_key: str,
        params: LearnedParams,
        is_dynasty: bool,
        config: WeightConfig | None = None,
    ) -> dict[int, int]:
        _, phase = split_segment_key(segment_key)
        profile = self.weights.resolve(phase or Phase.IN_SEASON, is_dynasty, params, config=config)
        composites = {}
        for snap in snaps:
            if snap.scores is None:
                raise InsufficientSampleError(
                    f"Snapshot for roster {snap.roster_id} week {snap.week} has no stored sub-scores"
                )
            composites[snap.roster_id] = compute_composite(snap.scores, profile)
        return composites

    async def _is_dynasty(self, league_id: str, league_cls: str) -> bool:
        """SPC and UNK segments do not encode the league format, so ask the league."""
        if league_cls.startswith(("DYN", "RED")):
            return league_cls.startswith("DYN")
        try:
            league = await fetch_with_retry(
                "league", lambda: self.league_source.get_league(league_id), self.policy
            )
        except MissingUpstreamDataError as e:
            logger.warning(f"League format unknown for {league_id}, scoring as redraft: {e}")
            return False
        return bool(league and league.is_dynasty)

    async def _actuals(
        self,
        league_id: str,
        season: str,
        week: int,
        target: str,
        n: int,
    ) -> dict[int, float] | None:
        if target == WIN_PCT_3W:
            through = week + self.horizon_weeks
            matchups = await fetch_with_retry(
                "matchups",
                lambda: self.league_source.get_matchups(league_id, through),
                self.policy,
            )
            return future_win_rates(matchups, week, self.horizon_weeks)

        end = self.snapshots.season_end(league_id, season, self.season_end_week)
        if not end:
            return None
        if target == PLAYOFF_QUAL:
            cutoff = max(n // 2, 4)
            return {rid: 1.0 if s.rank <= cutoff else 0.0 for rid, s in end.items()}
        if target == CHAMPIONSHIP_FINISH:
            return {rid: (n - s.rank + 1) / n for rid, s in end.items()}
        raise ValueError(f"Unknown backtest target: {target}")

    async def run_for_week(
        self,
        league_id: str,
        season: str,
        week: int,
        segment_key: str,
        target: str,
        candidate_params: LearnedParams | None = None,
        persist: bool = False,
    ) -> BacktestResult | None:
        """Evaluate one stored week against one target.

        Returns:
            The result, or None when there are too few snapshots or no outcome
            data for the target yet
        """
        stored = self.snapshots.get(league_id, season, week)
        if len(stored) < self.min_teams:
            logger.debug(
                f"Skipping backtest {league_id} week {week}: {len(stored)} snapshots "
                f"(< {self.min_teams})"
            )
            return None

        snaps = sorted(stored.values(), key=lambda s: s.rank)
        n = len(snaps)

        composites = None
        if candidate_params is not None:
            league_cls, _ = split_segment_key(segment_key)
            is_dynasty = await self._is_dynasty(league_id, league_cls)
            config = await self.weights.aconfig()
            composites = self._recomputed_composites(
                snaps, segment_key, candidate_params, is_dynasty, config
            )

        actuals = await self._actuals(league_id, season, week, target, n)
        if actuals is None:
            return None

        evaluated = [s for s in snaps if target == WIN_PCT_3W or s.roster_id in actuals]
        if len(evaluated) < self.min_teams:
            return None

        predicted = []
        actual = []
        for snap in evaluated:
            composite = composites[snap.roster_id] if composites else snap.composite
            if target == WIN_PCT_3W:
                p = composite / 100
            elif composites is None and target == PLAYOFF_QUAL:
                p = 1 - (snap.rank - 1) / n
            elif composites is None:
                p = (n - snap.rank + 1) / n
            elif target == PLAYOFF_QUAL:
                p = 1 - (1 - composite / 100) * (n - 1) / n
            else:
                p = composite / 100
            predicted.append(p)
            actual.append(actuals.get(snap.roster_id, 0.5))

        if composites is None:
            predicted_ranks = [s.rank for s in evaluated]
        else:
            # Re-rank by recomputed composite, stored rank breaking ties
            order = sorted(range(len(evaluated)), key=lambda i: -composites[evaluated[i].roster_id])
            predicted_ranks = [0] * len(evaluated)
            for position, i in enumerate(order, start=1):
                predicted_ranks[i] = position

        metrics = calculate_metrics_suite(predicted, actual, predicted_ranks)
        result = BacktestResult(
            league_id=league_id,
            season=season,
            week_evaluated=week,
            target_type=target,
            horizon_weeks=self.horizon_weeks,
            segment_key=segment_key,
            n_teams=len(evaluated),
            details=tuple(
                TeamBacktestDetail(s.roster_id, r, round(p, 4), round(a, 4))
                for s, r, p, a in zip(evaluated, predicted_ranks, predicted, actual)
            ),
            **metrics,
        )

        if persist and self.results is not None:
            self.results.upsert(result)
        return result

    async def run_sweep(
        self,
        league_id: str,
        season: str,
        segment_key: str,
        max_week: int | None = None,
        targets: tuple[str, ...] = TARGETS,
    ) -> list[BacktestResult]:
        """Evaluate every stored week up to max_week for every target and persist results.

        A week that fails is logged and skipped; it never aborts the sweep.
        """
        max_week = max_week or self.season_end_week
        weeks = [w for w in self.snapshots.weeks(league_id, season) if 1 <= w <= max_week]

        results = []
        for week in weeks:
            for target in targets:
                try:
                    result = await self.run_for_week(
                        league_id, season, week, segment_key, target, persist=True
                    )
                except RankingEngineError as e:
                    logger.warning(f"Backtest {league_id} week {week} {target} skipped: {e}")
                    continue
                if result is not None:
                    results.append(result)

        logger.info(
            f"Backtest sweep for {league_id} {season}: {len(results)} results over {len(weeks)} weeks"
        )
        return results
