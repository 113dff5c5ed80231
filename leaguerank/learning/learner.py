"""Parameter learner: nudges composite parameters towards better backtests.

Each cycle, for one league segment:
1. Collect the most recent backtest results for the league class
2. Score the current parameters (baseline)
3. Score neighbouring candidates, one parameter at a time, ±1 and ±2 steps
4. Keep the best candidate, clamped to a small movement per cycle
5. Record the outcome: APPLIED when it beats the baseline by the margin,
   otherwise REJECTED (or INSUFFICIENT_DATA when evidence is thin)

Candidates are scored by re-running backtests with recomputed composites
when a league with enough stored weeks is available. Otherwise a coarse
projection heuristic is used, which is a degraded fallback rather than a
measurement.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..backtest.evaluator import BacktestEvaluator
from ..database.repositories import (
    STATUS_APPLIED,
    STATUS_INSUFFICIENT_DATA,
    STATUS_REJECTED,
    BacktestRepository,
    LearnedParamsRepository,
)
from ..engine.params import PARAM_BOUNDS, LearnedParams, clamp_movement
from ..engine.phase import split_segment_key
from ..engine.records import BacktestResult
from ..exceptions import RankingEngineError
from ..locks import KeyedLocks

logger = logging.getLogger(__name__)

STEP_DIVISIONS = 8
CANDIDATE_STEPS = (-2, -1, 1, 2)
MIN_RECOMPUTE_WEEKS = 3
MAX_RECOMPUTE_WEEKS = 6
MIN_RECOMPUTE_RESULTS = 2

# Placeholder sensitivities for the projection fallback
PROJECTION_SENSITIVITY = {
    "injury_influence": 0.05,
    "starter_bench_split": 0.03,
    "future_capital_influence": 0.02,
}
LUCK_PROJECTION_PENALTY = 0.01


@dataclass
class LearningOutcome:
    segment_key: str
    status: str
    current: LearnedParams
    learned: LearnedParams
    improved: bool = False
    baseline_score: float | None = None
    learned_score: float | None = None
    method: str | None = None
    sample_size: int = 0
    candidates_evaluated: int = 0
    notes: list[str] = field(default_factory=list)


def aggregate_score(results: list[BacktestResult]) -> float:
    """0.4 * (1 - Brier) + 0.35 * NDCG + 0.25 * rescaled Spearman."""
    if not results:
        return 0.0
    n = len(results)
    avg_brier = sum(r.brier_score for r in results) / n
    avg_ndcg = sum(r.ndcg for r in results) / n
    avg_spearman = sum(r.spearman for r in results) / n
    return 0.4 * (1 - avg_brier) + 0.35 * avg_ndcg + 0.25 * ((avg_spearman + 1) / 2)


def candidate_params(current: LearnedParams) -> list[LearnedParams]:
    candidates = []
    for name, (lo, hi) in PARAM_BOUNDS.items():
        step = (hi - lo) / STEP_DIVISIONS
        for delta in CANDIDATE_STEPS:
            value = max(lo, min(hi, getattr(current, name) + delta * step))
            candidate = current.with_value(name, value)
            if candidate != current and candidate not in candidates:
                candidates.append(candidate)
    return candidates


def projected_score(base: float, candidate: LearnedParams, current: LearnedParams) -> float:
    score = base
    for name, sensitivity in PROJECTION_SENSITIVITY.items():
        score += sensitivity * (getattr(candidate, name) - getattr(current, name))
    score -= LUCK_PROJECTION_PENALTY * abs(candidate.luck_dampening - current.luck_dampening)
    return score


def cycle_start_for(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


class ParameterLearner:
    """Learns LearnedParams per league segment from backtest evidence.

    Args:
        results: Backtest result repository (evidence)
        params: Learned parameter repository (current value and history)
        evaluator: Backtest evaluator for the recompute path (optional)
        min_results: Evidence required before learning
        max_results: Most recent results considered
        max_movement: Per-cycle movement cap (x10 for luck dampening)
        improvement_margin: Relative improvement required to apply
        today: Returns today's date (injectable for tests)
    """

    def __init__(
        self,
        results: BacktestRepository,
        params: LearnedParamsRepository,
        evaluator: BacktestEvaluator | None = None,
        min_results: int = 5,
        max_results: int = 50,
        max_movement: float = 0.03,
        improvement_margin: float = 0.005,
        today: Callable[[], date] = date.today,
    ):
        self.results = results
        self.params = params
        self.evaluator = evaluator
        self.min_results = min_results
        self.max_results = max_results
        self.max_movement = max_movement
        self.improvement_margin = improvement_margin
        self.today = today
        self._class_locks = KeyedLocks()

    async def _recompute_score(
        self,
        league_id: str,
        weeks: list[BacktestResult],
        segment_key: str,
        candidate: LearnedParams,
    ) -> float | None:
        evaluated = []
        for w in weeks:
            try:
                result = await self.evaluator.run_for_week(
                    league_id, w.season, w.week_evaluated, segment_key, w.target_type, candidate
                )
            except RankingEngineError as e:
                logger.debug(f"Recompute skipped week {w.week_evaluated}: {e}")
                continue
            if result is not None:
                evaluated.append(result)
        if len(evaluated) < MIN_RECOMPUTE_RESULTS:
            return None
        return aggregate_score(evaluated)

    async def learn(self, segment_key: str, league_id: str | None = None) -> LearningOutcome:
        """Propose parameters for a segment without persisting anything."""
        league_cls, _ = split_segment_key(segment_key)
        current = self.params.active(segment_key, league_cls)
        evidence = self.results.recent_for_class(league_cls, self.max_results)

        if len(evidence) < self.min_results:
            logger.info(
                f"Insufficient backtest evidence for {segment_key}: "
                f"{len(evidence)} < {self.min_results}"
            )
            return LearningOutcome(
                segment_key=segment_key,
                status=STATUS_INSUFFICIENT_DATA,
                current=current,
                learned=current,
                sample_size=len(evidence),
            )

        baseline = aggregate_score(evidence)
        method = "projection"
        recompute_weeks: list[BacktestResult] = []
        if league_id and self.evaluator is not None:
            recompute_weeks = [r for r in evidence if r.league_id == league_id][
                :MAX_RECOMPUTE_WEEKS
            ]

        notes = []
        if len(recompute_weeks) >= MIN_RECOMPUTE_WEEKS:
            recomputed = await self._recompute_score(
                league_id, recompute_weeks, segment_key, current
            )
            if recomputed is not None:
                baseline = recomputed
                method = "recompute"
            else:
                notes.append("recompute baseline unavailable, using projection")

        scored: list[tuple[LearnedParams, float]] = [(current, baseline)]
        for candidate in candidate_params(current):
            score = None
            if method == "recompute":
                score = await self._recompute_score(
                    league_id, recompute_weeks, segment_key, candidate
                )
            if score is None:
                score = projected_score(baseline, candidate, current)
            scored.append((candidate, score))

        # Stable: on equal scores the unchanged baseline wins
        scored.sort(key=lambda item: -item[1])
        best, best_score = scored[0]
        learned = clamp_movement(best, current, self.max_movement)
        improved = best_score > baseline * (1 + self.improvement_margin)

        return LearningOutcome(
            segment_key=segment_key,
            status=STATUS_APPLIED if improved else STATUS_REJECTED,
            current=current,
            learned=learned if improved else current,
            improved=improved,
            baseline_score=round(baseline, 4),
            learned_score=round(best_score, 4),
            method=method,
            sample_size=len(evidence),
            candidates_evaluated=len(scored),
            notes=notes,
        )

    async def run_cycle(
        self, segment_key: str, league_id: str | None = None, force: bool = False
    ) -> LearningOutcome | None:
        """Learn and record the outcome, at most once per weekly cycle.

        Returns:
            The outcome, or None when this segment already ran this cycle
        """
        league_cls, _ = split_segment_key(segment_key)
        cycle_start = cycle_start_for(self.today())

        async with self._class_locks.hold(league_cls):
            if not force and self.params.has_cycle(segment_key, cycle_start):
                logger.info(f"Learning for {segment_key} already ran for cycle {cycle_start}")
                return None

            outcome = await self.learn(segment_key, league_id)
            self.params.record(
                segment_key=segment_key,
                league_cls=league_cls,
                status=outcome.status,
                params=outcome.learned,
                cycle_start=cycle_start,
                baseline_score=outcome.baseline_score,
                learned_score=outcome.learned_score,
                sample_size=outcome.sample_size,
                method=outcome.method,
                notes="; ".join(outcome.notes) or None,
            )

        logger.info(
            f"Learning cycle {segment_key}: {outcome.status} "
            f"(baseline={outcome.baseline_score}, best={outcome.learned_score})"
        )
        return outcome
