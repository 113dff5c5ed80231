"""Per-league scoring: raw inputs to sub-scores, metrics and composites.

Pure and synchronous. Everything here depends only on the gathered inputs,
so the same inputs always produce the same scores.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from ..providers.contracts import LeagueInputs, RosterRecord
from .composite import SubScores, compute_composite
from .identity import identity_key
from .injuries import RosterInjuryImpact, roster_injury_impact
from .params import LearnedParams
from .percentile import percentile_map, to_score
from .phase import Phase
from .quality import QualityInputs, assess_data_quality
from .records import SnapshotMetrics, TeamDataQuality
from .subscores import (
    analyze_playoff_bracket,
    average_trade_premiums,
    draft_gain_scores,
    expected_wins,
    future_capital_score,
    luck_deltas,
    luck_scores,
    manager_skill_score,
    market_value_total,
    power_score,
    process_consistency,
    roster_value,
    strength_of_schedule,
    win_score,
)
from .weights import WeightProfile


@dataclass(frozen=True)
class ScoredTeam:
    roster: RosterRecord
    scores: SubScores
    composite: int
    metrics: SnapshotMetrics
    expected_wins: float
    luck_delta: float
    impact: RosterInjuryImpact
    data_quality: TeamDataQuality


def weekly_points(inputs: LeagueInputs) -> dict[int, list[float]]:
    points: dict[int, list[float]] = defaultdict(list)
    for m in sorted(inputs.matchups, key=lambda m: (m.week, m.roster_id)):
        if m.points and m.points > 0:
            points[m.roster_id].append(m.points)
    return points


def score_league(
    inputs: LeagueInputs,
    phase: Phase,
    profile: WeightProfile,
    params: LearnedParams,
    now: datetime,
    min_demand_sample: int = 30,
) -> list[ScoredTeam]:
    """Score every roster in the league.

    Returns teams ordered by roster id; callers sort by composite.
    """
    league = inputs.league
    is_dynasty = league.is_dynasty
    rosters = sorted(inputs.rosters, key=lambda r: r.roster_id)
    roster_ids = [r.roster_id for r in rosters]
    valuations = inputs.valuations

    values = {r.roster_id: roster_value(r, valuations, is_dynasty) for r in rosters}
    starter_pct = percentile_map({rid: v.starters for rid, v in values.items()})
    bench_pct = percentile_map({rid: v.bench for rid, v in values.items()})

    impacts = {
        r.roster_id: roster_injury_impact(r, valuations, inputs.injuries, now) for r in rosters
    }

    expected = expected_wins(inputs.matchups, roster_ids)
    deltas = luck_deltas(rosters, expected)
    luck = luck_scores(deltas)

    sos = strength_of_schedule(inputs.matchups, rosters)
    finishes = analyze_playoff_bracket(inputs.bracket, roster_ids)

    market_pct = percentile_map(
        {
            r.roster_id: market_value_total(
                r, valuations, is_dynasty, inputs.demand, impacts[r.roster_id], min_demand_sample
            )
            for r in rosters
        }
    )

    premiums_by_manager = average_trade_premiums(inputs.trades)
    premiums = {r.roster_id: premiums_by_manager.get(identity_key(r), 0.0) for r in rosters}
    trade_pct = percentile_map(premiums)

    points = weekly_points(inputs)
    process_pct = percentile_map(
        {rid: process_consistency(points.get(rid, [])) for rid in roster_ids}
    )

    draft_gain = draft_gain_scores(inputs.draft_picks, valuations, roster_ids, is_dynasty)

    report_at = inputs.injuries.latest_report or inputs.injuries.fetched_at
    teams = []
    for r in rosters:
        rid = r.roster_id
        impact = impacts[rid]
        scores = SubScores(
            win=win_score(r.win_pct, sos[rid], phase, finishes.get(rid)),
            power=power_score(starter_pct[rid], bench_pct[rid], is_dynasty, impact, params),
            luck=luck[rid],
            market=to_score(market_pct[rid]),
            skill=manager_skill_score(trade_pct[rid], process_pct[rid], is_dynasty),
            draft_gain=draft_gain[rid],
            future_capital=future_capital_score(r, valuations, is_dynasty),
        )
        metrics = SnapshotMetrics(
            starter_value_percentile=round(starter_pct[rid], 4),
            expected_wins=round(expected[rid], 4),
            injury_health_ratio=round(impact.power_health_ratio, 4),
            trade_efficiency_premium=round(premiums[rid], 4),
        )
        quality = assess_data_quality(
            QualityInputs(
                players=len(r.players),
                valued_players=sum(1 for p in r.players if valuations.get(p) is not None),
                weeks_played=len(points.get(rid, [])),
                injury_entries=sum(1 for p in impact.profiles.values() if p.severity > 0),
                injured_starters=impact.injured_starters(),
                injury_report_at=report_at,
                valuation_at=valuations.fetched_at,
                synced_at=inputs.synced_at,
                missing_sources=list(inputs.missing_sources),
            ),
            now,
        )
        teams.append(
            ScoredTeam(
                roster=r,
                scores=scores,
                composite=compute_composite(scores, profile),
                metrics=metrics,
                expected_wins=expected[rid],
                luck_delta=deltas[rid],
                impact=impact,
                data_quality=quality,
            )
        )
    return teams
