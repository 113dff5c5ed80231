"""Sub-score calculators.

Each calculator returns an integer 0-100. Raw metrics are computed per roster
and converted to scores by percentile within the league, except where a
fixed formula (win score, future capital) is used directly.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass

from ..providers.contracts import (
    DraftPick,
    PlayoffMatch,
    PositionDemand,
    RosterRecord,
    TradeRecord,
    ValuationSnapshot,
    WeeklyMatchup,
)
from .injuries import RosterInjuryImpact
from .params import LearnedParams
from .percentile import clamp, percentile_map, percentile_rank, population_stddev, to_score
from .phase import Phase

logger = logging.getLogger(__name__)

DEFAULT_INJURY_INFLUENCE = 0.30
DYNASTY_STARTER_SPLIT = 0.70
REDRAFT_STARTER_SPLIT = 0.80
RISK_PENALTY = 0.05

SOS_WEIGHT = 0.10
SOS_CAP = 0.05

NEUTRAL_LDI = 50.0
DYNASTY_INJURY_MARKET_WEIGHT = 0.25
REDRAFT_INJURY_MARKET_WEIGHT = 0.60

DYNASTY_SKILL_WEIGHTS = {"trade": 0.35, "waiver": 0.20, "draft": 0.25, "process": 0.20}
REDRAFT_SKILL_WEIGHTS = {"trade": 0.25, "waiver": 0.35, "draft": 0.10, "process": 0.30}
NEUTRAL_COMPONENT = 0.5


# ========== WIN SCORE ==========


@dataclass
class PlayoffFinish:
    made_playoffs: bool = False
    is_champion: bool = False
    is_runner_up: bool = False
    best_finish: int | None = None

    def finish_score(self) -> float:
        if self.is_champion:
            return 1.0
        if self.is_runner_up or (self.best_finish is not None and self.best_finish <= 2):
            return 0.80
        if self.best_finish is not None and self.best_finish <= 4:
            return 0.65
        if self.best_finish is not None and self.best_finish <= 6:
            return 0.50
        if self.made_playoffs:
            return 0.45
        return 0.30


def analyze_playoff_bracket(
    matches: list[PlayoffMatch], roster_ids: list[int]
) -> dict[int, PlayoffFinish]:
    """Champion, runner-up and best finish per roster from bracket results.

    A loss in round r of an R-round bracket means a finish of 2^(R-r)+1 (a
    semifinal loss in a three-round bracket finishes 3rd-4th). Qualifiers with
    no decided finish are placed last.
    """
    finishes = {rid: PlayoffFinish() for rid in roster_ids}
    if not matches:
        return finishes

    max_round = max(m.round for m in matches)
    for m in matches:
        for team in (m.team1, m.team2):
            if team in finishes:
                finishes[team].made_playoffs = True

    for m in matches:
        if m.winner in finishes and m.round == max_round:
            finishes[m.winner].is_champion = True
            finishes[m.winner].best_finish = 1
        if m.loser in finishes:
            finish = 2 if m.round == max_round else 2 ** (max_round - m.round) + 1
            record = finishes[m.loser]
            if m.round == max_round:
                record.is_runner_up = True
            if record.best_finish is None or finish < record.best_finish:
                record.best_finish = finish

    for record in finishes.values():
        if record.made_playoffs and record.best_finish is None:
            record.best_finish = len(roster_ids)
    return finishes


def strength_of_schedule(
    matchups: list[WeeklyMatchup], rosters: list[RosterRecord]
) -> dict[int, float]:
    """Mean win percentage of the opponents each roster actually faced."""
    win_pct = {r.roster_id: r.win_pct for r in rosters}
    pairs: dict[tuple[int, int], list[int]] = defaultdict(list)
    for m in matchups:
        if m.matchup_id is not None:
            pairs[(m.week, m.matchup_id)].append(m.roster_id)

    faced: dict[int, list[float]] = defaultdict(list)
    for teams in pairs.values():
        if len(teams) != 2:
            continue
        a, b = teams
        if b in win_pct:
            faced[a].append(win_pct[b])
        if a in win_pct:
            faced[b].append(win_pct[a])

    return {
        rid: (sum(faced[rid]) / len(faced[rid]) if faced.get(rid) else 0.5) for rid in win_pct
    }


def win_score(win_pct: float, sos: float, phase: Phase, finish: PlayoffFinish | None = None) -> int:
    if phase == Phase.POST_SEASON:
        finish = finish or PlayoffFinish()
        return to_score(0.45 * win_pct + 0.55 * finish.finish_score())
    sos_adjustment = clamp((sos - 0.5) * SOS_WEIGHT, -SOS_CAP, SOS_CAP)
    return to_score(win_pct + sos_adjustment)


# ========== LUCK ==========


def expected_wins(matchups: list[WeeklyMatchup], roster_ids: list[int]) -> dict[int, float]:
    """All-play expected wins.

    Each played week credits a team with the share of the league it outscored
    (ties count half). Zero or missing scores mark a week as unplayed for that
    team and are skipped.
    """
    by_week: dict[int, dict[int, float]] = defaultdict(dict)
    for m in matchups:
        if m.points and m.points > 0:
            by_week[m.week][m.roster_id] = m.points

    totals = {rid: 0.0 for rid in roster_ids}
    for scores in by_week.values():
        n = len(scores)
        if n < 2:
            continue
        for rid, pts in scores.items():
            if rid not in totals:
                continue
            beaten = sum(1 for other, p in scores.items() if other != rid and p < pts)
            tied = sum(1 for other, p in scores.items() if other != rid and p == pts)
            totals[rid] += (beaten + 0.5 * tied) / (n - 1)
    return totals


def luck_deltas(rosters: list[RosterRecord], expected: dict[int, float]) -> dict[int, float]:
    return {r.roster_id: r.wins - expected.get(r.roster_id, 0.0) for r in rosters}


def luck_scores(deltas: dict[int, float]) -> dict[int, int]:
    return {rid: to_score(p) for rid, p in percentile_map(deltas).items()}


# ========== POWER ==========


@dataclass
class RosterValue:
    starters: float = 0.0
    bench: float = 0.0

    @property
    def total(self) -> float:
        return self.starters + self.bench


def roster_value(roster: RosterRecord, valuations: ValuationSnapshot, is_dynasty: bool) -> RosterValue:
    starters = set(roster.starters)
    result = RosterValue()
    for player_id in roster.players:
        pv = valuations.get(player_id)
        if pv is None:
            continue
        value = pv.value_for(is_dynasty)
        if player_id in starters:
            result.starters += value
        else:
            result.bench += value
    return result


def starter_bench_split(is_dynasty: bool, params: LearnedParams | None = None) -> float:
    if params is not None:
        return params.starter_bench_split
    return DYNASTY_STARTER_SPLIT if is_dynasty else REDRAFT_STARTER_SPLIT


def power_score(
    starter_pct: float,
    bench_pct: float,
    is_dynasty: bool,
    impact: RosterInjuryImpact,
    params: LearnedParams | None = None,
) -> int:
    split = starter_bench_split(is_dynasty, params)
    raw = split * starter_pct + (1 - split) * bench_pct

    influence = params.injury_influence if params is not None else DEFAULT_INJURY_INFLUENCE
    health = (1 - influence) + influence * impact.power_health_ratio
    risk = 1 - RISK_PENALTY * impact.risk_concentration
    return to_score(raw * health * risk)


# ========== MARKET VALUE ==========


def age_factor(age: float | None) -> float:
    if age is None:
        return 1.0
    return clamp(1 + 0.02 * (26 - age), 0.88, 1.12)


def demand_multiplier(
    position: str, demand: dict[str, PositionDemand], min_sample: int = 30
) -> float:
    entry = demand.get(position)
    ldi = NEUTRAL_LDI
    if entry is not None and entry.sample >= min_sample:
        ldi = entry.ldi
    return 0.85 + 0.30 * (ldi / 100)


def market_value_total(
    roster: RosterRecord,
    valuations: ValuationSnapshot,
    is_dynasty: bool,
    demand: dict[str, PositionDemand],
    impact: RosterInjuryImpact,
    min_demand_sample: int = 30,
) -> float:
    """Age, demand and injury adjusted roster value."""
    injury_weight = DYNASTY_INJURY_MARKET_WEIGHT if is_dynasty else REDRAFT_INJURY_MARKET_WEIGHT
    total = 0.0
    for player_id in roster.players:
        pv = valuations.get(player_id)
        if pv is None:
            continue
        value = pv.value_for(is_dynasty)
        if is_dynasty:
            value *= age_factor(pv.age)
        value *= demand_multiplier(pv.position, demand, min_demand_sample)

        profile = impact.profiles.get(player_id)
        if profile is not None and profile.is_injured:
            discount = profile.effective_severity * (1 - profile.uncertainty * 0.3)
            value *= 1 - discount * injury_weight
        total += value
    return total


# ========== MANAGER SKILL ==========


def average_trade_premiums(trades: list[TradeRecord]) -> dict[str, float]:
    """Mean (received - given) / given per manager key (lower-cased)."""
    premiums: dict[str, list[float]] = defaultdict(list)
    for t in trades:
        premiums[t.manager.strip().lower()].append(
            (t.value_received - t.value_given) / max(1.0, t.value_given)
        )
    return {k: sum(v) / len(v) for k, v in premiums.items()}


def process_consistency(weekly_points: list[float]) -> float:
    """1 / (1 + coefficient of variation) of weekly scores."""
    if len(weekly_points) < 2:
        return 0.5
    mean = sum(weekly_points) / len(weekly_points)
    return 1 / (1 + population_stddev(weekly_points) / max(1.0, mean))


def manager_skill_score(trade_pct: float, process_pct: float, is_dynasty: bool) -> int:
    weights = DYNASTY_SKILL_WEIGHTS if is_dynasty else REDRAFT_SKILL_WEIGHTS
    raw = (
        weights["trade"] * trade_pct
        + weights["waiver"] * NEUTRAL_COMPONENT
        + weights["draft"] * NEUTRAL_COMPONENT
        + weights["process"] * process_pct
    )
    return to_score(raw)


# ========== FUTURE CAPITAL ==========


def future_capital_score(
    roster: RosterRecord, valuations: ValuationSnapshot, is_dynasty: bool
) -> int:
    if not is_dynasty:
        return 0
    total = 0.0
    for player_id in roster.players:
        pv = valuations.get(player_id)
        if pv is None or not pv.is_devy:
            continue
        projection = pv.draft_projection_score if pv.draft_projection_score is not None else 50.0
        total += projection * 0.6
        if pv.projected_draft_round == 1:
            total += 20
        elif pv.projected_draft_round == 2:
            total += 12
    return min(100, int(round(total / 5)))


# ========== DRAFT GAIN ==========


def draft_gain_scores(
    picks: list[DraftPick],
    valuations: ValuationSnapshot,
    roster_ids: list[int],
    is_dynasty: bool,
) -> dict[int, int]:
    """How much each roster's draft outperformed its slots.

    A pick's expected percentile falls linearly with draft slot; its actual
    percentile is the current value of the player among all drafted players.
    Without draft data every roster is neutral (50).
    """
    if len(picks) < 2:
        return {rid: 50 for rid in roster_ids}

    ordered = sorted(picks, key=lambda p: p.pick_no)
    values = []
    for pick in ordered:
        pv = valuations.get(pick.player_id)
        values.append(pv.value_for(is_dynasty) if pv else 0.0)

    gains = {rid: 0.0 for rid in roster_ids}
    last = len(ordered) - 1
    for slot, (pick, value) in enumerate(zip(ordered, values)):
        if pick.roster_id not in gains:
            continue
        expected = 1 - slot / last
        actual = percentile_rank(value, values)
        gains[pick.roster_id] += actual - expected

    return {rid: to_score(p) for rid, p in percentile_map(gains).items()}

