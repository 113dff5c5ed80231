"""Anti-gaming rank constraints.

A team that climbs the rankings week over week must show it on the field or
on paper: better starters, more all-play wins, a healthier lineup or better
trades. A climb with no measurable improvement is capped at one position
above the previous rank, so roster churn alone cannot game the table.

Slot assignment keeps ranks a permutation of 1..N:
1. Capped teams take the lowest free slot at or below their minimum allowed rank
2. Everyone else fills the remaining slots in composite order
"""

import logging
from dataclasses import dataclass

from .records import AntiGamingResult, Justification, SnapshotMetrics, StoredSnapshot

logger = logging.getLogger(__name__)

MAX_UNJUSTIFIED_CLIMB = 1

# metric name -> (snapshot attribute, label, minimum improvement)
IMPROVEMENT_CHECKS: dict[str, tuple[str, str, float]] = {
    "starter_value_percentile": (
        "starter_value_percentile",
        "Starter value percentile",
        0.02,
    ),
    "expected_wins": ("expected_wins", "Expected wins", 0.15),
    "injury_delta": ("injury_health_ratio", "Lineup health", 0.03),
    "trade_efficiency": ("trade_efficiency_premium", "Trade efficiency", 0.02),
}


@dataclass(frozen=True)
class AntiGamingInput:
    roster_id: int
    composite: int
    metrics: SnapshotMetrics | None


def composite_order(teams: list[AntiGamingInput]) -> list[AntiGamingInput]:
    """Composite descending; ties keep input order."""
    return sorted(teams, key=lambda t: -t.composite)


def evaluate_justifications(
    current: SnapshotMetrics, previous: SnapshotMetrics | None
) -> list[Justification]:
    checks = []
    for metric, (attr, label, threshold) in IMPROVEMENT_CHECKS.items():
        now = getattr(current, attr)
        if previous is None:
            checks.append(Justification(metric, label, None, now, None, threshold, True))
            continue
        before = getattr(previous, attr)
        delta = now - before
        checks.append(Justification(metric, label, before, now, delta, threshold, delta >= threshold))
    return checks


def _lowest_free(taken: set[int], start: int, n: int) -> int | None:
    for slot in range(start, n + 1):
        if slot not in taken:
            return slot
    return None


def _highest_free_below(taken: set[int], limit: int) -> int | None:
    for slot in range(limit - 1, 0, -1):
        if slot not in taken:
            return slot
    return None


def apply_anti_gaming(
    teams: list[AntiGamingInput],
    previous: dict[int, StoredSnapshot],
) -> list[AntiGamingResult]:
    """Adjusted ranks for a league week, in composite order.

    Args:
        teams: Current composites and metrics
        previous: Last week's snapshots keyed by roster id (empty on cold start)

    Returns:
        One result per team; adjusted ranks form a permutation of 1..N
    """
    ordered = composite_order(teams)
    n = len(ordered)

    if not previous:
        return [
            AntiGamingResult(
                roster_id=t.roster_id,
                original_rank=rank,
                adjusted_rank=rank,
                constrained=False,
                justifications=tuple(evaluate_justifications(t.metrics, None)) if t.metrics else (),
            )
            for rank, t in enumerate(ordered, start=1)
        ]

    capped: list[tuple[int, int, AntiGamingInput]] = []  # (min_allowed, original_rank, team)
    checks: dict[int, list[Justification]] = {}
    for rank, team in enumerate(ordered, start=1):
        prev = previous.get(team.roster_id)
        if prev is None or prev.metrics is None or team.metrics is None:
            continue
        checks[team.roster_id] = evaluate_justifications(team.metrics, prev.metrics)
        if prev.rank - rank <= 0:
            continue
        if any(j.passed for j in checks[team.roster_id]):
            continue
        min_allowed = max(1, min(n, prev.rank - MAX_UNJUSTIFIED_CLIMB))
        capped.append((min_allowed, rank, team))

    taken: set[int] = set()
    adjusted: dict[int, int] = {}
    for min_allowed, rank, team in sorted(capped, key=lambda c: (c[0], -c[2].composite, c[1])):
        slot = _lowest_free(taken, min_allowed, n)
        if slot is None:
            slot = _highest_free_below(taken, min_allowed)
            logger.warning(
                f"No free slot at or below rank {min_allowed} for roster {team.roster_id}, using {slot}"
            )
        taken.add(slot)
        adjusted[team.roster_id] = slot

    capped_ids = set(adjusted)
    for team in ordered:
        if team.roster_id in capped_ids:
            continue
        slot = _lowest_free(taken, 1, n)
        taken.add(slot)
        adjusted[team.roster_id] = slot

    results = []
    for rank, team in enumerate(ordered, start=1):
        justifications = checks.get(team.roster_id, [])
        is_capped = team.roster_id in capped_ids
        results.append(
            AntiGamingResult(
                roster_id=team.roster_id,
                original_rank=rank,
                adjusted_rank=adjusted[team.roster_id],
                constrained=adjusted[team.roster_id] != rank,
                capped=is_capped,
                justifications=tuple(justifications),
                failed_metrics=tuple(j.metric for j in justifications if not j.passed)
                if is_capped
                else (),
            )
        )

    if capped:
        logger.info(f"Anti-gaming capped {len(capped)} unjustified climb(s)")
    return results
