"""Tests for injury severity, recency decay and roster roll-ups."""

from datetime import UTC, datetime, timedelta

import pytest

from leaguerank.engine.injuries import (
    RosterInjuryImpact,
    recency_decay,
    roster_injury_impact,
    status_severity,
)
from leaguerank.providers.contracts import (
    InjuryEntry,
    InjuryReport,
    PlayerValue,
    RosterRecord,
    ValuationSnapshot,
)

NOW = datetime(2024, 10, 8, 12, 0, tzinfo=UTC)


def test_recency_decay_steps():
    assert recency_decay(None, NOW) == 1.0
    assert recency_decay(NOW - timedelta(days=2), NOW) == 1.0
    assert recency_decay(NOW - timedelta(days=5), NOW) == 0.95
    assert recency_decay(NOW - timedelta(days=10), NOW) == 0.80
    assert recency_decay(NOW - timedelta(days=20), NOW) == 0.55
    assert recency_decay(NOW - timedelta(days=40), NOW) == 0.30
    assert recency_decay(NOW - timedelta(days=100), NOW) == 0.15


def test_recency_decay_accepts_naive_report_times():
    naive = (NOW - timedelta(days=10)).replace(tzinfo=None)
    assert recency_decay(naive, NOW) == 0.80


def test_status_severity_keywords():
    assert status_severity(InjuryEntry("Out", injury_type="Torn ACL")) == (0.95, 0.10)
    assert status_severity(InjuryEntry("Questionable", injury_type="Hamstring")) == (0.25, 0.50)
    severity, uncertainty = status_severity(InjuryEntry("Doubtful", injury_type="Concussion"))
    assert severity == 0.60
    assert uncertainty == 0.55
    assert status_severity(InjuryEntry("Unknown")) == (0.0, 0.0)


def _roster():
    return RosterRecord(roster_id=1, players=["a", "b", "c"], starters=["a", "b"])


def _values():
    return ValuationSnapshot(
        values={
            "a": PlayerValue("a", name="Alpha Back", dynasty_value=100, redraft_value=80),
            "b": PlayerValue("b", name="Bravo Wideout", dynasty_value=100, redraft_value=90),
            "c": PlayerValue("c", name="Charlie End", dynasty_value=20, redraft_value=30),
        }
    )


def test_healthy_roster_has_full_health_ratio():
    impact = roster_injury_impact(_roster(), _values(), InjuryReport(), NOW)
    assert impact.power_health_ratio == 1.0
    assert impact.market_discount == 0.0
    assert impact.risk_concentration == 0.0
    assert impact.injured_starters() == 0


def test_injured_starter_lowers_health_and_market():
    report = InjuryReport(by_player_id={"a": InjuryEntry("Out", reported_at=NOW)})
    impact = roster_injury_impact(_roster(), _values(), report, NOW)

    # healthy = 100 + 100 * (1 - 0.9 + 0.1 * 0.15 * 0.9)
    assert impact.power_health_ratio == pytest.approx(111.35 / 200)
    # injured = 100 * 0.9 * (1 - 0.1 * 0.3) over a total of 230
    assert impact.market_discount == pytest.approx(87.3 / 230)
    assert impact.risk_concentration == pytest.approx(1 / 3)
    assert impact.injured_starters() == 1
    assert impact.profiles["a"].is_injured


def test_injury_lookup_falls_back_to_name():
    report = InjuryReport(by_name={"bravo wideout": InjuryEntry("IR", reported_at=NOW)})
    impact = roster_injury_impact(_roster(), _values(), report, NOW)
    assert impact.profiles["b"].severity == 1.0
    assert impact.power_health_ratio < 1.0


def test_old_injuries_decay():
    fresh = InjuryReport(by_player_id={"a": InjuryEntry("Out", reported_at=NOW)})
    stale = InjuryReport(by_player_id={"a": InjuryEntry("Out", reported_at=NOW - timedelta(days=90))})
    assert (
        roster_injury_impact(_roster(), _values(), stale, NOW).power_health_ratio
        > roster_injury_impact(_roster(), _values(), fresh, NOW).power_health_ratio
    )


def test_empty_roster_is_neutral():
    impact = roster_injury_impact(RosterRecord(roster_id=2), _values(), InjuryReport(), NOW)
    assert impact == RosterInjuryImpact()
    assert impact.power_health_ratio == 0.5
