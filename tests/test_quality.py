"""Tests for per-team data quality assessment."""

from datetime import UTC, datetime, timedelta

from leaguerank.engine.quality import SOURCE_CAVEATS, QualityInputs, assess_data_quality

NOW = datetime(2024, 10, 8, 12, 0, tzinfo=UTC)


def full_inputs(**overrides) -> QualityInputs:
    values = dict(
        players=10,
        valued_players=10,
        weeks_played=5,
        injury_entries=3,
        injured_starters=0,
        injury_report_at=NOW - timedelta(hours=2),
        valuation_at=NOW - timedelta(minutes=30),
        synced_at=NOW - timedelta(hours=1),
    )
    values.update(overrides)
    return QualityInputs(**values)


def test_complete_fresh_inputs():
    quality = assess_data_quality(full_inputs(), NOW)

    assert quality.confidence == 97
    assert quality.rating == "HIGH"
    assert quality.coverage == "FULL"
    assert quality.caveats == ()
    assert quality.staleness_hours == {"injuries": 2.0, "valuations": 0.5, "league_sync": 1.0}


def test_each_missing_source_costs_confidence():
    quality = assess_data_quality(full_inputs(missing_sources=["trades", "demand"]), NOW)

    assert quality.confidence == 87
    assert SOURCE_CAVEATS["trades"] in quality.caveats
    assert SOURCE_CAVEATS["demand"] in quality.caveats


def test_stale_feeds_add_caveats():
    quality = assess_data_quality(
        full_inputs(
            injury_report_at=NOW - timedelta(hours=100),
            valuation_at=NOW - timedelta(hours=30),
            synced_at=NOW - timedelta(hours=12),
        ),
        NOW,
    )

    assert quality.confidence == 50 + 20 + 15 + 3 - 3
    assert quality.rating == "HIGH"
    assert "Injury data is 100h old" in quality.caveats
    assert "Player valuations are 30h old" in quality.caveats
    assert "League data last synced 12h ago" in quality.caveats


def test_early_season_partial_coverage():
    quality = assess_data_quality(full_inputs(weeks_played=1, valued_players=8), NOW)

    assert quality.coverage == "PARTIAL"
    assert any("Fewer than 2 weeks" in c for c in quality.caveats)


def test_minimal_inputs_clamp_to_floor():
    quality = assess_data_quality(
        QualityInputs(
            players=0,
            injured_starters=3,
            valuation_at=NOW - timedelta(days=3),
            missing_sources=[*SOURCE_CAVEATS, "league_sync"],
        ),
        NOW,
    )

    assert quality.confidence == 10
    assert quality.rating == "LOW"
    assert quality.coverage == "MINIMAL"
    assert "league_sync unavailable" in quality.caveats
