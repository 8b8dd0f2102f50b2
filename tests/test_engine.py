import random
from datetime import date, timedelta

import pytest

from facility_risk.focus_areas.benchmarks import CategoryBenchmark, PeerGroupBenchmark, StateCategoryBenchmarkTable
from facility_risk.focus_areas.engine import (
    IMPROVING,
    STABLE,
    WORSENING,
    aggregate_categories,
    calculate_citation_metrics,
    citation_factor,
    classify_severity_trend,
    classify_velocity,
    compute_facility_risk,
    lookback_start,
    overall_risk_score,
    peer_factor,
    risk_tier,
    round_half_up,
)
from facility_risk.focus_areas.mappings import FTAG_CATEGORY_MAP
from facility_risk.focus_areas.profiles import CITATION, INTERACTIVE_V1, NIGHTLY_V1, PEER
from facility_risk.focus_areas.quality_measures import NeutralQualityMeasures

from .factories import make_fact, make_profile

AS_OF = date(2024, 6, 1)


def _risk(facts, profile=INTERACTIVE_V1, benchmarks=None, as_of=AS_OF):
    return compute_facility_risk(
        make_profile(),
        facts,
        as_of,
        benchmarks or PeerGroupBenchmark.empty(),
        NeutralQualityMeasures(),
        profile,
    )


def test_round_half_up_matches_half_away_from_zero_for_positives():
    assert round_half_up(2.5) == 3
    assert round_half_up(51.5) == 52
    assert round_half_up(0.125, 2) == 0.13


def test_lookback_start_uses_calendar_years():
    assert lookback_start(date(2024, 6, 1)) == date(2021, 6, 1)
    assert lookback_start(date(2024, 2, 29)) == date(2021, 2, 28)


# --- Citation metrics ---

@pytest.mark.parametrize("current,previous,expected", [
    (7, 10, IMPROVING),
    (8, 10, STABLE),
    (12, 10, STABLE),
    (13, 10, WORSENING),
    (5, 0, STABLE),
])
def test_classify_velocity(current, previous, expected):
    assert classify_velocity(current, previous) == expected


def test_classify_severity_trend():
    assert classify_severity_trend(4.0, 5.0) == IMPROVING
    assert classify_severity_trend(6.0, 5.0) == WORSENING
    assert classify_severity_trend(5.4, 5.0) == STABLE


def test_repeat_tags_across_two_most_recent_cycles():
    facts = [
        make_fact("0689", "D", date(2023, 2, 1)),
        make_fact("0880", "E", date(2023, 2, 1)),
        make_fact("0880", "D", date(2024, 3, 1)),
        make_fact("0684", "D", date(2024, 3, 1)),
    ]
    metrics = calculate_citation_metrics(facts, AS_OF)

    assert metrics.repeat_tags == ("0880",)
    assert metrics.repeat_tag_rate == 0.5
    assert metrics.current_count == 2
    assert metrics.previous_count == 2
    assert metrics.two_back_count == 0


def test_complaint_only_deficiencies_do_not_form_cycles():
    facts = [
        make_fact("0689", "D", date(2024, 3, 1)),
        make_fact("0689", "D", date(2024, 4, 1), is_standard=False, is_complaint=True),
    ]
    metrics = calculate_citation_metrics(facts, AS_OF)

    assert metrics.current_count == 1
    assert metrics.last_survey_date == date(2024, 3, 1)


@pytest.mark.parametrize("days,overdue", [(455, False), (456, False), (457, True)])
def test_survey_overdue_boundary(days, overdue):
    facts = [make_fact("0689", "D", AS_OF - timedelta(days=days))]
    metrics = calculate_citation_metrics(facts, AS_OF)

    assert metrics.days_since_last_survey == days
    assert metrics.survey_overdue is overdue


def test_days_since_last_immediate_jeopardy():
    facts = [
        make_fact("0689", "J", date(2022, 1, 10)),
        make_fact("0880", "K", date(2023, 5, 1)),
        make_fact("0880", "D", date(2024, 3, 1)),
    ]
    metrics = calculate_citation_metrics(facts, AS_OF)

    assert metrics.days_since_last_ij == (AS_OF - date(2023, 5, 1)).days


def test_no_history_metrics():
    metrics = calculate_citation_metrics([], AS_OF)

    assert metrics.current_count == 0
    assert metrics.citation_velocity == STABLE
    assert metrics.last_survey_date is None
    assert metrics.days_since_last_ij is None
    assert metrics.survey_overdue is False


# --- Category aggregates & factors ---

def test_category_repeat_tags_use_facility_cycles():
    facts = [
        make_fact("0880", "D", date(2023, 2, 1)),
        make_fact("0880", "D", date(2024, 3, 1)),
        make_fact("0689", "D", date(2022, 1, 5)),
        make_fact("0689", "D", date(2024, 3, 1)),
    ]
    aggregates = aggregate_categories(facts)

    assert aggregates[5].repeat_tags == ("0880",)
    # 0689 was not cited in the facility's previous cycle
    assert aggregates[2].repeat_tags == ()
    assert aggregates[2].citation_count == 2
    assert aggregates[2].last_cited == date(2024, 3, 1)


def test_unmapped_tags_are_ignored_by_categories():
    aggregates = aggregate_categories([make_fact("9999", "J")])

    assert all(a.citation_count == 0 for a in aggregates.values())


def test_citation_factor_bonuses_are_clamped():
    aggregates = aggregate_categories([
        make_fact("0880", "J", date(2024, 3, 1)),
        make_fact("0880", "G", date(2024, 3, 1)),
    ])
    assert citation_factor(aggregates[5], aggregates[5].severity_weighted_count) == 100


@pytest.mark.parametrize("count,peer_avg,expected", [
    (10, 5.0, 100.0),
    (20, 5.0, 100.0),
    (0, 4.0, 0.0),
    (3, None, 50.0),
    (1, 0.5, 75.0),
    (4, 4.0, 50.0),
])
def test_peer_factor(count, peer_avg, expected):
    assert peer_factor(count, peer_avg) == expected


# --- Composite, ranking, overall ---

def test_one_cycle_harm_and_immediate_jeopardy_scenario():
    facts = [
        make_fact("0689", "G", date(2024, 3, 1)),  # Accidents/Falls, actual harm
        make_fact("0880", "J", date(2024, 3, 1)),  # Infection Control, IJ
    ]
    result = _risk(facts)
    by_category = {s.category_id: s for s in result.categories}

    assert by_category[2].citation_count == 1
    assert by_category[2].severity_weighted_count == 5
    assert by_category[2].aggregate.had_harm
    assert by_category[5].citation_count == 1
    assert by_category[5].severity_weighted_count == 10
    assert by_category[5].aggregate.had_immediate_jeopardy

    assert result.metrics.citation_velocity == STABLE
    assert result.metrics.survey_overdue is False
    assert result.metrics.current_avg_severity == 8.5
    assert result.metrics.severity_trend == WORSENING

    assert by_category[5].composite == 70
    assert by_category[2].composite == 54
    assert by_category[1].composite == 30
    top3 = sorted((s.composite for s in result.categories), reverse=True)[:3]
    assert result.overall_score == round_half_up(sum(top3) / 3) == 51
    assert result.overall_tier == "High"


def test_nightly_profile_weights():
    facts = [
        make_fact("0689", "G", date(2024, 3, 1)),
        make_fact("0880", "J", date(2024, 3, 1)),
    ]
    result = _risk(facts, profile=NIGHTLY_V1)
    by_category = {s.category_id: s for s in result.categories}

    assert by_category[5].composite == 75
    assert by_category[2].composite == 55
    assert result.overall_score == 52
    assert result.profile == "nightly_v1"


def test_zero_deficiency_facility():
    result = _risk([])

    assert result.overall_score == 0
    assert result.overall_tier == "Low"
    for score in result.categories:
        assert score.factor(CITATION) == 0
        assert score.factor(PEER) == 50
        assert score.composite == 0
        assert score.repeat_tags == ()
    assert [s.rank for s in result.categories] == [1, 2, 3, 4, 5, 6, 7]
    assert [s.category_id for s in result.categories] == [1, 2, 3, 4, 5, 6, 7]


def test_complaint_only_facility_scores_zero():
    result = _risk([make_fact("0689", "J", is_standard=False, is_complaint=True)])

    assert result.overall_score == 0


def test_adjustments_raise_overall_score():
    facts = [make_fact("0880", "D", date(2021, 1, 5))]
    facts += [make_fact(tag, "D", date(2022, 1, 5)) for tag in ("0880", "0689", "0684")]
    result = _risk(facts, as_of=date(2024, 6, 1))

    # worsening (+10), repeat rate 1/3 (+10), overdue (+5)
    assert result.metrics.citation_velocity == WORSENING
    assert result.metrics.repeat_tag_rate > 0.3
    assert result.metrics.survey_overdue
    top3 = sorted((s.composite for s in result.categories), reverse=True)[:3]
    assert result.overall_score == min(100, round_half_up(sum(top3) / 3) + 25)


def test_overall_score_is_clamped():
    metrics = calculate_citation_metrics([], AS_OF)
    assert overall_risk_score((), metrics) == 0


@pytest.mark.parametrize("score,tier", [(0, "Low"), (24, "Low"), (25, "Medium"), (50, "High"), (75, "Very High"), (100, "Very High")])
def test_risk_tier(score, tier):
    assert risk_tier(score) == tier


@pytest.mark.parametrize("profile", [INTERACTIVE_V1, NIGHTLY_V1])
def test_composite_range_and_rank_order(profile):
    rng = random.Random(483)
    tags = sorted(FTAG_CATEGORY_MAP)
    surveys = [date(2022, 4, 1), date(2023, 5, 1), date(2024, 3, 1)]
    benchmarks = StateCategoryBenchmarkTable({
        ("FL", 2): CategoryBenchmark(avg_citations=0.5, median_citations=0.5, p75_citations=1, facility_count=2),
        ("FL", 5): CategoryBenchmark(avg_citations=40, median_citations=40, p75_citations=50, facility_count=9),
    })

    for _ in range(25):
        facts = [
            make_fact(rng.choice(tags), rng.choice("ABCDEFGHIJKLZ"), rng.choice(surveys))
            for _ in range(rng.randint(0, 30))
        ]
        result = _risk(facts, profile=profile, benchmarks=benchmarks)

        composites = [s.composite for s in result.categories]
        assert all(0 <= c <= 100 for c in composites)
        assert composites == sorted(composites, reverse=True)
        assert [s.rank for s in result.categories] == list(range(1, 8))
        assert 0 <= result.overall_score <= 100
