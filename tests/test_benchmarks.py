from datetime import date
from unittest.mock import MagicMock

import pytest

from facility_risk.focus_areas.benchmarks import (
    PeerGroupBenchmark,
    StateCategoryBenchmarkTable,
    StateTrends,
    bed_bucket,
    load_peer_group_benchmark,
    load_state_trends,
    percentile_cont,
    summarize_counts,
)

from .factories import add_deficiency, add_facility, make_fact, make_profile

SINCE = date(2021, 6, 1)


def test_percentile_cont_interpolates():
    assert percentile_cont([1, 2, 3, 4], 0.75) == 3.25
    assert percentile_cont([2, 4], 0.5) == 3
    assert percentile_cont([7], 0.75) == 7
    with pytest.raises(ValueError):
        percentile_cont([], 0.5)


def test_summarize_counts():
    summary = summarize_counts([2, 4, 9])
    assert summary.avg_citations == 5
    assert summary.median_citations == 4
    assert summary.facility_count == 3
    assert summarize_counts([]) is None


@pytest.mark.parametrize("beds,bucket", [(None, None), (59, "small"), (60, "medium"), (119, "medium"), (120, "large")])
def test_bed_bucket(beds, bucket):
    assert bed_bucket(beds) == bucket


def test_state_table_statistics():
    facts_by_facility = {
        "A": [make_fact("0689", facility_id="A"), make_fact("0688", facility_id="A")],
        "B": [make_fact("0689", facility_id="B") for _ in range(4)]
        + [make_fact("0880", facility_id="B", is_standard=False, is_complaint=True)],
        "C": [make_fact("0880", facility_id="C")],
        "D": [make_fact("0689", facility_id="D")],
    }
    table = StateCategoryBenchmarkTable.build({"A": "FL", "B": "FL", "C": "FL", "D": "GA"}, facts_by_facility)

    falls = table.get("FL", 2)
    assert falls.avg_citations == 3
    assert falls.median_citations == 3
    assert falls.p75_citations == 3.5
    assert falls.facility_count == 2

    assert table.get("FL", 5).facility_count == 1
    assert table.get("GA", 2).avg_citations == 1
    assert table.get("GA", 5) is None
    assert len(table) == 3
    assert table.category_benchmark(make_profile(state="GA"), 2).facility_count == 1


def test_state_table_skips_facilities_without_state():
    table = StateCategoryBenchmarkTable.build({}, {"A": [make_fact("0689", facility_id="A")]})
    assert len(table) == 0


def test_peer_group_uses_state_and_bed_band(db):
    add_facility(db, "100001", "FL", 100)
    add_facility(db, "100002", "FL", 80)
    add_facility(db, "100003", "FL", 125)
    add_facility(db, "100004", "FL", 130)
    add_facility(db, "200001", "GA", 100)
    for _ in range(2):
        add_deficiency(db, "100001", date(2024, 3, 1), "F0689")
    for _ in range(4):
        add_deficiency(db, "100002", date(2023, 3, 1), "F0689")
    add_deficiency(db, "100003", date(2023, 9, 1), "F0880")
    add_deficiency(db, "100003", date(2020, 9, 1), "F0880")  # outside window
    add_deficiency(db, "100002", date(2024, 1, 1), "F0689", is_standard=False, is_complaint=True)
    for _ in range(10):
        add_deficiency(db, "100004", date(2024, 3, 1), "F0689")
        add_deficiency(db, "200001", date(2024, 3, 1), "F0689")
    db.commit()

    peers = load_peer_group_benchmark(db, make_profile("100001", "FL", 100), SINCE)

    assert peers.peer_group_size == 3
    assert peers.avg_citations == pytest.approx(7 / 3)
    assert peers.median_citations == 2
    assert peers.bed_bucket == "medium"
    assert peers.categories[2].avg_citations == 3
    assert peers.categories[5].facility_count == 1
    assert peers.category_benchmark(make_profile(), 3) is None


def test_peer_group_without_beds_is_empty(db):
    peers = load_peer_group_benchmark(db, make_profile(certified_beds=None), SINCE)
    assert peers == PeerGroupBenchmark.empty()


def test_peer_group_query_failure_degrades_to_empty():
    db = MagicMock()
    db.query.side_effect = RuntimeError("connection reset")

    peers = load_peer_group_benchmark(db, make_profile(certified_beds=100), SINCE)

    assert peers.peer_group_size == 0
    assert peers.bed_bucket == "medium"
    assert peers.category_benchmark(make_profile(), 2) is None


def test_state_trends_query_failure_degrades_to_zero():
    db = MagicMock()
    db.query.side_effect = RuntimeError("connection reset")

    assert load_state_trends(db, "FL", date(2024, 6, 1)) == StateTrends()


def test_state_trends_year_over_year(db):
    add_facility(db, "100001", "FL", 100)
    add_facility(db, "200001", "GA", 100)
    for survey in (date(2024, 1, 10), date(2024, 2, 10), date(2024, 5, 1)):
        add_deficiency(db, "100001", survey)
    for survey in (date(2023, 3, 1), date(2023, 12, 31)):
        add_deficiency(db, "100001", survey)
    add_deficiency(db, "200001", date(2024, 1, 10))
    db.commit()

    trends = load_state_trends(db, "FL", date(2024, 6, 1))

    assert trends.current_year_citations == 3
    assert trends.prev_year_citations == 2
    assert trends.yoy_change == 0.5


def test_state_trends_without_previous_year(db):
    trends = load_state_trends(db, "FL", date(2024, 6, 1))
    assert trends.yoy_change == 0.0
