"""Turn scored categories into focus areas: evidence, recommendations, key metrics.

Everything returned here is JSON-ready (plain dicts, lists, ISO dates) because
the same structures are stored in the snapshot blobs and served by the API.
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .benchmarks import StateTrends
from .catalog import RECOMMENDATION_CATALOG, SCORECARD_ALIGNMENT
from .engine import CategoryScore, CitationMetrics, FacilityRiskResult, round_half_up
from .mappings import MAPPING_VERSION
from .facts import DeficiencyFact, FacilityProfile
from .profiles import FACTORS
from .quality_measures import QualityMeasureProvider

MAX_RECOMMENDATIONS = 5
MAX_CODES_TO_REVIEW = 10
LOOKBACK_YEARS = 3


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def build_citation_narrative(score: CategoryScore) -> str:
    name = score.category_name.lower()
    if score.citation_count == 0:
        return f"No {name} citations in past 3 years."

    parts = [f"{score.citation_count} {name} citations in past 3 years"]
    if score.aggregate.had_immediate_jeopardy:
        parts.append("including Immediate Jeopardy")
    elif score.aggregate.had_harm:
        parts.append("including Actual Harm deficiencies")
    if score.repeat_tags:
        parts.append(f"{len(score.repeat_tags)} repeat F-tags from previous survey")
    return "; ".join(parts) + "."


def build_recommendations(score: CategoryScore) -> List[Dict[str, str]]:
    recommendations = []
    for index, (area, rationale) in enumerate(RECOMMENDATION_CATALOG.get(score.category_id, [])):
        if index == 0 and score.composite > 60:
            priority = "High"
        elif index < 2 and score.composite > 40:
            priority = "Medium"
        else:
            priority = "Low"
        recommendations.append({"priority": priority, "area": area, "rationale": rationale})

    if score.repeat_tags:
        recommendations.insert(0, {
            "priority": "High",
            "area": "Address Repeat Citations",
            "rationale": f"F-tags {', '.join(score.repeat_tags)} cited in consecutive surveys - systemic issue",
        })
    return recommendations[:MAX_RECOMMENDATIONS]


def build_peer_evidence(score: CategoryScore) -> Dict[str, Any]:
    peer_avg = score.peer_average
    if peer_avg is None:
        narrative = "No peer data available"
    elif score.citation_count > peer_avg:
        narrative = f"{score.citation_count / max(peer_avg, 1):.1f}x more citations than similar facilities"
    else:
        narrative = "Below peer average"
    return {
        "peer_group_size": score.peer_count,
        "peer_avg_citations": round_half_up(peer_avg, 1) if peer_avg is not None else None,
        "facility_citations": score.citation_count,
        "narrative": narrative,
    }


def build_state_trend_evidence(trends: StateTrends) -> Dict[str, Any]:
    yoy_percent = int(round_half_up(trends.yoy_change * 100))
    if trends.yoy_change > 0.1:
        narrative = f"State increased citations by {yoy_percent}% this year"
    else:
        narrative = "State citation rates stable or decreasing"
    return {"yoy_change": yoy_percent, "narrative": narrative}


def build_focus_area(
    score: CategoryScore,
    state_trends: Optional[StateTrends] = None,
) -> Dict[str, Any]:
    aggregate = score.aggregate
    peer_evidence = build_peer_evidence(score)

    evidence: Dict[str, Any] = {
        "citation_history": {
            "count_3yr": score.citation_count,
            "severity_weighted_count": score.severity_weighted_count,
            "repeat_tags": list(score.repeat_tags),
            "last_cited": _iso(aggregate.last_cited),
            "had_ij": aggregate.had_immediate_jeopardy,
            "had_harm": aggregate.had_harm,
            "narrative": build_citation_narrative(score),
        },
        "peer_comparison": peer_evidence,
        "state_trends": build_state_trend_evidence(state_trends) if state_trends is not None else None,
    }

    return {
        "rank": score.rank,
        "category_id": score.category_id,
        "category_name": score.category_name,
        "category_risk_score": score.composite,
        "factor_scores": {f: round_half_up(score.factor(f), 2) for f in FACTORS},
        "evidence": evidence,
        "recommendations": build_recommendations(score),
        "codes_to_review": sorted(aggregate.tags_cited)[:MAX_CODES_TO_REVIEW],
        "scorecard_alignment": {
            "our_category": f"{score.category_id}. {score.category_name}",
            "audit_focus_items": [
                f"Item {item}: {description}"
                for item, description in SCORECARD_ALIGNMENT.get(score.category_id, [])
            ],
        },
    }


def build_focus_areas(
    result: FacilityRiskResult,
    state_trends: Optional[StateTrends] = None,
) -> List[Dict[str, Any]]:
    return [build_focus_area(score, state_trends) for score in result.categories]


def complaint_survey_rate(facts: Iterable[DeficiencyFact], years: int = LOOKBACK_YEARS) -> float:
    """Distinct complaint-only survey dates per year over the window."""
    dates = {f.survey_date for f in facts if f.is_complaint and not f.is_standard}
    return round_half_up(len(dates) / years, 1)


def build_staffing(facility: FacilityProfile) -> Dict[str, Any]:
    weekend_gap = None
    if facility.total_nurse_staffing_hours and facility.weekend_total_nurse_hours:
        weekend_gap = round_half_up(
            (facility.total_nurse_staffing_hours - facility.weekend_total_nurse_hours)
            / facility.total_nurse_staffing_hours,
            2,
        )
    return {
        "rn_hours": facility.rn_staffing_hours,
        "total_hours": facility.total_nurse_staffing_hours,
        "weekend_total_hours": facility.weekend_total_nurse_hours,
        "weekend_gap": weekend_gap,
        "turnover": facility.total_nursing_turnover,
        "rn_turnover": facility.rn_turnover,
    }


def build_key_metrics(
    facility: FacilityProfile,
    metrics: CitationMetrics,
    facts: Iterable[DeficiencyFact],
    quality_measures: QualityMeasureProvider,
) -> Dict[str, Any]:
    return {
        "citation_velocity": metrics.citation_velocity,
        "severity_trend": metrics.severity_trend,
        "current_avg_severity": metrics.current_avg_severity,
        "current_survey_deficiencies": metrics.current_count,
        "previous_survey_deficiencies": metrics.previous_count,
        "prev2_survey_deficiencies": metrics.two_back_count,
        "repeat_tag_rate": metrics.repeat_tag_rate,
        "repeat_tags": list(metrics.repeat_tags),
        "last_survey_date": _iso(metrics.last_survey_date),
        "days_since_last_survey": metrics.days_since_last_survey,
        "days_since_last_ij": metrics.days_since_last_ij,
        "survey_overdue": metrics.survey_overdue,
        "ownership_type": facility.ownership_type,
        "special_focus_facility": facility.special_focus_facility,
        "fine_count": facility.fine_count,
        "total_fines_amount": facility.total_fines_amount,
        "complaint_survey_rate": complaint_survey_rate(facts),
        "qm_trends_summary": quality_measures.trends_summary(facility),
        "staffing": build_staffing(facility),
        "occupancy_rate": facility.occupancy_rate,
        "mapping_version": MAPPING_VERSION,
    }
