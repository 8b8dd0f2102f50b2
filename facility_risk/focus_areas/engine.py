"""Pure scoring functions for facility focus areas.

Nothing in this module touches the database or the clock: callers pass the
facility's deficiency facts, an ``as_of`` date and the benchmark /
quality-measure capabilities, which keeps every function deterministic and
safe to run from worker threads.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from .benchmarks import BenchmarkProvider
from .facts import DeficiencyFact, FacilityProfile
from .mappings import (
    CATEGORY_IDS,
    CLINICAL_CATEGORIES,
    category_for_tag,
    is_actual_harm,
    is_immediate_jeopardy,
    severity_number,
    severity_weight,
)
from .profiles import CITATION, PEER, ScoringProfile
from .quality_measures import QualityMeasureProvider

IMPROVING = "improving"
STABLE = "stable"
WORSENING = "worsening"

NEUTRAL_FACTOR = 50.0
SURVEY_OVERDUE_DAYS = 456


def round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def lookback_start(as_of: date, years: int = 3) -> date:
    """First survey date inside the scoring window (calendar years, like SQL INTERVAL)."""
    return as_of - relativedelta(years=years)


# --- Survey cycles & facility-wide citation metrics ---

@dataclass(frozen=True)
class SurveyCycle:
    survey_date: date
    deficiencies: Tuple[DeficiencyFact, ...]

    @property
    def count(self) -> int:
        return len(self.deficiencies)

    @property
    def tags(self) -> FrozenSet[str]:
        return frozenset(d.tag for d in self.deficiencies)


def group_survey_cycles(facts: Iterable[DeficiencyFact]) -> Tuple[SurveyCycle, ...]:
    """Group standard deficiencies by survey date, newest cycle first."""
    by_date: Dict[date, List[DeficiencyFact]] = defaultdict(list)
    for fact in facts:
        if fact.is_standard:
            by_date[fact.survey_date].append(fact)
    return tuple(
        SurveyCycle(survey_date=d, deficiencies=tuple(by_date[d]))
        for d in sorted(by_date, reverse=True)
    )


def classify_velocity(current_count: int, previous_count: int) -> str:
    # Without a previous cycle there is nothing to compare against
    if previous_count <= 0:
        return STABLE
    if current_count < previous_count * 0.8:
        return IMPROVING
    if current_count > previous_count * 1.2:
        return WORSENING
    return STABLE


def average_severity(deficiencies: Sequence[DeficiencyFact]) -> float:
    if not deficiencies:
        return 0.0
    return sum(severity_number(d.severity) for d in deficiencies) / len(deficiencies)


def classify_severity_trend(current_avg: float, previous_avg: float) -> str:
    if abs(current_avg - previous_avg) > 0.5:
        return IMPROVING if current_avg < previous_avg else WORSENING
    return STABLE


@dataclass(frozen=True)
class CitationMetrics:
    current_count: int
    previous_count: int
    two_back_count: int
    citation_velocity: str
    current_avg_severity: float
    severity_trend: str
    repeat_tags: Tuple[str, ...]
    repeat_tag_rate: float
    last_survey_date: Optional[date]
    days_since_last_survey: Optional[int]
    days_since_last_ij: Optional[int]
    survey_overdue: bool


def calculate_citation_metrics(
    facts: Iterable[DeficiencyFact],
    as_of: date,
    overdue_days: int = SURVEY_OVERDUE_DAYS,
) -> CitationMetrics:
    facts = tuple(facts)
    cycles = group_survey_cycles(facts)
    empty: Tuple[DeficiencyFact, ...] = ()
    current = cycles[0].deficiencies if len(cycles) > 0 else empty
    previous = cycles[1].deficiencies if len(cycles) > 1 else empty
    two_back = cycles[2].deficiencies if len(cycles) > 2 else empty

    current_avg = average_severity(current)
    previous_avg = average_severity(previous)

    current_tags = {d.tag for d in current}
    previous_tags = {d.tag for d in previous}
    repeat_tags = tuple(sorted(current_tags & previous_tags))
    repeat_rate = len(repeat_tags) / len(current_tags) if current_tags else 0.0

    last_survey = cycles[0].survey_date if cycles else None
    days_since_survey = (as_of - last_survey).days if last_survey else None

    ij_dates = [f.survey_date for f in facts if f.is_standard and is_immediate_jeopardy(f.severity)]
    days_since_ij = (as_of - max(ij_dates)).days if ij_dates else None

    return CitationMetrics(
        current_count=len(current),
        previous_count=len(previous),
        two_back_count=len(two_back),
        citation_velocity=classify_velocity(len(current), len(previous)),
        current_avg_severity=round_half_up(current_avg, 2),
        severity_trend=classify_severity_trend(current_avg, previous_avg),
        repeat_tags=repeat_tags,
        repeat_tag_rate=round_half_up(repeat_rate, 3),
        last_survey_date=last_survey,
        days_since_last_survey=days_since_survey,
        days_since_last_ij=days_since_ij,
        survey_overdue=days_since_survey is not None and days_since_survey > overdue_days,
    )


# --- Per-category aggregates ---

@dataclass(frozen=True)
class CategoryAggregate:
    category_id: int
    citation_count: int = 0
    severity_weighted_count: int = 0
    tags_cited: FrozenSet[str] = frozenset()
    repeat_tags: Tuple[str, ...] = ()
    had_immediate_jeopardy: bool = False
    had_harm: bool = False
    last_cited: Optional[date] = None


def aggregate_categories(facts: Iterable[DeficiencyFact]) -> Dict[int, CategoryAggregate]:
    """Reduce a facility's facts into one aggregate per clinical category.

    Only standard deficiencies with a mapped tag participate. Repeat tags are
    the tags a category received in both of the facility's two most recent
    survey cycles that carried mapped citations.
    """
    mapped: Dict[int, List[DeficiencyFact]] = defaultdict(list)
    for fact in facts:
        if not fact.is_standard:
            continue
        category_id = category_for_tag(fact.tag)
        if category_id is None:
            continue
        mapped[category_id].append(fact)

    survey_dates = sorted({f.survey_date for group in mapped.values() for f in group}, reverse=True)
    recent = survey_dates[:2] if len(survey_dates) >= 2 else []

    aggregates: Dict[int, CategoryAggregate] = {}
    for category_id in CATEGORY_IDS:
        group = mapped.get(category_id, [])
        if not group:
            aggregates[category_id] = CategoryAggregate(category_id=category_id)
            continue
        repeat_tags: Tuple[str, ...] = ()
        if recent:
            current_tags = {f.tag for f in group if f.survey_date == recent[0]}
            previous_tags = {f.tag for f in group if f.survey_date == recent[1]}
            repeat_tags = tuple(sorted(current_tags & previous_tags))
        aggregates[category_id] = CategoryAggregate(
            category_id=category_id,
            citation_count=len(group),
            severity_weighted_count=sum(severity_weight(f.severity) for f in group),
            tags_cited=frozenset(f.tag for f in group),
            repeat_tags=repeat_tags,
            had_immediate_jeopardy=any(is_immediate_jeopardy(f.severity) for f in group),
            had_harm=any(is_actual_harm(f.severity) for f in group),
            last_cited=max(f.survey_date for f in group),
        )
    return aggregates


# --- Factor scores ---

def citation_factor(aggregate: CategoryAggregate, max_severity_weighted: int) -> float:
    base = min(100.0, aggregate.severity_weighted_count / max(max_severity_weighted, 1) * 100)
    repeat_bonus = 5 * len(aggregate.repeat_tags)
    severity_bonus = (20 if aggregate.had_immediate_jeopardy else 0) + (10 if aggregate.had_harm else 0)
    return clamp(base + repeat_bonus + severity_bonus)


def peer_factor(citation_count: int, peer_average: Optional[float]) -> float:
    """Relative position against the peer/state average; neutral without peer data."""
    if peer_average is None:
        return NEUTRAL_FACTOR
    return clamp(50 + (citation_count - peer_average) / max(peer_average, 1) * 50)


@dataclass(frozen=True)
class CategoryScore:
    facility_id: str
    category_id: int
    aggregate: CategoryAggregate
    factors: Tuple[Tuple[str, float], ...]
    composite: int
    profile: str
    peer_average: Optional[float] = None
    peer_count: int = 0
    rank: int = 0

    @property
    def category_name(self) -> str:
        return CLINICAL_CATEGORIES[self.category_id].name

    @property
    def citation_count(self) -> int:
        return self.aggregate.citation_count

    @property
    def severity_weighted_count(self) -> int:
        return self.aggregate.severity_weighted_count

    @property
    def repeat_tags(self) -> Tuple[str, ...]:
        return self.aggregate.repeat_tags

    def factor(self, name: str) -> float:
        return dict(self.factors).get(name, 0.0)


def rank_category_scores(scores: Iterable[CategoryScore]) -> Tuple[CategoryScore, ...]:
    ordered = sorted(scores, key=lambda s: (-s.composite, s.category_id))
    return tuple(replace(s, rank=i) for i, s in enumerate(ordered, start=1))


def score_categories(
    facility: FacilityProfile,
    facts: Iterable[DeficiencyFact],
    benchmarks: BenchmarkProvider,
    quality_measures: QualityMeasureProvider,
    profile: ScoringProfile,
) -> Tuple[CategoryScore, ...]:
    facts = tuple(facts)
    aggregates = aggregate_categories(facts)
    max_weighted = max([a.severity_weighted_count for a in aggregates.values()] + [1])
    # No standard citations at all: there is no evidence to score
    has_history = any(f.is_standard for f in facts)

    scores = []
    for category_id, aggregate in aggregates.items():
        benchmark = benchmarks.category_benchmark(facility, category_id)
        peer_average = benchmark.avg_citations if benchmark is not None else None
        factor_scores: Dict[str, float] = dict(quality_measures.factor_scores(facility, category_id))
        factor_scores[CITATION] = citation_factor(aggregate, max_weighted)
        factor_scores[PEER] = peer_factor(aggregate.citation_count, peer_average)
        composite = int(clamp(round_half_up(profile.combine(factor_scores)))) if has_history else 0
        scores.append(
            CategoryScore(
                facility_id=facility.facility_id,
                category_id=category_id,
                aggregate=aggregate,
                factors=tuple(sorted(factor_scores.items())),
                composite=composite,
                profile=profile.name,
                peer_average=peer_average,
                peer_count=benchmark.facility_count if benchmark is not None else 0,
            )
        )
    return rank_category_scores(scores)


# --- Overall facility risk ---

def score_adjustment(metrics: CitationMetrics) -> int:
    adjustment = 0
    if metrics.citation_velocity == WORSENING:
        adjustment += 10
    if metrics.citation_velocity == IMPROVING:
        adjustment -= 10
    if metrics.repeat_tag_rate > 0.3:
        adjustment += 10
    if metrics.survey_overdue:
        adjustment += 5
    return adjustment


def overall_risk_score(ranked: Sequence[CategoryScore], metrics: CitationMetrics) -> int:
    top = sorted((s.composite for s in ranked), reverse=True)[:3]
    top_average = sum(top) / 3
    return int(clamp(round_half_up(top_average) + score_adjustment(metrics)))


def risk_tier(score: float) -> str:
    if score >= 75:
        return "Very High"
    if score >= 50:
        return "High"
    if score >= 25:
        return "Medium"
    return "Low"


@dataclass(frozen=True)
class FacilityRiskResult:
    facility: FacilityProfile
    as_of: date
    metrics: CitationMetrics
    categories: Tuple[CategoryScore, ...]
    overall_score: int
    overall_tier: str
    profile: str


def compute_facility_risk(
    facility: FacilityProfile,
    facts: Iterable[DeficiencyFact],
    as_of: date,
    benchmarks: BenchmarkProvider,
    quality_measures: QualityMeasureProvider,
    profile: ScoringProfile,
    overdue_days: int = SURVEY_OVERDUE_DAYS,
) -> FacilityRiskResult:
    facts = tuple(facts)
    metrics = calculate_citation_metrics(facts, as_of, overdue_days=overdue_days)
    ranked = score_categories(facility, facts, benchmarks, quality_measures, profile)
    overall = overall_risk_score(ranked, metrics)
    return FacilityRiskResult(
        facility=facility,
        as_of=as_of,
        metrics=metrics,
        categories=ranked,
        overall_score=overall,
        overall_tier=risk_tier(overall),
        profile=profile.name,
    )
