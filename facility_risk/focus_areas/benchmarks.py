"""Peer and state benchmarks for the category peer factor.

Two lookup shapes share one interface:

- ``PeerGroupBenchmark``: loaded per request for a single facility from the
  facilities in the same state with a certified-bed count within +/-25%.
- ``StateCategoryBenchmarkTable``: built once per batch run from the
  bulk-loaded facts and shared read-only by every worker.

Either may be empty; callers treat a missing category benchmark as "no peer
data" and fall back to a neutral factor.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from sqlalchemy import func
from sqlalchemy.orm import Session

from facility_risk.models import CmsFacilityDeficiency, SnfFacility

from .facts import DeficiencyFact, FacilityProfile
from .mappings import category_for_tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryBenchmark:
    avg_citations: float
    median_citations: float
    p75_citations: float
    facility_count: int


def percentile_cont(values: Sequence[float], q: float) -> float:
    """Linear-interpolated percentile, same definition as SQL PERCENTILE_CONT."""
    if len(values) == 0:
        raise ValueError("percentile of empty data")
    return float(np.percentile(values, q * 100))


def summarize_counts(counts: Iterable[int]) -> Optional[CategoryBenchmark]:
    values = [float(c) for c in counts]
    if not values:
        return None
    return CategoryBenchmark(
        avg_citations=float(np.mean(values)),
        median_citations=float(np.median(values)),
        p75_citations=percentile_cont(values, 0.75),
        facility_count=len(values),
    )


def bed_bucket(certified_beds: Optional[int]) -> Optional[str]:
    if certified_beds is None:
        return None
    if certified_beds < 60:
        return "small"
    if certified_beds < 120:
        return "medium"
    return "large"


class BenchmarkProvider(ABC):
    @abstractmethod
    def category_benchmark(self, facility: FacilityProfile, category_id: int) -> Optional[CategoryBenchmark]:
        """Aggregate citation statistics comparable to this facility's category, or None."""


# --- On-demand peer group ---

@dataclass(frozen=True)
class PeerGroupBenchmark(BenchmarkProvider):
    peer_group_size: int = 0
    avg_citations: float = 0.0
    median_citations: float = 0.0
    bed_bucket: Optional[str] = None
    categories: Mapping[int, CategoryBenchmark] = field(default_factory=dict)

    @classmethod
    def empty(cls, bucket: Optional[str] = None) -> "PeerGroupBenchmark":
        return cls(bed_bucket=bucket)

    def category_benchmark(self, facility: FacilityProfile, category_id: int) -> Optional[CategoryBenchmark]:
        return self.categories.get(category_id)


def load_peer_group_benchmark(
    db: Session,
    facility: FacilityProfile,
    since: date,
    bed_band: float = 0.25,
) -> PeerGroupBenchmark:
    """Query standard-citation statistics for the facility's state + bed-band peers.

    Failures degrade to an empty benchmark so the request can still be served.
    """
    bucket = bed_bucket(facility.certified_beds)
    if not facility.certified_beds:
        return PeerGroupBenchmark.empty(bucket)
    try:
        low = facility.certified_beds * (1 - bed_band)
        high = facility.certified_beds * (1 + bed_band)
        peers = (
            db.query(SnfFacility.federal_provider_number)
            .filter(SnfFacility.state == facility.state)
            .filter(SnfFacility.certified_beds.between(low, high))
            .subquery()
        )
        rows = (
            db.query(
                CmsFacilityDeficiency.federal_provider_number,
                CmsFacilityDeficiency.deficiency_tag,
                func.count(CmsFacilityDeficiency.id),
            )
            .join(peers, peers.c.federal_provider_number == CmsFacilityDeficiency.federal_provider_number)
            .filter(CmsFacilityDeficiency.survey_date >= since)
            .filter(CmsFacilityDeficiency.is_standard_deficiency == True)  # noqa: E712
            .group_by(CmsFacilityDeficiency.federal_provider_number, CmsFacilityDeficiency.deficiency_tag)
            .all()
        )
    except Exception as e:
        logger.warning(f"[FocusAreas] Peer comparison failed for {facility.facility_id}: {e}")
        return PeerGroupBenchmark.empty(bucket)

    totals: Dict[str, int] = defaultdict(int)
    by_category: Dict[int, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for provider, tag, count in rows:
        totals[provider] += count
        category_id = category_for_tag(tag)
        if category_id is not None:
            by_category[category_id][provider] += count

    overall = summarize_counts(totals.values())
    if overall is None:
        return PeerGroupBenchmark.empty(bucket)
    categories = {cid: summarize_counts(counts.values()) for cid, counts in by_category.items()}
    return PeerGroupBenchmark(
        peer_group_size=overall.facility_count,
        avg_citations=overall.avg_citations,
        median_citations=overall.median_citations,
        bed_bucket=bucket,
        categories=MappingProxyType({cid: b for cid, b in categories.items() if b is not None}),
    )


# --- Batch state x category table ---

class StateCategoryBenchmarkTable(BenchmarkProvider):
    """Read-only (state, category) -> statistics lookup for one batch run.

    Statistics cover facilities with at least one standard citation in the
    category during the window.
    """

    def __init__(self, stats: Mapping[Tuple[str, int], CategoryBenchmark]):
        self._stats = MappingProxyType(dict(stats))

    @classmethod
    def build(
        cls,
        facility_states: Mapping[str, str],
        facts_by_facility: Mapping[str, Sequence[DeficiencyFact]],
    ) -> "StateCategoryBenchmarkTable":
        counts: Dict[Tuple[str, int], Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for facility_id, facts in facts_by_facility.items():
            state = facility_states.get(facility_id)
            if state is None:
                continue
            for fact in facts:
                if not fact.is_standard:
                    continue
                category_id = category_for_tag(fact.tag)
                if category_id is not None:
                    counts[(state, category_id)][facility_id] += 1

        stats: Dict[Tuple[str, int], CategoryBenchmark] = {}
        for key, per_facility in counts.items():
            summary = summarize_counts(per_facility.values())
            if summary is not None:
                stats[key] = summary
        return cls(stats)

    def __len__(self) -> int:
        return len(self._stats)

    def get(self, state: str, category_id: int) -> Optional[CategoryBenchmark]:
        return self._stats.get((state, category_id))

    def category_benchmark(self, facility: FacilityProfile, category_id: int) -> Optional[CategoryBenchmark]:
        return self._stats.get((facility.state, category_id))


# --- State survey trends ---

@dataclass(frozen=True)
class StateTrends:
    current_year_citations: int = 0
    prev_year_citations: int = 0
    yoy_change: float = 0.0


def load_state_trends(db: Session, state: str, as_of: date) -> StateTrends:
    """Year-over-year change in standard citations across the state."""
    try:
        counts: List[int] = []
        for year in (as_of.year, as_of.year - 1):
            count = (
                db.query(func.count(CmsFacilityDeficiency.id))
                .join(SnfFacility, SnfFacility.federal_provider_number == CmsFacilityDeficiency.federal_provider_number)
                .filter(SnfFacility.state == state)
                .filter(CmsFacilityDeficiency.is_standard_deficiency == True)  # noqa: E712
                .filter(CmsFacilityDeficiency.survey_date >= date(year, 1, 1))
                .filter(CmsFacilityDeficiency.survey_date <= date(year, 12, 31))
                .scalar()
            )
            counts.append(int(count or 0))
    except Exception as e:
        logger.warning(f"[FocusAreas] State trends failed for {state}: {e}")
        return StateTrends()

    current, previous = counts
    yoy = (current - previous) / previous if previous > 0 else 0.0
    return StateTrends(current_year_citations=current, prev_year_citations=previous, yoy_change=yoy)
