from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from facility_risk.core.config import settings
from facility_risk.core.database_utils import SessionFactory
from facility_risk.db.session import SessionLocal
from facility_risk.models import CmsFacilityDeficiency, SnfFacility

from .assembler import build_focus_areas, build_key_metrics
from .benchmarks import (
    BenchmarkProvider,
    PeerGroupBenchmark,
    StateTrends,
    load_peer_group_benchmark,
    load_state_trends,
)
from .engine import FacilityRiskResult, compute_facility_risk, lookback_start
from .facts import DeficiencyFact, FacilityProfile
from .profiles import ScoringProfile, get_profile
from .quality_measures import NeutralQualityMeasures, QualityMeasureProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FacilityAssessment:
    """Everything computed for one facility; what the upserter persists."""
    result: FacilityRiskResult
    key_metrics: Dict[str, Any]
    focus_areas: List[Dict[str, Any]]

    @property
    def facility_id(self) -> str:
        return self.result.facility.facility_id

    def to_payload(self, calculated_at: datetime, model_version: str) -> Dict[str, Any]:
        facility = self.result.facility
        return {
            "facility_id": facility.facility_id,
            "federal_provider_number": facility.facility_id,
            "facility_name": facility.name,
            "state": facility.state,
            "overall_risk_score": self.result.overall_score,
            "overall_risk_tier": self.result.overall_tier,
            "focus_areas": self.focus_areas,
            "key_metrics": self.key_metrics,
            "calculated_at": calculated_at,
            "model_version": model_version,
            "scoring_profile": self.result.profile,
            "data_as_of_date": self.result.as_of,
        }


def assess_facility(
    facility: FacilityProfile,
    facts: Iterable[DeficiencyFact],
    as_of: date,
    benchmarks: BenchmarkProvider,
    quality_measures: QualityMeasureProvider,
    profile: ScoringProfile,
    overdue_days: int = 456,
    state_trends: Optional[StateTrends] = None,
) -> FacilityAssessment:
    """Score one facility and assemble its focus areas. Pure; safe from worker threads."""
    facts = tuple(facts)
    result = compute_facility_risk(
        facility, facts, as_of, benchmarks, quality_measures, profile, overdue_days=overdue_days
    )
    key_metrics = build_key_metrics(facility, result.metrics, facts, quality_measures)
    return FacilityAssessment(
        result=result,
        key_metrics=key_metrics,
        focus_areas=build_focus_areas(result, state_trends=state_trends),
    )


# --- On-demand query outcomes ---

@dataclass(frozen=True)
class FocusAreasFound:
    assessment: FacilityAssessment
    payload: Dict[str, Any]


@dataclass(frozen=True)
class FacilityNotFound:
    facility_id: str


@dataclass(frozen=True)
class FocusAreasFailed:
    facility_id: str
    message: str


FocusAreasOutcome = Union[FocusAreasFound, FacilityNotFound, FocusAreasFailed]


class FocusAreasService:
    """Per-request focus areas for one facility.

    Facility and deficiency loading runs first; the peer-group and state-trend
    queries do not depend on each other and run concurrently, each on its own
    session.
    """

    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        profile: Optional[ScoringProfile] = None,
        quality_measures: Optional[QualityMeasureProvider] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session_factory = session_factory
        self.profile = profile or get_profile(settings.FOCUS_AREAS_INTERACTIVE_PROFILE)
        self.quality_measures = quality_measures or NeutralQualityMeasures()
        self.clock = clock

    # Loaders (each opens and closes its own session)
    def _load_facility(self, facility_id: str, since: date) -> Optional[Tuple[FacilityProfile, Tuple[DeficiencyFact, ...]]]:
        db: Session = self.session_factory()
        try:
            row = (
                db.query(SnfFacility)
                .filter(SnfFacility.federal_provider_number == facility_id)
                .first()
            )
            if row is None:
                return None
            deficiencies = (
                db.query(CmsFacilityDeficiency)
                .filter(CmsFacilityDeficiency.federal_provider_number == facility_id)
                .filter(CmsFacilityDeficiency.survey_date >= since)
                .order_by(CmsFacilityDeficiency.survey_date.desc())
                .all()
            )
            return FacilityProfile.from_row(row), tuple(DeficiencyFact.from_row(d) for d in deficiencies)
        finally:
            db.close()

    def _load_peer_group(self, facility: FacilityProfile, since: date) -> PeerGroupBenchmark:
        db: Session = self.session_factory()
        try:
            return load_peer_group_benchmark(db, facility, since, bed_band=settings.FOCUS_AREAS_PEER_BED_BAND)
        finally:
            db.close()

    def _load_state_trends(self, state: str, as_of: date) -> StateTrends:
        db: Session = self.session_factory()
        try:
            return load_state_trends(db, state, as_of)
        finally:
            db.close()

    async def get_focus_areas(self, facility_id: str, as_of: Optional[date] = None) -> FocusAreasOutcome:
        calculated_at = self.clock()
        as_of = as_of or calculated_at.date()
        since = lookback_start(as_of, settings.FOCUS_AREAS_LOOKBACK_YEARS)
        try:
            loaded = await asyncio.to_thread(self._load_facility, facility_id, since)
            if loaded is None:
                logger.info(f"[FocusAreas] Facility {facility_id} not found")
                return FacilityNotFound(facility_id=facility_id)
            facility, facts = loaded

            peer_group, state_trends = await asyncio.gather(
                asyncio.to_thread(self._load_peer_group, facility, since),
                asyncio.to_thread(self._load_state_trends, facility.state, as_of),
            )

            assessment = assess_facility(
                facility,
                facts,
                as_of,
                peer_group,
                self.quality_measures,
                self.profile,
                overdue_days=settings.FOCUS_AREAS_OVERDUE_DAYS,
                state_trends=state_trends,
            )
        except Exception as e:
            logger.exception(f"[FocusAreas] Error calculating focus areas for {facility_id}: {e}")
            return FocusAreasFailed(facility_id=facility_id, message=str(e))

        payload = assessment.to_payload(calculated_at, settings.FOCUS_AREAS_MODEL_VERSION)
        payload["peer_group"] = {
            "peer_group_size": peer_group.peer_group_size,
            "avg_citations": round(peer_group.avg_citations, 1),
            "median_citations": peer_group.median_citations,
            "bed_bucket": peer_group.bed_bucket,
        }
        return FocusAreasFound(assessment=assessment, payload=payload)
