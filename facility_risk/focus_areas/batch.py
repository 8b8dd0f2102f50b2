"""Nightly recalculation of focus areas for every active facility.

The run loads all inputs up front (facility list, one bulk pass over the
in-window deficiencies, the state x category benchmark table), then scores
facilities on a bounded thread pool in flush-sized windows. Each window is
persisted before the next one is submitted.
"""

import logging
import threading
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from facility_risk.core.config import settings
from facility_risk.core.database_utils import SessionFactory, get_db_session
from facility_risk.crud.focus_areas import FocusAreasCRUD
from facility_risk.db.session import SessionLocal
from facility_risk.models import CmsFacilityDeficiency, SnfFacility

from .benchmarks import StateCategoryBenchmarkTable
from .engine import lookback_start
from .errors import BatchAbortedError
from .facts import DeficiencyFact, FacilityProfile
from .profiles import ScoringProfile, get_profile
from .quality_measures import NeutralQualityMeasures, QualityMeasureProvider
from .services import FacilityAssessment, assess_facility

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    calculated_at: datetime
    profile: str
    total: int = 0
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0
    cancelled: bool = False
    failed_facility_ids: List[str] = field(default_factory=list)

    def record_failure(self, facility_id: str) -> None:
        self.errors += 1
        self.failed_facility_ids.append(facility_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["calculated_at"] = self.calculated_at.isoformat()
        return data


class FocusAreasBatchRunner:
    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        profile: Optional[ScoringProfile] = None,
        quality_measures: Optional[QualityMeasureProvider] = None,
        batch_size: Optional[int] = None,
        workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.session_factory = session_factory
        self.profile = profile or get_profile(settings.FOCUS_AREAS_BATCH_PROFILE)
        self.quality_measures = quality_measures or NeutralQualityMeasures()
        self.batch_size = settings.FOCUS_AREAS_BATCH_SIZE if batch_size is None else batch_size
        self.workers = settings.FOCUS_AREAS_BATCH_WORKERS if workers is None else workers
        self.cancel_event = cancel_event or threading.Event()
        if self.batch_size <= 0 or self.workers <= 0:
            raise ValueError("batch_size and workers must be positive")

    def cancel(self) -> None:
        """Stop starting new facilities; computed results are still flushed."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    # --- Loading ---

    @staticmethod
    def load_facilities(
        db: Session,
        state: Optional[str] = None,
        facility_id: Optional[str] = None,
    ) -> List[FacilityProfile]:
        query = db.query(SnfFacility).filter(SnfFacility.active == True)  # noqa: E712
        if state:
            query = query.filter(SnfFacility.state == state)
        if facility_id:
            query = query.filter(SnfFacility.federal_provider_number == facility_id)
        rows = query.order_by(SnfFacility.federal_provider_number).all()
        return [FacilityProfile.from_row(row) for row in rows]

    @staticmethod
    def load_facts(
        db: Session,
        states: Sequence[str],
        since: date,
    ) -> Tuple[Dict[str, str], Dict[str, List[DeficiencyFact]]]:
        """One pass over in-window deficiencies for every facility in the given states.

        Returns (facility -> state, facility -> facts). Facts of facilities
        outside the run still feed the state benchmark table.
        """
        facility_states: Dict[str, str] = {}
        facts_by_facility: Dict[str, List[DeficiencyFact]] = defaultdict(list)
        if not states:
            return facility_states, facts_by_facility
        rows = (
            db.query(CmsFacilityDeficiency, SnfFacility.state)
            .join(SnfFacility, SnfFacility.federal_provider_number == CmsFacilityDeficiency.federal_provider_number)
            .filter(SnfFacility.state.in_(list(states)))
            .filter(CmsFacilityDeficiency.survey_date >= since)
            .all()
        )
        for deficiency, state in rows:
            fact = DeficiencyFact.from_row(deficiency)
            facility_states[fact.facility_id] = state
            facts_by_facility[fact.facility_id].append(fact)
        return facility_states, facts_by_facility

    # --- Compute / flush ---

    def _assess(
        self,
        facility: FacilityProfile,
        facts: Sequence[DeficiencyFact],
        as_of: date,
        table: StateCategoryBenchmarkTable,
    ) -> Optional[FacilityAssessment]:
        if self.cancel_event.is_set():
            return None
        return assess_facility(
            facility,
            facts,
            as_of,
            table,
            self.quality_measures,
            self.profile,
            overdue_days=settings.FOCUS_AREAS_OVERDUE_DAYS,
        )

    def _flush(self, results: List[FacilityAssessment], calculated_at: datetime, report: BatchReport) -> None:
        if not results:
            return
        db = self.session_factory()
        try:
            saved, failures = FocusAreasCRUD.save_assessments(
                db, results, calculated_at, settings.FOCUS_AREAS_MODEL_VERSION
            )
            report.processed += saved
            for facility_id, _ in failures:
                report.record_failure(facility_id)
            logger.info(f"[FocusAreasBatch] Flushed {len(results)} facilities ({report.processed} saved so far)")
        except Exception as e:
            db.rollback()
            logger.error(f"[FocusAreasBatch] Flush of {len(results)} facilities failed: {e}")
            for assessment in results:
                report.record_failure(assessment.facility_id)
        finally:
            db.close()

    def _run_window(
        self,
        pool: ThreadPoolExecutor,
        window: Sequence[FacilityProfile],
        facts_by_facility: Dict[str, List[DeficiencyFact]],
        as_of: date,
        table: StateCategoryBenchmarkTable,
        report: BatchReport,
    ) -> List[FacilityAssessment]:
        futures = {
            pool.submit(self._assess, facility, facts_by_facility.get(facility.facility_id, ()), as_of, table): facility
            for facility in window
        }
        results: List[FacilityAssessment] = []
        for future in as_completed(futures):
            if self.cancel_event.is_set():
                for pending in futures:
                    pending.cancel()
            if future.cancelled():
                continue
            facility = futures[future]
            try:
                assessment = future.result()
            except Exception as e:
                logger.error(f"[FocusAreasBatch] Error processing {facility.facility_id}: {e}")
                report.record_failure(facility.facility_id)
                continue
            if assessment is not None:
                results.append(assessment)
        return results

    def run(
        self,
        state: Optional[str] = None,
        facility_id: Optional[str] = None,
        calculated_at: Optional[datetime] = None,
        as_of: Optional[date] = None,
    ) -> BatchReport:
        started = time.monotonic()
        calculated_at = calculated_at or datetime.utcnow().replace(microsecond=0)
        as_of = as_of or calculated_at.date()
        since = lookback_start(as_of, settings.FOCUS_AREAS_LOOKBACK_YEARS)
        report = BatchReport(calculated_at=calculated_at, profile=self.profile.name)

        logger.info(f"[FocusAreasBatch] Starting run (state={state}, facility={facility_id}, profile={self.profile.name})")

        try:
            with get_db_session(self.session_factory) as db:
                facilities = self.load_facilities(db, state=state, facility_id=facility_id)
                states = sorted({f.state for f in facilities if f.state})
                facility_states, facts_by_facility = self.load_facts(db, states, since)
        except Exception as e:
            logger.exception(f"[FocusAreasBatch] Failed to load inputs: {e}")
            raise BatchAbortedError(f"Failed to load batch inputs: {e}") from e

        for facility in facilities:
            facility_states.setdefault(facility.facility_id, facility.state)
        table = StateCategoryBenchmarkTable.build(facility_states, facts_by_facility)
        report.total = len(facilities)
        logger.info(
            f"[FocusAreasBatch] Loaded {len(facilities)} facilities, "
            f"{sum(len(v) for v in facts_by_facility.values())} deficiencies, "
            f"{len(table)} state benchmarks"
        )

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="focus-areas") as pool:
            for start in range(0, len(facilities), self.batch_size):
                if self.cancel_event.is_set():
                    break
                window = facilities[start:start + self.batch_size]
                results = self._run_window(pool, window, facts_by_facility, as_of, table, report)
                self._flush(results, calculated_at, report)

        report.cancelled = self.cancel_event.is_set()
        report.skipped = report.total - report.processed - report.errors
        report.duration_seconds = round(time.monotonic() - started, 2)

        if report.cancelled:
            logger.warning(f"[FocusAreasBatch] Run cancelled: {report.processed} saved, {report.skipped} skipped")
        logger.info(
            f"[FocusAreasBatch] Complete: {report.processed} processed, {report.errors} errors "
            f"in {report.duration_seconds}s"
        )
        return report
