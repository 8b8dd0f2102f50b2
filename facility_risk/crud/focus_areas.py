import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from facility_risk.focus_areas.models import FacilityCategoryScore, FacilityFocusAreaSnapshot
from facility_risk.focus_areas.profiles import CITATION, PEER, QM_LEVEL, QM_TREND, STATE
from facility_risk.focus_areas.services import FacilityAssessment

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = ["federal_provider_number", "calculated_at"]
CATEGORY_SCORE_KEY = ["federal_provider_number", "category_id", "calculated_at"]


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")
    return insert


def _upsert(db: Session, model, rows: List[Dict[str, Any]], key: List[str]) -> None:
    if not rows:
        return
    insert = _dialect_insert(db)
    stmt = insert(model).values(rows)
    updates = {col: stmt.excluded[col] for col in rows[0] if col not in key}
    updates["updated_at"] = func.now()
    db.execute(stmt.on_conflict_do_update(index_elements=key, set_=updates))


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class FocusAreasCRUD:
    """Idempotent persistence of focus-area assessments.

    Rows are keyed on (facility, calculated_at) and (facility, category,
    calculated_at); re-running a batch with the same timestamp overwrites
    instead of duplicating.
    """

    @staticmethod
    def snapshot_row(assessment: FacilityAssessment, calculated_at: datetime, model_version: str) -> Dict[str, Any]:
        result = assessment.result
        return {
            "federal_provider_number": assessment.facility_id,
            "calculated_at": calculated_at,
            "model_version": model_version,
            "scoring_profile": result.profile,
            "overall_risk_score": result.overall_score,
            "overall_risk_tier": result.overall_tier,
            "key_metrics": _json_safe(assessment.key_metrics),
            "focus_areas": _json_safe(assessment.focus_areas),
            "data_as_of_date": result.as_of,
        }

    @staticmethod
    def category_rows(assessment: FacilityAssessment, calculated_at: datetime) -> List[Dict[str, Any]]:
        rows = []
        for score in assessment.result.categories:
            rows.append({
                "federal_provider_number": assessment.facility_id,
                "category_id": score.category_id,
                "calculated_at": calculated_at,
                "scoring_profile": score.profile,
                "citation_factor_score": score.factor(CITATION),
                "peer_factor_score": score.factor(PEER),
                "qm_factor_score": score.factor(QM_LEVEL),
                "qm_trend_score": score.factor(QM_TREND),
                "state_factor_score": score.factor(STATE),
                "category_risk_score": score.composite,
                "risk_rank": score.rank,
                "citation_count_3yr": score.citation_count,
                "severity_weighted_count": score.severity_weighted_count,
                "repeat_tag_count": len(score.repeat_tags),
            })
        return rows

    @staticmethod
    def upsert_assessment(
        db: Session,
        assessment: FacilityAssessment,
        calculated_at: datetime,
        model_version: str,
    ) -> None:
        """Write one facility's snapshot and category scores. Does not commit."""
        _upsert(
            db,
            FacilityFocusAreaSnapshot,
            [FocusAreasCRUD.snapshot_row(assessment, calculated_at, model_version)],
            SNAPSHOT_KEY,
        )
        _upsert(
            db,
            FacilityCategoryScore,
            FocusAreasCRUD.category_rows(assessment, calculated_at),
            CATEGORY_SCORE_KEY,
        )

    @staticmethod
    def save_assessments(
        db: Session,
        assessments: Iterable[FacilityAssessment],
        calculated_at: datetime,
        model_version: str,
    ) -> Tuple[int, List[Tuple[str, str]]]:
        """Persist a flush batch and commit it.

        Each facility is written inside its own savepoint so one bad row does
        not discard the rest of the batch. Returns (saved, [(facility_id, error)]).
        """
        saved = 0
        failures: List[Tuple[str, str]] = []
        for assessment in assessments:
            try:
                with db.begin_nested():
                    FocusAreasCRUD.upsert_assessment(db, assessment, calculated_at, model_version)
                saved += 1
            except Exception as e:
                logger.error(f"[FocusAreasBatch] Failed to save {assessment.facility_id}: {e}")
                failures.append((assessment.facility_id, str(e)))
        db.commit()
        return saved, failures

    @staticmethod
    def get_latest_snapshot(db: Session, facility_id: str) -> Optional[FacilityFocusAreaSnapshot]:
        return (
            db.query(FacilityFocusAreaSnapshot)
            .filter(FacilityFocusAreaSnapshot.federal_provider_number == facility_id)
            .order_by(FacilityFocusAreaSnapshot.calculated_at.desc())
            .first()
        )

    @staticmethod
    def get_snapshot_history(db: Session, facility_id: str, limit: int = 10) -> List[FacilityFocusAreaSnapshot]:
        return (
            db.query(FacilityFocusAreaSnapshot)
            .filter(FacilityFocusAreaSnapshot.federal_provider_number == facility_id)
            .order_by(FacilityFocusAreaSnapshot.calculated_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_category_scores(
        db: Session,
        facility_id: str,
        calculated_at: Optional[datetime] = None,
    ) -> List[FacilityCategoryScore]:
        """Category rows for one run (latest run when no timestamp is given), by rank."""
        if calculated_at is None:
            calculated_at = (
                db.query(func.max(FacilityCategoryScore.calculated_at))
                .filter(FacilityCategoryScore.federal_provider_number == facility_id)
                .scalar()
            )
            if calculated_at is None:
                return []
        return (
            db.query(FacilityCategoryScore)
            .filter(FacilityCategoryScore.federal_provider_number == facility_id)
            .filter(FacilityCategoryScore.calculated_at == calculated_at)
            .order_by(FacilityCategoryScore.risk_rank)
            .all()
        )
