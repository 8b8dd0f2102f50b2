from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from facility_risk.core.database_utils import SessionFactory
from facility_risk.crud.focus_areas import FocusAreasCRUD
from facility_risk.db.session import SessionLocal

from .batch import FocusAreasBatchRunner
from .errors import BatchAbortedError
from .schemas import BatchReportResponse, FocusAreaSnapshotResponse, FocusAreasResponse
from .services import FacilityNotFound, FocusAreasFailed, FocusAreasService


router = APIRouter(tags=["focus-areas"])


def get_session_factory() -> SessionFactory:
    return SessionLocal


def get_db(session_factory: SessionFactory = Depends(get_session_factory)) -> Session:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def get_focus_areas_service(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> FocusAreasService:
    return FocusAreasService(session_factory=session_factory)


def get_batch_runner(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> FocusAreasBatchRunner:
    return FocusAreasBatchRunner(session_factory=session_factory)


@router.get("/facilities/{facility_id}/focus-areas", response_model=FocusAreasResponse)
async def get_facility_focus_areas(
    facility_id: str,
    service: FocusAreasService = Depends(get_focus_areas_service),
):
    outcome = await service.get_focus_areas(facility_id)
    if isinstance(outcome, FacilityNotFound):
        return JSONResponse(status_code=404, content={"error": "Facility not found"})
    if isinstance(outcome, FocusAreasFailed):
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to calculate focus areas", "details": outcome.message},
        )
    return outcome.payload


@router.get(
    "/facilities/{facility_id}/focus-areas/history",
    response_model=List[FocusAreaSnapshotResponse],
)
def get_focus_area_history(
    facility_id: str,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return FocusAreasCRUD.get_snapshot_history(db, facility_id, limit=limit)


@router.post("/focus-areas/recalculate", response_model=BatchReportResponse)
def recalculate_focus_areas(
    state: Optional[str] = Query(None, min_length=2, max_length=2),
    facility_id: Optional[str] = Query(None),
    runner: FocusAreasBatchRunner = Depends(get_batch_runner),
):
    try:
        report = runner.run(state=state, facility_id=facility_id)
    except BatchAbortedError as e:
        return JSONResponse(
            status_code=500,
            content={"error": "Focus areas recalculation failed", "details": str(e)},
        )
    return report.to_dict()
