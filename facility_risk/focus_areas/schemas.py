from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class Recommendation(BaseModel):
    priority: str
    area: str
    rationale: str


class FocusArea(BaseModel):
    rank: int
    category_id: int
    category_name: str
    category_risk_score: int
    factor_scores: Dict[str, float]
    evidence: Dict[str, Any]
    recommendations: List[Recommendation]
    codes_to_review: List[str]
    scorecard_alignment: Dict[str, Any]


class PeerGroupSummary(BaseModel):
    peer_group_size: int
    avg_citations: float
    median_citations: float
    bed_bucket: Optional[str] = None


class FocusAreasResponse(BaseModel):
    facility_id: str
    federal_provider_number: str
    facility_name: str
    state: str
    overall_risk_score: int
    overall_risk_tier: str
    focus_areas: List[FocusArea]
    key_metrics: Dict[str, Any]
    calculated_at: datetime
    model_version: str
    scoring_profile: str
    data_as_of_date: date
    peer_group: Optional[PeerGroupSummary] = None


class FocusAreaSnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    federal_provider_number: str
    calculated_at: datetime
    model_version: str
    scoring_profile: str
    overall_risk_score: int
    overall_risk_tier: str
    key_metrics: Dict[str, Any]
    focus_areas: List[Dict[str, Any]]
    data_as_of_date: date


class BatchReportResponse(BaseModel):
    calculated_at: datetime
    profile: str
    total: int
    processed: int
    errors: int
    skipped: int
    duration_seconds: float
    cancelled: bool
    failed_facility_ids: List[str]
