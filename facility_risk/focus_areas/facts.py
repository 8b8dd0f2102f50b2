"""Immutable views of the CMS rows the engine consumes.

ORM rows are converted at the query boundary so everything downstream is
plain, hashable data that can be shared across worker threads.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from .mappings import normalize_severity, normalize_tag


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class DeficiencyFact:
    facility_id: str
    survey_date: date
    tag: str
    severity: str
    is_standard: bool = True
    is_complaint: bool = False
    text: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "DeficiencyFact":
        return cls(
            facility_id=row.federal_provider_number,
            survey_date=_as_date(row.survey_date),
            tag=normalize_tag(row.deficiency_tag),
            severity=normalize_severity(row.scope_severity),
            is_standard=bool(row.is_standard_deficiency),
            is_complaint=bool(row.is_complaint_deficiency),
            text=getattr(row, "deficiency_text", None),
        )


@dataclass(frozen=True)
class FacilityProfile:
    facility_id: str
    name: str
    state: str
    certified_beds: Optional[int] = None
    ownership_type: Optional[str] = None
    overall_rating: Optional[int] = None
    health_inspection_rating: Optional[int] = None
    staffing_rating: Optional[int] = None
    quality_measure_rating: Optional[int] = None
    special_focus_facility: bool = False
    fine_count: Optional[int] = None
    total_fines_amount: Optional[float] = None
    total_nursing_turnover: Optional[float] = None
    rn_turnover: Optional[float] = None
    rn_staffing_hours: Optional[float] = None
    total_nurse_staffing_hours: Optional[float] = None
    weekend_total_nurse_hours: Optional[float] = None
    weekend_rn_hours: Optional[float] = None
    occupancy_rate: Optional[float] = None

    @classmethod
    def from_row(cls, row: Any) -> "FacilityProfile":
        return cls(
            facility_id=row.federal_provider_number,
            name=row.facility_name,
            state=row.state,
            certified_beds=row.certified_beds,
            ownership_type=row.ownership_type,
            overall_rating=row.overall_rating,
            health_inspection_rating=row.health_inspection_rating,
            staffing_rating=row.staffing_rating,
            quality_measure_rating=row.quality_measure_rating,
            special_focus_facility=bool(row.special_focus_facility),
            fine_count=row.fine_count,
            total_fines_amount=row.total_fines_amount,
            total_nursing_turnover=row.total_nursing_turnover,
            rn_turnover=row.rn_turnover,
            rn_staffing_hours=row.rn_staffing_hours,
            total_nurse_staffing_hours=row.total_nurse_staffing_hours,
            weekend_total_nurse_hours=row.weekend_total_nurse_hours,
            weekend_rn_hours=row.weekend_rn_hours,
            occupancy_rate=row.occupancy_rate,
        )
