from datetime import date
from typing import Any

from facility_risk.focus_areas.facts import DeficiencyFact, FacilityProfile
from facility_risk.focus_areas.mappings import normalize_tag
from facility_risk.models import CmsFacilityDeficiency, SnfFacility


def make_fact(
    tag: str = "0689",
    severity: str = "D",
    survey_date: date = date(2024, 3, 1),
    facility_id: str = "105001",
    is_standard: bool = True,
    is_complaint: bool = False,
) -> DeficiencyFact:
    return DeficiencyFact(
        facility_id=facility_id,
        survey_date=survey_date,
        tag=normalize_tag(tag),
        severity=severity,
        is_standard=is_standard,
        is_complaint=is_complaint,
    )


def make_profile(facility_id: str = "105001", state: str = "FL", certified_beds: int = 100, **kwargs: Any) -> FacilityProfile:
    return FacilityProfile(
        facility_id=facility_id,
        name=kwargs.pop("name", f"Facility {facility_id}"),
        state=state,
        certified_beds=certified_beds,
        **kwargs,
    )


def add_facility(db, facility_id: str = "105001", state: str = "FL", certified_beds: int = 100, **kwargs: Any) -> SnfFacility:
    row = SnfFacility(
        federal_provider_number=facility_id,
        facility_name=kwargs.pop("facility_name", f"Facility {facility_id}"),
        state=state,
        certified_beds=certified_beds,
        **kwargs,
    )
    db.add(row)
    db.flush()
    return row


def add_deficiency(
    db,
    facility_id: str,
    survey_date: date,
    tag: str = "F0689",
    severity: str = "D",
    is_standard: bool = True,
    is_complaint: bool = False,
) -> CmsFacilityDeficiency:
    row = CmsFacilityDeficiency(
        federal_provider_number=facility_id,
        survey_date=survey_date,
        deficiency_tag=tag,
        scope_severity=severity,
        is_standard_deficiency=is_standard,
        is_complaint_deficiency=is_complaint,
    )
    db.add(row)
    db.flush()
    return row
