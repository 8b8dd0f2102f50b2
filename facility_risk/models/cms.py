"""CMS market-data tables the focus areas engine reads.

These tables are loaded by the market-data sync, not by this package; the
models only describe the columns scoring depends on.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from facility_risk.db.base import Base


class SnfFacility(Base):
    __tablename__ = "snf_facilities"

    federal_provider_number = Column(String(10), primary_key=True)
    facility_name = Column(String(255), nullable=False)
    state = Column(String(2), nullable=False, index=True)
    certified_beds = Column(Integer, nullable=True)
    ownership_type = Column(String(64), nullable=True)

    # Star ratings
    overall_rating = Column(Integer, nullable=True)
    health_inspection_rating = Column(Integer, nullable=True)
    staffing_rating = Column(Integer, nullable=True)
    quality_measure_rating = Column(Integer, nullable=True)

    special_focus_facility = Column(Boolean, nullable=False, default=False)
    fine_count = Column(Integer, nullable=True)
    total_fines_amount = Column(Float, nullable=True)

    # Staffing (hours per resident day) and turnover (percent)
    total_nursing_turnover = Column(Float, nullable=True)
    rn_turnover = Column(Float, nullable=True)
    rn_staffing_hours = Column(Float, nullable=True)
    total_nurse_staffing_hours = Column(Float, nullable=True)
    weekend_total_nurse_hours = Column(Float, nullable=True)
    weekend_rn_hours = Column(Float, nullable=True)
    occupancy_rate = Column(Float, nullable=True)

    active = Column(Boolean, nullable=False, default=True, index=True)


class CmsFacilityDeficiency(Base):
    __tablename__ = "cms_facility_deficiencies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    federal_provider_number = Column(
        String(10), ForeignKey("snf_facilities.federal_provider_number"), nullable=False, index=True
    )
    survey_date = Column(Date, nullable=False, index=True)
    deficiency_tag = Column(String(8), nullable=False)
    scope_severity = Column(String(1), nullable=True)
    is_standard_deficiency = Column(Boolean, nullable=False, default=True)
    is_complaint_deficiency = Column(Boolean, nullable=False, default=False)
    deficiency_text = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_cms_deficiencies_provider_date", "federal_provider_number", "survey_date"),
    )
