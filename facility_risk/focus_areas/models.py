from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB

from facility_risk.db.base import Base

# JSONB on PostgreSQL, generic JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class FacilityFocusAreaSnapshot(Base):
    __tablename__ = "facility_focus_areas"

    id = Column(Integer, primary_key=True, index=True)
    federal_provider_number = Column(String(10), nullable=False, index=True)
    calculated_at = Column(DateTime, nullable=False)
    model_version = Column(String(16), nullable=False)
    scoring_profile = Column(String(32), nullable=False)

    overall_risk_score = Column(Integer, nullable=False)
    overall_risk_tier = Column(String(16), nullable=False)
    key_metrics = Column(JSONType, nullable=False)  # facility-wide metrics blob
    focus_areas = Column(JSONType, nullable=False)  # ranked categories with evidence/recommendations
    data_as_of_date = Column(Date, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("federal_provider_number", "calculated_at", name="uq_facility_focus_areas_provider_calc"),
        Index("idx_facility_focus_areas_provider_calc", "federal_provider_number", "calculated_at"),
    )


class FacilityCategoryScore(Base):
    __tablename__ = "facility_category_scores"

    id = Column(Integer, primary_key=True, index=True)
    federal_provider_number = Column(String(10), nullable=False, index=True)
    category_id = Column(Integer, nullable=False)
    calculated_at = Column(DateTime, nullable=False)
    scoring_profile = Column(String(32), nullable=False)

    citation_factor_score = Column(Float, nullable=False)
    peer_factor_score = Column(Float, nullable=False)
    qm_factor_score = Column(Float, nullable=False)
    qm_trend_score = Column(Float, nullable=False)
    state_factor_score = Column(Float, nullable=False)
    category_risk_score = Column(Integer, nullable=False)
    risk_rank = Column(Integer, nullable=False)

    citation_count_3yr = Column(Integer, nullable=False, default=0)
    severity_weighted_count = Column(Integer, nullable=False, default=0)
    repeat_tag_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "federal_provider_number", "category_id", "calculated_at",
            name="uq_facility_category_scores_provider_category_calc",
        ),
    )
