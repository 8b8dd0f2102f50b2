"""
Facility focus areas: compliance risk scoring for skilled nursing facilities.

CMS deficiency citations are mapped to seven clinical categories, scored per
category against peer benchmarks, ranked, and assembled into focus areas with
evidence and recommendations. Results are served on demand and recalculated
nightly into snapshot tables.
"""

from .models import FacilityCategoryScore, FacilityFocusAreaSnapshot

__all__ = [
    "FacilityFocusAreaSnapshot",
    "FacilityCategoryScore",
]
