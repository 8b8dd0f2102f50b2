"""Quality-measure inputs to the category composite.

CMS quality-measure statistics are not integrated yet. The provider interface
is the integration point; the default implementation returns neutral factor
scores so the weighting profiles keep their shape until real data lands.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .facts import FacilityProfile
from .profiles import QM_LEVEL, QM_TREND, STATE

NEUTRAL_SCORE = 50.0


class QualityMeasureProvider(ABC):
    @abstractmethod
    def factor_scores(self, facility: FacilityProfile, category_id: int) -> Dict[str, float]:
        """Return 0-100 scores for the quality-measure level, trend and state factors."""

    def trends_summary(self, facility: FacilityProfile) -> Optional[Dict[str, Any]]:
        """Counts of improving / stable / worsening measures, when known."""
        return None


class NeutralQualityMeasures(QualityMeasureProvider):
    def factor_scores(self, facility: FacilityProfile, category_id: int) -> Dict[str, float]:
        return {QM_LEVEL: NEUTRAL_SCORE, QM_TREND: NEUTRAL_SCORE, STATE: NEUTRAL_SCORE}
