"""Named weight profiles for the category composite score.

The on-demand and nightly code paths historically combined factors with
different weights. Both formulas are kept as named profiles and each path
selects one through configuration until product confirms a canonical one.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

from .errors import InvalidScoringProfileError, UnknownScoringProfileError

logger = logging.getLogger(__name__)

CITATION = "citation"
PEER = "peer"
QM_LEVEL = "qm_level"
QM_TREND = "qm_trend"
STATE = "state"

FACTORS = (CITATION, PEER, QM_LEVEL, QM_TREND, STATE)


@dataclass(frozen=True)
class ScoringProfile:
    name: str
    weights: Tuple[Tuple[str, float], ...]
    description: str = ""

    @classmethod
    def from_mapping(cls, name: str, weights: Mapping[str, float], description: str = "") -> "ScoringProfile":
        unknown = set(weights) - set(FACTORS)
        if unknown:
            raise InvalidScoringProfileError(f"Profile {name!r} has unknown factors: {sorted(unknown)}")
        if any(w < 0 for w in weights.values()):
            raise InvalidScoringProfileError(f"Profile {name!r} has negative weights")
        total = sum(weights.values())
        if abs(total - 1.0) > 1e-6:
            raise InvalidScoringProfileError(f"Profile {name!r} weights sum to {total:.4f}, expected 1.0")
        ordered = tuple((f, float(weights[f])) for f in FACTORS if f in weights)
        return cls(name=name, weights=ordered, description=description)

    def weight(self, factor: str) -> float:
        for f, w in self.weights:
            if f == factor:
                return w
        return 0.0

    def combine(self, factor_scores: Mapping[str, float]) -> float:
        """Weighted sum of factor scores; factors absent from the profile contribute 0."""
        return sum(w * float(factor_scores.get(f, 0.0)) for f, w in self.weights)


_REGISTRY: Dict[str, ScoringProfile] = {}


def register_profile(profile: ScoringProfile, replace: bool = False) -> ScoringProfile:
    if profile.name in _REGISTRY and not replace:
        raise InvalidScoringProfileError(f"Profile {profile.name!r} is already registered")
    _REGISTRY[profile.name] = profile
    return profile


def get_profile(name: str) -> ScoringProfile:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise UnknownScoringProfileError(name) from None


def available_profiles() -> Tuple[str, ...]:
    return tuple(sorted(_REGISTRY))


def warn_if_profiles_diverge(interactive: str, batch: str) -> bool:
    """Log a warning when the two call paths score with different profiles."""
    if interactive == batch:
        return False
    logger.warning(
        f"[FocusAreas] Interactive profile {interactive!r} differs from batch profile {batch!r}; "
        "stored snapshots and on-demand results will not agree. Pending product confirmation."
    )
    return True


INTERACTIVE_V1 = register_profile(
    ScoringProfile.from_mapping(
        "interactive_v1",
        {CITATION: 0.40, QM_LEVEL: 0.25, QM_TREND: 0.15, PEER: 0.10, STATE: 0.10},
        description="On-demand API formula (citation 40 / QM 25 / QM trend 15 / peer 10 / state 10)",
    )
)

NIGHTLY_V1 = register_profile(
    ScoringProfile.from_mapping(
        "nightly_v1",
        {CITATION: 0.50, PEER: 0.30, STATE: 0.20},
        description="Nightly batch formula (citation 50 / peer 30 / state 20)",
    )
)
