import logging

import pytest

from facility_risk.focus_areas.errors import (
    FocusAreasError,
    InvalidScoringProfileError,
    UnknownScoringProfileError,
)
from facility_risk.focus_areas.profiles import (
    CITATION,
    INTERACTIVE_V1,
    NIGHTLY_V1,
    PEER,
    QM_LEVEL,
    STATE,
    ScoringProfile,
    available_profiles,
    get_profile,
    register_profile,
    warn_if_profiles_diverge,
)


def test_builtin_profiles_are_registered():
    assert {"interactive_v1", "nightly_v1"} <= set(available_profiles())
    assert get_profile("interactive_v1") is INTERACTIVE_V1
    assert get_profile("nightly_v1") is NIGHTLY_V1


def test_builtin_weights():
    assert INTERACTIVE_V1.weight(CITATION) == 0.40
    assert INTERACTIVE_V1.weight(QM_LEVEL) == 0.25
    assert NIGHTLY_V1.weight(CITATION) == 0.50
    assert NIGHTLY_V1.weight(PEER) == 0.30
    assert NIGHTLY_V1.weight(QM_LEVEL) == 0.0


def test_unknown_profile_raises_typed_error():
    with pytest.raises(UnknownScoringProfileError) as exc_info:
        get_profile("does_not_exist")
    assert isinstance(exc_info.value, FocusAreasError)
    assert isinstance(exc_info.value, KeyError)
    assert "does_not_exist" in str(exc_info.value)


@pytest.mark.parametrize("weights", [
    {CITATION: 0.5, PEER: 0.4},
    {CITATION: 0.5, "staffing": 0.5},
    {CITATION: 1.2, PEER: -0.2},
])
def test_invalid_weights_are_rejected(weights):
    with pytest.raises(InvalidScoringProfileError):
        ScoringProfile.from_mapping("broken", weights)


def test_duplicate_registration_requires_replace():
    profile = ScoringProfile.from_mapping("citation_only_test", {CITATION: 1.0})
    register_profile(profile, replace=True)
    with pytest.raises(InvalidScoringProfileError):
        register_profile(profile)
    assert get_profile("citation_only_test").combine({CITATION: 80, PEER: 10}) == 80


def test_combine_ignores_factors_outside_profile():
    assert NIGHTLY_V1.combine({CITATION: 100, PEER: 50, STATE: 50, QM_LEVEL: 100}) == pytest.approx(75)


def test_divergent_profiles_log_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="facility_risk.focus_areas.profiles"):
        assert warn_if_profiles_diverge("interactive_v1", "nightly_v1") is True
    assert "Pending product confirmation" in caplog.text


def test_matching_profiles_do_not_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="facility_risk.focus_areas.profiles"):
        assert warn_if_profiles_diverge("nightly_v1", "nightly_v1") is False
    assert caplog.text == ""
