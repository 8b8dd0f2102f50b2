from .cms import SnfFacility, CmsFacilityDeficiency
