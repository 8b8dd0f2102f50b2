"""Static tables mapping CMS deficiency data onto scoring keys.

These tables are version-pinned: any change to a mapping must bump
MAPPING_VERSION so persisted snapshots can be traced back to the table that
produced them.
"""

from dataclasses import dataclass
from typing import Dict, Optional

MAPPING_VERSION = "2024.1"


@dataclass(frozen=True)
class ClinicalCategory:
    id: int
    name: str
    description: str


CLINICAL_CATEGORIES: Dict[int, ClinicalCategory] = {
    1: ClinicalCategory(1, "Change of Condition", "Notification, care planning, monitoring"),
    2: ClinicalCategory(2, "Accidents/Falls", "Fall prevention, supervision, safety"),
    3: ClinicalCategory(3, "Skin", "Pressure injuries, wound care, skin integrity"),
    4: ClinicalCategory(4, "Med Management/Weight Loss", "Pharmacy, medications, nutrition"),
    5: ClinicalCategory(5, "Infection Control", "Infection prevention, COVID, vaccinations"),
    6: ClinicalCategory(6, "Transfer/Discharge", "Discharge planning, care transitions"),
    7: ClinicalCategory(7, "Abuse/Grievances", "Abuse prevention, resident rights"),
}

CATEGORY_IDS = tuple(sorted(CLINICAL_CATEGORIES))

_CATEGORY_TAGS = {
    1: (
        "0580", "0684", "0685", "0656", "0657", "0636", "0637", "0641", "0655", "0638",
        "0658", "0552", "0698", "0697", "0699", "0725", "0726", "0727", "0730", "0732",
        "0835", "0838", "0851", "0865", "0867", "0868", "0770", "0947",
    ),
    2: (
        "0689", "0688", "0676", "0677", "0700", "0584", "0919", "0921", "0912", "0908",
        "0925", "0791", "0678", "0694",
    ),
    3: ("0686", "0687", "0690", "0695"),
    4: (
        "0755", "0756", "0757", "0758", "0759", "0760", "0761", "0692", "0693", "0740",
        "0744", "0554", "0812", "0803", "0804", "0805", "0806", "0809", "0801", "0802",
        "0814",
    ),
    5: ("0880", "0881", "0882", "0883", "0884", "0885", "0886", "0887", "0888"),
    6: ("0622", "0623", "0624", "0625", "0626", "0627", "0660", "0661", "0849"),
    7: (
        "0600", "0602", "0603", "0604", "0605", "0606", "0607", "0608", "0609", "0610",
        "0585", "0550", "0557", "0558", "0561", "0565", "0577", "0578", "0582", "0583",
        "0842", "0644", "0645", "0679", "0745",
    ),
}

FTAG_CATEGORY_MAP: Dict[str, int] = {
    tag: category_id for category_id, tags in _CATEGORY_TAGS.items() for tag in tags
}

IMMEDIATE_JEOPARDY = frozenset("JKL")
ACTUAL_HARM = frozenset("GHI")
POTENTIAL_HARM = frozenset("DEF")
NO_HARM = frozenset("ABC")

SEVERITY_WEIGHTS: Dict[str, int] = {
    **{s: 10 for s in IMMEDIATE_JEOPARDY},
    **{s: 5 for s in ACTUAL_HARM},
    **{s: 2 for s in POTENTIAL_HARM},
    **{s: 1 for s in NO_HARM},
}
DEFAULT_SEVERITY_WEIGHT = 1

# A=1 ... L=12, used for average-severity trends
SEVERITY_NUMERIC: Dict[str, int] = {letter: i for i, letter in enumerate("ABCDEFGHIJKL", start=1)}


def normalize_tag(tag: Optional[str]) -> str:
    """Normalize a deficiency tag to the 4-character CMS form ("F689" -> "0689")."""
    if tag is None:
        return ""
    cleaned = str(tag).strip().upper()
    if cleaned.startswith("F"):
        cleaned = cleaned[1:]
    if cleaned.isdigit():
        cleaned = cleaned.zfill(4)
    return cleaned


def normalize_severity(severity: Optional[str]) -> str:
    if not severity:
        return ""
    return str(severity).strip().upper()


def category_for_tag(tag: Optional[str]) -> Optional[int]:
    """Return the clinical category id for a tag, or None when unmapped."""
    return FTAG_CATEGORY_MAP.get(normalize_tag(tag))


def severity_weight(severity: Optional[str]) -> int:
    return SEVERITY_WEIGHTS.get(normalize_severity(severity), DEFAULT_SEVERITY_WEIGHT)


def severity_number(severity: Optional[str]) -> int:
    return SEVERITY_NUMERIC.get(normalize_severity(severity), 0)


def is_immediate_jeopardy(severity: Optional[str]) -> bool:
    return normalize_severity(severity) in IMMEDIATE_JEOPARDY


def is_actual_harm(severity: Optional[str]) -> bool:
    return normalize_severity(severity) in ACTUAL_HARM
