"""Recommendation catalog and internal audit cross-reference per category."""

from typing import Dict, List, Tuple

# (area, rationale), in catalog priority order
RECOMMENDATION_CATALOG: Dict[int, List[Tuple[str, str]]] = {
    1: [
        ("Vital Signs Protocol", "Ensure timely notification of vital sign changes"),
        ("Care Plan Updates", "Update care plans within 24 hours of condition change"),
    ],
    2: [
        ("Fall Risk Assessment", "Complete fall risk assessment on admission and with changes"),
        ("Environmental Safety Rounds", "Conduct daily safety rounds to identify hazards"),
        ("Alarm Compliance", "Audit bed/chair alarm usage and response times"),
    ],
    3: [
        ("Pressure Injury Prevention", "Implement turning/repositioning protocols"),
        ("Weekly Skin Assessments", "Document comprehensive skin assessments weekly"),
        ("Moisture Management", "Address incontinence-related skin breakdown"),
    ],
    4: [
        ("Medication Error Prevention", "Implement barcode scanning and double-checks"),
        ("Antipsychotic Review", "Review all antipsychotic prescriptions for appropriateness"),
        ("Weight Monitoring", "Weekly weights with intervention for 5% loss"),
    ],
    5: [
        ("Hand Hygiene Program", "Implement hand hygiene observation program"),
        ("Equipment Cleaning", "Establish equipment cleaning protocols and audits"),
        ("Catheter Reduction", "Review all catheters for medical necessity"),
    ],
    6: [
        ("Discharge Planning", "Begin discharge planning within 48 hours of admission"),
        ("Medication Reconciliation", "Complete medication reconciliation at all transitions"),
        ("Communication Protocol", "Ensure SBAR communication to receiving facilities"),
    ],
    7: [
        ("Grievance Response", "Respond to grievances within 24 hours"),
        ("Abuse Prevention Training", "Annual abuse prevention training for all staff"),
        ("Restraint Reduction", "Review all restraints for alternatives"),
    ],
}

# category -> (audit item number, description)
SCORECARD_ALIGNMENT: Dict[int, List[Tuple[int, str]]] = {
    1: [
        (40, "Vital signs notification protocol"),
        (41, "Physician notification documentation"),
        (42, "Care plan update timeliness"),
    ],
    2: [
        (12, "Fall risk assessment documentation"),
        (13, "Call light response time"),
        (14, "Bed/chair alarm compliance"),
        (15, "Wheelchair positioning safety"),
    ],
    3: [
        (20, "Pressure ulcer risk assessment"),
        (21, "Turning/repositioning documentation"),
        (22, "Wound care supply availability"),
    ],
    4: [
        (30, "Medication administration observation"),
        (31, "Narcotic count accuracy"),
        (32, "PRN medication follow-up"),
        (35, "Weight monitoring compliance"),
        (36, "Meal intake documentation"),
    ],
    5: [
        (4, "Glucometer cleaning observation"),
        (5, "Vital sign equipment cleaning"),
        (6, "PPE compliance observation"),
        (8, "Hand hygiene observation"),
        (10, "Isolation precautions"),
    ],
    6: [
        (50, "Discharge summary completeness"),
        (51, "Medication reconciliation at transfer"),
    ],
    7: [
        (60, "Grievance log review"),
        (61, "Abuse reporting protocol compliance"),
        (62, "Restraint reduction program review"),
    ],
}
