"""
Case Factor Extraction - Deterministic signals derived from a consultation request.

Turns the free-form request (symptoms, vitals, labs, history) into the
ComplexityFactors snapshot consumed by the analyzer.
"""

import re
from typing import Any, Optional

from medconsult.models.complexity import ComplexityFactors
from medconsult.models.consultation import ConsultationRequest
from medconsult.models.enums import UrgencyLevel


# =============================================================================
# KEYWORDS
# =============================================================================

SURGICAL_KEYWORDS = ["mass", "tumor", "fracture", "trauma", "obstruction"]

RARE_DISEASE_PATTERNS = [
    r"rare",
    r"unexplained",
    r"atypical",
    r"undiagnosed",
    r"recurrent\s+fevers?",
    r"famil(y|ial)\s+history",
    r"consanguin",
    r"multiple\s+organ",
]

# Organ system -> keywords; hits in 3+ systems count as multi-system involvement
ORGAN_SYSTEM_KEYWORDS: dict[str, list[str]] = {
    "cardiovascular": ["chest pain", "palpitation", "heart", "edema", "syncope"],
    "respiratory": ["cough", "dyspnea", "shortness of breath", "wheez", "hemoptysis"],
    "neurological": ["headache", "seizure", "numbness", "weakness", "confusion", "dizziness"],
    "gastrointestinal": ["abdominal", "nausea", "vomit", "diarrhea", "jaundice", "bleeding"],
    "renal": ["dysuria", "hematuria", "flank", "oliguria"],
    "musculoskeletal": ["joint", "back pain", "myalgia", "swelling"],
    "dermatological": ["rash", "lesion", "itch", "pruritus"],
    "constitutional": ["fever", "weight loss", "fatigue", "night sweats", "chills"],
}

URGENCY_SEVERITY: dict[str, float] = {
    UrgencyLevel.EMERGENT.value: 0.9,
    UrgencyLevel.URGENT.value: 0.6,
    UrgencyLevel.ROUTINE.value: 0.3,
}

DEFAULT_PATIENT_AGE = 50

# =============================================================================
# VITAL SIGN REFERENCE RANGES
# =============================================================================

# canonical name -> (aliases, low, high)
VITAL_RANGES: dict[str, tuple[tuple[str, ...], float, float]] = {
    "heart_rate": (("heart_rate", "hr", "pulse", "heartrate"), 60, 100),
    "respiratory_rate": (("respiratory_rate", "rr", "resp_rate", "respiration"), 12, 20),
    "temperature": (("temperature", "temp", "temp_c"), 36.1, 38.0),
    "oxygen_saturation": (("oxygen_saturation", "spo2", "o2_sat", "sao2", "o2_saturation"), 94, 100),
    "systolic_bp": (("systolic_bp", "sbp", "systolic", "blood_pressure", "bp"), 90, 140),
}

_ALIAS_TO_VITAL = {
    alias: name for name, (aliases, _, _) in VITAL_RANGES.items() for alias in aliases
}


def normalize_vital_key(key: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", key.lower()).strip("_")


def parse_vital(name: str, value: Any) -> Optional[float]:
    """Parse a vital value; blood pressure strings like "120/80" yield systolic."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = re.match(r"\s*(-?\d+(?:\.\d+)?)", value)
        if not match:
            return None
        number = float(match.group(1))
    else:
        return None

    # Fahrenheit readings
    if name == "temperature" and number > 45:
        number = (number - 32) * 5 / 9
    return number


def find_vital(vitals: dict[str, Any], name: str) -> Optional[float]:
    """Look up a vital by canonical name, accepting any known alias."""
    aliases = VITAL_RANGES[name][0]
    for key, value in vitals.items():
        if normalize_vital_key(key) in aliases:
            return parse_vital(name, value)
    return None


def abnormal_vitals_fraction(vitals: dict[str, Any]) -> float:
    """
    Fraction of recognized vitals outside their reference range.

    When no vital can be recognized, each supplied entry counts as 0.3
    (capped at 1.0) so unrecognized data still raises complexity.
    """
    if not vitals:
        return 0.0

    assessed = 0
    abnormal = 0
    for key, value in vitals.items():
        name = _ALIAS_TO_VITAL.get(normalize_vital_key(key))
        if name is None:
            continue
        number = parse_vital(name, value)
        if number is None:
            continue
        _, low, high = VITAL_RANGES[name]
        assessed += 1
        if number < low or number > high:
            abnormal += 1

    if assessed == 0:
        return min(len(vitals) * 0.3, 1.0)
    return abnormal / assessed


def detect_surgical_signals(request: ConsultationRequest) -> list[str]:
    """Surgical keywords present in the complaint or symptoms."""
    text = " ".join([request.chief_complaint, *request.symptoms]).lower()
    return [kw for kw in SURGICAL_KEYWORDS if re.search(rf"\b{kw}", text)]


def detect_organ_systems(request: ConsultationRequest) -> list[str]:
    """Organ systems mentioned in the complaint or symptoms."""
    text = " ".join([request.chief_complaint, *request.symptoms]).lower()
    return [
        system
        for system, keywords in ORGAN_SYSTEM_KEYWORDS.items()
        if any(kw in text for kw in keywords)
    ]


def rare_disease_suspicion(request: ConsultationRequest) -> float:
    """Baseline 0.3, raised to 0.6 when rare-disease language appears."""
    text = " ".join(
        [request.chief_complaint, request.additional_context, *request.symptoms]
    ).lower()
    for pattern in RARE_DISEASE_PATTERNS:
        if re.search(pattern, text):
            return 0.6
    return 0.3


def required_specialties(request: ConsultationRequest) -> list[str]:
    """Specialties the case needs regardless of keyword triggers."""
    specialties = []
    if request.imaging:
        specialties.append("radiology")
    if request.labs:
        specialties.append("pathology")
    if request.medical_history.medications:
        specialties.append("pharmacology")
    if detect_surgical_signals(request):
        specialties.append("surgery")
    return specialties


def extract_complexity_factors(request: ConsultationRequest) -> ComplexityFactors:
    """
    Build the complexity factor snapshot for a request.

    Args:
        request: Incoming consultation request

    Returns:
        Immutable ComplexityFactors
    """
    history = request.medical_history
    symptom_count = len(request.symptoms)

    data_volume = (
        symptom_count * 0.1
        + len(request.vitals) * 0.05
        + len(request.labs) * 0.05
        + (0.2 if request.imaging else 0.0)
        + (0.0 if history.is_empty else 0.2)
    )

    age = request.demographics.age
    multi_system = symptom_count > 5 or len(detect_organ_systems(request)) >= 3

    return ComplexityFactors(
        symptom_count=symptom_count,
        symptom_severity=URGENCY_SEVERITY.get(request.urgency, 0.3),
        symptom_duration=0.5,
        abnormal_vitals=abnormal_vitals_fraction(request.vitals),
        abnormal_labs=min(len(request.labs) * 0.3, 1.0),
        imaging_required=bool(request.imaging),
        data_volume=min(data_volume, 1.0),
        patient_age=age if age is not None else DEFAULT_PATIENT_AGE,
        comorbidity_count=len(history.conditions),
        medication_count=len(history.medications),
        allergy_count=len(history.allergies),
        previous_treatment_failures=request.previous_treatment_failures,
        urgency_level=request.urgency,
        specialties_required=required_specialties(request),
        differential_breadth=min(symptom_count * 0.15, 1.0),
        rare_disease_suspicion=rare_disease_suspicion(request),
        multi_system_involvement=multi_system,
        progression_rate=request.progression,
    )
