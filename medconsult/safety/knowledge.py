"""
Medication safety reference tables.

Small curated tables covering dose ranges, contraindications, pregnancy
categories, interactions and allergy cross-reactivity for commonly
recommended drugs. Drug keys are lowercase generic names.
"""

import re
from typing import Optional

from medconsult.models.enums import InteractionSeverity
from medconsult.utils.parsing import contains_term, normalize_term


# drug -> (min single dose, max single dose) in mg
DOSE_RANGES_MG: dict[str, tuple[float, float]] = {
    "metformin": (500, 2000),
    "lisinopril": (2.5, 40),
    "atorvastatin": (10, 80),
    "warfarin": (1, 10),
    "amoxicillin": (250, 1000),
    "ibuprofen": (200, 800),
    "aspirin": (81, 1000),
    "prednisone": (1, 80),
    "furosemide": (20, 600),
}

ABSOLUTE_CONTRAINDICATIONS: dict[str, list[str]] = {
    "metformin": ["severe renal impairment", "lactic acidosis"],
    "ibuprofen": ["peptic ulcer", "severe heart failure"],
    "warfarin": ["active bleeding", "hemorrhagic stroke"],
    "lisinopril": ["angioedema"],
    "aspirin": ["active bleeding"],
}

RELATIVE_CONTRAINDICATIONS: dict[str, list[str]] = {
    "metformin": ["chronic kidney disease", "liver disease"],
    "ibuprofen": ["hypertension", "chronic kidney disease", "asthma"],
    "aspirin": ["asthma", "peptic ulcer"],
    "atorvastatin": ["liver disease"],
    "prednisone": ["diabetes", "osteoporosis"],
}

PREGNANCY_CATEGORIES: dict[str, str] = {
    "warfarin": "X",
    "methotrexate": "X",
    "atorvastatin": "X",
    "isotretinoin": "X",
    "lisinopril": "D",
    "ibuprofen": "C",
    "metformin": "B",
    "amoxicillin": "B",
}

# (drug a, drug b, severity, effect, management)
INTERACTIONS: list[tuple[str, str, InteractionSeverity, str, str]] = [
    ("warfarin", "aspirin", InteractionSeverity.CRITICAL,
     "Greatly increased bleeding risk", "Avoid combination or monitor INR closely"),
    ("metformin", "contrast dye", InteractionSeverity.CRITICAL,
     "Risk of lactic acidosis", "Hold metformin 48 hours around contrast administration"),
    ("warfarin", "ibuprofen", InteractionSeverity.MAJOR,
     "Increased bleeding risk", "Prefer acetaminophen for analgesia"),
    ("lisinopril", "spironolactone", InteractionSeverity.MAJOR,
     "Hyperkalemia", "Monitor potassium"),
    ("sertraline", "tramadol", InteractionSeverity.MAJOR,
     "Serotonin syndrome", "Avoid combination"),
    ("simvastatin", "clarithromycin", InteractionSeverity.MAJOR,
     "Rhabdomyolysis", "Hold statin during macrolide course"),
    ("lisinopril", "ibuprofen", InteractionSeverity.MODERATE,
     "Reduced antihypertensive effect and renal risk", "Monitor blood pressure and renal function"),
]

# allergy class -> drugs that cross-react
ALLERGY_CROSS_REACTIVITY: dict[str, list[str]] = {
    "penicillin": ["penicillin", "amoxicillin", "ampicillin", "piperacillin", "nafcillin"],
    "sulfa": ["sulfamethoxazole", "sulfasalazine", "sulfadiazine"],
    "nsaid": ["ibuprofen", "naproxen", "aspirin", "diclofenac", "ketorolac"],
    "cephalosporin": ["cephalexin", "cefazolin", "ceftriaxone"],
}

RARE_CONDITION_KEYWORDS = [
    "syndrome", "amyloidosis", "sarcoidosis", "porphyria", "vasculitis",
    "rare", "orphan", "storage disease",
]

COMMON_DRUGS = [
    "acetaminophen", "azithromycin", "ceftriaxone", "clopidogrel", "doxycycline",
    "heparin", "insulin", "levothyroxine", "metoprolol", "nitroglycerin",
    "omeprazole", "vancomycin",
]

# Leading verbs stripped when guessing a drug name from free text
_INSTRUCTION_WORDS = {
    "start", "begin", "initiate", "give", "administer", "continue", "prescribe",
    "consider", "add", "switch", "to", "oral", "iv", "po",
}


def known_drugs() -> list[str]:
    """Every drug name present in the reference tables, longest first then alphabetical."""
    names = set(DOSE_RANGES_MG) | set(ABSOLUTE_CONTRAINDICATIONS) | set(RELATIVE_CONTRAINDICATIONS)
    names |= set(PREGNANCY_CATEGORIES) | set(COMMON_DRUGS)
    for a, b, *_ in INTERACTIONS:
        names.update((a, b))
    for drugs in ALLERGY_CROSS_REACTIVITY.values():
        names.update(drugs)
    return sorted(names, key=lambda n: (-len(n), n))


def medication_mentions(text: str) -> list[tuple[str, str]]:
    """
    Every known drug named in a medication instruction.

    Returns (drug, segment) pairs in order of appearance, where segment
    runs from the drug name up to the next drug name. A single mention
    gets the whole text, so "500 mg of amoxicillin" keeps its dose.
    """
    lowered = text.lower()
    found: list[tuple[int, str]] = []
    for drug in known_drugs():
        match = re.search(rf"\b{re.escape(drug)}\b", lowered)
        if match:
            found.append((match.start(), drug))
    found.sort()

    if len(found) == 1:
        return [(found[0][1], text)]

    mentions = []
    for i, (start, drug) in enumerate(found):
        end = found[i + 1][0] if i + 1 < len(found) else len(text)
        mentions.append((drug, text[start:end]))
    return mentions


def identify_drug(text: str) -> Optional[str]:
    """
    Identify the drug a free-text medication instruction refers to.

    The first known drug named wins; otherwise the first word that is not
    an instruction verb is used.
    """
    mentions = medication_mentions(text)
    if mentions:
        return mentions[0][0]

    for word in normalize_term(text).split():
        if word.isdigit() or word in _INSTRUCTION_WORDS:
            continue
        return word
    return None


def parse_dose_mg(text: str) -> Optional[float]:
    """Parse the first dose in text, converted to milligrams."""
    match = re.search(r"(\d+(?:\.\d+)?)\s*(mg|mcg|µg|g)\b", text.lower())
    if not match:
        return None
    value = float(match.group(1))
    unit = match.group(2)
    if unit == "g":
        return value * 1000
    if unit in ("mcg", "µg"):
        return value / 1000
    return value


def find_interactions(
    medications: list[str],
) -> list[tuple[str, str, InteractionSeverity, str, str]]:
    """All known pairwise interactions among the medications."""
    found = []
    normalized = [normalize_term(m) for m in medications]
    for a, b, severity, effect, management in INTERACTIONS:
        has_a = any(contains_term(m, a) for m in normalized)
        has_b = any(contains_term(m, b) for m in normalized)
        if has_a and has_b:
            found.append((a, b, severity, effect, management))
    return found


def allergy_matches(drug: str, allergy: str) -> bool:
    """Whether a drug matches an allergy directly or by cross-reactivity."""
    drug_norm = normalize_term(drug)
    allergy_norm = normalize_term(allergy)
    if not drug_norm or not allergy_norm:
        return False
    if allergy_norm in drug_norm or drug_norm in allergy_norm:
        return True

    for allergy_class, drugs in ALLERGY_CROSS_REACTIVITY.items():
        if allergy_class in allergy_norm and drug_norm in drugs:
            return True
    return False
