"""
Specialist agent registry.

Every specialty the delegate orchestrator can be asked to spawn, with the
rule that decides when it joins a panel.
"""

from typing import Optional

from medconsult.models.agents import AgentSpec
from medconsult.models.enums import SpawnRule
from medconsult.utils.parsing import contains_term


def _spec(specialty, display_name, focus, spawn_rule, keywords=(), weight=0.85) -> AgentSpec:
    return AgentSpec(
        specialty=specialty,
        display_name=display_name,
        focus=focus,
        spawn_rule=spawn_rule,
        trigger_keywords=tuple(keywords),
        confidence_weight=weight,
    )


# Insertion order is the selection priority among agents of the same rule.
AGENT_REGISTRY: dict[str, AgentSpec] = {
    spec.specialty: spec
    for spec in [
        # Core
        _spec("primary_care", "Primary Care Physician",
              "General assessment, initial differential and care coordination",
              SpawnRule.ALWAYS, weight=0.8),
        _spec("medical_documentation", "Medical Documentation Specialist",
              "Structured documentation of findings and plan",
              SpawnRule.ALWAYS, weight=0.7),
        _spec("emergency_medicine", "Emergency Medicine Physician",
              "Acute triage, stabilization and time-critical decisions",
              SpawnRule.HIGH_URGENCY, weight=0.95),
        # Keyword-triggered specialties
        _spec("cardiology", "Cardiologist", "Cardiovascular disease and arrhythmia",
              SpawnRule.KEYWORD_TRIGGERED,
              ["chest pain", "heart", "cardiac", "arrhythmia", "hypertension", "angina",
               "myocardial", "palpitations", "coronary", "heart failure", "valve", "ecg", "ekg"],
              weight=0.9),
        _spec("neurology", "Neurologist", "Central and peripheral nervous system disorders",
              SpawnRule.KEYWORD_TRIGGERED,
              ["headache", "seizure", "stroke", "dizziness", "weakness", "numbness", "tremor",
               "memory", "confusion", "paralysis", "neuropathy", "migraine", "vertigo"],
              weight=0.9),
        _spec("pulmonology", "Pulmonologist", "Respiratory disease and oxygenation",
              SpawnRule.KEYWORD_TRIGGERED,
              ["shortness of breath", "dyspnea", "cough", "wheezing", "asthma", "copd",
               "pneumonia", "lung", "respiratory", "oxygen", "pulmonary", "chest x-ray"]),
        _spec("gastroenterology", "Gastroenterologist", "Digestive tract and liver disease",
              SpawnRule.KEYWORD_TRIGGERED,
              ["abdominal pain", "nausea", "vomiting", "diarrhea", "constipation",
               "blood in stool", "liver", "hepatitis", "ibd", "crohns", "colitis", "gerd", "gastric"]),
        _spec("endocrinology", "Endocrinologist", "Hormonal and metabolic disorders",
              SpawnRule.KEYWORD_TRIGGERED,
              ["diabetes", "thyroid", "glucose", "hormone", "metabolic", "insulin", "weight",
               "fatigue", "endocrine", "adrenal", "pituitary"]),
        _spec("oncology", "Oncologist", "Malignancy workup, staging and treatment planning",
              SpawnRule.KEYWORD_TRIGGERED,
              ["cancer", "tumor", "malignancy", "mass", "lump", "metastasis", "chemotherapy",
               "radiation", "biopsy", "oncology"],
              weight=0.9),
        _spec("infectious_disease", "Infectious Disease Specialist",
              "Infection diagnosis and antimicrobial stewardship",
              SpawnRule.KEYWORD_TRIGGERED,
              ["fever", "infection", "sepsis", "hiv", "hepatitis", "tb", "pneumonia",
               "meningitis", "antibiotic", "antimicrobial"]),
        _spec("psychiatry", "Psychiatrist", "Mental health evaluation and psychopharmacology",
              SpawnRule.KEYWORD_TRIGGERED,
              ["depression", "anxiety", "mood", "psychosis", "bipolar", "schizophrenia",
               "suicidal", "mental health", "psychiatric"]),
        # Data-driven specialties
        _spec("radiology", "Radiologist", "Interpretation of imaging studies",
              SpawnRule.IMAGING_REQUESTS, weight=0.9),
        _spec("pathology", "Pathologist", "Laboratory and tissue result interpretation",
              SpawnRule.LAB_REQUESTS, weight=0.9),
        _spec("pharmacology", "Clinical Pharmacist",
              "Medication review, interactions and dosing",
              SpawnRule.DRUG_QUERIES, weight=0.9),
        _spec("surgery", "Surgeon", "Surgical candidacy and operative planning",
              SpawnRule.SURGICAL_CANDIDATES),
        # Case-driven specialties
        _spec("clinical_research", "Clinical Research Specialist",
              "Current evidence and trial eligibility",
              SpawnRule.COMPLEX_CASES, weight=0.75),
        _spec("rare_disease_specialist", "Rare Disease Specialist",
              "Uncommon and genetic conditions",
              SpawnRule.RARE_SUSPICION, weight=0.8),
    ]
}


def get_agent(specialty: str) -> Optional[AgentSpec]:
    """Look up an agent by specialty id."""
    return AGENT_REGISTRY.get(specialty)


def agents_by_rule(rule: SpawnRule) -> list[AgentSpec]:
    """All agents spawned by a given rule, in registry order."""
    return [spec for spec in AGENT_REGISTRY.values() if spec.spawn_rule == rule]


def find_agents_by_keywords(texts: list[str]) -> list[tuple[AgentSpec, str]]:
    """
    Keyword-triggered agents whose keywords appear in any of the texts.

    Returns:
        (agent, matched keyword) pairs in registry order
    """
    matches = []
    for spec in agents_by_rule(SpawnRule.KEYWORD_TRIGGERED):
        keyword = next(
            (kw for kw in spec.trigger_keywords if any(contains_term(t, kw) for t in texts)),
            None,
        )
        if keyword:
            matches.append((spec, keyword))
    return matches
