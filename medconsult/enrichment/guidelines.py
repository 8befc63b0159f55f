"""
Clinical practice guideline lookup.

Guidelines are held in an in-memory catalog keyed by condition, with
keywords used to match free-text complaints and symptoms.
"""

import logging
from typing import Optional

from medconsult.models.enrichment import ClinicalGuideline
from medconsult.utils.parsing import contains_term


logger = logging.getLogger(__name__)


GUIDELINE_CATALOG: list[tuple[list[str], ClinicalGuideline]] = [
    (
        ["chest pain", "angina", "acute coronary syndrome", "myocardial infarction"],
        ClinicalGuideline(
            guideline_id="acc-aha-chest-pain-2021",
            title="Guideline for the Evaluation and Diagnosis of Chest Pain",
            organization="ACC/AHA",
            condition="chest pain",
            year=2021,
            recommendations=[
                "Obtain a 12-lead ECG within 10 minutes of arrival",
                "Use high-sensitivity cardiac troponin as the preferred biomarker",
                "Apply structured risk assessment to guide disposition",
            ],
            evidence_grade="I-A",
        ),
    ),
    (
        ["pneumonia", "productive cough"],
        ClinicalGuideline(
            guideline_id="ats-idsa-cap-2019",
            title="Diagnosis and Treatment of Adults with Community-acquired Pneumonia",
            organization="ATS/IDSA",
            condition="community-acquired pneumonia",
            year=2019,
            recommendations=[
                "Confirm with chest imaging",
                "Use a validated severity score to decide on inpatient care",
                "Start empiric antibiotics promptly",
            ],
            evidence_grade="strong",
        ),
    ),
    (
        ["atrial fibrillation", "palpitations", "irregular heartbeat"],
        ClinicalGuideline(
            guideline_id="acc-aha-afib-2023",
            title="Guideline for the Diagnosis and Management of Atrial Fibrillation",
            organization="ACC/AHA/ACCP/HRS",
            condition="atrial fibrillation",
            year=2023,
            recommendations=[
                "Assess stroke risk with CHA2DS2-VASc",
                "Prefer DOACs over warfarin for eligible patients",
            ],
            evidence_grade="I-A",
        ),
    ),
    (
        ["heart failure", "edema", "orthopnea"],
        ClinicalGuideline(
            guideline_id="aha-acc-hfsa-hf-2022",
            title="Guideline for the Management of Heart Failure",
            organization="AHA/ACC/HFSA",
            condition="heart failure",
            year=2022,
            recommendations=[
                "Measure natriuretic peptides when the diagnosis is uncertain",
                "Start guideline-directed medical therapy for HFrEF",
            ],
            evidence_grade="I-A",
        ),
    ),
    (
        ["hypertension", "high blood pressure"],
        ClinicalGuideline(
            guideline_id="acc-aha-htn-2017",
            title="Guideline for the Prevention, Detection, Evaluation, and Management of High Blood Pressure",
            organization="ACC/AHA",
            condition="hypertension",
            year=2017,
            recommendations=[
                "Confirm with out-of-office measurements",
                "Target blood pressure below 130/80 mmHg for most adults",
            ],
            evidence_grade="I-A",
        ),
    ),
    (
        ["diabetes", "hyperglycemia", "polyuria"],
        ClinicalGuideline(
            guideline_id="ada-standards-2024",
            title="Standards of Care in Diabetes",
            organization="ADA",
            condition="type 2 diabetes",
            year=2024,
            recommendations=[
                "Individualize HbA1c targets",
                "Consider SGLT2 inhibitors or GLP-1 agonists for cardiorenal protection",
            ],
            evidence_grade="A",
        ),
    ),
    (
        ["sepsis", "septic shock"],
        ClinicalGuideline(
            guideline_id="ssc-sepsis-2021",
            title="Surviving Sepsis Campaign: International Guidelines",
            organization="SCCM/ESICM",
            condition="sepsis",
            year=2021,
            recommendations=[
                "Administer antimicrobials within one hour for probable septic shock",
                "Give 30 mL/kg crystalloid for hypoperfusion",
            ],
            evidence_grade="strong",
        ),
    ),
    (
        ["stroke", "facial droop", "hemiparesis", "slurred speech"],
        ClinicalGuideline(
            guideline_id="aha-asa-stroke-2019",
            title="Guidelines for the Early Management of Acute Ischemic Stroke",
            organization="AHA/ASA",
            condition="acute ischemic stroke",
            year=2019,
            recommendations=[
                "Obtain brain imaging without delaying thrombolysis evaluation",
                "Administer IV alteplase within 4.5 hours in eligible patients",
            ],
            evidence_grade="I-A",
        ),
    ),
    (
        ["headache", "migraine"],
        ClinicalGuideline(
            guideline_id="ahs-migraine-2021",
            title="Consensus Statement on Integrating New Migraine Treatments",
            organization="AHS",
            condition="migraine",
            year=2021,
            recommendations=[
                "Screen for red-flag features before attributing headache to migraine",
                "Offer preventive therapy for frequent attacks",
            ],
            evidence_grade="consensus",
        ),
    ),
    (
        ["copd", "wheezing", "shortness of breath", "dyspnea"],
        ClinicalGuideline(
            guideline_id="gold-copd-2024",
            title="Global Strategy for Prevention, Diagnosis and Management of COPD",
            organization="GOLD",
            condition="copd",
            year=2024,
            recommendations=[
                "Confirm airflow limitation with spirometry",
                "Use LAMA/LABA combinations for high-symptom patients",
            ],
            evidence_grade="A",
        ),
    ),
]


class ClinicalGuidelinesService:
    """Looks up practice guidelines relevant to a case."""

    def __init__(self, catalog: Optional[list[tuple[list[str], ClinicalGuideline]]] = None):
        self.catalog = catalog if catalog is not None else GUIDELINE_CATALOG

    async def get_guidelines(self, conditions: list[str]) -> list[ClinicalGuideline]:
        """
        Find guidelines matching any of the given conditions or symptoms.

        Args:
            conditions: Complaint, symptoms or suspected conditions (free text)

        Returns:
            Matching guidelines, newest first, without duplicates
        """
        matched: dict[str, ClinicalGuideline] = {}
        for keywords, guideline in self.catalog:
            if guideline.guideline_id in matched:
                continue
            if any(contains_term(text, kw) for text in conditions for kw in keywords):
                matched[guideline.guideline_id] = guideline

        guidelines = sorted(matched.values(), key=lambda g: g.year, reverse=True)
        logger.debug(f"Found {len(guidelines)} guidelines for {len(conditions)} terms")
        return guidelines
