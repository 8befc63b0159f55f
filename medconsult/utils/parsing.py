"""
Shared text parsing utilities.

Used for LLM response extraction and for loose matching of clinical
terms (drug names, conditions, allergies).
"""

import json
import re
from typing import Any


def extract_json_object(content: str) -> dict[str, Any]:
    """
    Extract a JSON object from an LLM response.

    Handles fenced ```json blocks and bare objects surrounded by prose.

    Args:
        content: Raw response text

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If no JSON object can be found or parsed
    """
    content = content.strip()

    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()

    json_start = content.find("{")
    json_end = content.rfind("}") + 1
    if json_start == -1 or json_end == 0:
        raise ValueError("No JSON found in response")

    try:
        data = json.loads(content[json_start:json_end])
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


def normalize_term(term: str) -> str:
    """
    Normalize a clinical term for comparison.

    Lowercases, strips punctuation and collapses whitespace, so that
    "Peptic-Ulcer  Disease" and "peptic ulcer disease" compare equal.
    """
    cleaned = re.sub(r"[^\w\s]", " ", term.lower())
    return re.sub(r"\s+", " ", cleaned).strip()


def contains_term(text: str, term: str) -> bool:
    """Check whether ``term`` appears in ``text`` on word boundaries."""
    needle = normalize_term(term)
    if not needle:
        return False
    haystack = normalize_term(text)
    return re.search(rf"\b{re.escape(needle)}\b", haystack) is not None


def format_patient_summary(request) -> str:
    """
    Format a consultation request's patient data into a readable block.

    Args:
        request: ConsultationRequest (or any object with the same attributes)

    Returns:
        Multi-line summary, or a placeholder when nothing is known
    """
    parts = []

    demographics = getattr(request, "demographics", None)
    if demographics is not None:
        if demographics.age is not None:
            parts.append(f"Age: {demographics.age}")
        if demographics.sex:
            parts.append(f"Sex: {demographics.sex}")
        if demographics.pregnant:
            parts.append("Pregnant: yes")

    history = getattr(request, "medical_history", None)
    if history is not None:
        if history.conditions:
            parts.append(f"Conditions: {', '.join(history.conditions)}")
        if history.medications:
            parts.append(f"Current medications: {', '.join(history.medications)}")
        if history.allergies:
            parts.append(f"Allergies: {', '.join(history.allergies)}")
        if history.surgeries:
            parts.append(f"Surgeries: {', '.join(history.surgeries)}")

    return "\n".join(parts) if parts else "No patient context provided."
