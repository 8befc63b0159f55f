"""Utility functions and helpers."""

from medconsult.utils.logging import setup_logging
from medconsult.utils.parsing import (
    contains_term,
    extract_json_object,
    format_patient_summary,
    normalize_term,
)

__all__ = [
    "contains_term",
    "extract_json_object",
    "format_patient_summary",
    "normalize_term",
    "setup_logging",
]
