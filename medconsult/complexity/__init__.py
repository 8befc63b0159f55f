"""Case complexity scoring."""

from medconsult.complexity.analyzer import ComplexityAnalyzer, age_factor
from medconsult.complexity.factors import extract_complexity_factors

__all__ = ["ComplexityAnalyzer", "age_factor", "extract_complexity_factors"]
