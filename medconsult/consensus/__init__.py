"""Consensus building across agent opinions."""

from medconsult.consensus.builder import (
    UNABLE_TO_DETERMINE,
    build_consensus,
    empty_consensus,
    grade_consensus,
    merge_differentials,
    merge_recommendations,
)

__all__ = [
    "UNABLE_TO_DETERMINE",
    "build_consensus",
    "empty_consensus",
    "grade_consensus",
    "merge_differentials",
    "merge_recommendations",
]
