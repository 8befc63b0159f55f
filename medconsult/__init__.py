"""Complexity-driven medical consultation orchestration and consensus engine."""

__version__ = "0.1.0"
