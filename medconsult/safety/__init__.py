"""Safety validation of consensus results."""

from medconsult.safety.gate import SafetyGate, failed_safety_result, implied_medications

__all__ = ["SafetyGate", "failed_safety_result", "implied_medications"]
