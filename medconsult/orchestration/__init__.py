"""Consultation lifecycle: task registry, manager and composition root."""

from medconsult.orchestration.factory import build_consultation_manager
from medconsult.orchestration.manager import ConsultationManager
from medconsult.orchestration.registry import TaskRegistry

__all__ = ["ConsultationManager", "TaskRegistry", "build_consultation_manager"]
