"""Domain layer - Pure business entities and logic"""

from .models import (
    Company, WorkSession, PomodoroCompletion, TrackerSettings,
    PomodoroConfig, PomodoroPhase, UNASSIGNED_COMPANY,
)

__all__ = [
    "Company", "WorkSession", "PomodoroCompletion", "TrackerSettings",
    "PomodoroConfig", "PomodoroPhase", "UNASSIGNED_COMPANY",
]
