"""Infrastructure layer - Database, persistence and external transports"""

from .db import DatabaseEngine, open_database
from .models import CompanyModel, WorkSessionModel, PomodoroCompletionModel, SettingModel

__all__ = [
    "DatabaseEngine", "open_database",
    "CompanyModel", "WorkSessionModel", "PomodoroCompletionModel", "SettingModel",
]
