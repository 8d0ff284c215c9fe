"""
SQLAlchemy ORM models.
Separated from db.py for cleaner imports.
"""

from .db import CompanyModel, WorkSessionModel, PomodoroCompletionModel, SettingModel, Base

__all__ = ["CompanyModel", "WorkSessionModel", "PomodoroCompletionModel", "SettingModel", "Base"]
