"""Services layer - Business logic"""

from .timer_service import WorkTimer
from .stats_service import StatsService
from .export_service import ExportService
from .api import TrackerApi

__all__ = ["WorkTimer", "StatsService", "ExportService", "TrackerApi"]
