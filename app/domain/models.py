"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
Pydantic provides runtime data validation, ensuring data integrity when loading
from the settings table or database. It also provides easy serialization for the
service boundary envelopes.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Literal, Union
from pydantic import BaseModel, Field, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

UNASSIGNED_COMPANY = "Unassigned"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class Company(BaseModel):
    """
    Represents a client/employer that work time is booked against.

    The export columns are spreadsheet column letters used by the day-end export.
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)
    excel_column: Optional[str] = None
    note_column: Optional[str] = None
    note_required: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class WorkSession(BaseModel):
    """
    Represents one committed timer run.

    Dates are local calendar days in sortable YYYY-MM-DD form.
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    name: str
    duration: int = 0  # seconds
    date: str
    note: Optional[str] = None
    company_id: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.now)


class PomodoroCompletion(BaseModel):
    """One or more completed focus intervals on a given day"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    date: str
    company_id: Optional[int] = None
    count: int = 1
    created_at: datetime = Field(default_factory=datetime.now)


class SessionInput(BaseModel):
    """Validated request payload for creating or updating a session"""
    name: str = Field(..., min_length=1, max_length=200)
    duration: int = Field(..., ge=0)
    date: str = Field(..., pattern=DATE_PATTERN)
    company_id: Optional[int] = None
    note: Optional[str] = None


class CompanyInput(BaseModel):
    """Validated request payload for creating or updating a company"""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    excel_column: Optional[str] = None
    note_column: Optional[str] = None
    note_required: bool = False


# --- Read models for aggregate queries ---

class SessionGroup(BaseModel):
    """Sessions of one company on one day, summed up for the history list"""
    date: str
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    total_duration: int = 0
    session_count: int = 0
    session_ids: List[int] = Field(default_factory=list)


class SessionDetail(WorkSession):
    """A work session joined with its company's name and export columns"""
    company_name: Optional[str] = None
    excel_column: Optional[str] = None
    note_column: Optional[str] = None


class CompanyDaySummary(BaseModel):
    """Per-company totals for one day, used by the day-end export"""
    company_id: Optional[int] = None
    company_name: str
    excel_column: Optional[str] = None
    note_column: Optional[str] = None
    total_duration: int = 0
    session_count: int = 0
    combined_notes: str = ""


class PomodoroCompanyStat(BaseModel):
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    count: int = 0


class PomodoroDayTotal(BaseModel):
    date: str
    count: int = 0


# --- Export payload ---

class ExportItem(BaseModel):
    """Display and export values for one company's day"""
    company_name: str
    excel_column: Optional[str] = None
    note_column: Optional[str] = None
    duration: str = "0:00"
    duration_hours: float = 0
    duration_seconds: int = 0
    notes: str = ""


class ExportEntry(BaseModel):
    """One cell write understood by the spreadsheet webhook"""
    column: str
    value: Union[float, str]
    type: Literal["hours", "note"]
    company: str


# --- Pomodoro ---

class PomodoroPhase(str, Enum):
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


class PomodoroConfig(BaseModel):
    """Pomodoro cycle configuration. All durations are in seconds."""
    work_duration: int = Field(default=1500, ge=1)
    short_break: int = Field(default=300, ge=1)
    long_break: int = Field(default=900, ge=1)
    sessions_until_long_break: int = Field(default=4, ge=1)
    auto_start_breaks: bool = False
    auto_start_work: bool = False

    @classmethod
    def from_settings(cls, settings: "TrackerSettings") -> "PomodoroConfig":
        return cls(
            work_duration=settings.pomodoro_work_duration,
            short_break=settings.pomodoro_short_break,
            long_break=settings.pomodoro_long_break,
            sessions_until_long_break=settings.pomodoro_sessions_until_long_break,
            auto_start_breaks=settings.pomodoro_auto_start_breaks,
            auto_start_work=settings.pomodoro_auto_start_work,
        )


class TrackerSettings(BaseModel):
    """
    User configuration stored in the key/value settings table.

    Every field name is a settings key. Values are persisted as strings
    ('true'/'false' for booleans) and parsed once when loaded.
    """
    model_config = ConfigDict(extra="ignore")

    # Goals
    daily_target: int = Field(default=28800, description="Daily target in seconds")
    streak_exclude_weekends: bool = Field(default=False, description="Weekends neither count nor break a streak")

    # Notifications
    goal_notification: bool = True
    start_reminder: bool = False
    haptic_feedback: bool = True
    pomodoro_notification: bool = True

    # Pomodoro
    pomodoro_work_duration: int = 1500
    pomodoro_short_break: int = 300
    pomodoro_long_break: int = 900
    pomodoro_sessions_until_long_break: int = 4
    pomodoro_auto_start_breaks: bool = False
    pomodoro_auto_start_work: bool = False

    # Export
    script_url: Optional[str] = Field(default=None, description="Spreadsheet webhook URL")

    @classmethod
    def from_storage(cls, values: Dict[str, str]) -> "TrackerSettings":
        """
        Parse raw key/value rows. Values that fail to parse fall back to
        the field default instead of failing the whole load.
        """
        data = {k: v for k, v in values.items() if k in cls.model_fields}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            bad_keys = {err["loc"][0] for err in e.errors() if err["loc"]}
            for key in bad_keys:
                logger.warning(f"Ignoring invalid setting {key}={data.get(key)!r}")
                data.pop(key, None)
            return cls.model_validate(data)

    def to_storage(self) -> Dict[str, str]:
        """Serialize to the string form stored in the settings table (None values are omitted)"""
        result = {}
        for key, value in self.model_dump().items():
            if value is None:
                continue
            if isinstance(value, bool):
                result[key] = "true" if value else "false"
            else:
                result[key] = str(value)
        return result


DEFAULT_SETTINGS: Dict[str, str] = TrackerSettings().to_storage()
