"""
Tracker API - Request/response boundary consumed by the UI.

Every operation returns {"success": True, ...payload} or
{"success": False, "error": message}. Exceptions never escape: input
validation failures and persistence errors alike become failure envelopes.
"""

import datetime
import functools
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from app.domain.models import Company, CompanyInput, SessionInput, UNASSIGNED_COMPANY
from app.infra.db import DatabaseEngine
from app.infra.repository import (
    CompanyRepository, WorkSessionRepository, PomodoroRepository, SettingsRepository, local_date_str,
)
from app.infra.sheets_client import SheetsWebhookClient
from app.services.export_service import ExportService
from app.services.stats_service import StatsService

logger = logging.getLogger(__name__)

Envelope = Dict[str, Any]


def envelope(func: Callable) -> Callable:
    """Wrap an async operation's payload into the success/error envelope"""
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs) -> Envelope:
        try:
            payload = await func(self, *args, **kwargs)
        except ValidationError as e:
            message = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            logger.warning(f"{func.__name__}: invalid input: {message}")
            return {"success": False, "error": message}
        except Exception as e:
            logger.exception(f"{func.__name__} failed")
            return {"success": False, "error": str(e)}

        result = {"success": True}
        result.update(payload or {})
        return result
    return wrapper


class TrackerApi:
    """
    Facade over repositories and services.

    Constructed with an initialized DatabaseEngine; owns no global state.
    """

    def __init__(self, engine: DatabaseEngine, export_timeout: float = 30.0, export_max_redirects: int = 5):
        self.engine = engine
        self.company_repo = CompanyRepository(engine)
        self.session_repo = WorkSessionRepository(engine)
        self.pomodoro_repo = PomodoroRepository(engine)
        self.settings_repo = SettingsRepository(engine)
        self.stats = StatsService(self.session_repo, self.settings_repo)
        self.exporter = ExportService(
            self.session_repo,
            self.settings_repo,
            client_factory=lambda url: SheetsWebhookClient(
                url, timeout=export_timeout, max_redirects=export_max_redirects
            ),
        )

    async def _check_note_requirement(self, data: SessionInput):
        if data.company_id is None or (data.note and data.note.strip()):
            return
        company = await self.company_repo.get_by_id(data.company_id)
        if company and company.note_required:
            raise ValueError(f"A note is required for sessions of '{company.name}'")

    # --- Sessions ---

    @envelope
    async def save_session(self, name: str, duration: int, date: str,
                           company_id: Optional[int] = None, note: Optional[str] = None) -> Envelope:
        data = SessionInput(name=name, duration=duration, date=date, company_id=company_id, note=note)
        await self._check_note_requirement(data)
        session_id = await self.session_repo.create(
            data.name, data.duration, data.date, data.company_id, data.note
        )
        return {"id": session_id}

    @envelope
    async def get_session(self, session_id: int) -> Envelope:
        session = await self.session_repo.get_by_id(session_id)
        return {"session": session.model_dump(mode="json") if session else None}

    @envelope
    async def get_sessions(self) -> Envelope:
        sessions = await self.session_repo.get_all()
        return {"sessions": [s.model_dump(mode="json") for s in sessions]}

    @envelope
    async def get_sessions_by_date(self, start_date: str, end_date: str) -> Envelope:
        sessions = await self.session_repo.get_by_date_range(start_date, end_date)
        return {"sessions": [s.model_dump(mode="json") for s in sessions]}

    @envelope
    async def update_session(self, session_id: int, name: str, duration: int, date: str,
                             company_id: Optional[int] = None, note: Optional[str] = None) -> Envelope:
        data = SessionInput(name=name, duration=duration, date=date, company_id=company_id, note=note)
        await self._check_note_requirement(data)
        updated = await self.session_repo.update(
            session_id, data.name, data.duration, data.date, data.company_id, data.note
        )
        return {"success": updated}

    @envelope
    async def delete_session(self, session_id: int) -> Envelope:
        return {"success": await self.session_repo.delete(session_id)}

    @envelope
    async def delete_all_sessions(self) -> Envelope:
        return {"count": await self.session_repo.delete_all()}

    # --- Companies ---

    @envelope
    async def create_company(self, name: str, excel_column: Optional[str] = None,
                             note_column: Optional[str] = None, note_required: bool = False) -> Envelope:
        data = CompanyInput(
            name=name, excel_column=excel_column, note_column=note_column, note_required=note_required
        )
        company_id = await self.company_repo.create(Company(**data.model_dump()))
        return {"id": company_id}

    @envelope
    async def get_companies(self) -> Envelope:
        companies = await self.company_repo.get_all()
        return {"companies": [c.model_dump(mode="json") for c in companies]}

    @envelope
    async def get_company(self, company_id: int) -> Envelope:
        company = await self.company_repo.get_by_id(company_id)
        return {"company": company.model_dump(mode="json") if company else None}

    @envelope
    async def update_company(self, company_id: int, name: str, excel_column: Optional[str] = None,
                             note_column: Optional[str] = None, note_required: bool = False) -> Envelope:
        data = CompanyInput(
            name=name, excel_column=excel_column, note_column=note_column, note_required=note_required
        )
        updated = await self.company_repo.update(
            company_id, data.name, data.excel_column, data.note_column, data.note_required
        )
        return {"success": updated}

    @envelope
    async def update_company_export_config(self, company_id: int, excel_column: Optional[str],
                                           note_column: Optional[str]) -> Envelope:
        updated = await self.company_repo.update_export_config(company_id, excel_column, note_column)
        return {"success": updated}

    @envelope
    async def delete_company(self, company_id: int) -> Envelope:
        if company_id == await self.company_repo.get_unassigned_id():
            raise ValueError(f"The '{UNASSIGNED_COMPANY}' company cannot be deleted")
        return {"success": await self.company_repo.delete(company_id)}

    # --- History ---

    @envelope
    async def get_sessions_grouped(self) -> Envelope:
        groups = await self.session_repo.get_grouped_by_date_and_company()
        return {"groups": [g.model_dump() for g in groups]}

    @envelope
    async def get_sessions_by_date_company(self, date: str, company_id: int) -> Envelope:
        sessions = await self.session_repo.get_by_date_and_company(date, company_id)
        return {"sessions": [s.model_dump(mode="json") for s in sessions]}

    # --- Settings ---

    @envelope
    async def get_setting(self, key: str) -> Envelope:
        return {"value": await self.settings_repo.get(key)}

    @envelope
    async def set_setting(self, key: str, value: str) -> Envelope:
        await self.settings_repo.set(key, value)
        return {}

    @envelope
    async def get_settings(self) -> Envelope:
        settings = await self.settings_repo.load()
        return {"settings": settings.model_dump()}

    # --- Statistics ---

    @envelope
    async def get_week_total(self, today: Optional[datetime.date] = None) -> Envelope:
        return {
            "this_week": await self.stats.get_this_week_total(today),
            "last_week": await self.stats.get_last_week_total(today),
        }

    @envelope
    async def get_current_streak(self, today: Optional[datetime.date] = None) -> Envelope:
        return {"streak": await self.stats.calculate_current_streak(today)}

    # --- Today / export ---

    @envelope
    async def get_today_sessions(self, today: Optional[datetime.date] = None) -> Envelope:
        sessions = await self.session_repo.get_today_sessions(today)
        return {"sessions": [s.model_dump(mode="json") for s in sessions]}

    @envelope
    async def get_todays_sessions_summary(self, today: Optional[datetime.date] = None) -> Envelope:
        summary = await self.session_repo.get_day_summary(today)
        return {"summary": [s.model_dump() for s in summary]}

    @envelope
    async def preview_day_end(self, today: Optional[datetime.date] = None) -> Envelope:
        return await self.exporter.preview_day_end(today)

    @envelope
    async def export_day_end(self, today: Optional[datetime.date] = None) -> Envelope:
        return await self.exporter.export_day_end(today)

    # --- Pomodoro ---

    @envelope
    async def record_pomodoro(self, company_id: Optional[int] = None, count: int = 1,
                              date: Optional[str] = None) -> Envelope:
        record_id = await self.pomodoro_repo.record_completion(date or local_date_str(), company_id, count)
        return {"id": record_id}

    @envelope
    async def get_pomodoro_today(self, today: Optional[datetime.date] = None) -> Envelope:
        return {"count": await self.pomodoro_repo.get_total_for_date(today)}

    @envelope
    async def get_pomodoro_company_stats(self, date: Optional[str] = None) -> Envelope:
        stats = await self.pomodoro_repo.get_company_stats(date or local_date_str())
        return {"stats": [s.model_dump() for s in stats]}

    @envelope
    async def get_pomodoro_week(self, today: Optional[datetime.date] = None) -> Envelope:
        days = await self.pomodoro_repo.get_last_7_days(today)
        return {"days": [d.model_dump() for d in days]}
