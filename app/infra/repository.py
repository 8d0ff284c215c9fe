"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Separates data access logic from business logic. Makes it easy to:
- Switch database implementations
- Add caching
- Mock data for testing

Repositories receive the DatabaseEngine explicitly. Lookups of missing ids
return None/False/empty results instead of raising. Dates are plain
YYYY-MM-DD strings and are not validated here.
"""

import datetime
import logging
from typing import List, Optional, Dict

from sqlalchemy import select, update, delete, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import (
    Company, WorkSession, PomodoroCompletion, TrackerSettings, UNASSIGNED_COMPANY,
    SessionGroup, SessionDetail, CompanyDaySummary, PomodoroCompanyStat, PomodoroDayTotal,
)
from app.infra.db import (
    CompanyModel, WorkSessionModel, PomodoroCompletionModel, SettingModel, DatabaseEngine,
)

logger = logging.getLogger(__name__)

NOTE_SEPARATOR = " | "


def local_date_str(day: Optional[datetime.date] = None) -> str:
    """Local calendar date as YYYY-MM-DD"""
    return (day or datetime.date.today()).isoformat()


async def _unassigned_id(session: AsyncSession) -> Optional[int]:
    return await session.scalar(
        select(CompanyModel.id).where(CompanyModel.name == UNASSIGNED_COMPANY)
    )


class CompanyRepository:
    """
    Handles all Company-related database operations.

    Converts between domain models (Pydantic) and ORM models (SQLAlchemy).
    """

    def __init__(self, engine: DatabaseEngine):
        self.engine = engine

    async def create(self, company: Company) -> int:
        """Create a new company and return its id"""
        async with self.engine.get_session() as session:
            model = CompanyModel(
                name=company.name,
                excel_column=company.excel_column,
                note_column=company.note_column,
                note_required=company.note_required,
            )
            session.add(model)
            await session.commit()
            return model.id

    async def get_all(self) -> List[Company]:
        """Get all companies ordered by name"""
        async with self.engine.get_session() as session:
            result = await session.execute(select(CompanyModel).order_by(CompanyModel.name.asc()))
            return [Company.model_validate(m) for m in result.scalars().all()]

    async def get_by_id(self, company_id: int) -> Optional[Company]:
        """Get a specific company by ID"""
        async with self.engine.get_session() as session:
            model = await session.get(CompanyModel, company_id)
            return Company.model_validate(model) if model else None

    async def get_by_name(self, name: str) -> Optional[Company]:
        async with self.engine.get_session() as session:
            result = await session.execute(select(CompanyModel).where(CompanyModel.name == name))
            model = result.scalar_one_or_none()
            return Company.model_validate(model) if model else None

    async def get_unassigned_id(self) -> Optional[int]:
        async with self.engine.get_session() as session:
            return await _unassigned_id(session)

    async def update(self, company_id: int, name: str,
                     excel_column: Optional[str] = None,
                     note_column: Optional[str] = None,
                     note_required: bool = False) -> bool:
        """Update name and export configuration. Returns False if the company does not exist."""
        async with self.engine.get_session() as session:
            result = await session.execute(
                update(CompanyModel)
                .where(CompanyModel.id == company_id)
                .values(
                    name=name,
                    excel_column=excel_column,
                    note_column=note_column,
                    note_required=note_required,
                    updated_at=datetime.datetime.now()
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def update_export_config(self, company_id: int,
                                   excel_column: Optional[str],
                                   note_column: Optional[str]) -> bool:
        """Update only the export columns of a company"""
        async with self.engine.get_session() as session:
            result = await session.execute(
                update(CompanyModel)
                .where(CompanyModel.id == company_id)
                .values(
                    excel_column=excel_column,
                    note_column=note_column,
                    updated_at=datetime.datetime.now()
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def delete(self, company_id: int) -> bool:
        """
        Delete a company together with its sessions and Pomodoro records.

        All three deletes run in one transaction: either everything is removed
        or nothing is.
        """
        async with self.engine.get_session() as session:
            async with session.begin():
                sessions_removed = await session.execute(
                    delete(WorkSessionModel).where(WorkSessionModel.company_id == company_id)
                )
                pomodoros_removed = await session.execute(
                    delete(PomodoroCompletionModel).where(PomodoroCompletionModel.company_id == company_id)
                )
                result = await session.execute(
                    delete(CompanyModel).where(CompanyModel.id == company_id)
                )
            if result.rowcount:
                logger.info(
                    f"Deleted company {company_id} with {sessions_removed.rowcount} session(s) "
                    f"and {pomodoros_removed.rowcount} pomodoro record(s)"
                )
            return result.rowcount > 0


class WorkSessionRepository:
    """
    Handles all WorkSession-related database operations, including the
    read-only aggregates used by history, statistics and export.
    """

    def __init__(self, engine: DatabaseEngine):
        self.engine = engine

    async def create(self, name: str, duration: int, date: str,
                     company_id: Optional[int] = None, note: Optional[str] = None) -> int:
        """Insert a session and return its id. A missing company means 'Unassigned'."""
        async with self.engine.get_session() as session:
            if company_id is None:
                company_id = await _unassigned_id(session)
            model = WorkSessionModel(
                name=name,
                duration=duration,
                date=date,
                company_id=company_id,
                note=note,
            )
            session.add(model)
            await session.commit()
            return model.id

    async def get_all(self) -> List[WorkSession]:
        """Get all sessions, newest first"""
        async with self.engine.get_session() as session:
            result = await session.execute(
                select(WorkSessionModel)
                .order_by(WorkSessionModel.created_at.desc(), WorkSessionModel.id.desc())
            )
            return [WorkSession.model_validate(m) for m in result.scalars().all()]

    async def get_by_id(self, session_id: int) -> Optional[WorkSession]:
        async with self.engine.get_session() as session:
            model = await session.get(WorkSessionModel, session_id)
            return WorkSession.model_validate(model) if model else None

    async def get_by_date_range(self, start_date: str, end_date: str) -> List[WorkSession]:
        """Get sessions with start_date <= date <= end_date, newest date first"""
        async with self.engine.get_session() as session:
            result = await session.execute(
                select(WorkSessionModel)
                .where(WorkSessionModel.date.between(start_date, end_date))
                .order_by(WorkSessionModel.date.desc(), WorkSessionModel.created_at.asc())
            )
            return [WorkSession.model_validate(m) for m in result.scalars().all()]

    async def update(self, session_id: int, name: str, duration: int, date: str,
                     company_id: Optional[int] = None, note: Optional[str] = None) -> bool:
        """Replace the editable fields of a session. Returns False if it does not exist."""
        async with self.engine.get_session() as session:
            if company_id is None:
                company_id = await _unassigned_id(session)
            result = await session.execute(
                update(WorkSessionModel)
                .where(WorkSessionModel.id == session_id)
                .values(name=name, duration=duration, date=date, company_id=company_id, note=note)
            )
            await session.commit()
            return result.rowcount > 0

    async def delete(self, session_id: int) -> bool:
        """Delete a session by ID"""
        async with self.engine.get_session() as session:
            result = await session.execute(
                delete(WorkSessionModel).where(WorkSessionModel.id == session_id)
            )
            await session.commit()
            return result.rowcount > 0

    async def delete_all(self) -> int:
        """Delete all sessions. Returns count of deleted rows."""
        async with self.engine.get_session() as session:
            result = await session.execute(delete(WorkSessionModel))
            await session.commit()
            logger.info(f"Deleted all sessions ({result.rowcount})")
            return result.rowcount

    async def get_grouped_by_date_and_company(self) -> List[SessionGroup]:
        """Sum sessions per (date, company), newest date first, then company name"""
        async with self.engine.get_session() as session:
            result = await session.execute(
                select(
                    WorkSessionModel.date,
                    WorkSessionModel.company_id,
                    func.max(CompanyModel.name).label("company_name"),
                    func.sum(WorkSessionModel.duration).label("total_duration"),
                    func.count(WorkSessionModel.id).label("session_count"),
                    func.group_concat(WorkSessionModel.id).label("session_ids"),
                )
                .outerjoin(CompanyModel, WorkSessionModel.company_id == CompanyModel.id)
                .group_by(WorkSessionModel.date, WorkSessionModel.company_id)
                .order_by(WorkSessionModel.date.desc(), func.max(CompanyModel.name).asc())
            )
            groups = []
            for row in result.all():
                ids = sorted(int(i) for i in str(row.session_ids).split(",")) if row.session_ids else []
                groups.append(SessionGroup(
                    date=row.date,
                    company_id=row.company_id,
                    company_name=row.company_name,
                    total_duration=row.total_duration or 0,
                    session_count=row.session_count,
                    session_ids=ids,
                ))
            return groups

    async def _get_details(self, *criteria) -> List[SessionDetail]:
        async with self.engine.get_session() as session:
            result = await session.execute(
                select(
                    WorkSessionModel,
                    CompanyModel.name,
                    CompanyModel.excel_column,
                    CompanyModel.note_column,
                )
                .outerjoin(CompanyModel, WorkSessionModel.company_id == CompanyModel.id)
                .where(*criteria)
                .order_by(
                    CompanyModel.name.asc(),
                    WorkSessionModel.created_at.asc(),
                    WorkSessionModel.id.asc()
                )
            )
            details = []
            for model, company_name, excel_column, note_column in result.all():
                detail = SessionDetail.model_validate(model)
                detail.company_name = company_name
                detail.excel_column = excel_column
                detail.note_column = note_column
                details.append(detail)
            return details

    async def get_by_date_and_company(self, date: str, company_id: int) -> List[SessionDetail]:
        """Sessions of one company on one day in creation order"""
        return await self._get_details(
            WorkSessionModel.date == date,
            WorkSessionModel.company_id == company_id,
        )

    async def get_today_sessions(self, today: Optional[datetime.date] = None) -> List[SessionDetail]:
        """Today's sessions with company name and export columns attached"""
        return await self._get_details(WorkSessionModel.date == local_date_str(today))

    async def get_day_summary(self, day: Optional[datetime.date] = None) -> List[CompanyDaySummary]:
        """
        Per-company totals for one day (today by default).

        Notes are joined with ' | ' in the order the sessions were created.
        """
        summaries: Dict[int, CompanyDaySummary] = {}
        notes: Dict[int, List[str]] = {}
        for detail in await self.get_today_sessions(day):
            summary = summaries.get(detail.company_id)
            if summary is None:
                summary = CompanyDaySummary(
                    company_id=detail.company_id,
                    company_name=detail.company_name or UNASSIGNED_COMPANY,
                    excel_column=detail.excel_column,
                    note_column=detail.note_column,
                )
                summaries[detail.company_id] = summary
                notes[detail.company_id] = []
            summary.total_duration += detail.duration
            summary.session_count += 1
            if detail.note and detail.note.strip():
                notes[detail.company_id].append(detail.note.strip())

        for company_id, summary in summaries.items():
            summary.combined_notes = NOTE_SEPARATOR.join(notes[company_id])
        return list(summaries.values())

    async def get_daily_totals(self) -> Dict[str, int]:
        """Summed duration per date across all companies"""
        async with self.engine.get_session() as session:
            result = await session.execute(
                select(WorkSessionModel.date, func.sum(WorkSessionModel.duration))
                .group_by(WorkSessionModel.date)
            )
            return {date: total or 0 for date, total in result.all()}

    async def get_total_between(self, start_date: str, end_date: str) -> int:
        """Summed duration of sessions dated start_date..end_date inclusive"""
        async with self.engine.get_session() as session:
            total = await session.scalar(
                select(func.sum(WorkSessionModel.duration))
                .where(WorkSessionModel.date.between(start_date, end_date))
            )
            return total or 0


class PomodoroRepository:
    """
    Handles PomodoroCompletion persistence and reporting queries.
    """

    def __init__(self, engine: DatabaseEngine):
        self.engine = engine

    async def record_completion(self, date: Optional[str] = None,
                                company_id: Optional[int] = None, count: int = 1) -> int:
        """Record completed focus interval(s) and return the record id"""
        async with self.engine.get_session() as session:
            model = PomodoroCompletionModel(
                date=date or local_date_str(),
                company_id=company_id,
                count=count,
            )
            session.add(model)
            await session.commit()
            return model.id

    async def get_by_company(self, company_id: int) -> List[PomodoroCompletion]:
        async with self.engine.get_session() as session:
            result = await session.execute(
                select(PomodoroCompletionModel)
                .where(PomodoroCompletionModel.company_id == company_id)
                .order_by(PomodoroCompletionModel.created_at.asc())
            )
            return [PomodoroCompletion.model_validate(m) for m in result.scalars().all()]

    async def get_total_for_date(self, day: Optional[datetime.date] = None) -> int:
        """Completed intervals on one day (today by default)"""
        async with self.engine.get_session() as session:
            total = await session.scalar(
                select(func.sum(PomodoroCompletionModel.count))
                .where(PomodoroCompletionModel.date == local_date_str(day))
            )
            return total or 0

    async def get_company_stats(self, date: str) -> List[PomodoroCompanyStat]:
        """Completed intervals per company on one day, busiest first"""
        async with self.engine.get_session() as session:
            total = func.sum(PomodoroCompletionModel.count).label("count")
            result = await session.execute(
                select(
                    PomodoroCompletionModel.company_id,
                    func.max(CompanyModel.name).label("company_name"),
                    total,
                )
                .outerjoin(CompanyModel, PomodoroCompletionModel.company_id == CompanyModel.id)
                .where(PomodoroCompletionModel.date == date)
                .group_by(PomodoroCompletionModel.company_id)
                .order_by(total.desc())
            )
            return [
                PomodoroCompanyStat(company_id=row.company_id, company_name=row.company_name, count=row.count)
                for row in result.all()
            ]

    async def get_last_7_days(self, today: Optional[datetime.date] = None) -> List[PomodoroDayTotal]:
        """Daily totals for today and the six days before it, oldest first. Days without records are omitted."""
        today = today or datetime.date.today()
        start = local_date_str(today - datetime.timedelta(days=6))
        async with self.engine.get_session() as session:
            result = await session.execute(
                select(PomodoroCompletionModel.date, func.sum(PomodoroCompletionModel.count))
                .where(PomodoroCompletionModel.date.between(start, local_date_str(today)))
                .group_by(PomodoroCompletionModel.date)
                .order_by(PomodoroCompletionModel.date.asc())
            )
            return [PomodoroDayTotal(date=date, count=count) for date, count in result.all()]


class SettingsRepository:
    """
    Handles the key/value settings table.

    Raw access goes through get/set; load() parses everything into TrackerSettings.
    """

    def __init__(self, engine: DatabaseEngine):
        self.engine = engine

    async def get(self, key: str) -> Optional[str]:
        """Get a raw setting value, or None if the key is absent"""
        async with self.engine.get_session() as session:
            model = await session.get(SettingModel, key)
            return model.value if model else None

    async def set(self, key: str, value: str) -> None:
        """Insert or replace a setting"""
        async with self.engine.get_session() as session:
            await session.execute(
                sqlite_insert(SettingModel)
                .values(key=key, value=str(value))
                .on_conflict_do_update(index_elements=["key"], set_={"value": str(value)})
            )
            await session.commit()

    async def get_all(self) -> Dict[str, str]:
        async with self.engine.get_session() as session:
            result = await session.execute(select(SettingModel))
            return {m.key: m.value for m in result.scalars().all()}

    async def load(self) -> TrackerSettings:
        """Parse all stored settings into the typed structure"""
        return TrackerSettings.from_storage(await self.get_all())

    async def save(self, settings: TrackerSettings) -> None:
        """Write every field of the typed settings back to storage"""
        for key, value in settings.to_storage().items():
            await self.set(key, value)
