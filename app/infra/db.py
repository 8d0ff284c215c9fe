"""
SQLAlchemy database models and configuration.

Architecture Decision: Why SQLAlchemy?
- Provides ORM for cleaner code and prevents SQL injection
- Supports async operations for non-blocking database access
- Schema introspection makes additive column migrations straightforward
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, Boolean, Text, ForeignKey, event, inspect, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.schema import CreateColumn

from app.domain.models import UNASSIGNED_COMPANY, DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


# Base class for all models
class Base(DeclarativeBase):
    pass


class CompanyModel(Base):
    """SQLAlchemy model for Company entity"""
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    excel_column: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    note_column: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    note_required: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class WorkSessionModel(Base):
    """SQLAlchemy model for WorkSession entity"""
    __tablename__ = "work_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    # Added after the first release; see DatabaseEngine._add_missing_columns
    company_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PomodoroCompletionModel(Base):
    """SQLAlchemy model for PomodoroCompletion entity"""
    __tablename__ = "pomodoro_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    company_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )
    count: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class SettingModel(Base):
    """SQLAlchemy model for a single key/value setting"""
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class DatabaseEngine:
    """
    Manages database connection and session lifecycle.

    Constructed once at process start and handed to repositories and services.
    Call initialize() before use and close() at shutdown, or use it as an
    async context manager.
    """

    def __init__(self, db_url: str):
        self.db_url = db_url
        self.engine = create_async_engine(db_url, echo=False)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        if ":memory:" not in db_url:
            event.listen(self.engine.sync_engine, "connect", _enable_wal)

    async def __aenter__(self) -> "DatabaseEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def initialize(self):
        """
        Create and migrate the schema, then seed required rows.

        Safe to call on every start: tables and columns are only ever added,
        and seeding never overwrites existing values.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.run_sync(self._add_missing_columns)

        async with self.get_session() as session:
            unassigned_id = await session.scalar(
                select(CompanyModel.id).where(CompanyModel.name == UNASSIGNED_COMPANY)
            )
            if unassigned_id is None:
                company = CompanyModel(name=UNASSIGNED_COMPANY)
                session.add(company)
                await session.flush()
                unassigned_id = company.id
                logger.info("Created default company 'Unassigned'")

            result = await session.execute(
                update(WorkSessionModel)
                .where(WorkSessionModel.company_id.is_(None))
                .values(company_id=unassigned_id)
            )
            if result.rowcount:
                logger.info(f"Assigned {result.rowcount} session(s) to 'Unassigned'")

            await session.execute(
                sqlite_insert(SettingModel)
                .values([{"key": k, "value": v} for k, v in DEFAULT_SETTINGS.items()])
                .on_conflict_do_nothing(index_elements=["key"])
            )
            await session.commit()

    @staticmethod
    def _add_missing_columns(conn: Connection):
        """Add columns present on the ORM models but missing in the database"""
        inspector = inspect(conn)
        for table in Base.metadata.sorted_tables:
            existing = {col["name"] for col in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in existing:
                    continue
                column_ddl = CreateColumn(column).compile(dialect=conn.dialect)
                conn.exec_driver_sql(f"ALTER TABLE {table.name} ADD COLUMN {column_ddl}")
                logger.info(f"Migrated {table.name}: added column {column.name}")

    def get_session(self) -> AsyncSession:
        """Get a new database session"""
        return self.session_factory()

    async def close(self):
        """Dispose of all pooled connections"""
        await self.engine.dispose()


def _enable_wal(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


async def open_database(db_url: str) -> DatabaseEngine:
    """Create and initialize a database engine"""
    engine = DatabaseEngine(db_url)
    await engine.initialize()
    return engine
