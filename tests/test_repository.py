"""
Tests for the session, company, pomodoro and settings repositories.
"""

import datetime
import pytest
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from app.domain.models import Company, TrackerSettings


class TestWorkSessions:

    @pytest.mark.asyncio
    async def test_create_without_company_uses_unassigned(self, session_repo, company_repo):
        session_id = await session_repo.create("Focus", 1200, "2026-01-05")

        session = await session_repo.get_by_id(session_id)
        assert session.company_id == await company_repo.get_unassigned_id()
        assert session.duration == 1200
        assert session.note is None

    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(self, session_repo):
        for day in ["2026-01-04", "2026-01-05", "2026-01-06", "2026-01-07", "2026-01-08"]:
            await session_repo.create(f"Work {day}", 600, day)

        sessions = await session_repo.get_by_date_range("2026-01-05", "2026-01-07")

        assert [s.date for s in sessions] == ["2026-01-07", "2026-01-06", "2026-01-05"]

    @pytest.mark.asyncio
    async def test_update_and_delete_report_missing_rows(self, session_repo):
        session_id = await session_repo.create("Draft", 60, "2026-01-05")

        assert await session_repo.update(session_id, "Final", 90, "2026-01-06", None, "done")
        updated = await session_repo.get_by_id(session_id)
        assert (updated.name, updated.duration, updated.date, updated.note) == ("Final", 90, "2026-01-06", "done")

        assert await session_repo.update(9999, "Nope", 1, "2026-01-06") is False
        assert await session_repo.delete(9999) is False
        assert await session_repo.delete(session_id) is True
        assert await session_repo.get_by_id(session_id) is None

    @pytest.mark.asyncio
    async def test_delete_all_returns_count(self, session_repo):
        for i in range(3):
            await session_repo.create(f"Work {i}", 60, "2026-01-05")

        assert await session_repo.delete_all() == 3
        assert await session_repo.get_all() == []

    @pytest.mark.asyncio
    async def test_grouped_by_date_and_company(self, session_repo, company_repo):
        zeta = await company_repo.create(Company(name="Zeta"))
        alpha = await company_repo.create(Company(name="Alpha"))
        first = await session_repo.create("A1", 600, "2026-01-05", alpha)
        second = await session_repo.create("A2", 900, "2026-01-05", alpha)
        await session_repo.create("Z1", 300, "2026-01-05", zeta)
        await session_repo.create("Z2", 100, "2026-01-04", zeta)

        groups = await session_repo.get_grouped_by_date_and_company()

        assert [(g.date, g.company_name) for g in groups] == [
            ("2026-01-05", "Alpha"),
            ("2026-01-05", "Zeta"),
            ("2026-01-04", "Zeta"),
        ]
        assert groups[0].total_duration == 1500
        assert groups[0].session_count == 2
        assert groups[0].session_ids == [first, second]

    @pytest.mark.asyncio
    async def test_day_summary_joins_notes_in_order(self, session_repo, company_repo):
        today = datetime.date(2026, 1, 5)
        acme = await company_repo.create(Company(name="Acme", excel_column="B", note_column="F"))
        await session_repo.create("One", 3600, "2026-01-05", acme, "Kickoff")
        await session_repo.create("Two", 1800, "2026-01-05", acme, None)
        await session_repo.create("Three", 900, "2026-01-05", acme, "Review")
        await session_repo.create("Other day", 900, "2026-01-04", acme, "Ignored")

        summary = await session_repo.get_day_summary(today)

        assert len(summary) == 1
        assert summary[0].company_name == "Acme"
        assert summary[0].total_duration == 6300
        assert summary[0].session_count == 3
        assert summary[0].combined_notes == "Kickoff | Review"
        assert summary[0].excel_column == "B"

        details = await session_repo.get_today_sessions(today)
        assert [d.name for d in details] == ["One", "Two", "Three"]
        assert all(d.note_column == "F" for d in details)

    @pytest.mark.asyncio
    async def test_sessions_by_date_and_company(self, session_repo, company_repo):
        acme = await company_repo.create(Company(name="Acme"))
        await session_repo.create("Mine", 60, "2026-01-05", acme)
        await session_repo.create("Not mine", 60, "2026-01-05")

        sessions = await session_repo.get_by_date_and_company("2026-01-05", acme)

        assert [s.name for s in sessions] == ["Mine"]
        assert sessions[0].company_name == "Acme"


class TestCompanies:

    @pytest.mark.asyncio
    async def test_delete_cascades_sessions_and_pomodoros(self, company_repo, session_repo, pomodoro_repo):
        acme = await company_repo.create(Company(name="Acme"))
        other = await company_repo.create(Company(name="Other"))
        for i in range(3):
            await session_repo.create(f"Work {i}", 60, "2026-01-05", acme)
        await session_repo.create("Keep", 60, "2026-01-05", other)
        await pomodoro_repo.record_completion("2026-01-05", acme)
        await pomodoro_repo.record_completion("2026-01-05", acme, count=2)

        assert await company_repo.delete(acme) is True

        assert await company_repo.get_by_id(acme) is None
        assert [s.name for s in await session_repo.get_all()] == ["Keep"]
        assert await pomodoro_repo.get_by_company(acme) == []
        assert await company_repo.delete(acme) is False

    @pytest.mark.asyncio
    async def test_failed_delete_leaves_everything_in_place(self, db_engine, company_repo, session_repo,
                                                            pomodoro_repo):
        acme = await company_repo.create(Company(name="Acme"))
        await session_repo.create("Work", 60, "2026-01-05", acme)
        await pomodoro_repo.record_completion("2026-01-05", acme)
        # Make the final statement of the delete fail after sessions and pomodoros are gone
        async with db_engine.engine.begin() as conn:
            await conn.execute(text(
                "CREATE TRIGGER block_company_delete BEFORE DELETE ON companies "
                "BEGIN SELECT RAISE(ABORT, 'company delete blocked'); END"
            ))

        with pytest.raises(DBAPIError, match="company delete blocked"):
            await company_repo.delete(acme)

        assert await company_repo.get_by_id(acme) is not None
        assert [s.name for s in await session_repo.get_all()] == ["Work"]
        assert len(await pomodoro_repo.get_by_company(acme)) == 1

    @pytest.mark.asyncio
    async def test_update_and_export_config(self, company_repo):
        acme = await company_repo.create(Company(name="Acme"))

        assert await company_repo.update(acme, "Acme Corp", "C", "G", True)
        assert await company_repo.update_export_config(acme, "D", None)

        company = await company_repo.get_by_id(acme)
        assert company.name == "Acme Corp"
        assert company.excel_column == "D"
        assert company.note_column is None
        assert company.note_required is True
        assert await company_repo.update_export_config(9999, "A", "B") is False

    @pytest.mark.asyncio
    async def test_companies_sorted_by_name(self, company_repo):
        await company_repo.create(Company(name="Zeta"))
        await company_repo.create(Company(name="Beta"))

        names = [c.name for c in await company_repo.get_all()]

        assert names == ["Beta", "Unassigned", "Zeta"]


class TestPomodoros:

    @pytest.mark.asyncio
    async def test_totals_and_company_stats(self, pomodoro_repo, company_repo):
        today = datetime.date(2026, 1, 5)
        acme = await company_repo.create(Company(name="Acme"))
        await pomodoro_repo.record_completion("2026-01-05", acme)
        await pomodoro_repo.record_completion("2026-01-05", acme, count=2)
        await pomodoro_repo.record_completion("2026-01-05")
        await pomodoro_repo.record_completion("2026-01-04", acme)

        assert await pomodoro_repo.get_total_for_date(today) == 4

        stats = await pomodoro_repo.get_company_stats("2026-01-05")
        assert (stats[0].company_name, stats[0].count) == ("Acme", 3)
        assert (stats[1].company_id, stats[1].count) == (None, 1)

    @pytest.mark.asyncio
    async def test_last_7_days_ascending(self, pomodoro_repo):
        today = datetime.date(2026, 1, 10)
        await pomodoro_repo.record_completion("2026-01-10", count=2)
        await pomodoro_repo.record_completion("2026-01-04")
        await pomodoro_repo.record_completion("2026-01-03")  # 7 days back, outside the window
        await pomodoro_repo.record_completion("2026-01-07", count=3)

        days = await pomodoro_repo.get_last_7_days(today)

        assert [(d.date, d.count) for d in days] == [
            ("2026-01-04", 1),
            ("2026-01-07", 3),
            ("2026-01-10", 2),
        ]


class TestSettings:

    @pytest.mark.asyncio
    async def test_set_is_upsert(self, settings_repo):
        await settings_repo.set("script_url", "https://example.com/a")
        await settings_repo.set("script_url", "https://example.com/b")

        assert await settings_repo.get("script_url") == "https://example.com/b"

    @pytest.mark.asyncio
    async def test_load_parses_typed_values(self, settings_repo):
        await settings_repo.set("streak_exclude_weekends", "true")
        await settings_repo.set("daily_target", "not a number")

        settings = await settings_repo.load()

        assert settings.streak_exclude_weekends is True
        assert settings.daily_target == 28800
        assert settings.pomodoro_work_duration == 1500

    @pytest.mark.asyncio
    async def test_save_round_trips_booleans_as_strings(self, settings_repo):
        await settings_repo.save(TrackerSettings(pomodoro_auto_start_work=True, daily_target=7200))

        assert await settings_repo.get("pomodoro_auto_start_work") == "true"
        assert await settings_repo.get("daily_target") == "7200"
