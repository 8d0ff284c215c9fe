"""
Tests for week totals and the daily-target streak.

Reference week: Monday 2026-01-12 .. Sunday 2026-01-18.
"""

import datetime
import pytest

from app.services.stats_service import StatsService, week_bounds

TARGET = 28800
MONDAY = datetime.date(2026, 1, 12)


@pytest.fixture
def stats(session_repo, settings_repo):
    return StatsService(session_repo, settings_repo)


class TestWeekTotals:

    def test_week_bounds_run_monday_to_sunday(self):
        assert week_bounds(datetime.date(2026, 1, 14)) == (MONDAY, datetime.date(2026, 1, 18))
        # Sunday belongs to the week that started the Monday before
        assert week_bounds(datetime.date(2026, 1, 18)) == (MONDAY, datetime.date(2026, 1, 18))

    @pytest.mark.asyncio
    async def test_this_week_excludes_next_monday(self, stats, session_repo):
        await session_repo.create("Mon", 3600, "2026-01-12")
        await session_repo.create("Sun", 1800, "2026-01-18")
        await session_repo.create("Next Mon", 999, "2026-01-19")
        await session_repo.create("Prev Sun", 700, "2026-01-11")

        assert await stats.get_this_week_total(datetime.date(2026, 1, 15)) == 5400

    @pytest.mark.asyncio
    async def test_last_week_total(self, stats, session_repo):
        await session_repo.create("Prev Mon", 600, "2026-01-05")
        await session_repo.create("Prev Sun", 700, "2026-01-11")
        await session_repo.create("This Mon", 3600, "2026-01-12")

        assert await stats.get_last_week_total(datetime.date(2026, 1, 18)) == 1300

    @pytest.mark.asyncio
    async def test_empty_week_is_zero(self, stats):
        assert await stats.get_this_week_total(MONDAY) == 0


class TestStreak:

    @pytest.mark.asyncio
    async def test_no_sessions_means_no_streak(self, stats):
        assert await stats.calculate_current_streak(MONDAY) == 0

    @pytest.mark.asyncio
    async def test_only_today_reached(self, stats, session_repo):
        await session_repo.create("Today", TARGET, "2026-01-14")
        await session_repo.create("Yesterday", TARGET - 1, "2026-01-13")

        assert await stats.calculate_current_streak(datetime.date(2026, 1, 14)) == 1

    @pytest.mark.asyncio
    async def test_today_and_yesterday_below_target(self, stats, session_repo):
        await session_repo.create("Today", 100, "2026-01-14")
        await session_repo.create("Yesterday", 200, "2026-01-13")
        await session_repo.create("Before", TARGET, "2026-01-12")

        assert await stats.calculate_current_streak(datetime.date(2026, 1, 14)) == 0

    @pytest.mark.asyncio
    async def test_unfinished_today_does_not_break_streak(self, stats, session_repo):
        await session_repo.create("Today", 100, "2026-01-14")
        await session_repo.create("Tue", TARGET, "2026-01-13")
        await session_repo.create("Mon", TARGET, "2026-01-12")

        assert await stats.calculate_current_streak(datetime.date(2026, 1, 14)) == 2

    @pytest.mark.asyncio
    async def test_sessions_of_one_day_are_summed(self, stats, session_repo):
        await session_repo.create("Morning", TARGET // 2, "2026-01-14")
        await session_repo.create("Afternoon", TARGET // 2, "2026-01-14")

        assert await stats.calculate_current_streak(datetime.date(2026, 1, 14)) == 1

    @pytest.mark.asyncio
    async def test_weekend_gap_skipped_when_excluded(self, stats, session_repo, settings_repo):
        await session_repo.create("Fri", TARGET, "2026-01-09")
        await session_repo.create("Mon", TARGET, "2026-01-12")
        await settings_repo.set("streak_exclude_weekends", "true")

        assert await stats.calculate_current_streak(MONDAY) == 2

    @pytest.mark.asyncio
    async def test_weekend_gap_breaks_streak_by_default(self, stats, session_repo):
        await session_repo.create("Fri", TARGET, "2026-01-09")
        await session_repo.create("Mon", TARGET, "2026-01-12")

        assert await stats.calculate_current_streak(MONDAY) == 1

    @pytest.mark.asyncio
    async def test_uses_configured_target(self, stats, session_repo, settings_repo):
        await settings_repo.set("daily_target", "3600")
        await session_repo.create("Mon", 3600, "2026-01-12")
        await session_repo.create("Sun", 3600, "2026-01-11")

        assert await stats.calculate_current_streak(MONDAY) == 2

    @pytest.mark.asyncio
    async def test_lookback_is_bounded(self, stats, session_repo, settings_repo):
        await settings_repo.set("daily_target", "1")
        start = MONDAY - datetime.timedelta(days=400)
        for offset in range(401):
            day = start + datetime.timedelta(days=offset)
            await session_repo.create("Daily", 1, day.isoformat())

        # today plus the 365 days before it
        assert await stats.calculate_current_streak(MONDAY) == 366
