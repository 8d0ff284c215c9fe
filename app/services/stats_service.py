"""
Statistics Service - Week totals and the daily-target streak.

All calculations use local calendar dates. Every method accepts an optional
`today` so results can be computed for any reference day.
"""

import datetime
import logging
from typing import Optional, Tuple

from app.infra.repository import WorkSessionRepository, SettingsRepository

logger = logging.getLogger(__name__)

MAX_STREAK_LOOKBACK_DAYS = 365


def week_bounds(day: datetime.date) -> Tuple[datetime.date, datetime.date]:
    """Monday and Sunday of the week containing day"""
    monday = day - datetime.timedelta(days=day.weekday())
    return monday, monday + datetime.timedelta(days=6)


class StatsService:
    """
    Derived, read-only figures over work sessions.
    """

    def __init__(self, session_repo: WorkSessionRepository, settings_repo: SettingsRepository):
        self.session_repo = session_repo
        self.settings_repo = settings_repo

    async def get_this_week_total(self, today: Optional[datetime.date] = None) -> int:
        """Seconds worked Monday..Sunday of the current week"""
        monday, sunday = week_bounds(today or datetime.date.today())
        return await self.session_repo.get_total_between(monday.isoformat(), sunday.isoformat())

    async def get_last_week_total(self, today: Optional[datetime.date] = None) -> int:
        """Seconds worked Monday..Sunday of the previous week"""
        monday, sunday = week_bounds((today or datetime.date.today()) - datetime.timedelta(days=7))
        return await self.session_repo.get_total_between(monday.isoformat(), sunday.isoformat())

    async def calculate_current_streak(self, today: Optional[datetime.date] = None) -> int:
        """
        Count consecutive days on which the daily target was reached.

        The walk starts today if today's target is already met, otherwise
        yesterday, and stops at the first day below target or without data.
        With weekend exclusion, Saturdays and Sundays are stepped over without
        counting or breaking the streak. Never looks back more than 365 days.
        """
        settings = await self.settings_repo.load()
        target = settings.daily_target
        daily_totals = await self.session_repo.get_daily_totals()

        if not daily_totals:
            return 0

        today = today or datetime.date.today()
        check_date = today
        if daily_totals.get(today.isoformat(), 0) < target:
            check_date -= datetime.timedelta(days=1)

        streak = 0
        while (today - check_date).days <= MAX_STREAK_LOOKBACK_DAYS:
            if settings.streak_exclude_weekends and check_date.weekday() >= 5:
                check_date -= datetime.timedelta(days=1)
                continue

            total = daily_totals.get(check_date.isoformat())
            if total is None or total < target:
                break

            streak += 1
            check_date -= datetime.timedelta(days=1)

        logger.debug(f"Current streak: {streak} day(s) (target {target}s)")
        return streak
