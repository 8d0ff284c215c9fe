#!/usr/bin/env python

"""
Workflow Timer - Main Entry Point

Personal time tracking core: work sessions per company, streaks against a
daily target, Pomodoro cycles and a day-end spreadsheet export.

Opens (and migrates) the local database, then prints today's status.

Usage:
    python main.py

Requirements:
    - Python 3.9+
    - See pyproject.toml for dependencies
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent))

from app.infra.config import get_config
from app.infra.db import DatabaseEngine
from app.services.api import TrackerApi
from app.services.timer_service import format_time, format_time_short, calculate_progress


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


async def show_status(api: TrackerApi) -> int:
    settings = (await api.get_settings())["settings"]
    today = await api.get_todays_sessions_summary()
    week = await api.get_week_total()
    streak = await api.get_current_streak()
    if not (today["success"] and week["success"] and streak["success"]):
        print("Could not load status, see log for details.")
        return 1

    worked = sum(item["total_duration"] for item in today["summary"])
    progress = calculate_progress(worked, settings["daily_target"])
    print(f"Today:     {format_time(worked)} ({progress:.0f}% of {format_time_short(settings['daily_target'])})")
    for item in today["summary"]:
        print(f"  {item['company_name']:<20} {format_time(item['total_duration'])}")
    print(f"This week: {format_time_short(week['this_week'])}")
    print(f"Last week: {format_time_short(week['last_week'])}")
    print(f"Streak:    {streak['streak']} day(s)")
    return 0


async def run() -> int:
    config = get_config()
    async with DatabaseEngine(config.get_db_url()) as engine:
        api = TrackerApi(engine, config.export_timeout_seconds, config.export_max_redirects)
        return await show_status(api)


def main():
    """Main entry point"""
    setup_logging(get_config().log_level)
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
