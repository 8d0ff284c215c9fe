"""
Data Seeder for Workflow Timer.
Populates the database with realistic data for testing and demo purposes.

Usage:
    python scripts/seed_data.py [days]
"""

import asyncio
import sys
import random
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.infra.config import get_config
from app.infra.db import DatabaseEngine
from app.infra.repository import CompanyRepository, WorkSessionRepository, PomodoroRepository
from app.domain.models import Company

COMPANIES = [
    # name, hours column, note column
    ("Acme GmbH", "B", "F"),
    ("Globex", "C", "F"),
    ("Initech", "D", "G"),
]


async def seed(days: int):
    config = get_config()
    print(f"Seeding database: {config.get_db_url()}")

    async with DatabaseEngine(config.get_db_url()) as engine:
        company_repo = CompanyRepository(engine)
        session_repo = WorkSessionRepository(engine)
        pomodoro_repo = PomodoroRepository(engine)

        # 1. Create Companies
        company_ids = []
        for name, excel_column, note_column in COMPANIES:
            existing = await company_repo.get_by_name(name)
            if existing:
                print(f"Company exists: {name}")
                company_ids.append(existing.id)
                continue
            print(f"Creating company: {name}")
            company_ids.append(await company_repo.create(
                Company(name=name, excel_column=excel_column, note_column=note_column)
            ))

        # 2. Generate sessions for the last N days
        # Pattern: Mon-Fri, a morning and an afternoon block, occasionally short of target
        today = date.today()
        for offset in range(days, -1, -1):
            current = today - timedelta(days=offset)
            if current.weekday() >= 5:  # Sat=5, Sun=6
                continue

            day = current.isoformat()
            morning = random.choice(company_ids)
            afternoon = random.choice(company_ids)
            await session_repo.create("Morning block", 4 * 3600, day, morning, "Planning and reviews")
            await session_repo.create(
                "Afternoon block", random.choice([3, 4, 4, 4]) * 3600, day, afternoon, "Feature work"
            )
            await pomodoro_repo.record_completion(day, morning, count=random.randint(2, 6))
            print(f"Generated sessions for {day}")

    print("Seeding complete.")


if __name__ == "__main__":
    days = int(sys.argv[1]) if len(sys.argv) > 1 else 21
    asyncio.run(seed(days))
