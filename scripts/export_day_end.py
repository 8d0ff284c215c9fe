"""
Script to preview or send today's day-end export.

Usage:
    python scripts/export_day_end.py           # send to the configured script_url
    python scripts/export_day_end.py --preview # only print the payload
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.infra.config import get_config
from app.infra.db import DatabaseEngine
from app.services.api import TrackerApi


async def main(preview: bool) -> int:
    config = get_config()
    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))

    async with DatabaseEngine(config.get_db_url()) as engine:
        api = TrackerApi(engine, config.export_timeout_seconds, config.export_max_redirects)
        result = await (api.preview_day_end() if preview else api.export_day_end())

    if not result["success"]:
        print(f"Error: {result['error']}")
        return 1

    print(f"Date: {result['date']} (row {result['row']})")
    print(json.dumps(result["entries"], indent=2, ensure_ascii=False))

    if not preview:
        sheets = result["sheets"]
        if sheets.get("skipped"):
            print(sheets.get("message"))
        elif sheets.get("success"):
            print("Export sent.")
        else:
            print(f"Export not sent: {sheets.get('error')}")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main("--preview" in sys.argv[1:])))
