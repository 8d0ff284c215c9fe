"""
Export Service - Builds the day-end summary and pushes it to a spreadsheet.

The export is advisory: whatever happens on the network, the returned result
has success=True and carries the outcome of the sync in its 'sheets' field.
"""

import asyncio
import datetime
import logging
import math
import re
from typing import Any, Callable, Dict, List, Optional

import requests

from app.domain.models import CompanyDaySummary, ExportItem, ExportEntry
from app.infra.repository import WorkSessionRepository, SettingsRepository, NOTE_SEPARATOR
from app.infra.sheets_client import SheetsWebhookClient, ExportError

logger = logging.getLogger(__name__)


def format_decimal_hours(seconds: int) -> float:
    """Seconds as hours rounded half-up to two decimals"""
    if not seconds:
        return 0
    return math.floor(seconds / 36 + 0.5) / 100


def format_duration(seconds: int) -> str:
    """Seconds as H:MM"""
    hours, remainder = divmod(seconds, 3600)
    return f"{hours}:{remainder // 60:02d}"


def normalize_column(column: Optional[str]) -> str:
    """Upper-case column letters with any digits removed ('b12' -> 'B')"""
    if not column:
        return ""
    return re.sub(r"\d", "", column.strip().upper())


def export_row(day: datetime.date) -> int:
    """Spreadsheet row for a day: one header row, then one row per day of month"""
    return day.day + 1


class ExportService:
    """
    Prepares the day-end export and hands it to the webhook client.
    """

    def __init__(self, session_repo: WorkSessionRepository, settings_repo: SettingsRepository,
                 client_factory: Optional[Callable[[str], SheetsWebhookClient]] = None):
        """
        Args:
            session_repo: Source of today's per-company summary
            settings_repo: Source of the configured 'script_url'
            client_factory: Builds the transport for a URL (defaults to SheetsWebhookClient)
        """
        self.session_repo = session_repo
        self.settings_repo = settings_repo
        self.client_factory = client_factory or SheetsWebhookClient

    @staticmethod
    def prepare_export_data(summary: List[CompanyDaySummary]) -> List[ExportItem]:
        return [
            ExportItem(
                company_name=item.company_name,
                excel_column=item.excel_column,
                note_column=item.note_column,
                duration=format_duration(item.total_duration or 0),
                duration_hours=format_decimal_hours(item.total_duration or 0),
                duration_seconds=item.total_duration or 0,
                notes=item.combined_notes or "",
            )
            for item in summary
        ]

    @staticmethod
    def build_entries(items: List[ExportItem]) -> List[ExportEntry]:
        """
        One 'hours' entry per company with an export column, followed by one
        'note' entry per note column combining the notes of every company
        that writes to it.
        """
        entries = []
        notes_by_column: Dict[str, List[str]] = {}

        for item in items:
            column = normalize_column(item.excel_column)
            if column:
                entries.append(ExportEntry(
                    column=column,
                    value=item.duration_hours,
                    type="hours",
                    company=item.company_name,
                ))

            note_column = normalize_column(item.note_column)
            if note_column and item.notes:
                notes_by_column.setdefault(note_column, []).append(item.notes)

        for column, notes in notes_by_column.items():
            entries.append(ExportEntry(
                column=column,
                value=NOTE_SEPARATOR.join(notes),
                type="note",
                company="Combined",
            ))

        return entries

    async def preview_day_end(self, today: Optional[datetime.date] = None) -> Dict[str, Any]:
        """Build the export for today without sending anything"""
        today = today or datetime.date.today()
        items = self.prepare_export_data(await self.session_repo.get_day_summary(today))
        entries = self.build_entries(items)
        return {
            "export_data": [item.model_dump() for item in items],
            "entries": [entry.model_dump() for entry in entries],
            "row": export_row(today),
            "date": today.isoformat(),
        }

    async def export_day_end(self, today: Optional[datetime.date] = None) -> Dict[str, Any]:
        """
        Build today's export and send it to the configured webhook.

        The 'sheets' field holds the sync outcome: the endpoint's answer on
        success, or {'success': False, 'error': ...} when it could not be sent.
        """
        result = await self.preview_day_end(today)
        script_url = await self.settings_repo.get("script_url")

        if not script_url:
            result["sheets"] = {"success": False, "error": "Script URL not configured"}
            return result

        if not result["entries"]:
            result["sheets"] = {"success": True, "skipped": True, "message": "No entries to export"}
            return result

        payload = {"entries": result["entries"], "row": result["row"]}
        client = self.client_factory(script_url)
        try:
            result["sheets"] = await asyncio.to_thread(client.post, payload)
            logger.info(f"Day-end export sent ({len(payload['entries'])} entries, row {payload['row']})")
        except (ExportError, requests.RequestException) as e:
            logger.warning(f"Day-end export failed: {e}")
            result["sheets"] = {"success": False, "error": str(e)}

        return result
