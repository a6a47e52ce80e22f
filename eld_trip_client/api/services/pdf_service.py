# eld_trip_client/api/services/pdf_service.py
"""Download of the ELD log PDF for a planned trip."""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

from eld_trip_client.api.errors import InputValidationError
from eld_trip_client.api.planner import PlannerClient

logger = logging.getLogger(__name__)


def eld_pdf_filename(trip_id: str, on: Optional[date] = None) -> str:
    """``ELD_Logs_<trip_id>_<YYYY-MM-DD>.pdf``"""
    return f"ELD_Logs_{trip_id}_{(on or date.today()).isoformat()}.pdf"


def _write_file(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


class EldPdfService:
    """Fetches the ELD PDF and saves it to disk.

    Errors from the planner are not caught here; the caller shows them.
    """

    def __init__(self, planner: PlannerClient):
        self.planner = planner

    async def fetch(self, trip_id: str) -> bytes:
        if not trip_id:
            raise InputValidationError("A trip id is required to download logs")
        content = await self.planner.download_eld_pdf(trip_id)
        logger.info(f"Downloaded ELD PDF for trip {trip_id} ({len(content) / 1024:.1f}KB)")
        return content

    async def download(self, trip_id: str, directory: Union[str, Path], on: Optional[date] = None) -> Path:
        content = await self.fetch(trip_id)
        target = Path(directory) / eld_pdf_filename(trip_id, on)
        await asyncio.to_thread(_write_file, target, content)
        return target


__all__ = ["EldPdfService", "eld_pdf_filename"]
