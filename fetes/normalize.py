"""Turn raw spreadsheet rows into Event records."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import re
from typing import Any, Sequence

from dateutil import parser as dateutil_parser
from pydantic import ValidationError

from fetes.google import DriveClient, GoogleAPIError, SheetsClient
from fetes.models import TBA, Event
from fetes.posters import resolve_poster
from fetes.settings import Settings

log = logging.getLogger(__name__)

# Read-side column order (Sheet1!A:L).
COLUMNS = (
    "venue", "title", "date", "type", "time", "ticket_price",
    "ticket_links", "description", "status", "poster", "email", "instagram",
)

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
}

# "Sunday, January 5, 2025", "January 5 2025"
_LONG_DATE = re.compile(r"(?:[A-Za-z]+,\s*)?([A-Za-z]+)\s+(\d{1,2}),?\s*(\d{4})")

_DEFAULT_A = dt.datetime(2001, 1, 1)
_DEFAULT_B = dt.datetime(2002, 2, 2)


class SourceUnavailable(RuntimeError):
    """The spreadsheet could not be read at all."""


def normalize_field(value: Any) -> str | None:
    """Trimmed string form of a cell, or ``None`` for a blank one."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == TBA:
        return None
    return text


def split_tags(value: Any) -> list[str]:
    text = normalize_field(value)
    if text is None:
        return []
    return [t.strip() for t in text.split(",") if t.strip()]


def parse_date(text: str | None) -> dt.date | None:
    """Parse the free-form date column. Anything unparseable gives ``None``."""
    if not text:
        return None

    match = _LONG_DATE.search(text)
    if match:
        month_name, day, year = match.groups()
        month = MONTHS.get(month_name.lower())
        if month is not None:
            try:
                return dt.date(int(year), month, int(day))
            except ValueError:
                log.debug("Long-form date out of range: %r", text)

    # Parse against two different defaults; a part dateutil had to fill in
    # shows up as a difference, so partial dates like "June" are rejected.
    try:
        first = dateutil_parser.parse(text, default=_DEFAULT_A).date()
        second = dateutil_parser.parse(text, default=_DEFAULT_B).date()
    except (ValueError, OverflowError):
        log.warning("Failed to parse date: %r", text)
        return None
    if first != second:
        log.warning("Incomplete date: %r", text)
        return None
    return first


def _cells(row: Sequence[Any]) -> dict[str, Any]:
    padded = list(row) + [None] * (len(COLUMNS) - len(row))
    return dict(zip(COLUMNS, padded))


async def normalize_row(index: int, row: Sequence[Any], drive: DriveClient) -> Event:
    """Build one Event from a sheet row; bad cells degrade to unknown values."""
    cells = _cells(row)
    poster = await resolve_poster(normalize_field(cells["poster"]), drive)
    try:
        return Event(
            id=str(index),
            title=normalize_field(cells["title"]),
            date=parse_date(normalize_field(cells["date"])),
            time=normalize_field(cells["time"]),
            venue=normalize_field(cells["venue"]),
            type=split_tags(cells["type"]),
            description=normalize_field(cells["description"]),
            poster=poster,
            ticket_price=normalize_field(cells["ticket_price"]),
            ticket_links=normalize_field(cells["ticket_links"]),
            status=normalize_field(cells["status"]),
        )
    except ValidationError as exc:
        log.warning("Row %d could not be normalized: %s", index + 1, exc)
        return Event(id=str(index))


def sort_by_date(events: list[Event]) -> list[Event]:
    """Drop undated events and order the rest by date."""
    return sorted((e for e in events if e.date is not None), key=lambda e: e.date)


async def load_events(sheets: SheetsClient, drive: DriveClient, cell_range: str) -> list[Event]:
    """Read every row of *cell_range* and return dated events in date order.

    Raises SourceUnavailable when the sheet itself cannot be read.
    """
    try:
        rows = await sheets.get_values(cell_range)
    except GoogleAPIError as exc:
        raise SourceUnavailable("Failed to fetch events") from exc

    if not rows:
        log.info("No data found in spreadsheet")
        return []

    log.info("Processing %d rows from spreadsheet", len(rows))
    events = await asyncio.gather(
        *(normalize_row(i, row, drive) for i, row in enumerate(rows))
    )
    return sort_by_date(list(events))


class EventSource:
    """The spreadsheet-backed event collection used by the read endpoint."""

    def __init__(self, settings: Settings, transport=None) -> None:
        self.settings = settings
        self.sheets = SheetsClient(settings, transport=transport)
        self.drive = DriveClient(settings, transport=transport)

    async def fetch(self) -> list[Event]:
        return await load_events(self.sheets, self.drive, self.settings.events_range)

    async def aclose(self) -> None:
        await self.sheets.aclose()
        await self.drive.aclose()
