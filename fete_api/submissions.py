"""Fete submissions: validation, row layout, and the write path."""

from __future__ import annotations

import datetime as dt
import logging
import re
import time
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from fetes.google import DriveClient, GoogleAPIError, SheetsClient
from fetes.models import TBA
from fetes.settings import Settings

log = logging.getLogger(__name__)

INITIAL_STATUS = "Pending Review"
DEFAULT_CURRENCY = "JMD"
CURRENCY_SYMBOLS = {"JMD": "J$", "USD": "$"}

MAX_POSTER_BYTES = 5 * 1024 * 1024
ALLOWED_POSTER_TYPES = ("image/jpeg", "image/png", "image/webp")

EVENT_TYPES = (
    "Beach party",
    "Breakfast party",
    "Premium all-inclusive",
    "Cooler fete",
    "Big fete",
    "Fete",
    "Brunch",
    "Mini road march",
    "Water party",
    "Drink inclusive",
    "Breakfast inclusive",
    "Boat ride",
    "Jouvert",
    "Road march",
)

REQUIRED_FIELDS = {
    "email": "Email is required",
    "title": "Event title is required",
    "date": "Date is required",
    "time": "Time is required",
    "venue": "Venue is required",
    "type": "Please select at least one event type",
    "ticket_price": "Ticket price is required",
}

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_HANDLE_BAD_CHARS = re.compile(r"[^a-zA-Z0-9._]")
_TIME = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
_PRICES = {
    "USD": re.compile(r"^\$?\d+(-\$?\d+)?$"),
    "JMD": re.compile(r"^(J?\$)?\d+(-(J?\$)?\d+)?$"),
}


class SubmissionError(RuntimeError):
    """Upload or append failed after validation passed."""


@dataclass
class PosterUpload:
    filename: str
    content_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        _, dot, ext = self.filename.rpartition(".")
        return f".{ext}" if dot and ext else ""


class Submission(BaseModel):
    """One submitted fete, as entered in the form."""

    email: str = ""
    instagram: str = ""
    title: str = ""
    date: str = ""
    time: str = ""
    venue: str = ""
    type: list[str] = Field(default_factory=list)
    ticket_price: str = ""
    currency: str = DEFAULT_CURRENCY
    ticket_link: str = ""
    description: str = ""
    poster: PosterUpload | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True, str_strip_whitespace=True)

    @property
    def tags(self) -> list[str]:
        return [t.strip() for t in self.type if t and t.strip()]


def _add_years(day: dt.date, years: int) -> dt.date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year + years, day=28)


def missing_fields(sub: Submission) -> dict[str, str]:
    errors = {}
    for name, message in REQUIRED_FIELDS.items():
        value = sub.tags if name == "type" else getattr(sub, name)
        if not value:
            errors[name] = message
    return errors


def validate_submission(sub: Submission, today: dt.date | None = None) -> dict[str, str]:
    """Check every field; returns field -> message, empty when the submission is valid."""
    today = today or dt.date.today()
    errors = missing_fields(sub)

    if sub.email and not _EMAIL.match(sub.email):
        errors["email"] = "Please enter a valid email address"

    if sub.instagram and _HANDLE_BAD_CHARS.search(sub.instagram):
        errors["instagram"] = (
            "Instagram handle can only contain letters, numbers, dots, and underscores"
        )

    if sub.title:
        if len(sub.title) < 3:
            errors["title"] = "Event title must be at least 3 characters long"
        elif len(sub.title) > 100:
            errors["title"] = "Event title must be less than 100 characters"

    if sub.date:
        try:
            day = dt.date.fromisoformat(sub.date)
        except ValueError:
            errors["date"] = "Please enter a valid date"
        else:
            if day < today:
                errors["date"] = "Date cannot be in the past"
            elif day > _add_years(today, 2):
                errors["date"] = "Date cannot be more than 2 years in the future"

    if sub.time and not _TIME.match(sub.time):
        errors["time"] = "Please enter a valid time"

    if sub.venue:
        if len(sub.venue) < 3:
            errors["venue"] = "Venue must be at least 3 characters long"
        elif len(sub.venue) > 200:
            errors["venue"] = "Venue must be less than 200 characters"

    if len(sub.description) > 1000:
        errors["description"] = "Description must be less than 1000 characters"

    currency = (sub.currency or DEFAULT_CURRENCY).upper()
    if currency not in CURRENCY_SYMBOLS:
        errors["currency"] = "Currency must be JMD or USD"
    elif sub.ticket_price and not _PRICES[currency].match(sub.ticket_price.replace(",", "")):
        symbol = CURRENCY_SYMBOLS[currency]
        errors["ticket_price"] = (
            f"Please enter a valid price format "
            f"(e.g., {symbol}5000 or {symbol}3000-{symbol}5000)"
        )

    if sub.ticket_link:
        parts = urlsplit(sub.ticket_link)
        if not parts.scheme or not parts.netloc:
            errors["ticket_link"] = "Please enter a valid URL"
        elif parts.scheme != "https":
            errors["ticket_link"] = "Ticket link must be a secure HTTPS URL"

    if sub.poster is not None:
        if sub.poster.content_type not in ALLOWED_POSTER_TYPES:
            errors["poster"] = "Please upload a JPEG, PNG, or WebP image"
        elif sub.poster.size > MAX_POSTER_BYTES:
            errors["poster"] = "Image must be less than 5MB"

    return errors


def format_price(price: str, currency: str = DEFAULT_CURRENCY) -> str:
    price = price.strip()
    if price.startswith(("$", "J$")):
        return price
    symbol = CURRENCY_SYMBOLS.get((currency or DEFAULT_CURRENCY).upper(), "J$")
    return f"{symbol}{price}"


def format_sheet_date(value: str) -> str:
    """yyyy-MM-dd -> MM/DD/YYYY"""
    return dt.date.fromisoformat(value).strftime("%m/%d/%Y")


def build_row(sub: Submission, poster_url: str | None, address: str) -> list[str]:
    """Spreadsheet row in the submissions sheet's column order (A:M)."""
    return [
        sub.venue,
        sub.title,
        format_sheet_date(sub.date),
        ", ".join(sub.tags),
        sub.time,
        format_price(sub.ticket_price, sub.currency),
        sub.ticket_link or TBA,
        sub.description or TBA,
        INITIAL_STATUS,
        poster_url or TBA,
        sub.email,
        sub.instagram or "N/A",
        address,
    ]


def poster_filename(title: str, poster: PosterUpload, millis: int) -> str:
    stem = re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE)
    return f"{stem}_{millis}{poster.extension}"


class SubmissionWriter:
    """Uploads the poster (if any), then appends the row. Strictly in that order.

    A failed append after a successful upload leaves the uploaded file behind.
    """

    def __init__(self, settings: Settings, transport=None, clock=time.time) -> None:
        self.settings = settings
        self.sheets = SheetsClient(settings, transport=transport)
        self.drive = DriveClient(settings, transport=transport)
        self._clock = clock

    async def upload_poster(self, sub: Submission) -> str | None:
        poster = sub.poster
        name = poster_filename(sub.title, poster, int(self._clock() * 1000))
        try:
            created = await self.drive.upload(name, poster.content, poster.content_type)
            file_id = created.get("id")
            if not file_id:
                raise GoogleAPIError("[drive] upload response has no file id")
            await self.drive.share_publicly(file_id)
        except GoogleAPIError as exc:
            log.error("File upload error: %s", exc)
            raise SubmissionError("Failed to upload file") from exc
        return created.get("webContentLink") or None

    async def write(self, sub: Submission, address: str) -> list[str]:
        poster_url = await self.upload_poster(sub) if sub.poster is not None else None
        row = build_row(sub, poster_url, address)
        try:
            await self.sheets.append_row(self.settings.submissions_range, row)
        except GoogleAPIError as exc:
            log.error("Submission error: %s", exc)
            raise SubmissionError("Failed to process submission") from exc
        log.info("Appended submission %r from %s", sub.title, address)
        return row

    async def aclose(self) -> None:
        await self.sheets.aclose()
        await self.drive.aclose()
