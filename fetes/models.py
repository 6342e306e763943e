"""Shared Pydantic models for the fete catalog."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TBA = "TBA"


class EventStatus(str, Enum):
    PUBLIC = "public"
    FEATURED = "featured"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    PENDING_REVIEW = "pending review"


def display(value: Any) -> str:
    """Render an optional value, using the "TBA" placeholder for unknowns."""
    if value is None or value == "":
        return TBA
    if isinstance(value, dt.date):
        return value.isoformat()
    return str(value)


def format_long_date(value: dt.date | None) -> str:
    """Format a date the way listings show it, e.g. "Sunday, January 5, 2025"."""
    if value is None:
        return TBA
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


class Event(BaseModel):
    """Core event schema shared by the sheet reader, the API, and the client."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str | None = None
    date: dt.date | None = None
    time: str | None = None
    venue: str | None = None
    type: list[str] = Field(default_factory=list)
    description: str | None = None
    poster: str | None = None
    ticket_price: str | None = Field(default=None, alias="ticketPrice")
    ticket_links: str | None = Field(default=None, alias="ticketLinks")
    status: str | None = None

    @field_validator(
        "title", "date", "time", "venue", "description", "poster",
        "ticket_price", "ticket_links", "status",
        mode="before",
    )
    @classmethod
    def _tba_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value or value == TBA:
                return None
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _tba_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        tags = [str(t).strip() for t in value]
        return [t for t in tags if t and t != TBA]

    @field_serializer(
        "title", "date", "time", "venue", "description", "poster",
        "ticket_price", "ticket_links", "status",
    )
    def _none_to_tba(self, value: Any) -> str:
        return display(value)

    @field_serializer("type")
    def _tags_or_tba(self, value: list[str]) -> list[str]:
        return list(value) or [TBA]

    def has_status(self, *names: str | EventStatus) -> bool:
        """Case-insensitive status check against one or more names."""
        if self.status is None:
            return False
        current = self.status.lower()
        return any(
            current == (n.value if isinstance(n, EventStatus) else n.lower())
            for n in names
        )

    def has_tag(self, tag: str) -> bool:
        wanted = tag.lower()
        return any(t.lower() == wanted for t in self.type)

    def starts_at(self) -> dt.datetime | None:
        # Noon keeps same-day comparisons stable regardless of timezone.
        if self.date is None:
            return None
        return dt.datetime.combine(self.date, dt.time(12, 0))

    def to_public(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and "TBA" placeholders."""
        return self.model_dump(mode="json", by_alias=True)


class ApiResponse(BaseModel):
    """Envelope returned by the events read endpoint."""

    success: bool
    data: list[Event] | None = None
    error: str | None = None
