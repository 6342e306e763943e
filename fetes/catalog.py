"""Catalog views derived from the in-memory event list.

Everything here is a pure recomputation over a small list: filter state or
event list changes simply re-run the functions.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, replace
from typing import Iterable

from fetes.models import Event, EventStatus

PAGE_SIZE = 12
FEATURED_LIMIT = 3
SUGGESTION_LIMIT = 5
ALL_CATEGORIES = "all"

_LISTED = (EventStatus.PUBLIC, EventStatus.FEATURED)


@dataclass(frozen=True)
class FilterState:
    month: int  # 1-12
    year: int
    category: str = ALL_CATEGORIES
    search_query: str = ""

    @classmethod
    def for_today(cls, today: dt.date | None = None) -> FilterState:
        today = today or dt.date.today()
        return cls(month=today.month, year=today.year)


def search_terms(query: str) -> list[str]:
    return query.lower().split()


def title_matches(event: Event, terms: list[str]) -> bool:
    title = (event.title or "").lower()
    return all(term in title for term in terms)


def is_listed(event: Event) -> bool:
    """Dated and public or featured."""
    return event.date is not None and event.has_status(*_LISTED)


def matches(event: Event, state: FilterState) -> bool:
    if not is_listed(event):
        return False

    terms = search_terms(state.search_query)
    if terms:
        # A search ignores the calendar and category filters.
        return title_matches(event, terms)

    if event.date.month != state.month or event.date.year != state.year:
        return False
    if state.category.lower() != ALL_CATEGORIES and not event.has_tag(state.category):
        return False
    return True


def sort_key(event: Event, now: dt.datetime):
    """Upcoming events first, then past ones; each group by date."""
    starts = event.starts_at()
    return (starts < now, starts)


def filter_events(
    events: Iterable[Event],
    state: FilterState,
    now: dt.datetime | None = None,
) -> list[Event]:
    """The ordered list the main catalog shows for *state*."""
    now = now or dt.datetime.now()
    visible = [e for e in events if matches(e, state)]
    return sorted(visible, key=lambda e: sort_key(e, now))


def featured_events(
    events: Iterable[Event],
    today: dt.date | None = None,
    limit: int = FEATURED_LIMIT,
) -> list[Event]:
    """The next few featured events, today included."""
    today = today or dt.date.today()
    upcoming = [
        e for e in events
        if e.date is not None and e.has_status(EventStatus.FEATURED) and e.date >= today
    ]
    upcoming.sort(key=lambda e: e.date)
    return upcoming[:limit]


def available_years(events: Iterable[Event], today: dt.date | None = None) -> list[int]:
    current = (today or dt.date.today()).year
    years = {e.date.year for e in events if e.date is not None and e.date.year >= current}
    years.add(current)
    return sorted(years)


def categories(events: Iterable[Event]) -> list[tuple[str, str]]:
    """(id, label) pairs for the category picker, "all" first."""
    seen: dict[str, str] = {}
    for event in events:
        for tag in event.type:
            key = tag.lower()
            if key not in seen:
                seen[key] = key[:1].upper() + key[1:]
    return [(ALL_CATEGORIES, "All Fetes")] + list(seen.items())


def search_suggestions(
    events: Iterable[Event],
    query: str,
    limit: int = SUGGESTION_LIMIT,
) -> list[Event]:
    terms = search_terms(query)
    if not terms:
        return []
    hits = [e for e in events if title_matches(e, terms)]
    return hits[:limit]


def shift_month(
    month: int,
    year: int,
    step: int,
    today: dt.date | None = None,
) -> tuple[int, int]:
    """Move one month forward or back; never earlier than the current month."""
    today = today or dt.date.today()
    index = year * 12 + (month - 1) + (1 if step > 0 else -1)
    new_year, new_month = divmod(index, 12)
    new_month += 1
    if (new_year, new_month) < (today.year, today.month):
        return month, year
    return new_month, new_year


class CatalogView:
    """Filter state, pagination and the derived lists for one event list."""

    def __init__(
        self,
        events: list[Event] | None = None,
        state: FilterState | None = None,
        page_size: int = PAGE_SIZE,
        clock=dt.datetime.now,
    ) -> None:
        self._clock = clock
        self.page_size = page_size
        self.events: list[Event] = list(events or [])
        self.state = state or FilterState.for_today(self._clock().date())
        self.page = 1
        self._filtered: list[Event] = []
        self._recompute()

    def _today(self) -> dt.date:
        return self._clock().date()

    def _recompute(self) -> None:
        years = available_years(self.events, self._today())
        if self.state.year not in years:
            self.state = replace(self.state, year=self._today().year)
        self._filtered = filter_events(self.events, self.state, self._clock())

    def set_events(self, events: list[Event]) -> None:
        self.events = list(events)
        self.page = 1
        self._recompute()

    def update(self, **changes) -> FilterState:
        """Change filter fields (month, year, category, search_query); resets to page 1."""
        self.state = replace(self.state, **changes)
        self.page = 1
        self._recompute()
        return self.state

    def step_month(self, step: int) -> FilterState:
        month, year = shift_month(self.state.month, self.state.year, step, self._today())
        return self.update(month=month, year=year)

    @property
    def filtered(self) -> list[Event]:
        return list(self._filtered)

    @property
    def visible(self) -> list[Event]:
        return self._filtered[: self.page * self.page_size]

    @property
    def has_more(self) -> bool:
        return len(self.visible) < len(self._filtered)

    def load_more(self) -> list[Event]:
        """Append one page; a no-op once everything is shown."""
        if self.has_more:
            self.page += 1
        return self.visible

    @property
    def featured(self) -> list[Event]:
        return featured_events(self.events, self._today())

    @property
    def years(self) -> list[int]:
        return available_years(self.events, self._today())

    @property
    def categories(self) -> list[tuple[str, str]]:
        return categories(self.events)

    def suggestions(self, query: str) -> list[Event]:
        return search_suggestions(self.events, query)
