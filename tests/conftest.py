import datetime as dt

import httpx
import pytest

from fetes.models import Event
from fetes.settings import Settings

NOW = dt.datetime(2026, 10, 19, 9, 0)
TODAY = NOW.date()


@pytest.fixture
def settings():
    return Settings(
        sheet_id="sheet123",
        google_api_key="key123",
        google_access_token="token123",
        drive_folder_id="folder123",
    )


@pytest.fixture
def make_event():
    counter = iter(range(10_000))

    def _make(title="Fete", date=TODAY, status="Public", type=("Fete",), **kwargs):
        return Event(
            id=str(next(counter)),
            title=title,
            date=date,
            status=status,
            type=list(type),
            **kwargs,
        )

    return _make


class Recorder:
    """An httpx.MockTransport that records requests and answers via a handler."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []
        self._handler = handler
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)


@pytest.fixture
def recorder():
    return Recorder
