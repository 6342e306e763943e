"""Client for the events read endpoint, backed by the local cache."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from fetes.cache import EventCache
from fetes.models import ApiResponse, Event
from fetes.settings import Settings

log = logging.getLogger(__name__)


class CatalogError(RuntimeError):
    """Events could not be loaded; the caller may retry."""


class CatalogClient:
    def __init__(
        self,
        settings: Settings,
        cache: EventCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = settings.api_url
        self.cache = cache or EventCache(settings.cache_path, settings.cache_ttl)
        self._transport = transport

    async def _fetch_remote(self) -> list[dict]:
        async with httpx.AsyncClient(
            base_url=self.base_url, transport=self._transport, timeout=30.0
        ) as client:
            try:
                resp = await client.get("/api/events")
            except httpx.TransportError as exc:
                raise CatalogError("Failed to fetch events") from exc

        try:
            result = ApiResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise CatalogError("Failed to fetch events") from exc
        if resp.is_error or not result.success:
            raise CatalogError(result.error or "Failed to load events")
        return [e.to_public() for e in result.data or []]

    async def fetch_events(self, use_cache: bool = True) -> list[Event]:
        """Fresh cached events if any, otherwise the read endpoint's list."""
        if use_cache:
            cached = await self.cache.get()
            if cached is not None:
                try:
                    return [Event.model_validate(e) for e in cached]
                except ValidationError:
                    log.warning("Ignoring malformed cached events")

        payload = await self._fetch_remote()
        await self.cache.set(payload)
        return [Event.model_validate(e) for e in payload]
