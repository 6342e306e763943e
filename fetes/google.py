"""Thin httpx clients for the Google Sheets and Drive REST APIs."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from fetes.settings import Settings

log = logging.getLogger(__name__)

SHEETS_URL = "https://sheets.googleapis.com/v4/spreadsheets"
DRIVE_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"


class GoogleAPIError(RuntimeError):
    """An upstream Google API call failed."""


class GoogleClient:
    """Shared HTTP plumbing: one lazily created client, no retries."""

    #: Label used in error messages.
    name: str = "google"

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                follow_redirects=True,
                timeout=30.0,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        token = self.settings.google_access_token
        if not token:
            raise GoogleAPIError(f"[{self.name}] GOOGLE_ACCESS_TOKEN is required for writes")
        return {"Authorization": f"Bearer {token}"}

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request; any HTTP or transport failure becomes GoogleAPIError."""
        client = await self._ensure_client()
        try:
            resp = await client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp
        except (httpx.HTTPStatusError, httpx.TransportError) as exc:
            raise GoogleAPIError(f"[{self.name}] {method} {url} failed: {exc}") from exc

    async def request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Like request, but the body must be a JSON object."""
        resp = await self.request(method, url, **kwargs)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise GoogleAPIError(f"[{self.name}] {method} {url} returned non-JSON body") from exc
        if not isinstance(payload, dict):
            raise GoogleAPIError(f"[{self.name}] {method} {url} returned {type(payload).__name__}, expected object")
        return payload

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class SheetsClient(GoogleClient):
    name = "sheets"

    async def get_values(self, cell_range: str) -> list[list[str]]:
        """Read a range with the public API key; missing rows come back empty."""
        if not self.settings.sheet_id:
            raise GoogleAPIError("[sheets] SHEET_ID is not set")
        payload = await self.request_json(
            "GET",
            f"{SHEETS_URL}/{self.settings.sheet_id}/values/{cell_range}",
            params={"key": self.settings.google_api_key},
        )
        values = payload.get("values") or []
        if not isinstance(values, list):
            raise GoogleAPIError("[sheets] values is not a list")
        return values

    async def append_row(self, cell_range: str, row: list[str]) -> None:
        if not self.settings.sheet_id:
            raise GoogleAPIError("[sheets] SHEET_ID is not set")
        await self.request(
            "POST",
            f"{SHEETS_URL}/{self.settings.sheet_id}/values/{cell_range}:append",
            params={"valueInputOption": "USER_ENTERED"},
            headers=self._auth_headers(),
            json={"values": [row]},
        )


class DriveClient(GoogleClient):
    name = "drive"

    @property
    def configured(self) -> bool:
        return bool(self.settings.drive_folder_id and self.settings.google_api_key)

    async def find_file_id(self, filename: str) -> str | None:
        """Return the id of the first file in the poster folder whose name contains *filename*."""
        escaped = filename.replace("\\", "\\\\").replace("'", "\\'")
        payload = await self.request_json(
            "GET",
            DRIVE_URL,
            params={
                "q": f"'{self.settings.drive_folder_id}' in parents and name contains '{escaped}'",
                "fields": "files(id, name)",
                "key": self.settings.google_api_key,
            },
        )
        files = [f for f in payload.get("files") or [] if isinstance(f, dict)]
        log.debug("Drive search for %r matched %d file(s)", filename, len(files))
        return files[0].get("id") if files else None

    async def upload(self, filename: str, content: bytes, mime_type: str) -> dict[str, Any]:
        """Multipart upload into the poster folder; returns the file resource."""
        metadata = {
            "name": filename,
            "parents": [self.settings.drive_folder_id],
            "mimeType": mime_type,
        }
        boundary = "fetes-upload-boundary"
        body = b"".join([
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            json.dumps(metadata).encode(),
            f"\r\n--{boundary}\r\n".encode(),
            f"Content-Type: {mime_type}\r\n\r\n".encode(),
            content,
            f"\r\n--{boundary}--\r\n".encode(),
        ])
        headers = self._auth_headers()
        headers["Content-Type"] = f"multipart/related; boundary={boundary}"
        return await self.request_json(
            "POST",
            DRIVE_UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id, webContentLink"},
            headers=headers,
            content=body,
        )

    async def share_publicly(self, file_id: str) -> None:
        await self.request(
            "POST",
            f"{DRIVE_URL}/{file_id}/permissions",
            headers=self._auth_headers(),
            json={"role": "reader", "type": "anyone"},
        )
