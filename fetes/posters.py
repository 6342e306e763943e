"""Poster references found in the sheet, and how each kind becomes an image URL.

A poster cell holds one of three things:

* a share link into the poster folder (``.../file/d/<id>/view``, ``?id=<id>``),
* an image URL that is already public (``lh3.googleusercontent.com/...``),
* a bare filename that has to be looked up in the poster folder.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

from fetes.google import DriveClient, GoogleAPIError

log = logging.getLogger(__name__)

PUBLIC_IMAGE_URL = "https://lh3.googleusercontent.com/d/{file_id}"

_DRIVE_PATH_ID = re.compile(r"/(?:file/)?d/([a-zA-Z0-9_-]+)")
_DRIVE_QUERY_ID = re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")


@dataclass(frozen=True)
class DriveShareLink:
    file_id: str

    async def resolve(self, drive: DriveClient) -> str | None:
        return PUBLIC_IMAGE_URL.format(file_id=self.file_id)


@dataclass(frozen=True)
class ImageUrl:
    url: str

    async def resolve(self, drive: DriveClient) -> str | None:
        return self.url


@dataclass(frozen=True)
class BareFilename:
    filename: str

    async def resolve(self, drive: DriveClient) -> str | None:
        if not drive.configured:
            log.warning("Poster folder or API key not configured; cannot look up %r", self.filename)
            return None
        file_id = await drive.find_file_id(self.filename)
        if file_id is None:
            log.info("Poster %r not found in folder", self.filename)
            return None
        return PUBLIC_IMAGE_URL.format(file_id=file_id)


PosterRef = Union[DriveShareLink, ImageUrl, BareFilename]


def parse_poster_ref(raw: str | None) -> PosterRef | None:
    """Classify a poster cell. Empty cells give ``None``."""
    if raw is None:
        return None
    value = raw.strip().lstrip("@").strip()
    if not value:
        return None

    if "drive.google.com" in value:
        match = _DRIVE_PATH_ID.search(value) or _DRIVE_QUERY_ID.search(value)
        if match:
            return DriveShareLink(match.group(1))
    if "googleusercontent.com" in value or value.startswith(("http://", "https://")):
        return ImageUrl(value)
    return BareFilename(value)


async def resolve_poster(raw: str | None, drive: DriveClient) -> str | None:
    """Turn a poster cell into a public image URL, or ``None`` when it can't be."""
    ref = parse_poster_ref(raw)
    if ref is None:
        return None
    try:
        return await ref.resolve(drive)
    except GoogleAPIError as exc:
        log.warning("Poster lookup failed for %r: %s", raw, exc)
        return None
