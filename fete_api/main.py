"""Fete listings API."""

from __future__ import annotations

import datetime as dt
import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fetes.normalize import EventSource, SourceUnavailable
from fetes.settings import Settings, load_settings

from .ratelimit import InMemoryRateLimitStore, RateLimiter
from .submissions import (
    DEFAULT_CURRENCY,
    PosterUpload,
    Submission,
    SubmissionError,
    SubmissionWriter,
    missing_fields,
    validate_submission,
)

log = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Submission received successfully"

app = FastAPI(title="FeteLendr", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def mask_server_header(request: Request, call_next):
    response = await call_next(request)
    if "x-powered-by" in response.headers:
        del response.headers["x-powered-by"]
    response.headers["server"] = "Server"
    return response


# ------------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------------


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_rate_limiter() -> RateLimiter:
    settings = get_settings()
    return RateLimiter(
        InMemoryRateLimitStore(),
        max_count=settings.rate_limit_max,
        window=settings.rate_limit_window,
    )


async def get_source(settings: Settings = Depends(get_settings)):
    source = EventSource(settings)
    try:
        yield source
    finally:
        await source.aclose()


async def get_writer(settings: Settings = Depends(get_settings)):
    writer = SubmissionWriter(settings)
    try:
        yield writer
    finally:
        await writer.aclose()


def get_today() -> dt.date:
    return dt.date.today()


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "Unknown"


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/events")
async def list_events(source: EventSource = Depends(get_source)):
    """Every dated event in the sheet, in date order."""
    try:
        events = await source.fetch()
    except SourceUnavailable:
        log.exception("Error fetching events")
        return JSONResponse(
            {"success": False, "data": [], "error": "Failed to fetch events"},
            status_code=500,
        )
    log.info("Returning %d events", len(events))
    return {"success": True, "data": [e.to_public() for e in events]}


@app.post("/api/submit-fete")
async def submit_fete(
    request: Request,
    email: str = Form(""),
    instagram: str = Form(""),
    title: str = Form(""),
    date: str = Form(""),
    time: str = Form(""),
    venue: str = Form(""),
    type: list[str] = Form([]),
    ticketPrice: str = Form(""),
    currency: str = Form(DEFAULT_CURRENCY),
    ticketLink: str = Form(""),
    description: str = Form(""),
    website: str = Form(""),
    poster: UploadFile | None = File(None),
    writer: SubmissionWriter = Depends(get_writer),
    limiter: RateLimiter = Depends(get_rate_limiter),
    today: dt.date = Depends(get_today),
):
    """Validate a fete submission and append it to the review sheet."""
    # Bots get a fake success and nothing is written.
    if website:
        log.info("Honeypot triggered; discarding submission")
        return {"message": SUCCESS_MESSAGE}

    address = client_address(request)
    if not limiter.hit(address):
        return JSONResponse(
            {"error": "Too many submissions. Please try again later."},
            status_code=429,
        )

    upload = None
    if poster is not None and poster.filename:
        upload = PosterUpload(
            filename=poster.filename,
            content_type=poster.content_type or "",
            content=await poster.read(),
        )

    sub = Submission(
        email=email,
        instagram=instagram,
        title=title,
        date=date,
        time=time,
        venue=venue,
        type=type,
        ticket_price=ticketPrice,
        currency=currency or DEFAULT_CURRENCY,
        ticket_link=ticketLink,
        description=description,
        poster=upload,
    )

    errors = validate_submission(sub, today)
    if errors:
        message = "Missing required fields" if missing_fields(sub) else "Invalid submission"
        return JSONResponse({"error": message, "fields": errors}, status_code=400)

    try:
        await writer.write(sub, address)
    except SubmissionError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)

    return {"message": SUCCESS_MESSAGE}
