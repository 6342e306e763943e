import asyncio
import datetime as dt
import json

import httpx
import pytest

from fete_api.submissions import (
    MAX_POSTER_BYTES,
    PosterUpload,
    Submission,
    SubmissionError,
    SubmissionWriter,
    build_row,
    format_price,
    poster_filename,
    validate_submission,
)

from .conftest import TODAY


def valid(**changes):
    data = dict(
        email="promoter@example.com",
        instagram="splash.ja",
        title="Splash Beach Party",
        date="2026-11-01",
        time="14:00",
        venue="Hellshire Beach",
        type=["Beach party", "Drink inclusive"],
        ticket_price="J$3000-J$5000",
        currency="JMD",
        ticket_link="https://tickets.example.com/splash",
        description="Sun and soca",
    )
    data.update(changes)
    return Submission(**data)


def test_valid_submission_passes():
    assert validate_submission(valid(), TODAY) == {}


def test_optional_fields_may_be_empty():
    sub = valid(instagram="", ticket_link="", description="")
    assert validate_submission(sub, TODAY) == {}


def test_missing_required_fields():
    errors = validate_submission(Submission(), TODAY)
    assert set(errors) == {"email", "title", "date", "time", "venue", "type", "ticket_price"}


@pytest.mark.parametrize(
    "changes, field",
    [
        ({"email": "not-an-email"}, "email"),
        ({"instagram": "bad handle!"}, "instagram"),
        ({"title": "ab"}, "title"),
        ({"title": "x" * 101}, "title"),
        ({"date": "2026-02-30"}, "date"),
        ({"time": "25:00"}, "time"),
        ({"time": "7pm"}, "time"),
        ({"venue": "ab"}, "venue"),
        ({"venue": "v" * 201}, "venue"),
        ({"type": []}, "type"),
        ({"type": ["  "]}, "type"),
        ({"description": "d" * 1001}, "description"),
        ({"ticket_price": "free"}, "ticket_price"),
        ({"ticket_price": "$10-"}, "ticket_price"),
        ({"currency": "EUR"}, "currency"),
        ({"ticket_link": "http://tickets.example.com"}, "ticket_link"),
        ({"ticket_link": "tickets dot com"}, "ticket_link"),
    ],
)
def test_invalid_fields(changes, field):
    errors = validate_submission(valid(**changes), TODAY)
    assert list(errors) == [field]


@pytest.mark.parametrize(
    "price, currency",
    [("J$3000-J$5000", "JMD"), ("3000", "JMD"), ("$5,000", "USD"), ("$30-$50", "USD"), ("40", "usd")],
)
def test_price_formats(price, currency):
    assert validate_submission(valid(ticket_price=price, currency=currency), TODAY) == {}


def test_jmd_prefix_not_accepted_for_usd():
    assert "ticket_price" in validate_submission(valid(ticket_price="J$30", currency="USD"), TODAY)


def test_date_window():
    yesterday = (TODAY - dt.timedelta(days=1)).isoformat()
    assert validate_submission(valid(date=yesterday), TODAY)["date"] == "Date cannot be in the past"
    three_years = TODAY.replace(year=TODAY.year + 3).isoformat()
    assert "2 years" in validate_submission(valid(date=three_years), TODAY)["date"]
    assert validate_submission(valid(date=TODAY.isoformat()), TODAY) == {}
    two_years = TODAY.replace(year=TODAY.year + 2).isoformat()
    assert validate_submission(valid(date=two_years), TODAY) == {}


def test_leap_day_two_year_limit():
    assert validate_submission(valid(date="2030-02-28"), dt.date(2028, 2, 29)) == {}


def test_poster_checks():
    png = PosterUpload("flyer.png", "image/png", b"\x89PNG")
    assert validate_submission(valid(poster=png), TODAY) == {}
    gif = PosterUpload("flyer.gif", "image/gif", b"GIF89a")
    assert validate_submission(valid(poster=gif), TODAY) == {
        "poster": "Please upload a JPEG, PNG, or WebP image"
    }
    huge = PosterUpload("flyer.jpg", "image/jpeg", b"0" * (MAX_POSTER_BYTES + 1))
    assert validate_submission(valid(poster=huge), TODAY) == {"poster": "Image must be less than 5MB"}


def test_format_price():
    assert format_price("5000", "USD") == "$5000"
    assert format_price("3000-5000", "JMD") == "J$3000-5000"
    assert format_price("J$3000-J$5000", "JMD") == "J$3000-J$5000"
    assert format_price("$20", "JMD") == "$20"


def test_build_row_layout():
    row = build_row(valid(ticket_link="", description="", instagram=""), None, "10.0.0.1")
    assert row == [
        "Hellshire Beach",
        "Splash Beach Party",
        "11/01/2026",
        "Beach party, Drink inclusive",
        "14:00",
        "J$3000-J$5000",
        "TBA",
        "TBA",
        "Pending Review",
        "TBA",
        "promoter@example.com",
        "N/A",
        "10.0.0.1",
    ]


def test_poster_filename():
    poster = PosterUpload("My Flyer.final.JPG", "image/jpeg", b"")
    assert poster_filename("Splash! Beach Party", poster, 1700000000000) == (
        "Splash__Beach_Party_1700000000000.JPG"
    )
    assert PosterUpload("noext", "image/png", b"").extension == ""


def _google(fail_upload=False, fail_append=False):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/upload/drive/v3/files":
            if fail_upload:
                return httpx.Response(403, json={"error": "denied"})
            return httpx.Response(200, json={
                "id": "NEWFILE",
                "webContentLink": "https://drive.google.com/uc?id=NEWFILE&export=download",
            })
        if request.url.path.endswith("/permissions"):
            return httpx.Response(200, json={"id": "anyoneWithLink"})
        if request.url.host == "sheets.googleapis.com":
            if fail_append:
                return httpx.Response(500)
            return httpx.Response(200, json={"updates": {"updatedRows": 1}})
        return httpx.Response(404)

    return handler


def test_writer_uploads_then_appends(settings, recorder):
    rec = recorder(_google())
    writer = SubmissionWriter(settings, transport=rec.transport, clock=lambda: 1700000000.0)
    sub = valid(poster=PosterUpload("flyer.png", "image/png", b"\x89PNG"))

    row = asyncio.run(writer.write(sub, "10.0.0.1"))

    paths = [r.url.path for r in rec.requests]
    assert paths[0] == "/upload/drive/v3/files"
    assert paths[1] == "/drive/v3/files/NEWFILE/permissions"
    assert paths[2].endswith("/values/Sheet2!A:M:append")
    assert all(r.headers["authorization"] == "Bearer token123" for r in rec.requests)
    assert b'"name": "Splash_Beach_Party_1700000000000.png"' in rec.requests[0].content
    appended = json.loads(rec.requests[2].content)
    assert appended == {"values": [row]}
    assert row[9] == "https://drive.google.com/uc?id=NEWFILE&export=download"
    assert row[8] == "Pending Review"


def test_writer_without_poster_only_appends(settings, recorder):
    rec = recorder(_google())
    asyncio.run(SubmissionWriter(settings, transport=rec.transport).write(valid(), "x"))
    assert len(rec.requests) == 1
    assert rec.requests[0].url.params["valueInputOption"] == "USER_ENTERED"


def test_upload_failure_aborts_before_append(settings, recorder):
    rec = recorder(_google(fail_upload=True))
    writer = SubmissionWriter(settings, transport=rec.transport)
    sub = valid(poster=PosterUpload("flyer.png", "image/png", b"\x89PNG"))
    with pytest.raises(SubmissionError, match="Failed to upload file"):
        asyncio.run(writer.write(sub, "x"))
    assert all(r.url.host != "sheets.googleapis.com" for r in rec.requests)


def test_append_failure_is_terminal(settings, recorder):
    rec = recorder(_google(fail_append=True))
    writer = SubmissionWriter(settings, transport=rec.transport)
    with pytest.raises(SubmissionError, match="Failed to process submission"):
        asyncio.run(writer.write(valid(), "x"))
    assert len(rec.requests) == 1


@pytest.mark.parametrize(
    "upload_reply",
    [
        httpx.Response(200, json={"kind": "drive#file"}),
        httpx.Response(200, text="<html>error</html>"),
    ],
)
def test_upload_without_file_id_aborts(settings, recorder, upload_reply):
    def handler(request):
        if request.url.path == "/upload/drive/v3/files":
            return upload_reply
        return httpx.Response(200, json={})

    rec = recorder(handler)
    writer = SubmissionWriter(settings, transport=rec.transport)
    sub = valid(poster=PosterUpload("flyer.png", "image/png", b"\x89PNG"))
    with pytest.raises(SubmissionError, match="Failed to upload file"):
        asyncio.run(writer.write(sub, "x"))
    assert [r.url.path for r in rec.requests] == ["/upload/drive/v3/files"]
