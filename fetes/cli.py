"""CLI entry-point: python -m fetes [serve|browse|featured]."""

from __future__ import annotations

import asyncio
import logging

import typer

from fetes.catalog import ALL_CATEGORIES, CatalogView
from fetes.client import CatalogClient, CatalogError
from fetes.models import Event, display, format_long_date
from fetes.settings import load_settings

app = typer.Typer(help="FeteLendr – fete listings")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


def _load(refresh: bool) -> list[Event]:
    settings = load_settings()
    _setup_logging(settings.log_level)
    client = CatalogClient(settings)
    try:
        return asyncio.run(client.fetch_events(use_cache=not refresh))
    except CatalogError as exc:
        typer.echo(f"Couldn't load fetes: {exc}. Try again.", err=True)
        raise typer.Exit(1)


def _echo_event(event: Event) -> None:
    typer.echo(f"{display(event.title)}")
    typer.echo(f"  {format_long_date(event.date)} · {display(event.time)} · {display(event.venue)}")
    typer.echo(f"  {', '.join(event.type) or display(None)} · {display(event.ticket_price)}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
) -> None:
    """Run the listings API."""
    import uvicorn

    _setup_logging(load_settings().log_level)
    uvicorn.run("fete_api.main:app", host=host, port=port)


@app.command()
def browse(
    month: int | None = typer.Option(None, "--month", "-m", min=1, max=12),
    year: int | None = typer.Option(None, "--year", "-y"),
    category: str = typer.Option(ALL_CATEGORIES, "--category", "-c"),
    search: str = typer.Option("", "--search", "-s", help="Match every word in the title."),
    pages: int = typer.Option(1, "--pages", "-p", min=1, help="Pages of 12 to show."),
    refresh: bool = typer.Option(False, "--refresh", help="Skip the local cache."),
) -> None:
    """List fetes for a month, a category, or a title search."""
    events = _load(refresh)
    view = CatalogView(events)
    changes = {"category": category, "search_query": search}
    if month is not None:
        changes["month"] = month
    if year is not None:
        changes["year"] = year
    view.update(**changes)
    for _ in range(pages - 1):
        view.load_more()

    if not view.visible:
        typer.echo("No fetes found.")
        return
    for event in view.visible:
        _echo_event(event)
    typer.echo(f"Showing {len(view.visible)} of {len(view.filtered)}.")


@app.command()
def featured(
    refresh: bool = typer.Option(False, "--refresh", help="Skip the local cache."),
) -> None:
    """Show the next featured fetes."""
    view = CatalogView(_load(refresh))
    if not view.featured:
        typer.echo("No featured fetes.")
        raise typer.Exit()
    for event in view.featured:
        _echo_event(event)


if __name__ == "__main__":
    app()
