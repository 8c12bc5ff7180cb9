"""
Main CLI application using Typer.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator, List, Optional, Union

import pendulum
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..adapters.api_client import BookingApiClient
from ..adapters.factory import build_store
from ..config import AppConfig
from ..domain.exceptions import SlotbookError
from ..domain.models import Booking, BookingStatus, ResolvedSlot, Venue, parse_calendar_date
from ..logging_setup import configure_logging
from ..services.booking_service import BookingService

app = typer.Typer(
    name="slotbook",
    help="Weekly availability templates and bookings for venues",
    add_completion=False,
)

console = Console()

Backend = Union[BookingService, BookingApiClient]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
RemoteOption = Annotated[
    Optional[str],
    typer.Option("--remote", "-r", help="Base URL of a slotbook server, e.g. http://localhost:8000"),
]

STATUS_STYLES = {
    BookingStatus.PENDING: "yellow",
    BookingStatus.CONFIRMED: "green",
    BookingStatus.CANCELLED: "dim",
}


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config = AppConfig.load(config_file)
    configure_logging(config.log_level)
    return config


@contextmanager
def _open_backend(config: AppConfig, remote: Optional[str]) -> Iterator[Backend]:
    """Yield a remote API client, or a service over the configured local store."""
    if remote:
        yield BookingApiClient(remote, admin_token=config.api.admin_token)
        return

    with build_store(config.storage) as store:
        yield BookingService(store, default_settings=config.venue_defaults.to_settings())


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _render_slots(venue: Venue, slots: List[ResolvedSlot]) -> None:
    table = Table(
        title=f"{venue.name} ({venue.timezone})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Slot", style="bold")
    table.add_column("Status")

    for slot in slots:
        status = "[green]available[/green]" if slot.available else "[red]booked[/red]"
        table.add_row(slot.format_display(venue.timezone), status)

    console.print()
    console.print(table)
    console.print()


def _render_bookings(venue: Venue, bookings: List[Booking]) -> None:
    table = Table(
        title=f"Bookings – {venue.name}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("ID", style="dim")
    table.add_column("Customer", style="bold yellow")
    table.add_column("E-Mail")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Status")

    for booking in bookings:
        status = BookingStatus(booking.status)
        style = STATUS_STYLES[status]
        table.add_row(
            booking.id,
            booking.customer_name,
            booking.customer_email,
            booking.start_time.in_timezone(venue.timezone).format("YYYY-MM-DD HH:mm"),
            booking.end_time.in_timezone(venue.timezone).format("HH:mm"),
            f"[{style}]{status.value}[/{style}]",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def init_db(
    config_file: ConfigOption = None,
    seed: Annotated[bool, typer.Option("--seed/--no-seed", help="Insert the demo venue")] = True,
):
    """
    Create the local store and its schema.
    """
    try:
        config = _load_config(config_file)
        store = build_store(config.storage)
        store.seed_demo = False

        with store:
            seeded = store.seed_demo_data() if seed else False

        console.print(f"\n[green]✓ Store ready ({config.storage.backend}).[/green]")
        if seeded:
            console.print("[green]✓ Demo venue added.[/green]")
        console.print()

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def venues(config_file: ConfigOption = None, remote: RemoteOption = None):
    """
    List all active venues.
    """
    try:
        config = _load_config(config_file)

        with _open_backend(config, remote) as backend:
            venue_list = backend.list_venues()

        if not venue_list:
            console.print("[yellow]No venues defined.[/yellow]")
            return

        table = Table(title="Venues", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="bold yellow")
        table.add_column("Timezone")
        table.add_column("Slot length")
        table.add_column("Advance")

        for venue in venue_list:
            table.add_row(
                venue.id,
                venue.name,
                venue.timezone,
                f"{venue.settings.booking_duration_minutes} min",
                f"{venue.settings.advance_booking_days} days",
            )

        console.print()
        console.print(table)
        console.print()

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def slots(
    venue_id: Annotated[str, typer.Argument(help="Venue ID")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD). Defaults to today")] = None,
    config_file: ConfigOption = None,
    remote: RemoteOption = None,
):
    """
    Show the resolved time slots of a venue for one date.

    Examples:

        slotbook slots demo-tennis-court

        slotbook slots demo-tennis-court --date 2024-01-15
    """
    try:
        config = _load_config(config_file)

        with _open_backend(config, remote) as backend:
            venue = backend.get_venue(venue_id)
            day = parse_calendar_date(date) if date else pendulum.now(venue.timezone).date()
            resolved = backend.available_slots(venue_id, day)

        if not resolved:
            console.print(
                f"[yellow]⚠ No time slots on {day.format('YYYY-MM-DD')}.[/yellow]\n"
                "Past slots are hidden; try a later date."
            )
            return

        _render_slots(venue, resolved)
        available = sum(1 for slot in resolved if slot.available)
        console.print(f"[bold green]✓ {available} of {len(resolved)} slot(s) available[/bold green]\n")

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def book(
    venue_id: Annotated[str, typer.Argument(help="Venue ID")],
    start: Annotated[str, typer.Option("--start", "-s", help="Local start, e.g. '2024-01-15 09:00'")],
    name: Annotated[str, typer.Option("--name", "-n", help="Customer name")],
    email: Annotated[str, typer.Option("--email", "-e", help="Customer e-mail")],
    end: Annotated[Optional[str], typer.Option("--end", help="Local end. Defaults to start + slot length")] = None,
    phone: Annotated[Optional[str], typer.Option("--phone", help="Customer phone")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes for the venue")] = None,
    config_file: ConfigOption = None,
    remote: RemoteOption = None,
):
    """
    Book a time slot for a customer.
    """
    try:
        config = _load_config(config_file)

        with _open_backend(config, remote) as backend:
            venue = backend.get_venue(venue_id)
            start_time = pendulum.parse(start, tz=venue.timezone)
            if end:
                end_time = pendulum.parse(end, tz=venue.timezone)
            else:
                end_time = start_time.add(minutes=venue.settings.booking_duration_minutes)

            booking = backend.create_booking(
                venue_id,
                customer_name=name,
                customer_email=email,
                start_time=start_time,
                end_time=end_time,
                customer_phone=phone,
                notes=notes,
            )

        console.print(Panel.fit(
            f"[bold green]✓ Booking received[/bold green]\n\n"
            f"[bold]ID:[/bold] {booking.id}\n"
            f"[bold]Venue:[/bold] {venue.name}\n"
            f"[bold]When:[/bold] {booking.start_time.in_timezone(venue.timezone).format('dddd, YYYY-MM-DD HH:mm')}"
            f" – {booking.end_time.in_timezone(venue.timezone).format('HH:mm')}\n"
            f"[bold]Status:[/bold] {BookingStatus(booking.status).value}",
            title="Booking",
        ))

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def bookings(
    venue_id: Annotated[str, typer.Argument(help="Venue ID")],
    start: Annotated[Optional[str], typer.Option("--start", help="Earliest start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Latest start date (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
    remote: RemoteOption = None,
):
    """
    List the bookings of a venue, newest first.
    """
    try:
        config = _load_config(config_file)

        with _open_backend(config, remote) as backend:
            venue = backend.get_venue(venue_id)
            lower = pendulum.parse(start, tz=venue.timezone).start_of("day") if start else None
            upper = pendulum.parse(end, tz=venue.timezone).end_of("day") if end else None
            booking_list = backend.list_bookings(venue_id, start=lower, end=upper)

        if not booking_list:
            console.print("[yellow]No bookings found.[/yellow]")
            return

        _render_bookings(venue, booking_list)

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def set_status(
    venue_id: Annotated[str, typer.Argument(help="Venue ID")],
    booking_id: Annotated[str, typer.Argument(help="Booking ID")],
    status: Annotated[BookingStatus, typer.Argument(help="New status")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Operator notes")] = None,
    config_file: ConfigOption = None,
    remote: RemoteOption = None,
):
    """
    Confirm, cancel or reopen a booking.
    """
    try:
        config = _load_config(config_file)

        with _open_backend(config, remote) as backend:
            backend.update_booking_status(venue_id, booking_id, status, notes)

        console.print(f"\n[green]✓ Booking {booking_id} is now {status.value}.[/green]\n")

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def stats(
    venue_id: Annotated[str, typer.Argument(help="Venue ID")],
    config_file: ConfigOption = None,
    remote: RemoteOption = None,
):
    """
    Show booking counters for a venue.
    """
    try:
        config = _load_config(config_file)

        with _open_backend(config, remote) as backend:
            venue = backend.get_venue(venue_id)
            booking_stats = backend.booking_stats(venue_id)

        console.print(Panel.fit(
            f"[bold]Total:[/bold] {booking_stats.total}\n"
            f"[bold]Pending:[/bold] {booking_stats.pending}\n"
            f"[bold]Confirmed:[/bold] {booking_stats.confirmed}\n"
            f"[bold]Cancelled:[/bold] {booking_stats.cancelled}\n\n"
            f"[bold]Today:[/bold] {booking_stats.today_bookings}\n"
            f"[bold]Last 7 days:[/bold] {booking_stats.week_bookings}",
            title=f"📊 {venue.name}",
        ))

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def serve(
    config_file: ConfigOption = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port")] = None,
):
    """
    Run the HTTP API server.
    """
    import uvicorn

    from ..api.app import create_app

    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    if not config.api.admin_token:
        console.print("[yellow]⚠ No admin token configured; admin endpoints will reject all calls.[/yellow]")

    uvicorn.run(
        create_app(config),
        host=host or config.api.host,
        port=port or config.api.port,
        log_level=config.log_level.lower(),
    )


@app.command()
def ping(
    remote: Annotated[str, typer.Argument(help="Base URL of a slotbook server")],
    config_file: ConfigOption = None,
):
    """
    Check that a slotbook server is reachable.
    """
    try:
        config = _load_config(config_file)
        client = BookingApiClient(remote, admin_token=config.api.admin_token)
        health = client.check_health()
        console.print(f"\n[green]✓ {remote} is up[/green] (version {health.get('version', 'N/A')})\n")

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
