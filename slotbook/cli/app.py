"""
Main CLI application using Typer.
"""

import json
import logging
from itertools import groupby
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..adapters.json_store import JsonBookingStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError, ValidationError
from ..domain.models import Slot
from ..services.appointments import AppointmentService

app = typer.Typer(
    name="slotbook",
    help="Book half-hour appointments within business hours",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Browse free appointment slots and manage bookings.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _build_service(config_file: Optional[Path]) -> AppointmentService:
    """Load configuration and wire the service to the JSON booking file."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    policy = config.to_policy()

    store = JsonBookingStore(
        path=config.resolve_storage_path(config_path.parent),
        timezone=policy.timezone,
    )
    service = AppointmentService(
        store=store,
        policy=policy,
        default_range_days=config.availability.default_range_days,
        max_range_days=config.availability.max_range_days,
    )
    return service


def _fail(error: Exception) -> NoReturn:
    if isinstance(error, ValidationError):
        console.print("[bold red]Booking rejected:[/bold red]")
        for message in error.messages:
            console.print(f"  • {escape(message)}")
    else:
        console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(1)


@app.command()
def available(
    config_file: ConfigOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD). Defaults to today.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD). Defaults to a week after start.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw availability payload.")] = False,
):
    """
    Show free slots, grouped by day.

    Examples:

        slotbook available

        slotbook available --start 2025-11-10 --end 2025-11-14

        slotbook available --json
    """
    try:
        service = _build_service(config_file)
        if as_json:
            payload = service.available_payload(start_date=start, end_date=end)
        else:
            slots = service.available_slots(start_date=start, end_date=end)
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps(payload, indent=2))
        return

    if not slots:
        console.print(
            "[yellow]⚠ No free slots found.[/yellow]\n"
            "Try a later or longer date range."
        )
        return

    console.print(f"[bold green]✓ {len(slots)} free slot(s):[/bold green]")
    for day, day_slots in groupby(slots, key=lambda s: s.start.date()):
        console.print(f"\n[bold]{day.format('dddd, MMMM DD, YYYY', locale='en')}[/bold]")
        console.print("  " + "  ".join(s.start.format("hh:mm A", locale="en") for s in day_slots))
    console.print()


@app.command()
def book(
    name: Annotated[str, typer.Option("--name", help="Client name")],
    email: Annotated[str, typer.Option("--email", help="Client email address")],
    at: Annotated[str, typer.Option("--at", help="Slot start, e.g. 2025-11-10T09:30")],
    phone: Annotated[Optional[str], typer.Option("--phone", help="Phone number")] = None,
    reason: Annotated[Optional[str], typer.Option("--reason", help="Reason for the visit (max. 200 characters)")] = None,
    config_file: ConfigOption = None,
):
    """
    Book an appointment.
    """
    try:
        service = _build_service(config_file)
        booking = service.book(
            {"name": name, "email": email, "phone": phone, "date_time": at, "reason": reason}
        )
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    label = Slot(start=booking.start, policy=service.policy).format_display()
    console.print(f"[green]✓ Appointment #{booking.id} booked for {label}[/green]")


@app.command()
def cancel(
    booking_id: Annotated[int, typer.Argument(help="Id of the appointment to cancel")],
    config_file: ConfigOption = None,
):
    """
    Cancel an appointment.
    """
    try:
        service = _build_service(config_file)
        service.cancel(booking_id)
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(f"[green]✓ Appointment #{booking_id} cancelled.[/green]")


@app.command()
def show(
    booking_id: Annotated[int, typer.Argument(help="Id of the appointment to show")],
    config_file: ConfigOption = None,
):
    """
    Show one appointment.
    """
    try:
        service = _build_service(config_file)
        booking = service.get(booking_id)
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    label = Slot(start=booking.start, policy=service.policy).format_display()
    console.print(f"\n[bold]Appointment #{booking.id}[/bold]")
    console.print(f"  When:   {label}")
    console.print(f"  Name:   {escape(booking.name)}")
    console.print(f"  E-Mail: {escape(booking.email)}")
    if booking.phone:
        console.print(f"  Phone:  {escape(booking.phone)}")
    if booking.reason:
        console.print(f"  Reason: {escape(booking.reason)}")
    console.print()


@app.command("list")
def list_appointments(
    config_file: ConfigOption = None,
    scope: Annotated[str, typer.Option("--scope", help="all, upcoming or past")] = "all",
    page: Annotated[Optional[int], typer.Option("--page", help="Page number, starting at 1")] = None,
    per_page: Annotated[Optional[int], typer.Option("--per-page", help="Appointments per page")] = None,
):
    """
    List booked appointments.
    """
    try:
        service = _build_service(config_file)
        bookings = service.list_appointments(scope=scope, page=page, per_page=per_page)
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if not bookings:
        console.print("[yellow]No appointments.[/yellow]")
        return

    table = Table(
        title="Appointments",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("#", style="bold")
    table.add_column("When", style="bold yellow")
    table.add_column("Name")
    table.add_column("E-Mail", style="dim")
    table.add_column("Reason", style="dim")

    for booking in bookings:
        table.add_row(
            str(booking.id),
            booking.start.format("YYYY-MM-DD HH:mm"),
            escape(booking.name),
            escape(booking.email),
            escape(booking.reason or ""),
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
