"""
Main CLI application using Typer.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.mock_supabase_client import MockSupabaseClient
from ..adapters.supabase_client import SupabaseClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import (
    BookingSlotsError,
    ScheduleConfigError,
    SlotUnavailableError,
)
from ..domain.models import format_operating_hours
from ..services.availability_service import (
    AvailabilityService,
    BookingRequest,
    build_availability_payload,
)

app = typer.Typer(
    name="bookingslots",
    help="Find and book open appointment slots from business hours",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use the bundled mock data instead of Supabase.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Availability engine for appointment booking.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """
    Load the YAML config. An explicit path must exist; without one, a missing
    ./config.yaml falls back to environment variables.
    """
    if config_file:
        return AppConfig.load_from_yaml(config_file)

    config_path = get_default_config_path()
    if config_path.exists():
        return AppConfig.load_from_yaml(config_path)

    return AppConfig.from_env()


def _build_service(config: AppConfig, mock: bool) -> AvailabilityService:
    if mock or config.mock_data:
        console.print("[yellow]⚠  MOCK MODE: using test data[/yellow]\n")
        client = MockSupabaseClient(data_file=config.mock_data, default_timezone=config.timezone)
    else:
        if not config.supabase.is_configured():
            raise ScheduleConfigError(
                "Supabase is not configured. Set supabase.url and supabase.service_role_key "
                "in config.yaml or SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY."
            )
        client = SupabaseClient(
            base_url=config.supabase.url,
            service_role_key=config.supabase.service_role_key,
            timeout=config.supabase.timeout_seconds,
            default_timezone=config.timezone,
        )

    return AvailabilityService(
        client=client,
        slot_interval_minutes=config.defaults.slot_interval_minutes,
        max_days=config.defaults.max_num_days,
    )


def _fail(error: Exception) -> typer.Exit:
    """Print an error the way operators should see it and return the exit to raise."""
    if isinstance(error, ScheduleConfigError):
        console.print(f"[bold red]Setup problem:[/bold red] {error}")
    elif isinstance(error, SlotUnavailableError):
        console.print(f"[bold red]That time is no longer available:[/bold red] {error.message} ({error.reason})")
    else:
        console.print(f"[bold red]Error:[/bold red] {error}")
    return typer.Exit(1)


@app.command()
def slots(
    business: Annotated[str, typer.Argument(help="Business ID or configured alias")],
    service: Annotated[str, typer.Argument(help="Service ID")],
    config_file: ConfigOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Number of days to show")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the availability endpoint JSON body.")] = False,
    mock: MockOption = False,
):
    """
    List open slots for a service.

    Examples:

        bookingslots slots salon s-cut

        bookingslots slots salon s-cut --start 2024-11-25 --days 7 --json

        bookingslots slots b-luna-salon s-cut --mock
    """
    try:
        config = _load_config(config_file)
        availability_service = _build_service(config, mock)
        business_id = config.resolve_business(business)

        start_date = None
        if start:
            try:
                start_date = pendulum.from_format(start, "YYYY-MM-DD")
            except ValueError as e:
                console.print(f"[red]Could not parse start date: {e}[/red]")
                raise typer.Exit(1)

        report = availability_service.get_availability(
            business_id,
            service,
            start_date=start_date.date() if start_date else None,
            num_days=days or config.defaults.num_days,
        )

        if as_json:
            console.print_json(json.dumps(build_availability_payload(report)))
            return

        console.print(
            f"[bold cyan]{report.business.name}[/bold cyan] · {report.service.name} "
            f"({report.service.duration_label}, {report.service.price_label})"
        )
        console.print(f"   From {report.start_date}, {report.num_days} days, zone {report.business.timezone}\n")

        if not report.availability:
            console.print(
                "[yellow]⚠ No open slots found.[/yellow]\n"
                "Try a longer window or a different service."
            )
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Date", style="bold yellow")
        table.add_column("Open slots")

        for date_key, day_slots in report.availability.items():
            table.add_row(date_key, ", ".join(slot.display_time for slot in day_slots))

        console.print(table)
        console.print(f"\n[bold green]✓ {report.slot_count} open slot(s)[/bold green]\n")

    except (BookingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command("next")
def next_slot(
    business: Annotated[str, typer.Argument(help="Business ID or configured alias")],
    service: Annotated[str, typer.Argument(help="Service ID")],
    config_file: ConfigOption = None,
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Days to look ahead")] = None,
    mock: MockOption = False,
):
    """
    Show the next open slot for a service.
    """
    try:
        config = _load_config(config_file)
        availability_service = _build_service(config, mock)

        slot = availability_service.next_available(
            config.resolve_business(business),
            service,
            horizon_days=horizon or config.defaults.horizon_days,
        )

        if slot is None:
            console.print("[yellow]⚠ Fully booked for the whole horizon.[/yellow]")
            return

        console.print(f"[bold green]✓ Next open slot:[/bold green] {slot.format_display()}")

    except (BookingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def check(
    business: Annotated[str, typer.Argument(help="Business ID or configured alias")],
    service: Annotated[str, typer.Argument(help="Service ID")],
    start: Annotated[str, typer.Argument(help="Requested start, e.g. '2024-11-25 14:30' (business time zone)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Check whether a specific start time can be booked.
    """
    try:
        config = _load_config(config_file)
        availability_service = _build_service(config, mock)

        result = availability_service.check_slot(config.resolve_business(business), service, start)

        if result.available:
            console.print(f"[bold green]✓ {result.message}[/bold green]")
        else:
            console.print(f"[bold red]✗ {result.message}[/bold red] ({result.reason})")
            raise typer.Exit(1)

    except (BookingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def book(
    business: Annotated[str, typer.Argument(help="Business ID or configured alias")],
    service: Annotated[str, typer.Argument(help="Service ID")],
    start: Annotated[str, typer.Argument(help="Requested start, e.g. '2024-11-25 14:30' (business time zone)")],
    name: Annotated[str, typer.Option("--name", help="Customer name")],
    email: Annotated[str, typer.Option("--email", help="Customer email")],
    phone: Annotated[Optional[str], typer.Option("--phone", help="Customer phone")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book an appointment after re-validating the slot.
    """
    try:
        config = _load_config(config_file)
        availability_service = _build_service(config, mock)

        created = availability_service.book(
            BookingRequest(
                business_id=config.resolve_business(business),
                service_id=service,
                name=name,
                email=email,
                start=start,
                phone=phone,
            )
        )

        console.print(Panel.fit(
            f"[bold green]✓ Booking confirmed[/bold green]\n\n"
            f"[bold]ID:[/bold] {created.get('id', 'N/A')}\n"
            f"[bold]Start:[/bold] {created.get('start_time')}\n"
            f"[bold]End:[/bold] {created.get('end_time')}",
            title="Appointment"
        ))

    except (BookingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def hours(
    business: Annotated[str, typer.Argument(help="Business ID or configured alias")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show a business's weekly operating hours.
    """
    try:
        config = _load_config(config_file)
        availability_service = _build_service(config, mock)

        record = availability_service.load_business(config.resolve_business(business))

        console.print(Panel.fit(
            format_operating_hours(record.hours) or "No operating hours configured",
            title=f"{record.name} ({record.timezone})"
        ))

    except (BookingSlotsError, FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def businesses(
    config_file: ConfigOption = None,
):
    """
    List all configured business aliases.
    """
    try:
        config = _load_config(config_file)

        if not config.businesses:
            console.print("[yellow]No business aliases defined in the config file.[/yellow]")
            return

        table = Table(
            title="Configured businesses",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Alias", style="bold yellow")
        table.add_column("Business ID", style="dim")

        for alias in config.businesses:
            table.add_row(alias.name, alias.id)

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        raise _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
