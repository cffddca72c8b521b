"""CLI commands for Practice OS."""

import json
from datetime import date
from pathlib import Path
from typing import Optional

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from practice_os.config import get_settings
from practice_os.scheduling.conflicts import has_blocking_conflict
from practice_os.scheduling.errors import SchedulingError
from practice_os.scheduling.models import (
    BookedAppointment,
    Interval,
    ProviderDaySchedule,
)
from practice_os.scheduling.service import SchedulingService
from practice_os.scheduling.store import InMemoryAppointmentStore

app = typer.Typer(
    name="practice-os",
    help="Appointment conflict checks, availability slots and schedule scores",
    add_completion=False,
)
console = Console()


class Snapshot(BaseModel):
    """On-disk snapshot of schedules and bookings used by the CLI."""

    schedules: list[ProviderDaySchedule] = []
    appointments: list[BookedAppointment] = []


def _load_service(snapshot_file: Path) -> SchedulingService:
    if not snapshot_file.exists():
        console.print(f"[red]Snapshot file not found: {snapshot_file}[/red]")
        raise typer.Exit(1)
    try:
        snapshot = Snapshot.model_validate_json(snapshot_file.read_text())
    except (ValidationError, SchedulingError) as e:
        console.print(f"[red]Invalid snapshot {snapshot_file}: {e}[/red]")
        raise typer.Exit(1)

    store = InMemoryAppointmentStore()
    for schedule in snapshot.schedules:
        store.add_schedule(schedule)
    for appointment in snapshot.appointments:
        store.add_appointment(appointment)
    return SchedulingService(store)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid date: {value}. Use YYYY-MM-DD[/red]")
        raise typer.Exit(1)


@app.command()
def slots(
    snapshot_file: Path = typer.Argument(..., help="JSON snapshot of schedules and appointments"),
    provider: str = typer.Option(..., "--provider", "-p", help="Provider ID"),
    day: str = typer.Option(..., "--date", "-d", help="Date (YYYY-MM-DD)"),
    duration: Optional[int] = typer.Option(None, "--duration", help="Appointment length in minutes"),
    granularity: Optional[int] = typer.Option(None, "--granularity", "-g", help="Grid step in minutes"),
    open_only: bool = typer.Option(False, "--open", help="Only show bookable slots"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List candidate slots for a provider-day."""
    service = _load_service(snapshot_file)
    if duration is None:
        duration = get_settings().default_duration_minutes
    try:
        result = service.list_available_slots(provider, _parse_date(day), duration, granularity)
    except SchedulingError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if open_only:
        result = [s for s in result if s.bookable]

    if output_json:
        typer.echo(json.dumps([s.model_dump(mode="json") for s in result], indent=2))
        return

    if not result:
        console.print(f"[yellow]No slots for {provider} on {day}.[/yellow]")
        return

    table = Table(title=f"Slots for {provider} on {day} ({duration} min)")
    table.add_column("Time")
    table.add_column("Bookable")
    table.add_column("Warnings")
    for slot in result:
        status = "[green]yes[/green]" if slot.bookable else "[red]no[/red]"
        warnings = ", ".join(
            f"{w.kind.value} ({w.with_appointment_id})" for w in slot.soft_warnings
        )
        table.add_row(slot.interval.label, status, warnings)
    console.print(table)


@app.command()
def check(
    snapshot_file: Path = typer.Argument(..., help="JSON snapshot of schedules and appointments"),
    provider: str = typer.Option(..., "--provider", "-p", help="Provider ID"),
    day: str = typer.Option(..., "--date", "-d", help="Date (YYYY-MM-DD)"),
    start: str = typer.Option(..., "--start", "-s", help="Start time (HH:MM)"),
    duration: Optional[int] = typer.Option(None, "--duration", help="Appointment length in minutes"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Check a candidate appointment against existing bookings."""
    service = _load_service(snapshot_file)
    if duration is None:
        duration = get_settings().default_duration_minutes
    parsed_day = _parse_date(day)
    try:
        candidate = Interval.from_time(parsed_day, start, duration)
        conflicts = service.check_conflicts(candidate, provider, parsed_day)
        alternatives = []
        if has_blocking_conflict(conflicts):
            alternatives = service.suggest_alternatives(candidate, provider)
    except SchedulingError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps([c.model_dump(mode="json") for c in conflicts], indent=2))
        return

    if not conflicts:
        console.print(f"[green]{candidate.label} is safe to book.[/green]")
        return

    table = Table(title=f"Conflicts for {candidate.label}")
    table.add_column("Appointment")
    table.add_column("Kind")
    table.add_column("Severity")
    table.add_column("Gap (min)")
    colors = {"high": "red", "medium": "yellow", "low": "cyan"}
    for c in conflicts:
        color = colors[c.severity.value]
        table.add_row(
            c.with_appointment_id,
            c.kind.value,
            f"[{color}]{c.severity.value}[/{color}]",
            str(c.gap_minutes),
        )
    console.print(table)

    if alternatives:
        console.print(
            "[bold]Nearest open times:[/bold] "
            + ", ".join(s.interval.label for s in alternatives)
        )


@app.command()
def score(
    snapshot_file: Path = typer.Argument(..., help="JSON snapshot of schedules and appointments"),
    provider: str = typer.Option(..., "--provider", "-p", help="Provider ID"),
    day: str = typer.Option(..., "--date", "-d", help="Date (YYYY-MM-DD)"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the advisory utilization report for a provider-day."""
    service = _load_service(snapshot_file)
    report = service.get_schedule_score(provider, _parse_date(day))

    if output_json:
        typer.echo(report.model_dump_json(indent=2))
        return

    body = (
        f"[bold]Utilization:[/bold] {report.utilization_percent:.1f}%\n"
        f"[bold]Idle gaps:[/bold] {report.gap_minutes_total} min\n"
        f"[bold]Overlaps:[/bold] {report.conflict_count}"
    )
    if report.recommendations:
        body += "\n\n[bold]Recommendations:[/bold]\n" + "\n".join(
            f"  - {r}" for r in report.recommendations
        )
    console.print(Panel(body, title=f"Schedule score: {provider} {day}"))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Run the scheduling API server."""
    import uvicorn

    from practice_os.api.app import create_app

    settings = get_settings()
    uvicorn.run(create_app(), host=host or settings.api_host, port=port or settings.api_port)


@app.command()
def version():
    """Show version information."""
    from practice_os import __version__

    console.print(f"Practice OS v{__version__}")


if __name__ == "__main__":
    app()
