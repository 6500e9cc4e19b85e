"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Annotated

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_calendar import JsonCalendarClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..domain.models import SchedulingResult
from ..domain.slot_calculator import SlotCalculator
from ..services.meeting_finder import MeetingFinderService

app = typer.Typer(
    name="meetingfinder",
    help="Find meeting slots for attendees across time zones",
    add_completion=False
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True
        )


def _parse_moment(value: str, tz: str, *, is_end: bool) -> DateTime:
    """
    Parse a date or datetime option.

    A bare date means the start of that day, or for the end of the
    timeframe the start of the following day.
    """
    parsed = pendulum.parse(value, tz=tz)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Could not parse date: {value}")

    if is_end and len(value.strip()) == 10:
        return parsed.start_of("day").add(days=1)
    return parsed


def _determine_time_range(
    *,
    tz: str,
    search_days: int,
    start_option: Optional[str],
    end_option: Optional[str]
):
    """
    Resolve the search window from explicit dates or the configured default.
    Returns (start_date, end_date).
    """
    try:
        if start_option:
            start_date = _parse_moment(start_option, tz, is_end=False)
        else:
            start_date = pendulum.now(tz).start_of("day")

        if end_option:
            end_date = _parse_moment(end_option, tz, is_end=True)
        else:
            end_date = start_date.add(days=search_days)
    except ValueError as e:
        console.print(f"[red]Fehler beim Parsen des Zeitraums: {e}[/red]")
        raise typer.Exit(1)

    return start_date, end_date


def _print_result(result: SchedulingResult, tz: str) -> None:
    console.print()
    if result.has_common_slots:
        console.print(
            f"[bold green]✓ {len(result.common_slots)} gemeinsame(r) Zeitslot(s) gefunden:[/bold green]\n"
        )
        for slot in result.common_slots:
            console.print(f"  {slot.format_display(tz)}")
    elif result.max_attendance is not None:
        best = result.max_attendance
        console.print("[yellow]⚠ Kein Zeitslot passt für alle Teilnehmer.[/yellow]\n")
        console.print(Panel.fit(
            f"[bold]{best.time_range.format_display(tz)}[/bold]\n\n"
            f"[bold]Verfügbar ({len(best.attendees)}):[/bold] {', '.join(best.attendee_names())}",
            title="Slot mit maximaler Teilnahme"
        ))
    else:
        console.print(
            "[yellow]⚠ Keine verfügbaren Zeitslots gefunden.[/yellow]\n"
            "Versuchen Sie einen längeren Zeitraum oder eine kürzere Dauer."
        )
    console.print()


@app.command()
def find(
    attendees: Annotated[Optional[List[str]], typer.Argument(help="Teilnehmernamen (z. B. 'alice bob'). Ohne Eingabe werden alle verwendet.")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start (YYYY-MM-DD or ISO 8601 datetime)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End (YYYY-MM-DD or ISO 8601 datetime)")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    count: Annotated[Optional[int], typer.Option("--count", "-n", help="Maximum number of proposals")] = None,
    granularity: Annotated[Optional[int], typer.Option("--granularity", "-g", help="Step between proposals in minutes")] = None,
    calendar_file: Annotated[Optional[Path], typer.Option("--calendar", help="JSON file with booked appointments")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug-Logging aktivieren.")] = False,
):
    """
    Find meeting slots for all attendees, or the best-attended slot.

    Examples:

        # All configured attendees, next seven days
        meetingfinder find

        # Selected attendees and a custom window
        meetingfinder find alice bob --start 2025-03-24 --end 2025-03-28 --duration 60

        # Appointments from a calendar file
        meetingfinder find --calendar calendar.json
    """
    _configure_logging(verbose)

    try:
        config_path = config_file or get_default_config_path()
        config = AppConfig.load_from_yaml(config_path)
        tz = config.timezone

        console.print("\n" + "="*60)
        console.print("[bold cyan]🗓️  Meetingfinder - Gemeinsame Termine finden[/bold cyan]")
        console.print("="*60 + "\n")

        start_date, end_date = _determine_time_range(
            tz=tz,
            search_days=config.defaults.search_days,
            start_option=start,
            end_option=end
        )

        profiles = config.build_attendees(attendees or None)
        meeting_minutes = duration if duration is not None else config.defaults.duration_minutes
        max_proposals = count if count is not None else config.defaults.max_proposals
        step_minutes = granularity if granularity is not None else config.defaults.granularity_minutes

        console.print("[bold cyan]📊 Zusammenfassung:[/bold cyan]")
        console.print(f"   Teilnehmer: {', '.join(profile.name for profile in profiles)}")
        console.print(f"   Zeitraum: {start_date.format('DD.MM.YYYY HH:mm')} - {end_date.format('DD.MM.YYYY HH:mm')} ({tz})")
        console.print(f"   Dauer: {meeting_minutes} Minuten, Raster: {step_minutes} Minuten")
        console.print()

        calculator = SlotCalculator(granularity=pendulum.duration(minutes=step_minutes))
        calendar = JsonCalendarClient(
            data_file=calendar_file or config.calendar_file,
            default_timezone=tz
        )
        service = MeetingFinderService(calendar_source=calendar, slot_calculator=calculator)

        result = asyncio.run(
            service.find_slots(
                attendees=profiles,
                start_date=start_date,
                end_date=end_date,
                duration=pendulum.duration(minutes=meeting_minutes),
                max_proposals=max_proposals,
            )
        )

        _print_result(result, tz)

    except FileNotFoundError as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)

    except (SchedulingError, ValueError) as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_attendees(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to config file"
    )
):
    """
    List all configured attendees.
    """
    try:
        config_path = config_file or get_default_config_path()
        config = AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)

    if not config.attendees:
        console.print("[yellow]Keine Teilnehmer in der Config-Datei definiert.[/yellow]")
        return

    table = Table(
        title="Konfigurierte Teilnehmer",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Name", style="bold yellow")
    table.add_column("Zeitzone", style="dim")
    table.add_column("Arbeitszeit")
    table.add_column("Termine", justify="right")

    for attendee in config.attendees:
        hours = attendee.working_hours
        table.add_row(
            attendee.name,
            attendee.timezone,
            f"{hours.start.strftime('%H:%M')} - {hours.end.strftime('%H:%M')}",
            str(len(attendee.appointments))
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
    console.print(f"\n[bold cyan]meetingfinder[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
