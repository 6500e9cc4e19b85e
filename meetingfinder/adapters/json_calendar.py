"""
Calendar source backed by a JSON file of booked appointments.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import CalendarSourceError
from ..domain.models import Appointment

logger = logging.getLogger(__name__)


class JsonCalendarClient:
    """
    Loads appointments from a JSON file.

    The file holds a list of events:

        [
            {
                "attendee": "alice",
                "start": "2025-03-24T13:00",
                "end": "2025-03-24T14:00",
                "timezone": "Europe/Warsaw",
                "title": "Standup"
            }
        ]

    ``timezone`` applies to start/end strings without an explicit offset and
    defaults to the client's ``default_timezone``.
    """

    def __init__(self, data_file: Optional[Path] = None, default_timezone: str = "UTC"):
        """
        Initialize the client.

        Args:
            data_file: Path to the JSON file; None means an empty calendar
            default_timezone: Zone for event times without an offset
        """
        self.data_file = data_file
        self.default_timezone = default_timezone
        self.calendar_events = self._load_calendar_data()

    def _load_calendar_data(self) -> List[Dict[str, Any]]:
        """Load calendar events from the JSON file."""
        if self.data_file is None:
            return []

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as exc:
            raise CalendarSourceError(f"Could not read calendar file {self.data_file}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CalendarSourceError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        if not isinstance(data, list):
            raise CalendarSourceError("Calendar file must contain a list of events.")

        return data

    async def get_appointments(
        self,
        names: List[str],
        start_time: DateTime,
        end_time: DateTime,
    ) -> Dict[str, List[Appointment]]:
        """
        Return appointments per attendee overlapping [start_time, end_time).

        Args:
            names: Attendee names to look up
            start_time: Start of the time window
            end_time: End of the time window

        Returns:
            Dictionary mapping attendee name -> list of appointments
        """
        appointments: Dict[str, List[Appointment]] = {name: [] for name in names}
        wanted = {name.lower(): name for name in names}

        for event in self.calendar_events:
            if not isinstance(event, dict):
                logger.warning("Skipping calendar entry %r: not an object", event)
                continue

            name = wanted.get(str(event.get("attendee", "")).lower())
            if name is None:
                continue

            try:
                appointment = self._parse_event(event)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping calendar entry %r: %s", event, exc)
                continue

            if appointment.start < end_time and appointment.end > start_time:
                appointments[name].append(appointment)

        return appointments

    def _parse_event(self, event: Dict[str, Any]) -> Appointment:
        """Parse one JSON event into an appointment."""
        timezone = event.get("timezone") or self.default_timezone
        return Appointment(
            start=self._parse_datetime(event["start"], timezone),
            end=self._parse_datetime(event["end"], timezone),
            title=event.get("title", ""),
        )

    @staticmethod
    def _parse_datetime(value: str, timezone: str) -> DateTime:
        """
        Parse an ISO 8601 string; strings without an offset are read in ``timezone``.
        """
        dt = pendulum.parse(value, tz=timezone)

        if isinstance(dt, DateTime):
            return dt

        raise ValueError(f"Could not parse datetime: {value}")
