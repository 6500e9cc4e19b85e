"""
Application services for finding meeting slots.

The service coordinates fetching appointments via a calendar source adapter
and delegates the actual availability calculation to the domain-level
``SlotCalculator``. This keeps the CLI thin and improves testability by
allowing the calendar dependency to be mocked via a simple protocol.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, List, Protocol, Sequence

from pendulum import DateTime

from ..domain.models import Appointment, Attendee, SchedulingResult
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)


class CalendarSourceProtocol(Protocol):
    """Protocol describing the calendar behaviour needed by the service."""

    async def get_appointments(
        self,
        names: List[str],
        start_time: DateTime,
        end_time: DateTime,
    ) -> Dict[str, List[Appointment]]:
        """Return booked appointments per attendee name."""


class MeetingFinderService:
    """
    Orchestrates appointment retrieval and slot calculation.

    Attendee profiles passed in are never modified; appointments from the
    calendar source are attached to copies.
    """

    def __init__(
        self,
        calendar_source: CalendarSourceProtocol,
        slot_calculator: SlotCalculator,
    ) -> None:
        self._calendar_source = calendar_source
        self._slot_calculator = slot_calculator

    async def find_slots(
        self,
        *,
        attendees: Sequence[Attendee],
        start_date: DateTime,
        end_date: DateTime,
        duration: timedelta,
        max_proposals: int,
    ) -> SchedulingResult:
        """
        Retrieve appointments, merge them into the profiles, and compute slots.
        """
        appointments = await self.fetch_appointments(
            names=[attendee.name for attendee in attendees],
            start_date=start_date,
            end_date=end_date,
        )
        profiles = self.attach_appointments(attendees, appointments)

        result = self._slot_calculator.find_slots(
            profiles,
            start_date,
            end_date,
            duration,
            max_proposals,
        )
        logger.info(
            "Scheduling %d attendee(s): %d common slot(s), fallback %s",
            len(profiles),
            len(result.common_slots),
            "used" if result.max_attendance is not None else "not used",
        )
        return result

    async def fetch_appointments(
        self,
        *,
        names: Sequence[str],
        start_date: DateTime,
        end_date: DateTime,
    ) -> Dict[str, List[Appointment]]:
        """Fetch appointments for the requested attendees."""
        name_list = list(names)

        appointments = await self._calendar_source.get_appointments(
            names=name_list,
            start_time=start_date,
            end_time=end_date,
        )

        return self._ensure_appointment_entries(name_list, appointments)

    @staticmethod
    def attach_appointments(
        attendees: Sequence[Attendee],
        appointments: Dict[str, List[Appointment]],
    ) -> List[Attendee]:
        """Return copies of the profiles with fetched appointments appended."""
        return [
            attendee.with_appointments(appointments.get(attendee.name, []))
            for attendee in attendees
        ]

    @staticmethod
    def _ensure_appointment_entries(
        names: Sequence[str],
        appointments: Dict[str, List[Appointment]],
    ) -> Dict[str, List[Appointment]]:
        """
        Ensure every requested attendee appears in the appointment map.

        Sources may omit attendees without events; we normalise that to an
        explicit empty list. Entries for attendees nobody asked for are dropped.
        """
        normalized: Dict[str, List[Appointment]] = {}

        for name in names:
            normalized[name] = list(appointments.get(name, []))

        ignored = sorted(set(appointments) - set(normalized))
        if ignored:
            logger.debug("Ignoring appointments for unrequested attendees: %s", ", ".join(ignored))

        return normalized
