"""
Core business logic for calculating meeting slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from concurrent.futures import Executor
from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import pendulum
from pendulum import DateTime

from .attendance import find_max_attendance
from .exceptions import InvalidConfigurationError
from .free_time import compute_all_free_intervals
from .intersection import intersect_all
from .models import Attendee, MaxAttendanceSlot, SchedulingResult, TimeRange, to_instant
from .proposals import generate_proposals

logger = logging.getLogger(__name__)

DEFAULT_GRANULARITY = pendulum.duration(minutes=15)


def unique_attendees(attendees: Sequence[Attendee]) -> List[Attendee]:
    """Keep the first profile for each attendee name, in order."""
    unique: Dict[str, Attendee] = {}
    for attendee in attendees:
        if attendee.name in unique:
            logger.debug("Ignoring repeated attendee %s", attendee.name)
            continue
        unique[attendee.name] = attendee
    return list(unique.values())


class SlotCalculator:
    """
    Calculates meeting slots for attendees in their own time zones.

    Algorithm:
    1. For each attendee, derive free intervals per local working day
    2. Intersect all attendees' free intervals
    3. Slide a meeting-sized window across the common intervals
    4. If nothing is common, sweep all free intervals for the best-attended window
    """

    def __init__(
        self,
        granularity: timedelta = DEFAULT_GRANULARITY,
        executor: Optional[Executor] = None
    ):
        """
        Args:
            granularity: Step between candidate meeting starts, must be positive
            executor: Optional executor for per-attendee free-time derivation
        """
        if granularity <= timedelta(0):
            raise InvalidConfigurationError(
                f"Granularity must be greater than zero, got {granularity}"
            )
        self.granularity = granularity
        self.executor = executor

    def find_common_slots(
        self,
        attendees: Sequence[Attendee],
        timeframe_start: DateTime,
        timeframe_end: DateTime,
        meeting_duration: timedelta,
        max_proposals: int
    ) -> List[TimeRange]:
        """
        Find meeting slots during which every attendee is free.

        Args:
            attendees: Attendee profiles; an empty list yields no slots
            timeframe_start: Start of the search period
            timeframe_end: End of the search period
            meeting_duration: Length of the meeting
            max_proposals: Maximum number of slots to return

        Returns:
            Up to ``max_proposals`` slots in chronological order; empty if
            no slot suits everyone
        """
        if max_proposals < 0:
            raise InvalidConfigurationError(
                f"max_proposals must not be negative, got {max_proposals}"
            )
        start, end = self._validate_request(attendees, timeframe_start, timeframe_end, meeting_duration)
        attendees = unique_attendees(attendees)

        if not attendees:
            return []

        free_per_attendee = compute_all_free_intervals(attendees, start, end, self.executor)
        common = intersect_all(free_per_attendee)

        slots = generate_proposals(common, meeting_duration, self.granularity, max_proposals)
        logger.debug(
            "Found %d common interval(s) and %d proposal(s) for %d attendee(s)",
            len(common), len(slots), len(attendees)
        )
        return slots

    def find_max_attendance_slot(
        self,
        attendees: Sequence[Attendee],
        timeframe_start: DateTime,
        timeframe_end: DateTime,
        meeting_duration: timedelta
    ) -> Optional[MaxAttendanceSlot]:
        """
        Find the window of ``meeting_duration`` most attendees can join.

        Returns:
            The earliest best-attended slot, or None if no attendee has
            enough free time in the timeframe
        """
        start, end = self._validate_request(attendees, timeframe_start, timeframe_end, meeting_duration)
        attendees = unique_attendees(attendees)

        if not attendees:
            return None

        free_per_attendee = compute_all_free_intervals(attendees, start, end, self.executor)
        return find_max_attendance(
            dict(zip(attendees, free_per_attendee)),
            meeting_duration,
            timeframe_end=end
        )

    def find_slots(
        self,
        attendees: Sequence[Attendee],
        timeframe_start: DateTime,
        timeframe_end: DateTime,
        meeting_duration: timedelta,
        max_proposals: int
    ) -> SchedulingResult:
        """
        Find common slots, falling back to the best-attended slot if there are none.
        """
        common_slots = self.find_common_slots(
            attendees, timeframe_start, timeframe_end, meeting_duration, max_proposals
        )
        if common_slots or max_proposals == 0:
            return SchedulingResult(common_slots=common_slots)

        logger.info("No common slot found, searching for the best-attended slot")
        return SchedulingResult(
            common_slots=[],
            max_attendance=self.find_max_attendance_slot(
                attendees, timeframe_start, timeframe_end, meeting_duration
            )
        )

    @staticmethod
    def _validate_request(
        attendees: Sequence[Attendee],
        timeframe_start: DateTime,
        timeframe_end: DateTime,
        meeting_duration: timedelta
    ) -> Tuple[DateTime, DateTime]:
        """
        Reject invalid requests before any calculation starts.

        Returns:
            The timeframe bounds as UTC instants
        """
        if attendees is None:
            raise InvalidConfigurationError("Attendee list must not be None")

        if meeting_duration <= timedelta(0):
            raise InvalidConfigurationError(
                f"Meeting duration must be greater than zero, got {meeting_duration}"
            )

        start = to_instant(timeframe_start)
        end = to_instant(timeframe_end)
        if end <= start:
            raise InvalidConfigurationError(
                f"Timeframe end {end} must be after timeframe start {start}"
            )

        return start, end
