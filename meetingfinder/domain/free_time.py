"""
Derivation of an attendee's free time within a search timeframe.

For every local calendar day the timeframe touches, the attendee's working
hours are anchored in their own time zone, clipped to the timeframe, and the
overlapping appointments are subtracted from what remains.
"""

import logging
from concurrent.futures import Executor
from datetime import date
from functools import partial
from typing import Iterator, List, Optional, Sequence

from pendulum import DateTime

from .models import Appointment, Attendee, TimeRange, WorkingHours

logger = logging.getLogger(__name__)


def compute_free_intervals(
    attendee: Attendee,
    timeframe_start: DateTime,
    timeframe_end: DateTime
) -> List[TimeRange]:
    """
    Compute the free intervals of one attendee within [timeframe_start, timeframe_end).

    Args:
        attendee: The attendee profile (read only)
        timeframe_start: Start of the global search timeframe
        timeframe_end: End of the global search timeframe

    Returns:
        Sorted, non-overlapping, non-empty free intervals
    """
    timeframe = TimeRange(start=timeframe_start, end=timeframe_end)
    free_intervals: List[TimeRange] = []

    for day in local_dates(timeframe, attendee.timezone):
        working_period = working_period_for_day(
            attendee.working_hours, day, attendee.timezone, timeframe
        )
        if working_period is None:
            continue

        overlapping = [
            appointment for appointment in attendee.appointments
            if appointment.overlaps(working_period)
        ]
        free_intervals.extend(subtract_appointments(working_period, overlapping))

    logger.debug(
        "Attendee %s has %d free interval(s) in %s",
        attendee.name, len(free_intervals), timeframe
    )
    return free_intervals


def compute_all_free_intervals(
    attendees: Sequence[Attendee],
    timeframe_start: DateTime,
    timeframe_end: DateTime,
    executor: Optional[Executor] = None
) -> List[List[TimeRange]]:
    """
    Compute free intervals for every attendee, in attendee order.

    Each derivation only reads its own profile, so they may run on an
    executor without any locking.
    """
    derive = partial(
        compute_free_intervals,
        timeframe_start=timeframe_start,
        timeframe_end=timeframe_end
    )
    if executor is None:
        return [derive(attendee) for attendee in attendees]
    return list(executor.map(derive, attendees))


def local_dates(timeframe: TimeRange, timezone: str) -> Iterator[date]:
    """Yield every local date in ``timezone`` that the timeframe touches, both ends included."""
    current = timeframe.start.in_timezone(timezone).date()
    last = timeframe.end.in_timezone(timezone).date()

    while current <= last:
        yield current
        current = current.add(days=1)


def working_period_for_day(
    working_hours: WorkingHours,
    day: date,
    timezone: str,
    timeframe: TimeRange
) -> Optional[TimeRange]:
    """
    Working hours of ``day`` clipped to the timeframe.
    Returns None if nothing of the working day lies inside the timeframe.
    """
    working_range = working_hours.for_date(day, timezone)
    if working_range is None:
        return None

    clipped_start = max(working_range.start, timeframe.start)
    clipped_end = min(working_range.end, timeframe.end)

    if not clipped_start < clipped_end:
        return None

    return TimeRange(start=clipped_start, end=clipped_end)


def subtract_appointments(
    working_period: TimeRange,
    appointments: Sequence[Appointment]
) -> List[TimeRange]:
    """
    Subtract appointments from a working period, yielding free time ranges.

    Example:
    Working: 09:00 - 17:00
    Busy: [10:00-11:00, 10:30-10:45, 14:00-15:00]
    Result: [09:00-10:00, 11:00-14:00, 15:00-17:00]

    Overlapping or nested appointments are handled by never moving the cursor
    backwards.
    """
    free_ranges: List[TimeRange] = []
    cursor = working_period.start

    for appointment in sorted(appointments, key=lambda a: (a.start, a.end)):
        if appointment.start > cursor:
            free_ranges.append(
                TimeRange(start=cursor, end=min(appointment.start, working_period.end))
            )

        cursor = max(cursor, appointment.end)
        if cursor >= working_period.end:
            break

    if cursor < working_period.end:
        free_ranges.append(TimeRange(start=cursor, end=working_period.end))

    return free_ranges
