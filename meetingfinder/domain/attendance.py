"""
Sweep-line search for the best-attended meeting window.

Used as the fallback when no slot suits every attendee: each free interval
becomes a start and an end event, the events are swept in time order, and
the largest set of attendees sharing a gap long enough for the meeting wins.
"""

import logging
from collections import Counter
from datetime import timedelta
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence

from pendulum import DateTime

from .models import Attendee, MaxAttendanceSlot, TimeRange

logger = logging.getLogger(__name__)

# Start events sort before end events at the same instant.
START = 0
END = 1


class SweepEvent(NamedTuple):
    """An attendee becoming available (START) or unavailable (END)."""
    instant: DateTime
    kind: int
    name: str


def build_events(free_intervals: Mapping[Attendee, Sequence[TimeRange]]) -> List[SweepEvent]:
    """
    Turn every free interval into a start and an end event, sorted.

    Ordering is by instant, then start before end, then attendee name, which
    makes the sweep fully deterministic.
    """
    events: List[SweepEvent] = []

    for attendee, intervals in free_intervals.items():
        for interval in intervals:
            events.append(SweepEvent(interval.start, START, attendee.name))
            events.append(SweepEvent(interval.end, END, attendee.name))

    events.sort()
    return events


def find_max_attendance(
    free_intervals: Mapping[Attendee, Sequence[TimeRange]],
    duration: timedelta,
    timeframe_end: Optional[DateTime] = None
) -> Optional[MaxAttendanceSlot]:
    """
    Find the window of ``duration`` with the most simultaneously free attendees.

    Args:
        free_intervals: Free intervals per attendee
        duration: Required meeting length
        timeframe_end: Optional bound no window may extend past

    Returns:
        The earliest best window with its attendees, or None if no attendee
        has a free interval of at least ``duration``
    """
    attendees_by_name: Dict[str, Attendee] = {
        attendee.name: attendee for attendee in free_intervals
    }
    events = build_events(free_intervals)

    # Counts rather than a plain set: one attendee may have touching intervals.
    available: Counter = Counter()
    previous: Optional[DateTime] = None
    best_start: Optional[DateTime] = None
    best_names: frozenset = frozenset()

    for event in events:
        if previous is not None and event.instant > previous:
            gap_end = event.instant
            if timeframe_end is not None:
                gap_end = min(gap_end, timeframe_end)

            if previous + duration <= gap_end and len(available) > len(best_names):
                best_start = previous
                best_names = frozenset(available)

        if event.kind == START:
            available[event.name] += 1
        else:
            available[event.name] -= 1
            if available[event.name] <= 0:
                del available[event.name]

        previous = event.instant

    if best_start is None:
        logger.debug("No attendee has %s of free time", duration)
        return None

    slot = MaxAttendanceSlot(
        time_range=TimeRange(start=best_start, end=best_start + duration),
        attendees=frozenset(attendees_by_name[name] for name in best_names)
    )
    logger.debug(
        "Best-attended window %s with %d attendee(s)",
        slot.time_range, len(slot.attendees)
    )
    return slot
