"""
Meeting proposals from common free intervals.
"""

from datetime import timedelta
from itertools import chain, islice
from typing import Iterable, Iterator, List

from .models import TimeRange


def iter_slots(
    interval: TimeRange,
    duration: timedelta,
    granularity: timedelta
) -> Iterator[TimeRange]:
    """
    Slide a window of ``duration`` across ``interval`` in ``granularity`` steps.

    Yields slots in ascending start order; none ends after the interval.
    Nothing is yielded when the duration is longer than the interval.
    """
    start = interval.start
    while start + duration <= interval.end:
        yield TimeRange(start=start, end=start + duration)
        start = start + granularity


def generate_proposals(
    intervals: Iterable[TimeRange],
    duration: timedelta,
    granularity: timedelta,
    limit: int
) -> List[TimeRange]:
    """
    Concatenate the slots of all intervals in order and keep the first ``limit``.

    Slots are produced lazily, so nothing beyond the limit is built.
    """
    slots = chain.from_iterable(
        iter_slots(interval, duration, granularity) for interval in intervals
    )
    return list(islice(slots, limit))
