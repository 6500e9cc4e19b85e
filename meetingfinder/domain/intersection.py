"""
Intersection of sorted free-interval lists.
"""

import logging
from typing import List, Sequence

from .models import TimeRange

logger = logging.getLogger(__name__)


def intersect_two(
    first: Sequence[TimeRange],
    second: Sequence[TimeRange]
) -> List[TimeRange]:
    """
    Intersect two ascending, non-overlapping lists with a two-pointer scan.

    Whichever range ends first cannot overlap anything after the other
    pointer's current range, so it is the one to advance (both on a tie).
    Runs in O(n + m).
    """
    intersections: List[TimeRange] = []
    i = j = 0

    while i < len(first) and j < len(second):
        left = first[i]
        right = second[j]

        overlap_start = max(left.start, right.start)
        overlap_end = min(left.end, right.end)
        if overlap_start < overlap_end:
            intersections.append(TimeRange(start=overlap_start, end=overlap_end))

        if left.end < right.end:
            i += 1
        elif right.end < left.end:
            j += 1
        else:
            i += 1
            j += 1

    return intersections


def intersect_all(interval_lists: Sequence[Sequence[TimeRange]]) -> List[TimeRange]:
    """
    Fold ``intersect_two`` left to right over all lists.

    A single list is returned as is; there is no "all time" seed range.
    Only times when ALL lists are free will be returned.
    """
    if not interval_lists:
        return []

    result = list(interval_lists[0])

    for index, intervals in enumerate(interval_lists[1:], start=2):
        if not result:
            break
        result = intersect_two(result, intervals)
        logger.debug("%d common interval(s) after folding in list %d", len(result), index)

    return result
