"""
Domain models for time range and attendee calculations.

All instants are held as UTC ``pendulum.DateTime`` values. Wall-clock values
(working hours, appointment input) are converted at construction time, so the
algorithms only ever compare absolute points in time.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from typing import FrozenSet, Iterable, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidConfigurationError, InvalidIntervalError


WEEKDAY_NAMES = {
    0: "Montag",
    1: "Dienstag",
    2: "Mittwoch",
    3: "Donnerstag",
    4: "Freitag",
    5: "Samstag",
    6: "Sonntag"
}


def to_instant(value: datetime) -> DateTime:
    """
    Normalize an aware datetime to a UTC pendulum DateTime.

    Raises:
        InvalidIntervalError: If the datetime carries no time zone
    """
    if value.tzinfo is None:
        raise InvalidIntervalError(f"Datetime {value} has no time zone attached")
    return pendulum.instance(value).in_timezone(pendulum.UTC)


def validate_timezone(name: str) -> str:
    """Ensure ``name`` is a known IANA time zone and return it unchanged."""
    try:
        pendulum.timezone(name)
    except (ValueError, LookupError) as exc:
        raise InvalidConfigurationError(f"Unknown time zone: '{name}'") from exc
    return name


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: end must not be before start. A range with start == end is
    empty; two ranges that merely touch do not overlap.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        start = to_instant(self.start)
        end = to_instant(self.end)
        if end < start:
            raise InvalidIntervalError(f"End time {end} must not be before start time {start}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> timedelta:
        """Return the length of the range."""
        return timedelta(seconds=(self.end - self.start).total_seconds())

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def fits(self, duration: timedelta) -> bool:
        """Check whether a window of ``duration`` fits inside this range."""
        return self.start + duration <= self.end

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def contains(self, other: "TimeRange") -> bool:
        """Check if ``other`` lies completely inside this range."""
        return self.start <= other.start and other.end <= self.end

    def intersect(self, other: "TimeRange") -> Optional["TimeRange"]:
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def format_display(self, timezone: str = "UTC") -> str:
        """
        Format the range for display in the given time zone.
        Format: Wochentag, DD.MM.YYYY | HH:MM – HH:MM Uhr (N Min.)
        """
        start = self.start.in_timezone(timezone)
        end = self.end.in_timezone(timezone)

        weekday = WEEKDAY_NAMES[start.weekday()]
        date_str = start.format("DD.MM.YYYY")
        time_str = f"{start.format('HH:mm')} – {end.format('HH:mm')} Uhr"

        return f"{weekday}, {date_str} | {time_str} ({self.duration_minutes()} Min.)"

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')} UTC"


@dataclass(frozen=True)
class WorkingHours:
    """
    Daily working hours as a local wall-clock pair.

    The pair is anchored to a concrete date and zone every time it is
    evaluated, so daylight-saving transitions are taken from the zone
    database instead of a cached offset.
    """
    start_time: time
    end_time: time
    exclude_weekdays: Tuple[int, ...] = ()  # 0=Monday, 6=Sunday

    def __post_init__(self):
        if self.end_time < self.start_time:
            raise InvalidIntervalError(
                f"Working hours end {self.end_time} must not be before start {self.start_time}"
            )
        weekdays = tuple(self.exclude_weekdays)
        invalid = [day for day in weekdays if day not in range(7)]
        if invalid:
            raise InvalidConfigurationError(f"Weekdays must be between 0 and 6, got {invalid}")
        object.__setattr__(self, "exclude_weekdays", weekdays)

    def is_working_day(self, day: date) -> bool:
        """Check if a given local date is a working day."""
        return day.weekday() not in self.exclude_weekdays

    def for_date(self, day: date, timezone: str) -> Optional[TimeRange]:
        """
        Get the working hours range for a local date in ``timezone``.
        Returns None if it's not a working day.
        """
        if not self.is_working_day(day):
            return None

        start = pendulum.datetime(
            day.year, day.month, day.day,
            self.start_time.hour, self.start_time.minute, self.start_time.second,
            tz=timezone
        )
        end = pendulum.datetime(
            day.year, day.month, day.day,
            self.end_time.hour, self.end_time.minute, self.end_time.second,
            tz=timezone
        )

        # A start inside a DST gap is shifted forward and may pass the end.
        if end < start:
            end = start

        return TimeRange(start=start, end=end)


@dataclass(frozen=True)
class Appointment:
    """
    An already booked appointment, stored as absolute instants.
    """
    start: DateTime
    end: DateTime
    title: str = ""

    def __post_init__(self):
        start = to_instant(self.start)
        end = to_instant(self.end)
        if end < start:
            raise InvalidIntervalError(
                f"Appointment end {end} must not be before start {start}"
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def from_local(
        cls,
        day: date,
        start_time: time,
        end_time: time,
        timezone: str,
        title: str = ""
    ) -> "Appointment":
        """Build an appointment from a wall-clock pair on ``day`` in ``timezone``."""
        start = pendulum.datetime(
            day.year, day.month, day.day,
            start_time.hour, start_time.minute, start_time.second,
            tz=validate_timezone(timezone)
        )
        end = pendulum.datetime(
            day.year, day.month, day.day,
            end_time.hour, end_time.minute, end_time.second,
            tz=timezone
        )
        return cls(start=start, end=end, title=title)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def overlaps(self, time_range: TimeRange) -> bool:
        """Check if the appointment overlaps the given range."""
        return self.end > time_range.start and self.start < time_range.end


@dataclass(eq=False)
class Attendee:
    """
    A meeting attendee.

    ``name`` is the attendee's identity: equality and hashing use it alone,
    so profiles can be used as set members and mapping keys while their
    appointment list grows.
    """
    name: str
    timezone: str
    working_hours: WorkingHours
    appointments: List[Appointment] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            raise InvalidConfigurationError("Attendee name must not be empty")
        validate_timezone(self.timezone)
        self.appointments = list(self.appointments)

    def add_appointment(self, appointment: Appointment) -> None:
        """Add an appointment to the attendee's schedule."""
        self.appointments.append(appointment)

    def with_appointments(self, appointments: Iterable[Appointment]) -> "Attendee":
        """Return a copy of this profile with ``appointments`` appended."""
        return replace(self, appointments=[*self.appointments, *appointments])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Attendee):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)


@dataclass(frozen=True)
class MaxAttendanceSlot:
    """
    The best-attended meeting window when no slot suits everyone.
    """
    time_range: TimeRange
    attendees: FrozenSet[Attendee]

    def attendee_names(self) -> List[str]:
        """Names of the available attendees in alphabetical order."""
        return sorted(attendee.name for attendee in self.attendees)

    def format_display(self, timezone: str = "UTC") -> str:
        names = ", ".join(self.attendee_names())
        return f"{self.time_range.format_display(timezone)} – {len(self.attendees)} Teilnehmer: {names}"


@dataclass(frozen=True)
class SchedulingResult:
    """
    Outcome of a scheduling request.

    ``max_attendance`` is only computed when ``common_slots`` is empty.
    """
    common_slots: List[TimeRange]
    max_attendance: Optional[MaxAttendanceSlot] = None

    @property
    def has_common_slots(self) -> bool:
        return bool(self.common_slots)

    @property
    def is_schedulable(self) -> bool:
        return self.has_common_slots or self.max_attendance is not None
