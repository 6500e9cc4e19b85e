"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .exceptions import (
    CalendarSourceError,
    InvalidConfigurationError,
    InvalidIntervalError,
    SchedulingError,
)
from .models import (
    Appointment,
    Attendee,
    MaxAttendanceSlot,
    SchedulingResult,
    TimeRange,
    WorkingHours,
)
from .slot_calculator import DEFAULT_GRANULARITY, SlotCalculator

__all__ = [
    "Appointment",
    "Attendee",
    "CalendarSourceError",
    "DEFAULT_GRANULARITY",
    "InvalidConfigurationError",
    "InvalidIntervalError",
    "MaxAttendanceSlot",
    "SchedulingError",
    "SchedulingResult",
    "SlotCalculator",
    "TimeRange",
    "WorkingHours",
]
