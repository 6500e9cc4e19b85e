"""
Domain-specific exception hierarchy for the meeting finder application.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidIntervalError(SchedulingError, ValueError):
    """Raised when an interval-like value ends before it starts."""


class InvalidConfigurationError(SchedulingError, ValueError):
    """Raised when scheduler settings or request parameters are invalid."""


class CalendarSourceError(SchedulingError):
    """Raised when calendar data cannot be loaded or parsed."""
