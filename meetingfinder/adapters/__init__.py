"""
Adapters layer - External calendar sources.
"""

from .json_calendar import JsonCalendarClient

__all__ = ["JsonCalendarClient"]
