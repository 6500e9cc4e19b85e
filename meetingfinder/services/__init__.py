"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .meeting_finder import CalendarSourceProtocol, MeetingFinderService

__all__ = ["CalendarSourceProtocol", "MeetingFinderService"]
