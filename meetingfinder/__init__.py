"""
meetingfinder - find meeting slots across attendees in different time zones.
"""

__version__ = "0.1.0"
