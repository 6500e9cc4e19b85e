"""
Tests for slot calculator.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, time
from itertools import permutations

import pendulum
import pytest

from meetingfinder.domain.exceptions import InvalidConfigurationError
from meetingfinder.domain.free_time import compute_free_intervals
from meetingfinder.domain.models import Appointment, Attendee, TimeRange, WorkingHours
from meetingfinder.domain.slot_calculator import DEFAULT_GRANULARITY, SlotCalculator


WARSAW = "Europe/Warsaw"
NEW_YORK = "America/New_York"

ONE_HOUR = pendulum.duration(hours=1)

# Monday 2025-03-24 08:00 UTC to Saturday 2025-03-29 18:00 UTC
GLOBAL_START = pendulum.datetime(2025, 3, 24, 8, 0, tz="UTC")
GLOBAL_END = pendulum.datetime(2025, 3, 29, 18, 0, tz="UTC")


def utc(value: str):
    return pendulum.parse(value, tz="UTC")


def make_attendee(name, timezone, start, end):
    return Attendee(
        name=name,
        timezone=timezone,
        working_hours=WorkingHours(start_time=start, end_time=end)
    )


class TestFindCommonSlots:
    """Tests for SlotCalculator.find_common_slots."""

    def test_first_proposal_matches_working_start(self):
        """Warsaw 09:00 local is 08:00 UTC on 2025-03-24."""
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))
        calculator = SlotCalculator()

        proposals = calculator.find_common_slots(
            [alice], utc("2025-03-24 08:00"), utc("2025-03-24 18:00"), ONE_HOUR, 5
        )

        assert len(proposals) == 5
        assert proposals[0] == TimeRange(start=utc("2025-03-24 08:00"), end=utc("2025-03-24 09:00"))

    def test_proposal_ends_at_appointment_start(self):
        """Bob's 10:00 New York appointment starts at 14:00 UTC."""
        bob = make_attendee("bob", NEW_YORK, time(8, 30), time(16, 30))
        appointment = Appointment.from_local(date(2025, 3, 25), time(10, 0), time(11, 30), NEW_YORK)
        bob.add_appointment(appointment)
        calculator = SlotCalculator()

        proposals = calculator.find_common_slots(
            [bob], utc("2025-03-25 08:00"), utc("2025-03-25 18:00"), ONE_HOUR, 5
        )

        assert any(slot.end == appointment.start for slot in proposals)
        assert [slot.start.format("HH:mm") for slot in proposals] == [
            "12:30", "12:45", "13:00", "15:30", "15:45"
        ]
        assert not any(slot.overlaps(appointment.time_range) for slot in proposals)

    def test_full_day_appointment_gives_no_slots(self):
        charlie = make_attendee("charlie", WARSAW, time(9, 0), time(17, 0))
        charlie.add_appointment(Appointment.from_local(date(2025, 3, 26), time(9, 0), time(17, 0), WARSAW))
        calculator = SlotCalculator()

        proposals = calculator.find_common_slots(
            [charlie], utc("2025-03-26 08:00"), utc("2025-03-26 18:00"), ONE_HOUR, 5
        )

        assert proposals == []

    def test_identical_working_hours_share_slots(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))
        bob = make_attendee("bob", WARSAW, time(9, 0), time(17, 0))
        calculator = SlotCalculator()

        proposals = calculator.find_common_slots([alice, bob], GLOBAL_START, GLOBAL_END, ONE_HOUR, 5)

        assert len(proposals) == 5
        assert proposals[0].start == GLOBAL_START

    def test_non_overlapping_working_hours(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(11, 0))
        bob = make_attendee("bob", WARSAW, time(15, 0), time(17, 0))
        calculator = SlotCalculator()

        proposals = calculator.find_common_slots([alice, bob], GLOBAL_START, GLOBAL_END, ONE_HOUR, 5)

        assert proposals == []

    def test_across_time_zones(self):
        """Warsaw 09-17 (08-16 UTC) and New York 08:30-16:30 (12:30-20:30 UTC)."""
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))
        bob = make_attendee("bob", NEW_YORK, time(8, 30), time(16, 30))
        calculator = SlotCalculator(granularity=pendulum.duration(minutes=30))

        proposals = calculator.find_common_slots(
            [alice, bob], utc("2025-03-24 00:00"), utc("2025-03-25 00:00"), ONE_HOUR, 10
        )

        assert proposals == [
            TimeRange(start=utc("2025-03-24 12:30"), end=utc("2025-03-24 13:30")),
            TimeRange(start=utc("2025-03-24 13:00"), end=utc("2025-03-24 14:00")),
            TimeRange(start=utc("2025-03-24 13:30"), end=utc("2025-03-24 14:30")),
            TimeRange(start=utc("2025-03-24 14:00"), end=utc("2025-03-24 15:00")),
            TimeRange(start=utc("2025-03-24 14:30"), end=utc("2025-03-24 15:30")),
            TimeRange(start=utc("2025-03-24 15:00"), end=utc("2025-03-24 16:00")),
        ]

    @pytest.mark.parametrize("granularity_minutes, expected", [(15, 7), (30, 4)])
    def test_granularity(self, granularity_minutes, expected):
        alice = make_attendee("alice", "UTC", time(10, 0), time(12, 0))
        calculator = SlotCalculator(granularity=pendulum.duration(minutes=granularity_minutes))

        proposals = calculator.find_common_slots(
            [alice], utc("2025-03-24 10:00"), utc("2025-03-24 12:00"), pendulum.duration(minutes=30), 20
        )

        assert len(proposals) == expected

    def test_timeframe_outside_working_hours(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))

        proposals = SlotCalculator().find_common_slots(
            [alice], utc("2025-03-24 00:00"), utc("2025-03-24 01:00"), ONE_HOUR, 5
        )

        assert proposals == []

    def test_multiple_appointments(self):
        bob = make_attendee("bob", WARSAW, time(8, 0), time(18, 0))
        bob.add_appointment(Appointment.from_local(date(2025, 3, 24), time(10, 0), time(11, 0), WARSAW))
        bob.add_appointment(Appointment.from_local(date(2025, 3, 24), time(14, 0), time(15, 0), WARSAW))

        proposals = SlotCalculator().find_common_slots([bob], GLOBAL_START, GLOBAL_END, ONE_HOUR, 50)

        assert proposals
        for slot in proposals:
            assert slot.duration_minutes() == 60
            assert not any(slot.overlaps(appointment.time_range) for appointment in bob.appointments)

    def test_slots_lie_inside_everyones_free_time(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))
        bob = make_attendee("bob", NEW_YORK, time(8, 30), time(16, 30))
        bob.add_appointment(Appointment.from_local(date(2025, 3, 25), time(9, 0), time(10, 0), NEW_YORK))

        proposals = SlotCalculator().find_common_slots([alice, bob], GLOBAL_START, GLOBAL_END, ONE_HOUR, 100)

        assert proposals
        for attendee in (alice, bob):
            free = compute_free_intervals(attendee, GLOBAL_START, GLOBAL_END)
            for slot in proposals:
                assert any(interval.contains(slot) for interval in free)

    def test_attendee_order_does_not_matter(self):
        attendees = [
            make_attendee("alice", WARSAW, time(9, 0), time(17, 0)),
            make_attendee("bob", NEW_YORK, time(8, 30), time(16, 30)),
            make_attendee("carol", "Europe/London", time(10, 0), time(18, 0)),
        ]
        calculator = SlotCalculator()
        expected = calculator.find_common_slots(attendees, GLOBAL_START, GLOBAL_END, ONE_HOUR, 20)

        for ordering in permutations(attendees):
            assert calculator.find_common_slots(list(ordering), GLOBAL_START, GLOBAL_END, ONE_HOUR, 20) == expected

    def test_executor_gives_same_result(self):
        attendees = [
            make_attendee("alice", WARSAW, time(9, 0), time(17, 0)),
            make_attendee("bob", NEW_YORK, time(8, 30), time(16, 30)),
        ]
        expected = SlotCalculator().find_common_slots(attendees, GLOBAL_START, GLOBAL_END, ONE_HOUR, 20)

        with ThreadPoolExecutor(max_workers=2) as executor:
            calculator = SlotCalculator(executor=executor)
            assert calculator.find_common_slots(attendees, GLOBAL_START, GLOBAL_END, ONE_HOUR, 20) == expected

    def test_empty_attendee_list(self):
        assert SlotCalculator().find_common_slots([], GLOBAL_START, GLOBAL_END, ONE_HOUR, 5) == []

    def test_zero_proposals(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))

        assert SlotCalculator().find_common_slots([alice], GLOBAL_START, GLOBAL_END, ONE_HOUR, 0) == []

    def test_duration_longer_than_timeframe(self):
        alice = make_attendee("alice", "UTC", time(0, 0), time(23, 59))
        calculator = SlotCalculator()
        start, end = utc("2025-03-24 09:00"), utc("2025-03-24 10:00")

        assert calculator.find_common_slots([alice], start, end, pendulum.duration(hours=2), 5) == []
        assert calculator.find_max_attendance_slot([alice], start, end, pendulum.duration(hours=2)) is None


class TestFindMaxAttendanceSlot:
    """Tests for SlotCalculator.find_max_attendance_slot."""

    def test_disjoint_working_hours_returns_one_attendee(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(11, 0))
        bob = make_attendee("bob", WARSAW, time(15, 0), time(17, 0))

        result = SlotCalculator().find_max_attendance_slot([alice, bob], GLOBAL_START, GLOBAL_END, ONE_HOUR)

        assert result is not None
        assert len(result.attendees) == 1
        assert result.attendee_names() == ["alice"]
        assert result.time_range == TimeRange(start=utc("2025-03-24 08:00"), end=utc("2025-03-24 09:00"))

    def test_short_window_attendee_is_left_out(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))
        bob = make_attendee("bob", WARSAW, time(9, 0), time(17, 0))
        charlie = make_attendee("charlie", WARSAW, time(7, 0), time(8, 0))

        result = SlotCalculator().find_max_attendance_slot(
            [alice, bob, charlie], GLOBAL_START, GLOBAL_END, ONE_HOUR
        )

        assert result is not None
        assert len(result.attendees) < 3
        assert charlie not in result.attendees
        assert result.attendee_names() == ["alice", "bob"]

    def test_nobody_has_enough_time(self):
        alice = make_attendee("alice", "UTC", time(9, 0), time(9, 30))

        result = SlotCalculator().find_max_attendance_slot([alice], GLOBAL_START, GLOBAL_END, ONE_HOUR)

        assert result is None

    def test_empty_attendee_list(self):
        assert SlotCalculator().find_max_attendance_slot([], GLOBAL_START, GLOBAL_END, ONE_HOUR) is None

    def test_returned_attendees_are_the_profiles(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))

        result = SlotCalculator().find_max_attendance_slot([alice], GLOBAL_START, GLOBAL_END, ONE_HOUR)

        assert next(iter(result.attendees)) is alice


class TestFindSlots:
    """Tests for the combined search with fallback."""

    def test_common_slots_skip_fallback(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))
        bob = make_attendee("bob", WARSAW, time(9, 0), time(17, 0))

        result = SlotCalculator().find_slots([alice, bob], GLOBAL_START, GLOBAL_END, ONE_HOUR, 3)

        assert len(result.common_slots) == 3
        assert result.max_attendance is None

    def test_fallback_when_nothing_common(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(11, 0))
        bob = make_attendee("bob", WARSAW, time(15, 0), time(17, 0))

        result = SlotCalculator().find_slots([alice, bob], GLOBAL_START, GLOBAL_END, ONE_HOUR, 3)

        assert result.common_slots == []
        assert result.max_attendance is not None
        assert result.is_schedulable


class TestValidation:
    """Invalid settings and requests are rejected before any calculation."""

    def test_default_granularity(self):
        assert SlotCalculator().granularity == DEFAULT_GRANULARITY
        assert DEFAULT_GRANULARITY == pendulum.duration(minutes=15)

    @pytest.mark.parametrize("minutes", [0, -15])
    def test_non_positive_granularity(self, minutes):
        with pytest.raises(InvalidConfigurationError, match="Granularity"):
            SlotCalculator(granularity=pendulum.duration(minutes=minutes))

    @pytest.mark.parametrize("minutes", [0, -30])
    def test_non_positive_duration(self, minutes):
        with pytest.raises(InvalidConfigurationError, match="Meeting duration"):
            SlotCalculator().find_common_slots(
                [], GLOBAL_START, GLOBAL_END, pendulum.duration(minutes=minutes), 5
            )

    def test_negative_max_proposals(self):
        with pytest.raises(InvalidConfigurationError, match="max_proposals"):
            SlotCalculator().find_common_slots([], GLOBAL_START, GLOBAL_END, ONE_HOUR, -1)

    @pytest.mark.parametrize("end", [GLOBAL_START, GLOBAL_START.subtract(hours=1)])
    def test_timeframe_must_not_be_empty(self, end):
        with pytest.raises(InvalidConfigurationError, match="Timeframe end"):
            SlotCalculator().find_max_attendance_slot([], GLOBAL_START, end, ONE_HOUR)

    def test_attendees_must_not_be_none(self):
        with pytest.raises(InvalidConfigurationError):
            SlotCalculator().find_common_slots(None, GLOBAL_START, GLOBAL_END, ONE_HOUR, 5)

    def test_repeated_attendee_uses_first_profile(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(17, 0))
        other_alice = make_attendee("alice", NEW_YORK, time(9, 0), time(17, 0))
        calculator = SlotCalculator()

        proposals = calculator.find_common_slots(
            [alice, other_alice], GLOBAL_START, GLOBAL_END, ONE_HOUR, 5
        )

        assert proposals == calculator.find_common_slots([alice], GLOBAL_START, GLOBAL_END, ONE_HOUR, 5)
        assert proposals[0].start == utc("2025-03-24 08:00")

    def test_repeated_attendee_counted_once_in_fallback(self):
        alice = make_attendee("alice", WARSAW, time(9, 0), time(10, 0))
        bob = make_attendee("bob", NEW_YORK, time(9, 0), time(10, 0))

        result = SlotCalculator().find_slots(
            [alice, bob, alice], GLOBAL_START, GLOBAL_END, ONE_HOUR, 5
        )

        assert result.common_slots == []
        assert result.max_attendance.attendee_names() == ["alice"]

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            SlotCalculator(granularity=pendulum.duration(minutes=0))
