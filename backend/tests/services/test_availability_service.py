"""
Tests for the two availability views.

The timeslot view compares non-cancelled bookings with the number of active
courts; the court view treats any non-cancelled booking as occupying the
court. Neither consults capacity.
"""

from datetime import timedelta

import pytest

from reservation_api.core.exceptions import InvalidDateException
from reservation_api.services.availability_service import AvailabilityService
from reservation_api.utils.time_utils import studio_today


@pytest.fixture
def service(db):
    return AvailabilityService(db)


class TestTimeslotAvailability:
    def test_counts_bookings_against_active_courts(
        self, service, make_court, make_timeslot, make_user, make_reservation, court, timeslot, tomorrow
    ):
        make_court(name="Reformer Court B")
        make_court(name="Retired Court", is_active=False)
        evening = make_timeslot(time="19:00")
        make_reservation(make_user(), court, timeslot, tomorrow, status="pending")
        make_reservation(make_user(), court, timeslot, tomorrow, status="cancelled")

        rows = {row["timeslot"].id: row for row in service.timeslot_availability(tomorrow.isoformat())}

        assert rows[timeslot.id]["booked_count"] == 1
        assert rows[timeslot.id]["available_courts"] == 1
        assert rows[timeslot.id]["available"] is True
        assert rows[evening.id]["booked_count"] == 0
        assert rows[evening.id]["available_courts"] == 2

    def test_available_courts_may_go_negative(
        self, service, make_user, make_reservation, court, timeslot, tomorrow
    ):
        for status in ("pending", "confirmed", "completed"):
            make_reservation(make_user(), court, timeslot, tomorrow, status=status)

        (row,) = service.timeslot_availability(tomorrow.isoformat())

        assert row["booked_count"] == 3
        assert row["available_courts"] == -2
        assert row["available"] is False

    def test_inactive_timeslots_are_omitted(self, service, make_timeslot, timeslot, tomorrow):
        make_timeslot(time="05:00", is_active=False)
        rows = service.timeslot_availability(tomorrow.isoformat())
        assert [row["timeslot"].id for row in rows] == [timeslot.id]

    def test_other_dates_do_not_count(self, service, make_user, make_reservation, court, timeslot, tomorrow):
        make_reservation(make_user(), court, timeslot, tomorrow + timedelta(days=1))
        (row,) = service.timeslot_availability(tomorrow.isoformat())
        assert row["booked_count"] == 0

    def test_invalid_date(self, service):
        with pytest.raises(InvalidDateException):
            service.timeslot_availability("2030-02-31")


class TestCourtAvailability:
    def test_single_booking_marks_court_unavailable(
        self, service, make_court, make_user, make_reservation, court, timeslot, tomorrow
    ):
        second = make_court(name="Reformer Court B", capacity=5)
        make_reservation(make_user(), second, timeslot, tomorrow, status="pending")

        rows = {row["court"].id: row["available"] for row in service.court_availability(tomorrow.isoformat(), timeslot.id)}

        assert rows == {court.id: True, second.id: False}

    def test_cancelled_bookings_free_the_court(
        self, service, make_user, make_reservation, court, timeslot, tomorrow
    ):
        make_reservation(make_user(), court, timeslot, tomorrow, status="cancelled")
        (row,) = service.court_availability(tomorrow.isoformat(), timeslot.id)
        assert row["available"] is True

    def test_unknown_timeslot_has_no_bookings(self, service, court, tomorrow):
        (row,) = service.court_availability(tomorrow.isoformat(), "unknown")
        assert row["available"] is True


def test_available_dates_start_today(service):
    dates = service.available_dates()
    assert dates[0] == studio_today()
    assert dates[1] - dates[0] == timedelta(days=1)
