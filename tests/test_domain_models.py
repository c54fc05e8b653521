"""
Tests for domain models.
"""

import pendulum
import pytest

from bookingslots.domain.exceptions import ScheduleConfigError
from bookingslots.domain.models import (
    DEFAULT_OPERATING_HOURS,
    Appointment,
    Business,
    OperatingHour,
    Service,
    SlotCheck,
    TimeSlot,
    WeeklySchedule,
    as_schedule,
    format_duration,
    format_operating_hours,
    parse_time_to_minutes,
)

TZ = "America/New_York"


class TestTimeParsing:
    """Tests for HH:MM parsing."""

    @pytest.mark.parametrize("value, expected", [
        ("00:00", 0),
        ("09:30", 570),
        ("9:05", 545),
        ("23:59", 1439),
    ])
    def test_valid_times(self, value, expected):
        assert parse_time_to_minutes(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "09:60", "9am", "", "09:00:00", "nine"])
    def test_malformed_times_raise(self, value):
        """Garbage must fail loudly instead of producing a bogus minute count."""
        with pytest.raises(ScheduleConfigError, match="expected HH:MM"):
            parse_time_to_minutes(value)


class TestOperatingHour:
    """Tests for OperatingHour model."""

    def test_open_day(self):
        hours = OperatingHour("Monday", "09:00", "17:30")

        assert hours.is_open
        assert hours.open_minutes == 540
        assert hours.close_minutes == 1050

    def test_close_before_open_raises(self):
        with pytest.raises(ScheduleConfigError, match="must be after opening time"):
            OperatingHour("Monday", "17:00", "09:00")

    def test_malformed_time_raises(self):
        with pytest.raises(ScheduleConfigError):
            OperatingHour("Monday", "9 o'clock", "17:00")

    def test_unknown_day_raises(self):
        with pytest.raises(ScheduleConfigError, match="Unknown weekday"):
            OperatingHour("Mon", "09:00", "17:00")

    def test_closed_day_ignores_times(self):
        """Times on a closed day are not interpreted."""
        hours = OperatingHour("Sunday", "whenever", None, closed=True)

        assert not hours.is_open

    def test_missing_close_is_not_open(self):
        assert not OperatingHour("Monday", open="09:00").is_open

    def test_from_record(self):
        hours = OperatingHour.from_record({"day": "Friday", "open": "08:00", "close": "14:00", "closed": False})

        assert hours == OperatingHour("Friday", "08:00", "14:00")

    def test_from_record_without_day_raises(self):
        with pytest.raises(ScheduleConfigError):
            OperatingHour.from_record({"open": "08:00", "close": "14:00"})


class TestWeeklySchedule:
    """Tests for WeeklySchedule model."""

    def test_for_day(self):
        schedule = WeeklySchedule(hours=(
            OperatingHour("Monday", "09:00", "17:00"),
            OperatingHour("Sunday", closed=True),
        ))

        assert schedule.for_day("Monday").open == "09:00"
        assert schedule.for_day("Sunday").closed
        assert schedule.for_day("Tuesday") is None

    def test_for_date(self):
        monday = pendulum.parse("2024-11-25", tz=TZ)

        assert DEFAULT_OPERATING_HOURS.for_date(monday).day == "Monday"

    def test_duplicate_weekday_raises(self):
        """Duplicate entries are a configuration error, not silently merged."""
        with pytest.raises(ScheduleConfigError, match="Duplicate operating hours for Monday"):
            WeeklySchedule.from_records([
                {"day": "Monday", "open": "09:00", "close": "17:00", "closed": False},
                {"day": "Monday", "open": "10:00", "close": "12:00", "closed": False},
            ])

    def test_as_schedule_accepts_lists(self):
        schedule = as_schedule([OperatingHour("Monday", "09:00", "17:00")])

        assert isinstance(schedule, WeeklySchedule)
        assert len(schedule) == 1
        assert as_schedule(schedule) is schedule

    def test_as_schedule_validates_duplicates(self):
        with pytest.raises(ScheduleConfigError):
            as_schedule([OperatingHour("Monday", "09:00", "17:00"), OperatingHour("Monday", closed=True)])

    def test_as_schedule_rejects_unknown_entries(self):
        with pytest.raises(ScheduleConfigError):
            as_schedule(["Monday 9-5"])

    def test_format_operating_hours(self):
        schedule = [
            OperatingHour("Monday", "09:00", "19:00"),
            OperatingHour("Saturday", "10:00", "12:30"),
            OperatingHour("Sunday", closed=True),
        ]

        assert format_operating_hours(schedule) == (
            "Monday: 9:00 AM – 7:00 PM\n"
            "Saturday: 10:00 AM – 12:30 PM\n"
            "Sunday: Closed"
        )
        assert format_operating_hours(schedule, joiner="; ").startswith("Monday: 9:00 AM – 7:00 PM; ")

    def test_default_operating_hours(self):
        assert len(DEFAULT_OPERATING_HOURS) == 7
        assert DEFAULT_OPERATING_HOURS.for_day("Sunday").open == "10:00"


class TestAppointment:
    """Tests for Appointment model."""

    def test_blocking_statuses(self):
        start = pendulum.parse("2024-11-25 09:00", tz=TZ)
        end = pendulum.parse("2024-11-25 10:00", tz=TZ)

        assert Appointment("a", start, end, "confirmed").is_blocking
        assert Appointment("a", start, end, "pending").is_blocking
        assert Appointment("a", start, end, "something_new").is_blocking
        assert not Appointment("a", start, end, "cancelled").is_blocking
        assert not Appointment("a", start, end, "no_show").is_blocking

    def test_overlap_is_half_open(self):
        apt = Appointment(
            "a",
            pendulum.parse("2024-11-25 09:00", tz=TZ),
            pendulum.parse("2024-11-25 09:30", tz=TZ),
        )

        assert apt.overlaps(pendulum.parse("2024-11-25 09:15", tz=TZ), pendulum.parse("2024-11-25 09:45", tz=TZ))
        assert not apt.overlaps(pendulum.parse("2024-11-25 09:30", tz=TZ), pendulum.parse("2024-11-25 10:00", tz=TZ))
        assert not apt.overlaps(pendulum.parse("2024-11-25 08:30", tz=TZ), pendulum.parse("2024-11-25 09:00", tz=TZ))

    def test_from_record(self):
        apt = Appointment.from_record({
            "id": 42,
            "start_time": "2024-11-25T15:00:00+00:00",
            "end_time": "2024-11-25T15:45:00+00:00",
            "status": "confirmed",
        })

        assert apt.id == "42"
        assert apt.start_time == pendulum.parse("2024-11-25 10:00", tz=TZ)
        assert (apt.end_time - apt.start_time).in_minutes() == 45

    def test_from_record_defaults_status(self):
        apt = Appointment.from_record({
            "id": "x",
            "start_time": "2024-11-25T15:00:00Z",
            "end_time": "2024-11-25T16:00:00Z",
            "status": None,
        })

        assert apt.status == "confirmed"


class TestTimeSlot:
    """Tests for TimeSlot model."""

    def test_invalid_slot_raises(self):
        start = pendulum.parse("2024-11-25 10:00", tz=TZ)

        with pytest.raises(ValueError, match="must be before end time"):
            TimeSlot(start=start, end=start)

    def test_derived_fields(self):
        slot = TimeSlot(
            start=pendulum.parse("2024-11-25 14:30", tz=TZ),
            end=pendulum.parse("2024-11-25 16:00", tz=TZ),
        )

        assert slot.display_time == "2:30 PM"
        assert slot.time_label == "14:30"
        assert slot.date_key == "2024-11-25"
        assert slot.start_iso == "2024-11-25T19:30:00Z"
        assert slot.end_iso == "2024-11-25T21:00:00Z"
        assert slot.duration_minutes() == 90
        assert slot.format_display() == "Monday, 2024-11-25 | 2:30 PM – 4:00 PM"

    @pytest.mark.parametrize("value, expected", [
        ("2024-11-25 00:30", "12:30 AM"),
        ("2024-11-25 12:00", "12:00 PM"),
        ("2024-11-25 09:05", "9:05 AM"),
    ])
    def test_display_time_edges(self, value, expected):
        start = pendulum.parse(value, tz=TZ)

        assert TimeSlot(start=start, end=start.add(minutes=30)).display_time == expected


class TestSlotCheck:
    """Tests for SlotCheck."""

    def test_messages(self):
        assert SlotCheck(available=True).message == "Slot is available"
        assert SlotCheck(available=False, reason="conflict").message == "Time slot already booked"
        assert SlotCheck(available=False, reason="closed").message == "Business is closed on this day"

    def test_to_dict(self):
        assert SlotCheck(available=True).to_dict() == {"available": True}
        assert SlotCheck(available=False, reason="past").to_dict() == {"available": False, "reason": "past"}


class TestServiceAndBusiness:
    """Tests for Service and Business models."""

    @pytest.mark.parametrize("minutes, expected", [
        (45, "45 minutes"),
        (60, "1 hour"),
        (120, "2 hours"),
        (90, "1h 30m"),
    ])
    def test_format_duration(self, minutes, expected):
        assert format_duration(minutes) == expected

    def test_service_from_record(self):
        service = Service.from_record({
            "id": "s-cut",
            "name": "Haircut",
            "price_cents": 4500,
            "duration_minutes": 45,
            "description": None,
        })

        assert service.price_label == "$45.00"
        assert service.duration_label == "45 minutes"
        assert service.description == ""

    def test_business_from_record_defaults_timezone(self):
        business = Business.from_record({
            "id": "b1",
            "name": "Studio",
            "timezone": None,
            "hours_json": [{"day": "Monday", "open": "09:00", "close": "17:00", "closed": False}],
        })

        assert business.timezone == "America/New_York"
        assert business.hours.for_day("Monday").is_open

    def test_business_from_record_uses_given_default_timezone(self):
        business = Business.from_record({"id": "b1", "name": "Studio"}, default_timezone="Europe/Berlin")

        assert business.timezone == "Europe/Berlin"

    def test_business_with_bad_hours_raises(self):
        with pytest.raises(ScheduleConfigError):
            Business.from_record({
                "id": "b1",
                "name": "Studio",
                "hours_json": [{"day": "Monday", "open": "9am", "close": "5pm", "closed": False}],
            })
