"""
Core business logic for calculating bookable appointment slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).

Open/close times are wall-clock times in the business's time zone. Instants
(slot starts, appointment intervals, "now") are compared as absolute times.
"""

import logging
from datetime import date as date_type, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidRequestError
from .models import (
    DEFAULT_TIMEZONE,
    Appointment,
    OperatingHour,
    SlotCheck,
    TimeSlot,
    WeeklySchedule,
    as_schedule,
)

logger = logging.getLogger(__name__)

DEFAULT_SLOT_INTERVAL_MINUTES = 30
DEFAULT_HORIZON_DAYS = 14
MAX_RANGE_DAYS = 366

ScheduleLike = WeeklySchedule | Sequence[OperatingHour]


def _require_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidRequestError(f"{name} must be a positive integer, got {value!r}")


def to_local(value: date_type | datetime, timezone: str) -> DateTime:
    """
    Convert a date or datetime to a pendulum DateTime in ``timezone``.

    Plain dates become local midnight; naive datetimes are read as local.
    """
    if isinstance(value, datetime):
        return pendulum.instance(value, tz=timezone).in_timezone(timezone)
    return pendulum.datetime(value.year, value.month, value.day, tz=timezone)


def local_midnight(value: date_type | datetime, timezone: str) -> DateTime:
    return to_local(value, timezone).start_of("day")


def resolve_now(now: Optional[datetime], timezone: str) -> DateTime:
    if now is None:
        return pendulum.now(timezone)
    return to_local(now, timezone)


def _blocking(appointments: Iterable[Appointment]) -> List[Appointment]:
    return [apt for apt in appointments if apt.is_blocking]


def _has_conflict(start: DateTime, end: DateTime, appointments: Iterable[Appointment]) -> bool:
    return any(apt.overlaps(start, end) for apt in appointments)


def _opening_bounds(day: DateTime, day_hours: OperatingHour) -> Tuple[DateTime, DateTime]:
    """Return the opening and closing instants of a local day."""
    open_minutes = day_hours.open_minutes
    close_minutes = day_hours.close_minutes
    open_at = day.set(hour=open_minutes // 60, minute=open_minutes % 60)
    close_at = day.set(hour=close_minutes // 60, minute=close_minutes % 60)
    return open_at, close_at


def daily_slots(
    date: date_type | datetime,
    schedule: ScheduleLike,
    service_duration_minutes: int,
    appointments: Sequence[Appointment],
    slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
    *,
    timezone: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None,
) -> List[TimeSlot]:
    """
    Generate the bookable slots for one calendar day.

    Algorithm:
    1. Look up the weekday's operating hours (closed day -> no slots)
    2. Walk candidate starts from open, stepping by the slot interval,
       while start + duration still fits before close
    3. Drop candidates that are not strictly in the future
    4. Drop candidates overlapping a blocking appointment

    Args:
        date: Calendar day; any time-of-day component is ignored
        schedule: Weekly operating hours
        service_duration_minutes: Length of the service being booked
        appointments: Snapshot of existing appointments (any date range)
        slot_interval_minutes: Spacing between candidate start times
        timezone: IANA zone the operating hours are expressed in
        now: Evaluation instant; defaults to the current time

    Returns:
        Slots ordered by start time ascending
    """
    _require_positive("service_duration_minutes", service_duration_minutes)
    _require_positive("slot_interval_minutes", slot_interval_minutes)
    schedule = as_schedule(schedule)

    day = local_midnight(date, timezone)
    current_time = resolve_now(now, timezone)

    day_hours = schedule.for_date(day)
    if day_hours is None or not day_hours.is_open:
        return []

    open_at, close_at = _opening_bounds(day, day_hours)
    close_minutes = day_hours.close_minutes
    active = _blocking(appointments)

    slots: List[TimeSlot] = []
    candidates = 0
    minutes = day_hours.open_minutes

    while minutes < close_minutes:
        start = day.set(hour=minutes // 60, minute=minutes % 60)
        candidate_minutes = minutes
        minutes += slot_interval_minutes

        # Wall-clock times skipped by a DST transition do not exist that day
        if start.hour * 60 + start.minute != candidate_minutes:
            continue

        end = start.add(minutes=service_duration_minutes)

        # Bounds are instants, so a shortened DST day still ends at close
        if start < open_at or end > close_at:
            continue

        candidates += 1

        if start <= current_time:
            continue

        if _has_conflict(start, end, active):
            continue

        slots.append(TimeSlot(start=start, end=end))

    logger.debug(
        "%s: %d of %d candidate slots available",
        day.to_date_string(),
        len(slots),
        candidates,
    )

    return slots


def range_availability(
    start_date: date_type | datetime,
    num_days: int,
    schedule: ScheduleLike,
    service_duration_minutes: int,
    appointments: Sequence[Appointment],
    slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
    *,
    timezone: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None,
) -> Dict[str, List[TimeSlot]]:
    """
    Generate availability for ``num_days`` consecutive days.

    Returns:
        Mapping of ``YYYY-MM-DD`` (local date) to that day's slots, in date
        order. Days without any open slot are left out.
    """
    _require_positive("num_days", num_days)
    if num_days > MAX_RANGE_DAYS:
        raise InvalidRequestError(f"num_days must not exceed {MAX_RANGE_DAYS}, got {num_days}")

    schedule = as_schedule(schedule)
    current_time = resolve_now(now, timezone)
    first_day = local_midnight(start_date, timezone)

    availability: Dict[str, List[TimeSlot]] = {}

    for offset in range(num_days):
        current_day = first_day.add(days=offset)
        slots = daily_slots(
            current_day,
            schedule,
            service_duration_minutes,
            appointments,
            slot_interval_minutes,
            timezone=timezone,
            now=current_time,
        )
        if slots:
            availability[current_day.to_date_string()] = slots

    return availability


def is_slot_available(
    requested_start: datetime,
    service_duration_minutes: int,
    schedule: ScheduleLike,
    appointments: Sequence[Appointment],
    *,
    timezone: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None,
) -> SlotCheck:
    """
    Validate a single proposed start time.

    Uses the same boundary and overlap rules as ``daily_slots``, so any slot
    start that ``daily_slots`` produces is reported available here.
    """
    _require_positive("service_duration_minutes", service_duration_minutes)
    schedule = as_schedule(schedule)

    start = to_local(requested_start, timezone)
    current_time = resolve_now(now, timezone)

    day_hours = schedule.for_date(start)
    if day_hours is None or not day_hours.is_open:
        return SlotCheck(available=False, reason="closed")

    if start <= current_time:
        return SlotCheck(available=False, reason="past")

    open_at, close_at = _opening_bounds(local_midnight(start, timezone), day_hours)
    if start < open_at:
        return SlotCheck(available=False, reason="before-open")

    end = start.add(minutes=service_duration_minutes)
    if end > close_at:
        return SlotCheck(available=False, reason="after-close")

    if _has_conflict(start, end, _blocking(appointments)):
        return SlotCheck(available=False, reason="conflict")

    return SlotCheck(available=True)


def next_available_slot(
    schedule: ScheduleLike,
    service_duration_minutes: int,
    appointments: Sequence[Appointment],
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    *,
    slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
    timezone: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None,
) -> Optional[TimeSlot]:
    """Return the earliest open slot from today over ``horizon_days``, or None."""
    current_time = resolve_now(now, timezone)

    availability = range_availability(
        current_time,
        horizon_days,
        schedule,
        service_duration_minutes,
        appointments,
        slot_interval_minutes,
        timezone=timezone,
        now=current_time,
    )

    for date_key in sorted(availability):
        slots = availability[date_key]
        if slots:
            return min(slots, key=lambda slot: slot.start)

    return None
