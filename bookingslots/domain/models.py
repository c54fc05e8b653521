"""
Domain models for operating hours, appointments and bookable slots.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import ScheduleConfigError

DEFAULT_TIMEZONE = "America/New_York"

WEEK_DAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

# Statuses that free the calendar again; anything else occupies it.
NON_BLOCKING_STATUSES = frozenset({"cancelled", "no_show"})

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time_to_minutes(value: str) -> int:
    """
    Convert an ``HH:MM`` wall-clock string to minutes since midnight.

    Raises:
        ScheduleConfigError: If the string is not a valid 24-hour time
    """
    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ScheduleConfigError(f"Invalid time '{value}', expected HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ScheduleConfigError(f"Invalid time '{value}', expected HH:MM")

    return hours * 60 + minutes


def format_clock(hour: int, minute: int) -> str:
    """Format a wall-clock time for display, e.g. ``2:30 PM``."""
    period = "PM" if hour >= 12 else "AM"
    display_hour = 12 if hour % 12 == 0 else hour % 12
    return f"{display_hour}:{minute:02d} {period}"


def weekday_name(dt: DateTime) -> str:
    """Return the English weekday name for a date."""
    return WEEK_DAYS[dt.weekday()]


@dataclass(frozen=True)
class OperatingHour:
    """
    One weekday's business-hours rule.

    ``open``/``close`` are only meaningful when ``closed`` is False. An open
    day missing either time is treated as closed.
    """
    day: str
    open: Optional[str] = None
    close: Optional[str] = None
    closed: bool = False

    def __post_init__(self):
        if self.day not in WEEK_DAYS:
            raise ScheduleConfigError(f"Unknown weekday name '{self.day}'")

        if self.is_open:
            open_minutes = parse_time_to_minutes(self.open)
            close_minutes = parse_time_to_minutes(self.close)
            if close_minutes <= open_minutes:
                raise ScheduleConfigError(
                    f"{self.day}: closing time {self.close} must be after opening time {self.open}"
                )

    @property
    def is_open(self) -> bool:
        """True when the business takes appointments on this weekday."""
        return not self.closed and bool(self.open) and bool(self.close)

    @property
    def open_minutes(self) -> int:
        return parse_time_to_minutes(self.open)

    @property
    def close_minutes(self) -> int:
        return parse_time_to_minutes(self.close)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "OperatingHour":
        """Build from a persisted ``{day, open, close, closed}`` record."""
        try:
            day = record["day"]
        except KeyError as exc:
            raise ScheduleConfigError(f"Operating hour record without 'day': {record}") from exc

        return cls(
            day=day,
            open=record.get("open") or None,
            close=record.get("close") or None,
            closed=bool(record.get("closed", False)),
        )


@dataclass(frozen=True)
class WeeklySchedule:
    """
    A business's weekly operating hours, at most one entry per weekday.

    Invariant: weekday names are unique. Duplicates are rejected rather than
    resolved, since there is no sound way to pick the entry that was meant.
    """
    hours: Tuple[OperatingHour, ...] = ()

    def __post_init__(self):
        seen: set[str] = set()
        for entry in self.hours:
            if entry.day in seen:
                raise ScheduleConfigError(f"Duplicate operating hours for {entry.day}")
            seen.add(entry.day)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "WeeklySchedule":
        return cls(hours=tuple(OperatingHour.from_record(record) for record in records))

    def for_day(self, day: str) -> Optional[OperatingHour]:
        """Return the rule for a weekday name, or None if none is configured."""
        for entry in self.hours:
            if entry.day == day:
                return entry
        return None

    def for_date(self, dt: DateTime) -> Optional[OperatingHour]:
        return self.for_day(weekday_name(dt))

    def __iter__(self):
        return iter(self.hours)

    def __len__(self) -> int:
        return len(self.hours)


def as_schedule(schedule: Any) -> WeeklySchedule:
    """
    Coerce a schedule given as a WeeklySchedule, a sequence of
    OperatingHour, or a sequence of persisted records.
    """
    if isinstance(schedule, WeeklySchedule):
        return schedule

    entries = []
    for entry in schedule or ():
        if isinstance(entry, OperatingHour):
            entries.append(entry)
        elif isinstance(entry, Mapping):
            entries.append(OperatingHour.from_record(entry))
        else:
            raise ScheduleConfigError(f"Unsupported operating hour entry: {entry!r}")

    return WeeklySchedule(hours=tuple(entries))


DEFAULT_OPERATING_HOURS = WeeklySchedule(hours=(
    OperatingHour("Monday", "09:00", "19:00"),
    OperatingHour("Tuesday", "09:00", "19:00"),
    OperatingHour("Wednesday", "09:00", "19:00"),
    OperatingHour("Thursday", "09:00", "19:00"),
    OperatingHour("Friday", "09:00", "19:00"),
    OperatingHour("Saturday", "09:00", "19:00"),
    OperatingHour("Sunday", "10:00", "17:00"),
))


def _format_time_value(value: Optional[str]) -> str:
    if not value:
        return "TBD"
    minutes = parse_time_to_minutes(value)
    return format_clock(minutes // 60, minutes % 60)


def format_operating_hours(schedule: Sequence[OperatingHour] | WeeklySchedule, joiner: str = "\n") -> str:
    """
    Render a schedule for humans.

    Example:
        Monday: 9:00 AM – 7:00 PM
        Sunday: Closed
    """
    lines = []
    for entry in as_schedule(schedule):
        if entry.closed:
            lines.append(f"{entry.day}: Closed")
        else:
            lines.append(f"{entry.day}: {_format_time_value(entry.open)} – {_format_time_value(entry.close)}")
    return joiner.join(lines)


@dataclass(frozen=True)
class Appointment:
    """
    An existing booking as read from persistence.

    The engine only reads these; their lifecycle belongs to the backend.
    """
    id: str
    start_time: DateTime
    end_time: DateTime
    status: str = "confirmed"

    @property
    def is_blocking(self) -> bool:
        """Whether this appointment occupies the calendar."""
        return self.status not in NON_BLOCKING_STATUSES

    def overlaps(self, start: DateTime, end: DateTime) -> bool:
        """Half-open intersection test; touching endpoints do not overlap."""
        return start < self.end_time and self.start_time < end

    @classmethod
    def from_record(cls, record: Mapping[str, Any], timezone: str = "UTC") -> "Appointment":
        """
        Build from a REST row with ISO-8601 ``start_time``/``end_time``.

        Timestamps without an offset are read in ``timezone``.
        """
        return cls(
            id=str(record["id"]),
            start_time=pendulum.parse(record["start_time"], tz=timezone),
            end_time=pendulum.parse(record["end_time"], tz=timezone),
            status=record.get("status") or "confirmed",
        )


@dataclass(frozen=True)
class TimeSlot:
    """
    A bookable candidate slot.

    Invariant: end is after start. Rendering fields are derived from the
    instants in their own zone.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @property
    def start_iso(self) -> str:
        return self.start.in_timezone("UTC").to_iso8601_string()

    @property
    def end_iso(self) -> str:
        return self.end.in_timezone("UTC").to_iso8601_string()

    @property
    def display_time(self) -> str:
        return format_clock(self.start.hour, self.start.minute)

    @property
    def time_label(self) -> str:
        return self.start.format("HH:mm")

    @property
    def date_key(self) -> str:
        return self.start.to_date_string()

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | h:MM AM – h:MM PM
        """
        end_display = format_clock(self.end.hour, self.end.minute)
        return f"{weekday_name(self.start)}, {self.date_key} | {self.display_time} – {end_display}"


REASON_MESSAGES = {
    "closed": "Business is closed on this day",
    "past": "Slot is in the past",
    "before-open": "Before business opening time",
    "after-close": "After business closing time",
    "conflict": "Time slot already booked",
}


@dataclass(frozen=True)
class SlotCheck:
    """Outcome of validating a single requested start time."""
    available: bool
    reason: Optional[str] = None

    @property
    def message(self) -> str:
        if self.available:
            return "Slot is available"
        return REASON_MESSAGES.get(self.reason, self.reason or "Unavailable")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"available": self.available}
        if self.reason:
            result["reason"] = self.reason
        return result


def format_duration(minutes: int) -> str:
    """Human duration: ``45 minutes``, ``1 hour``, ``2 hours``, ``1h 30m``."""
    if minutes < 60:
        return f"{minutes} minutes"

    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return "1 hour" if hours == 1 else f"{hours} hours"

    return f"{hours}h {mins}m"


@dataclass(frozen=True)
class Service:
    """A bookable service offered by a business."""
    id: str
    name: str
    duration_minutes: int
    price_cents: int = 0
    description: str = ""

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration_minutes)

    @property
    def price_label(self) -> str:
        return f"${self.price_cents / 100:.2f}"

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Service":
        return cls(
            id=str(record["id"]),
            name=record.get("name", ""),
            duration_minutes=int(record["duration_minutes"]),
            price_cents=int(record.get("price_cents") or 0),
            description=record.get("description") or "",
        )


@dataclass(frozen=True)
class Business:
    """A tenant business with its weekly hours and time zone."""
    id: str
    name: str
    hours: WeeklySchedule = field(default_factory=WeeklySchedule)
    timezone: str = DEFAULT_TIMEZONE
    address: str = ""

    @classmethod
    def from_record(
        cls, record: Mapping[str, Any], default_timezone: str = DEFAULT_TIMEZONE
    ) -> "Business":
        """
        Build from a ``businesses`` row.

        Rows without a time zone fall back to ``default_timezone``.

        Raises:
            ScheduleConfigError: If ``hours_json`` is malformed
        """
        return cls(
            id=str(record["id"]),
            name=record.get("name", ""),
            hours=WeeklySchedule.from_records(record.get("hours_json") or []),
            timezone=record.get("timezone") or default_timezone,
            address=record.get("address") or "",
        )
