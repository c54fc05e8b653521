"""
Application services for listing and booking appointment slots.

The service loads a business, its service catalogue and an appointment
snapshot through a persistence client, and delegates every availability
decision to the pure functions in ``domain.availability``. Keeping the
backend behind a protocol lets tests and ``--mock`` mode swap it out.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..domain import availability as engine
from ..domain.exceptions import InvalidRequestError, NotFoundError, SlotUnavailableError
from ..domain.models import Appointment, Business, Service, SlotCheck, TimeSlot

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class PersistenceClientProtocol(Protocol):
    """Protocol describing the persistence behaviour needed by the service."""

    def fetch_business(self, business_id: str) -> Optional[Business]:
        """Return the business or None."""

    def fetch_services(self, business_id: str) -> List[Service]:
        """Return the active services of a business."""

    def fetch_appointments(self, business_id: str, start: DateTime, end: DateTime) -> List[Appointment]:
        """Return appointments intersecting ``[start, end)``."""

    def create_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a new appointment row and return it."""


@dataclass(frozen=True)
class AvailabilityReport:
    """Availability of one service over a window of days."""
    business: Business
    service: Service
    start_date: str
    num_days: int
    availability: Dict[str, List[TimeSlot]]

    @property
    def slot_count(self) -> int:
        return sum(len(slots) for slots in self.availability.values())


@dataclass
class BookingRequest:
    """A customer's request to book a service at a given start time."""
    business_id: str
    service_id: str
    name: str
    email: str
    start: str | datetime
    phone: Optional[str] = None

    def validate(self) -> None:
        """
        Raises:
            InvalidRequestError: If a required field is missing or the email is malformed
        """
        missing = [
            field_name
            for field_name in ("business_id", "service_id", "name", "email", "start")
            if not getattr(self, field_name)
        ]
        if missing:
            raise InvalidRequestError(f"Missing required fields: {', '.join(missing)}")

        if not EMAIL_PATTERN.match(self.email):
            raise InvalidRequestError("Invalid email format")


def parse_start(value: str | datetime, timezone: str) -> DateTime:
    """
    Parse a requested start time; values without an offset are read in
    the business's time zone.
    """
    if isinstance(value, datetime):
        return pendulum.instance(value, tz=timezone)

    try:
        parsed = pendulum.parse(value, tz=timezone)
    except ValueError as e:
        raise InvalidRequestError(f"Could not parse start time '{value}': {e}") from e

    if not isinstance(parsed, DateTime):
        raise InvalidRequestError(f"Start time '{value}' must include a date and a time")

    return parsed


class AvailabilityService:
    """
    Orchestrates snapshot retrieval and availability calculation.

    The availability check and the booking insert are separate calls to the
    backend. ``book`` re-validates against a fresh snapshot right before the
    insert, but only a storage-level constraint can rule out two concurrent
    bookings of the same slot.
    """

    def __init__(
        self,
        client: PersistenceClientProtocol,
        slot_interval_minutes: int = engine.DEFAULT_SLOT_INTERVAL_MINUTES,
        max_days: int = 90,
    ) -> None:
        self._client = client
        self._slot_interval_minutes = slot_interval_minutes
        self._max_days = max_days

    def load_business(self, business_id: str) -> Business:
        business = self._client.fetch_business(business_id)
        if business is None:
            raise NotFoundError(f"Business not found: {business_id}")
        return business

    def load_service(self, business_id: str, service_id: str) -> Service:
        for service in self._client.fetch_services(business_id):
            if service.id == service_id:
                return service
        raise NotFoundError(f"Service not found: {service_id}")

    def get_availability(
        self,
        business_id: str,
        service_id: str,
        *,
        start_date: date | datetime | None = None,
        num_days: int = engine.DEFAULT_HORIZON_DAYS,
        now: datetime | None = None,
    ) -> AvailabilityReport:
        """
        Compute the bookable slots of a service for ``num_days`` days.

        Raises:
            NotFoundError: If the business or service does not exist
            InvalidRequestError: If ``num_days`` is outside 1..max_days
        """
        if num_days > self._max_days:
            raise InvalidRequestError(f"num_days must not exceed {self._max_days}, got {num_days}")

        business = self.load_business(business_id)
        service = self.load_service(business_id, service_id)
        tz = business.timezone

        current_time = engine.resolve_now(now, tz)
        first_day = engine.local_midnight(start_date or current_time, tz)
        last_day = first_day.add(days=num_days)

        appointments = self._client.fetch_appointments(business_id, first_day, last_day)

        availability = engine.range_availability(
            first_day,
            num_days,
            business.hours,
            service.duration_minutes,
            appointments,
            self._slot_interval_minutes,
            timezone=tz,
            now=current_time,
        )

        logger.info(
            "%s/%s: %d open days from %s",
            business_id,
            service_id,
            len(availability),
            first_day.to_date_string(),
        )

        return AvailabilityReport(
            business=business,
            service=service,
            start_date=first_day.to_date_string(),
            num_days=num_days,
            availability=availability,
        )

    def next_available(
        self,
        business_id: str,
        service_id: str,
        *,
        horizon_days: int = engine.DEFAULT_HORIZON_DAYS,
        now: datetime | None = None,
    ) -> Optional[TimeSlot]:
        """
        Return the earliest open slot within the horizon, or None.

        Raises:
            InvalidRequestError: If ``horizon_days`` exceeds max_days
        """
        if horizon_days > self._max_days:
            raise InvalidRequestError(f"horizon_days must not exceed {self._max_days}, got {horizon_days}")

        business = self.load_business(business_id)
        service = self.load_service(business_id, service_id)
        tz = business.timezone

        current_time = engine.resolve_now(now, tz)
        first_day = current_time.start_of("day")
        appointments = self._client.fetch_appointments(
            business_id, first_day, first_day.add(days=horizon_days)
        )

        return engine.next_available_slot(
            business.hours,
            service.duration_minutes,
            appointments,
            horizon_days,
            slot_interval_minutes=self._slot_interval_minutes,
            timezone=tz,
            now=current_time,
        )

    def check_slot(
        self,
        business_id: str,
        service_id: str,
        start: str | datetime,
        *,
        now: datetime | None = None,
    ) -> SlotCheck:
        """Validate one requested start time against a fresh snapshot."""
        business = self.load_business(business_id)
        service = self.load_service(business_id, service_id)
        return self._check(business, service, parse_start(start, business.timezone), now)

    def _check(
        self,
        business: Business,
        service: Service,
        start: DateTime,
        now: datetime | None,
    ) -> SlotCheck:
        end = start.add(minutes=service.duration_minutes)
        appointments = self._client.fetch_appointments(business.id, start, end)

        return engine.is_slot_available(
            start,
            service.duration_minutes,
            business.hours,
            appointments,
            timezone=business.timezone,
            now=now,
        )

    def book(self, request: BookingRequest, *, now: datetime | None = None) -> Dict[str, Any]:
        """
        Validate a booking request and persist the appointment.

        Raises:
            InvalidRequestError: If the request is incomplete or malformed
            NotFoundError: If the business or service does not exist
            SlotUnavailableError: If the slot is not bookable any more
        """
        request.validate()

        business = self.load_business(request.business_id)
        service = self.load_service(request.business_id, request.service_id)
        start = parse_start(request.start, business.timezone)

        check = self._check(business, service, start, now)
        if not check.available:
            logger.info(
                "Rejected booking for %s at %s: %s",
                request.business_id,
                start.to_iso8601_string(),
                check.reason,
            )
            raise SlotUnavailableError(check.reason, check.message)

        end = start.add(minutes=service.duration_minutes)
        record: Dict[str, Any] = {
            "business_id": business.id,
            "service_id": service.id,
            "customer_name": request.name,
            "customer_email": request.email,
            "start_time": start.in_timezone("UTC").to_iso8601_string(),
            "end_time": end.in_timezone("UTC").to_iso8601_string(),
            "status": "confirmed",
        }
        if request.phone:
            record["customer_phone"] = request.phone

        created = self._client.create_appointment(record)
        logger.info("Booked %s for %s at %s", service.name, request.email, record["start_time"])

        return created


def build_availability_payload(report: AvailabilityReport) -> Dict[str, Any]:
    """Render an availability report as the availability endpoint's JSON body."""
    return {
        "businessId": report.business.id,
        "serviceId": report.service.id,
        "serviceName": report.service.name,
        "serviceDuration": report.service.duration_minutes,
        "timezone": report.business.timezone,
        "availability": [
            {
                "date": date_key,
                "slots": [
                    {
                        "time": slot.time_label,
                        "available": True,
                        "startTime": slot.start_iso,
                        "endTime": slot.end_iso,
                        "displayTime": slot.display_time,
                    }
                    for slot in slots
                ],
            }
            for date_key, slots in report.availability.items()
        ],
    }
