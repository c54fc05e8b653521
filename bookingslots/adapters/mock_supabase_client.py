"""
Mock Supabase client for running without a backend.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List

import pendulum
from pendulum import DateTime

from ..domain.models import DEFAULT_TIMEZONE, Appointment, Business, Service

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_data.json"


class MockSupabaseClient:
    """
    Mock client that serves businesses, services and appointments from a
    JSON fixture.

    Appointments created through this client live in memory only.
    """

    def __init__(self, data_file: Path | None = None, default_timezone: str = DEFAULT_TIMEZONE):
        """
        Initialize the mock client.

        Args:
            data_file: Optional fixture path; defaults to the packaged mock_data.json
            default_timezone: Zone for businesses that have none
        """
        self.data_file = Path(data_file) if data_file else DEFAULT_DATA_FILE
        self.default_timezone = default_timezone
        self._load_data()

    def _load_data(self) -> None:
        """Load the fixture, falling back to empty tables if it is absent."""
        if self.data_file.exists():
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            logger.warning("Mock data file %s not found, starting empty", self.data_file)
            data = {}

        self.businesses: List[Dict[str, Any]] = data.get("businesses", [])
        self.services: List[Dict[str, Any]] = data.get("services", [])
        self.appointments: List[Dict[str, Any]] = data.get("appointments", [])

    def fetch_business(self, business_id: str) -> Business | None:
        for record in self.businesses:
            if str(record.get("id")) == business_id:
                return Business.from_record(record, default_timezone=self.default_timezone)
        return None

    def fetch_services(self, business_id: str) -> List[Service]:
        return [
            Service.from_record(record)
            for record in self.services
            if str(record.get("business_id")) == business_id and record.get("active", True)
        ]

    def fetch_appointments(
        self,
        business_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Appointment]:
        appointments: List[Appointment] = []

        for record in self.appointments:
            if str(record.get("business_id")) != business_id:
                continue

            try:
                appointment = Appointment.from_record(record)
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed mock appointment %s: %s", record.get("id"), e)
                continue

            if appointment.start_time < end and appointment.end_time > start:
                appointments.append(appointment)

        return sorted(appointments, key=lambda apt: apt.start_time)

    def create_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]:
        stored = {
            "id": str(uuid.uuid4()),
            "created_at": pendulum.now("UTC").to_iso8601_string(),
            **record,
        }
        self.appointments.append(stored)
        return stored
