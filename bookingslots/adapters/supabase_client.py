"""
Supabase (PostgREST) client for businesses, services and appointments.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pendulum import DateTime

from ..domain.exceptions import PersistenceError
from ..domain.models import DEFAULT_TIMEZONE, Appointment, Business, Service

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Client for the Supabase REST API.

    Uses the service-role key, so it must only run server-side.
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout: int = 30,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        """
        Initialize the REST client.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co
            service_role_key: Supabase service-role API key
            timeout: Request timeout in seconds
            default_timezone: Zone for business rows that have none
        """
        if not base_url:
            raise ValueError("Supabase URL is not set")
        if not service_role_key:
            raise ValueError("Supabase service role key is not set")

        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.default_timezone = default_timezone
        self.headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[List[tuple]] = None,
        payload: Optional[Dict[str, Any]] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = f"{self.rest_url}/{table}"
        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)

        logger.debug("%s %s params=%s", method, url, params)

        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            raise PersistenceError(f"Request to {table} failed: {e}") from e
        except ValueError as e:
            raise PersistenceError(f"Invalid JSON from {table}: {e}") from e

    def fetch_business(self, business_id: str) -> Business | None:
        """
        Fetch a business by ID.

        Raises:
            PersistenceError: If the API call fails
            ScheduleConfigError: If the stored hours are malformed
        """
        rows = self._request(
            "GET",
            "businesses",
            params=[("id", f"eq.{business_id}"), ("select", "*")],
        )
        if not rows:
            return None
        return Business.from_record(rows[0], default_timezone=self.default_timezone)

    def fetch_services(self, business_id: str) -> List[Service]:
        """Fetch active services for a business, oldest first."""
        rows = self._request(
            "GET",
            "services",
            params=[
                ("business_id", f"eq.{business_id}"),
                ("active", "eq.true"),
                ("select", "*"),
                ("order", "created_at.asc"),
            ],
        )
        return [Service.from_record(row) for row in rows]

    def fetch_appointments(
        self,
        business_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Appointment]:
        """
        Fetch appointments whose interval intersects ``[start, end)``.
        """
        rows = self._request(
            "GET",
            "appointments",
            params=[
                ("business_id", f"eq.{business_id}"),
                ("start_time", f"lt.{end.in_timezone('UTC').to_iso8601_string()}"),
                ("end_time", f"gt.{start.in_timezone('UTC').to_iso8601_string()}"),
                ("select", "*"),
                ("order", "start_time.asc"),
            ],
        )
        return [Appointment.from_record(row) for row in rows]

    def create_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert an appointment row and return the stored representation."""
        rows = self._request(
            "POST",
            "appointments",
            payload=record,
            extra_headers={"Prefer": "return=representation"},
        )
        if isinstance(rows, list):
            if not rows:
                raise PersistenceError("Appointment insert returned no row")
            return rows[0]
        return rows
