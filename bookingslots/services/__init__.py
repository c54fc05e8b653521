"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_service import (
    AvailabilityReport,
    AvailabilityService,
    BookingRequest,
    PersistenceClientProtocol,
    build_availability_payload,
)

__all__ = [
    "AvailabilityReport",
    "AvailabilityService",
    "BookingRequest",
    "PersistenceClientProtocol",
    "build_availability_payload",
]
