"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import daily_slots, is_slot_available, next_available_slot, range_availability
from .models import Appointment, Business, OperatingHour, Service, SlotCheck, TimeSlot, WeeklySchedule

__all__ = [
    "Appointment",
    "Business",
    "OperatingHour",
    "Service",
    "SlotCheck",
    "TimeSlot",
    "WeeklySchedule",
    "daily_slots",
    "is_slot_available",
    "next_available_slot",
    "range_availability",
]
