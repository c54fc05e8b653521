"""
bookingslots - Bookable appointment slots from weekly operating hours.
"""

__version__ = "0.1.0"
