"""
Database models for the EventZon ticketing platform.
"""

from .base import Base
from .user import User, UserRole
from .event import Event, EventStatus
from .booking import Booking, BookingStatus
from .cart_item import CartItem

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Event",
    "EventStatus",
    "Booking",
    "BookingStatus",
    "CartItem",
]
