"""Business logic services for the EventZon ticketing platform."""

from .user_service import UserService
from .event_service import EventService
from .booking_service import BookingService
from .cart_service import CartService
from .ticket_service import TicketService
from .notification_service import NotificationService
from .analytics_service import AnalyticsService

__all__ = [
    "UserService",
    "EventService",
    "BookingService",
    "CartService",
    "TicketService",
    "NotificationService",
    "AnalyticsService",
]
