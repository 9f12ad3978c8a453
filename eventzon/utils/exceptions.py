"""
Custom exceptions for the EventZon ticketing platform.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Business logic errors
    EVENT_UNAVAILABLE = "EVENT_UNAVAILABLE"
    INVALID_BOOKING_STATE = "INVALID_BOOKING_STATE"
    INVALID_TICKET = "INVALID_TICKET"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"

    # Concurrency errors
    DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"

    # Artifact and delivery errors
    ENCODING_ERROR = "ENCODING_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    DELIVERY_ERROR = "DELIVERY_ERROR"


class EventZonError(Exception):
    """Base exception class for EventZon platform."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(EventZonError):
    """Exception raised for validation errors."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details={"field_errors": field_errors} if field_errors else None,
            **kwargs
        )
        self.field_errors = field_errors or {}


class NotFoundError(EventZonError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class EventNotFoundError(NotFoundError):
    """Exception raised when an event is not found."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            f"Event {event_id} not found",
            resource_type="event",
            resource_id=event_id,
            suggestions=["Check the event ID", "Browse available events"],
            **kwargs
        )


class UserNotFoundError(NotFoundError):
    """Exception raised when a user is not found."""

    def __init__(self, user_id: str, **kwargs):
        super().__init__(
            f"User {user_id} not found",
            resource_type="user",
            resource_id=user_id,
            **kwargs
        )


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking is not found."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} not found",
            resource_type="booking",
            resource_id=booking_id,
            suggestions=["Check the booking ID", "View your booking history"],
            **kwargs
        )


class CartItemNotFoundError(NotFoundError):
    """Exception raised when a cart line is not found for the user."""

    def __init__(self, cart_item_id: str, **kwargs):
        super().__init__(
            f"Cart item {cart_item_id} not found",
            resource_type="cart_item",
            resource_id=cart_item_id,
            suggestions=["Refresh your cart"],
            **kwargs
        )


class AuthenticationError(EventZonError):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNAUTHORIZED,
            suggestions=["Check your credentials", "Login again"],
            **kwargs
        )


class AuthorizationError(EventZonError):
    """Exception raised for authorization failures."""

    def __init__(self, message: str = "Access denied", required_permission: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            details={"required_permission": required_permission} if required_permission else None,
            suggestions=["Contact an administrator for access"],
            **kwargs
        )


class BusinessLogicError(EventZonError):
    """Base exception for business logic violations."""
    pass


class EventUnavailableError(BusinessLogicError):
    """Exception raised when an event cannot satisfy a booking request."""

    def __init__(self, event_id: str, requested: int, available: Optional[int] = None,
                 status: Optional[str] = None, **kwargs):
        if status is not None and status != "active":
            message = f"Event {event_id} is not open for booking (status: {status})"
        else:
            message = f"Event {event_id} cannot satisfy {requested} ticket(s)"
        super().__init__(
            message,
            error_code=ErrorCode.EVENT_UNAVAILABLE,
            details={
                "event_id": event_id,
                "requested": requested,
                "available": available,
                "status": status,
            },
            suggestions=["Try booking fewer tickets", "Check similar events"],
            **kwargs
        )


class InvalidBookingStateError(BusinessLogicError):
    """Exception raised when booking is in invalid state for operation."""

    def __init__(self, booking_id: str, current_state: str, required_state: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} is in {current_state} state, required {required_state}",
            error_code=ErrorCode.INVALID_BOOKING_STATE,
            details={"booking_id": booking_id, "current_state": current_state, "required_state": required_state},
            **kwargs
        )


class InvalidTicketError(BusinessLogicError):
    """Exception raised when a ticket cannot be admitted."""

    def __init__(self, ticket_number: str, reason: str, **kwargs):
        super().__init__(
            f"Ticket {ticket_number} is not valid: {reason}",
            error_code=ErrorCode.INVALID_TICKET,
            details={"ticket_number": ticket_number, "reason": reason},
            **kwargs
        )


class AlreadyCheckedInError(BusinessLogicError):
    """Exception raised when a ticket is presented a second time."""

    def __init__(self, ticket_number: str, check_in_time: Optional[str] = None, **kwargs):
        super().__init__(
            f"Ticket {ticket_number} has already been checked in",
            error_code=ErrorCode.ALREADY_CHECKED_IN,
            details={"ticket_number": ticket_number, "check_in_time": check_in_time},
            **kwargs
        )


class DuplicateReferenceError(EventZonError):
    """Exception raised when a generated booking reference or ticket number collides."""

    def __init__(self, column: str, retry_after: int = 1, **kwargs):
        super().__init__(
            f"Generated {column} already exists",
            error_code=ErrorCode.DUPLICATE_REFERENCE,
            details={"column": column},
            retry_after=retry_after,
            suggestions=["Please try again"],
            **kwargs
        )


class EncodingError(EventZonError):
    """Exception raised when a ticket payload does not fit a QR symbol."""

    def __init__(self, message: str, payload_size: Optional[int] = None, version: Optional[int] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.ENCODING_ERROR,
            details={"payload_size": payload_size, "version": version},
            **kwargs
        )


class ExternalServiceError(EventZonError):
    """Exception raised for external service failures."""

    def __init__(self, service_name: str, message: str, status_code: Optional[int] = None,
                 error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR, **kwargs):
        super().__init__(
            f"{service_name} service error: {message}",
            error_code=error_code,
            details={"service_name": service_name, "status_code": status_code},
            suggestions=["Try again later", "Contact support if problem persists"],
            **kwargs
        )


class DeliveryError(ExternalServiceError):
    """Exception raised when a notification cannot be handed to the mail transport."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            "email",
            message,
            error_code=ErrorCode.DELIVERY_ERROR,
            **kwargs
        )
