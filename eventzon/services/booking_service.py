"""
Booking service with concurrency control for issuing and cancelling tickets.
"""

import logging
import secrets
import string
import time
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import get_settings
from ..models.booking import Booking, BookingStatus
from ..models.cart_item import CartItem
from ..models.event import Event, EventStatus
from ..models.user import User
from ..schemas.booking import AttendeeInfo, CheckoutFailure
from ..utils.exceptions import (
    AlreadyCheckedInError,
    BookingNotFoundError,
    DuplicateReferenceError,
    EventNotFoundError,
    EventUnavailableError,
    EventZonError,
    InvalidBookingStateError,
    InvalidTicketError,
    UserNotFoundError,
    ValidationError,
)
from ..utils.local_time import local_today
from ..utils.logging_config import log_business_event
from ..utils.retry import retry_on_duplicate_reference

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
_BASE36 = string.digits + string.ascii_uppercase

# Receives (kind, booking_id) once a booking change is committed
Notifier = Callable[[str, str], None]


def generate_booking_reference() -> str:
    """Human-facing reference printed on tickets, e.g. ``EVT-1718035200000-K3F9Q2ZLM``."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"EVT-{millis}-{suffix}"


def generate_ticket_number() -> str:
    """Ticket number encoded in the QR code and used for check-in."""
    return f"TK{int(time.time())}{secrets.token_hex(4).upper()}"


def compute_total(price: Decimal, quantity: int) -> Decimal:
    """Exact ``price * quantity`` rounded to the cent."""
    return (Decimal(price) * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingService:
    """Service for managing bookings with concurrency control."""

    def __init__(self, session: AsyncSession, notifier: Optional[Notifier] = None):
        self.session = session
        self.settings = get_settings()
        self.notifier = notifier

    @retry_on_duplicate_reference()
    async def create_booking(
        self,
        user_id: UUID,
        event_id: UUID,
        quantity: int,
        attendee: AttendeeInfo,
        clear_cart: bool = True
    ) -> Booking:
        """
        Reserve inventory and issue a confirmed booking in one transaction.

        The event row is locked, then decremented with a guarded UPDATE so
        two concurrent requests can never oversell. Identifier collisions
        roll back the whole unit of work and are retried.

        Args:
            user_id: ID of the user making the booking
            event_id: ID of the event to book
            quantity: Number of tickets to book
            attendee: Person named on the ticket
            clear_cart: Remove the user's cart line for this event

        Returns:
            Created booking instance

        Raises:
            ValidationError: When quantity is out of range
            UserNotFoundError, EventNotFoundError: When a referenced row is missing
            EventUnavailableError: When the event is not active or lacks tickets
            DuplicateReferenceError: When identifiers keep colliding
        """
        self._validate_quantity(quantity)
        logger.info(f"Creating booking for user {user_id}, event {event_id}, quantity {quantity}")

        try:
            await self._get_user(user_id)
            event = await self._get_event_for_update(event_id)
            self._ensure_bookable(event, quantity)

            await self._reserve_inventory(event, quantity)

            booking = Booking(
                user_id=user_id,
                event_id=event_id,
                quantity=quantity,
                total_amount=compute_total(event.price, quantity),
                currency=event.currency,
                attendee_name=attendee.name,
                attendee_email=str(attendee.email),
                attendee_phone=attendee.phone,
                status=BookingStatus.CONFIRMED,
                booking_reference=generate_booking_reference(),
                ticket_number=generate_ticket_number(),
            )
            self.session.add(booking)
            await self.session.flush()

            if clear_cart:
                await self.session.execute(
                    delete(CartItem).where(
                        CartItem.user_id == user_id,
                        CartItem.event_id == event_id
                    )
                )

            await self.session.commit()

        except IntegrityError as e:
            await self.session.rollback()
            column = self._duplicate_reference_column(e)
            if column:
                logger.warning(f"Generated {column} collided, retrying booking for event {event_id}")
                raise DuplicateReferenceError(column)
            logger.error(f"Database integrity error during booking creation: {e}")
            raise
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(event)

        log_business_event(
            "booking_created",
            booking_id=str(booking.id),
            event_id=str(event_id),
            user_id=str(user_id),
            quantity=quantity,
            total_amount=str(booking.total_amount),
        )
        self._queue_notification("booking_confirmation", booking.id)
        return booking

    async def checkout(
        self,
        user_id: UUID,
        attendee: AttendeeInfo
    ) -> Tuple[List[Booking], List[CheckoutFailure]]:
        """
        Book every line of the user's cart.

        Each line is its own atomic booking; lines that fail stay in the cart
        and are reported back.
        """
        result = await self.session.execute(
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
        )
        lines = [(item.event_id, item.quantity) for item in result.scalars().all()]

        if not lines:
            raise ValidationError("Cart is empty", suggestions=["Add tickets to your cart first"])

        booking_ids: List[UUID] = []
        failures: List[CheckoutFailure] = []

        for event_id, quantity in lines:
            try:
                booking = await self.create_booking(user_id, event_id, quantity, attendee)
                booking_ids.append(booking.id)
            except EventZonError as e:
                logger.info(f"Checkout line for event {event_id} failed: {e.message}")
                failures.append(CheckoutFailure(
                    event_id=event_id,
                    quantity=quantity,
                    error_code=e.error_code.value,
                    message=e.message,
                ))

        # A failed line rolls back the session, which expires earlier bookings
        return await self._get_bookings_with_relations(booking_ids), failures

    async def cancel_booking(self, booking_id: UUID, user_id: Optional[UUID] = None) -> Booking:
        """
        Cancel a booking and release its tickets back to the event.

        Cancelling an already-cancelled booking is a no-op. ``user_id``
        restricts the operation to the booking owner; admins pass ``None``.

        Raises:
            BookingNotFoundError: When booking is not found
            InvalidBookingStateError: When the ticket has already been used
        """
        logger.info(f"Cancelling booking {booking_id}")

        booking = await self._get_booking_with_relations(booking_id)
        if user_id is not None and booking.user_id != user_id:
            raise BookingNotFoundError(str(booking_id))

        if booking.status == BookingStatus.CANCELLED:
            logger.info(f"Booking {booking_id} already cancelled")
            return booking

        if booking.status == BookingStatus.ATTENDED:
            raise InvalidBookingStateError(
                str(booking_id),
                booking.status.value,
                BookingStatus.CONFIRMED.value,
                suggestions=["Used tickets cannot be cancelled"]
            )

        try:
            result = await self.session.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.status == BookingStatus.CONFIRMED
                )
                .values(status=BookingStatus.CANCELLED, cancelled_at=_utcnow())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                # Lost a race against another cancel or a check-in
                await self.session.rollback()
                booking = await self._get_booking_with_relations(booking_id)
                if booking.status == BookingStatus.CANCELLED:
                    return booking
                raise InvalidBookingStateError(
                    str(booking_id), booking.status.value, BookingStatus.CONFIRMED.value
                )

            await self.release_inventory(booking.event_id, booking.quantity)
            await self.session.commit()

        except EventZonError:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error cancelling booking {booking_id}: {e}")
            raise

        booking = await self._get_booking_with_relations(booking_id)

        log_business_event(
            "booking_cancelled",
            booking_id=str(booking_id),
            event_id=str(booking.event_id),
            quantity=booking.quantity,
        )
        self._queue_notification("booking_cancellation", booking_id)
        return booking

    async def check_in(self, ticket_number: str, today: Optional[date] = None) -> Booking:
        """
        Admit a ticket at the door.

        Raises:
            InvalidTicketError: Unknown ticket, cancelled booking, cancelled
                event or wrong day under the same-day policy
            AlreadyCheckedInError: When the ticket was already admitted
        """
        booking = await self._get_booking_by_ticket(ticket_number)
        if booking is None:
            raise InvalidTicketError(ticket_number, "unknown ticket")

        if booking.status == BookingStatus.ATTENDED or booking.check_in_time is not None:
            raise AlreadyCheckedInError(
                ticket_number,
                booking.check_in_time.isoformat() if booking.check_in_time else None
            )

        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidTicketError(ticket_number, f"booking is {booking.status.value}")

        event = booking.event
        if event.status == EventStatus.CANCELLED:
            raise InvalidTicketError(ticket_number, "event has been cancelled")

        if self.settings.checkin_date_policy == "same_day":
            today = today or local_today(self.settings.event_timezone)
            if event.event_date != today:
                raise InvalidTicketError(
                    ticket_number,
                    f"ticket is valid on {event.event_date.isoformat()}"
                )

        result = await self.session.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == BookingStatus.CONFIRMED,
                Booking.check_in_time.is_(None)
            )
            .values(status=BookingStatus.ATTENDED, check_in_time=_utcnow())
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            await self.session.rollback()
            raise AlreadyCheckedInError(ticket_number)

        await self.session.commit()
        await self.session.refresh(booking)

        log_business_event(
            "ticket_checked_in",
            booking_id=str(booking.id),
            event_id=str(booking.event_id),
            ticket_number=ticket_number,
        )
        return booking

    async def release_inventory(self, event_id: UUID, quantity: int) -> None:
        """Return tickets to an event, reopening it if it was sold out. Does not commit."""
        await self.session.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(
                available_tickets=Event.available_tickets + quantity,
                version=Event.version + 1
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            update(Event)
            .where(
                Event.id == event_id,
                Event.status == EventStatus.SOLD_OUT,
                Event.available_tickets > 0
            )
            .values(status=EventStatus.ACTIVE)
            .execution_options(synchronize_session=False)
        )

    async def get_booking(self, booking_id: UUID, user_id: Optional[UUID] = None) -> Booking:
        """
        Get a booking by ID with its event loaded.

        Raises:
            BookingNotFoundError: When missing or owned by another user
        """
        booking = await self._get_booking_with_relations(booking_id)
        if user_id is not None and booking.user_id != user_id:
            raise BookingNotFoundError(str(booking_id))
        return booking

    async def get_user_bookings(
        self,
        user_id: UUID,
        status_filter: Optional[List[BookingStatus]] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Booking], int]:
        """Get a user's bookings, newest first."""
        return await self._list_bookings(
            [Booking.user_id == user_id], status_filter, limit, offset
        )

    async def get_event_bookings(
        self,
        event_id: UUID,
        status_filter: Optional[List[BookingStatus]] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Booking], int]:
        """Get all bookings for one event (admin view)."""
        await self._get_event(event_id)
        return await self._list_bookings(
            [Booking.event_id == event_id], status_filter, limit, offset
        )

    async def get_all_bookings(
        self,
        status_filter: Optional[List[BookingStatus]] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Booking], int]:
        """Get bookings across all events (admin view)."""
        return await self._list_bookings([], status_filter, limit, offset)

    # Private helper methods

    def _validate_quantity(self, quantity: int) -> None:
        max_quantity = self.settings.max_booking_quantity
        if quantity < 1 or quantity > max_quantity:
            raise ValidationError(
                f"Quantity must be between 1 and {max_quantity}",
                field_errors={"quantity": [f"must be between 1 and {max_quantity}"]}
            )

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def _get_event(self, event_id: UUID) -> Event:
        event = await self.session.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    async def _get_event_for_update(self, event_id: UUID) -> Event:
        """Load the event under a row lock with fresh inventory counters."""
        result = await self.session.execute(
            select(Event)
            .where(Event.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _ensure_bookable(self, event: Event, quantity: int) -> None:
        if event.status != EventStatus.ACTIVE or event.available_tickets < quantity:
            raise EventUnavailableError(
                str(event.id),
                requested=quantity,
                available=event.available_tickets,
                status=event.status.value
            )

    async def _reserve_inventory(self, event: Event, quantity: int) -> None:
        """Guarded decrement; zero rows updated means another booking got there first."""
        result = await self.session.execute(
            update(Event)
            .where(
                Event.id == event.id,
                Event.status == EventStatus.ACTIVE,
                Event.available_tickets >= quantity
            )
            .values(
                available_tickets=Event.available_tickets - quantity,
                version=Event.version + 1
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            await self.session.refresh(event)
            raise EventUnavailableError(
                str(event.id),
                requested=quantity,
                available=event.available_tickets,
                status=event.status.value
            )

        await self.session.execute(
            update(Event)
            .where(
                Event.id == event.id,
                Event.available_tickets == 0
            )
            .values(status=EventStatus.SOLD_OUT)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def _duplicate_reference_column(error: IntegrityError) -> Optional[str]:
        message = str(error.orig)
        for column in ("booking_reference", "ticket_number"):
            if column in message:
                return column
        return None

    async def _get_booking_with_relations(self, booking_id: UUID) -> Booking:
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()

        if not booking:
            raise BookingNotFoundError(str(booking_id))

        return booking

    async def _get_bookings_with_relations(self, booking_ids: List[UUID]) -> List[Booking]:
        if not booking_ids:
            return []
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(Booking.id.in_(booking_ids))
            .execution_options(populate_existing=True)
        )
        by_id = {booking.id: booking for booking in result.scalars().all()}
        return [by_id[booking_id] for booking_id in booking_ids]

    async def _get_booking_by_ticket(self, ticket_number: str) -> Optional[Booking]:
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(Booking.ticket_number == ticket_number)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _list_bookings(
        self,
        conditions: list,
        status_filter: Optional[List[BookingStatus]],
        limit: int,
        offset: int
    ) -> Tuple[List[Booking], int]:
        if status_filter:
            conditions = [*conditions, Booking.status.in_(status_filter)]

        count_result = await self.session.execute(
            select(func.count(Booking.id)).where(*conditions)
        )
        total = count_result.scalar_one()

        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(*conditions)
            .order_by(Booking.created_at.desc(), Booking.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    def _queue_notification(self, kind: str, booking_id: UUID) -> None:
        """Hand a committed booking change to the notification queue. Never raises."""
        try:
            if self.notifier is not None:
                self.notifier(kind, str(booking_id))
            else:
                from ..tasks.notification_tasks import queue_notification
                queue_notification(kind, str(booking_id))
            logger.info(f"Queued {kind} notification for booking {booking_id}")
        except Exception as e:
            logger.warning(f"Failed to queue {kind} notification for booking {booking_id}: {e}")
