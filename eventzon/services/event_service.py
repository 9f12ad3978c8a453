"""
Event service for managing the event catalogue.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, or_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from ..config import get_settings
from ..models import Event, EventStatus
from ..schemas.event import EventCreate, EventUpdate
from ..utils.exceptions import EventNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class EventService:
    """Service class for event management operations."""

    def __init__(self, db: AsyncSession):
        """Initialize the event service with database session."""
        self.db = db
        self.settings = get_settings()

    async def create_event(self, event_data: EventCreate, organizer_id: Optional[UUID] = None) -> Event:
        """
        Create a new event with its full inventory available.

        Raises:
            ValidationError: If event data violates a database constraint
        """
        event = Event(
            **event_data.model_dump(),
            organizer_id=organizer_id,
            currency=self.settings.default_currency,
            available_tickets=event_data.max_attendees,
            status=EventStatus.ACTIVE,
        )

        try:
            self.db.add(event)
            await self.db.commit()
            await self.db.refresh(event)
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to create event: {e.orig}")

        logger.info(f"Event {event.id} created with {event.max_attendees} tickets")
        return event

    async def get_event_by_id(self, event_id: UUID) -> Event:
        """
        Get event by ID.

        Raises:
            EventNotFoundError: If event is not found
        """
        result = await self.db.execute(
            select(Event).where(Event.id == event_id)
        )
        event = result.scalar_one_or_none()
        if not event:
            raise EventNotFoundError(str(event_id))
        return event

    async def get_events(
        self,
        search: Optional[str] = None,
        city: Optional[str] = None,
        region: Optional[str] = None,
        category: Optional[str] = None,
        available_only: bool = False,
        page: int = 1,
        size: int = 20
    ) -> Tuple[list[Event], int]:
        """Get events with filtering and pagination, soonest first."""
        conditions = [Event.status != EventStatus.CANCELLED]

        if available_only:
            conditions.append(Event.status == EventStatus.ACTIVE)

        if search:
            search_term = f"%{search}%"
            conditions.append(or_(
                Event.title.ilike(search_term),
                Event.description.ilike(search_term),
                Event.venue.ilike(search_term)
            ))

        if city:
            conditions.append(Event.city.ilike(city))
        if region:
            conditions.append(Event.region.ilike(region))
        if category:
            conditions.append(Event.category.ilike(category))

        where_clause = and_(*conditions)

        count_result = await self.db.execute(select(func.count(Event.id)).where(where_clause))
        total = count_result.scalar()

        offset = (page - 1) * size
        events_result = await self.db.execute(
            select(Event)
            .where(where_clause)
            .order_by(Event.event_date, Event.start_time)
            .offset(offset)
            .limit(size)
        )

        return list(events_result.scalars().all()), total

    async def update_event(self, event_id: UUID, event_data: EventUpdate) -> Event:
        """
        Apply a partial update to an event.

        Changing ``max_attendees`` keeps the tickets already sold and moves
        ``available_tickets`` by the same amount. Status may be set to
        cancelled or back to active; an active event with no tickets left
        becomes sold out.

        Raises:
            EventNotFoundError: If event is not found
            ValidationError: If capacity drops below tickets sold or data
                violates a database constraint
        """
        event = await self._get_event_for_update(event_id)
        update_data = event_data.model_dump(exclude_unset=True)
        new_capacity = update_data.pop("max_attendees", None)
        new_status = update_data.pop("status", None)

        try:
            for field, value in update_data.items():
                setattr(event, field, value)
            await self.db.flush()

            if new_capacity is not None and new_capacity != event.max_attendees:
                await self._resize_inventory(event, new_capacity)

            target_status = new_status or event.status
            if target_status == EventStatus.CANCELLED:
                await self.db.execute(
                    update(Event)
                    .where(Event.id == event_id)
                    .values(status=EventStatus.CANCELLED)
                    .execution_options(synchronize_session=False)
                )
            else:
                await self._derive_open_status(event_id)

            await self.db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(version=Event.version + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to update event: {e.orig}")
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(event)
        logger.info(f"Event {event_id} updated: {sorted(event_data.model_fields_set)}")
        return event

    async def delete_event(self, event_id: UUID) -> None:
        """Delete an event together with its bookings and cart lines."""
        event = await self.get_event_by_id(event_id)
        await self.db.delete(event)
        await self.db.commit()
        logger.info(f"Event {event_id} deleted")

    # Private helper methods

    async def _get_event_for_update(self, event_id: UUID) -> Event:
        result = await self.db.execute(
            select(Event)
            .where(Event.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    async def _resize_inventory(self, event: Event, new_capacity: int) -> None:
        """Relative update so bookings committed meanwhile are not lost."""
        delta = new_capacity - event.max_attendees
        result = await self.db.execute(
            update(Event)
            .where(
                Event.id == event.id,
                Event.available_tickets + delta >= 0
            )
            .values(
                max_attendees=new_capacity,
                available_tickets=Event.available_tickets + delta
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            await self.db.refresh(event)
            sold = event.max_attendees - event.available_tickets
            raise ValidationError(
                f"Cannot reduce capacity below tickets sold. "
                f"Tickets sold: {sold}, new capacity: {new_capacity}",
                field_errors={"max_attendees": [f"must be at least {sold}"]}
            )

    async def _derive_open_status(self, event_id: UUID) -> None:
        await self.db.execute(
            update(Event)
            .where(Event.id == event_id, Event.available_tickets == 0)
            .values(status=EventStatus.SOLD_OUT)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(Event)
            .where(Event.id == event_id, Event.available_tickets > 0)
            .values(status=EventStatus.ACTIVE)
            .execution_options(synchronize_session=False)
        )
