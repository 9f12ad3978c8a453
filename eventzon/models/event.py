"""
Event model for listed events and their ticket inventory.
"""

import enum
import uuid
from datetime import date, time
from decimal import Decimal
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .cart_item import CartItem
    from .user import User


class EventStatus(enum.Enum):
    """Enumeration for event status."""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    SOLD_OUT = "sold_out"


class Event(Base):
    """Event model with inventory counters guarded by the booking service."""

    __tablename__ = "events"

    # Event basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    organizer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Location
    venue: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="Cameroun")

    # Event timing
    event_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Pricing
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="XAF")

    # Inventory
    max_attendees: Mapped[int] = mapped_column(Integer, nullable=False)
    available_tickets: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus),
        default=EventStatus.ACTIVE,
        nullable=False,
        index=True
    )

    # Bumped on every inventory write
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Relationships
    organizer: Mapped[Optional["User"]] = relationship("User")

    bookings: Mapped[List["Booking"]] = relationship(
        "Booking",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    cart_items: Mapped[List["CartItem"]] = relationship(
        "CartItem",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("max_attendees > 0", name="ck_events_max_attendees_positive"),
        CheckConstraint("available_tickets >= 0", name="ck_events_available_tickets_non_negative"),
        CheckConstraint("available_tickets <= max_attendees", name="ck_events_inventory_consistency"),
        CheckConstraint("price >= 0", name="ck_events_price_non_negative"),
        CheckConstraint("version > 0", name="ck_events_version_positive"),
    )

    @property
    def is_sold_out(self) -> bool:
        """Check if the event is sold out."""
        return self.available_tickets == 0

    @property
    def tickets_sold(self) -> int:
        return self.max_attendees - self.available_tickets

    def __repr__(self) -> str:
        """String representation of the event."""
        return (
            f"<Event(id={self.id}, title='{self.title}', "
            f"date={self.event_date}, tickets={self.available_tickets}/{self.max_attendees})>"
        )
