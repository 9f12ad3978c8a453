"""
Cart line model: one row per user and event.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User
    from .event import Event


class CartItem(Base):
    """Pending ticket selection before checkout."""

    __tablename__ = "cart_items"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    user: Mapped["User"] = relationship("User", back_populates="cart_items")
    event: Mapped["Event"] = relationship("Event", back_populates="cart_items")

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_cart_items_user_event"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    def __repr__(self) -> str:
        return f"<CartItem(user_id={self.user_id}, event_id={self.event_id}, quantity={self.quantity})>"
