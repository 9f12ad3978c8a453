"""
Cart service: pending ticket selections, one line per user and event.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.cart_item import CartItem
from ..models.event import Event
from ..models.user import User
from ..schemas.cart import CartItemResponse, CartResponse
from ..utils.exceptions import (
    CartItemNotFoundError,
    EventNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from .booking_service import compute_total

logger = logging.getLogger(__name__)


class CartService:
    """Service for managing a user's cart."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    async def add_to_cart(self, user_id: UUID, event_id: UUID, quantity: int = 1) -> CartItem:
        """
        Add tickets to the cart, incrementing the existing line for the event.

        Raises:
            ValidationError: When quantity is below 1
            UserNotFoundError, EventNotFoundError: When a referenced row is missing
        """
        if quantity < 1:
            raise ValidationError(
                "Quantity must be at least 1",
                field_errors={"quantity": ["must be at least 1"]}
            )

        if await self.session.get(User, user_id) is None:
            raise UserNotFoundError(str(user_id))
        if await self.session.get(Event, event_id) is None:
            raise EventNotFoundError(str(event_id))

        try:
            if not await self._increment(user_id, event_id, quantity):
                self.session.add(CartItem(user_id=user_id, event_id=event_id, quantity=quantity))
                await self.session.flush()
            await self.session.commit()
        except IntegrityError:
            # A concurrent request inserted the line first
            await self.session.rollback()
            logger.info(f"Cart line for user {user_id}, event {event_id} created concurrently")
            await self._increment(user_id, event_id, quantity)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        item = await self._get_line(user_id, event_id)
        logger.info(f"Cart line {item.id} now holds {item.quantity} ticket(s) for event {event_id}")
        return item

    async def update_cart_item(self, user_id: UUID, cart_item_id: UUID, quantity: int) -> Optional[CartItem]:
        """
        Overwrite a line's quantity. Zero or less removes the line and returns None.

        Raises:
            CartItemNotFoundError: When the line does not belong to the user
        """
        item = await self._get_owned_item(user_id, cart_item_id)

        if quantity <= 0:
            await self.session.delete(item)
            await self.session.commit()
            logger.info(f"Cart line {cart_item_id} removed by quantity update")
            return None

        item.quantity = quantity
        await self.session.commit()
        await self.session.refresh(item)
        return item

    async def remove_cart_item(self, user_id: UUID, cart_item_id: UUID) -> int:
        """Delete one line. Removing a missing line is not an error."""
        result = await self.session.execute(
            delete(CartItem).where(
                CartItem.id == cart_item_id,
                CartItem.user_id == user_id
            )
        )
        await self.session.commit()
        return result.rowcount

    async def clear_cart(self, user_id: UUID) -> int:
        """Delete every line of the user's cart."""
        result = await self.session.execute(
            delete(CartItem).where(CartItem.user_id == user_id)
        )
        await self.session.commit()
        logger.info(f"Cleared {result.rowcount} cart line(s) for user {user_id}")
        return result.rowcount

    async def list_cart(self, user_id: UUID) -> CartResponse:
        """Cart lines joined with live event data; totals use the current price."""
        result = await self.session.execute(
            select(CartItem, Event)
            .join(Event, CartItem.event_id == Event.id)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
        )

        items = []
        for item, event in result.all():
            items.append(CartItemResponse(
                id=item.id,
                event_id=event.id,
                quantity=item.quantity,
                event_title=event.title,
                event_date=event.event_date,
                venue=event.venue,
                city=event.city,
                image_url=event.image_url,
                unit_price=event.price,
                currency=event.currency,
                line_total=compute_total(event.price, item.quantity),
                available_tickets=event.available_tickets,
            ))

        return CartResponse(
            items=items,
            total_quantity=sum(item.quantity for item in items),
            total_amount=sum((item.line_total for item in items), Decimal("0.00")),
            currency=self.settings.default_currency,
        )

    async def _increment(self, user_id: UUID, event_id: UUID, quantity: int) -> bool:
        result = await self.session.execute(
            update(CartItem)
            .where(
                CartItem.user_id == user_id,
                CartItem.event_id == event_id
            )
            .values(quantity=CartItem.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def _get_line(self, user_id: UUID, event_id: UUID) -> CartItem:
        result = await self.session.execute(
            select(CartItem)
            .where(
                CartItem.user_id == user_id,
                CartItem.event_id == event_id
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _get_owned_item(self, user_id: UUID, cart_item_id: UUID) -> CartItem:
        result = await self.session.execute(
            select(CartItem).where(
                CartItem.id == cart_item_id,
                CartItem.user_id == user_id
            )
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise CartItemNotFoundError(str(cart_item_id))
        return item
