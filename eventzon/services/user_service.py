"""
User service for handling user-related operations.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, REVENUE_STATUSES
from ..models.cart_item import CartItem
from ..models.event import Event
from ..models.user import User, UserRole
from ..utils.exceptions import UserNotFoundError
from .booking_service import BookingService

logger = logging.getLogger(__name__)


class UserService:
    """Service class for user operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email)
        )
        return result.scalar_one_or_none()

    async def upsert_user(
        self,
        user_id: UUID,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        profile_image_url: Optional[str] = None,
        role: Optional[UserRole] = None
    ) -> User:
        """
        Create or refresh a user from identity-provider claims.

        The role is only changed when explicitly given, so a returning user
        keeps an admin role granted locally.
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            user = User(id=user_id, email=email, role=role or UserRole.USER)
            self.db.add(user)
        else:
            user.email = email
            if role is not None:
                user.role = role

        user.first_name = first_name
        user.last_name = last_name
        user.profile_image_url = profile_image_url

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def delete_user(self, user_id: UUID) -> None:
        """
        Delete a user with their bookings and cart.

        Tickets held by the user's bookings go back on sale first so event
        inventory stays consistent with the remaining bookings. Events the
        user organized are kept without an organizer.
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))

        try:
            held = await self.db.execute(
                select(Booking.event_id, func.sum(Booking.quantity))
                .where(
                    Booking.user_id == user_id,
                    Booking.status.in_(REVENUE_STATUSES)
                )
                .group_by(Booking.event_id)
            )
            booking_service = BookingService(self.db)
            for event_id, quantity in held.all():
                await booking_service.release_inventory(event_id, int(quantity))

            await self.db.execute(
                update(Event)
                .where(Event.organizer_id == user_id)
                .values(organizer_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(delete(CartItem).where(CartItem.user_id == user_id))
            await self.db.execute(delete(Booking).where(Booking.user_id == user_id))
            await self.db.delete(user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"User {user_id} deleted")
