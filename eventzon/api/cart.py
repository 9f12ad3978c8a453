"""
Cart API endpoints.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.booking import BookingResponse, CheckoutRequest, CheckoutResponse
from ..schemas.cart import CartItemCreate, CartItemUpdate, CartResponse
from ..schemas.common import SuccessResponse
from ..services.booking_service import BookingService
from ..services.cart_service import CartService
from ..utils.dependencies import RequestContext, get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def list_cart(
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's cart with live event data and totals."""
    return await CartService(db).list_cart(context.user_id)


@router.post("", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    item: CartItemCreate,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Add tickets for an event to the cart.

    Adding an event already in the cart increments its quantity.
    """
    cart_service = CartService(db)
    await cart_service.add_to_cart(context.user_id, item.event_id, item.quantity)
    return await cart_service.list_cart(context.user_id)


@router.put("/{cart_item_id}", response_model=CartResponse)
async def update_cart_item(
    cart_item_id: UUID,
    update: CartItemUpdate,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Set a line's quantity. A quantity of zero removes the line."""
    cart_service = CartService(db)
    await cart_service.update_cart_item(context.user_id, cart_item_id, update.quantity)
    return await cart_service.list_cart(context.user_id)


@router.delete("/{cart_item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_cart_item(
    cart_item_id: UUID,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await CartService(db).remove_cart_item(context.user_id, cart_item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", response_model=SuccessResponse)
async def clear_cart(
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    removed = await CartService(db).clear_cart(context.user_id)
    return SuccessResponse(message="Cart cleared", data={"removed_items": removed})


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    request: CheckoutRequest,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Book every line in the cart.

    Each line succeeds or fails on its own; failed lines stay in the cart
    and are listed under ``failures``.
    """
    bookings, failures = await BookingService(db).checkout(context.user_id, request.attendee)

    if failures and bookings:
        message = f"{len(bookings)} booking(s) confirmed, {len(failures)} failed"
    elif failures:
        message = "No booking could be confirmed"
    else:
        message = f"{len(bookings)} booking(s) confirmed"

    return CheckoutResponse(
        bookings=[BookingResponse.from_booking(booking) for booking in bookings],
        failures=failures,
        message=message,
    )
