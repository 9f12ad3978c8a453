"""
Tests for the cart service.
"""

import uuid
from decimal import Decimal

import pytest

from eventzon.services.cart_service import CartService
from eventzon.utils.exceptions import (
    CartItemNotFoundError,
    EventNotFoundError,
    ValidationError,
)


@pytest.mark.asyncio
async def test_add_same_event_increments_line(db_session, test_user, test_event):
    cart = CartService(db_session)

    first = await cart.add_to_cart(test_user.id, test_event.id, 2)
    second = await cart.add_to_cart(test_user.id, test_event.id, 3)

    assert second.id == first.id
    assert second.quantity == 5

    listing = await cart.list_cart(test_user.id)
    assert len(listing.items) == 1
    assert listing.total_quantity == 5


@pytest.mark.asyncio
async def test_list_cart_uses_live_event_data(db_session, test_user, test_event, small_event):
    cart = CartService(db_session)
    await cart.add_to_cart(test_user.id, test_event.id, 3)
    await cart.add_to_cart(test_user.id, small_event.id, 1)

    listing = await cart.list_cart(test_user.id)

    first = listing.items[0]
    assert first.event_title == "Makossa Night"
    assert first.unit_price == Decimal("1500.00")
    assert first.line_total == Decimal("4500.00")
    assert first.available_tickets == 100
    assert listing.total_amount == Decimal("6000.00")
    assert listing.currency == "XAF"


@pytest.mark.asyncio
async def test_add_rejects_bad_quantity_and_unknown_event(db_session, test_user):
    cart = CartService(db_session)

    with pytest.raises(ValidationError):
        await cart.add_to_cart(test_user.id, uuid.uuid4(), 0)
    with pytest.raises(EventNotFoundError):
        await cart.add_to_cart(test_user.id, uuid.uuid4(), 1)


@pytest.mark.asyncio
async def test_update_quantity_and_remove_by_zero(db_session, test_user, test_event):
    cart = CartService(db_session)
    item = await cart.add_to_cart(test_user.id, test_event.id, 1)
    item_id = item.id

    updated = await cart.update_cart_item(test_user.id, item_id, 4)
    assert updated.quantity == 4

    assert await cart.update_cart_item(test_user.id, item_id, 0) is None
    assert (await cart.list_cart(test_user.id)).items == []


@pytest.mark.asyncio
async def test_update_other_users_line_is_not_found(db_session, test_user, admin_user, test_event):
    cart = CartService(db_session)
    item = await cart.add_to_cart(test_user.id, test_event.id, 1)

    with pytest.raises(CartItemNotFoundError):
        await cart.update_cart_item(admin_user.id, item.id, 2)


@pytest.mark.asyncio
async def test_remove_and_clear(db_session, test_user, test_event, small_event):
    cart = CartService(db_session)
    item = await cart.add_to_cart(test_user.id, test_event.id, 1)
    await cart.add_to_cart(test_user.id, small_event.id, 1)

    assert await cart.remove_cart_item(test_user.id, item.id) == 1
    # Removing twice is harmless
    assert await cart.remove_cart_item(test_user.id, item.id) == 0

    assert await cart.clear_cart(test_user.id) == 1
    listing = await cart.list_cart(test_user.id)
    assert listing.items == []
    assert listing.total_amount == Decimal("0.00")
