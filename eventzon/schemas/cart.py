"""
Pydantic schemas for the shopping cart.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CartItemCreate(BaseModel):
    """Schema for adding tickets to the cart."""

    event_id: UUID = Field(..., description="ID of the event")
    quantity: int = Field(1, ge=1, description="Number of tickets to add")


class CartItemUpdate(BaseModel):
    """Schema for overwriting a cart line quantity. Zero or less removes the line."""

    quantity: int = Field(..., description="New quantity")


class CartItemResponse(BaseModel):
    """Cart line joined with the live event."""

    id: UUID
    event_id: UUID
    quantity: int
    event_title: str
    event_date: date
    venue: str
    city: Optional[str] = None
    image_url: Optional[str] = None
    unit_price: Decimal
    currency: str
    line_total: Decimal
    available_tickets: int


class CartResponse(BaseModel):
    """Full cart for the current user."""

    items: List[CartItemResponse]
    total_quantity: int
    total_amount: Decimal
    currency: str
