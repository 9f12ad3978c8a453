"""
Pydantic schemas for analytics and reporting.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class GroupCount(BaseModel):
    """Booking count for a city, region or category."""
    name: str = Field(..., description="Group key")
    count: int = Field(..., description="Number of bookings")


class MonthlyRevenue(BaseModel):
    """Revenue for one calendar month."""
    month: str = Field(..., description="Month in YYYY-MM format")
    revenue: Decimal = Field(..., description="Revenue for the month")


class MonthlyBookings(BaseModel):
    """Booking count for one calendar month."""
    month: str = Field(..., description="Month in YYYY-MM format")
    bookings: int = Field(..., description="Number of bookings in the month")


class TopEvent(BaseModel):
    """Event ranked by revenue."""
    event_id: UUID = Field(..., description="Event ID")
    title: str = Field(..., description="Event title")
    city: Optional[str] = Field(None, description="Event city")
    event_date: date = Field(..., description="Event date")
    bookings: int = Field(..., description="Number of bookings")
    tickets_sold: int = Field(..., description="Tickets sold")
    revenue: Decimal = Field(..., description="Total revenue")


class AnalyticsReport(BaseModel):
    """Admin analytics report for an optional booking window."""
    start_date: Optional[date] = Field(None, description="Inclusive window start")
    end_date: Optional[date] = Field(None, description="Inclusive window end")
    currency: str = Field(..., description="Reporting currency")
    total_events: int = Field(0, description="Total number of events")
    total_bookings: int = Field(0, description="Revenue-bearing bookings in the window")
    total_revenue: Decimal = Field(Decimal("0.00"), description="Sum of booking totals")
    average_ticket_price: Decimal = Field(Decimal("0.00"), description="Mean of total/quantity per booking")
    popular_cities: List[GroupCount] = Field(default_factory=list)
    popular_regions: List[GroupCount] = Field(default_factory=list)
    popular_categories: List[GroupCount] = Field(default_factory=list)
    revenue_by_month: List[MonthlyRevenue] = Field(default_factory=list)
    bookings_by_month: List[MonthlyBookings] = Field(default_factory=list)
    top_events: List[TopEvent] = Field(default_factory=list)
    gaps_filled: bool = Field(False, description="Whether months without bookings are present")
    warnings: List[str] = Field(default_factory=list, description="Sections that failed to compute")
