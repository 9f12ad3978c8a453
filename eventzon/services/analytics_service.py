"""
Analytics service for the admin booking report.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Awaitable, Callable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models import Booking, Event
from ..models.booking import REVENUE_STATUSES
from ..schemas.analytics import (
    AnalyticsReport,
    GroupCount,
    MonthlyBookings,
    MonthlyRevenue,
    TopEvent,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AnalyticsService:
    """Service for analytics and reporting operations.

    Only revenue-bearing bookings (confirmed or attended) are counted, and
    the optional window is inclusive on both ends and applies to the
    booking creation time.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def get_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> AnalyticsReport:
        """Build the full report. A failing section is zeroed and listed in ``warnings``."""
        report = AnalyticsReport(
            start_date=start_date,
            end_date=end_date,
            currency=self.settings.default_currency,
        )
        conditions = self._booking_conditions(start_date, end_date)

        sections: List[tuple[str, Callable[[AnalyticsReport, list], Awaitable[None]]]] = [
            ("total_events", self._fill_total_events),
            ("totals", self._fill_totals),
            ("popular_cities", self._fill_popular_cities),
            ("popular_regions", self._fill_popular_regions),
            ("popular_categories", self._fill_popular_categories),
            ("monthly", self._fill_monthly),
            ("top_events", self._fill_top_events),
        ]

        for name, fill in sections:
            try:
                await fill(report, conditions)
            except Exception as e:
                logger.error(f"Analytics section {name} failed: {e}", exc_info=True)
                # Reads only; discard a transaction the failure may have aborted
                await self.db.rollback()
                report.warnings.append(name)

        return report

    def _booking_conditions(self, start_date: Optional[date], end_date: Optional[date]) -> list:
        conditions = [Booking.status.in_(REVENUE_STATUSES)]
        if start_date:
            conditions.append(
                Booking.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc)
            )
        if end_date:
            conditions.append(
                Booking.created_at < datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            )
        return conditions

    async def _fill_total_events(self, report: AnalyticsReport, conditions: list) -> None:
        result = await self.db.execute(select(func.count(Event.id)))
        report.total_events = result.scalar_one()

    async def _fill_totals(self, report: AnalyticsReport, conditions: list) -> None:
        result = await self.db.execute(
            select(Booking.total_amount, Booking.quantity).where(*conditions)
        )
        rows = result.all()

        report.total_bookings = len(rows)
        report.total_revenue = sum((Decimal(amount) for amount, _ in rows), Decimal("0.00")).quantize(CENT)

        if rows:
            unit_prices = sum((Decimal(amount) / quantity for amount, quantity in rows), Decimal("0"))
            report.average_ticket_price = (unit_prices / len(rows)).quantize(CENT, rounding=ROUND_HALF_UP)

    async def _fill_popular_cities(self, report: AnalyticsReport, conditions: list) -> None:
        report.popular_cities = await self._group_counts(Event.city, conditions)

    async def _fill_popular_regions(self, report: AnalyticsReport, conditions: list) -> None:
        report.popular_regions = await self._group_counts(Event.region, conditions)

    async def _fill_popular_categories(self, report: AnalyticsReport, conditions: list) -> None:
        report.popular_categories = await self._group_counts(Event.category, conditions)

    async def _group_counts(self, column, conditions: list) -> List[GroupCount]:
        """Top groups by booking count; ties go to the group booked first, then by name."""
        result = await self.db.execute(
            select(
                column,
                func.count(Booking.id),
                func.min(Booking.created_at)
            )
            .select_from(Booking)
            .join(Event, Booking.event_id == Event.id)
            .where(*conditions)
            .group_by(column)
        )

        # NULL and blank values share the unspecified bucket
        counts: dict = defaultdict(int)
        first_seen: dict = {}
        for raw_name, count, first in result.all():
            name = (raw_name or "").strip() or self.settings.unspecified_label
            counts[name] += count
            first = _to_utc(first)
            if name not in first_seen or first < first_seen[name]:
                first_seen[name] = first

        ranked = sorted(counts, key=lambda name: (-counts[name], first_seen[name], name))
        return [
            GroupCount(name=name, count=counts[name])
            for name in ranked[:self.settings.analytics_top_n]
        ]

    async def _fill_monthly(self, report: AnalyticsReport, conditions: list) -> None:
        result = await self.db.execute(
            select(Booking.created_at, Booking.total_amount).where(*conditions)
        )

        revenue: dict = defaultdict(lambda: Decimal("0.00"))
        bookings: dict = defaultdict(int)
        for created_at, amount in result.all():
            month = _to_utc(created_at).strftime("%Y-%m")
            revenue[month] += Decimal(amount)
            bookings[month] += 1

        # Months without bookings are omitted
        report.revenue_by_month = [
            MonthlyRevenue(month=month, revenue=revenue[month].quantize(CENT))
            for month in sorted(revenue)
        ]
        report.bookings_by_month = [
            MonthlyBookings(month=month, bookings=bookings[month])
            for month in sorted(bookings)
        ]
        report.gaps_filled = False

    async def _fill_top_events(self, report: AnalyticsReport, conditions: list) -> None:
        revenue = func.sum(Booking.total_amount)
        booking_count = func.count(Booking.id)
        result = await self.db.execute(
            select(
                Event.id,
                Event.title,
                Event.city,
                Event.event_date,
                booking_count.label("bookings"),
                func.sum(Booking.quantity).label("tickets_sold"),
                revenue.label("revenue")
            )
            .select_from(Booking)
            .join(Event, Booking.event_id == Event.id)
            .where(*conditions)
            .group_by(Event.id, Event.title, Event.city, Event.event_date)
            .order_by(revenue.desc(), booking_count.desc(), Event.title)
            .limit(self.settings.analytics_top_n)
        )

        report.top_events = [
            TopEvent(
                event_id=row.id,
                title=row.title,
                city=row.city,
                event_date=row.event_date,
                bookings=row.bookings,
                tickets_sold=int(row.tickets_sold or 0),
                revenue=Decimal(row.revenue or 0).quantize(CENT),
            )
            for row in result.all()
        ]
