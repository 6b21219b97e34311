"""Dashboard figures: sales, invoice count, stock and expiry alerts."""
import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func, and_

from distbill.config import settings
from distbill.models.invoice import Invoice, InvoiceStatus
from distbill.models.product import Product
from distbill.services.catalog_store import CatalogStore
from distbill.services.tax_engine import ZERO, to_decimal


SALES_CHART_MONTHS = 6


@dataclass(frozen=True)
class MonthlySales:
    month: str  # YYYY-MM
    total: Decimal


@dataclass(frozen=True)
class DashboardStats:
    total_sales: Decimal
    total_invoices: int
    low_stock_items: int
    expiring_soon_items: int
    monthly_sales: List[MonthlySales]


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping to the month's last day."""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month0 = divmod(month_index, 12)
    last_day = calendar.monthrange(year, month0 + 1)[1]
    return date(year, month0 + 1, min(day.day, last_day))


class DashboardService:
    """Aggregates shown on the landing screen."""

    def __init__(self, store: CatalogStore):
        self.store = store

    async def get_stats(self, today: Optional[date] = None) -> DashboardStats:
        today = today or date.today()
        not_cancelled = Invoice.status != InvoiceStatus.CANCELLED.value
        expiry_limit = add_months(today, settings.EXPIRY_WARNING_MONTHS)
        chart_start = add_months(today.replace(day=1), -(SALES_CHART_MONTHS - 1))

        async with self.store.session() as session:
            total_sales = await session.scalar(select(func.sum(Invoice.grand_total)).where(not_cancelled))
            total_invoices = await session.scalar(select(func.count(Invoice.id)))
            low_stock_items = await session.scalar(
                select(func.count(Product.id)).where(Product.stock < settings.LOW_STOCK_THRESHOLD)
            )
            expiring_soon_items = await session.scalar(
                select(func.count(Product.id)).where(
                    and_(
                        Product.expiry.isnot(None),
                        Product.expiry > today,
                        Product.expiry < expiry_limit,
                    )
                )
            )
            result = await session.execute(
                select(Invoice.invoice_date, Invoice.grand_total).where(
                    and_(not_cancelled, Invoice.invoice_date >= chart_start)
                )
            )
            recent = result.all()

        months: Dict[str, Decimal] = {
            add_months(chart_start, offset).strftime("%Y-%m"): ZERO
            for offset in range(SALES_CHART_MONTHS)
        }
        for invoice_date, grand_total in recent:
            key = invoice_date.strftime("%Y-%m")
            if key in months:
                months[key] += to_decimal(grand_total)

        return DashboardStats(
            total_sales=to_decimal(total_sales),
            total_invoices=total_invoices or 0,
            low_stock_items=low_stock_items or 0,
            expiring_soon_items=expiring_soon_items or 0,
            monthly_sales=[MonthlySales(month=month, total=total) for month, total in months.items()],
        )
