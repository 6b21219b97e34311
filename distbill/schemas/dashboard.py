from decimal import Decimal
from typing import List

from distbill.schemas.base import BaseResponseSchema


class MonthlySalesResponse(BaseResponseSchema):
    month: str
    total: Decimal


class DashboardStatsResponse(BaseResponseSchema):
    total_sales: Decimal
    total_invoices: int
    low_stock_items: int
    expiring_soon_items: int
    monthly_sales: List[MonthlySalesResponse]
