from datetime import date
from decimal import Decimal

import pytest

from distbill.models.invoice import InvoiceStatus, InvoiceType
from distbill.services.dashboard_service import DashboardService, add_months
from distbill.services.invoice_assembler import build_invoice_draft
from distbill.services.line_items import Cart
from distbill.services.stock_ledger import StockLedger


TODAY = date(2026, 10, 19)


@pytest.mark.parametrize(
    "day, months, expected",
    [
        (date(2026, 10, 19), 3, date(2027, 1, 19)),
        (date(2026, 11, 30), 3, date(2027, 2, 28)),
        (date(2026, 10, 1), -5, date(2026, 5, 1)),
        (date(2026, 1, 31), -2, date(2025, 11, 30)),
    ],
)
def test_add_months(day, months, expected):
    assert add_months(day, months) == expected


async def bill(store, product, invoice_date, status=InvoiceStatus.PAID):
    cart = Cart(await store.get_profile())
    cart.add_line(product)
    draft = build_invoice_draft(cart, InvoiceType.RETAIL, invoice_date=invoice_date, status=status)
    return await StockLedger(store).commit(draft)


@pytest.mark.anyio
async def test_empty_dashboard(store):
    stats = await DashboardService(store).get_stats(today=TODAY)

    assert stats.total_sales == 0
    assert stats.total_invoices == 0
    assert stats.low_stock_items == 0
    assert stats.expiring_soon_items == 0
    assert [m.month for m in stats.monthly_sales] == [
        "2026-05", "2026-06", "2026-07", "2026-08", "2026-09", "2026-10",
    ]
    assert all(m.total == 0 for m in stats.monthly_sales)


@pytest.mark.anyio
async def test_dashboard_figures(store, products):
    await bill(store, products[0], date(2026, 10, 1))
    await bill(store, products[0], date(2026, 8, 15))
    await bill(store, products[0], date(2026, 10, 5), status=InvoiceStatus.CANCELLED)
    await bill(store, products[0], date(2026, 1, 10))

    stats = await DashboardService(store).get_stats(today=TODAY)

    # Cancelled invoices are counted but not summed.
    assert stats.total_invoices == 4
    assert stats.total_sales == Decimal("336")
    # Paracetamol (stock 1) is low; Cough Syrup expires 2026-12-31.
    assert stats.low_stock_items == 1
    assert stats.expiring_soon_items == 1

    monthly = {m.month: m.total for m in stats.monthly_sales}
    assert monthly["2026-10"] == Decimal("112")
    assert monthly["2026-08"] == Decimal("112")
    assert monthly["2026-09"] == 0
    assert "2026-01" not in monthly
