import asyncio
from datetime import date
from decimal import Decimal

import pytest

from distbill.database import build_engine, build_session_factory, init_db
from distbill.main import seed_company_profile
from distbill.models import COMPANY_PROFILE_ID
from distbill.models.invoice import InvoiceType
from distbill.services.catalog_store import CatalogStore
from distbill.services.invoice_assembler import build_invoice_draft
from distbill.services.line_items import Cart
from distbill.services.stock_ledger import (
    InsufficientStockError,
    InvoiceNumbering,
    ReferentialIntegrityWarning,
    StockLedger,
    StockPolicy,
    TransactionFailure,
    stored_amount,
)
from distbill.services.tax_engine import compute_tax


async def make_draft(store, products, party=None, invoice_type=InvoiceType.RETAIL, **edits):
    """Draft billing the first product with `edits` applied."""
    cart = Cart(await store.get_profile(), party)
    product = products[0]
    cart.add_line(product)
    if edits:
        cart.update_line(product.id, **edits)
    return build_invoice_draft(cart, invoice_type, invoice_date=date(2026, 10, 1))


@pytest.mark.anyio
async def test_commit_decrements_billed_and_free_units(store, products):
    draft = await make_draft(store, products, quantity=2, free_quantity=1)

    invoice = await StockLedger(store).commit(draft)

    assert invoice.id is not None
    assert len(invoice.items) == 1
    product = await store.products.get(products[0].id)
    assert product.stock == 2


@pytest.mark.anyio
async def test_commit_persists_snapshot_and_totals(store, products, parties):
    party = parties[1]
    draft = await make_draft(
        store, products, party=party, invoice_type=InvoiceType.WHOLESALE,
        quantity=10, discount_percent="10",
    )

    invoice = await StockLedger(store).commit(draft)

    assert invoice.invoice_number == "TI -65"
    assert invoice.party_name == party.name
    assert invoice.party_state_code == "27"
    assert invoice.is_interstate
    assert invoice.total_taxable == Decimal("900")
    assert invoice.total_igst == Decimal("108")
    assert invoice.grand_total == Decimal("1008")
    assert invoice.rounded_total == Decimal("1008")
    assert invoice.amount_in_words.startswith("Rupees One Thousand")
    assert invoice.amount_in_words.endswith("Eight Only")

    line = invoice.items[0]
    assert line.line_number == 1
    assert line.batch == products[0].batch
    assert line.igst_rate == Decimal("12")
    assert line.total_amount == line.taxable_value + line.cgst_amount + line.sgst_amount + line.igst_amount


@pytest.mark.anyio
async def test_party_edits_do_not_change_saved_invoice(store, products, parties):
    draft = await make_draft(store, products, party=parties[0], invoice_type=InvoiceType.WHOLESALE)
    invoice = await StockLedger(store).commit(draft)

    await store.parties.update(parties[0].id, {"name": "Renamed Stores", "gstin": "27ZZZZZ9999Z1Z5"})

    saved = await store.invoices.get(invoice.id)
    assert saved.party_name == "Shree Medical Stores"
    assert saved.party_gstin == parties[0].gstin


@pytest.mark.anyio
async def test_commit_updates_latest_batch_and_mrp(store, products):
    draft = await make_draft(store, products, batch="PCM2409", mrp="125")

    await StockLedger(store).commit(draft)

    product = await store.products.get(products[0].id)
    assert product.batch == "PCM2409"
    assert product.mrp == Decimal("125")


@pytest.mark.anyio
async def test_negative_stock_allowed_by_default(store, products):
    draft = await make_draft(store, products, quantity=8)

    await StockLedger(store, stock_policy=StockPolicy.ALLOW_NEGATIVE).commit(draft)

    product = await store.products.get(products[0].id)
    assert product.stock == -3


@pytest.mark.anyio
async def test_reject_negative_rolls_back(store, products):
    draft = await make_draft(store, products, quantity=5, free_quantity=1)
    ledger = StockLedger(store, stock_policy=StockPolicy.REJECT_NEGATIVE)

    with pytest.raises(InsufficientStockError) as exc_info:
        await ledger.commit(draft)

    assert exc_info.value.details["available"] == 5
    assert exc_info.value.details["requested"] == 6
    assert await store.invoices.count() == 0
    assert (await store.products.get(products[0].id)).stock == 5


@pytest.mark.anyio
async def test_deleted_product_aborts_whole_commit(store, products):
    cart = Cart(await store.get_profile())
    cart.add_line(products[2])
    cart.add_line(products[0])
    draft = build_invoice_draft(cart, InvoiceType.RETAIL)

    await store.products.delete(products[0].id)

    with pytest.raises(ReferentialIntegrityWarning) as exc_info:
        await StockLedger(store).commit(draft)

    assert isinstance(exc_info.value, TransactionFailure)
    assert exc_info.value.details["product_id"] == products[0].id
    assert await store.invoices.count() == 0
    # The first line's deduction was rolled back with the invoice.
    assert (await store.products.get(products[2].id)).stock == 200


@pytest.mark.anyio
async def test_count_numbering_shares_one_counter(store, products):
    ledger = StockLedger(store, numbering=InvoiceNumbering.COUNT)

    assert await ledger.peek_invoice_number(InvoiceType.RETAIL) == "RET -65"
    first = await ledger.commit(await make_draft(store, products))
    second = await ledger.commit(await make_draft(store, products))

    assert first.invoice_number == "RET -65"
    assert second.invoice_number == "RET -66"
    assert await ledger.peek_invoice_number(InvoiceType.WHOLESALE) == "TI -67"


@pytest.mark.anyio
async def test_sequence_numbering_is_per_series(store, products, parties):
    ledger = StockLedger(store, numbering=InvoiceNumbering.SEQUENCE)

    assert await ledger.peek_invoice_number(InvoiceType.RETAIL) == "RET -65"
    retail = await ledger.commit(await make_draft(store, products))
    wholesale = await ledger.commit(
        await make_draft(store, products, party=parties[0], invoice_type=InvoiceType.WHOLESALE)
    )
    retail_again = await ledger.commit(await make_draft(store, products))

    assert retail.invoice_number == "RET -65"
    assert wholesale.invoice_number == "TI -65"
    assert retail_again.invoice_number == "RET -66"
    assert await ledger.peek_invoice_number(InvoiceType.RETAIL) == "RET -67"


@pytest.mark.anyio
async def test_sequence_survives_deleted_invoices(store, products):
    ledger = StockLedger(store, numbering=InvoiceNumbering.SEQUENCE)
    first = await ledger.commit(await make_draft(store, products))

    await store.invoices.delete(first.id)
    second = await ledger.commit(await make_draft(store, products))

    assert second.invoice_number == "RET -66"


@pytest.mark.anyio
async def test_duplicate_number_is_a_transaction_failure(store, products):
    ledger = StockLedger(store, numbering=InvoiceNumbering.COUNT)
    first = await ledger.commit(await make_draft(store, products))
    await ledger.commit(await make_draft(store, products))

    # Count drops back to 1, so the next number collides with the second invoice.
    await store.invoices.delete(first.id)

    with pytest.raises(TransactionFailure):
        await ledger.commit(await make_draft(store, products))
    assert await store.invoices.count() == 1


@pytest.mark.anyio
async def test_saved_line_keeps_its_inputs_and_adds_up(store, products):
    draft = await make_draft(store, products, sale_rate="100.70", discount_percent="33.33")

    invoice = await StockLedger(store).commit(draft)

    saved = await store.invoices.get(invoice.id)
    line = saved.items[0]
    assert line.sale_rate == Decimal("100.70")
    assert line.discount_percent == Decimal("33.33")
    assert line.cgst_amount == Decimal("4.028201")
    assert line.total_amount == line.taxable_value + line.cgst_amount + line.sgst_amount + line.igst_amount

    repriced = compute_tax(line.sale_rate * line.quantity, line.discount_percent, line.gst_rate, "24", "24")
    assert line.taxable_value == stored_amount(repriced.taxable_value)
    assert line.cgst_amount == stored_amount(repriced.cgst)

    assert saved.grand_total == saved.total_taxable + saved.total_tax
    assert saved.rounded_total == Decimal("75")
    assert saved.round_off == saved.rounded_total - saved.grand_total


@pytest.mark.anyio
async def test_concurrent_commits_serialize(tmp_path):
    # Separate connections per session; a shared in-memory connection cannot
    # hold two open transactions.
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'billing.db'}")
    await init_db(engine)
    try:
        session_factory = build_session_factory(engine)
        await seed_company_profile(session_factory)
        store = CatalogStore(session_factory)
        await store.settings.update(COMPANY_PROFILE_ID, {"use_default_gst": False})
        product = await store.products.add({
            "name": "ORS Sachet",
            "batch": "ORS1",
            "hsn": "3004",
            "gst_rate": Decimal("5"),
            "mrp": Decimal("25"),
            "sale_rate": Decimal("20"),
            "stock": 200,
        })
        profile = await store.get_profile()
        ledger = StockLedger(store, numbering=InvoiceNumbering.COUNT)

        async def bill_one_unit():
            cart = Cart(profile)
            cart.add_line(product)
            return await ledger.commit(build_invoice_draft(cart, InvoiceType.RETAIL))

        invoices = await asyncio.gather(*(bill_one_unit() for _ in range(10)))

        numbers = {invoice.invoice_number for invoice in invoices}
        assert len(numbers) == 10
        assert numbers == {f"RET -{n}" for n in range(65, 75)}
        assert (await store.products.get(product.id)).stock == 190
        assert await store.invoices.count() == 10
    finally:
        await engine.dispose()
