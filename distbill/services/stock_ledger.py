"""Stock ledger: saves an invoice and takes its units out of stock atomically.

Inside one store transaction the ledger
1. allocates the invoice number and inserts the invoice with its lines;
2. for every line, reads the product, subtracts billed + free units and
   records the line's batch and MRP as the product's current ones.

If any step fails nothing is written: there is never an invoice without its
stock movement or a stock movement without its invoice.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from distbill.config import settings
from distbill.core.exceptions import BillingError
from distbill.models.invoice import AMOUNT_QUANTUM, Invoice, InvoiceLineItem, InvoiceNumberSequence
from distbill.models.product import Product
from distbill.services.catalog_store import CatalogStore, INVOICES, PRODUCTS
from distbill.services.invoice_assembler import (
    InvoiceDraft,
    amount_to_words,
    format_invoice_number,
    next_sequence,
    series_code,
)
from distbill.services.line_items import LineItem
from distbill.services.tax_engine import ZERO, to_decimal


logger = logging.getLogger(__name__)


class TransactionFailure(BillingError):
    """Invoice commit failed; nothing was persisted."""
    error_code = "TRANSACTION_FAILED"


class ReferentialIntegrityWarning(TransactionFailure):
    """A line refers to a product that no longer exists."""
    error_code = "PRODUCT_MISSING"


class InsufficientStockError(TransactionFailure):
    """Commit would take stock below zero under REJECT_NEGATIVE."""
    error_code = "INSUFFICIENT_STOCK"


class StockPolicy(str, Enum):
    """What to do when an invoice bills more units than are on hand."""
    ALLOW_NEGATIVE = "ALLOW_NEGATIVE"    # Backorder: stock goes below zero
    REJECT_NEGATIVE = "REJECT_NEGATIVE"  # Abort the commit


class InvoiceNumbering(str, Enum):
    COUNT = "COUNT"        # invoice count + offset
    SEQUENCE = "SEQUENCE"  # persisted per-series counter


def stored_amount(value) -> Decimal:
    """Quantize an amount to the scale of the AMOUNT columns."""
    return to_decimal(value).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def _saved_line(number: int, line: LineItem) -> InvoiceLineItem:
    taxable_value = stored_amount(line.taxable_value)
    cgst_amount = stored_amount(line.cgst_amount)
    sgst_amount = stored_amount(line.sgst_amount)
    igst_amount = stored_amount(line.igst_amount)
    return InvoiceLineItem(
        line_number=number,
        product_id=line.product_id,
        name=line.name,
        batch=line.batch,
        expiry=line.expiry,
        hsn=line.hsn,
        manufacturer=line.manufacturer,
        mrp=line.mrp,
        old_mrp=line.old_mrp,
        sale_rate=line.sale_rate,
        quantity=line.quantity,
        free_quantity=line.free_quantity,
        discount_percent=line.discount_percent,
        gst_rate=line.gst_rate,
        cgst_rate=line.cgst_rate,
        sgst_rate=line.sgst_rate,
        igst_rate=line.igst_rate,
        taxable_value=taxable_value,
        cgst_amount=cgst_amount,
        sgst_amount=sgst_amount,
        igst_amount=igst_amount,
        total_amount=taxable_value + cgst_amount + sgst_amount + igst_amount,
    )


class StockLedger:
    """Commits invoice drafts against the catalog store."""

    def __init__(
        self,
        store: CatalogStore,
        stock_policy: Optional[StockPolicy] = None,
        numbering: Optional[InvoiceNumbering] = None,
    ):
        self.store = store
        self.stock_policy = StockPolicy(stock_policy or settings.STOCK_POLICY)
        self.numbering = InvoiceNumbering(numbering or settings.INVOICE_NUMBERING)

    async def peek_invoice_number(self, invoice_type: str) -> str:
        """Number the next invoice of this type would get, without reserving it."""
        async with self.store.session() as session:
            if self.numbering == InvoiceNumbering.SEQUENCE:
                sequence = await self._current_sequence(session, invoice_type) + 1
            else:
                sequence = next_sequence(await self._invoice_count(session))
        return format_invoice_number(invoice_type, sequence)

    async def commit(self, draft: InvoiceDraft) -> Invoice:
        """
        Persist the invoice and decrement stock for every line.

        Returns:
            The saved invoice with its line items loaded

        Raises:
            ReferentialIntegrityWarning: a line's product no longer exists
            InsufficientStockError: stock would go negative under REJECT_NEGATIVE
            TransactionFailure: any other storage failure
        """
        try:
            async with self.store.transaction(INVOICES, PRODUCTS) as session:
                invoice_number = draft.invoice_number or await self._allocate_number(session, draft.invoice_type)
                invoice = self._build_invoice(draft, invoice_number)
                session.add(invoice)
                await session.flush()

                for line in draft.lines:
                    await self._apply_stock_movement(session, line, invoice_number)

                invoice_id = invoice.id
        except TransactionFailure as e:
            logger.error(f"Invoice commit rolled back: {e.message}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Invoice commit rolled back: {type(e).__name__}: {e}")
            raise TransactionFailure(
                "Could not save the invoice",
                details={"reason": str(e)},
            ) from e

        logger.info(
            f"Saved invoice {invoice_number} for {draft.party.name}: "
            f"{len(draft.lines)} lines, total {draft.totals.rounded_total}"
        )
        return await self._load(invoice_id)

    async def _apply_stock_movement(self, session: AsyncSession, line, invoice_number: str) -> None:
        product = await session.get(Product, line.product_id, with_for_update=True)
        if product is None:
            raise ReferentialIntegrityWarning(
                f"Product '{line.name}' (id {line.product_id}) no longer exists",
                details={"product_id": line.product_id, "invoice_number": invoice_number},
            )

        new_stock = product.stock - line.stock_units
        if new_stock < 0 and self.stock_policy == StockPolicy.REJECT_NEGATIVE:
            raise InsufficientStockError(
                f"Only {product.stock} units of '{product.name}' in stock, {line.stock_units} billed",
                details={
                    "product_id": product.id,
                    "available": product.stock,
                    "requested": line.stock_units,
                },
            )
        if new_stock < 0:
            logger.warning(f"Stock of '{product.name}' goes negative ({new_stock}) on {invoice_number}")

        product.stock = new_stock
        product.batch = line.batch
        product.mrp = line.mrp

    def _build_invoice(self, draft: InvoiceDraft, invoice_number: str) -> Invoice:
        items = [_saved_line(number, line) for number, line in enumerate(draft.lines, start=1)]

        # Totals are summed from the stored lines so the saved invoice adds up
        # on its own; round off still lands on the draft's charged amount.
        grand_total = sum((item.total_amount for item in items), ZERO)
        rounded_total = draft.totals.rounded_total
        return Invoice(
            invoice_number=invoice_number,
            invoice_date=draft.invoice_date,
            invoice_type=draft.invoice_type,
            status=draft.status,
            party_id=draft.party.party_id,
            party_name=draft.party.name,
            party_gstin=draft.party.gstin,
            party_address=draft.party.address,
            party_state_code=draft.party.state_code,
            gr_no=draft.gr_no,
            vehicle_no=draft.vehicle_no,
            transport=draft.transport,
            total_taxable=sum((item.taxable_value for item in items), ZERO),
            total_cgst=sum((item.cgst_amount for item in items), ZERO),
            total_sgst=sum((item.sgst_amount for item in items), ZERO),
            total_igst=sum((item.igst_amount for item in items), ZERO),
            grand_total=grand_total,
            round_off=rounded_total - grand_total,
            amount_in_words=amount_to_words(rounded_total),
            items=items,
        )

    # ==================== NUMBERING ====================

    async def _invoice_count(self, session: AsyncSession) -> int:
        return await session.scalar(select(func.count(Invoice.id))) or 0

    async def _current_sequence(self, session: AsyncSession, invoice_type: str) -> int:
        sequence = await session.scalar(
            select(InvoiceNumberSequence).where(InvoiceNumberSequence.series_code == series_code(invoice_type))
        )
        if sequence is None:
            return next_sequence(0) - 1
        return sequence.current_number

    async def _allocate_number(self, session: AsyncSession, invoice_type: str) -> str:
        if self.numbering == InvoiceNumbering.COUNT:
            # Not monotonic if invoices are ever deleted; the unique constraint
            # on invoice_number turns a collision into a failed commit.
            return format_invoice_number(invoice_type, next_sequence(await self._invoice_count(session)))

        code = series_code(invoice_type)
        sequence = await session.scalar(
            select(InvoiceNumberSequence)
            .where(InvoiceNumberSequence.series_code == code)
            .with_for_update()
        )
        if sequence is None:
            sequence = InvoiceNumberSequence(series_code=code, current_number=next_sequence(0) - 1)
            session.add(sequence)
            await session.flush()

        sequence.current_number += 1
        return format_invoice_number(invoice_type, sequence.current_number)

    async def _load(self, invoice_id: int) -> Invoice:
        async with self.store.session() as session:
            result = await session.execute(
                select(Invoice)
                .options(selectinload(Invoice.items))
                .where(Invoice.id == invoice_id)
            )
            return result.scalar_one()
