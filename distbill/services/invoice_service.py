"""Invoice Service: builds carts from requests and saves invoices.

Flow on save:
1. Load the company profile and the selected party
2. Rebuild the cart line by line (rate policy, then edits)
3. Validate and assemble the invoice draft
4. Commit through the stock ledger (invoice + stock in one transaction)
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from distbill.core.exceptions import RecordNotFoundError
from distbill.models.company import CompanyProfile
from distbill.models.invoice import Invoice, InvoiceStatus
from distbill.services.catalog_store import CatalogStore
from distbill.services.invoice_assembler import (
    HsnSummaryRow,
    InvoiceTotals,
    PartySnapshot,
    build_invoice_draft,
    hsn_summary,
    party_snapshot,
    summarize,
)
from distbill.services.line_items import EDITABLE_FIELDS, Cart, LineItem
from distbill.services.stock_ledger import StockLedger


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoicePreview:
    """Priced cart shown before saving."""
    invoice_number: str
    party: PartySnapshot
    lines: Tuple[LineItem, ...]
    totals: InvoiceTotals
    hsn_summary: List[HsnSummaryRow]


class InvoiceService:
    """Service for pricing and saving invoices."""

    def __init__(self, store: CatalogStore, ledger: Optional[StockLedger] = None):
        self.store = store
        self.ledger = ledger or StockLedger(store)

    async def get_profile(self) -> CompanyProfile:
        profile = await self.store.get_profile()
        if profile is None:
            raise RecordNotFoundError("Company profile is not set up")
        return profile

    async def build_cart(self, party_id: Optional[int], lines: Iterable[Mapping[str, Any]]) -> Cart:
        """
        Rebuild a cart from line requests.

        Each request names a product_id and optionally gst_rate (a rate chosen
        when the line was first added) plus any editable field.
        """
        profile = await self.get_profile()
        party = await self.store.parties.get_or_raise(party_id) if party_id else None

        cart = Cart(profile, party)
        for request in lines:
            product = await self.store.products.get_or_raise(request["product_id"])
            cart.add_line(product, gst_rate=request.get("gst_rate"))
            changes = {
                field: request[field]
                for field in EDITABLE_FIELDS
                if request.get(field) is not None
            }
            if changes:
                cart.update_line(product.id, **changes)
        return cart

    async def preview(
        self,
        invoice_type: Any,
        party_id: Optional[int],
        lines: Iterable[Mapping[str, Any]],
    ) -> InvoicePreview:
        """Price a cart without validating or saving it."""
        cart = await self.build_cart(party_id, lines)
        return InvoicePreview(
            invoice_number=await self.ledger.peek_invoice_number(invoice_type),
            party=party_snapshot(cart.party, cart.seller_state_code),
            lines=cart.lines,
            totals=summarize(cart.lines),
            hsn_summary=hsn_summary(cart.lines),
        )

    async def save(
        self,
        invoice_type: Any,
        party_id: Optional[int],
        lines: Iterable[Mapping[str, Any]],
        invoice_date: Optional[date] = None,
        status: Any = InvoiceStatus.PAID,
        gr_no: Optional[str] = None,
        vehicle_no: Optional[str] = None,
        transport: Optional[str] = None,
    ) -> Invoice:
        """
        Validate and commit an invoice.

        Raises:
            MissingPartyError, EmptyInvoiceError: validation failed, nothing saved
            TransactionFailure: commit failed, nothing saved
        """
        cart = await self.build_cart(party_id, lines)
        draft = build_invoice_draft(
            cart,
            invoice_type,
            invoice_date=invoice_date,
            status=status,
            gr_no=gr_no,
            vehicle_no=vehicle_no,
            transport=transport,
        )
        return await self.ledger.commit(draft)

    async def list_invoices(self, skip: int = 0, limit: int = 50) -> List[Invoice]:
        """Invoices, newest first."""
        return await self.store.invoices.query(order_by=Invoice.id.desc(), offset=skip, limit=limit)

    async def get_invoice(self, invoice_id: int) -> Invoice:
        return await self.store.invoices.get_or_raise(invoice_id)
