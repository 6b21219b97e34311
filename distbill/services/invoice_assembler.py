"""Invoice totals, save-time validation, numbering and the invoice draft.

The grand total is the unrounded sum of line totals. It is rounded once,
half away from zero, to whole rupees; the difference is the round off.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional, Tuple

from num2words import num2words

from distbill.config import settings
from distbill.core.enum_utils import get_enum_value
from distbill.core.exceptions import BillingError
from distbill.models.invoice import InvoiceStatus, InvoiceType
from distbill.services.line_items import Cart, LineItem
from distbill.services.tax_engine import ZERO, buyer_state_code, to_decimal


logger = logging.getLogger(__name__)


CASH_SALE_NAME = "Cash Sale"

SERIES_CODES = {
    InvoiceType.RETAIL.value: "RET",
    InvoiceType.WHOLESALE.value: "TI",
}


class MissingPartyError(BillingError):
    """Wholesale invoice saved without a party."""
    error_code = "MISSING_PARTY"


class EmptyInvoiceError(BillingError):
    """Invoice saved without any line."""
    error_code = "EMPTY_INVOICE"


@dataclass(frozen=True)
class InvoiceTotals:
    total_taxable: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_igst: Decimal
    grand_total: Decimal
    rounded_total: Decimal
    round_off: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.total_cgst + self.total_sgst + self.total_igst


@dataclass(frozen=True)
class PartySnapshot:
    """Party details as printed on the invoice."""
    party_id: Optional[int]
    name: str
    gstin: str
    address: str
    state_code: str


@dataclass(frozen=True)
class HsnSummaryRow:
    hsn: str
    gst_rate: Decimal
    taxable_value: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount


@dataclass(frozen=True)
class InvoiceDraft:
    """Fully computed invoice, ready for the stock ledger."""
    invoice_type: str
    invoice_date: date
    party: PartySnapshot
    lines: Tuple[LineItem, ...]
    totals: InvoiceTotals
    status: str = InvoiceStatus.PAID.value
    gr_no: Optional[str] = None
    vehicle_no: Optional[str] = None
    transport: Optional[str] = None
    invoice_number: Optional[str] = None


def round_half_away_from_zero(value: Any) -> Decimal:
    """Round to whole currency units; .5 goes away from zero."""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def summarize(lines: Iterable[Any]) -> InvoiceTotals:
    """Aggregate line items into invoice totals."""
    total_taxable = ZERO
    total_cgst = ZERO
    total_sgst = ZERO
    total_igst = ZERO
    grand_total = ZERO

    for line in lines:
        total_taxable += to_decimal(line.taxable_value)
        total_cgst += to_decimal(line.cgst_amount)
        total_sgst += to_decimal(line.sgst_amount)
        total_igst += to_decimal(line.igst_amount)
        grand_total += to_decimal(line.total_amount)

    rounded_total = round_half_away_from_zero(grand_total)
    return InvoiceTotals(
        total_taxable=total_taxable,
        total_cgst=total_cgst,
        total_sgst=total_sgst,
        total_igst=total_igst,
        grand_total=grand_total,
        rounded_total=rounded_total,
        round_off=rounded_total - grand_total,
    )


def hsn_summary(lines: Iterable[Any]) -> List[HsnSummaryRow]:
    """Taxable value and tax per (HSN, rate), in first-seen order."""
    groups: "OrderedDict[Tuple[str, Decimal], List[Decimal]]" = OrderedDict()
    for line in lines:
        key = (line.hsn or "", to_decimal(line.gst_rate))
        acc = groups.setdefault(key, [ZERO, ZERO, ZERO, ZERO])
        acc[0] += to_decimal(line.taxable_value)
        acc[1] += to_decimal(line.cgst_amount)
        acc[2] += to_decimal(line.sgst_amount)
        acc[3] += to_decimal(line.igst_amount)

    return [
        HsnSummaryRow(
            hsn=hsn,
            gst_rate=rate,
            taxable_value=acc[0],
            cgst_amount=acc[1],
            sgst_amount=acc[2],
            igst_amount=acc[3],
        )
        for (hsn, rate), acc in groups.items()
    ]


def validate_cart(invoice_type: Any, party: Any, lines: Iterable[Any]) -> None:
    """
    Check an invoice can be saved.

    Raises:
        MissingPartyError: wholesale invoice without a party
        EmptyInvoiceError: no lines
    """
    if get_enum_value(invoice_type) == InvoiceType.WHOLESALE.value and party is None:
        raise MissingPartyError("Select a party for a wholesale invoice")
    if not list(lines):
        raise EmptyInvoiceError("Add at least one item to the invoice")


def party_snapshot(party: Any, seller_code: str) -> PartySnapshot:
    """Copy the party onto the invoice; no party means a cash sale."""
    if party is None:
        return PartySnapshot(
            party_id=None,
            name=CASH_SALE_NAME,
            gstin="",
            address="",
            state_code=seller_code,
        )
    return PartySnapshot(
        party_id=party.id,
        name=party.name,
        gstin=(party.gstin or "").strip(),
        address=party.address or "",
        state_code=buyer_state_code(party, seller_code),
    )


def series_code(invoice_type: Any) -> str:
    return SERIES_CODES.get(get_enum_value(invoice_type), "TI")


def next_sequence(invoice_count: int, offset: Optional[int] = None) -> int:
    """Sequence number of the next invoice from the current invoice count."""
    return invoice_count + (settings.INVOICE_NUMBER_OFFSET if offset is None else offset)


def format_invoice_number(invoice_type: Any, sequence: int, template: Optional[str] = None) -> str:
    template = template or settings.INVOICE_NUMBER_FORMAT
    return template.format(prefix=series_code(invoice_type), sequence=sequence)


def amount_to_words(amount: Any) -> str:
    """Convert amount to words (Indian numbering system)."""
    amount = to_decimal(amount)
    rupees = int(amount)
    paise = int((amount - rupees) * 100)

    words = num2words(rupees, lang='en_IN').replace(",", "")
    if paise > 0:
        paise_words = num2words(paise, lang='en_IN').replace(",", "")
        return f"Rupees {words.title()} and {paise_words.title()} Paise Only"
    return f"Rupees {words.title()} Only"


def build_invoice_draft(
    cart: Cart,
    invoice_type: Any,
    invoice_date: Optional[date] = None,
    status: Any = InvoiceStatus.PAID,
    gr_no: Optional[str] = None,
    vehicle_no: Optional[str] = None,
    transport: Optional[str] = None,
    invoice_number: Optional[str] = None,
) -> InvoiceDraft:
    """
    Validate the cart and freeze it into an invoice draft.

    Raises:
        MissingPartyError, EmptyInvoiceError
    """
    validate_cart(invoice_type, cart.party, cart.lines)

    lines = cart.lines
    totals = summarize(lines)
    draft = InvoiceDraft(
        invoice_type=get_enum_value(invoice_type),
        invoice_date=invoice_date or date.today(),
        party=party_snapshot(cart.party, cart.seller_state_code),
        lines=lines,
        totals=totals,
        status=get_enum_value(status),
        gr_no=gr_no or None,
        vehicle_no=vehicle_no or None,
        transport=transport or None,
        invoice_number=invoice_number,
    )
    logger.debug(
        f"Assembled {draft.invoice_type} invoice for {draft.party.name}: "
        f"{len(lines)} lines, grand total {totals.grand_total}"
    )
    return draft
