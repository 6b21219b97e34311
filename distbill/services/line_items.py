"""Invoice cart: priced line items built from catalog products.

Each line is a snapshot of the product taken when it is added. The GST rate
is chosen once at that moment (the company-wide default rate when the profile
forces one, otherwise the product's own rate). Every edit re-prices the
edited line; changing the party or the profile re-prices every line.
"""
import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterator, List, Optional, Tuple

from distbill.config import settings
from distbill.core.exceptions import BillingError, RecordNotFoundError
from distbill.services.tax_engine import (
    ZERO,
    buyer_state_code,
    compute_tax,
    seller_state_code,
    split_rates,
    to_decimal,
)


logger = logging.getLogger(__name__)


class DuplicateLineError(BillingError):
    """Product is already in the cart; edit the existing line instead."""
    error_code = "DUPLICATE_LINE"


class LineEditError(BillingError):
    """Rejected edit to a cart line."""
    error_code = "INVALID_LINE_EDIT"


EDITABLE_FIELDS = ("quantity", "free_quantity", "discount_percent", "sale_rate", "batch", "mrp")

# Rates, prices and discounts are entered in paise / hundredths of a percent.
MAX_DECIMAL_PLACES = 2


@dataclass(frozen=True)
class LineItem:
    """One priced invoice line."""
    # Product snapshot
    product_id: int
    name: str
    batch: str
    expiry: Optional[date]
    hsn: str
    manufacturer: Optional[str]
    mrp: Decimal
    old_mrp: Decimal
    sale_rate: Decimal

    # Entered
    quantity: int
    free_quantity: int
    discount_percent: Decimal
    gst_rate: Decimal

    # Computed
    cgst_rate: Decimal
    sgst_rate: Decimal
    igst_rate: Decimal
    taxable_value: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    total_amount: Decimal

    @property
    def base_amount(self) -> Decimal:
        """Rate x billed quantity; free units are not charged."""
        return self.sale_rate * self.quantity

    @property
    def stock_units(self) -> int:
        """Units leaving stock: billed plus free."""
        return self.quantity + self.free_quantity

    @property
    def total_tax(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    def priced(self, seller_code: str, buyer_code: Optional[str]) -> "LineItem":
        """Return this line with every computed field recalculated."""
        split = compute_tax(
            self.base_amount,
            self.discount_percent,
            self.gst_rate,
            seller_code,
            buyer_code,
        )
        cgst_rate, sgst_rate, igst_rate = split_rates(self.gst_rate, split.interstate)
        return replace(
            self,
            cgst_rate=cgst_rate,
            sgst_rate=sgst_rate,
            igst_rate=igst_rate,
            taxable_value=split.taxable_value,
            cgst_amount=split.cgst,
            sgst_amount=split.sgst,
            igst_amount=split.igst,
            total_amount=split.total_amount,
        )


def new_line(product: Any, gst_rate: Decimal) -> LineItem:
    """Unpriced line for one unit of `product` at `gst_rate`."""
    mrp = to_decimal(product.mrp)
    return LineItem(
        product_id=product.id,
        name=product.name,
        batch=product.batch or "",
        expiry=product.expiry,
        hsn=product.hsn or "",
        manufacturer=product.manufacturer,
        mrp=mrp,
        old_mrp=to_decimal(product.old_mrp) if product.old_mrp else mrp,
        sale_rate=to_decimal(product.sale_rate),
        quantity=1,
        free_quantity=0,
        discount_percent=ZERO,
        gst_rate=to_decimal(gst_rate),
        cgst_rate=ZERO,
        sgst_rate=ZERO,
        igst_rate=ZERO,
        taxable_value=ZERO,
        cgst_amount=ZERO,
        sgst_amount=ZERO,
        igst_amount=ZERO,
        total_amount=ZERO,
    )


def _to_number(field: str, value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise LineEditError(f"{field} must be a number", details={"field": field})
    try:
        number = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise LineEditError(f"{field} must be a number", details={"field": field})
    if not number.is_finite():
        raise LineEditError(f"{field} must be a number", details={"field": field})
    return number


def _validated_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise LineEditError(
            f"Cannot edit {', '.join(sorted(unknown))}",
            details={"editable": list(EDITABLE_FIELDS)},
        )

    cleaned: Dict[str, Any] = {}
    for field, value in changes.items():
        if field == "batch":
            cleaned[field] = (value or "").strip()
            continue
        number = _to_number(field, value)
        if field in ("quantity", "free_quantity"):
            if number != number.to_integral_value():
                raise LineEditError(f"{field} must be a whole number", details={"field": field})
            number = int(number)
        elif -number.normalize().as_tuple().exponent > MAX_DECIMAL_PLACES:
            raise LineEditError(
                f"{field} allows at most {MAX_DECIMAL_PLACES} decimal places",
                details={"field": field, "value": str(value)},
            )
        if number < 0:
            raise LineEditError(f"{field} cannot be negative", details={"field": field})
        if field == "discount_percent" and number > 100:
            raise LineEditError("discount_percent cannot exceed 100", details={"field": field})
        cleaned[field] = number
    return cleaned


class Cart:
    """
    Lines of an invoice being prepared.

    The company profile and the selected party are passed in explicitly and
    held by the cart; call set_party / set_profile when either changes.
    """

    def __init__(
        self,
        profile: Any,
        party: Any = None,
        default_state_code: Optional[str] = None,
        default_gst_rate: Any = None,
    ):
        self.profile = profile
        self.party = party
        self.default_state_code = default_state_code or settings.DEFAULT_STATE_CODE
        self.default_gst_rate = to_decimal(
            settings.DEFAULT_GST_RATE if default_gst_rate is None else default_gst_rate
        )
        self._lines: List[LineItem] = []

    # ==================== ACCESS ====================

    @property
    def lines(self) -> Tuple[LineItem, ...]:
        return tuple(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(tuple(self._lines))

    def __contains__(self, product_id: object) -> bool:
        return any(line.product_id == product_id for line in self._lines)

    def get_line(self, product_id: int) -> LineItem:
        return self._lines[self._index(product_id)]

    def _index(self, product_id: int) -> int:
        for index, line in enumerate(self._lines):
            if line.product_id == product_id:
                return index
        raise RecordNotFoundError(
            f"Product {product_id} is not in the cart",
            details={"product_id": product_id},
        )

    @property
    def seller_state_code(self) -> str:
        return seller_state_code(self.profile, self.default_state_code)

    @property
    def buyer_state_code(self) -> str:
        return buyer_state_code(self.party, self.seller_state_code)

    # ==================== RATE POLICY ====================

    def select_gst_rate(self, product: Any) -> Decimal:
        """Company default rate when the profile forces one, else the product rate."""
        if getattr(self.profile, "use_default_gst", False):
            rate = getattr(self.profile, "default_gst_rate", None)
            return to_decimal(rate) if rate is not None else self.default_gst_rate
        return to_decimal(product.gst_rate)

    # ==================== EDITS ====================

    def add_line(self, product: Any, gst_rate: Any = None) -> LineItem:
        """
        Add one unit of `product` to the cart.

        `gst_rate` restores a rate chosen earlier (e.g. when a cart is rebuilt
        from a saved request); when omitted the rate policy decides.

        Raises:
            DuplicateLineError: product already in the cart
        """
        if product.id in self:
            logger.info(f"Product {product.id} ({product.name}) already in cart")
            raise DuplicateLineError(
                f"{product.name} is already added",
                details={"product_id": product.id},
            )

        rate = self.select_gst_rate(product) if gst_rate is None else to_decimal(gst_rate)
        line = self._price(new_line(product, rate))
        self._lines.append(line)
        return line

    def update_line(self, product_id: int, **changes: Any) -> LineItem:
        """Apply field edits to a line and re-price it."""
        index = self._index(product_id)
        cleaned = _validated_changes(changes)
        line = self._price(replace(self._lines[index], **cleaned))
        self._lines[index] = line
        return line

    def remove_line(self, product_id: int) -> None:
        del self._lines[self._index(product_id)]

    def set_party(self, party: Any) -> None:
        """Select a party and re-price every line for its state."""
        self.party = party
        self.recompute()

    def set_profile(self, profile: Any) -> None:
        """Swap the company profile; existing line rates are kept."""
        self.profile = profile
        self.recompute()

    def recompute(self) -> None:
        """Re-price every line against the current party and profile."""
        self._lines = [self._price(line) for line in self._lines]

    def _price(self, line: LineItem) -> LineItem:
        seller_code = self.seller_state_code
        return line.priced(seller_code, buyer_state_code(self.party, seller_code))
