"""GST tax split for invoice lines.

Intrastate supplies carry CGST + SGST (half the rate each); interstate
supplies carry IGST at the full rate. Whether a supply is interstate is
decided by comparing the seller's and buyer's GST state codes, which are the
first two characters of their GSTINs. A buyer without a GSTIN is billed as
intrastate.

Nothing here rounds. Rounding happens once, on the invoice grand total.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple


ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO = Decimal("2")


# GST State Code mapping
GST_STATE_CODES = {
    "01": "Jammu & Kashmir", "02": "Himachal Pradesh", "03": "Punjab",
    "04": "Chandigarh", "05": "Uttarakhand", "06": "Haryana",
    "07": "Delhi", "08": "Rajasthan", "09": "Uttar Pradesh",
    "10": "Bihar", "11": "Sikkim", "12": "Arunachal Pradesh",
    "13": "Nagaland", "14": "Manipur", "15": "Mizoram",
    "16": "Tripura", "17": "Meghalaya", "18": "Assam",
    "19": "West Bengal", "20": "Jharkhand", "21": "Odisha",
    "22": "Chhattisgarh", "23": "Madhya Pradesh", "24": "Gujarat",
    "26": "Dadra & Nagar Haveli and Daman & Diu", "27": "Maharashtra",
    "28": "Andhra Pradesh (Old)", "29": "Karnataka", "30": "Goa",
    "31": "Lakshadweep", "32": "Kerala", "33": "Tamil Nadu",
    "34": "Puducherry", "35": "Andaman & Nicobar Islands",
    "36": "Telangana", "37": "Andhra Pradesh",
    "38": "Ladakh", "97": "Other Territory"
}


def to_decimal(value: Any) -> Decimal:
    """Convert ints, floats and numeric strings to Decimal without float noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class TaxSplit:
    """Result of a single tax computation."""
    taxable_value: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    interstate: bool = False

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst

    @property
    def total_amount(self) -> Decimal:
        return self.taxable_value + self.total_tax


def state_code_from_gstin(gstin: Optional[str], default: Optional[str] = None) -> Optional[str]:
    """Return the two-digit state code a GSTIN starts with."""
    gstin = (gstin or "").strip()
    if len(gstin) < 2:
        return default
    return gstin[:2]


def seller_state_code(profile: Any, default: str) -> str:
    """State code of the seller; `default` when the profile has no GSTIN."""
    return state_code_from_gstin(getattr(profile, "gstin", None), default) or default


def buyer_state_code(party: Any, seller_code: str) -> str:
    """State code of the buyer; falls back to the seller's own state."""
    return state_code_from_gstin(getattr(party, "gstin", None), seller_code) or seller_code


def state_name(state_code: Optional[str]) -> str:
    return GST_STATE_CODES.get(state_code or "", "")


def is_interstate(seller_code: str, buyer_code: Optional[str]) -> bool:
    return seller_code != (buyer_code or seller_code)


def split_rates(gst_rate: Any, interstate: bool) -> Tuple[Decimal, Decimal, Decimal]:
    """Per-tax-type rates as (cgst_rate, sgst_rate, igst_rate)."""
    rate = to_decimal(gst_rate)
    if interstate:
        return ZERO, ZERO, rate
    return rate / TWO, rate / TWO, ZERO


def compute_tax(
    base_amount: Any,
    discount_percent: Any,
    gst_rate: Any,
    seller_state_code: str,
    buyer_state_code: Optional[str] = None,
) -> TaxSplit:
    """
    Split GST for one line.

    Args:
        base_amount: rate x quantity, before discount
        discount_percent: trade discount in percent
        gst_rate: total GST rate in percent
        seller_state_code: seller's GST state code
        buyer_state_code: buyer's GST state code; blank for unregistered buyers

    Returns:
        TaxSplit with taxable value and CGST/SGST/IGST amounts
    """
    base = to_decimal(base_amount)
    discount_amount = base * to_decimal(discount_percent) / HUNDRED
    taxable_value = base - discount_amount

    total_tax = taxable_value * to_decimal(gst_rate) / HUNDRED

    if is_interstate(seller_state_code, buyer_state_code):
        return TaxSplit(taxable_value=taxable_value, cgst=ZERO, sgst=ZERO, igst=total_tax, interstate=True)

    half = total_tax / TWO
    return TaxSplit(taxable_value=taxable_value, cgst=half, sgst=half, igst=ZERO)
