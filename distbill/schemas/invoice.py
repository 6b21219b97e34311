from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from distbill.core.enum_utils import (
    VALID_INVOICE_STATUSES,
    VALID_INVOICE_TYPES,
    create_uppercase_validator,
)
from distbill.models.invoice import InvoiceStatus, InvoiceType
from distbill.schemas.base import BaseCreateSchema, BaseResponseSchema


# ==================== Request Schemas ====================

class InvoiceLineInput(BaseCreateSchema):
    """One cart line: the product plus any edits made to it."""
    product_id: int
    quantity: Optional[int] = Field(None, ge=0)
    free_quantity: Optional[int] = Field(None, ge=0)
    discount_percent: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    sale_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    batch: Optional[str] = Field(None, max_length=50)
    mrp: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    gst_rate: Optional[Decimal] = Field(None, ge=0, le=28, decimal_places=2)

    def as_request(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class InvoicePreviewRequest(BaseCreateSchema):
    invoice_type: InvoiceType = InvoiceType.WHOLESALE
    party_id: Optional[int] = None
    lines: List[InvoiceLineInput] = Field(default_factory=list)

    _normalize_type = create_uppercase_validator("invoice_type", VALID_INVOICE_TYPES)

    @field_validator("lines")
    @classmethod
    def unique_products(cls, v: List[InvoiceLineInput]) -> List[InvoiceLineInput]:
        seen = set()
        for line in v:
            if line.product_id in seen:
                raise ValueError(f"Product {line.product_id} appears on more than one line")
            seen.add(line.product_id)
        return v

    def line_requests(self) -> List[Dict[str, Any]]:
        return [line.as_request() for line in self.lines]


class InvoiceCreate(InvoicePreviewRequest):
    """Schema for saving an invoice."""
    invoice_date: Optional[date] = None
    status: InvoiceStatus = InvoiceStatus.PAID
    gr_no: Optional[str] = Field(None, max_length=50)
    vehicle_no: Optional[str] = Field(None, max_length=50)
    transport: Optional[str] = Field(None, max_length=100)

    _normalize_status = create_uppercase_validator("status", VALID_INVOICE_STATUSES)


# ==================== Response Schemas ====================

class LineItemResponse(BaseResponseSchema):
    product_id: int
    name: str
    batch: str
    expiry: Optional[date] = None
    hsn: str
    manufacturer: Optional[str] = None
    mrp: Decimal
    old_mrp: Decimal
    sale_rate: Decimal
    quantity: int
    free_quantity: int
    discount_percent: Decimal
    gst_rate: Decimal
    cgst_rate: Decimal
    sgst_rate: Decimal
    igst_rate: Decimal
    taxable_value: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    total_amount: Decimal


class SavedLineItemResponse(LineItemResponse):
    id: int
    line_number: int
    product_id: Optional[int] = None


class TotalsResponse(BaseResponseSchema):
    total_taxable: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_igst: Decimal
    total_tax: Decimal
    grand_total: Decimal
    rounded_total: Decimal
    round_off: Decimal


class PartySnapshotResponse(BaseResponseSchema):
    party_id: Optional[int] = None
    name: str
    gstin: str
    address: str
    state_code: str


class HsnSummaryResponse(BaseResponseSchema):
    hsn: str
    gst_rate: Decimal
    taxable_value: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    total_tax: Decimal


class InvoicePreviewResponse(BaseResponseSchema):
    invoice_number: str
    party: PartySnapshotResponse
    lines: List[LineItemResponse]
    totals: TotalsResponse
    hsn_summary: List[HsnSummaryResponse]


class InvoiceBrief(BaseResponseSchema):
    """Brief invoice for lists."""
    id: int
    invoice_number: str
    invoice_date: date
    invoice_type: str
    status: str
    party_name: str
    grand_total: Decimal
    rounded_total: Decimal


class InvoiceResponse(BaseResponseSchema):
    """Response schema for a saved invoice."""
    id: int
    invoice_number: str
    invoice_date: date
    invoice_type: str
    status: str
    party_id: Optional[int] = None
    party_name: str
    party_gstin: str
    party_address: str
    party_state_code: str
    gr_no: Optional[str] = None
    vehicle_no: Optional[str] = None
    transport: Optional[str] = None
    total_taxable: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_igst: Decimal
    total_tax: Decimal
    grand_total: Decimal
    rounded_total: Decimal
    round_off: Decimal
    amount_in_words: Optional[str] = None
    is_interstate: bool
    created_at: datetime
    items: List[SavedLineItemResponse] = []


class InvoiceListResponse(BaseResponseSchema):
    items: List[InvoiceBrief]
    total: int
    skip: int = 0
    limit: int = 50
