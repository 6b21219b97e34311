from decimal import Decimal
from typing import Optional

from pydantic import Field

from distbill.models.company import InvoiceTemplate
from distbill.schemas.base import BaseResponseSchema, BaseUpdateSchema


class CompanyProfileUpdate(BaseUpdateSchema):
    """Partial update of the company profile."""
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    address_line1: Optional[str] = Field(None, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    gstin: Optional[str] = Field(None, max_length=15)
    dl_no1: Optional[str] = Field(None, max_length=50)
    dl_no2: Optional[str] = Field(None, max_length=50)
    dl_no3: Optional[str] = Field(None, max_length=50)
    dl_no4: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    terms: Optional[str] = None
    theme: Optional[str] = Field(None, max_length=20)
    platform: Optional[str] = Field(None, max_length=20)
    dark_mode: Optional[str] = Field(None, max_length=20)
    invoice_template: Optional[InvoiceTemplate] = None
    use_default_gst: Optional[bool] = None
    default_gst_rate: Optional[Decimal] = Field(None, ge=0, le=28)


class CompanyProfileResponse(BaseResponseSchema):
    id: int
    company_name: str
    address_line1: str
    address_line2: str
    full_address: str
    gstin: str
    dl_no1: str
    dl_no2: str
    dl_no3: Optional[str] = None
    dl_no4: Optional[str] = None
    phone: str
    email: str
    terms: str
    theme: Optional[str] = None
    platform: Optional[str] = None
    dark_mode: Optional[str] = None
    invoice_template: Optional[str] = None
    use_default_gst: bool
    default_gst_rate: Optional[Decimal] = None
