from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from distbill.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


GST_RATES = {Decimal("0"), Decimal("5"), Decimal("12"), Decimal("18"), Decimal("28")}


def check_gst_rate(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None and v not in GST_RATES:
        raise ValueError(f"GST rate must be one of {sorted(int(r) for r in GST_RATES)}")
    return v


class ProductBase(BaseCreateSchema):
    """Base schema for Product."""
    name: str = Field(..., min_length=1, max_length=255)
    batch: str = Field("", max_length=50)
    expiry: Optional[date] = None
    hsn: str = Field("", max_length=8)
    gst_rate: Decimal = Field(Decimal("0"), ge=0, le=28)
    mrp: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    old_mrp: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    purchase_rate: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    sale_rate: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    stock: int = 0
    manufacturer: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    barcode: Optional[str] = Field(None, max_length=50)

    @field_validator("name", "batch", "hsn", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("batch", mode="after")
    @classmethod
    def uppercase_batch(cls, v: str) -> str:
        return v.upper()

    @field_validator("gst_rate")
    @classmethod
    def validate_gst_rate(cls, v: Decimal) -> Decimal:
        return check_gst_rate(v)


class ProductCreate(ProductBase):
    """Schema for creating Product."""
    pass


class ProductUpdate(BaseUpdateSchema):
    """Schema for updating Product (manual stock edits included)."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    batch: Optional[str] = Field(None, max_length=50)
    expiry: Optional[date] = None
    hsn: Optional[str] = Field(None, max_length=8)
    gst_rate: Optional[Decimal] = Field(None, ge=0, le=28)
    mrp: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    old_mrp: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    purchase_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    sale_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    stock: Optional[int] = None
    manufacturer: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    barcode: Optional[str] = Field(None, max_length=50)

    @field_validator("gst_rate")
    @classmethod
    def validate_gst_rate(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return check_gst_rate(v)


class ProductImportRequest(BaseCreateSchema):
    """Normalized rows from the spreadsheet importer."""
    products: List[ProductCreate] = Field(..., min_length=1)


class ProductResponse(BaseResponseSchema):
    """Response schema for Product."""
    id: int
    name: str
    batch: str
    expiry: Optional[date] = None
    hsn: str
    gst_rate: Decimal
    mrp: Decimal
    old_mrp: Optional[Decimal] = None
    purchase_rate: Decimal
    sale_rate: Decimal
    stock: int
    manufacturer: Optional[str] = None
    category: Optional[str] = None
    barcode: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseResponseSchema):
    items: List[ProductResponse]
    total: int


class ImportResult(BaseResponseSchema):
    imported: int
