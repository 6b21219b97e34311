from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from distbill.core.enum_utils import VALID_PARTY_TYPES, create_uppercase_validator
from distbill.models.party import PartyType
from distbill.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


class PartyBase(BaseCreateSchema):
    """Base schema for Party."""
    name: str = Field(..., min_length=1, max_length=200)
    gstin: str = Field("", max_length=15)
    address: str = Field("", max_length=500)
    phone: str = Field("", max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    dl_no1: Optional[str] = Field(None, max_length=50)
    dl_no2: Optional[str] = Field(None, max_length=50)
    party_type: PartyType = PartyType.WHOLESALE
    state_code: Optional[str] = Field(None, min_length=2, max_length=2)
    credit_limit: Decimal = Field(Decimal("0"), ge=0)
    outstanding_balance: Decimal = Decimal("0")
    notes: Optional[str] = None
    is_favorite: bool = False

    _normalize_type = create_uppercase_validator("party_type", VALID_PARTY_TYPES)

    @field_validator("gstin", mode="before")
    @classmethod
    def normalize_gstin(cls, v):
        if v is None:
            return ""
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("gstin")
    @classmethod
    def validate_gstin(cls, v: str) -> str:
        if v and len(v) != 15:
            raise ValueError("GSTIN must be 15 characters")
        return v


class PartyCreate(PartyBase):
    """Schema for creating Party."""
    pass


class PartyUpdate(BaseUpdateSchema):
    """Schema for updating Party."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    gstin: Optional[str] = Field(None, max_length=15)
    address: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    dl_no1: Optional[str] = Field(None, max_length=50)
    dl_no2: Optional[str] = Field(None, max_length=50)
    party_type: Optional[PartyType] = None
    state_code: Optional[str] = Field(None, min_length=2, max_length=2)
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    outstanding_balance: Optional[Decimal] = None
    notes: Optional[str] = None
    is_favorite: Optional[bool] = None

    _normalize_type = create_uppercase_validator("party_type", VALID_PARTY_TYPES)


class PartyImportRequest(BaseCreateSchema):
    """Normalized rows from the spreadsheet importer."""
    parties: List[PartyCreate] = Field(..., min_length=1)


class PartyResponse(BaseResponseSchema):
    """Response schema for Party."""
    id: int
    name: str
    gstin: str
    address: str
    phone: str
    email: Optional[str] = None
    dl_no1: Optional[str] = None
    dl_no2: Optional[str] = None
    party_type: str
    state_code: Optional[str] = None
    credit_limit: Decimal
    outstanding_balance: Decimal
    notes: Optional[str] = None
    is_favorite: bool
    created_at: datetime


class PartyListResponse(BaseResponseSchema):
    items: List[PartyResponse]
    total: int
