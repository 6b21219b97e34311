"""Seller identity and billing preferences (single row, id 1)."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from distbill.database import Base


COMPANY_PROFILE_ID = 1


class InvoiceTemplate(str, Enum):
    """Printed invoice layout."""
    STANDARD = "standard"
    MODERN = "modern"
    THERMAL = "thermal"
    AUTHENTIC = "authentic"


class CompanyProfile(Base):
    """
    Seller details printed on every invoice.

    Only use_default_gst / default_gst_rate affect tax computation; the rest
    is consumed by the document renderer.
    """
    __tablename__ = "company_profile"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=COMPANY_PROFILE_ID)

    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    address_line1: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    address_line2: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    gstin: Mapped[str] = mapped_column(String(15), default="", nullable=False)

    # Drug licence numbers
    dl_no1: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    dl_no2: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    dl_no3: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    dl_no4: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    phone: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    terms: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Presentation preferences
    theme: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="blue, green, purple, dark")
    platform: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="windows, android")
    dark_mode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="system, light, dark")
    invoice_template: Mapped[Optional[str]] = mapped_column(
        String(20),
        default=InvoiceTemplate.AUTHENTIC.value,
        nullable=True
    )

    # Tax rate override
    use_default_gst: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="When set, new invoice lines use default_gst_rate instead of the product rate"
    )
    default_gst_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    @property
    def full_address(self) -> str:
        return ", ".join(part for part in (self.address_line1, self.address_line2) if part)

    def __repr__(self) -> str:
        return f"<CompanyProfile(name='{self.company_name}', gstin='{self.gstin}')>"


DEFAULT_COMPANY_PROFILE = {
    "company_name": "GOPI DISTRIBUTOR",
    "address_line1": "74/20/4, Navyug Colony",
    "address_line2": "Bhulabhai Park Crossroad, Ahmedabad-22",
    "gstin": "24AADPO7411Q1ZE",
    "dl_no1": "GJ-ADC-AA/1946",
    "dl_no2": "GJ-ADC-AA/4967",
    "dl_no3": "GJ-ADC-AA/1953",
    "dl_no4": "GJ-ADC-AA/4856",
    "phone": "07925383834, 8460143984",
    "email": "info@gopidistributor.com",
    "terms": "Bill No. is must while returning EXP. Products\nE.&.O.E.",
    "theme": "blue",
    "platform": "windows",
    "dark_mode": "system",
    "invoice_template": InvoiceTemplate.AUTHENTIC.value,
    "use_default_gst": True,
    "default_gst_rate": Decimal("5"),
}
