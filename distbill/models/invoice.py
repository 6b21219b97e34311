"""Sales invoice models.

Invoices are written once by the stock ledger and never edited. Party and
product details are copied onto the invoice so later catalog edits do not
alter issued documents.
"""
from datetime import datetime, date, timezone
from enum import Enum
from typing import Optional, List
from decimal import Decimal

from sqlalchemy import String, DateTime, Date, ForeignKey, Integer, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from distbill.database import Base


class InvoiceType(str, Enum):
    """Invoice type enumeration."""
    WHOLESALE = "WHOLESALE"  # Tax invoice to a registered party
    RETAIL = "RETAIL"        # Counter sale, party optional


class InvoiceStatus(str, Enum):
    """Invoice status enumeration."""
    PAID = "PAID"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


# Unrounded amounts keep six places; only the grand total is rounded, once.
AMOUNT = Numeric(18, 6)
AMOUNT_QUANTUM = Decimal("0.000001")


class Invoice(Base):
    """Saved sales invoice with denormalized party snapshot."""
    __tablename__ = "invoices"
    __table_args__ = (
        Index("ix_invoices_invoice_date", "invoice_date"),
        Index("ix_invoices_party_id", "party_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    invoice_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Type-prefixed number e.g. TI -65, RET -66"
    )
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    invoice_type: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceType.WHOLESALE.value,
        nullable=False,
        comment="WHOLESALE, RETAIL"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceStatus.PAID.value,
        nullable=False,
        comment="PAID, PENDING, CANCELLED"
    )

    # Party snapshot (not a live reference)
    party_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    party_name: Mapped[str] = mapped_column(String(200), nullable=False)
    party_gstin: Mapped[str] = mapped_column(String(15), default="", nullable=False)
    party_address: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    party_state_code: Mapped[str] = mapped_column(String(2), nullable=False)

    # Transport
    gr_no: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    vehicle_no: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    transport: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Totals
    total_taxable: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    total_cgst: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    total_sgst: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    total_igst: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    grand_total: Mapped[Decimal] = mapped_column(
        AMOUNT,
        nullable=False,
        comment="Unrounded sum of line totals"
    )
    round_off: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    amount_in_words: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    items: Mapped[List["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.line_number",
    )

    @property
    def rounded_total(self) -> Decimal:
        """Amount charged: grand total plus round off."""
        return self.grand_total + self.round_off

    @property
    def total_tax(self) -> Decimal:
        return self.total_cgst + self.total_sgst + self.total_igst

    @property
    def is_interstate(self) -> bool:
        return self.total_igst != 0

    def __repr__(self) -> str:
        return f"<Invoice(number='{self.invoice_number}', status='{self.status}')>"


class InvoiceLineItem(Base):
    """Invoice line copied from the product at billing time."""
    __tablename__ = "invoice_line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Product snapshot; product_id is informational, not a foreign key
    product_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    batch: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    hsn: Mapped[str] = mapped_column(String(8), default="", nullable=False)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    mrp: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    old_mrp: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sale_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Quantities
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    free_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)

    # Tax breakup
    gst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    cgst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    sgst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    igst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    taxable_value: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    cgst_amount: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    sgst_amount: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    igst_amount: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    def __repr__(self) -> str:
        return f"<InvoiceLineItem(name='{self.name}', qty={self.quantity})>"


class InvoiceNumberSequence(Base):
    """Persisted monotonic counter per invoice series."""
    __tablename__ = "invoice_number_sequences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    series_code: Mapped[str] = mapped_column(
        String(10),
        unique=True,
        nullable=False,
        comment="RET, TI"
    )
    current_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<InvoiceNumberSequence(series='{self.series_code}', current={self.current_number})>"
