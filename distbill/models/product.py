from datetime import datetime, date, timezone
from typing import Optional
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Integer, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column

from distbill.database import Base


class Product(Base):
    """
    Catalog entry for a stocked item.
    Batch and MRP always describe the latest batch sold or received.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_name", "name"),
        Index("ix_products_hsn", "hsn"),
        Index("ix_products_batch", "batch"),
        Index("ix_products_barcode", "barcode"),
        Index("ix_products_category", "category"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Basic Info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    batch: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    hsn: Mapped[str] = mapped_column(
        String(8),
        default="",
        nullable=False,
        comment="HSN/SAC classification code"
    )
    manufacturer: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Pricing
    gst_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        nullable=False,
        comment="GST rate in percent: 0, 5, 12, 18, 28"
    )
    mrp: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    old_mrp: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="Previous MRP, printed next to the new one"
    )
    purchase_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    sale_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Inventory
    stock: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Units on hand; decremented by saved invoices"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Product(name='{self.name}', batch='{self.batch}', stock={self.stock})>"
