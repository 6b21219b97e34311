from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Integer, Numeric, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from distbill.database import Base


class PartyType(str, Enum):
    """Customer classification."""
    WHOLESALE = "WHOLESALE"
    RETAIL = "RETAIL"


class Party(Base):
    """Customer billed on invoices."""
    __tablename__ = "parties"
    __table_args__ = (
        Index("ix_parties_name", "name"),
        Index("ix_parties_gstin", "gstin"),
        Index("ix_parties_phone", "phone"),
        Index("ix_parties_party_type", "party_type"),
        Index("ix_parties_is_favorite", "is_favorite"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    gstin: Mapped[str] = mapped_column(
        String(15),
        default="",
        nullable=False,
        comment="Blank for unregistered buyers; first two chars are the state code"
    )
    address: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Drug licence numbers
    dl_no1: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    dl_no2: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    party_type: Mapped[str] = mapped_column(
        String(20),
        default=PartyType.WHOLESALE.value,
        nullable=False,
        comment="WHOLESALE, RETAIL"
    )
    state_code: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    # Credit
    credit_limit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    outstanding_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

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
        return f"<Party(name='{self.name}', gstin='{self.gstin}')>"
