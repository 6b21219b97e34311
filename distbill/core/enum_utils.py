"""
Enum Utilities for VARCHAR-based Type and Status Fields

STORAGE STANDARD:
━━━━━━━━━━━━━━━━━
• Database: VARCHAR - NOT native ENUM types
• SQLAlchemy: String(20) with Mapped[str]
• Pydantic: Python Enum for API validation
• Case: invoice types, statuses and party types stored in UPPERCASE

USAGE PATTERNS:
━━━━━━━━━━━━━━━
1. In SQLAlchemy Models:
   status: Mapped[str] = mapped_column(String(20), default="PAID")

2. In Pydantic Schemas (with case normalization):
   _normalize_type = create_uppercase_validator('invoice_type', VALID_INVOICE_TYPES)

3. When writing to a model from a schema:
   invoice.invoice_type = get_enum_value(data.invoice_type)
"""
from enum import Enum
from typing import Any, Optional, Set


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(InvoiceType.RETAIL)
        'RETAIL'
        >>> get_enum_value("RETAIL")
        'RETAIL'
        >>> get_enum_value(None)
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Invalid values are returned as-is so Pydantic raises the validation error.

    Examples:
        >>> normalize_to_uppercase('retail', {'RETAIL', 'WHOLESALE'})
        'RETAIL'
        >>> normalize_to_uppercase('invalid', {'RETAIL', 'WHOLESALE'})
        'invalid'
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.strip().upper()
        if upper_v in valid_values:
            return upper_v
    return value


def create_uppercase_validator(field_name: str, valid_values: Set[str]) -> classmethod:
    """
    Create a Pydantic field_validator that normalizes values to UPPERCASE.

    Usage:
        class InvoiceCreate(BaseModel):
            invoice_type: InvoiceType

            _normalize_type = create_uppercase_validator('invoice_type', VALID_INVOICE_TYPES)
    """
    from pydantic import field_validator

    @field_validator(field_name, mode='before')
    @classmethod
    def validate(cls, v):
        return normalize_to_uppercase(v, valid_values)

    return validate


# =============================================================================
# VALID VALUE SETS
# =============================================================================

VALID_INVOICE_TYPES = {"WHOLESALE", "RETAIL"}

VALID_INVOICE_STATUSES = {"PAID", "PENDING", "CANCELLED"}

VALID_PARTY_TYPES = {"WHOLESALE", "RETAIL"}
