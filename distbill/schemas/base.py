"""
Shared pydantic bases for request and response bodies.

Response schemas read ORM rows and the billing core's frozen dataclasses
(line items, totals, HSN rows) by attribute, so every one of them must
inherit from BaseResponseSchema. Money fields are Decimal and serialize as
strings in JSON, which keeps paise exact on the wire.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Read model for ORM rows and core dataclasses.

    Usage:
        class PartyResponse(BaseResponseSchema):
            id: int
            name: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            datetime: lambda v: v.isoformat() if v else None,
        },
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Input body; unknown keys (e.g. stray spreadsheet columns) are dropped."""
    model_config = ConfigDict(extra='ignore')


class BaseUpdateSchema(BaseModel):
    """PATCH body; send only the fields to change."""
    model_config = ConfigDict(extra='ignore')
