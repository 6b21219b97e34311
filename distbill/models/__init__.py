# Models module
from distbill.models.product import Product
from distbill.models.party import Party, PartyType
from distbill.models.company import CompanyProfile, COMPANY_PROFILE_ID, DEFAULT_COMPANY_PROFILE, InvoiceTemplate
from distbill.models.invoice import (
    Invoice,
    InvoiceLineItem,
    InvoiceNumberSequence,
    InvoiceStatus,
    InvoiceType,
)

__all__ = [
    "Product",
    "Party",
    "PartyType",
    "CompanyProfile",
    "COMPANY_PROFILE_ID",
    "DEFAULT_COMPANY_PROFILE",
    "InvoiceTemplate",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceNumberSequence",
    "InvoiceStatus",
    "InvoiceType",
]
