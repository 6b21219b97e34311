# Services module
from distbill.services.catalog_store import CatalogStore, Collection, LiveQuery
from distbill.services.catalog_service import CatalogService, SearchMode
from distbill.services.dashboard_service import DashboardService
from distbill.services.invoice_service import InvoiceService
from distbill.services.line_items import Cart, LineItem, DuplicateLineError, LineEditError
from distbill.services.invoice_assembler import (
    EmptyInvoiceError,
    InvoiceDraft,
    InvoiceTotals,
    MissingPartyError,
)
from distbill.services.stock_ledger import (
    InsufficientStockError,
    InvoiceNumbering,
    ReferentialIntegrityWarning,
    StockLedger,
    StockPolicy,
    TransactionFailure,
)

__all__ = [
    "CatalogStore",
    "Collection",
    "LiveQuery",
    "CatalogService",
    "SearchMode",
    "DashboardService",
    "InvoiceService",
    "Cart",
    "LineItem",
    "DuplicateLineError",
    "LineEditError",
    "EmptyInvoiceError",
    "InvoiceDraft",
    "InvoiceTotals",
    "MissingPartyError",
    "InsufficientStockError",
    "InvoiceNumbering",
    "ReferentialIntegrityWarning",
    "StockLedger",
    "StockPolicy",
    "TransactionFailure",
]
