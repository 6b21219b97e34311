from typing import Annotated, Optional
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from distbill.core.exceptions import BillingError, RecordNotFoundError
from distbill.database import get_db, async_session_factory
from distbill.services.catalog_store import CatalogStore
from distbill.services.invoice_assembler import EmptyInvoiceError, MissingPartyError
from distbill.services.line_items import DuplicateLineError, LineEditError
from distbill.services.stock_ledger import InsufficientStockError, ReferentialIntegrityWarning


logger = logging.getLogger(__name__)

_store: Optional[CatalogStore] = None


def get_store() -> CatalogStore:
    """
    Dependency returning the process-wide catalog store.

    One store per process so every request shares its write lock
    and live-query registry.
    """
    global _store
    if _store is None:
        _store = CatalogStore(async_session_factory)
    return _store


# Most specific classes first; the first isinstance match wins.
ERROR_STATUS_CODES = (
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateLineError, status.HTTP_409_CONFLICT),
    (ReferentialIntegrityWarning, status.HTTP_409_CONFLICT),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (LineEditError, status.HTTP_400_BAD_REQUEST),
    (MissingPartyError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (EmptyInvoiceError, status.HTTP_422_UNPROCESSABLE_CONTENT),
)


def status_code_for(error: BillingError) -> int:
    for error_class, code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def http_error(error: BillingError) -> HTTPException:
    """Translate a billing error into an HTTPException carrying its payload."""
    code = status_code_for(error)
    if code >= 500:
        logger.error(f"{type(error).__name__}: {error.message}")
    return HTTPException(
        status_code=code,
        detail={"message": error.message, "error_code": error.error_code, "details": error.details},
    )


# Type aliases for cleaner endpoint signatures
Store = Annotated[CatalogStore, Depends(get_store)]
DB = Annotated[AsyncSession, Depends(get_db)]
