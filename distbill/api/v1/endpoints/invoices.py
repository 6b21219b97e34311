"""API endpoints for pricing, saving and reading invoices."""
from typing import List

from fastapi import APIRouter, Query, status

from distbill.api.deps import Store, http_error
from distbill.core.exceptions import BillingError
from distbill.services.invoice_assembler import hsn_summary
from distbill.services.invoice_service import InvoiceService
from distbill.schemas.invoice import (
    HsnSummaryResponse,
    InvoiceCreate,
    InvoiceListResponse,
    InvoicePreviewRequest,
    InvoicePreviewResponse,
    InvoiceResponse,
)

router = APIRouter()


@router.post("/preview", response_model=InvoicePreviewResponse)
async def preview_invoice(preview_in: InvoicePreviewRequest, store: Store):
    """
    Price a cart without saving it.

    Returns the number the invoice would get, priced lines, totals and
    the HSN summary. No validation of party or line count happens here.
    """
    service = InvoiceService(store)
    try:
        preview = await service.preview(
            preview_in.invoice_type,
            preview_in.party_id,
            preview_in.line_requests(),
        )
    except BillingError as e:
        raise http_error(e)
    return InvoicePreviewResponse.model_validate(preview)


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(invoice_in: InvoiceCreate, store: Store):
    """
    Save an invoice and deduct stock in one transaction.

    - Wholesale invoices need a party; retail falls back to Cash Sale
    - At least one line is required
    - Nothing is written when any product on the invoice is missing
    """
    service = InvoiceService(store)
    try:
        return await service.save(
            invoice_in.invoice_type,
            invoice_in.party_id,
            invoice_in.line_requests(),
            invoice_date=invoice_in.invoice_date,
            status=invoice_in.status,
            gr_no=invoice_in.gr_no,
            vehicle_no=invoice_in.vehicle_no,
            transport=invoice_in.transport,
        )
    except BillingError as e:
        raise http_error(e)


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    store: Store,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """Invoices, newest first."""
    service = InvoiceService(store)
    invoices = await service.list_invoices(skip=skip, limit=limit)
    total = await store.invoices.count()
    return InvoiceListResponse(items=invoices, total=total, skip=skip, limit=limit)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: int, store: Store):
    try:
        return await InvoiceService(store).get_invoice(invoice_id)
    except BillingError as e:
        raise http_error(e)


@router.get("/{invoice_id}/hsn-summary", response_model=List[HsnSummaryResponse])
async def get_invoice_hsn_summary(invoice_id: int, store: Store):
    """Tax grouped by HSN and GST rate for a saved invoice."""
    try:
        invoice = await InvoiceService(store).get_invoice(invoice_id)
    except BillingError as e:
        raise http_error(e)
    return [HsnSummaryResponse.model_validate(row) for row in hsn_summary(invoice.items)]
