"""API endpoints for the product catalog."""
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from distbill.api.deps import Store, http_error
from distbill.core.exceptions import BillingError
from distbill.services.catalog_service import CatalogService, SearchMode
from distbill.schemas.product import (
    ImportResult,
    ProductCreate,
    ProductImportRequest,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)

router = APIRouter()


@router.get("", response_model=ProductListResponse)
async def list_products(
    store: Store,
    search: Optional[str] = None,
    mode: SearchMode = SearchMode.FAST,
    limit: int = Query(100, ge=1, le=500),
):
    """
    Search the catalog.

    FAST matches name or batch anywhere. ACCURATE matches a name prefix,
    an exact HSN, barcode or category.
    """
    service = CatalogService(store)
    products = await service.search_products(search, mode=mode, limit=limit)
    return ProductListResponse(items=products, total=len(products))


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(product_in: ProductCreate, store: Store):
    return await store.products.add(product_in.model_dump())


@router.post("/import", response_model=ImportResult, status_code=status.HTTP_201_CREATED)
async def import_products(import_in: ProductImportRequest, store: Store):
    """Bulk insert rows already normalized by the spreadsheet importer."""
    service = CatalogService(store)
    products = await service.import_products(p.model_dump() for p in import_in.products)
    return ImportResult(imported=len(products))


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, store: Store):
    product = await store.products.get(product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: int, product_in: ProductUpdate, store: Store):
    """Partial update; also used for manual stock corrections."""
    try:
        return await store.products.update(product_id, product_in.model_dump(exclude_unset=True))
    except BillingError as e:
        raise http_error(e)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: int, store: Store):
    """Delete a product. Saved invoices keep their line snapshots."""
    if not await store.products.delete(product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
