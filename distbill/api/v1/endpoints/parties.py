"""API endpoints for parties (customers)."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, status

from distbill.api.deps import Store, http_error
from distbill.core.enum_utils import get_enum_value
from distbill.core.exceptions import BillingError
from distbill.services.catalog_service import CatalogService
from distbill.schemas.product import ImportResult
from distbill.schemas.party import (
    PartyCreate,
    PartyImportRequest,
    PartyListResponse,
    PartyResponse,
    PartyUpdate,
)

router = APIRouter()


def _party_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    if payload.get("party_type") is not None:
        payload["party_type"] = get_enum_value(payload["party_type"])
    return payload


@router.get("", response_model=PartyListResponse)
async def list_parties(
    store: Store,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
):
    """Parties matching name, GSTIN or phone; favorites first."""
    parties = await CatalogService(store).search_parties(search, limit=limit)
    return PartyListResponse(items=parties, total=len(parties))


@router.post("", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
async def create_party(party_in: PartyCreate, store: Store):
    return await CatalogService(store).create_party(_party_data(party_in.model_dump()))


@router.post("/import", response_model=ImportResult, status_code=status.HTTP_201_CREATED)
async def import_parties(import_in: PartyImportRequest, store: Store):
    parties = await CatalogService(store).import_parties(
        _party_data(p.model_dump()) for p in import_in.parties
    )
    return ImportResult(imported=len(parties))


@router.get("/{party_id}", response_model=PartyResponse)
async def get_party(party_id: int, store: Store):
    party = await store.parties.get(party_id)
    if not party:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Party not found")
    return party


@router.patch("/{party_id}", response_model=PartyResponse)
async def update_party(party_id: int, party_in: PartyUpdate, store: Store):
    try:
        return await store.parties.update(party_id, _party_data(party_in.model_dump(exclude_unset=True)))
    except BillingError as e:
        raise http_error(e)


@router.delete("/{party_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_party(party_id: int, store: Store):
    if not await store.parties.delete(party_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Party not found")
