"""API endpoints for the company profile (seller settings)."""
from fastapi import APIRouter, HTTPException, status

from distbill.api.deps import Store, http_error
from distbill.core.enum_utils import get_enum_value
from distbill.core.exceptions import BillingError
from distbill.models.company import COMPANY_PROFILE_ID
from distbill.schemas.company import CompanyProfileResponse, CompanyProfileUpdate

router = APIRouter()


@router.get("/company", response_model=CompanyProfileResponse)
async def get_company_profile(store: Store):
    profile = await store.get_profile()
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company profile is not set up")
    return profile


@router.patch("/company", response_model=CompanyProfileResponse)
async def update_company_profile(profile_in: CompanyProfileUpdate, store: Store):
    """
    Update the company profile.

    Changing GSTIN or the default-GST policy affects carts priced afterwards;
    saved invoices keep the values they were built with.
    """
    update_data = profile_in.model_dump(exclude_unset=True)
    if update_data.get("invoice_template") is not None:
        update_data["invoice_template"] = get_enum_value(update_data["invoice_template"])
    try:
        return await store.settings.update(COMPANY_PROFILE_ID, update_data)
    except BillingError as e:
        raise http_error(e)
