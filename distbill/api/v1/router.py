from fastapi import APIRouter

from distbill.api.v1.endpoints import (
    products,
    parties,
    settings,
    invoices,
    dashboard,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(parties.router, prefix="/parties", tags=["Parties"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
