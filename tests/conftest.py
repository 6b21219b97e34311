"""Shared fixtures: in-memory database, seeded catalog store and sample records."""
import os
from datetime import date
from decimal import Decimal

# Keep the module-level engine away from any real database file.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from distbill.database import build_session_factory, init_db
from distbill.main import seed_company_profile
from distbill.models import COMPANY_PROFILE_ID
from distbill.services.catalog_store import CatalogStore


SELLER_GSTIN = "24AADPO7411Q1ZE"      # Gujarat
LOCAL_GSTIN = "24ABCDE1234F1Z5"       # Gujarat
OUTSTATE_GSTIN = "27ABCDE1234F1Z5"    # Maharashtra


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def store(session_factory) -> CatalogStore:
    """Store with the default profile seeded; product GST rates apply."""
    await seed_company_profile(session_factory)
    store = CatalogStore(session_factory)
    await store.settings.update(COMPANY_PROFILE_ID, {"use_default_gst": False})
    return store


@pytest.fixture
async def products(store):
    return await store.products.bulk_add([
        {
            "name": "Paracetamol 500mg",
            "batch": "PCM2401",
            "expiry": date(2027, 6, 30),
            "hsn": "3004",
            "manufacturer": "Cipla",
            "category": "Tablets",
            "barcode": "8901234567890",
            "gst_rate": Decimal("12"),
            "mrp": Decimal("120"),
            "purchase_rate": Decimal("80"),
            "sale_rate": Decimal("100"),
            "stock": 5,
        },
        {
            "name": "Surgical Gauze",
            "batch": "GZ77",
            "expiry": None,
            "hsn": "3005",
            "category": "Dressings",
            "gst_rate": Decimal("0"),
            "mrp": Decimal("130"),
            "purchase_rate": Decimal("70"),
            "sale_rate": Decimal("100.70"),
            "stock": 100,
        },
        {
            "name": "Cough Syrup 100ml",
            "batch": "CS9",
            "expiry": date(2026, 12, 31),
            "hsn": "3004",
            "category": "Syrups",
            "gst_rate": Decimal("12"),
            "mrp": Decimal("95"),
            "purchase_rate": Decimal("60"),
            "sale_rate": Decimal("75"),
            "stock": 200,
        },
    ])


@pytest.fixture
async def parties(store):
    return await store.parties.bulk_add([
        {
            "name": "Shree Medical Stores",
            "gstin": LOCAL_GSTIN,
            "address": "Station Road, Vadodara",
            "phone": "9825000001",
            "state_code": "24",
        },
        {
            "name": "Pune Pharma Agency",
            "gstin": OUTSTATE_GSTIN,
            "address": "FC Road, Pune",
            "phone": "9822000002",
            "state_code": "27",
            "is_favorite": True,
        },
    ])
