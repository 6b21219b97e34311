from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from distbill.api.deps import get_store
from distbill.database import get_db
from distbill.main import app


@pytest.fixture
async def client(store, session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.mark.anyio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["checks"]["database"] == "connected"


@pytest.mark.anyio
async def test_company_profile_roundtrip(client):
    resp = await client.get("/api/v1/settings/company")
    assert resp.status_code == 200
    assert resp.json()["gstin"] == "24AADPO7411Q1ZE"

    resp = await client.patch(
        "/api/v1/settings/company",
        json={"use_default_gst": True, "default_gst_rate": "12", "invoice_template": "modern"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["use_default_gst"] is True
    assert Decimal(body["default_gst_rate"]) == Decimal("12")
    assert body["invoice_template"] == "modern"


@pytest.mark.anyio
async def test_product_crud(client):
    resp = await client.post(
        "/api/v1/products",
        json={"name": " Dolo 650 ", "batch": "dl1", "hsn": "3004", "gst_rate": 12, "sale_rate": "30", "stock": 10},
    )
    assert resp.status_code == 201
    product = resp.json()
    assert product["name"] == "Dolo 650"
    assert product["batch"] == "DL1"

    resp = await client.patch(f"/api/v1/products/{product['id']}", json={"stock": 25})
    assert resp.status_code == 200
    assert resp.json()["stock"] == 25

    resp = await client.get("/api/v1/products", params={"search": "dolo"})
    assert [p["name"] for p in resp.json()["items"]] == ["Dolo 650"]

    resp = await client.delete(f"/api/v1/products/{product['id']}")
    assert resp.status_code == 204
    assert (await client.get(f"/api/v1/products/{product['id']}")).status_code == 404


@pytest.mark.anyio
async def test_product_rejects_unknown_gst_rate(client):
    resp = await client.post("/api/v1/products", json={"name": "Odd", "gst_rate": 7})
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_product_update_rejects_unknown_gst_rate(client, products):
    resp = await client.patch(f"/api/v1/products/{products[0].id}", json={"gst_rate": "7.5"})
    assert resp.status_code == 422

    resp = await client.patch(f"/api/v1/products/{products[0].id}", json={"gst_rate": 18})
    assert resp.status_code == 200
    assert Decimal(resp.json()["gst_rate"]) == Decimal("18")


@pytest.mark.anyio
async def test_prices_with_more_than_two_decimals_are_rejected(client, products):
    resp = await client.post("/api/v1/products", json={"name": "Odd", "sale_rate": "10.555"})
    assert resp.status_code == 422

    resp = await client.post(
        "/api/v1/invoices/preview",
        json={
            "invoice_type": "RETAIL",
            "lines": [{"product_id": products[0].id, "sale_rate": "10.555", "discount_percent": "33.333"}],
        },
    )
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_import_endpoints(client):
    resp = await client.post(
        "/api/v1/products/import",
        json={"products": [{"name": "A", "gst_rate": 5}, {"name": "B", "gst_rate": 18, "extra_column": "x"}]},
    )
    assert resp.status_code == 201
    assert resp.json() == {"imported": 2}

    resp = await client.post(
        "/api/v1/parties/import",
        json={"parties": [{"name": "Unknown"}, {"name": "Surat Meds", "gstin": "24aaaaa0000a1z5", "party_type": "retail"}]},
    )
    assert resp.json() == {"imported": 1}

    parties = (await client.get("/api/v1/parties")).json()["items"]
    assert parties[0]["gstin"] == "24AAAAA0000A1Z5"
    assert parties[0]["party_type"] == "RETAIL"
    assert parties[0]["state_code"] == "24"


@pytest.mark.anyio
async def test_preview_prices_cart(client, products, parties):
    resp = await client.post(
        "/api/v1/invoices/preview",
        json={
            "invoice_type": "wholesale",
            "party_id": parties[1].id,
            "lines": [
                {"product_id": products[0].id, "quantity": 10, "discount_percent": "10"},
                {"product_id": products[1].id, "quantity": 5},
            ],
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["invoice_number"] == "TI -65"
    assert body["party"]["state_code"] == "27"
    assert Decimal(body["totals"]["total_igst"]) == Decimal("108")
    assert Decimal(body["totals"]["grand_total"]) == Decimal("1511.50")
    assert Decimal(body["totals"]["rounded_total"]) == Decimal("1512")
    assert Decimal(body["totals"]["round_off"]) == Decimal("0.50")
    assert [row["hsn"] for row in body["hsn_summary"]] == ["3004", "3005"]

    # Nothing was saved.
    assert (await client.get("/api/v1/invoices")).json()["total"] == 0


@pytest.mark.anyio
async def test_save_invoice_and_read_back(client, store, products, parties):
    resp = await client.post(
        "/api/v1/invoices",
        json={
            "invoice_type": "WHOLESALE",
            "party_id": parties[0].id,
            "invoice_date": "2026-10-19",
            "transport": "VRL Logistics",
            "lines": [{"product_id": products[0].id, "quantity": 2, "free_quantity": 1}],
        },
    )
    assert resp.status_code == 201
    invoice = resp.json()
    assert invoice["invoice_number"] == "TI -65"
    assert invoice["party_name"] == "Shree Medical Stores"
    assert invoice["is_interstate"] is False
    assert Decimal(invoice["total_cgst"]) == Decimal("12")
    assert Decimal(invoice["rounded_total"]) == Decimal("224")
    assert invoice["items"][0]["free_quantity"] == 1

    assert (await store.products.get(products[0].id)).stock == 2

    listing = (await client.get("/api/v1/invoices")).json()
    assert listing["total"] == 1
    assert listing["items"][0]["invoice_number"] == "TI -65"

    fetched = await client.get(f"/api/v1/invoices/{invoice['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["transport"] == "VRL Logistics"

    summary = (await client.get(f"/api/v1/invoices/{invoice['id']}/hsn-summary")).json()
    assert len(summary) == 1
    assert Decimal(summary[0]["total_tax"]) == Decimal("24")


@pytest.mark.anyio
async def test_wholesale_without_party_is_rejected(client, products):
    resp = await client.post(
        "/api/v1/invoices",
        json={"invoice_type": "WHOLESALE", "lines": [{"product_id": products[0].id}]},
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["error_code"] == "MISSING_PARTY"


@pytest.mark.anyio
async def test_empty_invoice_is_rejected(client):
    resp = await client.post("/api/v1/invoices", json={"invoice_type": "RETAIL", "lines": []})
    assert resp.status_code == 422
    assert resp.json()["detail"]["error_code"] == "EMPTY_INVOICE"


@pytest.mark.anyio
async def test_duplicate_lines_are_rejected(client, products):
    line = {"product_id": products[0].id}
    resp = await client.post("/api/v1/invoices", json={"invoice_type": "RETAIL", "lines": [line, line]})
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_unknown_product_is_not_found(client):
    resp = await client.post("/api/v1/invoices", json={"invoice_type": "RETAIL", "lines": [{"product_id": 999}]})
    assert resp.status_code == 404
    assert resp.json()["detail"]["error_code"] == "NOT_FOUND"


@pytest.mark.anyio
async def test_unknown_invoice_is_not_found(client):
    resp = await client.get("/api/v1/invoices/12345")
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_dashboard_stats(client, products):
    resp = await client.get("/api/v1/dashboard/stats", params={"today": "2026-10-19"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["low_stock_items"] == 1
    assert body["expiring_soon_items"] == 1
    assert len(body["monthly_sales"]) == 6
