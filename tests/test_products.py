"""
Product catalog tests, including line items that reference products.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient


async def create_product(auth_client: AsyncClient, **overrides) -> dict:
    payload = {
        "name": "Consulting",
        "description": "Senior consulting hour",
        "sku": "CONS-01",
        "rate": "120.00",
        "unit": "hour",
        "category": "Services",
    }
    payload.update(overrides)
    response = await auth_client.post("/api/v1/products", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_product(auth_client: AsyncClient):
    product = await create_product(auth_client)

    assert product["name"] == "Consulting"
    assert Decimal(product["rate"]) == Decimal("120.00")
    assert product["is_active"] is True
    assert product["taxable"] is True
    assert product["usage_count"] == 0


@pytest.mark.asyncio
async def test_create_product_requires_rate(auth_client: AsyncClient):
    response = await auth_client.post("/api/v1/products", json={"name": "Nothing"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_hides_deactivated_products(auth_client: AsyncClient):
    kept = await create_product(auth_client, name="Audit")
    dropped = await create_product(auth_client, name="Legacy plan", sku="OLD-1")

    response = await auth_client.delete(f"/api/v1/products/{dropped['id']}")
    assert response.status_code == 200

    active = await auth_client.get("/api/v1/products")
    assert [p["id"] for p in active.json()["items"]] == [kept["id"]]

    everything = await auth_client.get("/api/v1/products", params={"include_inactive": True})
    assert everything.json()["total"] == 2


@pytest.mark.asyncio
async def test_list_filters_by_search_and_category(auth_client: AsyncClient):
    await create_product(auth_client, name="Logo design", sku="DES-1", category="Design")
    await create_product(auth_client, name="Server setup", sku="OPS-1", category="Ops")

    by_sku = await auth_client.get("/api/v1/products", params={"search": "ops-"})
    assert [p["name"] for p in by_sku.json()["items"]] == ["Server setup"]

    by_category = await auth_client.get("/api/v1/products", params={"category": "Design"})
    assert [p["name"] for p in by_category.json()["items"]] == ["Logo design"]


@pytest.mark.asyncio
async def test_quick_search_puts_most_used_first(auth_client: AsyncClient, invoice_payload):
    rarely = await create_product(auth_client, name="Hosting basic", description=None)
    often = await create_product(auth_client, name="Hosting premium", description=None)

    response = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(line_items=[{"product_id": often["id"]}, {"product_id": often["id"]}]),
    )
    assert response.status_code == 201

    results = await auth_client.get("/api/v1/products/search", params={"q": "hosting"})

    assert results.status_code == 200
    assert [p["id"] for p in results.json()] == [often["id"], rarely["id"]]
    assert results.json()[0]["usage_count"] == 2


@pytest.mark.asyncio
async def test_update_product(auth_client: AsyncClient):
    product = await create_product(auth_client)

    response = await auth_client.patch(
        f"/api/v1/products/{product['id']}",
        json={"rate": "135.50", "unit": None},
    )

    assert response.status_code == 200
    assert Decimal(response.json()["rate"]) == Decimal("135.50")
    assert response.json()["unit"] is None


@pytest.mark.asyncio
async def test_update_product_cannot_clear_name_or_rate(auth_client: AsyncClient):
    product = await create_product(auth_client)

    for field in ("name", "rate"):
        response = await auth_client.patch(f"/api/v1/products/{product['id']}", json={field: None})
        assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_unknown_product(auth_client: AsyncClient):
    response = await auth_client.get("/api/v1/products/9999")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invoice_line_defaults_from_product(auth_client: AsyncClient, invoice_payload):
    product = await create_product(auth_client)

    response = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(
            tax_rate="0",
            discount_value="0",
            line_items=[{"product_id": product["id"], "quantity": "3"}],
        ),
    )

    assert response.status_code == 201, response.text
    line = response.json()["line_items"][0]
    assert line["product_id"] == product["id"]
    assert line["description"] == "Senior consulting hour"
    assert Decimal(line["rate"]) == Decimal("120.00")
    assert Decimal(line["amount"]) == Decimal("360.00")
    assert Decimal(response.json()["total"]) == Decimal("360.00")

    refreshed = await auth_client.get(f"/api/v1/products/{product['id']}")
    assert refreshed.json()["usage_count"] == 1


@pytest.mark.asyncio
async def test_line_values_override_product(auth_client: AsyncClient, invoice_payload):
    product = await create_product(auth_client, description=None)

    response = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(line_items=[
            {"product_id": product["id"]},
            {"product_id": product["id"], "description": "Workshop day", "rate": "900"},
        ]),
    )

    lines = response.json()["line_items"]
    assert lines[0]["description"] == "Consulting"
    assert [Decimal(line["rate"]) for line in lines] == [Decimal("120.00"), Decimal("900")]
    assert lines[1]["description"] == "Workshop day"


@pytest.mark.asyncio
async def test_product_changes_do_not_rewrite_existing_lines(auth_client: AsyncClient, invoice_payload):
    product = await create_product(auth_client)
    created = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(line_items=[{"product_id": product["id"]}]),
    )

    await auth_client.patch(f"/api/v1/products/{product['id']}", json={"rate": "999"})
    invoice = await auth_client.get(f"/api/v1/invoices/{created.json()['id']}")

    assert Decimal(invoice.json()["line_items"][0]["rate"]) == Decimal("120.00")
    assert invoice.json()["total"] == created.json()["total"]


@pytest.mark.asyncio
async def test_line_without_product_needs_description_and_rate(auth_client: AsyncClient, invoice_payload):
    response = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(line_items=[{"quantity": "2"}]),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_product_on_line(auth_client: AsyncClient, invoice_payload):
    response = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(line_items=[{"product_id": 9999}]),
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_deactivated_product_cannot_be_added(auth_client: AsyncClient, invoice_payload):
    product = await create_product(auth_client)
    await auth_client.delete(f"/api/v1/products/{product['id']}")

    response = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(line_items=[{"product_id": product["id"]}]),
    )

    assert response.status_code == 400
    assert "no longer available" in response.json()["detail"]


@pytest.mark.asyncio
async def test_estimate_line_from_product(auth_client: AsyncClient, test_client_record):
    product = await create_product(auth_client)

    response = await auth_client.post(
        "/api/v1/estimates",
        json={
            "client_id": test_client_record.id,
            "title": "Quarterly support",
            "issue_date": "2026-01-05",
            "valid_until": "2026-02-05",
            "line_items": [{"product_id": product["id"], "quantity": "2"}],
        },
    )

    assert response.status_code == 201, response.text
    line = response.json()["line_items"][0]
    assert line["product_id"] == product["id"]
    assert Decimal(response.json()["subtotal"]) == Decimal("240.00")
