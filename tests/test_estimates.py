"""
Estimate endpoint tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient


@pytest.fixture
def estimate_payload(test_client_record):
    def build(**overrides) -> dict:
        today = date.today()
        payload = {
            "client_id": test_client_record.id,
            "title": "Website redesign",
            "terms": "50% upfront",
            "issue_date": today.isoformat(),
            "valid_until": (today + timedelta(days=14)).isoformat(),
            "tax_rate": "20",
            "line_items": [{"description": "Design", "quantity": "3", "rate": "150"}],
        }
        payload.update(overrides)
        return payload

    return build


async def create_estimate(auth_client: AsyncClient, payload: dict) -> dict:
    response = await auth_client.post("/api/v1/estimates", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_estimate(auth_client: AsyncClient, estimate_payload):
    data = await create_estimate(auth_client, estimate_payload())

    assert data["estimate_number"] == f"EST-{date.today().year}-0001"
    assert data["status"] == "draft"
    assert Decimal(data["total"]) == Decimal("540.00")


@pytest.mark.asyncio
async def test_valid_until_before_issue_date_is_rejected(auth_client: AsyncClient, estimate_payload):
    response = await auth_client.post(
        "/api/v1/estimates",
        json=estimate_payload(valid_until=(date.today() - timedelta(days=1)).isoformat()),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_send_then_accept(auth_client: AsyncClient, estimate_payload):
    estimate = await create_estimate(auth_client, estimate_payload())

    sent = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/send")
    viewed = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/viewed")
    accepted = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/accept")

    assert sent.json()["status"] == "sent"
    assert viewed.json()["status"] == "viewed"
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["accepted_at"] is not None


@pytest.mark.asyncio
async def test_draft_cannot_be_accepted(auth_client: AsyncClient, estimate_payload):
    estimate = await create_estimate(auth_client, estimate_payload())

    response = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/accept")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_convert_to_invoice(auth_client: AsyncClient, estimate_payload):
    estimate = await create_estimate(auth_client, estimate_payload())

    response = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/convert")

    assert response.status_code == 201
    conversion = response.json()
    assert conversion["invoice_number"] == f"INV-{date.today().year}-0001"

    invoice = (await auth_client.get(f"/api/v1/invoices/{conversion['invoice_id']}")).json()
    assert invoice["status"] == "draft"
    assert Decimal(invoice["total"]) == Decimal("540.00")
    assert invoice["payment_terms"] == "50% upfront"
    assert invoice["due_date"] == (date.today() + timedelta(days=30)).isoformat()
    assert invoice["line_items"][0]["description"] == "Design"

    converted = (await auth_client.get(f"/api/v1/estimates/{estimate['id']}")).json()
    assert converted["status"] == "converted"
    assert converted["converted_invoice_id"] == conversion["invoice_id"]


@pytest.mark.asyncio
async def test_convert_twice_is_refused(auth_client: AsyncClient, estimate_payload):
    estimate = await create_estimate(auth_client, estimate_payload())
    await auth_client.post(f"/api/v1/estimates/{estimate['id']}/convert")

    response = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/convert")

    assert response.status_code == 400
    assert "already been converted" in response.json()["detail"]


@pytest.mark.asyncio
async def test_rejected_estimate_cannot_be_converted(auth_client: AsyncClient, estimate_payload):
    estimate = await create_estimate(auth_client, estimate_payload())
    await auth_client.post(f"/api/v1/estimates/{estimate['id']}/send")
    await auth_client.post(f"/api/v1/estimates/{estimate['id']}/reject")

    response = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/convert")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_conversion_counts_against_plan_limit(auth_client: AsyncClient, estimate_payload, invoice_payload):
    for _ in range(3):
        await auth_client.post("/api/v1/invoices", json=invoice_payload())
    estimate = await create_estimate(auth_client, estimate_payload())

    response = await auth_client.post(f"/api/v1/estimates/{estimate['id']}/convert")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_stale_estimates_expire_when_listed(auth_client: AsyncClient, estimate_payload):
    past = date.today() - timedelta(days=30)
    estimate = await create_estimate(
        auth_client,
        estimate_payload(issue_date=past.isoformat(), valid_until=(past + timedelta(days=7)).isoformat()),
    )

    listing = await auth_client.get("/api/v1/estimates")

    assert listing.json()["items"][0]["id"] == estimate["id"]
    assert listing.json()["items"][0]["status"] == "expired"


@pytest.mark.asyncio
async def test_converted_estimate_cannot_be_deleted(auth_client: AsyncClient, estimate_payload):
    estimate = await create_estimate(auth_client, estimate_payload())
    await auth_client.post(f"/api/v1/estimates/{estimate['id']}/convert")

    response = await auth_client.delete(f"/api/v1/estimates/{estimate['id']}")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_rejects_percentage_over_100(auth_client: AsyncClient, estimate_payload):
    estimate = await create_estimate(auth_client, estimate_payload())

    response = await auth_client.patch(f"/api/v1/estimates/{estimate['id']}", json={"discount_value": "120"})

    assert response.status_code == 400
    unchanged = (await auth_client.get(f"/api/v1/estimates/{estimate['id']}")).json()
    assert Decimal(unchanged["total"]) == Decimal("540.00")
