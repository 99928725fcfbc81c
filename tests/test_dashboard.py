"""
Dashboard endpoint tests.
"""

from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient

from app.services.dashboard import month_windows


def test_month_windows_cross_year():
    windows = month_windows(3, today=date(2026, 2, 14))

    assert windows == [
        (date(2025, 12, 1), date(2026, 1, 1)),
        (date(2026, 1, 1), date(2026, 2, 1)),
        (date(2026, 2, 1), date(2026, 3, 1)),
    ]


@pytest.fixture
async def paid_in_part(auth_client: AsyncClient, invoice_payload) -> dict:
    invoice = (await auth_client.post("/api/v1/invoices", json=invoice_payload())).json()
    await auth_client.post(f"/api/v1/invoices/{invoice['id']}/send")
    await auth_client.post(
        "/api/v1/payments",
        json={
            "invoice_id": invoice["id"],
            "amount": "100.00",
            "payment_date": date.today().isoformat(),
        },
    )
    return invoice


@pytest.mark.asyncio
async def test_empty_overview(auth_client: AsyncClient):
    response = await auth_client.get("/api/v1/dashboard/overview")

    data = response.json()
    assert Decimal(data["total_revenue"]) == 0
    assert data["total_clients"] == 0
    assert data["invoice_counts"]["draft"] == 0


@pytest.mark.asyncio
async def test_overview_after_payment(auth_client: AsyncClient, paid_in_part):
    response = await auth_client.get("/api/v1/dashboard/overview")

    data = response.json()
    assert Decimal(data["total_revenue"]) == Decimal("100.00")
    assert Decimal(data["outstanding_balance"]) == Decimal("265.75")
    assert data["invoice_counts"]["sent"] == 1
    assert data["total_clients"] == 1
    assert Decimal(data["net_profit"]) == Decimal("100.00")


@pytest.mark.asyncio
async def test_monthly_revenue(auth_client: AsyncClient, paid_in_part):
    response = await auth_client.get("/api/v1/dashboard/monthly-revenue", params={"months": 6})

    months = response.json()
    assert len(months) == 6
    assert months[-1]["month"] == date.today().strftime("%Y-%m")
    assert Decimal(months[-1]["revenue"]) == Decimal("100.00")
    assert Decimal(months[0]["revenue"]) == 0


@pytest.mark.asyncio
async def test_top_clients(auth_client: AsyncClient, paid_in_part):
    response = await auth_client.get("/api/v1/dashboard/top-clients")

    clients = response.json()
    assert clients[0]["name"] == "Acme Corp"
    assert clients[0]["total_revenue"] == 100.0
    assert clients[0]["invoice_count"] == 1
