"""
Invoice endpoint tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from app.core.subscription import SubscriptionStatus


async def create_invoice(auth_client: AsyncClient, payload: dict) -> dict:
    response = await auth_client.post("/api/v1/invoices", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_invoice_computes_totals(auth_client: AsyncClient, invoice_payload):
    data = await create_invoice(auth_client, invoice_payload())

    year = date.today().year
    assert data["invoice_number"] == f"INV-{year}-0001"
    assert data["status"] == "draft"
    assert Decimal(data["subtotal"]) == Decimal("350.00")
    assert Decimal(data["discount_amount"]) == Decimal("17.50")
    assert Decimal(data["tax_amount"]) == Decimal("33.25")
    assert Decimal(data["total"]) == Decimal("365.75")
    assert Decimal(data["balance_due"]) == Decimal("365.75")
    assert [Decimal(item["amount"]) for item in data["line_items"]] == [Decimal("250"), Decimal("100")]
    assert data["client"]["name"] == "Acme Corp"


@pytest.mark.asyncio
async def test_invoice_numbers_are_sequential(auth_client: AsyncClient, invoice_payload):
    first = await create_invoice(auth_client, invoice_payload())
    second = await create_invoice(auth_client, invoice_payload())

    assert first["invoice_number"].endswith("-0001")
    assert second["invoice_number"].endswith("-0002")


@pytest.mark.asyncio
async def test_due_date_before_issue_date_is_rejected(auth_client: AsyncClient, invoice_payload):
    today = date.today()
    response = await auth_client.post(
        "/api/v1/invoices",
        json=invoice_payload(due_date=(today - timedelta(days=1)).isoformat()),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_percentage_discount_over_100_is_rejected(auth_client: AsyncClient, invoice_payload):
    response = await auth_client.post("/api/v1/invoices", json=invoice_payload(discount_value="150"))

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_tax_exempt_client_pays_no_tax(auth_client: AsyncClient, test_client_record, invoice_payload):
    await auth_client.patch(f"/api/v1/clients/{test_client_record.id}", json={"tax_exempt": True})

    data = await create_invoice(auth_client, invoice_payload())

    assert Decimal(data["tax_amount"]) == Decimal("0.00")
    assert Decimal(data["total"]) == Decimal("332.50")


@pytest.mark.asyncio
async def test_free_plan_monthly_limit(auth_client: AsyncClient, invoice_payload):
    for _ in range(3):
        await create_invoice(auth_client, invoice_payload())

    response = await auth_client.post("/api/v1/invoices", json=invoice_payload())

    assert response.status_code == 403
    assert "monthly limit of 3 invoices" in response.json()["detail"]

    usage = await auth_client.get("/api/v1/users/me/usage")
    assert usage.json()["invoices_this_month"] == 3
    assert usage.json()["can_create_invoice"] is False


@pytest.mark.asyncio
async def test_pro_plan_has_no_limit(auth_client: AsyncClient, db_session, test_user, invoice_payload):
    test_user.subscription_status = SubscriptionStatus.ACTIVE
    await db_session.commit()

    for _ in range(4):
        await create_invoice(auth_client, invoice_payload())

    usage = await auth_client.get("/api/v1/users/me/usage")
    assert usage.json()["is_pro"] is True
    assert usage.json()["invoice_limit"] is None


@pytest.mark.asyncio
async def test_update_replaces_line_items(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())

    response = await auth_client.patch(
        f"/api/v1/invoices/{invoice['id']}",
        json={
            "discount_value": "0",
            "tax_rate": "0",
            "line_items": [{"description": "Consulting", "quantity": "2", "rate": "80"}],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["line_items"]) == 1
    assert Decimal(data["total"]) == Decimal("160.00")


@pytest.mark.asyncio
async def test_send_marks_sent_and_logs_failed_email(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())

    response = await auth_client.post(f"/api/v1/invoices/{invoice['id']}/send", json={"message": "Thanks!"})

    assert response.status_code == 200
    assert response.json()["status"] == "sent"
    assert response.json()["sent_at"] is not None

    history = await auth_client.get("/api/v1/email-history")
    log = history.json()["items"][0]
    assert log["email_type"] == "invoice"
    assert log["success"] is False
    assert log["error_message"] == "SMTP is not configured"
    assert log["next_retry_at"] is not None


@pytest.mark.asyncio
async def test_sent_invoice_cannot_be_edited_or_deleted(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())
    await auth_client.post(f"/api/v1/invoices/{invoice['id']}/send")

    update = await auth_client.patch(f"/api/v1/invoices/{invoice['id']}", json={"notes": "late edit"})
    delete = await auth_client.delete(f"/api/v1/invoices/{invoice['id']}")

    assert update.status_code == 400
    assert delete.status_code == 400


@pytest.mark.asyncio
async def test_send_without_line_items_is_refused(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload(line_items=[]))

    response = await auth_client.post(f"/api/v1/invoices/{invoice['id']}/send")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_mark_paid(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())
    await auth_client.post(f"/api/v1/invoices/{invoice['id']}/send")

    response = await auth_client.post(f"/api/v1/invoices/{invoice['id']}/mark-paid")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "paid"
    assert Decimal(data["amount_paid"]) == Decimal("365.75")
    assert data["paid_at"] is not None

    payments = await auth_client.get("/api/v1/payments", params={"invoice_id": invoice["id"]})
    assert payments.json()["total"] == 1


@pytest.mark.asyncio
async def test_draft_cannot_be_marked_paid(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())

    response = await auth_client.post(f"/api/v1/invoices/{invoice['id']}/mark-paid")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_cancel(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())

    response = await auth_client.post(f"/api/v1/invoices/{invoice['id']}/cancel")
    again = await auth_client.post(f"/api/v1/invoices/{invoice['id']}/cancel")

    assert response.json()["status"] == "canceled"
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_check_overdue(auth_client: AsyncClient, invoice_payload):
    past = date.today() - timedelta(days=40)
    invoice = await create_invoice(
        auth_client,
        invoice_payload(issue_date=past.isoformat(), due_date=(past + timedelta(days=30)).isoformat()),
    )
    await auth_client.post(f"/api/v1/invoices/{invoice['id']}/send")

    response = await auth_client.post("/api/v1/invoices/check-overdue")

    assert response.json()["updated"] == 1
    detail = await auth_client.get(f"/api/v1/invoices/{invoice['id']}")
    assert detail.json()["status"] == "overdue"

    stats = await auth_client.get("/api/v1/invoices/stats")
    assert stats.json()["status_counts"]["overdue"] == 1
    assert Decimal(stats.json()["overdue_amount"]) == Decimal("365.75")


@pytest.mark.asyncio
async def test_list_filters_by_status(auth_client: AsyncClient, invoice_payload):
    first = await create_invoice(auth_client, invoice_payload())
    await create_invoice(auth_client, invoice_payload())
    await auth_client.post(f"/api/v1/invoices/{first['id']}/send")

    response = await auth_client.get("/api/v1/invoices", params={"status": "sent"})

    assert response.json()["total"] == 1
    assert response.json()["items"][0]["id"] == first["id"]


@pytest.mark.asyncio
async def test_download_pdf(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())

    response = await auth_client.get(f"/api/v1/invoices/{invoice['id']}/pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_other_users_invoice_is_404(auth_client: AsyncClient, invoice_payload, client):
    invoice = await create_invoice(auth_client, invoice_payload())

    await client.post(
        "/api/v1/auth/register",
        json={"email": "other@example.com", "password": "password123", "full_name": "Other User"},
    )
    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "other@example.com", "password": "password123"},
    )

    response = await client.get(
        f"/api/v1/invoices/{invoice['id']}",
        headers={"Authorization": f"Bearer {login.json()['access_token']}"},
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_rejects_percentage_over_100(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())

    merged = await auth_client.patch(f"/api/v1/invoices/{invoice['id']}", json={"discount_value": "150"})
    in_body = await auth_client.patch(
        f"/api/v1/invoices/{invoice['id']}",
        json={"discount_type": "percentage", "discount_value": "150"},
    )

    assert merged.status_code == 400
    assert merged.json()["detail"] == "Percentage discount cannot exceed 100"
    assert in_body.status_code == 422

    unchanged = (await auth_client.get(f"/api/v1/invoices/{invoice['id']}")).json()
    assert Decimal(unchanged["total"]) == Decimal("365.75")


@pytest.mark.asyncio
async def test_update_switches_to_fixed_discount(auth_client: AsyncClient, invoice_payload):
    invoice = await create_invoice(auth_client, invoice_payload())

    response = await auth_client.patch(
        f"/api/v1/invoices/{invoice['id']}",
        json={"discount_type": "fixed", "discount_value": "150"},
    )

    assert response.status_code == 200
    assert Decimal(response.json()["discount_amount"]) == Decimal("150.00")
    assert Decimal(response.json()["total"]) == Decimal("220.00")
