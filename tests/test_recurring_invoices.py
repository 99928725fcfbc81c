"""
Recurring invoice tests: templates, scheduling and generation runs.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from app.models.recurring import RecurringFrequency
from app.services.recurring import (
    RecurringInvoiceService,
    add_months,
    first_occurrence_on_or_after,
    next_occurrence,
)


@pytest.fixture
def recurring_payload(test_client_record):
    def build(**overrides) -> dict:
        payload = {
            "client_id": test_client_record.id,
            "frequency": "monthly",
            "start_date": date.today().isoformat(),
            "tax_rate": "10",
            "payment_terms": "Net 14",
            "due_in_days": 14,
            "line_items": [{"description": "Monthly retainer", "quantity": "1", "rate": "500"}],
        }
        payload.update(overrides)
        return payload

    return build


async def create_template(auth_client: AsyncClient, payload: dict) -> dict:
    response = await auth_client.post("/api/v1/recurring-invoices", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def generate(auth_client: AsyncClient) -> dict:
    response = await auth_client.post("/api/v1/recurring-invoices/generate")
    assert response.status_code == 200, response.text
    return response.json()


def test_add_months_keeps_the_anchor_day():
    assert add_months(date(2025, 1, 31), 1, 31) == date(2025, 2, 28)
    assert add_months(date(2025, 2, 28), 1, 31) == date(2025, 3, 31)
    assert add_months(date(2025, 11, 30), 3, 30) == date(2026, 2, 28)
    assert add_months(date(2025, 12, 15), 1, 15) == date(2026, 1, 15)


def test_next_occurrence_per_frequency():
    start = date(2024, 2, 29)

    assert next_occurrence(start, RecurringFrequency.WEEKLY, 29) == date(2024, 3, 7)
    assert next_occurrence(start, RecurringFrequency.MONTHLY, 29) == date(2024, 3, 29)
    assert next_occurrence(start, RecurringFrequency.QUARTERLY, 29) == date(2024, 5, 29)
    assert next_occurrence(start, RecurringFrequency.YEARLY, 29) == date(2025, 2, 28)


def test_first_occurrence_on_or_after():
    start = date(2026, 1, 31)

    assert first_occurrence_on_or_after(start, RecurringFrequency.MONTHLY, date(2026, 1, 1)) == start
    assert first_occurrence_on_or_after(start, RecurringFrequency.MONTHLY, date(2026, 3, 15)) == date(2026, 3, 31)
    assert first_occurrence_on_or_after(start, RecurringFrequency.WEEKLY, date(2026, 2, 8)) == date(2026, 2, 14)


@pytest.mark.asyncio
async def test_create_template(auth_client: AsyncClient, recurring_payload):
    template = await create_template(auth_client, recurring_payload())

    assert template["is_active"] is True
    assert template["next_invoice_date"] == date.today().isoformat()
    assert Decimal(template["subtotal"]) == Decimal("500.00")
    assert Decimal(template["total"]) == Decimal("550.00")
    assert template["client"]["name"] == "Acme Corp"
    assert template["last_generated_at"] is None


@pytest.mark.asyncio
async def test_create_template_validation(auth_client: AsyncClient, recurring_payload):
    today = date.today()
    bad_bodies = [
        recurring_payload(end_date=(today - timedelta(days=1)).isoformat()),
        recurring_payload(line_items=[]),
        recurring_payload(frequency="daily"),
        recurring_payload(discount_value="120"),
    ]

    for body in bad_bodies:
        response = await auth_client.post("/api/v1/recurring-invoices", json=body)
        assert response.status_code == 422, body


@pytest.mark.asyncio
async def test_create_template_for_unknown_client(auth_client: AsyncClient, recurring_payload):
    response = await auth_client.post("/api/v1/recurring-invoices", json=recurring_payload(client_id=9999))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_generate_issues_draft_and_advances(auth_client: AsyncClient, recurring_payload):
    template = await create_template(auth_client, recurring_payload())
    today = date.today()

    result = await generate(auth_client)

    assert result["generated"] == 1
    assert result["failed"] == 0
    invoice = (await auth_client.get(f"/api/v1/invoices/{result['invoice_ids'][0]}")).json()
    assert invoice["status"] == "draft"
    assert invoice["issue_date"] == today.isoformat()
    assert invoice["due_date"] == (today + timedelta(days=14)).isoformat()
    assert invoice["payment_terms"] == "Net 14"
    assert invoice["line_items"][0]["description"] == "Monthly retainer"
    assert Decimal(invoice["total"]) == Decimal("550.00")

    refreshed = (await auth_client.get(f"/api/v1/recurring-invoices/{template['id']}")).json()
    assert refreshed["next_invoice_date"] == add_months(today, 1, today.day).isoformat()
    assert refreshed["last_generated_at"] is not None

    logs = (await auth_client.get(f"/api/v1/recurring-invoices/{template['id']}/logs")).json()
    assert [(log["status"], log["invoice_id"]) for log in logs] == [("success", invoice["id"])]


@pytest.mark.asyncio
async def test_generate_twice_in_one_period(auth_client: AsyncClient, recurring_payload):
    await create_template(auth_client, recurring_payload())

    await generate(auth_client)
    second = await generate(auth_client)

    assert second["generated"] == 0
    invoices = await auth_client.get("/api/v1/invoices")
    assert invoices.json()["total"] == 1


@pytest.mark.asyncio
async def test_future_and_paused_templates_are_skipped(auth_client: AsyncClient, recurring_payload):
    future = (date.today() + timedelta(days=3)).isoformat()
    await create_template(auth_client, recurring_payload(start_date=future))
    paused = await create_template(auth_client, recurring_payload())
    response = await auth_client.patch(
        f"/api/v1/recurring-invoices/{paused['id']}",
        json={"is_active": False},
    )
    assert response.status_code == 200

    result = await generate(auth_client)

    assert result["generated"] == 0


@pytest.mark.asyncio
async def test_last_period_deactivates_template(auth_client: AsyncClient, recurring_payload):
    today = date.today().isoformat()
    template = await create_template(auth_client, recurring_payload(end_date=today))

    result = await generate(auth_client)

    assert result["generated"] == 1
    assert result["deactivated"] == 1
    refreshed = (await auth_client.get(f"/api/v1/recurring-invoices/{template['id']}")).json()
    assert refreshed["is_active"] is False


@pytest.mark.asyncio
async def test_plan_limit_fails_generation_and_keeps_date(
    auth_client: AsyncClient,
    recurring_payload,
    invoice_payload,
):
    for _ in range(3):
        response = await auth_client.post("/api/v1/invoices", json=invoice_payload())
        assert response.status_code == 201
    template = await create_template(auth_client, recurring_payload())

    result = await generate(auth_client)

    assert result["generated"] == 0
    assert result["failed"] == 1
    refreshed = (await auth_client.get(f"/api/v1/recurring-invoices/{template['id']}")).json()
    assert refreshed["next_invoice_date"] == date.today().isoformat()
    assert refreshed["is_active"] is True

    logs = (await auth_client.get(f"/api/v1/recurring-invoices/{template['id']}/logs")).json()
    assert logs[0]["status"] == "failed"
    assert "monthly limit" in logs[0]["error_message"]


@pytest.mark.asyncio
async def test_product_lines_carry_into_generated_invoice(auth_client: AsyncClient, recurring_payload):
    product = await auth_client.post(
        "/api/v1/products",
        json={"name": "Support plan", "rate": "80.00"},
    )
    await create_template(
        auth_client,
        recurring_payload(line_items=[{"product_id": product.json()["id"], "quantity": "2"}]),
    )

    result = await generate(auth_client)

    invoice = (await auth_client.get(f"/api/v1/invoices/{result['invoice_ids'][0]}")).json()
    line = invoice["line_items"][0]
    assert line["product_id"] == product.json()["id"]
    assert line["description"] == "Support plan"
    assert Decimal(line["amount"]) == Decimal("160.00")


@pytest.mark.asyncio
async def test_update_replaces_lines_and_recomputes(auth_client: AsyncClient, recurring_payload):
    template = await create_template(auth_client, recurring_payload())

    response = await auth_client.patch(
        f"/api/v1/recurring-invoices/{template['id']}",
        json={
            "tax_rate": "0",
            "line_items": [{"description": "Retainer, reduced", "quantity": "1", "rate": "300"}],
        },
    )

    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("300.00")
    assert [item["description"] for item in response.json()["line_items"]] == ["Retainer, reduced"]


@pytest.mark.asyncio
async def test_update_start_date_reschedules(auth_client: AsyncClient, recurring_payload):
    template = await create_template(auth_client, recurring_payload())
    later = date.today() + timedelta(days=10)

    response = await auth_client.patch(
        f"/api/v1/recurring-invoices/{template['id']}",
        json={"start_date": later.isoformat()},
    )

    assert response.json()["next_invoice_date"] == later.isoformat()


@pytest.mark.asyncio
async def test_update_cannot_clear_required_fields(auth_client: AsyncClient, recurring_payload):
    template = await create_template(auth_client, recurring_payload())

    for field in ("frequency", "start_date", "line_items"):
        response = await auth_client.patch(
            f"/api/v1/recurring-invoices/{template['id']}",
            json={field: None},
        )
        assert response.status_code == 422, field


@pytest.mark.asyncio
async def test_update_rejects_end_before_start(auth_client: AsyncClient, recurring_payload):
    template = await create_template(auth_client, recurring_payload())
    earlier = (date.today() - timedelta(days=1)).isoformat()

    response = await auth_client.patch(
        f"/api/v1/recurring-invoices/{template['id']}",
        json={"end_date": earlier},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_keeps_generated_invoices(auth_client: AsyncClient, recurring_payload):
    template = await create_template(auth_client, recurring_payload())
    result = await generate(auth_client)

    response = await auth_client.delete(f"/api/v1/recurring-invoices/{template['id']}")

    assert response.status_code == 200
    assert (await auth_client.get(f"/api/v1/recurring-invoices/{template['id']}")).status_code == 404
    invoice = await auth_client.get(f"/api/v1/invoices/{result['invoice_ids'][0]}")
    assert invoice.status_code == 200


@pytest.mark.asyncio
async def test_client_with_template_cannot_be_deleted(
    auth_client: AsyncClient,
    recurring_payload,
    test_client_record,
):
    await create_template(auth_client, recurring_payload())

    response = await auth_client.delete(f"/api/v1/clients/{test_client_record.id}")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_filters_by_active(auth_client: AsyncClient, recurring_payload):
    active = await create_template(auth_client, recurring_payload())
    paused = await create_template(auth_client, recurring_payload())
    await auth_client.patch(f"/api/v1/recurring-invoices/{paused['id']}", json={"is_active": False})

    response = await auth_client.get("/api/v1/recurring-invoices", params={"is_active": True})

    assert response.status_code == 200
    assert [t["id"] for t in response.json()["items"]] == [active["id"]]


@pytest.mark.asyncio
async def test_missed_periods_are_caught_up_one_per_run(db_session, auth_client: AsyncClient, recurring_payload):
    start = date(2026, 1, 31)
    template = await create_template(auth_client, recurring_payload(start_date=start.isoformat()))
    service = RecurringInvoiceService(db_session)
    run_day = date(2026, 3, 31)

    issued = []
    for _ in range(4):
        result = await service.generate_due(owner_id=template["owner_id"], today=run_day)
        issued.append(result.generated)

    assert issued == [1, 1, 1, 0]
    refreshed = await service.get_or_404(template["id"], template["owner_id"])
    assert refreshed.next_invoice_date == date(2026, 4, 30)
