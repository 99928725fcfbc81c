"""
Email history and retry tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.models.email_log import EmailLog, EmailType, DeliveryStatus
from app.services import email_retry
from app.services.email import EmailService
from app.services.email_retry import EmailRetryService


@pytest.fixture
def smtp_accepts(monkeypatch):
    """Make every SMTP delivery succeed."""
    monkeypatch.setattr(EmailService, "_send", lambda self, msg, to_email: ("<retry@test>", None))


@pytest.fixture
async def failed_log(auth_client: AsyncClient, invoice_payload) -> dict:
    invoice = (await auth_client.post("/api/v1/invoices", json=invoice_payload())).json()
    await auth_client.post(f"/api/v1/invoices/{invoice['id']}/send")
    history = await auth_client.get("/api/v1/email-history")
    return history.json()["items"][0]


@pytest.mark.asyncio
async def test_failed_send_is_logged(auth_client: AsyncClient, failed_log):
    assert failed_log["success"] is False
    assert failed_log["email_type"] == "invoice"
    assert failed_log["delivery_status"] == "failed"
    assert failed_log["error_message"] == "SMTP is not configured"

    stats = (await auth_client.get("/api/v1/email-history/stats")).json()
    assert stats["total"] == 1
    assert stats["failed"] == 1
    assert stats["pending_retry"] == 1
    assert stats["by_type"]["invoice"] == 1


@pytest.mark.asyncio
async def test_retry_status(auth_client: AsyncClient, failed_log):
    response = await auth_client.get(f"/api/v1/email-history/{failed_log['id']}/retry-status")

    data = response.json()
    assert data["can_retry"] is True
    assert data["retries_remaining"] == 3
    assert data["next_retry_at"] is not None


@pytest.mark.asyncio
async def test_retry_until_exhausted(auth_client: AsyncClient, failed_log):
    for attempt in range(1, 4):
        response = await auth_client.post(f"/api/v1/email-history/{failed_log['id']}/retry")
        assert response.json()["success"] is False
        assert response.json()["retry_count"] == attempt

    exhausted = await auth_client.post(f"/api/v1/email-history/{failed_log['id']}/retry")
    assert exhausted.json()["error"] == "Maximum retry attempts reached"
    assert exhausted.json()["retry_count"] == 3

    status = (await auth_client.get(f"/api/v1/email-history/{failed_log['id']}/retry-status")).json()
    assert status["can_retry"] is False
    assert status["next_retry_at"] is None


@pytest.mark.asyncio
async def test_successful_retry(auth_client: AsyncClient, failed_log, smtp_accepts):
    response = await auth_client.post(f"/api/v1/email-history/{failed_log['id']}/retry")

    assert response.json()["success"] is True
    log = (await auth_client.get(f"/api/v1/email-history/{failed_log['id']}")).json()
    assert log["success"] is True
    assert log["delivery_status"] == "sent"
    assert log["error_message"] is None

    again = await auth_client.post(f"/api/v1/email-history/{failed_log['id']}/retry")
    assert again.json()["error"] == "Email was already sent successfully"


@pytest.mark.asyncio
async def test_filter_by_search(auth_client: AsyncClient, failed_log):
    hit = await auth_client.get("/api/v1/email-history", params={"search": "acme.test"})
    miss = await auth_client.get("/api/v1/email-history", params={"search": "nobody.example"})

    assert hit.json()["total"] == 1
    assert miss.json()["total"] == 0


@pytest.mark.asyncio
async def test_unknown_log_is_404(auth_client: AsyncClient):
    response = await auth_client.get("/api/v1/email-history/9999")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_process_failed_emails(db_session, test_user, monkeypatch, smtp_accepts):
    monkeypatch.setattr(email_retry, "RETRY_PAUSE_SECONDS", 0)
    now = datetime.now(timezone.utc)

    def failed(subject: str, **fields) -> EmailLog:
        return EmailLog(
            owner_id=test_user.id,
            recipient_email="client@example.com",
            subject=subject,
            body="<p>Hello</p>",
            email_type=EmailType.REMINDER,
            success=False,
            error_message="Connection refused",
            delivery_status=DeliveryStatus.FAILED,
            **fields,
        )

    db_session.add_all([
        failed("due", retry_count=1, next_retry_at=now - timedelta(minutes=1)),
        failed("later", retry_count=0, next_retry_at=now + timedelta(hours=2)),
        failed("exhausted", retry_count=3, next_retry_at=None),
    ])
    await db_session.flush()

    summary = await EmailRetryService(db_session).process_failed_emails(now=now)

    assert summary == {"processed": 1, "succeeded": 1, "failed": 0}
