"""
Email history and retry service.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from fastapi import HTTPException, status

from app.models.email_log import EmailLog, EmailType, DeliveryStatus
from app.models.invoice import Invoice
from app.models.user import User
from app.schemas.email_log import EmailStats, RetryResult
from app.services.email import EmailService
from app.utils.email_retry import MAX_RETRIES, calculate_next_retry_time


logger = logging.getLogger(__name__)

# Pause between automatic retries to stay under SMTP rate limits
RETRY_PAUSE_SECONDS = 0.5


class EmailRetryService:
    """Lists email logs and re-sends failed ones."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_404(self, log_id: int, owner_id: int) -> EmailLog:
        result = await self.db.execute(
            select(EmailLog).where(
                EmailLog.id == log_id,
                EmailLog.owner_id == owner_id,
            )
        )
        log = result.scalar_one_or_none()
        if not log:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Email log not found",
            )
        return log

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        email_type: EmailType | None = None,
        delivery_status: DeliveryStatus | None = None,
        search: str | None = None,
    ) -> tuple[list[EmailLog], int]:
        conditions = [EmailLog.owner_id == owner_id]
        if email_type:
            conditions.append(EmailLog.email_type == email_type)
        if delivery_status:
            conditions.append(EmailLog.delivery_status == delivery_status)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                EmailLog.recipient_email.ilike(pattern),
                EmailLog.subject.ilike(pattern),
            ))

        total_result = await self.db.execute(
            select(func.count(EmailLog.id)).where(*conditions)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(EmailLog)
            .where(*conditions)
            .order_by(EmailLog.sent_at.desc(), EmailLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_stats(self, owner_id: int) -> EmailStats:
        result = await self.db.execute(
            select(EmailLog.email_type, EmailLog.delivery_status, EmailLog.success, EmailLog.retry_count)
            .where(EmailLog.owner_id == owner_id)
        )
        rows = result.all()

        by_type = {t.value: 0 for t in EmailType}
        by_status = {s.value: 0 for s in DeliveryStatus}
        sent = failed = pending = 0
        for email_type, delivery_status, success, retry_count in rows:
            by_type[email_type.value] += 1
            by_status[delivery_status.value] += 1
            if success:
                sent += 1
            else:
                failed += 1
                if retry_count < MAX_RETRIES:
                    pending += 1

        return EmailStats(
            total=len(rows),
            sent=sent,
            failed=failed,
            pending_retry=pending,
            by_type=by_type,
            by_delivery_status=by_status,
        )

    async def _attachment_for(self, log: EmailLog) -> tuple[str, str] | None:
        if log.email_type != EmailType.INVOICE or not log.invoice_id:
            return None
        result = await self.db.execute(
            select(Invoice.pdf_path, Invoice.invoice_number).where(Invoice.id == log.invoice_id)
        )
        row = result.first()
        if row is None or not row.pdf_path:
            return None
        return row.pdf_path, f"{row.invoice_number}.pdf"

    async def retry_email(self, log: EmailLog) -> RetryResult:
        """
        Re-send a failed email and update its retry bookkeeping.
        Successful or exhausted logs are refused without sending.
        """
        if log.success:
            return RetryResult(
                success=False,
                error="Email was already sent successfully",
                retry_count=log.retry_count,
            )
        if log.retry_count >= MAX_RETRIES:
            return RetryResult(
                success=False,
                error="Maximum retry attempts reached",
                retry_count=log.retry_count,
            )

        owner = await self.db.get(User, log.owner_id)
        if owner is None:
            return RetryResult(success=False, error="User not found", retry_count=log.retry_count)

        message_id, error = await EmailService(self.db).deliver(
            owner,
            log.recipient_email,
            log.subject,
            log.body or f"<p>{log.subject}</p>",
            attachment=await self._attachment_for(log),
        )

        log.retry_count += 1
        log.last_retry_at = datetime.now(timezone.utc)
        if error is None:
            log.success = True
            log.error_message = None
            log.message_id = message_id
            log.delivery_status = DeliveryStatus.SENT
            log.next_retry_at = None
            logger.info(f"Retried email {log.id} on attempt {log.retry_count}")
        else:
            log.error_message = error
            log.next_retry_at = calculate_next_retry_time(log.retry_count)
            logger.warning(f"Retry {log.retry_count} of email {log.id} failed: {error}")

        await self.db.flush()
        return RetryResult(
            success=error is None,
            error=error,
            retry_count=log.retry_count,
            next_retry_at=log.next_retry_at,
        )

    async def due_for_retry(self, now: datetime | None = None) -> List[EmailLog]:
        now = now or datetime.now(timezone.utc)
        result = await self.db.execute(
            select(EmailLog)
            .where(
                EmailLog.success.is_(False),
                EmailLog.retry_count < MAX_RETRIES,
                or_(EmailLog.next_retry_at.is_(None), EmailLog.next_retry_at <= now),
            )
            .order_by(EmailLog.id)
        )
        return list(result.scalars().all())

    async def process_failed_emails(self, now: datetime | None = None) -> dict[str, int]:
        """Retry every failed email whose next retry time has passed."""
        processed = succeeded = failed = 0
        for log in await self.due_for_retry(now):
            processed += 1
            result = await self.retry_email(log)
            if result.success:
                succeeded += 1
            else:
                failed += 1
            await asyncio.sleep(RETRY_PAUSE_SECONDS)

        if processed:
            logger.info(f"Email retry run: {processed} processed, {succeeded} succeeded, {failed} failed")
        return {"processed": processed, "succeeded": succeeded, "failed": failed}
