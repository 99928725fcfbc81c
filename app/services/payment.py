"""
Payment service.
Handles payment recording and keeps the invoice balance and status in sync.
"""

from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fastapi import HTTPException, status
import logging

from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.invoice import Invoice, InvoiceStatus
from app.models.user import User
from app.schemas.payment import PaymentCreate
from app.services.email import EmailService
from app.services.invoice import InvoiceService, OPEN_STATUSES

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for payment operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.invoices = InvoiceService(db)

    async def create(self, owner: User, data: PaymentCreate, send_receipt: bool = False) -> Payment:
        """
        Record a completed payment against an invoice.

        Raises:
            HTTPException: 404 for an unknown invoice, 400 when the invoice
                cannot take payments or the amount exceeds the balance due
        """
        invoice = await self.invoices.get_or_404(data.invoice_id, owner.id)

        if invoice.status not in OPEN_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Payments can only be recorded for sent or overdue invoices",
            )

        if data.amount > invoice.balance_due:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Amount exceeds the balance due ({invoice.balance_due:.2f})",
            )

        payment = Payment(
            owner_id=owner.id,
            invoice_id=invoice.id,
            amount=data.amount,
            currency=invoice.currency,
            payment_method=data.payment_method,
            payment_date=data.payment_date,
            received_date=data.received_date or data.payment_date,
            status=PaymentStatus.COMPLETED,
            notes=data.notes,
        )
        self.db.add(payment)
        await self.db.flush()

        invoice = await self.invoices.apply_payments(invoice)
        logger.info(
            f"Recorded payment of {payment.amount} on invoice {invoice.invoice_number} "
            f"(status {invoice.status.value})"
        )

        if send_receipt and invoice.client.email:
            await EmailService(self.db).send_payment_receipt(invoice, payment, owner, invoice.client)

        await self.db.refresh(payment)
        return payment

    async def get_by_id(self, payment_id: int, owner_id: int) -> Payment | None:
        result = await self.db.execute(
            select(Payment).where(
                Payment.id == payment_id,
                Payment.owner_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, payment_id: int, owner_id: int) -> Payment:
        payment = await self.get_by_id(payment_id, owner_id)
        if not payment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Payment not found",
            )
        return payment

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        invoice_id: int | None = None,
        status: PaymentStatus | None = None,
        payment_method: PaymentMethod | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> tuple[list[Payment], int]:
        """List payments with filters, most recent first."""
        conditions = [Payment.owner_id == owner_id]
        if invoice_id:
            conditions.append(Payment.invoice_id == invoice_id)
        if status:
            conditions.append(Payment.status == status)
        if payment_method:
            conditions.append(Payment.payment_method == payment_method)
        if from_date:
            conditions.append(Payment.payment_date >= from_date)
        if to_date:
            conditions.append(Payment.payment_date <= to_date)

        total_result = await self.db.execute(select(func.count(Payment.id)).where(*conditions))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Payment)
            .where(*conditions)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def delete(self, payment: Payment) -> Invoice:
        """
        Delete a payment and reverse its effect on the invoice.

        Returns:
            The invoice with its balance and status recomputed
        """
        invoice_id = payment.invoice_id
        owner_id = payment.owner_id

        await self.db.delete(payment)
        await self.db.flush()

        invoice = await self.invoices.get_or_404(invoice_id, owner_id)
        if invoice.status == InvoiceStatus.CANCELED:
            return invoice
        return await self.invoices.apply_payments(invoice)
