"""
Estimate service.
Handles estimate CRUD, the accept/reject flow, expiry and conversion to invoices.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from fastapi import HTTPException, status

from app.models.estimate import Estimate, EstimateLineItem, EstimateStatus, OPEN_ESTIMATE_STATUSES
from app.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from app.models.user import User
from app.schemas.estimate import EstimateCreate, EstimateUpdate
from app.services.email import EmailService
from app.services.invoice import (
    InvoiceService,
    build_line_items,
    next_document_number,
    check_discount,
    recalculate,
)
from app.services.pdf import PDFService
from app.services.product import ProductService
from app.utils.totals import ZERO


logger = logging.getLogger(__name__)

ESTIMATE_PREFIX = "EST"
# Converted invoices are due this many days after conversion
CONVERSION_DUE_DAYS = 30


class EstimateService:
    """Service for estimate operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate_estimate_number(self, owner_id: int) -> str:
        return await next_document_number(
            self.db, Estimate.estimate_number, Estimate.owner_id, owner_id, ESTIMATE_PREFIX
        )

    async def create(self, owner: User, data: EstimateCreate) -> Estimate:
        client = await InvoiceService(self.db).get_client(data.client_id, owner.id)
        line_items = await ProductService(self.db).resolve_line_items(owner.id, data.line_items)

        estimate = Estimate(
            owner_id=owner.id,
            client_id=client.id,
            estimate_number=await self.generate_estimate_number(owner.id),
            title=data.title,
            terms=data.terms,
            status=EstimateStatus.DRAFT,
            currency=data.currency,
            tax_rate=data.tax_rate,
            discount_type=data.discount_type,
            discount_value=data.discount_value,
            notes=data.notes,
            issue_date=data.issue_date,
            valid_until=data.valid_until,
            line_items=build_line_items(EstimateLineItem, line_items),
        )
        recalculate(estimate, client)

        self.db.add(estimate)
        await self.db.flush()
        logger.info(f"Created estimate {estimate.estimate_number} for user {owner.id}")

        return await self.get_or_404(estimate.id, owner.id)

    async def get_by_id(self, estimate_id: int, owner_id: int) -> Estimate | None:
        result = await self.db.execute(
            select(Estimate)
            .where(
                Estimate.id == estimate_id,
                Estimate.owner_id == owner_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, estimate_id: int, owner_id: int) -> Estimate:
        estimate = await self.get_by_id(estimate_id, owner_id)
        if not estimate:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Estimate not found",
            )
        return estimate

    async def expire_estimates(self, owner_id: int, today: date | None = None) -> int:
        """Mark open estimates whose validity date has passed as expired."""
        today = today or date.today()
        result = await self.db.execute(
            update(Estimate)
            .where(
                Estimate.owner_id == owner_id,
                Estimate.status.in_(OPEN_ESTIMATE_STATUSES),
                Estimate.valid_until < today,
            )
            .values(status=EstimateStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        return result.rowcount or 0

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        status: EstimateStatus | None = None,
        client_id: int | None = None,
    ) -> tuple[list[Estimate], int]:
        """List estimates, expiring stale ones first."""
        expired = await self.expire_estimates(owner_id)
        if expired:
            logger.info(f"Expired {expired} estimates for user {owner_id}")

        conditions = [Estimate.owner_id == owner_id]
        if status:
            conditions.append(Estimate.status == status)
        if client_id:
            conditions.append(Estimate.client_id == client_id)

        total_result = await self.db.execute(select(func.count(Estimate.id)).where(*conditions))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Estimate)
            .where(*conditions)
            .order_by(Estimate.issue_date.desc(), Estimate.id.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    async def update(self, estimate: Estimate, data: EstimateUpdate) -> Estimate:
        """Only drafts can be edited. Line items are replaced when given."""
        if estimate.status != EstimateStatus.DRAFT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only draft estimates can be edited",
            )

        update_data = data.model_dump(exclude_unset=True, exclude={"line_items"})
        client = estimate.client
        if "client_id" in update_data and update_data["client_id"] != estimate.client_id:
            client = await InvoiceService(self.db).get_client(update_data["client_id"], estimate.owner_id)
            estimate.client = client

        for field, value in update_data.items():
            if value is not None:
                setattr(estimate, field, value)

        if estimate.valid_until < estimate.issue_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Validity date must be on or after the issue date",
            )

        if data.line_items is not None:
            line_items = await ProductService(self.db).resolve_line_items(estimate.owner_id, data.line_items)
            estimate.line_items = build_line_items(EstimateLineItem, line_items)

        check_discount(estimate)
        recalculate(estimate, client)
        await self.db.flush()

        return await self.get_or_404(estimate.id, estimate.owner_id)

    async def delete(self, estimate: Estimate) -> None:
        if estimate.status == EstimateStatus.CONVERTED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Converted estimates cannot be deleted",
            )
        await self.db.delete(estimate)
        await self.db.flush()

    async def _transition(
        self,
        estimate: Estimate,
        allowed: tuple[EstimateStatus, ...],
        target: EstimateStatus,
        timestamp_field: str | None = None,
    ) -> Estimate:
        if estimate.status not in allowed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot mark a {estimate.status.value} estimate as {target.value}",
            )
        estimate.status = target
        if timestamp_field:
            setattr(estimate, timestamp_field, datetime.now(timezone.utc))
        await self.db.flush()
        return await self.get_or_404(estimate.id, estimate.owner_id)

    async def send(self, estimate: Estimate, owner: User) -> Estimate:
        """Email the estimate PDF to the client and mark it sent."""
        if estimate.status not in (EstimateStatus.DRAFT, EstimateStatus.SENT):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only draft or sent estimates can be sent",
            )
        if not estimate.line_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot send an estimate without line items",
            )
        if not estimate.client.email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Client has no email address",
            )

        pdf_path = await PDFService().generate_estimate_pdf(estimate, owner)
        await EmailService(self.db).send_estimate(estimate, owner, estimate.client, pdf_path)

        return await self._transition(
            estimate,
            (EstimateStatus.DRAFT, EstimateStatus.SENT),
            EstimateStatus.SENT,
            "sent_at",
        )

    async def mark_viewed(self, estimate: Estimate) -> Estimate:
        return await self._transition(estimate, (EstimateStatus.SENT,), EstimateStatus.VIEWED)

    async def accept(self, estimate: Estimate) -> Estimate:
        return await self._transition(
            estimate,
            (EstimateStatus.SENT, EstimateStatus.VIEWED),
            EstimateStatus.ACCEPTED,
            "accepted_at",
        )

    async def reject(self, estimate: Estimate) -> Estimate:
        return await self._transition(
            estimate,
            (EstimateStatus.SENT, EstimateStatus.VIEWED),
            EstimateStatus.REJECTED,
            "rejected_at",
        )

    async def convert_to_invoice(self, estimate: Estimate, owner: User) -> Invoice:
        """
        Create a draft invoice from an estimate.

        The invoice copies client, money fields, notes and line items and is
        due CONVERSION_DUE_DAYS from today. The estimate becomes ``converted``.

        Raises:
            HTTPException: 400 if already converted or rejected/expired,
                403 over the plan's invoice limit
        """
        if estimate.status == EstimateStatus.CONVERTED or estimate.converted_invoice_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Estimate has already been converted to an invoice",
            )
        if estimate.status in (EstimateStatus.REJECTED, EstimateStatus.EXPIRED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot convert a {estimate.status.value} estimate",
            )

        invoice_service = InvoiceService(self.db)
        await invoice_service.check_plan_limit(owner)

        today = date.today()
        invoice = Invoice(
            owner_id=owner.id,
            client_id=estimate.client_id,
            invoice_number=await invoice_service.generate_invoice_number(owner.id),
            status=InvoiceStatus.DRAFT,
            currency=estimate.currency,
            subtotal=estimate.subtotal,
            tax_rate=estimate.tax_rate,
            tax_amount=estimate.tax_amount,
            discount_type=estimate.discount_type,
            discount_value=estimate.discount_value,
            discount_amount=estimate.discount_amount,
            total=estimate.total,
            amount_paid=ZERO,
            notes=estimate.notes,
            payment_terms=estimate.terms,
            issue_date=today,
            due_date=today + timedelta(days=CONVERSION_DUE_DAYS),
            line_items=[
                InvoiceLineItem(
                    product_id=item.product_id,
                    description=item.description,
                    quantity=item.quantity,
                    rate=item.rate,
                    amount=item.amount,
                    sort_order=item.sort_order,
                )
                for item in estimate.line_items
            ],
        )
        self.db.add(invoice)
        await self.db.flush()

        estimate.status = EstimateStatus.CONVERTED
        estimate.converted_invoice_id = invoice.id
        await self.db.flush()

        logger.info(f"Converted estimate {estimate.estimate_number} to invoice {invoice.invoice_number}")
        return await invoice_service.get_or_404(invoice.id, owner.id)
