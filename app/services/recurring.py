"""
Recurring invoice service.
Manages templates and issues draft invoices from the ones that are due.
"""

import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fastapi import HTTPException, status

from app.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from app.models.recurring import (
    GenerationStatus,
    RecurringFrequency,
    RecurringGenerationLog,
    RecurringInvoice,
    RecurringInvoiceLineItem,
)
from app.models.user import User
from app.schemas.recurring import GenerationResult, RecurringInvoiceCreate, RecurringInvoiceUpdate
from app.services.invoice import InvoiceService, build_line_items, check_discount, recalculate
from app.services.product import ProductService
from app.utils.totals import ZERO, line_amount


logger = logging.getLogger(__name__)

MONTHS_PER_PERIOD = {
    RecurringFrequency.MONTHLY: 1,
    RecurringFrequency.QUARTERLY: 3,
    RecurringFrequency.YEARLY: 12,
}


def add_months(value: date, months: int, anchor_day: int) -> date:
    """
    Move ``value`` by whole months, landing on ``anchor_day`` or on the last
    day of shorter months. Jan 31 goes to Feb 28, then back to Mar 31.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(anchor_day, calendar.monthrange(year, month)[1]))


def next_occurrence(current: date, frequency: RecurringFrequency, anchor_day: int) -> date:
    if frequency == RecurringFrequency.WEEKLY:
        return current + timedelta(weeks=1)
    return add_months(current, MONTHS_PER_PERIOD[frequency], anchor_day)


def first_occurrence_on_or_after(
    start: date,
    frequency: RecurringFrequency,
    earliest: date,
) -> date:
    occurrence = start
    while occurrence < earliest:
        occurrence = next_occurrence(occurrence, frequency, start.day)
    return occurrence


class RecurringInvoiceService:
    """Service for recurring invoice templates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, owner: User, data: RecurringInvoiceCreate) -> RecurringInvoice:
        """
        Create an active template. The first invoice is issued on start_date.

        Raises:
            HTTPException: 404 for an unknown client or product
        """
        client = await InvoiceService(self.db).get_client(data.client_id, owner.id)
        line_items = await ProductService(self.db).resolve_line_items(owner.id, data.line_items)

        template = RecurringInvoice(
            owner_id=owner.id,
            client_id=client.id,
            frequency=data.frequency,
            start_date=data.start_date,
            end_date=data.end_date,
            next_invoice_date=data.start_date,
            due_in_days=data.due_in_days,
            currency=data.currency,
            tax_rate=data.tax_rate,
            discount_type=data.discount_type,
            discount_value=data.discount_value,
            notes=data.notes,
            payment_terms=data.payment_terms,
            is_active=True,
            line_items=build_line_items(RecurringInvoiceLineItem, line_items),
        )
        recalculate(template, client)

        self.db.add(template)
        await self.db.flush()
        logger.info(f"Created {template.frequency.value} recurring invoice {template.id} for user {owner.id}")

        return await self.get_or_404(template.id, owner.id)

    async def get_by_id(self, template_id: int, owner_id: int) -> RecurringInvoice | None:
        result = await self.db.execute(
            select(RecurringInvoice)
            .where(
                RecurringInvoice.id == template_id,
                RecurringInvoice.owner_id == owner_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, template_id: int, owner_id: int) -> RecurringInvoice:
        template = await self.get_by_id(template_id, owner_id)
        if not template:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Recurring invoice not found",
            )
        return template

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        is_active: bool | None = None,
        client_id: int | None = None,
    ) -> tuple[List[RecurringInvoice], int]:
        """List templates, soonest next invoice first."""
        conditions = [RecurringInvoice.owner_id == owner_id]
        if is_active is not None:
            conditions.append(RecurringInvoice.is_active.is_(is_active))
        if client_id:
            conditions.append(RecurringInvoice.client_id == client_id)

        total_result = await self.db.execute(select(func.count(RecurringInvoice.id)).where(*conditions))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(RecurringInvoice)
            .where(*conditions)
            .order_by(RecurringInvoice.next_invoice_date, RecurringInvoice.id)
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    async def update(
        self,
        template: RecurringInvoice,
        data: RecurringInvoiceUpdate,
        today: date | None = None,
    ) -> RecurringInvoice:
        """
        Update a template. A new start date or frequency moves the next
        invoice to the first date of the new schedule that is still ahead.
        Invoices generated earlier are not touched.
        """
        today = today or date.today()
        update_data = data.model_dump(exclude_unset=True, exclude={"line_items"})

        client = template.client
        if "client_id" in update_data and update_data["client_id"] != template.client_id:
            client = await InvoiceService(self.db).get_client(update_data["client_id"], template.owner_id)
            template.client = client

        reschedule = any(
            field in update_data and update_data[field] != getattr(template, field)
            for field in ("start_date", "frequency")
        )
        for field, value in update_data.items():
            setattr(template, field, value)

        if template.end_date is not None and template.end_date < template.start_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="End date must be on or after the start date",
            )

        if reschedule:
            earliest = template.start_date
            if template.last_generated_at is not None:
                earliest = max(earliest, today)
            template.next_invoice_date = first_occurrence_on_or_after(
                template.start_date, template.frequency, earliest
            )

        if data.line_items is not None:
            line_items = await ProductService(self.db).resolve_line_items(template.owner_id, data.line_items)
            template.line_items = build_line_items(RecurringInvoiceLineItem, line_items)

        check_discount(template)
        recalculate(template, client)
        await self.db.flush()

        return await self.get_or_404(template.id, template.owner_id)

    async def delete(self, template: RecurringInvoice) -> None:
        """Delete a template and its log. Invoices it generated are kept."""
        await self.db.delete(template)
        await self.db.flush()
        logger.info(f"Deleted recurring invoice {template.id}")

    async def get_logs(self, template: RecurringInvoice) -> List[RecurringGenerationLog]:
        result = await self.db.execute(
            select(RecurringGenerationLog)
            .where(RecurringGenerationLog.recurring_invoice_id == template.id)
            .order_by(RecurringGenerationLog.id.desc())
        )
        return list(result.scalars().all())

    async def generate_invoice(self, template: RecurringInvoice, owner: User) -> Invoice:
        """
        Issue one draft invoice dated on the template's next invoice date.

        Raises:
            HTTPException: 403 once the owner's plan allows no more invoices this month
        """
        invoice_service = InvoiceService(self.db)
        await invoice_service.check_plan_limit(owner)

        issue_date = template.next_invoice_date
        invoice = Invoice(
            owner_id=owner.id,
            client_id=template.client_id,
            invoice_number=await invoice_service.generate_invoice_number(owner.id),
            status=InvoiceStatus.DRAFT,
            currency=template.currency,
            tax_rate=template.tax_rate,
            discount_type=template.discount_type,
            discount_value=template.discount_value,
            notes=template.notes,
            payment_terms=template.payment_terms,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=template.due_in_days),
            amount_paid=ZERO,
            line_items=[
                InvoiceLineItem(
                    product_id=item.product_id,
                    description=item.description,
                    quantity=item.quantity,
                    rate=item.rate,
                    amount=line_amount(item.quantity, item.rate),
                    sort_order=item.sort_order,
                )
                for item in template.line_items
            ],
        )
        recalculate(invoice, template.client)

        self.db.add(invoice)
        await self.db.flush()
        return invoice

    async def generate_due(
        self,
        owner_id: int | None = None,
        today: date | None = None,
    ) -> GenerationResult:
        """
        Issue one invoice for every active template whose next invoice date
        has arrived, then move that date one period ahead.

        A template past its end date is deactivated instead. A template whose
        owner hit the plan limit is logged as failed and keeps its date, so the
        next run retries it.
        """
        today = today or date.today()
        conditions = [
            RecurringInvoice.is_active.is_(True),
            RecurringInvoice.next_invoice_date <= today,
        ]
        if owner_id is not None:
            conditions.append(RecurringInvoice.owner_id == owner_id)

        due = await self.db.execute(
            select(RecurringInvoice)
            .where(*conditions)
            .order_by(RecurringInvoice.next_invoice_date, RecurringInvoice.id)
            .execution_options(populate_existing=True)
        )

        result = GenerationResult()
        for template in due.scalars().all():
            if template.end_date is not None and template.next_invoice_date > template.end_date:
                template.is_active = False
                result.deactivated += 1
                continue

            period_date = template.next_invoice_date
            owner = await self.db.get(User, template.owner_id)
            try:
                invoice = await self.generate_invoice(template, owner)
            except HTTPException as exc:
                logger.warning(f"Recurring invoice {template.id} not generated: {exc.detail}")
                self.db.add(RecurringGenerationLog(
                    recurring_invoice_id=template.id,
                    period_date=period_date,
                    status=GenerationStatus.FAILED,
                    error_message=str(exc.detail),
                ))
                result.failed += 1
                continue

            self.db.add(RecurringGenerationLog(
                recurring_invoice_id=template.id,
                invoice_id=invoice.id,
                period_date=period_date,
                status=GenerationStatus.SUCCESS,
            ))
            template.last_generated_at = datetime.now(timezone.utc)
            template.next_invoice_date = next_occurrence(period_date, template.frequency, template.start_date.day)
            if template.end_date is not None and template.next_invoice_date > template.end_date:
                template.is_active = False
                result.deactivated += 1

            result.generated += 1
            result.invoice_ids.append(invoice.id)
            logger.info(f"Generated invoice {invoice.invoice_number} from recurring invoice {template.id}")

        await self.db.flush()
        return result
