"""
Invoice service.
Handles invoice CRUD, numbering, status changes and calculations.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from sqlalchemy.orm import InstrumentedAttribute
from fastapi import HTTPException, status

from app.core.subscription import can_create_invoice, get_plan
from app.models.client import Client
from app.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.user import User
from app.schemas.invoice import InvoiceCreate, InvoiceUpdate, InvoiceStats, LineItemCreate
from app.services.email import EmailService
from app.services.pdf import PDFService
from app.services.product import ProductService
from app.services.user import UserService
from app.utils.totals import ZERO, HUNDRED, DiscountType, calculate_totals, line_amount


logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"

# Invoices that still expect money
OPEN_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)


async def next_document_number(
    db: AsyncSession,
    number_column: InstrumentedAttribute,
    owner_column: InstrumentedAttribute,
    owner_id: int,
    prefix: str,
    year: int | None = None,
) -> str:
    """
    Next ``{prefix}-{year}-{NNNN}`` number for an owner.
    The sequence restarts every year and continues after the highest number used.
    """
    year = year or date.today().year
    stem = f"{prefix}-{year}-"
    result = await db.execute(
        select(number_column).where(
            owner_column == owner_id,
            number_column.like(f"{stem}%"),
        )
    )
    highest = 0
    for number in result.scalars().all():
        suffix = number[len(stem):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{stem}{highest + 1:04d}"


def build_line_items(model, items: list[LineItemCreate]) -> list:
    return [
        model(
            product_id=item.product_id,
            description=item.description,
            quantity=item.quantity,
            rate=item.rate,
            amount=line_amount(item.quantity, item.rate),
            sort_order=position,
        )
        for position, item in enumerate(items)
    ]


def check_discount(document) -> None:
    """
    Raises:
        HTTPException: 400 when the merged discount is a percentage above 100
    """
    if document.discount_type == DiscountType.PERCENTAGE and document.discount_value > HUNDRED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Percentage discount cannot exceed 100",
        )


def recalculate(document, client: Client | None = None) -> None:
    """Recompute the money columns of an invoice or estimate from its lines."""
    if client is not None and client.tax_exempt:
        document.tax_rate = ZERO
    document.apply_totals(calculate_totals(
        document.line_items,
        tax_rate=document.tax_rate,
        discount_type=document.discount_type,
        discount_value=document.discount_value,
    ))


class InvoiceService:
    """Service for invoice operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_client(self, client_id: int, owner_id: int) -> Client:
        result = await self.db.execute(
            select(Client).where(
                Client.id == client_id,
                Client.owner_id == owner_id,
            )
        )
        client = result.scalar_one_or_none()
        if not client:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Client not found",
            )
        return client

    async def generate_invoice_number(self, owner_id: int) -> str:
        return await next_document_number(
            self.db, Invoice.invoice_number, Invoice.owner_id, owner_id, INVOICE_PREFIX
        )

    async def check_plan_limit(self, owner: User) -> None:
        """
        Raises:
            HTTPException: 403 once a free account used its monthly invoices
        """
        count = await UserService(self.db).count_invoices_this_month(owner.id)
        if not can_create_invoice(owner.subscription_status, count):
            limit = get_plan(owner.subscription_status).invoice_limit
            logger.info(f"User {owner.id} hit the free plan limit ({count}/{limit})")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"You've reached your monthly limit of {limit} invoices. "
                    "Upgrade to Pro for unlimited invoices."
                ),
            )

    async def create(self, owner: User, data: InvoiceCreate) -> Invoice:
        """
        Create a draft invoice with its line items.

        Raises:
            HTTPException: 404 for an unknown client, 403 over the plan limit
        """
        client = await self.get_client(data.client_id, owner.id)
        await self.check_plan_limit(owner)
        line_items = await ProductService(self.db).resolve_line_items(owner.id, data.line_items)

        invoice = Invoice(
            owner_id=owner.id,
            client_id=client.id,
            invoice_number=await self.generate_invoice_number(owner.id),
            status=InvoiceStatus.DRAFT,
            currency=data.currency,
            tax_rate=data.tax_rate,
            discount_type=data.discount_type,
            discount_value=data.discount_value,
            notes=data.notes,
            payment_terms=data.payment_terms,
            issue_date=data.issue_date,
            due_date=data.due_date,
            amount_paid=ZERO,
            line_items=build_line_items(InvoiceLineItem, line_items),
        )
        recalculate(invoice, client)

        self.db.add(invoice)
        await self.db.flush()
        logger.info(f"Created invoice {invoice.invoice_number} for user {owner.id}")

        return await self.get_or_404(invoice.id, owner.id)

    async def get_by_id(self, invoice_id: int, owner_id: int) -> Invoice | None:
        """Get invoice by ID with lines, payments and client freshly loaded."""
        result = await self.db.execute(
            select(Invoice)
            .where(
                Invoice.id == invoice_id,
                Invoice.owner_id == owner_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, invoice_id: int, owner_id: int) -> Invoice:
        invoice = await self.get_by_id(invoice_id, owner_id)
        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invoice not found",
            )
        return invoice

    async def list(
        self,
        owner_id: int,
        skip: int = 0,
        limit: int = 20,
        status: InvoiceStatus | None = None,
        client_id: int | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        search: str | None = None,
    ) -> tuple[list[Invoice], int]:
        """List invoices with pagination and filters, newest first."""
        conditions = [Invoice.owner_id == owner_id]
        if status:
            conditions.append(Invoice.status == status)
        if client_id:
            conditions.append(Invoice.client_id == client_id)
        if from_date:
            conditions.append(Invoice.issue_date >= from_date)
        if to_date:
            conditions.append(Invoice.issue_date <= to_date)
        if search:
            conditions.append(Invoice.invoice_number.ilike(f"%{search}%"))

        total_result = await self.db.execute(select(func.count(Invoice.id)).where(*conditions))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Invoice)
            .where(*conditions)
            .order_by(Invoice.issue_date.desc(), Invoice.id.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    def _require_draft(self, invoice: Invoice, action: str) -> None:
        if invoice.status != InvoiceStatus.DRAFT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only draft invoices can be {action}",
            )

    async def update(self, invoice: Invoice, data: InvoiceUpdate) -> Invoice:
        """
        Update a draft invoice.
        Line items are replaced wholesale when given; totals are always recomputed.
        """
        self._require_draft(invoice, "edited")

        update_data = data.model_dump(exclude_unset=True, exclude={"line_items"})
        client = invoice.client
        if "client_id" in update_data and update_data["client_id"] != invoice.client_id:
            client = await self.get_client(update_data["client_id"], invoice.owner_id)
            invoice.client = client

        for field, value in update_data.items():
            if value is not None:
                setattr(invoice, field, value)

        if invoice.due_date < invoice.issue_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Due date must be on or after the issue date",
            )

        if data.line_items is not None:
            line_items = await ProductService(self.db).resolve_line_items(invoice.owner_id, data.line_items)
            invoice.line_items = build_line_items(InvoiceLineItem, line_items)

        check_discount(invoice)
        recalculate(invoice, client)
        await self.db.flush()

        return await self.get_or_404(invoice.id, invoice.owner_id)

    async def delete(self, invoice: Invoice) -> None:
        """Delete a draft invoice. Other invoices must be canceled instead."""
        self._require_draft(invoice, "deleted")
        await self.db.delete(invoice)
        await self.db.flush()

    async def send(
        self,
        invoice: Invoice,
        owner: User,
        custom_message: str | None = None,
    ) -> Invoice:
        """
        Render the PDF, email it to the client and mark the invoice sent.
        A failed email is logged for retry; the invoice is still marked sent.
        """
        self._require_draft(invoice, "sent")

        if not invoice.line_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot send an invoice without line items",
            )

        client = invoice.client
        if not client.email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Client has no email address",
            )

        invoice.pdf_path = await PDFService().generate_invoice_pdf(invoice, owner)

        log = await EmailService(self.db).send_invoice(
            invoice=invoice,
            owner=owner,
            client=client,
            pdf_path=invoice.pdf_path,
            custom_message=custom_message,
        )
        if not log.success:
            logger.warning(f"Invoice {invoice.invoice_number} marked sent but email failed: {log.error_message}")

        invoice.status = InvoiceStatus.SENT
        invoice.sent_at = datetime.now(timezone.utc)
        await self.db.flush()

        return await self.get_or_404(invoice.id, owner.id)

    async def send_reminder(self, invoice: Invoice, owner: User) -> Invoice:
        if invoice.status not in OPEN_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Reminders can only be sent for unpaid invoices",
            )
        if not invoice.client.email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Client has no email address",
            )
        await EmailService(self.db).send_payment_reminder(invoice, owner, invoice.client)
        return invoice

    async def cancel(self, invoice: Invoice) -> Invoice:
        if invoice.status == InvoiceStatus.PAID:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot cancel a paid invoice",
            )
        if invoice.status == InvoiceStatus.CANCELED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invoice is already canceled",
            )

        invoice.status = InvoiceStatus.CANCELED
        await self.db.flush()
        logger.info(f"Canceled invoice {invoice.invoice_number}")

        return await self.get_or_404(invoice.id, invoice.owner_id)

    async def mark_paid(self, invoice: Invoice, payment_method: PaymentMethod = PaymentMethod.MANUAL) -> Invoice:
        """
        Settle the remaining balance with a manual payment and mark the invoice paid.
        """
        if invoice.status not in OPEN_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only sent or overdue invoices can be marked as paid",
            )

        balance = invoice.balance_due
        if balance > 0:
            self.db.add(Payment(
                owner_id=invoice.owner_id,
                invoice_id=invoice.id,
                amount=balance,
                currency=invoice.currency,
                payment_method=payment_method,
                payment_date=date.today(),
                received_date=date.today(),
                status=PaymentStatus.COMPLETED,
                notes="Marked as paid",
            ))
            await self.db.flush()

        invoice = await self.get_or_404(invoice.id, invoice.owner_id)
        return await self.apply_payments(invoice)

    async def apply_payments(self, invoice: Invoice) -> Invoice:
        """
        Recompute amount_paid from completed payments and move the status
        between paid and unpaid accordingly.
        """
        result = await self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.invoice_id == invoice.id,
                Payment.status == PaymentStatus.COMPLETED,
            )
        )
        invoice.amount_paid = Decimal(str(result.scalar() or 0))

        if invoice.amount_paid >= invoice.total and invoice.status in OPEN_STATUSES:
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = datetime.now(timezone.utc)
        elif invoice.amount_paid < invoice.total and invoice.status == InvoiceStatus.PAID:
            invoice.status = (
                InvoiceStatus.OVERDUE if invoice.due_date < date.today() else InvoiceStatus.SENT
            )
            invoice.paid_at = None

        await self.db.flush()
        return await self.get_or_404(invoice.id, invoice.owner_id)

    async def detect_overdue(self, owner_id: int | None = None, today: date | None = None) -> int:
        """Move sent invoices past their due date to overdue. Returns how many changed."""
        today = today or date.today()
        stmt = (
            update(Invoice)
            .where(
                Invoice.status == InvoiceStatus.SENT,
                Invoice.due_date < today,
            )
            .values(status=InvoiceStatus.OVERDUE)
            .execution_options(synchronize_session=False)
        )
        if owner_id is not None:
            stmt = stmt.where(Invoice.owner_id == owner_id)

        result = await self.db.execute(stmt)
        await self.db.flush()
        if result.rowcount:
            logger.info(f"Marked {result.rowcount} invoices overdue")
        return result.rowcount or 0

    async def get_stats(self, owner_id: int) -> InvoiceStats:
        """Invoice counts by status and money totals."""
        counts = await self.db.execute(
            select(Invoice.status, func.count(Invoice.id))
            .where(Invoice.owner_id == owner_id)
            .group_by(Invoice.status)
        )
        status_counts = {s.value: 0 for s in InvoiceStatus}
        for invoice_status, count in counts.all():
            status_counts[invoice_status.value] = count

        sums = await self.db.execute(
            select(
                func.coalesce(func.sum(Invoice.total), 0),
                func.coalesce(func.sum(Invoice.amount_paid), 0),
            ).where(
                Invoice.owner_id == owner_id,
                Invoice.status.not_in([InvoiceStatus.DRAFT, InvoiceStatus.CANCELED]),
            )
        )
        total_invoiced, total_paid = sums.one()

        overdue = await self.db.execute(
            select(func.coalesce(func.sum(Invoice.total - Invoice.amount_paid), 0)).where(
                Invoice.owner_id == owner_id,
                Invoice.status == InvoiceStatus.OVERDUE,
            )
        )

        total_invoiced = Decimal(str(total_invoiced))
        total_paid = Decimal(str(total_paid))
        return InvoiceStats(
            status_counts=status_counts,
            total_invoiced=total_invoiced,
            total_paid=total_paid,
            outstanding=total_invoiced - total_paid,
            overdue_amount=Decimal(str(overdue.scalar() or 0)),
        )
