"""
Invoice management endpoints.
CRUD, sending, reminders, payment status and PDF download.
"""

from datetime import date
from fastapi import APIRouter, Query, status
from fastapi.responses import FileResponse

from app.api.deps import DbSession, CurrentUser
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    InvoiceListResponse,
    InvoiceStats,
    OverdueCheckResponse,
    SendInvoiceRequest,
)
from app.schemas.base import MessageResponse, PaginatedResponse
from app.models.invoice import InvoiceStatus
from app.services.invoice import InvoiceService
from app.services.pdf import PDFService


router = APIRouter()


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
    description="Create a draft invoice with its line items",
)
async def create_invoice(
    data: InvoiceCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    """
    Create a new invoice.

    Free accounts are limited to 3 invoices per calendar month (403 beyond).
    """
    service = InvoiceService(db)
    invoice = await service.create(current_user, data)
    return InvoiceResponse.model_validate(invoice)


@router.get(
    "",
    response_model=InvoiceListResponse,
    summary="List invoices",
    description="Get the paginated invoice list",
)
async def list_invoices(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    status: InvoiceStatus | None = Query(None, description="Filter by status"),
    client_id: int | None = Query(None, description="Filter by client"),
    from_date: date | None = Query(None, description="Issued on or after"),
    to_date: date | None = Query(None, description="Issued on or before"),
    search: str | None = Query(None, description="Search by invoice number"),
) -> InvoiceListResponse:
    """List all invoices with pagination and filters."""
    service = InvoiceService(db)
    skip = (page - 1) * per_page

    invoices, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        status=status,
        client_id=client_id,
        from_date=from_date,
        to_date=to_date,
        search=search,
    )

    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(i) for i in invoices],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.get(
    "/stats",
    response_model=InvoiceStats,
    summary="Invoice statistics",
    description="Counts per status and invoiced, paid and outstanding amounts",
)
async def get_invoice_stats(
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceStats:
    service = InvoiceService(db)
    return await service.get_stats(current_user.id)


@router.post(
    "/check-overdue",
    response_model=OverdueCheckResponse,
    summary="Flag overdue invoices",
    description="Mark sent invoices past their due date as overdue",
)
async def check_overdue(
    current_user: CurrentUser,
    db: DbSession,
) -> OverdueCheckResponse:
    service = InvoiceService(db)
    updated = await service.detect_overdue(current_user.id)
    return OverdueCheckResponse(updated=updated)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Invoice details",
    description="Get an invoice with its line items",
)
async def get_invoice(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user.id)
    return InvoiceResponse.model_validate(invoice)


@router.patch(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Update invoice",
    description="Update a draft invoice; line items are replaced when given",
)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    """Update an invoice."""
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user.id)
    invoice = await service.update(invoice, data)
    return InvoiceResponse.model_validate(invoice)


@router.delete(
    "/{invoice_id}",
    response_model=MessageResponse,
    summary="Delete invoice",
    description="Delete an invoice (drafts only)",
)
async def delete_invoice(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    """Delete an invoice (only DRAFT invoices)."""
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user.id)
    await service.delete(invoice)
    return MessageResponse(message="Invoice deleted successfully")


@router.post(
    "/{invoice_id}/send",
    response_model=InvoiceResponse,
    summary="Send invoice",
    description="Generate the PDF and email the invoice to the client",
)
async def send_invoice(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
    body: SendInvoiceRequest | None = None,
) -> InvoiceResponse:
    """
    Send invoice to client via email.

    - Generates PDF
    - Sends email with PDF attached (failures are logged for retry)
    - Updates status to SENT
    """
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user.id)

    custom_message = body.message if body else None
    invoice = await service.send(invoice, current_user, custom_message)

    return InvoiceResponse.model_validate(invoice)


@router.post(
    "/{invoice_id}/remind",
    response_model=MessageResponse,
    summary="Send payment reminder",
    description="Email a payment reminder for a sent or overdue invoice",
)
async def send_reminder(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user.id)
    await service.send_reminder(invoice, current_user)
    return MessageResponse(message="Reminder sent")


@router.post(
    "/{invoice_id}/cancel",
    response_model=InvoiceResponse,
    summary="Cancel invoice",
    description="Cancel an unpaid invoice",
)
async def cancel_invoice(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    """Cancel an invoice."""
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user.id)
    invoice = await service.cancel(invoice)
    return InvoiceResponse.model_validate(invoice)


@router.post(
    "/{invoice_id}/mark-paid",
    response_model=InvoiceResponse,
    summary="Mark invoice paid",
    description="Record a manual payment for the remaining balance",
)
async def mark_invoice_paid(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user.id)
    invoice = await service.mark_paid(invoice)
    return InvoiceResponse.model_validate(invoice)


@router.get(
    "/{invoice_id}/pdf",
    summary="Download PDF",
    description="Generate and download the invoice as PDF",
    response_class=FileResponse,
)
async def download_invoice_pdf(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
):
    """Generate and download invoice PDF."""
    invoice_service = InvoiceService(db)
    invoice = await invoice_service.get_or_404(invoice_id, current_user.id)

    pdf_service = PDFService()
    pdf_path = await pdf_service.generate_invoice_pdf(invoice, current_user)

    invoice.pdf_path = pdf_path
    await db.flush()

    return FileResponse(
        path=pdf_path,
        filename=f"{invoice.invoice_number}.pdf",
        media_type="application/pdf",
    )
