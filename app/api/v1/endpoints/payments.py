"""
Payment management endpoints.
Record, list and delete payments.
"""

from datetime import date
from fastapi import APIRouter, Query, status

from app.api.deps import DbSession, CurrentUser
from app.schemas.payment import (
    PaymentCreate,
    PaymentResponse,
    PaymentListResponse,
)
from app.schemas.base import MessageResponse, PaginatedResponse
from app.models.payment import PaymentMethod, PaymentStatus
from app.services.payment import PaymentService


router = APIRouter()


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record payment",
    description="Record a payment against a sent or overdue invoice",
)
async def create_payment(
    data: PaymentCreate,
    current_user: CurrentUser,
    db: DbSession,
    send_receipt: bool = Query(False, description="Email a receipt to the client"),
) -> PaymentResponse:
    """
    Record a payment.

    The invoice becomes paid once completed payments cover its total.
    """
    service = PaymentService(db)
    payment = await service.create(current_user, data, send_receipt=send_receipt)
    return PaymentResponse.model_validate(payment)


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="List payments",
    description="Get the paginated payment list",
)
async def list_payments(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    invoice_id: int | None = Query(None, description="Filter by invoice"),
    status: PaymentStatus | None = Query(None, description="Filter by status"),
    payment_method: PaymentMethod | None = Query(None, description="Filter by method"),
    from_date: date | None = Query(None, description="Paid on or after"),
    to_date: date | None = Query(None, description="Paid on or before"),
) -> PaymentListResponse:
    """List all payments with pagination and filters."""
    service = PaymentService(db)
    skip = (page - 1) * per_page

    payments, total = await service.list(
        owner_id=current_user.id,
        skip=skip,
        limit=per_page,
        invoice_id=invoice_id,
        status=status,
        payment_method=payment_method,
        from_date=from_date,
        to_date=to_date,
    )

    return PaymentListResponse(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        per_page=per_page,
        pages=PaginatedResponse.page_count(total, per_page),
    )


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Payment details",
)
async def get_payment(
    payment_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> PaymentResponse:
    service = PaymentService(db)
    payment = await service.get_or_404(payment_id, current_user.id)
    return PaymentResponse.model_validate(payment)


@router.delete(
    "/{payment_id}",
    response_model=MessageResponse,
    summary="Delete payment",
    description="Delete a payment and recompute the invoice balance",
)
async def delete_payment(
    payment_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    service = PaymentService(db)
    payment = await service.get_or_404(payment_id, current_user.id)
    invoice = await service.delete(payment)
    return MessageResponse(message=f"Payment deleted, invoice {invoice.invoice_number} is {invoice.status.value}")
